"""Unit tests for logging setup."""

from __future__ import annotations

import logging

import structlog

from aiopsanalyzer.observability.logging import _redact_secrets, setup_logging


def test_secret_values_are_masked() -> None:
    event = {"event": "feishu_token", "app_secret": "s3cret", "Authorization": "Bearer x", "namespace": "prod"}
    redacted = _redact_secrets(None, "info", dict(event))
    assert redacted["app_secret"] == "***"
    assert redacted["Authorization"] == "***"
    assert redacted["namespace"] == "prod"


def test_empty_secret_values_are_left_alone() -> None:
    assert _redact_secrets(None, "info", {"token": ""})["token"] == ""


def test_transport_loggers_are_quieted() -> None:
    setup_logging("info")
    try:
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger().level == logging.INFO
    finally:
        structlog.reset_defaults()

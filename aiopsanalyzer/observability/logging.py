"""Structured logging configuration using structlog.

Every line is one JSON object on stderr, with an ISO UTC ``ts`` and any
context bound through ``structlog.contextvars`` (``run_id``, ``namespace``,
``selector`` during a pipeline run). Values under credential-like keys are
masked before rendering.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog

_REDACTED = "***"
_SECRET_KEYS = frozenset(
    {
        "api_key",
        "app_secret",
        "authorization",
        "password",
        "secret",
        "tenant_access_token",
        "token",
    }
)

# Chatty transport libraries only surface warnings unless debugging.
_QUIET_LOGGERS = ("httpx", "httpcore", "kubernetes_asyncio", "uvicorn.access")


def _redact_secrets(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in event_dict:
        if key.lower() in _SECRET_KEYS and event_dict[key]:
            event_dict[key] = _REDACTED
    return event_dict


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr.

    Standard-library loggers (uvicorn, httpx, kubernetes_asyncio) are routed
    to the same stream at the same level so nothing bypasses the filter.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, stream=sys.stderr, format="%(message)s", force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]

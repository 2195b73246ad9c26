"""Unit tests for environment-driven configuration."""

from __future__ import annotations

import os

import pytest

from aiopsanalyzer.config import load_config, window_seconds


class TestLoadConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in list(os.environ):
            if key.startswith("AIOPS_"):
                monkeypatch.delenv(key)
        config = load_config()
        assert config.prometheus.endpoint == "http://127.0.0.1:9090"
        assert config.loki.endpoint == "http://127.0.0.1:3100"
        assert config.loki.tenant_id == "1"
        assert config.loki.lookback == "48m"
        assert config.llm.api_key_ref == "AIOPS_LLM_API_KEY"
        assert config.llm.max_retries == 2
        assert config.feishu.receive_id_type == "chat_id"
        assert config.feishu.approval_timeout == "10m"
        assert config.target.namespace == "default"
        assert config.target.replicas is None
        assert config.api.port == 8080
        assert config.log.level == "info"

    def test_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIOPS_PROMETHEUS_ENDPOINT", "http://prometheus:9090")
        monkeypatch.setenv("AIOPS_LOKI_TENANT_ID", "")
        monkeypatch.setenv("AIOPS_LOKI_LOOKBACK", "2h")
        monkeypatch.setenv("AIOPS_LLM_MODEL", "qwen2.5:7b")
        monkeypatch.setenv("AIOPS_TARGET_SELECTOR", "app=order-service")
        monkeypatch.setenv("AIOPS_TARGET_REPLICAS", "3")
        monkeypatch.setenv("AIOPS_LOG_LEVEL", "DEBUG")
        config = load_config()
        assert config.prometheus.endpoint == "http://prometheus:9090"
        assert config.loki.tenant_id == ""
        assert config.loki.lookback == "2h"
        assert config.llm.model == "qwen2.5:7b"
        assert config.target.selector == "app=order-service"
        assert config.target.replicas == 3
        assert config.log.level == "debug"

    def test_integers_are_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AIOPS_LLM_MAX_RETRIES", "50")
        monkeypatch.setenv("AIOPS_API_PORT", "80")
        config = load_config()
        assert config.llm.max_retries == 5
        assert config.api.port == 1024

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("AIOPS_LOKI_LOOKBACK", "48 minutes"),
            ("AIOPS_FEISHU_APPROVAL_TIMEOUT", "1d"),
            ("AIOPS_LOG_LEVEL", "verbose"),
            ("AIOPS_FEISHU_RECEIVE_ID_TYPE", "group"),
            ("AIOPS_LLM_TIMEOUT", "soon"),
        ],
    )
    def test_invalid_values_raise(self, monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
        monkeypatch.setenv(key, value)
        with pytest.raises(ValueError):
            load_config()


@pytest.mark.parametrize(("window", "seconds"), [("30s", 30), ("48m", 2880), ("2h", 7200), ("0m", 0)])
def test_window_seconds(window: str, seconds: int) -> None:
    assert window_seconds(window) == seconds

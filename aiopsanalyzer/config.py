"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from aiopsanalyzer.models.config import (
    AIOpsConfig,
    APIConfig,
    FeishuConfig,
    KubernetesConfig,
    LLMConfig,
    LogConfig,
    LokiConfig,
    PrometheusConfig,
    TargetConfig,
    WebhookConfig,
)

_RECEIVE_ID_TYPES = {"user_id", "open_id", "union_id", "chat_id", "email"}


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"AIOPS_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_optional_int(key: str) -> int | None:
    raw = _env(key)
    return int(raw) if raw else None


def _env_float(key: str, default: float) -> float:
    return float(_env(key, str(default)))


def _validate_time_window(value: str) -> str:
    if not re.match(r"^[0-9]+(s|m|h)$", value):
        raise ValueError(f"Invalid time window format: {value}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_receive_id_type(value: str) -> str:
    if value not in _RECEIVE_ID_TYPES:
        raise ValueError(f"Invalid receive id type: {value}. Must be one of {_RECEIVE_ID_TYPES}")
    return value


def window_seconds(window: str) -> int:
    """Convert a validated ``[0-9]+(s|m|h)`` window to seconds."""
    value = int(window[:-1])
    unit = window[-1]
    if unit == "h":
        return value * 3600
    if unit == "m":
        return value * 60
    return value


def load_config() -> AIOpsConfig:
    """Load configuration from AIOPS_* environment variables."""
    return AIOpsConfig(
        kubernetes=KubernetesConfig(
            timeout_seconds=_env_int("K8S_TIMEOUT", 15, min_val=1, max_val=120),
        ),
        prometheus=PrometheusConfig(
            endpoint=_env("PROMETHEUS_ENDPOINT", "http://127.0.0.1:9090"),
            timeout_seconds=_env_int("PROMETHEUS_TIMEOUT", 10, min_val=1, max_val=120),
        ),
        loki=LokiConfig(
            endpoint=_env("LOKI_ENDPOINT", "http://127.0.0.1:3100"),
            tenant_id=_env("LOKI_TENANT_ID", "1"),
            lookback=_validate_time_window(_env("LOKI_LOOKBACK", "48m")),
            limit=_env_int("LOKI_LIMIT", 200, min_val=1, max_val=5000),
            timeout_seconds=_env_int("LOKI_TIMEOUT", 15, min_val=1, max_val=120),
        ),
        llm=LLMConfig(
            endpoint=_env("LLM_ENDPOINT", "https://api.siliconflow.cn/v1"),
            model=_env("LLM_MODEL", "Qwen/Qwen2.5-72B-Instruct"),
            api_key_ref=_env("LLM_API_KEY_REF", "AIOPS_LLM_API_KEY"),
            timeout_seconds=_env_int("LLM_TIMEOUT", 60, min_val=5, max_val=300),
            max_retries=_env_int("LLM_MAX_RETRIES", 2, min_val=0, max_val=5),
            temperature=_env_float("LLM_TEMPERATURE", 0.1),
            max_tokens=_env_int("LLM_MAX_TOKENS", 2048),
        ),
        feishu=FeishuConfig(
            base_url=_env("FEISHU_BASE_URL", "https://open.feishu.cn"),
            app_id_ref=_env("FEISHU_APP_ID_REF", ""),
            app_secret_ref=_env("FEISHU_APP_SECRET_REF", ""),
            receive_id=_env("FEISHU_RECEIVE_ID", ""),
            receive_id_type=_validate_receive_id_type(_env("FEISHU_RECEIVE_ID_TYPE", "chat_id")),
            template_id=_env("FEISHU_TEMPLATE_ID", ""),
            template_version=_env("FEISHU_TEMPLATE_VERSION", ""),
            approval_timeout=_validate_time_window(_env("FEISHU_APPROVAL_TIMEOUT", "10m")),
            timeout_seconds=_env_int("FEISHU_TIMEOUT", 10, min_val=1, max_val=60),
        ),
        webhook=WebhookConfig(
            url_ref=_env("WEBHOOK_URL_REF", ""),
        ),
        target=TargetConfig(
            namespace=_env("TARGET_NAMESPACE", "default"),
            selector=_env("TARGET_SELECTOR", ""),
            replicas=_env_optional_int("TARGET_REPLICAS"),
            cpu_limits=_env("TARGET_CPU_LIMITS", ""),
            cpu_requests=_env("TARGET_CPU_REQUESTS", ""),
            memory_limits=_env("TARGET_MEMORY_LIMITS", ""),
        ),
        api=APIConfig(
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )

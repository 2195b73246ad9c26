"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubernetesConfig:
    """Cluster API client configuration."""

    timeout_seconds: int = 15


@dataclass
class PrometheusConfig:
    """Alert source (Prometheus instant query API) configuration."""

    endpoint: str = "http://127.0.0.1:9090"
    timeout_seconds: int = 10


@dataclass
class LokiConfig:
    """Log source (Loki query API) configuration."""

    endpoint: str = "http://127.0.0.1:3100"
    tenant_id: str = "1"
    lookback: str = "48m"
    limit: int = 200
    timeout_seconds: int = 15


@dataclass
class LLMConfig:
    """OpenAI-compatible chat-completions configuration."""

    endpoint: str = "https://api.siliconflow.cn/v1"
    model: str = "Qwen/Qwen2.5-72B-Instruct"
    api_key_ref: str = ""
    timeout_seconds: int = 60
    max_retries: int = 2
    temperature: float = 0.1
    max_tokens: int = 2048


@dataclass
class FeishuConfig:
    """Feishu (Lark) interactive-card delivery configuration."""

    base_url: str = "https://open.feishu.cn"
    app_id_ref: str = ""
    app_secret_ref: str = ""
    receive_id: str = ""
    receive_id_type: str = "chat_id"
    template_id: str = ""
    template_version: str = ""
    approval_timeout: str = "10m"
    timeout_seconds: int = 10


@dataclass
class WebhookConfig:
    """Generic JSON webhook channel configuration."""

    url_ref: str = ""


@dataclass
class TargetConfig:
    """Default target and its declared baseline."""

    namespace: str = "default"
    selector: str = ""
    replicas: int | None = None
    cpu_limits: str = ""
    cpu_requests: str = ""
    memory_limits: str = ""


@dataclass
class APIConfig:
    """REST API configuration."""

    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class AIOpsConfig:
    """Top-level configuration, read once at startup."""

    kubernetes: KubernetesConfig = field(default_factory=KubernetesConfig)
    prometheus: PrometheusConfig = field(default_factory=PrometheusConfig)
    loki: LokiConfig = field(default_factory=LokiConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    feishu: FeishuConfig = field(default_factory=FeishuConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)

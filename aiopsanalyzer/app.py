"""Process bootstrap: turn an AIOpsConfig into a running pipeline.

``AIOpsApp.start`` brings components up in this order

    config, logging, Kubernetes API client, evidence sources,
    decision client, notification channels, dispatcher, pipeline

and records how to close each one. ``stop`` closes them newest first, so a
failure part-way through startup still releases whatever was opened.
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

from aiopsanalyzer.actions import ActionDispatcher, CardRecipient, PendingHealStore
from aiopsanalyzer.collector import (
    EvidenceAggregator,
    KubernetesPodLister,
    LokiLogSource,
    PodResolver,
    PrometheusAlertSource,
)
from aiopsanalyzer.config import load_config, window_seconds
from aiopsanalyzer.errors import StartupError
from aiopsanalyzer.llm import DecisionClient
from aiopsanalyzer.models.config import AIOpsConfig
from aiopsanalyzer.models.target import Target, WorkloadBaseline
from aiopsanalyzer.notifications import build_notification_manager
from aiopsanalyzer.observability.logging import get_logger, setup_logging
from aiopsanalyzer.pipeline import HealingPipeline, PipelineResult

_CLOSE_TIMEOUT_SECONDS = 15
# Headroom on top of the slowest evidence source before the whole fan-out is abandoned.
_AGGREGATION_SLACK_SECONDS = 5

_log = get_logger("app")


async def connect_kubernetes() -> Any:
    """ApiClient authenticated by service account, else by local kubeconfig."""
    import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
    from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

    try:
        k8s_config.load_incluster_config()
        source = "service_account"
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config()
        source = "kubeconfig"
    _log.info("kubernetes_configured", source=source)
    return k8s_client.ApiClient()


class AIOpsApp:
    """Owns every long-lived component of one process."""

    def __init__(self, config: AIOpsConfig | None = None) -> None:
        self.config = config
        self.pipeline: HealingPipeline | None = None
        self._closers: list[tuple[str, Callable[[], Awaitable[Any]]]] = []
        self._server: Any = None

    async def start(self) -> None:
        """Bring every component up. Raises StartupError on the first failure."""
        if self.config is None:
            self.config = load_config()
        setup_logging(self.config.log.level)
        _log.info("starting", version=_version())

        try:
            api_client = await connect_kubernetes()
        except Exception as exc:
            raise StartupError("kubernetes", exc) from exc
        self._closers.append(("kubernetes", api_client.close))

        try:
            self.pipeline = self._wire(api_client)
        except Exception as exc:
            raise StartupError("pipeline", exc) from exc

    def _wire(self, api_client: Any) -> HealingPipeline:
        assert self.config is not None
        cfg = self.config

        alerts = PrometheusAlertSource(cfg.prometheus.endpoint, timeout=cfg.prometheus.timeout_seconds)
        self._closers.append(("prometheus", alerts.aclose))
        logs = LokiLogSource(
            cfg.loki.endpoint,
            lookback=timedelta(seconds=window_seconds(cfg.loki.lookback)),
            tenant_id=cfg.loki.tenant_id,
            limit=cfg.loki.limit,
            timeout=cfg.loki.timeout_seconds,
        )
        self._closers.append(("loki", logs.aclose))
        slowest = max(cfg.kubernetes.timeout_seconds, cfg.prometheus.timeout_seconds, cfg.loki.timeout_seconds)
        aggregator = EvidenceAggregator(
            PodResolver(KubernetesPodLister(api_client, timeout=cfg.kubernetes.timeout_seconds)),
            alerts,
            logs,
            timeout=slowest + _AGGREGATION_SLACK_SECONDS,
        )

        client = DecisionClient(cfg.llm)
        self._closers.append(("llm", client.aclose))

        notifier = build_notification_manager(cfg.feishu, cfg.webhook)
        self._closers.append(("notifications", notifier.aclose))
        recipient = CardRecipient(
            receive_id=cfg.feishu.receive_id,
            receive_id_type=cfg.feishu.receive_id_type,
            template_id=cfg.feishu.template_id,
            template_version=cfg.feishu.template_version,
        )
        dispatcher = ActionDispatcher(
            notifier,
            recipient,
            pending=PendingHealStore(),
            approval_timeout=timedelta(seconds=window_seconds(cfg.feishu.approval_timeout)),
        )

        _log.info(
            "pipeline_ready",
            prometheus=cfg.prometheus.endpoint,
            loki=cfg.loki.endpoint,
            llm_model=cfg.llm.model,
            channels=notifier.channel_names,
        )
        return HealingPipeline(aggregator, client, dispatcher)

    def default_target(self) -> Target:
        """The target described by AIOPS_TARGET_* configuration."""
        assert self.config is not None
        t = self.config.target
        baseline = WorkloadBaseline(
            replicas=t.replicas,
            cpu_limits=t.cpu_limits,
            cpu_requests=t.cpu_requests,
            memory_limits=t.memory_limits,
        )
        return Target.from_selector(t.namespace, t.selector, baseline=baseline)

    async def run_once(self, target: Target) -> PipelineResult:
        assert self.pipeline is not None
        return await self.pipeline.run(target)

    async def serve(self) -> None:
        """Run the REST API until asked to exit."""
        assert self.config is not None and self.pipeline is not None
        import uvicorn  # type: ignore[import-untyped]

        from aiopsanalyzer.api import create_app

        port = self.config.api.port
        self._server = uvicorn.Server(
            uvicorn.Config(
                app=create_app(pipeline=self.pipeline, config=self.config),
                host="0.0.0.0",
                port=port,
                log_config=None,
                access_log=False,
            )
        )
        _log.info("api_listening", port=port)
        await self._server.serve()

    def request_exit(self) -> None:
        if self._server is not None:
            self._server.should_exit = True

    async def stop(self) -> None:
        """Close what ``start`` opened, newest first. Safe to call repeatedly."""
        self.request_exit()
        if not self._closers:
            return
        while self._closers:
            name, close = self._closers.pop()
            try:
                await asyncio.wait_for(close(), timeout=_CLOSE_TIMEOUT_SECONDS)
            except TimeoutError:
                _log.warning("close_timed_out", component=name, timeout=_CLOSE_TIMEOUT_SECONDS)
            except Exception as exc:
                _log.error("close_failed", component=name, error=str(exc))
        _log.info("stopped")


def _version() -> str:
    from aiopsanalyzer import __version__

    return __version__


async def run_once(target: Target | None = None, config: AIOpsConfig | None = None) -> PipelineResult:
    """Start, run one cycle for *target* (default: the configured one), stop."""
    app = AIOpsApp(config)
    try:
        await app.start()
        return await app.run_once(target or app.default_target())
    finally:
        await app.stop()


async def serve(config: AIOpsConfig | None = None) -> None:
    """Start and serve the REST API until SIGTERM or SIGINT."""
    app = AIOpsApp(config)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, app.request_exit)
    try:
        await app.start()
        await app.serve()
    except StartupError as exc:
        _log.critical("startup_failed", component=exc.component, error=str(exc.cause))
        raise SystemExit(1) from exc
    finally:
        await app.stop()

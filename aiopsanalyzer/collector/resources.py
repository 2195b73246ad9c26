"""Resource query: resolve a Target to pods and render the resource block."""

from __future__ import annotations

from typing import Any, Protocol

import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]

from aiopsanalyzer.collector.pod_filter import filter_pod, render_pods
from aiopsanalyzer.errors import ResolutionError
from aiopsanalyzer.models.evidence import PodObservation
from aiopsanalyzer.models.target import Target

_log = structlog.get_logger(component="collector.resources")


class PodLister(Protocol):
    """Minimal cluster API surface needed to resolve a target."""

    async def list_pods(self, namespace: str, label_selector: str) -> list[dict[str, Any]]: ...


class KubernetesPodLister:
    """PodLister backed by kubernetes-asyncio's CoreV1Api.

    Args:
        api_client: A configured ``kubernetes_asyncio.client.ApiClient``.
        timeout:    Per-request timeout in seconds.
    """

    def __init__(self, api_client: Any, timeout: float = 15.0) -> None:
        self._api_client = api_client
        self._v1 = k8s_client.CoreV1Api(api_client)
        self._timeout = timeout

    async def list_pods(self, namespace: str, label_selector: str) -> list[dict[str, Any]]:
        pod_list = await self._v1.list_namespaced_pod(
            namespace,
            label_selector=label_selector,
            _request_timeout=self._timeout,
        )
        # sanitize_for_serialization yields the camelCase wire form.
        return [self._api_client.sanitize_for_serialization(pod) for pod in pod_list.items]


class PodResolver:
    """Resolves a Target to filtered pod observations."""

    def __init__(self, lister: PodLister) -> None:
        self._lister = lister

    async def resolve(self, target: Target) -> list[PodObservation]:
        """Return the filtered pods matching *target*, sorted by name.

        Zero matches is a valid, empty result.

        Raises:
            ResolutionError: if the selector is empty or the cluster API call fails.
        """
        if target.is_empty:
            raise ResolutionError("target has an empty label selector")
        selector = target.selector()
        try:
            raw_pods = await self._lister.list_pods(target.namespace, selector)
        except Exception as exc:
            _log.error(
                "pod_list_failed",
                namespace=target.namespace,
                selector=selector,
                error=str(exc),
            )
            raise ResolutionError(f"failed to list pods in {target.namespace!r} for {selector!r}: {exc}") from exc

        pods = sorted((filter_pod(raw) for raw in raw_pods), key=lambda p: p.name)
        _log.info("pods_resolved", namespace=target.namespace, selector=selector, count=len(pods))
        return pods

    async def resource_block(self, target: Target) -> tuple[list[PodObservation], str]:
        """Resolve *target* and render the YAML block for the report."""
        pods = await self.resolve(target)
        return pods, render_pods(pods)

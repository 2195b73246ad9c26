"""Alert query against the Prometheus instant-query API.

Reads firing ``ALERTS`` series for the target's namespace and labels and
formats each as a short stanza::

    Alert: KubePodCrashLooping
      Namespace: product-a
      Pod: order-service-7b4f8c6d-x2kj
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from aiopsanalyzer.collector.matchers import label_matchers
from aiopsanalyzer.errors import EvidenceSourceError
from aiopsanalyzer.models.evidence import AlertRecord, EvidenceSource
from aiopsanalyzer.models.target import Target

_log = structlog.get_logger(component="collector.alerts")

_QUERY_PATH = "/api/v1/query"


def build_alert_query(target: Target) -> str:
    """Return the PromQL selecting firing alerts for *target*."""
    return "ALERTS{" + label_matchers(target, extra={"alertstate": "firing"}) + "}"


def parse_alert_response(payload: Any) -> list[AlertRecord]:
    """Extract AlertRecords from a ``resultType: vector`` response body.

    Any other result type, or a malformed body, yields no records.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, dict) or data.get("resultType") != "vector":
        return []
    records: list[AlertRecord] = []
    for item in data.get("result") or []:
        metric = item.get("metric") if isinstance(item, dict) else None
        if not isinstance(metric, dict):
            continue
        pod = metric.get("pod")
        records.append(
            AlertRecord(
                alert_name=str(metric.get("alertname", "")),
                namespace=str(metric.get("namespace", "")),
                pod=str(pod) if isinstance(pod, str) else None,
            )
        )
    return records


def format_alerts(alerts: list[AlertRecord]) -> str:
    """Render alerts as stanzas separated by blank lines."""
    lines: list[str] = []
    for alert in alerts:
        lines.append(f"Alert: {alert.alert_name}")
        lines.append(f"  Namespace: {alert.namespace}")
        if alert.pod is not None:
            lines.append(f"  Pod: {alert.pod}")
        lines.append("")
    return "\n".join(lines) + ("\n" if lines else "")


class PrometheusAlertSource:
    """Queries firing alerts from Prometheus.

    Args:
        endpoint: Prometheus base URL, e.g. ``http://prometheus:9090``.
        timeout:  HTTP request timeout in seconds.
        client:   Optional shared ``httpx.AsyncClient`` (tests inject a mock transport).
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = endpoint.rstrip("/") + _QUERY_PATH
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self, target: Target) -> list[AlertRecord]:
        """Return firing alerts for *target*.

        Raises:
            EvidenceSourceError: on transport errors, non-2xx or non-JSON bodies.
        """
        query = build_alert_query(target)
        _log.debug("alert_query", query=query)
        try:
            response = await self._client.get(self._url, params={"query": query})
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise EvidenceSourceError(EvidenceSource.ALERTS, f"prometheus request timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise EvidenceSourceError(
                EvidenceSource.ALERTS,
                f"prometheus returned {exc.response.status_code}: {exc.response.text[:200]}",
            ) from exc
        except httpx.HTTPError as exc:
            raise EvidenceSourceError(EvidenceSource.ALERTS, f"prometheus request failed: {exc}") from exc
        except ValueError as exc:
            raise EvidenceSourceError(EvidenceSource.ALERTS, f"prometheus returned invalid JSON: {exc}") from exc

        alerts = parse_alert_response(payload)
        _log.info("alerts_fetched", namespace=target.namespace, count=len(alerts))
        return alerts

    async def aclose(self) -> None:
        await self._client.aclose()

"""Log query against the Loki range-query API.

Selects lines for the target's namespace/labels that contain an
error-severity marker, over a fixed trailing window, and formats each as
``timestamp: line``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import structlog

from aiopsanalyzer.collector.matchers import label_matchers
from aiopsanalyzer.errors import EvidenceSourceError
from aiopsanalyzer.models.evidence import EvidenceSource, LogRecord
from aiopsanalyzer.models.target import Target

_log = structlog.get_logger(component="collector.logs")

_QUERY_PATH = "/loki/api/v1/query_range"
ERROR_LINE_FILTER = '|~ "(?i)(error|panic|fatal|critical)"'


def build_log_query(target: Target) -> str:
    """Return the LogQL selecting error-severity lines for *target*."""
    return "{" + label_matchers(target) + "} " + ERROR_LINE_FILTER


def parse_log_response(payload: Any) -> list[LogRecord]:
    """Extract LogRecords from a ``resultType: streams`` response body.

    Records from all streams are merged and ordered by timestamp so the
    rendered block does not depend on stream ordering.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, dict) or data.get("resultType") != "streams":
        return []
    entries: list[tuple[int, str, str]] = []
    for stream in data.get("result") or []:
        if not isinstance(stream, dict):
            continue
        for value in stream.get("values") or []:
            if not isinstance(value, list) or len(value) < 2:
                continue
            raw_ts, line = str(value[0]), str(value[1])
            entries.append((_ns(raw_ts), raw_ts, line.rstrip("\n")))
    entries.sort(key=lambda e: (e[0], e[2]))
    return [LogRecord(timestamp=_format_ts(ns, raw), line=line) for ns, raw, line in entries]


def format_logs(records: list[LogRecord]) -> str:
    return "".join(f"{r.timestamp}: {r.line}\n" for r in records)


def _ns(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        return 0


def _format_ts(ns: int, raw: str) -> str:
    if ns <= 0:
        return raw
    ts = datetime.fromtimestamp(ns / 1e9, tz=UTC)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class LokiLogSource:
    """Queries error logs from Loki.

    Args:
        endpoint:  Loki base URL, e.g. ``http://loki:3100``.
        lookback:  Trailing window to search.
        tenant_id: ``X-Scope-OrgID`` for multi-tenant deployments; empty to omit.
        limit:     Maximum lines returned by Loki.
        timeout:   HTTP request timeout in seconds.
        client:    Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        endpoint: str,
        lookback: timedelta = timedelta(minutes=48),
        tenant_id: str = "",
        limit: int = 200,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = endpoint.rstrip("/") + _QUERY_PATH
        self._lookback = lookback
        self._limit = limit
        self._headers = {"X-Scope-OrgID": tenant_id} if tenant_id else {}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def fetch(self, target: Target, now: datetime | None = None) -> list[LogRecord]:
        """Return error-severity log lines for *target* within the window.

        Raises:
            EvidenceSourceError: on transport errors, non-2xx or non-JSON bodies.
        """
        end = now or datetime.now(tz=UTC)
        start = end - self._lookback
        query = build_log_query(target)
        params = {
            "query": query,
            "start": str(int(start.timestamp() * 1e9)),
            "end": str(int(end.timestamp() * 1e9)),
            "limit": str(self._limit),
            "direction": "backward",
        }
        _log.debug("log_query", query=query, start=start.isoformat())
        try:
            response = await self._client.get(self._url, params=params, headers=self._headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            raise EvidenceSourceError(EvidenceSource.LOGS, f"loki request timed out: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise EvidenceSourceError(
                EvidenceSource.LOGS,
                f"loki returned {exc.response.status_code}: {exc.response.text[:200]}",
            ) from exc
        except httpx.HTTPError as exc:
            raise EvidenceSourceError(EvidenceSource.LOGS, f"loki request failed: {exc}") from exc
        except ValueError as exc:
            raise EvidenceSourceError(EvidenceSource.LOGS, f"loki returned invalid JSON: {exc}") from exc

        records = parse_log_response(payload)
        _log.info("logs_fetched", namespace=target.namespace, count=len(records))
        return records

    async def aclose(self) -> None:
        await self._client.aclose()

"""Evidence aggregation across the three independent sources.

The resource, alert and log sub-queries are issued concurrently and joined.
A source that errors or exceeds its timeout degrades to an explicit
"unavailable" section; aggregation only fails when every source failed.
Sections are always emitted in the same order under literal headers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from aiopsanalyzer.collector.alerts import format_alerts
from aiopsanalyzer.collector.logs import format_logs
from aiopsanalyzer.errors import EvidenceUnavailableError
from aiopsanalyzer.models.evidence import (
    AlertRecord,
    EvidenceReport,
    EvidenceSection,
    EvidenceSource,
    LogRecord,
    PodObservation,
    SectionStatus,
)
from aiopsanalyzer.models.target import Target
from aiopsanalyzer.observability.metrics import evidence_source_failures_total

_log = structlog.get_logger(component="collector.aggregator")

SECTION_HEADERS: dict[EvidenceSource, str] = {
    EvidenceSource.RESOURCES: "Target Resource Information",
    EvidenceSource.ALERTS: "Prometheus Alerts",
    EvidenceSource.LOGS: "Loki Error Logs",
}

EMPTY_SENTINELS: dict[EvidenceSource, str] = {
    EvidenceSource.RESOURCES: "No matching pods\n",
    EvidenceSource.ALERTS: "No firing alerts\n",
    EvidenceSource.LOGS: "No error logs\n",
}

_SOURCE_ORDER = (EvidenceSource.RESOURCES, EvidenceSource.ALERTS, EvidenceSource.LOGS)


class ResourceSource(Protocol):
    async def resource_block(self, target: Target) -> tuple[list[PodObservation], str]: ...


class AlertSource(Protocol):
    async def fetch(self, target: Target) -> list[AlertRecord]: ...


class LogSource(Protocol):
    async def fetch(self, target: Target) -> list[LogRecord]: ...


@dataclass
class _SourceResult:
    source: EvidenceSource
    records: list[Any]
    body: str
    error: str = ""


class EvidenceAggregator:
    """Builds the three-section evidence report for one target.

    Args:
        resources: Pod resolver producing the YAML resource block.
        alerts:    Firing-alert source.
        logs:      Error-log source.
        timeout:   Upper bound in seconds for each sub-query.
    """

    def __init__(
        self,
        resources: ResourceSource,
        alerts: AlertSource,
        logs: LogSource,
        timeout: float = 30.0,
    ) -> None:
        self._resources = resources
        self._alerts = alerts
        self._logs = logs
        self._timeout = timeout

    async def aggregate(self, target: Target) -> EvidenceReport:
        """Run all sub-queries concurrently and assemble the report.

        Raises:
            EvidenceUnavailableError: if all three sources failed.
        """
        results = await asyncio.gather(
            self._run(EvidenceSource.RESOURCES, self._query_resources, target),
            self._run(EvidenceSource.ALERTS, self._query_alerts, target),
            self._run(EvidenceSource.LOGS, self._query_logs, target),
        )
        by_source = {r.source: r for r in results}

        failures = {str(r.source): r.error for r in results if r.error}
        if len(failures) == len(_SOURCE_ORDER):
            _log.error("all_evidence_sources_failed", failures=failures)
            raise EvidenceUnavailableError(failures)

        sections = tuple(_to_section(by_source[src]) for src in _SOURCE_ORDER)
        report = EvidenceReport(
            sections=sections,
            pods=tuple(by_source[EvidenceSource.RESOURCES].records),
            alerts=tuple(by_source[EvidenceSource.ALERTS].records),
            logs=tuple(by_source[EvidenceSource.LOGS].records),
        )
        _log.info(
            "evidence_aggregated",
            pods=len(report.pods),
            alerts=len(report.alerts),
            logs=len(report.logs),
            unavailable=[str(s) for s in report.unavailable_sources],
        )
        return report

    async def _run(
        self,
        source: EvidenceSource,
        query: Callable[[Target], Awaitable[tuple[list[Any], str]]],
        target: Target,
    ) -> _SourceResult:
        """Run one sub-query under the timeout, converting failure into a marker."""
        try:
            records, body = await asyncio.wait_for(query(target), timeout=self._timeout)
        except TimeoutError:
            error = f"timed out after {self._timeout:g}s"
        except Exception as exc:
            error = str(exc) or type(exc).__name__
        else:
            return _SourceResult(source=source, records=records, body=body)

        evidence_source_failures_total.labels(source=str(source)).inc()
        _log.warning("evidence_source_unavailable", source=str(source), error=error)
        return _SourceResult(source=source, records=[], body="", error=error)

    async def _query_resources(self, target: Target) -> tuple[list[Any], str]:
        return await self._resources.resource_block(target)

    async def _query_alerts(self, target: Target) -> tuple[list[Any], str]:
        alerts = await self._alerts.fetch(target)
        return alerts, format_alerts(alerts)

    async def _query_logs(self, target: Target) -> tuple[list[Any], str]:
        logs = await self._logs.fetch(target)
        return logs, format_logs(logs)


def _to_section(result: _SourceResult) -> EvidenceSection:
    header = SECTION_HEADERS[result.source]
    if result.error:
        return EvidenceSection(
            source=result.source,
            header=header,
            status=SectionStatus.UNAVAILABLE,
            body=f"Source unavailable: {result.error}\n",
            error=result.error,
        )
    if not result.records:
        return EvidenceSection(
            source=result.source,
            header=header,
            status=SectionStatus.EMPTY,
            body=EMPTY_SENTINELS[result.source],
        )
    return EvidenceSection(source=result.source, header=header, status=SectionStatus.OK, body=result.body)

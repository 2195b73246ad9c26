"""Evidence data structures.

Produced by the collector package, consumed by the prompt builder. All
records are immutable once created and live for a single pipeline run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class EvidenceSource(StrEnum):
    """The three independent evidence sources, in report order."""

    RESOURCES = "resources"
    ALERTS = "alerts"
    LOGS = "logs"


class SectionStatus(StrEnum):
    """Outcome of one evidence sub-query."""

    OK = "ok"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ConditionSummary:
    """The single aggregated readiness condition kept for a pod."""

    type: str
    status: str


@dataclass(frozen=True)
class ContainerSummary:
    """The one representative container status kept for a pod."""

    name: str
    ready: bool
    state: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PodObservation:
    """Filtered projection of a pod.

    Never carries resourceVersion, generation, uid, ownerReferences,
    finalizers, managedFields or timestamps from metadata.
    """

    name: str
    namespace: str
    labels: dict[str, str] = field(default_factory=dict)
    phase: str = ""
    condition: ConditionSummary | None = None
    container: ContainerSummary | None = None

    def to_manifest(self) -> dict[str, Any]:
        """Return the pod-shaped dict that gets serialised into the report."""
        status: dict[str, Any] = {}
        if self.phase:
            status["phase"] = self.phase
        if self.condition is not None:
            status["conditions"] = [{"type": self.condition.type, "status": self.condition.status}]
        if self.container is not None:
            status["containerStatuses"] = [
                {
                    "name": self.container.name,
                    "ready": self.container.ready,
                    "state": self.container.state,
                }
            ]
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.labels:
            metadata["labels"] = dict(sorted(self.labels.items()))
        return {"apiVersion": "v1", "kind": "Pod", "metadata": metadata, "status": status}


@dataclass(frozen=True)
class AlertRecord:
    """A firing alert matching the target's namespace and labels."""

    alert_name: str
    namespace: str
    pod: str | None = None


@dataclass(frozen=True)
class LogRecord:
    """An error-severity log line inside the look-back window."""

    timestamp: str
    line: str


@dataclass(frozen=True)
class EvidenceSection:
    """One labelled block of the report."""

    source: EvidenceSource
    header: str
    status: SectionStatus
    body: str = ""
    error: str = ""


@dataclass(frozen=True)
class EvidenceReport:
    """Ordered concatenation of the resource, alert and log sections."""

    sections: tuple[EvidenceSection, ...]
    pods: tuple[PodObservation, ...] = ()
    alerts: tuple[AlertRecord, ...] = ()
    logs: tuple[LogRecord, ...] = ()

    @property
    def unavailable_sources(self) -> list[EvidenceSource]:
        return [s.source for s in self.sections if s.status is SectionStatus.UNAVAILABLE]

    def section(self, source: EvidenceSource) -> EvidenceSection:
        for s in self.sections:
            if s.source is source:
                return s
        raise KeyError(source)

    def render(self) -> str:
        """Render the report text submitted to the reasoning service."""
        return "\n".join(f"=== {s.header} ===\n{s.body}" for s in self.sections)

"""Pod snapshot filter.

Strips a raw pod object down to a small, stable projection so that two runs
over an unchanged cluster render byte-identical evidence. Volatile cluster
bookkeeping (resourceVersion, generation, uid, ownerReferences, finalizers,
managedFields, timestamps) never survives the projection.
"""

from __future__ import annotations

from typing import Any

import yaml

from aiopsanalyzer.models.evidence import ConditionSummary, ContainerSummary, PodObservation

RECORD_DELIMITER = "---\n"

_READY_CONDITION = "Ready"


def filter_pod(raw: Any) -> PodObservation:
    """Project a raw camelCase pod dict to a PodObservation.

    Total: missing or mistyped fields yield empty values, and a pod with no
    conditions or no container statuses yields ``None`` for that summary.
    """
    obj = _as_dict(raw)
    metadata = _as_dict(obj.get("metadata"))
    status = _as_dict(obj.get("status"))

    return PodObservation(
        name=str(metadata.get("name") or ""),
        namespace=str(metadata.get("namespace") or ""),
        labels={str(k): str(v) for k, v in _as_dict(metadata.get("labels")).items()},
        phase=str(status.get("phase") or ""),
        condition=_representative_condition(_as_list(status.get("conditions"))),
        container=_representative_container(_as_list(status.get("containerStatuses"))),
    )


def render_pods(pods: list[PodObservation]) -> str:
    """Serialise observations as YAML documents, each followed by ``---``."""
    chunks: list[str] = []
    for pod in pods:
        chunks.append(yaml.safe_dump(pod.to_manifest(), sort_keys=True, default_flow_style=False))
        chunks.append(RECORD_DELIMITER)
    return "".join(chunks)


def _representative_condition(conditions: list[Any]) -> ConditionSummary | None:
    # The last reported condition carries the aggregated readiness verdict.
    if not conditions:
        return None
    return ConditionSummary(type=_READY_CONDITION, status=str(_as_dict(conditions[-1]).get("status") or "Unknown"))


def _representative_container(statuses: list[Any]) -> ContainerSummary | None:
    if not statuses:
        return None
    first = _as_dict(statuses[0])
    state = _as_dict(first.get("state"))
    return ContainerSummary(
        name=str(first.get("name") or ""),
        ready=bool(first.get("ready")),
        state=_strip_state(state),
    )


def _strip_state(state: dict[str, Any]) -> dict[str, Any]:
    """Keep the container state but drop null sub-states and timestamps."""
    stripped: dict[str, Any] = {}
    for key, detail in state.items():
        if detail is None:
            continue
        if isinstance(detail, dict):
            stripped[key] = {
                k: v for k, v in detail.items() if v is not None and k not in ("startedAt", "finishedAt", "containerID")
            }
        else:
            stripped[key] = detail
    return stripped


def _as_dict(raw: Any) -> dict[str, Any]:
    return raw if isinstance(raw, dict) else {}


def _as_list(raw: Any) -> list[Any]:
    return raw if isinstance(raw, list) else []

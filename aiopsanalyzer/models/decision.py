"""Decision outcome data structures.

The reasoning service answers with one of two mutually exclusive variants,
discriminated by the ``action`` field. Both variants are frozen: the
dispatcher and notification channels only ever read them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable


class ActionKind(StrEnum):
    """Accepted values of the ``action`` discriminant."""

    HEAL = "heal"
    NOOP = "noop"


class PatchOp(StrEnum):
    """JSON-Patch verbs a proposal may use."""

    REPLACE = "replace"
    ADD = "add"
    REMOVE = "remove"


class RiskLevel(StrEnum):
    """Severity classification gating human review."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class PatchOperation:
    """One RFC6902-style edit. ``value`` is opaque and never interpreted here."""

    op: PatchOp
    path: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"op": self.op.value, "path": self.path, "value": self.value}


@dataclass(frozen=True)
class HealTarget:
    """Resource addressed by a patch: kind plus label selector, never a name."""

    kind: str
    label_selector: str


@dataclass(frozen=True)
class NoopAction:
    """The reasoning service decided no remediation is needed."""

    reason: str

    @property
    def action(self) -> ActionKind:
        return ActionKind.NOOP

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.value, "reason": self.reason}


@dataclass(frozen=True)
class HealAction:
    """A fully specified, human-reviewable remediation proposal."""

    namespace: str
    reason: str
    detail: str
    patch_file_name: str
    patch_operations: tuple[PatchOperation, ...]
    target: HealTarget
    suggested_duration: str
    risk_level: RiskLevel

    @property
    def action(self) -> ActionKind:
        return ActionKind.HEAL

    @property
    def target_kind(self) -> str:
        return self.target.kind

    @property
    def target_selector(self) -> str:
        return self.target.label_selector

    def to_dict(self) -> dict[str, Any]:
        """Serialise back to the response-schema field names."""
        return {
            "action": self.action.value,
            "namespace": self.namespace,
            "reason": self.reason,
            "detail": self.detail,
            "patch_file": self.patch_file_name,
            "patch_content": [p.to_dict() for p in self.patch_operations],
            "target": {"kind": self.target.kind, "labelSelector": self.target.label_selector},
            "suggested_duration": self.suggested_duration,
            "risk_level": self.risk_level.value,
        }

    def render_patch(self) -> str:
        """One ``op path value`` line per operation, for audit display."""
        lines = []
        for p in self.patch_operations:
            if p.op is PatchOp.REMOVE:
                lines.append(f"{p.op.value} {p.path}")
            else:
                lines.append(f"{p.op.value} {p.path} {json.dumps(p.value, ensure_ascii=False)}")
        return "\n".join(lines)


DecisionOutcome = HealAction | NoopAction


@runtime_checkable
class RemediationProposal(Protocol):
    """Fields a notification needs from a proposal, read without reflection."""

    @property
    def reason(self) -> str: ...

    @property
    def target_kind(self) -> str: ...

    @property
    def target_selector(self) -> str: ...


@dataclass(frozen=True)
class ApprovalRequest:
    """Extension point for the external approval lifecycle.

    Created for every heal proposal handed to the notification layer.
    Nothing in this package transitions it past ``pending``.
    """

    request_id: str
    heal: HealAction
    requested_at: datetime
    expires_at: datetime
    delivered: bool = False
    delivery_errors: tuple[str, ...] = ()

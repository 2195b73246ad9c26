"""Approval card payload.

``CardVariables`` is exactly the set of fields the deployed Feishu card
template binds; ``CardMessage`` adds the recipient and template identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aiopsanalyzer.models.decision import HealAction


@dataclass(frozen=True)
class CardVariables:
    """Template variables for one heal proposal."""

    reason: str
    patch: str
    patches: list[dict[str, Any]]
    resolve_function: str
    namespace: str
    name: str
    kind: str
    risk_level: str
    request_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "patch": self.patch,
            "patches": self.patches,
            # Key spelling is fixed by the published card template.
            "resolve_fuction": self.resolve_function,
            "namespace": self.namespace,
            "name": self.name,
            "kind": self.kind,
            "risk_level": self.risk_level,
            "request_id": self.request_id,
        }


@dataclass(frozen=True)
class CardMessage:
    """A template card addressed to one recipient."""

    receive_id: str
    receive_id_type: str
    template_id: str
    template_version: str
    variables: CardVariables

    def content(self) -> dict[str, Any]:
        """The ``content`` object of an interactive template message."""
        return {
            "type": "template",
            "data": {
                "template_id": self.template_id,
                "template_version_name": self.template_version,
                "template_variable": self.variables.to_dict(),
            },
        }


def build_card_variables(heal: HealAction, request_id: str) -> CardVariables:
    """Assemble card variables from *heal*.

    ``namespace`` and ``name`` are copied verbatim from the proposal.
    """
    return CardVariables(
        reason=heal.reason,
        patch=heal.render_patch(),
        patches=[p.to_dict() for p in heal.patch_operations],
        resolve_function=heal.detail,
        namespace=heal.namespace,
        name=heal.target_selector,
        kind=heal.target_kind,
        risk_level=heal.risk_level.value,
        request_id=request_id,
    )

"""Two-phase decoder for reasoning-service responses.

Phase 1 decodes only the discriminant subset ``{action, reason}``.
Phase 2 branches on ``action`` and decodes the full variant:

* ``"heal"`` -> HealAction, with every field constraint enforced;
* ``"noop"`` -> NoopAction, extra fields ignored;
* anything else -> UnknownActionError.

Nothing is ever corrected: an out-of-range risk level or a malformed patch
is a hard failure, never clamped to a default.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

import structlog

from aiopsanalyzer.errors import ParseError, UnknownActionError, ValidationError
from aiopsanalyzer.models.decision import (
    ActionKind,
    DecisionOutcome,
    HealAction,
    HealTarget,
    NoopAction,
    PatchOp,
    PatchOperation,
    RiskLevel,
)

_log = structlog.get_logger(component="llm.parser")

PATCH_FILE_PATTERN = re.compile(r"^\d{8}-\d{6}-[A-Za-z0-9][A-Za-z0-9._-]*\.yaml$")

# Models frequently wrap JSON in a markdown fence despite instructions.
_RE_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*\n(?P<body>.*?)\n?```\s*$", re.DOTALL)

_RAW_LOG_LIMIT = 2000


@dataclass(frozen=True)
class _Discriminant:
    """Phase-1 shape shared by both variants."""

    action: Any
    reason: Any


def parse_decision(text: str) -> DecisionOutcome:
    """Decode *text* into a HealAction or NoopAction.

    Raises:
        ParseError:         text is not a JSON object or lacks a string ``action``.
        UnknownActionError: ``action`` is not ``heal`` or ``noop``.
        ValidationError:    a heal payload violates a field constraint.
    """
    payload = _decode_object(text)
    base = _Discriminant(action=payload["action"], reason=payload.get("reason"))

    if base.action == ActionKind.HEAL:
        outcome: DecisionOutcome = _decode_heal(payload)
    elif base.action == ActionKind.NOOP:
        outcome = _decode_noop(base)
    else:
        _log.error("decision_unknown_action", action=base.action, raw=text[:_RAW_LOG_LIMIT])
        raise UnknownActionError(base.action)

    _log.debug("decision_parsed", action=str(outcome.action))
    return outcome


def _decode_object(text: str) -> dict[str, Any]:
    body = _strip_code_fence(text)
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, TypeError) as exc:
        _log.error("decision_not_json", error=str(exc), raw=str(text)[:_RAW_LOG_LIMIT])
        raise ParseError(f"response is not valid JSON: {exc}", raw_text=str(text)) from exc
    if not isinstance(payload, dict):
        _log.error("decision_not_object", raw=text[:_RAW_LOG_LIMIT])
        raise ParseError("response JSON is not an object", raw_text=text)
    if not isinstance(payload.get("action"), str):
        _log.error("decision_missing_action", raw=text[:_RAW_LOG_LIMIT])
        raise ParseError("response JSON has no string 'action' field", raw_text=text)
    return payload


def _strip_code_fence(text: str) -> str:
    m = _RE_CODE_FENCE.match(text) if isinstance(text, str) else None
    return m.group("body") if m else text


def _decode_noop(base: _Discriminant) -> NoopAction:
    if not isinstance(base.reason, str) or not base.reason:
        raise ValidationError("reason", "must be a non-empty string")
    return NoopAction(reason=base.reason)


def _decode_heal(payload: dict[str, Any]) -> HealAction:
    risk = payload.get("risk_level")
    if not isinstance(risk, str) or risk not in {r.value for r in RiskLevel}:
        raise ValidationError("risk_level", f"{risk!r} is not one of low, medium, high")

    patch_file = _required_str(payload, "patch_file")
    if not PATCH_FILE_PATTERN.match(patch_file):
        raise ValidationError("patch_file", f"{patch_file!r} does not match YYYYMMDD-HHMMSS-<description>.yaml")

    return HealAction(
        namespace=_required_str(payload, "namespace"),
        reason=_required_str(payload, "reason"),
        detail=_optional_str(payload, "detail"),
        patch_file_name=patch_file,
        patch_operations=_decode_patch(payload.get("patch_content")),
        target=_decode_target(payload.get("target")),
        suggested_duration=_optional_str(payload, "suggested_duration"),
        risk_level=RiskLevel(risk),
    )


def _decode_patch(raw: Any) -> tuple[PatchOperation, ...]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("patch_content", "must be a non-empty list of operations")
    ops: list[PatchOperation] = []
    valid_ops = {o.value for o in PatchOp}
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ValidationError(f"patch_content[{i}]", "must be an object")
        op = item.get("op")
        if not isinstance(op, str) or op not in valid_ops:
            raise ValidationError(f"patch_content[{i}].op", f"{op!r} is not one of replace, add, remove")
        path = item.get("path")
        if not isinstance(path, str) or not path.startswith("/"):
            raise ValidationError(f"patch_content[{i}].path", f"{path!r} is not a JSON pointer")
        ops.append(PatchOperation(op=PatchOp(op), path=path, value=item.get("value")))
    return tuple(ops)


def _decode_target(raw: Any) -> HealTarget:
    if not isinstance(raw, dict):
        raise ValidationError("target", "must be an object with kind and labelSelector")
    kind = raw.get("kind")
    selector = raw.get("labelSelector")
    if not isinstance(kind, str) or not kind:
        raise ValidationError("target.kind", "must be a non-empty string")
    if not isinstance(selector, str) or not selector:
        raise ValidationError("target.labelSelector", "must be a non-empty string")
    return HealTarget(kind=kind, label_selector=selector)


def _required_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(key, "must be a non-empty string")
    return value


def _optional_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(key, "must be a string")
    return value

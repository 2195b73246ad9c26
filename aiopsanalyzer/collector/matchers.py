"""Label-matcher rendering shared by the alert and log queries.

Only ``matchLabels`` participate; set-based expressions have no faithful
translation into a single Prometheus/Loki stream selector.
"""

from __future__ import annotations

import re

from aiopsanalyzer.models.target import Target

_RE_INVALID_LABEL_CHARS = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_label_name(name: str) -> str:
    """Map a Kubernetes label key to a valid Prometheus/Loki label name.

    ``app.kubernetes.io/name`` becomes ``app_kubernetes_io_name``, matching
    the relabelling conventionally applied by scrape configs.
    """
    cleaned = _RE_INVALID_LABEL_CHARS.sub("_", name)
    if cleaned and cleaned[0].isdigit():
        cleaned = "_" + cleaned
    return cleaned


def quote_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def label_matchers(target: Target, extra: dict[str, str] | None = None) -> str:
    """Render ``namespace="ns",k="v",...`` for *target* (no braces)."""
    parts = [f"namespace={quote_value(target.namespace)}"]
    for key, value in target.match_labels:
        parts.append(f"{sanitize_label_name(key)}={quote_value(value)}")
    for key, value in (extra or {}).items():
        parts.append(f"{key}={quote_value(value)}")
    return ",".join(parts)

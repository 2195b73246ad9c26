"""Target selector data structures.

A Target names the workload under observation: a namespace plus a label
selector. It is supplied by the caller and immutable for the whole run.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum

DEFAULT_NAMESPACE = "default"

_RE_LABEL_KEY = re.compile(r"^([a-z0-9A-Z]([-a-z0-9A-Z_.]*[a-z0-9A-Z])?/)?[a-zA-Z0-9]([-a-zA-Z0-9_.]*[a-zA-Z0-9])?$")
_RE_SET_EXPR = re.compile(r"^(?P<key>\S+)\s+(?P<op>in|notin)\s+\((?P<values>[^)]*)\)$")


class SelectorOperator(StrEnum):
    """Set-based selector operators, spelled as in ``matchExpressions``."""

    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


@dataclass(frozen=True)
class SelectorRequirement:
    """One ``matchExpressions`` entry."""

    key: str
    operator: SelectorOperator
    values: tuple[str, ...] = ()

    def render(self) -> str:
        if self.operator is SelectorOperator.EXISTS:
            return self.key
        if self.operator is SelectorOperator.DOES_NOT_EXIST:
            return f"!{self.key}"
        word = "in" if self.operator is SelectorOperator.IN else "notin"
        return f"{self.key} {word} ({','.join(self.values)})"


@dataclass(frozen=True)
class WorkloadBaseline:
    """Declared replica/resource baseline handed to the reasoning service."""

    replicas: int | None = None
    cpu_limits: str = ""
    cpu_requests: str = ""
    memory_limits: str = ""


@dataclass(frozen=True)
class Target:
    """Namespace plus label selector identifying one workload."""

    namespace: str = DEFAULT_NAMESPACE
    match_labels: tuple[tuple[str, str], ...] = ()
    match_expressions: tuple[SelectorRequirement, ...] = ()
    baseline: WorkloadBaseline = field(default_factory=WorkloadBaseline)

    @property
    def labels(self) -> dict[str, str]:
        return dict(self.match_labels)

    @property
    def is_empty(self) -> bool:
        return not self.match_labels and not self.match_expressions

    def selector(self) -> str:
        """Render the Kubernetes label-selector string (``k=v,k2 in (a,b)``)."""
        parts = [f"{k}={v}" for k, v in self.match_labels]
        parts.extend(req.render() for req in self.match_expressions)
        return ",".join(parts)

    @classmethod
    def from_selector(
        cls,
        namespace: str,
        selector: str,
        baseline: WorkloadBaseline | None = None,
    ) -> Target:
        """Parse a label-selector expression into a Target.

        Supports equality (``k=v``, ``k==v``), set membership
        (``k in (a,b)``, ``k notin (a,b)``) and existence (``k``, ``!k``).

        Raises:
            ValueError: if any term is malformed.
        """
        labels: list[tuple[str, str]] = []
        expressions: list[SelectorRequirement] = []
        for term in _split_terms(selector):
            m = _RE_SET_EXPR.match(term)
            if m:
                values = tuple(v.strip() for v in m.group("values").split(",") if v.strip())
                op = SelectorOperator.IN if m.group("op") == "in" else SelectorOperator.NOT_IN
                expressions.append(SelectorRequirement(_check_key(m.group("key")), op, values))
            elif "!=" in term:
                key, _, value = term.partition("!=")
                expressions.append(
                    SelectorRequirement(_check_key(key.strip()), SelectorOperator.NOT_IN, (value.strip(),))
                )
            elif "=" in term:
                key, _, value = term.replace("==", "=", 1).partition("=")
                labels.append((_check_key(key.strip()), value.strip()))
            elif term.startswith("!"):
                expressions.append(SelectorRequirement(_check_key(term[1:].strip()), SelectorOperator.DOES_NOT_EXIST))
            else:
                expressions.append(SelectorRequirement(_check_key(term), SelectorOperator.EXISTS))
        return cls(
            namespace=namespace or DEFAULT_NAMESPACE,
            match_labels=tuple(labels),
            match_expressions=tuple(expressions),
            baseline=baseline or WorkloadBaseline(),
        )


def _split_terms(selector: str) -> list[str]:
    """Split on commas that are not inside a parenthesised value set."""
    terms: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in selector:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            terms.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    terms.append("".join(current).strip())
    return [t for t in terms if t]


def _check_key(key: str) -> str:
    if not _RE_LABEL_KEY.match(key):
        raise ValueError(f"Invalid label key in selector: {key!r}")
    return key

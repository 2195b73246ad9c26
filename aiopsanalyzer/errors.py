"""Error taxonomy for the decision pipeline.

Every fatal condition aborts the current run with one of these errors.
``DeliveryError`` is the exception: it is reported on the run result because
the decision it announces has already been made.
"""

from __future__ import annotations


class AIOpsError(Exception):
    """Base class for all pipeline errors.

    ``code`` is a stable machine-readable identifier used by the REST error
    envelope and by metrics labels.
    """

    code: str = "AIOPS_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ResolutionError(AIOpsError):
    """The target selector cannot be resolved to workload instances."""

    code = "RESOLUTION_FAILED"


class EvidenceSourceError(AIOpsError):
    """A single evidence source (resources, alerts, logs) failed."""

    code = "EVIDENCE_SOURCE_FAILED"

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class EvidenceUnavailableError(AIOpsError):
    """Every evidence source failed; there is nothing to reason about."""

    code = "EVIDENCE_UNAVAILABLE"

    def __init__(self, failures: dict[str, str]) -> None:
        detail = "; ".join(f"{src}: {why}" for src, why in failures.items())
        super().__init__(f"all evidence sources failed ({detail})")
        self.failures = failures


class TransportError(AIOpsError):
    """The reasoning-service call failed at the network or protocol level."""

    code = "LLM_TRANSPORT_FAILED"

    def __init__(self, message: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class DecisionError(AIOpsError):
    """The reasoning-service response could not be turned into an outcome."""

    code = "INVALID_DECISION"


class ParseError(DecisionError):
    """Response text is not valid JSON or lacks the discriminant."""

    code = "DECISION_PARSE_FAILED"

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class UnknownActionError(DecisionError):
    """Discriminant value outside ``{heal, noop}``."""

    code = "UNKNOWN_ACTION"

    def __init__(self, action: object) -> None:
        super().__init__(f"unknown action: {action!r}")
        self.action = action


class ValidationError(DecisionError):
    """A decoded heal payload violates a field constraint."""

    code = "DECISION_VALIDATION_FAILED"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"invalid {field}: {message}")
        self.field = field


class DeliveryError(AIOpsError):
    """The approval notification could not be delivered."""

    code = "DELIVERY_FAILED"

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class StartupError(AIOpsError):
    """A mandatory component could not be brought up."""

    code = "STARTUP_FAILED"

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"{component} failed to start: {cause}")
        self.component = component
        self.cause = cause

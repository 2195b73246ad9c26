"""Core data structures for AIOpsAnalyzer."""

from aiopsanalyzer.models.config import AIOpsConfig
from aiopsanalyzer.models.decision import (
    ActionKind,
    ApprovalRequest,
    DecisionOutcome,
    HealAction,
    HealTarget,
    NoopAction,
    PatchOp,
    PatchOperation,
    RemediationProposal,
    RiskLevel,
)
from aiopsanalyzer.models.evidence import (
    AlertRecord,
    ConditionSummary,
    ContainerSummary,
    EvidenceReport,
    EvidenceSection,
    EvidenceSource,
    LogRecord,
    PodObservation,
    SectionStatus,
)
from aiopsanalyzer.models.target import (
    SelectorOperator,
    SelectorRequirement,
    Target,
    WorkloadBaseline,
)

__all__ = [
    "AIOpsConfig",
    "ActionKind",
    "AlertRecord",
    "ApprovalRequest",
    "ConditionSummary",
    "ContainerSummary",
    "DecisionOutcome",
    "EvidenceReport",
    "EvidenceSection",
    "EvidenceSource",
    "HealAction",
    "HealTarget",
    "LogRecord",
    "NoopAction",
    "PatchOp",
    "PatchOperation",
    "PodObservation",
    "RemediationProposal",
    "RiskLevel",
    "SectionStatus",
    "SelectorOperator",
    "SelectorRequirement",
    "Target",
    "WorkloadBaseline",
]

"""Prometheus metrics for the decision pipeline.

All collectors are module-level singletons registered on the default
registry and exposed by the REST API at ``/metrics``.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

pipeline_runs_total = Counter(
    "aiops_pipeline_runs_total",
    "Pipeline runs by final outcome (heal, noop or an error code).",
    ["outcome"],
)

pipeline_duration_seconds = Histogram(
    "aiops_pipeline_duration_seconds",
    "Wall-clock duration of a full pipeline run.",
    buckets=(0.5, 1, 2.5, 5, 10, 20, 30, 60, 120),
)

evidence_source_failures_total = Counter(
    "aiops_evidence_source_failures_total",
    "Evidence sub-queries that degraded to an unavailable section.",
    ["source"],
)

llm_requests_total = Counter(
    "aiops_llm_requests_total",
    "Reasoning-service HTTP attempts.",
    ["success"],
)

decisions_total = Counter(
    "aiops_decisions_total",
    "Validated decisions by action.",
    ["action"],
)

notifications_total = Counter(
    "aiops_notifications_total",
    "Notification delivery attempts by channel and result.",
    ["channel", "success"],
)

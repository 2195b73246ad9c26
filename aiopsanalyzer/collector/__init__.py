"""Collector package for AIOpsAnalyzer.

Gathers the evidence a decision is based on.

Submodules
----------
pod_filter  -- PodSnapshotFilter: stable, diff-friendly pod projection.
resources   -- PodResolver: target -> pods via the cluster API.
alerts      -- PrometheusAlertSource: firing ALERTS for the target.
logs        -- LokiLogSource: error/fatal/panic/critical lines in a trailing window.
aggregator  -- EvidenceAggregator: concurrent sub-queries, fixed section order.
"""

from aiopsanalyzer.collector.aggregator import EvidenceAggregator
from aiopsanalyzer.collector.alerts import PrometheusAlertSource
from aiopsanalyzer.collector.logs import LokiLogSource
from aiopsanalyzer.collector.pod_filter import filter_pod, render_pods
from aiopsanalyzer.collector.resources import KubernetesPodLister, PodResolver

__all__ = [
    "EvidenceAggregator",
    "KubernetesPodLister",
    "LokiLogSource",
    "PodResolver",
    "PrometheusAlertSource",
    "filter_pod",
    "render_pods",
]

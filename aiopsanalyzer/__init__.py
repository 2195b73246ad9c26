"""AIOpsAnalyzer: observability-to-remediation decision pipeline."""

__version__ = "0.1.0"

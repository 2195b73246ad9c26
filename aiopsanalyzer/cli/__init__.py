"""AIOpsAnalyzer command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``aiopsanalyzer`` script).
"""

from aiopsanalyzer.cli.main import cli

__all__ = ["cli"]

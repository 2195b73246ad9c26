"""Entry point for `python -m aiopsanalyzer`.

Usage:
    python -m aiopsanalyzer run --namespace product-a --selector app=order-service
    python -m aiopsanalyzer serve
"""

from __future__ import annotations

from aiopsanalyzer.cli import cli

cli()

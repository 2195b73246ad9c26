"""Click command group for AIOpsAnalyzer.

Commands:
    run     one pipeline run for one target, outcome printed as JSON
    serve   start the REST API
    parse   validate a saved reasoning-service response
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import Any

import click

from aiopsanalyzer import __version__
from aiopsanalyzer.errors import AIOpsError, DecisionError
from aiopsanalyzer.llm.parser import parse_decision
from aiopsanalyzer.models.target import Target, WorkloadBaseline
from aiopsanalyzer.observability.logging import setup_logging
from aiopsanalyzer.pipeline import PipelineResult


def _result_payload(result: PipelineResult) -> dict[str, Any]:
    dispatch = result.dispatch
    return {
        "run_id": result.run_id,
        "namespace": result.target.namespace,
        "selector": result.target.selector(),
        "decision": result.outcome.to_dict(),
        "evidence": {str(s.source): str(s.status) for s in result.report.sections},
        "request_id": dispatch.request_id,
        "notified": dispatch.notified,
        "delivery_error": str(dispatch.delivery_error) if dispatch.delivery_error else None,
    }


@click.group()
@click.version_option(__version__, prog_name="aiopsanalyzer")
def cli() -> None:
    """Evidence-driven remediation proposals for Kubernetes workloads."""
    # stdout carries command output only; log lines go to stderr.
    setup_logging(os.environ.get("AIOPS_LOG_LEVEL", "info"))


@cli.command()
@click.option("--namespace", default=None, help="Target namespace (default: AIOPS_TARGET_NAMESPACE)")
@click.option("--selector", default=None, help="Label selector, e.g. app=order-service,tier=backend")
@click.option("--replicas", type=int, default=None, help="Declared replica count")
@click.option("--cpu-limits", default=None, help="Declared CPU limits")
@click.option("--cpu-requests", default=None, help="Declared CPU requests")
@click.option("--memory-limits", default=None, help="Declared memory limits")
def run(
    namespace: str | None,
    selector: str | None,
    replicas: int | None,
    cpu_limits: str | None,
    cpu_requests: str | None,
    memory_limits: str | None,
) -> None:
    """Run one decision cycle and print the outcome as JSON."""
    from aiopsanalyzer.app import run_once
    from aiopsanalyzer.config import load_config

    try:
        config = load_config()
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    t = config.target
    try:
        target = Target.from_selector(
            namespace if namespace is not None else t.namespace,
            selector if selector is not None else t.selector,
            baseline=WorkloadBaseline(
                replicas=replicas if replicas is not None else t.replicas,
                cpu_limits=cpu_limits if cpu_limits is not None else t.cpu_limits,
                cpu_requests=cpu_requests if cpu_requests is not None else t.cpu_requests,
                memory_limits=memory_limits if memory_limits is not None else t.memory_limits,
            ),
        )
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    try:
        result = asyncio.run(run_once(target, config))
    except AIOpsError as exc:
        click.echo(f"Error [{exc.code}]: {exc}", err=True)
        sys.exit(1)

    click.echo(json.dumps(_result_payload(result), ensure_ascii=False, indent=2))


@cli.command()
def serve() -> None:
    """Start the REST API (port from AIOPS_API_PORT)."""
    from aiopsanalyzer.app import serve as serve_app

    asyncio.run(serve_app())


@cli.command()
@click.argument("file", type=click.File("r", encoding="utf-8"))
def parse(file: Any) -> None:
    """Validate a saved reasoning-service response in FILE ('-' for stdin)."""
    text = file.read()
    try:
        outcome = parse_decision(text)
    except DecisionError as exc:
        click.echo(f"Error [{exc.code}]: {exc}", err=True)
        sys.exit(1)
    click.echo(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))

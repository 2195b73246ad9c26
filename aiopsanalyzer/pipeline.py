"""Healing pipeline: one decision cycle for one target.

    target -> EvidenceAggregator -> build_prompt -> DecisionClient.send
           -> parse_decision -> ActionDispatcher.dispatch

The pipeline holds no per-run state; every run's report, outcome and
dispatch result belong to that run alone, so independent targets may be
run concurrently. Every suspension point is an external call bounded by
its own timeout, and caller cancellation propagates unchanged.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

import structlog

from aiopsanalyzer.actions.dispatcher import ActionDispatcher, DispatchResult
from aiopsanalyzer.collector.aggregator import EvidenceAggregator
from aiopsanalyzer.errors import AIOpsError, ResolutionError
from aiopsanalyzer.llm.parser import parse_decision
from aiopsanalyzer.llm.prompts import build_prompt
from aiopsanalyzer.models.decision import DecisionOutcome
from aiopsanalyzer.models.evidence import EvidenceReport
from aiopsanalyzer.models.target import Target
from aiopsanalyzer.observability.metrics import pipeline_duration_seconds, pipeline_runs_total

_log = structlog.get_logger(component="pipeline")


class DecisionSender(Protocol):
    async def send(self, request_text: str) -> str: ...


@dataclass(frozen=True)
class PipelineResult:
    """Everything one run produced, for callers and for audit."""

    run_id: str
    target: Target
    report: EvidenceReport
    request_text: str
    response_text: str
    outcome: DecisionOutcome
    dispatch: DispatchResult


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class HealingPipeline:
    """Drives one target from evidence to dispatched decision.

    Args:
        aggregator: Evidence aggregation over the three sources.
        client:     Reasoning-service client.
        dispatcher: Routes the validated outcome to its side effect.
        clock:      Injectable ``now()``; the prompt's current time comes from it.
    """

    def __init__(
        self,
        aggregator: EvidenceAggregator,
        client: DecisionSender,
        dispatcher: ActionDispatcher,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._aggregator = aggregator
        self._client = client
        self._dispatcher = dispatcher
        self._clock = clock

    @property
    def dispatcher(self) -> ActionDispatcher:
        return self._dispatcher

    async def run(self, target: Target) -> PipelineResult:
        """Run one full decision cycle for *target*.

        Raises:
            ResolutionError:          the target has no selector.
            EvidenceUnavailableError: every evidence source failed.
            TransportError:           the reasoning service could not be reached.
            DecisionError:            the response failed parsing or validation.
        """
        run_id = uuid4().hex[:12]
        start = time.monotonic()
        with structlog.contextvars.bound_contextvars(
            run_id=run_id,
            namespace=target.namespace,
            selector=target.selector(),
        ):
            try:
                result = await self._run(run_id, target)
            except AIOpsError as exc:
                pipeline_runs_total.labels(outcome=exc.code).inc()
                _log.error("pipeline_run_failed", error_code=exc.code, error=str(exc))
                raise
            finally:
                pipeline_duration_seconds.observe(time.monotonic() - start)

            pipeline_runs_total.labels(outcome=str(result.outcome.action)).inc()
            _log.info(
                "pipeline_run_completed",
                action=str(result.outcome.action),
                notified=result.dispatch.notified,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            return result

    async def _run(self, run_id: str, target: Target) -> PipelineResult:
        if target.is_empty:
            raise ResolutionError("target has an empty label selector")

        report = await self._aggregator.aggregate(target)
        request_text = build_prompt(target, report, self._clock())
        _log.debug("prompt_built", length=len(request_text))

        # Only reached once every evidence sub-query completed or failed.
        response_text = await self._client.send(request_text)
        outcome = parse_decision(response_text)
        dispatch = await self._dispatcher.dispatch(outcome)

        return PipelineResult(
            run_id=run_id,
            target=target,
            report=report,
            request_text=request_text,
            response_text=response_text,
            outcome=outcome,
            dispatch=dispatch,
        )

"""Integration tests for the full decision pipeline.

evidence -> prompt -> (stubbed) reasoning service -> parse -> dispatch
"""

from __future__ import annotations

import pytest

from aiopsanalyzer.actions import ActionDispatcher
from aiopsanalyzer.collector.aggregator import EvidenceAggregator
from aiopsanalyzer.collector.resources import PodResolver
from aiopsanalyzer.errors import (
    EvidenceUnavailableError,
    ParseError,
    ResolutionError,
    TransportError,
    UnknownActionError,
    ValidationError,
)
from aiopsanalyzer.models.decision import ActionKind, HealAction, NoopAction
from aiopsanalyzer.models.target import Target
from aiopsanalyzer.pipeline import HealingPipeline

from .conftest import (
    FIXED_NOW,
    NOOP_RESPONSE,
    RecordingNotifier,
    StaticResources,
    StaticSource,
    StubClient,
    heal_response,
)

pytestmark = pytest.mark.integration


def _pipeline(
    resolver: PodResolver,
    alerts: StaticSource,
    logs: StaticSource,
    client: StubClient,
    dispatcher: ActionDispatcher,
) -> HealingPipeline:
    return HealingPipeline(EvidenceAggregator(resolver, alerts, logs), client, dispatcher, clock=lambda: FIXED_NOW)


class TestHealPath:
    async def test_heal_response_produces_delivered_card(
        self,
        target: Target,
        resolver,
        one_alert,
        no_logs,
        dispatcher: ActionDispatcher,
        notifier: RecordingNotifier,
    ) -> None:
        client = StubClient(heal_response())
        result = await _pipeline(resolver, one_alert, no_logs, client, dispatcher).run(target)

        assert isinstance(result.outcome, HealAction)
        assert result.dispatch.action is ActionKind.HEAL
        assert result.dispatch.notified is True
        assert len(notifier.cards) == 1

        variables = notifier.cards[0].variables
        assert variables.namespace == result.outcome.namespace == "product-a"
        assert variables.name == result.outcome.target_selector == "app=order-service"
        assert variables.kind == "Deployment"
        assert variables.risk_level == "low"
        assert variables.request_id == f"20240115-103000-cpu-spike.yaml-{int(FIXED_NOW.timestamp())}"
        assert variables.patch == "replace /spec/replicas 4"

    async def test_request_carries_facts_and_evidence(self, target: Target, resolver, one_alert, no_logs, dispatcher):
        client = StubClient(heal_response())
        result = await _pipeline(resolver, one_alert, no_logs, client, dispatcher).run(target)

        assert client.requests == [result.request_text]
        assert "- Current time: 20240115-103000" in result.request_text
        assert "- Current replicas: 2" in result.request_text
        assert result.report.render() in result.request_text
        assert result.response_text == heal_response()

    async def test_delivery_failure_is_reported_not_raised(
        self, target: Target, resolver, one_alert, no_logs, recipient
    ) -> None:
        notifier = RecordingNotifier(fail_times=1)
        dispatcher = ActionDispatcher(notifier, recipient, clock=lambda: FIXED_NOW)
        result = await _pipeline(resolver, one_alert, no_logs, StubClient(heal_response()), dispatcher).run(target)

        assert isinstance(result.outcome, HealAction)
        assert result.dispatch.notified is False
        assert result.dispatch.delivery_error is not None
        assert len(dispatcher.pending.undelivered()) == 1


class TestNoopPath:
    async def test_noop_sends_nothing(
        self, target: Target, resolver, no_logs, dispatcher, notifier: RecordingNotifier
    ) -> None:
        quiet_alerts = StaticSource([])
        result = await _pipeline(resolver, quiet_alerts, no_logs, StubClient(NOOP_RESPONSE), dispatcher).run(target)

        assert isinstance(result.outcome, NoopAction)
        assert result.outcome.reason == "metrics are nominal, no intervention needed"
        assert result.dispatch.action is ActionKind.NOOP
        assert result.dispatch.card is None
        assert notifier.cards == []
        assert len(dispatcher.pending) == 0


class TestFailures:
    async def test_empty_selector_skips_everything(self, resolver, one_alert, no_logs, dispatcher) -> None:
        client = StubClient()
        with pytest.raises(ResolutionError):
            await _pipeline(resolver, one_alert, no_logs, client, dispatcher).run(Target(namespace="product-a"))
        assert one_alert.calls == 0
        assert client.requests == []

    async def test_all_evidence_unavailable_never_reaches_the_model(self, target: Target, dispatcher) -> None:
        client = StubClient()
        pipeline = _pipeline(
            StaticResources(error=RuntimeError("api down")),
            StaticSource(error=RuntimeError("prometheus down")),
            StaticSource(error=RuntimeError("loki down")),
            client,
            dispatcher,
        )
        with pytest.raises(EvidenceUnavailableError):
            await pipeline.run(target)
        assert client.requests == []

    async def test_transport_failure_is_not_a_noop(
        self, target: Target, resolver, one_alert, no_logs, dispatcher, notifier: RecordingNotifier
    ) -> None:
        client = StubClient(error=TransportError("reasoning service unavailable after 3 attempts", 3))
        with pytest.raises(TransportError):
            await _pipeline(resolver, one_alert, no_logs, client, dispatcher).run(target)
        assert notifier.cards == []

    @pytest.mark.parametrize(
        ("response", "error"),
        [
            ("I think you should scale up.", ParseError),
            ('{"action": "restart", "reason": "x"}', UnknownActionError),
            (heal_response(risk_level="critical"), ValidationError),
            (heal_response(patch_file="fix.yaml"), ValidationError),
        ],
    )
    async def test_invalid_decisions_never_dispatch(
        self,
        target: Target,
        resolver,
        one_alert,
        no_logs,
        dispatcher: ActionDispatcher,
        notifier: RecordingNotifier,
        response: str,
        error: type[Exception],
    ) -> None:
        with pytest.raises(error):
            await _pipeline(resolver, one_alert, no_logs, StubClient(response), dispatcher).run(target)
        assert notifier.cards == []
        assert len(dispatcher.pending) == 0

    async def test_degraded_evidence_still_reaches_a_decision(
        self, target: Target, resolver, no_logs, dispatcher
    ) -> None:
        alerts = StaticSource(error=RuntimeError("prometheus down"))
        result = await _pipeline(resolver, alerts, no_logs, StubClient(NOOP_RESPONSE), dispatcher).run(target)
        assert "Source unavailable: prometheus down" in result.request_text
        assert isinstance(result.outcome, NoopAction)

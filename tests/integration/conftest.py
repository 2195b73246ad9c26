"""Shared fixtures for AIOpsAnalyzer integration tests.

Provides in-memory evidence sources, a recording notifier and canned
reasoning-service responses so integration tests can drive whole pipelines
without a cluster, Prometheus, Loki, an LLM endpoint or Feishu.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

import pytest

from aiopsanalyzer.actions import ActionDispatcher, CardRecipient, PendingHealStore
from aiopsanalyzer.collector.pod_filter import render_pods
from aiopsanalyzer.collector.resources import PodResolver
from aiopsanalyzer.models.evidence import AlertRecord, LogRecord, PodObservation
from aiopsanalyzer.models.target import Target, WorkloadBaseline
from aiopsanalyzer.notifications.card import CardMessage

FIXED_NOW = datetime(2024, 1, 15, 10, 30, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_target(namespace: str = "product-a", selector: str = "app=order-service") -> Target:
    return Target.from_selector(
        namespace,
        selector,
        baseline=WorkloadBaseline(replicas=2, cpu_limits="500m", cpu_requests="250m", memory_limits="512Mi"),
    )


def make_raw_pod(name: str = "order-service-7b4f8c6d-x2kj", namespace: str = "product-a", ready: str = "True") -> dict:
    return {
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {"app": "order-service"},
            "resourceVersion": "123",
            "uid": "abc",
        },
        "status": {
            "phase": "Running",
            "conditions": [{"type": "Ready", "status": ready}],
            "containerStatuses": [{"name": "app", "ready": ready == "True", "state": {"running": {}}}],
        },
    }


def heal_response(**overrides: Any) -> str:
    payload: dict[str, Any] = {
        "action": "heal",
        "namespace": "product-a",
        "reason": "CPU saturation on order-service",
        "detail": "Replicas pegged at the 500m CPU limit; scale out.",
        "patch_file": "20240115-103000-cpu-spike.yaml",
        "patch_content": [{"op": "replace", "path": "/spec/replicas", "value": 4}],
        "target": {"kind": "Deployment", "labelSelector": "app=order-service"},
        "suggested_duration": "30m",
        "risk_level": "low",
    }
    payload.update(overrides)
    return json.dumps(payload)


NOOP_RESPONSE = json.dumps({"action": "noop", "reason": "metrics are nominal, no intervention needed"})


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakePodLister:
    """PodLister returning canned raw pods, or raising *error*."""

    def __init__(self, pods: list[dict] | None = None, error: Exception | None = None) -> None:
        self.pods = pods or []
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def list_pods(self, namespace: str, label_selector: str) -> list[dict]:
        self.calls.append((namespace, label_selector))
        if self.error is not None:
            raise self.error
        return self.pods


class StaticResources:
    """ResourceSource over fixed observations."""

    def __init__(self, pods: list[PodObservation] | None = None, error: Exception | None = None, delay: float = 0):
        self.pods = pods or []
        self.error = error
        self.delay = delay

    async def resource_block(self, target: Target) -> tuple[list[PodObservation], str]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.pods, render_pods(self.pods)


class StaticSource:
    """AlertSource / LogSource returning fixed records."""

    def __init__(self, records: list[Any] | None = None, error: Exception | None = None, delay: float = 0) -> None:
        self.records = records or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch(self, target: Target) -> list[Any]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.records


class RecordingNotifier:
    """Notifier that records cards and fails the first *fail_times* deliveries."""

    def __init__(self, fail_times: int = 0) -> None:
        self.cards: list[CardMessage] = []
        self.fail_times = fail_times

    @property
    def channel_names(self) -> list[str]:
        return ["recording"]

    async def deliver(self, card: CardMessage) -> list[str]:
        self.cards.append(card)
        if self.fail_times > 0:
            self.fail_times -= 1
            return ["recording"]
        return []


class StubClient:
    """DecisionSender returning canned text and recording requests."""

    def __init__(self, response: str = NOOP_RESPONSE, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.requests: list[str] = []

    async def send(self, request_text: str) -> str:
        self.requests.append(request_text)
        if self.error is not None:
            raise self.error
        return self.response


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def target() -> Target:
    return make_target()


@pytest.fixture()
def resolver() -> PodResolver:
    return PodResolver(FakePodLister([make_raw_pod()]))


@pytest.fixture()
def one_alert() -> StaticSource:
    return StaticSource([AlertRecord("HighCPUUsage", "product-a", "order-service-7b4f8c6d-x2kj")])


@pytest.fixture()
def no_logs() -> StaticSource:
    return StaticSource([])


@pytest.fixture()
def some_logs() -> StaticSource:
    return StaticSource([LogRecord("2024-01-15T10:29:58.000Z", "ERROR upstream timeout")])


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def recipient() -> CardRecipient:
    return CardRecipient(
        receive_id="oc_1234567890",
        receive_id_type="chat_id",
        template_id="AAq1234567",
        template_version="1.0.0",
    )


@pytest.fixture()
def dispatcher(notifier: RecordingNotifier, recipient: CardRecipient) -> ActionDispatcher:
    return ActionDispatcher(notifier, recipient, pending=PendingHealStore(), clock=lambda: FIXED_NOW)

"""Action dispatcher: route a validated decision to its side effect.

* HealAction -> build the approval card and deliver it. A delivery failure
  is reported on the result and the proposal stays pending for a later
  re-notification; the decision itself stands.
* NoopAction -> record the reason; no external call.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

import structlog

from aiopsanalyzer.actions.pending import PendingHealStore
from aiopsanalyzer.errors import DeliveryError
from aiopsanalyzer.models.decision import (
    ActionKind,
    ApprovalRequest,
    DecisionOutcome,
    HealAction,
    NoopAction,
    RemediationProposal,
)
from aiopsanalyzer.notifications.card import CardMessage, build_card_variables
from aiopsanalyzer.observability.metrics import decisions_total

_log = structlog.get_logger(component="actions.dispatcher")


class Notifier(Protocol):
    async def deliver(self, card: CardMessage) -> list[str]: ...


@dataclass(frozen=True)
class CardRecipient:
    """Who receives approval cards, and with which template."""

    receive_id: str
    receive_id_type: str
    template_id: str
    template_version: str


@dataclass(frozen=True)
class DispatchResult:
    """What the dispatcher did with one outcome."""

    action: ActionKind
    reason: str
    request_id: str | None = None
    card: CardMessage | None = None
    delivery_error: DeliveryError | None = None

    @property
    def notified(self) -> bool:
        return self.card is not None and self.delivery_error is None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _proposal_fields(proposal: RemediationProposal) -> dict[str, str]:
    return {"reason": proposal.reason, "target": f"{proposal.target_kind}/{proposal.target_selector}"}


class ActionDispatcher:
    """Maps a DecisionOutcome to exactly one side effect.

    Args:
        notifier:         Delivers approval cards.
        recipient:        Card recipient and template identity.
        pending:          Store for proposals awaiting approval.
        approval_timeout: How long a proposal stays pending.
        clock:            Injectable ``now()`` for deterministic tests.
    """

    def __init__(
        self,
        notifier: Notifier,
        recipient: CardRecipient,
        pending: PendingHealStore | None = None,
        approval_timeout: timedelta = timedelta(minutes=10),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._notifier = notifier
        self._recipient = recipient
        self._pending = pending if pending is not None else PendingHealStore()
        self._approval_timeout = approval_timeout
        self._clock = clock

    @property
    def pending(self) -> PendingHealStore:
        return self._pending

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    def expire_pending(self) -> list[str]:
        """Drop proposals whose approval window has closed; return their ids."""
        expired = self._pending.prune_expired(self._clock())
        for rid in expired:
            _log.info("pending_heal_expired", request_id=rid)
        return expired

    async def dispatch(self, outcome: DecisionOutcome) -> DispatchResult:
        self.expire_pending()
        decisions_total.labels(action=str(outcome.action)).inc()
        if isinstance(outcome, HealAction):
            return await self._dispatch_heal(outcome)
        if isinstance(outcome, NoopAction):
            _log.info("noop_decision", reason=outcome.reason)
            return DispatchResult(action=ActionKind.NOOP, reason=outcome.reason)
        raise TypeError(f"unsupported decision outcome: {type(outcome).__name__}")

    async def renotify(self) -> list[DispatchResult]:
        """Re-deliver every pending proposal whose notification failed."""
        self.expire_pending()
        results = []
        for request in self._pending.undelivered():
            card = self._build_card(request.heal, request.request_id)
            results.append(await self._deliver(request.heal, card))
        return results

    async def _dispatch_heal(self, heal: HealAction) -> DispatchResult:
        now = self._clock()
        request_id = self._request_id(heal, now)
        self._pending.add(
            ApprovalRequest(
                request_id=request_id,
                heal=heal,
                requested_at=now,
                expires_at=now + self._approval_timeout,
            )
        )
        _log.info(
            "heal_decision",
            request_id=request_id,
            risk_level=heal.risk_level.value,
            patch_file=heal.patch_file_name,
            **_proposal_fields(heal),
        )
        return await self._deliver(heal, self._build_card(heal, request_id))

    async def _deliver(self, heal: HealAction, card: CardMessage) -> DispatchResult:
        request_id = card.variables.request_id
        failed = await self._notifier.deliver(card)
        error: DeliveryError | None = None
        if failed:
            error = DeliveryError(",".join(failed), f"approval card {request_id} was not delivered")
            _log.warning("heal_notification_failed", request_id=request_id, channels=failed)
        self._pending.record_delivery(request_id, delivered=not failed, error=str(error) if error else "")
        return DispatchResult(
            action=ActionKind.HEAL,
            reason=heal.reason,
            request_id=request_id,
            card=card,
            delivery_error=error,
        )

    def _build_card(self, heal: HealAction, request_id: str) -> CardMessage:
        return CardMessage(
            receive_id=self._recipient.receive_id,
            receive_id_type=self._recipient.receive_id_type,
            template_id=self._recipient.template_id,
            template_version=self._recipient.template_version,
            variables=build_card_variables(heal, request_id),
        )

    def _request_id(self, heal: HealAction, now: datetime) -> str:
        base = f"{heal.patch_file_name}-{int(now.timestamp())}"
        request_id = base
        n = 1
        while request_id in self._pending:
            request_id = f"{base}-{n}"
            n += 1
        return request_id

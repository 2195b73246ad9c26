"""In-process store of heal proposals awaiting human approval.

Holds one ApprovalRequest per dispatched heal so that a proposal whose
notification failed can be announced again later instead of being dropped.
State is held in-process; restarting resets it. Approval, expiry handling
beyond pruning, and patch application belong to the external approval
lifecycle.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from aiopsanalyzer.models.decision import ApprovalRequest


class PendingHealStore:
    """Request-id keyed map of pending approval requests."""

    def __init__(self) -> None:
        self._requests: dict[str, ApprovalRequest] = {}

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._requests

    def __len__(self) -> int:
        return len(self._requests)

    def add(self, request: ApprovalRequest) -> None:
        self._requests[request.request_id] = request

    def get(self, request_id: str) -> ApprovalRequest | None:
        return self._requests.get(request_id)

    def all(self) -> list[ApprovalRequest]:
        return sorted(self._requests.values(), key=lambda r: r.requested_at)

    def undelivered(self) -> list[ApprovalRequest]:
        return [r for r in self.all() if not r.delivered]

    def record_delivery(self, request_id: str, delivered: bool, error: str = "") -> ApprovalRequest | None:
        """Update the delivery state of *request_id* and return the new record."""
        current = self._requests.get(request_id)
        if current is None:
            return None
        errors = current.delivery_errors + ((error,) if error else ())
        updated = replace(current, delivered=current.delivered or delivered, delivery_errors=errors)
        self._requests[request_id] = updated
        return updated

    def prune_expired(self, now: datetime) -> list[str]:
        """Drop requests whose approval window has closed; return their ids."""
        expired = [rid for rid, r in self._requests.items() if r.expires_at <= now]
        for rid in expired:
            del self._requests[rid]
        return expired

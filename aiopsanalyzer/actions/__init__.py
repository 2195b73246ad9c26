"""Action package: decision dispatch and the pending-approval store."""

from aiopsanalyzer.actions.dispatcher import ActionDispatcher, CardRecipient, DispatchResult
from aiopsanalyzer.actions.pending import PendingHealStore

__all__ = [
    "ActionDispatcher",
    "CardRecipient",
    "DispatchResult",
    "PendingHealStore",
]

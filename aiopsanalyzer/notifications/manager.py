"""Notification channel contract and fan-out delivery.

A card goes to every configured channel at once. Each channel gets its own
deadline, so a hung endpoint shows up as that channel's failure and the
remaining channels still deliver.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog

from aiopsanalyzer.notifications.card import CardMessage
from aiopsanalyzer.observability.metrics import notifications_total

_log = structlog.get_logger(component="notifications.manager")

_DEFAULT_SEND_TIMEOUT = 30.0


class NotificationChannel(ABC):
    """One destination for approval cards.

    ``send`` reports failure by returning ``False``; it logs its own
    transport details first.
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Label for this destination in metrics and delivery results."""

    @abstractmethod
    async def send(self, card: CardMessage) -> bool:
        """Hand *card* to the destination. ``True`` once it was accepted."""

    async def aclose(self) -> None:  # noqa: B027
        pass


class NotificationManager:
    """Delivers approval cards to every registered channel.

    Args:
        channels:     Destinations, in configuration order.
        send_timeout: Seconds one channel may take before it counts as failed.
    """

    def __init__(self, channels: list[NotificationChannel], send_timeout: float = _DEFAULT_SEND_TIMEOUT) -> None:
        self._channels = channels
        self._send_timeout = send_timeout

    @property
    def channel_names(self) -> list[str]:
        return [c.channel_name for c in self._channels]

    async def deliver(self, card: CardMessage) -> list[str]:
        """Send *card* everywhere and return the names of channels that failed.

        With nothing configured the card reaches no one, which is reported as
        the single failed channel ``"none"``.
        """
        if not self._channels:
            _log.warning("no_notification_channels", request_id=card.variables.request_id)
            return ["none"]
        outcomes = await asyncio.gather(*(self._attempt(c, card) for c in self._channels))
        return [name for name, delivered in outcomes if not delivered]

    async def _attempt(self, channel: NotificationChannel, card: CardMessage) -> tuple[str, bool]:
        name = channel.channel_name
        request_id = card.variables.request_id
        error = ""
        try:
            delivered = await asyncio.wait_for(channel.send(card), timeout=self._send_timeout)
        except TimeoutError:
            delivered, error = False, f"no answer within {self._send_timeout}s"
        except Exception as exc:  # noqa: BLE001
            delivered, error = False, str(exc)

        notifications_total.labels(channel=name, success=str(delivered).lower()).inc()
        log = _log.bind(channel=name, request_id=request_id)
        if delivered:
            log.info("card_delivered", namespace=card.variables.namespace, workload=card.variables.name)
        elif error:
            log.error("card_delivery_error", error=error)
        else:
            log.warning("card_rejected")
        return name, delivered

    async def aclose(self) -> None:
        for channel in self._channels:
            await channel.aclose()

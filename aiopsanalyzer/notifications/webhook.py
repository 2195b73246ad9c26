"""Generic JSON webhook channel.

For consumers other than Feishu (chat bridges, ticketing, audit sinks) the
approval card is flattened into one JSON object: the recipient and template
identity next to every card variable.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from aiopsanalyzer.notifications.card import CardMessage
from aiopsanalyzer.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.webhook")


def flatten_card(card: CardMessage) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "receive_id": card.receive_id,
        "receive_id_type": card.receive_id_type,
        "template_id": card.template_id,
        "template_version": card.template_version,
    }
    payload.update(card.variables.to_dict())
    return payload


class WebhookNotificationChannel(NotificationChannel):
    """POSTs flattened approval cards to one URL.

    Args:
        url:     Receiver endpoint; an empty value is a configuration error.
        headers: Sent with every request, typically an Authorization header.
        timeout: Per-request timeout in seconds for the owned client.
        client:  Shared ``httpx.AsyncClient``; tests pass a MockTransport one.
    """

    channel_name = "webhook"

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not url:
            raise ValueError("webhook channel needs a receiver url")
        self._url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Content-Type": "application/json"}
        self._headers.update(headers or {})

    async def send(self, card: CardMessage) -> bool:
        log = _log.bind(request_id=card.variables.request_id)
        try:
            response = await self._client.post(self._url, json=flatten_card(card), headers=self._headers)
        except httpx.HTTPError as exc:
            log.warning("webhook_unreachable", error_type=type(exc).__name__, error=str(exc))
            return False
        if not response.is_success:
            log.warning("webhook_rejected", status_code=response.status_code, body=response.text[:200])
        return response.is_success

    async def aclose(self) -> None:
        await self._client.aclose()

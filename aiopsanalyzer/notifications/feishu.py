"""Feishu (Lark) interactive template-card channel.

Authenticates as an internal app to obtain a tenant access token, then sends
the card through the IM messages API::

    POST /open-apis/im/v1/messages?receive_id_type=<type>
    {"receive_id": ..., "msg_type": "interactive", "content": "<json>"}

Feishu reports business failures with HTTP 200 and a non-zero ``code``; both
transport and business failures count as a failed delivery.
"""

from __future__ import annotations

import json
import time
from typing import Any

import httpx
import structlog

from aiopsanalyzer.notifications.card import CardMessage
from aiopsanalyzer.notifications.manager import NotificationChannel

_log = structlog.get_logger(component="notifications.feishu")

_TOKEN_PATH = "/open-apis/auth/v3/tenant_access_token/internal"
_MESSAGE_PATH = "/open-apis/im/v1/messages"
_TOKEN_REFRESH_MARGIN_SECONDS = 60


class FeishuCardChannel(NotificationChannel):
    """Delivers approval cards to a Feishu user or chat.

    Args:
        app_id:     Feishu app id.
        app_secret: Feishu app secret.
        base_url:   Open platform base URL.
        timeout:    HTTP request timeout in seconds.
        client:     Optional ``httpx.AsyncClient``.
    """

    channel_name = "feishu"

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        base_url: str = "https://open.feishu.cn",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not app_id or not app_secret:
            raise ValueError("Feishu app_id and app_secret must not be empty")
        self._app_id = app_id
        self._app_secret = app_secret
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._token = ""
        self._token_expires_at = 0.0

    async def send(self, card: CardMessage) -> bool:
        request_id = card.variables.request_id
        try:
            token = await self._tenant_token()
            response = await self._client.post(
                f"{self._base_url}{_MESSAGE_PATH}",
                params={"receive_id_type": card.receive_id_type},
                headers={"Authorization": f"Bearer {token}"},
                json={
                    "receive_id": card.receive_id,
                    "msg_type": "interactive",
                    "content": json.dumps(card.content(), ensure_ascii=False),
                },
            )
            body = _json_body(response)
        except httpx.TimeoutException:
            _log.warning("feishu_request_timeout", request_id=request_id)
            return False
        except (httpx.HTTPError, _FeishuError) as exc:
            _log.warning("feishu_send_failed", request_id=request_id, error=str(exc))
            return False

        if body.get("code") != 0:
            _log.warning(
                "feishu_card_rejected",
                request_id=request_id,
                code=body.get("code"),
                msg=body.get("msg"),
            )
            return False
        return True

    async def _tenant_token(self) -> str:
        now = time.monotonic()
        if self._token and now < self._token_expires_at:
            return self._token
        response = await self._client.post(
            f"{self._base_url}{_TOKEN_PATH}",
            json={"app_id": self._app_id, "app_secret": self._app_secret},
        )
        body = _json_body(response)
        if body.get("code") != 0 or not body.get("tenant_access_token"):
            raise _FeishuError(f"tenant token request failed: code={body.get('code')} msg={body.get('msg')}")
        self._token = str(body["tenant_access_token"])
        expire = int(body.get("expire", 0))
        self._token_expires_at = now + max(expire - _TOKEN_REFRESH_MARGIN_SECONDS, 0)
        return self._token

    async def aclose(self) -> None:
        await self._client.aclose()


class _FeishuError(Exception):
    """Unusable response from the Feishu open platform."""


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise _FeishuError(f"HTTP {response.status_code}: non-JSON body") from exc
    if not isinstance(body, dict):
        raise _FeishuError(f"HTTP {response.status_code}: unexpected body")
    return body

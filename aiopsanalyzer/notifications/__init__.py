"""Delivery of heal proposals to human reviewers.

Feishu template cards are the primary channel; a generic JSON webhook can
run alongside it. ``build_notification_manager`` picks the channels whose
credentials resolve at startup.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import structlog

from aiopsanalyzer.notifications.card import CardMessage, CardVariables, build_card_variables
from aiopsanalyzer.notifications.feishu import FeishuCardChannel
from aiopsanalyzer.notifications.manager import NotificationChannel, NotificationManager
from aiopsanalyzer.notifications.webhook import WebhookNotificationChannel

if TYPE_CHECKING:
    from aiopsanalyzer.models.config import FeishuConfig, WebhookConfig

_log = structlog.get_logger(component="notifications")

__all__ = [
    "CardMessage",
    "CardVariables",
    "FeishuCardChannel",
    "NotificationChannel",
    "NotificationManager",
    "WebhookNotificationChannel",
    "build_card_variables",
    "build_notification_manager",
]


def _secret(ref: str) -> str:
    """Value of the environment variable named by *ref*, or ``""``."""
    return os.environ.get(ref, "") if ref else ""


def build_notification_manager(feishu: FeishuConfig, webhook: WebhookConfig) -> NotificationManager:
    """Assemble the channels whose credentials are present.

    Config carries only the *names* of environment variables holding secrets
    (``AIOPS_FEISHU_APP_ID_REF``, ``AIOPS_FEISHU_APP_SECRET_REF``,
    ``AIOPS_WEBHOOK_URL_REF``). A channel whose secret is missing is left
    out; Feishu additionally needs ``AIOPS_FEISHU_RECEIVE_ID``.
    """
    channels: list[NotificationChannel] = []

    app_id, app_secret = _secret(feishu.app_id_ref), _secret(feishu.app_secret_ref)
    if not feishu.receive_id:
        _log.debug("feishu_channel_skipped", reason="no receive_id")
    elif not (app_id and app_secret):
        _log.debug("feishu_channel_skipped", reason="app credentials not resolved")
    else:
        channels.append(
            FeishuCardChannel(app_id, app_secret, base_url=feishu.base_url, timeout=feishu.timeout_seconds)
        )

    webhook_url = _secret(webhook.url_ref)
    if webhook_url:
        channels.append(WebhookNotificationChannel(webhook_url))
    else:
        _log.debug("webhook_channel_skipped", reason="url not resolved")

    _log.info("notification_channels", enabled=[c.channel_name for c in channels])
    return NotificationManager(channels)

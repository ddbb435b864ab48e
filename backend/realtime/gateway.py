"""
Notification gateways: how a payload reaches a user's live connection.

Dispatch code never touches transport state; it calls ``push(user_id, payload)``
on whatever gateway ``DISPATCH_NOTIFICATION_GATEWAY`` names.
"""

import logging
from typing import Any, Dict, List, Tuple

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils.module_loading import import_string

from common.conf import dispatch_setting

logger = logging.getLogger(__name__)

# Pushes recorded by LocMemGateway, as (user_id, payload) pairs
outbox: List[Tuple[int, Dict[str, Any]]] = []


class NotificationGateway:
    """Interface for best-effort, at-most-once delivery to one user."""

    def push(self, user_id: int, payload: Dict[str, Any]) -> bool:
        raise NotImplementedError


class ChannelLayerGateway(NotificationGateway):
    """Deliver through the Channels layer to the user's personal group: user_<id>"""

    def push(self, user_id, payload):
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning("No channel layer available, dropping %s for user_%s",
                           payload.get("type"), user_id)
            return False

        logger.debug("WS -> user_%s: %s", user_id, payload)
        async_to_sync(channel_layer.group_send)(
            f"user_{user_id}",
            {"type": "dispatch.event", "payload": payload},
        )
        return True


class LocMemGateway(NotificationGateway):
    """Keep pushes in memory (module-level ``outbox``); used by the test suite."""

    def push(self, user_id, payload):
        outbox.append((user_id, payload))
        return True


def get_notification_gateway() -> NotificationGateway:
    return import_string(dispatch_setting("DISPATCH_NOTIFICATION_GATEWAY"))()

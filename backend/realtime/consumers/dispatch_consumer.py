"""WebSocket consumer delivering dispatch events to customers and providers."""

import logging
from typing import Any, Dict

from channels.generic.websocket import AsyncJsonWebsocketConsumer

logger = logging.getLogger(__name__)


class DispatchConsumer(AsyncJsonWebsocketConsumer):
    """
    One socket per connected user, subscribed to the personal group ``user_<id>``.

    Server -> client: every payload ChannelLayerGateway pushes (new_job,
    job_taken, bid_received, job_booked, ...), relayed unchanged.

    Client -> server: only ``{"type": "ping"}`` keep-alives. Accepting jobs and
    bidding go through the HTTP API so that every outcome is returned to the
    caller synchronously.
    """

    async def connect(self):
        user = self.scope.get("user")
        if user is None or user.is_anonymous:
            await self.close()
            return

        self.user_id = user.id
        self.group_name = f"user_{user.id}"
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        logger.debug("User %s connected to dispatch socket", self.user_id)
        await self.send_json({
            "type": "connection_established",
            "user_id": user.id,
            "role": getattr(user, "role", None),
        })

    async def disconnect(self, close_code):
        group_name = getattr(self, "group_name", None)
        if group_name:
            await self.channel_layer.group_discard(group_name, self.channel_name)

    async def receive_json(self, content: Dict[str, Any], **kwargs):
        msg_type = content.get("type") if isinstance(content, dict) else None
        if msg_type == "ping":
            await self.send_json({"type": "pong"})
        elif not msg_type:
            await self.send_json({"type": "error", "message": "Message type is required"})
        else:
            await self.send_json({"type": "error", "message": f"Unknown message type: {msg_type}"})

    async def dispatch_event(self, event):
        """Handler for ``dispatch.event`` messages sent to the user's group."""
        await self.send_json(event.get("payload", {}))

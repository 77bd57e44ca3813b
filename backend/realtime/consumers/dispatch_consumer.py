"""Dispatch WebSocket consumer: the live set of requests still searching for a driver."""

import logging

from channels.db import database_sync_to_async

from .base import BaseConsumer
from realtime.live_queries import SEARCHING_GROUP, searching_requests_payload

logger = logging.getLogger(__name__)


class DispatchConsumer(BaseConsumer):
    """WebSocket consumer for dispatch dashboards and commuters waiting on a match."""

    async def on_connect(self):
        await self._join_group(SEARCHING_GROUP)
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })
        await self._send_snapshot()

    async def handle_message(self, msg_type, data):
        if msg_type == "refresh":
            await self._send_snapshot()
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    async def _send_snapshot(self):
        requests = await database_sync_to_async(searching_requests_payload)()
        await self.send_json({
            "type": "searching_requests",
            "requests": requests,
        })

    async def searching_requests(self, event):
        """Forward the fresh searching request set to the client."""
        await self.send_json({
            "type": "searching_requests",
            "requests": event.get("requests", []),
        })

"""Driver WebSocket consumer: the live set of requests claimed by this driver."""

import logging
from typing import Dict, Any, Optional

from channels.db import database_sync_to_async

from .base import BaseConsumer
from realtime.live_queries import claimed_requests_payload, driver_group
from services.claims.exceptions import InvalidLocationError

logger = logging.getLogger(__name__)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers.

    Handles:
        - Initial snapshot and live updates of the driver's claimed requests
        - Driver location pings
    """

    async def on_connect(self):
        """Set up driver-specific groups on connection."""
        self.driver_id = await self._get_driver_id()
        if self.driver_id is None:
            await self.send_error("This endpoint is for drivers only")
            await self.close()
            return

        # Join driver-specific group for the claimed requests live query
        await self._join_group(driver_group(self.driver_id))

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "driver_id": self.driver_id,
            "message": "Driver connected successfully",
        })
        await self._send_snapshot()

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle driver-specific messages."""

        if msg_type == "refresh":
            await self._send_snapshot()
        elif msg_type == "driver_location_update":
            await self._handle_location_update(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _send_snapshot(self):
        requests = await database_sync_to_async(claimed_requests_payload)(self.driver_id)
        await self.send_json({
            "type": "claimed_requests",
            "requests": requests,
        })

    async def _handle_location_update(self, data: Dict[str, Any]):
        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            await self.send_error("driver_location_update requires latitude and longitude")
            return

        try:
            await self._update_driver_location_db(lat, lon)
        except InvalidLocationError as e:
            await self.send_error(str(e))
            return

        await self.send_success("location_updated", latitude=float(lat), longitude=float(lon))

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def claimed_requests(self, event):
        """Forward the driver's fresh claimed request set to the client."""
        await self.send_json({
            "type": "claimed_requests",
            "requests": event.get("requests", []),
        })

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _get_driver_id(self) -> Optional[int]:
        if not self.user.is_driver:
            return None
        from drivers.models import Driver

        return Driver.objects.filter(user_id=self.user_id).values_list("id", flat=True).first()

    @database_sync_to_async
    def _update_driver_location_db(self, lat, lon):
        from drivers.services import update_driver_location

        return update_driver_location(self.user.driver_profile, lat, lon)

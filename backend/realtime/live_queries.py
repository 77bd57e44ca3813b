"""
Live query results pushed over WebSocket groups.

Two result sets are kept live:
- ``driver_<driver_id>``: requests currently claimed by that driver
- ``requests_searching``: requests still waiting for a driver

Every committed claim transition republishes the full result set for the
drivers it touched and for the searching list. Clients replace their copy
instead of applying deltas, so a missed message is repaired by the next one.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

SEARCHING_GROUP = "requests_searching"


def driver_group(driver_id: int) -> str:
    return f"driver_{driver_id}"


# ---------------------- Result Sets ----------------------

def claimed_requests_payload(driver_id: int) -> List[Dict[str, Any]]:
    """Serialized requests claimed by one driver, with pickup distance and ETA."""
    from assistance.serializers import ClaimedRequestSerializer
    from drivers.models import Driver
    from services.request_management import claimed_requests_for_driver

    driver = Driver.objects.filter(pk=driver_id).first()
    context = {"driver_location": driver.location if driver else None}
    serializer = ClaimedRequestSerializer(claimed_requests_for_driver(driver_id), many=True, context=context)
    return list(serializer.data)


def searching_requests_payload() -> List[Dict[str, Any]]:
    from assistance.serializers import AssistanceRequestSerializer
    from services.request_management import searching_requests

    return list(AssistanceRequestSerializer(searching_requests(), many=True).data)


# ---------------------- Publishing ----------------------

def publish_request_change(driver_ids: Iterable[int]) -> bool:
    """
    Push fresh result sets after a request changed.

    Args:
        driver_ids: Drivers whose claimed set may have changed (previous and new claimant)

    Returns:
        True if messages were sent, False if no channel layer is configured
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    for driver_id in driver_ids:
        payload = {
            "type": "claimed_requests",
            "driver_id": driver_id,
            "requests": claimed_requests_payload(driver_id),
        }
        logger.debug("WS -> driver_%s: %d claimed", driver_id, len(payload["requests"]))
        async_to_sync(channel_layer.group_send)(driver_group(driver_id), payload)

    payload = {
        "type": "searching_requests",
        "requests": searching_requests_payload(),
    }
    logger.debug("WS -> %s: %d searching", SEARCHING_GROUP, len(payload["requests"]))
    async_to_sync(channel_layer.group_send)(SEARCHING_GROUP, payload)

    return True

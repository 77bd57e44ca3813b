"""
Request management service - Request and trip lifecycle operations.

This module handles:
    - Creating assistance requests
    - Accepting/declining claimed requests
    - Cancelling requests (requester or claiming driver)
    - Trip status changes and path logging
    - Querying current requests and trips
"""

from .request_lifecycle import (
    LifecycleResult,
    create_assistance_request,
    cancel_request,
    accept_claimed_request,
    decline_claimed_request,
    cancel_claimed_request,
    claimed_requests_for_driver,
    searching_requests,
    update_trip_status,
    record_trip_location,
    get_active_request,
    get_current_trip,
    get_request_for_requester,
)

__all__ = [
    "LifecycleResult",
    "create_assistance_request",
    "cancel_request",
    "accept_claimed_request",
    "decline_claimed_request",
    "cancel_claimed_request",
    "claimed_requests_for_driver",
    "searching_requests",
    "update_trip_status",
    "record_trip_location",
    "get_active_request",
    "get_current_trip",
    "get_request_for_requester",
]

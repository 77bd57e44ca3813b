"""
Match attempts: closest eligible driver + claim transaction.

Triggered when a request is created, after a driver declines, and by the
expiry scanner once a lapsed claim has been released.
"""

import logging
from typing import Optional

from asgiref.sync import sync_to_async
from django.conf import settings

from assistance.models import AssistanceRequest
from services.claims import StatePreconditionError, claim_async, load_request
from .candidate_search import Candidate, find_closest_driver

logger = logging.getLogger(__name__)


def match_radius_km() -> float:
    return float(getattr(settings, "MATCH_RADIUS_KM", 50))


async def attempt_match(request_id) -> Optional[Candidate]:
    """
    Try to claim a searching request for the closest driver not yet notified.

    Returns:
        The claimed candidate, or None when the request is not searching,
        nobody qualifies, or another trigger won the race

    Raises:
        RequestNotFoundError: If the request does not exist
        TransientStoreError: If the claim transaction kept conflicting
    """
    request = await sync_to_async(load_request)(request_id)

    if request.status != AssistanceRequest.Status.SEARCHING:
        logger.info("Request %s is %s, skipping match", request_id, request.status)
        return None

    candidate = await find_closest_driver(
        request.pickup_location,
        match_radius_km(),
        request.notified_driver_ids,
    )
    if candidate is None:
        logger.info("No driver available for request %s, still searching", request_id)
        return None

    try:
        await claim_async(request_id, candidate.driver_id)
    except StatePreconditionError as exc:
        # Another trigger advanced the request first
        logger.info("Claim for request %s lost a race: %s", request_id, exc)
        return None

    return candidate

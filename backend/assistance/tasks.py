"""Celery tasks for matching and claim expiry background processing."""

import logging

from asgiref.sync import async_to_sync
from celery import shared_task

from services.claims import MatchingError, expire_reset
from services.matching import attempt_match, cancel_expired_requests, run_sweep

logger = logging.getLogger(__name__)


@shared_task
def match_request_task(request_id: int):
    """
    Look for the closest driver for a searching request.

    Queued when a request is created and when a driver declines.
    """
    try:
        candidate = async_to_sync(attempt_match)(request_id)
    except MatchingError as e:
        logger.error(f"Match attempt for request {request_id} failed: {e}")
        return None

    return candidate.driver_id if candidate else None


@shared_task
def expire_claim_task(request_id: int):
    """
    Release a claim once its acceptance window has passed, then re-match.

    Scheduled with a countdown when a claim is made. If the driver already
    accepted or declined, this is a no-op; the periodic sweep covers claims
    whose task was lost.
    """
    try:
        if not expire_reset(request_id):
            return None
        candidate = async_to_sync(attempt_match)(request_id)
    except MatchingError as e:
        logger.error(f"Error expiring claim on request {request_id}: {e}")
        return None

    return candidate.driver_id if candidate else None


@shared_task
def sweep_expired_claims_task():
    """Periodic safety net: release and re-match every lapsed claim."""
    result = run_sweep()
    return {"expired": result.expired, "reassigned": result.reassigned, "failed": result.failed}


@shared_task
def cancel_expired_requests_task():
    """Periodic task: cancel requests that were never matched before their TTL."""
    return cancel_expired_requests()

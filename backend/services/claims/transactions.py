"""
Atomic claim transitions for assistance requests.

Every write to the claim fields (status, claimed_by_driver, claim_expires_at,
notified_driver_ids, matched_driver) goes through ``run_request_transaction``:

1. Read the current row
2. Validate preconditions against it (raise to abort, return None for a no-op)
3. Commit with ``UPDATE ... WHERE version = <version read in step 1>``

A commit that matches zero rows lost a race against another writer. The whole
read-validate-write is then retried, so the loser re-reads the winner's state
and fails its precondition instead of merging over it.
"""

import logging
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Callable, Dict, Optional, Tuple

from asgiref.sync import sync_to_async
from django.conf import settings
from django.db import OperationalError, transaction
from django.db.models import F
from django.utils import timezone

from assistance.models import AssistanceRequest
from .exceptions import (
    AlreadyClaimedOrGoneError,
    ClaimExpiredError,
    RequestNotFoundError,
    TransientStoreError,
    WrongClaimantError,
    WrongStateError,
)

logger = logging.getLogger(__name__)

Status = AssistanceRequest.Status
Mutation = Callable[[AssistanceRequest], Optional[Dict[str, Any]]]


# ===================== Store Primitives =====================

def array_union(values, value) -> list:
    """Append ``value`` unless already present. Existing entries are never dropped."""
    merged = list(values or [])
    if value not in merged:
        merged.append(value)
    return merged


def claim_window() -> timedelta:
    return timedelta(seconds=getattr(settings, "CLAIM_WINDOW_SECONDS", 30))


def load_request(request_id) -> AssistanceRequest:
    """Fetch a request, rejecting rows whose claim bookkeeping is unusable."""
    try:
        request = AssistanceRequest.objects.get(pk=request_id)
    except AssistanceRequest.DoesNotExist:
        raise RequestNotFoundError(f"Request {request_id} not found")

    notified = request.notified_driver_ids
    if not isinstance(notified, list) or not all(isinstance(item, int) for item in notified):
        raise RequestNotFoundError(f"Request {request_id} has a corrupt notified driver list")
    return request


def run_request_transaction(
    request_id,
    mutation: Mutation,
    max_attempts: Optional[int] = None,
) -> Tuple[AssistanceRequest, bool]:
    """
    Run one read-modify-write against a request.

    Args:
        request_id: ID of the request to transition
        mutation: Receives the freshly read request. Raises to abort, returns
            None for a no-op, or a dict of field changes to commit.
        max_attempts: Retry cap for lost races and database errors

    Returns:
        (request, changed) where request reflects the committed state

    Raises:
        RequestNotFoundError: If the request does not exist
        StatePreconditionError: Whatever the mutation raises
        TransientStoreError: If every attempt conflicted or hit a database error
    """
    attempts = max_attempts or getattr(settings, "CLAIM_TRANSACTION_MAX_ATTEMPTS", 3)

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                request = load_request(request_id)
                changes = mutation(request)
                if not changes:
                    return request, False

                previous_claimant = request.claimed_by_driver_id
                if _commit(request, changes):
                    _publish_after_commit(request, previous_claimant)
                    return request, True
        except OperationalError:
            logger.warning(
                "Database error updating request %s (attempt %d/%d)",
                request_id, attempt, attempts,
                exc_info=True,
            )
            continue

        logger.info(
            "Request %s changed during transaction (attempt %d/%d), retrying",
            request_id, attempt, attempts,
        )

    raise TransientStoreError(f"Request {request_id} could not be updated after {attempts} attempts")


def _commit(request: AssistanceRequest, changes: Dict[str, Any]) -> bool:
    """Write ``changes`` only if nobody committed since ``request`` was read."""
    now = timezone.now()
    updated = AssistanceRequest.objects.filter(pk=request.pk, version=request.version).update(
        version=F("version") + 1,
        updated_at=now,
        **changes,
    )
    if not updated:
        return False

    for field, value in changes.items():
        setattr(request, field, value)
    request.version += 1
    request.updated_at = now
    return True


def _publish_after_commit(request: AssistanceRequest, previous_claimant: Optional[int]):
    from realtime.live_queries import publish_request_change

    driver_ids = {previous_claimant, request.claimed_by_driver_id} - {None}
    transaction.on_commit(partial(publish_request_change, sorted(driver_ids)), robust=True)


def _released_claim() -> Dict[str, Any]:
    return {
        "status": Status.SEARCHING,
        "claimed_by_driver_id": None,
        "claim_expires_at": None,
    }


# ===================== Claim Operations =====================

def claim(request_id, driver_id: int, now: Optional[datetime] = None) -> AssistanceRequest:
    """
    Provisionally assign a searching request to one driver.

    Raises:
        RequestNotFoundError: If the request is missing
        AlreadyClaimedOrGoneError: If the request is no longer searching
    """
    def mutation(request: AssistanceRequest):
        if request.status != Status.SEARCHING:
            raise AlreadyClaimedOrGoneError(f"Request {request_id} is already {request.status}")
        claimed_at = now or timezone.now()
        return {
            "status": Status.CLAIMED,
            "claimed_by_driver_id": driver_id,
            "claim_expires_at": claimed_at + claim_window(),
            "notified_driver_ids": array_union(request.notified_driver_ids, driver_id),
        }

    request, _ = run_request_transaction(request_id, mutation)
    logger.info(
        "Claimed request %s for driver %s until %s",
        request.id, driver_id, request.claim_expires_at.isoformat(),
    )
    _schedule_claim_expiry(request)
    return request


def accept(request_id, driver_id: int, now: Optional[datetime] = None) -> AssistanceRequest:
    """
    Promote a claim to an accepted match. The caller creates the trip.

    Raises:
        WrongStateError: If the request is not claimed
        WrongClaimantError: If another driver holds the claim
        ClaimExpiredError: If the acceptance window has passed
    """
    def mutation(request: AssistanceRequest):
        checked_at = now or timezone.now()
        if request.status != Status.CLAIMED:
            raise WrongStateError(f"Request {request_id} is {request.status}, not claimed")
        if request.claimed_by_driver_id != driver_id:
            raise WrongClaimantError(f"Request {request_id} is not claimed by driver {driver_id}")
        if request.claim_expires_at <= checked_at:
            raise ClaimExpiredError(f"Claim on request {request_id} expired at {request.claim_expires_at}")
        return {
            "status": Status.ACCEPTED,
            "matched_driver_id": driver_id,
            "accepted_at": checked_at,
        }

    request, _ = run_request_transaction(request_id, mutation)
    logger.info("Driver %s accepted request %s", driver_id, request.id)
    return request


def decline(request_id, driver_id: int) -> AssistanceRequest:
    """
    Hand a claimed request back to the search. ``notified_driver_ids`` keeps
    the declining driver so matching skips them.

    Raises:
        WrongStateError: If the request is not claimed
        WrongClaimantError: If another driver holds the claim
    """
    def mutation(request: AssistanceRequest):
        if request.status != Status.CLAIMED:
            raise WrongStateError(f"Request {request_id} is {request.status}, not claimed")
        if request.claimed_by_driver_id != driver_id:
            raise WrongClaimantError(f"Request {request_id} is not claimed by driver {driver_id}")
        return _released_claim()

    request, _ = run_request_transaction(request_id, mutation)
    logger.info("Driver %s declined request %s", driver_id, request.id)
    return request


def expire_reset(request_id, now: Optional[datetime] = None) -> bool:
    """
    Release a claim whose acceptance window has passed.

    Returns False without error when another actor already moved the request on.
    """
    checked_at = now or timezone.now()

    def mutation(request: AssistanceRequest):
        if request.status != Status.CLAIMED or request.claim_expires_at > checked_at:
            return None
        return _released_claim()

    request, changed = run_request_transaction(request_id, mutation)
    if changed:
        logger.info("Reset expired claim on request %s back to searching", request.id)
    else:
        logger.info("Request %s no longer has an expired claim (status %s)", request.id, request.status)
    return changed


def cancel(
    request_id,
    reason: str = "",
    requester_id: Optional[int] = None,
    now: Optional[datetime] = None,
    claimant_driver_id: Optional[int] = None,
) -> AssistanceRequest:
    """
    Cancel a searching or claimed request.

    With ``requester_id`` only the requester may cancel. With
    ``claimant_driver_id`` only the driver currently holding the claim may.

    Raises:
        RequestNotFoundError: If the request is missing or belongs to someone else
        WrongStateError: If the request already reached a terminal state
        WrongClaimantError: If the driver does not hold the claim
    """
    def mutation(request: AssistanceRequest):
        if requester_id is not None and request.requester_id != requester_id:
            raise RequestNotFoundError(f"Request {request_id} not found")
        if claimant_driver_id is not None:
            if request.status != Status.CLAIMED:
                raise WrongStateError(f"Request {request_id} is {request.status}, not claimed")
            if request.claimed_by_driver_id != claimant_driver_id:
                raise WrongClaimantError(
                    f"Request {request_id} is not claimed by driver {claimant_driver_id}"
                )
        if request.status not in AssistanceRequest.ACTIVE_STATUSES:
            raise WrongStateError(f"Cannot cancel - request is already {request.status}")
        return {
            **_released_claim(),
            "status": Status.CANCELLED,
            "cancelled_at": now or timezone.now(),
            "cancellation_reason": reason,
        }

    request, _ = run_request_transaction(request_id, mutation)
    logger.info("Cancelled request %s (%s)", request.id, reason or "no reason")
    return request


def cancel_if_expired(request_id, now: Optional[datetime] = None) -> bool:
    """Cancel an unmatched request whose absolute TTL has passed."""
    checked_at = now or timezone.now()

    def mutation(request: AssistanceRequest):
        if request.status not in AssistanceRequest.ACTIVE_STATUSES or request.expires_at > checked_at:
            return None
        return {
            **_released_claim(),
            "status": Status.CANCELLED,
            "cancelled_at": checked_at,
            "cancellation_reason": "expired",
        }

    _, changed = run_request_transaction(request_id, mutation)
    if changed:
        logger.info("Request %s expired without a match", request_id)
    return changed


def _schedule_claim_expiry(request: AssistanceRequest):
    """Queue a delayed expiry check so a lapsed claim is released without waiting for a sweep."""
    if not getattr(settings, "CLAIM_EXPIRY_DELAYED_TASKS", False):
        return

    from assistance.tasks import expire_claim_task

    countdown = claim_window().total_seconds() + 1
    transaction.on_commit(
        lambda: expire_claim_task.apply_async((request.id,), countdown=countdown),
        robust=True,
    )


# Async entry points for the orchestrator and scanner
claim_async = sync_to_async(claim)
expire_reset_async = sync_to_async(expire_reset)

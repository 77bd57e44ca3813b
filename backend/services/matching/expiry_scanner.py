"""
Claim expiry handling.

Claims carry a deadline (``claim_expires_at``) rather than a running timer.
Each sweep:
1. Finds claimed requests whose deadline has passed
2. Releases each claim back to searching
3. Re-runs matching, excluding every driver already notified

Requests are processed concurrently and independently; one failure never
stops the others or future sweeps.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from asgiref.sync import async_to_sync, sync_to_async
from django.conf import settings
from django.db import close_old_connections
from django.utils import timezone

from assistance.models import AssistanceRequest
from services.claims import cancel_if_expired, expire_reset_async
from .orchestrator import attempt_match

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    expired: int = 0
    reassigned: int = 0
    failed: int = 0


def _expired_claim_ids(now: datetime) -> List[int]:
    return list(
        AssistanceRequest.objects
        .filter(status=AssistanceRequest.Status.CLAIMED, claim_expires_at__lte=now)
        .order_by("claim_expires_at")
        .values_list("id", flat=True)
    )


async def reassign_expired_claim(request_id, now: Optional[datetime] = None) -> bool:
    """Release one lapsed claim and look for the next driver. Returns True if re-claimed."""
    await expire_reset_async(request_id, now)
    candidate = await attempt_match(request_id)
    return candidate is not None


async def sweep(now: Optional[datetime] = None) -> SweepResult:
    """
    Release every claim that expired at or before ``now`` and re-match it.

    Returns:
        SweepResult with counts of expired, reassigned and failed requests
    """
    now = now or timezone.now()
    request_ids = await sync_to_async(_expired_claim_ids)(now)
    result = SweepResult(expired=len(request_ids))

    if not request_ids:
        logger.debug("No expired claims found")
        return result

    logger.info("Found %d expired claims", len(request_ids))

    outcomes = await asyncio.gather(
        *(reassign_expired_claim(request_id, now) for request_id in request_ids),
        return_exceptions=True,
    )

    for request_id, outcome in zip(request_ids, outcomes):
        if isinstance(outcome, BaseException):
            result.failed += 1
            logger.error(
                "Failed to reassign expired request %s",
                request_id,
                exc_info=(type(outcome), outcome, outcome.__traceback__),
            )
        elif outcome:
            result.reassigned += 1

    logger.info(
        "Finished processing expired claims (expired=%d reassigned=%d failed=%d)",
        result.expired, result.reassigned, result.failed,
    )
    return result


def cancel_expired_requests(now: Optional[datetime] = None) -> int:
    """
    Cancel active requests whose absolute TTL (``expires_at``) has passed.

    Returns the number of requests cancelled.
    """
    now = now or timezone.now()
    request_ids = list(
        AssistanceRequest.objects
        .filter(status__in=AssistanceRequest.ACTIVE_STATUSES, expires_at__lte=now)
        .values_list("id", flat=True)
    )

    cancelled = 0
    for request_id in request_ids:
        try:
            if cancel_if_expired(request_id, now):
                cancelled += 1
        except Exception:
            logger.exception("Failed to expire request %s", request_id)

    if cancelled:
        logger.info("Cancelled %d requests past their expiry", cancelled)
    return cancelled


def run_sweep(now: Optional[datetime] = None) -> SweepResult:
    """Synchronous entry point for schedulers. Never raises."""
    try:
        return async_to_sync(sweep)(now)
    except Exception:
        logger.exception("Expiry sweep failed")
        return SweepResult()


class ExpiryScanner:
    """
    Runs the expiry sweep on a fixed period in a background thread.

    With ``expire_requests`` each pass also cancels requests past their TTL.
    """

    def __init__(self, interval_seconds: Optional[float] = None, expire_requests: bool = False):
        self.interval_seconds = interval_seconds or getattr(settings, "CLAIM_SWEEP_INTERVAL_SECONDS", 10)
        self.expire_requests = expire_requests
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self.run_forever, name="expiry-scanner", daemon=True)

    def start(self):
        if not self._thread.is_alive():
            logger.info("Starting claim expiry scanner (interval=%ss)", self.interval_seconds)
            self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            logger.info("Claim expiry scanner stopped")

    def join(self, timeout: Optional[float] = None):
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def run_once(self):
        result = run_sweep()
        if result.expired:
            logger.info(
                "Expiry scanner expired %s, reassigned %s",
                result.expired,
                result.reassigned,
            )

        if self.expire_requests:
            try:
                cancel_expired_requests()
            except Exception:
                logger.exception("Request expiry pass failed")

    def run_forever(self):
        while not self._stop_event.is_set():
            self.run_once()
            # Close stale DB connections for long-running workers
            close_old_connections()
            self._stop_event.wait(self.interval_seconds)

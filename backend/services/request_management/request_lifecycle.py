"""
Core request and trip lifecycle operations.

This module contains the business logic behind the HTTP API: creating
requests, the driver's accept/decline actions, cancellation and the trip
status machine. Claim fields are only ever written through services.claims.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from assistance.models import AssistanceRequest, Trip
from drivers.models import Driver
from drivers.services import set_driver_on_trip, update_driver_location
from common.utils.geo import Location, distance_km
from common.utils.fares import BASE_TOW_PRICE
from services import claims
from services.claims.exceptions import (
    ActiveRequestExistsError,
    InvalidLocationError,
    InvalidTripTransitionError,
    RequestNotFoundError,
    ServiceUnavailableError,
    TripNotFoundError,
)

logger = logging.getLogger(__name__)

Status = AssistanceRequest.Status


@dataclass
class LifecycleResult:
    """Result object for lifecycle operations."""
    request: Optional[AssistanceRequest] = None
    trip: Optional[Trip] = None
    message: str = ""
    extra: Optional[Dict[str, Any]] = None


def _location(lat, lon, label: str) -> Location:
    try:
        location = Location(float(lat), float(lon))
    except (TypeError, ValueError) as exc:
        raise InvalidLocationError(f"Invalid {label} location: {exc}")
    if location.is_unset:
        raise InvalidLocationError(f"The {label} location is not set")
    return location


def _schedule_match(request_id: int):
    from assistance.tasks import match_request_task

    transaction.on_commit(lambda: match_request_task.delay(request_id), robust=True)


# ===================== Commuter Operations =====================

def get_active_request(requester) -> Optional[AssistanceRequest]:
    """Get the requester's searching or claimed request, if any."""
    return AssistanceRequest.objects.filter(
        requester=requester,
        status__in=AssistanceRequest.ACTIVE_STATUSES,
    ).first()


@transaction.atomic
def create_assistance_request(
    requester,
    pickup_latitude: float,
    pickup_longitude: float,
    dropoff_latitude: float,
    dropoff_longitude: float,
    pickup_address: str = "",
    dropoff_address: str = "",
    service_type: str = AssistanceRequest.ServiceType.TOW,
    customer_notes: str = "",
) -> LifecycleResult:
    """
    Create a new request in ``searching`` and queue the first match attempt.

    Raises:
        InvalidLocationError: For out-of-range or (0, 0) coordinates
        ServiceUnavailableError: For reserved service types
        ActiveRequestExistsError: If the requester already has an active request
    """
    pickup = _location(pickup_latitude, pickup_longitude, "pickup")
    dropoff = _location(dropoff_latitude, dropoff_longitude, "dropoff")

    if str(service_type) not in AssistanceRequest.ENABLED_SERVICE_TYPES:
        raise ServiceUnavailableError(f"Service '{service_type}' is not available yet")

    if get_active_request(requester):
        raise ActiveRequestExistsError("You already have an active request")

    ttl = timedelta(minutes=getattr(settings, "REQUEST_TTL_MINUTES", 10))
    request = AssistanceRequest.objects.create(
        requester=requester,
        pickup_latitude=pickup.latitude,
        pickup_longitude=pickup.longitude,
        pickup_address=pickup_address,
        dropoff_latitude=dropoff.latitude,
        dropoff_longitude=dropoff.longitude,
        dropoff_address=dropoff_address,
        service_type=service_type,
        customer_notes=customer_notes,
        status=Status.SEARCHING,
        expires_at=timezone.now() + ttl,
    )
    logger.info("Created request %s for requester %s", request.id, requester.id)

    _schedule_match(request.id)

    return LifecycleResult(request=request, message="Searching for nearby drivers...")


def cancel_request(requester, request_id: int, reason: str = "Cancelled by commuter") -> LifecycleResult:
    """Cancel the requester's own searching or claimed request."""
    request = claims.cancel(request_id, reason=reason, requester_id=requester.id)
    return LifecycleResult(request=request, message="Request cancelled successfully")


# ===================== Driver Operations =====================

@transaction.atomic
def accept_claimed_request(driver: Driver, request_id: int) -> LifecycleResult:
    """
    Accept the claim and start a trip, as one unit.

    Raises:
        StatePreconditionError: If the claim is gone, expired or held by someone else
    """
    request = claims.accept(request_id, driver.id)

    pickup = request.pickup_location
    dropoff = request.dropoff_location
    trip = Trip.objects.create(
        request=request,
        commuter_id=request.requester_id,
        driver=driver,
        status=Trip.Status.EN_ROUTE,
        pickup_latitude=pickup.latitude,
        pickup_longitude=pickup.longitude,
        pickup_address=request.pickup_address,
        dropoff_latitude=dropoff.latitude,
        dropoff_longitude=dropoff.longitude,
        dropoff_address=request.dropoff_address,
        distance_km=distance_km(pickup, dropoff),
        estimated_price=BASE_TOW_PRICE,
    )

    set_driver_on_trip(driver, True)
    logger.info("Trip %s created for request %s", trip.id, request.id)

    return LifecycleResult(
        request=request,
        trip=trip,
        message="Request accepted! Navigate to the pickup location.",
    )


def cancel_claimed_request(driver: Driver, request_id: int, reason: str = "Cancelled by driver") -> LifecycleResult:
    """Cancel a request outright on behalf of the driver holding its claim."""
    request = claims.cancel(request_id, reason=reason, claimant_driver_id=driver.id)
    return LifecycleResult(request=request, message="Request cancelled")


def decline_claimed_request(driver: Driver, request_id: int) -> LifecycleResult:
    """Decline the claim and immediately look for the next driver."""
    with transaction.atomic():
        request = claims.decline(request_id, driver.id)
        _schedule_match(request.id)

    return LifecycleResult(
        request=request,
        message="Request declined. We will notify the next available driver.",
    )


def claimed_requests_for_driver(driver_id: int) -> List[AssistanceRequest]:
    """Requests currently claimed by this driver (the driver-facing live query)."""
    return list(
        AssistanceRequest.objects
        .filter(status=Status.CLAIMED, claimed_by_driver_id=driver_id)
        .select_related("requester")
        .order_by("claim_expires_at")
    )


def searching_requests() -> List[AssistanceRequest]:
    """Requests waiting for a driver (the commuter/dispatch-facing live query)."""
    return list(
        AssistanceRequest.objects
        .filter(status=Status.SEARCHING)
        .select_related("requester")
        .order_by("created_at")
    )


# ===================== Trip Operations =====================

def _get_driver_trip(driver: Driver, trip_id: int) -> Trip:
    try:
        return Trip.objects.select_for_update().get(id=trip_id, driver=driver)
    except Trip.DoesNotExist:
        raise TripNotFoundError("Trip not found or not assigned to you")


@transaction.atomic
def update_trip_status(driver: Driver, trip_id: int, new_status: str) -> LifecycleResult:
    """
    Move a trip forward: en_route -> arrived -> in_progress -> completed,
    or cancelled from any non-terminal status.
    """
    trip = _get_driver_trip(driver, trip_id)

    if not trip.can_transition_to(new_status):
        raise InvalidTripTransitionError(f"Cannot move trip from {trip.status} to {new_status}")

    now = timezone.now()
    trip.status = new_status
    update_fields = ["status"]

    if new_status == Trip.Status.ARRIVED:
        trip.arrival_time = now
        update_fields.append("arrival_time")
    elif new_status == Trip.Status.IN_PROGRESS:
        trip.started_at = now
        update_fields.append("started_at")
    elif new_status == Trip.Status.COMPLETED:
        trip.completion_time = now
        trip.final_price = trip.estimated_price
        update_fields += ["completion_time", "final_price"]

    trip.save(update_fields=update_fields)

    if new_status == Trip.Status.COMPLETED:
        Driver.objects.filter(pk=driver.pk).update(total_trips=F("total_trips") + 1)
        driver.refresh_from_db(fields=["total_trips"])

    if new_status in (Trip.Status.COMPLETED, Trip.Status.CANCELLED):
        set_driver_on_trip(driver, False)

    logger.info("Trip %s is now %s", trip.id, new_status)
    return LifecycleResult(trip=trip, message=f"Trip {new_status.replace('_', ' ')}")


@transaction.atomic
def record_trip_location(driver: Driver, trip_id: int, lat, lon) -> LifecycleResult:
    """Append a point to the trip's path log and move the driver there."""
    trip = _get_driver_trip(driver, trip_id)
    if trip.status in (Trip.Status.COMPLETED, Trip.Status.CANCELLED):
        raise InvalidTripTransitionError(f"Trip {trip.id} is already {trip.status}")

    update_driver_location(driver, lat, lon)
    trip.driver_path = trip.driver_path + [{
        "latitude": driver.current_latitude,
        "longitude": driver.current_longitude,
        "recorded_at": driver.last_location_update.isoformat(),
    }]
    trip.save(update_fields=["driver_path"])

    return LifecycleResult(trip=trip, extra={"points": len(trip.driver_path)})


def get_current_trip(driver: Driver) -> Optional[Trip]:
    """Get the driver's trip that has not finished yet."""
    return Trip.objects.filter(
        driver=driver,
        status__in=[Trip.Status.EN_ROUTE, Trip.Status.ARRIVED, Trip.Status.IN_PROGRESS],
    ).select_related("request", "commuter").first()


def get_request_for_requester(requester, request_id: int) -> AssistanceRequest:
    try:
        return AssistanceRequest.objects.get(id=request_id, requester=requester)
    except AssistanceRequest.DoesNotExist:
        raise RequestNotFoundError("Request not found")

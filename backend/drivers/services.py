import logging

from django.db import transaction
from django.utils import timezone

from drivers.models import Driver
from common.utils.geo import Location
from services.claims.exceptions import DriverNotFoundError, InvalidLocationError

logger = logging.getLogger(__name__)


def get_driver_for_user(user) -> Driver:
    try:
        return user.driver_profile
    except Driver.DoesNotExist:
        raise DriverNotFoundError("Driver profile not found")


def _validated_location(lat, lon) -> Location:
    try:
        location = Location(float(lat), float(lon))
    except (TypeError, ValueError) as exc:
        raise InvalidLocationError(str(exc))
    if location.is_unset:
        raise InvalidLocationError("Location (0, 0) is not a valid position")
    return location


# DRIVER AVAILABILITY UPDATE
def update_driver_availability(driver: Driver, is_available: bool, lat=None, lon=None) -> Driver:
    """
    Take a driver online or offline.

    Going online needs a known location, either passed in or already stored.
    The proximity key is recomputed by Driver.save().
    """
    update_fields = ["is_available"]

    if lat is not None and lon is not None:
        location = _validated_location(lat, lon)
        driver.current_latitude = location.latitude
        driver.current_longitude = location.longitude
        driver.last_location_update = timezone.now()
        update_fields += ["current_latitude", "current_longitude", "last_location_update"]

    if is_available:
        location = driver.location
        if location is None or location.is_unset:
            raise InvalidLocationError("A current location is required to go online")

    driver.is_available = is_available
    driver.save(update_fields=update_fields)

    logger.info("Driver %s is now %s", driver.id, "online" if is_available else "offline")
    return driver


def update_driver_location(driver: Driver, lat, lon) -> Driver:
    """Store a new position. Used by location pings and trip path logging."""
    location = _validated_location(lat, lon)
    driver.current_latitude = location.latitude
    driver.current_longitude = location.longitude
    driver.last_location_update = timezone.now()
    driver.save(update_fields=["current_latitude", "current_longitude", "last_location_update"])
    return driver


def set_driver_on_trip(driver: Driver, on_trip: bool) -> Driver:
    """Busy drivers drop out of candidate search until their trip ends."""
    with transaction.atomic():
        # The proximity key is rebuilt from the stored position, not a stale copy
        stored = (
            Driver.objects.select_for_update()
            .values("current_latitude", "current_longitude")
            .get(pk=driver.pk)
        )
        driver.current_latitude = stored["current_latitude"]
        driver.current_longitude = stored["current_longitude"]
        driver.is_actively_driving = on_trip
        driver.is_available = not on_trip and driver.location is not None
        driver.save(update_fields=["is_actively_driving", "is_available"])
    return driver

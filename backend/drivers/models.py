from typing import Optional

from django.db import models
from django.conf import settings

from common.utils.geo import Location, encode_geohash

User = settings.AUTH_USER_MODEL

# Fields that feed the proximity key
_GEOHASH_SOURCE_FIELDS = {"is_available", "current_latitude", "current_longitude"}


class Driver(models.Model):
    """Tow driver supply: availability, live location and vehicle details"""

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='driver_profile')

    # Availability flags
    is_available = models.BooleanField(default=False)
    is_verified = models.BooleanField(default=False)
    is_actively_driving = models.BooleanField(default=False)

    # Live location and its proximity key (null while offline or location unknown)
    current_latitude = models.FloatField(null=True, blank=True)
    current_longitude = models.FloatField(null=True, blank=True)
    geohash = models.CharField(max_length=12, null=True, blank=True, editable=False)
    last_location_update = models.DateTimeField(null=True, blank=True)

    # Not consulted by matching, which uses the fixed MATCH_RADIUS_KM ceiling
    service_radius_km = models.FloatField(default=16.0)

    # Vehicle details
    vehicle_make = models.CharField(max_length=50, default='Unknown')
    vehicle_model = models.CharField(max_length=50, default='Unknown')
    vehicle_year = models.PositiveSmallIntegerField(null=True, blank=True)
    license_plate = models.CharField(max_length=20, blank=True)
    towing_capacity = models.CharField(max_length=50, blank=True)

    total_trips = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'drivers'
        indexes = [
            models.Index(fields=['is_available', 'geohash'], name='driver_available_geohash'),
        ]

    def __str__(self):
        return f"{self.user.username} - {self.license_plate or 'no plate'}"

    @property
    def location(self) -> Optional[Location]:
        if self.current_latitude is None or self.current_longitude is None:
            return None
        return Location(self.current_latitude, self.current_longitude)

    def compute_geohash(self) -> Optional[str]:
        location = self.location
        if not self.is_available or location is None or location.is_unset:
            return None
        return encode_geohash(location.latitude, location.longitude)

    def save(self, *args, **kwargs):
        # The proximity key always follows availability and location
        self.geohash = self.compute_geohash()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and _GEOHASH_SOURCE_FIELDS.intersection(update_fields):
            kwargs['update_fields'] = set(update_fields) | {'geohash', 'updated_at'}
        super().save(*args, **kwargs)

from rest_framework import serializers
from django.utils import timezone

from accounts.serializers import UserBasicSerializer
from common.utils.geo import Location, distance_km
from common.utils.fares import estimate_eta_minutes, km_to_miles
from drivers.serializers import DriverBasicSerializer
from .models import AssistanceRequest, Trip


class AssistanceRequestSerializer(serializers.ModelSerializer):
    """Serializer for assistance requests as seen by the commuter and dispatch."""
    requester = UserBasicSerializer(read_only=True)
    matched_driver = DriverBasicSerializer(read_only=True)
    trip_id = serializers.IntegerField(source="trip.id", read_only=True, default=None)

    class Meta:
        model = AssistanceRequest
        fields = ['id', 'requester', 'status', 'service_type',
                  'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'dropoff_latitude', 'dropoff_longitude', 'dropoff_address',
                  'customer_notes', 'matched_driver', 'trip_id',
                  'created_at', 'expires_at', 'accepted_at', 'cancelled_at',
                  'cancellation_reason']
        read_only_fields = fields


class ClaimedRequestSerializer(serializers.ModelSerializer):
    """
    A claimed request as shown to the claiming driver.

    Pass ``driver_location`` in the context to include the pickup distance
    and ETA.
    """
    requester = UserBasicSerializer(read_only=True)
    seconds_remaining = serializers.SerializerMethodField()
    pickup_distance_miles = serializers.SerializerMethodField()
    eta_minutes = serializers.SerializerMethodField()

    class Meta:
        model = AssistanceRequest
        fields = ['id', 'requester', 'status', 'service_type',
                  'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'dropoff_latitude', 'dropoff_longitude', 'dropoff_address',
                  'customer_notes', 'claim_expires_at', 'seconds_remaining',
                  'pickup_distance_miles', 'eta_minutes']
        read_only_fields = fields

    def get_seconds_remaining(self, obj):
        if obj.claim_expires_at is None:
            return 0
        remaining = (obj.claim_expires_at - timezone.now()).total_seconds()
        return max(0, int(remaining))

    def _pickup_miles(self, obj):
        driver_location = self.context.get("driver_location")
        if driver_location is None:
            return None
        return km_to_miles(distance_km(driver_location, obj.pickup_location))

    def get_pickup_distance_miles(self, obj):
        miles = self._pickup_miles(obj)
        return round(miles, 1) if miles is not None else None

    def get_eta_minutes(self, obj):
        miles = self._pickup_miles(obj)
        return estimate_eta_minutes(miles) if miles is not None else None


class AssistanceRequestCreateSerializer(serializers.Serializer):
    """Serializer for creating assistance requests"""
    pickup_latitude = serializers.FloatField(min_value=-90, max_value=90)
    pickup_longitude = serializers.FloatField(min_value=-180, max_value=180)
    pickup_address = serializers.CharField(required=False, allow_blank=True, default="")
    dropoff_latitude = serializers.FloatField(min_value=-90, max_value=90)
    dropoff_longitude = serializers.FloatField(min_value=-180, max_value=180)
    dropoff_address = serializers.CharField(required=False, allow_blank=True, default="")
    service_type = serializers.ChoiceField(
        choices=AssistanceRequest.ServiceType.choices,
        default=AssistanceRequest.ServiceType.TOW,
    )
    customer_notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        for prefix in ("pickup", "dropoff"):
            location = Location(attrs[f"{prefix}_latitude"], attrs[f"{prefix}_longitude"])
            if location.is_unset:
                raise serializers.ValidationError({f"{prefix}_latitude": "Location (0, 0) is not allowed"})
        return attrs


class RequestCancelSerializer(serializers.Serializer):
    """Serializer for request cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True)


class TripSerializer(serializers.ModelSerializer):
    """Serializer for trips"""
    commuter = UserBasicSerializer(read_only=True)
    driver = DriverBasicSerializer(read_only=True)

    class Meta:
        model = Trip
        fields = ['id', 'request', 'commuter', 'driver', 'status',
                  'pickup_latitude', 'pickup_longitude', 'pickup_address',
                  'dropoff_latitude', 'dropoff_longitude', 'dropoff_address',
                  'start_time', 'arrival_time', 'started_at', 'completion_time',
                  'distance_km', 'estimated_price', 'final_price']
        read_only_fields = fields


class TripStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Trip.Status.choices)


class TripLocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)

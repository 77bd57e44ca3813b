from rest_framework import serializers
from drivers.models import Driver
from accounts.serializers import UserBasicSerializer


class DriverProfileSerializer(serializers.ModelSerializer):
    """
    Full driver profile serializer
    """
    user = UserBasicSerializer(read_only=True)

    class Meta:
        model = Driver
        fields = [
            "id",
            "user",
            "is_available",
            "is_verified",
            "is_actively_driving",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "service_radius_km",
            "vehicle_make",
            "vehicle_model",
            "vehicle_year",
            "license_plate",
            "towing_capacity",
            "total_trips",
        ]
        read_only_fields = [
            "id",
            "is_available",
            "is_verified",
            "is_actively_driving",
            "current_latitude",
            "current_longitude",
            "last_location_update",
            "total_trips",
        ]


class DriverBasicSerializer(serializers.ModelSerializer):
    """
    Lite version of driver info shown to commuters once a request is accepted.
    """
    username = serializers.CharField(source="user.username", read_only=True)
    phone_number = serializers.CharField(source="user.phone_number", read_only=True)

    class Meta:
        model = Driver
        fields = [
            "id",
            "username",
            "phone_number",
            "vehicle_make",
            "vehicle_model",
            "license_plate",
            "current_latitude",
            "current_longitude",
        ]


class DriverAvailabilitySerializer(serializers.Serializer):
    """
    Serializer for taking a driver online or offline.
    A location is optional if one is already stored.
    """
    is_available = serializers.BooleanField()
    latitude = serializers.FloatField(min_value=-90, max_value=90, required=False)
    longitude = serializers.FloatField(min_value=-180, max_value=180, required=False)

    def validate(self, attrs):
        if ("latitude" in attrs) != ("longitude" in attrs):
            raise serializers.ValidationError("latitude and longitude must be sent together")
        return attrs


class LocationUpdateSerializer(serializers.Serializer):
    """
    Serializer for updating driver GPS location.
    """
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from assistance.models import Trip
from assistance.serializers import ClaimedRequestSerializer, TripSerializer
from drivers.serializers import (
    DriverAvailabilitySerializer,
    DriverProfileSerializer,
    LocationUpdateSerializer,
)
from services.claims.exceptions import DriverNotFoundError, InvalidLocationError
from services.request_management import claimed_requests_for_driver, get_current_trip

from drivers import services


# Utility: Ensure request.user is a driver
def require_driver(user):
    if not user.is_driver:
        return False, Response({"error": "Only drivers allowed"}, status=403)
    try:
        return True, services.get_driver_for_user(user)
    except DriverNotFoundError:
        return False, Response({"error": "Driver profile not found"}, status=404)


class DriverProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile  # Response object

        serializer = DriverProfileSerializer(profile, context={"request": request})
        return Response(serializer.data)

    def patch(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = DriverProfileSerializer(profile, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()

        return Response(serializer.data, status=200)


class DriverAvailabilityView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({
            "is_available": profile.is_available,
            "is_actively_driving": profile.is_actively_driving,
        })

    def put(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = DriverAvailabilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            services.update_driver_availability(
                profile,
                data["is_available"],
                data.get("latitude"),
                data.get("longitude"),
            )
        except InvalidLocationError as e:
            return Response({"error": str(e)}, status=400)

        return Response({
            "message": "You are now online" if profile.is_available else "You are now offline",
            "is_available": profile.is_available,
        })


#    Live location pings; the trip path log uses the trip endpoint instead.
class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({
            "latitude": profile.current_latitude,
            "longitude": profile.current_longitude,
            "last_updated": profile.last_location_update,
            "is_available": profile.is_available,
        })

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        try:
            services.update_driver_location(profile, lat, lon)
        except InvalidLocationError as e:
            return Response({"error": str(e)}, status=400)

        return Response({
            "message": "Location updated",
            "latitude": lat,
            "longitude": lon,
            "is_available": profile.is_available,
        })


#    HTTP fallback for the ws/driver/ live query.
class ClaimedRequestsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        requests = claimed_requests_for_driver(profile.id)
        serializer = ClaimedRequestSerializer(
            requests,
            many=True,
            context={"request": request, "driver_location": profile.location},
        )
        return Response({"requests": serializer.data, "count": len(serializer.data)})


class DriverCurrentTripView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        trip = get_current_trip(profile)
        if not trip:
            return Response({"message": "No active trip"}, status=404)

        serializer = TripSerializer(trip, context={"request": request})
        return Response(serializer.data)


class DriverTripHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        completed = Trip.objects.filter(driver=profile, status=Trip.Status.COMPLETED)
        serializer = TripSerializer(completed, many=True, context={"request": request})

        return Response({"count": completed.count(), "trips": serializer.data})

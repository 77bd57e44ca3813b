from django.urls import path
from .views import (
    DriverProfileView,
    DriverAvailabilityView,
    DriverLocationUpdateView,
    ClaimedRequestsView,
    DriverCurrentTripView,
    DriverTripHistoryView,
)

urlpatterns = [
    path("profile/", DriverProfileView.as_view(), name="driver-profile"),
    path("availability/", DriverAvailabilityView.as_view(), name="driver-availability"),
    path("location/", DriverLocationUpdateView.as_view(), name="driver-location"),
    path("claimed-requests/", ClaimedRequestsView.as_view(), name="driver-claimed-requests"),
    path("current-trip/", DriverCurrentTripView.as_view(), name="driver-current-trip"),
    path("history/", DriverTripHistoryView.as_view(), name="driver-history"),
]

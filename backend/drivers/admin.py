from django.contrib import admin
from drivers.models import Driver


@admin.register(Driver)
class DriverAdmin(admin.ModelAdmin):
    """Admin panel for managing Drivers"""

    list_display = [
        "user",
        "license_plate",
        "is_available",
        "is_actively_driving",
        "is_verified",
        "geohash",
        "last_location_update",
    ]

    list_filter = [
        "is_available",
        "is_actively_driving",
        "is_verified",
    ]

    search_fields = [
        "user__username",
        "license_plate",
    ]

    readonly_fields = [
        "geohash",
        "last_location_update",
        "total_trips",
    ]

    ordering = ("user__username",)

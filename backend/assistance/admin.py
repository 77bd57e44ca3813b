from django.contrib import admin
from .models import AssistanceRequest, Trip


@admin.register(AssistanceRequest)
class AssistanceRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'requester', 'service_type', 'status', 'claimed_by_driver',
                    'claim_expires_at', 'created_at']
    list_filter = ['status', 'service_type', 'created_at']
    search_fields = ['requester__username', 'pickup_address', 'dropoff_address']
    # Claim fields change only through claim transactions
    readonly_fields = ['status', 'claimed_by_driver', 'claim_expires_at', 'notified_driver_ids',
                       'matched_driver', 'version', 'created_at', 'updated_at',
                       'accepted_at', 'cancelled_at']


@admin.register(Trip)
class TripAdmin(admin.ModelAdmin):
    list_display = ['id', 'request', 'driver', 'commuter', 'status', 'start_time', 'completion_time']
    list_filter = ['status', 'start_time']
    search_fields = ['commuter__username', 'driver__user__username']
    readonly_fields = ['start_time', 'driver_path']

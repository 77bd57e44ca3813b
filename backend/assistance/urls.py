from django.urls import path
from . import views

app_name = 'assistance'

urlpatterns = [
    # Commuter APIs
    path('requests/', views.create_request, name='create-request'),
    path('requests/current/', views.get_current_request, name='current-request'),
    path('requests/searching/', views.searching_requests, name='searching-requests'),
    path('requests/<int:request_id>/', views.get_request, name='request-detail'),
    path('requests/<int:request_id>/cancel/', views.cancel_request, name='cancel-request'),

    # Driver claim actions
    path('requests/<int:request_id>/accept/', views.accept_request, name='accept-request'),
    path('requests/<int:request_id>/decline/', views.decline_request, name='decline-request'),
    path('requests/<int:request_id>/driver-cancel/', views.driver_cancel_request, name='driver-cancel-request'),

    # Trips
    path('trips/<int:trip_id>/status/', views.update_trip_status, name='trip-status'),
    path('trips/<int:trip_id>/location/', views.record_trip_location, name='trip-location'),
]

from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # simplejwt token and refresh endpoints

    # Driver APIs (profile, availability, location, claimed requests, trips)
    path('api/driver/', include('drivers.urls')),

    # Assistance endpoints (requests, claim actions, trips)
    path('api/assistance/', include('assistance.urls')),
]

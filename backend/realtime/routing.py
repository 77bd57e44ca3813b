"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.driver_consumer import DriverConsumer
from .consumers.dispatch_consumer import DispatchConsumer

websocket_urlpatterns = [
    # Claimed requests for the connected driver
    # URL: ws://localhost:8000/ws/driver/
    re_path(
        r"ws/driver/$",
        DriverConsumer.as_asgi(),
        name="driver-ws"
    ),

    # Requests still searching for a driver
    # URL: ws://localhost:8000/ws/dispatch/
    re_path(
        r"ws/dispatch/$",
        DispatchConsumer.as_asgi(),
        name="dispatch-ws"
    ),
]

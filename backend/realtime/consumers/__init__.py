"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .driver_consumer import DriverConsumer
from .dispatch_consumer import DispatchConsumer

__all__ = [
    "BaseConsumer",
    "DriverConsumer",
    "DispatchConsumer",
]

"""Fare and ETA estimates shown to drivers and stored on trips."""

from decimal import Decimal
from math import ceil

KM_PER_MILE = 1.609344
AVERAGE_SPEED_MPH = 25

# Flat tow rate; distance-based pricing is not offered yet
BASE_TOW_PRICE = Decimal("75.00")


def km_to_miles(km: float) -> float:
    return km / KM_PER_MILE


def estimate_eta_minutes(distance_miles: float) -> int:
    """Minutes to cover a distance at average city speed, rounded up."""
    return ceil((distance_miles / AVERAGE_SPEED_MPH) * 60)

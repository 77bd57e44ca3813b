"""Common utility functions."""

from .geo import (
    Location,
    calculate_distance,
    decode_geohash,
    distance_km,
    encode_geohash,
    geohash_query_bounds,
    validate_coordinates,
)
from .fares import BASE_TOW_PRICE, estimate_eta_minutes, km_to_miles

__all__ = [
    "Location",
    "calculate_distance",
    "decode_geohash",
    "distance_km",
    "encode_geohash",
    "geohash_query_bounds",
    "validate_coordinates",
    "estimate_eta_minutes",
    "BASE_TOW_PRICE",
    "km_to_miles",
]

"""
Geographic utility functions.

This module provides the proximity index used by driver matching:
    - geohash encoding/decoding (the sortable proximity key)
    - great-circle distance
    - the set of geohash key ranges covering a disc around a point

Every range set returned by ``geohash_query_bounds`` is a superset of the
points inside the radius. Callers must still filter candidates by
``distance_km``.
"""

from dataclasses import dataclass
from math import asin, ceil, cos, degrees, floor, log2, radians, sin, sqrt
from typing import List, Tuple

EARTH_RADIUS_KM = 6371.0

# Precision used for stored driver keys (~1m cells)
GEOHASH_PRECISION = 10
BITS_PER_CHAR = 5
MAXIMUM_BITS_PRECISION = 22 * BITS_PER_CHAR

# Base32 alphabet for geohash
_BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"

# Sorts after every base32 character
_RANGE_END = "~"

# Float headroom so the covering box never undershoots the disc
_BOX_SLACK = 1.0001


@dataclass(frozen=True)
class Location:
    """A validated latitude/longitude pair."""
    latitude: float
    longitude: float

    def __post_init__(self):
        validate_coordinates(self.latitude, self.longitude)

    @property
    def is_unset(self) -> bool:
        return self.latitude == 0 and self.longitude == 0

    def as_dict(self):
        return {"latitude": self.latitude, "longitude": self.longitude}


def validate_coordinates(lat: float, lon: float) -> None:
    """Raise ValueError for a latitude/longitude outside the valid range."""
    if lat is None or lon is None:
        raise ValueError("Latitude and longitude are required")
    if not -90.0 <= float(lat) <= 90.0:
        raise ValueError(f"Latitude must be within [-90, 90], got {lat}")
    if not -180.0 <= float(lon) <= 180.0:
        raise ValueError(f"Longitude must be within [-180, 180], got {lon}")


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in kilometers using Haversine formula.

    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point

    Returns:
        Distance in kilometers
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(min(1.0, sqrt(a)))
    return c * EARTH_RADIUS_KM


def distance_km(a: Location, b: Location) -> float:
    """Great-circle distance between two locations, in kilometers."""
    return calculate_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def encode_geohash(lat: float, lon: float, precision: int = GEOHASH_PRECISION) -> str:
    """
    Encode latitude/longitude to geohash string.

    Args:
        lat: Latitude (-90 to 90)
        lon: Longitude (-180 to 180)
        precision: Number of characters (1-22)

    Returns:
        Geohash string
    """
    validate_coordinates(lat, lon)
    if not 1 <= precision <= MAXIMUM_BITS_PRECISION // BITS_PER_CHAR:
        raise ValueError(f"Geohash precision must be within [1, 22], got {precision}")

    lat_range = (-90.0, 90.0)
    lon_range = (-180.0, 180.0)

    geohash = []
    bits = [16, 8, 4, 2, 1]
    bit = 0
    ch = 0
    is_lon = True

    while len(geohash) < precision:
        if is_lon:
            mid = (lon_range[0] + lon_range[1]) / 2
            if lon >= mid:
                ch |= bits[bit]
                lon_range = (mid, lon_range[1])
            else:
                lon_range = (lon_range[0], mid)
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if lat >= mid:
                ch |= bits[bit]
                lat_range = (mid, lat_range[1])
            else:
                lat_range = (lat_range[0], mid)

        is_lon = not is_lon

        if bit < 4:
            bit += 1
        else:
            geohash.append(_BASE32[ch])
            bit = 0
            ch = 0

    return "".join(geohash)


def decode_geohash(geohash: str) -> Location:
    """Return the center point of a geohash cell."""
    if not geohash:
        raise ValueError("Geohash must be a non-empty string")

    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    is_lon = True

    for char in geohash:
        value = _BASE32.find(char)
        if value < 0:
            raise ValueError(f"Invalid geohash character {char!r} in {geohash!r}")
        for shift in range(BITS_PER_CHAR - 1, -1, -1):
            target = lon_range if is_lon else lat_range
            mid = (target[0] + target[1]) / 2
            if (value >> shift) & 1:
                target[0] = mid
            else:
                target[1] = mid
            is_lon = not is_lon

    return Location(
        latitude=(lat_range[0] + lat_range[1]) / 2,
        longitude=(lon_range[0] + lon_range[1]) / 2,
    )


def wrap_longitude(lon: float) -> float:
    """Wrap a longitude into [-180, 180]."""
    if -180.0 <= lon <= 180.0:
        return lon
    adjusted = lon + 180.0
    if adjusted > 0:
        return (adjusted % 360.0) - 180.0
    return 180.0 - (-adjusted % 360.0)


def _covering_box(lat: float, lon: float, radius_meters: float) -> Tuple[float, float, float]:
    """
    Spherical bounding box of a disc: (south, north, longitude half-width).

    A disc that reaches a pole spans every longitude.
    """
    angular = radius_meters / (EARTH_RADIUS_KM * 1000.0)
    lat_delta = degrees(angular) * _BOX_SLACK
    north = lat + lat_delta
    south = lat - lat_delta
    if north >= 90.0 or south <= -90.0:
        return max(-90.0, south), min(90.0, north), 180.0

    ratio = sin(angular) / cos(radians(lat))
    if ratio >= 1.0:
        return south, north, 180.0
    return south, north, min(180.0, degrees(asin(ratio)) * _BOX_SLACK)


def _bits_for_span(span_degrees: float, full_degrees: float) -> int:
    """Bisections of ``full_degrees`` that keep a cell at least ``span_degrees`` wide."""
    if span_degrees <= 0:
        return MAXIMUM_BITS_PRECISION
    return max(0, floor(log2(full_degrees / span_degrees)))


def _range_for_cell(geohash: str, bits: int) -> Tuple[str, str]:
    """Key range [start, end] of all geohashes sharing the first ``bits`` bits."""
    precision = ceil(bits / BITS_PER_CHAR)
    if len(geohash) < precision:
        return geohash, geohash + _RANGE_END

    geohash = geohash[:precision]
    base = geohash[:-1]
    last_value = _BASE32.index(geohash[-1])
    significant_bits = bits - len(base) * BITS_PER_CHAR
    unused_bits = BITS_PER_CHAR - significant_bits

    start_value = (last_value >> unused_bits) << unused_bits
    end_value = start_value + (1 << unused_bits)
    if end_value > 31:
        return base + _BASE32[start_value], base + _RANGE_END
    return base + _BASE32[start_value], base + _BASE32[end_value]


def geohash_query_bounds(lat: float, lon: float, radius_meters: float) -> List[Tuple[str, str]]:
    """
    Get the geohash key ranges that cover the disc around a point.

    The cell size is chosen so that every cell is at least as tall and as wide
    as the disc's bounding half-box. Sampling the 3x3 grid of box corners, edge
    midpoints and center then touches every cell that overlaps the disc.

    Args:
        lat: Center latitude
        lon: Center longitude
        radius_meters: Search radius in meters

    Returns:
        Ordered, de-duplicated list of inclusive (start, end) key ranges
    """
    validate_coordinates(lat, lon)
    if radius_meters < 0:
        raise ValueError("Radius must not be negative")

    south, north, lon_delta = _covering_box(lat, lon, radius_meters)
    lat_delta = max(north - lat, lat - south)

    lat_bits = _bits_for_span(lat_delta, 180.0)
    lon_bits = _bits_for_span(lon_delta, 360.0)
    # Stored keys are GEOHASH_PRECISION chars long; finer ranges would skip them
    query_bits = max(1, min(2 * lat_bits, 2 * lon_bits - 1, GEOHASH_PRECISION * BITS_PER_CHAR))
    precision = ceil(query_bits / BITS_PER_CHAR)

    samples = []
    for sample_lat in (lat, north, south):
        for sample_lon in (lon, lon - lon_delta, lon + lon_delta):
            samples.append((sample_lat, wrap_longitude(sample_lon)))

    bounds: List[Tuple[str, str]] = []
    for sample_lat, sample_lon in samples:
        bound = _range_for_cell(encode_geohash(sample_lat, sample_lon, precision), query_bits)
        if bound not in bounds:
            bounds.append(bound)
    return bounds

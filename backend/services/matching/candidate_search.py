"""
Find the closest available driver to a pickup point.

Uses the geohash proximity key on Driver: one range query per covering key
range (issued concurrently), then an exact distance filter.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from drivers.models import Driver
from common.utils.geo import Location, distance_km, geohash_query_bounds

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """Closest qualifying driver and their distance from the pickup."""
    driver_id: int
    distance_km: float


async def _fetch_range(start: str, end: str) -> List[Driver]:
    queryset = (
        Driver.objects
        .filter(is_available=True, geohash__gte=start, geohash__lte=end)
        .order_by("geohash", "pk")
    )
    return [driver async for driver in queryset]


async def find_closest_driver(
    location: Location,
    radius_km: float,
    exclude_ids: Iterable[int] = (),
) -> Optional[Candidate]:
    """
    Return the nearest available driver within ``radius_km``, or None.

    Drivers in ``exclude_ids`` are never returned. Ties on distance go to the
    first driver encountered (range order, then geohash, then id), which is
    deterministic for a given store state but otherwise unspecified.

    Args:
        location: Pickup location
        radius_km: Search radius in kilometers
        exclude_ids: Driver IDs that were already notified for this request

    Returns:
        Candidate with driver_id and distance_km, or None if nobody qualifies
    """
    bounds = geohash_query_bounds(location.latitude, location.longitude, radius_km * 1000)
    logger.debug("Generated %d geohash query bounds for %s", len(bounds), location)

    # Scatter-gather: the per-range queries are independent
    results = await asyncio.gather(*(_fetch_range(start, end) for start, end in bounds))

    excluded = set(exclude_ids)
    candidates: Dict[int, Driver] = {}
    for drivers in results:
        for driver in drivers:
            if driver.pk in excluded or driver.pk in candidates:
                continue
            if driver.location is None:
                continue
            candidates[driver.pk] = driver

    closest: Optional[Tuple[int, float]] = None
    for driver_id, driver in candidates.items():
        distance = distance_km(location, driver.location)
        if distance > radius_km:
            continue
        if closest is None or distance < closest[1]:
            closest = (driver_id, distance)

    if closest is None:
        logger.info("No available drivers within %skm of %s", radius_km, location)
        return None

    logger.info("Found closest driver %s at %.3fkm", closest[0], closest[1])
    return Candidate(driver_id=closest[0], distance_km=closest[1])

"""
Driver matching and claim expiry service.

This module handles:
    - Finding the closest available driver (geohash range scatter-gather)
    - Match attempts that claim a request for that driver
    - Sweeping expired claims and reassigning them
    - Cancelling requests past their absolute expiry
"""

from .candidate_search import Candidate, find_closest_driver
from .orchestrator import attempt_match, match_radius_km
from .expiry_scanner import (
    ExpiryScanner,
    SweepResult,
    cancel_expired_requests,
    reassign_expired_claim,
    run_sweep,
    sweep,
)

__all__ = [
    "Candidate",
    "find_closest_driver",
    "attempt_match",
    "match_radius_km",
    "ExpiryScanner",
    "SweepResult",
    "cancel_expired_requests",
    "reassign_expired_claim",
    "run_sweep",
    "sweep",
]

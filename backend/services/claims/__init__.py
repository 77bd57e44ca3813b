"""
Claim transactions - the only writers of a request's claim fields.

This module handles:
    - Claiming a searching request for one driver
    - Accepting / declining a claim
    - Releasing expired claims
    - Cancelling requests (by the requester, the claiming driver or TTL expiry)
"""

from .transactions import (
    accept,
    array_union,
    cancel,
    cancel_if_expired,
    claim,
    claim_async,
    decline,
    expire_reset,
    expire_reset_async,
    load_request,
    run_request_transaction,
)
from .exceptions import (
    MatchingError,
    RequestNotFoundError,
    StatePreconditionError,
    AlreadyClaimedOrGoneError,
    WrongStateError,
    WrongClaimantError,
    ClaimExpiredError,
    TransientStoreError,
)

__all__ = [
    # Transactions
    "accept",
    "array_union",
    "cancel",
    "cancel_if_expired",
    "claim",
    "claim_async",
    "decline",
    "expire_reset",
    "expire_reset_async",
    "load_request",
    "run_request_transaction",
    # Exceptions
    "MatchingError",
    "RequestNotFoundError",
    "StatePreconditionError",
    "AlreadyClaimedOrGoneError",
    "WrongStateError",
    "WrongClaimantError",
    "ClaimExpiredError",
    "TransientStoreError",
]

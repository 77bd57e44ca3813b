"""Custom exceptions for request matching and the claim lifecycle."""

NO_LONGER_AVAILABLE = "This request is no longer available"


class MatchingError(Exception):
    """Base class for errors raised by the matching services."""
    pass


class RequestNotFoundError(MatchingError):
    """Raised when a request cannot be found or its stored document is unusable."""
    pass


class StatePreconditionError(MatchingError):
    """
    Raised when a transactional precondition fails because another actor won a race.

    Orchestrator and scanner treat this as a benign no-op. Drivers calling
    accept/decline see ``user_message``.
    """
    user_message = NO_LONGER_AVAILABLE


class AlreadyClaimedOrGoneError(StatePreconditionError):
    """Raised when a claim is attempted on a request that is no longer searching."""
    pass


class WrongStateError(StatePreconditionError):
    """Raised when a request is not in the state the operation needs."""
    pass


class WrongClaimantError(StatePreconditionError):
    """Raised when the caller is not the driver holding the claim."""
    pass


class ClaimExpiredError(StatePreconditionError):
    """Raised when the acceptance window of a claim has passed."""
    pass


class TransientStoreError(MatchingError):
    """Raised when a transaction keeps conflicting or the database is unavailable."""
    pass


class DriverNotFoundError(MatchingError):
    """Raised when a driver profile cannot be found."""
    pass


class TripNotFoundError(MatchingError):
    """Raised when a trip cannot be found."""
    pass


class InvalidTripTransitionError(MatchingError):
    """Raised when a trip status change is not allowed."""
    pass


class InvalidLocationError(MatchingError):
    """Raised for coordinates that are out of range or unset."""
    pass


class ServiceUnavailableError(MatchingError):
    """Raised when a request asks for a service type that is not offered yet."""
    pass


class ActiveRequestExistsError(MatchingError):
    """Raised when a commuter already has an active request."""
    pass

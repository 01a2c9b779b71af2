"""Application-level exceptions raised by the risk scoring services."""

from typing import Optional
from uuid import UUID


class FleetSafetyError(Exception):
    """Base class for application errors."""


class TripNotFoundError(FleetSafetyError):
    """Raised when a trip does not exist."""

    def __init__(self, trip_id: UUID):
        self.trip_id = trip_id
        super().__init__(f"Trip with ID {trip_id} not found")


class CriticalFailureNotFoundError(FleetSafetyError):
    """Raised when a critical failure does not exist for a trip."""

    def __init__(self, failure_id: UUID, trip_id: Optional[UUID] = None):
        self.failure_id = failure_id
        self.trip_id = trip_id
        super().__init__(f"Critical failure with ID {failure_id} not found")


class ScoringUnavailableError(FleetSafetyError):
    """Raised when risk inputs could not be fetched.

    Callers must treat this as "unknown risk" and refuse dispatch. It is
    never converted into a zero score.
    """

    def __init__(self, trip_id: Optional[UUID], stream: str, cause: Optional[BaseException] = None):
        self.trip_id = trip_id
        self.stream = stream
        self.cause = cause
        target = f"trip {trip_id}" if trip_id else "request"
        super().__init__(f"Risk scoring unavailable for {target}: failed to load {stream}")


class ConcurrentSnapshotUpdateError(FleetSafetyError):
    """Raised when a risk snapshot write loses an optimistic version check."""

    def __init__(self, trip_id: UUID, expected_version: int, actual_version: Optional[int] = None):
        self.trip_id = trip_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Risk snapshot for trip {trip_id} was updated concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )

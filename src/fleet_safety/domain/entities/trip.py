"""Trip aggregate root."""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Set, TYPE_CHECKING
from uuid import UUID, uuid4

from ..value_objects.risk import RiskLevel

if TYPE_CHECKING:
    from ..value_objects.risk import RiskScoreBreakdown


class TripStatus(Enum):
    """Trip lifecycle status."""
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


_ALLOWED_TRANSITIONS: Dict[TripStatus, Set[TripStatus]] = {
    TripStatus.DRAFT: {TripStatus.SUBMITTED},
    TripStatus.SUBMITTED: {TripStatus.UNDER_REVIEW, TripStatus.APPROVED, TripStatus.REJECTED},
    TripStatus.UNDER_REVIEW: {TripStatus.APPROVED, TripStatus.REJECTED},
    TripStatus.APPROVED: {TripStatus.COMPLETED},
    TripStatus.REJECTED: {TripStatus.DRAFT},
    TripStatus.COMPLETED: set(),
}


class Trip:
    """Trip entity tying together inspections, signals and the risk snapshot.

    The ``aggregate_score`` / ``risk_level`` pair is a persisted snapshot of
    the last computed breakdown. It is only refreshed through
    ``apply_risk_snapshot`` and may lag behind signals that arrived later.
    """

    def __init__(
        self,
        driver_id: UUID,
        vehicle_id: Optional[UUID] = None,
        trip_id: Optional[UUID] = None,
        trip_date: Optional[datetime] = None,
        status: TripStatus = TripStatus.DRAFT,
        aggregate_score: Optional[int] = None,
        risk_level: Optional[RiskLevel] = None,
        snapshot_at: Optional[datetime] = None,
        critical_override: bool = False,
        version: int = 0,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        """Initialize trip entity."""
        if not isinstance(driver_id, UUID):
            raise ValueError("Driver ID must be a UUID")
        if not isinstance(status, TripStatus):
            raise ValueError("Status must be a TripStatus enum")
        if version < 0:
            raise ValueError("Version cannot be negative")

        self._id = trip_id or uuid4()
        self._driver_id = driver_id
        self._vehicle_id = vehicle_id
        self._trip_date = trip_date or datetime.utcnow()
        self._status = status
        self._aggregate_score = aggregate_score
        self._risk_level = risk_level
        self._snapshot_at = snapshot_at
        self._critical_override = critical_override
        self._version = version
        self._created_at = created_at or datetime.utcnow()
        self._updated_at = updated_at or datetime.utcnow()

    @property
    def id(self) -> UUID:
        """Get trip ID."""
        return self._id

    @property
    def driver_id(self) -> UUID:
        """Get driver ID."""
        return self._driver_id

    @property
    def vehicle_id(self) -> Optional[UUID]:
        """Get vehicle ID."""
        return self._vehicle_id

    @property
    def trip_date(self) -> datetime:
        """Get trip date."""
        return self._trip_date

    @property
    def status(self) -> TripStatus:
        """Get trip status."""
        return self._status

    @property
    def aggregate_score(self) -> Optional[int]:
        """Get the persisted total score snapshot."""
        return self._aggregate_score

    @property
    def risk_level(self) -> Optional[RiskLevel]:
        """Get the persisted risk level snapshot."""
        return self._risk_level

    @property
    def snapshot_at(self) -> Optional[datetime]:
        """Get when the risk snapshot was last refreshed."""
        return self._snapshot_at

    @property
    def critical_override(self) -> bool:
        """Check if a supervisor granted a critical-failure override."""
        return self._critical_override

    @property
    def version(self) -> int:
        """Get the optimistic concurrency version."""
        return self._version

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    def is_editable(self) -> bool:
        """Check if inspection answers may still change."""
        return self._status == TripStatus.DRAFT

    def is_completed(self) -> bool:
        """Check if the trip finished and counts toward history."""
        return self._status == TripStatus.COMPLETED

    def has_snapshot(self) -> bool:
        """Check if a risk snapshot was ever stored."""
        return self._snapshot_at is not None

    def is_snapshot_stale(self, since: datetime) -> bool:
        """Check if the snapshot predates the given point in time."""
        return self._snapshot_at is None or self._snapshot_at < since

    def submit(self) -> None:
        """Submit the trip for review."""
        self._transition(TripStatus.SUBMITTED)

    def withdraw_submission(self) -> None:
        """Return a submitted trip to draft when its first snapshot could not be stored."""
        if self._status != TripStatus.SUBMITTED:
            raise ValueError(f"Cannot withdraw a trip in status {self._status.value}")
        self._status = TripStatus.DRAFT
        self._touch()

    def start_review(self) -> None:
        """Move a submitted trip under supervisor review."""
        self._transition(TripStatus.UNDER_REVIEW)

    def approve(self) -> None:
        """Approve the trip for dispatch."""
        self._transition(TripStatus.APPROVED)

    def reject(self) -> None:
        """Reject the trip."""
        self._transition(TripStatus.REJECTED)

    def reopen(self) -> None:
        """Return a rejected trip to draft for corrections."""
        self._transition(TripStatus.DRAFT)
        self._critical_override = False

    def complete(self) -> None:
        """Mark an approved trip as completed."""
        self._transition(TripStatus.COMPLETED)

    def grant_critical_override(self) -> None:
        """Record a supervisor override for unresolved critical failures."""
        if self._status not in (TripStatus.SUBMITTED, TripStatus.UNDER_REVIEW):
            raise ValueError("Critical override can only be granted while the trip awaits review")
        self._critical_override = True
        self._touch()

    def apply_risk_snapshot(self, breakdown: "RiskScoreBreakdown", computed_at: Optional[datetime] = None) -> None:
        """Store a freshly computed breakdown as the trip's snapshot."""
        self._aggregate_score = breakdown.total_score
        self._risk_level = breakdown.risk_level
        self._snapshot_at = computed_at or datetime.utcnow()
        self._version += 1
        self._touch()

    def _transition(self, target: TripStatus) -> None:
        """Apply a status transition if the lifecycle allows it."""
        if target not in _ALLOWED_TRANSITIONS[self._status]:
            raise ValueError(
                f"Cannot move trip from {self._status.value} to {target.value}"
            )
        self._status = target
        self._touch()

    def _touch(self) -> None:
        self._updated_at = datetime.utcnow()

    def __eq__(self, other: object) -> bool:
        """Check equality based on trip ID."""
        if not isinstance(other, Trip):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        """Hash based on trip ID."""
        return hash(self._id)

    def __str__(self) -> str:
        """String representation."""
        return f"Trip({self._id}, {self._status.value})"

    def __repr__(self) -> str:
        """Detailed string representation."""
        return (
            f"Trip(id={self._id}, driver_id={self._driver_id}, status={self._status.value}, "
            f"aggregate_score={self._aggregate_score}, version={self._version})"
        )

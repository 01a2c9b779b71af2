"""Persisted risk snapshot views."""

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple
from uuid import UUID

from .risk import ModuleRiskScore, RiskLevel, RiskScoreBreakdown

if TYPE_CHECKING:
    from ..entities.trip import Trip


@dataclass(frozen=True)
class RiskSnapshot:
    """The last risk result stored on a trip.

    May be stale: signals that arrived after ``snapshot_at`` are not
    reflected. Use a recalculation when a current value is required.
    """

    trip_id: UUID
    aggregate_score: Optional[int]
    risk_level: Optional[RiskLevel]
    snapshot_at: Optional[datetime]
    version: int

    @property
    def exists(self) -> bool:
        """Check if a snapshot was ever stored."""
        return self.snapshot_at is not None

    @classmethod
    def of(cls, trip: "Trip") -> "RiskSnapshot":
        """Build the snapshot view of a trip."""
        return cls(
            trip_id=trip.id,
            aggregate_score=trip.aggregate_score,
            risk_level=trip.risk_level,
            snapshot_at=trip.snapshot_at,
            version=trip.version,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize snapshot for API consumers."""
        return {
            "tripId": str(self.trip_id),
            "aggregateScore": self.aggregate_score,
            "riskLevel": self.risk_level.value if self.risk_level else None,
            "snapshotAt": self.snapshot_at.isoformat() if self.snapshot_at else None,
            "version": self.version,
            "isSnapshot": True,
        }


@dataclass(frozen=True)
class SnapshotRecalculation:
    """Outcome of refreshing a trip's risk snapshot."""

    trip: "Trip"
    breakdown: RiskScoreBreakdown
    module_scores: Tuple[ModuleRiskScore, ...]
    previous_score: Optional[int]
    previous_risk_level: Optional[RiskLevel]

    @property
    def score_change(self) -> int:
        """Get the change of the total score against the previous snapshot."""
        return self.breakdown.total_score - (self.previous_score or 0)

    @property
    def risk_level_changed(self) -> bool:
        """Check if the risk level moved."""
        return self.previous_risk_level != self.breakdown.risk_level

    def to_dict(self) -> Dict[str, Any]:
        """Serialize recalculation for API consumers."""
        return {
            "snapshot": RiskSnapshot.of(self.trip).to_dict(),
            "comprehensiveRiskScore": self.breakdown.to_dict(),
            "moduleRiskScores": [module.to_dict() for module in self.module_scores],
            "changes": {
                "previousScore": self.previous_score,
                "newScore": self.breakdown.total_score,
                "scoreChange": self.score_change,
                "previousRiskLevel": self.previous_risk_level.value if self.previous_risk_level else None,
                "newRiskLevel": self.breakdown.risk_level.value,
                "riskLevelChanged": self.risk_level_changed,
            },
        }

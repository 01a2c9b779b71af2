"""Critical-failure override decision value objects."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple
from uuid import UUID

from .risk import RiskLevel

if TYPE_CHECKING:
    from ..entities.critical_failure import CriticalFailure


@dataclass(frozen=True)
class OverrideRecommendations:
    """Follow-up actions suggested by the override decision."""

    requires_supervisor_approval: bool
    requires_mechanic_review: bool
    block_approval: bool


@dataclass(frozen=True)
class OverrideDecision:
    """Outcome of evaluating a trip's unresolved critical failures."""

    trip_id: UUID
    current_risk_level: Optional[RiskLevel]
    current_override: bool
    total_critical_points: float
    needs_override: bool
    has_high_impact_failure: bool
    can_approve: bool
    unresolved_failures: Tuple["CriticalFailure", ...]
    recommendations: OverrideRecommendations

    @property
    def approval_blocked(self) -> bool:
        """Check if approval is impossible even with a supervisor override."""
        return self.has_high_impact_failure

    def to_dict(self) -> Dict[str, Any]:
        """Serialize decision for API consumers."""
        return {
            "tripId": str(self.trip_id),
            "currentRiskLevel": self.current_risk_level.value if self.current_risk_level else None,
            "currentOverride": self.current_override,
            "needsOverride": self.needs_override,
            "hasHighImpactFailure": self.has_high_impact_failure,
            "totalCriticalPoints": self.total_critical_points,
            "canApprove": self.can_approve,
            "unresolvedFailures": [failure.to_dict() for failure in self.unresolved_failures],
            "recommendations": {
                "requiresSupervisorApproval": self.recommendations.requires_supervisor_approval,
                "requiresMechanicReview": self.recommendations.requires_mechanic_review,
                "blockApproval": self.recommendations.block_approval,
            },
        }

"""Driver risk trend value objects."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class TrendDirection(Enum):
    """Direction of a driver's risk over the lookback window."""

    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class RiskTrend:
    """Rolling statistics over a driver's completed trips."""

    trend: TrendDirection
    average_score: float = 0.0
    risk_distribution: Dict[str, int] = field(default_factory=dict)
    improvement_rate: float = 0.0
    total_trips: int = 0

    @property
    def has_enough_data(self) -> bool:
        """Check if a direction could be computed."""
        return self.trend != TrendDirection.INSUFFICIENT_DATA

    def to_dict(self) -> Dict[str, Any]:
        """Serialize trend for API consumers."""
        return {
            "trend": self.trend.value,
            "averageScore": self.average_score,
            "riskDistribution": dict(self.risk_distribution),
            "improvementRate": self.improvement_rate,
            "totalTrips": self.total_trips,
        }

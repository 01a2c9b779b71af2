"""Aggregated in-trip and post-trip signal value objects."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class SpeedViolation:
    """Speed violation with its pre-assigned deduction."""

    points_deducted: int
    severity: str = "minor"
    violation_type: Optional[str] = None
    recorded_speed: Optional[float] = None
    speed_limit: Optional[float] = None
    occurred_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self) -> None:
        """Validate violation data."""
        if self.points_deducted < 0:
            raise ValueError("Violation points cannot be negative")


@dataclass(frozen=True)
class FatigueReading:
    """Single fatigue monitoring reading."""

    alert_level: str
    hours_driven: float = 0.0
    fatigue_score: Optional[float] = None
    recorded_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class InTripIncident:
    """Incident reported while the trip was underway."""

    severity: str
    incident_type: str = "road_hazard"
    description: str = ""
    occurred_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class RealTimeAlert:
    """Real-time alert raised during a trip."""

    severity: str
    acknowledged: bool = False
    title: str = ""
    alert_type: Optional[str] = None
    raised_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class PostTripInspectionItem:
    """Finding recorded during the post-trip inspection."""

    category: str
    condition_status: str
    requires_maintenance: bool = False
    maintenance_priority: Optional[str] = None
    points_deducted: int = 0
    critical: bool = False

    def __post_init__(self) -> None:
        """Validate inspection item data."""
        if self.points_deducted < 0:
            raise ValueError("Points deducted cannot be negative")


@dataclass(frozen=True)
class PostTripInspection:
    """Post-trip inspection with its findings."""

    status: str
    total_score: float = 0
    items: Tuple[PostTripInspectionItem, ...] = ()

    @property
    def is_completed(self) -> bool:
        """Check if the inspection was completed."""
        return self.status == "completed"

    @property
    def maintenance_items(self) -> Tuple[PostTripInspectionItem, ...]:
        """Get findings that were flagged for maintenance."""
        return tuple(item for item in self.items if item.requires_maintenance)


@dataclass(frozen=True)
class FuelRecord:
    """Fuel tracking record for a trip."""

    consumption_anomaly: bool = False
    anomaly_reason: Optional[str] = None
    total_fuel_consumed: Optional[float] = None
    distance_km: Optional[float] = None

"""Risk policy: every weight, multiplier and cutoff used by the scoring engine.

Policy values define the operational gate for vehicle dispatch. They are
injected into the scoring functions rather than read from module globals,
so a tenant or a regulator change can swap the policy without code changes.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict


def _default_module_multipliers() -> Dict[str, float]:
    return {
        "DRIVER_INFO": 0.8,
        "HEALTH_FITNESS": 1.5,
        "DOCUMENTATION": 1.2,
        "EXTERIOR_INSPECTION": 1.8,
        "ENGINE_FLUIDS": 1.6,
        "INTERIOR_CABIN": 1.4,
        "FUNCTIONAL_CHECKS": 2.0,
        "SAFETY_EQUIPMENT": 1.7,
        "FINAL_VERIFICATION": 1.3,
        "RISK_SCORING": 1.0,
        "SIGN_OFF": 0.5,
    }


def _default_critical_item_weights() -> Dict[str, float]:
    return {
        "Alcohol Breath Test/Drugs": 5.0,
        "Temperature Check": 3.0,
        "Brakes: Test brake function for responsiveness and effectiveness": 5.0,
        "Tires: Check for proper inflation, tread depth, and visible damage": 4.0,
        "Lights: Ensure headlights, taillights, brake lights, turn signals, and hazard lights are operational": 4.0,
        "All critical defects rectified before departure?": 5.0,
        "Vehicle safe and ready for dispatch?": 5.0,
    }


def _default_fatigue_scores() -> Dict[str, float]:
    return {"critical": 15, "warning": 8, "caution": 4, "normal": 0}


def _default_incident_scores() -> Dict[str, float]:
    return {"critical": 10, "major": 5, "minor": 2}


def _default_alert_scores() -> Dict[str, float]:
    return {"emergency": 5, "critical": 3, "warning": 1}


def _default_maintenance_multipliers() -> Dict[str, float]:
    return {"urgent": 3, "high": 2, "medium": 1}


@dataclass(frozen=True)
class RiskPolicy:
    """Named, overridable scoring constants."""

    # Composite weighting
    pre_trip_weight: float = 0.4
    in_trip_weight: float = 0.4
    post_trip_weight: float = 0.2

    # Risk level step function (inclusive upper bounds)
    low_risk_max: int = 10
    medium_risk_max: int = 25
    high_risk_max: int = 50

    # Compliance gate
    non_compliant_in_trip_score: float = 30
    conditional_pre_trip_score: float = 15
    conditional_post_trip_score: float = 10

    # Module scorer
    module_multipliers: Dict[str, float] = field(default_factory=_default_module_multipliers)
    critical_item_weights: Dict[str, float] = field(default_factory=_default_critical_item_weights)
    default_module_multiplier: float = 1.0
    default_critical_item_weight: float = 1.0
    critical_failure_factor_points: float = 5
    critical_failure_escalation_count: int = 2

    # Pre-trip completion
    completion_penalty_points: float = 20
    completion_high_impact_rate: float = 0.8

    # In-trip streams
    speed_critical_score: float = 10
    speed_high_score: float = 5
    fatigue_alert_scores: Dict[str, float] = field(default_factory=_default_fatigue_scores)
    fatigue_long_shift_hours: float = 12
    fatigue_long_shift_points: float = 10
    fatigue_extended_shift_hours: float = 8
    fatigue_extended_shift_points: float = 5
    incident_severity_scores: Dict[str, float] = field(default_factory=_default_incident_scores)
    incident_default_score: float = 1
    incident_critical_score: float = 10
    incident_high_score: float = 5
    alert_severity_scores: Dict[str, float] = field(default_factory=_default_alert_scores)
    alert_default_score: float = 0.5
    alert_high_score: float = 5

    # Post-trip
    post_trip_incomplete_points: float = 10
    post_trip_missing_points: float = 15
    maintenance_priority_multipliers: Dict[str, float] = field(default_factory=_default_maintenance_multipliers)
    maintenance_default_multiplier: float = 0.5
    maintenance_high_score: float = 10
    fuel_anomaly_points: float = 5

    # Critical-failure override
    override_points_threshold: float = 5
    high_impact_points_threshold: float = 10

    # Trend analysis
    trend_improving_rate: float = 10
    trend_declining_rate: float = -10

    def __post_init__(self) -> None:
        """Validate policy consistency."""
        if min(self.pre_trip_weight, self.in_trip_weight, self.post_trip_weight) < 0:
            raise ValueError("Phase weights cannot be negative")
        if not (self.low_risk_max < self.medium_risk_max < self.high_risk_max):
            raise ValueError("Risk level cutoffs must be strictly increasing")
        if any(value < 0 for value in self.module_multipliers.values()):
            raise ValueError("Module multipliers cannot be negative")
        if any(value < 0 for value in self.critical_item_weights.values()):
            raise ValueError("Critical item weights cannot be negative")
        if self.trend_declining_rate > self.trend_improving_rate:
            raise ValueError("Declining trend threshold cannot exceed improving threshold")

    def module_multiplier(self, module_key: str) -> float:
        """Get the risk multiplier for a module key."""
        return self.module_multipliers.get(module_key, self.default_module_multiplier)

    def critical_item_weight(self, label: str) -> float:
        """Get the weighting applied to a failed critical item."""
        return self.critical_item_weights.get(label, self.default_critical_item_weight)

    def with_overrides(self, **changes: Any) -> "RiskPolicy":
        """Create a copy of this policy with some values replaced.

        Mapping values are merged into the existing maps instead of
        replacing them, so a tenant can tweak one module multiplier without
        restating the rest.
        """
        merged: Dict[str, Any] = {}
        for name, value in changes.items():
            if name not in self.__dataclass_fields__:
                raise ValueError(f"Unknown risk policy setting: {name}")
            current = getattr(self, name)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[name] = {**current, **value}
            else:
                merged[name] = value
        return replace(self, **merged)


DEFAULT_POLICY = RiskPolicy()

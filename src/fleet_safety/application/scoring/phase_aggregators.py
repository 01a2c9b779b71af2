"""Phase aggregators: one pure reducer per trip phase.

Each aggregator takes already-fetched inputs and returns a PhaseScore.
Missing streams contribute nothing, with one exception: a trip without any
post-trip inspection is penalized, since a skipped inspection is itself a
risk signal.
"""

from typing import List, Optional, Sequence, Tuple

from src.fleet_safety.domain.entities.trip_module import TripModule
from src.fleet_safety.domain.value_objects.checklist import Phase
from src.fleet_safety.domain.value_objects.risk import Impact, PhaseScore, RiskFactor
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy
from src.fleet_safety.domain.value_objects.telemetry import (
    FatigueReading,
    FuelRecord,
    InTripIncident,
    PostTripInspection,
    RealTimeAlert,
    SpeedViolation,
)

from .module_scorer import score_module


def _tiered_impact(score: float, critical_above: float, high_above: float) -> Impact:
    if score > critical_above:
        return Impact.CRITICAL
    if score > high_above:
        return Impact.HIGH
    return Impact.MEDIUM


def aggregate_pre_trip(modules: Sequence[TripModule], policy: RiskPolicy = DEFAULT_POLICY) -> PhaseScore:
    """Sum module scores of pre-trip modules and report completion.

    The completion factor is informational and does not add to the phase
    score.
    """
    pre_trip_modules = [module for module in modules if module.phase == Phase.PRE_TRIP]
    if not pre_trip_modules:
        return PhaseScore(phase=Phase.PRE_TRIP, score=0)

    total = 0.0
    factors: List[RiskFactor] = []
    for module in pre_trip_modules:
        result = score_module(module.definition, module.effective_answers().values(), policy)
        total += result.score
        factors.extend(result.factors)

    completed = sum(1 for module in pre_trip_modules if module.is_completed())
    completion_rate = completed / len(pre_trip_modules)
    if completion_rate < 1.0:
        incomplete = 1.0 - completion_rate
        factors.append(RiskFactor(
            category="Pre-trip Completion",
            weight=2.0,
            score=incomplete * policy.completion_penalty_points,
            impact=Impact.HIGH if completion_rate < policy.completion_high_impact_rate else Impact.MEDIUM,
            description=f"{round(incomplete * 100)}% of pre-trip modules incomplete",
            mitigating_actions=("Complete all required pre-trip checks", "Address critical failures immediately"),
        ))

    return PhaseScore(phase=Phase.PRE_TRIP, score=total, factors=tuple(factors))


def score_fatigue(reading: FatigueReading, policy: RiskPolicy = DEFAULT_POLICY) -> Tuple[float, Impact]:
    """Score a fatigue reading.

    Returns:
        Tuple of (score, impact)
    """
    alert_level = (reading.alert_level or "").lower()
    score = policy.fatigue_alert_scores.get(alert_level, 0)
    impact = {
        "critical": Impact.CRITICAL,
        "warning": Impact.HIGH,
        "caution": Impact.MEDIUM,
    }.get(alert_level, Impact.LOW)

    hours = reading.hours_driven or 0
    if hours > policy.fatigue_long_shift_hours:
        score += policy.fatigue_long_shift_points
        impact = Impact.CRITICAL
    elif hours > policy.fatigue_extended_shift_hours:
        score += policy.fatigue_extended_shift_points
        impact = impact.at_least(Impact.HIGH)

    return score, impact


def aggregate_in_trip(
    violations: Sequence[SpeedViolation] = (),
    fatigue: Optional[FatigueReading] = None,
    incidents: Sequence[InTripIncident] = (),
    alerts: Sequence[RealTimeAlert] = (),
    policy: RiskPolicy = DEFAULT_POLICY
) -> PhaseScore:
    """Sum the four independent in-trip signal streams."""
    total = 0.0
    factors: List[RiskFactor] = []

    if violations:
        violation_score = sum(violation.points_deducted or 0 for violation in violations)
        total += violation_score
        factors.append(RiskFactor(
            category="Speed Violations",
            weight=3.0,
            score=violation_score,
            impact=_tiered_impact(violation_score, policy.speed_critical_score, policy.speed_high_score),
            description=f"{len(violations)} speed violations detected ({violation_score} points)",
            mitigating_actions=("Driver training", "Route planning", "Speed monitoring"),
        ))

    if fatigue is not None:
        fatigue_score, fatigue_impact = score_fatigue(fatigue, policy)
        total += fatigue_score
        if fatigue_score > 0:
            factors.append(RiskFactor(
                category="Driver Fatigue",
                weight=2.5,
                score=fatigue_score,
                impact=fatigue_impact,
                description=f"Fatigue level: {fatigue.alert_level} (Score: {fatigue.fatigue_score})",
                mitigating_actions=("Implement rest breaks", "Adjust schedule", "Monitor driver health"),
            ))

    if incidents:
        incident_score = sum(
            policy.incident_severity_scores.get(incident.severity, policy.incident_default_score)
            for incident in incidents
        )
        total += incident_score
        factors.append(RiskFactor(
            category="In-trip Incidents",
            weight=4.0,
            score=incident_score,
            impact=_tiered_impact(incident_score, policy.incident_critical_score, policy.incident_high_score),
            description=f"{len(incidents)} incidents reported during trip",
            mitigating_actions=("Incident investigation", "Safety protocol review", "Emergency response training"),
        ))

    unacknowledged = [alert for alert in alerts if not alert.acknowledged]
    if unacknowledged:
        alert_score = sum(
            policy.alert_severity_scores.get(alert.severity, policy.alert_default_score)
            for alert in unacknowledged
        )
        total += alert_score
        factors.append(RiskFactor(
            category="Unacknowledged Alerts",
            weight=2.0,
            score=alert_score,
            impact=Impact.HIGH if alert_score > policy.alert_high_score else Impact.MEDIUM,
            description=f"{len(unacknowledged)} unacknowledged alerts",
            mitigating_actions=("Alert monitoring", "Response procedures", "Communication protocols"),
        ))

    return PhaseScore(phase=Phase.IN_TRIP, score=total, factors=tuple(factors))


def aggregate_post_trip(
    inspection: Optional[PostTripInspection] = None,
    fuel: Optional[FuelRecord] = None,
    policy: RiskPolicy = DEFAULT_POLICY
) -> PhaseScore:
    """Carry the post-trip inspection score and add maintenance and fuel signals.

    An incomplete inspection is reported as a factor without adding to the
    score; its own total is already carried through.
    """
    total = 0.0
    factors: List[RiskFactor] = []

    if inspection is not None:
        total += inspection.total_score or 0

        if not inspection.is_completed:
            factors.append(RiskFactor(
                category="Post-trip Inspection",
                weight=1.5,
                score=policy.post_trip_incomplete_points,
                impact=Impact.MEDIUM,
                description="Post-trip inspection not completed",
                mitigating_actions=("Complete inspection", "Document findings", "Schedule maintenance"),
            ))

        maintenance_items = inspection.maintenance_items
        if maintenance_items:
            maintenance_score = sum(
                item.points_deducted * policy.maintenance_priority_multipliers.get(
                    item.maintenance_priority, policy.maintenance_default_multiplier
                )
                for item in maintenance_items
            )
            total += maintenance_score
            factors.append(RiskFactor(
                category="Maintenance Requirements",
                weight=2.0,
                score=maintenance_score,
                impact=Impact.HIGH if maintenance_score > policy.maintenance_high_score else Impact.MEDIUM,
                description=f"{len(maintenance_items)} maintenance items required",
                mitigating_actions=("Schedule maintenance", "Order parts", "Plan vehicle downtime"),
            ))
    else:
        total += policy.post_trip_missing_points
        factors.append(RiskFactor(
            category="Post-trip Inspection",
            weight=3.0,
            score=policy.post_trip_missing_points,
            impact=Impact.HIGH,
            description="Post-trip inspection not conducted",
            mitigating_actions=(
                "Conduct inspection immediately",
                "Document vehicle condition",
                "Schedule maintenance if needed",
            ),
        ))

    if fuel is not None and fuel.consumption_anomaly:
        total += policy.fuel_anomaly_points
        factors.append(RiskFactor(
            category="Fuel Consumption",
            weight=1.0,
            score=policy.fuel_anomaly_points,
            impact=Impact.MEDIUM,
            description=fuel.anomaly_reason or "Fuel consumption anomaly detected",
            mitigating_actions=("Investigate fuel efficiency", "Check for leaks", "Review driving behavior"),
        ))

    return PhaseScore(phase=Phase.POST_TRIP, score=total, factors=tuple(factors))

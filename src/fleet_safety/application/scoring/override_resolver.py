"""Critical-failure override resolver.

Works on unresolved critical failures only and ignores the numeric
composite score: a high-impact failure blocks approval even for a trip
that scores low risk.
"""

from typing import Iterable

from src.fleet_safety.domain.entities.critical_failure import CriticalFailure
from src.fleet_safety.domain.entities.trip import Trip, TripStatus
from src.fleet_safety.domain.value_objects.override import OverrideDecision, OverrideRecommendations
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy


def resolve_override(
    trip: Trip,
    failures: Iterable[CriticalFailure],
    policy: RiskPolicy = DEFAULT_POLICY
) -> OverrideDecision:
    """Decide whether a trip's critical failures need or forbid an override.

    Args:
        trip: Trip under evaluation
        failures: Critical failures of the trip; resolved ones are ignored
        policy: Risk policy with the override thresholds

    Returns:
        Override decision with follow-up recommendations
    """
    unresolved = tuple(failure for failure in failures if not failure.resolved)

    total_points = sum(failure.points for failure in unresolved)
    needs_override = total_points >= policy.override_points_threshold or any(
        failure.points >= policy.override_points_threshold for failure in unresolved
    )
    has_high_impact = any(failure.points >= policy.high_impact_points_threshold for failure in unresolved)
    can_approve = not needs_override and trip.status == TripStatus.SUBMITTED

    recommendations = OverrideRecommendations(
        requires_supervisor_approval=needs_override,
        requires_mechanic_review=any(failure.requires_mechanic_review for failure in unresolved),
        block_approval=has_high_impact,
    )

    return OverrideDecision(
        trip_id=trip.id,
        current_risk_level=trip.risk_level,
        current_override=trip.critical_override,
        total_critical_points=total_points,
        needs_override=needs_override,
        has_high_impact_failure=has_high_impact,
        can_approve=can_approve,
        unresolved_failures=unresolved,
        recommendations=recommendations,
    )

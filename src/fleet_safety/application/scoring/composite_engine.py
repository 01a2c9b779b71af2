"""Composite risk engine: weighted phase total, risk level and compliance verdict."""

from src.fleet_safety.domain.value_objects.risk import ComplianceStatus, PhaseScore, RiskLevel, RiskScoreBreakdown
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy

from .rounding import round_half_up


def determine_risk_level(score: float, policy: RiskPolicy = DEFAULT_POLICY) -> RiskLevel:
    """Map a score onto the risk level step function (upper bounds inclusive)."""
    if score <= policy.low_risk_max:
        return RiskLevel.LOW
    if score <= policy.medium_risk_max:
        return RiskLevel.MEDIUM
    if score <= policy.high_risk_max:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def determine_compliance_status(
    pre_trip_score: float,
    in_trip_score: float,
    post_trip_score: float,
    risk_level: RiskLevel,
    policy: RiskPolicy = DEFAULT_POLICY
) -> ComplianceStatus:
    """Derive the compliance verdict from the risk level and phase scores."""
    if risk_level == RiskLevel.CRITICAL or in_trip_score > policy.non_compliant_in_trip_score:
        return ComplianceStatus.NON_COMPLIANT

    if (
        risk_level == RiskLevel.HIGH
        or pre_trip_score > policy.conditional_pre_trip_score
        or post_trip_score > policy.conditional_post_trip_score
    ):
        return ComplianceStatus.CONDITIONAL

    return ComplianceStatus.COMPLIANT


def weighted_total(
    pre_trip_score: float,
    in_trip_score: float,
    post_trip_score: float,
    policy: RiskPolicy = DEFAULT_POLICY
) -> int:
    """Compute the rounded weighted sum of the three phase scores."""
    return round_half_up(
        pre_trip_score * policy.pre_trip_weight
        + in_trip_score * policy.in_trip_weight
        + post_trip_score * policy.post_trip_weight
    )


def combine_phase_scores(
    pre_trip: PhaseScore,
    in_trip: PhaseScore,
    post_trip: PhaseScore,
    policy: RiskPolicy = DEFAULT_POLICY
) -> RiskScoreBreakdown:
    """Combine the three phase scores into the authoritative breakdown.

    Pure function: identical inputs always yield an identical breakdown.

    Args:
        pre_trip: Pre-trip phase score
        in_trip: In-trip phase score
        post_trip: Post-trip phase score
        policy: Risk policy with weights and thresholds

    Returns:
        Breakdown with factors ordered pre-trip, in-trip, post-trip
    """
    total_score = weighted_total(pre_trip.score, in_trip.score, post_trip.score, policy)
    risk_level = determine_risk_level(total_score, policy)
    compliance_status = determine_compliance_status(
        pre_trip.score, in_trip.score, post_trip.score, risk_level, policy
    )

    return RiskScoreBreakdown(
        pre_trip_score=pre_trip.score,
        in_trip_score=in_trip.score,
        post_trip_score=post_trip.score,
        total_score=total_score,
        risk_level=risk_level,
        compliance_status=compliance_status,
        factors=pre_trip.factors + in_trip.factors + post_trip.factors,
    )

"""Unit tests for the composite risk engine."""

import pytest

from src.fleet_safety.application.scoring.composite_engine import (
    combine_phase_scores,
    determine_compliance_status,
    determine_risk_level,
    weighted_total,
)
from src.fleet_safety.application.scoring.phase_aggregators import aggregate_in_trip, aggregate_post_trip, aggregate_pre_trip
from src.fleet_safety.domain.value_objects.checklist import Phase
from src.fleet_safety.domain.value_objects.risk import ComplianceStatus, Impact, PhaseScore, RiskFactor, RiskLevel
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY


def phase(kind: Phase, score: float, *factors: RiskFactor) -> PhaseScore:
    return PhaseScore(phase=kind, score=score, factors=factors)


def factor(category: str) -> RiskFactor:
    return RiskFactor(category=category, weight=1.0, score=1, impact=Impact.LOW, description=category)


class TestDetermineRiskLevel:
    """Test cases for the risk level step function."""

    @pytest.mark.parametrize("score,expected", [
        (0, RiskLevel.LOW),
        (10, RiskLevel.LOW),
        (11, RiskLevel.MEDIUM),
        (25, RiskLevel.MEDIUM),
        (26, RiskLevel.HIGH),
        (50, RiskLevel.HIGH),
        (51, RiskLevel.CRITICAL),
        (400, RiskLevel.CRITICAL),
    ])
    def test_upper_bounds_are_inclusive(self, score, expected):
        """Test boundaries of each risk level."""
        assert determine_risk_level(score) == expected

    def test_policy_cutoffs(self):
        """Test cutoffs come from the policy."""
        policy = DEFAULT_POLICY.with_overrides(low_risk_max=5)

        assert determine_risk_level(6, policy) == RiskLevel.MEDIUM


class TestDetermineComplianceStatus:
    """Test cases for the compliance verdict."""

    def test_critical_level_is_non_compliant(self):
        """Test critical risk blocks dispatch."""
        assert determine_compliance_status(0, 0, 0, RiskLevel.CRITICAL) == ComplianceStatus.NON_COMPLIANT

    def test_in_trip_score_above_threshold_is_non_compliant(self):
        """Test the in-trip threshold is exclusive."""
        assert determine_compliance_status(0, 31, 0, RiskLevel.MEDIUM) == ComplianceStatus.NON_COMPLIANT
        assert determine_compliance_status(0, 30, 0, RiskLevel.MEDIUM) == ComplianceStatus.COMPLIANT

    @pytest.mark.parametrize("pre,post,level", [
        (0, 0, RiskLevel.HIGH),
        (16, 0, RiskLevel.LOW),
        (0, 11, RiskLevel.LOW),
    ])
    def test_conditional(self, pre, post, level):
        """Test each conditional trigger on its own."""
        assert determine_compliance_status(pre, 0, post, level) == ComplianceStatus.CONDITIONAL

    def test_compliant_at_thresholds(self):
        """Test phase scores equal to the thresholds stay compliant."""
        assert determine_compliance_status(15, 0, 10, RiskLevel.MEDIUM) == ComplianceStatus.COMPLIANT


class TestCombinePhaseScores:
    """Test cases for combine_phase_scores."""

    def test_weighted_medium_trip_with_high_pre_trip_is_conditional(self):
        """Test a medium total still needs attention when pre-trip exceeds its threshold."""
        breakdown = combine_phase_scores(
            phase(Phase.PRE_TRIP, 20), phase(Phase.IN_TRIP, 10), phase(Phase.POST_TRIP, 5)
        )

        assert breakdown.total_score == 13
        assert breakdown.risk_level == RiskLevel.MEDIUM
        assert breakdown.compliance_status == ComplianceStatus.CONDITIONAL

    def test_weighted_medium_trip_is_compliant(self):
        """Test a medium trip with every phase under its threshold."""
        breakdown = combine_phase_scores(
            phase(Phase.PRE_TRIP, 15), phase(Phase.IN_TRIP, 10), phase(Phase.POST_TRIP, 5)
        )

        assert breakdown.total_score == 11
        assert breakdown.risk_level == RiskLevel.MEDIUM
        assert breakdown.compliance_status == ComplianceStatus.COMPLIANT
        assert breakdown.blocks_dispatch is False

    def test_high_in_trip_score_is_non_compliant(self):
        """Test in-trip threshold overrides a medium total."""
        breakdown = combine_phase_scores(
            phase(Phase.PRE_TRIP, 0), phase(Phase.IN_TRIP, 31), phase(Phase.POST_TRIP, 0)
        )

        assert breakdown.total_score == 12
        assert breakdown.compliance_status == ComplianceStatus.NON_COMPLIANT
        assert breakdown.blocks_dispatch is True

    def test_trip_without_any_signal(self):
        """Test the missing post-trip inspection is the only contribution."""
        breakdown = combine_phase_scores(aggregate_pre_trip([]), aggregate_in_trip(), aggregate_post_trip())

        assert breakdown.pre_trip_score == 0
        assert breakdown.in_trip_score == 0
        assert breakdown.post_trip_score == 15
        assert breakdown.total_score == 3
        assert breakdown.risk_level == RiskLevel.LOW
        assert breakdown.compliance_status == ComplianceStatus.CONDITIONAL

    def test_factor_order_follows_phases(self):
        """Test factors are concatenated pre-trip, in-trip, post-trip."""
        breakdown = combine_phase_scores(
            phase(Phase.PRE_TRIP, 1, factor("a")),
            phase(Phase.IN_TRIP, 1, factor("b"), factor("c")),
            phase(Phase.POST_TRIP, 1, factor("d")),
        )

        assert [f.category for f in breakdown.factors] == ["a", "b", "c", "d"]

    def test_idempotent(self):
        """Test identical inputs give identical results."""
        args = (phase(Phase.PRE_TRIP, 7.5), phase(Phase.IN_TRIP, 12), phase(Phase.POST_TRIP, 3))

        assert combine_phase_scores(*args) == combine_phase_scores(*args)

    def test_weighted_total_rounds_half_up(self):
        """Test halves of the weighted sum round up."""
        # 0.4 x 31.25 = 12.5
        assert weighted_total(31.25, 0, 0) == 13

    def test_to_dict(self):
        """Test the serialized field names."""
        data = combine_phase_scores(aggregate_pre_trip([]), aggregate_in_trip(), aggregate_post_trip()).to_dict()

        assert data["totalScore"] == 3
        assert data["riskLevel"] == "low"
        assert data["complianceStatus"] == "conditional"
        assert data["factors"][0]["category"] == "Post-trip Inspection"

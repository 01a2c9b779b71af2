"""Unit tests for the risk policy."""

import pytest

from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy


class TestRiskPolicy:
    """Test cases for RiskPolicy."""

    def test_default_weights_sum_to_one(self):
        """Test phase weights of the default policy."""
        total = DEFAULT_POLICY.pre_trip_weight + DEFAULT_POLICY.in_trip_weight + DEFAULT_POLICY.post_trip_weight

        assert total == pytest.approx(1.0)

    def test_module_multiplier_lookup(self):
        """Test known and unknown module multipliers."""
        assert DEFAULT_POLICY.module_multiplier("FUNCTIONAL_CHECKS") == 2.0
        assert DEFAULT_POLICY.module_multiplier("RISK_SCORING") == 1.0
        assert DEFAULT_POLICY.module_multiplier("CUSTOM") == DEFAULT_POLICY.default_module_multiplier

    def test_critical_item_weight_uses_full_labels(self):
        """Test item weights are keyed by the catalog labels."""
        assert DEFAULT_POLICY.critical_item_weight("Alcohol Breath Test/Drugs") == 5.0
        assert DEFAULT_POLICY.critical_item_weight(
            "Brakes: Test brake function for responsiveness and effectiveness"
        ) == 5.0
        assert DEFAULT_POLICY.critical_item_weight("Horn") == 1.0

    def test_with_overrides_merges_maps(self):
        """Test map overrides are merged into the defaults."""
        policy = DEFAULT_POLICY.with_overrides(module_multipliers={"FUNCTIONAL_CHECKS": 2.5}, low_risk_max=8)

        assert policy.module_multiplier("FUNCTIONAL_CHECKS") == 2.5
        assert policy.module_multiplier("HEALTH_FITNESS") == 1.5
        assert policy.low_risk_max == 8
        assert DEFAULT_POLICY.module_multiplier("FUNCTIONAL_CHECKS") == 2.0

    def test_with_overrides_rejects_unknown_setting(self):
        """Test unknown settings are reported."""
        with pytest.raises(ValueError, match="Unknown risk policy setting"):
            DEFAULT_POLICY.with_overrides(no_such_setting=1)

    def test_cutoffs_must_increase(self):
        """Test risk level cutoffs are validated."""
        with pytest.raises(ValueError, match="strictly increasing"):
            RiskPolicy(low_risk_max=30, medium_risk_max=25)

    def test_negative_weights_rejected(self):
        """Test phase weights cannot be negative."""
        with pytest.raises(ValueError, match="cannot be negative"):
            RiskPolicy(in_trip_weight=-0.1)

    def test_trend_thresholds_validated(self):
        """Test the declining threshold stays below the improving one."""
        with pytest.raises(ValueError, match="Declining trend threshold"):
            RiskPolicy(trend_improving_rate=5, trend_declining_rate=10)

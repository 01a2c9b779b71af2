"""Unit tests for the phase aggregators."""

import pytest
from uuid import uuid4

from src.fleet_safety.application.scoring.phase_aggregators import (
    aggregate_in_trip,
    aggregate_post_trip,
    aggregate_pre_trip,
    score_fatigue,
)
from src.fleet_safety.domain.catalog.checklist_catalog import DEFAULT_CATALOG, HEALTH_FITNESS
from src.fleet_safety.domain.entities.trip_module import TripModule
from src.fleet_safety.domain.value_objects.checklist import ChecklistItem, ChecklistModule, FieldType, Phase
from src.fleet_safety.domain.value_objects.risk import Impact
from src.fleet_safety.domain.value_objects.telemetry import (
    FatigueReading,
    FuelRecord,
    InTripIncident,
    PostTripInspection,
    PostTripInspectionItem,
    RealTimeAlert,
    SpeedViolation,
)


def completed_module(definition: ChecklistModule, trip_id=None) -> TripModule:
    module = TripModule(definition=definition, trip_id=trip_id or uuid4())
    module.mark_completed()
    return module


class TestAggregatePreTrip:
    """Test cases for aggregate_pre_trip."""

    def test_no_modules(self):
        """Test the neutral result without modules."""
        result = aggregate_pre_trip([])

        assert result.phase == Phase.PRE_TRIP
        assert result.score == 0
        assert result.factors == ()

    def test_sums_module_scores(self):
        """Test module scores are added up."""
        module = completed_module(HEALTH_FITNESS)
        module.record_answer("Alcohol Breath Test/Drugs", "fail")

        result = aggregate_pre_trip([module])

        assert result.score == 38
        assert [factor.category for factor in result.factors] == ["Critical Failures"]

    def test_completion_factor_is_report_only(self):
        """Test incomplete modules are reported without adding to the score."""
        trip_id = uuid4()
        modules = [completed_module(HEALTH_FITNESS, trip_id), TripModule(definition=DEFAULT_CATALOG.get("DOCUMENTATION"), trip_id=trip_id)]

        result = aggregate_pre_trip(modules)

        assert result.score == 0
        completion = result.factors[0]
        assert completion.category == "Pre-trip Completion"
        assert completion.score == 10
        assert completion.impact == Impact.HIGH
        assert completion.description == "50% of pre-trip modules incomplete"

    def test_mostly_complete_is_medium_impact(self):
        """Test completion at or above 80% is medium impact."""
        trip_id = uuid4()
        modules = [completed_module(definition, trip_id) for definition in DEFAULT_CATALOG.modules[:-1]]
        modules.append(TripModule(definition=DEFAULT_CATALOG.modules[-1], trip_id=trip_id))

        result = aggregate_pre_trip(modules)

        assert result.factors[-1].impact == Impact.MEDIUM

    def test_other_phases_ignored(self):
        """Test non pre-trip modules are filtered out."""
        item = ChecklistItem(label="Cargo secured", field_type=FieldType.YES_NO, critical=True, points=4)
        post_trip = ChecklistModule(key="CARGO", name="Cargo", step=20, items=(item,), phase=Phase.POST_TRIP)
        module = completed_module(post_trip)
        module.record_answer("Cargo secured", "no")

        result = aggregate_pre_trip([module])

        assert result.score == 0
        assert result.factors == ()


class TestScoreFatigue:
    """Test cases for score_fatigue."""

    @pytest.mark.parametrize("alert_level,hours,expected_score,expected_impact", [
        ("normal", 2, 0, Impact.LOW),
        ("caution", 2, 4, Impact.MEDIUM),
        ("warning", 9, 13, Impact.HIGH),
        ("caution", 9, 9, Impact.HIGH),
        ("critical", 13, 25, Impact.CRITICAL),
        ("normal", 12.5, 10, Impact.CRITICAL),
        ("unknown", 0, 0, Impact.LOW),
    ])
    def test_alert_level_and_hours(self, alert_level, hours, expected_score, expected_impact):
        """Test fatigue scoring by alert level and hours driven."""
        score, impact = score_fatigue(FatigueReading(alert_level=alert_level, hours_driven=hours))

        assert score == expected_score
        assert impact == expected_impact


class TestAggregateInTrip:
    """Test cases for aggregate_in_trip."""

    def test_no_signals(self):
        """Test missing streams are neutral."""
        result = aggregate_in_trip()

        assert result.score == 0
        assert result.factors == ()

    @pytest.mark.parametrize("points,expected_impact", [
        ([2, 3], Impact.MEDIUM),
        ([4, 3], Impact.HIGH),
        ([6, 5], Impact.CRITICAL),
    ])
    def test_speed_violations(self, points, expected_impact):
        """Test violation tiers."""
        result = aggregate_in_trip(violations=[SpeedViolation(points_deducted=p) for p in points])

        assert result.score == sum(points)
        assert result.factors[0].category == "Speed Violations"
        assert result.factors[0].impact == expected_impact

    def test_normal_fatigue_adds_no_factor(self):
        """Test a zero fatigue score leaves no factor."""
        result = aggregate_in_trip(fatigue=FatigueReading(alert_level="normal", hours_driven=3))

        assert result.score == 0
        assert result.factors == ()

    def test_incidents(self):
        """Test incident severity scores."""
        incidents = [InTripIncident(severity="critical"), InTripIncident(severity="minor")]

        result = aggregate_in_trip(incidents=incidents)

        assert result.score == 12
        assert result.factors[0].impact == Impact.CRITICAL

    def test_unknown_incident_severity(self):
        """Test unknown severities fall back to the default score."""
        result = aggregate_in_trip(incidents=[InTripIncident(severity="odd")])

        assert result.score == 1
        assert result.factors[0].impact == Impact.MEDIUM

    def test_acknowledged_alerts_ignored(self):
        """Test only unacknowledged alerts count."""
        alerts = [RealTimeAlert(severity="emergency"), RealTimeAlert(severity="critical", acknowledged=True)]

        result = aggregate_in_trip(alerts=alerts)

        assert result.score == 5
        assert result.factors[0].impact == Impact.MEDIUM

    def test_alert_scores_above_threshold_are_high(self):
        """Test alert impact above the high threshold."""
        alerts = [RealTimeAlert(severity="emergency"), RealTimeAlert(severity="critical"), RealTimeAlert(severity="info")]

        result = aggregate_in_trip(alerts=alerts)

        assert result.score == 8.5
        assert result.factors[0].impact == Impact.HIGH

    def test_streams_add_up(self):
        """Test the four streams are independent and summed."""
        result = aggregate_in_trip(
            violations=[SpeedViolation(points_deducted=4)],
            fatigue=FatigueReading(alert_level="warning"),
            incidents=[InTripIncident(severity="major")],
            alerts=[RealTimeAlert(severity="warning")],
        )

        assert result.score == 4 + 8 + 5 + 1
        assert len(result.factors) == 4


class TestAggregatePostTrip:
    """Test cases for aggregate_post_trip."""

    def test_missing_inspection_is_penalized(self):
        """Test the absent inspection penalty."""
        result = aggregate_post_trip()

        assert result.score == 15
        factor = result.factors[0]
        assert factor.category == "Post-trip Inspection"
        assert factor.impact == Impact.HIGH
        assert factor.weight == 3.0

    def test_incomplete_inspection_is_report_only(self):
        """Test an incomplete inspection carries its own score only."""
        result = aggregate_post_trip(PostTripInspection(status="pending", total_score=4))

        assert result.score == 4
        assert result.factors[0].score == 10
        assert result.factors[0].impact == Impact.MEDIUM

    def test_completed_clean_inspection(self):
        """Test a clean inspection is neutral."""
        result = aggregate_post_trip(PostTripInspection(status="completed"))

        assert result.score == 0
        assert result.factors == ()

    def test_maintenance_items(self):
        """Test maintenance priorities multiply deductions."""
        items = (
            PostTripInspectionItem(category="brakes", condition_status="poor", requires_maintenance=True,
                                   maintenance_priority="urgent", points_deducted=3),
            PostTripInspectionItem(category="tyres", condition_status="fair", requires_maintenance=True,
                                   maintenance_priority="high", points_deducted=2),
            PostTripInspectionItem(category="wipers", condition_status="fair", requires_maintenance=True,
                                   points_deducted=2),
            PostTripInspectionItem(category="body", condition_status="good", points_deducted=5),
        )

        result = aggregate_post_trip(PostTripInspection(status="completed", total_score=2, items=items))

        # 2 carried + 9 + 4 + 1
        assert result.score == 16
        maintenance = result.factors[0]
        assert maintenance.category == "Maintenance Requirements"
        assert maintenance.score == 14
        assert maintenance.impact == Impact.HIGH

    def test_fuel_anomaly(self):
        """Test fuel anomalies add a fixed penalty."""
        fuel = FuelRecord(consumption_anomaly=True, anomaly_reason="Consumption 40% above baseline")

        result = aggregate_post_trip(PostTripInspection(status="completed"), fuel)

        assert result.score == 5
        assert result.factors[0].description == "Consumption 40% above baseline"

    def test_fuel_without_anomaly(self):
        """Test normal fuel records are neutral."""
        result = aggregate_post_trip(PostTripInspection(status="completed"), FuelRecord())

        assert result.score == 0

"""Unit tests for the driver risk trend analyzer."""

import pytest
from datetime import datetime, timedelta
from uuid import uuid4

from src.fleet_safety.application.scoring.trend_analyzer import analyze_trend, improvement_rate
from src.fleet_safety.domain.entities.trip import Trip, TripStatus
from src.fleet_safety.domain.value_objects.risk import RiskLevel
from src.fleet_safety.domain.value_objects.trend import TrendDirection

DRIVER_ID = uuid4()
START = datetime(2024, 3, 1, 8, 0)


def completed_trip(day: int, score, risk_level=RiskLevel.LOW, status=TripStatus.COMPLETED) -> Trip:
    return Trip(
        driver_id=DRIVER_ID,
        trip_date=START + timedelta(days=day),
        status=status,
        aggregate_score=score,
        risk_level=risk_level,
    )


class TestImprovementRate:
    """Test cases for improvement_rate."""

    @pytest.mark.parametrize("scores,expected", [
        ([40, 40, 10, 10], 75.0),
        ([10, 10, 40, 40], -300.0),
        ([20, 21], -5.0),
        ([0, 30], 0.0),
        ([5], 0.0),
    ])
    def test_rate(self, scores, expected):
        """Test the older against recent half comparison."""
        assert improvement_rate(scores) == pytest.approx(expected)

    def test_odd_count_puts_extra_score_in_recent_half(self):
        """Test the split point for an odd number of trips."""
        # older [30], recent [15, 15]
        assert improvement_rate([30, 15, 15]) == pytest.approx(50.0)


class TestAnalyzeTrend:
    """Test cases for analyze_trend."""

    def test_no_trips(self):
        """Test an empty history."""
        trend = analyze_trend([])

        assert trend.trend == TrendDirection.INSUFFICIENT_DATA
        assert trend.total_trips == 0
        assert trend.average_score == 0.0

    def test_single_trip_reports_average(self):
        """Test one trip still reports average and distribution."""
        trend = analyze_trend([completed_trip(0, 12, RiskLevel.MEDIUM)])

        assert trend.trend == TrendDirection.INSUFFICIENT_DATA
        assert trend.has_enough_data is False
        assert trend.average_score == 12
        assert trend.risk_distribution == {"medium": 1}
        assert trend.improvement_rate == 0.0

    def test_improving(self):
        """Test falling scores mean an improving driver."""
        trips = [completed_trip(day, score) for day, score in enumerate([40, 40, 10, 10])]

        trend = analyze_trend(trips)

        assert trend.trend == TrendDirection.IMPROVING
        assert trend.improvement_rate == pytest.approx(75.0)
        assert trend.average_score == 25
        assert trend.total_trips == 4

    def test_declining(self):
        """Test rising scores mean a declining driver."""
        trips = [completed_trip(day, score) for day, score in enumerate([10, 10, 40, 40])]

        assert analyze_trend(trips).trend == TrendDirection.DECLINING

    def test_stable(self):
        """Test small changes stay stable."""
        trips = [completed_trip(0, 20), completed_trip(1, 21)]

        assert analyze_trend(trips).trend == TrendDirection.STABLE

    def test_zero_older_average_is_stable(self):
        """Test a zero baseline does not divide by zero."""
        trips = [completed_trip(0, 0), completed_trip(1, 30)]

        trend = analyze_trend(trips)

        assert trend.improvement_rate == 0.0
        assert trend.trend == TrendDirection.STABLE

    def test_trips_ordered_by_date(self):
        """Test input order does not matter."""
        trips = [completed_trip(3, 10), completed_trip(0, 40), completed_trip(2, 10), completed_trip(1, 40)]

        assert analyze_trend(trips).trend == TrendDirection.IMPROVING

    def test_only_completed_trips_count(self):
        """Test trips in other statuses are ignored."""
        trips = [
            completed_trip(0, 40),
            completed_trip(1, 5, status=TripStatus.APPROVED),
            completed_trip(2, 40),
        ]

        trend = analyze_trend(trips)

        assert trend.total_trips == 2
        assert trend.trend == TrendDirection.STABLE

    def test_unscored_trips_in_distribution(self):
        """Test trips without a snapshot count as zero and unscored."""
        trips = [completed_trip(0, None, risk_level=None), completed_trip(1, 30, RiskLevel.HIGH)]

        trend = analyze_trend(trips)

        assert trend.average_score == 15
        assert trend.risk_distribution == {"unscored": 1, "high": 1}

    def test_to_dict(self):
        """Test the serialized field names."""
        data = analyze_trend([completed_trip(0, 40), completed_trip(1, 10)]).to_dict()

        assert data["trend"] == "improving"
        assert data["riskDistribution"] == {"low": 2}
        assert data["totalTrips"] == 2
        assert data["improvementRate"] == pytest.approx(75.0)

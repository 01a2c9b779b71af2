"""Driver risk trend over completed trips."""

from typing import Dict, Iterable, List

from src.fleet_safety.domain.entities.trip import Trip
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy
from src.fleet_safety.domain.value_objects.trend import RiskTrend, TrendDirection

UNSCORED = "unscored"


def _average(scores: List[float]) -> float:
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def improvement_rate(scores: List[float]) -> float:
    """Percentage drop from the older half's average to the recent half's.

    The older half is the first ``n // 2`` scores, the recent half the
    remaining ones. A zero older average yields 0.
    """
    if len(scores) < 2:
        return 0.0
    split = len(scores) // 2
    older_avg = _average(scores[:split])
    recent_avg = _average(scores[split:])
    if older_avg == 0:
        return 0.0
    return (older_avg - recent_avg) / older_avg * 100


def analyze_trend(trips: Iterable[Trip], policy: RiskPolicy = DEFAULT_POLICY) -> RiskTrend:
    """Compute average, risk distribution and direction over completed trips.

    Trips are ordered by trip date before splitting into halves. With fewer
    than two completed trips the direction is ``insufficient_data`` while
    the average and distribution are still reported.
    """
    completed = sorted((trip for trip in trips if trip.is_completed()), key=lambda trip: trip.trip_date)
    scores = [float(trip.aggregate_score or 0) for trip in completed]

    distribution: Dict[str, int] = {}
    for trip in completed:
        key = trip.risk_level.value if trip.risk_level else UNSCORED
        distribution[key] = distribution.get(key, 0) + 1

    if len(completed) < 2:
        return RiskTrend(
            trend=TrendDirection.INSUFFICIENT_DATA,
            average_score=_average(scores),
            risk_distribution=distribution,
            improvement_rate=0.0,
            total_trips=len(completed),
        )

    rate = improvement_rate(scores)
    if rate > policy.trend_improving_rate:
        direction = TrendDirection.IMPROVING
    elif rate < policy.trend_declining_rate:
        direction = TrendDirection.DECLINING
    else:
        direction = TrendDirection.STABLE

    return RiskTrend(
        trend=direction,
        average_score=_average(scores),
        risk_distribution=distribution,
        improvement_rate=rate,
        total_trips=len(completed),
    )

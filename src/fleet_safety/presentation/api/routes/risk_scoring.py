"""Risk scoring endpoints for a trip."""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ....application.exceptions import TripNotFoundError
from ....application.scoring.factor_summary import summarize_modules
from ....domain.value_objects.actor import Actor
from ....domain.value_objects.risk import Impact
from ....infrastructure.services import get_service_factory
from ..middleware import get_current_actor, get_reviewer_actor
from ..schemas.trip_schemas import TripResponse

router = APIRouter()


async def _visible_trip(factory, trip_id: UUID, actor: Actor):
    """Load a trip whose risk detail the actor may see.

    Trips of other drivers are reported as missing.
    """
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.get_trip(trip_id)
    if not actor.can_view_trip(trip.driver_id):
        raise TripNotFoundError(trip_id)
    return trip


@router.get("/{trip_id}/risk-scoring")
async def get_risk_scoring(
    trip_id: UUID,
    include_modules: bool = Query(False, description="Include per-module risk scores"),
    include_trend: bool = Query(False, description="Include the driver's risk trend"),
    trend_days: int = Query(30, gt=0, le=365, description="Trend lookback window in days"),
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> Dict[str, Any]:
    """
    Compute a fresh risk breakdown for a trip.

    The breakdown is recomputed from live inputs on every call and is
    never the stored snapshot; use ``/risk-scoring/snapshot`` for that.
    """
    trip = await _visible_trip(factory, trip_id, actor)

    async with factory.get_risk_scoring_service() as risk_service:
        breakdown = await risk_service.calculate_comprehensive_risk_score(trip_id)
        result: Dict[str, Any] = {"comprehensiveRiskScore": breakdown.to_dict()}

        if include_modules:
            module_scores = await risk_service.get_module_risk_scores(trip_id)
            result["moduleRiskScores"] = [module.to_dict() for module in module_scores]
            result["moduleSummary"] = summarize_modules(module_scores)

        if include_trend:
            trend = await risk_service.calculate_risk_trend(trip.driver_id, trend_days)
            result["riskTrend"] = trend.to_dict()

    result["tripDetails"] = TripResponse.from_entity(trip).model_dump(mode="json")
    return result


@router.post("/{trip_id}/risk-scoring/recalculate")
async def recalculate_risk_scoring(
    trip_id: UUID,
    actor: Actor = Depends(get_reviewer_actor),
    factory=Depends(get_service_factory)
) -> Dict[str, Any]:
    """
    Recompute the breakdown and store it as the trip's risk snapshot.

    Restricted to supervisors and administrators.
    """
    async with factory.get_risk_scoring_service() as risk_service:
        recalculation = await risk_service.recalculate_risk_snapshot(trip_id, actor_id=actor.actor_id)

    return {
        **recalculation.to_dict(),
        "message": "Risk scores recalculated successfully",
    }


@router.get("/{trip_id}/risk-scoring/snapshot")
async def get_risk_snapshot(trip_id: UUID, factory=Depends(get_service_factory)) -> Dict[str, Any]:
    """Get the stored, possibly stale, risk snapshot of a trip."""
    async with factory.get_risk_scoring_service() as risk_service:
        snapshot = await risk_service.get_risk_snapshot(trip_id)
    return snapshot.to_dict()


@router.get("/{trip_id}/risk-scoring/factors")
async def get_risk_factors(
    trip_id: UUID,
    category: Optional[str] = Query(None, max_length=100, description="Case-insensitive category filter"),
    impact: Optional[Impact] = Query(None, description="Exact impact filter"),
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> Dict[str, Any]:
    """Get the risk factors of a fresh breakdown, grouped by category."""
    await _visible_trip(factory, trip_id, actor)
    async with factory.get_risk_scoring_service() as risk_service:
        summary = await risk_service.get_risk_factors(trip_id, category=category, impact=impact)
    return summary.to_dict()

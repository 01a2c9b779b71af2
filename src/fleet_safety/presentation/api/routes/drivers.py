"""Driver risk history endpoints."""

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from ....infrastructure.services import get_service_factory

router = APIRouter()


@router.get("/{driver_id}/risk-trend")
async def get_risk_trend(
    driver_id: UUID,
    days: int = Query(30, gt=0, le=365, description="Lookback window in days"),
    factory=Depends(get_service_factory)
) -> Dict[str, Any]:
    """
    Get the risk trend over a driver's completed trips.

    Fewer than two completed trips in the window yield
    ``insufficient_data``.
    """
    async with factory.get_risk_scoring_service() as risk_service:
        trend = await risk_service.calculate_risk_trend(driver_id, days)

    return {"driverId": str(driver_id), "days": days, **trend.to_dict()}

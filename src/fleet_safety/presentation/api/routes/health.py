"""Health check endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....infrastructure.services import get_service_factory

router = APIRouter()


@router.get("/health")
async def health_check(factory=Depends(get_service_factory)) -> Dict[str, Any]:
    """Report liveness, the repository backend and the active risk level cutoffs."""
    policy = factory.policy
    return {
        "status": "healthy" if factory.is_ready else "starting",
        "service": "fleet-safety-risk-engine",
        "repositories": factory.backend,
        "riskLevelCutoffs": {
            "low": policy.low_risk_max,
            "medium": policy.medium_risk_max,
            "high": policy.high_risk_max,
        },
    }


@router.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint."""
    return {"message": "Fleet Safety Risk Scoring API", "version": "0.1.0"}

"""Trip lifecycle and critical failure endpoints."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from ....domain.value_objects.actor import Actor
from ....infrastructure.services import get_service_factory
from ..middleware import get_current_actor, get_optional_actor
from ..schemas.trip_schemas import (
    AnswerRequest,
    AnswerResponse,
    CreateTripRequest,
    LogCriticalFailureRequest,
    ModuleResponse,
    ReviewRequest,
    TripResponse,
)

router = APIRouter()


@router.post("/", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    request: CreateTripRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """Create a draft trip with the full pre-trip checklist."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.create_draft_trip(
            driver_id=request.driver_id,
            vehicle_id=request.vehicle_id,
            trip_date=request.trip_date,
            actor=actor,
        )
    return TripResponse.from_entity(trip)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: UUID, factory=Depends(get_service_factory)) -> TripResponse:
    """Get trip details by ID."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.get_trip(trip_id)
    return TripResponse.from_entity(trip)


@router.get("/{trip_id}/modules", response_model=List[ModuleResponse])
async def list_modules(trip_id: UUID, factory=Depends(get_service_factory)) -> List[ModuleResponse]:
    """List the checklist modules of a trip with their current answers."""
    async with factory.get_trip_review_service() as review_service:
        modules = await review_service.list_modules(trip_id)
    return [ModuleResponse.from_entity(module) for module in modules]


@router.post("/{trip_id}/modules/{module_key}/answers", response_model=AnswerResponse)
async def record_answer(
    trip_id: UUID,
    module_key: str,
    request: AnswerRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    factory=Depends(get_service_factory)
) -> AnswerResponse:
    """
    Answer a checklist item of a draft trip.

    A failing answer on a critical item also logs a critical failure.
    """
    async with factory.get_trip_review_service() as review_service:
        answer = await review_service.record_answer(trip_id, module_key, request.label, request.value, actor=actor)
    return AnswerResponse.from_answer(answer)


@router.post("/{trip_id}/modules/{module_key}/complete", response_model=ModuleResponse)
async def complete_module(
    trip_id: UUID,
    module_key: str,
    actor: Optional[Actor] = Depends(get_optional_actor),
    factory=Depends(get_service_factory)
) -> ModuleResponse:
    """Mark a checklist module as completed."""
    async with factory.get_trip_review_service() as review_service:
        module = await review_service.complete_module(trip_id, module_key, actor=actor)
    return ModuleResponse.from_entity(module)


@router.post("/{trip_id}/submit", response_model=TripResponse)
async def submit_trip(
    trip_id: UUID,
    actor: Optional[Actor] = Depends(get_optional_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """Submit a draft trip and store its first risk snapshot."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.submit_trip(trip_id, actor=actor)
    return TripResponse.from_entity(trip)


@router.post("/{trip_id}/review", response_model=TripResponse)
async def start_review(
    trip_id: UUID,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """Put a submitted trip under supervisor review."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.start_review(trip_id, actor)
    return TripResponse.from_entity(trip)


@router.post("/{trip_id}/approve", response_model=TripResponse)
async def approve_trip(
    trip_id: UUID,
    request: Optional[ReviewRequest] = None,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """
    Approve a trip for dispatch.

    Refused while a high-impact critical failure is unresolved, or while
    the unresolved failures need an override that was not granted.
    """
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.approve_trip(trip_id, actor, notes=request.notes if request else None)
    return TripResponse.from_entity(trip)


@router.post("/{trip_id}/reject", response_model=TripResponse)
async def reject_trip(
    trip_id: UUID,
    request: Optional[ReviewRequest] = None,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """Reject a trip."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.reject_trip(trip_id, actor, notes=request.notes if request else None)
    return TripResponse.from_entity(trip)


@router.post("/{trip_id}/reopen", response_model=TripResponse)
async def reopen_trip(
    trip_id: UUID,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """Return a rejected trip to draft."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.reopen_trip(trip_id, actor)
    return TripResponse.from_entity(trip)


@router.post("/{trip_id}/complete", response_model=TripResponse)
async def complete_trip(
    trip_id: UUID,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """Close an approved trip."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.complete_trip(trip_id, actor)
    return TripResponse.from_entity(trip)


@router.get("/{trip_id}/critical-override")
async def check_critical_override(trip_id: UUID, factory=Depends(get_service_factory)) -> Dict[str, Any]:
    """Evaluate whether the unresolved critical failures allow approval."""
    async with factory.get_risk_scoring_service() as risk_service:
        decision = await risk_service.check_critical_failure_override(trip_id)
    return decision.to_dict()


@router.post("/{trip_id}/critical-override", response_model=TripResponse)
async def grant_critical_override(
    trip_id: UUID,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> TripResponse:
    """Grant a supervisor override for unresolved critical failures."""
    async with factory.get_trip_review_service() as review_service:
        trip = await review_service.grant_critical_override(trip_id, actor)
    return TripResponse.from_entity(trip)


@router.get("/{trip_id}/critical-failures")
async def list_critical_failures(trip_id: UUID, factory=Depends(get_service_factory)) -> Dict[str, Any]:
    """List all critical failures of a trip."""
    async with factory.get_trip_review_service() as review_service:
        failures = await review_service.list_critical_failures(trip_id)
    return {
        "failures": [failure.to_dict() for failure in failures],
        "total": len(failures),
        "unresolved": sum(1 for failure in failures if not failure.resolved),
    }


@router.post("/{trip_id}/critical-failures", status_code=status.HTTP_201_CREATED)
async def log_critical_failure(
    trip_id: UUID,
    request: LogCriticalFailureRequest,
    actor: Optional[Actor] = Depends(get_optional_actor),
    factory=Depends(get_service_factory)
) -> Dict[str, Any]:
    """Log a critical failure against a trip."""
    async with factory.get_trip_review_service() as review_service:
        failure = await review_service.log_critical_failure(
            trip_id,
            description=request.description,
            points=request.points,
            module_item_label=request.module_item_label,
            category=request.category,
            actor=actor,
        )
    return failure.to_dict()


@router.post("/{trip_id}/critical-failures/{failure_id}/resolve")
async def resolve_critical_failure(
    trip_id: UUID,
    failure_id: UUID,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> Dict[str, Any]:
    """Resolve a critical failure."""
    async with factory.get_trip_review_service() as review_service:
        failure = await review_service.resolve_critical_failure(trip_id, failure_id, actor)
    return failure.to_dict()


@router.delete("/{trip_id}/critical-failures/{failure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_critical_failure(
    trip_id: UUID,
    failure_id: UUID,
    actor: Actor = Depends(get_current_actor),
    factory=Depends(get_service_factory)
) -> None:
    """Delete a critical failure. Admin only."""
    async with factory.get_trip_review_service() as review_service:
        await review_service.delete_critical_failure(trip_id, failure_id, actor)

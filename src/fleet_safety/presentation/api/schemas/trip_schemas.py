"""Pydantic schemas for trip API requests and responses."""

from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ....domain.entities.trip import Trip
from ....domain.entities.trip_module import TripModule
from ....domain.value_objects.checklist import ItemCategory, ModuleAnswer


class CreateTripRequest(BaseModel):
    """Request model for creating a draft trip."""
    driver_id: UUID = Field(..., description="ID of the driver")
    vehicle_id: Optional[UUID] = Field(None, description="ID of the vehicle")
    trip_date: Optional[datetime] = Field(None, description="Planned trip date, defaults to now")


class AnswerRequest(BaseModel):
    """Request model for answering a checklist item."""
    label: str = Field(..., min_length=1, max_length=255, description="Checklist item label")
    value: Union[bool, int, float, str, None] = Field(..., description="Submitted value")


class ReviewRequest(BaseModel):
    """Request model for approving or rejecting a trip."""
    notes: Optional[str] = Field(None, max_length=1000, description="Reviewer notes")


class LogCriticalFailureRequest(BaseModel):
    """Request model for logging a critical failure."""
    description: str = Field(..., min_length=1, max_length=1000, description="What failed")
    points: float = Field(1, ge=0, description="Severity points")
    module_item_label: Optional[str] = Field(None, max_length=255, description="Originating checklist item")
    category: Optional[ItemCategory] = Field(None, description="Structural category of the failure")

    @field_validator('description')
    @classmethod
    def strip_description(cls, v: str) -> str:
        """Reject blank descriptions."""
        if not v.strip():
            raise ValueError('Description cannot be empty')
        return v.strip()


class TripResponse(BaseModel):
    """Response model for trip details."""
    id: UUID
    driver_id: UUID
    vehicle_id: Optional[UUID]
    trip_date: datetime
    status: str
    aggregate_score: Optional[int]
    risk_level: Optional[str]
    snapshot_at: Optional[datetime]
    critical_override: bool
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, trip: Trip) -> "TripResponse":
        """Build the response from a trip entity."""
        return cls(
            id=trip.id,
            driver_id=trip.driver_id,
            vehicle_id=trip.vehicle_id,
            trip_date=trip.trip_date,
            status=trip.status.value,
            aggregate_score=trip.aggregate_score,
            risk_level=trip.risk_level.value if trip.risk_level else None,
            snapshot_at=trip.snapshot_at,
            critical_override=trip.critical_override,
            version=trip.version,
            created_at=trip.created_at,
            updated_at=trip.updated_at,
        )


class AnswerResponse(BaseModel):
    """Response model for a recorded answer."""
    id: UUID
    label: str
    value: Union[bool, int, float, str, None]
    critical: bool
    indicates_failure: bool
    answered_at: datetime
    supersedes: Optional[UUID]

    @classmethod
    def from_answer(cls, answer: ModuleAnswer) -> "AnswerResponse":
        """Build the response from a module answer."""
        return cls(
            id=answer.answer_id,
            label=answer.item.label,
            value=answer.value,
            critical=answer.item.critical,
            indicates_failure=answer.indicates_failure,
            answered_at=answer.answered_at,
            supersedes=answer.supersedes,
        )


class ModuleResponse(BaseModel):
    """Response model for a trip module."""
    id: UUID
    key: str
    name: str
    step: int
    phase: str
    status: str
    total_items: int
    answers: List[AnswerResponse]

    @classmethod
    def from_entity(cls, module: TripModule) -> "ModuleResponse":
        """Build the response from a trip module entity."""
        return cls(
            id=module.id,
            key=module.key,
            name=module.name,
            step=module.step,
            phase=module.phase.value,
            status=module.status.value,
            total_items=len(module.definition.items),
            answers=[AnswerResponse.from_answer(answer) for answer in module.effective_answers().values()],
        )

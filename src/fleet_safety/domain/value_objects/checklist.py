"""Checklist reference value objects."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union
from uuid import UUID, uuid4


class FieldType(Enum):
    """Answer field types supported by checklist items."""

    PASS_FAIL = "pass_fail"
    PASS_FAIL_NA = "pass_fail_na"
    YES_NO = "yes_no"
    NUMBER = "number"
    TEXT = "text"
    SELECT = "select"
    DATE = "date"
    SIGNATURE = "signature"


class ItemCategory(Enum):
    """Structural category of a checklist item or critical failure."""

    DRIVER = "driver"
    DOCUMENTATION = "documentation"
    VEHICLE = "vehicle"
    MECHANICAL = "mechanical"
    SAFETY_EQUIPMENT = "safety_equipment"
    ADMINISTRATIVE = "administrative"
    VIOLATION = "violation"

    @property
    def requires_mechanic_review(self) -> bool:
        """Check if failures in this category need a mechanic sign-off."""
        return self in (ItemCategory.VEHICLE, ItemCategory.MECHANICAL)


class Phase(Enum):
    """Temporal window over which risk signals are collected."""

    PRE_TRIP = "pre_trip"
    IN_TRIP = "in_trip"
    POST_TRIP = "post_trip"


@dataclass(frozen=True)
class ChecklistItem:
    """Immutable definition of a single checklist question."""

    label: str
    field_type: FieldType
    critical: bool = False
    points: int = 0
    category: ItemCategory = ItemCategory.ADMINISTRATIVE

    def __post_init__(self) -> None:
        """Validate checklist item data."""
        if not self.label or not self.label.strip():
            raise ValueError("Checklist item label cannot be empty")
        if not isinstance(self.field_type, FieldType):
            raise ValueError("field_type must be a FieldType enum")
        if self.points < 0:
            raise ValueError("Checklist item points cannot be negative")


@dataclass(frozen=True)
class ChecklistModule:
    """Immutable definition of an ordered checklist module."""

    key: str
    name: str
    step: int
    items: Tuple[ChecklistItem, ...]
    phase: Phase = Phase.PRE_TRIP

    def __post_init__(self) -> None:
        """Validate checklist module data."""
        if self.step < 1:
            raise ValueError("Module step must be a positive integer")
        labels = [item.label for item in self.items]
        if len(labels) != len(set(labels)):
            raise ValueError(f"Duplicate item labels in module {self.name}")

    @property
    def critical_items(self) -> Tuple[ChecklistItem, ...]:
        """Get the critical items of this module."""
        return tuple(item for item in self.items if item.critical)

    def get_item(self, label: str) -> Optional[ChecklistItem]:
        """Get an item definition by its label."""
        for item in self.items:
            if item.label == label:
                return item
        return None


AnswerValue = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class ModuleAnswer:
    """A checklist item bound to a submitted value.

    Answers are never edited in place. Changing an answer creates a new
    ModuleAnswer whose ``supersedes`` points at the previous one, so the
    full history stays available for audit.
    """

    item: ChecklistItem
    value: AnswerValue
    answer_id: UUID = field(default_factory=uuid4)
    answered_at: datetime = field(default_factory=datetime.utcnow)
    supersedes: Optional[UUID] = None

    def revise(self, value: AnswerValue) -> "ModuleAnswer":
        """Create a new answer replacing this one."""
        return ModuleAnswer(item=self.item, value=value, supersedes=self.answer_id)

    @property
    def numeric_value(self) -> float:
        """Get the answer as a number, treating blanks and garbage as zero."""
        if isinstance(self.value, bool) or self.value is None:
            return 0.0
        try:
            return float(self.value)
        except (TypeError, ValueError):
            return 0.0

    @property
    def indicates_failure(self) -> bool:
        """Check if the answer marks the item as failed."""
        field_type = self.item.field_type
        normalized = str(self.value).strip().lower() if self.value is not None else ""

        if field_type in (FieldType.PASS_FAIL, FieldType.PASS_FAIL_NA):
            return normalized == "fail"
        if field_type == FieldType.YES_NO:
            return normalized == "no"
        if field_type == FieldType.NUMBER:
            return self.numeric_value > 0
        return False

"""Critical failure entity."""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from ..value_objects.checklist import ItemCategory

_LEGACY_MECHANIC_KEYWORDS = ("vehicle", "mechanical")


class CriticalFailure:
    """A critical finding that can block trip approval until resolved."""

    def __init__(
        self,
        trip_id: UUID,
        description: str,
        points: float,
        failure_id: Optional[UUID] = None,
        module_item_label: Optional[str] = None,
        category: Optional[ItemCategory] = None,
        resolved: bool = False,
        resolved_by: Optional[UUID] = None,
        resolved_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None
    ):
        """Initialize critical failure."""
        if not description or not description.strip():
            raise ValueError("Critical failure description cannot be empty")
        if points < 0:
            raise ValueError("Critical failure points cannot be negative")
        if category is not None and not isinstance(category, ItemCategory):
            raise ValueError("Category must be an ItemCategory enum")

        self._id = failure_id or uuid4()
        self._trip_id = trip_id
        self._description = description.strip()
        self._points = points
        self._module_item_label = module_item_label
        self._category = category
        self._resolved = resolved
        self._resolved_by = resolved_by
        self._resolved_at = resolved_at
        self._created_at = created_at or datetime.utcnow()

    @property
    def id(self) -> UUID:
        """Get failure ID."""
        return self._id

    @property
    def trip_id(self) -> UUID:
        """Get owning trip ID."""
        return self._trip_id

    @property
    def description(self) -> str:
        """Get failure description."""
        return self._description

    @property
    def points(self) -> float:
        """Get failure points."""
        return self._points

    @property
    def module_item_label(self) -> Optional[str]:
        """Get label of the originating checklist item."""
        return self._module_item_label

    @property
    def category(self) -> Optional[ItemCategory]:
        """Get structural category of the failure."""
        return self._category

    @property
    def resolved(self) -> bool:
        """Check if the failure was resolved."""
        return self._resolved

    @property
    def resolved_by(self) -> Optional[UUID]:
        """Get the actor who resolved the failure."""
        return self._resolved_by

    @property
    def resolved_at(self) -> Optional[datetime]:
        """Get resolution timestamp."""
        return self._resolved_at

    @property
    def created_at(self) -> datetime:
        """Get creation timestamp."""
        return self._created_at

    @property
    def requires_mechanic_review(self) -> bool:
        """Check if a mechanic must review this failure.

        Uses the structural category when known. Rows logged before
        categories existed fall back to matching the originating label.
        """
        if self._category is not None:
            return self._category.requires_mechanic_review
        label = (self._module_item_label or "").lower()
        return any(keyword in label for keyword in _LEGACY_MECHANIC_KEYWORDS)

    def resolve(self, actor_id: Optional[UUID], resolved_at: Optional[datetime] = None) -> None:
        """Resolve the failure. A missing actor means the system resolved it."""
        if self._resolved:
            raise ValueError(f"Critical failure {self._id} is already resolved")
        self._resolved = True
        self._resolved_by = actor_id
        self._resolved_at = resolved_at or datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize failure for API consumers."""
        return {
            "id": str(self._id),
            "tripId": str(self._trip_id),
            "description": self._description,
            "points": self._points,
            "moduleItemLabel": self._module_item_label,
            "category": self._category.value if self._category else None,
            "resolved": self._resolved,
            "resolvedBy": str(self._resolved_by) if self._resolved_by else None,
            "resolvedAt": self._resolved_at.isoformat() if self._resolved_at else None,
            "requiresMechanicReview": self.requires_mechanic_review,
            "createdAt": self._created_at.isoformat(),
        }

    def __eq__(self, other: object) -> bool:
        """Check equality based on failure ID."""
        if not isinstance(other, CriticalFailure):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        """Hash based on failure ID."""
        return hash(self._id)

    def __repr__(self) -> str:
        """Detailed string representation."""
        return (
            f"CriticalFailure(id={self._id}, trip_id={self._trip_id}, points={self._points}, "
            f"resolved={self._resolved})"
        )

"""Trip module entity: one checklist module instance answered for a trip."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from ..value_objects.checklist import AnswerValue, ChecklistModule, ModuleAnswer, Phase


class ModuleStatus(Enum):
    """Completion status of a module instance."""
    INCOMPLETE = "incomplete"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TripModule:
    """A checklist module bound to the answers given for one trip."""

    def __init__(
        self,
        definition: ChecklistModule,
        trip_id: UUID,
        module_id: Optional[UUID] = None,
        status: ModuleStatus = ModuleStatus.INCOMPLETE,
        answers: Optional[List[ModuleAnswer]] = None,
        updated_at: Optional[datetime] = None
    ):
        """Initialize trip module."""
        if not isinstance(definition, ChecklistModule):
            raise ValueError("Definition must be a ChecklistModule")
        if not isinstance(status, ModuleStatus):
            raise ValueError("Status must be a ModuleStatus enum")

        self._id = module_id or uuid4()
        self._definition = definition
        self._trip_id = trip_id
        self._status = status
        self._answers = list(answers or [])
        self._updated_at = updated_at or datetime.utcnow()

        for answer in self._answers:
            self._ensure_known_item(answer.item.label)

    @property
    def id(self) -> UUID:
        """Get module instance ID."""
        return self._id

    @property
    def trip_id(self) -> UUID:
        """Get owning trip ID."""
        return self._trip_id

    @property
    def definition(self) -> ChecklistModule:
        """Get the module definition."""
        return self._definition

    @property
    def key(self) -> str:
        """Get the catalog key of the module."""
        return self._definition.key

    @property
    def name(self) -> str:
        """Get module display name."""
        return self._definition.name

    @property
    def step(self) -> int:
        """Get module step number."""
        return self._definition.step

    @property
    def phase(self) -> Phase:
        """Get the phase this module belongs to."""
        return self._definition.phase

    @property
    def status(self) -> ModuleStatus:
        """Get module status."""
        return self._status

    @property
    def answers(self) -> List[ModuleAnswer]:
        """Get the full answer history, superseded answers included."""
        return self._answers.copy()

    @property
    def updated_at(self) -> datetime:
        """Get last update timestamp."""
        return self._updated_at

    def is_completed(self) -> bool:
        """Check if the module was completed."""
        return self._status == ModuleStatus.COMPLETED

    def record_answer(self, label: str, value: AnswerValue) -> ModuleAnswer:
        """Record an answer, superseding any earlier answer for the same item."""
        item = self._ensure_known_item(label)
        current = self.effective_answers().get(label)

        answer = current.revise(value) if current else ModuleAnswer(item=item, value=value)
        self._answers.append(answer)
        self._updated_at = datetime.utcnow()
        return answer

    def effective_answers(self) -> Dict[str, ModuleAnswer]:
        """Get the latest answer per item label."""
        superseded = {answer.supersedes for answer in self._answers if answer.supersedes}
        effective: Dict[str, ModuleAnswer] = {}
        for answer in self._answers:
            if answer.answer_id in superseded:
                continue
            effective[answer.item.label] = answer
        return effective

    def mark_completed(self) -> None:
        """Mark module completed."""
        self._status = ModuleStatus.COMPLETED
        self._updated_at = datetime.utcnow()

    def _ensure_known_item(self, label: str):
        item = self._definition.get_item(label)
        if item is None:
            raise ValueError(f"Item '{label}' is not part of module {self._definition.name}")
        return item

    def __eq__(self, other: object) -> bool:
        """Check equality based on module instance ID."""
        if not isinstance(other, TripModule):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        """Hash based on module instance ID."""
        return hash(self._id)

    def __repr__(self) -> str:
        """Detailed string representation."""
        return (
            f"TripModule(id={self._id}, key={self.key}, step={self.step}, "
            f"status={self._status.value}, answers={len(self._answers)})"
        )

"""Trip review service: submission, approval and critical failure lifecycle."""

import logging
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING
from uuid import UUID

from src.fleet_safety.application.exceptions import (
    ConcurrentSnapshotUpdateError,
    CriticalFailureNotFoundError,
    ScoringUnavailableError,
    TripNotFoundError,
)
from src.fleet_safety.domain.entities.critical_failure import CriticalFailure
from src.fleet_safety.domain.catalog.checklist_catalog import DEFAULT_CATALOG, ChecklistCatalog
from src.fleet_safety.domain.entities.trip import Trip
from src.fleet_safety.domain.entities.trip_module import TripModule
from src.fleet_safety.domain.value_objects.actor import Actor
from src.fleet_safety.domain.value_objects.checklist import AnswerValue, ItemCategory, ModuleAnswer
from src.fleet_safety.domain.value_objects.override import OverrideDecision
from src.fleet_safety.infrastructure.logging import (
    get_logger,
    log_audit_event,
    log_business_rule_violation,
    log_with_extra,
)

if TYPE_CHECKING:
    from src.fleet_safety.application.ports.repositories import CriticalFailureRepository, TripRepository
    from src.fleet_safety.application.services.risk_scoring_service import RiskScoringService


class TripReviewService:
    """Service driving a trip from draft through review."""

    def __init__(
        self,
        trip_repository: "TripRepository",
        critical_failure_repository: "CriticalFailureRepository",
        risk_scoring_service: "RiskScoringService",
        catalog: ChecklistCatalog = DEFAULT_CATALOG
    ):
        """Initialize trip review service with its dependencies."""
        self._catalog = catalog
        self._trip_repository = trip_repository
        self._critical_failure_repository = critical_failure_repository
        self._risk_scoring_service = risk_scoring_service
        self._logger = get_logger(__name__)

    async def create_draft_trip(
        self,
        driver_id: UUID,
        vehicle_id: Optional[UUID] = None,
        trip_date: Optional[datetime] = None,
        actor: Optional[Actor] = None
    ) -> Trip:
        """Create a draft trip with one module per catalog entry."""
        trip = await self._trip_repository.save(
            Trip(driver_id=driver_id, vehicle_id=vehicle_id, trip_date=trip_date)
        )
        for definition in self._catalog.modules:
            await self._trip_repository.save_module(TripModule(definition=definition, trip_id=trip.id))

        log_audit_event(
            "trip_created",
            str(trip.id),
            actor_id=str(actor.actor_id) if actor else None,
            driver_id=str(driver_id),
            modules=len(self._catalog),
        )
        return trip

    async def get_trip(self, trip_id: UUID) -> Trip:
        """Get a trip by ID.

        Raises:
            TripNotFoundError: If the trip does not exist
        """
        return await self._get_trip(trip_id)

    async def list_modules(self, trip_id: UUID) -> List[TripModule]:
        """List the checklist modules of a trip ordered by step."""
        await self._get_trip(trip_id)
        return await self._trip_repository.find_modules(trip_id)

    async def complete_module(self, trip_id: UUID, module_key: str, actor: Optional[Actor] = None) -> TripModule:
        """Mark a module of a draft trip as completed.

        Raises:
            TripNotFoundError: If the trip does not exist
            ValueError: If the trip was submitted or the module is unknown
        """
        trip = await self._get_trip(trip_id)
        self._ensure_editable(trip, f"complete module {module_key}")
        module = await self._get_module(trip_id, module_key)
        module.mark_completed()
        saved = await self._trip_repository.save_module(module)

        log_audit_event(
            "module_completed",
            str(trip_id),
            actor_id=str(actor.actor_id) if actor else None,
            module_key=module_key,
        )
        return saved

    async def record_answer(
        self,
        trip_id: UUID,
        module_key: str,
        label: str,
        value: AnswerValue,
        actor: Optional[Actor] = None
    ) -> ModuleAnswer:
        """Record a checklist answer on a draft trip.

        A critical item that newly fails also logs a critical failure,
        unless one is still open for the item. Correcting a failed answer
        resolves the open failures logged for that item.

        Args:
            trip_id: ID of the trip
            module_key: Catalog key of the module
            label: Item label
            value: Submitted value
            actor: User giving the answer

        Returns:
            The stored answer

        Raises:
            TripNotFoundError: If the trip does not exist
            ValueError: If the trip was submitted or the module or item is unknown
        """
        trip = await self._get_trip(trip_id)
        self._ensure_editable(trip, f"change answer '{label}'")
        module = await self._get_module(trip_id, module_key)

        previous = module.effective_answers().get(label)
        answer = module.record_answer(label, value)
        await self._trip_repository.save_module(module)

        failed_before = previous is not None and previous.indicates_failure
        if answer.item.critical and answer.indicates_failure and not failed_before:
            if not await self._open_failures_for_item(trip_id, label):
                await self.log_critical_failure(
                    trip_id,
                    description=f"Critical item failed: {label}",
                    points=answer.item.points or 1,
                    module_item_label=label,
                    category=answer.item.category,
                    actor=actor,
                )
        elif failed_before and not answer.indicates_failure:
            await self._resolve_corrected_item(trip_id, label, actor)

        log_with_extra(
            self._logger,
            logging.DEBUG,
            f"Answer recorded for '{label}' on trip {trip_id}",
            trip_id=str(trip_id),
            module_key=module_key,
            answer_id=str(answer.answer_id),
            supersedes=str(answer.supersedes) if answer.supersedes else None,
        )
        return answer

    async def submit_trip(self, trip_id: UUID, actor: Optional[Actor] = None) -> Trip:
        """Submit a draft trip and store its first risk snapshot.

        A trip whose snapshot cannot be stored goes back to draft, so it
        never waits for review with an unknown risk.

        Raises:
            TripNotFoundError: If the trip does not exist
            ValueError: If the trip is not a draft
            ScoringUnavailableError: If the risk inputs could not be fetched
            ConcurrentSnapshotUpdateError: If the snapshot write kept conflicting
        """
        trip = await self._get_trip(trip_id)
        trip.submit()
        await self._trip_repository.save(trip)

        try:
            recalculation = await self._risk_scoring_service.recalculate_risk_snapshot(
                trip_id, actor_id=actor.actor_id if actor else None
            )
        except (ScoringUnavailableError, ConcurrentSnapshotUpdateError):
            await self._withdraw_submission(trip_id)
            raise
        log_audit_event(
            "trip_submitted",
            str(trip_id),
            actor_id=str(actor.actor_id) if actor else None,
            aggregate_score=recalculation.breakdown.total_score,
            risk_level=recalculation.breakdown.risk_level.value,
        )
        return recalculation.trip

    async def start_review(self, trip_id: UUID, actor: Actor) -> Trip:
        """Put a submitted trip under review.

        Raises:
            PermissionError: If the actor cannot review trips
        """
        self._require_reviewer(actor, "start_review", trip_id)
        trip = await self._get_trip(trip_id)
        trip.start_review()
        saved = await self._trip_repository.save(trip)
        log_audit_event("trip_review_started", str(trip_id), actor_id=str(actor.actor_id))
        return saved

    async def grant_critical_override(self, trip_id: UUID, actor: Actor) -> Trip:
        """Record a supervisor override for unresolved critical failures.

        Raises:
            PermissionError: If the actor cannot review trips
            ValueError: If a high-impact failure forbids any override
        """
        self._require_reviewer(actor, "critical_override", trip_id)
        decision = await self._risk_scoring_service.check_critical_failure_override(trip_id)
        if decision.approval_blocked:
            log_business_rule_violation(
                self._logger,
                "override_high_impact_failure",
                f"Override refused for trip {trip_id}: high-impact critical failure unresolved",
                trip_id=str(trip_id),
                actor_id=str(actor.actor_id),
            )
            raise ValueError(f"Trip {trip_id} has a high-impact critical failure that cannot be overridden")

        trip = await self._get_trip(trip_id)
        trip.grant_critical_override()
        saved = await self._trip_repository.save(trip)
        log_audit_event(
            "critical_override_granted",
            str(trip_id),
            actor_id=str(actor.actor_id),
            total_critical_points=decision.total_critical_points,
        )
        return saved

    async def approve_trip(self, trip_id: UUID, actor: Actor, notes: Optional[str] = None) -> Trip:
        """Approve a trip for dispatch.

        Approval is refused for a trip without a stored risk snapshot,
        while a high-impact critical failure is unresolved, or while the
        failures need an override nobody granted.

        Raises:
            PermissionError: If the actor cannot review trips
            ValueError: If the snapshot, the override decision or the trip status forbids approval
        """
        self._require_reviewer(actor, "approve_trip", trip_id)
        trip = await self._get_trip(trip_id)
        if not trip.has_snapshot():
            log_business_rule_violation(
                self._logger,
                "approve_without_risk_snapshot",
                f"Approval of trip {trip_id} refused: no risk snapshot stored",
                trip_id=str(trip_id),
                actor_id=str(actor.actor_id),
            )
            raise ValueError(f"Trip {trip_id} has no risk snapshot; recalculate its risk before approval")

        decision = await self._risk_scoring_service.check_critical_failure_override(trip_id)
        self._ensure_approvable(decision)

        trip.approve()
        saved = await self._trip_repository.save(trip)

        log_audit_event(
            "trip_approved",
            str(trip_id),
            actor_id=str(actor.actor_id),
            approver_role=actor.role.value,
            critical_override=trip.critical_override,
            notes=notes,
        )
        return saved

    async def reject_trip(self, trip_id: UUID, actor: Actor, notes: Optional[str] = None) -> Trip:
        """Reject a trip.

        Raises:
            PermissionError: If the actor cannot review trips
            ValueError: If the trip is not awaiting review
        """
        self._require_reviewer(actor, "reject_trip", trip_id)
        trip = await self._get_trip(trip_id)
        trip.reject()
        saved = await self._trip_repository.save(trip)

        log_audit_event(
            "trip_rejected",
            str(trip_id),
            actor_id=str(actor.actor_id),
            approver_role=actor.role.value,
            notes=notes,
        )
        return saved

    async def reopen_trip(self, trip_id: UUID, actor: Actor) -> Trip:
        """Return a rejected trip to draft so its answers can be corrected."""
        trip = await self._get_trip(trip_id)
        trip.reopen()
        saved = await self._trip_repository.save(trip)
        log_audit_event("trip_reopened", str(trip_id), actor_id=str(actor.actor_id))
        return saved

    async def complete_trip(self, trip_id: UUID, actor: Actor) -> Trip:
        """Close an approved trip so it counts toward the driver's history."""
        trip = await self._get_trip(trip_id)
        trip.complete()
        saved = await self._trip_repository.save(trip)
        log_audit_event(
            "trip_completed",
            str(trip_id),
            actor_id=str(actor.actor_id),
            aggregate_score=trip.aggregate_score,
        )
        return saved

    async def log_critical_failure(
        self,
        trip_id: UUID,
        description: str,
        points: float,
        module_item_label: Optional[str] = None,
        category: Optional[ItemCategory] = None,
        actor: Optional[Actor] = None
    ) -> CriticalFailure:
        """Log a critical failure against a trip.

        Raises:
            TripNotFoundError: If the trip does not exist
            ValueError: If the failure data is invalid
        """
        await self._get_trip(trip_id)
        failure = CriticalFailure(
            trip_id=trip_id,
            description=description,
            points=points,
            module_item_label=module_item_label,
            category=category,
        )
        saved = await self._critical_failure_repository.save(failure)

        log_audit_event(
            "critical_failure_logged",
            str(trip_id),
            actor_id=str(actor.actor_id) if actor else None,
            failure_id=str(saved.id),
            points=points,
            category=category.value if category else None,
        )
        return saved

    async def list_critical_failures(self, trip_id: UUID) -> List[CriticalFailure]:
        """List all critical failures of a trip, resolved ones included."""
        await self._get_trip(trip_id)
        return await self._critical_failure_repository.find_by_trip(trip_id)

    async def resolve_critical_failure(self, trip_id: UUID, failure_id: UUID, actor: Actor) -> CriticalFailure:
        """Resolve a critical failure.

        Raises:
            PermissionError: If the actor may not resolve failures
            CriticalFailureNotFoundError: If the failure does not belong to the trip
            ValueError: If the failure is already resolved
        """
        if not actor.can_resolve_failures:
            self._deny(actor, "resolve_critical_failure", trip_id)

        failure = await self._get_failure(trip_id, failure_id)
        failure.resolve(actor.actor_id)
        saved = await self._critical_failure_repository.save(failure)

        log_audit_event(
            "critical_failure_resolved",
            str(trip_id),
            actor_id=str(actor.actor_id),
            failure_id=str(failure_id),
            points=failure.points,
        )
        return saved

    async def delete_critical_failure(self, trip_id: UUID, failure_id: UUID, actor: Actor) -> bool:
        """Delete a critical failure. Admin only.

        Raises:
            PermissionError: If the actor is not an admin
            CriticalFailureNotFoundError: If the failure does not belong to the trip
        """
        if not actor.is_admin:
            self._deny(actor, "delete_critical_failure", trip_id)

        failure = await self._get_failure(trip_id, failure_id)
        deleted = await self._critical_failure_repository.delete(failure.id)

        log_audit_event(
            "critical_failure_deleted",
            str(trip_id),
            actor_id=str(actor.actor_id),
            failure_id=str(failure_id),
            description=failure.description,
            points=failure.points,
        )
        return deleted

    def _ensure_approvable(self, decision: OverrideDecision) -> None:
        trip_id = str(decision.trip_id)
        if decision.approval_blocked:
            log_business_rule_violation(
                self._logger,
                "approve_with_high_impact_failure",
                f"Approval of trip {trip_id} blocked by unresolved high-impact critical failure",
                trip_id=trip_id,
                total_critical_points=decision.total_critical_points,
            )
            raise ValueError(f"Trip {trip_id} has unresolved high-impact critical failures")

        if decision.needs_override and not decision.current_override:
            log_business_rule_violation(
                self._logger,
                "approve_without_override",
                f"Approval of trip {trip_id} needs a critical failure override",
                trip_id=trip_id,
                total_critical_points=decision.total_critical_points,
            )
            raise ValueError(f"Trip {trip_id} needs a supervisor override before approval")

    async def _open_failures_for_item(self, trip_id: UUID, label: str) -> List[CriticalFailure]:
        unresolved = await self._critical_failure_repository.find_unresolved_by_trip(trip_id)
        return [failure for failure in unresolved if failure.module_item_label == label]

    async def _resolve_corrected_item(self, trip_id: UUID, label: str, actor: Optional[Actor]) -> None:
        for failure in await self._open_failures_for_item(trip_id, label):
            failure.resolve(actor.actor_id if actor else None)
            await self._critical_failure_repository.save(failure)
            log_audit_event(
                "critical_failure_auto_resolved",
                str(trip_id),
                actor_id=str(actor.actor_id) if actor else None,
                failure_id=str(failure.id),
                module_item_label=label,
                points=failure.points,
            )

    async def _withdraw_submission(self, trip_id: UUID) -> None:
        trip = await self._get_trip(trip_id)
        trip.withdraw_submission()
        await self._trip_repository.save(trip)
        self._logger.warning(f"Submission of trip {trip_id} withdrawn: risk snapshot could not be stored")

    def _ensure_editable(self, trip: Trip, action: str) -> None:
        if trip.is_editable():
            return
        log_business_rule_violation(
            self._logger,
            "edit_after_submission",
            f"Attempted to {action} on trip {trip.id} in status {trip.status.value}",
            trip_id=str(trip.id),
            trip_status=trip.status.value,
        )
        raise ValueError(f"Trip {trip.id} cannot change once it is {trip.status.value}")

    async def _get_module(self, trip_id: UUID, module_key: str) -> TripModule:
        modules = await self._trip_repository.find_modules(trip_id)
        module = next((m for m in modules if m.key == module_key), None)
        if module is None:
            raise ValueError(f"Module {module_key} is not part of trip {trip_id}")
        return module

    def _require_reviewer(self, actor: Actor, action: str, trip_id: UUID) -> None:
        if not actor.can_review:
            self._deny(actor, action, trip_id)

    def _deny(self, actor: Actor, action: str, trip_id: UUID) -> None:
        log_business_rule_violation(
            self._logger,
            "permission_denied",
            f"Role {actor.role.value} may not {action.replace('_', ' ')} on trip {trip_id}",
            actor_id=str(actor.actor_id),
            actor_role=actor.role.value,
            trip_id=str(trip_id),
        )
        raise PermissionError(f"Role {actor.role.value} is not allowed to {action.replace('_', ' ')}")

    async def _get_trip(self, trip_id: UUID) -> Trip:
        trip = await self._trip_repository.find_by_id(trip_id)
        if trip is None:
            self._logger.warning(f"Trip {trip_id} not found")
            raise TripNotFoundError(trip_id)
        return trip

    async def _get_failure(self, trip_id: UUID, failure_id: UUID) -> CriticalFailure:
        failure = await self._critical_failure_repository.find_by_id(failure_id)
        if failure is None or failure.trip_id != trip_id:
            raise CriticalFailureNotFoundError(failure_id, trip_id)
        return failure

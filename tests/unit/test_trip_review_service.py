"""Unit tests for the trip review service."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from uuid import uuid4

from src.fleet_safety.application.exceptions import (
    CriticalFailureNotFoundError,
    ScoringUnavailableError,
    TripNotFoundError,
)
from src.fleet_safety.application.services.risk_scoring_service import RiskScoringService
from src.fleet_safety.application.services.trip_review_service import TripReviewService
from src.fleet_safety.domain.entities.trip import Trip, TripStatus
from src.fleet_safety.domain.entities.trip_module import ModuleStatus
from src.fleet_safety.domain.value_objects.actor import Actor, ActorRole
from src.fleet_safety.domain.value_objects.checklist import ItemCategory
from src.fleet_safety.infrastructure.repositories.memory_repositories import (
    InMemoryCriticalFailureRepository,
    InMemoryInTripMonitoringRepository,
    InMemoryPostTripRepository,
    InMemoryTripRepository,
)

DRIVER = Actor(actor_id=uuid4(), role=ActorRole.DRIVER)
MECHANIC = Actor(actor_id=uuid4(), role=ActorRole.MECHANIC)
SUPERVISOR = Actor(actor_id=uuid4(), role=ActorRole.SUPERVISOR)
ADMIN = Actor(actor_id=uuid4(), role=ActorRole.ADMIN)


class TestTripReviewService:
    """Test cases for TripReviewService."""

    @pytest.fixture
    def trips(self):
        return InMemoryTripRepository()

    @pytest.fixture
    def failures(self):
        return InMemoryCriticalFailureRepository()

    @pytest.fixture
    def monitoring(self):
        return InMemoryInTripMonitoringRepository()

    @pytest.fixture
    def scoring(self, trips, monitoring, failures):
        return RiskScoringService(trips, monitoring, InMemoryPostTripRepository(), failures)

    @pytest.fixture
    def service(self, trips, failures, scoring):
        return TripReviewService(trips, failures, scoring)

    @pytest_asyncio.fixture
    async def draft(self, service):
        return await service.create_draft_trip(driver_id=DRIVER.actor_id, actor=DRIVER)

    @pytest_asyncio.fixture
    async def submitted(self, service, draft):
        return await service.submit_trip(draft.id, actor=DRIVER)

    @pytest.mark.asyncio
    async def test_create_draft_trip(self, service, draft):
        """Test a new trip gets one module per catalog entry."""
        modules = await service.list_modules(draft.id)

        assert draft.status == TripStatus.DRAFT
        assert len(modules) == 11
        assert [module.step for module in modules] == list(range(1, 12))
        assert all(module.status == ModuleStatus.INCOMPLETE for module in modules)

    @pytest.mark.asyncio
    async def test_unknown_trip(self, service):
        """Test lookups of unknown trips."""
        with pytest.raises(TripNotFoundError):
            await service.get_trip(uuid4())

    @pytest.mark.asyncio
    async def test_complete_module(self, service, draft):
        """Test completing a module."""
        module = await service.complete_module(draft.id, "HEALTH_FITNESS", actor=DRIVER)

        assert module.is_completed() is True

    @pytest.mark.asyncio
    async def test_unknown_module(self, service, draft):
        """Test answering into a module the trip does not have."""
        with pytest.raises(ValueError, match="Module CARGO is not part of trip"):
            await service.record_answer(draft.id, "CARGO", "Cargo secured", "yes")

    @pytest.mark.asyncio
    async def test_unknown_item(self, service, draft):
        """Test answering an item the module does not have."""
        with pytest.raises(ValueError, match="is not part of module"):
            await service.record_answer(draft.id, "HEALTH_FITNESS", "Blood Pressure", "pass")

    @pytest.mark.asyncio
    async def test_failed_critical_item_logs_failure(self, service, draft):
        """Test a failing critical answer logs a critical failure once."""
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Alcohol Breath Test/Drugs", "fail", actor=DRIVER)
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Alcohol Breath Test/Drugs", "fail", actor=DRIVER)

        failures = await service.list_critical_failures(draft.id)

        assert len(failures) == 1
        assert failures[0].description == "Critical item failed: Alcohol Breath Test/Drugs"
        assert failures[0].points == 5
        assert failures[0].category == ItemCategory.DRIVER
        assert failures[0].module_item_label == "Alcohol Breath Test/Drugs"

    @pytest.mark.asyncio
    async def test_failed_non_critical_item_logs_nothing(self, service, draft):
        """Test non-critical answers never log failures."""
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Medication", "no")

        assert await service.list_critical_failures(draft.id) == []

    @pytest.mark.asyncio
    async def test_revised_answer_keeps_history(self, service, draft):
        """Test changing an answer supersedes the previous one."""
        first = await service.record_answer(draft.id, "HEALTH_FITNESS", "Temperature Check", "fail")
        second = await service.record_answer(draft.id, "HEALTH_FITNESS", "Temperature Check", "pass")

        modules = await service.list_modules(draft.id)
        health = next(module for module in modules if module.key == "HEALTH_FITNESS")

        assert second.supersedes == first.answer_id
        assert len(health.answers) == 2
        assert health.effective_answers()["Temperature Check"].value == "pass"

    @pytest.mark.asyncio
    async def test_corrected_answer_resolves_failure(self, service, scoring, draft):
        """Test correcting a failed critical answer resolves its failure."""
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Alcohol Breath Test/Drugs", "fail", actor=DRIVER)
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Alcohol Breath Test/Drugs", "pass", actor=DRIVER)

        failures = await service.list_critical_failures(draft.id)
        decision = await scoring.check_critical_failure_override(draft.id)

        assert len(failures) == 1
        assert failures[0].resolved is True
        assert failures[0].resolved_by == DRIVER.actor_id
        assert decision.total_critical_points == 0
        assert decision.needs_override is False

    @pytest.mark.asyncio
    async def test_failing_again_after_correction_logs_one_open_failure(self, service, scoring, draft):
        """Test fail, pass, fail leaves a single open failure for the item."""
        for value in ("fail", "pass", "fail"):
            await service.record_answer(draft.id, "HEALTH_FITNESS", "Temperature Check", value, actor=DRIVER)

        failures = await service.list_critical_failures(draft.id)
        decision = await scoring.check_critical_failure_override(draft.id)

        assert [failure.resolved for failure in failures] == [True, False]
        assert decision.total_critical_points == 3
        assert decision.needs_override is False

    @pytest.mark.asyncio
    async def test_open_failure_is_not_duplicated(self, service, failures, draft):
        """Test a failing answer does not log again while the item's failure is open."""
        await service.log_critical_failure(
            draft.id,
            description="Driver reported fever",
            points=3,
            module_item_label="Temperature Check",
            actor=SUPERVISOR,
        )

        await service.record_answer(draft.id, "HEALTH_FITNESS", "Temperature Check", "fail", actor=DRIVER)

        unresolved = await failures.find_unresolved_by_trip(draft.id)
        assert [failure.description for failure in unresolved] == ["Driver reported fever"]

    @pytest.mark.asyncio
    async def test_correction_leaves_other_items_open(self, service, draft):
        """Test correcting one item keeps failures of other items open."""
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Temperature Check", "fail")
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Alcohol Breath Test/Drugs", "fail")
        await service.record_answer(draft.id, "HEALTH_FITNESS", "Temperature Check", "pass")

        failures = {failure.module_item_label: failure for failure in await service.list_critical_failures(draft.id)}

        assert failures["Temperature Check"].resolved is True
        assert failures["Temperature Check"].resolved_by is None
        assert failures["Alcohol Breath Test/Drugs"].resolved is False

    @pytest.mark.asyncio
    async def test_submit_with_scoring_unavailable_returns_to_draft(self, service, monitoring, draft):
        """Test a trip whose risk cannot be scored is not left awaiting review."""
        monitoring.find_speed_violations = AsyncMock(side_effect=OSError("connection refused"))

        with pytest.raises(ScoringUnavailableError):
            await service.submit_trip(draft.id, actor=DRIVER)

        trip = await service.get_trip(draft.id)
        assert trip.status == TripStatus.DRAFT
        assert trip.has_snapshot() is False

        with pytest.raises(ValueError, match="no risk snapshot"):
            await service.approve_trip(draft.id, SUPERVISOR)

    @pytest.mark.asyncio
    async def test_submit_succeeds_once_scoring_recovers(self, service, monitoring, draft):
        """Test a withdrawn submission can be retried."""
        monitoring.find_speed_violations = AsyncMock(side_effect=OSError("connection refused"))
        with pytest.raises(ScoringUnavailableError):
            await service.submit_trip(draft.id, actor=DRIVER)

        monitoring.find_speed_violations = AsyncMock(return_value=[])
        trip = await service.submit_trip(draft.id, actor=DRIVER)

        assert trip.status == TripStatus.SUBMITTED
        assert trip.aggregate_score == 3

    @pytest.mark.asyncio
    async def test_approve_without_snapshot_refused(self, service, trips):
        """Test a submitted trip without a stored snapshot cannot be approved."""
        trip = await trips.save(Trip(driver_id=DRIVER.actor_id, status=TripStatus.SUBMITTED))

        with pytest.raises(ValueError, match="no risk snapshot"):
            await service.approve_trip(trip.id, SUPERVISOR)

        assert (await service.get_trip(trip.id)).status == TripStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_submit_stores_snapshot(self, submitted):
        """Test submission writes the first risk snapshot."""
        assert submitted.status == TripStatus.SUBMITTED
        assert submitted.version == 1
        assert submitted.aggregate_score == 3
        assert submitted.has_snapshot() is True

    @pytest.mark.asyncio
    async def test_answers_frozen_after_submission(self, service, submitted):
        """Test submitted trips reject answer changes."""
        with pytest.raises(ValueError, match="cannot change once it is submitted"):
            await service.record_answer(submitted.id, "HEALTH_FITNESS", "Temperature Check", "pass")

        with pytest.raises(ValueError, match="cannot change once it is submitted"):
            await service.complete_module(submitted.id, "HEALTH_FITNESS")

    @pytest.mark.asyncio
    async def test_submit_twice(self, service, submitted):
        """Test a submitted trip cannot be submitted again."""
        with pytest.raises(ValueError, match="Cannot move trip from submitted to submitted"):
            await service.submit_trip(submitted.id)

    @pytest.mark.asyncio
    async def test_approve_and_complete(self, service, submitted):
        """Test the review happy path."""
        approved = await service.approve_trip(submitted.id, SUPERVISOR, notes="All good")
        completed = await service.complete_trip(submitted.id, SUPERVISOR)

        assert approved.status == TripStatus.APPROVED
        assert completed.status == TripStatus.COMPLETED
        assert completed.aggregate_score == 3

    @pytest.mark.asyncio
    async def test_review_then_approve(self, service, submitted):
        """Test approval from under review."""
        await service.start_review(submitted.id, SUPERVISOR)

        approved = await service.approve_trip(submitted.id, ADMIN)

        assert approved.status == TripStatus.APPROVED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("actor", [DRIVER, MECHANIC])
    async def test_only_reviewers_approve(self, service, submitted, actor):
        """Test approval permission."""
        with pytest.raises(PermissionError):
            await service.approve_trip(submitted.id, actor)

        with pytest.raises(PermissionError):
            await service.reject_trip(submitted.id, actor)

    @pytest.mark.asyncio
    async def test_high_impact_failure_blocks_approval(self, service, submitted):
        """Test approval and override are both refused."""
        await service.log_critical_failure(submitted.id, "Brakes failed", points=12)

        with pytest.raises(ValueError, match="high-impact"):
            await service.approve_trip(submitted.id, SUPERVISOR)

        with pytest.raises(ValueError, match="cannot be overridden"):
            await service.grant_critical_override(submitted.id, SUPERVISOR)

    @pytest.mark.asyncio
    async def test_resolving_blocking_failure_allows_approval(self, service, submitted):
        """Test resolution clears the block."""
        failure = await service.log_critical_failure(
            submitted.id, "Brake fluid leak", points=12, category=ItemCategory.MECHANICAL
        )

        resolved = await service.resolve_critical_failure(submitted.id, failure.id, MECHANIC)
        approved = await service.approve_trip(submitted.id, SUPERVISOR)

        assert resolved.resolved is True
        assert resolved.resolved_by == MECHANIC.actor_id
        assert approved.status == TripStatus.APPROVED

    @pytest.mark.asyncio
    async def test_approval_needs_override(self, service, submitted):
        """Test failures at the override threshold need a supervisor override."""
        await service.log_critical_failure(submitted.id, "Tyre worn", points=3)
        await service.log_critical_failure(submitted.id, "Mirror cracked", points=3)

        with pytest.raises(ValueError, match="needs a supervisor override"):
            await service.approve_trip(submitted.id, SUPERVISOR)

        overridden = await service.grant_critical_override(submitted.id, SUPERVISOR)
        approved = await service.approve_trip(submitted.id, SUPERVISOR)

        assert overridden.critical_override is True
        assert approved.status == TripStatus.APPROVED

    @pytest.mark.asyncio
    async def test_driver_cannot_grant_override(self, service, submitted):
        """Test override permission."""
        with pytest.raises(PermissionError):
            await service.grant_critical_override(submitted.id, DRIVER)

    @pytest.mark.asyncio
    async def test_reject_and_reopen(self, service, submitted):
        """Test a rejected trip returns to draft without its override."""
        await service.log_critical_failure(submitted.id, "Tyre worn", points=6)
        await service.grant_critical_override(submitted.id, SUPERVISOR)

        rejected = await service.reject_trip(submitted.id, SUPERVISOR, notes="Fix tyres")
        reopened = await service.reopen_trip(submitted.id, DRIVER)

        assert rejected.status == TripStatus.REJECTED
        assert reopened.status == TripStatus.DRAFT
        assert reopened.critical_override is False
        await service.record_answer(submitted.id, "EXTERIOR_INSPECTION", "Body Condition: Leaks", "pass")

    @pytest.mark.asyncio
    async def test_resolve_twice(self, service, submitted):
        """Test a failure can only be resolved once."""
        failure = await service.log_critical_failure(submitted.id, "Horn broken", points=2)
        await service.resolve_critical_failure(submitted.id, failure.id, SUPERVISOR)

        with pytest.raises(ValueError, match="already resolved"):
            await service.resolve_critical_failure(submitted.id, failure.id, SUPERVISOR)

    @pytest.mark.asyncio
    async def test_resolve_failure_of_other_trip(self, service, submitted):
        """Test failures are scoped to their trip."""
        other = await service.create_draft_trip(driver_id=uuid4())
        failure = await service.log_critical_failure(other.id, "Horn broken", points=2)

        with pytest.raises(CriticalFailureNotFoundError):
            await service.resolve_critical_failure(submitted.id, failure.id, SUPERVISOR)

    @pytest.mark.asyncio
    async def test_delete_is_admin_only(self, service, submitted):
        """Test deletion permission."""
        failure = await service.log_critical_failure(submitted.id, "Logged by mistake", points=1)

        with pytest.raises(PermissionError):
            await service.delete_critical_failure(submitted.id, failure.id, SUPERVISOR)

        assert await service.delete_critical_failure(submitted.id, failure.id, ADMIN) is True
        assert await service.list_critical_failures(submitted.id) == []

    @pytest.mark.asyncio
    async def test_delete_unknown_failure(self, service, submitted):
        """Test deleting a failure that does not exist."""
        with pytest.raises(CriticalFailureNotFoundError):
            await service.delete_critical_failure(submitted.id, uuid4(), ADMIN)

    @pytest.mark.asyncio
    async def test_log_failure_on_unknown_trip(self, service):
        """Test failures need an existing trip."""
        with pytest.raises(TripNotFoundError):
            await service.log_critical_failure(uuid4(), "Brakes failed", points=5)

    @pytest.mark.asyncio
    async def test_log_failure_validation(self, service, draft):
        """Test failure data validation."""
        with pytest.raises(ValueError, match="description cannot be empty"):
            await service.log_critical_failure(draft.id, "   ", points=5)

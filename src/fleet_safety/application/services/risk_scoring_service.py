"""Risk scoring service orchestrating data fetch, scoring and snapshot write-back."""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Dict, List, Optional, Sequence, TypeVar, TYPE_CHECKING
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from src.fleet_safety.application.exceptions import (
    ConcurrentSnapshotUpdateError,
    ScoringUnavailableError,
    TripNotFoundError,
)
from src.fleet_safety.application.scoring.composite_engine import combine_phase_scores, determine_risk_level
from src.fleet_safety.application.scoring.factor_summary import summarize_factors
from src.fleet_safety.application.scoring.module_scorer import score_module
from src.fleet_safety.application.scoring.override_resolver import resolve_override
from src.fleet_safety.application.scoring.phase_aggregators import (
    aggregate_in_trip,
    aggregate_post_trip,
    aggregate_pre_trip,
)
from src.fleet_safety.application.scoring.trend_analyzer import analyze_trend
from src.fleet_safety.domain.entities.trip import Trip
from src.fleet_safety.domain.entities.trip_module import TripModule
from src.fleet_safety.domain.value_objects.override import OverrideDecision
from src.fleet_safety.domain.value_objects.risk import (
    FactorSummary,
    Impact,
    ModuleRiskScore,
    RiskScoreBreakdown,
)
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy
from src.fleet_safety.domain.value_objects.snapshot import RiskSnapshot, SnapshotRecalculation
from src.fleet_safety.domain.value_objects.telemetry import (
    FatigueReading,
    FuelRecord,
    InTripIncident,
    PostTripInspection,
    RealTimeAlert,
    SpeedViolation,
)
from src.fleet_safety.domain.value_objects.trend import RiskTrend
from src.fleet_safety.infrastructure.logging import (
    get_logger,
    log_audit_event,
    log_risk_assessment,
    log_with_extra,
)

if TYPE_CHECKING:
    from src.fleet_safety.application.ports.repositories import (
        CriticalFailureRepository,
        InTripMonitoringRepository,
        PostTripRepository,
        TripRepository,
    )

T = TypeVar("T")

# Errors raised by the data layer that mean "inputs unknown", never "no risk"
DATA_LAYER_ERRORS = (SQLAlchemyError, OSError, RuntimeError)

SNAPSHOT_WRITE_ATTEMPTS = 2


@dataclass(frozen=True)
class RiskInputs:
    """Everything the scoring functions need for one trip."""

    modules: Sequence[TripModule] = ()
    violations: Sequence[SpeedViolation] = ()
    fatigue: Optional[FatigueReading] = None
    incidents: Sequence[InTripIncident] = ()
    alerts: Sequence[RealTimeAlert] = ()
    inspection: Optional[PostTripInspection] = None
    fuel: Optional[FuelRecord] = None


class TripLockRegistry:
    """Per-trip asyncio locks, dropped once nobody holds or waits on them."""

    def __init__(self):
        self._locks: Dict[UUID, asyncio.Lock] = {}
        self._users: Dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, trip_id: UUID):
        """Serialize work on one trip within this process."""
        lock = self._locks.setdefault(trip_id, asyncio.Lock())
        self._users[trip_id] = self._users.get(trip_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[trip_id] -= 1
            if not self._users[trip_id]:
                del self._users[trip_id]
                del self._locks[trip_id]

    def __len__(self) -> int:
        return len(self._locks)


class RiskScoringService:
    """Service computing risk breakdowns, module scores, trends and override decisions."""

    def __init__(
        self,
        trip_repository: "TripRepository",
        monitoring_repository: "InTripMonitoringRepository",
        post_trip_repository: "PostTripRepository",
        critical_failure_repository: "CriticalFailureRepository",
        policy: RiskPolicy = DEFAULT_POLICY,
        trip_locks: Optional[TripLockRegistry] = None
    ):
        """Initialize risk scoring service with repository dependencies."""
        self._trip_repository = trip_repository
        self._monitoring_repository = monitoring_repository
        self._post_trip_repository = post_trip_repository
        self._critical_failure_repository = critical_failure_repository
        self._policy = policy
        self._trip_locks = trip_locks or TripLockRegistry()
        self._logger = get_logger(__name__)

    @property
    def policy(self) -> RiskPolicy:
        """Get the active risk policy."""
        return self._policy

    async def calculate_comprehensive_risk_score(self, trip_id: UUID) -> RiskScoreBreakdown:
        """Compute a fresh risk breakdown for a trip.

        Args:
            trip_id: ID of the trip to score

        Returns:
            Freshly computed breakdown; never the persisted snapshot

        Raises:
            TripNotFoundError: If the trip does not exist
            ScoringUnavailableError: If any input could not be fetched
        """
        self._logger.info(f"Calculating comprehensive risk score for trip {trip_id}")

        await self._require_trip(trip_id)
        inputs = await self.load_inputs(trip_id)
        breakdown = self.score_inputs(inputs)

        log_risk_assessment(
            self._logger,
            str(trip_id),
            breakdown.total_score,
            breakdown.risk_level.value,
            breakdown.compliance_status.value,
            factor_count=len(breakdown.factors),
        )
        return breakdown

    async def get_module_risk_scores(self, trip_id: UUID) -> List[ModuleRiskScore]:
        """Score every checklist module of a trip, ordered by step.

        Raises:
            TripNotFoundError: If the trip does not exist
            ScoringUnavailableError: If the modules could not be fetched
        """
        await self._require_trip(trip_id)
        modules = await self._guard(trip_id, "trip_modules", self._trip_repository.find_modules(trip_id))
        return self.score_modules(modules)

    async def calculate_risk_trend(self, driver_id: UUID, days: int = 30) -> RiskTrend:
        """Analyze a driver's completed trips within the lookback window.

        Args:
            driver_id: ID of the driver
            days: Lookback window in days

        Returns:
            Trend summary, ``insufficient_data`` below two completed trips

        Raises:
            ValueError: If the window is not positive
            ScoringUnavailableError: If trips could not be fetched
        """
        if days <= 0:
            raise ValueError("Trend window must be a positive number of days")

        since = datetime.utcnow() - timedelta(days=days)
        trips = await self._guard(None, "trips", self._trip_repository.find_by_driver(driver_id, since))
        trend = analyze_trend(trips, self._policy)

        log_with_extra(
            self._logger,
            logging.INFO,
            f"Risk trend for driver {driver_id}: {trend.trend.value}",
            driver_id=str(driver_id),
            trend_days=days,
            trend=trend.trend.value,
            total_trips=trend.total_trips,
        )
        return trend

    async def check_critical_failure_override(self, trip_id: UUID) -> OverrideDecision:
        """Evaluate unresolved critical failures of a trip.

        Raises:
            TripNotFoundError: If the trip does not exist
            ScoringUnavailableError: If failures could not be fetched
        """
        trip, failures = await asyncio.gather(
            self._require_trip(trip_id),
            self._guard(
                trip_id,
                "critical_failures",
                self._critical_failure_repository.find_unresolved_by_trip(trip_id),
            ),
        )
        decision = resolve_override(trip, failures, self._policy)

        if decision.has_high_impact_failure:
            log_with_extra(
                self._logger,
                logging.WARNING,
                f"High-impact critical failure blocks approval of trip {trip_id}",
                trip_id=str(trip_id),
                total_critical_points=decision.total_critical_points,
                unresolved_failures=len(decision.unresolved_failures),
            )
        return decision

    async def recalculate_risk_snapshot(
        self,
        trip_id: UUID,
        actor_id: Optional[UUID] = None
    ) -> SnapshotRecalculation:
        """Recompute the breakdown and store it as the trip's snapshot.

        The write uses the trip version read before scoring. If another
        writer stored a snapshot in between, the computation is redone once
        on fresh data.

        Args:
            trip_id: ID of the trip
            actor_id: User who requested the recalculation, for the audit trail

        Returns:
            Recalculation with previous and new values

        Raises:
            TripNotFoundError: If the trip does not exist
            ScoringUnavailableError: If inputs could not be fetched or stored
            ConcurrentSnapshotUpdateError: If the retry also lost the race
        """
        async with self._trip_locks.hold(trip_id):
            for attempt in range(1, SNAPSHOT_WRITE_ATTEMPTS + 1):
                trip = await self._require_trip(trip_id)
                previous_score = trip.aggregate_score
                previous_level = trip.risk_level
                expected_version = trip.version

                inputs = await self.load_inputs(trip_id)
                breakdown = self.score_inputs(inputs)
                trip.apply_risk_snapshot(breakdown)

                try:
                    updated = await self._guard(
                        trip_id,
                        "trip_snapshot",
                        self._trip_repository.update_snapshot(trip, expected_version),
                    )
                    break
                except ConcurrentSnapshotUpdateError:
                    if attempt == SNAPSHOT_WRITE_ATTEMPTS:
                        self._logger.error(f"Giving up on risk snapshot for trip {trip_id} after {attempt} attempts")
                        raise
                    log_with_extra(
                        self._logger,
                        logging.WARNING,
                        f"Risk snapshot for trip {trip_id} changed concurrently, retrying",
                        trip_id=str(trip_id),
                        expected_version=expected_version,
                        attempt=attempt,
                    )

        recalculation = SnapshotRecalculation(
            trip=updated,
            breakdown=breakdown,
            module_scores=tuple(self.score_modules(inputs.modules)),
            previous_score=previous_score,
            previous_risk_level=previous_level,
        )

        log_audit_event(
            "risk_score_recalculated",
            str(trip_id),
            actor_id=str(actor_id) if actor_id else None,
            previous_score=previous_score,
            new_score=breakdown.total_score,
            previous_risk_level=previous_level.value if previous_level else None,
            new_risk_level=breakdown.risk_level.value,
            compliance_status=breakdown.compliance_status.value,
            factors_count=len(breakdown.factors),
        )
        log_risk_assessment(
            self._logger,
            str(trip_id),
            breakdown.total_score,
            breakdown.risk_level.value,
            breakdown.compliance_status.value,
            snapshot_version=updated.version,
        )
        return recalculation

    async def get_risk_snapshot(self, trip_id: UUID) -> RiskSnapshot:
        """Read the persisted, possibly stale, snapshot of a trip.

        Raises:
            TripNotFoundError: If the trip does not exist
        """
        trip = await self._require_trip(trip_id)
        return RiskSnapshot.of(trip)

    async def get_risk_factors(
        self,
        trip_id: UUID,
        category: Optional[str] = None,
        impact: Optional[Impact] = None
    ) -> FactorSummary:
        """Compute a fresh breakdown and summarize its factors."""
        breakdown = await self.calculate_comprehensive_risk_score(trip_id)
        return self.summarize_factors(breakdown, category=category, impact=impact)

    def summarize_factors(
        self,
        breakdown: RiskScoreBreakdown,
        category: Optional[str] = None,
        impact: Optional[Impact] = None
    ) -> FactorSummary:
        """Filter and group the factors of a breakdown."""
        return summarize_factors(breakdown.factors, category=category, impact=impact)

    async def load_inputs(self, trip_id: UUID) -> RiskInputs:
        """Fetch all scoring inputs of a trip concurrently.

        Every read is independent; all of them must finish before scoring.

        Raises:
            ScoringUnavailableError: If any read failed
        """
        monitoring = self._monitoring_repository
        post_trip = self._post_trip_repository

        modules, violations, fatigue, incidents, alerts, inspection, fuel = await asyncio.gather(
            self._guard(trip_id, "trip_modules", self._trip_repository.find_modules(trip_id)),
            self._guard(trip_id, "speed_violations", monitoring.find_speed_violations(trip_id)),
            self._guard(trip_id, "fatigue_monitoring", monitoring.find_latest_fatigue_reading(trip_id)),
            self._guard(trip_id, "in_trip_incidents", monitoring.find_incidents(trip_id)),
            self._guard(trip_id, "real_time_alerts", monitoring.find_unacknowledged_alerts(trip_id)),
            self._guard(trip_id, "post_trip_inspections", post_trip.find_inspection(trip_id)),
            self._guard(trip_id, "fuel_tracking", post_trip.find_fuel_record(trip_id)),
        )

        return RiskInputs(
            modules=modules or (),
            violations=violations or (),
            fatigue=fatigue,
            incidents=incidents or (),
            alerts=alerts or (),
            inspection=inspection,
            fuel=fuel,
        )

    def score_inputs(self, inputs: RiskInputs) -> RiskScoreBreakdown:
        """Run the pure scoring pipeline over fetched inputs."""
        pre_trip = aggregate_pre_trip(inputs.modules, self._policy)
        in_trip = aggregate_in_trip(
            inputs.violations, inputs.fatigue, inputs.incidents, inputs.alerts, self._policy
        )
        post_trip = aggregate_post_trip(inputs.inspection, inputs.fuel, self._policy)
        return combine_phase_scores(pre_trip, in_trip, post_trip, self._policy)

    def score_modules(self, modules: Sequence[TripModule]) -> List[ModuleRiskScore]:
        """Build per-module risk summaries ordered by step."""
        module_scores = []
        for module in sorted(modules, key=lambda m: m.step):
            result = score_module(module.definition, module.effective_answers().values(), self._policy)
            module_scores.append(ModuleRiskScore(
                module_id=module.id,
                module_name=module.name,
                step=module.step,
                score=result.score,
                risk_level=determine_risk_level(result.score, self._policy),
                critical_items=len(module.definition.critical_items),
                total_items=len(module.definition.items),
                completion_rate=1.0 if module.is_completed() else 0.0,
                factors=result.factors,
            ))
        return module_scores

    async def _require_trip(self, trip_id: UUID) -> Trip:
        trip = await self._guard(trip_id, "trips", self._trip_repository.find_by_id(trip_id))
        if trip is None:
            self._logger.warning(f"Trip {trip_id} not found")
            raise TripNotFoundError(trip_id)
        return trip

    async def _guard(self, trip_id: Optional[UUID], stream: str, operation: Awaitable[T]) -> T:
        """Await a data-layer call, turning failures into ScoringUnavailableError."""
        try:
            return await operation
        except DATA_LAYER_ERRORS as e:
            log_with_extra(
                self._logger,
                logging.ERROR,
                f"Failed to load {stream} for risk scoring: {e}",
                trip_id=str(trip_id) if trip_id else None,
                stream=stream,
                error_type=type(e).__name__,
            )
            raise ScoringUnavailableError(trip_id, stream, e) from e

"""SQLAlchemy repository implementations.

Each call opens its own session through ``session_scope`` so the risk
scoring service can issue reads concurrently; an AsyncSession must never be
shared between coroutines running at the same time.
"""

from datetime import datetime
from typing import AsyncContextManager, Callable, List, Optional
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.fleet_safety.application.exceptions import ConcurrentSnapshotUpdateError
from src.fleet_safety.application.ports.repositories import (
    CriticalFailureRepository,
    InTripMonitoringRepository,
    PostTripRepository,
    TripRepository,
)
from src.fleet_safety.domain.catalog.checklist_catalog import DEFAULT_CATALOG, ChecklistCatalog
from src.fleet_safety.domain.entities.critical_failure import CriticalFailure
from src.fleet_safety.domain.entities.trip import Trip
from src.fleet_safety.domain.entities.trip_module import TripModule
from src.fleet_safety.domain.value_objects.checklist import ChecklistItem, ChecklistModule, ItemCategory, ModuleAnswer
from src.fleet_safety.domain.value_objects.telemetry import (
    FatigueReading,
    FuelRecord,
    InTripIncident,
    PostTripInspection,
    PostTripInspectionItem,
    RealTimeAlert,
    SpeedViolation,
)
from src.fleet_safety.infrastructure.database.models import (
    CriticalFailureModel,
    FatigueMonitoringModel,
    FuelTrackingModel,
    InTripIncidentModel,
    ModuleItemModel,
    PostTripInspectionModel,
    RealTimeAlertModel,
    SpeedViolationModel,
    TripModel,
    TripModuleModel,
)
from src.fleet_safety.infrastructure.logging import get_logger, log_database_operation

SessionScope = Callable[[], AsyncContextManager[AsyncSession]]


class SQLAlchemyTripRepository(TripRepository):
    """SQLAlchemy implementation of trip repository."""

    def __init__(self, session_scope: SessionScope, catalog: ChecklistCatalog = DEFAULT_CATALOG):
        self._session_scope = session_scope
        self._catalog = catalog
        self._logger = get_logger(__name__)

    async def save(self, trip: Trip) -> Trip:
        """Insert or update a trip, snapshot columns excluded once stored."""
        log_database_operation(self._logger, "UPSERT", "trips", trip_id=str(trip.id))
        async with self._session_scope() as session:
            existing = await session.get(TripModel, trip.id)
            if existing:
                existing.driver_id = trip.driver_id
                existing.vehicle_id = trip.vehicle_id
                existing.trip_date = trip.trip_date
                existing.status = trip.status
                existing.critical_override = trip.critical_override
                existing.updated_at = datetime.utcnow()
            else:
                session.add(TripModel(
                    id=trip.id,
                    driver_id=trip.driver_id,
                    vehicle_id=trip.vehicle_id,
                    trip_date=trip.trip_date,
                    status=trip.status,
                    aggregate_score=trip.aggregate_score,
                    risk_level=trip.risk_level,
                    snapshot_at=trip.snapshot_at,
                    version=trip.version,
                    critical_override=trip.critical_override,
                    created_at=trip.created_at,
                    updated_at=datetime.utcnow(),
                ))
            await session.flush()
        return trip

    async def find_by_id(self, trip_id: UUID) -> Optional[Trip]:
        """Find trip by ID."""
        log_database_operation(self._logger, "SELECT", "trips", trip_id=str(trip_id))
        async with self._session_scope() as session:
            model = await session.get(TripModel, trip_id)
            return self._model_to_entity(model) if model else None

    async def find_by_driver(self, driver_id: UUID, since: datetime) -> List[Trip]:
        """Find a driver's trips since a date, oldest first."""
        log_database_operation(self._logger, "SELECT", "trips", driver_id=str(driver_id), since=since.isoformat())
        stmt = (
            select(TripModel)
            .where(TripModel.driver_id == driver_id, TripModel.trip_date >= since)
            .order_by(TripModel.trip_date.asc())
        )
        async with self._session_scope() as session:
            result = await session.execute(stmt)
            return [self._model_to_entity(model) for model in result.scalars().all()]

    async def update_snapshot(self, trip: Trip, expected_version: int) -> Trip:
        """Write the snapshot columns guarded by the stored version."""
        log_database_operation(
            self._logger, "UPDATE", "trips", trip_id=str(trip.id), expected_version=expected_version
        )
        stmt = (
            update(TripModel)
            .where(TripModel.id == trip.id, TripModel.version == expected_version)
            .values(
                aggregate_score=trip.aggregate_score,
                risk_level=trip.risk_level,
                snapshot_at=trip.snapshot_at,
                version=trip.version,
                updated_at=datetime.utcnow(),
            )
        )
        async with self._session_scope() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                current = await session.scalar(select(TripModel.version).where(TripModel.id == trip.id))
                raise ConcurrentSnapshotUpdateError(trip.id, expected_version, current)
        return trip

    async def find_modules(self, trip_id: UUID) -> List[TripModule]:
        """Find all modules of a trip with their answer history."""
        log_database_operation(self._logger, "SELECT", "trip_modules", trip_id=str(trip_id))
        stmt = (
            select(TripModuleModel)
            .where(TripModuleModel.trip_id == trip_id)
            .options(selectinload(TripModuleModel.items))
            .order_by(TripModuleModel.step)
        )
        async with self._session_scope() as session:
            result = await session.execute(stmt)
            return [self._module_to_entity(model) for model in result.scalars().all()]

    async def save_module(self, module: TripModule) -> TripModule:
        """Upsert the module row and append answers not stored yet."""
        log_database_operation(self._logger, "UPSERT", "trip_modules", module_id=str(module.id))
        async with self._session_scope() as session:
            existing = await session.get(TripModuleModel, module.id)
            if existing:
                existing.status = module.status
                existing.updated_at = datetime.utcnow()
            else:
                session.add(TripModuleModel(
                    id=module.id,
                    trip_id=module.trip_id,
                    module_key=module.key,
                    name=module.name,
                    step=module.step,
                    phase=module.phase,
                    status=module.status,
                ))

            stored = set((await session.scalars(
                select(ModuleItemModel.id).where(ModuleItemModel.module_id == module.id)
            )).all())
            for answer in module.answers:
                if answer.answer_id in stored:
                    continue
                session.add(ModuleItemModel(
                    id=answer.answer_id,
                    module_id=module.id,
                    label=answer.item.label,
                    field_type=answer.item.field_type,
                    critical=answer.item.critical,
                    points=answer.item.points,
                    category=answer.item.category,
                    value=answer.value,
                    answered_at=answer.answered_at,
                    supersedes_id=answer.supersedes,
                ))
            await session.flush()
        return module

    def _module_to_entity(self, model: TripModuleModel) -> TripModule:
        """Convert a module row to an entity, preferring the catalog definition."""
        definition = self._catalog.get(model.module_key)
        labels = {item.label for item in model.items}
        if definition is None or any(definition.get_item(label) is None for label in labels):
            # Module rows that drifted from the catalog are scored from their own item rows
            items = {}
            for item in model.items:
                items[item.label] = ChecklistItem(
                    label=item.label,
                    field_type=item.field_type,
                    critical=item.critical,
                    points=item.points,
                    category=item.category or ItemCategory.ADMINISTRATIVE,
                )
            definition = ChecklistModule(
                key=model.module_key,
                name=model.name,
                step=model.step,
                items=tuple(items.values()),
                phase=model.phase,
            )

        answers = [
            ModuleAnswer(
                item=definition.get_item(item.label),
                value=item.value,
                answer_id=item.id,
                answered_at=item.answered_at,
                supersedes=item.supersedes_id,
            )
            for item in model.items
        ]
        return TripModule(
            definition=definition,
            trip_id=model.trip_id,
            module_id=model.id,
            status=model.status,
            answers=answers,
            updated_at=model.updated_at,
        )

    def _model_to_entity(self, model: TripModel) -> Trip:
        """Convert database model to domain entity."""
        return Trip(
            trip_id=model.id,
            driver_id=model.driver_id,
            vehicle_id=model.vehicle_id,
            trip_date=model.trip_date,
            status=model.status,
            aggregate_score=model.aggregate_score,
            risk_level=model.risk_level,
            snapshot_at=model.snapshot_at,
            critical_override=model.critical_override,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class SQLAlchemyInTripMonitoringRepository(InTripMonitoringRepository):
    """SQLAlchemy implementation of in-trip monitoring repository."""

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope
        self._logger = get_logger(__name__)

    async def find_speed_violations(self, trip_id: UUID) -> List[SpeedViolation]:
        """Find all speed violations of a trip."""
        log_database_operation(self._logger, "SELECT", "speed_violations", trip_id=str(trip_id))
        stmt = select(SpeedViolationModel).where(SpeedViolationModel.trip_id == trip_id)
        async with self._session_scope() as session:
            rows = (await session.scalars(stmt)).all()
        return [
            SpeedViolation(
                points_deducted=row.points_deducted or 0,
                severity=row.severity,
                violation_type=row.violation_type,
                recorded_speed=row.recorded_speed,
                speed_limit=row.speed_limit,
                occurred_at=row.occurred_at,
            )
            for row in rows
        ]

    async def find_latest_fatigue_reading(self, trip_id: UUID) -> Optional[FatigueReading]:
        """Find the most recent fatigue reading."""
        log_database_operation(self._logger, "SELECT", "fatigue_monitoring", trip_id=str(trip_id))
        stmt = (
            select(FatigueMonitoringModel)
            .where(FatigueMonitoringModel.trip_id == trip_id)
            .order_by(FatigueMonitoringModel.recorded_at.desc())
            .limit(1)
        )
        async with self._session_scope() as session:
            row = (await session.scalars(stmt)).first()
        if row is None:
            return None
        return FatigueReading(
            alert_level=row.alert_level,
            hours_driven=row.hours_driven or 0.0,
            fatigue_score=row.fatigue_score,
            recorded_at=row.recorded_at,
        )

    async def find_incidents(self, trip_id: UUID) -> List[InTripIncident]:
        """Find all incidents of a trip."""
        log_database_operation(self._logger, "SELECT", "in_trip_incidents", trip_id=str(trip_id))
        stmt = select(InTripIncidentModel).where(InTripIncidentModel.trip_id == trip_id)
        async with self._session_scope() as session:
            rows = (await session.scalars(stmt)).all()
        return [
            InTripIncident(
                severity=row.severity,
                incident_type=row.incident_type,
                description=row.description or "",
                occurred_at=row.occurred_at,
            )
            for row in rows
        ]

    async def find_unacknowledged_alerts(self, trip_id: UUID) -> List[RealTimeAlert]:
        """Find unacknowledged alerts of a trip."""
        log_database_operation(self._logger, "SELECT", "real_time_alerts", trip_id=str(trip_id))
        stmt = select(RealTimeAlertModel).where(
            RealTimeAlertModel.trip_id == trip_id,
            RealTimeAlertModel.acknowledged.is_(False),
        )
        async with self._session_scope() as session:
            rows = (await session.scalars(stmt)).all()
        return [
            RealTimeAlert(
                severity=row.severity,
                acknowledged=row.acknowledged,
                title=row.title,
                alert_type=row.alert_type,
                raised_at=row.raised_at,
            )
            for row in rows
        ]


class SQLAlchemyPostTripRepository(PostTripRepository):
    """SQLAlchemy implementation of post-trip repository."""

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope
        self._logger = get_logger(__name__)

    async def find_inspection(self, trip_id: UUID) -> Optional[PostTripInspection]:
        """Find the post-trip inspection with its items."""
        log_database_operation(self._logger, "SELECT", "post_trip_inspections", trip_id=str(trip_id))
        stmt = select(PostTripInspectionModel).where(PostTripInspectionModel.trip_id == trip_id)
        async with self._session_scope() as session:
            row = (await session.scalars(stmt)).first()
            if row is None:
                return None
            items = tuple(
                PostTripInspectionItem(
                    category=item.category,
                    condition_status=item.condition_status,
                    requires_maintenance=item.requires_maintenance,
                    maintenance_priority=item.maintenance_priority,
                    points_deducted=item.points_deducted or 0,
                    critical=item.critical,
                )
                for item in row.items
            )
            return PostTripInspection(status=row.status, total_score=row.total_score or 0, items=items)

    async def find_fuel_record(self, trip_id: UUID) -> Optional[FuelRecord]:
        """Find the fuel record of a trip."""
        log_database_operation(self._logger, "SELECT", "fuel_tracking", trip_id=str(trip_id))
        stmt = select(FuelTrackingModel).where(FuelTrackingModel.trip_id == trip_id)
        async with self._session_scope() as session:
            row = (await session.scalars(stmt)).first()
        if row is None:
            return None
        return FuelRecord(
            consumption_anomaly=row.consumption_anomaly,
            anomaly_reason=row.anomaly_reason,
            total_fuel_consumed=row.total_fuel_consumed,
            distance_km=row.distance_km,
        )


class SQLAlchemyCriticalFailureRepository(CriticalFailureRepository):
    """SQLAlchemy implementation of critical failure repository."""

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope
        self._logger = get_logger(__name__)

    async def save(self, failure: CriticalFailure) -> CriticalFailure:
        """Insert or update a critical failure."""
        log_database_operation(self._logger, "UPSERT", "critical_failures", failure_id=str(failure.id))
        async with self._session_scope() as session:
            existing = await session.get(CriticalFailureModel, failure.id)
            if existing:
                existing.resolved = failure.resolved
                existing.resolved_by = failure.resolved_by
                existing.resolved_at = failure.resolved_at
            else:
                session.add(CriticalFailureModel(
                    id=failure.id,
                    trip_id=failure.trip_id,
                    module_item_label=failure.module_item_label,
                    category=failure.category,
                    description=failure.description,
                    points=failure.points,
                    resolved=failure.resolved,
                    resolved_by=failure.resolved_by,
                    resolved_at=failure.resolved_at,
                    created_at=failure.created_at,
                ))
            await session.flush()
        return failure

    async def find_by_id(self, failure_id: UUID) -> Optional[CriticalFailure]:
        """Find critical failure by ID."""
        async with self._session_scope() as session:
            model = await session.get(CriticalFailureModel, failure_id)
            return self._model_to_entity(model) if model else None

    async def find_by_trip(self, trip_id: UUID) -> List[CriticalFailure]:
        """Find all critical failures of a trip."""
        stmt = (
            select(CriticalFailureModel)
            .where(CriticalFailureModel.trip_id == trip_id)
            .order_by(CriticalFailureModel.created_at)
        )
        async with self._session_scope() as session:
            return [self._model_to_entity(model) for model in (await session.scalars(stmt)).all()]

    async def find_unresolved_by_trip(self, trip_id: UUID) -> List[CriticalFailure]:
        """Find unresolved critical failures of a trip."""
        log_database_operation(self._logger, "SELECT", "critical_failures", trip_id=str(trip_id), resolved=False)
        stmt = (
            select(CriticalFailureModel)
            .where(CriticalFailureModel.trip_id == trip_id, CriticalFailureModel.resolved.is_(False))
            .order_by(CriticalFailureModel.created_at)
        )
        async with self._session_scope() as session:
            return [self._model_to_entity(model) for model in (await session.scalars(stmt)).all()]

    async def delete(self, failure_id: UUID) -> bool:
        """Delete a critical failure."""
        log_database_operation(self._logger, "DELETE", "critical_failures", failure_id=str(failure_id))
        async with self._session_scope() as session:
            result = await session.execute(delete(CriticalFailureModel).where(CriticalFailureModel.id == failure_id))
            return result.rowcount > 0

    def _model_to_entity(self, model: CriticalFailureModel) -> CriticalFailure:
        """Convert database model to domain entity."""
        return CriticalFailure(
            failure_id=model.id,
            trip_id=model.trip_id,
            description=model.description,
            points=model.points,
            module_item_label=model.module_item_label,
            category=model.category,
            resolved=model.resolved,
            resolved_by=model.resolved_by,
            resolved_at=model.resolved_at,
            created_at=model.created_at,
        )

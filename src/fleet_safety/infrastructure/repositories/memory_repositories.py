"""In-memory repository implementations for testing and development."""

from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from src.fleet_safety.application.exceptions import ConcurrentSnapshotUpdateError
from src.fleet_safety.application.ports.repositories import (
    CriticalFailureRepository,
    InTripMonitoringRepository,
    PostTripRepository,
    TripRepository,
)
from src.fleet_safety.domain.entities.critical_failure import CriticalFailure
from src.fleet_safety.domain.entities.trip import Trip
from src.fleet_safety.domain.entities.trip_module import TripModule
from src.fleet_safety.domain.value_objects.telemetry import (
    FatigueReading,
    FuelRecord,
    InTripIncident,
    PostTripInspection,
    RealTimeAlert,
    SpeedViolation,
)


class InMemoryTripRepository(TripRepository):
    """In-memory implementation of trip repository.

    Stored snapshot fields are kept apart from the entity objects so a
    caller holding a stale Trip cannot overwrite a newer snapshot by saving.
    """

    def __init__(self):
        self._trips: Dict[UUID, Trip] = {}
        self._modules: Dict[UUID, Dict[UUID, TripModule]] = defaultdict(dict)

    async def save(self, trip: Trip) -> Trip:
        """Save a trip, keeping the stored snapshot when one exists."""
        stored = self._trips.get(trip.id)
        if stored is not None and stored.version > trip.version:
            trip = Trip(
                trip_id=trip.id,
                driver_id=trip.driver_id,
                vehicle_id=trip.vehicle_id,
                trip_date=trip.trip_date,
                status=trip.status,
                aggregate_score=stored.aggregate_score,
                risk_level=stored.risk_level,
                snapshot_at=stored.snapshot_at,
                critical_override=trip.critical_override,
                version=stored.version,
                created_at=trip.created_at,
            )
        self._trips[trip.id] = trip
        return trip

    async def find_by_id(self, trip_id: UUID) -> Optional[Trip]:
        """Find trip by ID."""
        trip = self._trips.get(trip_id)
        return self._copy(trip) if trip else None

    async def find_by_driver(self, driver_id: UUID, since: datetime) -> List[Trip]:
        """Find a driver's trips since a date, oldest first."""
        trips = [
            self._copy(trip) for trip in self._trips.values()
            if trip.driver_id == driver_id and trip.trip_date >= since
        ]
        return sorted(trips, key=lambda trip: trip.trip_date)

    async def update_snapshot(self, trip: Trip, expected_version: int) -> Trip:
        """Store the snapshot if the version still matches."""
        stored = self._trips.get(trip.id)
        if stored is None or stored.version != expected_version:
            raise ConcurrentSnapshotUpdateError(trip.id, expected_version, stored.version if stored else None)
        self._trips[trip.id] = trip
        return trip

    async def find_modules(self, trip_id: UUID) -> List[TripModule]:
        """Find all modules of a trip ordered by step."""
        return sorted(self._modules[trip_id].values(), key=lambda module: module.step)

    async def save_module(self, module: TripModule) -> TripModule:
        """Save a module."""
        self._modules[module.trip_id][module.id] = module
        return module

    @staticmethod
    def _copy(trip: Trip) -> Trip:
        # Hand out copies so callers mutate their own instance like a fresh DB read
        return Trip(
            trip_id=trip.id,
            driver_id=trip.driver_id,
            vehicle_id=trip.vehicle_id,
            trip_date=trip.trip_date,
            status=trip.status,
            aggregate_score=trip.aggregate_score,
            risk_level=trip.risk_level,
            snapshot_at=trip.snapshot_at,
            critical_override=trip.critical_override,
            version=trip.version,
            created_at=trip.created_at,
            updated_at=trip.updated_at,
        )


class InMemoryInTripMonitoringRepository(InTripMonitoringRepository):
    """In-memory implementation of in-trip monitoring repository."""

    def __init__(self):
        self._violations: Dict[UUID, List[SpeedViolation]] = defaultdict(list)
        self._fatigue: Dict[UUID, List[FatigueReading]] = defaultdict(list)
        self._incidents: Dict[UUID, List[InTripIncident]] = defaultdict(list)
        self._alerts: Dict[UUID, List[RealTimeAlert]] = defaultdict(list)

    def add_violation(self, trip_id: UUID, violation: SpeedViolation) -> None:
        self._violations[trip_id].append(violation)

    def add_fatigue_reading(self, trip_id: UUID, reading: FatigueReading) -> None:
        self._fatigue[trip_id].append(reading)

    def add_incident(self, trip_id: UUID, incident: InTripIncident) -> None:
        self._incidents[trip_id].append(incident)

    def add_alert(self, trip_id: UUID, alert: RealTimeAlert) -> None:
        self._alerts[trip_id].append(alert)

    async def find_speed_violations(self, trip_id: UUID) -> List[SpeedViolation]:
        """Find all speed violations of a trip."""
        return list(self._violations[trip_id])

    async def find_latest_fatigue_reading(self, trip_id: UUID) -> Optional[FatigueReading]:
        """Find the most recent fatigue reading."""
        readings = self._fatigue[trip_id]
        if not readings:
            return None
        return max(readings, key=lambda reading: reading.recorded_at)

    async def find_incidents(self, trip_id: UUID) -> List[InTripIncident]:
        """Find all incidents of a trip."""
        return list(self._incidents[trip_id])

    async def find_unacknowledged_alerts(self, trip_id: UUID) -> List[RealTimeAlert]:
        """Find unacknowledged alerts of a trip."""
        return [alert for alert in self._alerts[trip_id] if not alert.acknowledged]


class InMemoryPostTripRepository(PostTripRepository):
    """In-memory implementation of post-trip repository."""

    def __init__(self):
        self._inspections: Dict[UUID, PostTripInspection] = {}
        self._fuel: Dict[UUID, FuelRecord] = {}

    def set_inspection(self, trip_id: UUID, inspection: PostTripInspection) -> None:
        self._inspections[trip_id] = inspection

    def set_fuel_record(self, trip_id: UUID, record: FuelRecord) -> None:
        self._fuel[trip_id] = record

    async def find_inspection(self, trip_id: UUID) -> Optional[PostTripInspection]:
        """Find the post-trip inspection of a trip."""
        return self._inspections.get(trip_id)

    async def find_fuel_record(self, trip_id: UUID) -> Optional[FuelRecord]:
        """Find the fuel record of a trip."""
        return self._fuel.get(trip_id)


class InMemoryCriticalFailureRepository(CriticalFailureRepository):
    """In-memory implementation of critical failure repository."""

    def __init__(self):
        self._failures: Dict[UUID, CriticalFailure] = {}

    async def save(self, failure: CriticalFailure) -> CriticalFailure:
        """Save a critical failure."""
        self._failures[failure.id] = failure
        return failure

    async def find_by_id(self, failure_id: UUID) -> Optional[CriticalFailure]:
        """Find critical failure by ID."""
        return self._failures.get(failure_id)

    async def find_by_trip(self, trip_id: UUID) -> List[CriticalFailure]:
        """Find all critical failures of a trip."""
        failures = [failure for failure in self._failures.values() if failure.trip_id == trip_id]
        return sorted(failures, key=lambda failure: failure.created_at)

    async def find_unresolved_by_trip(self, trip_id: UUID) -> List[CriticalFailure]:
        """Find unresolved critical failures of a trip."""
        return [failure for failure in await self.find_by_trip(trip_id) if not failure.resolved]

    async def delete(self, failure_id: UUID) -> bool:
        """Delete a critical failure."""
        return self._failures.pop(failure_id, None) is not None

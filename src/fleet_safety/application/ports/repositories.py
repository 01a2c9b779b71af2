"""Port interfaces for repositories (Dependency Inversion Principle)."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
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


class TripRepository(ABC):
    """Port interface for trips and their checklist modules."""

    @abstractmethod
    async def save(self, trip: "Trip") -> "Trip":
        """Save a trip."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, trip_id: UUID) -> Optional["Trip"]:
        """Find trip by ID."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_driver(self, driver_id: UUID, since: datetime) -> List["Trip"]:
        """Find a driver's trips dated on or after ``since``, oldest first."""
        raise NotImplementedError

    @abstractmethod
    async def update_snapshot(self, trip: "Trip", expected_version: int) -> "Trip":
        """Persist the risk snapshot if the stored version still matches.

        Raises:
            ConcurrentSnapshotUpdateError: If another writer got there first
        """
        raise NotImplementedError

    @abstractmethod
    async def find_modules(self, trip_id: UUID) -> List["TripModule"]:
        """Find all checklist modules of a trip ordered by step."""
        raise NotImplementedError

    @abstractmethod
    async def save_module(self, module: "TripModule") -> "TripModule":
        """Save a checklist module with its answers."""
        raise NotImplementedError


class InTripMonitoringRepository(ABC):
    """Port interface for aggregated in-trip signals."""

    @abstractmethod
    async def find_speed_violations(self, trip_id: UUID) -> List["SpeedViolation"]:
        """Find all speed violations of a trip."""
        raise NotImplementedError

    @abstractmethod
    async def find_latest_fatigue_reading(self, trip_id: UUID) -> Optional["FatigueReading"]:
        """Find the most recent fatigue reading of a trip."""
        raise NotImplementedError

    @abstractmethod
    async def find_incidents(self, trip_id: UUID) -> List["InTripIncident"]:
        """Find all incidents reported during a trip."""
        raise NotImplementedError

    @abstractmethod
    async def find_unacknowledged_alerts(self, trip_id: UUID) -> List["RealTimeAlert"]:
        """Find real-time alerts nobody acknowledged yet."""
        raise NotImplementedError


class PostTripRepository(ABC):
    """Port interface for post-trip inspection and fuel data."""

    @abstractmethod
    async def find_inspection(self, trip_id: UUID) -> Optional["PostTripInspection"]:
        """Find the post-trip inspection with its items."""
        raise NotImplementedError

    @abstractmethod
    async def find_fuel_record(self, trip_id: UUID) -> Optional["FuelRecord"]:
        """Find the fuel tracking record of a trip."""
        raise NotImplementedError


class CriticalFailureRepository(ABC):
    """Port interface for critical failure records."""

    @abstractmethod
    async def save(self, failure: "CriticalFailure") -> "CriticalFailure":
        """Save a critical failure."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, failure_id: UUID) -> Optional["CriticalFailure"]:
        """Find critical failure by ID."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_trip(self, trip_id: UUID) -> List["CriticalFailure"]:
        """Find all critical failures of a trip."""
        raise NotImplementedError

    @abstractmethod
    async def find_unresolved_by_trip(self, trip_id: UUID) -> List["CriticalFailure"]:
        """Find unresolved critical failures of a trip."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, failure_id: UUID) -> bool:
        """Delete a critical failure."""
        raise NotImplementedError

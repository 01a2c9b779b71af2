"""Dependency injection and service factory."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from src.fleet_safety.application.services.risk_scoring_service import RiskScoringService, TripLockRegistry
from src.fleet_safety.application.services.trip_review_service import TripReviewService
from src.fleet_safety.domain.value_objects.risk_policy import DEFAULT_POLICY, RiskPolicy
from src.fleet_safety.infrastructure.database.connection import DatabaseManager
from src.fleet_safety.infrastructure.logging import get_logger
from src.fleet_safety.infrastructure.repositories.memory_repositories import (
    InMemoryCriticalFailureRepository,
    InMemoryInTripMonitoringRepository,
    InMemoryPostTripRepository,
    InMemoryTripRepository,
)
from src.fleet_safety.infrastructure.repositories.sql_repositories import (
    SQLAlchemyCriticalFailureRepository,
    SQLAlchemyInTripMonitoringRepository,
    SQLAlchemyPostTripRepository,
    SQLAlchemyTripRepository,
)

logger = get_logger(__name__)


class ServiceFactory:
    """Factory for creating application services backed by the database."""

    backend = "database"

    def __init__(self, database_url: str, policy: RiskPolicy = DEFAULT_POLICY, echo: bool = False, pool_size: int = 10):
        self.database_manager = DatabaseManager(database_url, echo=echo, pool_size=pool_size)
        self.policy = policy
        self._connected = False
        # Shared so concurrent requests for one trip queue on the same lock
        self._trip_locks = TripLockRegistry()

    async def initialize(self):
        """Initialize the service factory."""
        if not self._connected:
            await self.database_manager.connect()
            self._connected = True

    async def shutdown(self):
        """Shutdown the service factory."""
        if self._connected:
            await self.database_manager.disconnect()
            self._connected = False

    @property
    def is_ready(self) -> bool:
        """Check if the database engine is connected."""
        return self._connected

    def _risk_scoring_service(self) -> RiskScoringService:
        session_scope = self.database_manager.get_session
        return RiskScoringService(
            trip_repository=SQLAlchemyTripRepository(session_scope),
            monitoring_repository=SQLAlchemyInTripMonitoringRepository(session_scope),
            post_trip_repository=SQLAlchemyPostTripRepository(session_scope),
            critical_failure_repository=SQLAlchemyCriticalFailureRepository(session_scope),
            policy=self.policy,
            trip_locks=self._trip_locks,
        )

    @asynccontextmanager
    async def get_risk_scoring_service(self) -> AsyncGenerator[RiskScoringService, None]:
        """Get risk scoring service with database repositories."""
        yield self._risk_scoring_service()

    @asynccontextmanager
    async def get_trip_review_service(self) -> AsyncGenerator[TripReviewService, None]:
        """Get trip review service with database repositories."""
        session_scope = self.database_manager.get_session
        yield TripReviewService(
            trip_repository=SQLAlchemyTripRepository(session_scope),
            critical_failure_repository=SQLAlchemyCriticalFailureRepository(session_scope),
            risk_scoring_service=self._risk_scoring_service(),
        )


class InMemoryServiceFactory:
    """Service factory backed by in-memory repositories for development and tests."""

    backend = "memory"
    is_ready = True

    def __init__(self, policy: RiskPolicy = DEFAULT_POLICY):
        self.policy = policy
        self.trips = InMemoryTripRepository()
        self.monitoring = InMemoryInTripMonitoringRepository()
        self.post_trip = InMemoryPostTripRepository()
        self.critical_failures = InMemoryCriticalFailureRepository()
        self._trip_locks = TripLockRegistry()

    async def initialize(self):
        """Nothing to connect."""

    async def shutdown(self):
        """Nothing to release."""

    def _risk_scoring_service(self) -> RiskScoringService:
        return RiskScoringService(
            trip_repository=self.trips,
            monitoring_repository=self.monitoring,
            post_trip_repository=self.post_trip,
            critical_failure_repository=self.critical_failures,
            policy=self.policy,
            trip_locks=self._trip_locks,
        )

    @asynccontextmanager
    async def get_risk_scoring_service(self) -> AsyncGenerator[RiskScoringService, None]:
        """Get risk scoring service with in-memory repositories."""
        yield self._risk_scoring_service()

    @asynccontextmanager
    async def get_trip_review_service(self) -> AsyncGenerator[TripReviewService, None]:
        """Get trip review service with in-memory repositories."""
        yield TripReviewService(
            trip_repository=self.trips,
            critical_failure_repository=self.critical_failures,
            risk_scoring_service=self._risk_scoring_service(),
        )


# Global service factory instance
_service_factory: Optional[ServiceFactory] = None


def get_service_factory() -> ServiceFactory:
    """Get the global service factory instance."""
    global _service_factory

    if _service_factory is None:
        from src.fleet_safety.presentation.api.config import get_settings

        settings = get_settings()
        if settings.use_in_memory_repositories:
            logger.warning("Using in-memory repositories; data is lost on restart")
            _service_factory = InMemoryServiceFactory(policy=settings.risk.to_policy())
        else:
            _service_factory = ServiceFactory(
                settings.database_url,
                policy=settings.risk.to_policy(),
                echo=settings.db_echo,
                pool_size=settings.db_pool_size,
            )

    return _service_factory


async def initialize_services():
    """Initialize application services."""
    factory = get_service_factory()
    await factory.initialize()


async def shutdown_services():
    """Shutdown application services."""
    factory = get_service_factory()
    await factory.shutdown()

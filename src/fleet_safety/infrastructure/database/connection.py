"""Database connection management."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from src.fleet_safety.infrastructure.logging import get_logger


class DatabaseManager:
    """Owns the async engine and hands out one session per unit of work."""

    def __init__(self, database_url: str, echo: bool = False, pool_size: int = 10):
        """Initialize database manager."""
        # asyncpg is the only driver the repositories are tested against
        if database_url.startswith("postgresql://"):
            database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

        self._database_url = database_url
        self._echo = echo
        self._pool_size = pool_size
        self._engine: AsyncEngine | None = None
        self._session_factory: sessionmaker | None = None
        self._logger = get_logger(__name__)

    @property
    def is_connected(self) -> bool:
        """Check if the engine was created."""
        return self._engine is not None

    async def connect(self) -> None:
        """Create the engine and session factory."""
        engine_options = {"echo": self._echo, "pool_pre_ping": True}
        if self._database_url.startswith("postgresql"):
            engine_options["pool_size"] = self._pool_size

        self._engine = create_async_engine(self._database_url, **engine_options)
        self._session_factory = sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._logger.info("Database engine created")

    async def disconnect(self) -> None:
        """Dispose of the engine."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._logger.info("Database engine disposed")

    async def create_schema(self) -> None:
        """Create all tables known to the declarative base."""
        from src.fleet_safety.infrastructure.database.models import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a session that commits on success and rolls back on error.

        Sessions must not be shared between concurrently running coroutines,
        so every repository call opens its own.
        """
        if not self._session_factory:
            raise RuntimeError("Database not connected. Call connect() first.")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @property
    def engine(self) -> AsyncEngine:
        """Get database engine."""
        if not self._engine:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._engine

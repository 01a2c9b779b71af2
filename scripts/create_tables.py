"""Script to create the fleet safety schema."""

import asyncio

from src.fleet_safety.infrastructure.database.connection import DatabaseManager
from src.fleet_safety.infrastructure.logging import get_logger, setup_logging_from_env
from src.fleet_safety.presentation.api.config import get_settings

logger = get_logger(__name__)


async def create_tables():
    """Create all database tables for the configured database."""
    settings = get_settings()
    manager = DatabaseManager(settings.database_url, echo=settings.db_echo)

    await manager.connect()
    try:
        await manager.create_schema()
        logger.info("Database tables created successfully")
    finally:
        await manager.disconnect()


if __name__ == "__main__":
    setup_logging_from_env()
    asyncio.run(create_tables())

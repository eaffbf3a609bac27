"""Application lifecycle management.

This module handles application startup and shutdown events, ensuring proper
initialization and cleanup of application resources.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from timeledger.core.config.settings import settings
from timeledger.core.logging import logger
from timeledger.infrastructure.database.async_db import (
    check_database_health,
    create_async_db_and_tables,
    engine,
)


def create_lifespan_manager():
    """Create the application lifespan manager.

    Returns:
        AsyncContextManager: The lifespan manager for the FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the tables on startup and dispose the engine on shutdown.

        Raises:
            RuntimeError: If the database is unavailable once tables are created
        """
        await create_async_db_and_tables()
        if not await check_database_health():
            logger.error("database_unavailable_on_startup")
            raise RuntimeError("Database unavailable")
        logger.info("application_startup", env=settings.APP_ENV, version=settings.VERSION)

        yield

        await engine.dispose()
        logger.info("application_shutdown", env=settings.APP_ENV)

    return lifespan

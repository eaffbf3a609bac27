"""
Asynchronous Database Utilities Module

Owns the process-wide async SQLAlchemy engine and session factory and the
startup helpers built on top of them.

Key Components:
    - engine: The asynchronous SQLAlchemy engine.
    - AsyncSessionFactory: A factory for creating asynchronous database sessions.
    - create_async_db_and_tables: Creates the tables, retried with backoff.
    - check_database_health: ``SELECT 1`` round trip used by the health endpoint.
"""

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from structlog import get_logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from timeledger.core.config.settings import settings
from timeledger.domain.entities.user import User  # noqa: F401  registers the users table

logger = get_logger(__name__)

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, future=True)

AsyncSessionFactory: sessionmaker[AsyncSession] = sessionmaker(  # type: ignore[type-arg]
    bind=engine, class_=AsyncSession, expire_on_commit=False
)


@retry(
    stop=stop_after_attempt(settings.DB_CONNECT_RETRIES),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(OperationalError),
    reraise=True,
)
async def create_async_db_and_tables() -> None:
    """
    Create all SQLModel tables using the async engine.

    Retries with exponential backoff while the database is unreachable.

    Raises:
        OperationalError: If the database stays unreachable after all attempts.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("database_tables_created")
    except OperationalError as e:
        logger.warning("database_tables_creation_retry", error=str(e))
        raise


async def check_database_health() -> bool:
    """Return True if the database answers a trivial query."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except OperationalError as e:
        logger.error("database_health_check_failed", error=str(e))
        return False

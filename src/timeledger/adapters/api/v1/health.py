from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter
from pydantic import BaseModel

from timeledger.core.config.settings import settings
from timeledger.core.logging import logger
from timeledger.infrastructure.database.async_db import check_database_health

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    env: str
    version: str
    services: Dict[str, Any]
    timestamp: datetime


@router.get("", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint reporting database connectivity.
    """
    db_healthy = await check_database_health()
    if not db_healthy:
        logger.warning("health_check_degraded", database="unhealthy")

    return HealthResponse(
        status="ok" if db_healthy else "degraded",
        env=settings.APP_ENV,
        version=settings.VERSION,
        services={"database": {"status": "healthy" if db_healthy else "unhealthy"}},
        timestamp=datetime.now(timezone.utc),
    )

"""API v1 router configuration.
"""

from fastapi import APIRouter

from .email_change import router as email_change_router
from .health import router as health_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(email_change_router)

"""Email-change router package: bundles the lifecycle endpoints."""

from fastapi import APIRouter

from .routes import approve as approve_route
from .routes import cancel as cancel_route
from .routes import process as process_route
from .routes import reject as reject_route
from .routes import requests as requests_route
from .routes import resend as resend_route
from .routes import verify as verify_route

router = APIRouter(prefix="/email-change", tags=["email-change"])

router.include_router(requests_route.router)
router.include_router(verify_route.router)
router.include_router(resend_route.router)
router.include_router(approve_route.router)
router.include_router(reject_route.router)
router.include_router(cancel_route.router)
router.include_router(process_route.router)

__all__ = ["router"]

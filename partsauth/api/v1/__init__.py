"""API v1 routes."""

from fastapi import APIRouter

from partsauth.api.v1 import admins, auth, health, mobile

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(auth.supplier_router, prefix="/supplier/auth", tags=["supplier auth"])
router.include_router(mobile.router, prefix="/mobile/auth", tags=["mobile auth"])
router.include_router(admins.router, prefix="/admins", tags=["admins"])

# routers/__init__.py

from fastapi import APIRouter

from .requests import router as requests_router
from .user_requests import router as user_requests_router
from .admin_requests import router as admin_requests_router
from .units import router as units_router
from .health import router as health_router


# Master router, mounted by main.create_app()
api_router = APIRouter()

# Client-facing booking flow
api_router.include_router(requests_router)
api_router.include_router(user_requests_router)

# Admin decisions
api_router.include_router(admin_requests_router)

# Storefront helpers
api_router.include_router(units_router)

# Health
api_router.include_router(health_router)

__all__ = ["api_router"]

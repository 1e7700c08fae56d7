"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1 import energy, resources

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(energy.router, prefix="/energy", tags=["energy"])
api_router.include_router(resources.router, prefix="/resources", tags=["resources"])

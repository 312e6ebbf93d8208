"""
engagehub.api.v1.router - API v1 Router

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter

from engagehub.api.v1.endpoints import adapters, demo

api_router = APIRouter()

# Include endpoint routers
api_router.include_router(adapters.router, prefix="/adapters", tags=["adapters"])
api_router.include_router(demo.router, prefix="/demo", tags=["demo"])

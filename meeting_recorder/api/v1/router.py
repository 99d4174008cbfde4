"""
API v1 router aggregation.
"""

from fastapi import APIRouter
from meeting_recorder.api.v1.endpoints import meetings, health

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(meetings.router, tags=["Meetings"])
api_router.include_router(health.router, tags=["Health"])

__all__ = ["api_router"]

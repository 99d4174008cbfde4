"""
Health check and status endpoints.
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from typing import Dict, Any

from meeting_recorder.api.v1.schemas.meeting import HealthCheckResponse, BotStatusResponse
from meeting_recorder.config import settings
from meeting_recorder.core.dependencies import get_recording_bot_service

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check() -> Dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        Health status with timestamp and version
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc),
        "version": settings.version,
    }


@router.get("/bot/status", response_model=BotStatusResponse)
async def get_bot_status(bot=Depends(get_recording_bot_service)) -> Dict[str, Any]:
    """
    Get current recording bot status.

    Returns:
        Bot status including active sessions and upcoming launches
    """
    return bot.get_status()

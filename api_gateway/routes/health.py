"""
Service info and health check endpoints.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from shared.config import Settings
from shared.models.job import HealthResponse, ServiceInfo
from modules.concatenator.utils import check_ffmpeg_available
from api_gateway.dependencies import get_settings

router = APIRouter()


@router.get("/", response_model=ServiceInfo)
async def service_info(settings: Settings = Depends(get_settings)) -> ServiceInfo:
    """Describe the service and its endpoints."""
    return ServiceInfo(
        message="FFmpeg Video Concat API",
        endpoints={
            "concat": "POST /concat-videos",
            "health": "GET /health",
        },
        ffmpeg_available=check_ffmpeg_available(settings.ffmpeg_binary),
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"))

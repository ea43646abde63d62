"""
Job-related data models.

Defines the per-request concat job and the JSON bodies the API returns.
"""

from pathlib import Path
from typing import Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ConcatJob(BaseModel):
    """One request's end-to-end concatenation unit."""

    id: UUID
    video_urls: List[str] = Field(..., min_length=1, description="Source URLs in concatenation order")
    workspace: Path
    downloaded_files: List[Path] = Field(default_factory=list, description="Local copies, same order as video_urls")
    output_path: Optional[Path] = None

    @field_serializer("id")
    def serialize_uuid(self, value: UUID) -> str:
        """Serialize UUID to string."""
        return str(value)


class ErrorResponse(BaseModel):
    """Body returned for a failed concat request."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    details: Optional[str] = None
    error_type: Optional[str] = Field(default=None, alias="errorType")
    job_id: Optional[str] = Field(default=None, alias="jobId")


class HealthResponse(BaseModel):
    """Body returned by the health check."""

    status: str = "healthy"
    timestamp: str


class ServiceInfo(BaseModel):
    """Body returned by the root endpoint."""

    status: str = "ok"
    message: str
    endpoints: Dict[str, str]
    ffmpeg_available: bool

"""
FastAPI dependencies.

Settings, media processor and HTTP client providers; tests swap them through
``app.dependency_overrides``.
"""

from typing import AsyncIterator

import httpx
from fastapi import Depends

from shared.config import Settings, settings
from modules.concatenator.processor import MediaProcessor, create_media_processor


def get_settings() -> Settings:
    """Process-wide settings."""
    return settings


def get_media_processor(settings: Settings = Depends(get_settings)) -> MediaProcessor:
    """Media processor for the configured concat strategy."""
    return create_media_processor(settings)


async def get_http_client(settings: Settings = Depends(get_settings)) -> AsyncIterator[httpx.AsyncClient]:
    """Per-request HTTP client for downloads, closed when the request ends."""
    timeout = httpx.Timeout(settings.download_timeout)
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        yield client

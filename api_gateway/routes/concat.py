"""
Concat endpoint.

Accepts a list of video URLs and returns them joined into one MP4.
"""

import uuid
from typing import Any, List

import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response

from shared.config import Settings
from shared.errors import InvalidInputError, PipelineError
from shared.logging import get_logger, set_job_id
from shared.models.job import ErrorResponse
from modules.concatenator.config import OUTPUT_DOWNLOAD_NAME, OUTPUT_MEDIA_TYPE
from modules.concatenator.process import process as concat_videos
from modules.concatenator.processor import MediaProcessor
from api_gateway.dependencies import get_http_client, get_media_processor, get_settings

logger = get_logger(__name__)

router = APIRouter()

INVALID_INPUT_MESSAGE = "video_urls array is required"
FAILURE_MESSAGE = "Failed to concatenate videos"


async def parse_video_urls(request: Request) -> List[str]:
    """
    Pull ``video_urls`` out of the JSON body.

    Only the shape is checked; individual URLs are left for the downloader.

    Raises:
        InvalidInputError: If the body is not JSON, or video_urls is missing,
            not a list, or empty
    """
    try:
        payload: Any = await request.json()
    except ValueError as e:
        raise InvalidInputError(INVALID_INPUT_MESSAGE) from e

    video_urls = payload.get("video_urls") if isinstance(payload, dict) else None
    if not isinstance(video_urls, list) or not video_urls:
        raise InvalidInputError(INVALID_INPUT_MESSAGE)

    return [str(url) for url in video_urls]


@router.post(
    "/concat-videos",
    response_class=Response,
    responses={
        200: {"content": {OUTPUT_MEDIA_TYPE: {}}, "description": "Concatenated video"},
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def concat_videos_endpoint(
    request: Request,
    settings: Settings = Depends(get_settings),
    processor: MediaProcessor = Depends(get_media_processor),
    http_client: httpx.AsyncClient = Depends(get_http_client)
):
    """
    Download every URL in ``video_urls`` and return them concatenated.

    Returns:
        200 with the MP4 as an attachment, 400 for a bad body, 500 with
        error details and the job id for any pipeline failure
    """
    try:
        video_urls = await parse_video_urls(request)
    except InvalidInputError as e:
        logger.warning("Rejected concat request", extra={"error": e.message})
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(error=e.message).model_dump(by_alias=True, exclude_none=True)
        )

    job_id = uuid.uuid4()
    set_job_id(job_id)

    try:
        video_bytes = await concat_videos(
            job_id,
            video_urls,
            settings=settings,
            processor=processor,
            http_client=http_client
        )
    except PipelineError as e:
        logger.error(
            f"Concat job failed: {e.message}",
            extra={"job_id": str(job_id), "error_type": e.error_type}
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error=FAILURE_MESSAGE,
                details=e.message,
                error_type=e.error_type,
                job_id=str(job_id)
            ).model_dump(by_alias=True)
        )
    finally:
        set_job_id(None)

    logger.info(
        f"Sending result ({len(video_bytes) / 1024 / 1024:.2f} MB)",
        extra={"job_id": str(job_id), "size_bytes": len(video_bytes)}
    )
    return Response(
        content=video_bytes,
        media_type=OUTPUT_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={OUTPUT_DOWNLOAD_NAME}"}
    )

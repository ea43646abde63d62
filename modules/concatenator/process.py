"""
Main entry point for concatenator module.

Orchestrates one concat job: creates the workspace, downloads the inputs in
order, runs the media processor, verifies and reads the output, and removes
the workspace whatever happens.
"""
import time
from pathlib import Path
from typing import Optional, Sequence
from uuid import UUID

import aiofiles
import httpx

from shared.config import Settings, settings as default_settings
from shared.errors import InternalFailureError, PipelineError, ProcessingFailedError
from shared.logging import get_logger
from shared.models.job import ConcatJob

from .downloader import download_all_videos
from .processor import MediaProcessor, create_media_processor
from .workspace import open_workspace

logger = get_logger("concatenator.process")


def verify_output(output_path: Path) -> int:
    """
    Check the processor really produced a non-empty file.

    Returns:
        Output size in bytes

    Raises:
        ProcessingFailedError: If the file is missing or empty
    """
    if not output_path.is_file():
        raise ProcessingFailedError("Output file was not created")
    size = output_path.stat().st_size
    if size == 0:
        raise ProcessingFailedError("Output file is empty")
    return size


async def read_output(output_path: Path) -> bytes:
    """Read the whole output file into memory."""
    async with aiofiles.open(output_path, "rb") as f_in:
        return await f_in.read()


async def process(
    job_id: UUID,
    video_urls: Sequence[str],
    settings: Optional[Settings] = None,
    processor: Optional[MediaProcessor] = None,
    http_client: Optional[httpx.AsyncClient] = None
) -> bytes:
    """
    Run a concat job end to end.

    Args:
        job_id: Job identifier (also the workspace directory name)
        video_urls: Source URLs in concatenation order (non-empty)
        settings: Settings to use (default: process-wide settings)
        processor: Media processor (default: built from settings)
        http_client: Optional HTTP client for downloads

    Returns:
        Bytes of the concatenated MP4

    Raises:
        DownloadFailedError: If any input cannot be fetched
        ProcessingFailedError: If FFmpeg fails or produces no output
        InternalFailureError: For workspace/IO errors and anything unexpected
    """
    settings = settings or default_settings
    processor = processor or create_media_processor(settings)
    start_time = time.time()

    logger.info(
        f"Starting concatenation for {len(video_urls)} videos",
        extra={"job_id": str(job_id), "count": len(video_urls)}
    )

    try:
        async with open_workspace(settings.temp_root, job_id) as workspace:
            job = ConcatJob(id=job_id, video_urls=list(video_urls), workspace=workspace.path)

            job.downloaded_files = await download_all_videos(
                job.video_urls,
                workspace,
                job_id,
                client=http_client,
                timeout=settings.download_timeout,
                chunk_size=settings.download_chunk_size
            )

            logger.info("All videos downloaded, starting FFmpeg", extra={"job_id": str(job_id)})
            job.output_path = await processor.concatenate(job.downloaded_files, workspace, job_id)

            output_size = verify_output(job.output_path)
            video_bytes = await read_output(job.output_path)

        logger.info(
            f"Concatenation finished ({output_size / 1024 / 1024:.2f} MB)",
            extra={
                "job_id": str(job_id),
                "size_bytes": output_size,
                "duration_seconds": round(time.time() - start_time, 2)
            }
        )
        return video_bytes

    except PipelineError:
        raise
    except Exception as e:
        logger.error(
            f"Unexpected error in concat job: {e}",
            extra={"job_id": str(job_id), "error_type": type(e).__name__},
            exc_info=True
        )
        raise InternalFailureError(str(e) or type(e).__name__) from e

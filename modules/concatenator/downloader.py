"""
File download logic for concatenator module.

Downloads source videos into the job workspace one at a time, in request
order, streaming each response body straight to disk.
"""
from pathlib import Path
from typing import List, Optional, Sequence
from uuid import UUID

import aiofiles
import httpx

from shared.errors import DownloadFailedError
from shared.logging import get_logger

from .workspace import JobWorkspace

logger = get_logger("concatenator.downloader")


async def download_video(
    client: httpx.AsyncClient,
    url: str,
    destination: Path,
    index: int,
    job_id: UUID,
    chunk_size: int = 1024 * 1024
) -> int:
    """
    Stream a single video to ``destination``.

    Args:
        client: HTTP client (timeout already configured)
        url: Source URL
        destination: Local file to write
        index: Zero-based position in the request, for error reporting
        job_id: Job ID for logging
        chunk_size: Bytes per read from the response stream

    Returns:
        Number of bytes written

    Raises:
        DownloadFailedError: On timeout, transport error, bad URL or non-2xx status
    """
    bytes_written = 0
    try:
        async with client.stream("GET", url) as response:
            response.raise_for_status()
            async with aiofiles.open(destination, "wb") as f_out:
                async for chunk in response.aiter_bytes(chunk_size):
                    await f_out.write(chunk)
                    bytes_written += len(chunk)
    except httpx.TimeoutException as e:
        logger.error(
            f"Timeout downloading video {index}: {e}",
            extra={"job_id": str(job_id), "url": url, "index": index}
        )
        raise DownloadFailedError(url, index, f"timed out: {e}") from e
    except httpx.HTTPStatusError as e:
        logger.error(
            f"HTTP error downloading video {index}: {e.response.status_code}",
            extra={"job_id": str(job_id), "url": url, "index": index, "status_code": e.response.status_code}
        )
        raise DownloadFailedError(url, index, f"HTTP {e.response.status_code}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.error(
            f"Transport error downloading video {index}: {e}",
            extra={"job_id": str(job_id), "url": url, "index": index, "error_type": type(e).__name__}
        )
        raise DownloadFailedError(url, index, str(e) or type(e).__name__) from e

    if bytes_written == 0:
        raise DownloadFailedError(url, index, "response body was empty")

    return bytes_written


async def download_all_videos(
    video_urls: Sequence[str],
    workspace: JobWorkspace,
    job_id: UUID,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 120.0,
    chunk_size: int = 1024 * 1024
) -> List[Path]:
    """
    Download every video sequentially into the workspace.

    Item i+1 is not requested until item i is fully written and closed, so
    local file order always matches ``video_urls`` order. The first failure
    aborts the whole batch.

    Args:
        video_urls: Source URLs in concatenation order
        workspace: Job workspace (must already exist)
        job_id: Job ID for logging
        client: Optional shared client; one is created (and closed) otherwise
        timeout: Per-download timeout in seconds when creating a client
        chunk_size: Streaming chunk size

    Returns:
        Local file paths, one per URL, in input order

    Raises:
        DownloadFailedError: If any download fails
    """
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True)

    downloaded: List[Path] = []
    total = len(video_urls)
    try:
        for index, url in enumerate(video_urls):
            destination = workspace.item_path(index)
            logger.info(
                f"Downloading video {index + 1}/{total}: {url}",
                extra={"job_id": str(job_id), "index": index}
            )
            size = await download_video(client, url, destination, index, job_id, chunk_size)
            logger.info(
                f"Downloaded {destination.name}: {size / 1024 / 1024:.2f} MB",
                extra={"job_id": str(job_id), "index": index, "size_bytes": size}
            )
            downloaded.append(destination)
    finally:
        if owns_client:
            await client.aclose()

    logger.info(
        f"Downloaded {len(downloaded)} videos",
        extra={"job_id": str(job_id), "count": len(downloaded)}
    )
    return downloaded

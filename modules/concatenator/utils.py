"""
Utility functions for concatenator module.

FFmpeg command execution, stream probing, and availability checks.
"""
import asyncio
import json
import shutil
from pathlib import Path
from typing import List, Optional
from uuid import UUID

from shared.errors import ProcessingFailedError
from shared.logging import get_logger

from .config import (
    FFPROBE_TIMEOUT,
    PROBE_AUDIO_FIELDS,
    PROBE_VIDEO_FIELDS,
    STDERR_READ_SIZE,
)

logger = get_logger("concatenator.utils")


class OutputLimitExceeded(Exception):
    """Captured process output grew past its limit."""


def check_ffmpeg_available(binary: str = "ffmpeg") -> bool:
    """
    Check if FFmpeg is installed and available in PATH.

    Returns:
        True if FFmpeg is available, False otherwise
    """
    return shutil.which(binary) is not None


async def read_bounded(stream: asyncio.StreamReader, limit: int) -> bytes:
    """
    Read a stream to EOF, refusing to hold more than ``limit`` bytes.

    Raises:
        OutputLimitExceeded: As soon as the limit is passed
    """
    buffer = bytearray()
    while True:
        chunk = await stream.read(STDERR_READ_SIZE)
        if not chunk:
            return bytes(buffer)
        buffer.extend(chunk)
        if len(buffer) > limit:
            raise OutputLimitExceeded(f"output exceeded {limit} bytes")


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


async def run_ffmpeg_command(
    cmd: List[str],
    job_id: UUID,
    timeout: float = 600,
    max_output_bytes: int = 50 * 1024 * 1024
) -> str:
    """
    Run an FFmpeg command and capture its diagnostics.

    stdout is discarded; stderr is captured up to ``max_output_bytes``.

    Args:
        cmd: FFmpeg command as list of strings
        job_id: Job ID for logging
        timeout: Wall-clock limit in seconds; the process is killed after it
        max_output_bytes: Cap on captured stderr; the process is killed past it

    Returns:
        Captured stderr text

    Raises:
        ProcessingFailedError: On launch failure, non-zero exit, timeout or
            oversized diagnostics
    """
    logger.info(
        f"Running FFmpeg command: {' '.join(cmd)}",
        extra={"job_id": str(job_id), "command": cmd}
    )

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE
        )
    except FileNotFoundError as e:
        raise ProcessingFailedError(f"FFmpeg executable not found: {cmd[0]}") from e
    except OSError as e:
        raise ProcessingFailedError(f"Failed to start FFmpeg: {e}") from e

    async def communicate() -> bytes:
        stderr = await read_bounded(process.stderr, max_output_bytes)
        await process.wait()
        return stderr

    try:
        stderr = await asyncio.wait_for(communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _terminate(process)
        logger.error(
            f"FFmpeg command timed out after {timeout}s",
            extra={"job_id": str(job_id), "command": cmd}
        )
        raise ProcessingFailedError(f"FFmpeg timed out after {timeout}s")
    except OutputLimitExceeded as e:
        await _terminate(process)
        logger.error(
            f"FFmpeg diagnostic output too large: {e}",
            extra={"job_id": str(job_id), "command": cmd}
        )
        raise ProcessingFailedError(f"FFmpeg diagnostic output too large: {e}") from e

    diagnostics = stderr.decode("utf-8", errors="replace")
    if process.returncode != 0:
        logger.error(
            f"FFmpeg exited with code {process.returncode}",
            extra={"job_id": str(job_id), "returncode": process.returncode, "stderr": diagnostics}
        )
        raise ProcessingFailedError(
            f"FFmpeg failed: {diagnostics.strip() or f'exit code {process.returncode}'}",
            diagnostics=diagnostics
        )

    logger.info("FFmpeg completed successfully", extra={"job_id": str(job_id)})
    return diagnostics


async def probe_stream_signature(
    path: Path,
    ffprobe_binary: str = "ffprobe",
    timeout: float = FFPROBE_TIMEOUT
) -> Optional[tuple]:
    """
    Describe the first video and audio stream of a file with ffprobe.

    Two files with equal signatures can be joined by the concat demuxer.

    Args:
        path: Media file
        ffprobe_binary: ffprobe executable
        timeout: Seconds before giving up

    Returns:
        Hashable signature, or None if probing failed
    """
    cmd = [
        ffprobe_binary,
        "-v", "error",
        "-show_entries", "stream=codec_type," + ",".join(sorted(set(PROBE_VIDEO_FIELDS + PROBE_AUDIO_FIELDS))),
        "-of", "json",
        str(path)
    ]
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        logger.warning(
            f"Failed to start ffprobe for {path.name}: {type(e).__name__}: {e}",
            extra={"video_path": str(path)}
        )
        return None

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _terminate(process)
        logger.warning(
            f"Failed to probe {path.name}: timed out after {timeout}s",
            extra={"video_path": str(path)}
        )
        return None

    if process.returncode != 0:
        return None

    try:
        streams = json.loads(stdout or b"{}").get("streams", [])
    except ValueError:
        return None

    video = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio = next((s for s in streams if s.get("codec_type") == "audio"), None)
    if video is None:
        return None

    return (
        tuple(video.get(field) for field in PROBE_VIDEO_FIELDS),
        tuple(audio.get(field) for field in PROBE_AUDIO_FIELDS) if audio else None,
    )

"""
Unit tests for concatenator utils.
"""
import asyncio
import json
import pytest
from pathlib import Path
from unittest.mock import patch, AsyncMock, MagicMock

from modules.concatenator.utils import (
    OutputLimitExceeded,
    check_ffmpeg_available,
    probe_stream_signature,
    read_bounded,
    run_ffmpeg_command,
)
from shared.errors import ProcessingFailedError


CMD = ["ffmpeg", "-i", "input.mp4", "output.mp4"]


class TestCheckFFmpegAvailable:
    """Tests for check_ffmpeg_available function."""

    @patch('modules.concatenator.utils.shutil.which')
    def test_ffmpeg_available(self, mock_which):
        mock_which.return_value = "/usr/bin/ffmpeg"
        assert check_ffmpeg_available() is True
        mock_which.assert_called_once_with("ffmpeg")

    @patch('modules.concatenator.utils.shutil.which')
    def test_ffmpeg_not_available(self, mock_which):
        mock_which.return_value = None
        assert check_ffmpeg_available("/opt/ffmpeg") is False


class TestReadBounded:
    """Tests for read_bounded function."""

    @pytest.mark.asyncio
    async def test_reads_until_eof(self):
        stream = MagicMock()
        stream.read = AsyncMock(side_effect=[b"abc", b"def", b""])
        assert await read_bounded(stream, limit=10) == b"abcdef"

    @pytest.mark.asyncio
    async def test_raises_past_limit(self):
        stream = MagicMock()
        stream.read = AsyncMock(side_effect=[b"x" * 6, b"x" * 6, b""])
        with pytest.raises(OutputLimitExceeded):
            await read_bounded(stream, limit=10)
        assert stream.read.call_count == 2


class TestRunFFmpegCommand:
    """Tests for run_ffmpeg_command function."""

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_run_ffmpeg_success(self, mock_subprocess, mock_ffmpeg_process, sample_job_id):
        mock_subprocess.return_value = mock_ffmpeg_process(0, [b"frame=  10\n"])

        diagnostics = await run_ffmpeg_command(CMD, job_id=sample_job_id)

        assert diagnostics == "frame=  10\n"
        args = mock_subprocess.call_args
        assert list(args[0]) == CMD
        assert args[1]["stderr"] == asyncio.subprocess.PIPE
        assert args[1]["stdout"] == asyncio.subprocess.DEVNULL

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_run_ffmpeg_failure_carries_stderr(self, mock_subprocess, mock_ffmpeg_process, sample_job_id):
        mock_subprocess.return_value = mock_ffmpeg_process(1, [b"Invalid data found when processing input\n"])

        with pytest.raises(ProcessingFailedError) as exc_info:
            await run_ffmpeg_command(CMD, job_id=sample_job_id)

        assert "Invalid data found" in exc_info.value.message
        assert "Invalid data found" in exc_info.value.diagnostics

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_run_ffmpeg_failure_without_stderr(self, mock_subprocess, mock_ffmpeg_process, sample_job_id):
        mock_subprocess.return_value = mock_ffmpeg_process(234)

        with pytest.raises(ProcessingFailedError, match="exit code 234"):
            await run_ffmpeg_command(CMD, job_id=sample_job_id)

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_missing_executable(self, mock_subprocess, sample_job_id):
        mock_subprocess.side_effect = FileNotFoundError("ffmpeg")

        with pytest.raises(ProcessingFailedError, match="not found"):
            await run_ffmpeg_command(CMD, job_id=sample_job_id)

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_oversized_diagnostics_kill_process(self, mock_subprocess, mock_ffmpeg_process, sample_job_id):
        process = mock_ffmpeg_process(0, [b"x" * 800, b"x" * 800])
        mock_subprocess.return_value = process

        with pytest.raises(ProcessingFailedError, match="too large"):
            await run_ffmpeg_command(CMD, job_id=sample_job_id, max_output_bytes=1000)

        process.kill.assert_called_once()

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_timeout_kills_process(self, mock_subprocess, mock_ffmpeg_process, sample_job_id):
        process = mock_ffmpeg_process(0)

        async def hang(_size):
            await asyncio.sleep(10)
            return b""

        process.stderr.read = AsyncMock(side_effect=hang)
        mock_subprocess.return_value = process

        with pytest.raises(ProcessingFailedError, match="timed out"):
            await run_ffmpeg_command(CMD, job_id=sample_job_id, timeout=0.05)

        process.kill.assert_called_once()


class TestProbeStreamSignature:
    """Tests for probe_stream_signature function."""

    @staticmethod
    def _probe_process(payload, returncode=0):
        process = MagicMock()
        process.returncode = returncode
        process.communicate = AsyncMock(return_value=(json.dumps(payload).encode(), b""))
        return process

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_signature_from_streams(self, mock_subprocess):
        mock_subprocess.return_value = self._probe_process({"streams": [
            {"codec_type": "video", "codec_name": "h264", "width": 1280, "height": 720,
             "pix_fmt": "yuv420p", "r_frame_rate": "30/1"},
            {"codec_type": "audio", "codec_name": "aac", "sample_rate": "48000", "channels": 2},
        ]})

        signature = await probe_stream_signature(Path("/tmp/video_0.mp4"))

        assert signature == (
            ("h264", 1280, 720, "yuv420p", "30/1"),
            ("aac", "48000", 2),
        )

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_video_only_file(self, mock_subprocess):
        mock_subprocess.return_value = self._probe_process({"streams": [
            {"codec_type": "video", "codec_name": "h264", "width": 640, "height": 480,
             "pix_fmt": "yuv420p", "r_frame_rate": "25/1"},
        ]})

        signature = await probe_stream_signature(Path("/tmp/video_0.mp4"))

        assert signature[1] is None

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_no_video_stream(self, mock_subprocess):
        mock_subprocess.return_value = self._probe_process({"streams": [{"codec_type": "audio"}]})
        assert await probe_stream_signature(Path("/tmp/video_0.mp4")) is None

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_probe_error_exit(self, mock_subprocess):
        mock_subprocess.return_value = self._probe_process({}, returncode=1)
        assert await probe_stream_signature(Path("/tmp/video_0.mp4")) is None

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_ffprobe_missing(self, mock_subprocess):
        mock_subprocess.side_effect = FileNotFoundError("ffprobe")
        assert await probe_stream_signature(Path("/tmp/video_0.mp4")) is None

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.logger')
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_timeout_kills_ffprobe(self, mock_subprocess, mock_logger):
        process = MagicMock()
        process.returncode = None

        async def hang():
            await asyncio.sleep(10)

        async def wait():
            process.returncode = -9
            return -9

        process.communicate = AsyncMock(side_effect=hang)
        process.wait = AsyncMock(side_effect=wait)
        mock_subprocess.return_value = process

        assert await probe_stream_signature(Path("/tmp/video_0.mp4"), timeout=0.05) is None

        process.kill.assert_called_once()
        process.wait.assert_awaited()
        message = mock_logger.warning.call_args[0][0]
        assert "timed out after 0.05s" in message

    @pytest.mark.asyncio
    @patch('modules.concatenator.utils.logger')
    @patch('modules.concatenator.utils.asyncio.create_subprocess_exec')
    async def test_launch_failure_names_error(self, mock_subprocess, mock_logger):
        mock_subprocess.side_effect = PermissionError("denied")

        assert await probe_stream_signature(Path("/tmp/video_0.mp4")) is None

        assert "PermissionError: denied" in mock_logger.warning.call_args[0][0]

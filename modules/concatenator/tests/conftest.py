"""
Pytest fixtures for concatenator tests.
"""
import pytest
import httpx
from uuid import uuid4
from unittest.mock import AsyncMock, MagicMock

from shared.config import Settings
from modules.concatenator.workspace import JobWorkspace


@pytest.fixture
def sample_job_id():
    """Create a sample job ID."""
    return uuid4()


@pytest.fixture
def test_settings(tmp_path):
    """Settings rooted in the test's temp directory."""
    return Settings(temp_root=tmp_path, concat_strategy="demuxer")


@pytest.fixture
def workspace(tmp_path, sample_job_id):
    """Created workspace under tmp_path."""
    ws = JobWorkspace(tmp_path, sample_job_id)
    ws.create()
    return ws


@pytest.fixture
def video_server():
    """
    Build an AsyncClient whose transport serves fixed bodies per URL.

    Unknown URLs get a 404. Requested URLs are recorded in order.
    """
    def _create(routes: dict):
        requested = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requested.append(url)
            if url not in routes:
                return httpx.Response(404)
            body = routes[url]
            if isinstance(body, Exception):
                raise body
            return httpx.Response(200, content=body)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return client, requested
    return _create


@pytest.fixture
def mock_ffmpeg_process():
    """
    Build a fake asyncio subprocess.

    stderr yields ``chunks`` then EOF; wait() returns ``returncode``.
    """
    def _create(returncode: int = 0, chunks=(b"",)):
        process = MagicMock()
        process.returncode = None
        process.stderr.read = AsyncMock(side_effect=list(chunks) + [b""])

        async def wait():
            process.returncode = returncode
            return returncode

        process.wait = AsyncMock(side_effect=wait)
        process.kill = MagicMock()
        return process
    return _create

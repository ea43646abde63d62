"""
Pytest fixtures for API tests.

The app runs with real routing and the real pipeline; only settings, the
media processor and the download transport are swapped out.
"""
import pytest
import httpx
from pathlib import Path
from typing import Sequence
from fastapi.testclient import TestClient

from shared.config import Settings
from modules.concatenator.processor import MediaProcessor
from api_gateway.dependencies import get_http_client, get_media_processor, get_settings
from api_gateway.main import app


class FakeProcessor(MediaProcessor):
    """Joins inputs byte-wise, or fails the way it is told to."""

    name = "fake"

    def __init__(self):
        self.write_output = True
        self.error = None
        self.calls = []

    async def concatenate(self, inputs: Sequence[Path], workspace, job_id) -> Path:
        self.calls.append([Path(p) for p in inputs])
        if self.error:
            raise self.error
        if self.write_output:
            workspace.output_path.write_bytes(b"".join(Path(p).read_bytes() for p in inputs))
        return workspace.output_path


@pytest.fixture
def test_settings(tmp_path):
    """Settings with workspaces under tmp_path."""
    return Settings(_env_file=None, temp_root=tmp_path)


@pytest.fixture
def fake_processor():
    return FakeProcessor()


@pytest.fixture
def remote_videos():
    """URL -> body (or exception) served to the downloader; unknown URLs 404."""
    return {}


@pytest.fixture
def client(test_settings, fake_processor, remote_videos):
    """Create test client with overridden dependencies."""
    def handler(request: httpx.Request) -> httpx.Response:
        body = remote_videos.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        if isinstance(body, Exception):
            raise body
        return httpx.Response(200, content=body)

    async def _http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            yield http_client

    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_media_processor] = lambda: fake_processor
    app.dependency_overrides[get_http_client] = _http_client

    yield TestClient(app)

    app.dependency_overrides.clear()

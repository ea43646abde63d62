"""
Per-job workspace.

Each job gets its own directory under the temp root, named after the job id.
The directory is created before any download and removed exactly once when
the job ends, whatever the outcome.
"""
import shutil
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator
from uuid import UUID

from shared.errors import InternalFailureError
from shared.logging import get_logger

from .config import MANIFEST_FILENAME, OUTPUT_FILENAME, VIDEO_ITEM_TEMPLATE

logger = get_logger("concatenator.workspace")


class JobWorkspace:
    """Directory holding one job's downloads, manifest and output."""

    def __init__(self, root: Path, job_id: UUID):
        self.job_id = job_id
        self.path = Path(root) / str(job_id)
        self._removed = False

    def create(self) -> Path:
        """
        Create the workspace directory.

        Raises:
            InternalFailureError: If the directory cannot be created
        """
        try:
            self.path.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise InternalFailureError(f"Failed to create workspace {self.path}: {e}") from e

        logger.info(
            f"Workspace created at {self.path}",
            extra={"job_id": str(self.job_id), "workspace": str(self.path)}
        )
        return self.path

    def item_path(self, index: int) -> Path:
        """Local path for the input at ``index``."""
        return self.path / VIDEO_ITEM_TEMPLATE.format(index=index)

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILENAME

    @property
    def output_path(self) -> Path:
        return self.path / OUTPUT_FILENAME

    @property
    def removed(self) -> bool:
        return self._removed

    def remove(self) -> bool:
        """
        Recursively delete the workspace, best-effort.

        Only the first call does anything. Failures are logged, never raised.

        Returns:
            True if this call performed the removal
        """
        if self._removed:
            return False
        self._removed = True

        if not self.path.exists():
            return True

        try:
            shutil.rmtree(self.path)
            logger.info("Workspace removed", extra={"job_id": str(self.job_id)})
        except OSError as e:
            logger.warning(
                f"Failed to remove workspace {self.path}: {e}",
                extra={"job_id": str(self.job_id), "error": str(e)}
            )
        return True


@asynccontextmanager
async def open_workspace(root: Path, job_id: UUID) -> AsyncIterator[JobWorkspace]:
    """
    Context manager for a job workspace with automatic cleanup.

    Args:
        root: Shared temp root
        job_id: Job ID, used as the directory name

    Yields:
        Created JobWorkspace
    """
    workspace = JobWorkspace(root, job_id)
    workspace.create()
    try:
        yield workspace
    finally:
        workspace.remove()

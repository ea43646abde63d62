"""
Error taxonomy.

Every failure a concat job can end in maps to one of these classes. The
``error_type`` attribute is the stable name reported to API callers.
"""

from typing import Optional


class ConfigError(Exception):
    """Raised when settings cannot be loaded or are invalid."""


class PipelineError(Exception):
    """Base class for failures surfaced to API callers."""

    error_type = "InternalFailure"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(PipelineError):
    """Request body is missing or malformed (client-correctable)."""

    error_type = "InvalidInput"


class DownloadFailedError(PipelineError):
    """One input could not be fetched (timeout, transport error, non-2xx)."""

    error_type = "DownloadFailed"

    def __init__(self, url: str, index: int, reason: str):
        super().__init__(f"Failed to download video {index} ({url}): {reason}")
        self.url = url
        self.index = index
        self.reason = reason


class ProcessingFailedError(PipelineError):
    """
    The media processor failed or produced no output.

    ``diagnostics`` holds the processor's stderr, when there is any.
    """

    error_type = "ProcessingFailed"

    def __init__(self, message: str, diagnostics: Optional[str] = None):
        super().__init__(message)
        self.diagnostics = diagnostics


class InternalFailureError(PipelineError):
    """Workspace or file IO failure not otherwise classified."""

    error_type = "InternalFailure"

"""
Configuration management.

Centralized environment variable management and validation.
"""

import tempfile
from pathlib import Path
from typing import List, Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore"
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = ["*"]

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # LOG_FILE: Optional rotating JSON log file; console only when unset
    log_file: Optional[Path] = None

    # Job workspaces live under <temp_root>/<job_id>
    temp_root: Path = Path(tempfile.gettempdir())

    # Fetcher
    download_timeout: float = 120.0  # seconds, per video
    download_chunk_size: int = 1024 * 1024

    # Media processor
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    ffmpeg_timeout: float = 600.0  # seconds, per FFmpeg run
    ffmpeg_max_output_bytes: int = 50 * 1024 * 1024  # captured stderr cap
    # CONCAT_STRATEGY: "demuxer" needs matching inputs, "filter" re-encodes
    # everything, "auto" probes the inputs and picks one of the two
    concat_strategy: Literal["auto", "demuxer", "filter"] = "auto"

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate listen port range."""
        if not 0 < v < 65536:
            raise ConfigError(f"PORT must be between 1 and 65535, got {v}")
        return v

    @field_validator("download_timeout", "ffmpeg_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Timeouts must be positive."""
        if v <= 0:
            raise ConfigError("Timeouts must be greater than zero")
        return v

    @field_validator("download_chunk_size", "ffmpeg_max_output_bytes")
    @classmethod
    def validate_byte_size(cls, v: int) -> int:
        """Byte sizes must be positive."""
        if v <= 0:
            raise ConfigError("Byte sizes must be greater than zero")
        return v


# Singleton instance
try:
    settings = Settings()
except Exception as e:
    # Re-raise as ConfigError for consistency
    if isinstance(e, ConfigError):
        raise
    raise ConfigError(f"Failed to load configuration: {str(e)}") from e

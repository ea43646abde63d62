"""
Data models for the concat service.

This module exports all Pydantic models used across modules.
"""

from .job import ConcatJob, ErrorResponse, HealthResponse, ServiceInfo

__all__ = [
    "ConcatJob",
    "ErrorResponse",
    "HealthResponse",
    "ServiceInfo",
]

"""Destination exports for cloudmigr."""

from __future__ import annotations

from .existence import ExistenceChecker
from .onedrive import OneDriveClient
from .upload import (
    CHUNK_UNIT,
    SIMPLE_UPLOAD_LIMIT,
    UploadEngine,
    UploadStrategy,
    choose_strategy,
)

__all__ = [
    "OneDriveClient",
    "ExistenceChecker",
    "UploadEngine",
    "UploadStrategy",
    "choose_strategy",
    "SIMPLE_UPLOAD_LIMIT",
    "CHUNK_UNIT",
]

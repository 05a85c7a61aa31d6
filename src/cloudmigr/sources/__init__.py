"""Source provider exports for cloudmigr."""

from __future__ import annotations

from .drive import GoogleDriveSource, build_drive_service
from .enumerator import SourceEnumerator
from .photos import PHOTOS_FOLDER, GooglePhotosSource

__all__ = [
    "GoogleDriveSource",
    "GooglePhotosSource",
    "SourceEnumerator",
    "PHOTOS_FOLDER",
    "build_drive_service",
]

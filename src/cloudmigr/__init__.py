"""cloudmigr public API."""

from __future__ import annotations

from cloudmigr.auth import (
    Credential,
    CredentialManager,
    GoogleTokenRefresher,
    MicrosoftTokenRefresher,
    OAuthClientConfig,
    Provider,
    RedisTokenStore,
)
from cloudmigr.config import MigrationSettings
from cloudmigr.destination import ExistenceChecker, OneDriveClient, UploadEngine, UploadStrategy
from cloudmigr.errors import (
    ApiError,
    AuthenticationMissingError,
    AuthenticationRejectedError,
    AuthError,
    CloudMigrError,
    ConflictError,
    DestinationListingError,
    EnumerationError,
    HttpErrorInfo,
    InvalidArgumentError,
    InvalidStateError,
    NetworkError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    TransferError,
    map_http_error,
)
from cloudmigr.models import (
    ItemResult,
    Origin,
    RunResult,
    SourceFile,
    SourcePage,
    TransferRecord,
    UploadedItem,
)
from cloudmigr.sources import GoogleDriveSource, GooglePhotosSource, SourceEnumerator
from cloudmigr.transfer import DestinationPathResolver, TransferLedger, TransferOrchestrator
from cloudmigr.transport import HttpTransport

__all__ = [
    # High-level
    "TransferOrchestrator",
    "MigrationSettings",
    # Auth
    "Credential",
    "CredentialManager",
    "GoogleTokenRefresher",
    "MicrosoftTokenRefresher",
    "OAuthClientConfig",
    "Provider",
    "RedisTokenStore",
    # Sources / destination
    "GoogleDriveSource",
    "GooglePhotosSource",
    "SourceEnumerator",
    "OneDriveClient",
    "ExistenceChecker",
    "UploadEngine",
    "UploadStrategy",
    "HttpTransport",
    # Ledger / paths
    "TransferLedger",
    "DestinationPathResolver",
    # Models
    "Origin",
    "SourceFile",
    "SourcePage",
    "TransferRecord",
    "UploadedItem",
    "ItemResult",
    "RunResult",
    # Errors
    "CloudMigrError",
    "InvalidStateError",
    "AuthError",
    "AuthenticationMissingError",
    "AuthenticationRejectedError",
    "PermissionError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "QuotaExceededError",
    "NetworkError",
    "ApiError",
    "TransferError",
    "DestinationListingError",
    "EnumerationError",
    "HttpErrorInfo",
    "map_http_error",
]

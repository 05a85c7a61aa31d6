"""Public error exports for cloudmigr."""

from __future__ import annotations

from .exceptions import (
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

__all__ = [
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

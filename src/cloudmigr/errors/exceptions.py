"""Exception hierarchy and HTTP error mapping for cloudmigr."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class CloudMigrError(Exception):
    """
    Base exception for cloudmigr.

    Attributes:
        details: Optional structured information (e.g., HTTP status, path).
        cause: Optional original exception that triggered this error.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


class InvalidStateError(CloudMigrError):
    """Raised on corrupt persisted state or misuse (e.g., a parent cycle)."""


class AuthError(CloudMigrError):
    """Raised when a provider rejects our credentials (HTTP 401 or token endpoint)."""


class AuthenticationMissingError(AuthError):
    """No stored credential exists; the user must consent again."""


class AuthenticationRejectedError(AuthError):
    """The provider refused to refresh the stored credential (revoked grant)."""


class PermissionError(CloudMigrError):
    """Raised when access is denied (HTTP 403 non-quota)."""


class InvalidArgumentError(CloudMigrError):
    """Raised when request arguments or configuration are invalid."""


class NotFoundError(CloudMigrError):
    """Raised when a resource is not found (HTTP 404)."""


class ConflictError(CloudMigrError):
    """Raised when a conflict occurs (HTTP 409/412)."""


class RateLimitError(CloudMigrError):
    """Raised when rate-limited (HTTP 429)."""


class QuotaExceededError(CloudMigrError):
    """Raised when quota is exceeded (HTTP 403 with quota-related reason)."""


class NetworkError(CloudMigrError):
    """Raised when network/timeout issues prevent the request."""


class ApiError(CloudMigrError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""


class TransferError(CloudMigrError):
    """A single item could not be transferred; the run goes on."""


class DestinationListingError(CloudMigrError):
    """Listing the destination container failed for a reason other than 404."""


class EnumerationError(CloudMigrError):
    """The source listing call failed; the run cannot continue."""


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to cloudmigr exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


_QUOTA_REASON_KEYWORDS: tuple[str, ...] = (
    "quota",
    "dailyLimitExceeded",
    "usageLimits",
    "storageQuotaExceeded",
)


# Drive reports per-user and per-project rate limits as 403 with these reasons.
_RATE_LIMIT_REASONS: frozenset[str] = frozenset({"ratelimitexceeded", "userratelimitexceeded"})


def _is_rate_limit_reason(reason: str | None) -> bool:
    return bool(reason) and reason.lower() in _RATE_LIMIT_REASONS


def _is_quota_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key.lower() in reason.lower() for key in _QUOTA_REASON_KEYWORDS)


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> CloudMigrError:
    """
    Map an HTTP error to a cloudmigr exception.

    Policy:
        - 401 -> AuthError
        - 403 -> PermissionError (default), RateLimitError for rate-limit reasons,
                 QuotaExceededError if quota-related
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - 400 -> InvalidArgumentError
        - 5xx -> ApiError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        if _is_rate_limit_reason(info.reason):
            return RateLimitError(message, details=details, cause=cause)
        if _is_quota_reason(info.reason):
            return QuotaExceededError(message, details=details, cause=cause)
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)
    if 500 <= info.status_code <= 599:
        return ApiError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)

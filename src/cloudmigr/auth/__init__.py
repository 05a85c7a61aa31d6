"""Public auth exports for cloudmigr."""

from __future__ import annotations

from .consent import (
    exchange_google_code,
    exchange_microsoft_code,
    google_authorization_url,
    microsoft_authorization_url,
)
from .credential import Credential, Provider
from .credential_manager import CredentialManager
from .oauth_config import OAuthClientConfig
from .refreshers import GoogleTokenRefresher, MicrosoftTokenRefresher
from .token_store import RedisTokenStore

__all__ = [
    "Credential",
    "Provider",
    "CredentialManager",
    "OAuthClientConfig",
    "RedisTokenStore",
    "GoogleTokenRefresher",
    "MicrosoftTokenRefresher",
    "google_authorization_url",
    "exchange_google_code",
    "microsoft_authorization_url",
    "exchange_microsoft_code",
]

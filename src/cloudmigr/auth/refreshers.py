"""Token-endpoint calls that turn a refresh token into a new access token."""

from __future__ import annotations

import asyncio
import logging

from cloudmigr.errors import (
    AuthenticationMissingError,
    AuthenticationRejectedError,
    CloudMigrError,
    NetworkError,
)
from cloudmigr.transport import HttpTransport
from cloudmigr.util.time import assume_utc, expiry_from_now

from .credential import Credential
from .oauth_config import OAuthClientConfig

logger = logging.getLogger(__name__)


def _require_refresh_token(credential: Credential, provider: str) -> str:
    if not credential.refresh_token:
        raise AuthenticationMissingError(
            "Credential expired and no refresh token is stored; sign in again",
            details={"provider": provider},
        )
    return credential.refresh_token


class GoogleTokenRefresher:
    """Refresh Google credentials with google-auth."""

    def __init__(self, config: OAuthClientConfig) -> None:
        self._config = config

    async def refresh(self, credential: Credential) -> Credential:
        refresh_token = _require_refresh_token(credential, "google")
        return await asyncio.to_thread(self._refresh_sync, credential, refresh_token)

    def _refresh_sync(self, credential: Credential, refresh_token: str) -> Credential:
        from google.auth.exceptions import RefreshError, TransportError
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials

        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=self._config.token_uri,
            client_id=self._config.client_id,
            client_secret=self._config.client_secret,
            scopes=list(self._config.scopes),
        )
        try:
            creds.refresh(Request())
        except RefreshError as exc:
            raise AuthenticationRejectedError(
                "Google refused to refresh the access token",
                details={"provider": "google", "error": str(exc)},
                cause=exc,
            ) from exc
        except TransportError as exc:
            raise NetworkError(
                "Google token endpoint unreachable",
                details={"provider": "google"},
                cause=exc,
            ) from exc

        if not creds.token or creds.expiry is None:
            raise AuthenticationRejectedError(
                "Google token endpoint returned no access token",
                details={"provider": "google"},
            )

        return credential.refreshed(
            access_token=creds.token,
            expiry=assume_utc(creds.expiry),
            refresh_token=creds.refresh_token,
        )


class MicrosoftTokenRefresher:
    """Refresh Microsoft identity platform credentials via the v2.0 token endpoint."""

    def __init__(self, config: OAuthClientConfig, transport: HttpTransport) -> None:
        self._config = config
        self._transport = transport

    async def refresh(self, credential: Credential) -> Credential:
        refresh_token = _require_refresh_token(credential, "microsoft")
        form = {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "scope": " ".join(self._config.scopes),
            "redirect_uri": self._config.redirect_uri,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        try:
            data = await self._transport.request_json(
                "POST",
                self._config.token_uri,
                data=form,
                retry=False,
            )
        except NetworkError:
            raise
        except CloudMigrError as exc:
            raise AuthenticationRejectedError(
                f"Microsoft refused to refresh the access token: {exc}",
                details={"provider": "microsoft", **exc.details},
                cause=exc,
            ) from exc

        access_token = data.get("access_token")
        expires_in = data.get("expires_in")
        if not isinstance(access_token, str) or not isinstance(expires_in, (int, float)):
            raise AuthenticationRejectedError(
                "Microsoft token endpoint returned an unexpected payload",
                details={"provider": "microsoft"},
            )

        return credential.refreshed(
            access_token=access_token,
            expiry=expiry_from_now(expires_in),
            refresh_token=data.get("refresh_token"),
        )

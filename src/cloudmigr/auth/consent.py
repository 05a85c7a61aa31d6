"""Authorization-code consent: build the consent URL and seed the token store."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional
from urllib.parse import urlencode

from cloudmigr.errors import AuthenticationRejectedError, CloudMigrError, NetworkError
from cloudmigr.transport import HttpTransport
from cloudmigr.util.time import assume_utc, expiry_from_now

from .credential import Credential, Provider
from .oauth_config import OAuthClientConfig

logger = logging.getLogger(__name__)


def _google_flow(config: OAuthClientConfig):
    from google_auth_oauthlib.flow import Flow

    client_config = {
        "web": {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "auth_uri": config.auth_uri,
            "token_uri": config.token_uri,
            "redirect_uris": [config.redirect_uri],
        }
    }
    return Flow.from_client_config(
        client_config,
        scopes=list(config.scopes),
        redirect_uri=config.redirect_uri,
        # The exchange runs in a later process, so no PKCE verifier survives.
        autogenerate_code_verifier=False,
    )


def google_authorization_url(config: OAuthClientConfig, *, state: Optional[str] = None) -> str:
    """Consent URL requesting offline access so Google issues a refresh token."""
    flow = _google_flow(config)
    url, _ = flow.authorization_url(
        access_type="offline",
        prompt="consent",
        state=state,
    )
    return url


async def exchange_google_code(
    config: OAuthClientConfig,
    code: str,
    store: Any,
) -> Credential:
    """
    Exchange an authorization code and persist the resulting credential.

    Google omits the refresh token on repeat consent; the previously stored one
    is kept in that case.
    """

    def _fetch():
        flow = _google_flow(config)
        flow.fetch_token(code=code)
        return flow.credentials

    try:
        creds = await asyncio.to_thread(_fetch)
    except Exception as exc:
        raise AuthenticationRejectedError(
            "Google authorization code exchange failed",
            details={"provider": "google"},
            cause=exc,
        ) from exc

    previous = await store.get(Provider.GOOGLE)
    credential = Credential(
        access_token=creds.token,
        expiry=assume_utc(creds.expiry),
        refresh_token=creds.refresh_token or (previous.refresh_token if previous else None),
    )
    await store.set(Provider.GOOGLE, credential)
    logger.info("Stored Google credential from authorization code")
    return credential


def microsoft_authorization_url(config: OAuthClientConfig, *, state: Optional[str] = None) -> str:
    params = {
        "client_id": config.client_id,
        "response_type": "code",
        "redirect_uri": config.redirect_uri,
        "response_mode": "query",
        "scope": " ".join(config.scopes),
    }
    if state:
        params["state"] = state
    return f"{config.auth_uri}?{urlencode(params)}"


async def exchange_microsoft_code(
    config: OAuthClientConfig,
    code: str,
    store: Any,
    transport: HttpTransport,
) -> Credential:
    """
    Exchange an authorization code at the v2.0 token endpoint and persist it.

    A response without a refresh token keeps the previously stored one.
    """
    form = {
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "scope": " ".join(config.scopes),
        "redirect_uri": config.redirect_uri,
        "grant_type": "authorization_code",
        "code": code,
    }
    try:
        data = await transport.request_json("POST", config.token_uri, data=form, retry=False)
    except NetworkError:
        raise
    except CloudMigrError as exc:
        raise AuthenticationRejectedError(
            f"Microsoft authorization code exchange failed: {exc}",
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

    previous = await store.get(Provider.MICROSOFT)
    credential = Credential(
        access_token=access_token,
        expiry=expiry_from_now(expires_in),
        refresh_token=data.get("refresh_token") or (previous.refresh_token if previous else None),
    )
    await store.set(Provider.MICROSOFT, credential)
    logger.info("Stored Microsoft credential from authorization code")
    return credential

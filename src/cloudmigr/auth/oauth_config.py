"""OAuth client configuration for the two providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

GOOGLE_AUTH_URI: str = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI: str = "https://oauth2.googleapis.com/token"
GOOGLE_SCOPES: tuple[str, ...] = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/photoslibrary.readonly",
)

MICROSOFT_LOGIN_BASE: str = "https://login.microsoftonline.com"
MICROSOFT_SCOPES: tuple[str, ...] = (
    "openid",
    "offline_access",
    "profile",
    "User.Read",
    "Files.ReadWrite",
)


@dataclass(slots=True, frozen=True)
class OAuthClientConfig:
    """
    OAuth client registration for one provider.

    tenant_id is required by Microsoft identity platform endpoints only.
    """

    client_id: str
    client_secret: str
    redirect_uri: str
    auth_uri: str
    token_uri: str
    scopes: tuple[str, ...]
    tenant_id: Optional[str] = None

    def __post_init__(self) -> None:
        for key in ("client_id", "client_secret", "redirect_uri", "auth_uri", "token_uri"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"OAuthClientConfig.{key} must be a non-empty string")

        if not self.scopes or not all(isinstance(s, str) and s.strip() for s in self.scopes):
            raise ValueError("OAuthClientConfig.scopes must be a non-empty sequence of strings")

    @classmethod
    def google(
        cls,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        scopes: tuple[str, ...] = GOOGLE_SCOPES,
    ) -> OAuthClientConfig:
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            auth_uri=GOOGLE_AUTH_URI,
            token_uri=GOOGLE_TOKEN_URI,
            scopes=tuple(scopes),
        )

    @classmethod
    def microsoft(
        cls,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        tenant_id: str,
        *,
        scopes: tuple[str, ...] = MICROSOFT_SCOPES,
    ) -> OAuthClientConfig:
        if not isinstance(tenant_id, str) or not tenant_id.strip():
            raise ValueError("tenant_id must be a non-empty string")
        base = f"{MICROSOFT_LOGIN_BASE}/{tenant_id}/oauth2/v2.0"
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            auth_uri=f"{base}/authorize",
            token_uri=f"{base}/token",
            scopes=tuple(scopes),
            tenant_id=tenant_id,
        )

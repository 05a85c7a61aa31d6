"""Always-valid bearer tokens for one provider."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from cloudmigr.errors import AuthenticationMissingError
from cloudmigr.util.time import now_utc

from .credential import Credential, Provider

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SKEW = timedelta(seconds=60)


class CredentialManager:
    """
    Hand out a valid access token, refreshing through the provider when needed.

    Lookup order: in-memory credential, then the token store, then a refresh.
    Refreshes are single-flight: concurrent callers that find the credential
    expired wait for the one refresh in progress and reuse its result.

    Every refresh writes the new credential back to the token store.
    """

    def __init__(
        self,
        provider: Provider,
        store: Any,
        refresher: Any,
        *,
        clock: Callable[[], datetime] = now_utc,
        expiry_skew: timedelta = DEFAULT_EXPIRY_SKEW,
    ) -> None:
        self._provider = provider
        self._store = store
        self._refresher = refresher
        self._clock = clock
        self._skew = expiry_skew
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()

    @property
    def provider(self) -> Provider:
        return self._provider

    async def get_access_token(self) -> str:
        """
        Return a bearer token valid right now.

        Raises:
            AuthenticationMissingError: nothing stored; user must consent again.
            AuthenticationRejectedError: the provider refused the refresh.
        """
        credential = await self.get_credential()
        return credential.access_token

    async def get_credential(self) -> Credential:
        cached = self._fresh_cached()
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._fresh_cached()
            if cached is not None:
                return cached

            stored = await self._store.get(self._provider)
            if stored is None:
                raise AuthenticationMissingError(
                    f"No stored {self._provider.value} credential; sign in again",
                    details={"provider": self._provider.value},
                )

            if stored.is_expired(self._clock(), skew=self._skew):
                stored = await self._refresh(stored)

            self._credential = stored
            return stored

    def invalidate(self) -> None:
        """Forget the in-memory credential; the next call re-reads the store."""
        self._credential = None

    def _fresh_cached(self) -> Optional[Credential]:
        cached = self._credential
        if cached is None or cached.is_expired(self._clock(), skew=self._skew):
            return None
        return cached

    async def _refresh(self, stored: Credential) -> Credential:
        logger.info(f"Refreshing {self._provider.value} access token")
        renewed = await self._refresher.refresh(stored)
        await self._store.set(self._provider, renewed)
        logger.info(f"Refreshed {self._provider.value} access token; valid until {renewed.expiry.isoformat()}")
        return renewed

"""Credential persistence in Redis."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from cloudmigr.errors import AuthenticationMissingError, NetworkError

from .credential import Credential, Provider

logger = logging.getLogger(__name__)

DEFAULT_KEY_PREFIX: str = "cloudmigr:token"


class RedisTokenStore:
    """
    One key per provider holding the JSON-serialized Credential.

    The client is any `redis.asyncio.Redis`-compatible object exposing async
    get/set; the store never creates connections on its own.
    """

    def __init__(self, client: Any, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = DEFAULT_KEY_PREFIX) -> RedisTokenStore:
        return cls(redis.from_url(url, decode_responses=True), key_prefix=key_prefix)

    def key_for(self, provider: Provider) -> str:
        return f"{self._key_prefix}:{provider.value}"

    async def get(self, provider: Provider) -> Optional[Credential]:
        key = self.key_for(provider)
        raw = await self._call("get", key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")

        try:
            return Credential.from_dict(json.loads(raw))
        except (TypeError, ValueError) as exc:
            raise AuthenticationMissingError(
                "Stored credential is malformed; sign in again",
                details={"provider": provider.value, "key": key},
                cause=exc,
            ) from exc

    async def set(self, provider: Provider, credential: Credential) -> None:
        key = self.key_for(provider)
        await self._call("set", key, json.dumps(credential.to_dict()))
        logger.debug(f"Stored {provider.value} credential under {key}")

    async def close(self) -> None:
        close = getattr(self._client, "aclose", None) or getattr(self._client, "close", None)
        if close is not None:
            await close()

    async def _call(self, method: str, *args: Any) -> Any:
        try:
            return await getattr(self._client, method)(*args)
        except RedisError as exc:
            raise NetworkError(
                "Token store request failed",
                details={"operation": method},
                cause=exc,
            ) from exc

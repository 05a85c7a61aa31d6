import json
import unittest
from datetime import datetime, timezone

from redis.exceptions import ConnectionError as RedisConnectionError

from cloudmigr.auth import Credential, Provider, RedisTokenStore
from cloudmigr.errors import AuthenticationMissingError, NetworkError

NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class _FakeRedis:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value
        return True

    async def aclose(self):
        self.closed = True


class _BrokenRedis:
    async def get(self, key):
        raise RedisConnectionError("down")


class TestRedisTokenStore(unittest.IsolatedAsyncioTestCase):
    async def test_get_missing_returns_none(self) -> None:
        store = RedisTokenStore(_FakeRedis())
        self.assertIsNone(await store.get(Provider.GOOGLE))

    async def test_set_then_get(self) -> None:
        client = _FakeRedis()
        store = RedisTokenStore(client)
        cred = Credential(access_token="t", expiry=NOW, refresh_token="R")

        await store.set(Provider.MICROSOFT, cred)

        self.assertIn("cloudmigr:token:microsoft", client.data)
        self.assertEqual(json.loads(client.data["cloudmigr:token:microsoft"])["refreshToken"], "R")
        self.assertEqual(await store.get(Provider.MICROSOFT), cred)

    async def test_bytes_payload_is_decoded(self) -> None:
        client = _FakeRedis()
        client.data["p:google"] = json.dumps({"accessToken": "t", "expiryDate": 1}).encode("utf-8")
        store = RedisTokenStore(client, key_prefix="p")

        cred = await store.get(Provider.GOOGLE)

        self.assertEqual(cred.access_token, "t")

    async def test_malformed_payload_requires_new_consent(self) -> None:
        client = _FakeRedis()
        client.data["cloudmigr:token:google"] = "{not json"
        store = RedisTokenStore(client)

        with self.assertRaises(AuthenticationMissingError):
            await store.get(Provider.GOOGLE)

    async def test_redis_error_maps_to_network_error(self) -> None:
        store = RedisTokenStore(_BrokenRedis())
        with self.assertRaises(NetworkError):
            await store.get(Provider.GOOGLE)

    async def test_close(self) -> None:
        client = _FakeRedis()
        await RedisTokenStore(client).close()
        self.assertTrue(client.closed)


if __name__ == "__main__":
    unittest.main()

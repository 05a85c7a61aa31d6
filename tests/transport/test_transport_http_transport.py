import json
import unittest

import aiohttp

from cloudmigr.errors import (
    ApiError,
    AuthError,
    InvalidArgumentError,
    NetworkError,
    NotFoundError,
    RateLimitError,
)
from cloudmigr.transport import HttpTransport, RetryPolicy
from cloudmigr.transport.http_transport import _build_headers, _response_to_info, _should_retry


class _FakeResponse:
    def __init__(self, status, payload=None, headers=None, reason="") -> None:
        self.status = status
        self.reason = reason
        self.headers = headers or {}
        self._body = b"" if payload is None else json.dumps(payload).encode("utf-8")

    async def read(self):
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class _FakeSession:
    def __init__(self, *outcomes) -> None:
        self.outcomes = list(outcomes)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _transport(session) -> HttpTransport:
    return HttpTransport(session, retry_policy=RetryPolicy(max_retries=2, initial_delay_sec=0))


class TestHttpTransportHelpers(unittest.TestCase):
    def test_build_headers(self) -> None:
        self.assertEqual(_build_headers(None, None), {})
        self.assertEqual(
            _build_headers("T", {"X": "1"}),
            {"Authorization": "Bearer T", "X": "1"},
        )

    def test_google_error_shape(self) -> None:
        info = _response_to_info(
            403,
            "Forbidden",
            {"error": {"message": "quota", "errors": [{"reason": "dailyLimitExceeded"}]}},
        )
        self.assertEqual(info.reason, "dailyLimitExceeded")
        self.assertEqual(info.message, "quota")

    def test_graph_error_shape(self) -> None:
        info = _response_to_info(404, "Not Found", {"error": {"code": "itemNotFound", "message": "gone"}})
        self.assertEqual(info.details, {"code": "itemNotFound"})
        self.assertEqual(info.message, "gone")
        self.assertEqual(info.reason, "Not Found")

    def test_oauth_error_shape(self) -> None:
        info = _response_to_info(400, "Bad Request", {"error": "invalid_grant", "error_description": "expired"})
        self.assertEqual(info.details, {"code": "invalid_grant"})
        self.assertEqual(info.message, "expired")

    def test_should_retry(self) -> None:
        self.assertTrue(_should_retry(RateLimitError("x")))
        self.assertTrue(_should_retry(NetworkError("x")))
        self.assertTrue(_should_retry(ApiError("x", details={"status_code": 502})))
        self.assertFalse(_should_retry(ApiError("x", details={"status_code": 418})))
        self.assertFalse(_should_retry(NotFoundError("x")))


class TestHttpTransportRequests(unittest.IsolatedAsyncioTestCase):
    async def test_request_json_returns_payload_and_sends_token(self) -> None:
        session = _FakeSession(_FakeResponse(200, {"id": "I1"}))

        data = await _transport(session).request_json("GET", "https://x.test/a", token="T")

        self.assertEqual(data, {"id": "I1"})
        self.assertEqual(session.calls[0][2]["headers"]["Authorization"], "Bearer T")

    async def test_error_status_is_mapped(self) -> None:
        session = _FakeSession(_FakeResponse(401, {"error": {"code": "InvalidAuthenticationToken"}}))

        with self.assertRaises(AuthError):
            await _transport(session).request("GET", "https://x.test/a")
        self.assertEqual(len(session.calls), 1)

    async def test_retries_rate_limit_then_succeeds(self) -> None:
        session = _FakeSession(
            _FakeResponse(429),
            _FakeResponse(503),
            _FakeResponse(201, {"id": "I1"}),
        )

        response = await _transport(session).request("PUT", "https://x.test/a")

        self.assertEqual(response.status, 201)
        self.assertEqual(len(session.calls), 3)

    async def test_gives_up_after_max_retries(self) -> None:
        session = _FakeSession(_FakeResponse(429), _FakeResponse(429), _FakeResponse(429))

        with self.assertRaises(RateLimitError):
            await _transport(session).request("GET", "https://x.test/a")
        self.assertEqual(len(session.calls), 3)

    async def test_no_retry_when_disabled(self) -> None:
        session = _FakeSession(_FakeResponse(503), _FakeResponse(200, {}))

        with self.assertRaises(ApiError):
            await _transport(session).request("DELETE", "https://x.test/a", retry=False)
        self.assertEqual(len(session.calls), 1)

    async def test_client_error_maps_to_network_error(self) -> None:
        session = _FakeSession(
            aiohttp.ClientConnectionError("reset"),
            aiohttp.ClientConnectionError("reset"),
            aiohttp.ClientConnectionError("reset"),
        )

        with self.assertRaises(NetworkError):
            await _transport(session).request("GET", "https://x.test/a")

    async def test_bad_request_is_not_retried(self) -> None:
        session = _FakeSession(_FakeResponse(400, {"error": "invalid_request"}))

        with self.assertRaises(InvalidArgumentError):
            await _transport(session).request("POST", "https://x.test/token")
        self.assertEqual(len(session.calls), 1)


if __name__ == "__main__":
    unittest.main()

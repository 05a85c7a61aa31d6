"""Async HTTP transport shared by the source and destination clients."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Optional

import aiohttp

from cloudmigr.errors import (
    ApiError,
    CloudMigrError,
    HttpErrorInfo,
    NetworkError,
    RateLimitError,
    map_http_error,
)

logger = logging.getLogger(__name__)

DEFAULT_STREAM_CHUNK: int = 1024 * 1024


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_delay_sec: float = 1.0


@dataclass(frozen=True)
class HttpResponse:
    status: int
    headers: Mapping[str, str]
    payload: Any


class HttpTransport:
    """
    Thin wrapper around an aiohttp session.

    Notes:
        - The bearer token is passed on every call; the transport keeps no
          credential state.
        - Non-2xx responses are mapped with map_http_error; 429, 5xx and
          network failures are retried with exponential backoff.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        *,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        self._session = session
        self._retry_policy = retry_policy or RetryPolicy()

    async def request(
        self,
        method: str,
        url: str,
        *,
        token: Optional[str] = None,
        params: Optional[Mapping[str, str]] = None,
        json_body: Any = None,
        data: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        retry: bool = True,
    ) -> HttpResponse:
        """Send a request and return status, headers and decoded JSON payload."""
        send_headers = _build_headers(token, headers)

        async def _send() -> HttpResponse:
            async with self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                data=data,
                headers=send_headers,
            ) as resp:
                payload = await _read_payload(resp)
                if resp.status >= 400:
                    raise map_http_error(_response_to_info(resp.status, resp.reason, payload))
                return HttpResponse(status=resp.status, headers=dict(resp.headers), payload=payload)

        if not retry:
            return await self._execute_once(_send)
        return await self._execute(_send)

    async def request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        response = await self.request(method, url, **kwargs)
        if not isinstance(response.payload, dict):
            return {}
        return response.payload

    async def content_length(self, url: str, *, token: Optional[str] = None) -> Optional[int]:
        """HEAD the URL (following redirects) and return Content-Length, if any."""
        send_headers = _build_headers(token, None)

        async def _send() -> Optional[int]:
            async with self._session.head(url, headers=send_headers, allow_redirects=True) as resp:
                if resp.status >= 400:
                    raise map_http_error(_response_to_info(resp.status, resp.reason, None))
                value = resp.headers.get("Content-Length")
                if value is None or not value.isdigit():
                    return None
                return int(value)

        return await self._execute(_send)

    @asynccontextmanager
    async def stream(
        self,
        url: str,
        *,
        token: Optional[str] = None,
        chunk_size: int = DEFAULT_STREAM_CHUNK,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """
        Open a GET response body as an async iterator of byte chunks.

        The response stays open for the duration of the `async with` block.
        """
        send_headers = _build_headers(token, None)

        async def _open() -> aiohttp.ClientResponse:
            resp = await self._session.get(url, headers=send_headers, allow_redirects=True)
            if resp.status >= 400:
                payload = await _read_payload(resp)
                resp.release()
                raise map_http_error(_response_to_info(resp.status, resp.reason, payload))
            return resp

        resp = await self._execute(_open)
        try:
            yield _iter_body(resp, chunk_size)
        finally:
            resp.release()

    # ----------------------------
    # Internals
    # ----------------------------
    async def _execute(self, func):
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return await self._execute_once(func)
            except CloudMigrError as exc:
                if _should_retry(exc) and attempt < self._retry_policy.max_retries:
                    logger.warning(f"Retrying after {exc.__class__.__name__}: {exc} (attempt {attempt + 1})")
                    await asyncio.sleep(delay)
                    delay *= 2
                    continue
                raise

        raise ApiError("Unexpected retry loop termination")

    async def _execute_once(self, func):
        try:
            return await func()
        except CloudMigrError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            raise NetworkError("Network error", details={"error": str(exc)}, cause=exc) from exc


async def _iter_body(resp: aiohttp.ClientResponse, chunk_size: int) -> AsyncIterator[bytes]:
    try:
        async for chunk in resp.content.iter_chunked(chunk_size):
            yield chunk
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise NetworkError("Network error while reading body", cause=exc) from exc


def _build_headers(token: Optional[str], extra: Optional[Mapping[str, str]]) -> dict[str, str]:
    headers: dict[str, str] = {}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    if extra:
        headers.update(extra)
    return headers


async def _read_payload(resp: aiohttp.ClientResponse) -> Any:
    body = await resp.read()
    if not body:
        return None
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return None


def _should_retry(exc: Exception) -> bool:
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, NetworkError):
        return True
    if isinstance(exc, ApiError):
        status_code = getattr(exc, "details", {}).get("status_code")
        return isinstance(status_code, int) and 500 <= status_code <= 599
    return False


def _response_to_info(status: int, reason: Optional[str], payload: Any) -> HttpErrorInfo:
    """
    Extract a message and reason from the three error shapes we meet.

        Google APIs:   {"error": {"message", "errors": [{"reason"}]}}
        Graph:         {"error": {"code", "message"}}
        OAuth2 token:  {"error": "invalid_grant", "error_description"}
    """
    message = None
    details: dict[str, Any] = {}

    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            message = err.get("message") or None
            if isinstance(err.get("code"), str):
                details["code"] = err["code"]
            errors = err.get("errors") or []
            if errors and isinstance(errors, list) and isinstance(errors[0], dict):
                if isinstance(errors[0].get("reason"), str):
                    reason = errors[0]["reason"]
        elif isinstance(err, str):
            details["code"] = err
            message = payload.get("error_description") or err

    return HttpErrorInfo(
        status_code=status,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )

"""Google Drive source client (google-api-python-client)."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional, TypeVar

from cloudmigr.errors import (
    ApiError,
    HttpErrorInfo,
    NetworkError,
    RateLimitError,
    map_http_error,
)
from cloudmigr.models import Origin, SourceFile, SourcePage
from cloudmigr.transport import HttpTransport
from cloudmigr.util.mime import is_transferable

from .fields import FILE_FIELDS, LIST_FIELDS, OWNER_FIELDS, PARENT_FIELDS, TRANSFERABLE_QUERY

logger = logging.getLogger(__name__)

T = TypeVar("T")

DRIVE_API: str = "https://www.googleapis.com/drive/v3"
DEFAULT_PAGE_SIZE: int = 50


@dataclass(frozen=True)
class _RetryPolicy:
    max_retries: int = 3
    initial_delay_sec: float = 1.0


def build_drive_service():
    """
    Build a Drive v3 resource without bound credentials.

    The bearer token is attached per request, so the resource never holds
    credential state.
    """
    from google.auth.credentials import AnonymousCredentials
    from googleapiclient.discovery import build

    return build("drive", "v3", credentials=AnonymousCredentials(), cache_discovery=False)


class GoogleDriveSource:
    """
    Google Drive as a migration source.

    Notes:
        - Blocking client calls run in a worker thread.
        - `supports_all_drives` is applied to all requests consistently.
        - Content is streamed over HTTP from the `alt=media` URL.
    """

    origin = Origin.GOOGLE_DRIVE
    supports_delete = True

    def __init__(
        self,
        service: Any,
        credentials: Any,
        transport: HttpTransport,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        supports_all_drives: bool = True,
    ) -> None:
        self._service = service
        self._credentials = credentials
        self._transport = transport
        self._page_size = page_size
        self._supports_all_drives = supports_all_drives
        self._retry_policy = _RetryPolicy()

    # ----------------------------
    # Public API
    # ----------------------------
    async def list_page(self, page_token: Optional[str] = None) -> SourcePage:
        kwargs: dict[str, Any] = {
            "q": TRANSFERABLE_QUERY,
            "pageSize": self._page_size,
            "fields": LIST_FIELDS,
            **self._common_list_kwargs(),
        }
        if page_token:
            kwargs["pageToken"] = page_token

        req = self._service.files().list(**kwargs)
        data = await self._run(req)
        files = [_file_dict_to_source_file(f) for f in data.get("files", []) or []]
        files = [f for f in files if is_transferable(f.mime_type)]
        return SourcePage(items=files, next_page_token=data.get("nextPageToken") or None)

    async def fetch(self, file_id: str) -> SourceFile:
        req = self._service.files().get(
            fileId=file_id,
            fields=FILE_FIELDS,
            **self._common_get_kwargs(),
        )
        return _file_dict_to_source_file(await self._run(req))

    async def get_parent_link(self, file_id: str) -> tuple[str, Optional[str]]:
        """Return (name, primary parent id) of a Drive item."""
        req = self._service.files().get(
            fileId=file_id,
            fields=PARENT_FIELDS,
            **self._common_get_kwargs(),
        )
        data = await self._run(req)
        parents = data.get("parents") or []
        return str(data.get("name", "")), (parents[0] if parents else None)

    async def get_owner_email(self) -> Optional[str]:
        req = self._service.about().get(fields=OWNER_FIELDS)
        data = await self._run(req)
        email = (data.get("user") or {}).get("emailAddress")
        return email if isinstance(email, str) else None

    async def delete(self, file_id: str) -> None:
        req = self._service.files().delete(
            fileId=file_id,
            **self._common_get_kwargs(),
        )
        await self._run(req)

    async def size_hint(self, file: SourceFile) -> Optional[int]:
        return file.size

    @asynccontextmanager
    async def open_stream(self, file: SourceFile) -> AsyncIterator[AsyncIterator[bytes]]:
        token = await self._credentials.get_access_token()
        async with self._transport.stream(file.content_url, token=token) as body:
            yield body

    # ----------------------------
    # Internals
    # ----------------------------
    def _common_get_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True}

    def _common_list_kwargs(self) -> dict[str, Any]:
        if not self._supports_all_drives:
            return {}
        return {"supportsAllDrives": True, "includeItemsFromAllDrives": True}

    async def _run(self, req: Any) -> dict[str, Any]:
        token = await self._credentials.get_access_token()
        req.headers["authorization"] = f"Bearer {token}"
        data = await asyncio.to_thread(self._execute, req.execute)
        return data if isinstance(data, dict) else {}

    def _execute(self, func: Callable[[], T]) -> T:
        delay = self._retry_policy.initial_delay_sec
        for attempt in range(self._retry_policy.max_retries + 1):
            try:
                return func()
            except Exception as exc:
                mapped = self._map_exception(exc)
                if self._should_retry(mapped) and attempt < self._retry_policy.max_retries:
                    logger.warning(f"Drive request failed ({mapped}); retrying in {delay:.1f}s")
                    time.sleep(delay)
                    delay *= 2
                    continue
                raise mapped from exc

        raise ApiError("Unexpected retry loop termination")

    def _should_retry(self, exc: Exception) -> bool:
        if isinstance(exc, RateLimitError):
            return True
        if isinstance(exc, NetworkError):
            return True
        if isinstance(exc, ApiError):
            status_code = getattr(exc, "details", {}).get("status_code")
            return isinstance(status_code, int) and 500 <= status_code <= 599
        return False

    def _map_exception(self, exc: Exception) -> Exception:
        from googleapiclient.errors import HttpError

        if isinstance(exc, HttpError):
            info = _http_error_to_info(exc)
            return map_http_error(info, cause=exc)

        if isinstance(exc, (OSError, TimeoutError)):
            return NetworkError("Network error", cause=exc)

        return ApiError("Drive API error", cause=exc)


def content_url_for(file_id: str, *, supports_all_drives: bool = True) -> str:
    url = f"{DRIVE_API}/files/{file_id}?alt=media"
    if supports_all_drives:
        url += "&supportsAllDrives=true"
    return url


def _file_dict_to_source_file(data: dict[str, Any]) -> SourceFile:
    file_id = data.get("id")
    if not isinstance(file_id, str) or not file_id:
        raise ApiError("Drive returned a file without id", details={"payload": data})

    name = data.get("name", "")
    parents = data.get("parents", []) or []
    mime_type = data.get("mimeType")

    size = None
    if isinstance(data.get("size"), str) and data["size"].isdigit():
        size = int(data["size"])
    elif isinstance(data.get("size"), int):
        size = data["size"]

    owners: list[str] = []
    for permission in data.get("permissions", []) or []:
        if not isinstance(permission, dict):
            continue
        email = permission.get("emailAddress")
        if permission.get("role") == "owner" and isinstance(email, str):
            owners.append(email)

    return SourceFile(
        file_id=file_id,
        name=name if isinstance(name, str) else "",
        origin=Origin.GOOGLE_DRIVE,
        content_url=content_url_for(file_id),
        parents=tuple(parents) if isinstance(parents, list) else (),
        size=size,
        mime_type=mime_type if isinstance(mime_type, str) else None,
        owners=tuple(owners),
    )


def _http_error_to_info(exc: Any) -> HttpErrorInfo:
    status_code = getattr(getattr(exc, "resp", None), "status", None)
    reason = getattr(getattr(exc, "resp", None), "reason", None)

    message = None
    details: dict[str, Any] = {}

    content = getattr(exc, "content", None)
    if isinstance(content, (bytes, bytearray)):
        try:
            payload = json.loads(content.decode("utf-8"))
            err = payload.get("error", {})
            message = err.get("message") or None
            errors = err.get("errors") or []
            if errors and isinstance(errors, list) and isinstance(errors[0], dict):
                details["domain"] = errors[0].get("domain")
                details["reason_detail"] = errors[0].get("reason")
                if isinstance(errors[0].get("reason"), str):
                    reason = errors[0]["reason"]
        except (UnicodeDecodeError, ValueError, AttributeError):
            pass

    if not isinstance(status_code, int):
        status_code = 0

    return HttpErrorInfo(
        status_code=status_code,
        reason=reason if isinstance(reason, str) else None,
        message=message,
        details=details or None,
    )

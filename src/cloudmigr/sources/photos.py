"""Google Photos Library source client."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from cloudmigr.errors import ApiError
from cloudmigr.models import Origin, SourceFile, SourcePage
from cloudmigr.transport import HttpTransport

logger = logging.getLogger(__name__)

PHOTOS_API: str = "https://photoslibrary.googleapis.com/v1"
PHOTOS_FOLDER: str = "Google Photos"
DEFAULT_PAGE_SIZE: int = 20

# baseUrl suffixes that request the original bytes instead of a preview.
PHOTO_DOWNLOAD_SUFFIX: str = "=d"
VIDEO_DOWNLOAD_SUFFIX: str = "=dv"


class GooglePhotosSource:
    """
    Google Photos library as a migration source.

    Media items have no folders; everything lands under PHOTOS_FOLDER.
    baseUrl values expire after about an hour, so retries re-fetch the item.
    """

    origin = Origin.GOOGLE_PHOTOS
    supports_delete = False
    folder = PHOTOS_FOLDER

    def __init__(
        self,
        transport: HttpTransport,
        credentials: Any,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._transport = transport
        self._credentials = credentials
        self._page_size = page_size

    async def list_page(self, page_token: Optional[str] = None) -> SourcePage:
        params = {"pageSize": str(self._page_size)}
        if page_token:
            params["pageToken"] = page_token

        data = await self._transport.request_json(
            "GET",
            f"{PHOTOS_API}/mediaItems",
            token=await self._credentials.get_access_token(),
            params=params,
        )
        items = [_media_item_to_source_file(m) for m in data.get("mediaItems", []) or []]
        return SourcePage(items=items, next_page_token=data.get("nextPageToken") or None)

    async def fetch(self, file_id: str) -> SourceFile:
        data = await self._transport.request_json(
            "GET",
            f"{PHOTOS_API}/mediaItems/{file_id}",
            token=await self._credentials.get_access_token(),
        )
        return _media_item_to_source_file(data)

    async def size_hint(self, file: SourceFile) -> Optional[int]:
        return await self._transport.content_length(
            file.content_url,
            token=await self._credentials.get_access_token(),
        )

    async def delete(self, file_id: str) -> None:
        raise ApiError("Google Photos Library API cannot delete media items", details={"file_id": file_id})

    @asynccontextmanager
    async def open_stream(self, file: SourceFile) -> AsyncIterator[AsyncIterator[bytes]]:
        token = await self._credentials.get_access_token()
        async with self._transport.stream(file.content_url, token=token) as body:
            yield body


def _media_item_to_source_file(data: dict[str, Any]) -> SourceFile:
    media_id = data.get("id")
    filename = data.get("filename")
    base_url = data.get("baseUrl")
    if not isinstance(media_id, str) or not isinstance(filename, str) or not isinstance(base_url, str):
        raise ApiError("Malformed media item", details={"payload": data})

    metadata = data.get("mediaMetadata") or {}
    is_photo = "photo" in metadata
    suffix = PHOTO_DOWNLOAD_SUFFIX if is_photo else VIDEO_DOWNLOAD_SUFFIX
    mime_type = data.get("mimeType")

    return SourceFile(
        file_id=media_id,
        name=filename,
        origin=Origin.GOOGLE_PHOTOS,
        content_url=f"{base_url}{suffix}",
        mime_type=mime_type if isinstance(mime_type, str) else None,
    )

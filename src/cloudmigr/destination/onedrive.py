"""Microsoft Graph client for the OneDrive destination."""

from __future__ import annotations

import logging
from typing import Any, Optional

from cloudmigr.errors import ApiError
from cloudmigr.models import UploadedItem
from cloudmigr.transport import HttpResponse, HttpTransport
from cloudmigr.util.paths import join_path, quote_path

logger = logging.getLogger(__name__)

GRAPH_API: str = "https://graph.microsoft.com/v1.0"
DEFAULT_DRIVE_BASE: str = f"{GRAPH_API}/me/drive"


class OneDriveClient:
    """
    Path-addressed access to a OneDrive.

    All paths given to this client are relative to `root_folder`, the folder
    that receives every migrated file.
    """

    def __init__(
        self,
        transport: HttpTransport,
        credentials: Any,
        *,
        root_folder: str,
        drive_base: str = DEFAULT_DRIVE_BASE,
    ) -> None:
        self._transport = transport
        self._credentials = credentials
        self._root_folder = join_path(root_folder)
        self._drive_base = drive_base.rstrip("/")

    @property
    def root_folder(self) -> str:
        return self._root_folder

    def full_path(self, *segments: str) -> str:
        return join_path(self._root_folder, *segments)

    def path_url(self, *segments: str) -> str:
        path = self.full_path(*segments)
        if not path:
            return f"{self._drive_base}/root"
        return f"{self._drive_base}/root:/{quote_path(path)}"

    async def get_item_id(self, parent_path: str) -> str:
        """
        Id of the folder at root_folder/parent_path.

        Raises:
            NotFoundError: the folder does not exist.
        """
        data = await self._get_json(self.path_url(parent_path), params={"$select": "id"})
        item_id = data.get("id")
        if not isinstance(item_id, str):
            raise ApiError("Graph returned an item without id", details={"path": parent_path})
        return item_id

    async def list_child_names(self, item_id: str) -> list[str]:
        names: list[str] = []
        url: Optional[str] = f"{self._drive_base}/items/{item_id}/children"
        params: Optional[dict[str, str]] = {"$select": "name"}

        while url:
            data = await self._get_json(url, params=params)
            for child in data.get("value", []) or []:
                name = child.get("name") if isinstance(child, dict) else None
                if isinstance(name, str):
                    names.append(name)
            url = data.get("@odata.nextLink")
            # nextLink already carries the query string.
            params = None

        return names

    async def upload_small(self, parent_path: str, filename: str, content: bytes) -> UploadedItem:
        url = f"{self.path_url(parent_path, filename)}:/content"
        response = await self._transport.request(
            "PUT",
            url,
            token=await self._credentials.get_access_token(),
            data=content,
            headers={"Content-Type": "application/octet-stream"},
        )
        return item_from_payload(response.payload, filename)

    async def create_upload_session(
        self,
        parent_path: str,
        filename: str,
        *,
        conflict_behavior: str = "replace",
    ) -> str:
        url = f"{self.path_url(parent_path, filename)}:/createUploadSession"
        body = {"item": {"@microsoft.graph.conflictBehavior": conflict_behavior}}
        data = await self._transport.request_json(
            "POST",
            url,
            token=await self._credentials.get_access_token(),
            json_body=body,
        )
        upload_url = data.get("uploadUrl")
        if not isinstance(upload_url, str):
            raise ApiError("Upload session response has no uploadUrl", details={"path": url})
        return upload_url

    async def upload_chunk(self, upload_url: str, chunk: bytes, start: int, total: int) -> HttpResponse:
        """
        PUT one byte range to an upload session.

        The upload URL is pre-authenticated; no Authorization header is sent.
        """
        end = start + len(chunk) - 1
        return await self._transport.request(
            "PUT",
            upload_url,
            data=chunk,
            headers={
                "Content-Length": str(len(chunk)),
                "Content-Range": f"bytes {start}-{end}/{total}",
            },
        )

    async def cancel_upload_session(self, upload_url: str) -> None:
        await self._transport.request("DELETE", upload_url, retry=False)

    async def _get_json(self, url: str, *, params: Optional[dict[str, str]] = None) -> dict[str, Any]:
        return await self._transport.request_json(
            "GET",
            url,
            token=await self._credentials.get_access_token(),
            params=params,
        )


def item_from_payload(payload: Any, fallback_name: str) -> UploadedItem:
    if not isinstance(payload, dict) or not isinstance(payload.get("id"), str):
        raise ApiError("Upload response has no item metadata", details={"name": fallback_name})
    size = payload.get("size")
    web_url = payload.get("webUrl")
    return UploadedItem(
        item_id=payload["id"],
        name=payload.get("name") or fallback_name,
        size=size if isinstance(size, int) else None,
        web_url=web_url if isinstance(web_url, str) else None,
    )


"""Field and query definitions for Google Drive API requests."""

from __future__ import annotations

from cloudmigr.util.mime import GOOGLE_APP_MIME_PREFIX

FILE_FIELDS: str = (
    "id,"
    "name,"
    "mimeType,"
    "parents,"
    "size,"
    "permissions(emailAddress,role)"
)

LIST_FIELDS: str = f"nextPageToken,files({FILE_FIELDS})"

PARENT_FIELDS: str = "name,parents"

OWNER_FIELDS: str = "user(emailAddress)"

TRANSFERABLE_QUERY: str = f"trashed=false and not mimeType contains '{GOOGLE_APP_MIME_PREFIX.rstrip('.')}'"

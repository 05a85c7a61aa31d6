"""Data model for items listed from a source provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Origin(str, Enum):
    """Provider an item came from; values are the ledger's `from` field."""

    GOOGLE_PHOTOS = "GooglePhotos"
    GOOGLE_DRIVE = "GoogleDrive"
    ONEDRIVE = "OneDrive"


@dataclass(slots=True, frozen=True)
class SourceFile:
    """
    Snapshot of one source item as returned by a listing call.

    Notes:
        - parents is ordered; the first entry is the primary parent.
        - owners holds owner e-mail addresses when the provider reports them.
    """

    file_id: str
    name: str
    origin: Origin
    content_url: str

    parents: tuple[str, ...] = ()
    size: Optional[int] = None
    mime_type: Optional[str] = None
    owners: tuple[str, ...] = ()

    @property
    def primary_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None

    def is_owned_by(self, email: Optional[str]) -> bool:
        if not email:
            return False
        return email.lower() in (o.lower() for o in self.owners)


@dataclass(slots=True)
class SourcePage:
    """One page of a source listing. No next_page_token means the last page."""

    items: list[SourceFile] = field(default_factory=list)
    next_page_token: Optional[str] = None

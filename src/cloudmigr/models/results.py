"""Result models for transfers and migration runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

ItemStatus = Literal["uploaded", "skipped", "failed"]
RunStatus = Literal["completed", "stopped"]


@dataclass(slots=True, frozen=True)
class UploadedItem:
    """Destination object returned once an upload completes."""

    item_id: str
    name: str
    size: Optional[int] = None
    web_url: Optional[str] = None


@dataclass(slots=True)
class ItemResult:
    """Result for a single source item."""

    source_file_id: str
    destination_path: str
    status: ItemStatus

    error_type: Optional[str] = None
    error_message: Optional[str] = None
    source_deleted: bool = False


@dataclass(slots=True)
class RunResult:
    """Aggregate result of migrate_drive/migrate_photos/retry_failed."""

    origin: str
    status: RunStatus
    items: list[ItemResult] = field(default_factory=list)
    pages: int = 0

    @property
    def summary(self) -> dict[str, int]:
        summary: dict[str, int] = {"uploaded": 0, "skipped": 0, "failed": 0}
        for item in self.items:
            summary[item.status] = summary.get(item.status, 0) + 1
        return summary

"""Public model exports for cloudmigr."""

from __future__ import annotations

from .results import ItemResult, ItemStatus, RunResult, RunStatus, UploadedItem
from .source_file import Origin, SourceFile, SourcePage
from .transfer_record import RecordStatus, TransferRecord

__all__ = [
    "Origin",
    "SourceFile",
    "SourcePage",
    "RecordStatus",
    "TransferRecord",
    "UploadedItem",
    "ItemStatus",
    "RunStatus",
    "ItemResult",
    "RunResult",
]

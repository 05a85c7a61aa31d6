"""Ledger entry model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional

from .source_file import Origin

RecordStatus = Literal["succeeded", "failed"]


@dataclass(slots=True, frozen=True)
class TransferRecord:
    """
    Outcome of one transfer attempt, keyed by destination_path.

    Records are never mutated; a retry produces a new record.
    """

    destination_path: str
    source_file_id: str
    origin: Origin
    status: RecordStatus
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, destination_path: str, source_file_id: str, origin: Origin) -> TransferRecord:
        return cls(destination_path, source_file_id, origin, "succeeded")

    @classmethod
    def failed(
        cls,
        destination_path: str,
        source_file_id: str,
        origin: Origin,
        error: str,
    ) -> TransferRecord:
        return cls(destination_path, source_file_id, origin, "failed", error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "filepath": self.destination_path,
            "fileId": self.source_file_id,
            "from": self.origin.value,
        }
        if self.status == "failed":
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], status: RecordStatus) -> TransferRecord:
        """Build a record from a ledger JSON object. Raises ValueError."""
        if not isinstance(data, dict):
            raise ValueError("ledger entry must be an object")

        path = data.get("filepath")
        file_id = data.get("fileId")
        if not isinstance(path, str) or not path:
            raise ValueError("ledger entry 'filepath' must be a non-empty string")
        if not isinstance(file_id, str) or not file_id:
            raise ValueError("ledger entry 'fileId' must be a non-empty string")

        origin = Origin(data.get("from"))
        error = data.get("error") if status == "failed" else None
        return cls(
            destination_path=path,
            source_file_id=file_id,
            origin=origin,
            status=status,
            error=str(error) if error is not None else None,
        )

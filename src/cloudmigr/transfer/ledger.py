"""Durable record of which destination paths were migrated (or failed)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from cloudmigr.errors import InvalidArgumentError, InvalidStateError
from cloudmigr.models import RecordStatus, TransferRecord

logger = logging.getLogger(__name__)

SUCCEEDED_FILE: str = "uploaded.json"
FAILED_FILE: str = "unuploaded.json"

PathLike = Union[str, os.PathLike]


class TransferLedger:
    """
    Two JSON-array files keyed by destination path: succeeded and failed.

    Notes:
        - Both files are read fully on load and rewritten whole on flush();
          record_* only touch memory.
        - Set semantics per status: recording a path twice is a no-op.
        - The sets stay disjoint: a success evicts the path from "failed", and a
          failure for an already succeeded path is ignored.
        - One writer per process. Concurrent tasks hand their records to the
          single owner, which calls flush() once per batch.
    """

    def __init__(
        self,
        succeeded_path: PathLike,
        failed_path: PathLike,
        *,
        succeeded: Optional[dict[str, TransferRecord]] = None,
        failed: Optional[dict[str, TransferRecord]] = None,
    ) -> None:
        self._succeeded_path = Path(succeeded_path)
        self._failed_path = Path(failed_path)
        self._succeeded: dict[str, TransferRecord] = dict(succeeded or {})
        self._failed: dict[str, TransferRecord] = dict(failed or {})
        self._dirty: set[RecordStatus] = set()

    @classmethod
    def load(cls, directory: PathLike) -> TransferLedger:
        """
        Load both files from `directory`. Missing files start empty.

        Raises:
            InvalidStateError: a file exists but is not a valid ledger.
        """
        base = Path(directory)
        succeeded_path = base / SUCCEEDED_FILE
        failed_path = base / FAILED_FILE
        ledger = cls(
            succeeded_path,
            failed_path,
            succeeded=_read_records(succeeded_path, "succeeded"),
            failed=_read_records(failed_path, "failed"),
        )
        logger.info(
            f"Ledger loaded from {base}: {len(ledger._succeeded)} succeeded, "
            f"{len(ledger._failed)} failed"
        )
        return ledger

    # ----------------------------
    # Queries
    # ----------------------------
    def is_already_uploaded(self, path: str) -> bool:
        return path in self._succeeded

    def is_failed(self, path: str) -> bool:
        return path in self._failed

    def succeeded(self) -> list[TransferRecord]:
        return list(self._succeeded.values())

    def failed(self) -> list[TransferRecord]:
        return list(self._failed.values())

    @property
    def dirty(self) -> bool:
        return bool(self._dirty)

    # ----------------------------
    # Mutations
    # ----------------------------
    def record_success(self, record: TransferRecord) -> bool:
        """Return True if the path was newly added."""
        _require_status(record, "succeeded")
        path = record.destination_path
        if path in self._succeeded:
            return False

        self._succeeded[path] = record
        self._dirty.add("succeeded")
        self.discard_failure(path)
        return True

    def record_failure(self, record: TransferRecord) -> bool:
        """Return True if the path was newly added."""
        _require_status(record, "failed")
        path = record.destination_path
        if path in self._succeeded or path in self._failed:
            return False

        self._failed[path] = record
        self._dirty.add("failed")
        return True

    def discard_failure(self, path: str) -> bool:
        if self._failed.pop(path, None) is None:
            return False
        self._dirty.add("failed")
        return True

    def flush(self) -> None:
        """Atomically rewrite every file whose set changed since the last flush."""
        if "succeeded" in self._dirty:
            _write_records(self._succeeded_path, self._succeeded.values())
        if "failed" in self._dirty:
            _write_records(self._failed_path, self._failed.values())
        self._dirty.clear()


def _require_status(record: TransferRecord, status: RecordStatus) -> None:
    if record.status != status:
        raise InvalidArgumentError(
            f"Expected a {status} record",
            details={"path": record.destination_path, "status": record.status},
        )


def _read_records(path: Path, status: RecordStatus) -> dict[str, TransferRecord]:
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as exc:
        raise InvalidStateError(
            "Failed to read ledger file",
            details={"path": str(path)},
            cause=exc,
        ) from exc

    if not isinstance(payload, list):
        raise InvalidStateError("Ledger file must hold a JSON array", details={"path": str(path)})

    records: dict[str, TransferRecord] = {}
    for index, entry in enumerate(payload):
        try:
            record = TransferRecord.from_dict(entry, status)
        except ValueError as exc:
            raise InvalidStateError(
                "Malformed ledger entry",
                details={"path": str(path), "index": index},
                cause=exc,
            ) from exc
        records.setdefault(record.destination_path, record)
    return records


def _write_records(path: Path, records) -> None:
    payload = [r.to_dict() for r in records]
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise InvalidStateError(
            "Failed to write ledger file",
            details={"path": str(path)},
            cause=exc,
        ) from exc

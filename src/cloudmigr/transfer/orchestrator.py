"""TransferOrchestrator: enumerate, dedup, stream, upload, record."""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from enum import Enum
from typing import Any, Mapping, Optional

from cloudmigr.errors import AuthError, InvalidStateError
from cloudmigr.models import ItemResult, Origin, RunResult, SourceFile, TransferRecord
from cloudmigr.sources import SourceEnumerator
from cloudmigr.util.paths import join_path, split_path

logger = logging.getLogger(__name__)

_MB = 1024 * 1024

# Ledger keys for items whose folder could not be resolved. join_path never
# yields a leading slash, so these cannot collide with a real destination path.
UNRESOLVED_PREFIX = "/unresolved"


class RunPhase(str, Enum):
    IDLE = "idle"
    ENUMERATING = "enumerating"
    CHECKING = "checking"
    SKIPPING = "skipping"
    UPLOADING = "uploading"
    RECORDING = "recording"
    DONE = "done"


class TransferOrchestrator:
    """
    Drive one migration run from a source into the destination.

    Policy:
        - Per-item failures are recorded to the failed ledger; the run goes on.
        - Raise for fatal errors: EnumerationError and AuthError. The ledger is
          flushed before the error escapes.
        - request_stop() stops fetching new pages; the current page finishes.
    """

    def __init__(
        self,
        *,
        uploader: Any,
        existence: Any,
        ledger: Any,
        delete_after_transfer: bool = False,
    ) -> None:
        self._uploader = uploader
        self._existence = existence
        self._ledger = ledger
        self._delete_after_transfer = delete_after_transfer
        self._stop_requested = False
        self.phase = RunPhase.IDLE

    def request_stop(self) -> None:
        if not self._stop_requested:
            logger.info("Stop requested; finishing the current page")
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    # ----------------------------
    # Runs
    # ----------------------------
    async def migrate_drive(
        self,
        source: Any,
        resolver: Any,
        *,
        owner_email: Optional[str] = None,
    ) -> RunResult:
        """Sequential run: items are handled strictly in listing order."""
        result = RunResult(origin=source.origin.value, status="completed")
        enumerator = SourceEnumerator(source.list_page, name="Google Drive")

        try:
            self.phase = RunPhase.ENUMERATING
            async with aclosing(enumerator.pages()) as pages:
                async for page in pages:
                    result.pages += 1
                    for file in page.items:
                        item, record = await self._transfer_drive_item(source, resolver, file, owner_email)
                        result.items.append(item)
                        self._record(record)

                    self._flush()
                    if self._stop_requested and page.next_page_token:
                        result.status = "stopped"
                        break
                    self.phase = RunPhase.ENUMERATING
        finally:
            self._finish()

        _log_summary(result)
        return result

    async def migrate_photos(
        self,
        source: Any,
        *,
        concurrency: Optional[int] = None,
    ) -> RunResult:
        """
        Fan each page out as concurrent tasks.

        Tasks only return records; they are applied and flushed once the whole
        page has settled.
        """
        result = RunResult(origin=source.origin.value, status="completed")
        enumerator = SourceEnumerator(source.list_page, name="Google Photos")

        try:
            self.phase = RunPhase.ENUMERATING
            async with aclosing(enumerator.pages()) as pages:
                async for page in pages:
                    result.pages += 1
                    await self._transfer_photos_page(source, page.items, result, concurrency)

                    if self._stop_requested and page.next_page_token:
                        result.status = "stopped"
                        break
                    self.phase = RunPhase.ENUMERATING
        finally:
            self._finish()

        _log_summary(result)
        return result

    async def retry_failed(
        self,
        sources: Mapping[Origin, Any],
        *,
        resolver: Any = None,
        owner_email: Optional[str] = None,
    ) -> RunResult:
        """
        Re-attempt every entry of the failed ledger.

        Items are re-fetched by id (Photos base URLs expire). A success moves the
        entry to the succeeded set; another failure leaves it where it is.
        """
        result = RunResult(origin="retry", status="completed")
        pending = self._ledger.failed()
        logger.info(f"Retrying {len(pending)} failed transfer(s)")

        try:
            for record in pending:
                if self._stop_requested:
                    result.status = "stopped"
                    break

                source = sources.get(record.origin)
                if source is None:
                    logger.warning(f"No source configured for {record.origin.value}; keeping {record.destination_path}")
                    continue

                try:
                    file = await source.fetch(record.source_file_id)
                    parent_path = await self._retry_parent_path(record, file, resolver)
                except AuthError:
                    raise
                except Exception as exc:
                    logger.error(
                        f"Cannot re-fetch {record.origin.value} item {record.source_file_id} "
                        f"for {record.destination_path}: {exc}"
                    )
                    result.items.append(_failed_item(record.source_file_id, record.destination_path, exc))
                    continue

                item, new_record = await self._transfer(source, file, parent_path, owner_email)
                result.items.append(item)
                if new_record.status == "succeeded":
                    self._ledger.discard_failure(record.destination_path)
                self._record(new_record)
        finally:
            self._finish()

        _log_summary(result)
        return result

    # ----------------------------
    # Internals
    # ----------------------------
    async def _transfer_drive_item(
        self,
        source: Any,
        resolver: Any,
        file: SourceFile,
        owner_email: Optional[str],
    ) -> tuple[ItemResult, TransferRecord]:
        try:
            parent_path = await resolver.resolve_from_parent(file.primary_parent)
        except AuthError:
            raise
        except Exception as exc:
            logger.error(f"Cannot resolve the folder of {file.file_id} ({file.name}): {exc}")
            return _failed(file, unresolved_path(file), exc)

        return await self._transfer(source, file, parent_path, owner_email)

    async def _transfer_photos_page(
        self,
        source: Any,
        files: list[SourceFile],
        result: RunResult,
        concurrency: Optional[int],
    ) -> None:
        limit = asyncio.Semaphore(concurrency or max(len(files), 1))

        async def _one(file: SourceFile) -> tuple[ItemResult, TransferRecord]:
            async with limit:
                return await self._transfer(source, file, source.folder, None)

        settled = await asyncio.gather(*(_one(f) for f in files), return_exceptions=True)

        self.phase = RunPhase.RECORDING
        fatal: Optional[BaseException] = None
        for file, outcome in zip(files, settled):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, AuthError) or not isinstance(outcome, Exception):
                    fatal = fatal or outcome
                    continue
                path = join_path(source.folder, file.name)
                logger.error(f"Failed to transfer {file.file_id} to {path}: {outcome}")
                item, record = _failed(file, path, outcome)
            else:
                item, record = outcome
            result.items.append(item)
            self._record(record)

        self._flush()
        if fatal is not None:
            raise fatal

    async def _transfer(
        self,
        source: Any,
        file: SourceFile,
        parent_path: str,
        owner_email: Optional[str],
    ) -> tuple[ItemResult, TransferRecord]:
        path = join_path(parent_path, file.name)
        try:
            self.phase = RunPhase.CHECKING
            if await self._existence.exists(file.name, parent_path):
                self.phase = RunPhase.SKIPPING
                logger.info(f"{path} already exists; skipping")
                deleted = await self._delete_source(source, file, owner_email)
                return (
                    ItemResult(file.file_id, path, "skipped", source_deleted=deleted),
                    TransferRecord.succeeded(path, file.file_id, file.origin),
                )

            self.phase = RunPhase.UPLOADING
            logger.info(f"Uploading {path}")
            size_hint = await source.size_hint(file)
            async with source.open_stream(file) as stream:
                uploaded = await self._uploader.upload(
                    stream,
                    file.name,
                    parent_path,
                    size_hint,
                    progress=_progress_logger(path),
                )
            logger.info(f"Uploaded {path} (item {uploaded.item_id})")
        except AuthError:
            raise
        except Exception as exc:
            logger.error(f"Failed to transfer {file.file_id} to {path}: {exc}")
            return _failed(file, path, exc)

        deleted = await self._delete_source(source, file, owner_email)
        return (
            ItemResult(file.file_id, path, "uploaded", source_deleted=deleted),
            TransferRecord.succeeded(path, file.file_id, file.origin),
        )

    async def _delete_source(self, source: Any, file: SourceFile, owner_email: Optional[str]) -> bool:
        """Delete the source copy only when enabled and we own it. Never fails the item."""
        if not self._delete_after_transfer or not getattr(source, "supports_delete", False):
            return False
        if not file.is_owned_by(owner_email):
            logger.info(f"Keeping source {file.name}: not owned by {owner_email}")
            return False

        try:
            await source.delete(file.file_id)
        except AuthError:
            raise
        except Exception as exc:
            logger.warning(f"Could not delete source {file.file_id} ({file.name}): {exc}")
            return False

        logger.info(f"Deleted source {file.name}")
        return True

    async def _retry_parent_path(self, record: TransferRecord, file: SourceFile, resolver: Any) -> str:
        if record.origin is Origin.GOOGLE_DRIVE and resolver is not None:
            return await resolver.resolve_from_parent(file.primary_parent)
        if record.destination_path.startswith(UNRESOLVED_PREFIX + "/"):
            raise InvalidStateError(
                "Destination folder was never resolved", details={"path": record.destination_path}
            )
        parent_path, _ = split_path(record.destination_path)
        return parent_path

    def _record(self, record: TransferRecord) -> None:
        self.phase = RunPhase.RECORDING
        if record.status == "succeeded":
            self._ledger.record_success(record)
        else:
            self._ledger.record_failure(record)

    def _flush(self) -> None:
        self._ledger.flush()

    def _finish(self) -> None:
        self._flush()
        self.phase = RunPhase.DONE


def unresolved_path(file: SourceFile) -> str:
    return f"{UNRESOLVED_PREFIX}/{file.file_id}/{file.name}"


def _failed(file: SourceFile, path: str, exc: BaseException) -> tuple[ItemResult, TransferRecord]:
    return (
        _failed_item(file.file_id, path, exc),
        TransferRecord.failed(path, file.file_id, file.origin, str(exc) or exc.__class__.__name__),
    )


def _failed_item(file_id: str, path: str, exc: BaseException) -> ItemResult:
    return ItemResult(
        source_file_id=file_id,
        destination_path=path,
        status="failed",
        error_type=exc.__class__.__name__,
        error_message=str(exc),
    )


def _progress_logger(path: str):
    def _report(sent: int) -> None:
        logger.info(f"{path}: uploaded {sent / _MB:.1f} MB")

    return _report


def _log_summary(result: RunResult) -> None:
    summary = result.summary
    logger.info(
        f"{result.origin} run {result.status}: {summary['uploaded']} uploaded, "
        f"{summary['skipped']} skipped, {summary['failed']} failed over {result.pages} page(s)"
    )

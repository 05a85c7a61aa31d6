"""Upload a byte stream to the destination, simple or chunked by size."""

from __future__ import annotations

import logging
import tempfile
from enum import Enum
from typing import IO, Any, AsyncIterator, Callable, Optional

from cloudmigr.errors import AuthError, CloudMigrError, TransferError
from cloudmigr.models import UploadedItem
from cloudmigr.util.paths import join_path

from .onedrive import item_from_payload

logger = logging.getLogger(__name__)

SIMPLE_UPLOAD_LIMIT: int = 4 * 1024 * 1024

# Graph requires session chunks to be multiples of 320 KiB.
CHUNK_UNIT: int = 320 * 1024
DEFAULT_CHUNK_UNITS: int = 50

ProgressCallback = Callable[[int], None]


class UploadStrategy(str, Enum):
    SIMPLE = "simple"
    SESSION = "session"


def choose_strategy(size_hint: Optional[int], threshold: int = SIMPLE_UPLOAD_LIMIT) -> UploadStrategy:
    """
    Single request below the threshold, upload session at or above it.

    An unknown size always goes through a session.
    """
    if size_hint is not None and size_hint < threshold:
        return UploadStrategy.SIMPLE
    return UploadStrategy.SESSION


class UploadEngine:
    """
    Send a source stream to OneDrive.

    A failed chunk aborts the whole upload; sessions are not resumed across
    process restarts.
    """

    def __init__(
        self,
        destination: Any,
        *,
        chunk_units: int = DEFAULT_CHUNK_UNITS,
        threshold: int = SIMPLE_UPLOAD_LIMIT,
        conflict_behavior: str = "replace",
    ) -> None:
        if chunk_units < 1:
            raise ValueError("chunk_units must be >= 1")
        self._destination = destination
        self._chunk_size = chunk_units * CHUNK_UNIT
        self._threshold = threshold
        self._conflict_behavior = conflict_behavior

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def strategy_for(self, size_hint: Optional[int]) -> UploadStrategy:
        return choose_strategy(size_hint, self._threshold)

    async def upload(
        self,
        stream: AsyncIterator[bytes],
        filename: str,
        parent_path: str,
        size_hint: Optional[int],
        progress: Optional[ProgressCallback] = None,
    ) -> UploadedItem:
        """
        Upload `stream` as parent_path/filename.

        Raises:
            AuthError: destination credentials are unusable.
            TransferError: anything else went wrong for this file.
        """
        strategy = self.strategy_for(size_hint)
        path = join_path(parent_path, filename)
        try:
            if strategy is UploadStrategy.SIMPLE:
                return await self._upload_simple(stream, filename, parent_path, progress)
            return await self._upload_session(stream, filename, parent_path, size_hint, progress)
        except (AuthError, TransferError):
            raise
        except CloudMigrError as exc:
            raise TransferError(
                f"Upload of {path} failed: {exc}",
                details={"path": path, "strategy": strategy.value, **exc.details},
                cause=exc,
            ) from exc

    async def _upload_simple(
        self,
        stream: AsyncIterator[bytes],
        filename: str,
        parent_path: str,
        progress: Optional[ProgressCallback],
    ) -> UploadedItem:
        content = b"".join([chunk async for chunk in stream])
        item = await self._destination.upload_small(parent_path, filename, content)
        if progress:
            progress(len(content))
        return item

    async def _upload_session(
        self,
        stream: AsyncIterator[bytes],
        filename: str,
        parent_path: str,
        size_hint: Optional[int],
        progress: Optional[ProgressCallback],
    ) -> UploadedItem:
        spool: Optional[IO[bytes]] = None
        try:
            if size_hint is None:
                spool = tempfile.TemporaryFile()
                total = await _spool(stream, spool)
                if total == 0:
                    return await self._destination.upload_small(parent_path, filename, b"")
                chunks = _iter_spool(spool, self._chunk_size)
            else:
                total = size_hint
                chunks = _rechunk(stream, self._chunk_size)

            upload_url = await self._destination.create_upload_session(
                parent_path,
                filename,
                conflict_behavior=self._conflict_behavior,
            )
            try:
                return await self._send_chunks(upload_url, chunks, filename, total, progress)
            except Exception:
                await self._cancel(upload_url)
                raise
        finally:
            if spool is not None:
                spool.close()

    async def _send_chunks(
        self,
        upload_url: str,
        chunks: AsyncIterator[bytes],
        filename: str,
        total: int,
        progress: Optional[ProgressCallback],
    ) -> UploadedItem:
        sent = 0
        item: Optional[UploadedItem] = None

        async for chunk in chunks:
            if sent + len(chunk) > total:
                raise TransferError(
                    "Stream is longer than its declared size",
                    details={"name": filename, "declared": total},
                )
            response = await self._destination.upload_chunk(upload_url, chunk, sent, total)
            sent += len(chunk)
            if progress:
                progress(sent)
            if response.status in (200, 201):
                item = item_from_payload(response.payload, filename)

        if sent != total:
            raise TransferError(
                "Stream ended before its declared size",
                details={"name": filename, "declared": total, "sent": sent},
            )
        if item is None:
            raise TransferError(
                "Upload session completed without item metadata",
                details={"name": filename},
            )
        return item

    async def _cancel(self, upload_url: str) -> None:
        try:
            await self._destination.cancel_upload_session(upload_url)
        except CloudMigrError as exc:
            logger.warning(f"Could not cancel upload session: {exc}")


async def _rechunk(stream: AsyncIterator[bytes], size: int) -> AsyncIterator[bytes]:
    buffer = bytearray()
    async for piece in stream:
        buffer.extend(piece)
        while len(buffer) >= size:
            yield bytes(buffer[:size])
            del buffer[:size]
    if buffer:
        yield bytes(buffer)


async def _spool(stream: AsyncIterator[bytes], spool: IO[bytes]) -> int:
    total = 0
    async for piece in stream:
        spool.write(piece)
        total += len(piece)
    spool.seek(0)
    return total


async def _iter_spool(spool: IO[bytes], size: int) -> AsyncIterator[bytes]:
    while True:
        chunk = spool.read(size)
        if not chunk:
            return
        yield chunk


"""Transfer pipeline exports for cloudmigr."""

from __future__ import annotations

from .ledger import FAILED_FILE, SUCCEEDED_FILE, TransferLedger
from .orchestrator import RunPhase, TransferOrchestrator
from .path_resolver import DEFAULT_ROOT_MARKER, DestinationPathResolver

__all__ = [
    "TransferLedger",
    "SUCCEEDED_FILE",
    "FAILED_FILE",
    "DestinationPathResolver",
    "DEFAULT_ROOT_MARKER",
    "TransferOrchestrator",
    "RunPhase",
]

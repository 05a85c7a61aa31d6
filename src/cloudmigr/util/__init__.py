from .mime import GOOGLE_APP_MIME_PREFIX, is_google_app, is_transferable
from .paths import join_path, quote_path, split_path
from .time import (
    assume_utc,
    expiry_from_now,
    from_epoch_ms,
    normalize_dt,
    now_utc,
    to_epoch_ms,
)

__all__ = [
    "GOOGLE_APP_MIME_PREFIX",
    "is_google_app",
    "is_transferable",
    "join_path",
    "split_path",
    "quote_path",
    "now_utc",
    "normalize_dt",
    "assume_utc",
    "to_epoch_ms",
    "from_epoch_ms",
    "expiry_from_now",
]

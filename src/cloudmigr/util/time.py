from __future__ import annotations

from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    """Return current time as tz-aware UTC datetime."""
    return datetime.now(timezone.utc)


def normalize_dt(dt: datetime) -> datetime:
    """Ensure datetime is tz-aware. Raises if naive."""
    if not isinstance(dt, datetime):
        raise TypeError("dt must be a datetime")
    if dt.tzinfo is None:
        raise ValueError("naive datetime is not allowed; timezone-aware required")
    return dt


def assume_utc(dt: datetime) -> datetime:
    """
    Attach UTC to a naive datetime; convert an aware one to UTC.

    google-auth reports `Credentials.expiry` as a naive UTC datetime.
    """
    if not isinstance(dt, datetime):
        raise TypeError("dt must be a datetime")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_ms(dt: datetime) -> int:
    """Convert tz-aware datetime to integer milliseconds since the epoch."""
    return int(normalize_dt(dt).timestamp() * 1000)


def from_epoch_ms(value: int | float) -> datetime:
    """Convert milliseconds since the epoch to tz-aware UTC datetime."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError("epoch milliseconds must be a number")
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def expiry_from_now(expires_in: int | float, *, now: datetime | None = None) -> datetime:
    """Absolute expiry for a token endpoint's relative `expires_in` (seconds)."""
    base = normalize_dt(now) if now is not None else now_utc()
    return base + timedelta(seconds=float(expires_in))

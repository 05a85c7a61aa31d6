"""Immutable OAuth credential value."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from cloudmigr.util.time import from_epoch_ms, normalize_dt, now_utc, to_epoch_ms


class Provider(str, Enum):
    """OAuth providers we hold credentials for."""

    GOOGLE = "google"
    MICROSOFT = "microsoft"


@dataclass(slots=True, frozen=True)
class Credential:
    """
    Access token plus the instant it stops being valid.

    A refresh never mutates a Credential; it produces a new one via refreshed().
    """

    access_token: str
    expiry: datetime
    refresh_token: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.access_token, str) or not self.access_token:
            raise ValueError("Credential.access_token must be a non-empty string")
        normalize_dt(self.expiry)

    def is_expired(
        self,
        now: Optional[datetime] = None,
        *,
        skew: timedelta = timedelta(0),
    ) -> bool:
        current = now if now is not None else now_utc()
        return current >= self.expiry - skew

    def refreshed(
        self,
        access_token: str,
        expiry: datetime,
        refresh_token: Optional[str] = None,
    ) -> Credential:
        """New credential; the old refresh token is kept unless a new one is issued."""
        return dataclasses.replace(
            self,
            access_token=access_token,
            expiry=expiry,
            refresh_token=refresh_token or self.refresh_token,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "accessToken": self.access_token,
            "expiryDate": to_epoch_ms(self.expiry),
        }
        if self.refresh_token:
            data["refreshToken"] = self.refresh_token
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Credential:
        """Parse the persisted JSON shape. Raises ValueError/TypeError."""
        if not isinstance(data, dict):
            raise TypeError("credential payload must be an object")

        refresh_token = data.get("refreshToken")
        if refresh_token is not None and not isinstance(refresh_token, str):
            raise ValueError("refreshToken must be a string")

        return cls(
            access_token=data.get("accessToken"),  # type: ignore[arg-type]
            expiry=from_epoch_ms(data.get("expiryDate")),  # type: ignore[arg-type]
            refresh_token=refresh_token or None,
        )

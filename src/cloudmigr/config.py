"""Typed settings for a migration process, loaded from environment variables."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

from pydantic import Field, PrivateAttr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cloudmigr.auth import OAuthClientConfig
from cloudmigr.errors import InvalidArgumentError

DEFAULT_BASE_URL: str = "http://localhost:4000"
DEFAULT_ROOT_FOLDER: str = "cloudmigr"
DEFAULT_LEDGER_DIR: str = "."


class MigrationSettings(BaseSettings):
    """
    Everything a run needs that is not a credential.

    Field names match the environment variable names case-insensitively;
    the cloudmigr-specific knobs carry a CLOUDMIGR_ prefix. root_folder is
    the OneDrive folder that receives all migrated files.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    base_url: str = DEFAULT_BASE_URL

    # Google
    google_client_id: str
    google_client_secret: str
    google_redirect_url: Optional[str] = None

    # Microsoft
    microsoft_client_id: str
    microsoft_client_secret: str
    microsoft_tenant_id: str
    microsoft_redirect_url: Optional[str] = None

    # Redis; REDIS_URL wins over the individual parts
    redis_url: Optional[str] = None
    redis_hostname: Optional[str] = None
    redis_port: int = Field(default=6379, ge=1, le=65535)
    redis_username: Optional[str] = None
    redis_password: Optional[str] = None

    # Migration
    delete_after_transfer: bool = False
    ledger_dir: str = Field(default=DEFAULT_LEDGER_DIR, validation_alias="CLOUDMIGR_LEDGER_DIR")
    root_folder: str = Field(default=DEFAULT_ROOT_FOLDER, validation_alias="CLOUDMIGR_ROOT_FOLDER")
    drive_page_size: int = Field(default=50, ge=1, validation_alias="CLOUDMIGR_DRIVE_PAGE_SIZE")
    photos_page_size: int = Field(default=20, ge=1, validation_alias="CLOUDMIGR_PHOTOS_PAGE_SIZE")
    photos_concurrency: Optional[int] = Field(
        default=None, ge=1, validation_alias="CLOUDMIGR_PHOTOS_CONCURRENCY"
    )
    chunk_units: int = Field(default=50, ge=1, validation_alias="CLOUDMIGR_CHUNK_UNITS")

    _google: OAuthClientConfig = PrivateAttr()
    _microsoft: OAuthClientConfig = PrivateAttr()

    @field_validator("root_folder")
    @classmethod
    def _check_root_folder(cls, value: str) -> str:
        if not value.strip("/ "):
            raise ValueError("root_folder must be a non-empty folder name")
        return value

    @model_validator(mode="after")
    def _compose_redis_url(self) -> MigrationSettings:
        if self.redis_url:
            return self
        if not self.redis_hostname:
            raise ValueError("REDIS_URL or REDIS_HOSTNAME must be set")

        host = f"{self.redis_hostname}:{self.redis_port}"
        if self.redis_username or self.redis_password:
            username = quote(self.redis_username or "", safe="")
            password = quote(self.redis_password or "", safe="")
            self.redis_url = f"rediss://{username}:{password}@{host}"
        else:
            self.redis_url = f"redis://{host}"
        return self

    def model_post_init(self, __context: Any) -> None:
        base_url = self.base_url.rstrip("/")
        self._google = OAuthClientConfig.google(
            client_id=self.google_client_id,
            client_secret=self.google_client_secret,
            redirect_uri=self.google_redirect_url or f"{base_url}/auth/google/callback",
        )
        self._microsoft = OAuthClientConfig.microsoft(
            client_id=self.microsoft_client_id,
            client_secret=self.microsoft_client_secret,
            redirect_uri=self.microsoft_redirect_url or f"{base_url}/auth/microsoft/callback",
            tenant_id=self.microsoft_tenant_id,
        )

    @property
    def google(self) -> OAuthClientConfig:
        return self._google

    @property
    def microsoft(self) -> OAuthClientConfig:
        return self._microsoft

    @classmethod
    def from_env(cls, env_file: Optional[str] = ".env") -> MigrationSettings:
        """
        Build settings from the process environment and an optional dotenv file.

        Raises:
            InvalidArgumentError: a required variable is missing or malformed.
        """
        try:
            return cls(_env_file=env_file)
        except ValidationError as exc:
            first = exc.errors()[0]
            loc = first.get("loc") or ()
            name = str(loc[0]).upper() if loc else None
            raise InvalidArgumentError(
                f"Invalid configuration: {first.get('msg')}",
                details={"name": name, "error_count": exc.error_count()},
                cause=exc,
            ) from exc
        except ValueError as exc:
            raise InvalidArgumentError(str(exc), cause=exc) from exc

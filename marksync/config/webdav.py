from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "/bookmarks"
MIN_INTERVAL_MINUTES = 5
MAX_INTERVAL_MINUTES = 1440
VALID_MECHANISMS = ("local-first", "remote-first", "merge")


def _parse_bool(value: Any, default: bool) -> bool:
    if value in (None, ""):
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class WebDAVConfig(BaseModel):
    """WebDAV server connection settings."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(default="", validation_alias="WEBDAV_URL")
    username: str = Field(default="", validation_alias="WEBDAV_USERNAME")
    password: str = Field(default="", validation_alias="WEBDAV_PASSWORD", repr=False)
    folder: str = Field(default=DEFAULT_FOLDER, validation_alias="WEBDAV_FOLDER")
    timeout_sec: float = Field(default=30.0, validation_alias="WEBDAV_TIMEOUT_SEC")
    max_retries: int = Field(default=3, validation_alias="WEBDAV_MAX_RETRIES")

    @field_validator("url", mode="before")
    @classmethod
    def _validate_url(cls, value: Any) -> str:
        url = str(value or "").strip()
        if url and not url.startswith(("http://", "https://")):
            msg = "WEBDAV_URL must start with http:// or https://"
            raise ValueError(msg)
        return url.rstrip("/")

    @field_validator("folder", mode="before")
    @classmethod
    def _validate_folder(cls, value: Any) -> str:
        folder = str(value or DEFAULT_FOLDER).strip()
        if ".." in folder.split("/"):
            msg = "WEBDAV_FOLDER must not contain '..' segments"
            raise ValueError(msg)
        if not folder.startswith("/"):
            folder = f"/{folder}"
        return folder

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> float:
        try:
            timeout = float(str(value if value not in (None, "") else 30.0))
        except ValueError as exc:
            msg = "WebDAV timeout must be a number"
            raise ValueError(msg) from exc
        if timeout <= 0:
            msg = "WebDAV timeout must be positive"
            raise ValueError(msg)
        return timeout

    @field_validator("max_retries", mode="before")
    @classmethod
    def _validate_retries(cls, value: Any) -> int:
        try:
            retries = int(str(value if value not in (None, "") else 3))
        except ValueError as exc:
            msg = "WebDAV max retries must be a valid integer"
            raise ValueError(msg) from exc
        return max(0, min(retries, 10))


class SyncDataConfig(BaseModel):
    """Which data categories take part in sync."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bookmarks: bool = Field(default=True, validation_alias="SYNC_BOOKMARKS")
    settings: bool = Field(default=True, validation_alias="SYNC_SETTINGS")
    filters: bool = Field(default=True, validation_alias="SYNC_FILTERS")
    services: bool = Field(default=True, validation_alias="SYNC_SERVICES")

    @field_validator("bookmarks", "settings", "filters", "services", mode="before")
    @classmethod
    def _parse_toggle(cls, value: Any, info: ValidationInfo) -> bool:
        return _parse_bool(value, default=True)

    @property
    def config_enabled(self) -> bool:
        return self.settings or self.filters or self.services

    @property
    def any_enabled(self) -> bool:
        return self.bookmarks or self.config_enabled


class SyncStrategyConfig(BaseModel):
    """Conflict mechanism and auto-sync schedule."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mechanism: str = Field(default="merge", validation_alias="SYNC_MECHANISM")
    auto_sync: bool = Field(default=False, validation_alias="SYNC_AUTO")
    interval_minutes: int = Field(default=15, validation_alias="SYNC_INTERVAL_MINUTES")

    @field_validator("mechanism", mode="before")
    @classmethod
    def _validate_mechanism(cls, value: Any) -> str:
        mechanism = str(value or "merge").strip().lower()
        if mechanism not in VALID_MECHANISMS:
            logger.warning(
                "sync_mechanism_unknown_fallback_merge",
                extra={"mechanism": mechanism, "valid": list(VALID_MECHANISMS)},
            )
            return "merge"
        return mechanism

    @field_validator("auto_sync", mode="before")
    @classmethod
    def _parse_auto_sync(cls, value: Any) -> bool:
        return _parse_bool(value, default=False)

    @field_validator("interval_minutes", mode="before")
    @classmethod
    def _parse_interval(cls, value: Any) -> int:
        if value in (None, ""):
            return 15
        try:
            return int(str(value))
        except ValueError as exc:
            msg = "sync interval must be a valid integer"
            raise ValueError(msg) from exc


def validate_webdav_config(
    server: WebDAVConfig, data: SyncDataConfig, strategy: SyncStrategyConfig
) -> list[str]:
    """Return human-readable problems with a WebDAV sync setup (empty when usable)."""
    problems: list[str] = []
    if not server.url or not server.username or not server.password:
        problems.append("WebDAV url, username and password are required")
    if strategy.auto_sync and not (
        MIN_INTERVAL_MINUTES <= strategy.interval_minutes <= MAX_INTERVAL_MINUTES
    ):
        problems.append(
            f"Sync interval must be between {MIN_INTERVAL_MINUTES} and "
            f"{MAX_INTERVAL_MINUTES} minutes"
        )
    if not data.any_enabled:
        problems.append("At least one data category must be selected for sync")
    return problems

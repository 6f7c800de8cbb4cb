"""Pydantic models for the WebDAV sync wire format and sync results.

Wire documents use camelCase keys (``syncAt``, ``contentHash``...); Python code
uses the snake_case attribute names.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from marksync.adapters.webdav.sync.constants import SYNC_RESULT_SUCCESS

logger = logging.getLogger(__name__)

_WIRE = ConfigDict(populate_by_name=True, extra="allow")


def _coerce_timestamp(value: Any) -> int | None:
    """Accept epoch milliseconds as int/float/numeric string or an ISO datetime string."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        msg = "timestamp must not be a boolean"
        raise ValueError(msg)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    text = str(value).strip()
    try:
        return int(float(text))
    except ValueError:
        pass
    try:
        return int(datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError as exc:
        msg = f"unparseable timestamp: {text[:40]!r}"
        raise ValueError(msg) from exc


class SyncMechanism(StrEnum):
    """Conflict-resolution policy applied when both sides changed."""

    LOCAL_FIRST = "local-first"
    REMOTE_FIRST = "remote-first"
    MERGE = "merge"

    @classmethod
    def parse(cls, value: Any) -> SyncMechanism:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            logger.warning("sync_mechanism_unknown_fallback_merge", extra={"mechanism": value})
            return cls.MERGE


class SyncAction(StrEnum):
    NOOP = "noop"
    BOOTSTRAP = "bootstrap"
    PUSH = "push"
    PULL = "pull"
    RESOLVE_LOCAL_FIRST = "resolve_local_first"
    RESOLVE_REMOTE_FIRST = "resolve_remote_first"
    RESOLVE_MERGE = "resolve_merge"


class ConfigSection(StrEnum):
    """Independently hashed sub-documents of the configuration bundle."""

    SETTINGS = "settings"
    FILTERS = "filters"
    SERVICES = "services"


class Bookmark(BaseModel):
    """A saved bookmark. ``url`` is the identity key across devices."""

    model_config = _WIRE

    url: str
    title: str | None = None
    tags: list[str] = Field(default_factory=list)
    excerpt: str | None = None
    saved_at: int | None = Field(default=None, alias="savedAt")
    last_used: int | None = Field(default=None, alias="lastUsed")
    use_count: int = Field(default=0, alias="useCount")
    embedding: list[float] | None = None
    api_service: str | None = Field(default=None, alias="apiService")
    embed_model: str | None = Field(default=None, alias="embedModel")

    @field_validator("saved_at", "last_used", mode="before")
    @classmethod
    def _parse_timestamp(cls, value: Any) -> int | None:
        return _coerce_timestamp(value)

    @field_validator("use_count", mode="before")
    @classmethod
    def _parse_use_count(cls, value: Any) -> int:
        if value in (None, ""):
            return 0
        return int(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _parse_tags(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return [str(tag) for tag in value]

    def meta(self) -> dict[str, Any]:
        """Identity-relevant projection: every field except ``embedding``."""
        return {
            "url": self.url,
            "title": self.title,
            "tags": list(self.tags),
            "excerpt": self.excerpt,
            "savedAt": self.saved_at,
            "lastUsed": self.last_used,
            "useCount": self.use_count,
            "apiService": self.api_service,
            "embedModel": self.embed_model,
        }

    def to_wire(self, *, include_embedding: bool = True) -> dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json")
        if not include_embedding:
            data["embedding"] = None
        return data


class SubDocumentMeta(BaseModel):
    model_config = _WIRE

    content_hash: str = Field(
        alias="contentHash",
        validation_alias=AliasChoices("contentHash", "md5", "content_hash"),
    )


class BookmarksMeta(BaseModel):
    model_config = _WIRE

    content_hash: str = Field(
        alias="contentHash",
        validation_alias=AliasChoices("contentHash", "md5", "content_hash"),
    )
    last_modified: int | None = Field(
        default=None,
        alias="lastModified",
        validation_alias=AliasChoices("lastModified", "last_modified"),
    )
    device: str | None = None


class ConfigMeta(BaseModel):
    model_config = _WIRE

    settings: SubDocumentMeta | None = None
    filters: SubDocumentMeta | None = None
    services: SubDocumentMeta | None = None
    last_modified: int | None = Field(
        default=None,
        alias="lastModified",
        validation_alias=AliasChoices("lastModified", "last_modified"),
    )
    device: str | None = None

    def section(self, section: ConfigSection) -> SubDocumentMeta | None:
        return getattr(self, section.value)


class SyncMetadata(BaseModel):
    """The small document stored remotely as ``meta.json``.

    Also the shape of the locally persisted Last-Known-Sync Record.
    """

    model_config = _WIRE

    sync_at: int | None = Field(
        default=None, alias="syncAt", validation_alias=AliasChoices("syncAt", "sync_at")
    )
    bookmarks: BookmarksMeta | None = None
    config: ConfigMeta | None = None

    @classmethod
    def empty(cls, now: int) -> SyncMetadata:
        return cls(sync_at=now, bookmarks=None, config=ConfigMeta(last_modified=now))

    @classmethod
    def from_wire(cls, data: Any) -> SyncMetadata:
        return cls.model_validate(data or {})

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class BookmarksData(BaseModel):
    model_config = _WIRE

    bookmarks: list[Bookmark] | None = None


class BookmarksPayload(BaseModel):
    """Document stored compressed as ``data.json.gz``."""

    model_config = _WIRE

    version: str = ""
    create_at: str | None = Field(default=None, alias="createAt")
    data: BookmarksData = Field(default_factory=BookmarksData)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ConfigData(BaseModel):
    model_config = _WIRE

    settings: dict[str, Any] | None = None
    configs: dict[str, Any] | None = None
    filters: dict[str, Any] | None = None
    api_services: dict[str, Any] | None = Field(default=None, alias="apiServices")

    def section(self, section: ConfigSection) -> dict[str, Any] | None:
        if section is ConfigSection.SETTINGS:
            if self.settings is None:
                return None
            return {"settings": self.settings, "configs": self.configs or {}}
        if section is ConfigSection.FILTERS:
            return self.filters
        return self.api_services


class ConfigBundle(BaseModel):
    """Document stored as ``config.json``."""

    model_config = _WIRE

    version: str = ""
    create_at: str | None = Field(default=None, alias="createAt")
    data: ConfigData = Field(default_factory=ConfigData)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class CategorySyncOutcome(BaseModel):
    """Result of syncing one category: the metadata to carry forward."""

    category: str
    action: SyncAction
    metadata: SyncMetadata
    changed: bool = False


class SyncResult(BaseModel):
    """Result of a full sync call, consumed by the status collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    last_sync: int = Field(alias="lastSync")
    last_sync_result: str = Field(default=SYNC_RESULT_SUCCESS, alias="lastSyncResult")
    metadata: SyncMetadata | None = None
    changed: bool = False
    errors: list[str] = Field(default_factory=list)
    bookmarks: CategorySyncOutcome | None = None
    config: CategorySyncOutcome | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.last_sync_result == SYNC_RESULT_SUCCESS and not self.errors


class SyncStatus(BaseModel):
    """What the status store keeps between sync calls."""

    model_config = ConfigDict(populate_by_name=True)

    last_sync: int | None = Field(default=None, alias="lastSync")
    last_sync_result: str | None = Field(default=None, alias="lastSyncResult")
    metadata: SyncMetadata | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class PlannedCategory(BaseModel):
    """What one category would do on the next sync (dry run)."""

    category: str
    action: SyncAction
    local_changed: bool
    remote_changed: bool
    remote_different: bool
    remote_missing: bool


class SyncPlan(BaseModel):
    remote_exists: bool
    mechanism: SyncMechanism
    categories: list[PlannedCategory] = Field(default_factory=list)

"""Builders for Sync Metadata entries.

A category's ``contentHash`` and ``lastModified`` are only ever assigned here,
together, so the two never drift apart.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from marksync.adapters.webdav.models import (
    BookmarksMeta,
    ConfigMeta,
    ConfigSection,
    SubDocumentMeta,
    SyncMetadata,
)
from marksync.adapters.webdav.sync.hashing import hash_bookmarks, hash_settings, hash_sub_document

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from marksync.adapters.webdav.models import Bookmark, ConfigData


def next_timestamp(now: int, previous: int | None) -> int:
    """Return *now*, bumped past *previous* so a new write never reuses a timestamp."""
    if previous is not None and now <= previous:
        return previous + 1
    return now


def bookmarks_entry(bookmarks: Sequence[Bookmark], now: int) -> BookmarksMeta:
    return BookmarksMeta(content_hash=hash_bookmarks(bookmarks), last_modified=now)


def config_entry(data: ConfigData, sections: Iterable[ConfigSection], now: int) -> ConfigMeta:
    entry = ConfigMeta(last_modified=now)
    for section in sections:
        if section is ConfigSection.SETTINGS and data.settings is not None:
            entry.settings = SubDocumentMeta(
                content_hash=hash_settings(data.settings, data.configs)
            )
        elif section is ConfigSection.FILTERS and data.filters is not None:
            entry.filters = SubDocumentMeta(content_hash=hash_sub_document(data.filters))
        elif section is ConfigSection.SERVICES and data.api_services is not None:
            entry.services = SubDocumentMeta(content_hash=hash_sub_document(data.api_services))
    return entry


def local_metadata(
    *, now: int, bookmarks: BookmarksMeta | None = None, config: ConfigMeta | None = None
) -> SyncMetadata:
    metadata = SyncMetadata.empty(now)
    metadata.bookmarks = bookmarks
    if config is not None:
        metadata.config = config
    return metadata


def with_bookmarks(
    remote: SyncMetadata, local: BookmarksMeta, *, now: int, device: str
) -> SyncMetadata:
    """Copy of *remote* whose bookmarks entry is replaced by the local one."""
    previous = remote.bookmarks.last_modified if remote.bookmarks else None
    stamp = next_timestamp(now, previous)
    updated = remote.model_copy(deep=True)
    updated.bookmarks = BookmarksMeta(
        content_hash=local.content_hash, last_modified=stamp, device=device
    )
    updated.sync_at = stamp
    return updated


def with_config(remote: SyncMetadata, local: ConfigMeta, *, now: int, device: str) -> SyncMetadata:
    """Copy of *remote* whose config entry is replaced by the local one."""
    previous = remote.config.last_modified if remote.config else None
    stamp = next_timestamp(now, previous)
    updated = remote.model_copy(deep=True)
    entry = local.model_copy(deep=True)
    entry.last_modified = stamp
    entry.device = device
    updated.config = entry
    updated.sync_at = stamp
    return updated

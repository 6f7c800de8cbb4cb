"""Snapshots of local data in the shape they are uploaded and hashed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from marksync.adapters.webdav.models import (
    BookmarksData,
    BookmarksPayload,
    ConfigBundle,
    ConfigData,
    ConfigSection,
)
from marksync.adapters.webdav.sync.metadata import bookmarks_entry, config_entry
from marksync.core.time_utils import utc_now

if TYPE_CHECKING:
    from marksync.adapters.webdav.models import Bookmark, BookmarksMeta, ConfigMeta
    from marksync.adapters.webdav.sync.protocols import LocalStore
    from marksync.config.webdav import SyncDataConfig


@dataclass
class LocalBookmarks:
    bookmarks: list[Bookmark]
    payload: BookmarksPayload
    entry: BookmarksMeta


@dataclass
class LocalConfig:
    bundle: ConfigBundle
    entry: ConfigMeta


def enabled_sections(sync_data: SyncDataConfig) -> tuple[ConfigSection, ...]:
    toggles = {
        ConfigSection.SETTINGS: sync_data.settings,
        ConfigSection.FILTERS: sync_data.filters,
        ConfigSection.SERVICES: sync_data.services,
    }
    return tuple(section for section, enabled in toggles.items() if enabled)


class LocalStateReader:
    """Reads the local store and derives upload payloads plus their metadata entries."""

    def __init__(self, store: LocalStore, sync_data: SyncDataConfig, *, app_version: str) -> None:
        self._store = store
        self._sync_data = sync_data
        self._app_version = app_version

    @property
    def sections(self) -> tuple[ConfigSection, ...]:
        return enabled_sections(self._sync_data)

    async def read_bookmarks(self, now: int) -> LocalBookmarks:
        bookmarks = await self._store.get_bookmarks_list()
        # Embeddings are large and derivable; they never leave the device.
        stripped = [bookmark.model_copy(update={"embedding": None}) for bookmark in bookmarks]
        payload = BookmarksPayload(
            version=self._app_version,
            create_at=utc_now().isoformat(),
            data=BookmarksData(bookmarks=stripped),
        )
        return LocalBookmarks(
            bookmarks=bookmarks, payload=payload, entry=bookmarks_entry(bookmarks, now)
        )

    async def read_config(self, now: int) -> LocalConfig:
        data = ConfigData()
        for section in self.sections:
            document = await self._store.get_config_section(section)
            if section is ConfigSection.SETTINGS:
                data.settings = dict(document.get("settings") or {})
                data.configs = dict(document.get("configs") or {})
            elif section is ConfigSection.FILTERS:
                data.filters = dict(document)
            else:
                data.api_services = dict(document)

        bundle = ConfigBundle(
            version=self._app_version, create_at=utc_now().isoformat(), data=data
        )
        return LocalConfig(bundle=bundle, entry=config_entry(data, self.sections, now))

"""Pytest configuration and shared fakes.

The in-memory transport and stores below stand in for a WebDAV server and the
SQLite database so sync flows can be exercised end to end without I/O.
"""

from __future__ import annotations

import copy
import json
from typing import Any

import pytest

from marksync.adapters.webdav.client import WebDAVClientError
from marksync.adapters.webdav.models import Bookmark, ConfigSection, SyncMetadata, SyncStatus
from marksync.adapters.webdav.sync.codec import decode_payload
from marksync.adapters.webdav.sync_service import WebDAVSyncService
from marksync.config.webdav import SyncDataConfig

FOLDER = "/bookmarks/"
META_PATH = f"{FOLDER}meta.json"
DATA_PATH = f"{FOLDER}data.json.gz"
CONFIG_PATH = f"{FOLDER}config.json"


class InMemoryTransport:
    """Whole-file remote store; ``fail_paths`` makes operations on a path raise."""

    def __init__(self) -> None:
        self.files: dict[str, bytes | str] = {}
        self.folders: list[str] = []
        self.uploads: list[str] = []
        self.fail_paths: set[str] = set()

    def _check(self, path: str) -> None:
        if path in self.fail_paths:
            raise WebDAVClientError(f"simulated failure for {path}", status_code=500)

    async def exists(self, path: str) -> bool:
        self._check(path)
        return path in self.files

    async def download_file(self, path: str, binary: bool = False) -> bytes | str:
        self._check(path)
        content = self.files[path]
        if binary:
            return content.encode("utf-8") if isinstance(content, str) else content
        return content.decode("utf-8") if isinstance(content, bytes) else content

    async def upload_file(
        self, path: str, content: bytes | str, headers: dict[str, str] | None = None
    ) -> None:
        self._check(path)
        self.files[path] = content
        self.uploads.append(path)

    async def ensure_folder(self, path: str) -> None:
        self.folders.append(path)

    # Inspection helpers

    def meta(self) -> SyncMetadata:
        return SyncMetadata.from_wire(json.loads(self.files[META_PATH]))

    def remote_bookmarks(self) -> list[dict[str, Any]]:
        return decode_payload(self.files[DATA_PATH])["data"]["bookmarks"]

    def remote_urls(self) -> set[str]:
        return {item["url"] for item in self.remote_bookmarks()}

    def remote_config(self) -> dict[str, Any]:
        return json.loads(self.files[CONFIG_PATH])


class InMemoryLocalStore:
    """Local bookmark/config store with simple dict-merge import semantics."""

    def __init__(self, bookmarks: list[Bookmark] | None = None) -> None:
        self.bookmarks: dict[str, Bookmark] = {b.url: b for b in bookmarks or []}
        self.sections: dict[ConfigSection, dict[str, Any]] = {
            ConfigSection.SETTINGS: {"settings": {"theme": "light"}, "configs": {}},
            ConfigSection.FILTERS: {"rules": [], "orderedIds": []},
            ConfigSection.SERVICES: {"activeService": "openai"},
        }
        self.imports: list[tuple[ConfigSection, bool]] = []
        self.set_calls: list[list[str]] = []
        self.remove_calls: list[list[str]] = []

    def urls(self) -> set[str]:
        return set(self.bookmarks)

    async def get_bookmarks_list(self) -> list[Bookmark]:
        return [b.model_copy(deep=True) for b in self.bookmarks.values()]

    async def set_bookmarks(self, bookmarks: list[Bookmark], *, no_sync: bool = True) -> None:
        self.set_calls.append([b.url for b in bookmarks])
        for bookmark in bookmarks:
            self.bookmarks[bookmark.url] = bookmark.model_copy(deep=True)

    async def remove_bookmarks(self, urls: list[str], *, no_sync: bool = True) -> None:
        self.remove_calls.append(list(urls))
        for url in urls:
            self.bookmarks.pop(url, None)

    async def get_config_section(self, section: ConfigSection) -> dict[str, Any]:
        return copy.deepcopy(self.sections[section])

    async def import_config_section(
        self, section: ConfigSection, data: dict[str, Any], *, overwrite: bool
    ) -> None:
        self.imports.append((section, overwrite))
        if overwrite:
            self.sections[section] = copy.deepcopy(data)
            return
        current = self.sections[section]
        if section is ConfigSection.SETTINGS:
            current["settings"] = {**current.get("settings", {}), **data.get("settings", {})}
            current["configs"] = {**current.get("configs", {}), **data.get("configs", {})}
        else:
            current.update(copy.deepcopy(data))


class InMemoryStatusStore:
    def __init__(self) -> None:
        self.status = SyncStatus()
        self.updates: list[SyncStatus] = []

    async def get_status(self) -> SyncStatus:
        return self.status.model_copy(deep=True)

    async def update_status(self, status: SyncStatus) -> None:
        self.status = status.model_copy(deep=True)
        self.updates.append(self.status)


class TickingClock:
    """Strictly increasing epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1_000) -> None:
        self.value = start
        self.step = step

    def __call__(self) -> int:
        self.value += self.step
        return self.value


def make_bookmark(url: str, title: str | None = None, **fields: Any) -> Bookmark:
    data: dict[str, Any] = {"url": url, "title": title or url.rsplit("/", 1)[-1], **fields}
    return Bookmark.model_validate(data)


def make_service(
    transport: InMemoryTransport,
    store: InMemoryLocalStore,
    status_store: InMemoryStatusStore,
    *,
    mechanism: str = "merge",
    device_name: str = "device-a",
    clock: TickingClock | None = None,
    sync_data: SyncDataConfig | None = None,
) -> WebDAVSyncService:
    return WebDAVSyncService(
        transport=transport,
        local_store=store,
        status_store=status_store,
        sync_data=sync_data or SyncDataConfig(),
        folder="/bookmarks",
        mechanism=mechanism,
        device_name=device_name,
        app_version="test",
        clock=clock or TickingClock(),
    )


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def local_store() -> InMemoryLocalStore:
    return InMemoryLocalStore([make_bookmark("https://a.example/one", "One")])

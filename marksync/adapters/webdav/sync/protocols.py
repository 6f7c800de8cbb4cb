"""Protocol definitions (ports) for WebDAV sync.

The orchestration only talks to these; concrete HTTP and SQLite
implementations are injected, and tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from marksync.adapters.webdav.models import Bookmark, ConfigSection, SyncStatus


class RemoteTransport(Protocol):
    async def exists(self, path: str) -> bool: ...

    async def download_file(self, path: str, binary: bool = False) -> bytes | str: ...

    async def upload_file(
        self, path: str, content: bytes | str, headers: Mapping[str, str] | None = None
    ) -> None: ...

    async def ensure_folder(self, path: str) -> None: ...


class LocalStore(Protocol):
    async def get_bookmarks_list(self) -> list[Bookmark]: ...

    async def set_bookmarks(self, bookmarks: Sequence[Bookmark], *, no_sync: bool = True) -> None: ...

    async def remove_bookmarks(self, urls: Sequence[str], *, no_sync: bool = True) -> None: ...

    async def get_config_section(self, section: ConfigSection) -> dict[str, Any]: ...

    async def import_config_section(
        self, section: ConfigSection, data: dict[str, Any], *, overwrite: bool
    ) -> None: ...


class SyncStatusStore(Protocol):
    async def get_status(self) -> SyncStatus: ...

    async def update_status(self, status: SyncStatus) -> None: ...

"""Url-keyed diff between a local and a remote bookmark collection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from marksync.core.text_utils import embedding_text_for

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marksync.adapters.webdav.models import Bookmark
    from marksync.adapters.webdav.sync.protocols import LocalStore

logger = logging.getLogger(__name__)


@dataclass
class BookmarkDiff:
    """Classification of remote records relative to the local collection.

    ``removed`` holds urls; the other lists hold records.
    """

    added: list[Bookmark] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    updated: list[Bookmark] = field(default_factory=list)
    same: list[Bookmark] = field(default_factory=list)

    @property
    def upserts(self) -> list[Bookmark]:
        return [*self.added, *self.updated]

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "removed": len(self.removed),
            "updated": len(self.updated),
            "same": len(self.same),
        }


def is_bookmark_changed(local: Bookmark, remote: Bookmark) -> bool:
    return local.meta() != remote.meta()


def diff_bookmarks(local: Sequence[Bookmark], remote: Sequence[Bookmark]) -> BookmarkDiff:
    """Diff *local* against *remote*, keyed by url.

    Shared records whose meta projection differs are reported as ``updated``
    with the remote values. When both sides derive the same embedding text the
    local embedding is carried onto the updated record so it need not be
    recomputed. A shared record that is otherwise equal is still ``updated``
    when only the remote side has an embedding.
    """
    remote_by_url = {bookmark.url: bookmark for bookmark in remote}
    local_urls = {bookmark.url for bookmark in local}
    result = BookmarkDiff()

    for local_bookmark in local:
        remote_bookmark = remote_by_url.get(local_bookmark.url)
        if remote_bookmark is None:
            result.removed.append(local_bookmark.url)
            continue

        if is_bookmark_changed(local_bookmark, remote_bookmark):
            updated = remote_bookmark.model_copy(deep=True)
            if local_bookmark.embedding and embedding_text_for(
                local_bookmark
            ) == embedding_text_for(remote_bookmark):
                updated.embedding = list(local_bookmark.embedding)
            result.updated.append(updated)
        elif remote_bookmark.embedding and not local_bookmark.embedding:
            result.updated.append(remote_bookmark.model_copy(deep=True))
        else:
            result.same.append(local_bookmark)

    for remote_bookmark in remote:
        if remote_bookmark.url not in local_urls:
            result.added.append(remote_bookmark.model_copy(deep=True))

    return result


class BookmarkImporter:
    """Applies a remote bookmark collection to the local store through a diff."""

    def __init__(self, store: LocalStore) -> None:
        self._store = store

    async def import_bookmarks(
        self,
        remote_bookmarks: Sequence[Bookmark],
        *,
        overwrite: bool,
        correlation_id: str,
    ) -> BookmarkDiff:
        """Import *remote_bookmarks*.

        With ``overwrite`` the local set ends up equal to the remote set;
        without it local-only bookmarks survive (additive merge).
        """
        local_bookmarks = await self._store.get_bookmarks_list()
        diff = diff_bookmarks(local_bookmarks, remote_bookmarks)
        logger.debug(
            "webdav_bookmarks_diff",
            extra={"correlation_id": correlation_id, "overwrite": overwrite, **diff.counts()},
        )

        upserts = diff.upserts
        if upserts:
            await self._store.set_bookmarks(upserts, no_sync=True)
        if overwrite and diff.removed:
            await self._store.remove_bookmarks(diff.removed, no_sync=True)
        return diff

"""Bookmark category sync: detect, decide, then push, pull or merge."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marksync.adapters.webdav.models import CategorySyncOutcome, SyncAction
from marksync.adapters.webdav.sync.constants import CATEGORY_BOOKMARKS
from marksync.adapters.webdav.sync.detector import decide, detect_bookmarks
from marksync.adapters.webdav.sync.metadata import local_metadata, with_bookmarks

if TYPE_CHECKING:
    from collections.abc import Callable

    from marksync.adapters.webdav.models import SyncMechanism, SyncMetadata
    from marksync.adapters.webdav.sync.differ import BookmarkImporter
    from marksync.adapters.webdav.sync.local_state import LocalBookmarks, LocalStateReader
    from marksync.adapters.webdav.sync.remote_store import RemoteStore

logger = logging.getLogger(__name__)

_PUSH_ACTIONS = frozenset({SyncAction.BOOTSTRAP, SyncAction.PUSH, SyncAction.RESOLVE_LOCAL_FIRST})
_OVERWRITE_ACTIONS = frozenset({SyncAction.PULL, SyncAction.RESOLVE_REMOTE_FIRST})


class BookmarkSyncer:
    def __init__(
        self,
        *,
        remote: RemoteStore,
        reader: LocalStateReader,
        importer: BookmarkImporter,
        device: str,
        clock: Callable[[], int],
    ) -> None:
        self._remote = remote
        self._reader = reader
        self._importer = importer
        self._device = device
        self._clock = clock

    async def sync(
        self,
        remote_metadata: SyncMetadata,
        base: SyncMetadata | None,
        mechanism: SyncMechanism,
        *,
        correlation_id: str,
    ) -> CategorySyncOutcome:
        local = await self._reader.read_bookmarks(self._clock())
        change = detect_bookmarks(
            base, local_metadata(now=self._clock(), bookmarks=local.entry), remote_metadata
        )
        action = decide(change, mechanism)
        logger.info(
            "webdav_bookmarks_decision",
            extra={
                "correlation_id": correlation_id,
                "action": action.value,
                "mechanism": mechanism.value,
                **change.as_dict(),
            },
        )

        if action is SyncAction.NOOP:
            return CategorySyncOutcome(
                category=CATEGORY_BOOKMARKS, action=action, metadata=remote_metadata
            )
        if action in _PUSH_ACTIONS:
            return await self._push(local, remote_metadata, action, correlation_id)

        payload = await self._remote.get_bookmarks_payload(correlation_id=correlation_id)
        if payload is None or payload.data.bookmarks is None:
            logger.warning(
                "webdav_bookmarks_remote_missing_fallback_push",
                extra={"correlation_id": correlation_id, "action": action.value},
            )
            return await self._push(local, remote_metadata, SyncAction.BOOTSTRAP, correlation_id)

        remote_bookmarks = payload.data.bookmarks
        if action in _OVERWRITE_ACTIONS:
            await self._importer.import_bookmarks(
                remote_bookmarks, overwrite=True, correlation_id=correlation_id
            )
            logger.info(
                "webdav_bookmarks_pulled",
                extra={"correlation_id": correlation_id, "count": len(remote_bookmarks)},
            )
            return CategorySyncOutcome(
                category=CATEGORY_BOOKMARKS, action=action, metadata=remote_metadata, changed=True
            )

        await self._importer.import_bookmarks(
            remote_bookmarks, overwrite=False, correlation_id=correlation_id
        )
        merged = await self._reader.read_bookmarks(self._clock())
        return await self._push(merged, remote_metadata, action, correlation_id)

    async def _push(
        self,
        local: LocalBookmarks,
        remote_metadata: SyncMetadata,
        action: SyncAction,
        correlation_id: str,
    ) -> CategorySyncOutcome:
        metadata = with_bookmarks(
            remote_metadata, local.entry, now=self._clock(), device=self._device
        )
        await self._remote.save_bookmarks(local.payload, metadata)
        logger.info(
            "webdav_bookmarks_pushed",
            extra={
                "correlation_id": correlation_id,
                "action": action.value,
                "count": len(local.bookmarks),
                "content_hash": local.entry.content_hash,
            },
        )
        return CategorySyncOutcome(
            category=CATEGORY_BOOKMARKS, action=action, metadata=metadata, changed=True
        )

"""Runs a WebDAV sync and records its outcome in the status store."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from marksync.adapters.webdav.models import SyncResult, SyncStatus
from marksync.core.time_utils import now_ms

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from marksync.adapters.webdav.sync.protocols import SyncStatusStore
    from marksync.adapters.webdav.sync_service import WebDAVSyncService

logger = logging.getLogger(__name__)

SYNC_IN_PROGRESS = "sync already in progress"
INVALID_CONFIG = "webdav configuration is invalid"


class SyncStatusRecorder:
    """Caller-side wrapper around :meth:`WebDAVSyncService.sync`.

    Holds the single-flight lock (one sync per folder at a time), and is the
    only place the Last-Known-Sync Record is written: on success the result
    metadata replaces it, on failure only ``lastSync``/``lastSyncResult``
    change and the previous record is kept.
    """

    def __init__(
        self, status_store: SyncStatusStore, *, clock: Callable[[], int] | None = None
    ) -> None:
        self._status_store = status_store
        self._clock = clock or now_ms
        self._lock = asyncio.Lock()

    async def execute(
        self,
        service: WebDAVSyncService,
        *,
        problems: Sequence[str] = (),
    ) -> dict[str, Any]:
        if self._lock.locked():
            return {"success": False, "error": SYNC_IN_PROGRESS, "result": None}

        async with self._lock:
            if problems:
                logger.warning("webdav_sync_skipped_invalid_config", extra={"problems": list(problems)})
                return {
                    "success": False,
                    "error": f"{INVALID_CONFIG}: {'; '.join(problems)}",
                    "result": None,
                }

            try:
                result = await service.sync()
            except Exception as exc:
                logger.exception("webdav_sync_raised")
                result = SyncResult(
                    last_sync=self._clock(),
                    last_sync_result=str(exc) or type(exc).__name__,
                    errors=[str(exc) or type(exc).__name__],
                )

            if result.succeeded:
                await self._status_store.update_status(
                    SyncStatus(
                        last_sync=result.last_sync,
                        last_sync_result=result.last_sync_result,
                        metadata=result.metadata,
                    )
                )
                return {"success": True, "error": None, "result": result}

            previous = await self._status_store.get_status()
            await self._status_store.update_status(
                previous.model_copy(
                    update={"last_sync": self._clock(), "last_sync_result": result.last_sync_result}
                )
            )
            logger.warning(
                "webdav_sync_status_failed",
                extra={"error": result.last_sync_result, "errors": result.errors},
            )
            return {"success": False, "error": result.last_sync_result, "result": result}

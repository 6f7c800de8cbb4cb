"""Public WebDAV sync service composed of small per-category syncers."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from marksync.adapters.webdav.client import WebDAVClientError
from marksync.adapters.webdav.models import (
    CategorySyncOutcome,
    SyncAction,
    SyncMechanism,
    SyncMetadata,
    SyncResult,
)
from marksync.adapters.webdav.sync.bookmarks import BookmarkSyncer
from marksync.adapters.webdav.sync.config_data import ConfigSyncer
from marksync.adapters.webdav.sync.constants import CATEGORY_BOOKMARKS, CATEGORY_CONFIG
from marksync.adapters.webdav.sync.differ import BookmarkImporter
from marksync.adapters.webdav.sync.errors import CategorySyncError, SyncError, record_error
from marksync.adapters.webdav.sync.local_state import LocalStateReader
from marksync.adapters.webdav.sync.planner import SyncPlanner
from marksync.adapters.webdav.sync.remote_store import RemoteStore
from marksync.core.device import device_label
from marksync.core.logging_utils import generate_correlation_id
from marksync.core.time_utils import now_ms

if TYPE_CHECKING:
    from collections.abc import Callable

    from marksync.adapters.webdav.models import SyncPlan
    from marksync.adapters.webdav.sync.protocols import (
        LocalStore,
        RemoteTransport,
        SyncStatusStore,
    )
    from marksync.config.webdav import SyncDataConfig

logger = logging.getLogger(__name__)

CATEGORY_ALL = "all"


class WebDAVSyncService:
    """Three-way sync of bookmarks and configuration against a WebDAV folder.

    This is a thin orchestrator: change detection, payload handling and
    per-category resolution live in the collaborators under ``sync/``.
    The service never persists the Last-Known-Sync Record itself; the caller
    (see ``SyncStatusRecorder``) stores ``SyncResult.metadata`` on success.
    """

    def __init__(
        self,
        *,
        transport: RemoteTransport,
        local_store: LocalStore,
        status_store: SyncStatusStore,
        sync_data: SyncDataConfig,
        folder: str = "/bookmarks",
        mechanism: SyncMechanism | str = SyncMechanism.MERGE,
        device_name: str | None = None,
        app_version: str = "",
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.sync_data = sync_data
        self.mechanism = SyncMechanism.parse(mechanism)
        self.device = device_label(device_name)
        self._status_store = status_store
        self._clock = clock or now_ms

        self._remote = RemoteStore(transport, folder)
        self._reader = LocalStateReader(local_store, sync_data, app_version=app_version)
        self._bookmarks = BookmarkSyncer(
            remote=self._remote,
            reader=self._reader,
            importer=BookmarkImporter(local_store),
            device=self.device,
            clock=self._clock,
        )
        self._config = ConfigSyncer(
            store=local_store,
            remote=self._remote,
            reader=self._reader,
            device=self.device,
            clock=self._clock,
        )
        self._planner = SyncPlanner(
            remote=self._remote, reader=self._reader, status_store=status_store, clock=self._clock
        )

    async def _load_base(self) -> SyncMetadata | None:
        status = await self._status_store.get_status()
        return status.metadata

    async def sync_bookmarks(
        self,
        remote_metadata: SyncMetadata,
        mechanism: SyncMechanism | str | None = None,
        *,
        base: SyncMetadata | None = None,
        correlation_id: str | None = None,
    ) -> CategorySyncOutcome:
        if base is None:
            base = await self._load_base()
        return await self._bookmarks.sync(
            remote_metadata,
            base,
            SyncMechanism.parse(mechanism or self.mechanism),
            correlation_id=correlation_id or generate_correlation_id(),
        )

    async def sync_config_data(
        self,
        remote_metadata: SyncMetadata,
        mechanism: SyncMechanism | str | None = None,
        *,
        base: SyncMetadata | None = None,
        correlation_id: str | None = None,
    ) -> CategorySyncOutcome:
        if base is None:
            base = await self._load_base()
        return await self._config.sync(
            remote_metadata,
            base,
            SyncMechanism.parse(mechanism or self.mechanism),
            correlation_id=correlation_id or generate_correlation_id(),
        )

    async def sync_full_data(self, *, correlation_id: str | None = None) -> CategorySyncOutcome:
        """Upload every enabled category to a folder that has no ``meta.json`` yet."""
        correlation_id = correlation_id or generate_correlation_id()
        await self._remote.ensure_folder()

        now = self._clock()
        metadata = SyncMetadata.empty(now)
        local_bookmarks = None
        local_config = None
        if self.sync_data.bookmarks:
            local_bookmarks = await self._reader.read_bookmarks(now)
            metadata.bookmarks = local_bookmarks.entry.model_copy(update={"device": self.device})
        if self.sync_data.config_enabled:
            local_config = await self._reader.read_config(now)
            metadata.config = local_config.entry.model_copy(update={"device": self.device})

        if local_bookmarks is not None:
            await self._remote.save_bookmarks(local_bookmarks.payload, metadata)
        if local_config is not None:
            await self._remote.save_config(local_config.bundle, metadata)

        logger.info(
            "webdav_full_data_uploaded",
            extra={
                "correlation_id": correlation_id,
                "bookmarks": local_bookmarks is not None,
                "config": local_config is not None,
                "folder": self._remote.folder,
            },
        )
        return CategorySyncOutcome(
            category=CATEGORY_ALL, action=SyncAction.BOOTSTRAP, metadata=metadata, changed=True
        )

    async def sync(self) -> SyncResult:
        start_time = time.time()
        correlation_id = generate_correlation_id()
        result = SyncResult(last_sync=self._clock())

        try:
            remote_metadata = await self._remote.get_metadata()
            base = await self._load_base()
            result.metadata = base

            if remote_metadata is None:
                outcome = await self.sync_full_data(correlation_id=correlation_id)
                result.metadata = outcome.metadata
                result.changed = True
            else:
                await self._sync_categories(result, remote_metadata, base, correlation_id)
        except (WebDAVClientError, SyncError) as exc:
            record_error(result, str(exc))
            logger.error(
                "webdav_sync_failed",
                extra={"correlation_id": correlation_id, "error": str(exc)},
            )

        if result.errors:
            result.last_sync_result = "; ".join(result.errors)
        result.duration_seconds = time.time() - start_time
        logger.info(
            "webdav_sync_complete",
            extra={
                "correlation_id": correlation_id,
                "success": result.succeeded,
                "changed": result.changed,
                "bookmarks_action": result.bookmarks.action.value if result.bookmarks else None,
                "config_action": result.config.action.value if result.config else None,
                "duration": result.duration_seconds,
            },
        )
        return result

    async def _sync_categories(
        self,
        result: SyncResult,
        remote_metadata: SyncMetadata,
        base: SyncMetadata | None,
        correlation_id: str,
    ) -> None:
        working = remote_metadata.model_copy(deep=True)

        if self.sync_data.bookmarks:
            try:
                outcome = await self.sync_bookmarks(
                    working, base=base, correlation_id=correlation_id
                )
            except Exception as exc:
                error = CategorySyncError(CATEGORY_BOOKMARKS, str(exc))
                record_error(result, str(error))
                logger.exception(
                    "webdav_category_sync_failed",
                    extra={"correlation_id": correlation_id, "category": error.category},
                )
            else:
                result.bookmarks = outcome
                result.changed = result.changed or outcome.changed
                working = outcome.metadata

        if self.sync_data.config_enabled:
            try:
                outcome = await self.sync_config_data(
                    working, base=base, correlation_id=correlation_id
                )
            except Exception as exc:
                error = CategorySyncError(CATEGORY_CONFIG, str(exc))
                record_error(result, str(error))
                logger.exception(
                    "webdav_category_sync_failed",
                    extra={"correlation_id": correlation_id, "category": error.category},
                )
            else:
                result.config = outcome
                result.changed = result.changed or outcome.changed
                working = outcome.metadata

        result.metadata = working

    async def preview(self, mechanism: SyncMechanism | str | None = None) -> SyncPlan:
        """Report what :meth:`sync` would do without touching either side."""
        return await self._planner.plan(
            SyncMechanism.parse(mechanism or self.mechanism), self.sync_data
        )

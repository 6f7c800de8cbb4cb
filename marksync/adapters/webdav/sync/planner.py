"""Dry-run planning: what the next sync would do, without side effects."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marksync.adapters.webdav.models import PlannedCategory, SyncAction, SyncPlan
from marksync.adapters.webdav.sync.constants import CATEGORY_BOOKMARKS, CATEGORY_CONFIG
from marksync.adapters.webdav.sync.detector import decide, detect_bookmarks, detect_config
from marksync.adapters.webdav.sync.metadata import local_metadata

if TYPE_CHECKING:
    from collections.abc import Callable

    from marksync.adapters.webdav.models import SyncMechanism
    from marksync.adapters.webdav.sync.detector import CategoryChange
    from marksync.adapters.webdav.sync.local_state import LocalStateReader
    from marksync.adapters.webdav.sync.protocols import SyncStatusStore
    from marksync.adapters.webdav.sync.remote_store import RemoteStore
    from marksync.config.webdav import SyncDataConfig

logger = logging.getLogger(__name__)


def _planned(category: str, change: CategoryChange, action: SyncAction) -> PlannedCategory:
    return PlannedCategory(category=category, action=action, **change.as_dict())


class SyncPlanner:
    def __init__(
        self,
        *,
        remote: RemoteStore,
        reader: LocalStateReader,
        status_store: SyncStatusStore,
        clock: Callable[[], int],
    ) -> None:
        self._remote = remote
        self._reader = reader
        self._status_store = status_store
        self._clock = clock

    async def plan(self, mechanism: SyncMechanism, sync_data: SyncDataConfig) -> SyncPlan:
        remote_metadata = await self._remote.get_metadata()
        plan = SyncPlan(remote_exists=remote_metadata is not None, mechanism=mechanism)

        if remote_metadata is None:
            # An empty folder is always bootstrapped with every enabled category.
            if sync_data.bookmarks:
                plan.categories.append(_bootstrap(CATEGORY_BOOKMARKS))
            if sync_data.config_enabled:
                plan.categories.append(_bootstrap(CATEGORY_CONFIG))
            return plan

        status = await self._status_store.get_status()
        base = status.metadata
        now = self._clock()

        if sync_data.bookmarks:
            local = await self._reader.read_bookmarks(now)
            change = detect_bookmarks(
                base, local_metadata(now=now, bookmarks=local.entry), remote_metadata
            )
            plan.categories.append(_planned(CATEGORY_BOOKMARKS, change, decide(change, mechanism)))

        if sync_data.config_enabled:
            local_config = await self._reader.read_config(now)
            change = detect_config(
                base,
                local_metadata(now=now, config=local_config.entry),
                remote_metadata,
                self._reader.sections,
            )
            plan.categories.append(_planned(CATEGORY_CONFIG, change, decide(change, mechanism)))

        logger.debug(
            "webdav_sync_planned",
            extra={
                "mechanism": mechanism.value,
                "actions": {item.category: item.action.value for item in plan.categories},
            },
        )
        return plan


def _bootstrap(category: str) -> PlannedCategory:
    return PlannedCategory(
        category=category,
        action=SyncAction.BOOTSTRAP,
        local_changed=True,
        remote_changed=False,
        remote_different=True,
        remote_missing=True,
    )

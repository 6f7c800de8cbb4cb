"""Configuration category sync (settings, filters, API services)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from marksync.adapters.webdav.models import CategorySyncOutcome, SyncAction
from marksync.adapters.webdav.sync.constants import CATEGORY_CONFIG
from marksync.adapters.webdav.sync.detector import decide, detect_config
from marksync.adapters.webdav.sync.metadata import local_metadata, with_config

if TYPE_CHECKING:
    from collections.abc import Callable

    from marksync.adapters.webdav.models import ConfigData, SyncMechanism, SyncMetadata
    from marksync.adapters.webdav.sync.local_state import LocalConfig, LocalStateReader
    from marksync.adapters.webdav.sync.protocols import LocalStore
    from marksync.adapters.webdav.sync.remote_store import RemoteStore

logger = logging.getLogger(__name__)

_PUSH_ACTIONS = frozenset({SyncAction.BOOTSTRAP, SyncAction.PUSH, SyncAction.RESOLVE_LOCAL_FIRST})
_OVERWRITE_ACTIONS = frozenset({SyncAction.PULL, SyncAction.RESOLVE_REMOTE_FIRST})


class ConfigSyncer:
    def __init__(
        self,
        *,
        store: LocalStore,
        remote: RemoteStore,
        reader: LocalStateReader,
        device: str,
        clock: Callable[[], int],
    ) -> None:
        self._store = store
        self._remote = remote
        self._reader = reader
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
        sections = self._reader.sections
        local = await self._reader.read_config(self._clock())
        change = detect_config(
            base, local_metadata(now=self._clock(), config=local.entry), remote_metadata, sections
        )
        action = decide(change, mechanism)
        logger.info(
            "webdav_config_decision",
            extra={
                "correlation_id": correlation_id,
                "action": action.value,
                "mechanism": mechanism.value,
                "sections": [section.value for section in sections],
                **change.as_dict(),
            },
        )

        if action is SyncAction.NOOP:
            return CategorySyncOutcome(
                category=CATEGORY_CONFIG, action=action, metadata=remote_metadata
            )
        if action in _PUSH_ACTIONS:
            return await self._push(local, remote_metadata, action, correlation_id)

        bundle = await self._remote.get_config_bundle(correlation_id=correlation_id)
        if bundle is None:
            logger.warning(
                "webdav_config_remote_missing_fallback_push",
                extra={"correlation_id": correlation_id, "action": action.value},
            )
            return await self._push(local, remote_metadata, SyncAction.BOOTSTRAP, correlation_id)

        if action in _OVERWRITE_ACTIONS:
            await self._import(bundle.data, overwrite=True, correlation_id=correlation_id)
            return CategorySyncOutcome(
                category=CATEGORY_CONFIG, action=action, metadata=remote_metadata, changed=True
            )

        await self._import(bundle.data, overwrite=False, correlation_id=correlation_id)
        merged = await self._reader.read_config(self._clock())
        return await self._push(merged, remote_metadata, action, correlation_id)

    async def _import(self, data: ConfigData, *, overwrite: bool, correlation_id: str) -> None:
        imported = []
        for section in self._reader.sections:
            document = data.section(section)
            if document is None:
                continue
            await self._store.import_config_section(section, document, overwrite=overwrite)
            imported.append(section.value)
        logger.info(
            "webdav_config_imported",
            extra={"correlation_id": correlation_id, "overwrite": overwrite, "sections": imported},
        )

    async def _push(
        self,
        local: LocalConfig,
        remote_metadata: SyncMetadata,
        action: SyncAction,
        correlation_id: str,
    ) -> CategorySyncOutcome:
        metadata = with_config(remote_metadata, local.entry, now=self._clock(), device=self._device)
        await self._remote.save_config(local.bundle, metadata)
        logger.info(
            "webdav_config_pushed",
            extra={"correlation_id": correlation_id, "action": action.value},
        )
        return CategorySyncOutcome(
            category=CATEGORY_CONFIG, action=action, metadata=metadata, changed=True
        )

"""Three-way change detection between the last-known-sync base, local state and remote.

``base`` is the Last-Known-Sync Record, ``local`` is metadata freshly computed
from the local store, ``remote`` is the current ``meta.json``. Local changes
are detected by content hash; remote changes by ``lastModified``, so a remote
that happens to hash like local is still recognised as a remote edit.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from marksync.adapters.webdav.models import ConfigSection, SyncAction, SyncMechanism

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marksync.adapters.webdav.models import SyncMetadata

_RESOLUTIONS = {
    SyncMechanism.LOCAL_FIRST: SyncAction.RESOLVE_LOCAL_FIRST,
    SyncMechanism.REMOTE_FIRST: SyncAction.RESOLVE_REMOTE_FIRST,
    SyncMechanism.MERGE: SyncAction.RESOLVE_MERGE,
}


@dataclass(frozen=True)
class CategoryChange:
    local_changed: bool
    remote_changed: bool
    remote_different: bool
    remote_missing: bool

    @property
    def conflicting(self) -> bool:
        return self.local_changed and self.remote_changed

    def as_dict(self) -> dict[str, bool]:
        return asdict(self)


def _hash_differs(left: Any, right: Any) -> bool:
    """Compare two optional ``{contentHash}`` entries; presence mismatch counts as a change."""
    if left is None and right is None:
        return False
    if left is None or right is None:
        return True
    return left.content_hash != right.content_hash


def _bookmarks_hash_differs(left: SyncMetadata | None, right: SyncMetadata | None) -> bool:
    return _hash_differs(
        left.bookmarks if left is not None else None,
        right.bookmarks if right is not None else None,
    )


def _config_hash_differs(
    left: SyncMetadata | None,
    right: SyncMetadata | None,
    sections: Iterable[ConfigSection],
) -> bool:
    left_config = left.config if left is not None else None
    right_config = right.config if right is not None else None
    return any(
        _hash_differs(
            left_config.section(section) if left_config is not None else None,
            right_config.section(section) if right_config is not None else None,
        )
        for section in sections
    )


def detect_bookmarks(
    base: SyncMetadata | None, local: SyncMetadata, remote: SyncMetadata
) -> CategoryChange:
    base_modified = base.bookmarks.last_modified if base and base.bookmarks else None
    remote_modified = remote.bookmarks.last_modified if remote.bookmarks else None
    return CategoryChange(
        local_changed=_bookmarks_hash_differs(base, local),
        remote_changed=base_modified != remote_modified,
        remote_different=_bookmarks_hash_differs(local, remote),
        remote_missing=remote.bookmarks is None,
    )


def detect_config(
    base: SyncMetadata | None,
    local: SyncMetadata,
    remote: SyncMetadata,
    enabled: Iterable[ConfigSection],
) -> CategoryChange:
    """Config is one category: any enabled sub-document differing counts as a change."""
    sections = tuple(enabled)
    base_modified = base.config.last_modified if base and base.config else None
    remote_modified = remote.config.last_modified if remote.config else None
    remote_missing = remote.config is None or all(
        remote.config.section(section) is None for section in sections
    )
    return CategoryChange(
        local_changed=_config_hash_differs(base, local, sections),
        remote_changed=base_modified != remote_modified,
        remote_different=_config_hash_differs(local, remote, sections),
        remote_missing=remote_missing,
    )


def decide(change: CategoryChange, mechanism: SyncMechanism) -> SyncAction:
    """Map a three-way comparison to the action the orchestrator should take."""
    if not change.remote_different:
        return SyncAction.NOOP
    if change.remote_missing:
        return SyncAction.BOOTSTRAP
    if change.conflicting:
        return _RESOLUTIONS[SyncMechanism.parse(mechanism)]
    if change.local_changed:
        return SyncAction.PUSH
    if change.remote_changed:
        return SyncAction.PULL
    return SyncAction.NOOP

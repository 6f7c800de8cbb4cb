"""SQLite implementation of the local bookmark/config store and sync status store.

This adapter is what the WebDAV sync engine reads from and imports into.
"""

from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any

from marksync.adapters.webdav.models import Bookmark, ConfigSection, SyncStatus
from marksync.adapters.webdav.sync.constants import STATUS_SERVICE_WEBDAV
from marksync.db.models import BookmarkRecord, KeyValue
from marksync.infrastructure.persistence.sqlite.base import SqliteBaseRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

KEY_SETTINGS = "settings"
KEY_CONFIGS = "configs"
KEY_FILTERS = "filters"
KEY_SERVICES = "services"
STATUS_KEY_PREFIX = "sync_status:"

MAX_PINNED_SITES = 10
MAX_CUSTOM_SERVICES = 11

# Service sub-keys merged key-by-key on a non-overwriting import; others are replaced.
_MERGED_SERVICE_KEYS = ("apiKeys", "builtinServicesSettings", "customServices", "serviceTypes")
_SERVICE_KEYS = ("activeService", *_MERGED_SERVICE_KEYS)

_RECORD_FIELDS = (
    "url",
    "title",
    "tags",
    "excerpt",
    "saved_at",
    "last_used",
    "use_count",
    "embedding",
    "api_service",
    "embed_model",
)


def deep_merge(current: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(current)
    for key, value in updates.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge_pinned_sites(current: list[Any], incoming: Any, *, overwrite: bool) -> list[Any]:
    if not isinstance(incoming, list):
        return current
    sites = [
        site for site in incoming if isinstance(site, dict) and site.get("url") and site.get("title")
    ]
    if not overwrite:
        known = {site.get("url") for site in current}
        sites = [*current, *(site for site in sites if site["url"] not in known)]
    if len(sites) > MAX_PINNED_SITES:
        logger.warning(
            "pinned_sites_truncated", extra={"count": len(sites), "limit": MAX_PINNED_SITES}
        )
        sites = sites[:MAX_PINNED_SITES]
    return sites


def _valid_rule(rule: Any) -> bool:
    return (
        isinstance(rule, dict)
        and bool(rule.get("id"))
        and bool(rule.get("name"))
        and isinstance(rule.get("conditions"), list)
    )


def merge_filters(current: dict[str, Any], incoming: dict[str, Any], *, overwrite: bool) -> dict[str, Any]:
    rules = incoming.get("rules")
    ordered_ids = incoming.get("orderedIds")
    if not isinstance(rules, list) or not isinstance(ordered_ids, list):
        logger.error("filters_import_invalid_shape")
        return current

    new_rules = [rule for rule in rules if _valid_rule(rule)]
    if len(new_rules) != len(rules):
        logger.warning("filters_import_skipped_invalid", extra={"skipped": len(rules) - len(new_rules)})

    if overwrite:
        return {"rules": new_rules, "orderedIds": list(ordered_ids)}

    existing = list(current.get("rules") or [])
    existing_ids = {rule.get("id") for rule in existing}
    merged_rules = [*existing, *(rule for rule in new_rules if rule["id"] not in existing_ids)]
    # Local-only rules stay reachable after the remote ordering is adopted.
    order = list(ordered_ids)
    order.extend(rule["id"] for rule in existing if rule.get("id") not in order)
    return {"rules": merged_rules, "orderedIds": order}


def merge_services(current: dict[str, Any], incoming: dict[str, Any], *, overwrite: bool) -> dict[str, Any]:
    """Apply an imported services block; keys absent from *incoming* are left alone.

    On overwrite each present key replaces the local one, otherwise the
    dict-valued keys are merged entry by entry.
    """
    result = copy.deepcopy(current)
    for key in _SERVICE_KEYS:
        value = incoming.get(key)
        if not value:
            continue
        if not overwrite and key in _MERGED_SERVICE_KEYS and isinstance(value, dict):
            result[key] = {**(current.get(key) or {}), **value}
        else:
            result[key] = copy.deepcopy(value)

    custom = result.get("customServices")
    if isinstance(custom, dict) and len(custom) > MAX_CUSTOM_SERVICES:
        logger.warning(
            "custom_services_truncated",
            extra={"count": len(custom), "limit": MAX_CUSTOM_SERVICES},
        )
        result["customServices"] = dict(list(custom.items())[:MAX_CUSTOM_SERVICES])
    return result


def _record_to_bookmark(record: BookmarkRecord) -> Bookmark:
    data: dict[str, Any] = dict(record.extra or {})
    data.update({name: getattr(record, name) for name in _RECORD_FIELDS})
    return Bookmark.model_validate(data)


def _bookmark_to_row(bookmark: Bookmark) -> dict[str, Any]:
    row = {name: getattr(bookmark, name) for name in _RECORD_FIELDS}
    row["tags"] = list(bookmark.tags)
    row["extra"] = dict(bookmark.model_extra or {}) or None
    return row


def _get_value(key: str, default: Any = None) -> Any:
    entry = KeyValue.get_or_none(KeyValue.key == key)
    if entry is None or entry.value is None:
        return copy.deepcopy(default)
    return entry.value


def _set_value(key: str, value: Any) -> None:
    KeyValue.insert(key=key, value=value).on_conflict_replace().execute()


class SqliteLocalStoreRepositoryAdapter(SqliteBaseRepository):
    """Bookmarks, configuration documents and sync status in one SQLite file."""

    def __init__(self, session_manager: Any, *, service: str = STATUS_SERVICE_WEBDAV) -> None:
        super().__init__(session_manager)
        self._status_key = f"{STATUS_KEY_PREFIX}{service}"

    async def get_bookmarks_list(self) -> list[Bookmark]:
        def _query() -> list[Bookmark]:
            return [_record_to_bookmark(record) for record in BookmarkRecord.select()]

        return await self._read(_query, operation_name="get_bookmarks_list")

    async def set_bookmarks(self, bookmarks: Sequence[Bookmark], *, no_sync: bool = True) -> None:
        """Upsert *bookmarks* by url.

        ``no_sync`` marks writes made by the sync engine itself; this store has
        no change hooks, so it only shows up in logs.
        """
        rows = [_bookmark_to_row(bookmark) for bookmark in bookmarks]

        def _upsert() -> None:
            for row in rows:
                BookmarkRecord.insert(**row).on_conflict_replace().execute()

        await self._write(_upsert, operation_name="set_bookmarks")
        logger.debug("bookmarks_upserted", extra={"count": len(rows), "no_sync": no_sync})

    async def remove_bookmarks(self, urls: Sequence[str], *, no_sync: bool = True) -> None:
        targets = list(urls)

        def _delete() -> int:
            return BookmarkRecord.delete().where(BookmarkRecord.url.in_(targets)).execute()

        removed = await self._write(_delete, operation_name="remove_bookmarks")
        logger.debug("bookmarks_removed", extra={"count": removed, "no_sync": no_sync})

    async def get_config_section(self, section: ConfigSection) -> dict[str, Any]:
        def _query() -> dict[str, Any]:
            if section is ConfigSection.SETTINGS:
                return {
                    "settings": _get_value(KEY_SETTINGS, {}),
                    "configs": _get_value(KEY_CONFIGS, {}),
                }
            if section is ConfigSection.FILTERS:
                return _get_value(KEY_FILTERS, {"rules": [], "orderedIds": []})
            return _get_value(KEY_SERVICES, {})

        return await self._read(_query, operation_name=f"get_config_{section.value}")

    async def put_config_section(self, section: ConfigSection, data: dict[str, Any]) -> None:
        """Replace a section verbatim (used by local edits, not by sync imports)."""

        def _store() -> None:
            if section is ConfigSection.SETTINGS:
                _set_value(KEY_SETTINGS, data.get("settings") or {})
                _set_value(KEY_CONFIGS, data.get("configs") or {})
            else:
                _set_value(KEY_FILTERS if section is ConfigSection.FILTERS else KEY_SERVICES, data)

        await self._write(_store, operation_name=f"put_config_{section.value}")

    async def import_config_section(
        self, section: ConfigSection, data: dict[str, Any], *, overwrite: bool
    ) -> None:
        def _import() -> None:
            if section is ConfigSection.SETTINGS:
                settings = {} if overwrite else _get_value(KEY_SETTINGS, {})
                _set_value(KEY_SETTINGS, deep_merge(settings, data.get("settings") or {}))
                configs = _get_value(KEY_CONFIGS, {})
                incoming = data.get("configs") or {}
                if "pinnedSites" in incoming:
                    configs["pinnedSites"] = merge_pinned_sites(
                        [] if overwrite else list(configs.get("pinnedSites") or []),
                        incoming["pinnedSites"],
                        overwrite=overwrite,
                    )
                _set_value(KEY_CONFIGS, configs)
            elif section is ConfigSection.FILTERS:
                current = _get_value(KEY_FILTERS, {"rules": [], "orderedIds": []})
                _set_value(KEY_FILTERS, merge_filters(current, data, overwrite=overwrite))
            else:
                current = _get_value(KEY_SERVICES, {})
                _set_value(KEY_SERVICES, merge_services(current, data, overwrite=overwrite))

        await self._write(_import, operation_name=f"import_config_{section.value}")
        logger.info(
            "config_section_imported", extra={"section": section.value, "overwrite": overwrite}
        )

    async def get_status(self) -> SyncStatus:
        def _query() -> SyncStatus:
            return SyncStatus.model_validate(_get_value(self._status_key, {}))

        return await self._read(_query, operation_name="get_sync_status")

    async def update_status(self, status: SyncStatus) -> None:
        payload = status.to_wire()
        await self._write(lambda: _set_value(self._status_key, payload), operation_name="update_sync_status")

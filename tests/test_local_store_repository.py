"""Tests for the SQLite local store used by WebDAV sync."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from marksync.adapters.webdav.models import ConfigSection, SyncMetadata, SyncStatus
from marksync.db.session import DatabaseSessionManager
from marksync.infrastructure.persistence.sqlite.repositories import (
    SqliteLocalStoreRepositoryAdapter,
)
from marksync.infrastructure.persistence.sqlite.repositories.local_store_repository import (
    MAX_PINNED_SITES,
    deep_merge,
    merge_filters,
    merge_pinned_sites,
    merge_services,
)
from tests.conftest import make_bookmark


def _rule(rule_id: str, name: str = "rule") -> dict:
    return {"id": rule_id, "name": name, "conditions": []}


class TestLocalStoreRepository(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db = DatabaseSessionManager(str(Path(self._tmp.name) / "marksync.db"))
        self.db.migrate()
        self.repo = SqliteLocalStoreRepositoryAdapter(self.db)

    def tearDown(self) -> None:
        self.db.close()
        self._tmp.cleanup()

    async def test_bookmarks_upsert_and_remove(self):
        await self.repo.set_bookmarks(
            [
                make_bookmark("https://x/1", "One", tags=["a"], embedding=[0.1]),
                make_bookmark("https://x/2", "Two"),
            ]
        )
        await self.repo.set_bookmarks([make_bookmark("https://x/1", "One again")])
        await self.repo.remove_bookmarks(["https://x/2"])

        bookmarks = await self.repo.get_bookmarks_list()

        assert [(b.url, b.title) for b in bookmarks] == [("https://x/1", "One again")]
        assert bookmarks[0].embedding is None

    async def test_unknown_bookmark_fields_round_trip(self):
        await self.repo.set_bookmarks([make_bookmark("https://x/1", favicon="f.ico")])

        (bookmark,) = await self.repo.get_bookmarks_list()

        assert bookmark.model_extra == {"favicon": "f.ico"}

    async def test_empty_config_sections_have_defaults(self):
        assert await self.repo.get_config_section(ConfigSection.SETTINGS) == {
            "settings": {},
            "configs": {},
        }
        assert await self.repo.get_config_section(ConfigSection.FILTERS) == {
            "rules": [],
            "orderedIds": [],
        }
        assert await self.repo.get_config_section(ConfigSection.SERVICES) == {}

    async def test_settings_import_merge_and_overwrite(self):
        await self.repo.put_config_section(
            ConfigSection.SETTINGS,
            {"settings": {"display": {"theme": "light", "size": 12}}, "configs": {}},
        )

        await self.repo.import_config_section(
            ConfigSection.SETTINGS,
            {"settings": {"display": {"theme": "dark"}}, "configs": {}},
            overwrite=False,
        )
        merged = await self.repo.get_config_section(ConfigSection.SETTINGS)
        assert merged["settings"] == {"display": {"theme": "dark", "size": 12}}

        await self.repo.import_config_section(
            ConfigSection.SETTINGS,
            {"settings": {"display": {"theme": "dark"}}, "configs": {}},
            overwrite=True,
        )
        replaced = await self.repo.get_config_section(ConfigSection.SETTINGS)
        assert replaced["settings"] == {"display": {"theme": "dark"}}

    async def test_filters_import_merges_by_rule_id(self):
        await self.repo.put_config_section(
            ConfigSection.FILTERS, {"rules": [_rule("r1", "mine")], "orderedIds": ["r1"]}
        )

        await self.repo.import_config_section(
            ConfigSection.FILTERS,
            {"rules": [_rule("r1", "theirs"), _rule("r2")], "orderedIds": ["r2", "r1"]},
            overwrite=False,
        )

        filters = await self.repo.get_config_section(ConfigSection.FILTERS)
        assert [(r["id"], r["name"]) for r in filters["rules"]] == [("r1", "mine"), ("r2", "rule")]
        assert filters["orderedIds"] == ["r2", "r1"]

    async def test_status_round_trip(self):
        assert await self.repo.get_status() == SyncStatus()

        status = SyncStatus(
            last_sync=10, last_sync_result="success", metadata=SyncMetadata.empty(10)
        )
        await self.repo.update_status(status)

        assert await self.repo.get_status() == status


class TestImportMergeHelpers(unittest.TestCase):
    def test_deep_merge_does_not_mutate_inputs(self):
        current = {"a": {"b": 1}}
        merged = deep_merge(current, {"a": {"c": 2}})
        assert merged == {"a": {"b": 1, "c": 2}}
        assert current == {"a": {"b": 1}}

    def test_pinned_sites_dedupe_by_url_and_cap(self):
        current = [{"url": "u0", "title": "zero"}]
        incoming = [{"url": f"u{i}", "title": str(i)} for i in range(15)] + [{"url": "no-title"}]

        merged = merge_pinned_sites(current, incoming, overwrite=False)

        assert merged[0] == {"url": "u0", "title": "zero"}
        assert len(merged) == MAX_PINNED_SITES
        assert len({site["url"] for site in merged}) == MAX_PINNED_SITES

    def test_invalid_rules_are_dropped(self):
        result = merge_filters(
            {"rules": [], "orderedIds": []},
            {"rules": [_rule("ok"), {"id": "bad"}], "orderedIds": ["ok"]},
            overwrite=True,
        )
        assert [r["id"] for r in result["rules"]] == ["ok"]

    def test_filters_with_wrong_shape_leave_current_untouched(self):
        current = {"rules": [_rule("r1")], "orderedIds": ["r1"]}
        assert merge_filters(current, {"rules": "nope"}, overwrite=True) == current

    def test_local_only_rules_stay_ordered_after_merge(self):
        result = merge_filters(
            {"rules": [_rule("mine")], "orderedIds": ["mine"]},
            {"rules": [_rule("theirs")], "orderedIds": ["theirs"]},
            overwrite=False,
        )
        assert result["orderedIds"] == ["theirs", "mine"]

    def test_services_merge_dicts_and_replace_scalars(self):
        current = {"activeService": "a", "apiKeys": {"a": "1"}, "customServices": {"x": {}}}
        incoming = {"activeService": "b", "apiKeys": {"b": "2"}}

        merged = merge_services(current, incoming, overwrite=False)

        assert merged["activeService"] == "b"
        assert merged["apiKeys"] == {"a": "1", "b": "2"}
        assert merged["customServices"] == {"x": {}}

    def test_services_overwrite_replaces_present_keys_only(self):
        merged = merge_services(
            {"apiKeys": {"a": "1"}}, {"apiKeys": {"b": "2"}}, overwrite=True
        )
        assert merged == {"apiKeys": {"b": "2"}}

    def test_services_overwrite_keeps_keys_missing_from_import(self):
        current = {
            "activeService": "openai",
            "apiKeys": {"openai": "sk-local"},
            "serviceTypes": {"openai": "chat"},
        }

        merged = merge_services(current, {"activeService": "ollama"}, overwrite=True)

        assert merged == {
            "activeService": "ollama",
            "apiKeys": {"openai": "sk-local"},
            "serviceTypes": {"openai": "chat"},
        }
        assert current["activeService"] == "openai"


if __name__ == "__main__":
    unittest.main()

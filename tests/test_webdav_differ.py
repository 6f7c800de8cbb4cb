"""Tests for the url-keyed bookmark differ and importer."""

from __future__ import annotations

import unittest

from marksync.adapters.webdav.sync.differ import (
    BookmarkImporter,
    diff_bookmarks,
    is_bookmark_changed,
)
from tests.conftest import InMemoryLocalStore, make_bookmark

A = "https://example.org/a"
B = "https://example.org/b"
C = "https://example.org/c"


class TestDiffBookmarks(unittest.TestCase):
    def test_classifies_added_removed_updated_same(self):
        local = [make_bookmark(A, "A"), make_bookmark(B, "B edited")]
        remote = [make_bookmark(A, "A"), make_bookmark(B, "B"), make_bookmark(C, "C")]

        diff = diff_bookmarks(local, remote)

        assert [b.url for b in diff.added] == [C]
        assert diff.removed == []
        assert [(b.url, b.title) for b in diff.updated] == [(B, "B")]
        assert [b.url for b in diff.same] == [A]

    def test_local_only_records_are_reported_removed(self):
        diff = diff_bookmarks([make_bookmark(A), make_bookmark(B)], [make_bookmark(A)])
        assert diff.removed == [B]

    def test_embedding_is_ignored_for_change_detection(self):
        assert not is_bookmark_changed(
            make_bookmark(A, "A", embedding=[1.0]), make_bookmark(A, "A", embedding=None)
        )

    def test_local_embedding_carried_when_text_matches(self):
        local = [make_bookmark(A, "A", tags=["x"], embedding=[0.3, 0.4])]
        remote = [make_bookmark(A, "A", tags=["x"], useCount=7)]

        diff = diff_bookmarks(local, remote)

        assert diff.updated[0].embedding == [0.3, 0.4]
        assert diff.updated[0].use_count == 7

    def test_local_embedding_dropped_when_text_differs(self):
        local = [make_bookmark(A, "A", embedding=[0.3, 0.4])]
        remote = [make_bookmark(A, "A renamed")]

        diff = diff_bookmarks(local, remote)

        assert diff.updated[0].embedding is None

    def test_remote_embedding_backfills_local(self):
        local = [make_bookmark(A, "A")]
        remote = [make_bookmark(A, "A", embedding=[0.9])]

        diff = diff_bookmarks(local, remote)

        assert diff.updated[0].embedding == [0.9]
        assert diff.same == []

    def test_inputs_are_not_mutated(self):
        local = [make_bookmark(A, "A", embedding=[0.3])]
        remote = [make_bookmark(A, "A2")]

        diff = diff_bookmarks(local, remote)
        diff.updated[0].title = "changed"

        assert remote[0].title == "A2"
        assert remote[0].embedding is None


class TestBookmarkImporter(unittest.IsolatedAsyncioTestCase):
    async def test_merge_import_keeps_local_only_records(self):
        """Local {A, B'} merged with remote {A, C} gives {A, B', C}."""
        store = InMemoryLocalStore([make_bookmark(A, "A"), make_bookmark(B, "B edited")])

        diff = await BookmarkImporter(store).import_bookmarks(
            [make_bookmark(A, "A"), make_bookmark(C, "C")], overwrite=False, correlation_id="t"
        )

        assert store.urls() == {A, B, C}
        assert store.bookmarks[B].title == "B edited"
        assert diff.removed == [B]
        assert store.remove_calls == []

    async def test_overwrite_import_mirrors_remote(self):
        store = InMemoryLocalStore([make_bookmark(A, "A"), make_bookmark(B, "B")])

        await BookmarkImporter(store).import_bookmarks(
            [make_bookmark(A, "A"), make_bookmark(C, "C")], overwrite=True, correlation_id="t"
        )

        assert store.urls() == {A, C}
        assert store.remove_calls == [[B]]

    async def test_identical_collections_write_nothing(self):
        store = InMemoryLocalStore([make_bookmark(A, "A")])

        await BookmarkImporter(store).import_bookmarks(
            [make_bookmark(A, "A")], overwrite=True, correlation_id="t"
        )

        assert store.set_calls == []
        assert store.remove_calls == []


if __name__ == "__main__":
    unittest.main()

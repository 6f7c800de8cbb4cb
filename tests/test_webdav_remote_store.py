"""Tests for the remote sync folder adapter."""

from __future__ import annotations

import json
import unittest

import pytest

from marksync.adapters.webdav.models import (
    BookmarksData,
    BookmarksPayload,
    ConfigBundle,
    ConfigData,
    SyncMetadata,
)
from marksync.adapters.webdav.sync.codec import encode_payload
from marksync.adapters.webdav.sync.errors import RemoteDataError
from marksync.adapters.webdav.sync.remote_store import RemoteStore
from tests.conftest import (
    CONFIG_PATH,
    DATA_PATH,
    META_PATH,
    InMemoryTransport,
    make_bookmark,
)


class TestRemoteStore(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.transport = InMemoryTransport()
        self.store = RemoteStore(self.transport, "/bookmarks")

    def test_folder_gets_trailing_slash(self):
        assert self.store.folder == "/bookmarks/"
        assert self.store.path("meta.json") == META_PATH

    async def test_ensure_folder_creates_sync_folder(self):
        await self.store.ensure_folder()
        assert self.transport.folders == ["/bookmarks/"]

    async def test_missing_metadata_returns_none(self):
        assert await self.store.get_metadata() is None

    async def test_unparsable_metadata_raises(self):
        self.transport.files[META_PATH] = "[1, 2"
        with pytest.raises(RemoteDataError):
            await self.store.get_metadata()

    async def test_metadata_round_trip(self):
        metadata = SyncMetadata.empty(42)
        await self.store.save_metadata(metadata)

        loaded = await self.store.get_metadata()

        assert loaded == metadata
        assert json.loads(self.transport.files[META_PATH])["syncAt"] == 42

    async def test_save_bookmarks_uploads_payload_before_metadata(self):
        payload = BookmarksPayload(
            version="t", data=BookmarksData(bookmarks=[make_bookmark("https://x/1")])
        )

        await self.store.save_bookmarks(payload, SyncMetadata.empty(1))

        assert self.transport.uploads == [DATA_PATH, META_PATH]
        loaded = await self.store.get_bookmarks_payload()
        assert [b.url for b in loaded.data.bookmarks] == ["https://x/1"]

    async def test_corrupt_bookmarks_payload_returns_none(self):
        self.transport.files[DATA_PATH] = b"\x1f\x8bnope"
        assert await self.store.get_bookmarks_payload(correlation_id="c") is None

    async def test_payload_with_wrong_shape_returns_none(self):
        self.transport.files[DATA_PATH] = encode_payload({"data": {"bookmarks": "oops"}})
        assert await self.store.get_bookmarks_payload() is None

    async def test_missing_bookmarks_payload_returns_none(self):
        assert await self.store.get_bookmarks_payload() is None

    async def test_config_bundle_round_trip(self):
        bundle = ConfigBundle(
            version="t", data=ConfigData(settings={"a": 1}, configs={}, api_services={"k": "v"})
        )

        await self.store.save_config(bundle, SyncMetadata.empty(1))

        assert self.transport.uploads == [CONFIG_PATH, META_PATH]
        loaded = await self.store.get_config_bundle()
        assert loaded.data.settings == {"a": 1}
        assert loaded.data.api_services == {"k": "v"}
        assert "apiServices" in json.loads(self.transport.files[CONFIG_PATH])["data"]

    async def test_unreadable_config_returns_none(self):
        self.transport.files[CONFIG_PATH] = "not json"
        assert await self.store.get_config_bundle() is None


if __name__ == "__main__":
    unittest.main()

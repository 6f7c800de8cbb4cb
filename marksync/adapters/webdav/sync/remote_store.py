"""Typed access to the three well-known files in the remote sync folder."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from marksync.adapters.webdav.models import BookmarksPayload, ConfigBundle, SyncMetadata
from marksync.adapters.webdav.sync.codec import decode_payload, encode_payload
from marksync.adapters.webdav.sync.constants import (
    BOOKMARKS_FILE,
    CONFIG_FILE,
    CONTENT_TYPE_GZIP,
    CONTENT_TYPE_JSON,
    META_FILE,
)
from marksync.adapters.webdav.sync.errors import PayloadDecodeError, RemoteDataError

if TYPE_CHECKING:
    from marksync.adapters.webdav.sync.protocols import RemoteTransport

logger = logging.getLogger(__name__)


def _as_text(content: bytes | str) -> str:
    if isinstance(content, bytes | bytearray):
        return bytes(content).decode("utf-8")
    return content


def _as_bytes(content: bytes | str) -> bytes:
    if isinstance(content, str):
        return content.encode("utf-8")
    return bytes(content)


class RemoteStore:
    """Reads and writes ``meta.json``, ``data.json.gz`` and ``config.json``.

    Metadata and payload are written with two sequential uploads; the remote
    offers no transaction, so a crash between them can leave them mismatched.
    Local hashes are always recomputed on the next sync, which recovers.
    """

    def __init__(self, transport: RemoteTransport, folder: str) -> None:
        self._transport = transport
        self.folder = folder if folder.endswith("/") else f"{folder}/"

    def path(self, file_name: str) -> str:
        return f"{self.folder}{file_name}"

    async def ensure_folder(self) -> None:
        await self._transport.ensure_folder(self.folder)

    async def get_metadata(self) -> SyncMetadata | None:
        """Return remote metadata, or ``None`` when the folder has never been synced.

        Raises:
            RemoteDataError: If ``meta.json`` exists but cannot be parsed.
        """
        meta_path = self.path(META_FILE)
        if not await self._transport.exists(meta_path):
            return None

        content = await self._transport.download_file(meta_path)
        try:
            return SyncMetadata.from_wire(json.loads(_as_text(content)))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            msg = f"remote {META_FILE} is unreadable: {exc}"
            raise RemoteDataError(msg) from exc

    async def get_bookmarks_payload(self, *, correlation_id: str | None = None) -> BookmarksPayload | None:
        """Return the decoded bookmark payload, or ``None`` when missing or unusable."""
        data_path = self.path(BOOKMARKS_FILE)
        if not await self._transport.exists(data_path):
            return None

        content = await self._transport.download_file(data_path, binary=True)
        try:
            return BookmarksPayload.model_validate(decode_payload(_as_bytes(content)))
        except (PayloadDecodeError, ValidationError) as exc:
            logger.warning(
                "webdav_bookmarks_payload_unusable",
                extra={"correlation_id": correlation_id, "path": data_path, "error": str(exc)},
            )
            return None

    async def get_config_bundle(self, *, correlation_id: str | None = None) -> ConfigBundle | None:
        """Return the remote configuration bundle, or ``None`` when missing or unusable."""
        config_path = self.path(CONFIG_FILE)
        if not await self._transport.exists(config_path):
            return None

        content = await self._transport.download_file(config_path)
        try:
            return ConfigBundle.model_validate(json.loads(_as_text(content)))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning(
                "webdav_config_bundle_unusable",
                extra={"correlation_id": correlation_id, "path": config_path, "error": str(exc)},
            )
            return None

    async def save_metadata(self, metadata: SyncMetadata) -> None:
        await self._transport.upload_file(
            self.path(META_FILE),
            json.dumps(metadata.to_wire(), ensure_ascii=False),
            {"Content-Type": CONTENT_TYPE_JSON},
        )

    async def save_bookmarks(self, payload: BookmarksPayload, metadata: SyncMetadata) -> None:
        compressed = encode_payload(payload.to_wire())
        await self._transport.upload_file(
            self.path(BOOKMARKS_FILE), compressed, {"Content-Type": CONTENT_TYPE_GZIP}
        )
        await self.save_metadata(metadata)
        logger.debug(
            "webdav_bookmarks_saved",
            extra={"payload_bytes": len(compressed), "folder": self.folder},
        )

    async def save_config(self, bundle: ConfigBundle, metadata: SyncMetadata) -> None:
        await self._transport.upload_file(
            self.path(CONFIG_FILE),
            json.dumps(bundle.to_wire(), ensure_ascii=False),
            {"Content-Type": CONTENT_TYPE_JSON},
        )
        await self.save_metadata(metadata)

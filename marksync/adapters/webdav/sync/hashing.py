"""Content fingerprints used to detect local changes without keeping snapshots."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from marksync.adapters.webdav.models import Bookmark


def canonical_json(value: Any) -> str:
    """Serialize *value* with sorted keys and no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_bookmarks(bookmarks: Iterable[Bookmark]) -> str:
    """Digest of a bookmark collection, independent of enumeration order.

    Records are ordered by url and reduced to their ``meta()`` projection, so
    ``embedding`` never affects the result.
    """
    ordered = sorted(bookmarks, key=lambda bookmark: bookmark.url)
    return sha256_hex(canonical_json([bookmark.meta() for bookmark in ordered]))


def hash_sub_document(value: Any) -> str:
    return sha256_hex(canonical_json(value))


def hash_settings(settings: dict[str, Any], configs: dict[str, Any] | None) -> str:
    """Settings are hashed together with the auxiliary ``configs`` block."""
    return hash_sub_document({"settings": settings, "configs": configs or {}})

"""Compressed JSON codec for the bulk bookmark payload (``data.json.gz``)."""

from __future__ import annotations

import gzip
import io
import json
import zlib
from typing import Any

from marksync.adapters.webdav.sync.constants import GZIP_COMPRESS_LEVEL
from marksync.adapters.webdav.sync.errors import PayloadDecodeError

_CHUNK_SIZE = 64 * 1024


def encode_payload(document: Any) -> bytes:
    """Serialize *document* to compact JSON and gzip it."""
    raw = json.dumps(document, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    buffer = io.BytesIO()
    with gzip.GzipFile(fileobj=buffer, mode="wb", compresslevel=GZIP_COMPRESS_LEVEL, mtime=0) as gz:
        for start in range(0, len(raw), _CHUNK_SIZE):
            gz.write(raw[start : start + _CHUNK_SIZE])
    return buffer.getvalue()


def decode_payload(data: bytes) -> Any:
    """Inverse of :func:`encode_payload`.

    Raises:
        PayloadDecodeError: If *data* is not gzip, not UTF-8 or not JSON.
    """
    if not isinstance(data, bytes | bytearray | memoryview):
        msg = f"expected bytes, got {type(data).__name__}"
        raise PayloadDecodeError(msg)

    chunks: list[bytes] = []
    try:
        with gzip.GzipFile(fileobj=io.BytesIO(bytes(data)), mode="rb") as gz:
            while chunk := gz.read(_CHUNK_SIZE):
                chunks.append(chunk)
    except (OSError, EOFError, zlib.error) as exc:
        msg = f"corrupted gzip payload: {exc}"
        raise PayloadDecodeError(msg) from exc

    try:
        return json.loads(b"".join(chunks).decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        msg = f"payload is not valid JSON: {exc}"
        raise PayloadDecodeError(msg) from exc

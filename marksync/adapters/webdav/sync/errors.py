"""Sync error types and error collection helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from marksync.adapters.webdav.models import SyncResult


class SyncError(Exception):
    """Base exception for sync engine errors."""


class PayloadDecodeError(SyncError):
    """Raised when a remote payload cannot be decompressed or parsed."""


class RemoteDataError(SyncError):
    """Raised when a remote document exists but does not have the expected shape."""


class CategorySyncError(SyncError):
    """A failure while syncing one category (bookmarks or config)."""

    def __init__(self, category: str, message: str) -> None:
        super().__init__(f"{category} sync failed: {message}")
        self.category = category


def record_error(result: SyncResult, message: str) -> None:
    if message not in result.errors:
        result.errors.append(message)

"""SQLite repository adapters.

This package contains repository adapters that implement the sync engine's
store protocols using SQLite/Peewee as the persistence layer.
"""

from marksync.infrastructure.persistence.sqlite.repositories.local_store_repository import (
    SqliteLocalStoreRepositoryAdapter,
)

__all__ = ["SqliteLocalStoreRepositoryAdapter"]

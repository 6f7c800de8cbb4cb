"""Peewee ORM models for the local bookmark database."""

from __future__ import annotations

import datetime as _dt
from typing import Any

import peewee
from playhouse.sqlite_ext import JSONField

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        if hasattr(self, "updated_at"):
            self.updated_at = _utcnow()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


def _utcnow() -> _dt.datetime:
    """Timezone-aware UTC now (avoids deprecated datetime.utcnow)."""
    return _dt.datetime.now(_dt.UTC)


class BookmarkRecord(BaseModel):
    url = peewee.TextField(primary_key=True)
    title = peewee.TextField(null=True)
    tags = JSONField(default=list)
    excerpt = peewee.TextField(null=True)
    saved_at = peewee.BigIntegerField(null=True)
    last_used = peewee.BigIntegerField(null=True)
    use_count = peewee.IntegerField(default=0)
    embedding = JSONField(null=True)
    api_service = peewee.TextField(null=True)
    embed_model = peewee.TextField(null=True)
    # Wire fields this version does not model; kept so they round-trip.
    extra = JSONField(null=True)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "bookmarks"
        indexes = ((("saved_at",), False),)


class KeyValue(BaseModel):
    """Named JSON documents: settings, configs, filters, services, sync status."""

    key = peewee.TextField(primary_key=True)
    value = JSONField(null=True)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "key_values"


ALL_MODELS: tuple[type[BaseModel], ...] = (BookmarkRecord, KeyValue)

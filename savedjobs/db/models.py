"""Peewee models for the on-device saved-jobs database."""

from __future__ import annotations

from typing import Any

import peewee

from savedjobs.core.time_utils import utc_now

# Initialised with the concrete database instance by DatabaseSessionManager.
database_proxy: peewee.Database = peewee.DatabaseProxy()


class BaseModel(peewee.Model):
    """Base model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        if hasattr(self, "updated_at"):
            self.updated_at = utc_now()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


class StoredCollection(BaseModel):
    """One serialized bookmark collection per partition key."""

    key = peewee.TextField(primary_key=True)
    payload = peewee.TextField()
    updated_at = peewee.DateTimeField(default=utc_now)
    created_at = peewee.DateTimeField(default=utc_now)

    class Meta:
        table_name = "stored_collections"


ALL_MODELS: tuple[type[BaseModel], ...] = (StoredCollection,)

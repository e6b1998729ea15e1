"""Supabase-backed key-value store for bot state blobs."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from food_analyst.errors import StorageUnavailableError
from food_analyst.services.storage import KeyValueStore

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseKeyValueStore(KeyValueStore):
    """Stores JSON values in a `key text primary key, value jsonb` table.

    The supabase client is synchronous, so each call runs in a worker thread.
    """

    client: Client
    table: str = "bot_state"

    async def get(self, key: str) -> object | None:
        """Return the stored JSON value for a key."""
        try:
            response = await asyncio.to_thread(self._select, key)
        except Exception as exc:
            _logger.exception("Supabase read failed for %s", key)
            raise StorageUnavailableError("get", key) from exc
        if not response.data:
            return None
        return response.data[0].get("value")

    async def set(self, key: str, value: object) -> None:
        """Upsert the JSON value for a key."""
        row = {
            "key": key,
            "value": value,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        try:
            await asyncio.to_thread(
                lambda: self.client.table(self.table).upsert(row).execute()
            )
        except Exception as exc:
            _logger.exception("Supabase write failed for %s", key)
            raise StorageUnavailableError("set", key) from exc

    async def delete(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""
        try:
            await asyncio.to_thread(
                lambda: self.client.table(self.table).delete().eq("key", key).execute()
            )
        except Exception as exc:
            _logger.exception("Supabase delete failed for %s", key)
            raise StorageUnavailableError("delete", key) from exc

    def _select(self, key: str):  # type: ignore[no-untyped-def]
        return (
            self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )

"""Supabase-backed key-value storage backend."""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from code_cup.services.storage import StorageBackend


@dataclass
class SupabaseStorageBackend(StorageBackend):
    """Stores string values in a ``key``/``value`` table.

    The Supabase client is synchronous, so calls run in a worker thread.
    """

    client: Client
    table: str = "app_storage"
    namespace: str = "@CodeCup:"

    async def get_item(self, key: str) -> str | None:
        """Return the stored value for a key, if present."""
        response = await asyncio.to_thread(
            lambda: self.client.table(self.table)
            .select("value")
            .eq("key", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("value")

    async def set_item(self, key: str, value: str) -> None:
        """Insert or replace the value for a key."""
        payload = {
            "key": key,
            "value": value,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        await asyncio.to_thread(
            lambda: self.client.table(self.table).upsert(payload).execute()
        )

    async def remove_item(self, key: str) -> None:
        """Delete the row for a key."""
        await asyncio.to_thread(
            lambda: self.client.table(self.table).delete().eq("key", key).execute()
        )

    async def multi_remove(self, keys: list[str]) -> None:
        """Delete the rows for several keys."""
        if not keys:
            return
        await asyncio.to_thread(
            lambda: self.client.table(self.table)
            .delete()
            .in_("key", list(keys))
            .execute()
        )

    async def clear(self) -> None:
        """Delete every row in the app namespace."""
        await asyncio.to_thread(
            lambda: self.client.table(self.table)
            .delete()
            .like("key", f"{self.namespace}%")
            .execute()
        )

"""
Supabase-backed store.

Expects a table with a text primary key and a text value:

    create table device_kv (
        namespace text not null,
        key text not null,
        value text not null,
        updated_at timestamptz not null default now(),
        primary key (namespace, key)
    );
"""

import logging
from datetime import datetime, timezone

from supabase import Client, create_client

from lifecontext.storage.base import KeyValueStore, StorageError

logger = logging.getLogger(__name__)


class SupabaseStore(KeyValueStore):
    """
    Key/value rows in a Supabase table, scoped by namespace (device or profile id).
    """

    def __init__(self, client: Client, table: str = "device_kv", namespace: str = "default"):
        self.client = client
        self.table = table
        self.namespace = namespace

    @classmethod
    def from_credentials(
        cls, url: str, key: str, table: str = "device_kv", namespace: str = "default"
    ) -> "SupabaseStore":
        return cls(create_client(url, key), table=table, namespace=namespace)

    def get(self, key: str) -> str | None:
        try:
            result = (
                self.client.table(self.table)
                .select("value")
                .eq("namespace", self.namespace)
                .eq("key", key)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Supabase read failed for {key}: {e}")
            raise StorageError(f"Failed to read {key}") from e

        if not result.data:
            return None
        return result.data[0]["value"]

    def set(self, key: str, value: str) -> None:
        try:
            self.client.table(self.table).upsert({
                "namespace": self.namespace,
                "key": key,
                "value": value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }).execute()
        except Exception as e:
            logger.error(f"Supabase write failed for {key}: {e}")
            raise StorageError(f"Failed to write {key}") from e

    def delete(self, key: str) -> None:
        try:
            (
                self.client.table(self.table)
                .delete()
                .eq("namespace", self.namespace)
                .eq("key", key)
                .execute()
            )
        except Exception as e:
            logger.error(f"Supabase delete failed for {key}: {e}")
            raise StorageError(f"Failed to delete {key}") from e

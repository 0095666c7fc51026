"""
LifeContext storage backends.

    from lifecontext.storage import get_store
    store = get_store()          # backend picked from settings
    store.set("lcc-onboarding-complete", "true")
"""

from lifecontext.storage.base import KeyValueStore, StorageError
from lifecontext.storage.file import FileStore
from lifecontext.storage.memory import MemoryStore

__all__ = [
    "KeyValueStore",
    "StorageError",
    "MemoryStore",
    "FileStore",
    "get_store",
]

_store: KeyValueStore | None = None


def get_store() -> KeyValueStore:
    """
    Get the configured store.

    Uses singleton pattern so every caller shares one namespace.
    """
    global _store

    if _store is None:
        _store = _build_store()

    return _store


def reset_store() -> None:
    """Drop the cached store (tests and settings reloads)."""
    global _store
    _store = None


def _build_store() -> KeyValueStore:
    from lifecontext.config import get_settings

    settings = get_settings()

    if settings.storage_backend == "memory":
        return MemoryStore()

    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise StorageError("Supabase backend requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        from lifecontext.storage.supabase_store import SupabaseStore

        return SupabaseStore.from_credentials(
            settings.supabase_url,
            settings.supabase_service_role_key,
            table=settings.supabase_kv_table,
        )

    return FileStore(settings.storage_path)

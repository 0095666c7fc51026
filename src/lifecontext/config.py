"""
LifeContext - Configuration and settings.

Settings are read from the environment (and .env) once and cached.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Storage is pluggable: "memory" for tests and throwaway runs, "file" for a
    single JSON document on disk, "supabase" for a hosted key/value table.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    lifecontext_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Storage
    storage_backend: Literal["memory", "file", "supabase"] = "file"
    storage_path: Path = Path(".lifecontext/store.json")

    # Supabase (only needed when storage_backend == "supabase")
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None
    supabase_kv_table: str = "device_kv"

    @property
    def is_development(self) -> bool:
        return self.lifecontext_env == "development"

    @property
    def is_production(self) -> bool:
        return self.lifecontext_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()

"""
Key-value store port.

The onboarding engine persists four small text records (completion flag,
draft, variant, analytics log). Everything goes through this interface so the
engine can run against an in-memory fake in tests and a real backend in use.
"""

from abc import ABC, abstractmethod


class StorageError(Exception):
    """Raised when a backend cannot read or write a key."""


class KeyValueStore(ABC):
    """Minimal string key/value store, one namespace per device or profile."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored text for key, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

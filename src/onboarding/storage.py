"""
Onboarding Persistence.

Four records live in the device key-value store:

    lcc-onboarding-complete    "true" / "false", read by the router to decide
                               whether to show the wizard at all
    lcc-onboarding-progress    the single in-flight Draft (JSON)
    lcc-onboarding-variant     "control" / "streamlined"
    lcc-data-reclamation       "true" / "false", written when setup finishes

Only one onboarding draft is supported per device. Starting a second attempt
overwrites the first.

The A/B variant is drawn once per store. The draw prefers the OS random
source but falls back to the parity of the current millisecond. That fallback
is NOT cryptographic and is acceptable only because the bucket selects UI
flow shape and copy; it protects nothing and must not be reused for anything
security-related.
"""

import logging
import secrets
import time
from typing import Callable

from pydantic import ValidationError

from lifecontext.storage import KeyValueStore

from .state import Draft, Variant

logger = logging.getLogger(__name__)

ONBOARDING_COMPLETE_KEY = "lcc-onboarding-complete"
ONBOARDING_PROGRESS_KEY = "lcc-onboarding-progress"
ONBOARDING_VARIANT_KEY = "lcc-onboarding-variant"
DATA_RECLAMATION_KEY = "lcc-data-reclamation"


# =============================================================================
# Flags
# =============================================================================


def _get_flag(store: KeyValueStore, key: str) -> bool:
    return store.get(key) == "true"


def _set_flag(store: KeyValueStore, key: str, value: bool) -> None:
    store.set(key, "true" if value else "false")


def get_onboarding_complete(store: KeyValueStore) -> bool:
    return _get_flag(store, ONBOARDING_COMPLETE_KEY)


def set_onboarding_complete(store: KeyValueStore, is_complete: bool) -> None:
    _set_flag(store, ONBOARDING_COMPLETE_KEY, is_complete)


def get_data_reclamation_enabled(store: KeyValueStore) -> bool:
    return _get_flag(store, DATA_RECLAMATION_KEY)


def set_data_reclamation_enabled(store: KeyValueStore, enabled: bool) -> None:
    _set_flag(store, DATA_RECLAMATION_KEY, enabled)


# =============================================================================
# Draft
# =============================================================================


class DraftStore:
    """Single-slot persistence for the in-progress wizard."""

    def __init__(self, store: KeyValueStore, key: str = ONBOARDING_PROGRESS_KEY):
        self.store = store
        self.key = key

    def save(self, draft: Draft) -> None:
        self.store.set(self.key, draft.to_json())

    def load(self) -> Draft | None:
        """
        Load and validate the draft.

        Returns None for a missing, corrupt or invalid record. Never raises on
        bad data; a partially valid draft is discarded, not repaired.
        """
        raw = self.store.get(self.key)
        if not raw:
            return None

        try:
            return Draft.from_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding invalid onboarding draft ({e.error_count()} errors)")
            return None

    def clear(self) -> None:
        self.store.delete(self.key)


# =============================================================================
# Variant
# =============================================================================


def _random_bit() -> int:
    try:
        return secrets.randbits(1)
    except NotImplementedError:
        # Not cryptographic; the bucket carries no security weight
        logger.warning("OS random source unavailable, using timestamp parity for variant")
        return (time.time_ns() // 1_000_000) % 2


def _parse_variant(value: str | None) -> Variant | None:
    if value is None:
        return None
    try:
        return Variant(value)
    except ValueError:
        return None


class VariantAssigner:
    """Get or create the persisted A/B bucket for this device."""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = ONBOARDING_VARIANT_KEY,
        random_bit: Callable[[], int] | None = None,
    ):
        self.store = store
        self.key = key
        self.random_bit = random_bit or _random_bit

    def get(self) -> Variant | None:
        """Persisted variant, or None if absent or not a legal value."""
        return _parse_variant(self.store.get(self.key))

    def get_or_assign(self) -> Variant:
        existing = self.get()
        if existing is not None:
            return existing

        variant = Variant.CONTROL if self.random_bit() % 2 == 0 else Variant.STREAMLINED
        self.store.set(self.key, variant.value)
        logger.info(f"Assigned onboarding variant: {variant.value}")
        return variant

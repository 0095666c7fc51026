"""
Pytest configuration and fixtures for LifeContext tests.
"""

import os
import pytest
from unittest.mock import MagicMock

# Set test environment before importing lifecontext modules
os.environ["LIFECONTEXT_ENV"] = "development"
os.environ["STORAGE_BACKEND"] = "memory"

from lifecontext.storage import MemoryStore


class FakeClock:
    """Monotonic millisecond clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.ms = start

    def __call__(self) -> float:
        return self.ms

    def advance(self, ms: float) -> None:
        self.ms += ms


class FakeNow:
    """ISO timestamp source returning a new, predictable value per call."""

    def __init__(self):
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        return f"2026-01-01T00:00:{self.calls:02d}+00:00"


@pytest.fixture
def store():
    """Fresh in-memory key-value store."""
    return MemoryStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def now():
    return FakeNow()


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Mock table operations
    mock_table = MagicMock()
    mock_table.select.return_value = mock_table
    mock_table.upsert.return_value = mock_table
    mock_table.delete.return_value = mock_table
    mock_table.eq.return_value = mock_table
    mock_table.limit.return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client

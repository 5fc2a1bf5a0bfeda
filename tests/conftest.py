"""Shared test fixtures."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ.setdefault("OFFLINE_MIRROR_ENABLED", "true")

from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402

from src.smm_offline.mirror import OfflineLedgerStore  # noqa: E402
from src.smm_offline.storage import InMemoryKeyValueStorage  # noqa: E402

FIXED_NOW = datetime(2026, 3, 14, 10, 30, tzinfo=UTC)


@pytest.fixture
def storage() -> InMemoryKeyValueStorage:
    return InMemoryKeyValueStorage()


@pytest.fixture
def mirror(storage: InMemoryKeyValueStorage) -> OfflineLedgerStore:
    """Offline mirror over empty in-memory storage with a frozen clock."""
    return OfflineLedgerStore(storage, clock=lambda: FIXED_NOW)

"""Pytest configuration and shared fixtures."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

import pytest

from phone_lookup.clients.memory_store import InMemoryPhoneStore
from phone_lookup.services.batch_processor import BatchProcessor

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def upload_batch(fixtures_dir: Path) -> List[Dict]:
    """Load a mixed upload batch (inserts, skips, an invalid phone)."""
    with open(fixtures_dir / "upload_batch.json") as f:
        return json.load(f)


@pytest.fixture
def store() -> InMemoryPhoneStore:
    return InMemoryPhoneStore()


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def processor(store: InMemoryPhoneStore, now: datetime) -> BatchProcessor:
    return BatchProcessor(store, clock=lambda: now)

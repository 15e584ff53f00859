from datetime import datetime, timezone

import pytest

from fleetops.db.memory import MemoryStore
from fleetops.dispatch.engine import DispatchEngine

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def engine(store):
    return DispatchEngine(store, clock=lambda: NOW)

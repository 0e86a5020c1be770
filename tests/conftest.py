"""
Pytest configuration for Condemn tests.

Provides a fixed clock, a notifier that records what it was told,
and one fixture per store backend.
"""

from datetime import datetime, timedelta, timezone

import fakeredis
import pytest
from fakeredis import aioredis as fake_aioredis

from models import Classification, Switch
from notifiers import Notifier
from stores.disk import DiskStore
from stores.memory import MemoryStore
from stores.redis_store import RedisStore


class RecordingNotifier(Notifier):
    """Keeps every (name, classification) it receives."""

    def __init__(self):
        self.events: list[tuple[str, Classification]] = []

    def notify(self, name: str, classification: Classification) -> None:
        self.events.append((name, classification))

    @property
    def late(self) -> list[str]:
        return [name for name, c in self.events if c.is_late]

    @property
    def early(self) -> list[tuple[str, int]]:
        return [(name, c.seconds) for name, c in self.events if not c.is_late]


@pytest.fixture
def now():
    return datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_switch(now):
    def _make(name, seconds, window=None):
        return Switch.arm(
            name,
            now,
            timedelta(seconds=seconds),
            timedelta(seconds=window) if window is not None else None,
        )
    return _make


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def snapshot_path(tmp_path):
    return tmp_path / "condemn.json"


@pytest.fixture
def disk_store(snapshot_path):
    return DiskStore(MemoryStore(), snapshot_path)


@pytest.fixture
def redis_client():
    return fake_aioredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def redis_store(redis_client):
    return RedisStore(redis_client)


@pytest.fixture(params=["memory", "disk", "redis"])
def any_store(request):
    """Every backend, for tests of the shared Store contract."""
    return request.getfixturevalue(f"{request.param}_store")

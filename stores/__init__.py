# ─────────────────────────────────────────────────────────────────
# stores — Switch Storage
#
# Every backend implements the same five async operations, so the
# rest of the application never needs to know HOW switches are
# kept, only that it can insert, take, expire and list them.
#
#   MemoryStore → sorted deadline index in RAM
#   DiskStore   → wraps another store, snapshots it to a JSON file
#   RedisStore  → sorted set + hash in a shared Redis instance
# ─────────────────────────────────────────────────────────────────

import abc
from datetime import datetime
from typing import Optional

from models import Switch


class BackendError(Exception):
    """The underlying medium (disk, Redis) could not be reached or failed."""


class Store(abc.ABC):
    """
    Capability contract shared by all backends.

    All mutating operations are atomic per name: a switch removed by
    take() can never also be returned by expired(), and vice versa.
    """

    async def init(self) -> None:
        """One-time startup hook. Loads persisted state where there is any."""

    async def close(self) -> None:
        """Releases connections or file handles on shutdown."""

    @abc.abstractmethod
    async def insert(self, switch: Switch) -> None:
        """Upserts by name. A switch with the same name is replaced."""

    @abc.abstractmethod
    async def take(self, name: str) -> Optional[Switch]:
        """Removes and returns the named switch, or None if absent."""

    @abc.abstractmethod
    async def expired(self, now: datetime) -> list[Switch]:
        """Removes and returns every switch whose deadline is <= now."""

    @abc.abstractmethod
    async def all(self) -> list[Switch]:
        """Best-effort snapshot of every armed switch. Never mutates."""


def build_store(settings) -> Store:
    """Selects the backend named in the settings. Called once at startup."""
    from stores.memory import MemoryStore

    if settings.store == "memory":
        return MemoryStore()

    if settings.store == "disk":
        from stores.disk import DiskStore
        return DiskStore(MemoryStore(), settings.store_path)

    if settings.store == "redis":
        from stores.redis_store import RedisStore
        return RedisStore.from_url(settings.redis_url)

    raise ValueError(f"unknown store backend {settings.store!r}")


__all__ = ["BackendError", "Store", "build_store"]

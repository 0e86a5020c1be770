# ─────────────────────────────────────────────────────────────────
# stores/memory.py — In-Memory Storage
#
# Two structures that must always agree:
#   _buckets  → deadline timestamp → set of switch names due then
#   _switches → switch name → Switch
# plus _scores, the sorted list of bucket keys, so expired() can
# range-scan with bisect instead of looking at every switch.
#
# Resets on restart. Wrap it in a DiskStore to keep state.
# ─────────────────────────────────────────────────────────────────

import asyncio
import bisect
import logging
from datetime import datetime
from typing import Optional

from models import Switch
from stores import Store

logger = logging.getLogger("stores.memory")


class MemoryStore(Store):

    def __init__(self):
        self._buckets: dict[float, set[str]] = {}
        self._scores: list[float] = []
        self._switches: dict[str, Switch] = {}
        # Serialises structural mutation; all() copies without it
        self._lock = asyncio.Lock()

    def __len__(self):
        return len(self._switches)

    # ── index helpers, caller holds the lock ──────────────────────

    def _link(self, switch: Switch):
        score = switch.score
        bucket = self._buckets.get(score)
        if bucket is None:
            bucket = self._buckets[score] = set()
            bisect.insort(self._scores, score)
        bucket.add(switch.name)
        self._switches[switch.name] = switch

    def _unlink(self, name: str) -> Optional[Switch]:
        switch = self._switches.pop(name, None)
        if switch is None:
            return None

        score = switch.score
        bucket = self._buckets.get(score)
        if bucket is not None:
            bucket.discard(name)
            if not bucket:
                del self._buckets[score]
                index = bisect.bisect_left(self._scores, score)
                if index < len(self._scores) and self._scores[index] == score:
                    del self._scores[index]
        return switch

    # ── Store contract ────────────────────────────────────────────

    async def insert(self, switch: Switch) -> None:
        async with self._lock:
            # Re-arming must drop the old bucket entry, not just the payload
            self._unlink(switch.name)
            self._link(switch)

    async def take(self, name: str) -> Optional[Switch]:
        async with self._lock:
            return self._unlink(name)

    async def expired(self, now: datetime) -> list[Switch]:
        async with self._lock:
            cutoff = bisect.bisect_right(self._scores, now.timestamp())
            due = self._scores[:cutoff]
            del self._scores[:cutoff]

            expired = []
            for score in due:
                for name in sorted(self._buckets.pop(score, ())):
                    switch = self._switches.pop(name, None)
                    if switch is not None:
                        expired.append(switch)

        if expired:
            logger.debug(f"Expired {len(expired)} switch(es) at {now.isoformat()}")
        return expired

    async def all(self) -> list[Switch]:
        return list(self._switches.values())

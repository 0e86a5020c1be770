# ─────────────────────────────────────────────────────────────────
# stores/disk.py — Durable Snapshots Around Another Store
#
# DiskStore does no indexing of its own. Every mutation goes to the
# wrapped store first, then the wrapped store's complete contents
# are written to a JSON file:
#
#   [{"name": "backup", "deadline": "...", "window_start": null}, ...]
#
# On startup init() replays that file through insert().
#
# Writes land in a temporary file next to the target, are fsynced
# and then renamed over it, so a crash leaves either the previous
# snapshot or the new one, never half of either.
# ─────────────────────────────────────────────────────────────────

import asyncio
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from models import Switch
from stores import BackendError, Store

logger = logging.getLogger("stores.disk")


def write_switches(path: Path, switches: list[Switch]):
    """Atomically replaces `path` with the serialized switches."""
    payload = json.dumps([s.model_dump(mode="json") for s in switches])

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        # Leave no stray temp files behind on failure
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_switches(path: Path) -> list[Switch]:
    """
    Loads a snapshot file.

    A missing or unreadable file is the same as no prior state.
    Records that fail validation are skipped one at a time so one
    bad entry does not cost the rest of the data set.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning(f"No snapshot at {path}, starting empty")
        return []
    except OSError as e:
        logger.warning(f"Could not read snapshot {path}: {e}; starting empty")
        return []

    try:
        records = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Snapshot {path} is not valid JSON ({e}); starting empty")
        return []

    if not isinstance(records, list):
        logger.warning(f"Snapshot {path} is not a JSON array; starting empty")
        return []

    switches = []
    for record in records:
        try:
            switches.append(Switch.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Dropping malformed switch record {record!r}: {e}")
    return switches


class DiskStore(Store):

    def __init__(self, store: Store, path: Union[str, Path]):
        self.path = Path(path)
        self._store = store
        # Snapshot writes are serialised; each one reads the latest state
        self._write_lock = asyncio.Lock()
        # Set when a sweep removed switches but the snapshot write failed
        self._stale = False

    async def init(self) -> None:
        await self._store.init()

        switches = await asyncio.to_thread(read_switches, self.path)
        for switch in switches:
            await self._store.insert(switch)

        logger.info(f"Loaded {len(switches)} switch(es) from {self.path}")

    async def close(self) -> None:
        await self._store.close()

    async def _sync(self):
        async with self._write_lock:
            # Read inside the lock so the last write always carries the newest state
            switches = await self._store.all()
            try:
                await asyncio.to_thread(write_switches, self.path, switches)
            except OSError as e:
                logger.error(f"Failed to write snapshot {self.path}: {e}")
                raise BackendError(f"snapshot write failed: {e}") from e

    async def insert(self, switch: Switch) -> None:
        previous = await self._store.take(switch.name)
        await self._store.insert(switch)
        try:
            await self._sync()
        except BackendError:
            # Roll back so memory matches the snapshot still on disk
            await self._store.take(switch.name)
            if previous is not None:
                await self._store.insert(previous)
            raise

    async def take(self, name: str) -> Optional[Switch]:
        switch = await self._store.take(name)
        if switch is not None:
            try:
                await self._sync()
            except BackendError:
                await self._store.insert(switch)
                raise
        return switch

    async def expired(self, now: datetime) -> list[Switch]:
        """
        Expired switches are returned even when the snapshot write fails.

        Holding them back would silence their LATE notification for as
        long as the disk is broken. The file is marked stale instead and
        rewritten by the next sweep.
        """
        switches = await self._store.expired(now)
        if switches or self._stale:
            try:
                await self._sync()
            except BackendError:
                self._stale = True
            else:
                self._stale = False
        return switches

    async def all(self) -> list[Switch]:
        return await self._store.all()

# ─────────────────────────────────────────────────────────────────
# stores/redis_store.py — Shared Redis Storage
#
# Two keys, shared by every instance pointed at the same Redis:
#   condemn_z → sorted set, member = switch name, score = deadline
#   condemn_h → hash, field = switch name, value = JSON Switch
#
# Every multi-step operation runs inside MULTI/EXEC so the index and
# the payloads never disagree. A name found in the index with no
# payload is ignored, so nothing leaks as long as something keeps
# calling expired().
# ─────────────────────────────────────────────────────────────────

import logging
from datetime import datetime
from typing import Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError, WatchError

from models import Switch
from stores import BackendError, Store

logger = logging.getLogger("stores.redis")

ORDERED_KEY = "condemn_z"
SWITCH_KEY = "condemn_h"


def deserialize_switch(data) -> Optional[Switch]:
    if data is None:
        return None
    try:
        return Switch.model_validate_json(data)
    except ValidationError as e:
        logger.warning(f"Failed to deserialize switch; err={e}, data={data!r}")
        return None


class RedisStore(Store):
    """
    Store backed by a Redis sorted set plus hash.

    The client must be created with decode_responses=True.
    """

    def __init__(self, client: "redis.Redis"):
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.from_url(url, encoding="utf-8", decode_responses=True))

    async def init(self) -> None:
        try:
            await self._client.ping()
            logger.info("Redis store connected")
        except (RedisError, OSError) as e:
            # Not fatal; every operation reports its own failure
            logger.warning(f"Redis not reachable at startup: {e}")

    async def close(self) -> None:
        await self._client.aclose()

    async def insert(self, switch: Switch) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.hset(SWITCH_KEY, switch.name, switch.model_dump_json())
                pipe.zadd(ORDERED_KEY, {switch.name: switch.score})
                await pipe.execute()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis failure on insert; {e}")
            raise BackendError(str(e)) from e

    async def take(self, name: str) -> Optional[Switch]:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.hget(SWITCH_KEY, name)
                pipe.hdel(SWITCH_KEY, name)
                pipe.zrem(ORDERED_KEY, name)
                data, _, _ = await pipe.execute()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis failure on take; {e}")
            raise BackendError(str(e)) from e

        return deserialize_switch(data)

    async def expired(self, now: datetime) -> list[Switch]:
        """
        Removes and returns every switch due by `now`.

        Step 1 claims the due names from the index. Step 2 deletes only
        the payloads that are still due under WATCH, so a name another
        instance re-arms in between keeps its payload the whole time and
        is put back in the index. A concurrent write to the hash aborts
        step 2, which is then retried with fresh payloads.
        """
        cutoff = now.timestamp()
        try:
            # 1. Claim every due name and drop it from the index in one step
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.zrangebyscore(ORDERED_KEY, "-inf", cutoff)
                pipe.zremrangebyscore(ORDERED_KEY, "-inf", cutoff)
                names, _ = await pipe.execute()

            if not names:
                return []

            # 2. Delete the payloads that are still due, re-index the rest
            async with self._client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(SWITCH_KEY)
                        payloads = await pipe.hmget(SWITCH_KEY, names)

                        due, dropped, rearmed = [], [], []
                        for name, payload in zip(names, payloads):
                            if payload is None:
                                continue
                            switch = deserialize_switch(payload)
                            if switch is None:
                                dropped.append(name)
                            elif switch.score <= cutoff:
                                due.append(switch)
                                dropped.append(name)
                            else:
                                rearmed.append(switch)

                        pipe.multi()
                        if dropped:
                            pipe.hdel(SWITCH_KEY, *dropped)
                        if rearmed:
                            pipe.zadd(ORDERED_KEY, {s.name: s.score for s in rearmed})
                        await pipe.execute()
                        break
                    except WatchError:
                        logger.debug("Switches changed during expiry, retrying")
        except (RedisError, OSError) as e:
            logger.warning(f"Redis failure on expired; {e}")
            raise BackendError(str(e)) from e

        if rearmed:
            logger.info(f"Kept {len(rearmed)} switch(es) re-armed during expiry")
        return due

    async def all(self) -> list[Switch]:
        try:
            data = await self._client.hgetall(SWITCH_KEY)
        except (RedisError, OSError) as e:
            logger.warning(f"Redis failure on all; {e}")
            raise BackendError(str(e)) from e

        return [s for s in map(deserialize_switch, data.values()) if s is not None]

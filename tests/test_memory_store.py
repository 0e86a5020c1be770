"""Tests for MemoryStore index bookkeeping."""

from datetime import timedelta

import pytest


class TestIndex:

    @pytest.mark.asyncio
    async def test_take_clears_bucket(self, memory_store, make_switch):
        await memory_store.insert(make_switch("job", 10))
        await memory_store.take("job")

        assert memory_store._buckets == {}
        assert memory_store._scores == []
        assert len(memory_store) == 0

    @pytest.mark.asyncio
    async def test_reinsert_moves_bucket(self, memory_store, make_switch):
        first = make_switch("job", 10)
        second = make_switch("job", 20)
        await memory_store.insert(first)
        await memory_store.insert(second)

        assert memory_store._scores == [second.score]
        assert memory_store._buckets == {second.score: {"job"}}

    @pytest.mark.asyncio
    async def test_shared_bucket_survives_partial_take(self, memory_store, make_switch):
        await memory_store.insert(make_switch("a", 10))
        await memory_store.insert(make_switch("b", 10))
        await memory_store.take("a")

        assert list(memory_store._buckets.values()) == [{"b"}]
        assert len(memory_store._scores) == 1

    @pytest.mark.asyncio
    async def test_expired_drains_scores_in_order(self, memory_store, make_switch, now):
        for i, name in enumerate(["a", "b", "c", "d"]):
            await memory_store.insert(make_switch(name, (i + 1) * 10))

        expired = await memory_store.expired(now + timedelta(seconds=25))

        assert [s.name for s in expired] == ["a", "b"]
        assert memory_store._scores == sorted(memory_store._scores)
        assert len(memory_store._scores) == 2
        assert len(memory_store) == 2

    @pytest.mark.asyncio
    async def test_subsecond_deadlines_are_not_rounded(self, memory_store, make_switch, now):
        await memory_store.insert(make_switch("fast", 0.7))

        assert await memory_store.expired(now + timedelta(seconds=0.5)) == []
        assert len(await memory_store.expired(now + timedelta(seconds=0.7))) == 1

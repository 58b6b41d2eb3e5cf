import pytest
from redis.exceptions import ConnectionError, TimeoutError

from windowlimiter.core.errors import (
    InvalidArgumentError,
    StoreCommunicationError,
    UnexpectedReplyError,
)
from windowlimiter.rl.pipeline import AtomicBatch, as_count
from windowlimiter.rl.strategies import fixed_window, sliding_log, sliding_window

from conftest import BrokenRedis


@pytest.mark.asyncio
async def test_batch_returns_only_kept_results_in_order(fake_redis):
    res = await (
        AtomicBatch(fake_redis)
        .incrby("k", 5)
        .expire("k", 30, ignore=True)
        .get("k")
        .zadd("z", {"a": 1, "b": 2}, ignore=True)
        .zcard("z")
        .execute()
    )
    assert [as_count(v) for v in res] == [5, 5, 2]


@pytest.mark.asyncio
async def test_empty_batch_rejected(fake_redis):
    with pytest.raises(InvalidArgumentError):
        await AtomicBatch(fake_redis).execute()


@pytest.mark.asyncio
async def test_store_errors_are_wrapped_with_cause():
    cause = TimeoutError("timed out")
    batch = AtomicBatch(BrokenRedis(exc=cause)).incrby("k", 1)
    with pytest.raises(StoreCommunicationError) as ei:
        await batch.execute()
    assert ei.value.__cause__ is cause
    assert ei.value.code == "store_unavailable"


@pytest.mark.asyncio
async def test_wrong_type_reply_surfaces_as_store_error(fake_redis):
    await fake_redis.zadd("k", {"a": 1})
    with pytest.raises(StoreCommunicationError):
        await AtomicBatch(fake_redis).incrby("k", 1).execute()


@pytest.mark.asyncio
async def test_short_reply_is_unexpected():
    batch = AtomicBatch(BrokenRedis(reply=[1])).incrby("k", 1).expire("k", 1, ignore=True)
    with pytest.raises(UnexpectedReplyError):
        await batch.execute()


@pytest.mark.parametrize(
    "value,expected",
    [(None, 0), (0, 0), (7, 7), ("12", 12), (b"3", 3)],
)
def test_as_count_accepts_counter_shapes(value, expected):
    assert as_count(value) == expected


@pytest.mark.parametrize("value", ["abc", -1, 1.5, [1], True])
def test_as_count_rejects_other_shapes(value):
    with pytest.raises(UnexpectedReplyError):
        as_count(value)


@pytest.mark.asyncio
@pytest.mark.parametrize("module", [fixed_window, sliding_log, sliding_window])
async def test_strategies_propagate_store_failures(module, broken_redis, base_ms):
    with pytest.raises(StoreCommunicationError) as ei:
        await module.record(broken_redis, "test", "user1", 1, now_ms=base_ms)
    assert isinstance(ei.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_fetch_with_garbage_reply_is_unexpected(base_ms):
    redis = BrokenRedis(reply=["not-a-number"])
    with pytest.raises(UnexpectedReplyError):
        await fixed_window.fetch(redis, "test", "user1", 1, now_ms=base_ms)
    redis = BrokenRedis(reply=[["1"]])
    with pytest.raises(UnexpectedReplyError):
        await sliding_window.fetch(redis, "test", "user1", 1, now_ms=base_ms)

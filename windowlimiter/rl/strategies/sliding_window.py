"""Sliding window counter: two fixed-window buckets blended by elapsed time.

The estimate for a trailing window is the current bucket plus the previous
bucket scaled by the fraction of the current window still to run. Storage is
two integers per (resource, subject) regardless of traffic.
"""

from redis.asyncio import Redis

from windowlimiter.core.config import settings
from windowlimiter.core.errors import InvalidArgumentError, UnexpectedReplyError
from windowlimiter.rl.keys import build_key, namespace_for
from windowlimiter.rl.pipeline import AtomicBatch, as_count
from windowlimiter.rl.window import (
    current_epoch,
    now_ms as _now_ms,
    previous_epoch,
    validate_size,
    weight,
)

NAMESPACE = namespace_for(settings.KEY_PREFIX, "sliding_window")


def compute_estimate(previous: int, current: int, now_ms: int, size_sec: int) -> int:
    """``current + round(previous * weight)``, rounding half to even."""
    if previous < 0 or current < 0:
        raise InvalidArgumentError(
            f"counters must be non-negative, got previous={previous} current={current}"
        )
    return current + round(previous * weight(now_ms, size_sec))


def bucket_keys(
    resource: str, subject: str, size_sec: int, now_ms: int, namespace: str = NAMESPACE
) -> tuple[str, str]:
    prev_key = build_key(namespace, resource, subject, previous_epoch(now_ms, size_sec))
    cur_key = build_key(namespace, resource, subject, current_epoch(now_ms, size_sec))
    return prev_key, cur_key


async def record(
    redis: Redis,
    resource: str,
    subject: str,
    size_sec: int,
    *,
    namespace: str = NAMESPACE,
    now_ms: int | None = None,
) -> int:
    validate_size(size_sec)
    if now_ms is None:
        now_ms = _now_ms()
    prev_key, cur_key = bucket_keys(resource, subject, size_sec, now_ms, namespace)
    # Current bucket must survive one extra window to be read as "previous"
    res = await (
        AtomicBatch(redis)
        .get(prev_key)
        .incrby(cur_key, 1)
        .expire(cur_key, 2 * size_sec, ignore=True)
        .execute()
    )
    previous, current = as_count(res[0]), as_count(res[1])
    return compute_estimate(previous, current, now_ms, size_sec)


async def fetch(
    redis: Redis,
    resource: str,
    subject: str,
    size_sec: int,
    *,
    namespace: str = NAMESPACE,
    now_ms: int | None = None,
) -> int:
    validate_size(size_sec)
    if now_ms is None:
        now_ms = _now_ms()
    prev_key, cur_key = bucket_keys(resource, subject, size_sec, now_ms, namespace)
    res = await AtomicBatch(redis).mget([prev_key, cur_key]).execute()
    values = res[0]
    if not isinstance(values, (list, tuple)) or len(values) != 2:
        raise UnexpectedReplyError(f"expected two bucket values, got {values!r}")
    return compute_estimate(as_count(values[0]), as_count(values[1]), now_ms, size_sec)

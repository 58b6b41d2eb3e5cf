"""Sliding log: one sorted-set entry per event, trimmed to the trailing window.

Members are ``<now_ms>:<random hex>`` scored by ``now_ms`` so that two events
landing in the same millisecond are both kept.
"""

from uuid import uuid4

from redis.asyncio import Redis

from windowlimiter.core.config import settings
from windowlimiter.rl.keys import build_key, namespace_for
from windowlimiter.rl.pipeline import AtomicBatch, as_count
from windowlimiter.rl.window import now_ms as _now_ms, validate_size

NAMESPACE = namespace_for(settings.KEY_PREFIX, "sliding_log")


def log_key(resource: str, subject: str, namespace: str = NAMESPACE) -> str:
    return build_key(namespace, resource, subject)


def log_member(now_ms: int) -> str:
    return f"{now_ms}:{uuid4().hex}"


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
    key = log_key(resource, subject, namespace)
    cutoff = now_ms - size_sec * 1000
    res = await (
        AtomicBatch(redis)
        .zremrangebyscore(key, 0, cutoff, ignore=True)
        .zadd(key, {log_member(now_ms): now_ms}, ignore=True)
        .zcard(key)
        .expire(key, size_sec, ignore=True)
        .execute()
    )
    return as_count(res[0])


async def fetch(
    redis: Redis,
    resource: str,
    subject: str,
    size_sec: int | None = None,
    *,
    namespace: str = NAMESPACE,
    now_ms: int | None = None,
) -> int:
    """Count log entries without mutating the log.

    Without ``size_sec`` this is the raw cardinality, which may include
    entries a subsequent ``record`` would trim. With ``size_sec`` only
    entries newer than ``now_ms - size_sec`` are counted, matching the
    boundary ``record`` trims at.
    """
    key = log_key(resource, subject, namespace)
    if size_sec is None:
        res = await AtomicBatch(redis).zcard(key).execute()
        return as_count(res[0])
    validate_size(size_sec)
    if now_ms is None:
        now_ms = _now_ms()
    cutoff = now_ms - size_sec * 1000
    res = await AtomicBatch(redis).zcount(key, f"({cutoff}", "+inf").execute()
    return as_count(res[0])

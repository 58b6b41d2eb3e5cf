from redis.asyncio import Redis

from windowlimiter.core.config import settings
from windowlimiter.rl.keys import build_key, namespace_for
from windowlimiter.rl.pipeline import AtomicBatch, as_count
from windowlimiter.rl.window import current_epoch, now_ms as _now_ms, validate_size

NAMESPACE = namespace_for(settings.KEY_PREFIX, "fixed_window")


def window_key(
    resource: str, subject: str, size_sec: int, now_ms: int, namespace: str = NAMESPACE
) -> str:
    return build_key(namespace, resource, subject, current_epoch(now_ms, size_sec))


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
    key = window_key(resource, subject, size_sec, now_ms, namespace)
    # TTL is refreshed on every hit; the epoch in the key rolls over anyway
    res = await (
        AtomicBatch(redis)
        .incrby(key, 1)
        .expire(key, size_sec, ignore=True)
        .execute()
    )
    return as_count(res[0])


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
    key = window_key(resource, subject, size_sec, now_ms, namespace)
    res = await AtomicBatch(redis).get(key).execute()
    return as_count(res[0])

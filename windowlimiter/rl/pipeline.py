from __future__ import annotations

from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from windowlimiter.core.errors import (
    InvalidArgumentError,
    StoreCommunicationError,
    UnexpectedReplyError,
)
from windowlimiter.core.logging import get_logger
from windowlimiter.observability.metrics import STORE_ERRORS_TOTAL

log = get_logger("rl.pipeline")


def as_count(value: Any) -> int:
    """Coerce a store reply into a non-negative counter value."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise UnexpectedReplyError(f"expected an integer reply, got {value!r}")
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="replace")
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError:
            raise UnexpectedReplyError(
                f"expected an integer reply, got {value!r}"
            ) from None
    if not isinstance(value, int) or value < 0:
        raise UnexpectedReplyError(f"expected a counter value, got {value!r}")
    return value


class AtomicBatch:
    """Ordered store commands executed as one MULTI/EXEC transaction.

    Steps queued with ``ignore=True`` still run but their results are
    dropped from the list returned by :meth:`execute`.
    """

    def __init__(self, redis: Redis):
        self.redis = redis
        self._steps: list[tuple[str, tuple, dict, bool]] = []

    def __len__(self) -> int:
        return len(self._steps)

    def add(self, command: str, *args, ignore: bool = False, **kwargs) -> "AtomicBatch":
        self._steps.append((command, args, kwargs, ignore))
        return self

    def incrby(self, key: str, amount: int = 1, *, ignore: bool = False):
        return self.add("incrby", key, amount, ignore=ignore)

    def expire(self, key: str, seconds: int, *, ignore: bool = False):
        return self.add("expire", key, seconds, ignore=ignore)

    def get(self, key: str, *, ignore: bool = False):
        return self.add("get", key, ignore=ignore)

    def mget(self, keys: list[str], *, ignore: bool = False):
        return self.add("mget", keys, ignore=ignore)

    def zremrangebyscore(self, key: str, min_score, max_score, *, ignore: bool = False):
        return self.add("zremrangebyscore", key, min_score, max_score, ignore=ignore)

    def zadd(self, key: str, mapping: dict[str, float], *, ignore: bool = False):
        return self.add("zadd", key, mapping, ignore=ignore)

    def zcard(self, key: str, *, ignore: bool = False):
        return self.add("zcard", key, ignore=ignore)

    def zcount(self, key: str, min_score, max_score, *, ignore: bool = False):
        return self.add("zcount", key, min_score, max_score, ignore=ignore)

    async def execute(self) -> list:
        if not self._steps:
            raise InvalidArgumentError("cannot execute an empty batch")
        commands = [name for name, _, _, _ in self._steps]
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                for name, args, kwargs, _ in self._steps:
                    getattr(pipe, name)(*args, **kwargs)
                raw = await pipe.execute()
        except RedisError as exc:
            STORE_ERRORS_TOTAL.labels(kind=StoreCommunicationError.code).inc()
            log.bind(commands=commands, error=type(exc).__name__).warning(
                "store.batch_failed"
            )
            raise StoreCommunicationError(
                f"atomic batch {commands} failed: {exc}"
            ) from exc

        if not isinstance(raw, (list, tuple)) or len(raw) != len(self._steps):
            STORE_ERRORS_TOTAL.labels(kind=UnexpectedReplyError.code).inc()
            log.bind(commands=commands, reply=repr(raw)).error("store.reply_shape")
            raise UnexpectedReplyError(
                f"expected {len(self._steps)} results for {commands}, got {raw!r}"
            )
        return [res for res, step in zip(raw, self._steps) if not step[3]]

from __future__ import annotations

import math
import time
from typing import Callable, Optional

from redis.asyncio import Redis

from windowlimiter.core.config import Settings, settings as global_settings
from windowlimiter.core.errors import InvalidArgumentError, RateLimitError
from windowlimiter.core.logging import get_logger
from windowlimiter.rl.keys import namespace_for
from windowlimiter.rl.schemas import Algorithm, CheckDecision
from windowlimiter.rl.strategies import fixed_window, sliding_log, sliding_window
from windowlimiter.rl.window import now_ms as _now_ms, validate_size, window_reset_at
from windowlimiter.observability.metrics import (
    OPERATION_LATENCY_MS,
    OPERATIONS_TOTAL,
    update_redis_pool_gauge,
)

log = get_logger("rl.engine")


def _algorithm(value: Algorithm | str) -> Algorithm:
    try:
        return value if isinstance(value, Algorithm) else Algorithm(str(value))
    except ValueError:
        raise InvalidArgumentError(f"unknown algorithm: {value!r}") from None


class RateLimiter:
    """Record and fetch window counts against a shared Redis store.

    Holds nothing but the client and the per-algorithm key namespaces, so a
    single instance can serve many concurrent tasks.
    """

    def __init__(self, redis: Redis, settings: Optional[Settings] = None):
        self.redis = redis
        self.settings = settings or global_settings
        prefix = self.settings.KEY_PREFIX
        self._namespaces = {alg: namespace_for(prefix, alg.value) for alg in Algorithm}
        self._record: dict[Algorithm, Callable] = {
            Algorithm.fixed_window: fixed_window.record,
            Algorithm.sliding_log: sliding_log.record,
            Algorithm.sliding_window: sliding_window.record,
        }
        self._fetch: dict[Algorithm, Callable] = {
            Algorithm.fixed_window: fixed_window.fetch,
            Algorithm.sliding_log: sliding_log.fetch,
            Algorithm.sliding_window: sliding_window.fetch,
        }

    @classmethod
    def create(cls, redis_url: str | None = None, settings: Optional[Settings] = None):
        settings = settings or global_settings
        redis = Redis.from_url(redis_url or settings.REDIS_URL, decode_responses=True)
        return cls(redis, settings=settings)

    async def close(self) -> None:
        await self.redis.aclose()

    async def _run(
        self,
        operation: str,
        algorithm: Algorithm,
        resource: str,
        subject: str,
        size_sec: Optional[int],
        now_ms: Optional[int],
    ) -> int:
        table = self._record if operation == "record" else self._fetch
        start = time.perf_counter()
        outcome = "error"
        try:
            count = await table[algorithm](
                self.redis,
                resource,
                subject,
                size_sec,
                namespace=self._namespaces[algorithm],
                now_ms=now_ms,
            )
            outcome = "ok"
            return count
        except RateLimitError as exc:
            outcome = exc.code
            raise
        finally:
            dur_ms = (time.perf_counter() - start) * 1000.0
            OPERATION_LATENCY_MS.labels(
                algorithm=algorithm.value, operation=operation
            ).observe(dur_ms)
            OPERATIONS_TOTAL.labels(
                algorithm=algorithm.value, operation=operation, outcome=outcome
            ).inc()
            update_redis_pool_gauge(self.redis)
            log.bind(
                alg=algorithm.value,
                op=operation,
                resource=resource,
                sub=subject,
                outcome=outcome,
                count=locals().get("count"),
            ).debug("limiter.op")

    async def record(
        self,
        algorithm: Algorithm | str,
        resource: str,
        subject: str,
        size_sec: Optional[int] = None,
        *,
        now_ms: Optional[int] = None,
    ) -> int:
        alg = _algorithm(algorithm)
        if size_sec is None:
            size_sec = self.settings.DEFAULT_WINDOW_SECONDS
        return await self._run("record", alg, resource, subject, size_sec, now_ms)

    async def fetch(
        self,
        algorithm: Algorithm | str,
        resource: str,
        subject: str,
        size_sec: Optional[int] = None,
        *,
        now_ms: Optional[int] = None,
    ) -> int:
        alg = _algorithm(algorithm)
        # the sliding log reports raw cardinality when no window is given
        if size_sec is None and alg is not Algorithm.sliding_log:
            size_sec = self.settings.DEFAULT_WINDOW_SECONDS
        return await self._run("fetch", alg, resource, subject, size_sec, now_ms)

    async def record_fixed_window(self, resource, subject, size_sec, *, now_ms=None):
        return await self.record(
            Algorithm.fixed_window, resource, subject, size_sec, now_ms=now_ms
        )

    async def fetch_fixed_window(self, resource, subject, size_sec, *, now_ms=None):
        return await self.fetch(
            Algorithm.fixed_window, resource, subject, size_sec, now_ms=now_ms
        )

    async def record_sliding_log(self, resource, subject, size_sec, *, now_ms=None):
        return await self.record(
            Algorithm.sliding_log, resource, subject, size_sec, now_ms=now_ms
        )

    async def fetch_sliding_log(self, resource, subject, size_sec=None, *, now_ms=None):
        return await self.fetch(
            Algorithm.sliding_log, resource, subject, size_sec, now_ms=now_ms
        )

    async def record_sliding_window(self, resource, subject, size_sec, *, now_ms=None):
        return await self.record(
            Algorithm.sliding_window, resource, subject, size_sec, now_ms=now_ms
        )

    async def fetch_sliding_window(self, resource, subject, size_sec, *, now_ms=None):
        return await self.fetch(
            Algorithm.sliding_window, resource, subject, size_sec, now_ms=now_ms
        )

    async def check(
        self,
        algorithm: Algorithm | str,
        resource: str,
        subject: str,
        size_sec: Optional[int] = None,
        *,
        limit: int,
        now_ms: Optional[int] = None,
    ) -> CheckDecision:
        """Record one event and compare the resulting count with ``limit``.

        Blocked attempts are still recorded.
        """
        alg = _algorithm(algorithm)
        if limit < 0:
            raise InvalidArgumentError(f"limit must be non-negative, got {limit}")
        if size_sec is None:
            size_sec = self.settings.DEFAULT_WINDOW_SECONDS
        validate_size(size_sec)
        if now_ms is None:
            now_ms = _now_ms()
        count = await self.record(alg, resource, subject, size_sec, now_ms=now_ms)
        allowed = count <= limit
        remaining = max(0, limit - count)
        if alg is Algorithm.sliding_log:
            # the newest entry leaves the log one full window from now
            reset_at = math.ceil((now_ms + size_sec * 1000) / 1000)
        else:
            reset_at = window_reset_at(now_ms, size_sec)
        retry_after_ms = 0 if allowed else max(0, reset_at * 1000 - now_ms)
        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_at),
            "Retry-After": str(math.ceil(retry_after_ms / 1000)),
        }
        return CheckDecision(
            allowed=allowed,
            count=count,
            remaining=remaining,
            limit=limit,
            reset_at=reset_at,
            retry_after_ms=retry_after_ms,
            algorithm=alg.value,
            headers=headers,
        )

    @staticmethod
    def headers(decision: CheckDecision) -> dict[str, str]:
        return decision.headers

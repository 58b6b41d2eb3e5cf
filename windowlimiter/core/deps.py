from functools import lru_cache
from typing import Optional

from fastapi import Depends
from redis.asyncio import Redis

from windowlimiter.core.config import settings
from windowlimiter.rl.engine import RateLimiter


@lru_cache()
def _redis_client() -> Redis:
    return Redis.from_url(settings.REDIS_URL, decode_responses=True)


async def get_redis() -> Redis:
    return _redis_client()


_limiter_singleton: Optional[RateLimiter] = None


def get_limiter(redis: Redis = Depends(get_redis)) -> RateLimiter:
    global _limiter_singleton
    if _limiter_singleton is None:
        _limiter_singleton = RateLimiter(redis=redis, settings=settings)
    return _limiter_singleton

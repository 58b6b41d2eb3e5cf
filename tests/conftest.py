import os
import sys
import pytest
import pytest_asyncio

# Ensure project root on path
sys.path.insert(0, os.getcwd())

import httpx

from windowlimiter.main import app
from windowlimiter.core.deps import (
    get_redis as _get_redis_dep,
    get_limiter as _get_limiter_dep,
)
from windowlimiter.rl.engine import RateLimiter

# Second-aligned instant so epochs are easy to reason about
BASE_MS = 1_700_000_000_000


@pytest.fixture()
def base_ms() -> int:
    return BASE_MS


@pytest_asyncio.fixture()
async def fake_redis():
    try:
        from fakeredis.aioredis import FakeRedis
    except Exception as e:
        pytest.skip(f"fakeredis not available: {e}")
    r = FakeRedis(decode_responses=True)
    await r.flushall()
    yield r
    await r.aclose()


class BrokenPipeline:
    """Pipeline stand-in whose transaction always fails with ``exc``."""

    def __init__(self, exc=None, reply=None):
        self.exc = exc
        self.reply = reply

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def __getattr__(self, name):
        return lambda *args, **kwargs: self

    async def execute(self):
        if self.exc is not None:
            raise self.exc
        return self.reply


class BrokenRedis:
    def __init__(self, exc=None, reply=None):
        self._pipe = BrokenPipeline(exc=exc, reply=reply)

    def pipeline(self, transaction=True):
        return self._pipe


@pytest.fixture()
def broken_redis():
    from redis.exceptions import ConnectionError

    return BrokenRedis(exc=ConnectionError("connection refused"))


@pytest_asyncio.fixture()
async def async_client(fake_redis):
    # Attach test redis to app state to avoid deepcopy of lock objects
    app.state._test_redis = fake_redis

    from fastapi import Request

    async def _override_get_redis(request: Request):
        return request.app.state._test_redis

    def _override_get_limiter(request: Request):
        return RateLimiter(redis=request.app.state._test_redis)

    app.dependency_overrides[_get_redis_dep] = _override_get_redis
    app.dependency_overrides[_get_limiter_dep] = _override_get_limiter

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()

import pytest

from windowlimiter.main import app
from windowlimiter.core.deps import get_limiter
from windowlimiter.rl.engine import RateLimiter

from conftest import BrokenRedis


@pytest.mark.asyncio
async def test_delimiter_in_subject_is_422(async_client):
    r = await async_client.post(
        "/v1/record",
        json={"algorithm": "fixed_window", "resource": "orders", "subject": "user:1"},
    )
    assert r.status_code == 422
    assert r.json()["error"] == "invalid_argument"


@pytest.mark.asyncio
async def test_zero_window_is_422(async_client):
    r = await async_client.get(
        "/v1/count",
        params={
            "algorithm": "fixed_window",
            "resource": "orders",
            "subject": "user1",
            "window_sec": 0,
        },
    )
    assert r.status_code == 422
    assert r.json()["error"] == "invalid_argument"


@pytest.mark.asyncio
async def test_store_down_is_503(async_client, broken_redis):
    app.dependency_overrides[get_limiter] = lambda: RateLimiter(redis=broken_redis)
    r = await async_client.post(
        "/v1/check",
        json={"algorithm": "fixed_window", "resource": "orders", "subject": "u", "limit": 5},
    )
    assert r.status_code == 503
    assert r.json()["error"] == "store_unavailable"


@pytest.mark.asyncio
async def test_bad_reply_is_502(async_client):
    broken = BrokenRedis(reply=[])
    app.dependency_overrides[get_limiter] = lambda: RateLimiter(redis=broken)
    r = await async_client.post(
        "/v1/record",
        json={"algorithm": "sliding_window", "resource": "orders", "subject": "u"},
    )
    assert r.status_code == 502
    assert r.json()["error"] == "unexpected_reply"

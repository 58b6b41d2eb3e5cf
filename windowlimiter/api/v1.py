from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from windowlimiter.core.deps import get_limiter
from windowlimiter.rl.engine import RateLimiter
from windowlimiter.rl.schemas import (
    Algorithm,
    CheckDecision,
    CheckRequest,
    CountResponse,
    RecordRequest,
)
from windowlimiter.observability.metrics import REQUESTS_TOTAL
from windowlimiter.core.logging import get_logger
from windowlimiter.core.config import settings

router = APIRouter()
log = get_logger("api.v1")


@router.get("/health")
async def health():
    log.info("health")
    REQUESTS_TOTAL.labels(route="/v1/health", outcome="success").inc()
    return {"status": "ok", "version": settings.APP_VERSION}


@router.post("/record", response_model=CountResponse)
async def record(
    payload: RecordRequest,
    limiter: RateLimiter = Depends(get_limiter),
):
    window = (
        payload.window_sec
        if payload.window_sec is not None
        else settings.DEFAULT_WINDOW_SECONDS
    )
    count = await limiter.record(
        payload.algorithm, payload.resource, payload.subject, window
    )
    REQUESTS_TOTAL.labels(route="/v1/record", outcome="success").inc()
    log.bind(
        resource=payload.resource,
        sub=payload.subject,
        alg=payload.algorithm.value,
        count=count,
    ).info("record")
    return CountResponse(
        algorithm=payload.algorithm,
        resource=payload.resource,
        subject=payload.subject,
        window_sec=window,
        count=count,
    )


@router.get("/count", response_model=CountResponse)
async def count(
    algorithm: Algorithm,
    resource: str,
    subject: str,
    window_sec: Optional[int] = Query(None),
    limiter: RateLimiter = Depends(get_limiter),
):
    value = await limiter.fetch(algorithm, resource, subject, window_sec)
    REQUESTS_TOTAL.labels(route="/v1/count", outcome="success").inc()
    return CountResponse(
        algorithm=algorithm,
        resource=resource,
        subject=subject,
        window_sec=window_sec,
        count=value,
    )


@router.post("/check", response_model=CheckDecision)
async def check_rate_limit(
    payload: CheckRequest,
    response: Response,
    limiter: RateLimiter = Depends(get_limiter),
):
    decision = await limiter.check(
        payload.algorithm,
        payload.resource,
        payload.subject,
        payload.window_sec,
        limit=payload.limit,
    )

    for k, v in decision.headers.items():
        response.headers[k] = v

    if decision.allowed:
        REQUESTS_TOTAL.labels(route="/v1/check", outcome="allowed").inc()
    else:
        REQUESTS_TOTAL.labels(route="/v1/check", outcome="blocked").inc()
        response.status_code = 429

    log.bind(
        resource=payload.resource,
        sub=payload.subject,
        alg=decision.algorithm,
        allowed=decision.allowed,
        remaining=decision.remaining,
    ).info("check")
    return decision

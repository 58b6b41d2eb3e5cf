from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from prometheus_client import make_asgi_app

from windowlimiter.core.config import settings
from windowlimiter.core.errors import (
    InvalidArgumentError,
    RateLimitError,
    StoreCommunicationError,
    UnexpectedReplyError,
)
from windowlimiter.api.v1 import router as api_v1
from windowlimiter.observability.metrics import REQUESTS_TOTAL
from windowlimiter.observability.tracing import setup_tracing, instrument_fastapi
from windowlimiter.core.logging import setup_logging, get_logger


setup_logging()

app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION)
log = get_logger("windowlimiter.main")

_STATUS = {
    InvalidArgumentError: 422,
    StoreCommunicationError: 503,
    UnexpectedReplyError: 502,
}


@app.exception_handler(RateLimitError)
async def rate_limit_error_handler(request: Request, exc: RateLimitError):
    status = next(
        (code for cls, code in _STATUS.items() if isinstance(exc, cls)), 500
    )
    REQUESTS_TOTAL.labels(route=request.url.path, outcome=exc.code).inc()
    log.bind(path=request.url.path, code=exc.code, status=status).warning(
        exc.message
    )
    return JSONResponse(
        status_code=status, content={"error": exc.code, "detail": exc.message}
    )


# API
app.include_router(api_v1, prefix="/v1")

# Metrics
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.on_event("startup")
async def on_startup():
    log.bind(
        env=settings.APP_ENV, version=settings.APP_VERSION, level=settings.LOG_LEVEL
    ).info("startup")
    setup_tracing()
    instrument_fastapi(app)


@app.on_event("shutdown")
async def on_shutdown():
    log.info("shutdown")

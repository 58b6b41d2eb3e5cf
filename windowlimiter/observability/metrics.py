from __future__ import annotations

from prometheus_client import Counter, Histogram, Gauge

from windowlimiter.core.config import settings

_NS = settings.METRICS_NAMESPACE

REQUESTS_TOTAL = Counter(
    "requests_total",
    "Total HTTP requests",
    labelnames=("route", "outcome"),
    namespace=_NS,
)

OPERATIONS_TOTAL = Counter(
    "operations_total",
    "Limiter operations by algorithm and outcome",
    labelnames=("algorithm", "operation", "outcome"),
    namespace=_NS,
)

OPERATION_LATENCY_MS = Histogram(
    "operation_latency_ms",
    "Limiter operation latency in milliseconds (one store round trip)",
    labelnames=("algorithm", "operation"),
    namespace=_NS,
)

STORE_ERRORS_TOTAL = Counter(
    "store_errors_total",
    "Failed atomic batches by error kind",
    labelnames=("kind",),
    namespace=_NS,
)

REDIS_POOL_IN_USE = Gauge(
    "redis_pool_in_use",
    "Approximate number of Redis pool connections in use",
    namespace=_NS,
)


def update_redis_pool_gauge(redis_client) -> None:
    try:
        pool = getattr(redis_client, "connection_pool", None)
        if pool is None:
            return
        in_use = 0
        # Best-effort across redis-py versions
        if hasattr(pool, "_in_use_connections"):
            in_use = len(pool._in_use_connections)  # type: ignore[attr-defined]
        elif hasattr(pool, "_created_connections") and hasattr(
            pool, "_available_connections"
        ):
            created = pool._created_connections  # type: ignore[attr-defined]
            created = created if isinstance(created, int) else len(created)
            available = len(pool._available_connections)  # type: ignore[attr-defined]
            in_use = max(created - available, 0)
        REDIS_POOL_IN_USE.set(in_use)
    except Exception:
        # Optional metric; ignore failures
        pass

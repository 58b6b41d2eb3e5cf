from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from windowlimiter.core.config import settings
from windowlimiter.core.logging import get_logger

log = get_logger("observability.tracing")


def setup_tracing():
    endpoint = settings.OTEL_EXPORTER_OTLP_ENDPOINT
    if not endpoint:
        return
    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.OTEL_SERVICE_NAME})
    )
    exporter = OTLPSpanExporter(endpoint=endpoint)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    log.bind(endpoint=endpoint).info("tracing.enabled")


def instrument_fastapi(app):
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        return
    try:
        FastAPIInstrumentor.instrument_app(app)
    except Exception as exc:
        log.bind(error=str(exc)).warning("tracing.instrument_failed")

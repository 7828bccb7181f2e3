"""
OpenTelemetry tracing.

Spans opened through `get_tracer()` before `setup_tracing()` runs go to the
API's no-op provider, so the core can be used without any exporter.
"""

from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

from washq import __version__
from washq.config import get_settings

_tracer: Tracer | None = None


def setup_tracing(enable_console_export: bool = False) -> Tracer:
    """
    Install a tracer provider exporting to the configured OTLP collector.

    Args:
        enable_console_export: Also print finished spans to stdout.

    Returns:
        The service tracer.
    """
    global _tracer

    settings = get_settings()
    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": __version__,
            }
        )
    )

    if settings.otel_exporter_otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)
            )
        )
    if enable_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(settings.otel_service_name)
    return _tracer


def instrument_fastapi(app: Any) -> None:
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine: Any) -> None:
    """Trace queries on a sync engine (``AsyncEngine.sync_engine`` for async ones)."""
    SQLAlchemyInstrumentor().instrument(engine=engine)


def get_tracer() -> Tracer:
    if _tracer is None:
        return trace.get_tracer(get_settings().otel_service_name)
    return _tracer

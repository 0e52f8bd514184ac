"""
OpenTelemetry tracing for the document service.

Disabled unless ``OTEL_ENABLED=true``. When disabled ``get_tracer`` still
returns a usable no-op tracer, so storage and pipeline code can open spans
unconditionally.

Environment Variables:
    OTEL_ENABLED: "true" to enable tracing (default: false)
    OTEL_SERVICE_NAME: Override service name (default: recruit-document-service)
    OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint (optional, console otherwise)
"""

import logging
import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Tracer

logger = logging.getLogger("Recruit.Tracing")

DEFAULT_SERVICE_NAME = "recruit-document-service"

_tracer_provider: Optional[TracerProvider] = None
_is_initialized = False


def is_tracing_enabled() -> bool:
    return os.getenv("OTEL_ENABLED", "false").lower() == "true"


def setup_tracing(service_name: Optional[str] = None) -> Optional[TracerProvider]:
    """
    Install a TracerProvider with a batch span processor.

    Returns:
        The configured TracerProvider, or None if tracing is disabled.
    """
    global _tracer_provider, _is_initialized

    if _is_initialized:
        return _tracer_provider

    if not is_tracing_enabled():
        logger.info("OpenTelemetry tracing is disabled (set OTEL_ENABLED=true to enable)")
        _is_initialized = True
        return None

    effective_service_name = service_name or os.getenv("OTEL_SERVICE_NAME") or DEFAULT_SERVICE_NAME
    _tracer_provider = TracerProvider(resource=Resource.create({SERVICE_NAME: effective_service_name}))

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        logger.info(f"Using OTLP exporter with endpoint: {otlp_endpoint}")
    else:
        exporter = ConsoleSpanExporter()
        logger.info("Using Console exporter for trace output")

    _tracer_provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(_tracer_provider)

    _is_initialized = True
    logger.info(f"OpenTelemetry tracing initialized for service: {effective_service_name}")
    return _tracer_provider


def get_tracer(name: str) -> Tracer:
    """Tracer for custom spans; a no-op tracer when tracing is off."""
    return trace.get_tracer(name)


def instrument_app(app) -> None:
    """Trace every incoming HTTP request of a FastAPI application."""
    if not is_tracing_enabled():
        logger.debug("Tracing disabled, skipping FastAPI instrumentation")
        return

    FastAPIInstrumentor.instrument_app(app)
    logger.info("FastAPI instrumentation enabled")


def shutdown_tracing() -> None:
    """Flush pending spans and drop the provider."""
    global _tracer_provider, _is_initialized

    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        logger.info("OpenTelemetry tracing shut down")

    _tracer_provider = None
    _is_initialized = False

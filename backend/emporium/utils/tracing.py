"""OpenTelemetry tracing bootstrap.

Opt-in: nothing is exported unless ``OTLP_ENDPOINT`` is configured.  Without
a provider, :func:`get_tracer` hands back the global no-op tracer, so spans in
service code cost nothing.

``OTLP_ENDPOINT`` is the base OTLP HTTP collector URL, e.g.
``http://localhost:4318``; ``/v1/traces`` is appended automatically.  A full
signal URL is accepted as well.
"""

from __future__ import annotations

import logging
import re

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger("emporium.tracing")

_tracer_provider: TracerProvider | None = None


def _resolve_endpoint(base: str | None, signal: str) -> str | None:
    """Normalise *base* to ``<base>/v1/<signal>``; ``None`` when *base* is falsy."""
    if not base:
        return None
    clean = re.sub(r"/v1/[^/]+$", "", base.rstrip("/"))
    return f"{clean}/v1/{signal}"


def setup_tracing(
    app=None,
    otlp_endpoint: str | None = None,
    service_name: str = "emporium-backend",
    service_version: str = "0.1.0",
) -> TracerProvider | None:
    """Install an OTLP span exporter and instrument *app* when an endpoint is set."""
    global _tracer_provider

    traces_ep = _resolve_endpoint(otlp_endpoint, "traces")
    if not traces_ep:
        logger.info("OpenTelemetry disabled, no OTLP endpoint configured.")
        return None

    resource = Resource.create({
        "service.name": service_name,
        "service.version": service_version,
    })
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_ep)))
    trace.set_tracer_provider(provider)
    _tracer_provider = provider
    if app is not None:
        FastAPIInstrumentor.instrument_app(app)
    logger.info("OTEL traces -> %s", traces_ep)
    return provider


def shutdown_tracing() -> None:
    global _tracer_provider
    if _tracer_provider is not None:
        _tracer_provider.shutdown()
        _tracer_provider = None


def get_tracer(name: str):
    """Return a tracer; the global no-op tracer when no provider is configured."""
    return trace.get_tracer(name)

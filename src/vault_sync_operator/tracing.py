"""OpenTelemetry spans around reconcile, plan and Vault commit."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Tracer

from . import __version__
from .constants import CONTROLLER_NAME
from .models import TargetRef

logger = logging.getLogger(__name__)

_tracer: Tracer | None = None


def tracing_enabled() -> bool:
    return os.getenv("OTEL_TRACES_ENABLED", "true").strip().lower() not in ("0", "false", "no")


def initialize_tracing(service_name: str = CONTROLLER_NAME) -> Tracer | None:
    """Install an OTLP-exporting tracer provider.

    Honors ``OTEL_TRACES_ENABLED``, ``OTEL_SERVICE_NAME`` and
    ``OTEL_EXPORTER_OTLP_ENDPOINT``. Returns the tracer, or None when
    tracing is off or could not be set up.
    """
    global _tracer

    if not tracing_enabled():
        logger.info("Tracing disabled via OTEL_TRACES_ENABLED")
        return None

    service_name = os.getenv("OTEL_SERVICE_NAME", service_name)
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
    try:
        provider = TracerProvider(
            resource=Resource.create({"service.name": service_name, "service.version": __version__})
        )
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)
    except Exception as e:
        # A broken collector config only costs us spans
        logger.warning(f"Failed to initialize tracing against {endpoint}: {e}")
        return None

    _tracer = trace.get_tracer(service_name, __version__)
    return _tracer


def get_tracer() -> Tracer | None:
    return _tracer


def target_attributes(ref: TargetRef) -> dict[str, str]:
    """Span attributes identifying a sync target."""
    return {
        "k8s.object.kind": ref.kind,
        "k8s.namespace.name": ref.namespace,
        "k8s.object.name": ref.name,
    }


@contextmanager
def trace_span(
    name: str,
    ref: TargetRef | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span | None]:
    """Run a block inside a span; yields None when tracing is off.

    Exceptions are recorded on the span and re-raised.
    """
    if _tracer is None:
        yield None
        return

    attrs = target_attributes(ref) if ref is not None else {}
    attrs.update(attributes or {})
    with _tracer.start_as_current_span(name, attributes=attrs, record_exception=False) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, type(e).__name__))
            raise


def add_span_attribute(key: str, value: Any) -> None:
    """Set an attribute on the current span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attribute(key, value)

"""
OpenTelemetry Trace Management

Provides tracer setup and span helpers so every RPC call shows up as a span
with its method, transport and outcome.
"""

import logging
from typing import Any, Dict, Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

logger = logging.getLogger(__name__)

TRACER_NAME = "shelly_comm"


def setup_tracer(service_name: str, otlp_endpoint: str = "localhost:4317",
                 exporter: Optional[SpanExporter] = None):
    """Configure OpenTelemetry tracer

    Args:
        service_name: Service name
        otlp_endpoint: OTLP receiver address
        exporter: Span exporter to use instead of OTLP

    Returns:
        Tracer: Tracer for the service
    """
    provider = TracerProvider(sampler=ALWAYS_ON)

    if exporter is None:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
    provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    tracer = trace.get_tracer(service_name)

    logger.info(f"OpenTelemetry trace configured, service name: {service_name}, OTLP endpoint: {otlp_endpoint}")

    return tracer


def get_current_trace_context() -> Optional[Dict[str, Any]]:
    """Get the active span context in dictionary form

    Returns:
        Dict[str, Any]: trace_id, span_id and sampled flag, or None without an active span
    """
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None

    return {
        "trace_id": span_context.trace_id.to_bytes(16, byteorder="big").hex(),
        "span_id": span_context.span_id.to_bytes(8, byteorder="big").hex(),
        "sampled": span_context.trace_flags.sampled,
    }


def create_span(name: str, attributes: Dict[str, Any] = None, kind: trace.SpanKind = trace.SpanKind.CLIENT):
    """Create new span

    Args:
        name: Span name
        attributes: Span attributes
        kind: Span kind (client by default)

    Returns:
        Context manager yielding the span
    """
    tracer = trace.get_tracer(TRACER_NAME)
    return tracer.start_as_current_span(
        name,
        attributes=attributes or {},
        kind=kind,
    )


def mark_error(span, exc: BaseException, error_type: str) -> None:
    """Tag a span with the failure kind; the exception itself is recorded when it leaves the span"""
    span.set_attribute("rpc.error_type", error_type)
    span.set_status(trace.Status(trace.StatusCode.ERROR, str(exc)))

"""
OpenTelemetry Integration Module

Provides distributed tracing and metrics collection for RPC calls:
- tracer: Tracer setup and span helpers
- metrics: Request counters and latency histograms
"""

from .tracer import (
    setup_tracer,
    get_current_trace_context,
    create_span,
    mark_error
)
from .metrics import (
    setup_metrics,
    get_counter,
    get_histogram,
    increment_counter,
    record_latency
)

__all__ = [
    "setup_tracer",
    "get_current_trace_context",
    "create_span",
    "mark_error",
    "setup_metrics",
    "get_counter",
    "get_histogram",
    "increment_counter",
    "record_latency"
]

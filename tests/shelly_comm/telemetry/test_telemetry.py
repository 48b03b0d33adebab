"""
Telemetry tests: spans and metrics recorded by RPC calls
"""

import pytest
from opentelemetry import trace
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from shelly_comm.adapters.mock.client import MockTransport
from shelly_comm.rpc.client import RPCClient
from shelly_comm.rpc.errors import RPCError, TransportClosedError
from shelly_comm.telemetry import create_span, get_current_trace_context, setup_metrics, setup_tracer

# Global providers can only be installed once per process
EXPORTER = InMemorySpanExporter()
READER = InMemoryMetricReader()
setup_tracer("shelly_comm_test", exporter=EXPORTER)
setup_metrics("shelly_comm_test", metric_readers=[READER])


def finished_spans():
    trace.get_tracer_provider().force_flush()
    return EXPORTER.get_finished_spans()


def metric_names():
    data = READER.get_metrics_data()
    return {
        metric.name
        for resource_metrics in data.resource_metrics
        for scope_metrics in resource_metrics.scope_metrics
        for metric in scope_metrics.metrics
    }


@pytest.fixture(autouse=True)
def clear_spans():
    trace.get_tracer_provider().force_flush()
    EXPORTER.clear()


def test_trace_context_inside_span():
    """The active span's ids are exposed as hex strings"""
    assert get_current_trace_context() is None

    with create_span("test.span"):
        context = get_current_trace_context()

    assert len(context["trace_id"]) == 32
    assert len(context["span_id"]) == 16
    assert context["sampled"] is True


@pytest.mark.asyncio
async def test_call_records_span_and_metrics():
    client = RPCClient(MockTransport().add_result("Shelly.GetDeviceInfo", {"id": "shellyplus1-abc"}))

    await client.call("Shelly.GetDeviceInfo")

    spans = [span for span in finished_spans() if span.name == "rpc.client.call"]
    assert len(spans) == 1
    assert spans[0].attributes["rpc.method"] == "Shelly.GetDeviceInfo"
    assert {"rpc.client.requests", "rpc.client.success", "rpc.client.latency"} <= metric_names()


@pytest.mark.asyncio
async def test_failed_call_marks_span():
    client = RPCClient(MockTransport().add_error("Switch.Set", -103, "bad"))

    with pytest.raises(RPCError):
        await client.call("Switch.Set", {"id": 0, "on": True})

    span = [span for span in finished_spans() if span.name == "rpc.client.call"][0]
    assert span.attributes["rpc.error_code"] == -103
    assert "rpc.client.errors" in metric_names()


@pytest.mark.asyncio
async def test_transport_failure_sets_error_status():
    transport = MockTransport()
    await transport.close()
    client = RPCClient(transport)

    with pytest.raises(TransportClosedError):
        await client.call("Sys.GetStatus")

    span = [span for span in finished_spans() if span.name == "rpc.client.call"][0]
    assert span.status.status_code == StatusCode.ERROR
    assert span.attributes["rpc.error_type"] == "transport"

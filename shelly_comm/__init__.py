"""
Shelly Gen2+ RPC Client Library

Typed access to Shelly device components over JSON-RPC 2.0:

1. RPC client: request building, reply correlation and error classification
2. Transports: HTTP, WebSocket and MQTT, plus a scripted mock for tests
3. Components: typed handles (Switch, Boolean, Sys, KVS, ...) built on generic
   GetConfig/GetStatus/SetConfig helpers

Every call is traced and counted through OpenTelemetry when a provider is configured.
"""

__version__ = "0.1.0"

from shelly_comm.rpc.client import RPCClient
from shelly_comm.rpc.errors import (
    ComponentIDMismatchError,
    DecodeError,
    InvalidRequestError,
    MalformedResponseError,
    RPCError,
    RPCTimeoutError,
    ShellyError,
    TransportClosedError,
    TransportError,
)
from shelly_comm.adapters import AdapterFactory, AdapterType
from shelly_comm.config import ClientConfig, TransportConfig, TransportType

__all__ = [
    "AdapterFactory",
    "AdapterType",
    "ClientConfig",
    "ComponentIDMismatchError",
    "DecodeError",
    "InvalidRequestError",
    "MalformedResponseError",
    "RPCClient",
    "RPCError",
    "RPCTimeoutError",
    "ShellyError",
    "TransportClosedError",
    "TransportConfig",
    "TransportError",
    "TransportType"
]

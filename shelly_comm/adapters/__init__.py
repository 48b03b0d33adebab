"""
Transport Adapters Module

Transports deliver JSON-RPC 2.0 requests to a Shelly device and hand back the
complete reply envelope:
- http: one POST per call to /rpc
- websocket: persistent /rpc socket, replies correlated by id, notifications pushed
- mqtt: request/response topics on a broker
- mock: scripted transport for tests
"""

from .adapter_interface import ConnectionState, SubscribingTransportInterface, TransportInterface
from .adapter_factory import AdapterFactory, AdapterType

__all__ = [
    "AdapterFactory",
    "AdapterType",
    "ConnectionState",
    "SubscribingTransportInterface",
    "TransportInterface"
]

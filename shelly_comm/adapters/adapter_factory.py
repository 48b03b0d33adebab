"""
Adapter factory

Creates transports (HTTP, WebSocket, MQTT, mock) from a type name and a plain
configuration mapping, such as ``TransportConfig.to_dict()``.
"""

from typing import Any, Dict

from shelly_comm.adapters.adapter_interface import TransportInterface
from shelly_comm.adapters.http.client import HttpTransport
from shelly_comm.adapters.mock.client import MockTransport
from shelly_comm.adapters.mqtt.client import MqttTransport
from shelly_comm.adapters.websocket.client import WebSocketTransport
from shelly_comm.rpc.auth import AuthMethod


class AdapterType:
    """Adapter type constants"""
    HTTP = "http"
    WEBSOCKET = "websocket"
    MQTT = "mqtt"
    MOCK = "mock"


class AdapterFactory:
    """Adapter factory for creating transports and clients"""

    @staticmethod
    def create_transport(adapter_type: str, config: Dict[str, Any] = None) -> TransportInterface:
        """Create a transport

        Args:
            adapter_type: Adapter type, e.g. "http", "websocket", "mqtt", "mock"
            config: Adapter configuration parameters

        Returns:
            TransportInterface: Transport instance

        Raises:
            ValueError: Invalid adapter type or missing address
        """
        if config is None:
            config = {}

        kind = adapter_type.lower()
        if kind == AdapterType.HTTP:
            return HttpTransport(
                address=config.get("address", ""),
                timeout=config.get("timeout", 30.0),
                username=config.get("username"),
                password=config.get("password"),
                auth_method=config.get("auth_method", AuthMethod.DIGEST),
                headers=config.get("headers"),
            )
        elif kind == AdapterType.WEBSOCKET:
            return WebSocketTransport(
                address=config.get("address", ""),
                timeout=config.get("timeout", 30.0),
                src=config.get("src"),
                ping_interval=config.get("ping_interval", 30.0),
                ping_timeout=config.get("ping_timeout", 10.0),
            )
        elif kind == AdapterType.MQTT:
            return MqttTransport(
                host=config.get("mqtt_host", "localhost"),
                device_id=config.get("device_id", ""),
                port=config.get("mqtt_port", 1883),
                client_id=config.get("mqtt_client_id"),
                username=config.get("username"),
                password=config.get("password"),
                timeout=config.get("timeout", 30.0),
            )
        elif kind == AdapterType.MOCK:
            return MockTransport(timeout=config.get("timeout", 30.0))
        else:
            raise ValueError(f"Invalid adapter type: {adapter_type}")

    @staticmethod
    def create_client(adapter_type: str, config: Dict[str, Any] = None):
        """Create an RPC client over a new transport

        Args:
            adapter_type: Adapter type
            config: Adapter configuration; ``call_timeout`` sets the client's default deadline

        Returns:
            RPCClient: Client owning the transport
        """
        # rpc.client imports this package
        from shelly_comm.rpc.client import DEFAULT_TIMEOUT, RPCClient

        if config is None:
            config = {}
        transport = AdapterFactory.create_transport(adapter_type, config)
        return RPCClient(transport, timeout=config.get("call_timeout", DEFAULT_TIMEOUT))

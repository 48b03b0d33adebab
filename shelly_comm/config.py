"""
Configuration settings for transports and the RPC client
"""
import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from enum import Enum

from shelly_comm.adapters.adapter_factory import AdapterFactory
from shelly_comm.rpc.auth import AuthMethod
from shelly_comm.telemetry.tracer import setup_tracer


class TransportType(Enum):
    """Supported transports"""
    HTTP = "http"
    WEBSOCKET = "websocket"
    MQTT = "mqtt"
    MOCK = "mock"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class TransportConfig:
    """Configuration for one device connection"""
    type: TransportType = TransportType.HTTP
    address: str = ""
    timeout: float = 30.0
    username: Optional[str] = None
    password: Optional[str] = None
    auth_method: str = AuthMethod.DIGEST

    # WebSocket
    src: Optional[str] = None
    ping_interval: float = 30.0
    ping_timeout: float = 10.0

    # MQTT
    device_id: str = ""
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_client_id: Optional[str] = None

    @classmethod
    def from_env(cls) -> "TransportConfig":
        """Create config from SHELLY_* environment variables"""
        return cls(
            type=TransportType(os.getenv("SHELLY_TRANSPORT", TransportType.HTTP.value).lower()),
            address=os.getenv("SHELLY_ADDRESS", ""),
            timeout=float(os.getenv("SHELLY_TIMEOUT", "30")),
            username=os.getenv("SHELLY_USERNAME"),
            password=os.getenv("SHELLY_PASSWORD"),
            auth_method=os.getenv("SHELLY_AUTH_METHOD", AuthMethod.DIGEST),
            src=os.getenv("SHELLY_SRC"),
            device_id=os.getenv("SHELLY_DEVICE_ID", ""),
            mqtt_host=os.getenv("SHELLY_MQTT_HOST", "localhost"),
            mqtt_port=int(os.getenv("SHELLY_MQTT_PORT", "1883")),
            mqtt_client_id=os.getenv("SHELLY_MQTT_CLIENT_ID"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the mapping accepted by AdapterFactory"""
        return {
            "address": self.address,
            "timeout": self.timeout,
            "username": self.username,
            "password": self.password,
            "auth_method": self.auth_method,
            "src": self.src,
            "ping_interval": self.ping_interval,
            "ping_timeout": self.ping_timeout,
            "device_id": self.device_id,
            "mqtt_host": self.mqtt_host,
            "mqtt_port": self.mqtt_port,
            "mqtt_client_id": self.mqtt_client_id,
        }


@dataclass
class ClientConfig:
    """Main configuration for an RPC client"""
    transport: TransportConfig = field(default_factory=TransportConfig)
    call_timeout: float = 10.0

    # Tracing configuration
    enable_tracing: bool = False
    service_name: str = "shelly_comm"
    otlp_endpoint: str = "localhost:4317"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create config from SHELLY_* environment variables"""
        return cls(
            transport=TransportConfig.from_env(),
            call_timeout=float(os.getenv("SHELLY_CALL_TIMEOUT", "10")),
            enable_tracing=_env_bool("SHELLY_ENABLE_TRACING", False),
            service_name=os.getenv("SHELLY_SERVICE_NAME", "shelly_comm"),
            otlp_endpoint=os.getenv("SHELLY_OTLP_ENDPOINT", "localhost:4317"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        data = self.transport.to_dict()
        data.update({
            "transport": self.transport.type.value,
            "call_timeout": self.call_timeout,
            "enable_tracing": self.enable_tracing,
            "service_name": self.service_name,
            "otlp_endpoint": self.otlp_endpoint,
        })
        return data

    def create_client(self):
        """Build an RPCClient for this configuration, configuring tracing when enabled"""
        if self.enable_tracing:
            setup_tracer(self.service_name, self.otlp_endpoint)
        return AdapterFactory.create_client(self.transport.type.value, self.to_dict())

"""MQTT transport"""

from .client import MqttTransport

__all__ = ["MqttTransport"]

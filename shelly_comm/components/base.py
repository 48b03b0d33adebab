"""
Component handles

A component is a device capability addressed by a type and, for multi-instance
types, a numeric id. Handles are stateless proxies: they hold the RPC client and
the id and cache nothing from the device.
"""

import re
from typing import Any, Dict, Optional, Tuple, Type

from shelly_comm.components import helpers
from shelly_comm.components.types import ComponentModel, SetConfigResult
from shelly_comm.rpc.client import RPCClient

# RPC names that do not follow first-letter capitalization
COMPONENT_METHOD_PREFIXES = {
    "em": "EM",
    "em1": "EM1",
    "pm": "PM",
    "pm1": "PM1",
    "kvs": "KVS",
    "wifi": "WiFi",
    "ble": "BLE",
    "mqtt": "Mqtt",
    "ui": "UI",
    "sys": "Sys",
    "ws": "Ws",
    "bthome": "BTHome",
    "bthomedevice": "BTHomeDevice",
    "bthomesensor": "BTHomeSensor",
    "rgb": "RGB",
    "rgbw": "RGBW",
    "ht_ui": "HT_UI",
    "plugs_ui": "Plugs_UI",
    "sensoraddon": "SensorAddon",
    "devicepower": "DevicePower",
}

_TYPE_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


def _check_type(component_type: str) -> str:
    if not isinstance(component_type, str) or not _TYPE_PATTERN.match(component_type):
        raise ValueError(f"invalid component type: {component_type!r}")
    return component_type


def _check_id(component_id: Any) -> Optional[int]:
    if component_id is None:
        return None
    if isinstance(component_id, bool) or not isinstance(component_id, int) or component_id < 0:
        raise ValueError(f"invalid component id: {component_id!r}")
    return component_id


def component_method_prefix(component_type: str) -> str:
    """RPC method prefix for a component type, e.g. "switch" -> "Switch", "wifi" -> "WiFi" """
    _check_type(component_type)
    prefix = COMPONENT_METHOD_PREFIXES.get(component_type)
    if prefix is not None:
        return prefix
    return component_type[0].upper() + component_type[1:]


def component_key(component_type: str, component_id: Optional[int] = None) -> str:
    """Canonical key: ``"type"`` for singletons, ``"type:id"`` otherwise"""
    _check_type(component_type)
    if _check_id(component_id) is None:
        return component_type
    return f"{component_type}:{component_id}"


def parse_component_key(key: str) -> Tuple[str, Optional[int]]:
    """Split a component key into type and id

    Example: "switch:0" -> ("switch", 0), "sys" -> ("sys", None)

    Raises:
        ValueError: The key is not ``"type"`` or ``"type:id"``
    """
    if not isinstance(key, str):
        raise ValueError(f"invalid component key: {key!r}")
    component_type, sep, raw_id = key.partition(":")
    _check_type(component_type)
    if not sep:
        return component_type, None
    if not raw_id.isdigit():
        raise ValueError(f"invalid component id in key {key!r}")
    return component_type, int(raw_id)


class BaseComponent:
    """Base for component handles

    Subclasses set ``component_type`` and the models used to decode
    GetConfig/GetStatus. Singleton components (sys, kvs, wifi, ...) have no id.
    """

    component_type: str = ""
    config_model: Type[ComponentModel] = ComponentModel
    status_model: Type[ComponentModel] = ComponentModel

    def __init__(self, client: RPCClient, component_id: Optional[int] = None,
                 component_type: Optional[str] = None):
        """Initialize component handle

        Args:
            client: RPC client shared by any number of handles
            component_id: Instance id, or None for singleton components
            component_type: Overrides the class's ``component_type`` for generic handles
        """
        if component_type is not None:
            self.component_type = component_type
        _check_type(self.component_type)
        self._client = client
        self._id = _check_id(component_id)

    @property
    def id(self) -> Optional[int]:
        return self._id

    @property
    def client(self) -> RPCClient:
        return self._client

    @property
    def key(self) -> str:
        return component_key(self.component_type, self._id)

    @property
    def is_singleton(self) -> bool:
        return self._id is None

    def method(self, action: str) -> str:
        return f"{component_method_prefix(self.component_type)}.{action}"

    def id_params(self) -> Optional[Dict[str, Any]]:
        """Parameters addressing this component; None for singletons"""
        if self._id is None:
            return None
        return {"id": self._id}

    async def get_config(self, timeout: Optional[float] = None) -> Any:
        return await helpers.unmarshal_config(self, timeout=timeout)

    async def get_status(self, timeout: Optional[float] = None) -> Any:
        return await helpers.unmarshal_status(self, timeout=timeout)

    async def set_config(self, config: Any, timeout: Optional[float] = None) -> SetConfigResult:
        return await helpers.set_config_with_id(self, config, timeout=timeout)

    async def call(self, action: str, params: Any = None, result_type: Any = None,
                   timeout: Optional[float] = None) -> Any:
        """Call ``<Prefix>.<action>``

        Returns the raw result bytes, or the result decoded into ``result_type`` when given.
        """
        method = self.method(action)
        if result_type is None:
            return await self._client.call(method, params, timeout=timeout)
        return await self._client.call_result(method, params, result_type=result_type, timeout=timeout)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key})"

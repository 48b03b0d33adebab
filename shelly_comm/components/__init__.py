"""
Device Components Module

Typed handles over the RPC client, one per device component:
- base: handles, component keys and RPC method prefixes
- helpers: typed GetConfig/GetStatus and SetConfig with id injection
- types: RawFields and the ComponentModel base
- switch, boolean, sys, kvs: component wrappers
"""

from .types import ComponentModel, RawFields, SetConfigResult
from .base import BaseComponent, component_key, component_method_prefix, parse_component_key
from .helpers import decode_result, ensure_id, set_config_with_id, unmarshal_config, unmarshal_status
from .boolean import Boolean, BooleanConfig, BooleanStatus
from .kvs import KVS
from .switch import Switch, SwitchConfig, SwitchSetResult, SwitchStatus
from .sys import Sys, SysConfig, SysStatus

__all__ = [
    "BaseComponent",
    "Boolean",
    "BooleanConfig",
    "BooleanStatus",
    "ComponentModel",
    "KVS",
    "RawFields",
    "SetConfigResult",
    "Switch",
    "SwitchConfig",
    "SwitchSetResult",
    "SwitchStatus",
    "Sys",
    "SysConfig",
    "SysStatus",
    "component_key",
    "component_method_prefix",
    "decode_result",
    "ensure_id",
    "parse_component_key",
    "set_config_with_id",
    "unmarshal_config",
    "unmarshal_status"
]

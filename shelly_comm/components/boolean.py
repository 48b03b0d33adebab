"""
Boolean virtual component

User-defined true/false values (ids 200-299) that scripts and the device UI can read and set.
"""

from typing import Optional

from shelly_comm.components.base import BaseComponent, _check_id
from shelly_comm.components.types import ComponentModel

VIRTUAL_ID_MIN = 200
VIRTUAL_ID_MAX = 299


class VirtualMetaUI(ComponentModel):
    view: Optional[str] = None
    icon: Optional[str] = None


class VirtualMeta(ComponentModel):
    ui: Optional[VirtualMetaUI] = None


class BooleanConfig(ComponentModel):
    id: Optional[int] = None
    name: Optional[str] = None
    default_value: Optional[bool] = None
    persisted: Optional[bool] = None
    meta: Optional[VirtualMeta] = None


class BooleanStatus(ComponentModel):
    id: int
    value: Optional[bool] = None
    source: Optional[str] = None
    last_update_ts: Optional[float] = None


class Boolean(BaseComponent):
    """Boolean virtual component handle"""

    component_type = "boolean"
    config_model = BooleanConfig
    status_model = BooleanStatus

    def __init__(self, client, component_id: int):
        if _check_id(component_id) is None or not VIRTUAL_ID_MIN <= component_id <= VIRTUAL_ID_MAX:
            raise ValueError(f"virtual component id must be in {VIRTUAL_ID_MIN}-{VIRTUAL_ID_MAX}, got {component_id}")
        super().__init__(client, component_id)

    async def set(self, value: bool, timeout: Optional[float] = None) -> None:
        await self.call("Set", {"id": self.id, "value": value}, timeout=timeout)

    async def toggle(self, timeout: Optional[float] = None) -> None:
        await self.call("Toggle", self.id_params(), timeout=timeout)

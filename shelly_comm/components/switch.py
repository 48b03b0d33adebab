"""
Switch component

Relay outputs with optional power metering (``switch:0``, ``switch:1``, ...).
"""

from typing import List, Optional

from pydantic import Field

from shelly_comm.components.base import BaseComponent
from shelly_comm.components.helpers import ensure_id
from shelly_comm.components.types import ComponentModel


class EnergyCounters(ComponentModel):
    total: float = 0.0
    by_minute: Optional[List[float]] = None
    minute_ts: Optional[int] = None


class TemperatureReading(ComponentModel):
    tc: Optional[float] = Field(default=None, alias="tC")
    tf: Optional[float] = Field(default=None, alias="tF")


class SwitchConfig(ComponentModel):
    id: Optional[int] = None
    name: Optional[str] = None
    in_mode: Optional[str] = None
    input_mode: Optional[str] = None
    input_id: Optional[int] = None
    initial_state: Optional[str] = None
    auto_on: Optional[bool] = None
    auto_on_delay: Optional[float] = None
    auto_off: Optional[bool] = None
    auto_off_delay: Optional[float] = None
    power_limit: Optional[float] = None
    voltage_limit: Optional[float] = None
    undervoltage_limit: Optional[float] = None
    current_limit: Optional[float] = None
    autorecover_voltage_errors: Optional[bool] = None


class SwitchStatus(ComponentModel):
    id: int
    source: str = ""
    output: bool = False
    apower: Optional[float] = None
    voltage: Optional[float] = None
    current: Optional[float] = None
    pf: Optional[float] = None
    freq: Optional[float] = None
    aenergy: Optional[EnergyCounters] = None
    ret_aenergy: Optional[EnergyCounters] = None
    temperature: Optional[TemperatureReading] = None
    errors: Optional[List[str]] = None
    timer_started_at: Optional[float] = None
    timer_duration: Optional[float] = None


class SwitchSetParams(ComponentModel):
    id: Optional[int] = None
    on: bool
    toggle_after: Optional[float] = None


class SwitchSetResult(ComponentModel):
    was_on: bool


class Switch(BaseComponent):
    """Switch component handle"""

    component_type = "switch"
    config_model = SwitchConfig
    status_model = SwitchStatus

    def __init__(self, client, component_id: int = 0):
        super().__init__(client, component_id)

    async def set(self, on: bool, toggle_after: Optional[float] = None,
                  timeout: Optional[float] = None) -> SwitchSetResult:
        """Turn the output on or off

        Args:
            on: Target output state
            toggle_after: Flip back after this many seconds
            timeout: Deadline in seconds

        Returns:
            SwitchSetResult: The output state before the call
        """
        params = ensure_id(self, SwitchSetParams(on=on, toggle_after=toggle_after))
        return await self.call("Set", params, result_type=SwitchSetResult, timeout=timeout)

    async def toggle(self, timeout: Optional[float] = None) -> SwitchSetResult:
        return await self.call("Toggle", self.id_params(), result_type=SwitchSetResult, timeout=timeout)

    async def reset_counters(self, types: Optional[List[str]] = None, timeout: Optional[float] = None) -> None:
        """Reset energy counters, all of them unless ``types`` (e.g. ["aenergy"]) is given"""
        params = self.id_params()
        if types:
            params["type"] = list(types)
        await self.call("ResetCounters", params, timeout=timeout)

"""
Sys component

Device-wide settings and health (singleton ``sys``).
"""

from typing import Any, Optional

from shelly_comm.components.base import BaseComponent
from shelly_comm.components.types import ComponentModel


class SysDeviceConfig(ComponentModel):
    name: Optional[str] = None
    mac: Optional[str] = None
    fw_id: Optional[str] = None
    profile: Optional[str] = None
    eco_mode: Optional[bool] = None
    discoverable: Optional[bool] = None
    addon: Optional[str] = None


class SysLocationConfig(ComponentModel):
    tz: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None


class SysDebugTargetConfig(ComponentModel):
    enable: Optional[bool] = None


class SysDebugUDPConfig(ComponentModel):
    addr: Optional[str] = None


class SysDebugConfig(ComponentModel):
    mqtt: Optional[SysDebugTargetConfig] = None
    websocket: Optional[SysDebugTargetConfig] = None
    udp: Optional[SysDebugUDPConfig] = None


class SysRPCUDPConfig(ComponentModel):
    dst_addr: Optional[str] = None
    listen_port: Optional[int] = None


class SysSNTPConfig(ComponentModel):
    server: Optional[str] = None


class SysConfig(ComponentModel):
    device: Optional[SysDeviceConfig] = None
    location: Optional[SysLocationConfig] = None
    debug: Optional[SysDebugConfig] = None
    ui_data: Optional[Any] = None
    rpc_udp: Optional[SysRPCUDPConfig] = None
    sntp: Optional[SysSNTPConfig] = None
    cfg_rev: Optional[int] = None


class SysFirmwareVersion(ComponentModel):
    version: str
    build_id: Optional[str] = None


class SysAvailableUpdates(ComponentModel):
    stable: Optional[SysFirmwareVersion] = None
    beta: Optional[SysFirmwareVersion] = None


class SysWakeupReason(ComponentModel):
    boot: str
    cause: str


class SysStatus(ComponentModel):
    mac: str
    restart_required: bool = False
    time: Optional[str] = None
    unixtime: Optional[int] = None
    uptime: int = 0
    ram_size: int = 0
    ram_free: int = 0
    fs_size: int = 0
    fs_free: int = 0
    cfg_rev: int = 0
    kvs_rev: int = 0
    schedule_rev: Optional[int] = None
    webhook_rev: Optional[int] = None
    available_updates: Optional[SysAvailableUpdates] = None
    wakeup_reason: Optional[SysWakeupReason] = None
    wakeup_period: Optional[int] = None
    reset_reason: Optional[int] = None


class Sys(BaseComponent):
    """Sys component handle"""

    component_type = "sys"
    config_model = SysConfig
    status_model = SysStatus

    def __init__(self, client):
        super().__init__(client)

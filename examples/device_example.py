#!/usr/bin/env python
"""
Device Example

Reads a switch and the system status, flips a virtual boolean and writes a
config back without losing unknown fields. Runs against a scripted transport
unless SHELLY_TRANSPORT/SHELLY_ADDRESS point at a real device.
"""

import asyncio
import logging
import os

from shelly_comm import ClientConfig, RPCClient, RPCError, TransportError
from shelly_comm.adapters.mock import MockTransport
from shelly_comm.components import Boolean, Switch, Sys


def setup_logging():
    """Setup logging configuration"""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def scripted_device() -> MockTransport:
    """A transport answering like a Shelly Plus 1PM"""
    return (
        MockTransport()
        .add_raw_result("Switch.GetStatus", '{"id":0,"source":"http","output":true,"apower":123.5}')
        .add_result("Switch.GetConfig", {"id": 0, "name": "Lamp", "in_mode": "follow", "new_option": 1})
        .add_result("Switch.SetConfig", {"restart_required": False})
        .add_result("Sys.GetStatus", {"mac": "A8032ABE54DC", "uptime": 3600, "restart_required": False})
        .add_raw_result("Boolean.Set", "{}")
    )


async def run(client: RPCClient):
    switch = Switch(client, 0)
    status = await switch.get_status()
    print(f"{switch.key}: output={status.output} power={status.apower}W")

    config = await switch.get_config()
    config.name = "Desk lamp"
    result = await switch.set_config(config)
    print(f"Renamed {switch.key}, restart required: {result.restart_required}")

    sys_status = await Sys(client).get_status()
    print(f"Device {sys_status.mac} up for {sys_status.uptime}s")

    away = Boolean(client, 200)
    await away.set(True)
    print(f"{away.key} set")


async def main():
    """Run main example flow"""
    setup_logging()

    if os.getenv("SHELLY_ADDRESS"):
        client = ClientConfig.from_env().create_client()
    else:
        client = RPCClient(scripted_device())

    async with client:
        try:
            await run(client)
        except RPCError as e:
            print(f"Device rejected the call: {str(e)}")
        except TransportError as e:
            print(f"Device unreachable: {str(e)}")


if __name__ == "__main__":
    asyncio.run(main())

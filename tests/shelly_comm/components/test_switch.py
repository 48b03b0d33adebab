"""
Switch component tests
"""

import pytest

from shelly_comm.adapters.mock.client import MockTransport
from shelly_comm.components.switch import Switch, SwitchSetResult
from shelly_comm.rpc.client import RPCClient
from shelly_comm.rpc.errors import ComponentIDMismatchError, InvalidArgumentError, RPCError


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def switch(transport):
    return Switch(RPCClient(transport), 0)


@pytest.mark.asyncio
async def test_get_status(switch, transport):
    """GetStatus decodes into SwitchStatus with unset fields at their defaults"""
    transport.add_raw_result("Switch.GetStatus", '{"id":0,"source":"http","output":true,"apower":123.5}')

    status = await switch.get_status()

    assert transport.last_request.method == "Switch.GetStatus"
    assert transport.last_request.params == {"id": 0}
    assert status.id == 0
    assert status.source == "http"
    assert status.output is True
    assert status.apower == 123.5
    assert status.voltage is None
    assert len(status.raw_fields) == 0


@pytest.mark.asyncio
async def test_get_status_nested_readings(switch, transport):
    transport.add_result("Switch.GetStatus", {
        "id": 0,
        "output": False,
        "aenergy": {"total": 10.5, "by_minute": [1.0, 2.0, 3.0], "minute_ts": 1700000000},
        "temperature": {"tC": 41.2, "tF": 106.2},
    })

    status = await switch.get_status()

    assert status.aenergy.by_minute == [1.0, 2.0, 3.0]
    assert status.temperature.tc == 41.2


@pytest.mark.asyncio
async def test_set(switch, transport):
    """Set sends the id and target state and returns the previous state"""
    transport.add_result("Switch.Set", {"was_on": False})

    result = await switch.set(True)

    assert transport.last_request.params == {"id": 0, "on": True}
    assert result == SwitchSetResult(was_on=False)


@pytest.mark.asyncio
async def test_set_with_toggle_after(switch, transport):
    transport.add_result("Switch.Set", {"was_on": True})

    await switch.set(False, toggle_after=30)

    assert transport.last_request.params == {"id": 0, "on": False, "toggle_after": 30.0}


@pytest.mark.asyncio
async def test_set_error(switch, transport):
    """A device error on Set is raised as a protocol error"""
    transport.add_error("Switch.Set", -103, "Invalid argument 'on'")

    with pytest.raises(RPCError) as exc_info:
        await switch.set(True)

    assert isinstance(exc_info.value, InvalidArgumentError)
    assert exc_info.value.code == -103
    assert exc_info.value.method == "Switch.Set"


@pytest.mark.asyncio
async def test_toggle(switch, transport):
    transport.add_result("Switch.Toggle", {"was_on": True})

    result = await switch.toggle()

    assert result.was_on is True
    assert transport.last_request.params == {"id": 0}


@pytest.mark.asyncio
async def test_reset_counters(transport):
    switch = Switch(RPCClient(transport), 1)
    transport.add_result("Switch.ResetCounters", {"aenergy": {"total": 0}})

    await switch.reset_counters(["aenergy"])

    assert transport.last_request.params == {"id": 1, "type": ["aenergy"]}


@pytest.mark.asyncio
async def test_set_config_rejects_other_switch(switch, transport):
    with pytest.raises(ComponentIDMismatchError):
        await switch.set_config({"id": 1, "name": "Wrong"})

    assert transport.requests == []


def test_default_id():
    assert Switch(RPCClient(MockTransport())).key == "switch:0"

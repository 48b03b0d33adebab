"""
Component helper tests: id injection, SetConfig and typed fetches
"""

import json
from dataclasses import dataclass
from typing import Optional

import pytest

from shelly_comm.adapters.mock.client import MockTransport
from shelly_comm.components.helpers import ensure_id, set_config_with_id, unmarshal_config, unmarshal_status
from shelly_comm.components.switch import Switch, SwitchConfig, SwitchSetParams, SwitchStatus
from shelly_comm.components.sys import Sys
from shelly_comm.rpc.client import RPCClient
from shelly_comm.rpc.errors import ComponentIDMismatchError, DecodeError, InvalidRequestError, NotFoundError


@dataclass
class NamedParams:
    name: str
    id: Optional[int] = None


@dataclass
class PlainParams:
    value: int


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def client(transport):
    return RPCClient(transport)


class TestEnsureId:
    """Injecting the handle's id into call parameters"""

    def test_none_becomes_id(self, client):
        assert ensure_id(Switch(client, 2)) == {"id": 2}

    def test_mapping_without_id_is_copied(self, client):
        """The input mapping is not mutated"""
        params = {"on": True}

        result = ensure_id(Switch(client, 1), params)

        assert result == {"on": True, "id": 1}
        assert params == {"on": True}

    def test_idempotent(self, client):
        """Applying twice is the same as applying once"""
        switch = Switch(client, 1)
        once = ensure_id(switch, {"on": True})

        assert ensure_id(switch, once) == once

    @pytest.mark.parametrize("params", [{"id": 3}, {"id": True}, SwitchSetParams(id=3, on=True), NamedParams("a", 3)])
    def test_mismatch(self, client, params):
        """A different id is an error, not overwritten"""
        with pytest.raises(ComponentIDMismatchError) as exc_info:
            ensure_id(Switch(client, 1), params)

        assert exc_info.value.expected == 1

    def test_model_copied(self, client):
        """Models get a copy carrying the id"""
        params = SwitchSetParams(on=False)

        result = ensure_id(Switch(client, 4), params)

        assert result.id == 4
        assert params.id is None

    def test_dataclass_with_id_field(self, client):
        result = ensure_id(Switch(client, 4), NamedParams("a"))

        assert result == NamedParams("a", 4)

    def test_dataclass_without_id_field(self, client):
        """Dataclasses without an id field become mappings"""
        assert ensure_id(Switch(client, 4), PlainParams(7)) == {"value": 7, "id": 4}

    def test_singleton_unchanged(self, client):
        params = {"key": "x"}

        assert ensure_id(Sys(client), params) is params
        assert ensure_id(Sys(client)) is None

    def test_non_object_rejected(self, client):
        with pytest.raises(InvalidRequestError):
            ensure_id(Switch(client, 0), [1, 2])


class TestSetConfig:
    """SetConfig parameter shape and result decoding"""

    @pytest.mark.asyncio
    async def test_params_nest_config_under_id(self, client, transport):
        transport.add_result("Switch.SetConfig", {"restart_required": True})

        result = await set_config_with_id(Switch(client, 0), SwitchConfig(name="Lamp", auto_off=True))

        assert result.restart_required is True
        assert transport.last_request.params == {"id": 0, "config": {"name": "Lamp", "auto_off": True}}

    @pytest.mark.asyncio
    async def test_id_removed_from_config_body(self, client, transport):
        transport.add_result("Switch.SetConfig", {"restart_required": False})

        await set_config_with_id(Switch(client, 1), {"id": 1, "name": "Fan"})

        assert transport.last_request.params == {"id": 1, "config": {"name": "Fan"}}

    @pytest.mark.asyncio
    async def test_mismatch_sends_nothing(self, client, transport):
        with pytest.raises(ComponentIDMismatchError):
            await set_config_with_id(Switch(client, 1), SwitchConfig(id=2))

        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_singleton(self, client, transport):
        transport.add_result("Sys.SetConfig", {"restart_required": False})

        await Sys(client).set_config({"device": {"name": "Hall"}})

        assert transport.last_request.params == {"config": {"device": {"name": "Hall"}}}

    @pytest.mark.asyncio
    async def test_raw_fields_round_trip(self, client, transport):
        """Fields unknown to the model are written back unchanged"""
        transport.add_raw_result("Switch.GetConfig", '{"id":0,"name":"Lamp","new_firmware_option":{"x":1}}')
        transport.add_result("Switch.SetConfig", {"restart_required": False})
        switch = Switch(client, 0)

        config = await switch.get_config()
        config.name = "Desk lamp"
        await switch.set_config(config)

        body = transport.last_request.params["config"]
        assert body == {"name": "Desk lamp", "new_firmware_option": {"x": 1}}

    @pytest.mark.asyncio
    async def test_config_must_be_object(self, client):
        with pytest.raises(InvalidRequestError):
            await set_config_with_id(Sys(client), ["not", "an", "object"])


class TestUnmarshal:
    """Typed GetConfig and GetStatus"""

    @pytest.mark.asyncio
    async def test_status_uses_handle_model(self, client, transport):
        transport.add_result("Switch.GetStatus", {"id": 0, "output": True})

        status = await unmarshal_status(Switch(client, 0))

        assert isinstance(status, SwitchStatus)
        assert status.output is True

    @pytest.mark.asyncio
    async def test_custom_target(self, client, transport):
        transport.add_result("Switch.GetConfig", {"id": 0, "name": "Lamp"})

        config = await unmarshal_config(Switch(client, 0), dict)

        assert config == {"id": 0, "name": "Lamp"}

    @pytest.mark.asyncio
    async def test_invalid_json(self, client, transport):
        """A result that does not fit the model is a decode error"""
        transport.add_raw_result("Switch.GetStatus", '{"id":"zero"}')

        with pytest.raises(DecodeError) as exc_info:
            await unmarshal_status(Switch(client, 0))

        assert exc_info.value.method == "Switch.GetStatus"
        assert json.loads(exc_info.value.payload) == {"id": "zero"}

    @pytest.mark.asyncio
    async def test_device_error_propagates(self, client, transport):
        transport.add_error("Switch.GetStatus", -105, "not found")

        with pytest.raises(NotFoundError):
            await unmarshal_status(Switch(client, 5))

"""
MQTT transport tests

A fake client class replaces ``aiomqtt.Client``; it records subscriptions and
publishes and feeds replies back through ``messages``.
"""

import asyncio
import json
from collections import namedtuple

import aiomqtt
import pytest

from shelly_comm.adapters.adapter_interface import ConnectionState
from shelly_comm.adapters.mqtt.client import MqttTransport
from shelly_comm.rpc.client import RPCClient
from shelly_comm.rpc.errors import TransportClosedError, TransportError
from shelly_comm.rpc.request import RPCRequest

Message = namedtuple("Message", ["topic", "payload"])


class FakeMqttClient:
    """Broker connection stand-in; ``responder`` maps a published request to reply payloads"""

    instances = []

    def __init__(self, hostname, port=1883, identifier=None, username=None, password=None, responder=None):
        self.hostname = hostname
        self.port = port
        self.identifier = identifier
        self.username = username
        self.password = password
        self.responder = responder
        self.subscriptions = []
        self.published = []
        self.exited = False
        self._incoming = asyncio.Queue()
        self.messages = self._messages()
        FakeMqttClient.instances.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True
        self._incoming.put_nowait(None)

    async def subscribe(self, topic):
        self.subscriptions.append(topic)

    async def publish(self, topic, payload=None):
        self.published.append((topic, json.loads(payload)))
        if self.responder is not None:
            for reply in self.responder(json.loads(payload)):
                self.push(Message(f"{self.identifier}/rpc", reply))

    def push(self, message):
        self._incoming.put_nowait(message)

    async def _messages(self):
        while True:
            message = await self._incoming.get()
            if message is None:
                return
            yield message


def echo_device(message):
    return [json.dumps({"id": message["id"], "src": "shellyplus1-abc", "dst": message["src"],
                        "result": {"method": message["method"]}}).encode("utf-8")]


def make_transport(responder=None, **kwargs):
    def factory(*args, **options):
        return FakeMqttClient(*args, responder=responder, **options)

    return MqttTransport("broker.local", "shellyplus1-abc", client_id="test-client",
                         client_factory=factory, **kwargs)


def test_device_id_required():
    """A device id is needed to build the request topic"""
    with pytest.raises(ValueError):
        MqttTransport("broker.local", "")


def test_topics():
    """Requests, replies and events use the device's RPC topics"""
    transport = make_transport()

    assert transport.request_topic == "shellyplus1-abc/rpc"
    assert transport.response_topic == "test-client/rpc"
    assert transport.event_topic == "shellyplus1-abc/events/rpc"


@pytest.mark.asyncio
async def test_call_round_trip():
    """A call publishes the request and returns the reply routed by id"""
    FakeMqttClient.instances = []
    transport = make_transport(echo_device, username="user", password="pass")
    client = RPCClient(transport)

    result = await client.call("Switch.Toggle", {"id": 0})

    fake = FakeMqttClient.instances[-1]
    assert result == b'{"method": "Switch.Toggle"}'
    assert (fake.hostname, fake.port, fake.identifier) == ("broker.local", 1883, "test-client")
    assert (fake.username, fake.password) == ("user", "pass")
    assert fake.subscriptions == ["test-client/rpc", "shellyplus1-abc/events/rpc"]
    topic, request = fake.published[0]
    assert topic == "shellyplus1-abc/rpc"
    assert request["src"] == "test-client"
    assert request["params"] == {"id": 0}
    await client.close()
    assert fake.exited


@pytest.mark.asyncio
async def test_events_delivered_to_subscribers():
    """Event frames reach the client's notification handlers"""
    FakeMqttClient.instances = []
    transport = make_transport(echo_device)
    client = RPCClient(transport)
    received = asyncio.get_running_loop().create_future()
    client.on_notification(lambda method, params: received.set_result((method, params)))

    await client.call("Shelly.GetStatus")
    FakeMqttClient.instances[-1].push(Message(
        "shellyplus1-abc/events/rpc",
        b'{"src":"shellyplus1-abc","method":"NotifyEvent","params":{"events":[{"event":"single_push"}]}}',
    ))

    assert await asyncio.wait_for(received, 1.0) == ("NotifyEvent", {"events": [{"event": "single_push"}]})
    await client.close()


@pytest.mark.asyncio
async def test_broker_error_on_connect():
    """Broker failures while connecting are transport errors"""
    class Unreachable(FakeMqttClient):
        async def __aenter__(self):
            raise aiomqtt.MqttError("connection refused")

    transport = MqttTransport("broker.local", "shellyplus1-abc", client_factory=Unreachable)

    with pytest.raises(TransportError, match="connection refused"):
        await transport.call(RPCRequest("Sys.GetStatus", None, 1))
    assert transport.state == ConnectionState.DISCONNECTED
    await transport.close()


@pytest.mark.asyncio
async def test_connection_loss_fails_pending_calls():
    """When the message stream ends, in-flight calls fail"""
    FakeMqttClient.instances = []
    transport = make_transport()

    task = asyncio.create_task(transport.call(RPCRequest("Sys.GetStatus", None, 1)))
    while not FakeMqttClient.instances or not FakeMqttClient.instances[-1].published:
        await asyncio.sleep(0)
    FakeMqttClient.instances[-1].push(None)

    with pytest.raises(TransportError):
        await task
    assert transport.state == ConnectionState.DISCONNECTED
    await transport.close()


@pytest.mark.asyncio
async def test_close():
    """Closing fails pending calls, leaves the broker and is idempotent"""
    FakeMqttClient.instances = []
    transport = make_transport()

    task = asyncio.create_task(transport.call(RPCRequest("Sys.GetStatus", None, 1)))
    while not FakeMqttClient.instances or not FakeMqttClient.instances[-1].published:
        await asyncio.sleep(0)

    await transport.close()
    await transport.close()

    with pytest.raises(TransportClosedError):
        await task
    assert FakeMqttClient.instances[-1].exited
    assert transport.state == ConnectionState.CLOSED


class GatedMqttClient(FakeMqttClient):
    """Broker connection whose handshake waits for ``release``"""

    def __init__(self, *args, entered=None, release=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = entered
        self.release = release

    async def __aenter__(self):
        self.entered.set()
        await self.release.wait()
        return self


@pytest.mark.asyncio
async def test_close_during_connect_releases_client():
    """A broker connection completing after close() is exited and nothing is published"""
    entered = asyncio.Event()
    release = asyncio.Event()

    def factory(*args, **options):
        return GatedMqttClient(*args, responder=echo_device, entered=entered, release=release, **options)

    transport = MqttTransport("broker.local", "shellyplus1-abc", client_id="test-client",
                              client_factory=factory, timeout=5.0)
    task = asyncio.create_task(transport.call(RPCRequest("Sys.GetStatus", None, 1)))
    await entered.wait()

    await transport.close()
    release.set()

    with pytest.raises(TransportClosedError):
        await task
    client = FakeMqttClient.instances[-1]
    assert client.exited
    assert client.published == []
    assert not transport.connected
    assert transport.state == ConnectionState.CLOSED

"""
MQTT transport

JSON-RPC over an MQTT broker. Requests are published to ``<device_id>/rpc``
with ``src`` set to the client id; the device answers on ``<src>/rpc`` and
publishes notifications on ``<device_id>/events/rpc``. Replies are routed by
request id exactly as on the WebSocket transport.
"""

import asyncio
import contextlib
import logging
import uuid
from typing import Any, Callable, Optional

import aiomqtt

from shelly_comm.adapters.adapter_interface import ConnectionState, SubscribingTransportInterface
from shelly_comm.rpc.errors import RPCTimeoutError, TransportClosedError, TransportError
from shelly_comm.rpc.request import RPCRequest

logger = logging.getLogger(__name__)


class MqttTransport(SubscribingTransportInterface):
    """MQTT transport for devices with MQTT RPC enabled"""

    def __init__(self,
                 host: str,
                 device_id: str,
                 port: int = 1883,
                 client_id: Optional[str] = None,
                 username: Optional[str] = None,
                 password: Optional[str] = None,
                 timeout: float = 30.0,
                 client_factory: Optional[Callable[..., Any]] = None):
        """Initialize MQTT transport

        Args:
            host: Broker host
            device_id: Device MQTT prefix (e.g. ``shellyplus1-a8032ab12345``)
            port: Broker port
            client_id: MQTT client identifier, also used as the RPC ``src``
            username: Broker user
            password: Broker password
            timeout: Connect and per-call reply timeout in seconds
            client_factory: Client class, ``aiomqtt.Client`` by default
        """
        if not device_id:
            raise ValueError("device_id must not be empty")
        super().__init__(timeout=timeout)
        self.host = host
        self.port = port
        self.device_id = device_id
        self.client_id = client_id or f"shelly-comm-{uuid.uuid4().hex[:12]}"
        self.username = username
        self.password = password
        self.request_topic = f"{device_id}/rpc"
        self.response_topic = f"{self.client_id}/rpc"
        self.event_topic = f"{device_id}/events/rpc"
        self._client_factory = client_factory or aiomqtt.Client
        self._client = None
        self._stack: Optional[contextlib.AsyncExitStack] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._connect_lock: Optional[asyncio.Lock] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Connect to the broker and subscribe to the reply and event topics

        Raises:
            TransportClosedError: The transport is closed
            RPCTimeoutError: The broker did not answer in time
            TransportError: The connection or subscription failed
        """
        self._check_open()
        if self._client is not None:
            return
        if self._connect_lock is None:
            self._connect_lock = asyncio.Lock()

        async with self._connect_lock:
            self._check_open()
            if self._client is not None:
                return
            await self._release_stack()

            self._set_state(ConnectionState.CONNECTING)
            logger.info(f"Connecting to MQTT broker {self.host}:{self.port} as {self.client_id}")
            stack = contextlib.AsyncExitStack()
            try:
                client = await asyncio.wait_for(self._open(stack), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                await stack.aclose()
                self._set_state(ConnectionState.DISCONNECTED)
                raise RPCTimeoutError(f"MQTT connect to {self.host}:{self.port} timed out after {self.timeout}s") from e
            except aiomqtt.MqttError as e:
                await stack.aclose()
                self._set_state(ConnectionState.DISCONNECTED)
                raise TransportError(f"MQTT connect to {self.host}:{self.port} failed: {str(e)}") from e

            if self._closed:
                # close() ran during the handshake
                self._stack = stack
                await self._release_stack()
                raise TransportClosedError(f"MQTT transport for {self.device_id} closed")

            self._stack = stack
            self._client = client
            self._reader_task = asyncio.create_task(self._read_loop(client))
            self._set_state(ConnectionState.CONNECTED)
            logger.info(f"MQTT transport connected, requests -> {self.request_topic}, replies <- {self.response_topic}")

    async def _open(self, stack: contextlib.AsyncExitStack):
        client = await stack.enter_async_context(self._client_factory(
            self.host,
            self.port,
            identifier=self.client_id,
            username=self.username,
            password=self.password,
        ))
        await client.subscribe(self.response_topic)
        await client.subscribe(self.event_topic)
        return client

    async def call(self, request: RPCRequest) -> bytes:
        self._check_open()
        await self.connect()

        payload = request.to_json(self.client_id)
        if request.is_notification:
            await self._publish(payload, request.method)
            return b""

        future = self._register_pending(request)
        try:
            await self._publish(payload, request.method)
        except BaseException:
            self._pending.pop(request.id, None)
            raise
        logger.debug(f"Published {request.method} (id {request.id}) to {self.request_topic}")
        return await self._wait_reply(request, future)

    async def _publish(self, payload: bytes, method: str) -> None:
        client = self._client
        if client is None:
            raise TransportError(f"MQTT transport for {self.device_id} is not connected", method=method)
        try:
            await client.publish(self.request_topic, payload=payload)
        except aiomqtt.MqttError as e:
            raise TransportError(f"MQTT publish to {self.request_topic} failed: {str(e)}", method=method) from e

    async def _read_loop(self, client) -> None:
        error: Exception = TransportError(f"MQTT connection to {self.host}:{self.port} closed")
        try:
            async for message in client.messages:
                payload = message.payload
                if isinstance(payload, str):
                    payload = payload.encode("utf-8")
                elif not isinstance(payload, (bytes, bytearray)):
                    logger.warning(f"Dropping non-JSON payload on {message.topic}")
                    continue
                self._handle_frame(bytes(payload))
        except aiomqtt.MqttError as e:
            logger.warning(f"MQTT connection to {self.host}:{self.port} lost: {str(e)}")
            error = TransportError(f"MQTT connection to {self.host}:{self.port} lost: {str(e)}")
        finally:
            if self._client is client:
                self._client = None
                self._fail_pending(error)
                if not self._closed:
                    self._set_state(ConnectionState.DISCONNECTED)

    async def _release_stack(self) -> None:
        # The client context of a lost connection is still open until released here
        if self._stack is None:
            return
        stack, self._stack = self._stack, None
        try:
            await stack.aclose()
        except aiomqtt.MqttError as e:
            logger.warning(f"Error while disconnecting from {self.host}:{self.port}: {str(e)}")

    async def close(self) -> None:
        """Disconnect from the broker; pending calls fail with TransportClosedError"""
        if self._closed:
            return
        self._closed = True

        self._client = None
        self._fail_pending(TransportClosedError(f"MQTT transport for {self.device_id} closed"))

        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        await self._release_stack()
        self._set_state(ConnectionState.CLOSED)
        logger.info(f"MQTT transport for {self.device_id} closed")

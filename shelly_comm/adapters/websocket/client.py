"""
WebSocket transport

Persistent JSON-RPC connection to ``ws://<host>/rpc``. The connection is opened
lazily on the first call; a single reader task routes replies to their callers
by request id, so concurrent calls are multiplexed over one socket. Frames
without a pending id (NotifyStatus, NotifyEvent, ...) go to subscribers.
"""

import asyncio
import logging
import uuid
from typing import Any, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from shelly_comm.adapters.adapter_interface import ConnectionState, SubscribingTransportInterface
from shelly_comm.rpc.errors import RPCTimeoutError, TransportClosedError, TransportError
from shelly_comm.rpc.request import RPCRequest

logger = logging.getLogger(__name__)


def normalize_ws_url(address: str) -> str:
    """Turn a host, ``http(s)://`` or ``ws(s)://`` address into the device's ``/rpc`` socket URL"""
    address = address.strip().rstrip("/")
    if not address:
        raise ValueError("device address must not be empty")
    if address.startswith("http://"):
        address = "ws://" + address[len("http://"):]
    elif address.startswith("https://"):
        address = "wss://" + address[len("https://"):]
    elif "://" not in address:
        address = f"ws://{address}"
    if not address.endswith("/rpc"):
        address = f"{address}/rpc"
    return address


class WebSocketTransport(SubscribingTransportInterface):
    """WebSocket transport with request multiplexing and notification delivery"""

    def __init__(self,
                 address: str,
                 timeout: float = 30.0,
                 src: Optional[str] = None,
                 ping_interval: Optional[float] = 30.0,
                 ping_timeout: Optional[float] = 10.0,
                 connect: Optional[Callable[..., Any]] = None):
        """Initialize WebSocket transport

        Args:
            address: Device address
            timeout: Connect and per-call reply timeout in seconds
            src: Source id sent with every request; the device addresses replies
                and notifications to it
            ping_interval: Keepalive ping interval in seconds (None disables)
            ping_timeout: Keepalive pong timeout in seconds
            connect: Connection factory, ``websockets.connect`` by default
        """
        super().__init__(timeout=timeout)
        self.url = normalize_ws_url(address)
        self.src = src or f"shelly-comm-{uuid.uuid4().hex[:12]}"
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self._connect = connect or websockets.connect
        self._ws = None
        self._reader_task: Optional[asyncio.Task] = None
        self._connect_lock: Optional[asyncio.Lock] = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        """Open the connection if it is not open yet

        Raises:
            TransportClosedError: The transport is closed
            RPCTimeoutError: The handshake did not complete in time
            TransportError: The connection could not be established
        """
        self._check_open()
        if self._ws is not None:
            return
        if self._connect_lock is None:
            self._connect_lock = asyncio.Lock()

        async with self._connect_lock:
            self._check_open()
            if self._ws is not None:
                return

            self._set_state(ConnectionState.CONNECTING)
            logger.info(f"Connecting to {self.url}")
            try:
                ws = await asyncio.wait_for(
                    self._connect(self.url, ping_interval=self.ping_interval, ping_timeout=self.ping_timeout),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError as e:
                self._set_state(ConnectionState.DISCONNECTED)
                raise RPCTimeoutError(f"WebSocket connect to {self.url} timed out after {self.timeout}s") from e
            except (OSError, WebSocketException) as e:
                self._set_state(ConnectionState.DISCONNECTED)
                raise TransportError(f"WebSocket connect to {self.url} failed: {str(e)}") from e

            if self._closed:
                # close() ran during the handshake
                try:
                    await ws.close()
                except WebSocketException as e:
                    logger.warning(f"Error while closing WebSocket to {self.url}: {str(e)}")
                raise TransportClosedError(f"WebSocket transport for {self.url} closed")

            self._ws = ws
            self._reader_task = asyncio.create_task(self._read_loop(ws))
            self._set_state(ConnectionState.CONNECTED)
            logger.info(f"WebSocket connected to {self.url} as {self.src}")

    async def call(self, request: RPCRequest) -> bytes:
        self._check_open()
        await self.connect()

        payload = request.to_json(self.src).decode("utf-8")
        if request.is_notification:
            await self._send(payload, request.method)
            return b""

        future = self._register_pending(request)
        try:
            await self._send(payload, request.method)
        except BaseException:
            self._pending.pop(request.id, None)
            raise
        logger.debug(f"Sent {request.method} (id {request.id})")
        return await self._wait_reply(request, future)

    async def _send(self, payload: str, method: str) -> None:
        ws = self._ws
        if ws is None:
            raise TransportError(f"WebSocket to {self.url} is not connected", method=method)
        try:
            await ws.send(payload)
        except ConnectionClosed as e:
            raise TransportError(f"WebSocket to {self.url} closed while sending: {str(e)}", method=method) from e

    async def _read_loop(self, ws) -> None:
        error: Exception = TransportError(f"WebSocket connection to {self.url} closed")
        try:
            async for frame in ws:
                if isinstance(frame, str):
                    frame = frame.encode("utf-8")
                self._handle_frame(frame)
        except ConnectionClosed as e:
            logger.warning(f"WebSocket connection to {self.url} lost: {str(e)}")
            error = TransportError(f"WebSocket connection to {self.url} lost: {str(e)}")
        finally:
            if self._ws is ws:
                self._ws = None
                self._fail_pending(error)
                if not self._closed:
                    self._set_state(ConnectionState.DISCONNECTED)

    async def close(self) -> None:
        """Close the connection; pending calls fail with TransportClosedError"""
        if self._closed:
            return
        self._closed = True

        ws, self._ws = self._ws, None
        self._fail_pending(TransportClosedError(f"WebSocket transport for {self.url} closed"))
        if ws is not None:
            try:
                await ws.close()
            except WebSocketException as e:
                logger.warning(f"Error while closing WebSocket to {self.url}: {str(e)}")

        if self._reader_task is not None:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        self._set_state(ConnectionState.CLOSED)
        logger.info(f"WebSocket transport for {self.url} closed")

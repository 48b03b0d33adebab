"""
Transport interface

Defines the contract every transport (HTTP, WebSocket, MQTT, test double)
implements. A transport delivers one request and returns the raw reply
envelope; it knows nothing about method semantics and never retries.
"""

import abc
import asyncio
import enum
import json
import logging
from typing import Any, Callable, Dict, List, Sequence

from shelly_comm.rpc.errors import RPCTimeoutError, TransportClosedError, TransportError
from shelly_comm.rpc.request import RPCRequest

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], None]
StateHandler = Callable[["ConnectionState", "ConnectionState"], None]


class ConnectionState(enum.Enum):
    """Lifecycle of a persistent connection"""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class TransportInterface(abc.ABC):
    """Transport interface, the methods every transport must implement"""

    _closed: bool = False

    @abc.abstractmethod
    async def call(self, request: RPCRequest) -> bytes:
        """Send a request and wait for its reply envelope

        Args:
            request: Request to deliver

        Returns:
            bytes: Raw reply envelope exactly as received

        Raises:
            RPCTimeoutError: No reply within the transport timeout
            TransportClosedError: The transport is closed
            TransportError: Connection or I/O failure
            asyncio.CancelledError: The calling task was cancelled
        """

    async def call_batch(self, requests: Sequence[RPCRequest]) -> bytes:
        """Send several requests and return their reply envelopes as a JSON array

        The default issues the requests concurrently over ``call``; transports
        that can carry a real JSON-RPC batch override it.
        """
        self._check_open()
        replies = await asyncio.gather(*(self.call(request) for request in requests))
        return b"[" + b",".join(replies) + b"]"

    @abc.abstractmethod
    async def close(self) -> None:
        """Close the connection and release resources; calling twice is not an error"""

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise TransportClosedError("transport is closed")


class SubscribingTransportInterface(TransportInterface):
    """A transport holding a persistent connection

    Replies and notifications share one connection, so replies are routed back
    to their callers by request id through a pending map; frames without a
    pending id that carry a ``method`` are handed to subscribed handlers.
    """

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout
        self._closed = False
        self._pending: Dict[Any, asyncio.Future] = {}
        self._message_handlers: List[MessageHandler] = []
        self._state_handlers: List[StateHandler] = []
        self._state = ConnectionState.DISCONNECTED

    def subscribe(self, handler: MessageHandler) -> None:
        """Register a handler for inbound frames that are not replies

        Args:
            handler: Called with the raw frame bytes
        """
        self._message_handlers.append(handler)

    def unsubscribe(self) -> None:
        self._message_handlers = []

    def on_state_change(self, handler: StateHandler) -> None:
        """Register a handler called with ``(old_state, new_state)``"""
        self._state_handlers.append(handler)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _set_state(self, state: ConnectionState) -> None:
        old_state = self._state
        if old_state == state:
            return
        self._state = state
        logger.debug(f"Connection state {old_state.value} -> {state.value}")
        for handler in list(self._state_handlers):
            try:
                handler(old_state, state)
            except Exception as e:
                logger.error(f"State handler failed: {str(e)}")

    def _register_pending(self, request: RPCRequest) -> asyncio.Future:
        if request.id in self._pending:
            raise TransportError(f"request id {request.id} is already in flight", method=request.method)
        future = asyncio.get_running_loop().create_future()
        self._pending[request.id] = future
        return future

    async def _wait_reply(self, request: RPCRequest, future: asyncio.Future) -> bytes:
        """Wait for the reply routed to ``future``; always unregisters the request id"""
        try:
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise RPCTimeoutError(
                f"no reply to {request.method} (id {request.id}) within {self.timeout}s",
                method=request.method,
            ) from e
        finally:
            self._pending.pop(request.id, None)

    def _handle_frame(self, frame: bytes) -> None:
        try:
            message = json.loads(frame)
        except ValueError:
            logger.warning(f"Dropping frame that is not valid JSON: {frame[:200]!r}")
            return
        if not isinstance(message, dict):
            logger.warning(f"Dropping frame that is not a JSON object: {frame[:200]!r}")
            return

        message_id = message.get("id")
        if message_id is not None and not isinstance(message_id, (bool, dict, list)):
            future = self._pending.get(message_id)
            if future is not None:
                if not future.done():
                    future.set_result(frame)
                return
        if "method" in message and "result" not in message and "error" not in message:
            for handler in list(self._message_handlers):
                try:
                    handler(frame)
                except Exception as e:
                    logger.error(f"Message handler failed: {str(e)}")
            return
        logger.warning(f"Dropping reply for unknown request id {message_id!r}")

    def _fail_pending(self, error: Exception) -> None:
        pending, self._pending = self._pending, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

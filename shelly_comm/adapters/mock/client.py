"""
Scripted transport

A deterministic in-memory transport for tests and offline development.
Responses are scripted per method; every request is recorded so callers can
assert on the exact wire parameters.
"""

import asyncio
import json
import logging
from collections import defaultdict, deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Union

from shelly_comm.adapters.adapter_interface import SubscribingTransportInterface
from shelly_comm.rpc.request import RPCRequest
from shelly_comm.utils.serialization import dumps

logger = logging.getLogger(__name__)

Handler = Callable[[RPCRequest], Union[bytes, Awaitable[bytes]]]


def success_envelope(request_id: Any, result: Any) -> bytes:
    return dumps({"jsonrpc": "2.0", "id": request_id, "src": "mock", "result": result})


def error_envelope(request_id: Any, code: int, message: str, data: Any = None) -> bytes:
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return dumps({"jsonrpc": "2.0", "id": request_id, "src": "mock", "error": error})


class MockTransport(SubscribingTransportInterface):
    """Scripted transport

    Each ``add_*`` call queues one response for a method; queued responses are
    consumed in order. When a method's queue is empty the last response
    scripted for it is reused, and methods with no script at all fall back to
    ``default_handler`` (an ``error -106`` envelope unless replaced).
    """

    def __init__(self, timeout: float = 30.0, default_handler: Optional[Handler] = None):
        super().__init__(timeout=timeout)
        self.requests: List[RPCRequest] = []
        self.default_handler = default_handler or self._method_not_found
        self._scripts: Dict[str, Deque[Handler]] = defaultdict(deque)
        self._last: Dict[str, Handler] = {}
        self.close_count = 0

    @staticmethod
    def _method_not_found(request: RPCRequest) -> bytes:
        return error_envelope(request.id, -106, f"Method {request.method} not found")

    def add_handler(self, method: str, handler: Handler) -> "MockTransport":
        """Queue a handler computing the raw reply envelope for one request"""
        self._scripts[method].append(handler)
        return self

    def add_result(self, method: str, result: Any) -> "MockTransport":
        return self.add_handler(method, lambda request: success_envelope(request.id, result))

    def add_raw_result(self, method: str, raw_result: Union[bytes, str]) -> "MockTransport":
        """Queue a success envelope whose ``result`` is spliced in verbatim"""
        if isinstance(raw_result, str):
            raw_result = raw_result.encode("utf-8")

        def handler(request: RPCRequest) -> bytes:
            return b'{"jsonrpc":"2.0","id":' + json.dumps(request.id).encode("utf-8") + \
                b',"result":' + raw_result + b"}"
        return self.add_handler(method, handler)

    def add_error(self, method: str, code: int, message: str, data: Any = None) -> "MockTransport":
        return self.add_handler(method, lambda request: error_envelope(request.id, code, message, data))

    def add_raw(self, method: str, envelope: Union[bytes, str]) -> "MockTransport":
        """Queue a reply returned exactly as given, whatever the request id"""
        if isinstance(envelope, str):
            envelope = envelope.encode("utf-8")
        return self.add_handler(method, lambda request: envelope)

    def add_exception(self, method: str, error: BaseException) -> "MockTransport":
        def handler(request: RPCRequest) -> bytes:
            raise error
        return self.add_handler(method, handler)

    def add_delay(self, method: str, delay: float, result: Any = None) -> "MockTransport":
        """Queue a success reply that only arrives after ``delay`` seconds"""
        async def handler(request: RPCRequest) -> bytes:
            await asyncio.sleep(delay)
            return success_envelope(request.id, result)
        return self.add_handler(method, handler)

    def calls_for(self, method: str) -> List[RPCRequest]:
        return [request for request in self.requests if request.method == method]

    @property
    def last_request(self) -> Optional[RPCRequest]:
        return self.requests[-1] if self.requests else None

    def reset(self) -> None:
        self.requests = []
        self._scripts.clear()
        self._last.clear()

    def _next_handler(self, method: str) -> Handler:
        queue = self._scripts.get(method)
        if queue:
            handler = queue.popleft()
            self._last[method] = handler
            return handler
        return self._last.get(method, self.default_handler)

    async def call(self, request: RPCRequest) -> bytes:
        self._check_open()
        self.requests.append(request)
        logger.debug(f"Mock call {request.method} (id {request.id}) params={request.params}")

        handler = self._next_handler(request.method)
        reply = handler(request)
        if asyncio.iscoroutine(reply) or isinstance(reply, asyncio.Future):
            reply = await reply
        if request.is_notification:
            return b""
        return reply

    def emit_notification(self, method: str, params: Any = None, src: str = "mock") -> None:
        """Deliver a notification frame to subscribers as a device would"""
        frame = dumps({"src": src, "dst": "client", "method": method, "params": params})
        self._handle_frame(frame)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.close_count += 1

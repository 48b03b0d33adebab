"""
RPC client

The single choke point every component goes through: turns a method name and
parameters into one transport call and classifies the reply into a raw result,
a protocol error, a decode error or a transport error. The client performs no
recovery and holds no per-call state, so one instance can be shared by any
number of concurrent callers.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from shelly_comm.adapters.adapter_interface import SubscribingTransportInterface, TransportInterface
from shelly_comm.rpc.auth import AuthData
from shelly_comm.rpc.batch import Batch, BatchResult
from shelly_comm.rpc.errors import (
    DecodeError,
    MalformedResponseError,
    RPCError,
    RPCTimeoutError,
    ShellyError,
    TransportError,
)
from shelly_comm.rpc.notification import MethodNotificationHandler, NotificationHandler, NotificationRouter
from shelly_comm.rpc.request import RequestBuilder, RPCRequest
from shelly_comm.rpc.response import RPCResponse, parse_batch_response, parse_notification, parse_response
from shelly_comm.telemetry.metrics import increment_counter, record_latency
from shelly_comm.telemetry.tracer import create_span, mark_error
from shelly_comm.utils.serialization import decode_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0


def _error_type(exc: BaseException) -> str:
    if isinstance(exc, RPCTimeoutError):
        return "timeout"
    if isinstance(exc, TransportError):
        return "transport"
    if isinstance(exc, RPCError):
        return "rpc_error"
    if isinstance(exc, MalformedResponseError):
        return "invalid_response"
    if isinstance(exc, DecodeError):
        return "decode"
    if isinstance(exc, asyncio.CancelledError):
        return "cancelled"
    return "unknown"


class RPCClient:
    """JSON-RPC 2.0 client over a pluggable transport"""

    def __init__(self,
                 transport: TransportInterface,
                 auth: Optional[AuthData] = None,
                 timeout: Optional[float] = DEFAULT_TIMEOUT):
        """Initialize RPC client

        Args:
            transport: Transport that delivers requests
            auth: RPC-level auth data attached to every request
            timeout: Default per-call deadline in seconds (None waits for the transport)
        """
        self._transport = transport
        self._builder = RequestBuilder()
        self._router = NotificationRouter()
        self._auth = auth
        self.timeout = timeout

        if isinstance(transport, SubscribingTransportInterface):
            transport.subscribe(self._handle_notification)

    @property
    def transport(self) -> TransportInterface:
        return self._transport

    @property
    def request_builder(self) -> RequestBuilder:
        return self._builder

    @property
    def notification_router(self) -> NotificationRouter:
        return self._router

    @property
    def auth(self) -> Optional[AuthData]:
        return self._auth

    def set_auth(self, auth: Optional[AuthData]) -> None:
        self._auth = auth

    def clear_auth(self) -> None:
        self._auth = None

    @property
    def closed(self) -> bool:
        return self._transport.closed

    def _attach_auth(self, request: RPCRequest) -> RPCRequest:
        if self._auth is None:
            return request
        return request.with_auth(self._auth.to_wire())

    async def _with_deadline(self, pending: Awaitable[bytes], method: str, timeout: Optional[float]) -> bytes:
        effective_timeout = self.timeout if timeout is None else timeout
        try:
            if effective_timeout is None:
                return await pending
            return await asyncio.wait_for(pending, timeout=effective_timeout)
        except ShellyError:
            raise
        except asyncio.TimeoutError as e:
            raise RPCTimeoutError(f"{method} did not complete within {effective_timeout}s", method=method) from e
        except OSError as e:
            # Third-party transports may surface plain socket errors
            raise TransportError(f"{method} failed: {str(e)}", method=method) from e

    async def call(self, method: str, params: Any = None, timeout: Optional[float] = None) -> bytes:
        """Call a method and return its raw JSON result

        Args:
            method: Dot-qualified method name, e.g. "Switch.GetStatus"
            params: JSON-serializable parameters (dict, pydantic model, dataclass) or None
            timeout: Deadline in seconds overriding the client default

        Returns:
            bytes: The ``result`` member exactly as the device sent it

        Raises:
            InvalidRequestError: Empty method or unserializable params
            TransportError: The device could not be reached (RPCTimeoutError on deadline)
            RPCError: The device rejected the request
            MalformedResponseError: The reply envelope is invalid
            asyncio.CancelledError: The calling task was cancelled
        """
        request = self._attach_auth(self._builder.build(method, params))
        response = await self._send(request, timeout)
        if response.error is not None:
            raise response.error.to_exception(method)
        return response.result

    async def _send(self, request: RPCRequest, timeout: Optional[float]) -> RPCResponse:
        method = request.method
        start_time = time.time()
        increment_counter("rpc.client.requests", 1, {"method": method})

        with create_span("rpc.client.call", {"rpc.method": method, "rpc.id": request.id or 0}) as span:
            try:
                logger.debug(f"Calling {method} (id {request.id})")
                raw = await self._with_deadline(self._transport.call(request), method, timeout)
                response = parse_response(raw, method)
                if response.id is not None and response.id != request.id:
                    raise MalformedResponseError(
                        f"response id {response.id!r} does not match request id {request.id}",
                        method=method, payload=raw,
                    )
            except (ShellyError, asyncio.CancelledError) as e:
                error_type = _error_type(e)
                mark_error(span, e, error_type)
                increment_counter("rpc.client.errors", 1, {"type": error_type, "method": method})
                if isinstance(e, asyncio.CancelledError):
                    logger.debug(f"Call {method} (id {request.id}) cancelled")
                else:
                    logger.error(f"Call {method} (id {request.id}) failed: {str(e)}")
                raise

            latency_ms = (time.time() - start_time) * 1000
            record_latency("rpc.client.latency", latency_ms, {"method": method})

            if response.error is not None:
                error = response.error
                logger.error(f"RPC error from {method}: {error.message}, code: {error.code}")
                span.set_attribute("rpc.error_code", error.code)
                increment_counter("rpc.client.errors", 1, {
                    "type": "rpc_error",
                    "method": method,
                    "code": str(error.code)
                })
            else:
                logger.debug(f"{method} (id {request.id}) succeeded in {latency_ms:.2f}ms")
                increment_counter("rpc.client.success", 1, {"method": method})
            return response

    async def call_result(self, method: str, params: Any = None,
                          result_type: Optional[Union[Type[T], Any]] = None,
                          timeout: Optional[float] = None) -> Any:
        """Call a method and decode its result

        Args:
            method: Method name
            params: Method parameters
            result_type: Target type; plain Python data when None
            timeout: Deadline in seconds

        Raises:
            DecodeError: The result does not fit ``result_type``
            (and everything ``call`` raises)
        """
        raw = await self.call(method, params, timeout=timeout)
        return decode_json(raw, result_type, method)

    async def notify(self, method: str, params: Any = None, timeout: Optional[float] = None) -> None:
        """Send a request without an id; no reply is awaited"""
        request = self._attach_auth(self._builder.build_notification(method, params))
        logger.debug(f"Notifying {method}")
        await self._with_deadline(self._transport.call(request), method, timeout)

    def batch(self) -> Batch:
        """Start a batch of calls sent together"""
        return Batch(self)

    async def call_batch(self, calls: Sequence[Tuple[str, Any]], timeout: Optional[float] = None) -> List[BatchResult]:
        """Send several calls in one round trip

        Args:
            calls: (method, params) pairs
            timeout: Deadline in seconds for the whole batch

        Returns:
            List[BatchResult]: One result per call, in call order

        Raises:
            InvalidRequestError: A call cannot be built
            TransportError: The batch could not be delivered
            MalformedResponseError: The reply is not an array of valid envelopes
        """
        if not calls:
            return []
        requests = [self._attach_auth(request) for request in self._builder.build_batch(calls)]
        increment_counter("rpc.client.requests", len(requests), {"method": "batch"})

        with create_span("rpc.client.batch", {"rpc.batch_size": len(requests)}):
            raw = await self._with_deadline(self._transport.call_batch(requests), "batch", timeout)
            responses = parse_batch_response(raw)

        by_id = {response.id: response for response in responses if response.id is not None}
        results = []
        for request, (method, params) in zip(requests, calls):
            response = by_id.get(request.id)
            if response is None:
                logger.warning(f"Batch reply has no response for {method} (id {request.id})")
                error = MalformedResponseError(f"no response for request id {request.id}", method=method)
                results.append(BatchResult(method, params, error=error))
            elif response.error is not None:
                results.append(BatchResult(method, params, error=response.error.to_exception(method)))
            else:
                results.append(BatchResult(method, params, result=response.result))
        return results

    def on_notification(self, handler: NotificationHandler) -> None:
        """Register a handler for every notification: ``handler(method, params)``"""
        self._router.on_notification(handler)

    def on_notification_method(self, method: str, handler: MethodNotificationHandler) -> None:
        """Register a handler for one notification method: ``handler(params)``"""
        self._router.on_notification_method(method, handler)

    def remove_notification_handlers(self) -> None:
        self._router.remove_notification_handlers()

    def remove_method_handlers(self, method: str) -> None:
        self._router.remove_method_handlers(method)

    def remove_all_handlers(self) -> None:
        self._router.remove_all_handlers()

    def _handle_notification(self, frame: bytes) -> None:
        try:
            notification = parse_notification(frame)
        except MalformedResponseError as e:
            logger.warning(f"Ignoring malformed notification: {str(e)}")
            return
        self._router.route(notification)

    async def close(self) -> None:
        """Close the underlying transport; calling twice is not an error"""
        await self._transport.close()

    async def __aenter__(self) -> "RPCClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

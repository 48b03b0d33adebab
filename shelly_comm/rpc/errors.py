"""
RPC error taxonomy

Every failure surfaced by the client belongs to exactly one of three kinds:

- TransportError: the call never produced an interpretable reply
  (connection refused/reset, deadline exceeded, transport closed).
- RPCError: the device answered with a JSON-RPC error envelope.
- DecodeError: the device answered successfully but the payload could not be
  mapped onto the expected shape.

Callers can branch on the class or on the ``kind`` attribute.
"""

from typing import Any, Dict, Optional, Type

TRANSPORT = "transport"
PROTOCOL = "protocol"
DECODE = "decode"
REQUEST = "request"


class ShellyError(Exception):
    """Base class for every error raised by shelly_comm"""

    kind: str = ""
    retryable: bool = False


class InvalidRequestError(ShellyError, ValueError):
    """The caller supplied a request that cannot be sent (empty method, unserializable params)"""

    kind = REQUEST


class ComponentIDMismatchError(InvalidRequestError):
    """Parameters carry an id that differs from the component handle's own id"""

    def __init__(self, expected: Optional[int], actual: Any):
        self.expected = expected
        self.actual = actual
        super().__init__(f"params id {actual!r} does not match component id {expected!r}")


class TransportError(ShellyError):
    """Connectivity or I/O failure before any device-level interpretation was possible"""

    kind = TRANSPORT
    retryable = True

    def __init__(self, message: str, method: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.method = method
        self.status_code = status_code


class RPCTimeoutError(TransportError, TimeoutError):
    """The call deadline expired before a reply arrived"""


class TransportClosedError(TransportError):
    """The transport was closed before or during the call"""

    retryable = False


class AuthenticationError(TransportError):
    """The transport was refused by the device (HTTP 401/403)"""

    retryable = False


class RPCError(ShellyError):
    """The device rejected the request with a JSON-RPC error envelope"""

    kind = PROTOCOL

    def __init__(self, code: int, message: str, data: Any = None, method: Optional[str] = None):
        if method:
            text = f"{method}: rpc error {code}: {message}"
        else:
            text = f"rpc error {code}: {message}"
        super().__init__(text)
        self.code = code
        self.message = message
        self.data = data
        self.method = method

    @classmethod
    def from_error_object(cls, error: Dict[str, Any], method: Optional[str] = None) -> "RPCError":
        """Build the most specific protocol error for a decoded ``error`` member"""
        code = error.get("code", 0)
        try:
            code = int(code)
        except (TypeError, ValueError):
            code = 0
        message = error.get("message", "")
        if not isinstance(message, str):
            message = str(message)
        error_cls = ERROR_CODE_CLASSES.get(code, RPCError)
        return error_cls(code, message, error.get("data"), method)

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "message": self.message}
        if self.data is not None:
            data["data"] = self.data
        return data


class InvalidArgumentError(RPCError):
    """Bad parameters or malformed request"""


class MethodNotFoundError(RPCError):
    """The device does not implement the method"""


class NotFoundError(RPCError):
    """The addressed component or resource does not exist"""


class DeadlineExceededError(RPCError):
    """The device gave up on the request"""


class ResourceExhaustedError(RPCError):
    """The device is out of a resource; the same request may succeed later"""

    retryable = True


class FailedPreconditionError(RPCError):
    """The component is not in a state that allows the request"""


class UnavailableError(RPCError):
    """The device service is temporarily unavailable"""

    retryable = True


class UnauthorizedError(RPCError):
    """The device requires authentication for this request"""


class DecodeError(ShellyError, ValueError):
    """A successful reply could not be mapped onto the expected shape"""

    kind = DECODE

    def __init__(self, message: str, method: Optional[str] = None,
                 target: Optional[Type] = None, payload: Optional[bytes] = None):
        super().__init__(message)
        self.message = message
        self.method = method
        self.target = target
        self.payload = payload


class MalformedResponseError(DecodeError):
    """The outer JSON-RPC envelope is invalid"""


# Device (Shelly) and JSON-RPC 2.0 error codes
ERROR_INVALID_REQUEST = -32600
ERROR_METHOD_NOT_FOUND = -32601
ERROR_INVALID_PARAMS = -32602
ERROR_INTERNAL = -32603
ERROR_COMPONENT_NOT_FOUND = -101
ERROR_COMPONENT_CONFIG_NOT_SET = -102
ERROR_INVALID_ARGUMENT = -103
ERROR_DEADLINE_EXCEEDED = -104
ERROR_NOT_FOUND = -105
ERROR_METHOD_UNSUPPORTED = -106
ERROR_INVALID_METHOD_PARAM = -107
ERROR_RESOURCE_EXHAUSTED = -108
ERROR_FAILED_PRECONDITION = -109
ERROR_UNAVAILABLE = -114
ERROR_UNAUTHORIZED = -115
ERROR_HTTP_UNAUTHORIZED = 401
ERROR_HTTP_NOT_FOUND = 404

ERROR_CODE_CLASSES: Dict[int, Type[RPCError]] = {
    ERROR_INVALID_REQUEST: InvalidArgumentError,
    ERROR_INVALID_PARAMS: InvalidArgumentError,
    ERROR_INVALID_ARGUMENT: InvalidArgumentError,
    ERROR_INVALID_METHOD_PARAM: InvalidArgumentError,
    ERROR_METHOD_NOT_FOUND: MethodNotFoundError,
    ERROR_METHOD_UNSUPPORTED: MethodNotFoundError,
    ERROR_HTTP_NOT_FOUND: MethodNotFoundError,
    ERROR_NOT_FOUND: NotFoundError,
    ERROR_COMPONENT_NOT_FOUND: NotFoundError,
    ERROR_DEADLINE_EXCEEDED: DeadlineExceededError,
    ERROR_RESOURCE_EXHAUSTED: ResourceExhaustedError,
    ERROR_FAILED_PRECONDITION: FailedPreconditionError,
    ERROR_COMPONENT_CONFIG_NOT_SET: FailedPreconditionError,
    ERROR_UNAVAILABLE: UnavailableError,
    ERROR_UNAUTHORIZED: UnauthorizedError,
    ERROR_HTTP_UNAUTHORIZED: UnauthorizedError,
}

"""
JSON-RPC 2.0 reply parsing

Replies are split into raw member slices instead of being fully decoded so that
the ``result`` payload reaches the caller exactly as the device sent it.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from shelly_comm.rpc.errors import MalformedResponseError, RPCError
from shelly_comm.utils.serialization import split_array_items, split_object_members


@dataclass(frozen=True)
class ErrorObject:
    """The ``error`` member of a reply"""
    code: int
    message: str
    data: Any = None

    def to_exception(self, method: Optional[str] = None) -> RPCError:
        return RPCError.from_error_object(
            {"code": self.code, "message": self.message, "data": self.data}, method
        )


@dataclass(frozen=True)
class RPCResponse:
    """A reply envelope; exactly one of ``result``/``error`` is set"""
    id: Any
    result: Optional[bytes] = None
    error: Optional[ErrorObject] = None
    src: Optional[str] = None
    dst: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class Notification:
    """An unsolicited device message (NotifyStatus, NotifyEvent, NotifyFullStatus, ...)"""
    method: str
    params: Any = None
    src: Optional[str] = None
    dst: Optional[str] = None


def _load(raw: bytes) -> Any:
    return json.loads(raw)


def _optional_str(members: Dict[str, bytes], name: str) -> Optional[str]:
    if name not in members:
        return None
    value = _load(members[name])
    return value if isinstance(value, str) else None


def _parse_error_object(raw: bytes) -> ErrorObject:
    error = _load(raw)
    if not isinstance(error, dict):
        raise MalformedResponseError(f"error member is not an object: {raw[:200]!r}", payload=raw)
    code = error.get("code")
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        raise MalformedResponseError(f"error member has no numeric code: {raw[:200]!r}", payload=raw)
    message = error.get("message", "")
    return ErrorObject(code=int(code), message=message if isinstance(message, str) else str(message),
                       data=error.get("data"))


def parse_response(raw: Union[bytes, str], method: Optional[str] = None) -> RPCResponse:
    """Parse one reply envelope

    Args:
        raw: Reply bytes as received from the transport
        method: Method name used for error context

    Returns:
        RPCResponse: The parsed envelope

    Raises:
        MalformedResponseError: Invalid JSON, not an object, or not exactly one of result/error
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    try:
        members = split_object_members(raw)
    except ValueError as e:
        raise MalformedResponseError(f"invalid response envelope: {e}", method=method, payload=raw) from e

    has_result = "result" in members
    has_error = "error" in members and members["error"] != b"null"
    if has_result and has_error:
        raise MalformedResponseError("response carries both result and error", method=method, payload=raw)
    if not has_result and not has_error:
        raise MalformedResponseError("response carries neither result nor error", method=method, payload=raw)

    response_id = _load(members["id"]) if "id" in members else None
    src = _optional_str(members, "src")
    dst = _optional_str(members, "dst")

    if has_error:
        try:
            error = _parse_error_object(members["error"])
        except MalformedResponseError as e:
            e.method = method
            raise
        return RPCResponse(id=response_id, error=error, src=src, dst=dst)
    return RPCResponse(id=response_id, result=members["result"], src=src, dst=dst)


def parse_batch_response(raw: Union[bytes, str]) -> List[RPCResponse]:
    """Parse a JSON array of reply envelopes

    Raises:
        MalformedResponseError: The document is not an array of valid envelopes
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    try:
        items = split_array_items(raw)
    except ValueError as e:
        raise MalformedResponseError(f"invalid batch response: {e}", payload=raw) from e
    return [parse_response(item) for item in items]


def parse_notification(raw: Union[bytes, str]) -> Notification:
    """Parse a notification frame

    Raises:
        MalformedResponseError: The frame is not a JSON object with a string ``method``
    """
    try:
        message = json.loads(raw)
    except ValueError as e:
        raise MalformedResponseError(f"invalid notification: {e}") from e
    if not isinstance(message, dict) or not isinstance(message.get("method"), str):
        raise MalformedResponseError("notification has no method")
    return Notification(
        method=message["method"],
        params=message.get("params"),
        src=message.get("src"),
        dst=message.get("dst"),
    )


def parse_message(raw: Union[bytes, str]) -> Union[RPCResponse, List[RPCResponse], Notification]:
    """Classify and parse an inbound frame

    Frames with a ``method`` and neither ``result`` nor ``error`` are
    notifications; arrays are batch replies; everything else is a reply.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    stripped = raw.lstrip()
    if stripped[:1] == b"[":
        return parse_batch_response(raw)
    try:
        members = split_object_members(raw)
    except ValueError as e:
        raise MalformedResponseError(f"invalid message: {e}", payload=raw) from e
    if "method" in members and "result" not in members and "error" not in members:
        return parse_notification(raw)
    return parse_response(raw)

"""
JSON-RPC 2.0 request construction

Requests are immutable once built. IDs come from a per-builder monotonic
counter starting at 1 so that every in-flight call on a shared transport can be
correlated with its reply.
"""

import itertools
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from shelly_comm.rpc.errors import InvalidRequestError
from shelly_comm.utils.serialization import dumps, to_wire

JSONRPC_VERSION = "2.0"


@dataclass(frozen=True)
class RPCRequest:
    """An outgoing call descriptor

    ``params`` holds the normalized wire value (``None`` when the call takes no
    parameters). ``id`` is ``None`` for notifications.
    """
    method: str
    params: Any = None
    id: Optional[int] = None
    auth: Optional[Dict[str, Any]] = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def with_auth(self, auth: Optional[Dict[str, Any]]) -> "RPCRequest":
        return RPCRequest(self.method, self.params, self.id, auth)

    def to_dict(self, src: Optional[str] = None) -> Dict[str, Any]:
        """Build the wire envelope

        Args:
            src: Source identifier required by persistent transports (WebSocket, MQTT)
        """
        envelope: Dict[str, Any] = {"jsonrpc": JSONRPC_VERSION}
        if self.id is not None:
            envelope["id"] = self.id
        if src:
            envelope["src"] = src
        envelope["method"] = self.method
        if self.params is not None:
            envelope["params"] = self.params
        if self.auth:
            envelope["auth"] = self.auth
        return envelope

    def to_json(self, src: Optional[str] = None) -> bytes:
        return dumps(self.to_dict(src))


class RequestBuilder:
    """Builds requests with unique, increasing IDs; safe to share between tasks and threads"""

    def __init__(self, start: int = 1):
        self._start = start
        self._lock = threading.Lock()
        self._counter = itertools.count(start)
        self._current = start - 1

    def next_id(self) -> int:
        with self._lock:
            self._current = next(self._counter)
            return self._current

    @property
    def current_id(self) -> int:
        """The most recently issued ID (0 before the first request)"""
        return self._current

    def reset(self) -> None:
        with self._lock:
            self._counter = itertools.count(self._start)
            self._current = self._start - 1

    def build(self, method: str, params: Any = None) -> RPCRequest:
        """Build a request with the next ID

        Raises:
            InvalidRequestError: Empty method or parameters that cannot be serialized
        """
        wire_params = normalize_params(method, params)
        return RPCRequest(method=method, params=wire_params, id=self.next_id())

    def build_notification(self, method: str, params: Any = None) -> RPCRequest:
        wire_params = normalize_params(method, params)
        return RPCRequest(method=method, params=wire_params)

    def build_batch(self, calls: Iterable[Tuple[str, Any]]) -> List[RPCRequest]:
        return [self.build(method, params) for method, params in calls]


def normalize_params(method: str, params: Any) -> Any:
    """Validate the method name and convert parameters to their wire value"""
    if not isinstance(method, str) or not method.strip():
        raise InvalidRequestError("method name must be a non-empty string")
    try:
        return to_wire(params)
    except TypeError as e:
        raise InvalidRequestError(f"failed to serialize params for {method}: {e}") from e

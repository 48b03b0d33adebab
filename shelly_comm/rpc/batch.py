"""
Batch calls

Collects several calls and sends them in one transport round trip. Each
result is matched to its request by id; a request without a matching reply
gets its own error instead of failing the whole batch.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from shelly_comm.rpc.errors import ShellyError
from shelly_comm.utils.serialization import decode_json

if TYPE_CHECKING:
    from shelly_comm.rpc.client import RPCClient


@dataclass
class BatchResult:
    """Outcome of one call in a batch"""
    method: str
    params: Any = None
    result: Optional[bytes] = None
    error: Optional[ShellyError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unmarshal(self, target: Any = None) -> Any:
        """Decode the result, raising the stored error if the call failed

        Raises:
            ShellyError: The call's own error
            DecodeError: The result does not fit ``target``
        """
        if self.error is not None:
            raise self.error
        return decode_json(self.result, target, self.method)

    def __str__(self) -> str:
        if self.error is not None:
            return f"BatchResult(method={self.method}, error={self.error})"
        return f"BatchResult(method={self.method}, result={self.result!r})"


class Batch:
    """Builder for a batch of calls"""

    def __init__(self, client: "RPCClient"):
        self._client = client
        self._calls: List[Tuple[str, Any]] = []

    def add(self, method: str, params: Any = None) -> "Batch":
        self._calls.append((method, params))
        return self

    def clear(self) -> "Batch":
        self._calls = []
        return self

    def __len__(self) -> int:
        return len(self._calls)

    async def execute(self, timeout: Optional[float] = None) -> List[BatchResult]:
        """Send all calls and return their results in the order they were added

        Raises:
            TransportError: The batch as a whole could not be delivered
            MalformedResponseError: The batch reply is not a valid array of envelopes
        """
        return await self._client.call_batch(list(self._calls), timeout=timeout)

"""
KVS component

The device's persistent key-value store (singleton ``kvs``). Writes can be
made conditional on an etag from a previous read.
"""

from typing import Any, List, Optional

from shelly_comm.components.base import BaseComponent
from shelly_comm.components.types import ComponentModel


class KVSSetResult(ComponentModel):
    etag: str
    rev: int


class KVSGetResult(ComponentModel):
    value: Any = None
    etag: str


class KVSItem(ComponentModel):
    key: str
    value: Any = None
    etag: Optional[str] = None


class KVSGetManyResult(ComponentModel):
    items: List[KVSItem] = []


class KVSListResult(ComponentModel):
    keys: List[str] = []
    rev: int = 0


class KVSDeleteResult(ComponentModel):
    rev: int


class KVS(BaseComponent):
    """KVS component handle"""

    component_type = "kvs"

    def __init__(self, client):
        super().__init__(client)

    async def set(self, key: str, value: Any, etag: Optional[str] = None,
                  timeout: Optional[float] = None) -> KVSSetResult:
        """Store a value

        Args:
            key: Item key
            value: Any JSON value
            etag: Only write when the stored item still has this etag
            timeout: Deadline in seconds

        Returns:
            KVSSetResult: New etag and store revision

        Raises:
            RPCError: The device rejected the write (e.g. etag mismatch)
        """
        params = {"key": key, "value": value}
        if etag is not None:
            params["etag"] = etag
        return await self.call("Set", params, result_type=KVSSetResult, timeout=timeout)

    async def get(self, key: str, timeout: Optional[float] = None) -> KVSGetResult:
        return await self.call("Get", {"key": key}, result_type=KVSGetResult, timeout=timeout)

    async def get_many(self, match: str = "*", timeout: Optional[float] = None) -> KVSGetManyResult:
        """Fetch every item whose key matches ``match`` (``*`` wildcards)"""
        return await self.call("GetMany", {"match": match}, result_type=KVSGetManyResult, timeout=timeout)

    async def list(self, timeout: Optional[float] = None) -> KVSListResult:
        return await self.call("List", result_type=KVSListResult, timeout=timeout)

    async def delete(self, key: str, timeout: Optional[float] = None) -> KVSDeleteResult:
        return await self.call("Delete", {"key": key}, result_type=KVSDeleteResult, timeout=timeout)

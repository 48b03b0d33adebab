"""
HTTP transport

One-shot JSON-RPC calls: every request is a POST of the envelope to
``<base>/rpc``. Built on ``httpx.AsyncClient``; Gen2+ devices protect the
endpoint with SHA-256 digest authentication, which ``httpx.DigestAuth``
negotiates transparently.
"""

import json
import logging
import time
from typing import Dict, Optional, Sequence

import httpx

from shelly_comm.adapters.adapter_interface import TransportInterface
from shelly_comm.rpc.auth import AuthMethod
from shelly_comm.rpc.errors import AuthenticationError, RPCTimeoutError, TransportError
from shelly_comm.rpc.request import RPCRequest
from shelly_comm.utils.serialization import dumps

logger = logging.getLogger(__name__)

RPC_PATH = "/rpc"


def normalize_base_url(address: str) -> str:
    """Add ``http://`` when no scheme is given and strip trailing slashes"""
    address = address.strip()
    if not address:
        raise ValueError("device address must not be empty")
    if "://" not in address:
        address = f"http://{address}"
    return address.rstrip("/")


def _is_error_envelope(body: bytes) -> bool:
    try:
        message = json.loads(body)
    except ValueError:
        return False
    return isinstance(message, dict) and isinstance(message.get("error"), dict)


class HttpTransport(TransportInterface):
    """HTTP transport, one POST per call"""

    def __init__(self,
                 address: str,
                 timeout: float = 30.0,
                 username: Optional[str] = None,
                 password: Optional[str] = None,
                 auth_method: str = AuthMethod.DIGEST,
                 headers: Optional[Dict[str, str]] = None,
                 client: Optional[httpx.AsyncClient] = None):
        """Initialize HTTP transport

        Args:
            address: Device address (``192.168.1.10``, ``http://host:8080``)
            timeout: Per-request timeout in seconds
            username: User for HTTP authentication ("admin" on Gen2+ devices)
            password: Password for HTTP authentication
            auth_method: "digest" or "basic"
            headers: Extra headers sent with every request
            client: Pre-built ``httpx.AsyncClient``; it is not closed by the transport
        """
        self.base_url = normalize_base_url(address)
        self.url = f"{self.base_url}{RPC_PATH}"
        self.timeout = timeout
        self.headers = dict(headers or {})
        self._closed = False

        auth = None
        if password is not None:
            user = username or "admin"
            if auth_method == AuthMethod.BASIC:
                auth = httpx.BasicAuth(user, password)
            elif auth_method == AuthMethod.DIGEST:
                auth = httpx.DigestAuth(user, password)
            else:
                raise ValueError(f"Unsupported HTTP auth method: {auth_method}")
        self.auth = auth

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        logger.info(f"HTTP transport targeting {self.url}")

    async def close(self) -> None:
        """Close the HTTP client (only when the transport created it)"""
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await self._client.aclose()
        logger.debug(f"HTTP transport for {self.url} closed")

    async def call(self, request: RPCRequest) -> bytes:
        self._check_open()
        return await self._post(request.to_json(), request.method)

    async def call_batch(self, requests: Sequence[RPCRequest]) -> bytes:
        self._check_open()
        body = dumps([request.to_dict() for request in requests])
        return await self._post(body, "batch")

    async def _post(self, body: bytes, method: str) -> bytes:
        headers = {"Content-Type": "application/json", **self.headers}
        start_time = time.time()
        logger.debug(f"POST {self.url}: {body[:200]!r}")

        kwargs = {"content": body, "headers": headers, "timeout": self.timeout}
        if self.auth is not None:
            kwargs["auth"] = self.auth

        try:
            response = await self._client.post(self.url, **kwargs)
        except httpx.TimeoutException as e:
            raise RPCTimeoutError(f"HTTP request to {self.url} timed out after {self.timeout}s",
                                  method=method) from e
        except httpx.RequestError as e:
            raise TransportError(f"HTTP request to {self.url} failed: {str(e)}", method=method) from e

        latency_ms = (time.time() - start_time) * 1000
        logger.debug(f"HTTP {response.status_code} from {self.url} in {latency_ms:.2f}ms")

        body = response.content
        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"HTTP {response.status_code} from {self.url}: authentication required",
                method=method,
                status_code=response.status_code,
            )
        if response.is_success:
            return body
        if _is_error_envelope(body):
            # The device reported a JSON-RPC error with a non-2xx status
            return body
        raise TransportError(
            f"HTTP {response.status_code} from {self.url}: {response.text[:200]}",
            method=method,
            status_code=response.status_code,
        )

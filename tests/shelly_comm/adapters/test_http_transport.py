"""
HTTP transport tests

Requests go through ``httpx.MockTransport`` so the full request/response path
of ``httpx.AsyncClient`` is exercised without a device.
"""

import json

import httpx
import pytest

from shelly_comm.adapters.http.client import HttpTransport, normalize_base_url
from shelly_comm.rpc.client import RPCClient
from shelly_comm.rpc.errors import (
    AuthenticationError,
    MalformedResponseError,
    NotFoundError,
    RPCTimeoutError,
    TransportClosedError,
    TransportError,
)
from shelly_comm.rpc.request import RPCRequest


def make_transport(handler, **kwargs):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport("192.168.33.1", client=client, **kwargs), client


def reply(request, result):
    body = json.loads(request.content)
    return httpx.Response(200, json={"id": body["id"], "src": "shellyplus1-abc", "result": result})


@pytest.mark.parametrize("address, expected", [
    ("192.168.33.1", "http://192.168.33.1"),
    ("192.168.33.1/", "http://192.168.33.1"),
    ("https://device.local:8443/", "https://device.local:8443"),
    (" shelly.lan ", "http://shelly.lan"),
])
def test_normalize_base_url(address, expected):
    """Addresses get a scheme and lose trailing slashes"""
    assert normalize_base_url(address) == expected


def test_empty_address_rejected():
    """An empty address is a configuration error"""
    with pytest.raises(ValueError):
        normalize_base_url("  ")


@pytest.mark.asyncio
async def test_posts_envelope_to_rpc_endpoint():
    """The request envelope is POSTed to /rpc and the reply body returned"""
    seen = []

    def handler(request):
        seen.append(request)
        return reply(request, {"id": 0, "output": True})

    transport, client = make_transport(handler)
    raw = await transport.call(RPCRequest("Switch.GetStatus", {"id": 0}, 1))

    assert str(seen[0].url) == "http://192.168.33.1/rpc"
    assert seen[0].method == "POST"
    assert seen[0].headers["content-type"] == "application/json"
    assert json.loads(seen[0].content) == {"jsonrpc": "2.0", "id": 1, "method": "Switch.GetStatus",
                                           "params": {"id": 0}}
    assert json.loads(raw)["result"] == {"id": 0, "output": True}
    await client.aclose()


@pytest.mark.asyncio
async def test_client_end_to_end():
    """The RPC client returns the result slice of the HTTP body"""
    transport, client = make_transport(
        lambda request: httpx.Response(200, content=b'{"id":1,"result":{"apower":12.50}}')
    )
    rpc = RPCClient(transport)

    assert await rpc.call("Switch.GetStatus", {"id": 0}) == b'{"apower":12.50}'
    await client.aclose()


@pytest.mark.asyncio
async def test_unauthorized_status():
    """401 responses raise AuthenticationError"""
    transport, client = make_transport(lambda request: httpx.Response(401, text="Unauthorized"))

    with pytest.raises(AuthenticationError) as exc_info:
        await transport.call(RPCRequest("Sys.GetConfig", id=1))

    assert exc_info.value.status_code == 401
    assert not exc_info.value.retryable
    await client.aclose()


@pytest.mark.asyncio
async def test_error_envelope_with_error_status_reaches_client():
    """A JSON-RPC error sent with a non-2xx status is classified by the client"""
    def handler(request):
        return httpx.Response(404, json={"id": 1, "error": {"code": -105, "message": "Argument 'id', value 7 not found!"}})

    transport, client = make_transport(handler)
    rpc = RPCClient(transport)

    with pytest.raises(NotFoundError):
        await rpc.call("Switch.GetStatus", {"id": 7})
    await client.aclose()


@pytest.mark.asyncio
async def test_other_error_status():
    """Non-2xx responses without an error envelope are transport errors"""
    transport, client = make_transport(lambda request: httpx.Response(502, text="Bad Gateway"))

    with pytest.raises(TransportError) as exc_info:
        await transport.call(RPCRequest("Sys.GetStatus", id=1))

    assert exc_info.value.status_code == 502
    await client.aclose()


@pytest.mark.asyncio
async def test_connection_errors():
    """httpx connection failures and timeouts are translated"""
    def refused(request):
        raise httpx.ConnectError("connection refused", request=request)

    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    transport, client = make_transport(refused)
    with pytest.raises(TransportError, match="connection refused"):
        await transport.call(RPCRequest("Sys.GetStatus", id=1))
    await client.aclose()

    transport, client = make_transport(slow)
    with pytest.raises(RPCTimeoutError):
        await transport.call(RPCRequest("Sys.GetStatus", id=1))
    await client.aclose()


@pytest.mark.asyncio
async def test_digest_authentication():
    """A digest challenge is answered with SHA-256 credentials"""
    attempts = []

    def handler(request):
        attempts.append(request.headers.get("authorization"))
        if "authorization" not in request.headers:
            return httpx.Response(401, headers={
                "WWW-Authenticate": 'Digest qop="auth", realm="shellyplus1-abc", nonce="60dc59c6", algorithm=SHA-256'
            })
        return reply(request, {"mac": "A8032AB12345"})

    transport, client = make_transport(handler, password="secret")
    raw = await transport.call(RPCRequest("Sys.GetConfig", id=1))

    assert json.loads(raw)["result"] == {"mac": "A8032AB12345"}
    assert attempts[0] is None
    assert attempts[1].startswith("Digest ")
    assert 'username="admin"' in attempts[1]
    await client.aclose()


def test_unknown_auth_method():
    """Only digest and basic are supported over HTTP"""
    with pytest.raises(ValueError):
        HttpTransport("192.168.33.1", password="secret", auth_method="token")


@pytest.mark.asyncio
async def test_batch_with_missing_reply():
    """Batches are sent as one array; a missing reply only fails its own call"""
    def handler(request):
        calls = json.loads(request.content)
        assert isinstance(calls, list)
        return httpx.Response(200, json=[{"id": calls[0]["id"], "result": {"uptime": 5}}])

    transport, client = make_transport(handler)
    rpc = RPCClient(transport)

    results = await rpc.batch().add("Sys.GetStatus").add("Switch.GetStatus", {"id": 0}).execute()

    assert results[0].unmarshal() == {"uptime": 5}
    assert isinstance(results[1].error, MalformedResponseError)
    await client.aclose()


@pytest.mark.asyncio
async def test_close():
    """An injected client stays open; calls after close fail"""
    transport, client = make_transport(lambda request: reply(request, {}))

    await transport.close()
    await transport.close()

    assert transport.closed
    assert not client.is_closed
    with pytest.raises(TransportClosedError):
        await transport.call(RPCRequest("Sys.GetStatus", id=1))
    await client.aclose()


@pytest.mark.asyncio
async def test_owned_client_closed():
    """A client created by the transport is closed with it"""
    transport = HttpTransport("192.168.33.1")

    await transport.close()

    assert transport._client.is_closed

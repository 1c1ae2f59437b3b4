import httpx
import pytest

from lifx_gateway.lifx_client import LifxClient, LifxTransportError, LifxUpstreamError


@pytest.mark.asyncio
async def test_lifx_client_sends_bearer_token_and_returns_json_body():
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers.get("authorization") == "Bearer abc"
        assert str(request.url) == "https://lifx.test/v1/lights/all"
        return httpx.Response(200, json=[{"id": "d073d5"}])

    client = LifxClient(base_url="https://lifx.test/v1/lights/", transport=httpx.MockTransport(handler))
    try:
        result = await client.request_jsonish(method="GET", path="/all", token="abc")
        assert result.status_code == 200
        assert result.body == [{"id": "d073d5"}]
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_lifx_client_raises_upstream_error_and_exposes_body():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Could not find id:nope"})

    client = LifxClient(base_url="https://lifx.test/v1/lights", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(LifxUpstreamError) as exc:
            await client.get_json("/id:nope", token="abc")
        assert exc.value.status_code == 404
        assert exc.value.body == {"error": "Could not find id:nope"}
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_lifx_client_does_not_retry():
    calls = {"n": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        return httpx.Response(503, text="unavailable")

    client = LifxClient(base_url="https://lifx.test/v1/lights", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(LifxUpstreamError) as exc:
            await client.put_json("/id:1/state", token="abc", json_body={"power": "on"})
        assert exc.value.body == "unavailable"
        assert calls["n"] == 1
    finally:
        await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [httpx.ConnectError("no route"), httpx.ReadTimeout("slow")],
)
async def test_lifx_client_raises_transport_error_on_network_failure(error):
    async def handler(request: httpx.Request) -> httpx.Response:
        raise error

    client = LifxClient(base_url="https://lifx.test/v1/lights", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(LifxTransportError):
            await client.get_json("/all", token="abc")
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_lifx_client_treats_redirect_as_upstream_error():
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "https://elsewhere.test/"}, text="moved")

    client = LifxClient(base_url="https://lifx.test/v1/lights", transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(LifxUpstreamError) as exc:
            await client.put_json("/id:1/state", token="abc", json_body={"power": "on"})
        assert exc.value.status_code == 302
    finally:
        await client.close()

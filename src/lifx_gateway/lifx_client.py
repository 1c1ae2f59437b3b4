from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


class LifxTransportError(Exception):
    pass


class LifxUpstreamError(Exception):
    def __init__(self, *, status_code: int, body: Any) -> None:
        super().__init__(f"LIFX upstream error: {status_code}")
        self.status_code = status_code
        self.body = body


@dataclass(frozen=True)
class LifxJSONishResult:
    status_code: int
    body: Any


class LifxClient:
    """
    Thin async client for the LIFX HTTP API.

    The bearer token is supplied per request since each user owns a different one.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout_seconds, connect=3.0),
            transport=self._transport,
        )
        return self._client

    async def request_jsonish(
        self,
        *,
        method: str,
        path: str,
        token: str,
        json_body: Any | None = None,
    ) -> LifxJSONishResult:
        client = await self._get_client()
        headers = {"Authorization": f"Bearer {token}"}
        try:
            resp = await client.request(method, f"{self._base_url}{path}", json=json_body, headers=headers)
        except httpx.TimeoutException as exc:
            raise LifxTransportError(f"timeout: {exc}") from exc
        except httpx.TransportError as exc:
            raise LifxTransportError(str(exc)) from exc

        body: Any
        content_type = resp.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
        else:
            body = resp.text

        if not resp.is_success:
            raise LifxUpstreamError(status_code=resp.status_code, body=body)

        return LifxJSONishResult(status_code=resp.status_code, body=body)

    async def get_json(self, path: str, *, token: str) -> Any:
        result = await self.request_jsonish(method="GET", path=path, token=token)
        return result.body

    async def put_json(self, path: str, *, token: str, json_body: Any) -> Any:
        result = await self.request_jsonish(method="PUT", path=path, token=token, json_body=json_body)
        return result.body

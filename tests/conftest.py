import json

import httpx
import pytest
import pytest_asyncio

from lifx_gateway.config import AppConfig
from lifx_gateway.coordinator import BatchCoordinator
from lifx_gateway.db import Database
from lifx_gateway.dispatcher import RemoteDispatcher
from lifx_gateway.lifx_client import LifxClient
from lifx_gateway.models import Device
from lifx_gateway.service import DeviceService
from lifx_gateway.vault import CredentialVault


TEST_KEY = b"0123456789abcdef0123456789abcdef"
LIFX_BASE = "https://lifx.test/v1/lights"
VALID_TOKEN = "tok-u1"


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        lifx_api_base=LIFX_BASE,
        credential_key=TEST_KEY,
        db_path=":memory:",
        dispatch_concurrency=4,
        lifx_timeout_seconds=1.0,
    )


@pytest.fixture
def vault() -> CredentialVault:
    return CredentialVault(key=TEST_KEY)


class FakeLifx:
    """In-process stand-in for the LIFX HTTP API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict | None]] = []
        self.failing_serials: set[str] = set()
        self.known_serials: set[str] = {"123", "456", "789", "999", "new-1"}
        self.valid_tokens: set[str] = {VALID_TOKEN, "tok-u2"}
        self.probe_status: int | None = None

    @property
    def put_calls(self) -> list[tuple[str, str, dict | None]]:
        return [call for call in self.calls if call[0] == "PUT"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content.decode("utf-8")) if request.content else None
        path = request.url.path[len("/v1/lights") :]
        self.calls.append((request.method, path, body))

        token = request.headers.get("authorization", "")[len("Bearer ") :]
        if token not in self.valid_tokens:
            return httpx.Response(401, json={"error": "Invalid token"})

        if request.method == "GET" and path == "/all":
            if self.probe_status is not None:
                return httpx.Response(self.probe_status, json={"error": "boom"})
            return httpx.Response(200, json=[])

        serial = path.split("/")[1][len("id:") :]
        if request.method == "GET":
            if serial not in self.known_serials:
                return httpx.Response(404, json={"error": "Could not find id:" + serial})
            return httpx.Response(200, json=[{"id": serial, "power": "off", "brightness": 0.5}])

        if serial in self.failing_serials:
            return httpx.Response(500, json={"error": "device offline"})
        return httpx.Response(207, json={"results": [{"id": serial, "status": "ok"}]})


@pytest.fixture
def lifx() -> FakeLifx:
    return FakeLifx()


@pytest_asyncio.fixture
async def db():
    database = Database(":memory:")
    await database.connect()
    try:
        yield database
    finally:
        await database.close()


@pytest_asyncio.fixture
async def seeded_db(db: Database, vault: CredentialVault):
    await db.insert_user(username="u1", encrypted_token=vault.encrypt(VALID_TOKEN))
    await db.insert_user(username="u2", encrypted_token=vault.encrypt("tok-u2"))
    for device in (
        Device("123", "KitchenLight", "Light", "off", 50, "white", "Kitchen", "u1"),
        Device("456", "BedroomLight", "Light", "on", 75, "blue", "Bedroom", "u1"),
        Device("789", "KitchenStrip", "Light", "on", 20, "white", "Kitchen", "u1"),
        Device("999", "KitchenLight", "Light", "off", 10, "red", "Kitchen", "u2"),
    ):
        await db.insert_device(device)
    return db


@pytest_asyncio.fixture
async def client(lifx: FakeLifx):
    lifx_client = LifxClient(base_url=LIFX_BASE, transport=httpx.MockTransport(lifx.handler))
    try:
        yield lifx_client
    finally:
        await lifx_client.close()


@pytest.fixture
def dispatcher(client: LifxClient) -> RemoteDispatcher:
    return RemoteDispatcher(client=client)


@pytest.fixture
def coordinator(seeded_db: Database, dispatcher: RemoteDispatcher) -> BatchCoordinator:
    return BatchCoordinator(db=seeded_db, dispatcher=dispatcher, max_concurrency=2)


@pytest.fixture
def service(
    seeded_db: Database,
    vault: CredentialVault,
    dispatcher: RemoteDispatcher,
    coordinator: BatchCoordinator,
) -> DeviceService:
    return DeviceService(db=seeded_db, vault=vault, dispatcher=dispatcher, coordinator=coordinator)

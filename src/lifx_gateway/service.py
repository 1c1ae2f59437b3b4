from __future__ import annotations

import logging
from typing import Any

import aiosqlite

from lifx_gateway.config import AppConfig
from lifx_gateway.coordinator import BatchCoordinator
from lifx_gateway.db import Database
from lifx_gateway.dispatcher import RemoteDispatcher
from lifx_gateway.errors import (
    DuplicateDeviceError,
    DuplicateNameError,
    InvalidCredentialError,
    InvalidSerialError,
    NoFieldsProvidedError,
    NotFoundError,
    ValidationError,
)
from lifx_gateway.lifx_client import LifxClient
from lifx_gateway.models import BatchResult, Device, Selector
from lifx_gateway.schemas import CommandRequest, DeviceCreate, DeviceFields, RenameRequest, parse
from lifx_gateway.vault import CredentialVault


logger = logging.getLogger("lifx_gateway")


class DeviceService:
    """Entry points for the (external) HTTP layer; identity is already resolved to a username."""

    def __init__(
        self,
        *,
        db: Database,
        vault: CredentialVault,
        dispatcher: RemoteDispatcher,
        coordinator: BatchCoordinator,
    ) -> None:
        self.db = db
        self.vault = vault
        self.dispatcher = dispatcher
        self.coordinator = coordinator

    @classmethod
    async def from_config(cls, config: AppConfig, *, client: LifxClient | None = None) -> "DeviceService":
        db = Database(config.db_path)
        await db.connect()
        client = client or LifxClient(base_url=config.lifx_api_base, timeout_seconds=config.lifx_timeout_seconds)
        dispatcher = RemoteDispatcher(client=client)
        return cls(
            db=db,
            vault=CredentialVault(key=config.credential_key),
            dispatcher=dispatcher,
            coordinator=BatchCoordinator(db=db, dispatcher=dispatcher, max_concurrency=config.dispatch_concurrency),
        )

    async def close(self) -> None:
        await self.dispatcher.client.close()
        await self.db.close()

    # Credentials

    async def _check_credential(self, credential: str) -> None:
        if not isinstance(credential, str) or not credential.strip():
            raise ValidationError("lifxToken must be a non-empty string", details={"field": "lifxToken"})
        if not await self.dispatcher.validate_credential(credential):
            raise InvalidCredentialError("Invalid LIFX token.", details={"field": "lifxToken"})

    async def create_user(self, username: str, credential: str) -> None:
        if await self.db.user_exists(username):
            raise ValidationError(f"Duplicate username: {username}")
        await self._check_credential(credential)
        await self.db.insert_user(username=username, encrypted_token=self.vault.encrypt(credential))

    async def set_credential(self, username: str, credential: str) -> None:
        await self._check_credential(credential)
        stored = await self.db.set_encrypted_token(username=username, encrypted_token=self.vault.encrypt(credential))
        if not stored:
            raise NotFoundError(f"No user: {username}")

    async def get_credential(self, username: str) -> str:
        found, blob = await self.db.get_encrypted_token(username)
        if not found:
            raise NotFoundError(f"No user: {username}")
        return self.vault.decrypt(blob)

    async def remove_user(self, username: str) -> str:
        if not await self.db.delete_user(username):
            raise NotFoundError(f"No user: {username}")
        return username

    # Device lifecycle

    async def register_device(self, username: str, payload: DeviceCreate | dict[str, Any]) -> Device:
        data: DeviceCreate = parse(DeviceCreate, payload)
        if not await self.db.user_exists(username):
            raise NotFoundError(f"No user: {username}")
        if await self.db.get_device_by_serial(data.serial_number):
            raise DuplicateDeviceError(
                "A device with this serial number is already registered.",
                details={"serial_number": data.serial_number},
            )
        if await self.db.get_device(name=data.name, username=username):
            raise DuplicateNameError("Another device with the same name already exists.", details={"name": data.name})

        credential = await self.get_credential(username)
        if not await self.dispatcher.validate_device_serial(data.serial_number, credential):
            raise InvalidSerialError("Invalid device serial number.", details={"serial_number": data.serial_number})

        device = Device(
            serial_number=data.serial_number,
            name=data.name,
            type=data.type,
            status=data.status,
            brightness=0,
            color="white",
            room=data.room,
            username=username,
        )
        try:
            return await self.db.insert_device(device)
        except aiosqlite.IntegrityError as exc:
            # Lost a race with a concurrent registration.
            raise DuplicateDeviceError("Device already registered.", details={"serial_number": data.serial_number}) from exc

    async def get_device(self, username: str, name: str) -> Device:
        device = await self.db.get_device(name=name, username=username)
        if device is None:
            raise NotFoundError("No device found with the provided name.", details={"name": name})
        return device

    async def list_devices(self, username: str) -> list[Device]:
        return await self.db.list_devices(username=username)

    async def rename_device(self, username: str, name: str, new_name: str | dict[str, Any]) -> Device:
        if isinstance(new_name, str):
            new_name = {"name": new_name}
        target: RenameRequest = parse(RenameRequest, new_name)

        device = await self.get_device(username, name)
        existing = await self.db.get_device(name=target.name, username=username)
        if existing and existing.serial_number != device.serial_number:
            raise DuplicateNameError("Another device with the same name already exists.", details={"name": target.name})
        if existing:
            return device

        try:
            renamed = await self.db.rename_device(
                serial_number=device.serial_number, username=username, new_name=target.name
            )
        except aiosqlite.IntegrityError as exc:
            # Lost a race with a concurrent rename to the same name.
            raise DuplicateNameError(
                "Another device with the same name already exists.", details={"name": target.name}
            ) from exc
        if renamed is None:
            raise NotFoundError("No device found with the provided name.", details={"name": name})
        return renamed

    async def remove_device(self, username: str, name: str) -> str:
        if not await self.db.delete_device(name=name, username=username):
            raise NotFoundError("No device found with the provided name.", details={"name": name})
        return name

    # Control

    async def control(self, username: str, payload: CommandRequest | dict[str, Any]) -> BatchResult:
        request: CommandRequest = parse(CommandRequest, payload)
        return await self._run(username, request.selector(), request)

    async def control_device(self, username: str, name: str, fields: DeviceFields | dict[str, Any]) -> BatchResult:
        data: DeviceFields = parse(DeviceFields, fields)
        return await self._run(username, Selector(kind="single", name=name), data)

    async def control_many(
        self,
        username: str,
        fields: DeviceFields | dict[str, Any],
        *,
        room: str | None = None,
    ) -> BatchResult:
        data: DeviceFields = parse(DeviceFields, fields)
        selector = Selector(kind="room", room=room) if room else Selector(kind="all")
        return await self._run(username, selector, data)

    async def _run(self, username: str, selector: Selector, fields: DeviceFields) -> BatchResult:
        patch = fields.to_patch()
        if patch.is_empty():
            raise NoFieldsProvidedError()
        credential = await self.get_credential(username)
        result = await self.coordinator.execute(username=username, selector=selector, patch=patch, credential=credential)
        result.raise_for_failure()
        return result

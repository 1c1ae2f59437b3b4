from __future__ import annotations

import asyncio
import logging
from typing import Any

from lifx_gateway.db import Database
from lifx_gateway.dispatcher import RemoteDispatcher
from lifx_gateway.errors import NoFieldsProvidedError, NotFoundError
from lifx_gateway.models import BatchResult, CommandOutcome, Device, DevicePatch, Selector
from lifx_gateway.translator import build_action


logger = logging.getLogger("lifx_gateway")


class BatchCoordinator:
    """
    Runs one command: resolve targets, translate, dispatch, aggregate, sync.

    Local records are only written when every dispatched device succeeded.
    """

    def __init__(self, *, db: Database, dispatcher: RemoteDispatcher, max_concurrency: int = 8) -> None:
        self.db = db
        self.dispatcher = dispatcher
        self.max_concurrency = max(1, int(max_concurrency))

    async def execute(
        self,
        *,
        username: str,
        selector: Selector,
        patch: DevicePatch,
        credential: str,
    ) -> BatchResult:
        if patch.is_empty():
            raise NoFieldsProvidedError()

        devices = await self._resolve(username=username, selector=selector)
        action = build_action(patch)
        outcomes = await self._dispatch_all(devices=devices, action=action, credential=credential)

        result = BatchResult(selector=selector, patch=patch, outcomes=outcomes)
        if not result.all_succeeded:
            logger.warning(
                "command for %s (user=%s) failed on %d/%d devices; local state unchanged",
                selector.describe(),
                username,
                result.failed_count,
                result.total,
            )
            return result

        result.synced = await self.db.apply_patch(
            username=username,
            serial_numbers=[device.serial_number for device in devices],
            patch=patch,
        )
        logger.info("command for %s (user=%s) applied to %d devices", selector.describe(), username, result.total)
        return result

    async def _resolve(self, *, username: str, selector: Selector) -> list[Device]:
        if selector.kind == "single":
            device = await self.db.get_device(name=str(selector.name), username=username)
            if device is None:
                raise NotFoundError("Device not found", details={"name": selector.name})
            return [device]

        if selector.kind == "room":
            devices = await self.db.list_devices_in_room(username=username, room=str(selector.room))
        else:
            devices = await self.db.list_devices(username=username)
        if not devices:
            raise NotFoundError("No devices found.", details={"selector": selector.describe()})
        return devices

    async def _dispatch_all(
        self,
        *,
        devices: list[Device],
        action: dict[str, Any],
        credential: str,
    ) -> list[CommandOutcome]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run_one(device: Device) -> CommandOutcome:
            async with semaphore:
                try:
                    response = await self.dispatcher.dispatch(device.serial_number, action, credential)
                except Exception as err:
                    # Converted into an outcome so sibling dispatches keep running.
                    return CommandOutcome(device=device, ok=False, error=err)
            return CommandOutcome(device=device, ok=True, response=response)

        return list(await asyncio.gather(*(run_one(device) for device in devices)))

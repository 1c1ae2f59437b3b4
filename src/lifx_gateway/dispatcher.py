from __future__ import annotations

import logging
from typing import Any

from lifx_gateway.errors import RemoteDispatchError
from lifx_gateway.lifx_client import LifxClient, LifxTransportError, LifxUpstreamError


logger = logging.getLogger("lifx_gateway")


def device_selector(serial_number: str) -> str:
    return f"id:{serial_number}"


class RemoteDispatcher:
    def __init__(self, *, client: LifxClient) -> None:
        self.client = client

    async def dispatch(self, serial_number: str, action: dict[str, Any], credential: str) -> Any:
        """
        Apply `action` to one device via `PUT /id:<serial>/state`.

        Returns the vendor payload; any transport failure, non-2xx status or
        an `error` field in the payload raises RemoteDispatchError.
        """
        path = f"/{device_selector(serial_number)}/state"
        try:
            body = await self.client.put_json(path, token=credential, json_body=action)
        except LifxTransportError as err:
            logger.warning("LIFX unreachable for %s: %s", device_selector(serial_number), err)
            raise RemoteDispatchError("LIFX API unreachable", details={"error": str(err)}) from err
        except LifxUpstreamError as err:
            logger.warning("LIFX rejected command for %s: status=%s", device_selector(serial_number), err.status_code)
            raise RemoteDispatchError(
                "LIFX API returned an error", status_code=err.status_code, body=err.body
            ) from err

        if isinstance(body, dict) and body.get("error"):
            logger.warning("LIFX reported error for %s: %s", device_selector(serial_number), body["error"])
            raise RemoteDispatchError(str(body["error"]), body=body)
        return body

    async def validate_credential(self, credential: str) -> bool:
        try:
            await self.client.get_json("/all", token=credential)
        except LifxUpstreamError as err:
            if err.status_code == 401:
                return False
            raise RemoteDispatchError(
                "Failed to validate token due to an unexpected error.",
                status_code=err.status_code,
                body=err.body,
            ) from err
        except LifxTransportError as err:
            raise RemoteDispatchError(
                "Failed to validate token due to an unexpected error.", details={"error": str(err)}
            ) from err
        return True

    async def validate_device_serial(self, serial_number: str, credential: str) -> bool:
        # Not-found and transient failures are deliberately indistinguishable here.
        try:
            await self.client.get_json(f"/{device_selector(serial_number)}", token=credential)
        except (LifxUpstreamError, LifxTransportError) as err:
            logger.info("serial probe failed for %s: %s", device_selector(serial_number), err)
            return False
        return True

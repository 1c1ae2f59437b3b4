from __future__ import annotations

from typing import Any

from lifx_gateway.models import DevicePatch


def brightness_to_wire(brightness: int) -> float:
    # LIFX expects 0.0-1.0.
    return brightness / 100


def brightness_from_wire(value: float) -> int:
    """Inverse of brightness_to_wire for every integer percent."""
    return int(round(value * 100))


def power_from_status(status: str | bool) -> str:
    if isinstance(status, bool):
        return "on" if status else "off"
    return status


def build_action(patch: DevicePatch) -> dict[str, Any]:
    """Map a patch onto the LIFX `PUT /state` body, emitting only the fields present."""
    action: dict[str, Any] = {}
    if patch.status is not None:
        action["power"] = power_from_status(patch.status)
    if patch.brightness is not None:
        action["brightness"] = brightness_to_wire(patch.brightness)
    if patch.color is not None:
        action["color"] = patch.color
    return action

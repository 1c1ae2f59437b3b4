from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from lifx_gateway.errors import ValidationError
from lifx_gateway.models import DevicePatch, Selector


def _normalize_status(value: Any) -> Any:
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, str):
        return value.strip().lower()
    return value


class DeviceFields(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: Literal["on", "off"] | None = Field(default=None, description="Power state.", examples=["on"])
    brightness: int | None = Field(default=None, ge=0, le=100, description="Brightness percent 0–100.", examples=[90])
    color: str | None = Field(
        default=None,
        min_length=1,
        description="LIFX color string (named color, `#rrggbb`, `kelvin:2700`, ...).",
        examples=["blue", "#ff8800"],
    )

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return _normalize_status(value)

    def to_patch(self) -> DevicePatch:
        return DevicePatch(status=self.status, brightness=self.brightness, color=self.color)


class CommandRequest(DeviceFields):
    target: Literal["single", "room", "all"] = Field(
        "single", description="Which devices to address: one by name, all in a room, or all owned."
    )
    name: str | None = Field(default=None, min_length=1, description="Device name (target=single).")
    room: str | None = Field(default=None, min_length=1, description="Room label (target=room).")

    @model_validator(mode="after")
    def _check_target(self) -> "CommandRequest":
        if self.target == "single" and not self.name:
            raise ValueError("name is required when target is 'single'")
        if self.target == "room" and not self.room:
            raise ValueError("room is required when target is 'room'")
        return self

    def selector(self) -> Selector:
        if self.target == "single":
            return Selector(kind="single", name=self.name)
        if self.target == "room":
            return Selector(kind="room", room=self.room)
        return Selector(kind="all")


class DeviceCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    serial_number: str = Field(..., min_length=1, description="Vendor serial, e.g. `d073d5000000`.")
    name: str = Field(..., min_length=1, max_length=64)
    type: str = Field("light", min_length=1)
    status: Literal["on", "off"] = "off"
    room: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> Any:
        return _normalize_status(value)


class RenameRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=64)


def parse(model: type[BaseModel], payload: Any) -> Any:
    """Validate `payload` against `model`, raising the gateway's ValidationError."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Request validation failed",
            details={"errors": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]},
        ) from exc

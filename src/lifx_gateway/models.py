from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from lifx_gateway.errors import PartialBatchFailure, RemoteDispatchError


PATCH_FIELDS: tuple[str, ...] = ("status", "brightness", "color")

SelectorKind = Literal["single", "room", "all"]


@dataclass(frozen=True)
class Device:
    serial_number: str
    name: str
    type: str
    status: str
    brightness: int
    color: str
    room: str | None
    username: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "serial_number": self.serial_number,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "brightness": self.brightness,
            "color": self.color,
            "room": self.room,
            "username": self.username,
        }


@dataclass(frozen=True)
class DevicePatch:
    """Requested attribute changes; None means "leave as is"."""

    status: str | None = None
    brightness: int | None = None
    color: str | None = None

    def changes(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name in PATCH_FIELDS:
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        return out

    def is_empty(self) -> bool:
        return not self.changes()


@dataclass(frozen=True)
class Selector:
    kind: SelectorKind
    name: str | None = None
    room: str | None = None

    def describe(self) -> str:
        if self.kind == "single":
            return f"device {self.name!r}"
        if self.kind == "room":
            return f"room {self.room!r}"
        return "all devices"


@dataclass(frozen=True)
class CommandOutcome:
    device: Device
    ok: bool
    response: Any = None
    error: Exception | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.device.name, "serial_number": self.device.serial_number, "ok": self.ok}
        if self.ok:
            out["response"] = self.response
        else:
            out["error"] = str(self.error)
        return out


@dataclass
class BatchResult:
    selector: Selector
    patch: DevicePatch
    outcomes: list[CommandOutcome] = field(default_factory=list)
    synced: list[Device] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def all_succeeded(self) -> bool:
        return all(outcome.ok for outcome in self.outcomes)

    @property
    def message(self) -> str:
        if not self.all_succeeded:
            return f"Failed to update {self.failed_count} out of {self.total} devices."
        if self.selector.kind == "single":
            return f"Device {self.outcomes[0].device.name} controlled successfully."
        return f"Successfully updated {self.total} devices."

    def raise_for_failure(self) -> None:
        if self.all_succeeded:
            return
        details = {"outcomes": [outcome.to_dict() for outcome in self.outcomes]}
        if self.total == 1:
            cause = self.outcomes[0].error
            if isinstance(cause, RemoteDispatchError):
                raise cause
            raise RemoteDispatchError(f"Failed to control {self.selector.describe()}", details=details)
        raise PartialBatchFailure(failed=self.failed_count, total=self.total, details=details)

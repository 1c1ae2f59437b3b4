from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal


Retryable = Literal[True, False, "maybe"]


@dataclass(frozen=True)
class ErrorRegistryEntry:
    code: str
    http_status: int
    retryable: Retryable


# Status hints for whatever HTTP layer sits in front of the service.
ERROR_CODE_REGISTRY: tuple[ErrorRegistryEntry, ...] = (
    ErrorRegistryEntry(code="invalid_request", http_status=400, retryable=False),
    ErrorRegistryEntry(code="no_fields_provided", http_status=400, retryable=False),
    ErrorRegistryEntry(code="invalid_credential", http_status=400, retryable=False),
    ErrorRegistryEntry(code="invalid_serial", http_status=400, retryable=False),
    ErrorRegistryEntry(code="not_found", http_status=404, retryable=False),
    ErrorRegistryEntry(code="duplicate_name", http_status=409, retryable=False),
    ErrorRegistryEntry(code="duplicate_device", http_status=409, retryable=False),
    ErrorRegistryEntry(code="credential_format", http_status=500, retryable=False),
    ErrorRegistryEntry(code="credential_decrypt", http_status=500, retryable=False),
    ErrorRegistryEntry(code="remote_dispatch_failed", http_status=502, retryable=True),
    ErrorRegistryEntry(code="partial_batch_failure", http_status=502, retryable=True),
)

_BY_CODE = {entry.code: entry for entry in ERROR_CODE_REGISTRY}


def lookup(code: str) -> ErrorRegistryEntry:
    return _BY_CODE.get(code) or ErrorRegistryEntry(code=code, http_status=500, retryable="maybe")


class GatewayError(Exception):
    code = "internal_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def http_status(self) -> int:
        return lookup(self.code).http_status

    @property
    def retryable(self) -> Retryable:
        return lookup(self.code).retryable

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(GatewayError):
    code = "invalid_request"


class NoFieldsProvidedError(ValidationError):
    code = "no_fields_provided"

    def __init__(self, message: str = "No data provided to update.", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class InvalidCredentialError(ValidationError):
    code = "invalid_credential"


class InvalidSerialError(ValidationError):
    code = "invalid_serial"


class NotFoundError(GatewayError):
    code = "not_found"


class DuplicateNameError(GatewayError):
    code = "duplicate_name"


class DuplicateDeviceError(GatewayError):
    code = "duplicate_device"


class CredentialFormatError(GatewayError):
    code = "credential_format"


class CredentialDecryptError(GatewayError):
    code = "credential_decrypt"


class RemoteDispatchError(GatewayError):
    code = "remote_dispatch_failed"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        merged = dict(details or {})
        if status_code is not None:
            merged.setdefault("status", status_code)
        if body is not None:
            merged.setdefault("body", body)
        super().__init__(message, details=merged)
        self.status_code = status_code
        self.body = body


class PartialBatchFailure(RemoteDispatchError):
    code = "partial_batch_failure"

    def __init__(self, *, failed: int, total: int, details: dict[str, Any] | None = None) -> None:
        merged = {"failed": failed, "total": total}
        merged.update(details or {})
        super().__init__(f"Failed to update {failed} out of {total} devices.", details=merged)
        self.failed = failed
        self.total = total

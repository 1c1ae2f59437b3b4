from __future__ import annotations

from dataclasses import dataclass

import os


DEFAULT_LIFX_API_BASE = "https://api.lifx.com/v1/lights"


def _key_bytes(value: str | None) -> bytes:
    if not value:
        raise ValueError("CREDENTIAL_KEY is not set")
    if len(value) == 64:
        try:
            return bytes.fromhex(value)
        except ValueError:
            pass
    raw = value.encode("utf-8")
    if len(raw) != 32:
        raise ValueError("CREDENTIAL_KEY must be 32 bytes (or 64 hex characters)")
    return raw


@dataclass(frozen=True)
class AppConfig:
    lifx_api_base: str
    credential_key: bytes
    db_path: str
    dispatch_concurrency: int
    lifx_timeout_seconds: float

    @staticmethod
    def from_env() -> "AppConfig":
        return AppConfig(
            lifx_api_base=os.getenv("LIFX_API_BASE", DEFAULT_LIFX_API_BASE).rstrip("/"),
            credential_key=_key_bytes(os.getenv("CREDENTIAL_KEY")),
            db_path=os.getenv("DB_PATH", os.path.join(os.getcwd(), ".data", "lifx-gateway.db")),
            dispatch_concurrency=max(1, int(os.getenv("DISPATCH_CONCURRENCY", "8"))),
            lifx_timeout_seconds=float(os.getenv("LIFX_TIMEOUT_SECONDS", "10")),
        )

from __future__ import annotations

import json
import os
from typing import Iterable

import aiosqlite

from lifx_gateway.models import Device, DevicePatch


_DEVICE_COLUMNS = "serial_number, name, type, status, brightness, color, room, username"


def _row_to_device(row: tuple) -> Device:
    serial_number, name, type_, status, brightness, color, room, username = row
    return Device(
        serial_number=str(serial_number),
        name=str(name),
        type=str(type_),
        status=str(status),
        brightness=int(brightness),
        color=str(color),
        room=str(room) if room is not None else None,
        username=str(username),
    )


class Database:
    def __init__(self, db_path: str):
        self._db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        dir_name = os.path.dirname(self._db_path)
        if dir_name:
            os.makedirs(dir_name, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA journal_mode=WAL;")
        await self._conn.execute("PRAGMA synchronous=NORMAL;")
        await self._conn.execute("PRAGMA foreign_keys=ON;")
        await self._init_schema()
        await self._conn.commit()

    @property
    def conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Database not connected")
        return self._conn

    async def _init_schema(self) -> None:
        await self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
              username TEXT PRIMARY KEY,
              lifx_token TEXT
            );
            """
        )
        await self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS devices (
              serial_number TEXT PRIMARY KEY,
              name TEXT NOT NULL,
              type TEXT NOT NULL DEFAULT 'light',
              status TEXT NOT NULL DEFAULT 'off',
              brightness INTEGER NOT NULL DEFAULT 0,
              color TEXT NOT NULL DEFAULT 'white',
              room TEXT,
              username TEXT NOT NULL REFERENCES users(username) ON DELETE CASCADE,
              UNIQUE (username, name)
            );
            """
        )
        await self.conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_devices_username_room ON devices (username, room);
            """
        )

    async def commit(self) -> None:
        await self.conn.commit()

    # Users / credential store

    async def insert_user(self, *, username: str, encrypted_token: str | None) -> None:
        await self.conn.execute(
            "INSERT INTO users (username, lifx_token) VALUES (?, ?)",
            (username, encrypted_token),
        )
        await self.conn.commit()

    async def user_exists(self, username: str) -> bool:
        async with self.conn.execute("SELECT 1 FROM users WHERE username = ?", (username,)) as cursor:
            row = await cursor.fetchone()
        return row is not None

    async def get_encrypted_token(self, username: str) -> tuple[bool, str | None]:
        """
        Returns: (user_found, encrypted_token)
        """
        async with self.conn.execute(
            "SELECT lifx_token FROM users WHERE username = ?",
            (username,),
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return False, None
        return True, str(row[0]) if row[0] is not None else None

    async def set_encrypted_token(self, *, username: str, encrypted_token: str) -> bool:
        cursor = await self.conn.execute(
            "UPDATE users SET lifx_token = ? WHERE username = ?",
            (encrypted_token, username),
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def delete_user(self, username: str) -> bool:
        # Owned devices go with the user via ON DELETE CASCADE.
        cursor = await self.conn.execute("DELETE FROM users WHERE username = ?", (username,))
        await self.conn.commit()
        return cursor.rowcount > 0

    # Devices

    async def insert_device(self, device: Device) -> Device:
        await self.conn.execute(
            f"INSERT INTO devices ({_DEVICE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                device.serial_number,
                device.name,
                device.type,
                device.status,
                device.brightness,
                device.color,
                device.room,
                device.username,
            ),
        )
        await self.conn.commit()
        return device

    async def get_device(self, *, name: str, username: str) -> Device | None:
        async with self.conn.execute(
            f"SELECT {_DEVICE_COLUMNS} FROM devices WHERE name = ? AND username = ?",
            (name, username),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_device(row) if row else None

    async def get_device_by_serial(self, serial_number: str) -> Device | None:
        async with self.conn.execute(
            f"SELECT {_DEVICE_COLUMNS} FROM devices WHERE serial_number = ?",
            (serial_number,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_device(row) if row else None

    async def list_devices(self, *, username: str) -> list[Device]:
        async with self.conn.execute(
            f"SELECT {_DEVICE_COLUMNS} FROM devices WHERE username = ? ORDER BY rowid",
            (username,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_device(row) for row in rows]

    async def list_devices_in_room(self, *, username: str, room: str) -> list[Device]:
        async with self.conn.execute(
            f"SELECT {_DEVICE_COLUMNS} FROM devices WHERE username = ? AND room = ? ORDER BY rowid",
            (username, room),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_device(row) for row in rows]

    async def rename_device(self, *, serial_number: str, username: str, new_name: str) -> Device | None:
        await self.conn.execute(
            "UPDATE devices SET name = ? WHERE serial_number = ? AND username = ?",
            (new_name, serial_number, username),
        )
        await self.conn.commit()
        device = await self.get_device_by_serial(serial_number)
        if device is None or device.username != username:
            return None
        return device

    async def delete_device(self, *, name: str, username: str) -> bool:
        cursor = await self.conn.execute(
            "DELETE FROM devices WHERE name = ? AND username = ?",
            (name, username),
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def apply_patch(self, *, username: str, serial_numbers: Iterable[str], patch: DevicePatch) -> list[Device]:
        """
        Apply `patch` to every listed device of `username` in one statement.

        Fields left as None keep their stored value.
        """
        serials_json = json.dumps(list(serial_numbers))
        await self.conn.execute(
            """
            UPDATE devices SET
              status = COALESCE(?, status),
              brightness = COALESCE(?, brightness),
              color = COALESCE(?, color)
            WHERE username = ?
              AND serial_number IN (SELECT value FROM json_each(?))
            """,
            (patch.status, patch.brightness, patch.color, username, serials_json),
        )
        await self.conn.commit()
        async with self.conn.execute(
            f"""
            SELECT {_DEVICE_COLUMNS} FROM devices
            WHERE username = ? AND serial_number IN (SELECT value FROM json_each(?))
            ORDER BY rowid
            """,
            (username, serials_json),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_device(row) for row in rows]

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

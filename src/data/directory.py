"""
src/data/directory.py
─────────────────────
Device and user directory on top of the SQLite store.

Provides:
  - upsert_device() / get_device() / list_devices()
  - upsert_user() / get_user() / register_push_token()
  - find_users()  : users with a notification channel enabled

SqliteDirectory adapts these to the async directory interface consumed by
the alert monitor and the notification dispatcher.
"""
from __future__ import annotations

import asyncio
import json
import sqlite3

from config.alerts import NotificationChannel
from src.data.models import DeviceInfo, NotificationPreferences, UserRecord
from src.data.store import _get_conn, _lock

_PREFERENCE_COLUMNS: dict[NotificationChannel, str] = {
    NotificationChannel.PUSH: "push_enabled",
    NotificationChannel.EMAIL: "email_enabled",
    NotificationChannel.SMS: "sms_enabled",
    NotificationChannel.WHATSAPP: "whatsapp_enabled",
}


# ── Devices ───────────────────────────────────────────────────────────────────

def upsert_device(device: DeviceInfo) -> None:
    conn = _get_conn()
    with _lock, conn:
        conn.execute(
            """INSERT INTO devices (id, name, location, type, status, serial_number)
               VALUES (?,?,?,?,?,?)
               ON CONFLICT(id) DO UPDATE SET
                   name = excluded.name, location = excluded.location,
                   type = excluded.type, status = excluded.status,
                   serial_number = excluded.serial_number""",
            (device.id, device.name, device.location, device.type, device.status, device.serial_number),
        )


def get_device(device_id: str) -> DeviceInfo | None:
    conn = _get_conn()
    with _lock:
        row = conn.execute("SELECT * FROM devices WHERE id = ?", (device_id,)).fetchone()
    return DeviceInfo.model_validate(dict(row)) if row else None


def list_devices() -> list[DeviceInfo]:
    conn = _get_conn()
    with _lock:
        rows = conn.execute("SELECT * FROM devices ORDER BY id").fetchall()
    return [DeviceInfo.model_validate(dict(r)) for r in rows]


# ── Users ─────────────────────────────────────────────────────────────────────

def _row_to_user(row: sqlite3.Row) -> UserRecord:
    return UserRecord(
        id=row["id"],
        display_name=row["display_name"],
        email=row["email"],
        phone=row["phone"],
        preferences=NotificationPreferences(
            push_enabled=bool(row["push_enabled"]),
            email_enabled=bool(row["email_enabled"]),
            sms_enabled=bool(row["sms_enabled"]),
            whatsapp_enabled=bool(row["whatsapp_enabled"]),
        ),
        fcm_tokens=json.loads(row["fcm_tokens"]),
    )


def upsert_user(user: UserRecord) -> None:
    prefs = user.preferences
    conn = _get_conn()
    with _lock, conn:
        conn.execute(
            """INSERT INTO users
               (id, display_name, email, phone, push_enabled, email_enabled,
                sms_enabled, whatsapp_enabled, fcm_tokens)
               VALUES (?,?,?,?,?,?,?,?,?)
               ON CONFLICT(id) DO UPDATE SET
                   display_name = excluded.display_name, email = excluded.email,
                   phone = excluded.phone, push_enabled = excluded.push_enabled,
                   email_enabled = excluded.email_enabled, sms_enabled = excluded.sms_enabled,
                   whatsapp_enabled = excluded.whatsapp_enabled, fcm_tokens = excluded.fcm_tokens""",
            (
                user.id,
                user.display_name,
                user.email,
                user.phone,
                int(prefs.push_enabled),
                int(prefs.email_enabled),
                int(prefs.sms_enabled),
                int(prefs.whatsapp_enabled),
                json.dumps(user.fcm_tokens),
            ),
        )


def get_user(user_id: str) -> UserRecord | None:
    conn = _get_conn()
    with _lock:
        row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    return _row_to_user(row) if row else None


def register_push_token(user_id: str, token: str) -> bool:
    """Add a device token to a user, enabling push. False if the user is unknown."""
    with _lock:
        user = get_user(user_id)
        if user is None:
            return False
        if token not in user.fcm_tokens:
            user.fcm_tokens.append(token)
        user.preferences.push_enabled = True
        upsert_user(user)
    return True


def find_users(channel: NotificationChannel) -> list[UserRecord]:
    """All users whose preference for `channel` is enabled."""
    column = _PREFERENCE_COLUMNS[NotificationChannel(channel)]
    conn = _get_conn()
    with _lock:
        rows = conn.execute(f"SELECT * FROM users WHERE {column} = 1 ORDER BY id").fetchall()
    return [_row_to_user(r) for r in rows]


# ── Async adapter ─────────────────────────────────────────────────────────────

class SqliteDirectory:
    """Directory lookups for the monitor and dispatcher."""

    async def get_device(self, device_id: str) -> DeviceInfo | None:
        return await asyncio.to_thread(get_device, device_id)

    async def list_devices(self) -> list[DeviceInfo]:
        return await asyncio.to_thread(list_devices)

    async def find_users(self, channel: NotificationChannel) -> list[UserRecord]:
        return await asyncio.to_thread(find_users, channel)

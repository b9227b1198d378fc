"""
src/data/store.py
─────────────────
SQLite data store abstraction.

Provides:
  - initialize_db()         : Create tables + seed devices and history on first run
  - append_alert()          : Append one AlertRecord (append-only audit trail)
  - get_alert()             : Fetch one AlertRecord by id
  - get_alerts()            : Fetch recent alerts as a DataFrame
  - acknowledge_alert()     : Move an alert to "acknowledged"
  - resolve_alert()         : Move an alert to "resolved"
  - insert_readings()       : Bulk insert ParameterSnapshot rows
  - get_readings()          : Fetch snapshot history for a device

SqliteAlertStore adapts the alert functions to the async store interface
used by the alert monitor.

Thread safety: uses check_same_thread=False + a module-level lock.
"""
from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from datetime import UTC, datetime, timedelta

import pandas as pd

from config.alerts import AlertStatus
from config.settings import settings
from src.data.models import AlertRecord, DeviceInfo, ParameterSnapshot

_lock = threading.RLock()
_DB: sqlite3.Connection | None = None


# ── Connection ────────────────────────────────────────────────────────────────

def _get_conn() -> sqlite3.Connection:
    global _DB
    if _DB is None:
        _DB = sqlite3.connect(settings.DATABASE_URL, check_same_thread=False)
        _DB.row_factory = sqlite3.Row
    return _DB


# ── Schema ────────────────────────────────────────────────────────────────────

_CREATE_READINGS = """
CREATE TABLE IF NOT EXISTS readings (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp        TEXT NOT NULL,
    device_id        TEXT NOT NULL,
    ph               REAL,
    temperature      REAL,
    tss              REAL,
    cod              REAL,
    bod              REAL,
    hardness         REAL,
    flow             REAL,
    dissolved_oxygen REAL,
    conductivity     REAL,
    turbidity        REAL
);
"""

_CREATE_ALERTS = """
CREATE TABLE IF NOT EXISTS alerts (
    id               TEXT PRIMARY KEY,
    created_at       TEXT NOT NULL,
    device_id        TEXT NOT NULL,
    device_name      TEXT NOT NULL,
    severity         TEXT NOT NULL,
    status           TEXT NOT NULL DEFAULT 'new',
    violations       TEXT NOT NULL,
    snapshot         TEXT NOT NULL,
    recommendations  TEXT NOT NULL DEFAULT '[]',
    acknowledged_at  TEXT
);
"""

_CREATE_DEVICES = """
CREATE TABLE IF NOT EXISTS devices (
    id             TEXT PRIMARY KEY,
    name           TEXT NOT NULL,
    location       TEXT NOT NULL DEFAULT '',
    type           TEXT NOT NULL DEFAULT '',
    status         TEXT NOT NULL DEFAULT 'online',
    serial_number  TEXT NOT NULL DEFAULT ''
);
"""

_CREATE_USERS = """
CREATE TABLE IF NOT EXISTS users (
    id                TEXT PRIMARY KEY,
    display_name      TEXT NOT NULL DEFAULT '',
    email             TEXT,
    phone             TEXT,
    push_enabled      INTEGER NOT NULL DEFAULT 0,
    email_enabled     INTEGER NOT NULL DEFAULT 0,
    sms_enabled       INTEGER NOT NULL DEFAULT 0,
    whatsapp_enabled  INTEGER NOT NULL DEFAULT 0,
    fcm_tokens        TEXT NOT NULL DEFAULT '[]'
);
"""

_CREATE_IDX = """
CREATE INDEX IF NOT EXISTS idx_readings_dev_ts ON readings (device_id, timestamp);
CREATE INDEX IF NOT EXISTS idx_alerts_dev_ts   ON alerts   (device_id, created_at);
"""


def _create_tables(conn: sqlite3.Connection) -> None:
    with conn:
        conn.executescript(_CREATE_READINGS + _CREATE_ALERTS + _CREATE_DEVICES + _CREATE_USERS + _CREATE_IDX)


# ── Public API ────────────────────────────────────────────────────────────────

def initialize_db(force_reseed: bool = False, seed: bool = True) -> None:
    """
    Create tables and populate devices plus simulated history if the DB is empty.
    Safe to call multiple times (idempotent). `force_reseed` wipes every table.
    """
    # Import here to avoid circular deps
    from config.devices import DEVICE_CONFIG
    from src.data.directory import upsert_device
    from src.data.simulator import generate_history

    conn = _get_conn()
    _create_tables(conn)

    with _lock:
        if force_reseed:
            with conn:
                for table in ("readings", "alerts", "devices", "users"):
                    conn.execute(f"DELETE FROM {table}")

        if not seed:
            return

        count = conn.execute("SELECT COUNT(*) FROM devices").fetchone()[0]
        if count > 0:
            return  # Already seeded

        for device in DEVICE_CONFIG.values():
            upsert_device(DeviceInfo.model_validate(device))

        for snapshots in generate_history().values():
            insert_readings(snapshots)


# ── Alerts ────────────────────────────────────────────────────────────────────

def append_alert(record: AlertRecord) -> str:
    """Append an alert and return its id. Existing ids are never overwritten."""
    row = (
        record.id,
        record.created_at.astimezone(UTC).isoformat(),
        record.device_id,
        record.device_name,
        record.severity.value,
        record.status.value,
        json.dumps([v.model_dump(mode="json") for v in record.violations]),
        record.snapshot.model_dump_json(),
        json.dumps(record.recommendations),
        record.acknowledged_at.isoformat() if record.acknowledged_at else None,
    )
    conn = _get_conn()
    with _lock, conn:
        conn.execute(
            """INSERT OR IGNORE INTO alerts
               (id, created_at, device_id, device_name, severity, status,
                violations, snapshot, recommendations, acknowledged_at)
               VALUES (?,?,?,?,?,?,?,?,?,?)""",
            row,
        )
    return record.id


def _row_to_record(row: sqlite3.Row) -> AlertRecord:
    return AlertRecord(
        id=row["id"],
        created_at=datetime.fromisoformat(row["created_at"]),
        device_id=row["device_id"],
        device_name=row["device_name"],
        severity=row["severity"],
        status=row["status"],
        violations=json.loads(row["violations"]),
        snapshot=ParameterSnapshot.model_validate_json(row["snapshot"]),
        recommendations=json.loads(row["recommendations"]),
        acknowledged_at=datetime.fromisoformat(row["acknowledged_at"]) if row["acknowledged_at"] else None,
    )


def get_alert(alert_id: str) -> AlertRecord | None:
    conn = _get_conn()
    with _lock:
        row = conn.execute("SELECT * FROM alerts WHERE id = ?", (alert_id,)).fetchone()
    return _row_to_record(row) if row else None


def get_alerts(
    device_id: str | None = None,
    severity: str | None = None,
    status: str | None = None,
    days: int = settings.ALERT_RETENTION_DAYS,
    limit: int = 500,
) -> pd.DataFrame:
    """Fetch alerts with optional filters, newest first."""
    since = (datetime.now(tz=UTC) - timedelta(days=days)).isoformat()
    where = ["created_at >= ?"]
    params: list = [since]

    if device_id:
        where.append("device_id = ?")
        params.append(device_id)
    if severity:
        where.append("severity = ?")
        params.append(severity)
    if status:
        where.append("status = ?")
        params.append(status)

    sql = f"""SELECT id, created_at, device_id, device_name, severity, status, acknowledged_at
              FROM alerts WHERE {' AND '.join(where)}
              ORDER BY created_at DESC LIMIT ?"""
    params.append(limit)

    conn = _get_conn()
    with _lock:
        df = pd.read_sql_query(sql, conn, params=params)
    if not df.empty:
        df["created_at"] = pd.to_datetime(df["created_at"], utc=True, format="ISO8601")
    return df


def _set_status(alert_id: str, status: AlertStatus) -> bool:
    conn = _get_conn()
    acknowledged_at = datetime.now(tz=UTC).isoformat()
    with _lock, conn:
        cursor = conn.execute(
            """UPDATE alerts
               SET status = ?, acknowledged_at = COALESCE(acknowledged_at, ?)
               WHERE id = ?""",
            (status.value, acknowledged_at, alert_id),
        )
    return cursor.rowcount > 0


def acknowledge_alert(alert_id: str) -> bool:
    return _set_status(alert_id, AlertStatus.ACKNOWLEDGED)


def resolve_alert(alert_id: str) -> bool:
    return _set_status(alert_id, AlertStatus.RESOLVED)


def get_active_alert_count(device_id: str | None = None) -> int:
    """Count alerts still in the "new" state."""
    conn = _get_conn()
    where = "status = ?"
    params: list = [AlertStatus.NEW.value]
    if device_id:
        where += " AND device_id = ?"
        params.append(device_id)
    with _lock:
        return conn.execute(f"SELECT COUNT(*) FROM alerts WHERE {where}", params).fetchone()[0]


# ── Readings ──────────────────────────────────────────────────────────────────

_READING_COLUMNS = (
    "ph", "temperature", "tss", "cod", "bod", "hardness",
    "flow", "dissolved_oxygen", "conductivity", "turbidity",
)


def insert_readings(snapshots: list[ParameterSnapshot]) -> None:
    if not snapshots:
        return
    rows = [
        (
            (s.timestamp or datetime.now(tz=UTC)).astimezone(UTC).isoformat(),
            s.device_id,
            *(getattr(s, column) for column in _READING_COLUMNS),
        )
        for s in snapshots
    ]
    conn = _get_conn()
    with _lock, conn:
        conn.executemany(
            f"""INSERT INTO readings (timestamp, device_id, {', '.join(_READING_COLUMNS)})
                VALUES ({', '.join('?' * (len(_READING_COLUMNS) + 2))})""",
            rows,
        )


def get_readings(
    device_id: str,
    hours: int = settings.HISTORY_DAYS * 24,
    limit: int = 10_000,
) -> pd.DataFrame:
    """Fetch readings for a device over the last `hours` hours, oldest first."""
    since = (datetime.now(tz=UTC) - timedelta(hours=hours)).isoformat()
    conn = _get_conn()
    with _lock:
        df = pd.read_sql_query(
            """SELECT * FROM readings
               WHERE device_id = ? AND timestamp >= ?
               ORDER BY timestamp ASC
               LIMIT ?""",
            conn,
            params=(device_id, since, limit),
        )
    if not df.empty:
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, format="ISO8601")
    return df


def get_latest(device_id: str) -> ParameterSnapshot | None:
    """Most recent stored snapshot for a device."""
    conn = _get_conn()
    with _lock:
        row = conn.execute(
            "SELECT * FROM readings WHERE device_id = ? ORDER BY timestamp DESC LIMIT 1",
            (device_id,),
        ).fetchone()
    if row is None:
        return None
    data = dict(row)
    return ParameterSnapshot(
        device_id=data["device_id"],
        timestamp=datetime.fromisoformat(data["timestamp"]),
        **{column: data[column] for column in _READING_COLUMNS},
    )


# ── Async adapter ─────────────────────────────────────────────────────────────

class SqliteAlertStore:
    """Append-only alert store backed by this module."""

    async def append(self, record: AlertRecord) -> str:
        return await asyncio.to_thread(append_alert, record)

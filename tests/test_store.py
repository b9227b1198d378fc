"""
tests/test_store.py
────────────────────
Tests for the SQLite alert store and the device/user directory.
"""
import pytest
from datetime import datetime, timedelta, timezone

from config.alerts import AlertSeverity, AlertStatus, NotificationChannel
from config.parameters import Parameter
from src.data import directory
from src.data.directory import SqliteDirectory
from src.data.models import DeviceInfo, NotificationPreferences, ParameterSnapshot, UserRecord
from src.data.store import SqliteAlertStore


class TestAlerts:
    def test_append_and_get(self, db, make_alert):
        alert = make_alert()
        assert db.append_alert(alert) == alert.id
        loaded = db.get_alert(alert.id)
        assert loaded.device_name == "Raspberry Pi Sensor 001"
        assert loaded.severity == AlertSeverity.CRITICAL
        assert loaded.violations[0].parameter == Parameter.PH
        assert loaded.snapshot.ph == 5.5
        assert loaded.recommendations == alert.recommendations

    def test_append_is_insert_only(self, db, make_alert):
        alert = make_alert()
        db.append_alert(alert)
        db.append_alert(alert.model_copy(update={"device_name": "renamed"}))
        assert db.get_alert(alert.id).device_name == "Raspberry Pi Sensor 001"

    def test_unknown_alert(self, db):
        assert db.get_alert("missing") is None

    def test_get_alerts_filters(self, db, make_alert):
        db.append_alert(make_alert())
        db.append_alert(make_alert(device_id="RPi002", device_name="Raspberry Pi Sensor 002"))
        df = db.get_alerts()
        assert len(df) == 2
        assert set(df["device_id"]) == {"RPi001", "RPi002"}
        assert len(db.get_alerts(device_id="RPi002")) == 1
        assert len(db.get_alerts(severity="warning")) == 0

    def test_get_alerts_respects_window(self, db, make_alert):
        db.append_alert(make_alert(created_at=datetime.now(tz=timezone.utc) - timedelta(days=40)))
        assert db.get_alerts(days=30).empty

    def test_get_alerts_newest_first(self, db, make_alert):
        older = make_alert(created_at=datetime.now(tz=timezone.utc) - timedelta(hours=2))
        newer = make_alert()
        db.append_alert(older)
        db.append_alert(newer)
        assert list(db.get_alerts()["id"]) == [newer.id, older.id]

    def test_acknowledge(self, db, make_alert):
        alert = make_alert()
        db.append_alert(alert)
        assert db.get_active_alert_count() == 1
        assert db.acknowledge_alert(alert.id) is True
        loaded = db.get_alert(alert.id)
        assert loaded.status == AlertStatus.ACKNOWLEDGED
        assert loaded.acknowledged_at is not None
        assert db.get_active_alert_count() == 0

    def test_resolve_keeps_first_acknowledgement(self, db, make_alert):
        alert = make_alert()
        db.append_alert(alert)
        db.acknowledge_alert(alert.id)
        first = db.get_alert(alert.id).acknowledged_at
        db.resolve_alert(alert.id)
        loaded = db.get_alert(alert.id)
        assert loaded.status == AlertStatus.RESOLVED
        assert loaded.acknowledged_at == first

    def test_acknowledge_unknown(self, db):
        assert db.acknowledge_alert("missing") is False

    def test_active_count_by_device(self, db, make_alert):
        db.append_alert(make_alert())
        db.append_alert(make_alert(device_id="RPi002"))
        assert db.get_active_alert_count("RPi002") == 1

    @pytest.mark.asyncio
    async def test_async_adapter(self, db, make_alert):
        alert = make_alert()
        assert await SqliteAlertStore().append(alert) == alert.id
        assert db.get_alert(alert.id) is not None


class TestReadings:
    def test_insert_and_read_back(self, db):
        now = datetime.now(tz=timezone.utc)
        db.insert_readings([
            ParameterSnapshot(device_id="RPi001", timestamp=now - timedelta(hours=1), pH=7.0, cod=30.0),
            ParameterSnapshot(device_id="RPi001", timestamp=now, pH=7.4),
            ParameterSnapshot(device_id="RPi002", timestamp=now, pH=8.0),
        ])
        df = db.get_readings("RPi001", hours=24)
        assert len(df) == 2
        assert list(df["ph"]) == [7.0, 7.4]
        assert df["cod"].isna().iloc[1]

    def test_latest(self, db):
        now = datetime.now(tz=timezone.utc)
        db.insert_readings([
            ParameterSnapshot(device_id="RPi001", timestamp=now - timedelta(minutes=5), pH=7.0),
            ParameterSnapshot(device_id="RPi001", timestamp=now, pH=7.3, do=4.0),
        ])
        latest = db.get_latest("RPi001")
        assert latest.ph == 7.3
        assert latest.dissolved_oxygen == 4.0
        assert latest.cod is None

    def test_latest_unknown_device(self, db):
        assert db.get_latest("nope") is None

    def test_insert_nothing(self, db):
        db.insert_readings([])
        assert db.get_readings("RPi001").empty


class TestInitializeDb:
    def test_seeds_devices_and_history(self, db):
        db.initialize_db(force_reseed=True)
        ids = [d.id for d in directory.list_devices()]
        assert ids == ["RPi001", "RPi002"]
        assert not db.get_readings("RPi001").empty

    def test_idempotent(self, db):
        db.initialize_db(force_reseed=True)
        rows = len(db.get_readings("RPi001"))
        db.initialize_db()
        assert len(db.get_readings("RPi001")) == rows


class TestDirectory:
    def test_device_roundtrip(self, db):
        directory.upsert_device(DeviceInfo(id="RPi009", name="Test Pi", location="Lab"))
        assert directory.get_device("RPi009").location == "Lab"
        assert directory.get_device("missing") is None

    def test_find_users_by_channel(self, db):
        directory.upsert_user(UserRecord(
            id="u1", email="a@example.com",
            preferences=NotificationPreferences(email_enabled=True),
        ))
        directory.upsert_user(UserRecord(
            id="u2", email="b@example.com", fcm_tokens=["t1"],
            preferences=NotificationPreferences(push_enabled=True, sms_enabled=True),
        ))
        assert [u.id for u in directory.find_users(NotificationChannel.EMAIL)] == ["u1"]
        assert [u.id for u in directory.find_users(NotificationChannel.PUSH)] == ["u2"]
        assert [u.id for u in directory.find_users(NotificationChannel.SMS)] == ["u2"]
        assert directory.find_users(NotificationChannel.WHATSAPP) == []

    def test_register_push_token(self, db):
        directory.upsert_user(UserRecord(id="u1"))
        assert directory.register_push_token("u1", "tok") is True
        assert directory.register_push_token("u1", "tok") is True
        user = directory.get_user("u1")
        assert user.fcm_tokens == ["tok"]
        assert user.preferences.push_enabled is True

    def test_register_push_token_unknown_user(self, db):
        assert directory.register_push_token("ghost", "tok") is False

    @pytest.mark.asyncio
    async def test_async_adapter(self, db):
        directory.upsert_device(DeviceInfo(id="RPi001", name="Raspberry Pi Sensor 001"))
        sqlite_directory = SqliteDirectory()
        assert (await sqlite_directory.get_device("RPi001")).name == "Raspberry Pi Sensor 001"
        assert [d.id for d in await sqlite_directory.list_devices()] == ["RPi001"]
        assert await sqlite_directory.find_users(NotificationChannel.EMAIL) == []

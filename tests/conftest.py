"""
tests/conftest.py
─────────────────
Shared pytest fixtures for the wastewater alert engine test suite.
"""
import os
import pytest
import numpy as np
from datetime import datetime, timezone

# Use in-memory SQLite for tests
os.environ.setdefault("DATABASE_URL", ":memory:")
os.environ.setdefault("HISTORY_DAYS", "2")
os.environ.setdefault("SIMULATION_SEED", "42")
os.environ.setdefault("ALERT_COOLDOWN_SECONDS", "0")


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def normal_snapshot(now):
    """Every parameter comfortably inside its range."""
    from src.data.models import ParameterSnapshot
    return ParameterSnapshot(
        device_id="RPi001",
        timestamp=now,
        pH=7.2,
        temperature=40.0,
        tss=120.0,
        cod=300.0,
        bod=90.0,
        hardness=180.0,
        flow=100.0,
        do=5.0,
        conductivity=1_200.0,
        turbidity=10.0,
    )


@pytest.fixture
def acidic_snapshot(now):
    """pH 5.5 with the other legacy parameters in range."""
    from src.data.models import ParameterSnapshot
    return ParameterSnapshot(
        device_id="RPi001",
        timestamp=now,
        pH=5.5,
        temperature=45.0,
        tss=150.0,
        cod=350.0,
        bod=120.0,
        hardness=200.0,
    )


@pytest.fixture
def db():
    """Empty in-memory database with the schema in place."""
    from src.data import store
    store.initialize_db(force_reseed=True, seed=False)
    return store


@pytest.fixture
def make_alert(acidic_snapshot):
    from src.analytics.diagnosis import diagnose_faults
    from src.data.models import AlertRecord

    def _make(device_id="RPi001", device_name="Raspberry Pi Sensor 001", snapshot=None, created_at=None):
        snap = snapshot or acidic_snapshot
        result = diagnose_faults(snap)
        return AlertRecord(
            device_id=device_id,
            device_name=device_name,
            violations=result.faults,
            snapshot=snap,
            severity=result.severity,
            recommendations=result.recommendations,
            created_at=created_at or datetime.now(tz=timezone.utc),
        )

    return _make

"""
src/data/simulator.py
─────────────────────
Synthetic sensor data generator for the treatment-plant devices.

Generates:
  - Hourly historical snapshots per device (seeded into the store)
  - Embedded process excursions (acid spill, organic overload, aeration loss)
  - Raw live-feed payloads shaped like the plant gateway's records
    (upper-case keys, string-or-number values, ISO timestamp)

Design:
  - Reproducible with SIMULATION_SEED for consistent demos
  - Device-specific scale factor from config.devices ("variation")
  - Excursions have random start/duration within the history window
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import numpy as np

from config.devices import DEVICE_CONFIG
from config.settings import settings
from src.data.models import ParameterSnapshot

if TYPE_CHECKING:
    from src.monitoring.feed import InMemoryFeed

logger = logging.getLogger(__name__)

# ── Baseline operating points (feed keys) ─────────────────────────────────────

BASELINE: dict[str, float] = {
    "PH": 7.3,
    "Temperature": 38.0,
    "TSS": 40.0,
    "COD": 32.0,
    "BOD": 20.0,
    "Hardness": 180.0,
    "Flow": 100.0,
    "DO": 5.5,
    "Conductivity": 1_100.0,
    "Turbidity": 8.0,
}

# Noise scales for normal operation (σ)
NOISE: dict[str, float] = {
    "PH": 0.25,
    "Temperature": 1.5,
    "TSS": 5.0,
    "COD": 4.0,
    "BOD": 2.5,
    "Hardness": 12.0,
    "Flow": 10.0,
    "DO": 0.4,
    "Conductivity": 60.0,
    "Turbidity": 1.5,
}

# Device variation does not apply to these
_UNSCALED = {"PH", "Temperature", "DO"}

# Excursion peak values reached at full severity
EXCURSIONS: dict[str, dict[str, float]] = {
    "acid_spill": {"PH": 4.8},
    "alkaline_dose": {"PH": 10.2},
    "organic_overload": {"COD": 900.0, "BOD": 260.0, "TSS": 320.0},
    "aeration_failure": {"DO": 0.3, "Turbidity": 85.0},
    "heat_shock": {"Temperature": 75.0},
}


@dataclass
class Excursion:
    mode: str
    start_hour: int
    duration_hours: int
    severity: float   # 0..1 of the peak


def _plan_excursions(total_hours: int, rng: np.random.Generator) -> list[Excursion]:
    """Randomly plan 1–3 excursions within the history window."""
    modes = list(EXCURSIONS)
    events: list[Excursion] = []
    for _ in range(int(rng.integers(1, 4))):
        start = int(rng.integers(total_hours // 4, max(total_hours * 3 // 4, total_hours // 4 + 1)))
        duration = min(int(rng.integers(2, 12)), total_hours - start)
        events.append(Excursion(
            mode=str(rng.choice(modes)),
            start_hour=start,
            duration_hours=duration,
            severity=float(rng.uniform(0.7, 1.0)),
        ))
    events.sort(key=lambda e: e.start_hour)
    return events


def _apply_excursion(values: dict[str, float], mode: str, severity: float) -> None:
    for key, peak in EXCURSIONS[mode].items():
        values[key] = values[key] + (peak - values[key]) * severity


def _sample(device_id: str, rng: np.random.Generator) -> dict[str, float]:
    variation = DEVICE_CONFIG.get(device_id, {}).get("variation", 1.0)
    values: dict[str, float] = {}
    for key, base in BASELINE.items():
        scale = 1.0 if key in _UNSCALED else variation
        values[key] = base * scale + float(rng.normal(0.0, NOISE[key]))
    return values


def _to_payload(values: dict[str, float], ts: datetime) -> dict:
    payload: dict = {key: round(max(value, 0.0), 2) for key, value in values.items()}
    payload["PH"] = round(float(np.clip(values["PH"], 0.0, 14.0)), 2)
    payload["Timestamp"] = ts.isoformat()
    return payload


# ── Public API ────────────────────────────────────────────────────────────────

def generate_payload(
    device_id: str,
    rng: np.random.Generator,
    ts: datetime | None = None,
    excursion_probability: float = 0.0,
) -> dict:
    """One raw feed payload; with `excursion_probability` a random excursion is applied."""
    values = _sample(device_id, rng)
    if excursion_probability > 0 and rng.random() < excursion_probability:
        _apply_excursion(values, str(rng.choice(list(EXCURSIONS))), float(rng.uniform(0.7, 1.0)))
    return _to_payload(values, ts or datetime.now(tz=UTC))


def generate_history(
    seed: int = settings.SIMULATION_SEED,
    days: int = settings.HISTORY_DAYS,
    device_ids: list[str] | None = None,
) -> dict[str, list[ParameterSnapshot]]:
    """
    Generate `days` × 24 hourly snapshots for each device.
    Returns dict keyed by device_id.
    """
    rng = np.random.default_rng(seed)
    total_hours = days * 24
    end_ts = datetime.now(tz=UTC).replace(minute=0, second=0, microsecond=0)
    start_ts = end_ts - timedelta(hours=total_hours - 1)

    history: dict[str, list[ParameterSnapshot]] = {}
    for device_id in device_ids or list(DEVICE_CONFIG):
        events = _plan_excursions(total_hours, rng)
        snapshots: list[ParameterSnapshot] = []
        for hour in range(total_hours):
            values = _sample(device_id, rng)
            for event in events:
                if event.start_hour <= hour < event.start_hour + event.duration_hours:
                    _apply_excursion(values, event.mode, event.severity)
                    break  # only one active excursion at a time
            ts = start_ts + timedelta(hours=hour)
            snapshots.append(ParameterSnapshot.from_feed(device_id, _to_payload(values, ts)))
        history[device_id] = snapshots
    return history


async def run_simulation(
    feed: InMemoryFeed,
    device_ids: list[str],
    stop: asyncio.Event,
    interval_s: float = settings.SIMULATION_INTERVAL_S,
    seed: int = settings.SIMULATION_SEED,
    excursion_probability: float = 0.05,
    record_history: bool = True,
) -> int:
    """
    Publish a fresh payload for every device each `interval_s` until `stop` is set.
    Returns the number of payloads published.
    """
    from src.data.store import insert_readings

    rng = np.random.default_rng(seed)
    published = 0
    logger.info("Started data simulation for devices: %s every %.1fs", ", ".join(device_ids), interval_s)

    while not stop.is_set():
        snapshots = [
            feed.publish(device_id, generate_payload(device_id, rng, excursion_probability=excursion_probability))
            for device_id in device_ids
        ]
        published += len(snapshots)
        if record_history:
            await asyncio.to_thread(insert_readings, snapshots)
        try:
            await asyncio.wait_for(stop.wait(), timeout=interval_s)
        except TimeoutError:
            pass

    logger.info("Stopped data simulation after %d payloads", published)
    return published

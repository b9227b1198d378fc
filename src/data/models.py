"""
src/data/models.py
──────────────────
Pydantic v2 data models for parameter snapshots, fault findings, alert
records, the user/device directory and dispatch reports.
"""
from __future__ import annotations

import logging
import math
import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from config.alerts import SEVERITY_ORDER, AlertSeverity, AlertStatus, NotificationChannel, normalize_severity
from config.parameters import (
    FEED_KEYS,
    FEED_TIMESTAMP_KEYS,
    PARAMETER_FIELDS,
    PARAMETER_ORDER,
    Direction,
    Parameter,
)

logger = logging.getLogger(__name__)

_PARAMETER_FIELD_NAMES = tuple(PARAMETER_FIELDS.values())


def _coerce_float(raw: Any) -> float | None:
    """Parse a feed value; None for anything that is not a finite number."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _coerce_timestamp(raw: Any) -> datetime | None:
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=UTC)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if not math.isfinite(raw):
            return None
        seconds = raw / 1000.0 if raw > 1e12 else raw  # epoch ms or s
        try:
            return datetime.fromtimestamp(seconds, tz=UTC)
        except (ValueError, OverflowError, OSError):
            return None
    if isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


class ParameterSnapshot(BaseModel):
    """One timestamped set of readings for a device. Absent values are None."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    device_id: str | None = None
    timestamp: datetime | None = None
    ph: float | None = Field(default=None, alias="pH")
    temperature: float | None = None
    tss: float | None = None
    cod: float | None = None
    bod: float | None = None
    hardness: float | None = None
    flow: float | None = None
    dissolved_oxygen: float | None = Field(default=None, alias="do")
    conductivity: float | None = None
    turbidity: float | None = None

    @field_validator(*_PARAMETER_FIELD_NAMES)
    @classmethod
    def _finite(cls, value: float | None) -> float | None:
        if value is not None and not math.isfinite(value):
            raise ValueError("parameter values must be finite")
        return value

    def get(self, parameter: Parameter | str) -> float | None:
        return getattr(self, PARAMETER_FIELDS[Parameter(parameter)])

    def present(self) -> dict[Parameter, float]:
        """Parameters carried by this snapshot, in evaluation order."""
        values: dict[Parameter, float] = {}
        for parameter in PARAMETER_ORDER:
            value = self.get(parameter)
            if value is not None:
                values[parameter] = value
        return values

    @classmethod
    def from_feed(
        cls,
        device_id: str,
        payload: dict[str, Any],
        received_at: datetime | None = None,
    ) -> ParameterSnapshot:
        """
        Build a snapshot from a raw feed payload.

        Keys are matched against FEED_KEYS (PH, pH and ph all map to pH).
        Unknown keys are ignored; missing, non-numeric or non-finite values
        are left absent. The payload's own timestamp wins over `received_at`.
        """
        values: dict[str, float] = {}
        timestamp: datetime | None = None

        for key, raw in payload.items():
            name = str(key).strip().lower()
            if name in FEED_TIMESTAMP_KEYS:
                timestamp = _coerce_timestamp(raw)
                continue
            parameter = FEED_KEYS.get(name)
            if parameter is None:
                continue
            value = _coerce_float(raw)
            if value is None:
                logger.debug("Device %s: ignoring unparseable %s=%r", device_id, key, raw)
                continue
            values[PARAMETER_FIELDS[parameter]] = value

        return cls(
            device_id=device_id,
            timestamp=timestamp or received_at or datetime.now(tz=UTC),
            **values,
        )


class FaultFinding(BaseModel):
    """A single threshold violation."""

    model_config = ConfigDict(frozen=True)

    parameter: Parameter
    value: float
    direction: Direction
    bound: float
    severity: AlertSeverity
    description: str
    impact: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def threshold(self) -> str:
        return f"{self.direction.value} {self.bound:g}"


class FaultDiagnosisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_fault: bool = False
    faults: list[FaultFinding] = Field(default_factory=list)
    severity: AlertSeverity | None = None
    recommendations: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _consistent(self) -> FaultDiagnosisResult:
        if self.has_fault != bool(self.faults):
            raise ValueError("has_fault must be true iff faults is non-empty")
        if self.has_fault != bool(self.recommendations):
            raise ValueError("recommendations must be non-empty iff has_fault")
        if self.faults:
            expected = max((f.severity for f in self.faults), key=SEVERITY_ORDER.__getitem__)
            if self.severity != expected:
                raise ValueError("severity must be the highest finding severity")
        elif self.severity is not None:
            raise ValueError("severity must be None when there is no fault")
        return self


class AlertRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    device_id: str
    device_name: str
    violations: list[FaultFinding]
    snapshot: ParameterSnapshot
    severity: AlertSeverity
    recommendations: list[str] = Field(default_factory=list)
    status: AlertStatus = AlertStatus.NEW
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    acknowledged_at: datetime | None = None

    @field_validator("severity", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> AlertSeverity:
        return normalize_severity(value)

    @property
    def is_critical(self) -> bool:
        return self.severity == AlertSeverity.CRITICAL


# ── Directory ─────────────────────────────────────────────────────────────────

class DeviceInfo(BaseModel):
    id: str
    name: str
    location: str = ""
    type: str = ""
    status: str = "online"
    serial_number: str = ""


class NotificationPreferences(BaseModel):
    push_enabled: bool = False
    email_enabled: bool = False
    sms_enabled: bool = False
    whatsapp_enabled: bool = False

    def enabled(self, channel: NotificationChannel) -> bool:
        return getattr(self, f"{NotificationChannel(channel).value}_enabled")


class UserRecord(BaseModel):
    id: str
    display_name: str = ""
    email: str | None = None
    phone: str | None = None
    preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)
    fcm_tokens: list[str] = Field(default_factory=list)


# ── Dispatch reports ──────────────────────────────────────────────────────────

class ChannelReport(BaseModel):
    channel: NotificationChannel
    recipients: int = 0
    delivered: int = 0
    failed: int = 0
    dry_run: bool = False
    error: str | None = None   # generic, user-facing; details go to the log

    @property
    def success(self) -> bool:
        return self.failed == 0 and self.error is None


class DispatchReport(BaseModel):
    alert_id: str
    push: ChannelReport = Field(default_factory=lambda: ChannelReport(channel=NotificationChannel.PUSH))
    email: ChannelReport = Field(default_factory=lambda: ChannelReport(channel=NotificationChannel.EMAIL))

    @property
    def recipients(self) -> int:
        return self.push.recipients + self.email.recipients

    @property
    def success(self) -> bool:
        return self.push.success and self.email.success

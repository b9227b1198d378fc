"""
config/alerts.py
────────────────
Alert severity levels, lifecycle states, notification channels and
display configuration.

Two severity vocabularies exist in the wider system: the diagnosis view
speaks low / medium / high, the alert feed speaks info / warning / critical.
The alert vocabulary is canonical; LEGACY_SEVERITY_MAP translates the other.
"""

from enum import Enum


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class NotificationChannel(str, Enum):
    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"            # stored preference only, no transport
    WHATSAPP = "whatsapp"  # stored preference only, no transport

LEGACY_SEVERITY_MAP: dict[str, AlertSeverity] = {
    "low": AlertSeverity.INFO,
    "medium": AlertSeverity.WARNING,
    "high": AlertSeverity.CRITICAL,
}

# Severity ordering for sorting (higher = more severe)
SEVERITY_ORDER: dict[str, int] = {
    AlertSeverity.CRITICAL: 3,
    AlertSeverity.WARNING: 2,
    AlertSeverity.INFO: 1,
}

SEVERITY_COLORS: dict[str, str] = {
    AlertSeverity.INFO: "#0099ff",
    AlertSeverity.WARNING: "#ff9900",
    AlertSeverity.CRITICAL: "#ff0000",
}

SEVERITY_LABELS: dict[str, str] = {
    AlertSeverity.INFO: "Info",
    AlertSeverity.WARNING: "Warning",
    AlertSeverity.CRITICAL: "Critical",
}


def normalize_severity(value: "str | AlertSeverity") -> AlertSeverity:
    """
    Map any known severity spelling onto AlertSeverity.

    Accepts the canonical values, the legacy low/medium/high vocabulary and
    is case-insensitive. Raises ValueError for anything else.
    """
    if isinstance(value, AlertSeverity):
        return value
    key = str(value).strip().lower()
    if key in LEGACY_SEVERITY_MAP:
        return LEGACY_SEVERITY_MAP[key]
    return AlertSeverity(key)


"""
src/notifications/templates.py
──────────────────────────────
Message rendering for push and email notifications.
"""
from __future__ import annotations

from html import escape

from config.alerts import SEVERITY_COLORS, SEVERITY_LABELS, AlertSeverity
from config.parameters import PARAMETER_UNITS
from src.data.models import AlertRecord, FaultFinding


def _violation_text(finding: FaultFinding) -> str:
    return f"{finding.parameter.value.upper()}: {finding.value:g} ({finding.threshold})"


def summary_line(record: AlertRecord) -> str:
    """'2 parameter(s) out of range: PH: 5.5 (below 6.5), COD: 620 (above 500)'"""
    violations = ", ".join(_violation_text(f) for f in record.violations)
    return f"{len(record.violations)} parameter(s) out of range: {violations}"


def build_push_message(record: AlertRecord) -> tuple[str, str, dict[str, str]]:
    """Title, body and data payload for a push notification."""
    if record.is_critical:
        title = f"CRITICAL ALERT: {record.device_name}"
    else:
        title = f"Warning: {record.device_name}"
    data = {
        "deviceId": record.device_id,
        "alertId": record.id,
        "type": "alert",
        "severity": record.severity.value,
    }
    return title, summary_line(record), data


def email_subject(record: AlertRecord) -> str:
    level = record.severity.value.upper()
    return f"[{level}] {record.device_name}: {len(record.violations)} parameter(s) out of range"


def render_email_html(record: AlertRecord) -> str:
    color = SEVERITY_COLORS.get(record.severity, SEVERITY_COLORS[AlertSeverity.INFO])
    label = SEVERITY_LABELS.get(record.severity, record.severity.value).upper()

    rows = "".join(
        "<tr>"
        f"<td style=\"padding: 4px 8px;\">{escape(f.parameter.value.upper())}</td>"
        f"<td style=\"padding: 4px 8px;\">{f.value:g} {escape(PARAMETER_UNITS.get(f.parameter, ''))}</td>"
        f"<td style=\"padding: 4px 8px;\">{escape(f.threshold)}</td>"
        f"<td style=\"padding: 4px 8px;\">{escape(f.description)}</td>"
        "</tr>"
        for f in record.violations
    )
    advice = "".join(f"<li>{escape(text)}</li>" for text in record.recommendations)
    created = record.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")

    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: {color}; color: white; padding: 10px 20px; border-radius: 5px 5px 0 0;">
    <h2 style="margin: 0;">{escape(record.device_name)}</h2>
  </div>
  <div style="border: 1px solid #ddd; border-top: none; padding: 20px; border-radius: 0 0 5px 5px;">
    <p>{escape(summary_line(record))}</p>
    <table style="border-collapse: collapse;">{rows}</table>
    <ul>{advice}</ul>
    <p>Device ID: {escape(record.device_id)}</p>
    <p>Alert Level: <strong style="color: {color};">{label}</strong></p>
    <p>Time: {created}</p>
    <p style="margin-top: 30px; font-size: 12px; color: #666;">
      This is an automated message from the Wastewater Monitoring System.
      Please do not reply to this email.
    </p>
  </div>
</div>
""".strip()

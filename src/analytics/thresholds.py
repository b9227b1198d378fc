"""
src/analytics/thresholds.py
────────────────────────────
Threshold engine.

Provides:
  - Static rule lookup from the parameter threshold table
  - Single-value rule check with severity escalation
  - Status classification of live readings
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from config.alerts import AlertSeverity
from config.parameters import THRESHOLD_TABLE, Direction, Parameter, ThresholdRule
from src.data.models import ParameterSnapshot


@dataclass(frozen=True)
class Violation:
    parameter: Parameter
    value: float
    direction: Direction
    bound: float
    severity: AlertSeverity


def get_rule(parameter: Parameter | str) -> ThresholdRule | None:
    """Return the static rule for a parameter, or None if it is unchecked."""
    return THRESHOLD_TABLE.get(Parameter(parameter))


def check_rule(value: float, rule: ThresholdRule) -> Violation | None:
    """
    Check one value against one rule.

    Below `minimum` or above `maximum` is a violation. It is critical when
    the value is beyond the bound by more than the escalation fraction
    (value < min × 0.9 or value > max × 1.1 for the default 10%),
    otherwise a warning. Values exactly on a bound are in range.
    """
    if rule.minimum is not None and value < rule.minimum:
        critical = value < rule.minimum * (1.0 - rule.escalation)
        return Violation(
            parameter=rule.parameter,
            value=value,
            direction=Direction.BELOW,
            bound=rule.minimum,
            severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        )
    if rule.maximum is not None and value > rule.maximum:
        critical = value > rule.maximum * (1.0 + rule.escalation)
        return Violation(
            parameter=rule.parameter,
            value=value,
            direction=Direction.ABOVE,
            bound=rule.maximum,
            severity=AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING,
        )
    return None


def evaluate_current_value(value: float, rule: ThresholdRule | None) -> str:
    """
    Classify a live value against its rule.

    Returns: "ok" | "warning" | "critical"
    """
    if rule is None:
        return "ok"
    violation = check_rule(value, rule)
    return "ok" if violation is None else violation.severity.value


def snapshot_status(
    snapshot: ParameterSnapshot,
    rules: Mapping[Parameter, ThresholdRule] = THRESHOLD_TABLE,
) -> dict[Parameter, str]:
    """Status of every value the snapshot carries, in evaluation order."""
    return {
        parameter: evaluate_current_value(value, rules.get(parameter))
        for parameter, value in snapshot.present().items()
    }

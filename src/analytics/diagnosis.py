"""
src/analytics/diagnosis.py
──────────────────────────
Rule-based fault diagnosis for treatment-process snapshots.

diagnose_faults() is pure: the same snapshot always yields the same result.
Findings follow PARAMETER_ORDER regardless of how the snapshot was built,
parameters missing from the snapshot are skipped, and recommendations are
looked up per (parameter, direction) so that acidic and alkaline pH get
different remediation.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping

from config.alerts import SEVERITY_ORDER, AlertSeverity
from config.parameters import (
    PARAMETER_LABELS,
    PARAMETER_ORDER,
    THRESHOLD_TABLE,
    Direction,
    Parameter,
    ThresholdRule,
)
from src.analytics.thresholds import Violation, check_rule
from src.data.models import FaultDiagnosisResult, FaultFinding, ParameterSnapshot

# ── Static lookups ────────────────────────────────────────────────────────────

DESCRIPTIONS: dict[tuple[Parameter, Direction], str] = {
    (Parameter.PH, Direction.BELOW): "Acidic conditions in the process stream",
    (Parameter.PH, Direction.ABOVE): "Alkaline conditions in the process stream",
    (Parameter.TEMPERATURE, Direction.BELOW): "Process temperature below the operating window",
    (Parameter.TEMPERATURE, Direction.ABOVE): "Process temperature above the operating window",
    (Parameter.TSS, Direction.ABOVE): "High total suspended solids",
    (Parameter.COD, Direction.ABOVE): "High chemical oxygen demand",
    (Parameter.BOD, Direction.ABOVE): "High biochemical oxygen demand",
    (Parameter.HARDNESS, Direction.ABOVE): "Excessive water hardness",
    (Parameter.DISSOLVED_OXYGEN, Direction.BELOW): "Insufficient dissolved oxygen",
    (Parameter.CONDUCTIVITY, Direction.ABOVE): "High conductivity (dissolved salts)",
    (Parameter.TURBIDITY, Direction.ABOVE): "High effluent turbidity",
}

IMPACTS: dict[tuple[Parameter, Direction], str] = {
    (Parameter.PH, Direction.BELOW): "Corrodes pipework and inhibits nitrifying bacteria.",
    (Parameter.PH, Direction.ABOVE): "Causes scaling and ammonia stripping; inhibits biological treatment.",
    (Parameter.TEMPERATURE, Direction.BELOW): "Slows microbial activity and reduces removal efficiency.",
    (Parameter.TEMPERATURE, Direction.ABOVE): "Stresses the biomass and lowers oxygen solubility.",
    (Parameter.TSS, Direction.ABOVE): "Risk of clogging, sludge carry-over and discharge non-compliance.",
    (Parameter.COD, Direction.ABOVE): "Organic overload; effluent may breach discharge consent.",
    (Parameter.BOD, Direction.ABOVE): "Oxygen depletion in the receiving water body.",
    (Parameter.HARDNESS, Direction.ABOVE): "Scale build-up on membranes, heaters and pipework.",
    (Parameter.DISSOLVED_OXYGEN, Direction.BELOW): "Aerobic treatment stalls; septic conditions and odour.",
    (Parameter.CONDUCTIVITY, Direction.ABOVE): "Salinity stress on biomass; possible industrial discharge.",
    (Parameter.TURBIDITY, Direction.ABOVE): "Poor clarification; disinfection efficiency reduced.",
}

RECOMMENDATIONS: dict[tuple[Parameter, Direction], str] = {
    (Parameter.PH, Direction.BELOW): "Dose alkali (lime or caustic soda) to raise pH and check for acidic influent.",
    (Parameter.PH, Direction.ABOVE): "Dose acid (sulfuric acid or CO2) to lower pH and check for alkaline discharges.",
    (Parameter.TEMPERATURE, Direction.BELOW): "Check heating and insulation; reduce hydraulic load until temperature recovers.",
    (Parameter.TEMPERATURE, Direction.ABOVE): "Inspect cooling systems and hot influent sources; increase aeration.",
    (Parameter.TSS, Direction.ABOVE): "Optimize coagulant/flocculant dosing and inspect clarifier performance.",
    (Parameter.COD, Direction.ABOVE): "Increase aeration and retention time; identify high-strength influent.",
    (Parameter.BOD, Direction.ABOVE): "Increase aeration and check biomass (MLSS) health.",
    (Parameter.HARDNESS, Direction.ABOVE): "Apply water softening or antiscalant and schedule descaling.",
    (Parameter.DISSOLVED_OXYGEN, Direction.BELOW): "Check blowers and diffusers; raise the aeration set point.",
    (Parameter.CONDUCTIVITY, Direction.ABOVE): "Trace the saline source and dilute or divert the stream.",
    (Parameter.TURBIDITY, Direction.ABOVE): "Inspect filters and clarifiers; verify coagulant dosing.",
}


# ── Helpers ───────────────────────────────────────────────────────────────────

def max_severity(severities: Iterable[AlertSeverity]) -> AlertSeverity | None:
    """Highest severity (critical > warning > info), or None for no input."""
    ranked = list(severities)
    if not ranked:
        return None
    return max(ranked, key=SEVERITY_ORDER.__getitem__)


def _finding(violation: Violation) -> FaultFinding:
    key = (violation.parameter, violation.direction)
    label = PARAMETER_LABELS[violation.parameter]
    return FaultFinding(
        parameter=violation.parameter,
        value=violation.value,
        direction=violation.direction,
        bound=violation.bound,
        severity=violation.severity,
        description=DESCRIPTIONS.get(key, f"{label} {violation.direction.value} the normal range"),
        impact=IMPACTS.get(key, "Process conditions outside the design envelope."),
    )


def _recommendation(parameter: Parameter, direction: Direction) -> str:
    fallback = f"Investigate the cause of {PARAMETER_LABELS[parameter]} {direction.value} its normal range."
    return RECOMMENDATIONS.get((parameter, direction), fallback)


# ── Main API ──────────────────────────────────────────────────────────────────

def diagnose_faults(
    snapshot: ParameterSnapshot,
    rules: Mapping[Parameter, ThresholdRule] = THRESHOLD_TABLE,
) -> FaultDiagnosisResult:
    """Evaluate a snapshot against the threshold table."""
    faults: list[FaultFinding] = []
    recommendations: list[str] = []
    advised: set[Parameter] = set()

    for parameter in PARAMETER_ORDER:
        rule = rules.get(parameter)
        value = snapshot.get(parameter)
        if rule is None or value is None:
            continue

        violation = check_rule(value, rule)
        if violation is None:
            continue

        faults.append(_finding(violation))
        if parameter not in advised:
            advised.add(parameter)
            recommendations.append(_recommendation(parameter, violation.direction))

    return FaultDiagnosisResult(
        has_fault=bool(faults),
        faults=faults,
        severity=max_severity(f.severity for f in faults),
        recommendations=recommendations,
    )

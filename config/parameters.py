"""
config/parameters.py
────────────────────
Process parameters and their normal operating ranges.

A rule fires when a reading leaves [minimum, maximum]. The escalation band
decides severity: a reading more than `escalation` (10%) past the bound is
critical, anything closer is a warning.

  pH            6.5 – 8.5      secondary-effluent discharge range
  temperature   30 – 60 °C     mesophilic/thermophilic process window
  TSS, COD, BOD, hardness      upper discharge limits only
  DO            ≥ 2.0 mg/L     minimum for aerobic treatment
  flow          no rule (reported only)
"""
from dataclasses import dataclass
from enum import Enum


class Parameter(str, Enum):
    PH = "pH"
    TEMPERATURE = "temperature"
    TSS = "tss"
    COD = "cod"
    BOD = "bod"
    HARDNESS = "hardness"
    FLOW = "flow"
    DISSOLVED_OXYGEN = "do"
    CONDUCTIVITY = "conductivity"
    TURBIDITY = "turbidity"


class Direction(str, Enum):
    BELOW = "below"
    ABOVE = "above"


# Fixed evaluation order; findings are always reported in this order
PARAMETER_ORDER: tuple[Parameter, ...] = (
    Parameter.PH,
    Parameter.TEMPERATURE,
    Parameter.TSS,
    Parameter.COD,
    Parameter.BOD,
    Parameter.HARDNESS,
    Parameter.DISSOLVED_OXYGEN,
    Parameter.CONDUCTIVITY,
    Parameter.TURBIDITY,
    Parameter.FLOW,
)

PARAMETER_LABELS: dict[Parameter, str] = {
    Parameter.PH: "pH",
    Parameter.TEMPERATURE: "Temperature",
    Parameter.TSS: "TSS",
    Parameter.COD: "COD",
    Parameter.BOD: "BOD",
    Parameter.HARDNESS: "Hardness",
    Parameter.FLOW: "Flow",
    Parameter.DISSOLVED_OXYGEN: "Dissolved oxygen",
    Parameter.CONDUCTIVITY: "Conductivity",
    Parameter.TURBIDITY: "Turbidity",
}

PARAMETER_UNITS: dict[Parameter, str] = {
    Parameter.PH: "",
    Parameter.TEMPERATURE: "°C",
    Parameter.TSS: "mg/L",
    Parameter.COD: "mg/L",
    Parameter.BOD: "mg/L",
    Parameter.HARDNESS: "ppm",
    Parameter.FLOW: "m³/h",
    Parameter.DISSOLVED_OXYGEN: "mg/L",
    Parameter.CONDUCTIVITY: "µS/cm",
    Parameter.TURBIDITY: "NTU",
}

# Snapshot attribute holding each parameter
PARAMETER_FIELDS: dict[Parameter, str] = {
    Parameter.PH: "ph",
    Parameter.TEMPERATURE: "temperature",
    Parameter.TSS: "tss",
    Parameter.COD: "cod",
    Parameter.BOD: "bod",
    Parameter.HARDNESS: "hardness",
    Parameter.FLOW: "flow",
    Parameter.DISSOLVED_OXYGEN: "dissolved_oxygen",
    Parameter.CONDUCTIVITY: "conductivity",
    Parameter.TURBIDITY: "turbidity",
}

# Raw feed keys accepted at the feed boundary. Lookup is on the lower-cased key.
FEED_KEYS: dict[str, Parameter] = {
    "ph": Parameter.PH,
    "temperature": Parameter.TEMPERATURE,
    "temp": Parameter.TEMPERATURE,
    "tss": Parameter.TSS,
    "cod": Parameter.COD,
    "bod": Parameter.BOD,
    "hardness": Parameter.HARDNESS,
    "flow": Parameter.FLOW,
    "do": Parameter.DISSOLVED_OXYGEN,
    "dissolved_oxygen": Parameter.DISSOLVED_OXYGEN,
    "conductivity": Parameter.CONDUCTIVITY,
    "turbidity": Parameter.TURBIDITY,
}

FEED_TIMESTAMP_KEYS = ("timestamp", "time")

DEFAULT_ESCALATION = 0.10


@dataclass(frozen=True)
class ThresholdRule:
    """Acceptable range for one parameter."""
    parameter: Parameter
    minimum: float | None = None
    maximum: float | None = None
    escalation: float = DEFAULT_ESCALATION  # fraction beyond the bound → critical


# ── Threshold table ───────────────────────────────────────────────────────────
THRESHOLD_TABLE: dict[Parameter, ThresholdRule] = {
    rule.parameter: rule
    for rule in (
        ThresholdRule(Parameter.PH, minimum=6.5, maximum=8.5),
        ThresholdRule(Parameter.TEMPERATURE, minimum=30.0, maximum=60.0),
        ThresholdRule(Parameter.TSS, maximum=200.0),
        ThresholdRule(Parameter.COD, maximum=500.0),
        ThresholdRule(Parameter.BOD, maximum=150.0),
        ThresholdRule(Parameter.HARDNESS, maximum=300.0),
        ThresholdRule(Parameter.DISSOLVED_OXYGEN, minimum=2.0),
        ThresholdRule(Parameter.CONDUCTIVITY, maximum=3_000.0),
        ThresholdRule(Parameter.TURBIDITY, maximum=50.0),
    )
}

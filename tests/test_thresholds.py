"""
tests/test_thresholds.py
─────────────────────────
Tests for the threshold engine.
"""

from config.alerts import AlertSeverity
from config.parameters import THRESHOLD_TABLE, Direction, Parameter, ThresholdRule
from src.analytics.thresholds import (
    check_rule,
    evaluate_current_value,
    get_rule,
    snapshot_status,
)


class TestGetRule:
    def test_ph_has_both_bounds(self):
        rule = get_rule(Parameter.PH)
        assert rule.minimum == 6.5
        assert rule.maximum == 8.5

    def test_lookup_by_identifier_string(self):
        assert get_rule("cod").maximum == 500.0

    def test_upper_limit_only(self):
        rule = get_rule(Parameter.TSS)
        assert rule.minimum is None
        assert rule.maximum == 200.0

    def test_dissolved_oxygen_lower_limit_only(self):
        rule = get_rule(Parameter.DISSOLVED_OXYGEN)
        assert rule.minimum == 2.0
        assert rule.maximum is None

    def test_flow_is_unchecked(self):
        assert get_rule(Parameter.FLOW) is None
        assert Parameter.FLOW not in THRESHOLD_TABLE

    def test_default_escalation_is_ten_percent(self):
        assert all(rule.escalation == 0.10 for rule in THRESHOLD_TABLE.values())


class TestCheckRule:
    ph = THRESHOLD_TABLE[Parameter.PH]
    cod = THRESHOLD_TABLE[Parameter.COD]
    do = THRESHOLD_TABLE[Parameter.DISSOLVED_OXYGEN]

    def test_in_range(self):
        assert check_rule(7.0, self.ph) is None

    def test_bounds_are_inclusive(self):
        assert check_rule(6.5, self.ph) is None
        assert check_rule(8.5, self.ph) is None

    def test_slightly_below_is_warning(self):
        v = check_rule(6.0, self.ph)
        assert v.direction == Direction.BELOW
        assert v.bound == 6.5
        assert v.severity == AlertSeverity.WARNING

    def test_far_below_is_critical(self):
        v = check_rule(5.5, self.ph)
        assert v.severity == AlertSeverity.CRITICAL

    def test_slightly_above_is_warning(self):
        v = check_rule(9.0, self.ph)
        assert v.direction == Direction.ABOVE
        assert v.bound == 8.5
        assert v.severity == AlertSeverity.WARNING

    def test_far_above_is_critical(self):
        assert check_rule(9.5, self.ph).severity == AlertSeverity.CRITICAL

    def test_upper_only_rule(self):
        assert check_rule(540.0, self.cod).severity == AlertSeverity.WARNING
        assert check_rule(560.0, self.cod).severity == AlertSeverity.CRITICAL
        assert check_rule(0.0, self.cod) is None

    def test_lower_only_rule(self):
        assert check_rule(1.9, self.do).severity == AlertSeverity.WARNING
        assert check_rule(1.0, self.do).severity == AlertSeverity.CRITICAL
        assert check_rule(50.0, self.do) is None

    def test_custom_escalation(self):
        rule = ThresholdRule(Parameter.TURBIDITY, maximum=50.0, escalation=0.5)
        assert check_rule(70.0, rule).severity == AlertSeverity.WARNING
        assert check_rule(80.0, rule).severity == AlertSeverity.CRITICAL

    def test_violation_carries_value(self):
        v = check_rule(620.0, self.cod)
        assert v.parameter == Parameter.COD
        assert v.value == 620.0


class TestEvaluateCurrentValue:
    def test_ok(self):
        assert evaluate_current_value(7.0, get_rule("pH")) == "ok"

    def test_warning(self):
        assert evaluate_current_value(6.2, get_rule("pH")) == "warning"

    def test_critical(self):
        assert evaluate_current_value(4.0, get_rule("pH")) == "critical"

    def test_no_rule_is_ok(self):
        assert evaluate_current_value(999.0, None) == "ok"


class TestSnapshotStatus:
    def test_normal_is_all_ok(self, normal_snapshot):
        status = snapshot_status(normal_snapshot)
        assert set(status.values()) == {"ok"}
        assert list(status) == list(normal_snapshot.present())

    def test_flags_only_the_violation(self, acidic_snapshot):
        status = snapshot_status(acidic_snapshot)
        assert status[Parameter.PH] == "critical"
        assert all(s == "ok" for p, s in status.items() if p != Parameter.PH)

    def test_absent_values_omitted(self, acidic_snapshot):
        assert Parameter.DISSOLVED_OXYGEN not in snapshot_status(acidic_snapshot)

    def test_unchecked_parameter_is_ok(self, normal_snapshot):
        assert snapshot_status(normal_snapshot.model_copy(update={"flow": 1e6}))[Parameter.FLOW] == "ok"

    def test_custom_rules(self, normal_snapshot):
        rules = {Parameter.COD: ThresholdRule(Parameter.COD, maximum=280.0)}
        assert snapshot_status(normal_snapshot, rules)[Parameter.COD] == "warning"

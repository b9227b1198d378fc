"""
tests/test_diagnosis.py
────────────────────────
Tests for the rule-based fault evaluator.
"""
import pytest

from config.alerts import AlertSeverity
from config.parameters import THRESHOLD_TABLE, Direction, Parameter, ThresholdRule
from src.analytics.diagnosis import RECOMMENDATIONS, diagnose_faults, max_severity
from src.data.models import ParameterSnapshot


class TestNoFault:
    def test_all_in_range(self, normal_snapshot):
        result = diagnose_faults(normal_snapshot)
        assert result.has_fault is False
        assert result.faults == []
        assert result.severity is None

    def test_empty_snapshot(self):
        result = diagnose_faults(ParameterSnapshot())
        assert result.has_fault is False
        assert result.faults == []
        assert result.recommendations == []

    def test_flow_never_faults(self):
        assert not diagnose_faults(ParameterSnapshot(flow=1_000_000.0)).has_fault

    def test_on_bound_is_in_range(self):
        assert not diagnose_faults(ParameterSnapshot(pH=6.5, cod=500.0, do=2.0)).has_fault


class TestSingleViolation:
    @pytest.mark.parametrize("field, value", [
        ("ph", 6.2),
        ("ph", 8.9),
        ("temperature", 28.0),
        ("temperature", 63.0),
        ("tss", 210.0),
        ("cod", 520.0),
        ("bod", 160.0),
        ("hardness", 320.0),
        ("dissolved_oxygen", 1.9),
        ("conductivity", 3_100.0),
        ("turbidity", 53.0),
    ])
    def test_within_ten_percent_is_warning(self, normal_snapshot, field, value):
        result = diagnose_faults(normal_snapshot.model_copy(update={field: value}))
        assert len(result.faults) == 1
        assert result.faults[0].severity == AlertSeverity.WARNING
        assert result.severity == AlertSeverity.WARNING
        assert len(result.recommendations) == 1

    @pytest.mark.parametrize("field, value", [
        ("ph", 5.0),
        ("ph", 10.0),
        ("temperature", 20.0),
        ("cod", 700.0),
        ("dissolved_oxygen", 0.5),
        ("turbidity", 90.0),
    ])
    def test_beyond_ten_percent_is_critical(self, normal_snapshot, field, value):
        result = diagnose_faults(normal_snapshot.model_copy(update={field: value}))
        assert len(result.faults) == 1
        assert result.faults[0].severity == AlertSeverity.CRITICAL
        assert result.severity == AlertSeverity.CRITICAL


class TestEscalationEdge:
    """Exactly ten percent beyond a bound is still a warning."""

    @pytest.mark.parametrize("field, value", [
        ("cod", 550.0),
        ("tss", 220.0),
        ("temperature", 66.0),
        ("temperature", 27.0),
        ("dissolved_oxygen", 1.8),
    ])
    def test_on_escalation_edge_is_warning(self, normal_snapshot, field, value):
        result = diagnose_faults(normal_snapshot.model_copy(update={field: value}))
        assert [f.severity for f in result.faults] == [AlertSeverity.WARNING]

    @pytest.mark.parametrize("field, value", [
        ("cod", 550.1),
        ("tss", 220.1),
        ("temperature", 66.1),
        ("temperature", 26.9),
        ("dissolved_oxygen", 1.79),
    ])
    def test_just_past_edge_is_critical(self, normal_snapshot, field, value):
        result = diagnose_faults(normal_snapshot.model_copy(update={field: value}))
        assert [f.severity for f in result.faults] == [AlertSeverity.CRITICAL]


class TestAcidicScenario:
    def test_ph_is_critical(self, acidic_snapshot):
        result = diagnose_faults(acidic_snapshot)
        assert result.has_fault is True
        assert [f.parameter for f in result.faults] == [Parameter.PH]
        finding = result.faults[0]
        assert finding.severity == AlertSeverity.CRITICAL
        assert finding.direction == Direction.BELOW
        assert finding.threshold == "below 6.5"
        assert finding.value == 5.5

    def test_ph_remediation(self, acidic_snapshot):
        result = diagnose_faults(acidic_snapshot)
        assert result.recommendations == [RECOMMENDATIONS[(Parameter.PH, Direction.BELOW)]]


class TestMultipleViolations:
    def test_fixed_order_and_max_severity(self):
        snap = ParameterSnapshot(turbidity=53.0, cod=900.0, pH=8.7)
        result = diagnose_faults(snap)
        assert [f.parameter for f in result.faults] == [Parameter.PH, Parameter.COD, Parameter.TURBIDITY]
        assert result.severity == AlertSeverity.CRITICAL
        assert len(result.recommendations) == 3

    def test_directional_recommendations_differ(self):
        low = diagnose_faults(ParameterSnapshot(pH=5.0)).recommendations
        high = diagnose_faults(ParameterSnapshot(pH=10.0)).recommendations
        assert low != high
        assert "alkali" in low[0].lower()
        assert "acid" in high[0].lower()

    def test_deterministic(self, acidic_snapshot):
        assert diagnose_faults(acidic_snapshot) == diagnose_faults(acidic_snapshot)


class TestCustomRules:
    def test_rule_without_lookup_text_uses_fallback(self):
        rules = {**THRESHOLD_TABLE, Parameter.FLOW: ThresholdRule(Parameter.FLOW, maximum=150.0)}
        result = diagnose_faults(ParameterSnapshot(flow=160.0), rules)
        assert result.faults[0].parameter == Parameter.FLOW
        assert "Flow" in result.faults[0].description
        assert "Flow" in result.recommendations[0]

    def test_empty_rule_set(self, acidic_snapshot):
        assert not diagnose_faults(acidic_snapshot, {}).has_fault


class TestMaxSeverity:
    def test_empty(self):
        assert max_severity([]) is None

    def test_ordering(self):
        assert max_severity([AlertSeverity.INFO, AlertSeverity.CRITICAL, AlertSeverity.WARNING]) == AlertSeverity.CRITICAL
        assert max_severity([AlertSeverity.INFO, AlertSeverity.WARNING]) == AlertSeverity.WARNING

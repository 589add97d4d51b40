from __future__ import annotations

from core.enums import Metabolism
from core.models import DetectionReport, PatientInput


def make_patient(**overrides) -> PatientInput:
    """A 76 kg, 28 year old fast metaboliser after two days of use, unless overridden."""
    values = dict(
        dosage_mg=1000,
        weight_kg=76,
        age_years=28,
        metabolism=Metabolism.fast,
        duration_h=48.0,
    )
    values.update(overrides)
    return PatientInput(**values)


def rule_ids(report: DetectionReport) -> list[str]:
    """Return applied rule ids in application order."""
    return [a.rule_id for a in report.applied_rules]


def assert_has_rule(report: DetectionReport, rule_id: str) -> None:
    """Assert that a specific rule was applied."""
    rids = rule_ids(report)
    assert rule_id in rids, f"Expected rule '{rule_id}' to apply, got: {rids}"


def assert_no_rule(report: DetectionReport, rule_id: str) -> None:
    """Assert that a specific rule was NOT applied."""
    rids = rule_ids(report)
    assert rule_id not in rids, f"Did NOT expect rule '{rule_id}', but got: {rids}"

"""Tests for the accountant handoff summary."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from priznanie.declaration.models import AiCopilot, Declaration, EvidenceItem, TwoPercent
from priznanie.engine.calculator import compute_tax
from priznanie.review.handoff import (
    HandoffSummary,
    build_handoff_summary,
    deserialize_handoff_summary,
    readiness_score,
    serialize_handoff_summary,
)
from priznanie.review.risk_rules import RiskWarning, Severity, evaluate_risk

GENERATED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _warning(severity: Severity, code: str = "CODE") -> RiskWarning:
    return RiskWarning(severity, code, "message", "path", "suggestion")


def _summary(declaration: Declaration) -> HandoffSummary:
    result = compute_tax(declaration)
    return build_handoff_summary(
        declaration, result, evaluate_risk(declaration, result), generated_at=GENERATED_AT
    )


class TestReadinessScore:
    def test_no_warnings(self) -> None:
        assert readiness_score([]) == 100

    def test_mixed_penalties(self) -> None:
        warnings = [
            _warning(Severity.ERROR),
            _warning(Severity.WARNING),
            _warning(Severity.INFO),
            _warning(Severity.INFO),
        ]
        assert readiness_score(warnings) == 100 - 20 - 10 - 5 - 5

    def test_floored_at_zero(self) -> None:
        assert readiness_score([_warning(Severity.ERROR)] * 10) == 0


class TestBuildHandoffSummary:
    def test_sections_in_fixed_order(self, employee: Declaration) -> None:
        summary = _summary(employee)
        assert [s.name for s in summary.sections] == [
            "Employment",
            "Dividends",
            "MutualFunds",
            "StockSales",
            "Mortgage",
            "Spouse",
            "ChildBonus",
            "TwoPercent",
            "ParentAllocation",
            "TaxTotals",
        ]

    def test_employment_key_values(self, employee: Declaration) -> None:
        employment = _summary(employee).section("Employment")
        assert employment.enabled is True
        assert employment.key_values == {
            "r36": "15000.00",
            "r37": "1500.00",
            "r38": "13500.00",
            "r75": "0.00",
            "r131": "2000.00",
        }

    def test_disabled_sections_have_no_values(self, employee: Declaration) -> None:
        dividends = _summary(employee).section("Dividends")
        assert dividends.enabled is False
        assert dividends.key_values == {}

    def test_tax_totals(self, employee: Declaration) -> None:
        totals = _summary(employee).section("TaxTotals").key_values
        assert totals["r124"] == "1471.78"
        assert totals["r136"] == "528.22"

    def test_score_from_warnings(self, employee: Declaration) -> None:
        summary = _summary(employee)
        assert [w.code for w in summary.warnings] == ["MISSING_SUPPORTING_DOCUMENT"]
        assert summary.readiness_score == 95

    def test_evidence_count(self, employee: Declaration) -> None:
        copilot = AiCopilot(
            evidence=(
                EvidenceItem(field_path="employment.r36", confidence=0.9),
                EvidenceItem(field_path="employment.r37", confidence=0.9),
            )
        )
        summary = _summary(employee.model_copy(update={"ai_copilot": copilot}))
        assert summary.evidence_count == 2

    def test_warnings_are_sorted(self, employee: Declaration) -> None:
        result = compute_tax(employee)
        warnings = [_warning(Severity.INFO, "B"), _warning(Severity.ERROR, "Z"), _warning(Severity.INFO, "A")]
        summary = build_handoff_summary(employee, result, warnings, generated_at=GENERATED_AT)
        assert [w.code for w in summary.warnings] == ["Z", "A", "B"]

    def test_unknown_section_raises(self, employee: Declaration) -> None:
        with pytest.raises(KeyError):
            _summary(employee).section("Crypto")

    def test_two_percent_section(self, employee: Declaration) -> None:
        declaration = employee.model_copy(
            update={"two_percent": TwoPercent(enabled=True, ico="12345678", name="Nadácia", consent=True)}
        )
        assert _summary(declaration).section("TwoPercent").key_values == {
            "ico": "12345678",
            "r152": "29.44",
        }


class TestSerialization:
    def test_round_trip(self, employee: Declaration) -> None:
        summary = _summary(employee)
        restored = deserialize_handoff_summary(serialize_handoff_summary(summary))
        assert restored == summary

    def test_json_uses_camel_case_keys(self, employee: Declaration) -> None:
        text = serialize_handoff_summary(_summary(employee))
        assert '"readinessScore":95' in text
        assert '"keyValues"' in text
        assert '"fieldPath":"aiCopilot.documentInbox"' in text
        assert '"generatedAt":"2026-03-01T12:00:00Z"' in text

    def test_invalid_json_shape(self) -> None:
        with pytest.raises(ValidationError):
            deserialize_handoff_summary('{"sections": "nope"}')

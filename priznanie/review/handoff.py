"""Handoff summary for accountant review.

Condenses a declaration, its computed result and the risk warnings into a
display-ready record. Each section surfaces a fixed, documented set of key
values; nothing is reflected generically over the result.

The summary can be serialized to JSON with orjson and stored as an
artifact next to the filing.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from priznanie.declaration.models import Declaration, coerce_declaration
from priznanie.engine.result import TaxCalculationResult
from priznanie.review.risk_rules import RiskWarning, Severity, sort_warnings
from priznanie.tax.money import format_money, parse_amount

SEVERITY_PENALTY = {Severity.ERROR: 20, Severity.WARNING: 10, Severity.INFO: 5}


class HandoffSection(BaseModel):
    """One declaration section with the figures relevant for review."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    name: str
    enabled: bool
    key_values: dict[str, str] = Field(default_factory=dict)


class HandoffSummary(BaseModel):
    """Reviewable snapshot of a declaration's computed state."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    sections: tuple[HandoffSection, ...]
    warnings: tuple[RiskWarning, ...] = ()
    evidence_count: int = 0
    readiness_score: int = 100
    generated_at: datetime

    @field_validator("warnings", mode="before")
    @classmethod
    def parse_warnings(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(
                RiskWarning.from_dict(item) if isinstance(item, Mapping) else item
                for item in value
            )
        return value

    @field_serializer("warnings")
    def serialize_warnings(self, warnings: tuple[RiskWarning, ...]) -> list[dict[str, str]]:
        return [warning.to_dict() for warning in warnings]

    def section(self, name: str) -> HandoffSection:
        for section in self.sections:
            if section.name == name:
                return section
        raise KeyError(name)


def readiness_score(warnings: Iterable[RiskWarning]) -> int:
    """Score 0..100: start at 100, subtract a fixed penalty per warning."""
    penalty = sum(SEVERITY_PENALTY[warning.severity] for warning in warnings)
    return max(0, 100 - penalty)


def _amount(text: str) -> str:
    return format_money(parse_amount(text))


# Each builder returns the key values of one section, in display order.
_SectionBuilder = Callable[[Declaration, TaxCalculationResult], dict[str, str]]


def _employment(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {
        "r36": _amount(d.employment.gross_income),
        "r37": _amount(d.employment.insurance),
        "r38": r.r38,
        "r75": r.r75,
        "r131": r.r131,
    }


def _dividends(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {
        "totalDividendsEur": r.total_dividends_eur,
        "totalWithheldTaxEur": r.total_withheld_tax_eur,
        "pril2_pr28": r.pril2_pr28,
        "entryCount": str(len(d.dividends.entries)),
    }


def _mutual_funds(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {"r66": r.r66, "r67": r.r67, "r68": r.r68, "r106": r.r106}


def _stock_sales(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {"r69": r.r69, "r70": r.r70, "r71": r.r71, "stockExemption": r.stock_exemption}


def _mortgage(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {
        "zaplateneUroky": _amount(d.mortgage.interest_paid),
        "pocetMesiacov": d.mortgage.months.strip(),
        "datumUzavretiaZmluvy": d.mortgage.contract_date.strip(),
        "r123": r.r123,
    }


def _spouse(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {"r74": r.r74}


def _child_bonus(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {
        "childCount": str(len(d.child_bonus.children)),
        "r117": r.r117,
        "r119": r.r119,
    }


def _two_percent(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {"ico": d.two_percent.ico.strip(), "r152": r.r152}


def _parent_allocation(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {
        "choice": d.parent_allocation.choice,
        "parentAllocPerParent": r.parent_alloc_per_parent,
    }


def _tax_totals(d: Declaration, r: TaxCalculationResult) -> dict[str, str]:
    return {
        "r80": r.r80,
        "r116": r.r116,
        "r124": r.r124,
        "r135": r.r135,
        "r136": r.r136,
    }


SECTIONS: tuple[tuple[str, Callable[[Declaration], bool], _SectionBuilder], ...] = (
    ("Employment", lambda d: d.employment.enabled, _employment),
    ("Dividends", lambda d: d.dividends.enabled, _dividends),
    ("MutualFunds", lambda d: d.mutual_funds.enabled, _mutual_funds),
    ("StockSales", lambda d: d.stock_sales.enabled, _stock_sales),
    ("Mortgage", lambda d: d.mortgage.enabled, _mortgage),
    ("Spouse", lambda d: d.spouse.enabled, _spouse),
    ("ChildBonus", lambda d: d.child_bonus.enabled, _child_bonus),
    ("TwoPercent", lambda d: d.two_percent.enabled, _two_percent),
    ("ParentAllocation", lambda d: d.parent_allocation.choice != "none", _parent_allocation),
    ("TaxTotals", lambda d: True, _tax_totals),
)


def build_handoff_summary(
    declaration: Declaration | Mapping[str, Any],
    result: TaxCalculationResult,
    warnings: Iterable[RiskWarning],
    generated_at: datetime | None = None,
) -> HandoffSummary:
    """Build the review record.

    Disabled sections are listed with ``enabled=False`` and no key values.

    Args:
        declaration: The declaration the result was computed from.
        result: Output of ``compute_tax`` for the declaration.
        warnings: Output of ``evaluate_risk``.
        generated_at: Timestamp to stamp; defaults to the current UTC time.

    Returns:
        HandoffSummary with sections, warnings, evidence count and score.
    """
    declaration = coerce_declaration(declaration)
    warnings = sort_warnings(list(warnings))

    sections = []
    for name, is_enabled, builder in SECTIONS:
        enabled = is_enabled(declaration)
        sections.append(
            HandoffSection(
                name=name,
                enabled=enabled,
                key_values=builder(declaration, result) if enabled else {},
            )
        )

    return HandoffSummary(
        sections=tuple(sections),
        warnings=tuple(warnings),
        evidence_count=len(declaration.ai_copilot.evidence),
        readiness_score=readiness_score(warnings),
        generated_at=generated_at or datetime.now(timezone.utc),
    )


def serialize_handoff_summary(summary: HandoffSummary) -> str:
    """Serialize a HandoffSummary to a JSON string using orjson.

    Uses model_dump(mode="json") so the timestamp is rendered as ISO-8601.
    """
    data = summary.model_dump(mode="json", by_alias=True)
    return orjson.dumps(data).decode("utf-8")


def deserialize_handoff_summary(json_str: str) -> HandoffSummary:
    """Deserialize a JSON string back to a HandoffSummary.

    Raises:
        ValidationError: If the JSON data fails HandoffSummary validation.
    """
    data = orjson.loads(json_str)
    return HandoffSummary.model_validate(data)

"""Supporting-document checklist for enabled declaration sections."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from priznanie.declaration.models import Declaration


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    """A document the accountant expects for one enabled section."""

    id: str
    label: str
    section: str
    required: bool
    present: bool

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class _Requirement:
    section: str
    label: str
    required: bool
    document_types: frozenset[str]


REQUIREMENTS: tuple[_Requirement, ...] = (
    _Requirement(
        "employment",
        "Potvrdenie o zdaniteľných príjmoch",
        True,
        frozenset({"employment"}),
    ),
    _Requirement(
        "dividends",
        "Výkaz dividend (CSV/PDF) alebo 1042-S",
        True,
        frozenset({"dividends", "1042s"}),
    ),
    _Requirement(
        "mutualFunds",
        "Výpis z podielových fondov",
        True,
        frozenset({"broker_report"}),
    ),
    _Requirement(
        "stockSales",
        "Výpis obchodov s akciami",
        True,
        frozenset({"broker_report"}),
    ),
    _Requirement(
        "mortgage",
        "Potvrdenie o zaplatených úrokoch",
        True,
        frozenset({"mortgage"}),
    ),
    _Requirement(
        "childBonus",
        "Rodné listy detí",
        False,
        frozenset({"childBonus"}),
    ),
)


def _section_enabled(declaration: Declaration, section: str) -> bool:
    return {
        "employment": declaration.employment.enabled,
        "dividends": declaration.dividends.enabled,
        "mutualFunds": declaration.mutual_funds.enabled,
        "stockSales": declaration.stock_sales.enabled,
        "mortgage": declaration.mortgage.enabled,
        "childBonus": declaration.child_bonus.enabled,
    }[section]


def get_document_checklist(declaration: Declaration) -> list[ChecklistItem]:
    """List the documents expected for each enabled section.

    A document counts as present when the inbox holds a file of a matching
    document type; failed parses still count, since the file exists.
    """
    uploaded = {doc.document_type for doc in declaration.ai_copilot.document_inbox}
    return [
        ChecklistItem(
            id=requirement.section,
            label=requirement.label,
            section=requirement.section,
            required=requirement.required,
            present=bool(uploaded & requirement.document_types),
        )
        for requirement in REQUIREMENTS
        if _section_enabled(declaration, requirement.section)
    ]

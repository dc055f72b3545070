"""Pydantic models for the DPFO typ B declaration.

The declaration is the complete taxpayer input for one filing period:
- PersonalInfo: identity and address (Oddiel I), never used in arithmetic
- Employment: §5 income with the DDS pension-savings sub-record
- Dividends: foreign dividend entries already converted to EUR
- MutualFunds / StockSales: disposal entries (Tabuľka 2 and 3)
- Mortgage, Spouse, ChildBonus: reliefs and bonuses
- TwoPercent / ParentAllocation: §50 and §50aa allocations
- AiCopilot: document inbox and extraction evidence

Every monetary field is decimal-as-text. Values arrive from a form that is
edited keystroke by keystroke, so amounts are never rejected here; the
calculators read them through ``priznanie.tax.money``.

All models are frozen. An edit produces a new Declaration via
``model_copy(update=...)``; nothing is mutated in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from priznanie.core.logging import get_logger
from priznanie.errors import DeclarationShapeError
from priznanie.tax.money import ZERO, to_decimal

logger = get_logger(__name__)


def _amount_text(value: object) -> object:
    """Coerce scalar input to text; containers fall through to fail validation."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


Amount = Annotated[str, BeforeValidator(_amount_text)]
"""Decimal-as-text amount ("" when not filled in)."""


def _confidence(value: object) -> object:
    """Clamp to 0..1; unreadable scalars read as 0."""
    if isinstance(value, (list, tuple, dict)):
        return value
    number = to_decimal(value)  # type: ignore[arg-type]
    return float(min(max(number, ZERO), Decimal(1)))


def _file_size(value: object) -> object:
    if isinstance(value, (list, tuple, dict)):
        return value
    return int(max(to_decimal(value), ZERO))  # type: ignore[arg-type]


Confidence = Annotated[float, BeforeValidator(_confidence)]
FileSize = Annotated[int, BeforeValidator(_file_size)]

Currency = Literal["USD", "EUR", "CZK"]
ParentAllocationChoice = Literal["both", "one", "none"]


class DeclarationModel(BaseModel):
    """Base for all declaration records.

    Accepts both snake_case names and the camelCase keys stored by the
    wizard UI. Slovak form element names are declared as explicit aliases.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


# =============================================================================
# Personal info
# =============================================================================


class PersonalInfo(DeclarationModel):
    """Taxpayer identity and permanent address (Oddiel I)."""

    dic: str = ""
    surname: str = Field(default="", alias="priezvisko")
    first_name: str = Field(default="", alias="meno")
    title: str = Field(default="", alias="titul")
    title_after: str = Field(default="", alias="titulZa")
    street: str = Field(default="", alias="ulica")
    house_number: str = Field(default="", alias="cislo")
    postal_code: str = Field(default="", alias="psc")
    city: str = Field(default="", alias="obec")
    country: str = Field(default="Slovenská republika", alias="stat")


# =============================================================================
# Employment (Oddiel V)
# =============================================================================


class PensionSavings(DeclarationModel):
    """Contributions to supplementary pension savings, DDS (§11 ods.8)."""

    enabled: bool = False
    contributions: Amount = Field(default="", alias="prispevky")


class Employment(DeclarationModel):
    """Income from dependent activity (§5).

    Attributes:
        gross_income: r.36, total gross income.
        agreement_income: r.36a, income from work agreements (informational).
        insurance: r.37, mandatory insurance paid by the employee.
        prepayments: r.131, tax advances withheld by the employer.
        pension_savings: DDS contributions reducing the tax base.
    """

    enabled: bool = True
    gross_income: Amount = Field(default="", alias="r36")
    agreement_income: Amount = Field(default="", alias="r36a")
    insurance: Amount = Field(default="", alias="r37")
    prepayments: Amount = Field(default="", alias="r131")
    pension_savings: PensionSavings = Field(default_factory=PensionSavings, alias="dds")


# =============================================================================
# Dividends (Príloha č.2)
# =============================================================================


class DividendEntry(DeclarationModel):
    """One foreign dividend position.

    ``amount_eur`` and ``withheld_tax_eur`` are converted once, when the
    entry is created; the engine only sums them.
    """

    id: str = ""
    ticker: str = ""
    country: str = "840"
    country_name: str = "USA"
    currency: Currency = "USD"
    amount_original: Amount = ""
    amount_eur: Amount = ""
    withheld_tax_original: Amount = ""
    withheld_tax_eur: Amount = ""

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "USD"
        return value


class Dividends(DeclarationModel):
    """Foreign dividends with the ECB reference rates used at entry time."""

    enabled: bool = False
    entries: tuple[DividendEntry, ...] = ()
    ecb_rate: Amount = "1.13"
    ecb_rate_override: bool = False
    czk_rate: Amount = "25.21"
    czk_rate_override: bool = False


# =============================================================================
# Disposals (Tabuľka 2 and Tabuľka 3)
# =============================================================================


class MutualFundEntry(DeclarationModel):
    id: str = ""
    fund_name: str = ""
    purchase_amount: Amount = ""
    sale_amount: Amount = ""


class MutualFunds(DeclarationModel):
    """Sales of mutual fund units (§7, Tabuľka 2 r.7)."""

    enabled: bool = False
    entries: tuple[MutualFundEntry, ...] = ()


class StockEntry(DeclarationModel):
    id: str = ""
    ticker: str = ""
    purchase_amount: Amount = ""
    sale_amount: Amount = ""


class StockSales(DeclarationModel):
    """Sales of shares held under one year (§8 ods.1 písm.e, Tabuľka 3)."""

    enabled: bool = False
    entries: tuple[StockEntry, ...] = ()


# =============================================================================
# Reliefs and bonuses
# =============================================================================


class Mortgage(DeclarationModel):
    """Mortgage interest bonus for young borrowers (§33a).

    Dates are ISO ``YYYY-MM-DD`` text.
    """

    enabled: bool = False
    interest_paid: Amount = Field(default="", alias="zaplateneUroky")
    months: Amount = Field(default="", alias="pocetMesiacov")
    interest_start_date: str = Field(default="", alias="datumZacatiaUroceniaUveru")
    contract_date: str = Field(default="", alias="datumUzavretiaZmluvy")
    confirm_four_years: bool = Field(default=False, alias="confirm4Years")


class Spouse(DeclarationModel):
    """Spouse non-taxable amount (§11 ods.3, r.31 and r.32)."""

    enabled: bool = False
    full_name: str = Field(default="", alias="priezviskoMeno")
    birth_number: str = Field(default="", alias="rodneCislo")
    own_income: Amount = Field(default="", alias="vlastnePrijmy")
    months: Amount = Field(default="", alias="pocetMesiacov")


def _twelve_months(value: object) -> object:
    if isinstance(value, (list, tuple)):
        flags = [bool(flag) for flag in value[:12]]
        return tuple(flags + [False] * (12 - len(flags)))
    return value


class ChildEntry(DeclarationModel):
    """Child claimed for the tax bonus; ``months`` holds one flag per month."""

    id: str = ""
    full_name: str = Field(default="", alias="priezviskoMeno")
    birth_number: str = Field(default="", alias="rodneCislo")
    months: Annotated[tuple[bool, ...], BeforeValidator(_twelve_months)] = (True,) * 12
    whole_year: bool = True


class ChildBonus(DeclarationModel):
    """Child tax bonus (§33); ``paid_by_employer`` is r.119."""

    enabled: bool = False
    children: tuple[ChildEntry, ...] = ()
    paid_by_employer: Amount = Field(default="", alias="bonusPaidByEmployer")


class TwoPercent(DeclarationModel):
    """Allocation of 2% (3% for volunteers) of the tax to an NGO (§50)."""

    enabled: bool = False
    ico: str = ""
    name: str = Field(default="", alias="obchMeno")
    splnam3per: bool = Field(default=False, alias="splnam3per")
    consent: bool = Field(default=False, alias="suhlasSoZaslanim")


class ParentInfo(DeclarationModel):
    first_name: str = Field(default="", alias="meno")
    surname: str = Field(default="", alias="priezvisko")
    birth_number: str = Field(default="", alias="rodneCislo")

    @property
    def is_blank(self) -> bool:
        return not (self.first_name.strip() or self.surname.strip() or self.birth_number.strip())


class ParentAllocation(DeclarationModel):
    """Allocation of 2% of the tax to each parent (§50aa)."""

    choice: ParentAllocationChoice = "none"
    parent1: ParentInfo = Field(default_factory=ParentInfo)
    parent2: ParentInfo = Field(default_factory=ParentInfo)
    adopted: bool = Field(default=False, alias="osvojeny")

    @property
    def parent_count(self) -> int:
        return {"both": 2, "one": 1}.get(self.choice, 0)


# =============================================================================
# AI copilot
# =============================================================================


class DocumentInboxItem(DeclarationModel):
    id: str = ""
    file_name: str = ""
    file_size: FileSize = 0
    uploaded_at: str = ""
    document_type: str = "unknown"
    parse_status: str = "queued"


class EvidenceItem(DeclarationModel):
    """Provenance of a value extracted from an uploaded document."""

    field_path: str = ""
    doc_id: str = ""
    snippet: str = ""
    confidence: Confidence = 1.0
    extracted_at: str = ""


class AiCopilot(DeclarationModel):
    document_inbox: tuple[DocumentInboxItem, ...] = ()
    evidence: tuple[EvidenceItem, ...] = ()


# =============================================================================
# Declaration
# =============================================================================


class Declaration(DeclarationModel):
    """Complete taxpayer input for one filing period.

    ``Declaration()`` is the full default template.
    """

    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    employment: Employment = Field(default_factory=Employment)
    dividends: Dividends = Field(default_factory=Dividends)
    mutual_funds: MutualFunds = Field(default_factory=MutualFunds)
    stock_sales: StockSales = Field(default_factory=StockSales)
    mortgage: Mortgage = Field(default_factory=Mortgage)
    spouse: Spouse = Field(default_factory=Spouse)
    child_bonus: ChildBonus = Field(default_factory=ChildBonus)
    two_percent: TwoPercent = Field(default_factory=TwoPercent)
    parent_allocation: ParentAllocation = Field(default_factory=ParentAllocation)
    ai_copilot: AiCopilot = Field(default_factory=AiCopilot)

    @model_validator(mode="before")
    @classmethod
    def nest_pension_savings(cls, data: Any) -> Any:
        """Accept the wizard layout, which stores ``dds`` beside ``employment``."""
        if not isinstance(data, Mapping) or "dds" not in data:
            return data
        data = dict(data)
        dds = data.pop("dds")
        employment = data.get("employment")
        if employment is None:
            data["employment"] = {"dds": dds}
        elif isinstance(employment, Mapping) and not (
            "dds" in employment or "pension_savings" in employment
        ):
            data["employment"] = {**employment, "dds": dds}
        return data

    def to_json_dict(self) -> dict[str, Any]:
        """Dump with the wizard's camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


def parse_form_date(text: str) -> date | None:
    """Parse ``YYYY-MM-DD`` or the form's ``DD.MM.YYYY``; None when unusable."""
    text = (text or "").strip()
    if not text:
        return None
    for pattern in ("%Y-%m-%d", "%d.%m.%Y"):
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    return None


def coerce_declaration(value: Declaration | Mapping[str, Any]) -> Declaration:
    """Return ``value`` as a Declaration, validating mappings.

    Raises:
        DeclarationShapeError: If a mapping does not have the Declaration shape.
    """
    if isinstance(value, Declaration):
        return value
    if not isinstance(value, Mapping):
        logger.error("declaration_shape_invalid", received_type=type(value).__name__)
        raise DeclarationShapeError(
            f"Declaration must be a mapping, got {type(value).__name__}"
        )
    try:
        return Declaration.model_validate(value)
    except ValidationError as exc:
        errors = exc.errors(include_url=False, include_input=False)
        logger.error("declaration_shape_invalid", error_count=len(errors))
        raise DeclarationShapeError(
            f"Declaration has an invalid structure ({len(errors)} errors)",
            errors=[{"loc": list(e["loc"]), "msg": e["msg"]} for e in errors],
        ) from exc

"""Compliance-risk rules over a declaration and its computed result.

Each rule is an independent pure predicate that yields at most one
RiskWarning. Rules never short-circuit one another; the evaluator runs all
of them and returns the warnings in a canonical order (severity, code,
field path), so the output does not depend on the order of ``RISK_RULES``.

Warnings never block computation. They tell the taxpayer (and the
accountant receiving the handoff) what must be fixed before filing.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from priznanie.core.logging import get_logger
from priznanie.declaration.birth_number import parse_birth_number, validate_birth_number
from priznanie.declaration.models import Declaration, ParentInfo, coerce_declaration
from priznanie.engine.calculator import compute_tax
from priznanie.engine.result import TaxCalculationResult
from priznanie.review.checklist import get_document_checklist
from priznanie.tax.money import ZERO, to_decimal
from priznanie.tax.year_config import TAX_YEAR_2025, TaxYearConfig

logger = get_logger(__name__)

LOW_CONFIDENCE_THRESHOLD = 0.7


class Severity(str, Enum):
    """Severity of a risk warning."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass(frozen=True, slots=True)
class RiskWarning:
    """Single diagnostic; ``code`` is a stable machine-readable identifier."""

    severity: Severity
    code: str
    message: str
    field_path: str
    suggestion: str

    def to_dict(self) -> dict[str, str]:
        """Serialize with the keys used by the wizard UI."""
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "fieldPath": self.field_path,
            "suggestion": self.suggestion,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RiskWarning:
        return cls(
            severity=Severity(data["severity"]),
            code=str(data["code"]),
            message=str(data.get("message", "")),
            field_path=str(data.get("fieldPath", data.get("field_path", ""))),
            suggestion=str(data.get("suggestion", "")),
        )


@dataclass(frozen=True, slots=True)
class RiskContext:
    """Everything a rule may look at."""

    declaration: Declaration
    result: TaxCalculationResult
    config: TaxYearConfig


RiskRule = Callable[[RiskContext], RiskWarning | None]


def _has_value(text: str | None) -> bool:
    return bool(text and text.strip())


def _is_positive(text: str | None) -> bool:
    return to_decimal(text) > ZERO


def _first_missing(fields: list[tuple[str, str]]) -> str | None:
    for value, path in fields:
        if not _has_value(value):
            return path
    return None


def _birth_number_ok(text: str, config: TaxYearConfig) -> bool:
    return validate_birth_number(text, config.tax_year).valid


# =============================================================================
# Personal info
# =============================================================================


def missing_personal_info(ctx: RiskContext) -> RiskWarning | None:
    info = ctx.declaration.personal_info
    missing = _first_missing(
        [
            (info.dic, "personalInfo.dic"),
            (info.first_name, "personalInfo.meno"),
            (info.surname, "personalInfo.priezvisko"),
            (info.street, "personalInfo.ulica"),
            (info.house_number, "personalInfo.cislo"),
            (info.postal_code, "personalInfo.psc"),
            (info.city, "personalInfo.obec"),
        ]
    )
    if missing is None:
        return None
    return RiskWarning(
        severity=Severity.ERROR,
        code="MISSING_PERSONAL_INFO",
        message="Chýbajú povinné osobné údaje (DIČ, meno alebo adresa).",
        field_path=missing,
        suggestion="Doplňte osobné údaje v prvom kroku.",
    )


def invalid_tax_id(ctx: RiskContext) -> RiskWarning | None:
    dic = ctx.declaration.personal_info.dic.strip()
    if not dic or re.fullmatch(r"\d{10}", dic) or _birth_number_ok(dic, ctx.config):
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="INVALID_TAX_ID",
        message="DIČ nemá 10 číslic a nie je platným rodným číslom.",
        field_path="personalInfo.dic",
        suggestion="Skontrolujte DIČ podľa rozhodnutia o registrácii.",
    )


# =============================================================================
# Employment
# =============================================================================


def missing_employment_data(ctx: RiskContext) -> RiskWarning | None:
    employment = ctx.declaration.employment
    if not employment.enabled:
        return None
    if not _is_positive(employment.gross_income):
        field_path = "employment.r36"
    else:
        field_path = _first_missing(
            [
                (employment.insurance, "employment.r37"),
                (employment.prepayments, "employment.r131"),
            ]
        )
    if field_path is None:
        return None
    return RiskWarning(
        severity=Severity.ERROR,
        code="MISSING_EMPLOYMENT_DATA",
        message="Zamestnanie je zapnuté, ale chýba úhrn príjmov, poistné alebo preddavky.",
        field_path=field_path,
        suggestion="Vyplňte údaje zo zamestnaneckého potvrdenia.",
    )


def pension_savings_over_cap(ctx: RiskContext) -> RiskWarning | None:
    employment = ctx.declaration.employment
    savings = employment.pension_savings
    if not (employment.enabled and savings.enabled):
        return None
    if to_decimal(savings.contributions) <= ctx.config.pension_savings_cap:
        return None
    return RiskWarning(
        severity=Severity.INFO,
        code="PENSION_SAVINGS_OVER_CAP",
        message=(
            "Príspevky na DDS presahujú ročný limit "
            f"{ctx.config.pension_savings_cap} EUR; uplatní sa len limit."
        ),
        field_path="dds.prispevky",
        suggestion="Nie je potrebná žiadna zmena, ide o informáciu.",
    )


# =============================================================================
# Dividends
# =============================================================================


def dividends_enabled_no_entries(ctx: RiskContext) -> RiskWarning | None:
    dividends = ctx.declaration.dividends
    if not dividends.enabled or dividends.entries:
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="DIVIDENDS_ENABLED_NO_ENTRIES",
        message="Dividendy sú zapnuté, ale nemáte žiadne položky.",
        field_path="dividends.entries",
        suggestion="Pridajte dividendové položky alebo vypnite sekciu.",
    )


def missing_exchange_rate(ctx: RiskContext) -> RiskWarning | None:
    dividends = ctx.declaration.dividends
    if not dividends.enabled:
        return None
    if not any(entry.currency == "USD" for entry in dividends.entries):
        return None
    if _is_positive(dividends.ecb_rate):
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="MISSING_EXCHANGE_RATE",
        message="Chýba kurz USD/EUR pre prepočet dividend.",
        field_path="dividends.ecbRate",
        suggestion="Zadajte ročný priemer ECB kurzu.",
    )


def missing_czk_exchange_rate(ctx: RiskContext) -> RiskWarning | None:
    dividends = ctx.declaration.dividends
    if not dividends.enabled:
        return None
    if not any(entry.currency == "CZK" for entry in dividends.entries):
        return None
    if _is_positive(dividends.czk_rate):
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="MISSING_CZK_EXCHANGE_RATE",
        message="Chýba kurz CZK/EUR pre prepočet dividend.",
        field_path="dividends.czkRate",
        suggestion="Zadajte ročný priemer ECB kurzu CZK/EUR.",
    )


def dividend_missing_eur_amount(ctx: RiskContext) -> RiskWarning | None:
    dividends = ctx.declaration.dividends
    if not dividends.enabled:
        return None
    for index, entry in enumerate(dividends.entries):
        if _is_positive(entry.amount_original) and not _is_positive(entry.amount_eur):
            return RiskWarning(
                severity=Severity.ERROR,
                code="DIVIDEND_MISSING_EUR_AMOUNT",
                message=(
                    f"Dividenda {entry.ticker or index + 1} nemá sumu v EUR, "
                    "do výpočtu sa nezapočíta."
                ),
                field_path=f"dividends.entries[{index}].amountEur",
                suggestion="Prepočítajte sumu kurzom ECB alebo ju zadajte ručne.",
            )
    return None


# =============================================================================
# Capital income
# =============================================================================


def funds_enabled_no_sales(ctx: RiskContext) -> RiskWarning | None:
    funds = ctx.declaration.mutual_funds
    if not funds.enabled or any(_is_positive(e.sale_amount) for e in funds.entries):
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="FUNDS_ENABLED_NO_SALES",
        message="Podielové fondy sú zapnuté, ale nie je zadaný žiadny predaj.",
        field_path="mutualFunds.entries",
        suggestion="Zadajte aspoň jeden predaj alebo vypnite sekciu.",
    )


def stocks_enabled_no_trades(ctx: RiskContext) -> RiskWarning | None:
    stocks = ctx.declaration.stock_sales
    if not stocks.enabled:
        return None
    if any(
        _is_positive(e.sale_amount) or _is_positive(e.purchase_amount)
        for e in stocks.entries
    ):
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="STOCKS_ENABLED_NO_TRADES",
        message="Predaj akcií je zapnutý, ale nie je zadaný žiadny obchod.",
        field_path="stockSales.entries",
        suggestion="Zadajte kúpnu a predajnú cenu alebo vypnite sekciu.",
    )


# =============================================================================
# Mortgage
# =============================================================================


def missing_mortgage_data(ctx: RiskContext) -> RiskWarning | None:
    mortgage = ctx.declaration.mortgage
    if not mortgage.enabled:
        return None
    missing = _first_missing(
        [
            (mortgage.interest_paid, "mortgage.zaplateneUroky"),
            (mortgage.months, "mortgage.pocetMesiacov"),
            (mortgage.interest_start_date, "mortgage.datumZacatiaUroceniaUveru"),
            (mortgage.contract_date, "mortgage.datumUzavretiaZmluvy"),
        ]
    )
    if missing is None:
        return None
    return RiskWarning(
        severity=Severity.ERROR,
        code="MISSING_MORTGAGE_DATA",
        message="Bonus na úroky je zapnutý, ale chýbajú údaje z potvrdenia banky.",
        field_path=missing,
        suggestion="Doplňte úroky, počet mesiacov a dátumy zo zmluvy o úvere.",
    )


def invalid_mortgage_months(ctx: RiskContext) -> RiskWarning | None:
    mortgage = ctx.declaration.mortgage
    if not (mortgage.enabled and _has_value(mortgage.months)):
        return None
    months = to_decimal(mortgage.months)
    if months == months.to_integral_value() and 1 <= months <= 12:
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="INVALID_MORTGAGE_MONTHS",
        message="Počet mesiacov splácania musí byť celé číslo od 1 do 12.",
        field_path="mortgage.pocetMesiacov",
        suggestion="Opravte počet mesiacov podľa potvrdenia banky.",
    )


def mortgage_four_year_limit_unconfirmed(ctx: RiskContext) -> RiskWarning | None:
    mortgage = ctx.declaration.mortgage
    if not mortgage.enabled or mortgage.confirm_four_years:
        return None
    return RiskWarning(
        severity=Severity.ERROR,
        code="MORTGAGE_FOUR_YEAR_LIMIT_UNCONFIRMED",
        message="Nepotvrdili ste, že bonus na úroky uplatňujete najviac 4 roky po sebe.",
        field_path="mortgage.confirm4Years",
        suggestion="Potvrďte splnenie podmienky podľa §33a alebo vypnite sekciu.",
    )


# =============================================================================
# Spouse and children
# =============================================================================


def missing_spouse_data(ctx: RiskContext) -> RiskWarning | None:
    spouse = ctx.declaration.spouse
    if not spouse.enabled:
        return None
    missing = _first_missing(
        [
            (spouse.full_name, "spouse.priezviskoMeno"),
            (spouse.birth_number, "spouse.rodneCislo"),
            (spouse.months, "spouse.pocetMesiacov"),
        ]
    )
    if missing is None and not _birth_number_ok(spouse.birth_number, ctx.config):
        missing = "spouse.rodneCislo"
    if missing is None:
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="MISSING_SPOUSE_DATA",
        message="Údaje o manželovi/manželke sú neúplné alebo rodné číslo je neplatné.",
        field_path=missing,
        suggestion="Doplňte meno, platné rodné číslo a počet mesiacov.",
    )


def child_bonus_no_children(ctx: RiskContext) -> RiskWarning | None:
    child_bonus = ctx.declaration.child_bonus
    if not child_bonus.enabled:
        return None
    if any(
        _has_value(child.full_name) and _has_value(child.birth_number)
        for child in child_bonus.children
    ):
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="CHILD_BONUS_NO_CHILDREN",
        message="Daňový bonus na deti je zapnutý, ale nie je zadané žiadne dieťa.",
        field_path="childBonus.children",
        suggestion="Pridajte aspoň jedno dieťa s menom a rodným číslom.",
    )


def invalid_child_birth_number(ctx: RiskContext) -> RiskWarning | None:
    child_bonus = ctx.declaration.child_bonus
    if not child_bonus.enabled:
        return None
    for index, child in enumerate(child_bonus.children):
        if not _has_value(child.birth_number):
            continue
        readable = parse_birth_number(child.birth_number, ctx.config.tax_year) is not None
        if readable and _birth_number_ok(child.birth_number, ctx.config):
            continue
        return RiskWarning(
            severity=Severity.WARNING,
            code="INVALID_CHILD_BIRTH_NUMBER",
            message=(
                f"Rodné číslo dieťaťa {child.full_name or index + 1} je neplatné; "
                "bonus zaň nemusí byť započítaný."
            ),
            field_path=f"childBonus.children[{index}].rodneCislo",
            suggestion="Opravte rodné číslo podľa rodného listu.",
        )
    return None


# =============================================================================
# Allocations
# =============================================================================


def two_percent_missing_recipient(ctx: RiskContext) -> RiskWarning | None:
    two_percent = ctx.declaration.two_percent
    if not two_percent.enabled:
        return None
    missing = _first_missing(
        [(two_percent.ico, "twoPercent.ico"), (two_percent.name, "twoPercent.obchMeno")]
    )
    if missing is None:
        return None
    return RiskWarning(
        severity=Severity.ERROR,
        code="TWO_PERCENT_MISSING_RECIPIENT",
        message="Poukázanie 2 % je zapnuté, ale chýba IČO alebo názov prijímateľa.",
        field_path=missing,
        suggestion="Vyberte prijímateľa zo zoznamu oprávnených organizácií.",
    )


def two_percent_no_consent(ctx: RiskContext) -> RiskWarning | None:
    two_percent = ctx.declaration.two_percent
    if not two_percent.enabled or two_percent.consent:
        return None
    return RiskWarning(
        severity=Severity.WARNING,
        code="TWO_PERCENT_NO_CONSENT",
        message="Chýba súhlas so zaslaním údajov prijímateľovi 2 %.",
        field_path="twoPercent.suhlasSoZaslanim",
        suggestion="Označte súhlas, ak má prijímateľ poznať vaše meno a adresu.",
    )


def two_percent_below_minimum(ctx: RiskContext) -> RiskWarning | None:
    if not ctx.declaration.two_percent.enabled:
        return None
    if ctx.result.amount("r152") > ZERO:
        return None
    return RiskWarning(
        severity=Severity.INFO,
        code="TWO_PERCENT_BELOW_MINIMUM",
        message=(
            "Vypočítaná suma pre prijímateľa je nižšia ako "
            f"{ctx.config.allocation_minimum} EUR, preto sa nepoukáže."
        ),
        field_path="twoPercent",
        suggestion="Podiel dane sa poukazuje len pri dostatočne vysokej dani.",
    )


def _parent_incomplete(parent: ParentInfo, config: TaxYearConfig) -> bool:
    if not (
        _has_value(parent.first_name)
        and _has_value(parent.surname)
        and _has_value(parent.birth_number)
    ):
        return True
    return not _birth_number_ok(parent.birth_number, config)


def missing_parent_data(ctx: RiskContext) -> RiskWarning | None:
    allocation = ctx.declaration.parent_allocation
    parents = [("parentAllocation.parent1", allocation.parent1)]
    if allocation.choice == "both":
        parents.append(("parentAllocation.parent2", allocation.parent2))
    if allocation.choice == "none":
        return None
    for field_path, parent in parents:
        if _parent_incomplete(parent, ctx.config):
            return RiskWarning(
                severity=Severity.WARNING,
                code="MISSING_PARENT_DATA",
                message="Údaje o rodičovi pre poukázanie 2 % sú neúplné alebo neplatné.",
                field_path=field_path,
                suggestion="Doplňte meno, priezvisko a platné rodné číslo rodiča.",
            )
    return None


# =============================================================================
# Evidence and documents
# =============================================================================


def low_confidence_evidence(ctx: RiskContext) -> RiskWarning | None:
    weak = [
        item
        for item in ctx.declaration.ai_copilot.evidence
        if item.confidence < LOW_CONFIDENCE_THRESHOLD
    ]
    if not weak:
        return None
    return RiskWarning(
        severity=Severity.INFO,
        code="LOW_CONFIDENCE_EVIDENCE",
        message=f"{len(weak)} hodnôt z dokumentov má nízku istotu rozpoznania.",
        field_path=weak[0].field_path,
        suggestion="Overte tieto hodnoty voči originálnym dokumentom.",
    )


def missing_supporting_document(ctx: RiskContext) -> RiskWarning | None:
    missing = [
        item
        for item in get_document_checklist(ctx.declaration)
        if item.required and not item.present
    ]
    if not missing:
        return None
    return RiskWarning(
        severity=Severity.INFO,
        code="MISSING_SUPPORTING_DOCUMENT",
        message="Chýbajú podklady: " + ", ".join(item.label for item in missing) + ".",
        field_path="aiCopilot.documentInbox",
        suggestion="Nahrajte dokumenty, aby ich mohol účtovník skontrolovať.",
    )


RISK_RULES: tuple[RiskRule, ...] = (
    missing_personal_info,
    invalid_tax_id,
    missing_employment_data,
    pension_savings_over_cap,
    dividends_enabled_no_entries,
    missing_exchange_rate,
    missing_czk_exchange_rate,
    dividend_missing_eur_amount,
    funds_enabled_no_sales,
    stocks_enabled_no_trades,
    missing_mortgage_data,
    invalid_mortgage_months,
    mortgage_four_year_limit_unconfirmed,
    missing_spouse_data,
    child_bonus_no_children,
    invalid_child_birth_number,
    two_percent_missing_recipient,
    two_percent_no_consent,
    two_percent_below_minimum,
    missing_parent_data,
    low_confidence_evidence,
    missing_supporting_document,
)


def sort_warnings(warnings: list[RiskWarning]) -> list[RiskWarning]:
    return sorted(
        warnings,
        key=lambda w: (SEVERITY_RANK[w.severity], w.code, w.field_path),
    )


def evaluate_risk(
    declaration: Declaration | Mapping[str, Any],
    result: TaxCalculationResult | None = None,
    config: TaxYearConfig = TAX_YEAR_2025,
    rules: tuple[RiskRule, ...] = RISK_RULES,
) -> list[RiskWarning]:
    """Run every rule and return the warnings in canonical order.

    Args:
        declaration: The declaration, or a mapping in its JSON shape.
        result: Precomputed result; computed here when omitted.
        config: Statutory values of the tax year.
        rules: Rules to run.

    Returns:
        Warnings sorted by severity, code and field path.
    """
    declaration = coerce_declaration(declaration)
    if result is None:
        result = compute_tax(declaration, config)

    ctx = RiskContext(declaration=declaration, result=result, config=config)
    warnings = [warning for rule in rules if (warning := rule(ctx)) is not None]

    logger.debug(
        "risk_evaluated",
        errors=sum(1 for w in warnings if w.severity is Severity.ERROR),
        warnings=sum(1 for w in warnings if w.severity is Severity.WARNING),
        infos=sum(1 for w in warnings if w.severity is Severity.INFO),
    )
    return sort_warnings(warnings)

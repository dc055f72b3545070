"""XML rendering of the DPFO typ B filing.

The document mirrors the e-form of the Financial Administration:

    dokument
      hlavicka   taxpayer identity, address, tax period
      telo       form rows (r31 ... r154), Príloha č.2, special records

Amounts are two-decimal text, flags "1"/"0" and dates DD.MM.YYYY. Rows the
engine does not produce (employer-paid mortgage bonus, employee premium,
other advance types) are written as "0.00".
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections import defaultdict
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from priznanie.core.logging import get_logger
from priznanie.declaration.models import Declaration, coerce_declaration, parse_form_date
from priznanie.engine.result import TaxCalculationResult
from priznanie.tax.money import ZERO, format_money, parse_amount

logger = get_logger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Minimum occurrences required by the form schema
MIN_CHILD_ROWS = 4
MIN_INCOME_RECORDS = 6

MONTH_KEYS = tuple(f"m{month:02d}" for month in range(1, 13))

# Rows written as-is from the result, in form order
TAX_ROWS = (
    "r72", "r73", "r74", "r75", "r77", "r78", "r80", "r81", "r90",
    "r106", "r115", "r116", "r117", "r118", "r119", "r120", "r121",
    "r122", "r123", "r124",
)
UNUSED_BONUS_ROWS = ("r125",)
UNUSED_ADVANCE_ROWS = ("r128", "r129", "r130")
UNUSED_SECURITY_ROWS = ("r132", "r133", "r134")


def _text(parent: ET.Element, tag: str, value: str = "") -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = value
    return element


def _flag(value: bool) -> str:
    return "1" if value else "0"


def _money(text: str) -> str:
    """Two-decimal text of a form amount, empty when the field is blank."""
    if not (text or "").strip():
        return ""
    return format_money(parse_amount(text))


def format_form_date(text: str) -> str:
    """ISO or DD.MM.YYYY date as DD.MM.YYYY; unreadable text is kept as typed."""
    parsed = parse_form_date(text)
    if parsed is None:
        return (text or "").strip()
    return parsed.strftime("%d.%m.%Y")


# =============================================================================
# Header
# =============================================================================


def _add_header(root: ET.Element, declaration: Declaration, tax_year: int) -> None:
    info = declaration.personal_info
    header = ET.SubElement(root, "hlavicka")
    _text(header, "dic", info.dic.strip())
    _text(header, "priezvisko", info.surname)
    _text(header, "meno", info.first_name)
    _text(header, "titul", info.title)
    _text(header, "titulZa", info.title_after)
    period = ET.SubElement(header, "zdanovacieObdobie")
    _text(period, "rok", str(tax_year))
    address = ET.SubElement(header, "adresaTrvPobytu")
    _text(address, "ulica", info.street)
    _text(address, "cislo", info.house_number)
    _text(address, "psc", info.postal_code)
    _text(address, "obec", info.city)
    _text(address, "stat", info.country)


# =============================================================================
# Body sections
# =============================================================================


def _add_spouse(body: ET.Element, declaration: Declaration) -> None:
    spouse = declaration.spouse
    if not spouse.enabled:
        return
    r31 = ET.SubElement(body, "r31")
    _text(r31, "priezviskoMeno", spouse.full_name)
    _text(r31, "rodneCislo", spouse.birth_number)
    r32 = ET.SubElement(body, "r32")
    _text(r32, "uplatnujemNCZDNaManzela", "1")
    _text(r32, "vlastnePrijmy", _money(spouse.own_income))
    _text(r32, "pocetMesiacov", spouse.months.strip())


def _add_children(body: ET.Element, declaration: Declaration) -> None:
    child_bonus = declaration.child_bonus
    if not (child_bonus.enabled and child_bonus.children):
        return
    r33 = ET.SubElement(body, "r33")
    for child in child_bonus.children:
        row = ET.SubElement(r33, "dieta")
        _text(row, "priezviskoMeno", child.full_name)
        _text(row, "rodneCislo", child.birth_number)
        _text(row, "m00", "0")
        for key, claimed in zip(MONTH_KEYS, child.months):
            _text(row, key, _flag(claimed))
    for _ in range(MIN_CHILD_ROWS - len(child_bonus.children)):
        row = ET.SubElement(r33, "dieta")
        _text(row, "priezviskoMeno")
        _text(row, "rodneCislo")
        for key in ("m00", *MONTH_KEYS):
            _text(row, key, "0")


def _add_mortgage(body: ET.Element, declaration: Declaration) -> None:
    mortgage = declaration.mortgage
    if not mortgage.enabled:
        return
    r35 = ET.SubElement(body, "r35")
    _text(r35, "uplatDanBonusZaplatUroky", "1")
    _text(r35, "zaplateneUroky", _money(mortgage.interest_paid))
    _text(r35, "pocetMesiacov", mortgage.months.strip())
    _text(r35, "datumZacatiaUroceniaUveru", format_form_date(mortgage.interest_start_date))
    _text(r35, "datumUzavretiaZmluvyOUvere", format_form_date(mortgage.contract_date))


def _add_employment(body: ET.Element, declaration: Declaration, result: TaxCalculationResult) -> None:
    employment = declaration.employment
    if not employment.enabled:
        return
    _text(body, "r36", _money(employment.gross_income) or "0.00")
    if employment.agreement_income.strip():
        _text(body, "r36a", _money(employment.agreement_income))
    _text(body, "r37", _money(employment.insurance) or "0.00")
    _text(body, "r38", result.r38)


def _add_disposals(body: ET.Element, declaration: Declaration, result: TaxCalculationResult) -> None:
    if declaration.mutual_funds.enabled and declaration.mutual_funds.entries:
        table2 = ET.SubElement(body, "tabulka2")
        for row_tag in ("t2r7", "t2r11"):
            row = ET.SubElement(table2, row_tag)
            _text(row, "s1", result.total_fund_income)
            _text(row, "s2", result.total_fund_expense)
        _text(body, "r66", result.r66)
        _text(body, "r67", result.r67)
        _text(body, "r68", result.r68)

    if declaration.stock_sales.enabled and declaration.stock_sales.entries:
        table3 = ET.SubElement(body, "tabulka3")
        row = ET.SubElement(table3, "t3r1")
        _text(row, "s1", result.total_stock_income)
        _text(row, "s2", result.total_stock_expense)
        _text(body, "r69", result.r69)
        _text(body, "r70", result.r70)
        _text(body, "r71", result.r71)


def _add_tax_rows(body: ET.Element, result: TaxCalculationResult) -> None:
    for row in TAX_ROWS:
        _text(body, row, getattr(result, row))
    for row in UNUSED_BONUS_ROWS:
        _text(body, row, "0.00")
    _text(body, "r126", result.r126)
    _text(body, "r127", result.r127)
    for row in UNUSED_ADVANCE_ROWS:
        _text(body, row, "0.00")
    _text(body, "r131", result.r131)
    for row in UNUSED_SECURITY_ROWS:
        _text(body, row, "0.00")
    _text(body, "r135", result.r135)
    _text(body, "r136", result.r136)


def _add_allocations(body: ET.Element, declaration: Declaration, result: TaxCalculationResult) -> None:
    two_percent = declaration.two_percent
    if two_percent.enabled:
        r151 = ET.SubElement(body, "r151")
        _text(r151, "neuplatnujemPar50", "0")
        _text(r151, "splnam3per", _flag(two_percent.splnam3per))
        _text(r151, "ico", two_percent.ico.strip())
        name = ET.SubElement(r151, "obchodneMeno")
        _text(name, "riadok", two_percent.name)
        _text(name, "riadok")
        _text(r151, "suhlasSoZaslanim", _flag(two_percent.consent))
        _text(body, "r152", result.r152)

    parents = declaration.parent_allocation
    if parents.choice != "none":
        r153 = ET.SubElement(body, "r153")
        _text(r153, "neuplatnujemPar50aa", "0")
        chosen = [("rodicA", parents.parent1)]
        if parents.choice == "both":
            chosen.append(("rodicB", parents.parent2))
        for tag, parent in chosen:
            element = ET.SubElement(r153, tag)
            _text(element, "rodneCislo", parent.birth_number)
            _text(element, "priezvisko", parent.surname)
            _text(element, "meno", parent.first_name)
        _text(r153, "bolZverenyDoStarostlivosti", _flag(parents.adopted))


def dividends_by_country(declaration: Declaration) -> dict[str, Decimal]:
    """EUR dividend income per country code, in first-seen order."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in declaration.dividends.entries:
        totals[entry.country.strip() or "840"] += parse_amount(entry.amount_eur)
    return dict(totals)


def _add_dividends(body: ET.Element, declaration: Declaration, result: TaxCalculationResult) -> None:
    if not (declaration.dividends.enabled and declaration.dividends.entries):
        return

    pril2 = ET.SubElement(body, "pril2PodielyNaZisku")
    _text(pril2, "pr1", result.pril2_pr1)
    pr6 = ET.SubElement(pril2, "pr6")
    _text(pr6, "s1", result.pril2_pr6)
    _text(pr6, "s2")
    _text(pril2, "pr7", result.pril2_pr7)
    _text(pril2, "pr8", result.pril2_pr8)
    _text(pril2, "pr9", result.pril2_pr9)
    for row in ("pr13", "pr14", "pr15", "pr16", "pr17", "pr18", "pr28"):
        _text(pril2, row, getattr(result, f"pril2_{row}"))

    records = ET.SubElement(body, "osobitneZaznamy")
    _text(records, "uvadza", "1")
    by_country = dividends_by_country(declaration)
    for code, amount in by_country.items():
        record = ET.SubElement(records, "udajeOprijmoch")
        _text(record, "kodStatu", code)
        _text(record, "druhPrimuPar", "51e")
        _text(record, "druhPrimuOds", "1")
        _text(record, "druhPrimuPis")
        _text(record, "prijmy", format_money(amount))
        _text(record, "vydavky")
        _text(record, "zTohoVydavky")
    for _ in range(MIN_INCOME_RECORDS - len(by_country)):
        record = ET.SubElement(records, "udajeOprijmoch")
        for tag in ("kodStatu", "druhPrimuPar", "druhPrimuOds", "druhPrimuPis",
                    "prijmy", "vydavky", "zTohoVydavky"):
            _text(record, tag)


def _add_closing(
    body: ET.Element,
    declaration: Declaration,
    result: TaxCalculationResult,
    filed_on: date,
) -> None:
    stamp = filed_on.strftime("%d.%m.%Y")
    _text(body, "r154", "7" if declaration.employment.enabled else "6")
    _text(body, "datumVyhlasenia", stamp)
    refund = ET.SubElement(body, "danovyPreplatokBonus")
    _text(refund, "vratitDanPreplatok", _flag(result.is_refund))
    _text(refund, "datum", stamp)


# =============================================================================
# Public API
# =============================================================================


def render_dpfo_xml(
    declaration: Declaration | Mapping[str, Any],
    result: TaxCalculationResult,
    *,
    tax_year: int = 2025,
    filed_on: date | None = None,
) -> str:
    """Render a computed declaration as the filing XML.

    Sections that are disabled are left out of ``telo``; the tax rows
    r72 to r136 are always written.

    Args:
        declaration: The declaration ``result`` was computed from.
        result: Output of ``compute_tax``.
        tax_year: Period written to ``hlavicka/zdanovacieObdobie/rok``.
        filed_on: Declaration date; defaults to today.

    Returns:
        UTF-8 XML document as text.
    """
    declaration = coerce_declaration(declaration)
    filed_on = filed_on or date.today()

    root = ET.Element("dokument")
    _add_header(root, declaration, tax_year)
    body = ET.SubElement(root, "telo")
    _add_spouse(body, declaration)
    _add_children(body, declaration)
    _add_mortgage(body, declaration)
    _add_employment(body, declaration, result)
    _add_disposals(body, declaration, result)
    _add_tax_rows(body, result)
    _add_allocations(body, declaration, result)
    _add_dividends(body, declaration, result)
    _add_closing(body, declaration, result, filed_on)

    ET.indent(root)
    logger.info("dpfo_xml_rendered", tax_year=tax_year, refund=result.is_refund)
    return XML_DECLARATION + ET.tostring(root, encoding="unicode")

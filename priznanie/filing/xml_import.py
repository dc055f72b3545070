"""Import of a DPFO typ B filing XML back into a Declaration.

Reads the document produced by ``render_dpfo_xml`` (and the e-form's own
export, which shares the layout). Parsing goes through defusedxml; DTDs
and entity declarations are rejected.

A filing from an earlier tax period contributes only the taxpayer's
identity and the §50 / §50aa allocations; its amounts are stale.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import defusedxml.ElementTree as DefusedET
from defusedxml import DefusedXmlException

from priznanie.core.logging import get_logger
from priznanie.declaration.countries import country_name, currency_for_country
from priznanie.declaration.currency import rate_for
from priznanie.declaration.models import (
    ChildBonus,
    ChildEntry,
    Declaration,
    DividendEntry,
    Dividends,
    Employment,
    Mortgage,
    MutualFundEntry,
    MutualFunds,
    ParentAllocation,
    ParentInfo,
    PensionSavings,
    PersonalInfo,
    Spouse,
    StockEntry,
    StockSales,
    TwoPercent,
    parse_form_date,
)
from priznanie.errors import XmlImportError
from priznanie.filing.xml_export import MONTH_KEYS
from priznanie.tax.money import ZERO, format_money, parse_amount, to_decimal
from priznanie.tax.year_config import TAX_YEAR_2025, TaxYearConfig

logger = get_logger(__name__)


def _text(element: ET.Element | None, path: str) -> str:
    if element is None:
        return ""
    found = element.find(path)
    if found is None or found.text is None:
        return ""
    return found.text.strip()


def _iso_date(text: str) -> str:
    """DD.MM.YYYY as ISO text; empty when unreadable."""
    parsed = parse_form_date(text)
    return parsed.isoformat() if parsed else ""


def _has_amount(text: str) -> bool:
    return parse_amount(text) > ZERO


# =============================================================================
# Sections
# =============================================================================


def parse_personal_info(header: ET.Element | None) -> PersonalInfo | None:
    """Taxpayer identity from ``hlavicka``; None when there is no DIČ."""
    dic = _text(header, "dic")
    if not dic:
        return None
    return PersonalInfo(
        dic=dic,
        surname=_text(header, "priezvisko"),
        first_name=_text(header, "meno"),
        title=_text(header, "titul"),
        title_after=_text(header, "titulZa"),
        street=_text(header, "adresaTrvPobytu/ulica"),
        house_number=_text(header, "adresaTrvPobytu/cislo"),
        postal_code=_text(header, "adresaTrvPobytu/psc"),
        city=_text(header, "adresaTrvPobytu/obec"),
        country=_text(header, "adresaTrvPobytu/stat") or "Slovenská republika",
    )


def _employment(body: ET.Element) -> Employment:
    r36 = _text(body, "r36")
    r36a = _text(body, "r36a")
    r37 = _text(body, "r37")
    r131 = _text(body, "r131")
    r75 = _text(body, "r75")
    pension_savings = PensionSavings()
    if _has_amount(r75):
        pension_savings = PensionSavings(enabled=True, contributions=r75)
    return Employment(
        enabled=body.find("r36") is not None or any(map(_has_amount, (r36a, r37, r131))),
        gross_income=r36,
        agreement_income=r36a,
        insurance=r37,
        prepayments=r131,
        pension_savings=pension_savings,
    )


def _mortgage(body: ET.Element) -> Mortgage:
    r35 = body.find("r35")
    if r35 is None:
        return Mortgage()
    return Mortgage(
        enabled=_text(r35, "uplatDanBonusZaplatUroky") == "1",
        interest_paid=_text(r35, "zaplateneUroky"),
        months=_text(r35, "pocetMesiacov"),
        interest_start_date=_iso_date(_text(r35, "datumZacatiaUroceniaUveru")),
        contract_date=_iso_date(_text(r35, "datumUzavretiaZmluvyOUvere")),
        # The four-year attestation is never carried over from a file.
        confirm_four_years=False,
    )


def _mutual_funds(body: ET.Element) -> MutualFunds:
    sale = _text(body, "tabulka2/t2r7/s1") or _text(body, "r66")
    purchase = _text(body, "r67") or _text(body, "tabulka2/t2r7/s2")
    if not (sale or purchase):
        return MutualFunds()
    return MutualFunds(
        enabled=True,
        entries=(MutualFundEntry(id="imported-1", sale_amount=sale, purchase_amount=purchase),),
    )


def _stock_sales(body: ET.Element) -> StockSales:
    sale = _text(body, "tabulka3/t3r1/s1") or _text(body, "r69")
    purchase = _text(body, "r70") or _text(body, "tabulka3/t3r1/s2")
    if not (sale or purchase):
        return StockSales()
    return StockSales(
        enabled=True,
        entries=(StockEntry(id="imported-stock-1", sale_amount=sale, purchase_amount=purchase),),
    )


def _dividends(body: ET.Element, config: TaxYearConfig) -> Dividends:
    records = []
    for record in body.iterfind("osobitneZaznamy/udajeOprijmoch"):
        code = _text(record, "kodStatu")
        income = _text(record, "prijmy")
        if code or income:
            records.append((code or "840", parse_amount(income)))
    if not records:
        return Dividends()

    total = sum((amount for _, amount in records), ZERO)
    withheld_total = parse_amount(_text(body, "pril2PodielyNaZisku/pr14"))

    # Withholding is reported in aggregate; spread it by income share and
    # give the rounding residual to the last record so the sum is exact.
    entries = []
    allocated = ZERO
    for index, (code, amount) in enumerate(records):
        if index == len(records) - 1:
            withheld = max(withheld_total - allocated, ZERO)
        elif total > ZERO:
            withheld = to_decimal(format_money(withheld_total * amount / total))
        else:
            withheld = ZERO
        allocated += withheld

        currency = currency_for_country(code)
        rate = to_decimal(rate_for(currency, config.usd_rate, config.czk_rate))
        entries.append(
            DividendEntry(
                id=f"imported-d-{index}",
                country=code,
                country_name=country_name(code),
                currency=currency,
                amount_original=format_money(amount * rate),
                amount_eur=format_money(amount),
                withheld_tax_original=format_money(withheld * rate),
                withheld_tax_eur=format_money(withheld),
            )
        )

    return Dividends(
        enabled=True,
        entries=tuple(entries),
        ecb_rate=str(config.usd_rate),
        czk_rate=str(config.czk_rate),
    )


def _spouse(body: ET.Element) -> Spouse:
    r31 = body.find("r31")
    r32 = body.find("r32")
    if r31 is None or r32 is None:
        return Spouse()
    claimed = _text(r32, "uplatnujemNCZDNaManzela") == "1"
    full_name = _text(r31, "priezviskoMeno")
    birth_number = _text(r31, "rodneCislo")
    if not (claimed or full_name or birth_number):
        return Spouse()
    return Spouse(
        enabled=True,
        full_name=full_name,
        birth_number=birth_number,
        own_income=_text(r32, "vlastnePrijmy"),
        months=_text(r32, "pocetMesiacov"),
    )


def _child_bonus(body: ET.Element) -> ChildBonus:
    children = []
    for row in body.iterfind("r33/dieta"):
        months = tuple(_text(row, key) == "1" for key in MONTH_KEYS)
        full_name = _text(row, "priezviskoMeno")
        birth_number = _text(row, "rodneCislo")
        if not (full_name or birth_number or any(months)):
            continue
        children.append(
            ChildEntry(
                id=f"imported-c-{len(children)}",
                full_name=full_name,
                birth_number=birth_number,
                months=months,
                whole_year=all(months),
            )
        )
    paid_by_employer = _text(body, "r119")
    # An employer-paid bonus keeps the section on even without child rows.
    if not (children or _has_amount(paid_by_employer)):
        return ChildBonus()
    return ChildBonus(
        enabled=True,
        children=tuple(children),
        paid_by_employer=paid_by_employer,
    )


def _two_percent(body: ET.Element) -> TwoPercent:
    r151 = body.find("r151")
    if r151 is None:
        return TwoPercent()
    ico = _text(r151, "ico")
    name = _text(r151, "obchodneMeno/riadok") or _text(r151, "obchMeno/riadok")
    return TwoPercent(
        enabled=_text(r151, "neuplatnujemPar50") != "1",
        ico=ico,
        name=name,
        splnam3per=_text(r151, "splnam3per") == "1",
        consent=_text(r151, "suhlasSoZaslanim") == "1",
    )


def _parent(element: ET.Element | None) -> ParentInfo:
    return ParentInfo(
        first_name=_text(element, "meno"),
        surname=_text(element, "priezvisko"),
        birth_number=_text(element, "rodneCislo"),
    )


def _parent_allocation(body: ET.Element) -> ParentAllocation:
    r153 = body.find("r153")
    if r153 is None or _text(r153, "neuplatnujemPar50aa") == "1":
        return ParentAllocation()
    parent1 = _parent(r153.find("rodicA"))
    parent2 = _parent(r153.find("rodicB"))
    if not parent1.is_blank and not parent2.is_blank:
        choice = "both"
    elif not parent1.is_blank:
        choice = "one"
    else:
        choice = "none"
    return ParentAllocation(
        choice=choice,
        parent1=parent1,
        parent2=parent2,
        adopted=_text(r153, "bolZverenyDoStarostlivosti") == "1",
    )


# =============================================================================
# Public API
# =============================================================================


def _parse_root(text: str | bytes) -> ET.Element:
    try:
        root = DefusedET.fromstring(text)
    except DefusedXmlException as exc:
        logger.warning("dpfo_xml_forbidden_construct", error=str(exc))
        raise XmlImportError(f"XML contains forbidden constructs: {exc}") from exc
    except ET.ParseError as exc:
        logger.warning("dpfo_xml_malformed", error=str(exc))
        raise XmlImportError(f"XML is not well-formed: {exc}") from exc
    if root.tag != "dokument":
        raise XmlImportError(f"Expected <dokument> root element, got <{root.tag}>")
    return root


def is_previous_year(header: ET.Element | None, config: TaxYearConfig) -> bool:
    year_text = _text(header, "zdanovacieObdobie/rok")
    return not year_text.isdigit() or int(year_text) < config.tax_year


def parse_dpfo_xml(text: str | bytes, config: TaxYearConfig = TAX_YEAR_2025) -> Declaration:
    """Parse a filing XML into a Declaration.

    Sections missing from the document keep their defaults. Mutual funds and
    stock sales come back as one aggregated entry each, whose gain equals
    the filed gain. Dividend withholding is spread over the per-country
    records in proportion to their income.

    Args:
        text: The XML document.
        config: Tax year the import targets; older filings are partial.

    Returns:
        The imported Declaration.

    Raises:
        XmlImportError: If the text is not XML, uses DTD/entity constructs,
            or its root is not ``dokument``.
    """
    root = _parse_root(text)
    header = root.find("hlavicka")
    body = root.find("telo")

    personal_info = parse_personal_info(header) or PersonalInfo()
    if body is None:
        return Declaration(personal_info=personal_info)

    if is_previous_year(header, config):
        logger.info("dpfo_xml_imported", previous_year=True)
        return Declaration(
            personal_info=personal_info,
            two_percent=_two_percent(body),
            parent_allocation=_parent_allocation(body),
        )

    declaration = Declaration(
        personal_info=personal_info,
        employment=_employment(body),
        dividends=_dividends(body, config),
        mutual_funds=_mutual_funds(body),
        stock_sales=_stock_sales(body),
        mortgage=_mortgage(body),
        spouse=_spouse(body),
        child_bonus=_child_bonus(body),
        two_percent=_two_percent(body),
        parent_allocation=_parent_allocation(body),
    )
    logger.info(
        "dpfo_xml_imported",
        previous_year=False,
        dividend_entries=len(declaration.dividends.entries),
        children=len(declaration.child_bonus.children),
    )
    return declaration

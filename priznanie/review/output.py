"""Review workbook for the accountant receiving a handoff.

Sheets:
- Summary: taxpayer, key rows of the return and the readiness score
- Dividends: one line per dividend entry, with totals
- Disposals: fund and stock sales with per-entry gains
- Warnings: risk warnings in canonical order
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.worksheet.worksheet import Worksheet

from priznanie.declaration.models import Declaration
from priznanie.engine.result import TaxCalculationResult
from priznanie.review.handoff import HandoffSummary
from priznanie.tax.money import parse_amount, subtract_floor, to_decimal

EUR_FORMAT = '#,##0.00 "€"'
HEADER_FILL = PatternFill(start_color="DAEEF3", end_color="DAEEF3", fill_type="solid")

SUMMARY_ROWS: tuple[tuple[str, str], ...] = (
    ("r38", "Základ dane zo závislej činnosti (r.38)"),
    ("r73", "NČZD na daňovníka (r.73)"),
    ("r74", "NČZD na manžela/manželku (r.74)"),
    ("r75", "Príspevky na DDS (r.75)"),
    ("r78", "Základ dane po znížení (r.78)"),
    ("r68", "Osobitný základ dane z §7 (r.68)"),
    ("r71", "Základ dane z §8 (r.71)"),
    ("stock_exemption", "Oslobodenie z §8"),
    ("r80", "Základ dane §4 ods.1 písm.a (r.80)"),
    ("r81", "Daň z r.80 (r.81)"),
    ("r106", "Daň z §7 (r.106)"),
    ("pril2_pr28", "Daň z dividend (Príloha č.2 r.28)"),
    ("r116", "Daň celkom (r.116)"),
    ("r117", "Daňový bonus na deti (r.117)"),
    ("r123", "Daňový bonus na úroky (r.123)"),
    ("r124", "Daň po bonusoch (r.124)"),
    ("r131", "Preddavky (r.131)"),
    ("r135", "Daň na úhradu (r.135)"),
    ("r136", "Daňový preplatok (r.136)"),
    ("r152", "Podiel dane pre prijímateľa (r.152)"),
    ("parent_alloc_total", "Podiel dane pre rodičov"),
)


def _format_decimal(value: Decimal | None) -> float | None:
    """Convert Decimal to float for Excel; the workbook is display-only."""
    if value is None:
        return None
    return float(value)


def _write_headers(ws: Worksheet, headers: list[str]) -> None:
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col, value=header)
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center", wrap_text=True)
        cell.fill = HEADER_FILL
    ws.freeze_panes = "A2"


def _auto_fit_columns(ws: Worksheet) -> None:
    for column_cells in ws.columns:
        max_length = max((len(str(cell.value)) for cell in column_cells if cell.value), default=0)
        ws.column_dimensions[column_cells[0].column_letter].width = min(max_length + 2, 60)


def _add_summary_sheet(
    workbook: Workbook,
    declaration: Declaration,
    result: TaxCalculationResult,
    summary: HandoffSummary,
) -> None:
    ws = workbook.active
    ws.title = "Summary"

    info = declaration.personal_info
    ws["A1"] = f"Daňové priznanie typ B: {info.first_name} {info.surname}".strip()
    ws["A1"].font = Font(bold=True, size=14)
    ws["A2"] = f"DIČ: {info.dic}"
    ws["A3"] = f"Vygenerované: {summary.generated_at.strftime('%Y-%m-%d %H:%M')}"
    ws["A4"] = "Pripravenosť"
    ws["B4"] = summary.readiness_score
    ws["A4"].font = Font(bold=True)

    row = 6
    for field_name, label in SUMMARY_ROWS:
        ws[f"A{row}"] = label
        ws[f"B{row}"] = _format_decimal(result.amount(field_name))
        ws[f"B{row}"].number_format = EUR_FORMAT
        if field_name in ("r135", "r136"):
            ws[f"A{row}"].font = Font(bold=True)
            ws[f"B{row}"].font = Font(bold=True)
        row += 1

    _auto_fit_columns(ws)


def _add_dividends_sheet(workbook: Workbook, declaration: Declaration, result: TaxCalculationResult) -> None:
    ws = workbook.create_sheet("Dividends")
    _write_headers(
        ws,
        ["Ticker", "Krajina", "Mena", "Suma (orig.)", "Suma EUR", "Daň (orig.)", "Daň EUR"],
    )

    row = 2
    if declaration.dividends.enabled:
        for entry in declaration.dividends.entries:
            ws.cell(row=row, column=1, value=entry.ticker)
            ws.cell(row=row, column=2, value=f"{entry.country_name} ({entry.country})")
            ws.cell(row=row, column=3, value=entry.currency)
            ws.cell(row=row, column=4, value=_format_decimal(to_decimal(entry.amount_original)))
            ws.cell(row=row, column=5, value=_format_decimal(parse_amount(entry.amount_eur)))
            ws.cell(row=row, column=6, value=_format_decimal(to_decimal(entry.withheld_tax_original)))
            ws.cell(row=row, column=7, value=_format_decimal(parse_amount(entry.withheld_tax_eur)))
            for col in (5, 7):
                ws.cell(row=row, column=col).number_format = EUR_FORMAT
            row += 1

    ws.cell(row=row, column=1, value="SPOLU").font = Font(bold=True)
    ws.cell(row=row, column=5, value=_format_decimal(result.amount("total_dividends_eur")))
    ws.cell(row=row, column=7, value=_format_decimal(result.amount("total_withheld_tax_eur")))
    for col in (5, 7):
        ws.cell(row=row, column=col).number_format = EUR_FORMAT
        ws.cell(row=row, column=col).font = Font(bold=True)
    _auto_fit_columns(ws)


def _add_disposals_sheet(workbook: Workbook, declaration: Declaration) -> None:
    ws = workbook.create_sheet("Disposals")
    _write_headers(ws, ["Druh", "Názov", "Nákup EUR", "Predaj EUR", "Zisk EUR"])

    rows: list[tuple[str, str, str, str]] = []
    if declaration.mutual_funds.enabled:
        rows.extend(
            ("Fond", e.fund_name, e.purchase_amount, e.sale_amount)
            for e in declaration.mutual_funds.entries
        )
    if declaration.stock_sales.enabled:
        rows.extend(
            ("Akcie", e.ticker, e.purchase_amount, e.sale_amount)
            for e in declaration.stock_sales.entries
        )

    for row, (kind, name, purchase_text, sale_text) in enumerate(rows, 2):
        purchase = parse_amount(purchase_text)
        sale = parse_amount(sale_text)
        ws.cell(row=row, column=1, value=kind)
        ws.cell(row=row, column=2, value=name)
        ws.cell(row=row, column=3, value=_format_decimal(purchase))
        ws.cell(row=row, column=4, value=_format_decimal(sale))
        ws.cell(row=row, column=5, value=_format_decimal(subtract_floor(sale, purchase)))
        for col in (3, 4, 5):
            ws.cell(row=row, column=col).number_format = EUR_FORMAT
    _auto_fit_columns(ws)


def _add_warnings_sheet(workbook: Workbook, summary: HandoffSummary) -> None:
    ws = workbook.create_sheet("Warnings")
    _write_headers(ws, ["Závažnosť", "Kód", "Pole", "Správa", "Odporúčanie"])
    for row, warning in enumerate(summary.warnings, 2):
        ws.cell(row=row, column=1, value=warning.severity.value)
        ws.cell(row=row, column=2, value=warning.code)
        ws.cell(row=row, column=3, value=warning.field_path)
        ws.cell(row=row, column=4, value=warning.message)
        ws.cell(row=row, column=5, value=warning.suggestion)
    _auto_fit_columns(ws)


def generate_review_workbook(
    declaration: Declaration,
    result: TaxCalculationResult,
    summary: HandoffSummary,
    output_path: Path,
) -> Path:
    """Write the review workbook for a computed declaration.

    Args:
        declaration: The declaration that was computed.
        result: Output of ``compute_tax``.
        summary: Output of ``build_handoff_summary``.
        output_path: Where to save the xlsx file.

    Returns:
        Path to the generated file.
    """
    workbook = Workbook()

    _add_summary_sheet(workbook, declaration, result, summary)
    _add_dividends_sheet(workbook, declaration, result)
    _add_disposals_sheet(workbook, declaration)
    _add_warnings_sheet(workbook, summary)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output_path)

    return output_path

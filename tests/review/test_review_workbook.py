"""Tests for the review workbook output."""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest
from openpyxl import load_workbook

from priznanie.declaration.models import (
    Declaration,
    DividendEntry,
    Dividends,
    MutualFundEntry,
    MutualFunds,
    StockEntry,
    StockSales,
)
from priznanie.engine.calculator import compute_tax
from priznanie.review.handoff import build_handoff_summary
from priznanie.review.output import generate_review_workbook
from priznanie.review.risk_rules import evaluate_risk


@pytest.fixture
def investor(employee: Declaration) -> Declaration:
    """Employee who also holds dividends, fund units and shares."""
    return employee.model_copy(
        update={
            "dividends": Dividends(
                enabled=True,
                entries=(
                    DividendEntry(
                        id="d1",
                        ticker="AAPL",
                        amount_original="113",
                        amount_eur="100",
                        withheld_tax_original="16.95",
                        withheld_tax_eur="15",
                    ),
                ),
            ),
            "mutual_funds": MutualFunds(
                enabled=True,
                entries=(MutualFundEntry(id="f1", fund_name="Fond A", purchase_amount="1000", sale_amount="1400"),),
            ),
            "stock_sales": StockSales(
                enabled=True,
                entries=(StockEntry(id="s1", ticker="MSFT", purchase_amount="2000", sale_amount="1800"),),
            ),
        }
    )


def _write(declaration: Declaration, directory: str) -> Path:
    result = compute_tax(declaration)
    summary = build_handoff_summary(
        declaration,
        result,
        evaluate_risk(declaration, result),
        generated_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )
    return generate_review_workbook(declaration, result, summary, Path(directory) / "out" / "review.xlsx")


def _label_value(sheet, label: str):
    for row in sheet.iter_rows(min_col=1, max_col=2, values_only=True):
        if row[0] == label:
            return row[1]
    raise AssertionError(f"{label} not found")


class TestReviewWorkbook:
    def test_sheets(self, employee: Declaration) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write(employee, tmpdir)
            assert path.exists()
            wb = load_workbook(path)
            assert wb.sheetnames == ["Summary", "Dividends", "Disposals", "Warnings"]

    def test_summary_figures(self, employee: Declaration) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ws = load_workbook(_write(employee, tmpdir))["Summary"]
            assert ws["A1"].value == "Daňové priznanie typ B: Ján Novák"
            assert ws["A2"].value == "DIČ: 1234567890"
            assert ws["B4"].value == 95
            assert _label_value(ws, "Daň po bonusoch (r.124)") == pytest.approx(1471.78)
            assert _label_value(ws, "Daňový preplatok (r.136)") == pytest.approx(528.22)

    def test_dividends_sheet(self, investor: Declaration) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ws = load_workbook(_write(investor, tmpdir))["Dividends"]
            assert ws["A2"].value == "AAPL"
            assert ws["B2"].value == "USA (840)"
            assert ws["E2"].value == pytest.approx(100)
            assert ws["A3"].value == "SPOLU"
            assert ws["G3"].value == pytest.approx(15)

    def test_disposals_sheet_floors_losses(self, investor: Declaration) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ws = load_workbook(_write(investor, tmpdir))["Disposals"]
            assert [ws["A2"].value, ws["B2"].value, ws["E2"].value] == ["Fond", "Fond A", 400]
            assert [ws["A3"].value, ws["B3"].value, ws["E3"].value] == ["Akcie", "MSFT", 0]

    def test_warnings_sheet(self, employee: Declaration) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            ws = load_workbook(_write(employee, tmpdir))["Warnings"]
            assert ws["A1"].value == "Závažnosť"
            assert ws["B2"].value == "MISSING_SUPPORTING_DOCUMENT"
            assert ws["B3"].value is None

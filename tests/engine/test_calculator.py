"""Tests for the full tax computation."""

from decimal import Decimal

import pytest

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
    PensionSavings,
    Spouse,
    StockEntry,
    StockSales,
    TwoPercent,
)
from priznanie.engine import ROW_CODES, TaxCalculationResult, compute_tax
from priznanie.errors import DeclarationShapeError

D = Decimal


def _with(declaration: Declaration, **sections) -> Declaration:
    return declaration.model_copy(update=sections)


class TestEmployeeReturn:
    """Gross 15000, insurance 1500, advances 2000."""

    def test_rows(self, employee: Declaration) -> None:
        result = compute_tax(employee)
        assert result.r38 == "13500.00"
        assert result.r72 == "13500.00"
        assert result.r73 == "5753.79"
        assert result.r77 == "5753.79"
        assert result.r78 == "7746.21"
        assert result.r80 == "7746.21"
        assert result.r81 == result.r90 == "1471.78"
        assert result.r116 == "1471.78"
        assert result.r118 == "1471.78"
        assert result.r124 == "1471.78"
        assert result.r131 == "2000.00"

    def test_refund(self, employee: Declaration) -> None:
        result = compute_tax(employee)
        assert result.is_refund is True
        assert result.r135 == "0.00"
        assert result.r136 == "528.22"
        assert result.final_tax_refund == "528.22"

    def test_accepts_wizard_mapping(self, employee_payload: dict, employee: Declaration) -> None:
        assert compute_tax(employee_payload) == compute_tax(employee)

    def test_rejects_malformed_mapping(self) -> None:
        with pytest.raises(DeclarationShapeError):
            compute_tax({"employment": ["15000"]})


class TestSettlement:
    def _prepaid(self, employee: Declaration, advances: str) -> TaxCalculationResult:
        employment = employee.employment.model_copy(update={"prepayments": advances})
        return compute_tax(_with(employee, employment=employment))

    def test_tax_to_pay(self, employee: Declaration) -> None:
        result = self._prepaid(employee, "1000")
        assert result.r135 == "471.78"
        assert result.final_tax_to_pay == "471.78"
        assert result.is_refund is False

    @pytest.mark.parametrize("advances", ["1468.78", "1466.78"])
    def test_small_payment_not_collected(self, employee: Declaration, advances: str) -> None:
        result = self._prepaid(employee, advances)
        assert result.r135 == "0.00"
        assert result.r136 == "0.00"
        assert result.is_refund is False

    def test_just_above_small_payment_threshold(self, employee: Declaration) -> None:
        assert self._prepaid(employee, "1466.77").r135 == "5.01"

    def test_exact_advances(self, employee: Declaration) -> None:
        result = self._prepaid(employee, "1471.78")
        assert (result.r135, result.r136, result.is_refund) == ("0.00", "0.00", False)


class TestSections:
    def test_pension_savings(self, employee: Declaration) -> None:
        employment = employee.employment.model_copy(
            update={"pension_savings": PensionSavings(enabled=True, contributions="240")}
        )
        result = compute_tax(_with(employee, employment=employment))
        assert result.r75 == "180.00"
        assert result.r77 == "5933.79"
        assert result.r78 == "7566.21"
        assert result.r81 == "1437.58"

    def test_spouse(self, employee: Declaration) -> None:
        result = compute_tax(_with(employee, spouse=Spouse(enabled=True, months="12")))
        assert result.r74 == "5260.61"
        assert result.r77 == "11014.40"
        assert result.r78 == "2485.60"
        assert result.r81 == "472.26"

    def test_dividends(self, employee: Declaration) -> None:
        dividends = Dividends(
            enabled=True,
            entries=(
                DividendEntry(amount_eur="200", withheld_tax_eur="10"),
                DividendEntry(amount_eur="100", withheld_tax_eur="0"),
            ),
        )
        result = compute_tax(_with(employee, dividends=dividends))
        assert result.total_dividends_eur == "300.00"
        assert result.pril2_pr8 == "7"
        assert result.pril2_pr28 == "11.00"
        assert result.r116 == "1482.78"

    def test_pr8_blank_without_dividends(self, employee: Declaration) -> None:
        assert compute_tax(employee).pril2_pr8 == ""

    def test_mutual_funds_taxed_separately(self, employee: Declaration) -> None:
        funds = MutualFunds(
            enabled=True,
            entries=(
                MutualFundEntry(purchase_amount="1000", sale_amount="800"),
                MutualFundEntry(purchase_amount="500", sale_amount="900"),
            ),
        )
        result = compute_tax(_with(employee, mutual_funds=funds))
        assert result.r68 == "400.00"
        assert result.r106 == result.r115 == "76.00"
        assert result.r80 == "7746.21"
        assert result.r116 == "1547.78"

    def test_stock_gain_joins_general_base(self, employee: Declaration) -> None:
        stocks = StockSales(
            enabled=True,
            entries=(StockEntry(purchase_amount="1000", sale_amount="2200"),),
        )
        result = compute_tax(_with(employee, stock_sales=stocks))
        assert result.r71 == "1200.00"
        assert result.stock_exemption == "500.00"
        assert result.stock_taxable == "700.00"
        assert result.r80 == "8446.21"
        assert result.r81 == "1604.78"

    def test_mortgage_bonus(self, employee: Declaration) -> None:
        mortgage = Mortgage(
            enabled=True, interest_paid="2000", months="12", contract_date="2024-01-01"
        )
        result = compute_tax(_with(employee, mortgage=mortgage))
        assert result.r123 == result.r126 == "1000.00"
        assert result.r124 == "471.78"
        assert result.r127 == "0.00"
        assert result.r136 == "1528.22"

    def test_mortgage_bonus_above_tax(self, employee: Declaration) -> None:
        employment = employee.employment.model_copy(
            update={"gross_income": "8000", "insurance": "1000", "prepayments": "0"}
        )
        mortgage = Mortgage(enabled=True, interest_paid="2000", contract_date="2024-01-01")
        result = compute_tax(_with(employee, employment=employment, mortgage=mortgage))
        # r78 = 7000 - 5753.79 = 1246.21, tax 236.78
        assert result.r118 == "236.78"
        assert result.r124 == "0.00"
        assert result.r127 == "763.22"
        assert result.r136 == "0.00"
        assert result.r135 == "0.00"

    def test_child_bonus(self, employee: Declaration) -> None:
        bonus = ChildBonus(
            enabled=True,
            children=(ChildEntry(birth_number="150510/0003"),),
            paid_by_employer="300",
        )
        result = compute_tax(_with(employee, child_bonus=bonus))
        assert result.r117 == "1200.00"
        assert result.r118 == "271.78"
        assert result.r119 == "300.00"
        assert result.r120 == "900.00"
        assert result.r121 == "271.78"
        assert result.r124 == "271.78"


class TestAllocations:
    def test_two_percent(self, employee: Declaration) -> None:
        result = compute_tax(_with(employee, two_percent=TwoPercent(enabled=True, ico="1")))
        assert result.r152 == "29.44"

    def test_parents(self, employee: Declaration) -> None:
        result = compute_tax(_with(employee, parent_allocation=ParentAllocation(choice="both")))
        assert result.parent_alloc_per_parent == "29.44"
        assert result.parent_alloc_total == "58.88"

    def test_one_parent(self, employee: Declaration) -> None:
        result = compute_tax(_with(employee, parent_allocation=ParentAllocation(choice="one")))
        assert result.parent_alloc_total == "29.44"

    @pytest.mark.parametrize("gross", ["0", "6000", "7000", "7100", "15000", "90000"])
    def test_allocation_never_exceeds_liability(self, employee: Declaration, gross: str) -> None:
        employment = employee.employment.model_copy(update={"gross_income": gross})
        result = compute_tax(
            _with(
                employee,
                employment=employment,
                two_percent=TwoPercent(enabled=True, splnam3per=True),
                parent_allocation=ParentAllocation(choice="both"),
            )
        )
        assert result.amount("r152") <= result.amount("r124")
        assert result.amount("parent_alloc_total") <= result.amount("r124")

    def test_zero_liability_allocates_nothing(self) -> None:
        declaration = Declaration(
            employment=Employment(gross_income="5000"),
            two_percent=TwoPercent(enabled=True),
        )
        result = compute_tax(declaration)
        assert result.r124 == "0.00"
        assert result.r152 == "0.00"


class TestProperties:
    def test_deterministic(self, employee: Declaration) -> None:
        first = compute_tax(employee)
        assert all(compute_tax(employee) == first for _ in range(5))

    def test_empty_declaration_is_all_zero(self) -> None:
        result = compute_tax(Declaration(employment=Employment(enabled=False)))
        assert all(value == D("0") for value in result.as_decimals().values())
        assert result.is_refund is False

    @pytest.mark.parametrize(
        "disabled",
        [
            {"dividends": Dividends(entries=(DividendEntry(amount_eur="500", withheld_tax_eur="1"),))},
            {"mutual_funds": MutualFunds(entries=(MutualFundEntry(purchase_amount="1", sale_amount="900"),))},
            {"stock_sales": StockSales(entries=(StockEntry(purchase_amount="1", sale_amount="9000"),))},
            {"mortgage": Mortgage(interest_paid="2000", contract_date="2024-01-01")},
            {"spouse": Spouse(months="12")},
            {"child_bonus": ChildBonus(children=(ChildEntry(birth_number="150510/0003"),))},
            {"two_percent": TwoPercent(ico="1")},
        ],
    )
    def test_disabled_section_contributes_nothing(self, employee: Declaration, disabled: dict) -> None:
        assert compute_tax(_with(employee, **disabled)) == compute_tax(employee)

    def test_disabling_one_section_keeps_others(self, employee: Declaration) -> None:
        funds = MutualFunds(
            enabled=True,
            entries=(MutualFundEntry(purchase_amount="500", sale_amount="900"),),
        )
        with_funds = compute_tax(_with(employee, mutual_funds=funds))
        without_employment = compute_tax(
            _with(
                employee,
                mutual_funds=funds,
                employment=employee.employment.model_copy(update={"enabled": False}),
            )
        )
        assert without_employment.r68 == with_funds.r68 == "400.00"
        assert without_employment.r106 == with_funds.r106
        assert without_employment.r38 == "0.00"

    def test_negative_inputs_never_produce_negative_rows(self) -> None:
        declaration = Declaration(
            employment=Employment(
                gross_income="-15000", insurance="-10", prepayments="-2000",
                pension_savings=PensionSavings(enabled=True, contributions="-50"),
            ),
            dividends=Dividends(
                enabled=True,
                entries=(DividendEntry(amount_eur="-100", withheld_tax_eur="-5"),),
            ),
            mutual_funds=MutualFunds(
                enabled=True,
                entries=(MutualFundEntry(purchase_amount="1000", sale_amount="800"),),
            ),
            stock_sales=StockSales(
                enabled=True,
                entries=(StockEntry(purchase_amount="-5", sale_amount="-10"),),
            ),
            mortgage=Mortgage(enabled=True, interest_paid="-2000"),
            spouse=Spouse(enabled=True, months="-3", own_income="-100"),
            child_bonus=ChildBonus(enabled=True, paid_by_employer="-40"),
            two_percent=TwoPercent(enabled=True),
        )
        result = compute_tax(declaration)
        assert all(value >= D("0") for value in result.as_decimals().values())

    def test_malformed_amounts_read_as_zero(self) -> None:
        declaration = Declaration(employment=Employment(gross_income="abc", insurance="1,5.0"))
        assert compute_tax(declaration).r38 == "0.00"


class TestResultRecord:
    def test_row_codes_closed_set(self) -> None:
        assert "r38" in ROW_CODES
        assert "r136" in ROW_CODES
        assert "pril2_pr8" not in ROW_CODES
        assert "is_refund" not in ROW_CODES

    def test_amount_lookup(self, employee: Declaration) -> None:
        result = compute_tax(employee)
        assert result.amount("r81") == D("1471.78")
        with pytest.raises(KeyError):
            result.amount("r999")

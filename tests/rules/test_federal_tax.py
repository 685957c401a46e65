"""
Tests for federal tax brackets and the tax calculator.
"""

from decimal import Decimal

import pytest

from nestegglab.core.enums import FilingStatus
from nestegglab.core.errors import ValidationError
from nestegglab.rules.tax import FederalTaxCalculator, StaticTaxTable, TaxBracket


class TestFederalTaxCalculator:
    @pytest.fixture
    def calc(self):
        return FederalTaxCalculator()

    def test_progressive_tax(self, calc):
        # 60,000 - 14,600 deduction = 45,400 taxable
        assert calc.tax_on(Decimal("60000"), 2024, FilingStatus.SINGLE) == Decimal("5216.00")

    def test_income_below_deduction(self, calc):
        assert calc.tax_on(Decimal("10000"), 2024, FilingStatus.SINGLE) == Decimal("0.00")
        assert calc.effective_rate(Decimal("0"), 2024, FilingStatus.SINGLE) == Decimal("0")

    def test_marginal_rate(self, calc):
        assert calc.marginal_rate(Decimal("60000"), 2024, FilingStatus.SINGLE) == Decimal("0.12")
        assert calc.marginal_rate(
            Decimal("2000000"), 2024, FilingStatus.MARRIED_FILING_JOINTLY
        ) == Decimal("0.37")

    def test_bracket_room(self, calc):
        # 12% bracket ends at 47,150 taxable, i.e. 61,750 gross
        assert calc.bracket_room(Decimal("60000"), 2024, FilingStatus.SINGLE) == Decimal("1750.00")

    def test_no_room_in_top_bracket(self, calc):
        assert calc.bracket_room(Decimal("1000000"), 2024, FilingStatus.SINGLE) == Decimal("0.00")

    def test_joint_filers_pay_less(self, calc):
        single = calc.tax_on(Decimal("120000"), 2024, FilingStatus.SINGLE)
        joint = calc.tax_on(Decimal("120000"), 2024, FilingStatus.MARRIED_FILING_JOINTLY)
        assert joint < single


class TestStaticTaxTable:
    def test_indexing_grows_bounds_and_deduction(self):
        table = StaticTaxTable(indexing_rate=Decimal("0.025"))
        calc = FederalTaxCalculator(table=table)

        assert table.brackets_for(2025, FilingStatus.SINGLE)[0].upper_bound == Decimal("11890.00")
        assert calc.deduction_for(2025, FilingStatus.SINGLE) == Decimal("14965.00")

    def test_years_before_base_use_base_bounds(self):
        table = StaticTaxTable(indexing_rate=Decimal("0.025"))
        assert table.brackets_for(2020, FilingStatus.SINGLE)[0].upper_bound == Decimal("11600.00")

    def test_top_bracket_open_ended(self):
        brackets = StaticTaxTable().brackets_for(2024, FilingStatus.HEAD_OF_HOUSEHOLD)
        assert brackets[-1].upper_bound is None
        assert brackets[-1].rate == Decimal("0.37")

    def test_invalid_rate(self):
        with pytest.raises(ValidationError):
            TaxBracket(Decimal("1.5"))

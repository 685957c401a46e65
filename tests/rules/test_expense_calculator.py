"""
Tests for budgets and monthly expense calculation.
"""

from datetime import date
from decimal import Decimal

import pytest

from nestegglab.core.enums import ExpenseCategoryGroup, InflationType, SimulationPhase
from nestegglab.core.errors import ValidationError
from nestegglab.core.flags import SimulationFlags
from nestegglab.rules.expenses import (
    Budget,
    DefaultExpenseCalculator,
    OneTimeExpense,
    RecurringExpense,
    SpendingCurveModifier,
)

ESSENTIAL = ExpenseCategoryGroup.ESSENTIAL
DISCRETIONARY = ExpenseCategoryGroup.DISCRETIONARY
HEALTHCARE = ExpenseCategoryGroup.HEALTHCARE
CONTINGENCY = ExpenseCategoryGroup.CONTINGENCY


def _recurring(name, group, amount, **kwargs):
    return RecurringExpense(name=name, group=group, monthly_amount=Decimal(amount), **kwargs)


class TestDefaultExpenseCalculator:
    @pytest.fixture
    def budget(self):
        return Budget(
            base_year=2025,
            recurring=(
                _recurring("Living", ESSENTIAL, "1000"),
                _recurring("Travel", DISCRETIONARY, "1000"),
                _recurring("Medical", HEALTHCARE, "500", inflation=InflationType.NONE),
                _recurring("Care", CONTINGENCY, "2000", contingency="LTC"),
            ),
            one_time=(
                OneTimeExpense(
                    name="Roof", group=ExpenseCategoryGroup.OTHER, amount=Decimal("15000"),
                    month=date(2026, 6, 1),
                ),
            ),
        )

    def test_base_year_amounts(self, budget):
        breakdown = DefaultExpenseCalculator().calculate(
            budget, date(2025, 4, 1), SimulationPhase.ACCUMULATION, 60
        )
        assert breakdown.total == Decimal("2500.00")
        assert breakdown.by_category == {
            "essential": Decimal("1000.00"),
            "discretionary": Decimal("1000.00"),
            "healthcare": Decimal("500.00"),
        }
        assert breakdown.for_group(CONTINGENCY) == Decimal("0.00")

    def test_inflation_by_type(self, budget):
        breakdown = DefaultExpenseCalculator().calculate(
            budget, date(2027, 1, 1), SimulationPhase.ACCUMULATION, 60
        )
        # 1000 * 1.025 ** 2
        assert breakdown.for_group(ESSENTIAL) == Decimal("1050.63")
        assert breakdown.for_group(HEALTHCARE) == Decimal("500.00")

    def test_contingency_only_when_active(self, budget):
        flags = SimulationFlags.initial().with_contingency_active("LTC", True)
        breakdown = DefaultExpenseCalculator().calculate(
            budget, date(2025, 4, 1), SimulationPhase.DISTRIBUTION, 85, flags
        )
        assert breakdown.for_group(CONTINGENCY) == Decimal("2000.00")

    def test_survivor_multiplier(self, budget):
        flags = SimulationFlags.initial().with_survivor_mode(True)
        breakdown = DefaultExpenseCalculator().calculate(
            budget, date(2025, 4, 1), SimulationPhase.SURVIVOR, 70, flags
        )
        assert breakdown.for_group(ESSENTIAL) == Decimal("750.00")
        assert breakdown.for_group(DISCRETIONARY) == Decimal("750.00")
        assert breakdown.for_group(HEALTHCARE) == Decimal("500.00")

    def test_spending_curve_applies_once_retired(self, budget):
        calc = DefaultExpenseCalculator(spending_curve=SpendingCurveModifier())
        retired = calc.calculate(budget, date(2025, 4, 1), SimulationPhase.DISTRIBUTION, 80)
        working = calc.calculate(budget, date(2025, 4, 1), SimulationPhase.ACCUMULATION, 80)

        assert retired.for_group(DISCRETIONARY) == Decimal("800.00")
        assert retired.for_group(ESSENTIAL) == Decimal("1000.00")
        assert working.for_group(DISCRETIONARY) == Decimal("1000.00")

    def test_one_time_expense_in_its_month_only(self, budget):
        calc = DefaultExpenseCalculator()
        june = calc.calculate(budget, date(2026, 6, 1), SimulationPhase.DISTRIBUTION, 66)
        july = calc.calculate(budget, date(2026, 7, 1), SimulationPhase.DISTRIBUTION, 66)
        assert june.by_category["other"] == Decimal("15000.00")
        assert "other" not in july.by_category

    def test_expense_window(self):
        budget = Budget(
            base_year=2025,
            recurring=(
                _recurring(
                    "Mortgage", ExpenseCategoryGroup.DEBT, "1500",
                    inflation=InflationType.NONE, end=date(2025, 12, 1),
                ),
            ),
        )
        calc = DefaultExpenseCalculator()
        assert calc.calculate(budget, date(2025, 12, 1), SimulationPhase.DISTRIBUTION, 66).total == Decimal("1500.00")
        assert calc.calculate(budget, date(2026, 1, 1), SimulationPhase.DISTRIBUTION, 66).total == Decimal("0.00")

    def test_no_budget(self):
        breakdown = DefaultExpenseCalculator().calculate(
            None, date(2025, 1, 1), SimulationPhase.DISTRIBUTION, 66
        )
        assert breakdown.total == Decimal("0.00")

    def test_custom_inflation_rates(self):
        budget = Budget(base_year=2025, recurring=(_recurring("Rent", ESSENTIAL, "1000", inflation=InflationType.HOUSING),))
        calc = DefaultExpenseCalculator(inflation_rates={InflationType.HOUSING: Decimal("0.10")})
        breakdown = calc.calculate(budget, date(2026, 1, 1), SimulationPhase.DISTRIBUTION, 66)
        assert breakdown.total == Decimal("1100.00")


class TestSpendingCurveModifier:
    def test_default_multipliers(self):
        curve = SpendingCurveModifier()
        assert curve.multiplier_for(70) == Decimal("1.00")
        assert curve.multiplier_for(75) == Decimal("0.80")
        assert curve.multiplier_for(85) == Decimal("0.50")

    def test_ages_must_be_ordered(self):
        with pytest.raises(ValidationError):
            SpendingCurveModifier(slow_go_age=80, no_go_age=70)

    def test_expense_validation(self):
        with pytest.raises(ValidationError):
            _recurring("Bad", ESSENTIAL, "-5")
        with pytest.raises(ValidationError):
            _recurring("Bad", ESSENTIAL, "5", start=date(2026, 1, 1), end=date(2025, 1, 1))

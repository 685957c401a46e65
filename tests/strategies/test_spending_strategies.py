"""
Tests for the static, income-gap, bucket and spending-curve strategies.
"""

from datetime import date
from decimal import Decimal

import pytest

from nestegglab.core.errors import ValidationError
from nestegglab.rules.expenses import SpendingCurveModifier
from nestegglab.strategies import (
    BucketSpendingStrategy,
    IncomeGapStrategy,
    SpendingCurveStrategy,
    StaticSpendingStrategy,
)


class TestStaticSpendingStrategy:
    def test_first_year_target(self, mixed_accounts, make_context):
        plan = StaticSpendingStrategy().calculate(make_context(mixed_accounts))

        assert plan.target_withdrawal == Decimal("3333.33")
        assert plan.meets_target
        assert plan.strategy_used == "Static 4%"
        assert plan.account_withdrawals == ()

    def test_inflation_after_a_full_year(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts, month=date(2026, 1, 1))
        plan = StaticSpendingStrategy().calculate(context)
        # 40,000 * 1.025 / 12
        assert plan.target_withdrawal == Decimal("3416.67")
        assert plan.metadata["yearsInRetirement"] == 1

    def test_without_inflation_adjustment(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts, month=date(2030, 1, 1))
        plan = StaticSpendingStrategy(adjust_for_inflation=False).calculate(context)
        assert plan.target_withdrawal == Decimal("3333.33")

    def test_current_balance_does_not_change_target(self, mixed_accounts, make_context):
        context = make_context(mixed_accounts, view={"total_balance": Decimal("400000.00")})
        assert StaticSpendingStrategy().calculate(context).target_withdrawal == Decimal("3333.33")

    def test_cap_to_income_gap(self, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts, total_expenses=Decimal("3000"), other_income=Decimal("1000")
        )
        plan = StaticSpendingStrategy(cap_to_income_gap=True).calculate(context)
        assert plan.target_withdrawal == Decimal("2000.00")
        assert plan.metadata["uncappedTarget"] == Decimal("3333.33")

    def test_name_reflects_rate(self):
        assert StaticSpendingStrategy(withdrawal_rate=Decimal("0.035")).name == "Static 3.5%"

    @pytest.mark.parametrize("bad_rate", [Decimal("0"), Decimal("1.5")])
    def test_invalid_rate(self, bad_rate):
        with pytest.raises(ValidationError):
            StaticSpendingStrategy(withdrawal_rate=bad_rate)

    def test_shortfall_when_balance_is_too_small(self, make_account, make_context):
        context = make_context(
            [make_account("ira", balance="1000")],
            view={"initial_balance": Decimal("1000000.00")},
        )
        plan = StaticSpendingStrategy().calculate(context)
        assert not plan.meets_target
        assert plan.adjusted_withdrawal == Decimal("1000.00")
        assert plan.shortfall == Decimal("2333.33")


class TestIncomeGapStrategy:
    def test_gap(self, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts, total_expenses=Decimal("5000"), other_income=Decimal("2000")
        )
        plan = IncomeGapStrategy().calculate(context)
        assert plan.target_withdrawal == Decimal("3000.00")
        assert plan.metadata["incomeGap"] == Decimal("3000.00")

    def test_income_covers_expenses(self, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts, total_expenses=Decimal("2000"), other_income=Decimal("2500")
        )
        assert IncomeGapStrategy().calculate(context).target_withdrawal == Decimal("0.00")

    def test_gross_up(self, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts, total_expenses=Decimal("5000"), other_income=Decimal("2000")
        )
        plan = IncomeGapStrategy(gross_up=True, marginal_rate=Decimal("0.20")).calculate(context)
        assert plan.target_withdrawal == Decimal("3750.00")

    def test_invalid_marginal_rate(self):
        with pytest.raises(ValidationError):
            IncomeGapStrategy(marginal_rate=Decimal("1"))


class TestBucketSpendingStrategy:
    def test_bucket_metadata(self, bucket_accounts, make_context):
        context = make_context(
            bucket_accounts, total_expenses=Decimal("4000"), other_income=Decimal("1000")
        )
        plan = BucketSpendingStrategy().calculate(context)

        assert plan.target_withdrawal == Decimal("3000.00")
        assert plan.metadata["shortBucket"] == Decimal("60000.00")
        assert plan.metadata["mediumBucket"] == Decimal("200000.00")
        assert plan.metadata["longBucket"] == Decimal("700000.00")
        assert plan.metadata["shortTermCoverageMonths"] == 20
        assert plan.metadata["refillNeeded"] is True
        assert plan.metadata["drawFrom"] == "long"

    def test_draw_from_short_after_losing_year(self, bucket_accounts, make_context):
        context = make_context(
            bucket_accounts,
            total_expenses=Decimal("2000"),
            view={"prior_year_return": Decimal("-0.15")},
        )
        plan = BucketSpendingStrategy(short_term_years=1).calculate(context)
        assert plan.metadata["drawFrom"] == "short"
        assert plan.metadata["refillNeeded"] is False

    def test_explicit_mapping(self, bucket_accounts, make_context):
        context = make_context(bucket_accounts, total_expenses=Decimal("1000"))
        plan = BucketSpendingStrategy(bucket_mapping={"stocks": "short"}).calculate(context)
        assert plan.metadata["shortBucket"] == Decimal("760000.00")
        assert plan.metadata["longBucket"] == Decimal("0.00")

    def test_unknown_bucket(self):
        with pytest.raises(ValidationError):
            BucketSpendingStrategy(bucket_mapping={"ira": "someday"})


class TestSpendingCurveStrategy:
    def test_wraps_static_by_default(self, mixed_accounts, make_context):
        strategy = SpendingCurveStrategy()
        plan = strategy.calculate(make_context(mixed_accounts, age=80))

        assert strategy.name == "Spending Curve (Static 4%)"
        assert plan.target_withdrawal == Decimal("2666.66")
        assert plan.metadata["spendingPhase"] == "SLOW_GO"
        assert plan.metadata["baseTarget"] == Decimal("3333.33")

    def test_go_go_years_unchanged(self, mixed_accounts, make_context):
        plan = SpendingCurveStrategy().calculate(make_context(mixed_accounts, age=66))
        assert plan.target_withdrawal == Decimal("3333.33")

    def test_custom_curve_and_base(self, mixed_accounts, make_context):
        strategy = SpendingCurveStrategy(
            base=IncomeGapStrategy(),
            curve=SpendingCurveModifier(no_go_multiplier=Decimal("0.40")),
        )
        context = make_context(mixed_accounts, age=90, total_expenses=Decimal("5000"))
        assert strategy.calculate(context).target_withdrawal == Decimal("2000.00")
        assert strategy.requires_prior_year_state is False


@pytest.mark.parametrize(
    "strategy, dynamic, needs_prior_year",
    [
        (StaticSpendingStrategy(), False, False),
        (IncomeGapStrategy(), True, False),
        (BucketSpendingStrategy(), True, True),
        (SpendingCurveStrategy(), True, False),
        (SpendingCurveStrategy(base=BucketSpendingStrategy()), True, True),
    ],
)
def test_strategy_traits(strategy, dynamic, needs_prior_year):
    assert strategy.is_dynamic is dynamic
    assert strategy.requires_prior_year_state is needs_prior_year
    assert strategy.description

"""
Tests for the guardrails strategy and its presets.
"""

from datetime import date
from decimal import Decimal

import pytest

from nestegglab.core.errors import ConfigError, ValidationError
from nestegglab.core.kinds import K
from nestegglab.core.registry import create_spending_strategy
from nestegglab.strategies import GuardrailsConfiguration, GuardrailsSpendingStrategy


def _view(balance, prior="52000", prior_return="0.05", **extra):
    view = {
        "total_balance": Decimal(balance),
        "initial_balance": Decimal("1000000.00"),
        "prior_year_spending": Decimal(prior),
        "prior_year_return": Decimal(prior_return),
    }
    view.update(extra)
    return view


class TestGuytonKlinger:
    @pytest.fixture
    def strategy(self):
        return GuardrailsSpendingStrategy()

    def test_first_year_uses_initial_rate(self, strategy, mixed_accounts, make_context):
        plan = strategy.calculate(make_context(mixed_accounts))
        assert plan.target_withdrawal == Decimal("4333.33")
        assert plan.metadata["firstYear"] is True
        assert plan.strategy_used == "Guardrails (Guyton-Klinger)"

    def test_prosperity_rule(self, strategy, mixed_accounts, make_context):
        context = make_context(mixed_accounts, month=date(2027, 1, 1), view=_view("1500000"))
        plan = strategy.calculate(context)
        # 52,000 * 1.025 * 1.10 / 12
        assert plan.target_withdrawal == Decimal("4885.83")
        assert plan.metadata["adjustment"] == "increase"

    def test_capital_preservation_rule(self, strategy, mixed_accounts, make_context):
        context = make_context(mixed_accounts, month=date(2027, 1, 1), view=_view("800000"))
        plan = strategy.calculate(context)
        assert plan.target_withdrawal == Decimal("3997.50")
        assert plan.metadata["adjustment"] == "decrease"

    def test_inflation_skipped_after_losing_year(self, strategy, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts,
            month=date(2027, 1, 1),
            view=_view("900000", prior_return="-0.10"),
        )
        plan = strategy.calculate(context)
        assert plan.target_withdrawal == Decimal("4333.33")
        assert plan.metadata["inflationSkipped"] is True
        assert "adjustment" not in plan.metadata

    def test_preservation_ends_after_horizon(self, strategy, mixed_accounts, make_context):
        context = make_context(mixed_accounts, month=date(2041, 1, 1), view=_view("800000"))
        plan = strategy.calculate(context)
        assert plan.target_withdrawal == Decimal("4441.67")
        assert "adjustment" not in plan.metadata

    def test_partial_prior_year_is_annualised(self, strategy, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts,
            month=date(2026, 1, 1),
            retirement_start_date=date(2025, 7, 1),
            view=_view("1000000", prior="24000"),
        )
        plan = strategy.calculate(context)
        assert plan.metadata["priorYearMonths"] == 6
        assert plan.target_withdrawal == Decimal("4100.00")

    def test_inflation_rate_from_strategy_params(self, strategy, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts,
            month=date(2027, 1, 1),
            view=_view("1000000", prior="48000"),
            strategy_params={"inflationRate": "0"},
        )
        assert strategy.calculate(context).target_withdrawal == Decimal("4000.00")


class TestKitcesRatcheting:
    @pytest.fixture
    def strategy(self):
        return GuardrailsSpendingStrategy(preset="kitces_ratcheting")

    def test_ratchet_spacing(self, strategy):
        assert not strategy.can_ratchet(date(2026, 1, 1), date(2027, 1, 1))
        assert strategy.can_ratchet(date(2026, 1, 1), date(2029, 1, 1))
        assert strategy.can_ratchet(None, date(2027, 1, 1))

    def test_ratchet_suppressed_inside_spacing(self, strategy, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts,
            month=date(2027, 1, 1),
            view=_view("2000000", prior="40000", last_ratchet_month=date(2026, 1, 1)),
        )
        plan = strategy.calculate(context)
        assert plan.metadata["ratchetSuppressed"] is True
        assert plan.target_withdrawal == Decimal("3416.67")

    def test_raise_carried_through_the_year(self, strategy, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts,
            month=date(2027, 6, 1),
            view=_view("2000000", prior="40000", last_ratchet_month=date(2027, 1, 1)),
        )
        plan = strategy.calculate(context)
        assert plan.metadata["adjustment"] == "carried"
        assert plan.target_withdrawal == Decimal("3758.33")

    def test_never_cuts(self, strategy, mixed_accounts, make_context):
        context = make_context(
            mixed_accounts, month=date(2027, 1, 1), view=_view("300000", prior="40000")
        )
        assert strategy.calculate(context).target_withdrawal == Decimal("3416.67")


class TestVanguardDynamic:
    @pytest.fixture
    def strategy(self):
        return GuardrailsSpendingStrategy(preset="vanguard_dynamic")

    @pytest.mark.parametrize(
        "balance,expected,adjustment",
        [
            ("1500000", "3587.50", "ceiling"),
            ("500000", "3331.25", "floor"),
            ("1050000", "3500.00", None),
        ],
    )
    def test_corridor(self, strategy, mixed_accounts, make_context, balance, expected, adjustment):
        context = make_context(
            mixed_accounts, month=date(2027, 1, 1), view=_view(balance, prior="40000")
        )
        plan = strategy.calculate(context)
        assert plan.target_withdrawal == Decimal(expected)
        assert plan.metadata.get("adjustment") == adjustment

    def test_absolute_floor(self, mixed_accounts, make_context):
        strategy = GuardrailsSpendingStrategy(
            preset="vanguard_dynamic", absolute_floor=Decimal("50000")
        )
        context = make_context(
            mixed_accounts, month=date(2027, 1, 1), view=_view("1050000", prior="40000")
        )
        plan = strategy.calculate(context)
        assert plan.target_withdrawal == Decimal("4166.67")
        assert plan.metadata["constraint"] == "floor applied"


class TestGuardrailsConfiguration:
    def test_unknown_preset(self):
        with pytest.raises(ValidationError):
            GuardrailsConfiguration.preset("yolo")

    def test_preset_names_are_normalised(self):
        assert GuardrailsConfiguration.preset("Guyton-Klinger").name == "Guyton-Klinger"

    def test_floor_above_ceiling(self):
        with pytest.raises(ValidationError):
            GuardrailsConfiguration(absolute_floor=Decimal("60000"), absolute_ceiling=Decimal("50000"))

    def test_corridor_only_without_guardrails(self):
        assert GuardrailsConfiguration.vanguard_dynamic().uses_corridor
        assert not GuardrailsConfiguration.guyton_klinger().uses_corridor
        assert not GuardrailsConfiguration.kitces_ratcheting().has_lower_guardrail


class TestSpendingRegistry:
    def test_create_by_kind(self):
        strategy = create_spending_strategy(K.S_GUARDRAILS, preset="vanguard_dynamic")
        assert strategy.name == "Guardrails (Vanguard Dynamic)"

    def test_every_spending_kind_registered(self):
        for kind in K.spending_kinds():
            assert create_spending_strategy(kind).name

    def test_unknown_kind(self):
        with pytest.raises(ConfigError):
            create_spending_strategy("spending.lottery")

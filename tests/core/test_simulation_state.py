"""
Tests for AccountState and SimulationState.
"""

from datetime import date
from decimal import Decimal

import pytest

from nestegglab.core.context import AccountWithdrawal, SpendingPlan
from nestegglab.core.enums import AccountType, TaxTreatment
from nestegglab.core.errors import MissingFieldError, ValidationError
from nestegglab.core.results import AccountMonthlyFlow, MonthlySnapshot
from nestegglab.core.state import AccountState, SimulationState


class TestAccountState:
    def test_withdraw_is_capped_at_balance(self, make_account):
        state = AccountState(make_account("ira", balance="100"))

        taken = state.withdraw(Decimal("250"))

        assert taken == Decimal("100.00")
        assert state.balance == Decimal("0.00")
        assert state.is_depleted

    def test_partial_withdraw(self, make_account):
        state = AccountState(make_account("ira", balance="100"))
        assert state.withdraw("40.005") == Decimal("40.01")
        assert state.balance == Decimal("59.99")
        assert state.has_balance

    def test_large_loss_floors_at_zero(self, make_account):
        state = AccountState(make_account("ira", balance="100"))

        change = state.apply_return(-2.0)

        assert change == Decimal("-100.00")
        assert state.balance == Decimal("0.00")

    def test_return_on_empty_account(self, make_account):
        state = AccountState(make_account("ira", balance="0"))
        assert state.apply_return(Decimal("0.01")) == Decimal("0.00")

    def test_return_growth(self, make_account):
        state = AccountState(make_account("ira", balance="1000"))
        assert state.apply_return(Decimal("0.005")) == Decimal("5.00")
        assert state.balance == Decimal("1005.00")

    def test_negative_amounts_rejected(self, make_account):
        state = AccountState(make_account("ira", balance="100"))
        with pytest.raises(ValidationError):
            state.deposit(Decimal("-1"))
        with pytest.raises(ValidationError):
            state.withdraw(Decimal("-1"))
        with pytest.raises(ValidationError):
            state.set_balance(Decimal("-1"))

    def test_deposit_none_rejected(self, make_account):
        state = AccountState(make_account("ira", balance="100"))
        with pytest.raises(MissingFieldError, match="amount"):
            state.deposit(None)
        assert state.balance == Decimal("100.00")

    def test_balance_override(self, make_account):
        state = AccountState(make_account("ira", balance="100"), balance=Decimal("5"))
        assert state.balance == Decimal("5.00")

    def test_to_snapshot(self, make_account):
        snapshot = AccountState(make_account("roth", AccountType.ROTH_IRA, "10")).to_snapshot()
        assert snapshot.account_id == "roth"
        assert snapshot.tax_treatment is TaxTreatment.ROTH
        assert not snapshot.subject_to_rmd


class TestSimulationState:
    @pytest.fixture
    def state(self, make_account):
        return SimulationState(
            [
                make_account("a", AccountType.TAXABLE_BROKERAGE, "100"),
                make_account("b", AccountType.TRADITIONAL_IRA, "200"),
            ]
        )

    def test_duplicate_account_ids_rejected(self, make_account):
        with pytest.raises(ValidationError):
            SimulationState([make_account("a"), make_account("a")])

    def test_unknown_account(self, state):
        with pytest.raises(ValidationError):
            state.get_account("missing")

    def test_totals_and_high_water_mark(self, state):
        assert state.initial_balance == Decimal("300.00")
        assert state.high_water_mark == Decimal("300.00")

        assert state.withdraw_from_account("a", Decimal("50")) == Decimal("50.00")
        assert state.calculate_total_balance() == Decimal("250.00")
        assert state.high_water_mark == Decimal("300.00")
        assert state.cumulative_withdrawals == Decimal("50.00")

        state.deposit_to_account("b", Decimal("100"))
        assert state.calculate_total_balance() == Decimal("350.00")
        assert state.high_water_mark == Decimal("350.00")
        assert state.initial_balance == Decimal("300.00")

    def test_apply_returns_single_rate(self, state):
        results = state.apply_returns(Decimal("0.01"))
        assert results == {"a": Decimal("1.00"), "b": Decimal("2.00")}
        assert state.calculate_total_balance() == Decimal("303.00")

    def test_apply_returns_mapping_skips_missing(self, state):
        results = state.apply_returns({"b": Decimal("0.10")})
        assert results["a"] == Decimal("0.00")
        assert results["b"] == Decimal("20.00")

    def test_apply_withdrawals_reports_actual_amounts(self, state):
        plan = SpendingPlan(
            target_withdrawal=Decimal("150"),
            account_withdrawals=(
                AccountWithdrawal(
                    account_id="a",
                    account_name="A",
                    account_type=AccountType.TAXABLE_BROKERAGE,
                    amount=Decimal("100"),
                    prior_balance=Decimal("100"),
                    new_balance=Decimal("0"),
                    tax_treatment=TaxTreatment.TAXABLE,
                ),
                AccountWithdrawal(
                    account_id="b",
                    account_name="B",
                    account_type=AccountType.TRADITIONAL_IRA,
                    amount=Decimal("50"),
                    prior_balance=Decimal("200"),
                    new_balance=Decimal("150"),
                    tax_treatment=TaxTreatment.PRE_TAX,
                ),
            ),
        )

        flows = state.apply_withdrawals(plan)

        assert flows["a"].withdrawals == Decimal("100.00")
        assert flows["a"].ending_balance == Decimal("0.00")
        assert flows["b"].starting_balance == Decimal("200.00")
        assert flows["b"].ending_balance == Decimal("150.00")
        assert state.cumulative_withdrawals == Decimal("150.00")

    def test_prior_year_figures(self, make_account):
        state = SimulationState([make_account("a", balance="1000")])
        flow = AccountMonthlyFlow.build(
            "a", "A", starting_balance="1000", withdrawals="100", returns="50"
        )
        state.record_history(MonthlySnapshot(month=date(2025, 12, 1), account_flows={"a": flow}))

        assert state.get_prior_year_spending(date(2026, 3, 1)) == Decimal("100.00")
        assert state.get_prior_year_return(date(2026, 3, 1)) == Decimal("0.050000")
        assert state.get_prior_year_spending(date(2025, 6, 1)) == Decimal("0.00")
        assert state.get_prior_year_return(date(2025, 6, 1)) == Decimal("0")
        assert len(state.history) == 1

    def test_prior_year_return_uses_previous_year_end(self, make_account):
        state = SimulationState([make_account("a", balance="1000")])
        first = AccountMonthlyFlow.build(
            "a", "A", starting_balance="1000", withdrawals="100", returns="50"
        )
        second = AccountMonthlyFlow.build("a", "A", starting_balance="950", returns="-95")
        state.record_history(MonthlySnapshot(month=date(2025, 12, 1), account_flows={"a": first}))
        state.record_history(MonthlySnapshot(month=date(2026, 12, 1), account_flows={"a": second}))

        # -95 over the 950 closing balance of 2025, not the 1000 initial balance
        assert state.get_prior_year_return(date(2027, 3, 1)) == Decimal("-0.100000")
        assert state.get_prior_year_spending(date(2027, 3, 1)) == Decimal("0.00")

    def test_ratchet_and_contributions(self, state):
        assert state.last_ratchet_month is None
        state.record_ratchet(date(2026, 1, 1))
        assert state.last_ratchet_month == date(2026, 1, 1)

        state.record_contribution("alex", 2026, Decimal("500"))
        state.record_contribution("alex", 2026, Decimal("250.50"))
        assert state.ytd_contributions("alex", 2026) == Decimal("750.50")
        assert state.ytd_contributions("alex", 2027) == Decimal("0.00")

    def test_snapshot_view(self, state):
        state.set_survivor_mode(True)
        view = state.snapshot(date(2026, 1, 1))

        assert view.total_balance == Decimal("300.00")
        assert view.account_balance("b") == Decimal("200.00")
        assert view.account_balance("missing") == Decimal("0.00")
        assert view.get_account("missing") is None
        assert view.account_balances == {"a": Decimal("100.00"), "b": Decimal("200.00")}
        assert view.flags.survivor_mode
        assert state.is_survivor_mode

    def test_snapshot_is_detached_from_later_changes(self, state):
        view = state.snapshot(date(2026, 1, 1))
        state.withdraw_from_account("a", Decimal("100"))
        assert view.account_balance("a") == Decimal("100.00")

    def test_from_portfolios(self, make_account, make_portfolio):
        portfolio = make_portfolio([make_account("x", balance="10"), make_account("y", balance="5")])
        state = SimulationState.from_portfolios([portfolio])
        assert state.account_ids == ["x", "y"]
        assert state.calculate_total_balance() == Decimal("15.00")

"""
Tests for people, allocations, accounts, portfolios and enums.
"""

from datetime import date
from decimal import Decimal

import pytest

from nestegglab.core.enums import (
    AccountType,
    SimulationMode,
    SimulationPhase,
    SpendingPhase,
    TaxTreatment,
)
from nestegglab.core.errors import MissingFieldError, ValidationError
from nestegglab.core.model import AssetAllocation, PersonProfile


class TestPersonProfile:
    def test_age_and_end_month(self, make_person):
        person = make_person(life_expectancy=90)
        assert person.birth_year == 1960
        assert person.age_on(date(2025, 3, 14)) == 64
        assert person.age_on(date(2025, 3, 15)) == 65
        assert person.projected_end_month == date(2050, 3, 1)
        assert person.retirement_age == 64

    def test_retirement_must_follow_birth(self):
        with pytest.raises(ValidationError):
            PersonProfile(
                id="x", name="X", date_of_birth=date(1960, 1, 1), retirement_date=date(1950, 1, 1)
            )

    @pytest.mark.parametrize("life_expectancy", [0, 121])
    def test_life_expectancy_bounds(self, make_person, life_expectancy):
        with pytest.raises(ValidationError):
            make_person(life_expectancy=life_expectancy)

    def test_id_required(self, make_person):
        with pytest.raises(MissingFieldError):
            PersonProfile(
                id=" ", name="X", date_of_birth=date(1960, 1, 1), retirement_date=date(2025, 1, 1)
            )


class TestAssetAllocation:
    def test_must_sum_to_hundred(self):
        with pytest.raises(ValidationError):
            AssetAllocation.of(50, 30, 10)

    def test_blended_return(self):
        assert AssetAllocation.balanced().blended_return(
            Decimal("0.07"), Decimal("0.04"), Decimal("0.02")
        ) == Decimal("0.0580")

    def test_dominant_class(self):
        assert AssetAllocation.of(20, 30, 50).dominant_class() == "cash"
        assert AssetAllocation.of(50, 50).dominant_class() == "stocks"


class TestInvestmentAccount:
    def test_return_rate_by_phase(self, make_account):
        account = make_account(
            "ira",
            pre_retirement_return=Decimal("0.06"),
            post_retirement_return=Decimal("0.04"),
        )
        assert account.return_rate(retired=False) == Decimal("0.06")
        assert account.return_rate(retired=True) == Decimal("0.04")

    def test_post_retirement_falls_back_to_pre(self, make_account):
        account = make_account("ira", pre_retirement_return=Decimal("0.06"))
        assert account.return_rate(retired=True) == Decimal("0.06")

    def test_allocation_based_return(self, make_account):
        account = make_account("ira")
        assert account.uses_allocation_based_return
        assert account.return_rate(retired=False) == Decimal("0.0580")

    def test_return_out_of_range(self, make_account):
        with pytest.raises(ValidationError):
            make_account("ira", pre_retirement_return=Decimal("0.6"))

    def test_negative_balance_rejected(self, make_account):
        with pytest.raises(ValidationError):
            make_account("ira", balance="-1")

    def test_tax_attributes(self, make_account):
        ira = make_account("ira", AccountType.TRADITIONAL_IRA)
        roth = make_account("roth", AccountType.ROTH_IRA)
        assert ira.tax_treatment is TaxTreatment.PRE_TAX
        assert ira.subject_to_rmd
        assert not roth.subject_to_rmd


class TestPortfolio:
    def test_duplicate_accounts_rejected(self, make_account, make_portfolio):
        with pytest.raises(ValidationError):
            make_portfolio([make_account("a"), make_account("a")])

    def test_queries(self, mixed_accounts, make_portfolio):
        portfolio = make_portfolio(mixed_accounts)
        assert portfolio.total_balance == Decimal("1000000.00")
        assert portfolio.find_account("roth").account_type is AccountType.ROTH_IRA
        assert portfolio.find_account("missing") is None
        assert [a.id for a in portfolio.accounts_by_tax_treatment(TaxTreatment.PRE_TAX)] == ["ira"]
        assert portfolio.retirement_month() == date(2025, 1, 1)

    def test_blended_return_rate_empty(self, make_portfolio):
        assert make_portfolio([]).blended_return_rate(retired=True) == Decimal("0")


class TestEnums:
    def test_account_type_from_name(self):
        assert AccountType.from_name("roth_ira") is AccountType.ROTH_IRA
        assert AccountType.from_name(" Traditional_401K ") is AccountType.TRADITIONAL_401K
        with pytest.raises(ValueError):
            AccountType.from_name("savings")

    def test_phase_properties(self):
        assert SimulationPhase.ACCUMULATION.allows_contributions
        assert not SimulationPhase.TRANSITION.expects_withdrawals
        assert SimulationPhase.SURVIVOR.expects_withdrawals
        assert SimulationPhase.TRANSITION.is_retired

    def test_mode_properties(self):
        assert not SimulationMode.DETERMINISTIC.is_stochastic
        assert SimulationMode.HISTORICAL.is_stochastic
        assert SimulationMode.HISTORICAL.uses_historical_data

    def test_spending_phase_for_age(self):
        assert SpendingPhase.for_age(70) is SpendingPhase.GO_GO
        assert SpendingPhase.for_age(75) is SpendingPhase.SLOW_GO
        assert SpendingPhase.for_age(90) is SpendingPhase.NO_GO

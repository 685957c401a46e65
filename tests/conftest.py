"""
Shared builders for NestEggLab tests.

Fixtures return small factory functions so each test states only the
values it cares about.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from nestegglab.core.context import SpendingContext
from nestegglab.core.enums import AccountType
from nestegglab.core.model import AssetAllocation, InvestmentAccount, PersonProfile, Portfolio
from nestegglab.core.state import SimulationState


@pytest.fixture
def make_person():
    """Factory for PersonProfile with sensible defaults (born 1960, retires 2025)."""

    def _make(
        id="alex",
        date_of_birth=date(1960, 3, 15),
        retirement_date=date(2025, 1, 1),
        life_expectancy=95,
        **kwargs,
    ):
        return PersonProfile(
            id=id,
            name=id.title(),
            date_of_birth=date_of_birth,
            retirement_date=retirement_date,
            life_expectancy=life_expectancy,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_account():
    """Factory for InvestmentAccount; balances are given as strings or numbers."""

    def _make(id, account_type=AccountType.TRADITIONAL_IRA, balance="100000", **kwargs):
        return InvestmentAccount(
            id=id,
            name=id.replace("-", " ").title(),
            account_type=account_type,
            balance=Decimal(str(balance)),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_portfolio(make_person):
    def _make(accounts, owner=None, id="main"):
        return Portfolio(id=id, owner=owner or make_person(), accounts=tuple(accounts))

    return _make


@pytest.fixture
def mixed_accounts(make_account):
    """Taxable, pre-tax and Roth accounts totalling 1,000,000."""
    return [
        make_account("brokerage", AccountType.TAXABLE_BROKERAGE, "200000"),
        make_account("ira", AccountType.TRADITIONAL_IRA, "500000"),
        make_account("roth", AccountType.ROTH_IRA, "300000"),
    ]


@pytest.fixture
def bucket_accounts(make_account):
    return [
        make_account(
            "cash",
            AccountType.TAXABLE_BROKERAGE,
            "60000",
            allocation=AssetAllocation.all_cash(),
        ),
        make_account(
            "bonds", AccountType.TRADITIONAL_IRA, "200000", allocation=AssetAllocation.all_bonds()
        ),
        make_account(
            "stocks", AccountType.ROTH_IRA, "700000", allocation=AssetAllocation.all_stocks()
        ),
    ]


@pytest.fixture
def make_context():
    """
    Factory for SpendingContext built from real account state.

    ``view`` overrides fields of the SimulationView (initial_balance,
    prior_year_spending, prior_year_return, last_ratchet_month, ...); other
    keyword arguments go to SpendingContext.
    """

    def _make(
        accounts,
        month=date(2025, 1, 1),
        age=65,
        birth_year=1960,
        retirement_start_date=date(2025, 1, 1),
        view=None,
        **kwargs,
    ):
        snapshot = SimulationState(accounts).snapshot(month)
        if view:
            snapshot = replace(snapshot, **view)
        return SpendingContext(
            simulation=snapshot,
            date=month,
            age=age,
            birth_year=birth_year,
            retirement_start_date=retirement_start_date,
            **kwargs,
        )

    return _make

"""
Read-only projections of simulation state handed to strategies.

Strategies only ever receive these frozen value objects, never the mutable
``SimulationState``. A fresh view is built whenever one is needed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from .enums import AccountType, TaxTreatment
from .flags import SimulationFlags
from .model import AssetAllocation
from .money import money


@dataclass(frozen=True)
class AccountSnapshot:
    """Point-in-time view of one account."""

    account_id: str
    account_name: str
    account_type: AccountType
    balance: Decimal
    tax_treatment: TaxTreatment
    subject_to_rmd: bool
    allocation: AssetAllocation

    @property
    def has_balance(self) -> bool:
        return self.balance > 0


@dataclass(frozen=True)
class SimulationView:
    """
    Immutable snapshot of a run's state at the start of a month.

    Attributes:
        accounts: Per-account snapshots, in portfolio order
        total_balance: Sum of all account balances
        initial_balance: Total balance when the run started
        prior_year_spending: Withdrawals during the previous calendar year
        prior_year_return: Previous calendar year's return as a fraction
        last_ratchet_month: Month of the last guardrails spending increase
        cumulative_withdrawals: Withdrawals since the run started
        high_water_mark: Highest total balance seen so far
        flags: Event flags in effect
    """

    accounts: tuple[AccountSnapshot, ...]
    total_balance: Decimal
    initial_balance: Decimal
    prior_year_spending: Decimal = Decimal("0.00")
    prior_year_return: Decimal = Decimal("0")
    last_ratchet_month: date | None = None
    cumulative_withdrawals: Decimal = Decimal("0.00")
    high_water_mark: Decimal = Decimal("0.00")
    flags: SimulationFlags = field(default_factory=SimulationFlags.initial)

    def account_balance(self, account_id: str) -> Decimal:
        """Balance of one account; zero for an unknown id."""
        for snapshot in self.accounts:
            if snapshot.account_id == account_id:
                return snapshot.balance
        return money(0)

    def get_account(self, account_id: str) -> AccountSnapshot | None:
        return next((a for a in self.accounts if a.account_id == account_id), None)

    @property
    def account_balances(self) -> dict[str, Decimal]:
        return {a.account_id: a.balance for a in self.accounts}

"""
Mutable state owned by exactly one simulation run.

``SimulationState`` is the root of truth while a run is in progress. Every
balance change goes through it so the derived counters (cumulative
withdrawals, high-water mark, per-year aggregates) cannot drift from the
account balances. Strategies never see this object; they receive the
``SimulationView`` built by :meth:`SimulationState.snapshot`.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .enums import AccountType
from .errors import MissingFieldError, ValidationError
from .flags import SimulationFlags
from .model import InvestmentAccount, Portfolio
from .money import ZERO, money, rate, to_decimal
from .results import AccountMonthlyFlow, MonthlySnapshot
from .view import AccountSnapshot, SimulationView

logger = logging.getLogger(__name__)


class AccountState:
    """
    Running balance of one account during a run.

    Balances never go negative: withdrawals are capped at the available balance
    and a loss larger than the balance floors it at zero.

    **Example Usage:**
        ```python
        state = AccountState(account)            # balance 100.00
        state.withdraw(Decimal("250"))           # -> Decimal("100.00"), balance 0.00
        ```
    """

    def __init__(self, account: InvestmentAccount, balance: Decimal | None = None):
        self.account = account
        self._balance = ZERO
        self.set_balance(account.balance if balance is None else balance)

    @property
    def account_id(self) -> str:
        return self.account.id

    @property
    def account_name(self) -> str:
        return self.account.name

    @property
    def account_type(self) -> AccountType:
        return self.account.account_type

    @property
    def balance(self) -> Decimal:
        return self._balance

    def deposit(self, amount) -> None:
        """Add money to the account. ``None`` and negatives are rejected."""
        if amount is None:
            raise MissingFieldError("amount")
        amount = money(amount)
        if amount < 0:
            raise ValidationError(f"deposit cannot be negative (got {amount})", "amount")
        self._balance = money(self._balance + amount)

    def withdraw(self, amount) -> Decimal:
        """Withdraw up to ``amount`` and return what was actually taken."""
        amount = money(amount)
        if amount < 0:
            raise ValidationError(f"withdrawal cannot be negative (got {amount})", "amount")
        if amount == 0:
            return ZERO
        actual = min(amount, self._balance)
        self._balance = money(self._balance - actual)
        return actual

    def apply_return(self, period_rate) -> Decimal:
        """
        Grow (or shrink) the balance by ``period_rate`` and return the change.

        A loss that would take the balance below zero is capped, and the
        returned amount is the capped loss.
        """
        if self._balance == 0:
            return ZERO
        change = money(self._balance * to_decimal(period_rate))
        new_balance = self._balance + change
        if new_balance < 0:
            actual = -self._balance
            self._balance = ZERO
            return money(actual)
        self._balance = money(new_balance)
        return change

    def set_balance(self, value) -> None:
        value = money(value)
        if value < 0:
            raise ValidationError(f"balance cannot be negative (got {value})", "balance")
        self._balance = value

    @property
    def has_balance(self) -> bool:
        return self._balance > 0

    @property
    def is_depleted(self) -> bool:
        return self._balance == 0

    def to_snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            account_id=self.account.id,
            account_name=self.account.name,
            account_type=self.account.account_type,
            balance=self._balance,
            tax_treatment=self.account.tax_treatment,
            subject_to_rmd=self.account.subject_to_rmd,
            allocation=self.account.allocation,
        )

    def __repr__(self) -> str:
        return f"AccountState({self.account.id!r}, balance={self._balance})"


@dataclass
class _YearTotals:
    withdrawals: Decimal = ZERO
    returns: Decimal = ZERO
    ending_balance: Decimal = ZERO


class SimulationState:
    """
    Mutable state for one simulation run.

    Holds every account's running balance, the recorded monthly history, the
    fixed initial balance, the high-water mark, cumulative withdrawals, the
    last guardrails ratchet month, year-to-date contribution tracking and the
    current event flags.

    **Key Invariants:**
    - ``calculate_total_balance()`` equals the sum of all account balances
    - ``high_water_mark`` never decreases
    - ``cumulative_withdrawals`` never decreases
    """

    def __init__(
        self,
        accounts: Iterable[InvestmentAccount],
        flags: SimulationFlags | None = None,
    ):
        self._accounts: dict[str, AccountState] = {}
        for account in accounts:
            if account.id in self._accounts:
                raise ValidationError(f"duplicate account id {account.id!r}", "accounts")
            self._accounts[account.id] = AccountState(account)
        self._initial_balance = self.calculate_total_balance()
        self._high_water_mark = self._initial_balance
        self._cumulative_withdrawals = ZERO
        self._history: list[MonthlySnapshot] = []
        self._years: dict[int, _YearTotals] = {}
        self._last_ratchet_month: date | None = None
        self._flags = flags or SimulationFlags.initial()
        self._ytd_contributions: dict[tuple[str, int], Decimal] = {}

    @classmethod
    def from_portfolios(
        cls, portfolios: Iterable[Portfolio], flags: SimulationFlags | None = None
    ) -> SimulationState:
        accounts = [a for p in portfolios for a in p.accounts]
        return cls(accounts, flags)

    # --- accounts -----------------------------------------------------------

    def _account(self, account_id: str) -> AccountState:
        try:
            return self._accounts[account_id]
        except KeyError as exc:
            raise ValidationError(f"unknown account {account_id!r}", "account_id") from exc

    def get_account(self, account_id: str) -> AccountState:
        return self._account(account_id)

    @property
    def account_ids(self) -> list[str]:
        return list(self._accounts)

    def account_states(self) -> list[AccountState]:
        return list(self._accounts.values())

    def withdraw_from_account(self, account_id: str, amount) -> Decimal:
        actual = self._account(account_id).withdraw(amount)
        self._cumulative_withdrawals = money(self._cumulative_withdrawals + actual)
        self._update_high_water_mark()
        return actual

    def deposit_to_account(self, account_id: str, amount) -> None:
        self._account(account_id).deposit(amount)
        self._update_high_water_mark()

    def update_account_balance(self, account_id: str, value) -> None:
        self._account(account_id).set_balance(value)
        self._update_high_water_mark()

    def apply_returns(
        self, period_rate: Decimal | Mapping[str, Decimal]
    ) -> dict[str, Decimal]:
        """
        Apply one period's return to every account.

        ``period_rate`` is either a single rate for all accounts or a mapping of
        account id to rate (accounts missing from the mapping earn nothing).
        Returns the actual return per account.
        """
        results: dict[str, Decimal] = {}
        for account_id, account in self._accounts.items():
            if isinstance(period_rate, Mapping):
                account_rate = period_rate.get(account_id, Decimal("0"))
            else:
                account_rate = period_rate
            results[account_id] = account.apply_return(account_rate)
        self._update_high_water_mark()
        return results

    def apply_withdrawals(self, plan) -> dict[str, AccountMonthlyFlow]:
        """
        Execute a SpendingPlan's withdrawal lines in the order given.

        Returns one flow per account touched, with its starting balance and
        the total actually withdrawn.
        """
        starts: dict[str, Decimal] = {}
        withdrawn: dict[str, Decimal] = {}
        for line in plan.account_withdrawals:
            account = self._account(line.account_id)
            starts.setdefault(line.account_id, account.balance)
            actual = self.withdraw_from_account(line.account_id, line.amount)
            withdrawn[line.account_id] = money(
                withdrawn.get(line.account_id, ZERO) + actual
            )
        return {
            account_id: AccountMonthlyFlow.build(
                account_id,
                self._accounts[account_id].account_name,
                starting_balance=starts[account_id],
                withdrawals=amount,
            )
            for account_id, amount in withdrawn.items()
        }

    def calculate_total_balance(self) -> Decimal:
        return money(sum((a.balance for a in self._accounts.values()), Decimal("0")))

    def _update_high_water_mark(self) -> None:
        total = self.calculate_total_balance()
        if total > self._high_water_mark:
            self._high_water_mark = total

    # --- derived metrics ----------------------------------------------------

    @property
    def initial_balance(self) -> Decimal:
        return self._initial_balance

    @property
    def high_water_mark(self) -> Decimal:
        return self._high_water_mark

    @property
    def cumulative_withdrawals(self) -> Decimal:
        return self._cumulative_withdrawals

    def record_history(self, snapshot: MonthlySnapshot) -> None:
        self._history.append(snapshot)
        totals = self._years.setdefault(snapshot.month.year, _YearTotals())
        totals.withdrawals = money(totals.withdrawals + snapshot.total_withdrawals)
        totals.returns = money(totals.returns + snapshot.total_returns)
        totals.ending_balance = snapshot.total_portfolio_balance

    @property
    def history(self) -> tuple[MonthlySnapshot, ...]:
        return tuple(self._history)

    def get_prior_year_spending(self, month: date) -> Decimal:
        """Total withdrawals during the calendar year before ``month``."""
        totals = self._years.get(month.year - 1)
        return totals.withdrawals if totals else ZERO

    def get_prior_year_return(self, month: date) -> Decimal:
        """
        Prior calendar year's return as a fraction (6 places).

        The denominator is the balance at the end of the year before that,
        falling back to the initial balance; a zero denominator yields zero.
        """
        totals = self._years.get(month.year - 1)
        if totals is None:
            return rate(0)
        before = self._years.get(month.year - 2)
        denominator = before.ending_balance if before else self._initial_balance
        if denominator == 0:
            return rate(0)
        return rate(totals.returns / denominator)

    def record_ratchet(self, month: date) -> None:
        self._last_ratchet_month = month

    @property
    def last_ratchet_month(self) -> date | None:
        return self._last_ratchet_month

    # --- contributions ------------------------------------------------------

    def record_contribution(self, person_id: str, year: int, amount) -> None:
        key = (person_id, year)
        self._ytd_contributions[key] = money(
            self._ytd_contributions.get(key, ZERO) + money(amount)
        )

    def ytd_contributions(self, person_id: str, year: int) -> Decimal:
        return self._ytd_contributions.get((person_id, year), ZERO)

    # --- flags --------------------------------------------------------------

    @property
    def flags(self) -> SimulationFlags:
        return self._flags

    def update_flags(self, flags: SimulationFlags) -> None:
        if flags is not self._flags:
            logger.debug("flags changed: %s -> %s", self._flags, flags)
        self._flags = flags

    @property
    def is_survivor_mode(self) -> bool:
        return self._flags.survivor_mode

    def set_survivor_mode(self, enabled: bool) -> None:
        self.update_flags(self._flags.with_survivor_mode(enabled))

    # --- views --------------------------------------------------------------

    def snapshot(self, month: date) -> SimulationView:
        """Build a fresh read-only view for strategies evaluating ``month``."""
        return SimulationView(
            accounts=tuple(a.to_snapshot() for a in self._accounts.values()),
            total_balance=self.calculate_total_balance(),
            initial_balance=self._initial_balance,
            prior_year_spending=self.get_prior_year_spending(month),
            prior_year_return=self.get_prior_year_return(month),
            last_ratchet_month=self._last_ratchet_month,
            cumulative_withdrawals=self._cumulative_withdrawals,
            high_water_mark=self._high_water_mark,
            flags=self._flags,
        )

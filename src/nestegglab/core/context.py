"""
Inputs and outputs of the spending and contribution decision layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from .enums import AccountType, FilingStatus, TaxTreatment
from .errors import ValidationError, require
from .money import ZERO, money, rate, safe_divide, to_decimal
from .utils import months_between
from .view import SimulationView


@dataclass(frozen=True)
class SpendingContext:
    """
    Everything a spending strategy may look at for one month.

    Attributes:
        simulation: Read-only view of the run at the start of the month
        date: The month being simulated
        total_expenses: Expenses due this month
        other_income: Non-portfolio income this month (Social Security, pensions, ...)
        age: Primary person's age
        birth_year: Primary person's birth year (drives the RMD start age)
        retirement_start_date: First month of retirement
        current_taxable_income: Annualised taxable income before withdrawals
        filing_status: Tax filing status
        strategy_params: Free-form parameters for strategies and sequencers
    """

    simulation: SimulationView
    date: date
    total_expenses: Decimal = ZERO
    other_income: Decimal = ZERO
    age: int = 0
    birth_year: int = 0
    retirement_start_date: date | None = None
    current_taxable_income: Decimal = ZERO
    filing_status: FilingStatus = FilingStatus.SINGLE
    strategy_params: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        require(self.simulation, "simulation")
        require(self.date, "date")
        object.__setattr__(self, "total_expenses", money(self.total_expenses))
        object.__setattr__(self, "other_income", money(self.other_income))
        object.__setattr__(
            self, "current_taxable_income", money(self.current_taxable_income)
        )
        if self.total_expenses < 0:
            raise ValidationError("cannot be negative", "total_expenses")
        if self.other_income < 0:
            raise ValidationError("cannot be negative", "other_income")
        object.__setattr__(
            self, "strategy_params", MappingProxyType(dict(self.strategy_params))
        )

    @property
    def months_in_retirement(self) -> int:
        if self.retirement_start_date is None:
            return 0
        return max(0, months_between(self.retirement_start_date, self.date))

    @property
    def years_in_retirement(self) -> int:
        return self.months_in_retirement // 12

    @property
    def income_gap(self) -> Decimal:
        return money(max(self.total_expenses - self.other_income, ZERO))

    @property
    def current_portfolio_balance(self) -> Decimal:
        return self.simulation.total_balance

    @property
    def initial_portfolio_balance(self) -> Decimal:
        return self.simulation.initial_balance

    @property
    def current_withdrawal_rate(self) -> Decimal:
        """Prior-year spending over the current balance (4 places)."""
        return safe_divide(
            self.simulation.prior_year_spending, self.current_portfolio_balance, 4
        )

    def get_strategy_param(self, key: str, default: Any = None) -> Any:
        return self.strategy_params.get(key, default)

    def with_simulation(self, view: SimulationView) -> SpendingContext:
        return replace(self, simulation=view)


@dataclass(frozen=True)
class AccountWithdrawal:
    """One executed (or planned) withdrawal line."""

    account_id: str
    account_name: str
    account_type: AccountType
    amount: Decimal
    prior_balance: Decimal
    new_balance: Decimal
    tax_treatment: TaxTreatment

    def __post_init__(self):
        for name in ("amount", "prior_balance", "new_balance"):
            value = money(getattr(self, name))
            if value < 0:
                raise ValidationError("cannot be negative", name)
            object.__setattr__(self, name, value)

    @property
    def is_taxable(self) -> bool:
        return self.tax_treatment is TaxTreatment.PRE_TAX

    @property
    def is_depleted(self) -> bool:
        return self.new_balance == 0

    @property
    def is_partial(self) -> bool:
        return self.amount < self.prior_balance


@dataclass(frozen=True)
class SpendingPlan:
    """
    Outcome of a spending decision for one month.

    Attributes:
        target_withdrawal: Amount the plan aimed to withdraw
        adjusted_withdrawal: Amount actually covered by the withdrawal lines
        account_withdrawals: Ordered withdrawal lines
        meets_target: True when the lines cover the target
        shortfall: Target minus executed amount, floored at zero
        strategy_used: Name of the strategy that produced the target
        metadata: Diagnostic values (rates, RMD figures, rule traces)
    """

    target_withdrawal: Decimal = ZERO
    adjusted_withdrawal: Decimal = ZERO
    account_withdrawals: tuple[AccountWithdrawal, ...] = ()
    meets_target: bool = True
    shortfall: Decimal = ZERO
    strategy_used: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "target_withdrawal", money(self.target_withdrawal))
        object.__setattr__(self, "adjusted_withdrawal", money(self.adjusted_withdrawal))
        object.__setattr__(self, "shortfall", money(self.shortfall))
        object.__setattr__(self, "account_withdrawals", tuple(self.account_withdrawals))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        if self.target_withdrawal < 0:
            raise ValidationError("cannot be negative", "target_withdrawal")

    @classmethod
    def no_withdrawal_needed(cls, strategy_name: str, **metadata) -> SpendingPlan:
        return cls(strategy_used=strategy_name, metadata=metadata)

    @classmethod
    def for_target(
        cls, target, strategy_name: str, available=None, **metadata
    ) -> SpendingPlan:
        """
        Strategy output: a target with no withdrawal lines yet.

        ``available`` (the portfolio balance) sets ``adjusted_withdrawal`` and
        ``meets_target`` the way a strategy sees them, before sequencing.
        """
        target = money(max(to_decimal(target), ZERO))
        if available is None:
            available = target
        available = money(available)
        meets = available >= target
        adjusted = target if meets else max(available, ZERO)
        return cls(
            target_withdrawal=target,
            adjusted_withdrawal=adjusted,
            meets_target=meets,
            shortfall=money(target - adjusted),
            strategy_used=strategy_name,
            metadata=metadata,
        )

    @property
    def total_withdrawn(self) -> Decimal:
        return money(sum((w.amount for w in self.account_withdrawals), Decimal("0")))

    @property
    def total_taxable_amount(self) -> Decimal:
        return money(
            sum((w.amount for w in self.account_withdrawals if w.is_taxable), Decimal("0"))
        )

    @property
    def total_tax_free_amount(self) -> Decimal:
        return money(self.total_withdrawn - self.total_taxable_amount)

    @property
    def depleted_account_count(self) -> int:
        return sum(1 for w in self.account_withdrawals if w.is_depleted)

    def with_metadata(self, **extra) -> SpendingPlan:
        merged = dict(self.metadata)
        merged.update(extra)
        return replace(self, metadata=merged)


@dataclass(frozen=True)
class ContributionAllocation:
    """
    Result of routing a contribution across accounts.

    Over-allocation and unknown accounts are reported through ``unallocated``
    and ``warnings``; routing never raises for them.
    """

    allocations: Mapping[str, Decimal] = field(default_factory=dict)
    warnings: tuple[str, ...] = ()
    total_allocated: Decimal = ZERO
    unallocated: Decimal = ZERO

    def __post_init__(self):
        object.__setattr__(self, "allocations", MappingProxyType(dict(self.allocations)))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    @classmethod
    def empty(cls, requested) -> ContributionAllocation:
        return cls(
            warnings=("No accounts available for allocation",),
            unallocated=money(requested),
        )

    def amount_for(self, account_id: str) -> Decimal:
        return self.allocations.get(account_id, ZERO)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def has_unallocated(self) -> bool:
        return self.unallocated > 0

    @property
    def is_fully_allocated(self) -> bool:
        return not self.has_unallocated and not self.has_warnings

    @property
    def total_requested(self) -> Decimal:
        return money(self.total_allocated + self.unallocated)

    @property
    def account_count(self) -> int:
        return sum(1 for amount in self.allocations.values() if amount > 0)


class AllocationBuilder:
    """Accumulates allocation lines and warnings into a ContributionAllocation."""

    def __init__(self):
        self._allocations: dict[str, Decimal] = {}
        self._warnings: list[str] = []
        self._unallocated = ZERO

    def add(self, account_id: str, amount) -> AllocationBuilder:
        amount = money(amount)
        if amount > 0:
            self._allocations[account_id] = money(
                self._allocations.get(account_id, ZERO) + amount
            )
        return self

    def warn(self, message: str) -> AllocationBuilder:
        if message and message.strip():
            self._warnings.append(message)
        return self

    def unallocated(self, amount) -> AllocationBuilder:
        self._unallocated = money(amount)
        return self

    def build(self) -> ContributionAllocation:
        total = money(sum(self._allocations.values(), Decimal("0")))
        return ContributionAllocation(
            allocations=self._allocations,
            warnings=tuple(self._warnings),
            total_allocated=total,
            unallocated=self._unallocated,
        )


def rate_param(context: SpendingContext, key: str, default) -> Decimal:
    """Read a rate-like strategy parameter as Decimal."""
    return rate(to_decimal(context.get_strategy_param(key, default)), 6)

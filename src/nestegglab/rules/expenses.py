"""
Budget and monthly expense calculation.

Each expense is inflated from the budget's base year at the rate of its
inflation type. Phase and event modifiers are applied on top: the spending
curve to discretionary expenses once retired, the survivor multiplier in
survivor mode, and contingency expenses only while their contingency is active.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from nestegglab.core.enums import (
    ExpenseCategoryGroup,
    InflationType,
    SimulationPhase,
    SpendingPhase,
)
from nestegglab.core.errors import ValidationError, require
from nestegglab.core.flags import SimulationFlags
from nestegglab.core.money import ONE, ZERO, money, to_decimal
from nestegglab.core.utils import first_of_month


DEFAULT_INFLATION_RATES: dict[InflationType, Decimal] = {
    InflationType.GENERAL: Decimal("0.025"),
    InflationType.HEALTHCARE: Decimal("0.055"),
    InflationType.HOUSING: Decimal("0.03"),
    InflationType.LTC: Decimal("0.04"),
    InflationType.NONE: Decimal("0"),
}
DEFAULT_SURVIVOR_MULTIPLIER = Decimal("0.75")


@dataclass(frozen=True)
class RecurringExpense:
    """
    A monthly expense in base-year dollars.

    ``contingency`` names the contingency flag (e.g. "LTC") that must be
    active for the expense to count.
    """

    name: str
    group: ExpenseCategoryGroup
    monthly_amount: Decimal
    inflation: InflationType = InflationType.GENERAL
    start: date | None = None
    end: date | None = None
    contingency: str | None = None

    def __post_init__(self):
        require(self.name, "name")
        amount = money(self.monthly_amount)
        if amount < 0:
            raise ValidationError(f"cannot be negative (got {amount})", "monthly_amount")
        object.__setattr__(self, "monthly_amount", amount)
        if self.start is not None:
            object.__setattr__(self, "start", first_of_month(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", first_of_month(self.end))
        if self.start and self.end and self.end < self.start:
            raise ValidationError("end must not precede start", "end")

    def is_active(self, month: date) -> bool:
        if self.start is not None and month < self.start:
            return False
        return self.end is None or month <= self.end


@dataclass(frozen=True)
class OneTimeExpense:
    """A single expense in the given month (nominal dollars, not inflated)."""

    name: str
    group: ExpenseCategoryGroup
    amount: Decimal
    month: date

    def __post_init__(self):
        require(self.name, "name")
        require(self.month, "month")
        amount = money(self.amount)
        if amount < 0:
            raise ValidationError(f"cannot be negative (got {amount})", "amount")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "month", first_of_month(self.month))


@dataclass(frozen=True)
class Budget:
    base_year: int
    recurring: tuple[RecurringExpense, ...] = ()
    one_time: tuple[OneTimeExpense, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "recurring", tuple(self.recurring))
        object.__setattr__(self, "one_time", tuple(self.one_time))

    @classmethod
    def empty(cls, base_year: int) -> Budget:
        return cls(base_year)

    @property
    def base_monthly_total(self) -> Decimal:
        return money(
            sum(
                (e.monthly_amount for e in self.recurring if e.contingency is None),
                Decimal("0"),
            )
        )


@dataclass(frozen=True)
class ExpenseBreakdown:
    """Month total plus totals by category group (lower-case group name)."""

    total: Decimal = ZERO
    by_category: Mapping[str, Decimal] = field(default_factory=dict)

    @classmethod
    def zero(cls) -> ExpenseBreakdown:
        return cls()

    def for_group(self, group: ExpenseCategoryGroup) -> Decimal:
        return self.by_category.get(group.name.lower(), ZERO)


@dataclass(frozen=True)
class SpendingCurveModifier:
    """
    Go-go / slow-go / no-go multipliers by age.

    The defaults are 1.00 before 75, 0.80 from 75 and 0.50 from 85.
    """

    slow_go_age: int = SpendingPhase.SLOW_GO.default_start_age
    no_go_age: int = SpendingPhase.NO_GO.default_start_age
    go_go_multiplier: Decimal = SpendingPhase.GO_GO.default_multiplier
    slow_go_multiplier: Decimal = SpendingPhase.SLOW_GO.default_multiplier
    no_go_multiplier: Decimal = SpendingPhase.NO_GO.default_multiplier

    def __post_init__(self):
        if self.no_go_age < self.slow_go_age:
            raise ValidationError("no-go age must not precede slow-go age", "no_go_age")
        for name in ("go_go_multiplier", "slow_go_multiplier", "no_go_multiplier"):
            value = to_decimal(getattr(self, name))
            if value < 0:
                raise ValidationError(f"cannot be negative (got {value})", name)
            object.__setattr__(self, name, value)

    def phase_for(self, age: int) -> SpendingPhase:
        if age < self.slow_go_age:
            return SpendingPhase.GO_GO
        if age < self.no_go_age:
            return SpendingPhase.SLOW_GO
        return SpendingPhase.NO_GO

    def multiplier_for(self, age: int) -> Decimal:
        return {
            SpendingPhase.GO_GO: self.go_go_multiplier,
            SpendingPhase.SLOW_GO: self.slow_go_multiplier,
            SpendingPhase.NO_GO: self.no_go_multiplier,
        }[self.phase_for(age)]


class DefaultExpenseCalculator:
    """
    Monthly expense totals for a budget.

    Args:
        inflation_rates: Annual rate per inflation type (missing types use GENERAL)
        survivor_multiplier: Share of essential and discretionary spending kept
            in survivor mode
        spending_curve: Modifier applied to discretionary expenses once retired;
            None disables it
    """

    def __init__(
        self,
        inflation_rates: Mapping[InflationType, Decimal] | None = None,
        survivor_multiplier=DEFAULT_SURVIVOR_MULTIPLIER,
        spending_curve: SpendingCurveModifier | None = None,
    ):
        rates = dict(DEFAULT_INFLATION_RATES)
        rates.update({k: to_decimal(v) for k, v in (inflation_rates or {}).items()})
        self.inflation_rates = rates
        self.survivor_multiplier = to_decimal(survivor_multiplier, "survivor_multiplier")
        self.spending_curve = spending_curve

    @classmethod
    def from_levers(cls, levers) -> DefaultExpenseCalculator:
        return cls(
            inflation_rates=levers.inflation_rates,
            survivor_multiplier=levers.survivor_multiplier,
            spending_curve=levers.spending_curve,
        )

    def rate_for(self, inflation: InflationType) -> Decimal:
        if inflation is InflationType.NONE:
            return Decimal("0")
        return self.inflation_rates.get(
            inflation, self.inflation_rates[InflationType.GENERAL]
        )

    def inflation_factor(self, inflation: InflationType, base_year: int, year: int):
        years = year - base_year
        if years <= 0:
            return ONE
        return (ONE + self.rate_for(inflation)) ** years

    def calculate(
        self,
        budget: Budget | None,
        month: date,
        phase: SimulationPhase,
        age: int,
        flags: SimulationFlags | None = None,
    ) -> ExpenseBreakdown:
        if budget is None:
            return ExpenseBreakdown.zero()
        month = first_of_month(month)
        flags = flags or SimulationFlags.initial()
        totals: dict[str, Decimal] = {}

        for expense in budget.recurring:
            if not expense.is_active(month):
                continue
            if expense.contingency and not flags.is_contingency_active(expense.contingency):
                continue
            amount = expense.monthly_amount * self.inflation_factor(
                expense.inflation, budget.base_year, month.year
            )
            amount *= self._modifier(expense.group, phase, age, flags)
            key = expense.group.name.lower()
            totals[key] = money(totals.get(key, ZERO) + money(amount))

        for expense in budget.one_time:
            if expense.month == month:
                key = expense.group.name.lower()
                totals[key] = money(totals.get(key, ZERO) + expense.amount)

        total = money(sum(totals.values(), Decimal("0")))
        return ExpenseBreakdown(total=total, by_category=totals)

    def _modifier(self, group, phase: SimulationPhase, age: int, flags) -> Decimal:
        factor = ONE
        if (
            group is ExpenseCategoryGroup.DISCRETIONARY
            and phase.is_retired
            and self.spending_curve is not None
        ):
            factor *= self.spending_curve.multiplier_for(age)
        if flags.survivor_mode and group in (
            ExpenseCategoryGroup.ESSENTIAL,
            ExpenseCategoryGroup.DISCRETIONARY,
        ):
            factor *= self.survivor_multiplier
        return factor

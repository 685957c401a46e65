"""
Result containers produced by a simulation run.

A run yields one immutable ``MonthlySnapshot`` per simulated month, collected
in a ``TimeSeries``. Annual aggregation and pandas export live here as well.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType

import pandas as pd

from .enums import SimulationPhase
from .errors import ValidationError
from .money import ZERO, money, rate, safe_divide


def _sum(values: Iterable[Decimal]) -> Decimal:
    return money(sum(values, Decimal("0")))


def _period(month: date) -> pd.Period:
    return pd.Period(year=month.year, month=month.month, freq="M")


@dataclass(frozen=True)
class AccountMonthlyFlow:
    """
    One account's activity for one month.

    ``ending_balance`` is always derived as
    ``starting_balance + contributions - withdrawals + returns``; use
    :meth:`build` rather than passing an ending balance.
    """

    account_id: str
    account_name: str
    starting_balance: Decimal
    contributions: Decimal
    withdrawals: Decimal
    returns: Decimal
    ending_balance: Decimal

    def __post_init__(self):
        expected = money(
            self.starting_balance + self.contributions - self.withdrawals + self.returns
        )
        if money(self.ending_balance) != expected:
            raise ValidationError(
                f"ending balance {self.ending_balance} != {expected}", "ending_balance"
            )

    @classmethod
    def build(
        cls,
        account_id: str,
        account_name: str,
        starting_balance=ZERO,
        contributions=ZERO,
        withdrawals=ZERO,
        returns=ZERO,
    ) -> AccountMonthlyFlow:
        start = money(starting_balance)
        contrib = money(contributions)
        withdrawn = money(withdrawals)
        ret = money(returns)
        return cls(
            account_id=account_id,
            account_name=account_name or account_id,
            starting_balance=start,
            contributions=contrib,
            withdrawals=withdrawn,
            returns=ret,
            ending_balance=money(start + contrib - withdrawn + ret),
        )

    @property
    def net_flow(self) -> Decimal:
        return money(self.ending_balance - self.starting_balance)

    @property
    def net_contribution(self) -> Decimal:
        return money(self.contributions - self.withdrawals)

    @property
    def has_activity(self) -> bool:
        return self.contributions != 0 or self.withdrawals != 0 or self.returns != 0

    @property
    def had_growth(self) -> bool:
        return self.returns > 0

    @property
    def return_percentage(self) -> Decimal:
        """Returns relative to the balance that was invested this month (6 places)."""
        base = self.starting_balance + self.contributions - self.withdrawals
        if base <= 0:
            return rate(0)
        return safe_divide(self.returns, base)

    def with_returns(self, returns) -> AccountMonthlyFlow:
        return AccountMonthlyFlow.build(
            self.account_id,
            self.account_name,
            self.starting_balance,
            self.contributions,
            self.withdrawals,
            returns,
        )


@dataclass(frozen=True)
class TaxSummary:
    """Tax picture for one month."""

    taxable_income: Decimal = ZERO
    taxable_ss_income: Decimal = ZERO
    taxable_withdrawals: Decimal = ZERO
    tax_free_withdrawals: Decimal = ZERO
    federal_tax_liability: Decimal = ZERO
    effective_tax_rate: Decimal = Decimal("0")
    marginal_tax_bracket: Decimal = Decimal("0")
    roth_conversion_amount: Decimal = ZERO
    roth_conversion_tax: Decimal = ZERO

    @classmethod
    def empty(cls) -> TaxSummary:
        return cls()

    @property
    def total_withdrawals(self) -> Decimal:
        return money(self.taxable_withdrawals + self.tax_free_withdrawals)

    @property
    def total_tax_liability(self) -> Decimal:
        return money(self.federal_tax_liability + self.roth_conversion_tax)

    @property
    def had_roth_conversion(self) -> bool:
        return self.roth_conversion_amount > 0

    @property
    def has_tax_liability(self) -> bool:
        return self.total_tax_liability > 0

    @property
    def taxable_withdrawal_percentage(self) -> Decimal:
        return safe_divide(self.taxable_withdrawals, self.total_withdrawals, 4)


@dataclass(frozen=True)
class MonthlySnapshot:
    """
    Immutable record of one simulated month.

    Attributes:
        month: First day of the simulated month
        account_flows: Per-account flows keyed by account id
        salary_income / social_security_income / pension_income / other_income:
            Income received this month (annuities are reported as other income)
        total_expenses: Expenses for the month
        expenses_by_category: Expense totals by category name
        taxes: Tax summary for the month
        cumulative_*: Running totals since the start of the run
        phase: Simulation phase for the month
        events_triggered: Names of events that fired this month
        withdrawal_target: Amount the spending plan aimed to withdraw
        target_met: Whether the withdrawal target was fully funded
    """

    month: date
    account_flows: Mapping[str, AccountMonthlyFlow]
    salary_income: Decimal = ZERO
    social_security_income: Decimal = ZERO
    pension_income: Decimal = ZERO
    other_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    expenses_by_category: Mapping[str, Decimal] = field(default_factory=dict)
    taxes: TaxSummary = field(default_factory=TaxSummary.empty)
    cumulative_contributions: Decimal = ZERO
    cumulative_withdrawals: Decimal = ZERO
    cumulative_returns: Decimal = ZERO
    cumulative_taxes: Decimal = ZERO
    phase: SimulationPhase = SimulationPhase.ACCUMULATION
    events_triggered: tuple[str, ...] = ()
    withdrawal_target: Decimal = ZERO
    target_met: bool = True

    def __post_init__(self):
        if self.month is None:
            raise ValidationError("is required", "month")
        object.__setattr__(
            self, "account_flows", MappingProxyType(dict(self.account_flows))
        )
        object.__setattr__(
            self, "expenses_by_category", MappingProxyType(dict(self.expenses_by_category))
        )
        object.__setattr__(self, "events_triggered", tuple(self.events_triggered))

    @property
    def total_portfolio_balance(self) -> Decimal:
        return _sum(f.ending_balance for f in self.account_flows.values())

    @property
    def total_contributions(self) -> Decimal:
        return _sum(f.contributions for f in self.account_flows.values())

    @property
    def total_withdrawals(self) -> Decimal:
        return _sum(f.withdrawals for f in self.account_flows.values())

    @property
    def total_returns(self) -> Decimal:
        return _sum(f.returns for f in self.account_flows.values())

    @property
    def total_non_salary_income(self) -> Decimal:
        return money(self.social_security_income + self.pension_income + self.other_income)

    @property
    def total_income(self) -> Decimal:
        return money(self.salary_income + self.total_non_salary_income)

    @property
    def net_cash_flow(self) -> Decimal:
        return money(self.total_income - self.total_expenses)

    @property
    def income_gap(self) -> Decimal:
        return money(max(self.total_expenses - self.total_non_salary_income, ZERO))

    @property
    def year(self) -> int:
        return self.month.year

    @property
    def month_value(self) -> int:
        return self.month.month

    @property
    def had_events(self) -> bool:
        return bool(self.events_triggered)

    def get_account_flow(self, account_id: str) -> AccountMonthlyFlow | None:
        return self.account_flows.get(account_id)


@dataclass(frozen=True)
class AnnualSummary:
    """Calendar-year aggregate of monthly snapshots."""

    year: int
    starting_balance: Decimal = ZERO
    ending_balance: Decimal = ZERO
    total_contributions: Decimal = ZERO
    total_withdrawals: Decimal = ZERO
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    total_taxes_paid: Decimal = ZERO
    annual_return: Decimal = ZERO
    annual_return_percent: Decimal = Decimal("0")
    significant_events: tuple[str, ...] = ()

    def __post_init__(self):
        if not 1900 <= self.year <= 2200:
            raise ValidationError(f"must be between 1900 and 2200 (got {self.year})", "year")

    @property
    def net_balance_change(self) -> Decimal:
        return money(self.ending_balance - self.starting_balance)

    @property
    def net_contributions(self) -> Decimal:
        return money(self.total_contributions - self.total_withdrawals)

    @property
    def net_savings(self) -> Decimal:
        return money(self.total_income - self.total_expenses - self.total_taxes_paid)

    @property
    def effective_tax_rate(self) -> Decimal:
        return safe_divide(self.total_taxes_paid, self.total_income, 4)

    @property
    def is_accumulating(self) -> bool:
        return self.total_contributions > self.total_withdrawals

    @property
    def is_distributing(self) -> bool:
        return self.total_withdrawals > self.total_contributions


class TimeSeries:
    """
    Month-ordered collection of snapshots with range queries and annual roll-ups.

    Adding a second snapshot for a month that is already present raises
    ``ValidationError``.

    **Example Usage:**
        ```python
        series = engine.run(config)
        summary = series.annual_summary(2030)
        df = series.to_frame()
        ```
    """

    def __init__(self, snapshots: Iterable[MonthlySnapshot] = ()):
        self._months: list[date] = []
        self._snapshots: list[MonthlySnapshot] = []
        self.add_all(snapshots)

    def add(self, snapshot: MonthlySnapshot) -> None:
        index = bisect.bisect_left(self._months, snapshot.month)
        if index < len(self._months) and self._months[index] == snapshot.month:
            raise ValidationError(
                f"duplicate snapshot for {snapshot.month:%Y-%m}", "month"
            )
        self._months.insert(index, snapshot.month)
        self._snapshots.insert(index, snapshot)

    def add_all(self, snapshots: Iterable[MonthlySnapshot]) -> None:
        for snapshot in snapshots:
            self.add(snapshot)

    def __iter__(self) -> Iterator[MonthlySnapshot]:
        return iter(list(self._snapshots))

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def size(self) -> int:
        return len(self._snapshots)

    @property
    def is_empty(self) -> bool:
        return not self._snapshots

    def snapshots(self) -> list[MonthlySnapshot]:
        return list(self._snapshots)

    def get_snapshot(self, month: date) -> MonthlySnapshot | None:
        index = bisect.bisect_left(self._months, month)
        if index < len(self._months) and self._months[index] == month:
            return self._snapshots[index]
        return None

    def get_range(self, start: date, end: date) -> list[MonthlySnapshot]:
        """Snapshots with ``start <= month <= end``."""
        if start > end:
            raise ValidationError("start must not be after end", "start")
        lo = bisect.bisect_left(self._months, start)
        hi = bisect.bisect_right(self._months, end)
        return self._snapshots[lo:hi]

    def first(self) -> MonthlySnapshot | None:
        return self._snapshots[0] if self._snapshots else None

    def last(self) -> MonthlySnapshot | None:
        return self._snapshots[-1] if self._snapshots else None

    def snapshots_for_year(self, year: int) -> list[MonthlySnapshot]:
        return [s for s in self._snapshots if s.month.year == year]

    def years(self) -> list[int]:
        return sorted({m.year for m in self._months})

    def annual_summary(self, year: int) -> AnnualSummary | None:
        snapshots = self.snapshots_for_year(year)
        if not snapshots:
            return None
        return _summarize_year(year, snapshots)

    def all_annual_summaries(self) -> list[AnnualSummary]:
        return [self.annual_summary(year) for year in self.years()]

    def to_frame(self) -> pd.DataFrame:
        """
        One row per month with portfolio, income, expense and tax columns.

        Money columns are floats for analysis; the Decimal values remain on the
        snapshots themselves.
        """
        rows = []
        for s in self._snapshots:
            rows.append(
                {
                    "month": _period(s.month),
                    "phase": s.phase.name,
                    "balance": float(s.total_portfolio_balance),
                    "contributions": float(s.total_contributions),
                    "withdrawals": float(s.total_withdrawals),
                    "returns": float(s.total_returns),
                    "salary": float(s.salary_income),
                    "social_security": float(s.social_security_income),
                    "pension": float(s.pension_income),
                    "other_income": float(s.other_income),
                    "income": float(s.total_income),
                    "expenses": float(s.total_expenses),
                    "taxes": float(s.taxes.total_tax_liability),
                    "withdrawal_target": float(s.withdrawal_target),
                    "target_met": s.target_met,
                    "events": ",".join(s.events_triggered),
                }
            )
        if not rows:
            return pd.DataFrame(
                columns=["phase", "balance", "withdrawals", "expenses", "income"]
            )
        return pd.DataFrame(rows).set_index("month")

    def account_frame(self) -> pd.DataFrame:
        """Ending balance per account (columns) per month (rows)."""
        data = {
            _period(s.month): {
                account_id: float(flow.ending_balance)
                for account_id, flow in s.account_flows.items()
            }
            for s in self._snapshots
        }
        return pd.DataFrame.from_dict(data, orient="index").sort_index()

    def __repr__(self) -> str:
        if not self._snapshots:
            return "TimeSeries(empty)"
        return (
            f"TimeSeries({self._months[0]:%Y-%m}..{self._months[-1]:%Y-%m}, "
            f"{len(self)} months)"
        )


def _summarize_year(year: int, snapshots: list[MonthlySnapshot]) -> AnnualSummary:
    first, last = snapshots[0], snapshots[-1]
    starting = money(
        first.total_portfolio_balance
        - first.total_contributions
        + first.total_withdrawals
        - first.total_returns
    )
    ending = last.total_portfolio_balance
    annual_return = _sum(s.total_returns for s in snapshots)
    average = (starting + ending) / 2
    percent = safe_divide(annual_return, average, 4) if average != 0 else rate(0, 4)
    events: list[str] = []
    for s in snapshots:
        for name in s.events_triggered:
            if name not in events:
                events.append(name)
    return AnnualSummary(
        year=year,
        starting_balance=starting,
        ending_balance=ending,
        total_contributions=_sum(s.total_contributions for s in snapshots),
        total_withdrawals=_sum(s.total_withdrawals for s in snapshots),
        total_income=_sum(s.total_income for s in snapshots),
        total_expenses=_sum(s.total_expenses for s in snapshots),
        total_taxes_paid=_sum(s.taxes.total_tax_liability for s in snapshots),
        annual_return=annual_return,
        annual_return_percent=percent,
        significant_events=tuple(events),
    )


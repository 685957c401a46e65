"""
Strategy and collaborator protocols for NestEggLab.
Defines the contracts that strategies, sequencers and calculators must satisfy.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .context import ContributionAllocation, SpendingContext, SpendingPlan
from .enums import AccountType, ContributionType, FilingStatus, SimulationPhase
from .view import AccountSnapshot

if TYPE_CHECKING:
    # Only imported for type checking to avoid runtime cycles
    from .model import Portfolio


@runtime_checkable
class ISpendingStrategy(Protocol):
    """
    Contract for spending strategies.
    Responsibilities: decide how much to withdraw this month. Strategies are
    pure: same context in, same plan out, no state mutated.
    """

    name: str

    def calculate(self, context: SpendingContext) -> SpendingPlan:
        """
        Return a plan whose ``target_withdrawal`` is the monthly amount to
        withdraw. Account lines are left to the orchestrator.
        """
        ...


@runtime_checkable
class IAccountSequencer(Protocol):
    """
    Contract for account sequencers.
    Responsibilities: order candidate accounts for a withdrawal.
    """

    name: str

    def sequence(
        self, accounts: Sequence[AccountSnapshot], context: SpendingContext
    ) -> list[AccountSnapshot]:
        """Return accounts with a balance in withdrawal order."""
        ...


@runtime_checkable
class IAllocatingSequencer(IAccountSequencer, Protocol):
    """
    Sequencer that also decides how much to take from each account, not only
    the order (pro-rata and bracket-aware).
    """

    def allocate(
        self,
        accounts: Sequence[AccountSnapshot],
        target: Decimal,
        context: SpendingContext,
    ) -> list[tuple[AccountSnapshot, Decimal]]:
        """Return (account, amount) pairs in execution order."""
        ...


@runtime_checkable
class ISpendingOrchestrator(Protocol):
    """
    Contract for spending orchestrators.
    Responsibilities: combine strategy, RMD policy and sequencer into one plan
    with concrete withdrawal lines.
    """

    def execute(self, context: SpendingContext) -> SpendingPlan: ...


@runtime_checkable
class IContributionRouter(Protocol):
    """Contract for contribution routers (accumulation phase)."""

    def route(
        self,
        amount: Decimal,
        source: ContributionType,
        portfolio: Portfolio,
        config,
        contribution_year: int,
        age: int = 40,
        prior_year_income: Decimal = Decimal("0"),
    ) -> ContributionAllocation: ...


@runtime_checkable
class IRmdCalculator(Protocol):
    """Required minimum distribution rules."""

    def is_rmd_required(self, age: int, birth_year: int) -> bool: ...

    def calculate_rmd(self, balance: Decimal, age: int) -> Decimal: ...

    def is_subject_to_rmd(self, account_type: AccountType) -> bool: ...


@runtime_checkable
class ITaxTable(Protocol):
    """Pure lookup of ordered (rate, upper_bound) brackets for a year and status."""

    def brackets_for(self, year: int, filing_status: FilingStatus) -> list: ...


@runtime_checkable
class IIncomeProcessor(Protocol):
    """Monthly income from all income profiles for a phase."""

    def process(self, profiles, month: date, phase: SimulationPhase): ...


@runtime_checkable
class IExpenseCalculator(Protocol):
    """Monthly expense totals and category breakdown."""

    def calculate(self, budget, month: date, phase: SimulationPhase, age: int, flags): ...

"""
Core module for NestEggLab.

This module contains the building blocks of a simulation: money handling,
domain entities, mutable run state, read-only views, strategy contracts and
the result types the engine records.
"""

from .context import (
    AccountWithdrawal,
    AllocationBuilder,
    ContributionAllocation,
    SpendingContext,
    SpendingPlan,
)
from .enums import (
    AccountType,
    ContributionType,
    ExpenseCategoryGroup,
    FilingStatus,
    IncomeType,
    InflationType,
    SimulationMode,
    SimulationPhase,
    SpendingPhase,
    TaxTreatment,
)
from .errors import ConfigError, MissingFieldError, ValidationError
from .flags import SimulationFlags
from .interfaces import (
    IAccountSequencer,
    IAllocatingSequencer,
    IContributionRouter,
    IExpenseCalculator,
    IIncomeProcessor,
    IRmdCalculator,
    ISpendingOrchestrator,
    ISpendingStrategy,
    ITaxTable,
)
from .kinds import K
from .model import AssetAllocation, InvestmentAccount, PersonProfile, Portfolio
from .money import USD, Currency, RoundingPolicy, money, rate, to_decimal
from .registry import (
    SequencerRegistry,
    SpendingRegistry,
    create_sequencer,
    create_spending_strategy,
)
from .results import AccountMonthlyFlow, AnnualSummary, MonthlySnapshot, TaxSummary, TimeSeries
from .state import AccountState, SimulationState
from .utils import add_months, first_of_month, month_range, months_between
from .view import AccountSnapshot, SimulationView

__all__ = [
    # Errors
    "ConfigError",
    "ValidationError",
    "MissingFieldError",
    # Money
    "Currency",
    "RoundingPolicy",
    "USD",
    "money",
    "rate",
    "to_decimal",
    # Enums and kinds
    "AccountType",
    "TaxTreatment",
    "SimulationPhase",
    "SimulationMode",
    "FilingStatus",
    "ExpenseCategoryGroup",
    "SpendingPhase",
    "ContributionType",
    "IncomeType",
    "InflationType",
    "K",
    # Entities
    "PersonProfile",
    "AssetAllocation",
    "InvestmentAccount",
    "Portfolio",
    # State and views
    "SimulationFlags",
    "AccountState",
    "SimulationState",
    "AccountSnapshot",
    "SimulationView",
    # Strategy contracts
    "SpendingContext",
    "SpendingPlan",
    "AccountWithdrawal",
    "ContributionAllocation",
    "AllocationBuilder",
    "ISpendingStrategy",
    "IAccountSequencer",
    "IAllocatingSequencer",
    "ISpendingOrchestrator",
    "IContributionRouter",
    "IIncomeProcessor",
    "IExpenseCalculator",
    "IRmdCalculator",
    "ITaxTable",
    # Registries
    "SpendingRegistry",
    "SequencerRegistry",
    "create_spending_strategy",
    "create_sequencer",
    # Results
    "AccountMonthlyFlow",
    "TaxSummary",
    "MonthlySnapshot",
    "AnnualSummary",
    "TimeSeries",
    # Utilities
    "first_of_month",
    "add_months",
    "months_between",
    "month_range",
]

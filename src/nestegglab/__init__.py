"""
NestEggLab - Monthly Retirement Simulation Engine

NestEggLab projects a household's retirement accounts month by month: working
years with salary contributions routed to accounts, retirement years with
withdrawals decided by a spending strategy and sourced by an account
sequencer, and the RMD, tax, income and expense rules in between.

Key Features:
- **Strategy Pattern**: Spending strategies and sequencers are chosen by 'kind' strings
- **Money Precision**: All balances are Decimal, rounded half-up to the cent
- **Immutable Results**: One MonthlySnapshot per month, collected in a TimeSeries
- **Stochastic Markets**: Deterministic, Monte Carlo or historical return modes
- **File Configuration**: YAML/JSON configs via ``load_config``
- **Rich Visualizations**: Optional Plotly charts

Architecture Overview:
- **SimulationState**: Mutable balances for one run, owned by the engine
- **SimulationView**: Read-only snapshot handed to strategies
- **Spending Strategies**: Decide how much to withdraw (static, income gap,
  guardrails, bucket, spending curve)
- **Sequencers**: Decide which accounts the money comes from
- **Orchestrators**: Combine strategy, sequencer and RMD policy into a SpendingPlan
- **SimulationEngine**: Runs the fixed monthly order of steps

Quick Start:
    ```python
    from datetime import date
    from decimal import Decimal
    from nestegglab import (
        AccountType, InvestmentAccount, PersonProfile, Portfolio,
        SimulationConfig, SimulationEngine, StaticSpendingStrategy,
    )

    person = PersonProfile(id="alex", name="Alex", date_of_birth=date(1960, 3, 15),
                           retirement_date=date(2025, 1, 1))
    ira = InvestmentAccount(id="ira", name="IRA", account_type=AccountType.TRADITIONAL_IRA,
                            balance=Decimal("1000000"))
    config = SimulationConfig(
        portfolios=(Portfolio(id="main", owner=person, accounts=(ira,)),),
        start=date(2025, 1, 1),
        end=date(2054, 12, 1),
        strategy=StaticSpendingStrategy(withdrawal_rate=Decimal("0.04")),
    )
    series = SimulationEngine().run(config)
    print(series.to_frame().tail())
    ```

Available Strategies:
    Spending:
        - 'spending.static': fixed share of the initial balance, inflation-indexed
        - 'spending.income_gap': expenses minus other income
        - 'spending.guardrails': Guyton-Klinger, Vanguard dynamic, Kitces ratcheting
        - 'spending.bucket': time-segmented buckets
        - 'spending.spending_curve': go-go / slow-go / no-go multiplier

    Sequencers:
        - 'sequencer.tax_efficient', 'sequencer.rmd_first', 'sequencer.pro_rata',
          'sequencer.custom', 'sequencer.bracket_aware'
"""

# Version information
__version__ = "0.1.0"
__author__ = "NestEggLab Team"
__description__ = "Monthly retirement simulation engine"

# Registers the built-in strategy and sequencer kinds
import nestegglab.strategies

from .charts import PLOTLY_AVAILABLE as CHARTS_AVAILABLE
from .charts import balance_over_time, income_vs_expenses, monte_carlo_fan, save_chart
from .core import (
    AccountType,
    AssetAllocation,
    ConfigError,
    FilingStatus,
    InvestmentAccount,
    K,
    MonthlySnapshot,
    PersonProfile,
    Portfolio,
    SimulationMode,
    SimulationPhase,
    SimulationState,
    SpendingContext,
    SpendingPlan,
    TimeSeries,
    ValidationError,
)
from .core.config_loader import ConfigLoadError, load_config
from .kpi import (
    depletion_month,
    funded_ratio,
    max_drawdown,
    shortfall_months,
    success_flag,
    withdrawal_rate_series,
)
from .orchestration import (
    DefaultContributionRouter,
    DefaultSpendingOrchestrator,
    RmdAwareOrchestrator,
    RoutingConfiguration,
    RoutingRule,
)
from .rules import (
    Budget,
    DefaultRmdCalculator,
    FederalTaxCalculator,
    IncomeProfile,
    IncomeSource,
    OneTimeExpense,
    RecurringExpense,
)
from .simulation import (
    MarketLevers,
    MonteCarloRunner,
    MonteCarloSummary,
    PersonFinancialConfig,
    SimulationConfig,
    SimulationEngine,
    SimulationLevers,
)
from .strategies import (
    BracketAwareSequencer,
    BucketSpendingStrategy,
    CustomSequencer,
    GuardrailsConfiguration,
    GuardrailsSpendingStrategy,
    IncomeGapStrategy,
    ProRataSequencer,
    RmdFirstSequencer,
    SpendingCurveStrategy,
    StaticSpendingStrategy,
    TaxEfficientSequencer,
)

__all__ = [
    "__version__",
    # Errors
    "ConfigError",
    "ValidationError",
    "ConfigLoadError",
    # Domain
    "AccountType",
    "AssetAllocation",
    "FilingStatus",
    "InvestmentAccount",
    "PersonProfile",
    "Portfolio",
    "SimulationMode",
    "SimulationPhase",
    "K",
    # Rules
    "Budget",
    "RecurringExpense",
    "OneTimeExpense",
    "IncomeProfile",
    "IncomeSource",
    "DefaultRmdCalculator",
    "FederalTaxCalculator",
    # Strategies
    "StaticSpendingStrategy",
    "IncomeGapStrategy",
    "GuardrailsConfiguration",
    "GuardrailsSpendingStrategy",
    "BucketSpendingStrategy",
    "SpendingCurveStrategy",
    "TaxEfficientSequencer",
    "RmdFirstSequencer",
    "ProRataSequencer",
    "CustomSequencer",
    "BracketAwareSequencer",
    # Orchestration
    "DefaultSpendingOrchestrator",
    "RmdAwareOrchestrator",
    "DefaultContributionRouter",
    "RoutingRule",
    "RoutingConfiguration",
    # Simulation
    "SimulationState",
    "SpendingContext",
    "SpendingPlan",
    "MonthlySnapshot",
    "TimeSeries",
    "MarketLevers",
    "SimulationLevers",
    "PersonFinancialConfig",
    "SimulationConfig",
    "SimulationEngine",
    "MonteCarloRunner",
    "MonteCarloSummary",
    "load_config",
    # KPIs
    "success_flag",
    "depletion_month",
    "withdrawal_rate_series",
    "max_drawdown",
    "shortfall_months",
    "funded_ratio",
    # Charts (require plotly)
    "CHARTS_AVAILABLE",
    "balance_over_time",
    "income_vs_expenses",
    "monte_carlo_fan",
    "save_chart",
]

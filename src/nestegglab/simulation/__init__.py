"""
Simulation configuration, the monthly engine and the Monte Carlo runner.
"""

from .config import (
    EconomicLevers,
    ExpenseLevers,
    MarketLevers,
    PersonFinancialConfig,
    SimulationConfig,
    SimulationLevers,
)
from .engine import SimulationEngine, determine_phase, monthly_rate
from .montecarlo import MonteCarloRunner, MonteCarloSummary, RunResult

__all__ = [
    "EconomicLevers",
    "MarketLevers",
    "ExpenseLevers",
    "SimulationLevers",
    "PersonFinancialConfig",
    "SimulationConfig",
    "SimulationEngine",
    "determine_phase",
    "monthly_rate",
    "MonteCarloRunner",
    "MonteCarloSummary",
    "RunResult",
]

"""
Spending strategies: how much to withdraw each month.
"""

from .bucket import BucketSpendingStrategy
from .guardrails import GuardrailsConfiguration, GuardrailsSpendingStrategy
from .income_gap import IncomeGapStrategy
from .spending_curve import SpendingCurveStrategy
from .static import StaticSpendingStrategy

__all__ = [
    "StaticSpendingStrategy",
    "IncomeGapStrategy",
    "GuardrailsConfiguration",
    "GuardrailsSpendingStrategy",
    "BucketSpendingStrategy",
    "SpendingCurveStrategy",
]

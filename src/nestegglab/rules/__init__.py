"""
Domain rules: RMDs, federal tax, income and expenses.
"""

from .expenses import (
    Budget,
    DefaultExpenseCalculator,
    ExpenseBreakdown,
    OneTimeExpense,
    RecurringExpense,
    SpendingCurveModifier,
)
from .income import DefaultIncomeProcessor, IncomeProfile, IncomeSource, MonthlyIncome
from .rmd import DefaultRmdCalculator, rmd_start_age
from .tax import FederalTaxCalculator, StaticTaxTable, TaxBracket

__all__ = [
    "DefaultRmdCalculator",
    "rmd_start_age",
    "TaxBracket",
    "StaticTaxTable",
    "FederalTaxCalculator",
    "IncomeSource",
    "IncomeProfile",
    "MonthlyIncome",
    "DefaultIncomeProcessor",
    "RecurringExpense",
    "OneTimeExpense",
    "Budget",
    "ExpenseBreakdown",
    "SpendingCurveModifier",
    "DefaultExpenseCalculator",
]

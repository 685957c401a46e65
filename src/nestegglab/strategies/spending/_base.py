"""
Shared plumbing for spending strategies.
"""

from __future__ import annotations

from decimal import Decimal

from nestegglab.core.context import SpendingContext, SpendingPlan
from nestegglab.core.money import money


class SpendingStrategyBase:
    """
    Base class for the built-in strategies.

    Subclasses implement :meth:`monthly_target` and may add metadata; the base
    class applies the optional income-gap cap and builds the plan.

    Attributes:
        cap_to_income_gap: Never withdraw more than expenses minus other income
    """

    name = "Spending"
    description = ""
    is_dynamic = False
    requires_prior_year_state = False

    def __init__(self, cap_to_income_gap: bool = False):
        self.cap_to_income_gap = cap_to_income_gap

    def monthly_target(self, context: SpendingContext) -> tuple[Decimal, dict]:
        raise NotImplementedError

    def calculate(self, context: SpendingContext) -> SpendingPlan:
        target, metadata = self.monthly_target(context)
        target = money(target)
        if self.cap_to_income_gap and target > context.income_gap:
            metadata["uncappedTarget"] = target
            target = context.income_gap
        return SpendingPlan.for_target(
            target,
            self.name,
            available=context.current_portfolio_balance,
            **metadata,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

"""
Spending-curve strategy (kind: 'spending.spending_curve').
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from nestegglab.core.context import SpendingContext
from nestegglab.core.interfaces import ISpendingStrategy
from nestegglab.core.kinds import K
from nestegglab.core.registry import create_spending_strategy
from nestegglab.rules.expenses import SpendingCurveModifier

from ._base import SpendingStrategyBase


class SpendingCurveStrategy(SpendingStrategyBase):
    """
    Scale another strategy's target by the go-go / slow-go / no-go multiplier
    for the primary person's age.

    The wrapped strategy is either passed in or built from ``base_kind`` and
    ``base_params`` through the spending registry (Static 4% by default).
    """

    description = "Retirement spending curve applied to a base strategy"
    is_dynamic = True

    def __init__(
        self,
        base: ISpendingStrategy | None = None,
        base_kind: str = K.S_STATIC,
        base_params: Mapping[str, Any] | None = None,
        curve: SpendingCurveModifier | None = None,
        cap_to_income_gap: bool = False,
    ):
        super().__init__(cap_to_income_gap)
        if base is None:
            base = create_spending_strategy(base_kind, **dict(base_params or {}))
        self.base = base
        self.curve = curve or SpendingCurveModifier()

    @property
    def name(self) -> str:
        return f"Spending Curve ({self.base.name})"

    @property
    def requires_prior_year_state(self) -> bool:
        return getattr(self.base, "requires_prior_year_state", False)

    def monthly_target(self, context: SpendingContext):
        plan = self.base.calculate(context)
        multiplier = self.curve.multiplier_for(context.age)
        metadata = dict(plan.metadata)
        metadata.update(
            {
                "baseStrategy": plan.strategy_used,
                "baseTarget": plan.target_withdrawal,
                "spendingPhase": self.curve.phase_for(context.age).name,
                "curveMultiplier": multiplier,
            }
        )
        return plan.target_withdrawal * multiplier, metadata

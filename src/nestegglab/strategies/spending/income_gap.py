"""
Income-gap strategy (kind: 'spending.income_gap').
"""

from __future__ import annotations

from decimal import Decimal

from nestegglab.core.context import SpendingContext
from nestegglab.core.errors import ValidationError
from nestegglab.core.money import ONE, ZERO, to_decimal

from ._base import SpendingStrategyBase


class IncomeGapStrategy(SpendingStrategyBase):
    """
    Withdraw exactly what other income does not cover.

    target = max(0, total expenses - other income). With ``gross_up`` the gap is
    divided by ``1 - marginal_rate`` so the after-tax withdrawal still covers it.
    """

    name = "Income Gap"
    description = "Withdraw the shortfall between expenses and other income"
    is_dynamic = True

    def __init__(
        self,
        gross_up: bool = False,
        marginal_rate=Decimal("0.22"),
        cap_to_income_gap: bool = False,
    ):
        super().__init__(cap_to_income_gap)
        self.gross_up = gross_up
        self.marginal_rate = to_decimal(marginal_rate, "marginal_rate")
        if not 0 <= self.marginal_rate < 1:
            raise ValidationError(
                f"must be in [0, 1) (got {self.marginal_rate})", "marginal_rate"
            )

    def monthly_target(self, context: SpendingContext):
        gap = context.income_gap
        metadata = {"incomeGap": gap}
        if gap <= 0:
            return ZERO, metadata
        if self.gross_up:
            metadata["grossedUp"] = True
            return gap / (ONE - self.marginal_rate), metadata
        return gap, metadata

"""
Static (fixed-percentage) withdrawal strategy (kind: 'spending.static').
"""

from __future__ import annotations

from decimal import Decimal

from nestegglab.core.context import SpendingContext
from nestegglab.core.errors import ValidationError
from nestegglab.core.money import ONE, TWELVE, to_decimal

from ._base import SpendingStrategyBase


class StaticSpendingStrategy(SpendingStrategyBase):
    """
    Withdraw a fixed percentage of the initial portfolio balance.

    The annual amount is ``initial balance x withdrawal_rate``, grown by
    ``inflation_rate`` once per completed year of retirement when
    ``adjust_for_inflation`` is set, and paid in twelve equal monthly parts.
    The current balance never changes the target.

    Parameters:
        withdrawal_rate: Annual rate applied to the initial balance (default 0.04)
        inflation_rate: Annual inflation adjustment (default 0.025)
        adjust_for_inflation: Index the amount each retirement year (default True)
        cap_to_income_gap: Cap the target at the month's income gap (default False)
    """

    description = "Fixed percentage of the initial balance, optionally inflation-indexed"

    def __init__(
        self,
        withdrawal_rate=Decimal("0.04"),
        inflation_rate=Decimal("0.025"),
        adjust_for_inflation: bool = True,
        cap_to_income_gap: bool = False,
    ):
        super().__init__(cap_to_income_gap)
        self.withdrawal_rate = to_decimal(withdrawal_rate, "withdrawal_rate")
        self.inflation_rate = to_decimal(inflation_rate, "inflation_rate")
        self.adjust_for_inflation = adjust_for_inflation
        if not 0 < self.withdrawal_rate <= 1:
            raise ValidationError(
                f"must be in (0, 1] (got {self.withdrawal_rate})", "withdrawal_rate"
            )

    @property
    def name(self) -> str:
        return f"Static {(self.withdrawal_rate * 100).normalize():f}%"

    def monthly_target(self, context: SpendingContext):
        annual = context.initial_portfolio_balance * self.withdrawal_rate
        years = context.years_in_retirement
        if self.adjust_for_inflation and years > 0:
            annual *= (ONE + self.inflation_rate) ** years
        return annual / TWELVE, {
            "withdrawalRate": self.withdrawal_rate,
            "yearsInRetirement": years,
        }

"""
Bucket strategy (kind: 'spending.bucket').
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from nestegglab.core.context import SpendingContext
from nestegglab.core.errors import ValidationError
from nestegglab.core.money import ZERO, money
from nestegglab.core.view import AccountSnapshot

from ._base import SpendingStrategyBase

SHORT, MEDIUM, LONG = "short", "medium", "long"
_CLASS_TO_BUCKET = {"cash": SHORT, "bonds": MEDIUM, "stocks": LONG}


class BucketSpendingStrategy(SpendingStrategyBase):
    """
    Time-segmented buckets: cash for the next years, bonds for the middle
    years, stocks for the long run.

    The monthly target is the income gap. Accounts are assigned to a bucket by
    ``bucket_mapping`` (account id -> "short" / "medium" / "long") or else by
    the dominant class of their allocation. The metadata reports each bucket's
    balance, how many months of spending the short bucket covers, which bucket
    to draw from (short after a losing year, long otherwise) and whether the
    short bucket needs refilling.
    """

    name = "Bucket"
    description = "Time-segmented buckets funded from the income gap"
    is_dynamic = True
    requires_prior_year_state = True

    def __init__(
        self,
        short_term_years: int = 2,
        medium_term_years: int = 8,
        bucket_mapping: Mapping[str, str] | None = None,
        cap_to_income_gap: bool = False,
    ):
        super().__init__(cap_to_income_gap)
        if short_term_years < 0 or medium_term_years < 0:
            raise ValidationError("bucket horizons cannot be negative", "short_term_years")
        mapping = dict(bucket_mapping or {})
        for account_id, bucket in mapping.items():
            if bucket not in (SHORT, MEDIUM, LONG):
                raise ValidationError(
                    f"unknown bucket {bucket!r} for {account_id!r}", "bucket_mapping"
                )
        self.short_term_years = short_term_years
        self.medium_term_years = medium_term_years
        self.bucket_mapping = mapping

    def bucket_for(self, account: AccountSnapshot) -> str:
        if account.account_id in self.bucket_mapping:
            return self.bucket_mapping[account.account_id]
        return _CLASS_TO_BUCKET[account.allocation.dominant_class()]

    def bucket_balances(self, accounts) -> dict[str, Decimal]:
        balances = {SHORT: ZERO, MEDIUM: ZERO, LONG: ZERO}
        for account in accounts:
            key = self.bucket_for(account)
            balances[key] = money(balances[key] + account.balance)
        return balances

    def monthly_target(self, context: SpendingContext):
        target = context.income_gap
        view = context.simulation
        balances = self.bucket_balances(view.accounts)

        coverage = None
        if target > 0:
            coverage = int(balances[SHORT] / target)
        refill = context.simulation.flags.refill_mode or (
            coverage is not None and coverage < self.short_term_years * 12
        )
        return target, {
            "shortBucket": balances[SHORT],
            "mediumBucket": balances[MEDIUM],
            "longBucket": balances[LONG],
            "shortTermCoverageMonths": coverage,
            "drawFrom": SHORT if view.prior_year_return < 0 else LONG,
            "refillNeeded": refill,
        }

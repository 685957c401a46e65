"""
Pro-rata sequencer (kind: 'sequencer.pro_rata').
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from nestegglab.core.context import SpendingContext
from nestegglab.core.money import ZERO, money
from nestegglab.core.view import AccountSnapshot

from .tax_efficient import with_balance


class ProRataSequencer:
    """
    Take from every account in proportion to its balance.

    Each account's share is rounded to cents; the last account absorbs the
    rounding remainder. No account gives more than its balance.
    """

    name = "Pro-Rata"

    def sequence(
        self, accounts: Sequence[AccountSnapshot], context: SpendingContext
    ) -> list[AccountSnapshot]:
        return sorted(with_balance(accounts), key=lambda a: a.balance, reverse=True)

    def allocate(
        self,
        accounts: Sequence[AccountSnapshot],
        target: Decimal,
        context: SpendingContext,
    ) -> list[tuple[AccountSnapshot, Decimal]]:
        ordered = self.sequence(accounts, context)
        total = money(sum((a.balance for a in ordered), Decimal("0")))
        target = min(money(target), total)
        if target <= 0 or not ordered:
            return []

        lines: list[tuple[AccountSnapshot, Decimal]] = []
        remaining = target
        for index, account in enumerate(ordered):
            if index == len(ordered) - 1:
                share = remaining
            else:
                share = money(target * account.balance / total)
            share = min(share, account.balance, remaining)
            if share > 0:
                lines.append((account, share))
                remaining = money(remaining - share)
            if remaining <= ZERO:
                break
        return lines

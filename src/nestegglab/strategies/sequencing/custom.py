"""
Custom-order sequencer (kind: 'sequencer.custom').
"""

from __future__ import annotations

from collections.abc import Sequence

from nestegglab.core.context import SpendingContext
from nestegglab.core.errors import ValidationError
from nestegglab.core.view import AccountSnapshot

from .tax_efficient import tax_efficient_order, with_balance


class CustomSequencer:
    """Caller-defined account order; unlisted accounts follow tax-efficiently."""

    name = "Custom"

    def __init__(self, order: Sequence[str] = ()):
        order = list(order)
        if len(set(order)) != len(order):
            raise ValidationError("account ids must be unique", "order")
        self.order = order

    def sequence(
        self, accounts: Sequence[AccountSnapshot], context: SpendingContext
    ) -> list[AccountSnapshot]:
        candidates = with_balance(accounts)
        by_id = {a.account_id: a for a in candidates}
        listed = [by_id[i] for i in self.order if i in by_id]
        rest = tax_efficient_order([a for a in candidates if a.account_id not in self.order])
        return listed + rest

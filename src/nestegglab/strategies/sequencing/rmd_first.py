"""
RMD-first sequencer (kind: 'sequencer.rmd_first').
"""

from __future__ import annotations

from collections.abc import Sequence

from nestegglab.core.context import SpendingContext
from nestegglab.core.view import AccountSnapshot
from nestegglab.rules.rmd import DefaultRmdCalculator

from .tax_efficient import tax_efficient_order, with_balance


class RmdFirstSequencer:
    """
    Draw from accounts with a required distribution first.

    When the primary person's RMDs have started, RMD-subject accounts lead,
    largest balance first; the remaining accounts follow in tax-efficient
    order. Before RMDs start this is plain tax-efficient ordering.
    """

    name = "RMD-First"

    def __init__(self, rmd_calculator: DefaultRmdCalculator | None = None):
        self.rmd_calculator = rmd_calculator or DefaultRmdCalculator()

    def sequence(
        self, accounts: Sequence[AccountSnapshot], context: SpendingContext
    ) -> list[AccountSnapshot]:
        candidates = with_balance(accounts)
        if not self.rmd_calculator.is_rmd_required(context.age, context.birth_year):
            return tax_efficient_order(candidates)
        rmd = sorted(
            (a for a in candidates if a.subject_to_rmd),
            key=lambda a: a.balance,
            reverse=True,
        )
        rest = tax_efficient_order([a for a in candidates if not a.subject_to_rmd])
        return rmd + rest

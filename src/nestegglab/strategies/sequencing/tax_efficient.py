"""
Tax-efficient sequencer (kind: 'sequencer.tax_efficient').
"""

from __future__ import annotations

from collections.abc import Sequence

from nestegglab.core.context import SpendingContext
from nestegglab.core.enums import TaxTreatment
from nestegglab.core.view import AccountSnapshot

# lower runs first
TAX_PRIORITY = {
    TaxTreatment.TAXABLE: 1,
    TaxTreatment.PRE_TAX: 2,
    TaxTreatment.ROTH: 3,
    TaxTreatment.HSA: 4,
}


def with_balance(accounts: Sequence[AccountSnapshot]) -> list[AccountSnapshot]:
    return [a for a in accounts if a.has_balance]


def tax_efficient_order(accounts: Sequence[AccountSnapshot]) -> list[AccountSnapshot]:
    """Taxable, then pre-tax, then Roth, then HSA; smaller balances first on ties."""
    return sorted(
        with_balance(accounts),
        key=lambda a: (TAX_PRIORITY[a.tax_treatment], a.balance),
    )


class TaxEfficientSequencer:
    """
    Spend taxable money first, defer pre-tax, preserve tax-free growth.

    Ordering: taxable brokerage, traditional (pre-tax), Roth, HSA. Within a
    tier the smaller balance goes first so small accounts are closed out.
    Accounts without a balance are skipped.
    """

    name = "Tax-Efficient"

    def sequence(
        self, accounts: Sequence[AccountSnapshot], context: SpendingContext
    ) -> list[AccountSnapshot]:
        return tax_efficient_order(accounts)

"""
Bracket-aware sequencer (kind: 'sequencer.bracket_aware').
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from nestegglab.core.context import SpendingContext
from nestegglab.core.enums import TaxTreatment
from nestegglab.core.money import TWELVE, ZERO, money
from nestegglab.core.view import AccountSnapshot
from nestegglab.rules.tax import FederalTaxCalculator

from .tax_efficient import with_balance


def _by_treatment(accounts, treatment: TaxTreatment) -> list[AccountSnapshot]:
    return sorted(
        (a for a in accounts if a.tax_treatment is treatment), key=lambda a: a.balance
    )


class BracketAwareSequencer:
    """
    Fill the current tax bracket with pre-tax money before touching Roth.

    This month's room is one twelfth of the annual room left in the current
    bracket, given ``context.current_taxable_income``. Pre-tax accounts are
    drawn up to that room, then taxable, then Roth, then any remaining pre-tax
    balance, then HSA.
    """

    name = "Bracket-Aware"

    def __init__(self, tax_calculator: FederalTaxCalculator | None = None):
        self.tax_calculator = tax_calculator or FederalTaxCalculator()

    def monthly_room(self, context: SpendingContext) -> Decimal:
        annual = self.tax_calculator.bracket_room(
            context.current_taxable_income, context.date.year, context.filing_status
        )
        return money(annual / TWELVE)

    def sequence(
        self, accounts: Sequence[AccountSnapshot], context: SpendingContext
    ) -> list[AccountSnapshot]:
        candidates = with_balance(accounts)
        return (
            _by_treatment(candidates, TaxTreatment.PRE_TAX)
            + _by_treatment(candidates, TaxTreatment.TAXABLE)
            + _by_treatment(candidates, TaxTreatment.ROTH)
            + _by_treatment(candidates, TaxTreatment.HSA)
        )

    def allocate(
        self,
        accounts: Sequence[AccountSnapshot],
        target: Decimal,
        context: SpendingContext,
    ) -> list[tuple[AccountSnapshot, Decimal]]:
        candidates = with_balance(accounts)
        remaining = money(target)
        taken: dict[str, Decimal] = {}
        lines: list[tuple[AccountSnapshot, Decimal]] = []

        def take(account: AccountSnapshot, limit: Decimal) -> None:
            nonlocal remaining
            available = account.balance - taken.get(account.account_id, ZERO)
            amount = min(remaining, available, limit)
            if amount > 0:
                lines.append((account, amount))
                taken[account.account_id] = taken.get(account.account_id, ZERO) + amount
                remaining = money(remaining - amount)

        pre_tax = _by_treatment(candidates, TaxTreatment.PRE_TAX)
        room = self.monthly_room(context)
        for account in pre_tax:
            if remaining <= 0 or room <= 0:
                break
            before = remaining
            take(account, room)
            room = money(room - (before - remaining))

        for account in (
            _by_treatment(candidates, TaxTreatment.TAXABLE)
            + _by_treatment(candidates, TaxTreatment.ROTH)
            + pre_tax
            + _by_treatment(candidates, TaxTreatment.HSA)
        ):
            if remaining <= 0:
                break
            take(account, remaining)
        return lines

"""
Spending orchestrators: strategy target, RMD policy and sequencing combined
into one executable plan.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import Decimal

from nestegglab.core.context import AccountWithdrawal, SpendingContext, SpendingPlan
from nestegglab.core.enums import TaxTreatment
from nestegglab.core.errors import ConfigError, require
from nestegglab.core.interfaces import (
    IAccountSequencer,
    IAllocatingSequencer,
    ISpendingStrategy,
)
from nestegglab.core.kinds import K
from nestegglab.core.money import TWELVE, ZERO, money
from nestegglab.core.view import AccountSnapshot
from nestegglab.rules.rmd import DefaultRmdCalculator
from nestegglab.strategies.sequencing import RmdFirstSequencer, TaxEfficientSequencer

logger = logging.getLogger(__name__)

TOLERANCE = Decimal("0.01")

# order of the non-RMD pass when no sequencer is configured
_RMD_FALLBACK_PRIORITY = {
    TaxTreatment.PRE_TAX: 1,
    TaxTreatment.TAXABLE: 2,
    TaxTreatment.ROTH: 3,
    TaxTreatment.HSA: 4,
}


def select_default_sequencer(
    context: SpendingContext, rmd_calculator: DefaultRmdCalculator | None = None
) -> IAccountSequencer:
    """RMD-first once distributions are required, tax-efficient before that."""
    rmd_calculator = rmd_calculator or DefaultRmdCalculator()
    if rmd_calculator.is_rmd_required(context.age, context.birth_year):
        return RmdFirstSequencer(rmd_calculator)
    return TaxEfficientSequencer()


class _Ledger:
    """Running balances while withdrawal lines are planned."""

    def __init__(self, accounts: Iterable[AccountSnapshot]):
        self.accounts = list(accounts)
        self.balances = {a.account_id: a.balance for a in self.accounts}
        self.lines: list[AccountWithdrawal] = []

    def available(self, account: AccountSnapshot) -> Decimal:
        return self.balances.get(account.account_id, ZERO)

    def take(self, account: AccountSnapshot, amount) -> Decimal:
        prior = self.available(account)
        amount = min(money(amount), prior)
        if amount <= 0:
            return ZERO
        new_balance = money(prior - amount)
        self.balances[account.account_id] = new_balance
        self.lines.append(
            AccountWithdrawal(
                account_id=account.account_id,
                account_name=account.account_name,
                account_type=account.account_type,
                amount=amount,
                prior_balance=prior,
                new_balance=new_balance,
                tax_treatment=account.tax_treatment,
            )
        )
        return amount

    def remaining_snapshots(self) -> list[AccountSnapshot]:
        return [
            replace(a, balance=self.balances[a.account_id])
            for a in self.accounts
            if self.balances[a.account_id] > 0
        ]

    @property
    def total(self) -> Decimal:
        return money(sum((line.amount for line in self.lines), Decimal("0")))


def _fill(
    ledger: _Ledger,
    sequencer: IAccountSequencer,
    target: Decimal,
    context: SpendingContext,
) -> Decimal:
    """Withdraw up to ``target`` through ``sequencer``; returns the amount taken."""
    if target <= 0:
        return ZERO
    accounts = ledger.remaining_snapshots()
    taken = ZERO
    if isinstance(sequencer, IAllocatingSequencer):
        for account, amount in sequencer.allocate(accounts, target, context):
            taken += ledger.take(account, amount)
        return money(taken)
    remaining = target
    for account in sequencer.sequence(accounts, context):
        if remaining <= 0:
            break
        amount = ledger.take(account, min(remaining, ledger.available(account)))
        remaining = money(remaining - amount)
        taken += amount
    return money(taken)


def _finish(
    target: Decimal,
    ledger: _Ledger,
    strategy_plan: SpendingPlan,
    metadata: dict,
) -> SpendingPlan:
    withdrawn = ledger.total
    meets = withdrawn >= target - TOLERANCE
    merged = dict(strategy_plan.metadata)
    merged.update(metadata)
    merged["accountsUsed"] = len({line.account_id for line in ledger.lines})
    if not meets:
        logger.debug("withdrawal target %s not met (withdrew %s)", target, withdrawn)
    return SpendingPlan(
        target_withdrawal=target,
        adjusted_withdrawal=withdrawn,
        account_withdrawals=tuple(ledger.lines),
        meets_target=meets,
        shortfall=max(money(target - withdrawn), ZERO) if not meets else ZERO,
        strategy_used=strategy_plan.strategy_used,
        metadata=merged,
    )


class DefaultSpendingOrchestrator:
    """
    Execute the strategy's target through a sequencer, with no RMD precedence.

    Args:
        strategy: Spending strategy producing the monthly target
        sequencer: Account sequencer; None picks one per month with
            :func:`select_default_sequencer`
    """

    kind = K.O_DEFAULT

    def __init__(
        self,
        strategy: ISpendingStrategy,
        sequencer: IAccountSequencer | None = None,
        rmd_calculator: DefaultRmdCalculator | None = None,
    ):
        self.strategy = require(strategy, "strategy")
        self.sequencer = sequencer
        self.rmd_calculator = rmd_calculator or DefaultRmdCalculator()

    def sequencer_for(self, context: SpendingContext) -> IAccountSequencer:
        return self.sequencer or select_default_sequencer(context, self.rmd_calculator)

    def execute(self, context: SpendingContext) -> SpendingPlan:
        strategy_plan = self.strategy.calculate(context)
        target = strategy_plan.target_withdrawal
        sequencer = self.sequencer_for(context)
        if target <= 0:
            metadata = dict(strategy_plan.metadata)
            metadata.update(strategy=strategy_plan.strategy_used, sequencer=sequencer.name)
            return SpendingPlan.no_withdrawal_needed(strategy_plan.strategy_used, **metadata)
        ledger = _Ledger(context.simulation.accounts)
        _fill(ledger, sequencer, target, context)
        return _finish(
            target,
            ledger,
            strategy_plan,
            {"strategy": strategy_plan.strategy_used, "sequencer": sequencer.name},
        )


class RmdAwareOrchestrator:
    """
    Enforce required minimum distributions ahead of the strategy.

    Once RMDs are required the monthly requirement is the sum over RMD-subject
    accounts of ``balance / factor``, divided by twelve. The plan's target is
    the larger of that and the strategy's target (``rmdForced`` marks the
    case where the RMD wins). RMD accounts are drawn first, each up to its own
    monthly portion; the rest of the target goes through the sequencer. Before
    RMDs start the call is delegated to :class:`DefaultSpendingOrchestrator`.

    Without a sequencer the remainder is drawn from non-RMD accounts (pre-tax,
    taxable, Roth, HSA; larger balance first), then from what is left in the
    RMD accounts.
    """

    kind = K.O_RMD_AWARE

    def __init__(
        self,
        strategy: ISpendingStrategy,
        sequencer: IAccountSequencer | None = None,
        rmd_calculator: DefaultRmdCalculator | None = None,
    ):
        self.strategy = require(strategy, "strategy")
        self.sequencer = sequencer
        self.rmd_calculator = rmd_calculator or DefaultRmdCalculator()
        self.delegate = DefaultSpendingOrchestrator(strategy, sequencer, self.rmd_calculator)

    def monthly_requirements(
        self, accounts: Sequence[AccountSnapshot], age: int
    ) -> list[tuple[AccountSnapshot, Decimal]]:
        """(account, annual RMD) for every RMD-subject account with a balance."""
        return [
            (a, self.rmd_calculator.calculate_rmd(a.balance, age))
            for a in accounts
            if a.has_balance and self.rmd_calculator.is_subject_to_rmd(a.account_type)
        ]

    def execute(self, context: SpendingContext) -> SpendingPlan:
        if not self.rmd_calculator.is_rmd_required(context.age, context.birth_year):
            return self.delegate.execute(context)

        strategy_plan = self.strategy.calculate(context)
        strategy_target = strategy_plan.target_withdrawal
        requirements = self.monthly_requirements(context.simulation.accounts, context.age)
        annual_rmd = sum((r for _, r in requirements), Decimal("0"))
        monthly_rmd = money(annual_rmd / TWELVE)
        target = max(strategy_target, monthly_rmd)

        ledger = _Ledger(context.simulation.accounts)
        remaining = target
        for account, annual in requirements:
            if remaining <= 0:
                break
            portion = money(annual / TWELVE)
            remaining = money(remaining - ledger.take(account, min(remaining, portion)))
        rmd_withdrawn = ledger.total

        if remaining > 0:
            if self.sequencer is not None:
                _fill(ledger, self.sequencer, remaining, context)
            else:
                self._fill_fallback(ledger, remaining)
        sequencer_name = self.sequencer.name if self.sequencer else "RMD-Aware"

        return _finish(
            target,
            ledger,
            strategy_plan,
            {
                "strategy": strategy_plan.strategy_used,
                "sequencer": sequencer_name,
                "rmdRequired": monthly_rmd,
                "strategyTarget": strategy_target,
                "rmdForced": monthly_rmd > strategy_target,
                "rmdWithdrawn": rmd_withdrawn,
                "discretionaryWithdrawn": money(ledger.total - rmd_withdrawn),
            },
        )

    def _fill_fallback(self, ledger: _Ledger, remaining: Decimal) -> None:
        accounts = ledger.remaining_snapshots()
        non_rmd = sorted(
            (a for a in accounts if not a.subject_to_rmd),
            key=lambda a: (_RMD_FALLBACK_PRIORITY[a.tax_treatment], -a.balance),
        )
        rmd = sorted(
            (a for a in accounts if a.subject_to_rmd), key=lambda a: -a.balance
        )
        for account in non_rmd + rmd:
            if remaining <= 0:
                break
            remaining = money(remaining - ledger.take(account, remaining))


def build_orchestrator(
    kind: str,
    strategy: ISpendingStrategy,
    sequencer: IAccountSequencer | None = None,
    rmd_calculator: DefaultRmdCalculator | None = None,
):
    """Orchestrator for a kind string ('orchestrator.default' / 'orchestrator.rmd_aware')."""
    classes = {
        K.O_DEFAULT: DefaultSpendingOrchestrator,
        K.O_RMD_AWARE: RmdAwareOrchestrator,
    }
    if kind not in classes:
        raise ConfigError(
            f"Unknown orchestrator kind {kind!r}; expected one of {sorted(classes)}"
        )
    return classes[kind](strategy, sequencer, rmd_calculator)

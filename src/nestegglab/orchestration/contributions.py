"""
Contribution routing for the accumulation phase.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from nestegglab.core.context import AllocationBuilder, ContributionAllocation
from nestegglab.core.enums import AccountType, ContributionType
from nestegglab.core.errors import ValidationError, require
from nestegglab.core.model import InvestmentAccount, Portfolio
from nestegglab.core.money import ZERO, money, to_decimal

CATCH_UP_AGE = 50
ROTH_CATCH_UP_START_YEAR = 2026
ROTH_CATCH_UP_INCOME_THRESHOLD = Decimal("145000")
REMAINDER_TOLERANCE = Decimal("0.01")
PERCENT_TOLERANCE = Decimal("0.0001")

_TRADITIONAL_VARIANT = {
    AccountType.ROTH_401K: AccountType.TRADITIONAL_401K,
    AccountType.ROTH_403B: AccountType.TRADITIONAL_403B,
    AccountType.ROTH_IRA: AccountType.TRADITIONAL_IRA,
}
_ROTH_VARIANT = {
    AccountType.TRADITIONAL_401K: AccountType.ROTH_401K,
    AccountType.ROTH_401K: AccountType.ROTH_401K,
    AccountType.TRADITIONAL_403B: AccountType.ROTH_403B,
    AccountType.ROTH_403B: AccountType.ROTH_403B,
    AccountType.TRADITIONAL_IRA: AccountType.ROTH_IRA,
    AccountType.ROTH_IRA: AccountType.ROTH_IRA,
}
_CATCH_UP_TRADITIONAL = (
    AccountType.TRADITIONAL_401K,
    AccountType.TRADITIONAL_403B,
    AccountType.TRADITIONAL_IRA,
)


def traditional_variant(account_type: AccountType) -> AccountType:
    return _TRADITIONAL_VARIANT.get(account_type, account_type)


def roth_variant(account_type: AccountType) -> AccountType:
    return _ROTH_VARIANT.get(account_type, account_type)


def is_catch_up_eligible(age: int) -> bool:
    return age >= CATCH_UP_AGE


def requires_roth_catch_up(year: int, prior_year_income) -> bool:
    """SECURE 2.0: high earners make catch-up contributions as Roth from 2026."""
    return (
        year >= ROTH_CATCH_UP_START_YEAR
        and to_decimal(prior_year_income) > ROTH_CATCH_UP_INCOME_THRESHOLD
    )


@dataclass(frozen=True)
class RoutingRule:
    """Send ``percentage`` (0..1) of a contribution to ``account_id``."""

    account_id: str
    percentage: Decimal
    priority: int = 0

    def __post_init__(self):
        require(self.account_id, "account_id")
        value = to_decimal(self.percentage)
        if value < 0 or value > 1:
            raise ValidationError(f"must be between 0 and 1 (got {value})", "percentage")
        if self.priority < 0:
            raise ValidationError(f"cannot be negative (got {self.priority})", "priority")
        object.__setattr__(self, "percentage", value)


@dataclass(frozen=True)
class RoutingConfiguration:
    """Ordered routing rules whose percentages sum to 100%."""

    rules: tuple[RoutingRule, ...]

    def __post_init__(self):
        rules = tuple(self.rules)
        if not rules:
            raise ValidationError("at least one routing rule is required", "rules")
        total = sum((r.percentage for r in rules), Decimal("0"))
        if abs(total - Decimal("1")) > PERCENT_TOLERANCE:
            raise ValidationError(f"percentages must sum to 1 (got {total})", "rules")
        object.__setattr__(self, "rules", tuple(sorted(rules, key=lambda r: r.priority)))

    @classmethod
    def single_account(cls, account_id: str) -> RoutingConfiguration:
        return cls((RoutingRule(account_id, Decimal("1"), 0),))

    @property
    def rules_by_priority(self) -> list[RoutingRule]:
        return list(self.rules)

    @property
    def primary(self) -> RoutingRule:
        return self.rules[0]


def _first_of_type(portfolio: Portfolio, account_type: AccountType):
    matches = portfolio.accounts_by_type(account_type)
    return matches[0] if matches else None


class DefaultContributionRouter:
    """
    Split a contribution across a person's accounts.

    Employer money goes to the traditional variant of the primary rule's
    account type. Personal money is split rule by rule in priority order; a
    remainder of a cent or less goes to the primary rule's account and
    anything larger is reported as unallocated. Unknown accounts and Roth
    catch-up redirections are reported as warnings, never raised.

    **Example Usage:**
        ```python
        router = DefaultContributionRouter()
        allocation = router.route(
            Decimal("1000"), ContributionType.PERSONAL, portfolio,
            RoutingConfiguration.single_account("401k"), 2030, age=45,
        )
        allocation.amount_for("401k")   # Decimal("1000.00")
        ```
    """

    def route(
        self,
        amount,
        source: ContributionType,
        portfolio: Portfolio,
        config: RoutingConfiguration,
        contribution_year: int,
        age: int = 40,
        prior_year_income=ZERO,
    ) -> ContributionAllocation:
        require(source, "source")
        require(portfolio, "portfolio")
        require(config, "config")
        amount = money(amount)
        if amount < 0:
            raise ValidationError("contribution amount cannot be negative", "amount")
        if amount == 0:
            return AllocationBuilder().build()
        if not portfolio.has_accounts:
            return ContributionAllocation.empty(amount)

        if source is ContributionType.EMPLOYER:
            return self._route_employer(amount, portfolio, config)
        return self._route_personal(
            amount, portfolio, config, contribution_year, age, prior_year_income
        )

    def _route_employer(self, amount, portfolio: Portfolio, config) -> ContributionAllocation:
        builder = AllocationBuilder()
        account = portfolio.find_account(config.primary.account_id)
        if account is None:
            builder.warn(f"Primary account not found: {config.primary.account_id}")
            return builder.unallocated(amount).build()

        target_type = traditional_variant(account.account_type)
        traditional = _first_of_type(portfolio, target_type)
        if traditional is not None:
            builder.add(traditional.id, amount)
        else:
            builder.add(account.id, amount)
            builder.warn(
                f"Traditional variant not found for {account.account_type.name}, "
                f"using {account.name}"
            )
        return builder.build()

    def _route_personal(
        self, amount, portfolio: Portfolio, config, year, age, prior_year_income
    ) -> ContributionAllocation:
        builder = AllocationBuilder()
        remaining = amount
        roth_catch_up = is_catch_up_eligible(age) and requires_roth_catch_up(
            year, prior_year_income
        )

        for rule in config.rules_by_priority:
            if remaining <= 0:
                break
            account = portfolio.find_account(rule.account_id)
            if account is None:
                builder.warn(f"Account not found in portfolio: {rule.account_id}")
                continue
            share = min(money(amount * rule.percentage), remaining)
            if roth_catch_up and account.account_type in _CATCH_UP_TRADITIONAL:
                self._route_catch_up(builder, portfolio, account, share)
            else:
                builder.add(account.id, share)
            remaining = money(remaining - share)

        if 0 < remaining <= REMAINDER_TOLERANCE:
            primary = portfolio.find_account(config.primary.account_id)
            if primary is not None:
                builder.add(primary.id, remaining)
                remaining = ZERO
        if remaining > 0:
            builder.unallocated(remaining)
        return builder.build()

    @staticmethod
    def _route_catch_up(
        builder: AllocationBuilder,
        portfolio: Portfolio,
        account: InvestmentAccount,
        share: Decimal,
    ) -> None:
        target_type = roth_variant(account.account_type)
        roth = _first_of_type(portfolio, target_type)
        if roth is not None:
            builder.add(roth.id, share)
            builder.warn(
                f"High earner catch-up: redirected {share} from "
                f"{account.account_type.name} to {target_type.name}"
            )
        else:
            builder.add(account.id, share)
            builder.warn(
                f"High earner catch-up required Roth, but {target_type.name} "
                f"not available. Allocated to {account.account_type.name}"
            )

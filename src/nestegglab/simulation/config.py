"""
Simulation configuration: economic, market and expense levers, per-person
financial settings and the top-level ``SimulationConfig``.

All values are validated when constructed, so a config that builds is a
config that runs.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from nestegglab.core.enums import FilingStatus, InflationType, SimulationMode
from nestegglab.core.errors import ValidationError, require
from nestegglab.core.interfaces import IAccountSequencer, ISpendingStrategy
from nestegglab.core.kinds import K
from nestegglab.core.model import InvestmentAccount, PersonProfile, Portfolio
from nestegglab.core.money import ZERO, money, to_decimal
from nestegglab.core.utils import first_of_month, months_between
from nestegglab.orchestration.contributions import RoutingConfiguration
from nestegglab.rules.expenses import (
    DEFAULT_INFLATION_RATES,
    DEFAULT_SURVIVOR_MULTIPLIER,
    Budget,
    SpendingCurveModifier,
)
from nestegglab.rules.income import IncomeProfile
from nestegglab.rules.tax import FederalTaxCalculator
from nestegglab.strategies import StaticSpendingStrategy

RETURN_MODE_PER_ACCOUNT = "per_account"
RETURN_MODE_BLENDED = "blended"
RETURN_MODES = (RETURN_MODE_PER_ACCOUNT, RETURN_MODE_BLENDED)


def _decimal_fields(obj, *names: str) -> None:
    for name in names:
        object.__setattr__(obj, name, to_decimal(getattr(obj, name), name))


@dataclass(frozen=True)
class EconomicLevers:
    inflation_rate: Decimal = Decimal("0.025")
    wage_growth_rate: Decimal = Decimal("0.03")
    interest_rate: Decimal = Decimal("0.04")

    def __post_init__(self):
        _decimal_fields(self, "inflation_rate", "wage_growth_rate", "interest_rate")


@dataclass(frozen=True)
class MarketLevers:
    """
    How market returns are produced.

    Attributes:
        mode: DETERMINISTIC, MONTE_CARLO or HISTORICAL
        expected_return: Mean annual market return
        return_std_dev: Annual standard deviation for MONTE_CARLO draws
        historical_returns: Annual returns cycled through in HISTORICAL mode
    """

    mode: SimulationMode = SimulationMode.DETERMINISTIC
    expected_return: Decimal = Decimal("0.07")
    return_std_dev: Decimal = Decimal("0.15")
    historical_returns: tuple[Decimal, ...] = ()

    def __post_init__(self):
        _decimal_fields(self, "expected_return", "return_std_dev")
        object.__setattr__(
            self, "historical_returns", tuple(to_decimal(r) for r in self.historical_returns)
        )
        if self.return_std_dev < 0:
            raise ValidationError("cannot be negative", "return_std_dev")
        if self.mode.uses_historical_data and not self.historical_returns:
            raise ValidationError(
                "historical mode needs at least one annual return", "historical_returns"
            )


@dataclass(frozen=True)
class ExpenseLevers:
    """Expense inflation by type plus survivor and spending-curve modifiers."""

    inflation_rates: Mapping[InflationType, Decimal] = field(
        default_factory=lambda: dict(DEFAULT_INFLATION_RATES)
    )
    survivor_multiplier: Decimal = DEFAULT_SURVIVOR_MULTIPLIER
    spending_curve: SpendingCurveModifier | None = field(
        default_factory=SpendingCurveModifier
    )

    def __post_init__(self):
        rates = dict(DEFAULT_INFLATION_RATES)
        rates.update({k: to_decimal(v) for k, v in self.inflation_rates.items()})
        object.__setattr__(self, "inflation_rates", rates)
        _decimal_fields(self, "survivor_multiplier")
        if not 0 <= self.survivor_multiplier <= 1:
            raise ValidationError(
                f"must be between 0 and 1 (got {self.survivor_multiplier})",
                "survivor_multiplier",
            )

    def rate_for(self, inflation: InflationType) -> Decimal:
        if inflation is InflationType.NONE:
            return Decimal("0")
        return self.inflation_rates.get(inflation, self.inflation_rates[InflationType.GENERAL])


@dataclass(frozen=True)
class SimulationLevers:
    economic: EconomicLevers = field(default_factory=EconomicLevers)
    market: MarketLevers = field(default_factory=MarketLevers)
    expense: ExpenseLevers = field(default_factory=ExpenseLevers)


@dataclass(frozen=True)
class PersonFinancialConfig:
    """
    Contribution settings for one person.

    Attributes:
        person_id: Person the settings belong to
        routing: Where contributions go; None disables contributions
        personal_contribution_rate: Share of salary the person contributes
        employer_match_rate: Share of salary the employer adds
        annual_contribution_limit: Cap on personal contributions per calendar year
        prior_year_income: Income for the year before the run (catch-up rules)
    """

    person_id: str
    routing: RoutingConfiguration | None = None
    personal_contribution_rate: Decimal = Decimal("0")
    employer_match_rate: Decimal = Decimal("0")
    annual_contribution_limit: Decimal | None = None
    prior_year_income: Decimal = ZERO

    def __post_init__(self):
        require(self.person_id, "person_id")
        _decimal_fields(self, "personal_contribution_rate", "employer_match_rate")
        for name in ("personal_contribution_rate", "employer_match_rate"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValidationError(f"must be between 0 and 1 (got {value})", name)
        if self.annual_contribution_limit is not None:
            limit = money(self.annual_contribution_limit)
            if limit < 0:
                raise ValidationError("cannot be negative", "annual_contribution_limit")
            object.__setattr__(self, "annual_contribution_limit", limit)
        object.__setattr__(self, "prior_year_income", money(self.prior_year_income))


@dataclass(frozen=True)
class SimulationConfig:
    """
    Everything a run needs.

    Attributes:
        portfolios: One or more portfolios; their owners are the simulated people
        start / end: First and last simulated month (inclusive)
        budget: Expenses; None means no expenses
        income_profiles: Income sources per person
        levers: Economic, market and expense assumptions
        strategy: Spending strategy (Static 4% when omitted)
        orchestrator: Orchestrator kind (``K.O_DEFAULT`` or ``K.O_RMD_AWARE``)
        sequencer: Account sequencer; None selects one per month
        financial: Per-person contribution settings
        withdrawal_start: First withdrawal month when later than retirement
            (months in between are TRANSITION)
        return_mode: ``"per_account"`` (default) or the legacy ``"blended"``
        ltc_start_age: Primary person's age at which the "LTC" contingency starts
        stop_at_death: End the run once every person has passed
        tax_calculator: Federal tax calculator; None records zero liability
        filing_status: Filing status while both spouses live
        strategy_params: Extra parameters handed to strategies via the context
    """

    portfolios: tuple[Portfolio, ...]
    start: date
    end: date
    budget: Budget | None = None
    income_profiles: tuple[IncomeProfile, ...] = ()
    levers: SimulationLevers = field(default_factory=SimulationLevers)
    strategy: ISpendingStrategy = field(default_factory=StaticSpendingStrategy)
    orchestrator: str = K.O_DEFAULT
    sequencer: IAccountSequencer | None = None
    financial: tuple[PersonFinancialConfig, ...] = ()
    withdrawal_start: date | None = None
    return_mode: str = RETURN_MODE_PER_ACCOUNT
    ltc_start_age: int | None = None
    stop_at_death: bool = False
    tax_calculator: FederalTaxCalculator | None = None
    filing_status: FilingStatus = FilingStatus.SINGLE
    strategy_params: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        portfolios = tuple(self.portfolios or ())
        if not portfolios:
            raise ValidationError("at least one portfolio is required", "portfolios")
        object.__setattr__(self, "portfolios", portfolios)
        require(self.start, "start")
        require(self.end, "end")
        object.__setattr__(self, "start", first_of_month(self.start))
        object.__setattr__(self, "end", first_of_month(self.end))
        if self.end < self.start:
            raise ValidationError("end month precedes start month", "end")
        require(self.strategy, "strategy")
        if self.orchestrator not in (K.O_DEFAULT, K.O_RMD_AWARE):
            raise ValidationError(f"unknown orchestrator {self.orchestrator!r}", "orchestrator")
        if self.return_mode not in RETURN_MODES:
            raise ValidationError(
                f"must be one of {RETURN_MODES} (got {self.return_mode!r})", "return_mode"
            )
        if self.withdrawal_start is not None:
            object.__setattr__(self, "withdrawal_start", first_of_month(self.withdrawal_start))
        object.__setattr__(self, "income_profiles", tuple(self.income_profiles))
        object.__setattr__(self, "financial", tuple(self.financial))
        object.__setattr__(self, "strategy_params", dict(self.strategy_params))

        ids = [a.id for a in self.all_accounts]
        if len(set(ids)) != len(ids):
            raise ValidationError("account ids must be unique across portfolios", "portfolios")
        person_ids = {p.id for p in self.persons}
        for fc in self.financial:
            if fc.person_id not in person_ids:
                raise ValidationError(f"unknown person {fc.person_id!r}", "financial")
        for profile in self.income_profiles:
            if profile.person_id not in person_ids:
                raise ValidationError(f"unknown person {profile.person_id!r}", "income_profiles")

    @property
    def month_count(self) -> int:
        return months_between(self.start, self.end) + 1

    @property
    def persons(self) -> list[PersonProfile]:
        seen: dict[str, PersonProfile] = {}
        for portfolio in self.portfolios:
            seen.setdefault(portfolio.owner.id, portfolio.owner)
        return list(seen.values())

    @property
    def primary_person(self) -> PersonProfile:
        return self.persons[0]

    @property
    def spouse(self) -> PersonProfile | None:
        persons = self.persons
        if len(persons) < 2:
            return None
        primary = persons[0]
        for person in persons[1:]:
            if person.id == primary.spouse_id:
                return person
        return persons[1]

    @property
    def is_couple(self) -> bool:
        return self.spouse is not None

    @property
    def all_accounts(self) -> list[InvestmentAccount]:
        return [a for p in self.portfolios for a in p.accounts]

    @property
    def initial_balance(self) -> Decimal:
        return money(sum((p.total_balance for p in self.portfolios), Decimal("0")))

    def portfolio_for(self, person_id: str) -> Portfolio | None:
        return next((p for p in self.portfolios if p.owner.id == person_id), None)

    def financial_for(self, person_id: str) -> PersonFinancialConfig | None:
        return next((f for f in self.financial if f.person_id == person_id), None)

    @property
    def distribution_start(self) -> date:
        """First month withdrawals are expected."""
        retirement = first_of_month(self.primary_person.retirement_date)
        if self.withdrawal_start is not None and self.withdrawal_start > retirement:
            return self.withdrawal_start
        return retirement

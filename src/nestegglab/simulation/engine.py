"""
Monthly simulation engine.

``SimulationEngine.run(config)`` advances one month at a time from the
config's start to its end month. Each month runs the same fixed steps:

1. determine the phase
2. process income
3. process life events (may change flags for later months)
4. calculate expenses
5. execute financials: contributions in ACCUMULATION, withdrawals in
   DISTRIBUTION and SURVIVOR, nothing in TRANSITION
6. apply investment returns
7. record an immutable ``MonthlySnapshot``

The engine coordinates; every decision is delegated to a collaborator
(income processor, expense calculator, orchestrator, contribution router,
RMD and tax calculators). Business conditions such as depleted accounts or
unmet targets are recorded on the snapshots and never stop a run.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from datetime import date
from decimal import Decimal

import numpy as np

from nestegglab.core.context import SpendingContext, SpendingPlan
from nestegglab.core.enums import ContributionType, FilingStatus, SimulationPhase
from nestegglab.core.model import PersonProfile
from nestegglab.core.money import ONE, TWELVE, ZERO, money, rate, to_decimal
from nestegglab.core.results import AccountMonthlyFlow, MonthlySnapshot, TaxSummary, TimeSeries
from nestegglab.core.state import SimulationState
from nestegglab.core.utils import first_of_month, iter_months, months_between
from nestegglab.orchestration.contributions import DefaultContributionRouter
from nestegglab.orchestration.spending import build_orchestrator
from nestegglab.rules.expenses import DefaultExpenseCalculator, ExpenseBreakdown
from nestegglab.rules.income import DefaultIncomeProcessor, MonthlyIncome
from nestegglab.rules.rmd import DefaultRmdCalculator

from .config import RETURN_MODE_BLENDED, SimulationConfig

logger = logging.getLogger(__name__)

MIN_ANNUAL_RETURN = Decimal("-0.99")
_TWELFTH = ONE / TWELVE

EVENT_RETIREMENT = "RETIREMENT"
EVENT_SPOUSE_DEATH = "SPOUSE_DEATH"
EVENT_DEATH = "DEATH"
EVENT_LTC_START = "LTC_START"
EVENT_RMD_START = "RMD_START"
EVENT_UNALLOCATED = "UNALLOCATED_CONTRIBUTION"
CONTINGENCY_LTC = "LTC"


def monthly_rate(annual_rate) -> Decimal:
    """
    Effective monthly rate for an annual rate: ``(1 + annual) ** (1/12) - 1``.

    Rounded to 6 places. Annual losses beyond -99% are clamped to -99%.

    **Example:**
        ```python
        monthly_rate(Decimal("0.07"))   # Decimal("0.005654")
        ```
    """
    annual = max(to_decimal(annual_rate), MIN_ANNUAL_RETURN)
    return rate((ONE + annual) ** _TWELFTH - ONE, 6)


def determine_phase(
    month: date,
    retirement_month: date,
    survivor_mode: bool = False,
    withdrawal_start: date | None = None,
) -> SimulationPhase:
    """
    Phase for a month.

    SURVIVOR whenever survivor mode is set; ACCUMULATION before retirement;
    TRANSITION between retirement and a later ``withdrawal_start``; otherwise
    DISTRIBUTION.
    """
    if survivor_mode:
        return SimulationPhase.SURVIVOR
    month = first_of_month(month)
    if month < first_of_month(retirement_month):
        return SimulationPhase.ACCUMULATION
    if withdrawal_start is not None and month < first_of_month(withdrawal_start):
        return SimulationPhase.TRANSITION
    return SimulationPhase.DISTRIBUTION


class SimulationEngine:
    """
    Runs simulations. One engine can run many configs; each run owns its own
    ``SimulationState``.

    **Example Usage:**
        ```python
        engine = SimulationEngine()
        series = engine.run(config)
        print(series.last().total_portfolio_balance)
        ```
    """

    def __init__(
        self,
        income_processor: DefaultIncomeProcessor | None = None,
        expense_calculator: DefaultExpenseCalculator | None = None,
        contribution_router: DefaultContributionRouter | None = None,
        rmd_calculator: DefaultRmdCalculator | None = None,
    ):
        self.income_processor = income_processor or DefaultIncomeProcessor()
        self.expense_calculator = expense_calculator
        self.contribution_router = contribution_router or DefaultContributionRouter()
        self.rmd_calculator = rmd_calculator or DefaultRmdCalculator()

    def run(
        self, config: SimulationConfig, rng: np.random.Generator | None = None
    ) -> TimeSeries:
        """Simulate every month of ``config`` and return the snapshots."""
        return _Run(self, config, rng).execute()


class _Run:
    """State and per-run bookkeeping for one ``SimulationEngine.run`` call."""

    def __init__(self, engine: SimulationEngine, config: SimulationConfig, rng):
        self.engine = engine
        self.config = config
        self.state = SimulationState.from_portfolios(config.portfolios)
        self.series = TimeSeries()
        self.market = config.levers.market
        if self.market.mode.is_stochastic and rng is None:
            rng = np.random.default_rng()
        self.rng = rng
        self.expenses = engine.expense_calculator or DefaultExpenseCalculator.from_levers(
            config.levers.expense
        )
        self.orchestrator = build_orchestrator(
            config.orchestrator, config.strategy, config.sequencer, engine.rmd_calculator
        )
        self.primary = config.primary_person
        self.retirement_month = first_of_month(self.primary.retirement_date)
        self.deceased: set[str] = set()
        self.fired: set[str] = set()
        self.phase: SimulationPhase | None = None
        self.salary_by_year: dict[tuple[str, int], Decimal] = {}
        self.cumulative = {
            "contributions": ZERO,
            "withdrawals": ZERO,
            "returns": ZERO,
            "taxes": ZERO,
        }
        self._rate_cache: dict[Decimal, Decimal] = {}
        self._year_draw: tuple[int, Decimal] | None = None

    # --- loop ---------------------------------------------------------------

    def execute(self) -> TimeSeries:
        cfg = self.config
        logger.info(
            "Simulation start: %s..%s (%d months), strategy=%s",
            f"{cfg.start:%Y-%m}",
            f"{cfg.end:%Y-%m}",
            cfg.month_count,
            cfg.strategy.name,
        )
        if cfg.return_mode == RETURN_MODE_BLENDED:
            warnings.warn(
                "return_mode='blended' applies one portfolio-wide rate to every "
                "account; per-account returns are the default",
                UserWarning,
                stacklevel=3,
            )
        for month in iter_months(cfg.start, cfg.end):
            self.process_month(month)
            if cfg.stop_at_death and len(self.deceased) == len(cfg.persons):
                logger.info("All persons deceased at %s; stopping", f"{month:%Y-%m}")
                break
        logger.info(
            "Simulation end: %d months, ending balance %s",
            len(self.series),
            self.state.calculate_total_balance(),
        )
        return self.series

    def process_month(self, month: date) -> MonthlySnapshot:
        # 1. phase
        phase = determine_phase(
            month,
            self.retirement_month,
            self.state.is_survivor_mode,
            self.config.withdrawal_start,
        )
        if phase is not self.phase:
            logger.info("Phase %s from %s", phase.name, f"{month:%Y-%m}")
            self.phase = phase

        # 2. income
        income = self.engine.income_processor.process(
            self.config.income_profiles, month, phase, self.deceased
        )
        for person_id, amount in income.salary_by_person.items():
            key = (person_id, month.year)
            self.salary_by_year[key] = money(self.salary_by_year.get(key, ZERO) + amount)

        # 3. events
        events = self.process_events(month)

        # 4. expenses
        person = self.reference_person()
        age = person.age_on(month)
        breakdown = self.expenses.calculate(
            self.config.budget, month, phase, age, self.state.flags
        )

        # 5. financials
        starts = {s.account_id: s.balance for s in self.state.account_states()}
        contributions: dict[str, Decimal] = {}
        withdrawals: dict[str, Decimal] = {}
        plan: SpendingPlan | None = None
        if phase.allows_contributions:
            contributions, unallocated = self.execute_contributions(month, income)
            if unallocated > 0:
                events.append(EVENT_UNALLOCATED)
        elif phase.expects_withdrawals:
            plan, executed = self.execute_withdrawals(month, person, income, breakdown)
            withdrawals = {i: flow.withdrawals for i, flow in executed.items()}

        # 6. returns
        returns = self.state.apply_returns(self.account_rates(month, phase))

        # 7. snapshot
        flows = {
            s.account_id: AccountMonthlyFlow.build(
                s.account_id,
                s.account_name,
                starting_balance=starts[s.account_id],
                contributions=contributions.get(s.account_id, ZERO),
                withdrawals=withdrawals.get(s.account_id, ZERO),
                returns=returns.get(s.account_id, ZERO),
            )
            for s in self.state.account_states()
        }
        taxes = self.tax_summary(month, income, plan)
        self._accumulate(flows, taxes)
        snapshot = MonthlySnapshot(
            month=month,
            account_flows=flows,
            salary_income=income.salary,
            social_security_income=income.social_security,
            pension_income=income.pension,
            other_income=money(income.annuity + income.other),
            total_expenses=breakdown.total,
            expenses_by_category=breakdown.by_category,
            taxes=taxes,
            cumulative_contributions=self.cumulative["contributions"],
            cumulative_withdrawals=self.cumulative["withdrawals"],
            cumulative_returns=self.cumulative["returns"],
            cumulative_taxes=self.cumulative["taxes"],
            phase=phase,
            events_triggered=tuple(events),
            withdrawal_target=plan.target_withdrawal if plan else ZERO,
            target_met=plan.meets_target if plan else True,
        )
        self.state.record_history(snapshot)
        self.series.add(snapshot)
        logger.debug(
            "%s %s balance=%s withdrawn=%s contributed=%s",
            f"{month:%Y-%m}",
            phase.name,
            snapshot.total_portfolio_balance,
            snapshot.total_withdrawals,
            snapshot.total_contributions,
        )
        return snapshot

    # --- steps --------------------------------------------------------------

    def reference_person(self) -> PersonProfile:
        """Primary person, or the first survivor once the primary has passed."""
        if self.primary.id not in self.deceased:
            return self.primary
        living = [p for p in self.config.persons if p.id not in self.deceased]
        return living[0] if living else self.primary

    def _fire_once(self, name: str, events: list[str]) -> bool:
        if name in self.fired:
            return False
        self.fired.add(name)
        events.append(name)
        logger.info("Event %s", name)
        return True

    def process_events(self, month: date) -> list[str]:
        events: list[str] = []
        cfg = self.config

        if month == self.retirement_month:
            self._fire_once(EVENT_RETIREMENT, events)

        for person in cfg.persons:
            if person.id in self.deceased or month < person.projected_end_month:
                continue
            self.deceased.add(person.id)
            living = [p for p in cfg.persons if p.id not in self.deceased]
            if living:
                events.append(EVENT_SPOUSE_DEATH)
                logger.info("Event %s (%s)", EVENT_SPOUSE_DEATH, person.id)
                self.state.set_survivor_mode(True)
            else:
                events.append(EVENT_DEATH)
                logger.info("Event %s (%s)", EVENT_DEATH, person.id)

        person = self.reference_person()
        age = person.age_on(month)
        if cfg.ltc_start_age is not None and age >= cfg.ltc_start_age:
            if self._fire_once(EVENT_LTC_START, events):
                self.state.update_flags(
                    self.state.flags.with_contingency_active(CONTINGENCY_LTC, True)
                )
        if month >= self.retirement_month and self.engine.rmd_calculator.is_rmd_required(
            age, person.birth_year
        ):
            self._fire_once(EVENT_RMD_START, events)
        return events

    def execute_contributions(
        self, month: date, income: MonthlyIncome
    ) -> tuple[dict[str, Decimal], Decimal]:
        """Route this month's contributions and deposit them."""
        deposited: dict[str, Decimal] = {}
        unallocated = ZERO
        for person_id, salary in income.salary_by_person.items():
            fc = self.config.financial_for(person_id)
            portfolio = self.config.portfolio_for(person_id)
            if fc is None or fc.routing is None or portfolio is None:
                continue
            personal = money(salary * fc.personal_contribution_rate)
            if fc.annual_contribution_limit is not None:
                room = fc.annual_contribution_limit - self.state.ytd_contributions(
                    person_id, month.year
                )
                personal = money(max(min(personal, room), ZERO))
            employer = money(salary * fc.employer_match_rate)
            person = next(p for p in self.config.persons if p.id == person_id)
            prior_income = self.salary_by_year.get(
                (person_id, month.year - 1), fc.prior_year_income
            )
            for amount, source in (
                (personal, ContributionType.PERSONAL),
                (employer, ContributionType.EMPLOYER),
            ):
                if amount <= 0:
                    continue
                allocation = self.engine.contribution_router.route(
                    amount,
                    source,
                    portfolio,
                    fc.routing,
                    month.year,
                    age=person.age_on(month),
                    prior_year_income=prior_income,
                )
                for warning in allocation.warnings:
                    logger.debug("%s contribution: %s", source.value, warning)
                for account_id, value in allocation.allocations.items():
                    self.state.deposit_to_account(account_id, value)
                    deposited[account_id] = money(deposited.get(account_id, ZERO) + value)
                if source is ContributionType.PERSONAL:
                    self.state.record_contribution(
                        person_id, month.year, allocation.total_allocated
                    )
                unallocated = money(unallocated + allocation.unallocated)
        return deposited, unallocated

    def execute_withdrawals(
        self,
        month: date,
        person: PersonProfile,
        income: MonthlyIncome,
        breakdown: ExpenseBreakdown,
    ) -> tuple[SpendingPlan, dict[str, AccountMonthlyFlow]]:
        """Build the spending context, ask the orchestrator and execute the plan."""
        cfg = self.config
        filing_status = cfg.filing_status
        if self.state.is_survivor_mode:
            filing_status = FilingStatus.SINGLE
        taxable_monthly = income.taxable_social_security + money(
            income.pension + income.annuity + income.other
        )
        context = SpendingContext(
            simulation=self.state.snapshot(month),
            date=month,
            total_expenses=breakdown.total,
            other_income=income.total_non_salary,
            age=person.age_on(month),
            birth_year=person.birth_year,
            retirement_start_date=cfg.distribution_start,
            current_taxable_income=taxable_monthly * TWELVE,
            filing_status=filing_status,
            strategy_params=cfg.strategy_params,
        )
        plan = self.orchestrator.execute(context)
        executed = self.state.apply_withdrawals(plan)
        if plan.metadata.get("adjustment") == "increase":
            self.state.record_ratchet(month)
        if not plan.meets_target:
            logger.debug(
                "%s target %s not met, shortfall %s",
                f"{month:%Y-%m}",
                plan.target_withdrawal,
                plan.shortfall,
            )
        return plan, executed

    def market_draw(self, month: date) -> Decimal:
        """
        Annual market return in effect for ``month``.

        Stochastic modes hold one annual return for each simulated year,
        counted from the start month.
        """
        market = self.market
        if not market.mode.is_stochastic:
            return market.expected_return
        year_index = months_between(self.config.start, month) // 12
        if self._year_draw is not None and self._year_draw[0] == year_index:
            return self._year_draw[1]
        if market.mode.uses_historical_data:
            draw = market.historical_returns[year_index % len(market.historical_returns)]
        else:
            sample = self.rng.normal(float(market.expected_return), float(market.return_std_dev))
            draw = rate(Decimal(str(sample)), 6)
        self._year_draw = (year_index, draw)
        return draw

    def _monthly(self, annual: Decimal) -> Decimal:
        cached = self._rate_cache.get(annual)
        if cached is None:
            cached = self._rate_cache[annual] = monthly_rate(annual)
        return cached

    def account_rates(self, month: date, phase: SimulationPhase) -> Mapping[str, Decimal] | Decimal:
        draw = self.market_draw(month)
        if self.config.return_mode == RETURN_MODE_BLENDED:
            return self._monthly(draw)
        shift = draw - self.market.expected_return
        retired = phase.is_retired
        return {
            s.account_id: self._monthly(s.account.return_rate(retired) + shift)
            for s in self.state.account_states()
        }

    def tax_summary(
        self, month: date, income: MonthlyIncome, plan: SpendingPlan | None
    ) -> TaxSummary:
        taxable_withdrawals = plan.total_taxable_amount if plan else ZERO
        tax_free = plan.total_tax_free_amount if plan else ZERO
        taxable_ss = income.taxable_social_security
        taxable_income = money(
            income.salary
            + income.pension
            + income.annuity
            + income.other
            + taxable_ss
            + taxable_withdrawals
        )
        calculator = self.config.tax_calculator
        if calculator is None or taxable_income <= 0:
            return TaxSummary(
                taxable_income=taxable_income,
                taxable_ss_income=taxable_ss,
                taxable_withdrawals=taxable_withdrawals,
                tax_free_withdrawals=tax_free,
            )
        status = self.config.filing_status
        if self.state.is_survivor_mode:
            status = FilingStatus.SINGLE
        annual = taxable_income * TWELVE
        return TaxSummary(
            taxable_income=taxable_income,
            taxable_ss_income=taxable_ss,
            taxable_withdrawals=taxable_withdrawals,
            tax_free_withdrawals=tax_free,
            federal_tax_liability=money(calculator.tax_on(annual, month.year, status) / TWELVE),
            effective_tax_rate=calculator.effective_rate(annual, month.year, status),
            marginal_tax_bracket=calculator.marginal_rate(annual, month.year, status),
        )

    def _accumulate(self, flows: Mapping[str, AccountMonthlyFlow], taxes: TaxSummary):
        c = self.cumulative
        for flow in flows.values():
            c["contributions"] = money(c["contributions"] + flow.contributions)
            c["withdrawals"] = money(c["withdrawals"] + flow.withdrawals)
            c["returns"] = money(c["returns"] + flow.returns)
        c["taxes"] = money(c["taxes"] + taxes.total_tax_liability)

"""
Smoke tests: the public API imports and a full household plan runs end to end.
"""

from datetime import date
from decimal import Decimal

import nestegglab
from nestegglab import (
    AccountType,
    Budget,
    GuardrailsSpendingStrategy,
    IncomeProfile,
    IncomeSource,
    InvestmentAccount,
    K,
    PersonProfile,
    Portfolio,
    RecurringExpense,
    SimulationConfig,
    SimulationEngine,
    SimulationPhase,
    TaxEfficientSequencer,
    success_flag,
)
from nestegglab.core.enums import ExpenseCategoryGroup, IncomeType
from nestegglab.core.registry import SequencerRegistry, SpendingRegistry


def test_public_api_exports():
    for name in nestegglab.__all__:
        assert hasattr(nestegglab, name), name
    assert nestegglab.__version__


def test_registries_populated_on_import():
    assert set(K.spending_kinds()) <= set(SpendingRegistry)
    assert set(K.sequencer_kinds()) <= set(SequencerRegistry)


def test_household_plan_end_to_end():
    alex = PersonProfile(
        id="alex",
        name="Alex",
        date_of_birth=date(1958, 6, 1),
        retirement_date=date(2026, 1, 1),
        life_expectancy=92,
    )
    portfolio = Portfolio(
        id="main",
        owner=alex,
        accounts=(
            InvestmentAccount(
                id="401k",
                name="401(k)",
                account_type=AccountType.TRADITIONAL_401K,
                balance=Decimal("800000"),
            ),
            InvestmentAccount(
                id="roth",
                name="Roth IRA",
                account_type=AccountType.ROTH_IRA,
                balance=Decimal("200000"),
            ),
            InvestmentAccount(
                id="taxable",
                name="Brokerage",
                account_type=AccountType.TAXABLE_BROKERAGE,
                balance=Decimal("150000"),
            ),
        ),
    )
    config = SimulationConfig(
        portfolios=(portfolio,),
        start=date(2025, 1, 1),
        end=date(2034, 12, 1),
        budget=Budget(
            base_year=2025,
            recurring=(
                RecurringExpense(
                    name="Living",
                    group=ExpenseCategoryGroup.ESSENTIAL,
                    monthly_amount=Decimal("4000"),
                ),
            ),
        ),
        income_profiles=(
            IncomeProfile(
                "alex",
                (
                    IncomeSource(IncomeType.SALARY, Decimal("8000"), date(2025, 1, 1), date(2025, 12, 1)),
                    IncomeSource(IncomeType.SOCIAL_SECURITY, Decimal("3000"), date(2028, 6, 1)),
                ),
            ),
        ),
        strategy=GuardrailsSpendingStrategy(),
        orchestrator=K.O_RMD_AWARE,
        sequencer=TaxEfficientSequencer(),
    )
    series = SimulationEngine().run(config)
    frame = series.to_frame()

    assert len(series) == 120
    assert series.first().phase is SimulationPhase.ACCUMULATION
    assert series.last().phase is SimulationPhase.DISTRIBUTION
    assert any("RMD_START" in s.events_triggered for s in series)
    assert success_flag(frame)
    assert frame.loc["2026-01", "withdrawals"] > 0

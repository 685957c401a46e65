"""
Enumerations shared across NestEggLab.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


class TaxTreatment(Enum):
    """How withdrawals from an account are taxed."""

    PRE_TAX = "pre_tax"  # taxed as ordinary income on withdrawal
    ROTH = "roth"  # qualified withdrawals tax-free
    HSA = "hsa"  # tax-free for qualified medical expenses
    TAXABLE = "taxable"  # after-tax money, only gains taxed


class AccountType(Enum):
    """
    Investment account types with their tax and regulatory characteristics.

    Each member carries a display name, its tax treatment, whether it is an
    employer-sponsored plan, and whether it is subject to required minimum
    distributions.
    """

    TRADITIONAL_401K = ("Traditional 401(k)", TaxTreatment.PRE_TAX, True, True)
    ROTH_401K = ("Roth 401(k)", TaxTreatment.ROTH, True, True)
    TRADITIONAL_IRA = ("Traditional IRA", TaxTreatment.PRE_TAX, False, True)
    ROTH_IRA = ("Roth IRA", TaxTreatment.ROTH, False, False)
    HSA = ("Health Savings Account", TaxTreatment.HSA, False, False)
    TAXABLE_BROKERAGE = ("Taxable Brokerage", TaxTreatment.TAXABLE, False, False)
    TRADITIONAL_403B = ("Traditional 403(b)", TaxTreatment.PRE_TAX, True, True)
    ROTH_403B = ("Roth 403(b)", TaxTreatment.ROTH, True, True)
    TRADITIONAL_457B = ("Traditional 457(b)", TaxTreatment.PRE_TAX, True, True)

    def __init__(
        self,
        display_name: str,
        tax_treatment: TaxTreatment,
        employer_sponsored: bool,
        subject_to_rmd: bool,
    ):
        self.display_name = display_name
        self.tax_treatment = tax_treatment
        self.employer_sponsored = employer_sponsored
        self.subject_to_rmd = subject_to_rmd

    @property
    def is_traditional(self) -> bool:
        return self.tax_treatment is TaxTreatment.PRE_TAX

    @classmethod
    def from_name(cls, name: str) -> AccountType:
        """Look up a member by name, case-insensitively ("roth_ira" -> ROTH_IRA)."""
        try:
            return cls[name.strip().upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown account type: {name!r}") from exc


class SimulationPhase(Enum):
    """Life phase governing whether a month contributes or withdraws."""

    ACCUMULATION = ("Accumulation", "Working years, contributing to accounts")
    TRANSITION = ("Transition", "Retired but not yet withdrawing")
    DISTRIBUTION = ("Distribution", "Retired and withdrawing from accounts")
    SURVIVOR = ("Survivor", "Surviving spouse after a death in the household")

    def __init__(self, display_name: str, description: str):
        self.display_name = display_name
        self.description = description

    @property
    def allows_contributions(self) -> bool:
        return self is SimulationPhase.ACCUMULATION

    @property
    def expects_withdrawals(self) -> bool:
        return self in (SimulationPhase.DISTRIBUTION, SimulationPhase.SURVIVOR)

    @property
    def is_retired(self) -> bool:
        return self is not SimulationPhase.ACCUMULATION


class SimulationMode(Enum):
    """How market returns are produced."""

    DETERMINISTIC = "deterministic"
    MONTE_CARLO = "monte_carlo"
    HISTORICAL = "historical"

    @property
    def is_stochastic(self) -> bool:
        return self is not SimulationMode.DETERMINISTIC

    @property
    def uses_historical_data(self) -> bool:
        return self is SimulationMode.HISTORICAL


class FilingStatus(Enum):
    SINGLE = "single"
    MARRIED_FILING_JOINTLY = "married_filing_jointly"
    MARRIED_FILING_SEPARATELY = "married_filing_separately"
    HEAD_OF_HOUSEHOLD = "head_of_household"
    QUALIFYING_SURVIVING_SPOUSE = "qualifying_surviving_spouse"


class ExpenseCategoryGroup(Enum):
    """Broad groups used for modifiers and reporting."""

    ESSENTIAL = ("Essential", "Basic living expenses that are difficult to reduce")
    HEALTHCARE = ("Healthcare", "Medical and long-term care expenses")
    DISCRETIONARY = ("Discretionary", "Lifestyle expenses that can be adjusted")
    CONTINGENCY = ("Contingency", "Reserves for unexpected expenses")
    DEBT = ("Debt", "Fixed debt payments")
    OTHER = ("Other", "Miscellaneous expenses")

    def __init__(self, display_name: str, description: str):
        self.display_name = display_name
        self.description = description


class SpendingPhase(Enum):
    """Retirement spending-curve phases (go-go, slow-go, no-go)."""

    GO_GO = ("Go-Go Years", Decimal("1.00"), 65)
    SLOW_GO = ("Slow-Go Years", Decimal("0.80"), 75)
    NO_GO = ("No-Go Years", Decimal("0.50"), 85)

    def __init__(self, display_name: str, default_multiplier: Decimal, start_age: int):
        self.display_name = display_name
        self.default_multiplier = default_multiplier
        self.default_start_age = start_age

    @classmethod
    def for_age(cls, age: int) -> SpendingPhase:
        if age < cls.SLOW_GO.default_start_age:
            return cls.GO_GO
        if age < cls.NO_GO.default_start_age:
            return cls.SLOW_GO
        return cls.NO_GO


class ContributionType(Enum):
    PERSONAL = "personal"
    EMPLOYER = "employer"


class IncomeType(Enum):
    SALARY = "salary"
    SOCIAL_SECURITY = "social_security"
    PENSION = "pension"
    ANNUITY = "annuity"
    OTHER = "other"


class InflationType(Enum):
    GENERAL = "general"
    HEALTHCARE = "healthcare"
    HOUSING = "housing"
    LTC = "ltc"
    NONE = "none"

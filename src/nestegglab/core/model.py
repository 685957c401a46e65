"""
Read-only domain entities consumed by the simulation.

People, accounts and portfolios are configuration: the engine never mutates
them. Each run copies account balances into its own ``AccountState`` objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal

from .enums import AccountType, TaxTreatment
from .errors import ValidationError, require
from .money import money, rate, to_decimal
from .utils import age_on, first_of_month


@dataclass(frozen=True)
class PersonProfile:
    """
    A person whose finances are simulated.

    Attributes:
        id: Unique identifier
        name: Display name
        date_of_birth: Birth date
        retirement_date: First day of retirement
        life_expectancy: Age at which the person is projected to pass
        social_security_start: Optional Social Security claiming date
        spouse_id: Id of the spouse's profile, if any
    """

    id: str
    name: str
    date_of_birth: date
    retirement_date: date
    life_expectancy: int = 90
    social_security_start: date | None = None
    spouse_id: str | None = None

    def __post_init__(self):
        require(self.id, "id")
        require(self.date_of_birth, "date_of_birth")
        require(self.retirement_date, "retirement_date")
        if self.retirement_date <= self.date_of_birth:
            raise ValidationError(
                "retirement date must be after date of birth", "retirement_date"
            )
        if not 1 <= self.life_expectancy <= 120:
            raise ValidationError(
                f"must be between 1 and 120 (got {self.life_expectancy})",
                "life_expectancy",
            )

    @property
    def birth_year(self) -> int:
        return self.date_of_birth.year

    def age_on(self, on: date) -> int:
        return age_on(self.date_of_birth, on)

    @property
    def retirement_age(self) -> int:
        return self.age_on(self.retirement_date)

    def is_retired(self, on: date) -> bool:
        return on >= self.retirement_date

    @property
    def projected_end_date(self) -> date:
        """Date on which the person reaches ``life_expectancy``."""
        dob = self.date_of_birth
        year = dob.year + self.life_expectancy
        day = dob.day if not (dob.month == 2 and dob.day == 29) else 28
        return date(year, dob.month, day)

    @property
    def projected_end_month(self) -> date:
        return first_of_month(self.projected_end_date)

    @property
    def has_spouse(self) -> bool:
        return self.spouse_id is not None


@dataclass(frozen=True)
class AssetAllocation:
    """Target asset mix in percent (stocks + bonds + cash = 100)."""

    stocks: Decimal = Decimal("60")
    bonds: Decimal = Decimal("40")
    cash: Decimal = Decimal("0")

    def __post_init__(self):
        for name in ("stocks", "bonds", "cash"):
            value = to_decimal(getattr(self, name))
            if value < 0 or value > 100:
                raise ValidationError(f"must be between 0 and 100 (got {value})", name)
            object.__setattr__(self, name, value)
        total = self.stocks + self.bonds + self.cash
        if abs(total - Decimal("100")) > Decimal("0.01"):
            raise ValidationError(
                f"allocation must sum to 100 (got {total})", "allocation"
            )

    @classmethod
    def of(cls, stocks, bonds, cash=0) -> AssetAllocation:
        return cls(to_decimal(stocks), to_decimal(bonds), to_decimal(cash))

    @classmethod
    def all_stocks(cls) -> AssetAllocation:
        return cls(Decimal("100"), Decimal("0"), Decimal("0"))

    @classmethod
    def all_bonds(cls) -> AssetAllocation:
        return cls(Decimal("0"), Decimal("100"), Decimal("0"))

    @classmethod
    def all_cash(cls) -> AssetAllocation:
        return cls(Decimal("0"), Decimal("0"), Decimal("100"))

    @classmethod
    def balanced(cls) -> AssetAllocation:
        return cls(Decimal("60"), Decimal("40"), Decimal("0"))

    def blended_return(
        self, stock_return: Decimal, bond_return: Decimal, cash_return: Decimal
    ) -> Decimal:
        """Weighted average return at 4 decimal places."""
        hundred = Decimal("100")
        return (
            rate(self.stocks * stock_return / hundred, 4)
            + rate(self.bonds * bond_return / hundred, 4)
            + rate(self.cash * cash_return / hundred, 4)
        )

    def dominant_class(self) -> str:
        """Largest asset class; ties resolve stocks, then bonds, then cash."""
        ranked = sorted(
            (("stocks", self.stocks), ("bonds", self.bonds), ("cash", self.cash)),
            key=lambda item: item[1],
            reverse=True,
        )
        return ranked[0][0]


DEFAULT_STOCK_RETURN = Decimal("0.07")
DEFAULT_BOND_RETURN = Decimal("0.04")
DEFAULT_CASH_RETURN = Decimal("0.02")
_MIN_RETURN = Decimal("-0.50")
_MAX_RETURN = Decimal("0.50")


@dataclass(frozen=True)
class InvestmentAccount:
    """
    An investment account and its return assumptions.

    When neither return rate is given the account uses an allocation-based
    return (stocks 7%, bonds 4%, cash 2%). The post-retirement rate falls back
    to the pre-retirement rate.

    **Example Usage:**
        ```python
        from decimal import Decimal
        from nestegglab.core.enums import AccountType
        from nestegglab.core.model import InvestmentAccount

        ira = InvestmentAccount(
            id="ira",
            name="Rollover IRA",
            account_type=AccountType.TRADITIONAL_IRA,
            balance=Decimal("500000"),
            pre_retirement_return=Decimal("0.06"),
        )
        ```
    """

    id: str
    name: str
    account_type: AccountType
    balance: Decimal = Decimal("0.00")
    allocation: AssetAllocation = field(default_factory=AssetAllocation.balanced)
    pre_retirement_return: Decimal | None = None
    post_retirement_return: Decimal | None = None

    def __post_init__(self):
        require(self.id, "id")
        require(self.account_type, "account_type")
        balance = money(to_decimal(self.balance, "balance"))
        if balance < 0:
            raise ValidationError(f"cannot be negative (got {balance})", "balance")
        object.__setattr__(self, "balance", balance)
        if not self.name:
            object.__setattr__(self, "name", self.id)
        for name in ("pre_retirement_return", "post_retirement_return"):
            value = getattr(self, name)
            if value is None:
                continue
            value = to_decimal(value, name)
            if value < _MIN_RETURN or value > _MAX_RETURN:
                raise ValidationError(
                    f"must be between {_MIN_RETURN} and {_MAX_RETURN} (got {value})",
                    name,
                )
            object.__setattr__(self, name, value)

    @property
    def tax_treatment(self) -> TaxTreatment:
        return self.account_type.tax_treatment

    @property
    def subject_to_rmd(self) -> bool:
        return self.account_type.subject_to_rmd

    @property
    def uses_allocation_based_return(self) -> bool:
        return self.pre_retirement_return is None and self.post_retirement_return is None

    def allocation_based_return(self) -> Decimal:
        return self.allocation.blended_return(
            DEFAULT_STOCK_RETURN, DEFAULT_BOND_RETURN, DEFAULT_CASH_RETURN
        )

    def return_rate(self, retired: bool) -> Decimal:
        """Expected annual return for the given life phase."""
        if retired and self.post_retirement_return is not None:
            return self.post_retirement_return
        if self.pre_retirement_return is not None:
            return self.pre_retirement_return
        return self.allocation_based_return()

    def with_balance(self, balance) -> InvestmentAccount:
        return replace(self, balance=money(balance))


@dataclass(frozen=True)
class Portfolio:
    """A person's set of accounts."""

    id: str
    owner: PersonProfile
    accounts: tuple[InvestmentAccount, ...] = ()

    def __post_init__(self):
        require(self.id, "id")
        require(self.owner, "owner")
        accounts = tuple(self.accounts)
        seen: set[str] = set()
        for account in accounts:
            if account.id in seen:
                raise ValidationError(f"duplicate account id {account.id!r}", "accounts")
            seen.add(account.id)
        object.__setattr__(self, "accounts", accounts)

    @property
    def has_accounts(self) -> bool:
        return bool(self.accounts)

    def find_account(self, account_id: str) -> InvestmentAccount | None:
        return next((a for a in self.accounts if a.id == account_id), None)

    def accounts_by_type(self, account_type: AccountType) -> list[InvestmentAccount]:
        return [a for a in self.accounts if a.account_type is account_type]

    def accounts_by_tax_treatment(
        self, treatment: TaxTreatment
    ) -> list[InvestmentAccount]:
        return [a for a in self.accounts if a.tax_treatment is treatment]

    @property
    def total_balance(self) -> Decimal:
        return money(sum((a.balance for a in self.accounts), Decimal("0")))

    def blended_return_rate(self, retired: bool) -> Decimal:
        """Balance-weighted expected return (6 places); zero for an empty portfolio."""
        total = self.total_balance
        if total == 0:
            return rate(0)
        weighted = sum(
            (a.return_rate(retired) * rate(a.balance / total) for a in self.accounts),
            Decimal("0"),
        )
        return rate(weighted)

    def retirement_month(self) -> date:
        return first_of_month(self.owner.retirement_date)


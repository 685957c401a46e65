"""
Monthly income from salaries, Social Security, pensions, annuities and other
sources.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from nestegglab.core.enums import IncomeType, SimulationPhase
from nestegglab.core.errors import ValidationError, require
from nestegglab.core.money import ONE, ZERO, money, to_decimal
from nestegglab.core.utils import first_of_month, months_between


@dataclass(frozen=True)
class IncomeSource:
    """
    A recurring monthly income stream.

    Growth is applied in annual steps: the amount rises by ``annual_growth``
    every 12 months counted from ``start``.
    """

    type: IncomeType
    monthly_amount: Decimal
    start: date
    end: date | None = None
    annual_growth: Decimal = Decimal("0")
    name: str = ""

    def __post_init__(self):
        require(self.type, "type")
        require(self.start, "start")
        amount = money(self.monthly_amount)
        if amount < 0:
            raise ValidationError(f"cannot be negative (got {amount})", "monthly_amount")
        object.__setattr__(self, "monthly_amount", amount)
        object.__setattr__(self, "start", first_of_month(self.start))
        if self.end is not None:
            end = first_of_month(self.end)
            if end < self.start:
                raise ValidationError("end must not precede start", "end")
            object.__setattr__(self, "end", end)
        object.__setattr__(self, "annual_growth", to_decimal(self.annual_growth))

    def is_active(self, month: date) -> bool:
        month = first_of_month(month)
        if month < self.start:
            return False
        return self.end is None or month <= self.end

    def amount_for(self, month: date) -> Decimal:
        if not self.is_active(month):
            return ZERO
        steps = months_between(self.start, month) // 12
        if steps == 0 or self.annual_growth == 0:
            return self.monthly_amount
        return money(self.monthly_amount * (ONE + self.annual_growth) ** steps)


@dataclass(frozen=True)
class IncomeProfile:
    """All income sources belonging to one person."""

    person_id: str
    sources: tuple[IncomeSource, ...] = ()

    def __post_init__(self):
        require(self.person_id, "person_id")
        object.__setattr__(self, "sources", tuple(self.sources))

    def sources_of(self, income_type: IncomeType) -> list[IncomeSource]:
        return [s for s in self.sources if s.type is income_type]

    def amount_for(self, income_type: IncomeType, month: date) -> Decimal:
        return money(
            sum((s.amount_for(month) for s in self.sources_of(income_type)), Decimal("0"))
        )

    @property
    def salary_sources(self) -> list[IncomeSource]:
        return self.sources_of(IncomeType.SALARY)


@dataclass(frozen=True)
class MonthlyIncome:
    """Income received in one month, by type."""

    salary: Decimal = ZERO
    social_security: Decimal = ZERO
    pension: Decimal = ZERO
    annuity: Decimal = ZERO
    other: Decimal = ZERO
    salary_by_person: dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("salary", "social_security", "pension", "annuity", "other"):
            value = money(getattr(self, name))
            if value < 0:
                raise ValidationError(f"cannot be negative (got {value})", name)
            object.__setattr__(self, name, value)

    @classmethod
    def zero(cls) -> MonthlyIncome:
        return cls()

    @property
    def total_non_salary(self) -> Decimal:
        return money(self.social_security + self.pension + self.annuity + self.other)

    @property
    def total(self) -> Decimal:
        return money(self.salary + self.total_non_salary)

    @property
    def taxable_social_security(self) -> Decimal:
        """Share of Social Security treated as taxable (85%)."""
        return money(self.social_security * Decimal("0.85"))


class DefaultIncomeProcessor:
    """
    Sums every profile's income for a month.

    Salary is paid only during ACCUMULATION. Social Security, pensions,
    annuities and other income are paid in every phase once started.
    Profiles of deceased people pay nothing; the surviving person keeps the
    larger of their own and the deceased's Social Security benefit.
    """

    def process(
        self,
        profiles: Sequence[IncomeProfile],
        month: date,
        phase: SimulationPhase,
        deceased: Iterable[str] = (),
    ) -> MonthlyIncome:
        if not profiles:
            return MonthlyIncome.zero()
        month = first_of_month(month)
        deceased = set(deceased)

        living = [p for p in profiles if p.person_id not in deceased]
        gone = [p for p in profiles if p.person_id in deceased]

        salary_by_person: dict[str, Decimal] = {}
        if phase is SimulationPhase.ACCUMULATION:
            for profile in living:
                amount = profile.amount_for(IncomeType.SALARY, month)
                if amount > 0:
                    salary_by_person[profile.person_id] = amount

        ss = {p.person_id: p.amount_for(IncomeType.SOCIAL_SECURITY, month) for p in living}
        inherited = max(
            (p.amount_for(IncomeType.SOCIAL_SECURITY, month) for p in gone), default=ZERO
        )
        if living and inherited > 0:
            survivor = living[0].person_id
            ss[survivor] = max(ss[survivor], inherited)

        def total(income_type: IncomeType) -> Decimal:
            return money(
                sum((p.amount_for(income_type, month) for p in living), Decimal("0"))
            )

        return MonthlyIncome(
            salary=sum(salary_by_person.values(), ZERO),
            social_security=sum(ss.values(), ZERO),
            pension=total(IncomeType.PENSION),
            annuity=total(IncomeType.ANNUITY),
            other=total(IncomeType.OTHER),
            salary_by_person=salary_by_person,
        )

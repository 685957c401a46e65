"""
Federal income tax lookups.

``StaticTaxTable`` is a pure lookup of ordered brackets for a year and filing
status; ``FederalTaxCalculator`` applies a table and standard deduction to an
annual income figure.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from nestegglab.core.enums import FilingStatus
from nestegglab.core.errors import ValidationError
from nestegglab.core.money import ONE, ZERO, money, rate, safe_divide, to_decimal


@dataclass(frozen=True)
class TaxBracket:
    """One marginal bracket; ``upper_bound`` is None for the top bracket."""

    rate: Decimal
    upper_bound: Decimal | None = None

    def __post_init__(self):
        value = to_decimal(self.rate)
        if value < 0 or value > 1:
            raise ValidationError(f"must be between 0 and 1 (got {value})", "rate")
        object.__setattr__(self, "rate", value)
        if self.upper_bound is not None:
            object.__setattr__(self, "upper_bound", money(self.upper_bound))


def _brackets(*pairs) -> tuple[TaxBracket, ...]:
    return tuple(
        TaxBracket(Decimal(r), Decimal(u) if u is not None else None) for r, u in pairs
    )


# 2024 federal brackets (taxable income, annual)
BRACKETS_2024: dict[FilingStatus, tuple[TaxBracket, ...]] = {
    FilingStatus.SINGLE: _brackets(
        ("0.10", "11600"),
        ("0.12", "47150"),
        ("0.22", "100525"),
        ("0.24", "191950"),
        ("0.32", "243725"),
        ("0.35", "609350"),
        ("0.37", None),
    ),
    FilingStatus.MARRIED_FILING_JOINTLY: _brackets(
        ("0.10", "23200"),
        ("0.12", "94300"),
        ("0.22", "201050"),
        ("0.24", "383900"),
        ("0.32", "487450"),
        ("0.35", "731200"),
        ("0.37", None),
    ),
    FilingStatus.MARRIED_FILING_SEPARATELY: _brackets(
        ("0.10", "11600"),
        ("0.12", "47150"),
        ("0.22", "100525"),
        ("0.24", "191950"),
        ("0.32", "243725"),
        ("0.35", "365600"),
        ("0.37", None),
    ),
    FilingStatus.HEAD_OF_HOUSEHOLD: _brackets(
        ("0.10", "16550"),
        ("0.12", "63100"),
        ("0.22", "100500"),
        ("0.24", "191950"),
        ("0.32", "243700"),
        ("0.35", "609350"),
        ("0.37", None),
    ),
}
BRACKETS_2024[FilingStatus.QUALIFYING_SURVIVING_SPOUSE] = BRACKETS_2024[
    FilingStatus.MARRIED_FILING_JOINTLY
]

STANDARD_DEDUCTION_2024: dict[FilingStatus, Decimal] = {
    FilingStatus.SINGLE: Decimal("14600"),
    FilingStatus.MARRIED_FILING_JOINTLY: Decimal("29200"),
    FilingStatus.MARRIED_FILING_SEPARATELY: Decimal("14600"),
    FilingStatus.HEAD_OF_HOUSEHOLD: Decimal("21900"),
    FilingStatus.QUALIFYING_SURVIVING_SPOUSE: Decimal("29200"),
}


class StaticTaxTable:
    """
    Bracket table for a base year, optionally indexed for later years.

    With ``indexing_rate`` set, every bracket bound for a later year is the
    base-year bound grown by ``(1 + indexing_rate) ** (year - base_year)``.
    Years before the base year use the base-year bounds.
    """

    def __init__(
        self,
        brackets: Mapping[FilingStatus, tuple[TaxBracket, ...]] | None = None,
        base_year: int = 2024,
        indexing_rate=None,
    ):
        self.brackets = dict(brackets or BRACKETS_2024)
        self.base_year = base_year
        self.indexing_rate = (
            to_decimal(indexing_rate) if indexing_rate is not None else None
        )

    def index_factor(self, year: int) -> Decimal:
        if self.indexing_rate is None or year <= self.base_year:
            return ONE
        return (ONE + self.indexing_rate) ** (year - self.base_year)

    def brackets_for(self, year: int, filing_status: FilingStatus) -> list[TaxBracket]:
        try:
            base = self.brackets[filing_status]
        except KeyError as exc:
            raise ValidationError(
                f"no brackets for {filing_status.value}", "filing_status"
            ) from exc
        factor = self.index_factor(year)
        if factor == ONE:
            return list(base)
        return [
            TaxBracket(
                b.rate, money(b.upper_bound * factor) if b.upper_bound is not None else None
            )
            for b in base
        ]


class FederalTaxCalculator:
    """
    Progressive federal tax on annual ordinary income.

    **Example Usage:**
        ```python
        calc = FederalTaxCalculator()
        calc.tax_on(Decimal("60000"), 2024, FilingStatus.SINGLE)
        calc.bracket_room(Decimal("60000"), 2024, FilingStatus.SINGLE)
        ```
    """

    def __init__(
        self,
        table: StaticTaxTable | None = None,
        standard_deduction: Mapping[FilingStatus, Decimal] | None = None,
    ):
        self.table = table or StaticTaxTable()
        self.standard_deduction = dict(standard_deduction or STANDARD_DEDUCTION_2024)

    def deduction_for(self, year: int, filing_status: FilingStatus) -> Decimal:
        base = to_decimal(self.standard_deduction.get(filing_status, ZERO))
        return money(base * self.table.index_factor(year))

    def taxable_income(self, annual_income, year: int, filing_status: FilingStatus):
        income = to_decimal(annual_income)
        return money(max(income - self.deduction_for(year, filing_status), ZERO))

    def tax_on(self, annual_income, year: int, filing_status: FilingStatus) -> Decimal:
        taxable = self.taxable_income(annual_income, year, filing_status)
        tax = Decimal("0")
        lower = Decimal("0")
        for bracket in self.table.brackets_for(year, filing_status):
            upper = bracket.upper_bound
            if upper is None or taxable <= upper:
                tax += (taxable - lower) * bracket.rate
                break
            tax += (upper - lower) * bracket.rate
            lower = upper
        return money(tax)

    def _current_bracket(self, taxable: Decimal, year: int, filing_status):
        for bracket in self.table.brackets_for(year, filing_status):
            if bracket.upper_bound is None or taxable < bracket.upper_bound:
                return bracket
        raise ValidationError("bracket table has no top bracket", "brackets")

    def marginal_rate(self, annual_income, year: int, filing_status: FilingStatus):
        taxable = self.taxable_income(annual_income, year, filing_status)
        return self._current_bracket(taxable, year, filing_status).rate

    def effective_rate(self, annual_income, year: int, filing_status: FilingStatus):
        income = to_decimal(annual_income)
        if income <= 0:
            return rate(0, 4)
        return safe_divide(self.tax_on(income, year, filing_status), income, 4)

    def bracket_room(self, annual_income, year: int, filing_status: FilingStatus):
        """
        Gross income that can still be added before the next bracket starts.

        Unused standard deduction counts as room. The top bracket has none.
        """
        income = to_decimal(annual_income)
        deduction = self.deduction_for(year, filing_status)
        taxable = self.taxable_income(income, year, filing_status)
        bracket = self._current_bracket(taxable, year, filing_status)
        if bracket.upper_bound is None:
            return ZERO
        return money(bracket.upper_bound + deduction - max(income, ZERO))

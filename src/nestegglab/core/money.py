"""
Money and rate precision handling for NestEggLab.

Every monetary value in a simulation is a ``Decimal`` rounded to cents with
half-up rounding at storage boundaries. Rates carry more places (4 to 6) until
they are applied to a balance.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from .errors import ValidationError

MONTHS_PER_YEAR = 12


class RoundingPolicy(Enum):
    """Rounding policies for currency calculations."""

    BANKERS = ROUND_HALF_EVEN
    HALF_UP = ROUND_HALF_UP


class Currency:
    """
    Currency definition with precision and rounding rules.

    Attributes:
        code: ISO currency code (e.g., 'USD')
        decimals: Number of decimal places for this currency
        rounding: Rounding policy for calculations
    """

    def __init__(
        self,
        code: str,
        decimals: int = 2,
        rounding: RoundingPolicy = RoundingPolicy.HALF_UP,
    ):
        self.code = code.upper()
        self.decimals = decimals
        self.rounding = rounding

    def quantize(self, amount: Decimal) -> Decimal:
        """Quantize amount to currency precision."""
        quantum = Decimal("1").scaleb(-self.decimals)  # 0.01 for 2 dp
        return amount.quantize(quantum, rounding=self.rounding.value)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency('{self.code}', decimals={self.decimals})"


USD = Currency("USD", decimals=2, rounding=RoundingPolicy.HALF_UP)

ZERO = Decimal("0.00")
ONE = Decimal("1")
TWELVE = Decimal("12")


def to_decimal(value: Decimal | float | str | int | None, field: str | None = None) -> Decimal:
    """
    Convert a user-supplied number to Decimal without binary float artefacts.

    Floats are routed through ``str`` so ``0.04`` becomes ``Decimal("0.04")``.
    ``None`` converts to zero. Anything that is not a finite number raises
    ``ValidationError`` naming ``field``.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValidationError(f"expected a number (got {value!r})", field)
    else:
        try:
            result = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise ValidationError(f"expected a number (got {value!r})", field) from exc
    if not result.is_finite():
        raise ValidationError(f"expected a finite number (got {value!r})", field)
    return result


def money(value: Decimal | float | str | int | None) -> Decimal:
    """Quantize a value to cents (2 places, half-up)."""
    return USD.quantize(to_decimal(value))


def rate(value: Decimal | float | str | int | None, places: int = 6) -> Decimal:
    """Quantize a rate to ``places`` decimal places (half-up)."""
    quantum = Decimal("1").scaleb(-places)
    return to_decimal(value).quantize(quantum, rounding=ROUND_HALF_UP)


def safe_divide(numerator: Decimal, denominator: Decimal, places: int = 6) -> Decimal:
    """Divide and round to ``places``; a zero denominator yields zero."""
    if denominator == 0:
        return rate(0, places)
    return rate(numerator / denominator, places)

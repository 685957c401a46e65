"""
Month arithmetic helpers for NestEggLab.

Simulated months are represented as ``datetime.date`` values pinned to the
first day of the month.
"""

from __future__ import annotations

from datetime import date

import numpy as np


def first_of_month(value: date) -> date:
    """Pin a date to the first day of its month."""
    return date(value.year, value.month, 1)


def add_months(value: date, months: int) -> date:
    """Shift a month by ``months`` (may be negative); returns the first of month."""
    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def months_between(start: date, end: date) -> int:
    """Whole months from ``start`` to ``end`` (negative when end precedes start)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def month_range(start: date, end: date) -> np.ndarray:
    """
    Inclusive range of months between two dates as ``datetime64[M]``.

    **Example:**
        ```python
        from datetime import date
        from nestegglab.core.utils import month_range

        month_range(date(2026, 1, 1), date(2026, 3, 1))
        # array(['2026-01', '2026-02', '2026-03'], dtype='datetime64[M]')
        ```
    """
    s = np.datetime64(first_of_month(start), "M")
    count = months_between(start, end) + 1
    return s + np.arange(max(count, 0)).astype("timedelta64[M]")


def iter_months(start: date, end: date):
    """Yield first-of-month dates from start to end, inclusive."""
    current = first_of_month(start)
    last = first_of_month(end)
    while current <= last:
        yield current
        current = add_months(current, 1)


def age_on(birth: date, on: date) -> int:
    """Completed years of age on a given date."""
    years = on.year - birth.year
    if (on.month, on.day) < (birth.month, birth.day):
        years -= 1
    return years


def parse_month(value) -> date:
    """Parse ``YYYY-MM``/``YYYY-MM-DD`` strings or dates into a first-of-month date."""
    if isinstance(value, date):
        return first_of_month(value)
    if isinstance(value, str):
        parts = value.strip().split("-")
        if len(parts) in (2, 3):
            return date(int(parts[0]), int(parts[1]), 1)
    raise ValueError(f"Cannot parse month from {value!r}")

"""
KPI calculation utilities for retirement simulation results.

Every function takes the frame produced by ``TimeSeries.to_frame()`` (one row
per month, indexed by a monthly ``Period``) and returns a scalar, a Series or
a DataFrame.
"""

from __future__ import annotations

import numpy as np
import pandas as pd


def success_flag(df: pd.DataFrame, balance_col: str = "balance") -> bool:
    """
    Whether the plan succeeded.

    A plan succeeds when it ends with a positive balance and every
    withdrawal target was met.
    """
    if df.empty:
        return False
    ended_funded = float(df[balance_col].iloc[-1]) > 0
    if "target_met" in df.columns:
        return ended_funded and bool(df["target_met"].all())
    return ended_funded


def depletion_month(df: pd.DataFrame, balance_col: str = "balance"):
    """
    First retired month whose ending balance is zero, or None.

    Months in ACCUMULATION are ignored (a portfolio can legitimately start
    empty while contributions build it up).
    """
    mask = df[balance_col] <= 0
    if "phase" in df.columns:
        mask &= df["phase"] != "ACCUMULATION"
    hits = df.index[mask]
    return hits[0] if len(hits) else None


def withdrawal_rate_series(
    df: pd.DataFrame,
    withdrawals_col: str = "withdrawals",
    balance_col: str = "balance",
) -> pd.Series:
    """
    Annualised withdrawal rate per month.

    Rate = withdrawals * 12 / balance before the month's withdrawal. Months
    with nothing left to draw from are NaN.
    """
    withdrawals = df[withdrawals_col]
    prior = df[balance_col].shift(1)
    if len(df):
        prior.iloc[0] = df[balance_col].iloc[0] + withdrawals.iloc[0]
    rate = np.where(prior > 0, withdrawals * 12 / prior, np.nan)
    return pd.Series(rate, index=df.index, name="withdrawal_rate")


def max_drawdown(series_or_df: pd.Series | pd.DataFrame) -> pd.Series:
    """
    Maximum drawdown from peak.

    For a Series, returns a one-element Series; for a DataFrame, the maximum
    drawdown per numeric column. Values are negative fractions (-0.25 is a
    25% fall from the running peak).
    """
    if isinstance(series_or_df, pd.Series):
        return pd.Series(
            [_drawdown(series_or_df)],
            index=[series_or_df.name or "value"],
            name="max_drawdown",
        )
    results = {}
    for col in series_or_df.columns:
        if pd.api.types.is_numeric_dtype(series_or_df[col]):
            results[col] = _drawdown(series_or_df[col])
        else:
            results[col] = np.nan
    return pd.Series(results, name="max_drawdown")


def _drawdown(values: pd.Series) -> float:
    running_max = values.expanding().max()
    drawdown = np.where(running_max > 0, (values - running_max) / running_max, 0.0)
    return float(np.min(drawdown)) if len(drawdown) else 0.0


def shortfall_months(df: pd.DataFrame) -> pd.DataFrame:
    """Months whose withdrawal target was not met, with the missing amount."""
    unmet = df[~df["target_met"]]
    return pd.DataFrame(
        {
            "target": unmet["withdrawal_target"],
            "withdrawn": unmet["withdrawals"],
            "shortfall": unmet["withdrawal_target"] - unmet["withdrawals"],
        },
        index=unmet.index,
    )


def funded_ratio(
    df: pd.DataFrame,
    balance_col: str = "balance",
    expenses_col: str = "expenses",
    income_col: str = "income",
) -> pd.Series:
    """
    Balance divided by the remaining lifetime income gap, per month.

    The remaining gap is the sum of ``max(expenses - income, 0)`` from that
    month to the end of the run. Ratios above 1 mean the current balance alone
    covers every future shortfall; an empty future gap gives ``inf``.
    """
    gap = (df[expenses_col] - df[income_col]).clip(lower=0)
    remaining = gap[::-1].cumsum()[::-1]
    ratio = np.where(remaining > 0, df[balance_col] / remaining, np.inf)
    return pd.Series(ratio, index=df.index, name="funded_ratio")


def annual_table(df: pd.DataFrame) -> pd.DataFrame:
    """Calendar-year totals (flows) and year-end balance."""
    if df.empty:
        return df
    years = df.index.year if isinstance(df.index, pd.PeriodIndex) else df.index
    grouped = df.groupby(years)
    flows = grouped[
        ["contributions", "withdrawals", "returns", "income", "expenses", "taxes"]
    ].sum()
    flows["balance"] = grouped["balance"].last()
    flows.index.name = "year"
    return flows

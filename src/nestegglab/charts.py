"""
Chart functions for visualizing retirement simulations.

All chart functions return ``(figure, tidy_dataframe_used)`` so the plotted
data can be inspected or exported alongside the figure. Plotly is optional
(``pip install nestegglab[viz]``).
"""

from __future__ import annotations

import pandas as pd

from nestegglab.core.results import TimeSeries

# Plotly imports with graceful fallback
try:
    import plotly.express as px
    import plotly.graph_objects as go

    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False


def _check_plotly() -> None:
    """Check if Plotly is available and raise helpful error if not."""
    if not PLOTLY_AVAILABLE:
        raise ImportError(
            "Plotly is required for chart functions. Install with:\n"
            "pip install plotly\n"
            "or\n"
            "pip install nestegglab[viz]"
        )


def _timestamp_index(frame: pd.DataFrame) -> pd.DataFrame:
    out = frame.copy()
    if isinstance(out.index, pd.PeriodIndex):
        out.index = out.index.to_timestamp()
    out.index.name = "month"
    return out


def balance_over_time(
    series: TimeSeries, by_account: bool = True
) -> tuple[go.Figure, pd.DataFrame]:
    """
    Portfolio balance per month, stacked by account.

    **Example:**
        ```python
        series = SimulationEngine().run(config)
        fig, data = balance_over_time(series)
        fig.show()
        ```
    """
    _check_plotly()

    if by_account:
        wide = _timestamp_index(series.account_frame())
        tidy = wide.reset_index().melt(id_vars="month", var_name="account", value_name="balance")
        fig = px.area(
            tidy,
            x="month",
            y="balance",
            color="account",
            title="Portfolio Balance by Account",
            labels={"balance": "Balance", "month": "Month"},
        )
    else:
        tidy = _timestamp_index(series.to_frame()[["balance"]]).reset_index()
        fig = px.line(
            tidy,
            x="month",
            y="balance",
            title="Portfolio Balance",
            labels={"balance": "Balance", "month": "Month"},
        )
    fig.update_layout(hovermode="x unified")
    return fig, tidy


def income_vs_expenses(series: TimeSeries) -> tuple[go.Figure, pd.DataFrame]:
    """
    Monthly income sources stacked against expenses and withdrawals.

    Withdrawals appear as their own bar segment so the chart shows how each
    month's expenses were covered.
    """
    _check_plotly()

    frame = _timestamp_index(series.to_frame())
    tidy = frame[
        ["salary", "social_security", "pension", "other_income", "withdrawals", "expenses"]
    ].reset_index()

    fig = go.Figure()
    for col, label in (
        ("salary", "Salary"),
        ("social_security", "Social Security"),
        ("pension", "Pension"),
        ("other_income", "Other Income"),
        ("withdrawals", "Withdrawals"),
    ):
        fig.add_trace(go.Bar(x=tidy["month"], y=tidy[col], name=label))
    fig.add_trace(
        go.Scatter(
            x=tidy["month"],
            y=tidy["expenses"],
            name="Expenses",
            mode="lines",
            line=dict(color="black", width=2),
        )
    )
    fig.update_layout(
        barmode="stack",
        title="Income vs Expenses",
        xaxis_title="Month",
        yaxis_title="Amount",
        hovermode="x unified",
    )
    return fig, tidy


def monte_carlo_fan(summary, qs=(5, 25, 50, 75, 95)) -> tuple[go.Figure, pd.DataFrame]:
    """
    Fan chart of balance percentiles across Monte Carlo runs.

    ``qs`` must be symmetric around the median (the default 5/25/50/75/95
    draws two shaded bands and the median line).
    """
    _check_plotly()

    paths = _timestamp_index(summary.percentile_paths(qs))
    tidy = paths.reset_index().melt(id_vars="month", var_name="percentile", value_name="balance")

    qs = list(qs)
    fig = go.Figure()
    for low, high in zip(qs, reversed(qs)):
        if low >= high:
            break
        fig.add_trace(
            go.Scatter(
                x=paths.index,
                y=paths[high],
                mode="lines",
                line=dict(width=0),
                showlegend=False,
                hoverinfo="skip",
            )
        )
        fig.add_trace(
            go.Scatter(
                x=paths.index,
                y=paths[low],
                mode="lines",
                line=dict(width=0),
                fill="tonexty",
                fillcolor="rgba(31, 119, 180, 0.2)",
                name=f"P{low}-P{high}",
            )
        )
    median = qs[len(qs) // 2]
    fig.add_trace(
        go.Scatter(
            x=paths.index,
            y=paths[median],
            mode="lines",
            name=f"P{median}",
            line=dict(color="rgb(31, 119, 180)", width=2),
        )
    )
    fig.update_layout(
        title=f"Monte Carlo Balance Range ({summary.runs} runs, "
        f"{summary.success_rate:.0%} success)",
        xaxis_title="Month",
        yaxis_title="Balance",
        hovermode="x unified",
    )
    return fig, tidy


def save_chart(fig: go.Figure, filename: str, format: str = "html") -> None:
    """
    Save chart to file.

    Args:
        fig: Plotly figure
        filename: Output filename
        format: Output format ('html', 'png', 'pdf', 'svg'); image formats
            need kaleido
    """
    _check_plotly()

    if format == "html":
        fig.write_html(filename)
    elif format in {"png", "pdf", "svg"}:
        fig.write_image(filename, format=format)
    else:
        raise ValueError(f"Unsupported format: {format}")

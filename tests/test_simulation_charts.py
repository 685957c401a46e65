"""
Tests for the Plotly chart helpers (skipped without plotly).
"""

from datetime import date

import pytest

pytest.importorskip("plotly")

from nestegglab.charts import (  # noqa: E402
    balance_over_time,
    income_vs_expenses,
    monte_carlo_fan,
    save_chart,
)
from nestegglab.core.enums import AccountType, SimulationMode  # noqa: E402
from nestegglab.simulation import (  # noqa: E402
    MarketLevers,
    MonteCarloRunner,
    SimulationConfig,
    SimulationEngine,
    SimulationLevers,
)


@pytest.fixture
def config(make_account, make_portfolio):
    portfolio = make_portfolio(
        [
            make_account("ira", AccountType.TRADITIONAL_IRA, "300000"),
            make_account("roth", AccountType.ROTH_IRA, "200000"),
        ]
    )
    return SimulationConfig(
        portfolios=(portfolio,),
        start=date(2025, 1, 1),
        end=date(2025, 12, 1),
        levers=SimulationLevers(market=MarketLevers(mode=SimulationMode.MONTE_CARLO)),
    )


def test_balance_by_account(config):
    fig, data = balance_over_time(SimulationEngine().run(config))
    assert set(data["account"]) == {"ira", "roth"}
    assert len(data) == 24
    assert fig.layout.title.text == "Portfolio Balance by Account"


def test_total_balance_line(config):
    fig, data = balance_over_time(SimulationEngine().run(config), by_account=False)
    assert list(data.columns) == ["month", "balance"]
    assert len(fig.data) == 1


def test_income_vs_expenses(config):
    fig, data = income_vs_expenses(SimulationEngine().run(config))
    assert len(data) == 12
    assert [trace.name for trace in fig.data][-1] == "Expenses"


def test_monte_carlo_fan(config):
    summary = MonteCarloRunner(config, runs=5, seed=2).run()
    fig, data = monte_carlo_fan(summary)
    assert sorted(data["percentile"].unique()) == [5, 25, 50, 75, 95]
    assert len(fig.data) >= 3


def test_save_chart_html(config, tmp_path):
    fig, _ = balance_over_time(SimulationEngine().run(config))
    target = tmp_path / "balance.html"
    save_chart(fig, str(target))
    assert target.exists()

"""
Tests for the Monte Carlo runner and its summary.
"""

import logging
from datetime import date
from decimal import Decimal

import numpy as np
import pandas as pd
import pytest

from nestegglab.core.enums import AccountType, SimulationMode
from nestegglab.core.errors import ValidationError
from nestegglab.simulation import (
    MarketLevers,
    MonteCarloRunner,
    MonteCarloSummary,
    RunResult,
    SimulationConfig,
    SimulationEngine,
    SimulationLevers,
)


@pytest.fixture
def stochastic_config(make_account, make_portfolio):
    portfolio = make_portfolio(
        [
            make_account("brokerage", AccountType.TAXABLE_BROKERAGE, "400000"),
            make_account("ira", AccountType.TRADITIONAL_IRA, "600000"),
        ]
    )
    return SimulationConfig(
        portfolios=(portfolio,),
        start=date(2025, 1, 1),
        end=date(2029, 12, 1),
        levers=SimulationLevers(market=MarketLevers(mode=SimulationMode.MONTE_CARLO)),
    )


class TestMonteCarloRunner:
    def test_reproducible_for_a_seed(self, stochastic_config):
        first = MonteCarloRunner(stochastic_config, runs=4, seed=42).run()
        second = MonteCarloRunner(stochastic_config, runs=4, seed=42).run()
        assert first.ending_balances.tolist() == second.ending_balances.tolist()

    def test_runs_differ_within_a_batch(self, stochastic_config):
        summary = MonteCarloRunner(stochastic_config, runs=4, seed=1).run()
        assert summary.ending_balances.nunique() == 4

    def test_summary_shapes(self, stochastic_config):
        summary = MonteCarloRunner(stochastic_config, runs=3, seed=7).run()

        assert summary.runs == 3
        assert 0.0 <= summary.success_rate <= 1.0
        paths = summary.balance_paths()
        assert paths.shape == (60, 3)
        assert isinstance(paths.index, pd.PeriodIndex)
        assert list(summary.percentile_paths().columns) == [5, 25, 50, 75, 95]
        assert summary.to_frame().index.name == "run"

    def test_percentiles_index(self, stochastic_config):
        summary = MonteCarloRunner(stochastic_config, runs=5, seed=3).run()
        percentiles = summary.percentiles((10, 50, 90))
        assert list(percentiles.index) == [10, 50, 90]
        assert percentiles.is_monotonic_increasing

    def test_process_pool_matches_serial(self, stochastic_config):
        serial = MonteCarloRunner(stochastic_config, runs=2, seed=11).run()
        pooled = MonteCarloRunner(stochastic_config, runs=2, seed=11, max_workers=2).run()
        assert serial.ending_balances.tolist() == pooled.ending_balances.tolist()

    def test_requires_at_least_one_run(self, stochastic_config):
        with pytest.raises(ValidationError):
            MonteCarloRunner(stochastic_config, runs=0)

    def test_deterministic_mode_warns(self, make_account, make_portfolio, caplog):
        config = SimulationConfig(
            portfolios=(make_portfolio([make_account("ira")]),),
            start=date(2025, 1, 1),
            end=date(2025, 3, 1),
        )
        with caplog.at_level(logging.WARNING, logger="nestegglab.simulation.montecarlo"):
            summary = MonteCarloRunner(config, runs=2, seed=0).run()
        assert "identical" in caplog.text
        assert summary.ending_balances.nunique() == 1


class TestMonteCarloSummary:
    def test_success_requires_every_target_met(self):
        summary = MonteCarloSummary(
            results=[
                RunResult(0, 1000.0, 0, None),
                RunResult(1, 500.0, 2, None),
                RunResult(2, 0.0, 5, date(2040, 1, 1)),
                RunResult(3, 10.0, 0, None),
            ]
        )
        assert summary.success_rate == 0.5

    def test_empty_summary(self):
        summary = MonteCarloSummary(results=[])
        assert summary.success_rate == 0.0
        assert summary.percentiles().empty
        assert summary.balance_paths().empty

    def test_uneven_paths_are_padded(self):
        summary = MonteCarloSummary(
            results=[
                RunResult(0, 2.0, 0, None, balances=(1.0, 2.0)),
                RunResult(1, 1.0, 0, None, balances=(1.0,)),
            ],
            months=[date(2025, 1, 1), date(2025, 2, 1)],
        )
        paths = summary.balance_paths()
        assert paths.shape == (2, 2)
        assert pd.isna(paths[1].iloc[1])
        assert summary.percentile_paths((50,)).iloc[1, 0] == pytest.approx(2.0)


def test_ending_balance_matches_single_engine_run(stochastic_config):
    summary = MonteCarloRunner(stochastic_config, runs=1, seed=5).run()
    seed = np.random.SeedSequence(5).spawn(1)[0]
    series = SimulationEngine().run(stochastic_config, rng=np.random.default_rng(seed))
    assert summary.ending_balances.iloc[0] == float(series.last().total_portfolio_balance)
    assert Decimal(str(summary.ending_balances.iloc[0])) > 0

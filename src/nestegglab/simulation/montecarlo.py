"""
Monte Carlo runner: many independent runs of one configuration.

Each run gets its own ``SimulationState`` (inside the engine) and its own
``numpy.random.Generator`` spawned from a ``SeedSequence``, so results are
reproducible for a given seed whether runs execute serially or in worker
processes.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from datetime import date

import numpy as np
import pandas as pd

from nestegglab.core.errors import ValidationError
from nestegglab.core.utils import iter_months

from .config import SimulationConfig
from .engine import SimulationEngine

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILES = (5, 25, 50, 75, 95)
PROGRESS_EVERY = 100


@dataclass(frozen=True)
class RunResult:
    """Compact outcome of one run (picklable, no Decimal mappings)."""

    run: int
    ending_balance: float
    unmet_months: int
    depletion_month: date | None
    balances: tuple[float, ...] = ()

    @property
    def success(self) -> bool:
        return self.ending_balance > 0 and self.unmet_months == 0


def _simulate(
    run: int,
    config: SimulationConfig,
    seed: np.random.SeedSequence,
    engine: SimulationEngine | None = None,
) -> RunResult:
    engine = engine or SimulationEngine()
    series = engine.run(config, rng=np.random.default_rng(seed))
    balances = tuple(float(s.total_portfolio_balance) for s in series)
    depleted = next(
        (s.month for s in series if s.phase.is_retired and s.total_portfolio_balance <= 0),
        None,
    )
    return RunResult(
        run=run,
        ending_balance=balances[-1] if balances else 0.0,
        unmet_months=sum(1 for s in series if not s.target_met),
        depletion_month=depleted,
        balances=balances,
    )


@dataclass
class MonteCarloSummary:
    """
    Aggregated results of a Monte Carlo batch.

    A run succeeds when it ends with money left and every withdrawal target
    was met.
    """

    results: list[RunResult]
    months: list[date] = field(default_factory=list)

    @property
    def runs(self) -> int:
        return len(self.results)

    @property
    def success_rate(self) -> float:
        if not self.results:
            return 0.0
        return sum(1 for r in self.results if r.success) / len(self.results)

    @property
    def ending_balances(self) -> pd.Series:
        return pd.Series(
            [r.ending_balance for r in self.results],
            index=pd.Index([r.run for r in self.results], name="run"),
            name="ending_balance",
        )

    def percentiles(self, qs=DEFAULT_PERCENTILES) -> pd.Series:
        """Percentiles of ending balances, indexed by percentile."""
        values = np.array([r.ending_balance for r in self.results], dtype="float64")
        if values.size == 0:
            return pd.Series(dtype="float64", name="ending_balance")
        return pd.Series(
            np.percentile(values, list(qs)),
            index=pd.Index(list(qs), name="percentile"),
            name="ending_balance",
        )

    def balance_paths(self) -> pd.DataFrame:
        """Total balance per month (rows) and run (columns)."""
        if not self.results:
            return pd.DataFrame()
        length = max(len(r.balances) for r in self.results)
        data = {
            r.run: list(r.balances) + [np.nan] * (length - len(r.balances))
            for r in self.results
        }
        index = pd.PeriodIndex(
            [pd.Period(m, freq="M") for m in self.months[:length]], name="month"
        )
        return pd.DataFrame(data, index=index)

    def percentile_paths(self, qs=DEFAULT_PERCENTILES) -> pd.DataFrame:
        """Balance percentiles per month; columns are the percentiles."""
        paths = self.balance_paths()
        if paths.empty:
            return paths
        values = np.nanpercentile(paths.to_numpy(dtype="float64"), list(qs), axis=1)
        return pd.DataFrame(values.T, index=paths.index, columns=list(qs))

    def to_frame(self) -> pd.DataFrame:
        """One row per run."""
        return pd.DataFrame(
            {
                "run": [r.run for r in self.results],
                "ending_balance": [r.ending_balance for r in self.results],
                "unmet_months": [r.unmet_months for r in self.results],
                "depletion_month": [r.depletion_month for r in self.results],
                "success": [r.success for r in self.results],
            }
        ).set_index("run")


class MonteCarloRunner:
    """
    Run ``runs`` independent simulations of ``config``.

    **Example Usage:**
        ```python
        runner = MonteCarloRunner(config, runs=1000, seed=42)
        summary = runner.run()
        print(f"{summary.success_rate:.1%}")
        print(summary.percentiles())
        ```

    ``max_workers`` > 1 fans runs out to a process pool; the default runs
    serially in the calling process.
    """

    def __init__(
        self,
        config: SimulationConfig,
        runs: int = 1000,
        seed: int | None = None,
        max_workers: int | None = None,
        engine: SimulationEngine | None = None,
    ):
        if runs < 1:
            raise ValidationError(f"must be at least 1 (got {runs})", "runs")
        if not config.levers.market.mode.is_stochastic:
            logger.warning(
                "Market mode is %s; every Monte Carlo run will be identical",
                config.levers.market.mode.name,
            )
        self.config = config
        self.runs = runs
        self.seed = seed
        self.max_workers = max_workers
        self.engine = engine or SimulationEngine()

    def seeds(self) -> list[np.random.SeedSequence]:
        return np.random.SeedSequence(self.seed).spawn(self.runs)

    def run(self) -> MonteCarloSummary:
        logger.info("Monte Carlo: %d runs, seed=%s", self.runs, self.seed)
        seeds = self.seeds()
        results: list[RunResult] = []
        if self.max_workers and self.max_workers > 1:
            with ProcessPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [
                    executor.submit(_simulate, i, self.config, s, self.engine)
                    for i, s in enumerate(seeds)
                ]
                for future in futures:
                    results.append(future.result())
                    self._progress(len(results))
        else:
            for i, s in enumerate(seeds):
                results.append(_simulate(i, self.config, s, self.engine))
                self._progress(len(results))
        summary = MonteCarloSummary(
            results=results, months=list(iter_months(self.config.start, self.config.end))
        )
        logger.info("Monte Carlo done: success rate %.1f%%", summary.success_rate * 100)
        return summary

    def _progress(self, done: int) -> None:
        if done % PROGRESS_EVERY == 0 or done == self.runs:
            logger.info("Monte Carlo progress: %d/%d runs", done, self.runs)

"""
Command-line interface for NestEggLab.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

import numpy as np
import yaml

from nestegglab import __version__
from nestegglab.core.config_loader import load_config
from nestegglab.core.errors import ConfigError
from nestegglab.kpi import depletion_month, success_flag
from nestegglab.simulation.engine import SimulationEngine
from nestegglab.simulation.montecarlo import MonteCarloRunner

EXAMPLE_CONFIG = {
    "simulation": {
        "start": "2025-01",
        "end": "2054-12",
        "strategy": {"kind": "spending.guardrails", "params": {"preset": "guyton_klinger"}},
        "orchestrator": "orchestrator.rmd_aware",
        "sequencer": {"kind": "sequencer.tax_efficient"},
        "ltc_start_age": 88,
    },
    "people": [
        {
            "id": "alex",
            "name": "Alex",
            "date_of_birth": "1960-03-15",
            "retirement_date": "2026-01-01",
            "life_expectancy": 92,
            "spouse_id": "sam",
        },
        {
            "id": "sam",
            "name": "Sam",
            "date_of_birth": "1962-09-01",
            "retirement_date": "2027-01-01",
            "life_expectancy": 94,
            "spouse_id": "alex",
        },
    ],
    "portfolios": [
        {
            "id": "alex-accounts",
            "owner": "alex",
            "accounts": [
                {"id": "alex-401k", "name": "Alex 401(k)", "type": "traditional_401k",
                 "balance": 650000},
                {"id": "alex-roth", "name": "Alex Roth IRA", "type": "roth_ira",
                 "balance": 120000},
            ],
        },
        {
            "id": "sam-accounts",
            "owner": "sam",
            "accounts": [
                {"id": "sam-ira", "name": "Sam Traditional IRA", "type": "traditional_ira",
                 "balance": 280000},
                {"id": "joint-brokerage", "name": "Joint Brokerage", "type": "taxable_brokerage",
                 "balance": 150000, "allocation": {"stocks": 70, "bonds": 30}},
            ],
        },
    ],
    "budget": {
        "base_year": 2025,
        "recurring": [
            {"name": "Housing", "group": "essential", "monthly_amount": 2400,
             "inflation": "housing"},
            {"name": "Living", "group": "essential", "monthly_amount": 2600},
            {"name": "Healthcare", "group": "healthcare", "monthly_amount": 900,
             "inflation": "healthcare"},
            {"name": "Travel", "group": "discretionary", "monthly_amount": 1200},
            {"name": "Long-term care", "group": "contingency", "monthly_amount": 6000,
             "inflation": "ltc", "contingency": "LTC"},
        ],
        "one_time": [
            {"name": "New roof", "group": "other", "amount": 18000, "month": "2031-06"},
        ],
    },
    "income": [
        {"person": "alex", "sources": [
            {"type": "salary", "monthly_amount": 9500, "start": "2025-01", "end": "2025-12"},
            {"type": "social_security", "monthly_amount": 2900, "start": "2027-03",
             "annual_growth": 0.025},
        ]},
        {"person": "sam", "sources": [
            {"type": "salary", "monthly_amount": 6000, "start": "2025-01", "end": "2026-12"},
            {"type": "social_security", "monthly_amount": 1800, "start": "2029-09",
             "annual_growth": 0.025},
        ]},
    ],
    "financial": [
        {"person": "alex", "personal_contribution_rate": 0.10, "employer_match_rate": 0.04,
         "annual_contribution_limit": 30500,
         "routing": [{"account": "alex-401k", "percentage": 1.0}]},
        {"person": "sam", "personal_contribution_rate": 0.08, "employer_match_rate": 0.0,
         "routing": [{"account": "sam-ira", "percentage": 1.0}]},
    ],
    "levers": {
        "market": {"mode": "monte_carlo", "expected_return": 0.06, "return_std_dev": 0.12},
    },
    "tax": {"filing_status": "married_filing_jointly", "indexing_rate": 0.025},
}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_example(_) -> int:
    """Print a complete example configuration as YAML."""
    yaml.safe_dump(EXAMPLE_CONFIG, sys.stdout, sort_keys=False)
    return 0


def cmd_run(args) -> int:
    """Run one deterministic-or-seeded simulation and export the monthly table."""
    try:
        config = load_config(args.input)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    series = SimulationEngine().run(config, rng=np.random.default_rng(args.seed))
    frame = series.to_frame()
    if args.annual:
        frame = frame.groupby(frame.index.year).agg(
            {
                "balance": "last",
                "contributions": "sum",
                "withdrawals": "sum",
                "returns": "sum",
                "income": "sum",
                "expenses": "sum",
                "taxes": "sum",
                "target_met": "all",
            }
        )
        frame.index.name = "year"

    if args.output:
        if args.output.endswith(".csv"):
            frame.to_csv(args.output)
        else:
            frame.index = frame.index.astype(str)
            frame.to_json(args.output, orient="index", indent=2)
        print(f"Results saved to {args.output}")

    monthly = series.to_frame()
    depleted = depletion_month(monthly)
    outcome = "succeeded" if success_flag(monthly) else "fell short"
    if depleted is not None:
        outcome += f" (depleted {depleted})"
    print(f"Simulated {len(series)} months with {config.strategy.name}")
    print(f"Ending balance: {series.last().total_portfolio_balance:,.2f}")
    print(f"Plan {outcome}")
    return 0


def cmd_validate(args) -> int:
    """Validate a configuration file without running it."""
    try:
        config = load_config(args.input)
    except (ConfigError, FileNotFoundError) as e:
        if args.format == "json":
            json.dump({"is_valid": False, "error": str(e)}, sys.stdout, indent=2)
            sys.stdout.write("\n")
        else:
            print(f"Validation failed: {e}", file=sys.stderr)
        return 1

    report = {
        "is_valid": True,
        "months": config.month_count,
        "people": [p.id for p in config.persons],
        "accounts": [a.id for a in config.all_accounts],
        "strategy": config.strategy.name,
        "orchestrator": config.orchestrator,
        "initial_balance": str(config.initial_balance),
    }
    if args.format == "json":
        json.dump(report, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        print(f"✅ {args.input} is valid: {report['months']} months, "
              f"{len(report['accounts'])} accounts, strategy {report['strategy']}")
    return 0


def cmd_montecarlo(args) -> int:
    """Run a Monte Carlo batch and print the success rate and percentiles."""
    try:
        config = load_config(args.input)
        runner = MonteCarloRunner(
            config, runs=args.runs, seed=args.seed, max_workers=args.workers
        )
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    summary = runner.run()
    print(f"Runs: {summary.runs}")
    print(f"Success rate: {summary.success_rate:.1%}")
    print("Ending balance percentiles:")
    for q, value in summary.percentiles().items():
        print(f"  P{q:<3} {value:>16,.2f}")
    if args.output:
        summary.to_frame().to_csv(args.output)
        print(f"Per-run results saved to {args.output}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="nestegglab", description="NestEggLab - Monthly retirement simulation engine"
    )
    parser.add_argument("--version", action="version", version=f"NestEggLab {__version__}")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True, help="Available commands")

    example_parser = subparsers.add_parser("example", help="Print an example YAML config")
    example_parser.set_defaults(func=cmd_example)

    run_parser = subparsers.add_parser("run", help="Run a simulation")
    run_parser.add_argument("input", help="YAML or JSON config file")
    run_parser.add_argument("-o", "--output", help="Write results to .json or .csv")
    run_parser.add_argument("--annual", action="store_true", help="Aggregate by year")
    run_parser.add_argument("--seed", type=int, help="Seed for stochastic market modes")
    run_parser.set_defaults(func=cmd_run)

    validate_parser = subparsers.add_parser("validate", help="Validate a config file")
    validate_parser.add_argument("input", help="YAML or JSON config file")
    validate_parser.add_argument(
        "--format", choices=["human", "json"], default="human", help="Output format"
    )
    validate_parser.set_defaults(func=cmd_validate)

    mc_parser = subparsers.add_parser("montecarlo", help="Run a Monte Carlo batch")
    mc_parser.add_argument("input", help="YAML or JSON config file")
    mc_parser.add_argument("--runs", type=int, default=1000, help="Number of runs")
    mc_parser.add_argument("--seed", type=int, help="Seed for reproducible batches")
    mc_parser.add_argument("--workers", type=int, help="Worker processes (default: serial)")
    mc_parser.add_argument("-o", "--output", help="Write per-run results to CSV")
    mc_parser.set_defaults(func=cmd_montecarlo)

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()

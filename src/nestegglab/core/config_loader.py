"""Load a SimulationConfig from YAML/JSON files or plain mappings."""

from __future__ import annotations

import json
from copy import deepcopy
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from nestegglab.orchestration.contributions import RoutingConfiguration, RoutingRule
from nestegglab.rules.expenses import (
    Budget,
    OneTimeExpense,
    RecurringExpense,
    SpendingCurveModifier,
)
from nestegglab.rules.income import IncomeProfile, IncomeSource
from nestegglab.rules.tax import FederalTaxCalculator, StaticTaxTable
from nestegglab.simulation.config import (
    EconomicLevers,
    ExpenseLevers,
    MarketLevers,
    PersonFinancialConfig,
    SimulationConfig,
    SimulationLevers,
)

from .enums import (
    AccountType,
    ExpenseCategoryGroup,
    FilingStatus,
    IncomeType,
    InflationType,
    SimulationMode,
)
from .errors import ConfigError, ValidationError
from .kinds import K
from .model import AssetAllocation, InvestmentAccount, PersonProfile, Portfolio
from .money import to_decimal
from .registry import create_sequencer, create_spending_strategy
from .utils import parse_month

__all__ = ["ConfigLoadError", "load_config", "read_source"]


class ConfigLoadError(ConfigError):
    """Raised when a configuration file cannot be parsed or validated."""


def load_config(source: str | Path | dict[str, Any], *, format: str | None = None):
    """
    Parse a simulation configuration from YAML/JSON/dict.

    Sections: ``simulation``, ``people``, ``portfolios``, ``budget``,
    ``income``, ``levers``, ``financial`` and ``tax``. Strategies and
    sequencers are named by kind and built through the registries.

    **Example:**
        ```yaml
        simulation:
          start: 2025-01
          end: 2055-12
          strategy: {kind: spending.guardrails, params: {preset: guyton_klinger}}
          orchestrator: orchestrator.rmd_aware
        people:
          - {id: alex, name: Alex, date_of_birth: 1962-04-15, retirement_date: 2027-01-01}
        portfolios:
          - id: main
            owner: alex
            accounts:
              - {id: ira, name: IRA, type: traditional_ira, balance: 600000}
        ```
    """
    mapping, label = read_source(source, format=format)
    sim = _ensure_dict(mapping.get("simulation"), f"{label}::simulation")
    if "start" not in sim or "end" not in sim:
        raise ConfigLoadError(f"{label}::simulation: 'start' and 'end' are required")

    people = _people(mapping.get("people"), label)
    portfolios = _portfolios(mapping.get("portfolios"), people, label)
    tax_section = _ensure_dict(mapping.get("tax"), f"{label}::tax")

    try:
        return SimulationConfig(
            portfolios=portfolios,
            start=_month(sim["start"], f"{label}::simulation.start"),
            end=_month(sim["end"], f"{label}::simulation.end"),
            budget=_budget(mapping.get("budget"), label),
            income_profiles=_income(mapping.get("income"), label),
            levers=_levers(mapping.get("levers"), label),
            strategy=_strategy(sim.get("strategy"), f"{label}::simulation.strategy"),
            orchestrator=sim.get("orchestrator", K.O_DEFAULT),
            sequencer=_sequencer(sim.get("sequencer"), f"{label}::simulation.sequencer"),
            financial=_financial(mapping.get("financial"), label),
            withdrawal_start=_optional_month(
                sim.get("withdrawal_start"), f"{label}::simulation.withdrawal_start"
            ),
            return_mode=sim.get("return_mode", "per_account"),
            ltc_start_age=sim.get("ltc_start_age"),
            stop_at_death=bool(sim.get("stop_at_death", False)),
            tax_calculator=_tax_calculator(tax_section, label),
            filing_status=_enum(
                FilingStatus,
                tax_section.get("filing_status", "single"),
                f"{label}::tax.filing_status",
            ),
            strategy_params=_decimalize(
                _ensure_dict(sim.get("strategy_params"), f"{label}::simulation.strategy_params")
            ),
        )
    except ConfigLoadError:
        raise
    except ConfigError as exc:
        raise ConfigLoadError(f"{label}: {exc}") from exc


def read_source(
    source: str | Path | dict[str, Any], *, format: str | None = None
) -> tuple[dict[str, Any], str]:
    if isinstance(source, dict):
        return deepcopy(source), "<mapping>"

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(path)

    fmt = (format or path.suffix.lstrip(".")).lower()
    text = path.read_text(encoding="utf-8")
    try:
        if fmt in {"yaml", "yml", ""}:
            data = yaml.safe_load(text)
        elif fmt == "json":
            data = json.loads(text)
        else:
            raise ConfigLoadError(f"Unsupported config format '{fmt}' for {path}")
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigLoadError(f"{path}: cannot parse {fmt or 'yaml'}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigLoadError(f"Config root must be a mapping (source={path})")
    return data, str(path)


# --- sections -----------------------------------------------------------------


def _people(raw: Any, label: str) -> dict[str, PersonProfile]:
    entries = _ensure_list(raw, f"{label}::people")
    if not entries:
        raise ConfigLoadError(f"{label}: config must define at least one person")
    people: dict[str, PersonProfile] = {}
    for idx, entry in enumerate(entries):
        ctx = f"{label}::people[{idx}]"
        data = _ensure_dict(entry, ctx)
        person_id = _coerce_str(data.get("id"), f"{ctx}.id")
        people[person_id] = _build(
            ctx,
            PersonProfile,
            id=person_id,
            name=data.get("name", person_id),
            date_of_birth=_coerce_date(data.get("date_of_birth"), f"{ctx}.date_of_birth"),
            retirement_date=_coerce_date(
                data.get("retirement_date"), f"{ctx}.retirement_date"
            ),
            life_expectancy=int(data.get("life_expectancy", 90)),
            social_security_start=_coerce_date(
                data.get("social_security_start"), f"{ctx}.social_security_start"
            ),
            spouse_id=data.get("spouse_id"),
        )
    return people


def _portfolios(raw: Any, people: dict[str, PersonProfile], label: str) -> list[Portfolio]:
    entries = _ensure_list(raw, f"{label}::portfolios")
    if not entries:
        raise ConfigLoadError(f"{label}: config must define at least one portfolio")
    portfolios: list[Portfolio] = []
    for idx, entry in enumerate(entries):
        ctx = f"{label}::portfolios[{idx}]"
        data = _ensure_dict(entry, ctx)
        owner_id = _coerce_str(data.get("owner"), f"{ctx}.owner")
        if owner_id not in people:
            raise ConfigLoadError(f"{ctx}.owner: unknown person '{owner_id}'")
        accounts = [
            _account(a, f"{ctx}.accounts[{i}]")
            for i, a in enumerate(_ensure_list(data.get("accounts"), f"{ctx}.accounts"))
        ]
        portfolios.append(
            _build(
                ctx,
                Portfolio,
                id=data.get("id", owner_id),
                owner=people[owner_id],
                accounts=tuple(accounts),
            )
        )
    return portfolios


def _account(raw: Any, ctx: str) -> InvestmentAccount:
    data = _ensure_dict(raw, ctx)
    account_id = _coerce_str(data.get("id"), f"{ctx}.id")
    try:
        account_type = AccountType.from_name(_coerce_str(data.get("type"), f"{ctx}.type"))
    except ValueError as exc:
        raise ConfigLoadError(f"{ctx}.type: {exc}") from exc
    kwargs: dict[str, Any] = {
        "id": account_id,
        "name": data.get("name", account_id),
        "account_type": account_type,
        "balance": _number(data.get("balance", 0), f"{ctx}.balance"),
    }
    allocation = data.get("allocation")
    if allocation is not None:
        alloc = _ensure_dict(allocation, f"{ctx}.allocation")
        kwargs["allocation"] = _build(
            f"{ctx}.allocation",
            AssetAllocation.of,
            alloc.get("stocks", 0),
            alloc.get("bonds", 0),
            alloc.get("cash", 0),
        )
    for key in ("pre_retirement_return", "post_retirement_return"):
        if data.get(key) is not None:
            kwargs[key] = _number(data[key], f"{ctx}.{key}")
    return _build(ctx, InvestmentAccount, **kwargs)


def _budget(raw: Any, label: str) -> Budget | None:
    if raw is None:
        return None
    ctx = f"{label}::budget"
    data = _ensure_dict(raw, ctx)
    base_year = data.get("base_year")
    if not isinstance(base_year, int) or isinstance(base_year, bool):
        raise ConfigLoadError(f"{ctx}.base_year: expected an integer year")

    recurring = []
    entries = _ensure_list(data.get("recurring"), f"{ctx}.recurring", allow_none=True)
    for idx, entry in enumerate(entries or []):
        ectx = f"{ctx}.recurring[{idx}]"
        item = _ensure_dict(entry, ectx)
        recurring.append(
            _build(
                ectx,
                RecurringExpense,
                name=_coerce_str(item.get("name"), f"{ectx}.name"),
                group=_enum(
                    ExpenseCategoryGroup, item.get("group", "essential"), f"{ectx}.group"
                ),
                monthly_amount=_number(item.get("monthly_amount", 0), f"{ectx}.monthly_amount"),
                inflation=_enum(
                    InflationType, item.get("inflation", "general"), f"{ectx}.inflation"
                ),
                start=_optional_month(item.get("start"), f"{ectx}.start"),
                end=_optional_month(item.get("end"), f"{ectx}.end"),
                contingency=item.get("contingency"),
            )
        )

    one_time = []
    entries = _ensure_list(data.get("one_time"), f"{ctx}.one_time", allow_none=True)
    for idx, entry in enumerate(entries or []):
        ectx = f"{ctx}.one_time[{idx}]"
        item = _ensure_dict(entry, ectx)
        one_time.append(
            _build(
                ectx,
                OneTimeExpense,
                name=_coerce_str(item.get("name"), f"{ectx}.name"),
                group=_enum(ExpenseCategoryGroup, item.get("group", "other"), f"{ectx}.group"),
                amount=_number(item.get("amount", 0), f"{ectx}.amount"),
                month=_month(item.get("month"), f"{ectx}.month"),
            )
        )
    return _build(
        ctx, Budget, base_year=base_year, recurring=tuple(recurring), one_time=tuple(one_time)
    )


def _income(raw: Any, label: str) -> tuple:
    entries = _ensure_list(raw, f"{label}::income", allow_none=True) or []
    profiles = []
    for idx, entry in enumerate(entries):
        ctx = f"{label}::income[{idx}]"
        data = _ensure_dict(entry, ctx)
        sources = []
        for sidx, src in enumerate(_ensure_list(data.get("sources"), f"{ctx}.sources")):
            sctx = f"{ctx}.sources[{sidx}]"
            item = _ensure_dict(src, sctx)
            sources.append(
                _build(
                    sctx,
                    IncomeSource,
                    type=_enum(IncomeType, item.get("type"), f"{sctx}.type"),
                    monthly_amount=_number(item.get("monthly_amount", 0), f"{sctx}.monthly_amount"),
                    start=_month(item.get("start"), f"{sctx}.start"),
                    end=_optional_month(item.get("end"), f"{sctx}.end"),
                    annual_growth=_number(item.get("annual_growth", 0), f"{sctx}.annual_growth"),
                    name=item.get("name", ""),
                )
            )
        profiles.append(
            _build(
                ctx,
                IncomeProfile,
                person_id=_coerce_str(data.get("person"), f"{ctx}.person"),
                sources=tuple(sources),
            )
        )
    return tuple(profiles)


def _levers(raw: Any, label: str):
    ctx = f"{label}::levers"
    data = _ensure_dict(raw, ctx)
    economic = _decimalize(_ensure_dict(data.get("economic"), f"{ctx}.economic"))

    market = _ensure_dict(data.get("market"), f"{ctx}.market")
    if "mode" in market:
        market["mode"] = _enum(SimulationMode, market["mode"], f"{ctx}.market.mode")
    if "historical_returns" in market:
        market["historical_returns"] = tuple(
            _number(r, f"{ctx}.market.historical_returns")
            for r in _ensure_list(market["historical_returns"], f"{ctx}.market.historical_returns")
        )

    expense = _ensure_dict(data.get("expense"), f"{ctx}.expense")
    if "inflation_rates" in expense:
        rates = _ensure_dict(expense["inflation_rates"], f"{ctx}.expense.inflation_rates")
        expense["inflation_rates"] = {
            _enum(InflationType, k, f"{ctx}.expense.inflation_rates"): _number(
                v, f"{ctx}.expense.inflation_rates.{k}"
            )
            for k, v in rates.items()
        }
    if "spending_curve" in expense and expense["spending_curve"] is not None:
        expense["spending_curve"] = _build(
            f"{ctx}.expense.spending_curve",
            SpendingCurveModifier,
            **_decimalize(_ensure_dict(expense["spending_curve"], f"{ctx}.expense.spending_curve")),
        )

    return SimulationLevers(
        economic=_build(f"{ctx}.economic", EconomicLevers, **economic),
        market=_build(f"{ctx}.market", MarketLevers, **_decimalize(market)),
        expense=_build(f"{ctx}.expense", ExpenseLevers, **_decimalize(expense)),
    )


def _financial(raw: Any, label: str) -> tuple:
    entries = _ensure_list(raw, f"{label}::financial", allow_none=True) or []
    configs = []
    for idx, entry in enumerate(entries):
        ctx = f"{label}::financial[{idx}]"
        data = _ensure_dict(entry, ctx)
        routing = None
        rules = _ensure_list(data.get("routing"), f"{ctx}.routing", allow_none=True)
        if rules:
            routing = _build(
                f"{ctx}.routing",
                RoutingConfiguration,
                rules=tuple(
                    _build(
                        f"{ctx}.routing[{i}]",
                        RoutingRule,
                        account_id=_coerce_str(
                            _ensure_dict(r, f"{ctx}.routing[{i}]").get("account"),
                            f"{ctx}.routing[{i}].account",
                        ),
                        percentage=_number(r.get("percentage", 0), f"{ctx}.routing[{i}].percentage"),
                        priority=int(r.get("priority", 0)),
                    )
                    for i, r in enumerate(rules)
                ),
            )
        limit = data.get("annual_contribution_limit")
        configs.append(
            _build(
                ctx,
                PersonFinancialConfig,
                person_id=_coerce_str(data.get("person"), f"{ctx}.person"),
                routing=routing,
                personal_contribution_rate=_number(
                    data.get("personal_contribution_rate", 0), f"{ctx}.personal_contribution_rate"
                ),
                employer_match_rate=_number(
                    data.get("employer_match_rate", 0), f"{ctx}.employer_match_rate"
                ),
                annual_contribution_limit=(
                    _number(limit, f"{ctx}.annual_contribution_limit") if limit is not None else None
                ),
                prior_year_income=_number(data.get("prior_year_income", 0), f"{ctx}.prior_year_income"),
            )
        )
    return tuple(configs)


def _tax_calculator(data: dict[str, Any], label: str):
    if not data or not data.get("enabled", True):
        return None
    table = _build(
        f"{label}::tax",
        StaticTaxTable,
        base_year=int(data.get("base_year", 2024)),
        indexing_rate=data.get("indexing_rate"),
    )
    return FederalTaxCalculator(table=table)


def _strategy(raw: Any, ctx: str):
    if raw is None:
        return create_spending_strategy(K.S_STATIC)
    kind, params = _kind_and_params(raw, ctx)
    if isinstance(params.get("curve"), dict):
        params["curve"] = _build(f"{ctx}.params.curve", SpendingCurveModifier, **params["curve"])
    return _build(ctx, create_spending_strategy, kind, **params)


def _sequencer(raw: Any, ctx: str):
    if raw is None:
        return None
    kind, params = _kind_and_params(raw, ctx)
    return _build(ctx, create_sequencer, kind, **params)


def _kind_and_params(raw: Any, ctx: str) -> tuple[str, dict[str, Any]]:
    if isinstance(raw, str):
        return raw, {}
    data = _ensure_dict(raw, ctx)
    kind = _coerce_str(data.get("kind"), f"{ctx}.kind")
    params = _decimalize(_ensure_dict(data.get("params"), f"{ctx}.params"))
    return kind, params


# --- coercion helpers ---------------------------------------------------------


def _build(ctx: str, factory, *args, **kwargs):
    """Call a constructor, re-raising validation problems with their location."""
    try:
        return factory(*args, **kwargs)
    except ConfigError as exc:
        raise ConfigLoadError(f"{ctx}: {exc}") from exc
    except (TypeError, InvalidOperation) as exc:
        raise ConfigLoadError(f"{ctx}: {exc}") from exc


def _number(value: Any, ctx: str) -> Decimal:
    """Convert a numeric field, reporting a non-number with its location."""
    try:
        return to_decimal(value)
    except ValidationError as exc:
        raise ConfigLoadError(f"{ctx}: {exc.message}") from exc


def _decimalize(value: Any) -> Any:
    """Turn floats (recursively) into Decimals; ints and strings are kept."""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _decimalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decimalize(v) for v in value]
    return value


def _enum(enum_cls, value: Any, ctx: str):
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ConfigLoadError(f"{ctx}: expected one of {[m.name.lower() for m in enum_cls]}")
    key = value.strip()
    for member in enum_cls:
        if member.name.lower() == key.lower() or (
            isinstance(member.value, str) and member.value == key.lower()
        ):
            return member
    raise ConfigLoadError(
        f"{ctx}: unknown value '{value}'; expected one of {[m.name.lower() for m in enum_cls]}"
    )


def _month(value: Any, ctx: str) -> date:
    if value is None:
        raise ConfigLoadError(f"{ctx}: a month (YYYY-MM) is required")
    try:
        return parse_month(value)
    except ValueError as exc:
        raise ConfigLoadError(f"{ctx}: {exc}") from exc


def _optional_month(value: Any, ctx: str) -> date | None:
    return None if value is None else _month(value, ctx)


def _coerce_date(value: Any, ctx: str) -> date | None:
    if value is None:
        return None
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise ConfigLoadError(f"{ctx}: invalid ISO date '{value}'") from exc
    raise ConfigLoadError(f"{ctx}: expected ISO date string")


def _coerce_str(value: Any, ctx: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigLoadError(f"{ctx}: expected non-empty string")
    return value


def _ensure_dict(value: Any, ctx: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigLoadError(f"{ctx}: expected a mapping")
    return deepcopy(value)


def _ensure_list(value: Any, ctx: str, *, allow_none: bool = False) -> list[Any] | None:
    if value is None:
        if allow_none:
            return None
        raise ConfigLoadError(f"{ctx}: expected a list")
    if not isinstance(value, list):
        raise ConfigLoadError(f"{ctx}: expected a list")
    return list(value)

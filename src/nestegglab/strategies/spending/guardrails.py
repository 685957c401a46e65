"""
Guardrails spending strategy (kind: 'spending.guardrails').

Implements the Guyton-Klinger, Vanguard dynamic spending and Kitces ratcheting
families through one configurable algorithm.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from nestegglab.core.context import SpendingContext
from nestegglab.core.errors import ValidationError
from nestegglab.core.money import ONE, TWELVE, ZERO, money, rate, to_decimal
from nestegglab.core.utils import months_between

from ._base import SpendingStrategyBase

DEFAULT_INFLATION = Decimal("0.025")
PARAM_INFLATION_RATE = "inflationRate"


@dataclass(frozen=True)
class GuardrailsConfiguration:
    """
    Parameters of a guardrails strategy.

    Attributes:
        name: Label used in the strategy name
        initial_withdrawal_rate: Annual rate applied to the initial balance in year one
        inflation_rate: Default annual increase of prior-year spending
        upper_threshold_multiplier: Prosperity guardrail; None disables it
        increase_adjustment: Raise applied when the upper guardrail trips
        lower_threshold_multiplier: Capital-preservation guardrail; None disables it
        decrease_adjustment: Cut applied when the lower guardrail trips
        absolute_floor / absolute_ceiling: Annual spending bounds (optional)
        allow_spending_cuts: False forbids every decrease
        skip_inflation_on_down_years: No inflation raise after a losing year
            while the current rate exceeds the initial rate
        minimum_years_between_ratchets: Spacing between spending increases
        years_before_cap_preservation_ends: Years after which the lower
            guardrail stops applying (0 = never ends)
    """

    name: str = "Custom"
    initial_withdrawal_rate: Decimal = Decimal("0.04")
    inflation_rate: Decimal = DEFAULT_INFLATION
    upper_threshold_multiplier: Decimal | None = None
    increase_adjustment: Decimal = Decimal("0.10")
    lower_threshold_multiplier: Decimal | None = None
    decrease_adjustment: Decimal = Decimal("0.10")
    absolute_floor: Decimal | None = None
    absolute_ceiling: Decimal | None = None
    allow_spending_cuts: bool = True
    skip_inflation_on_down_years: bool = False
    minimum_years_between_ratchets: int = 1
    years_before_cap_preservation_ends: int = 0

    def __post_init__(self):
        for name in (
            "initial_withdrawal_rate",
            "inflation_rate",
            "increase_adjustment",
            "decrease_adjustment",
        ):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        for name in (
            "upper_threshold_multiplier",
            "lower_threshold_multiplier",
            "absolute_floor",
            "absolute_ceiling",
        ):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, to_decimal(value, name))
        if not 0 < self.initial_withdrawal_rate <= 1:
            raise ValidationError(
                f"must be in (0, 1] (got {self.initial_withdrawal_rate})",
                "initial_withdrawal_rate",
            )
        if self.decrease_adjustment < 0 or self.decrease_adjustment >= 1:
            raise ValidationError(
                f"must be in [0, 1) (got {self.decrease_adjustment})",
                "decrease_adjustment",
            )
        if self.increase_adjustment < 0:
            raise ValidationError("cannot be negative", "increase_adjustment")
        if self.minimum_years_between_ratchets < 0:
            raise ValidationError("cannot be negative", "minimum_years_between_ratchets")
        if (
            self.absolute_floor is not None
            and self.absolute_ceiling is not None
            and self.absolute_floor > self.absolute_ceiling
        ):
            raise ValidationError("floor exceeds ceiling", "absolute_floor")

    @classmethod
    def guyton_klinger(cls) -> GuardrailsConfiguration:
        return cls(
            name="Guyton-Klinger",
            initial_withdrawal_rate=Decimal("0.052"),
            upper_threshold_multiplier=Decimal("0.80"),
            increase_adjustment=Decimal("0.10"),
            lower_threshold_multiplier=Decimal("1.20"),
            decrease_adjustment=Decimal("0.10"),
            allow_spending_cuts=True,
            skip_inflation_on_down_years=True,
            minimum_years_between_ratchets=1,
            years_before_cap_preservation_ends=15,
        )

    @classmethod
    def vanguard_dynamic(cls) -> GuardrailsConfiguration:
        return cls(
            name="Vanguard Dynamic",
            initial_withdrawal_rate=Decimal("0.04"),
            increase_adjustment=Decimal("0.05"),
            decrease_adjustment=Decimal("0.025"),
            allow_spending_cuts=True,
        )

    @classmethod
    def kitces_ratcheting(cls) -> GuardrailsConfiguration:
        return cls(
            name="Kitces Ratcheting",
            initial_withdrawal_rate=Decimal("0.04"),
            upper_threshold_multiplier=Decimal("0.667"),
            increase_adjustment=Decimal("0.10"),
            decrease_adjustment=Decimal("0"),
            allow_spending_cuts=False,
            minimum_years_between_ratchets=3,
        )

    @classmethod
    def preset(cls, name: str) -> GuardrailsConfiguration:
        presets = {
            "guyton_klinger": cls.guyton_klinger,
            "vanguard_dynamic": cls.vanguard_dynamic,
            "kitces_ratcheting": cls.kitces_ratcheting,
        }
        key = name.strip().lower().replace("-", "_").replace(" ", "_")
        if key not in presets:
            raise ValidationError(
                f"unknown preset {name!r}; expected one of {sorted(presets)}", "preset"
            )
        return presets[key]()

    def with_overrides(self, **changes) -> GuardrailsConfiguration:
        return replace(self, **changes)

    @property
    def has_upper_guardrail(self) -> bool:
        return self.upper_threshold_multiplier is not None

    @property
    def has_lower_guardrail(self) -> bool:
        return self.lower_threshold_multiplier is not None and self.allow_spending_cuts

    @property
    def uses_corridor(self) -> bool:
        """Neither guardrail is set: spending tracks the balance within a corridor."""
        return self.upper_threshold_multiplier is None and (
            self.lower_threshold_multiplier is None
        )


class GuardrailsSpendingStrategy(SpendingStrategyBase):
    """
    Adjust spending when the current withdrawal rate drifts from the initial rate.

    **Algorithm (annual figures, paid monthly):**
    1. First year (no prior-year spending): initial balance x initial rate.
    2. Otherwise start from prior-year spending, annualised when the prior
       year held fewer than twelve retirement months, plus inflation
       (skipped after a losing year while the current rate exceeds the
       initial rate, when configured).
    3. current rate = base / current balance.
    4. Prosperity: current rate <= initial x upper multiplier and the ratchet
       spacing allows it, raise by ``increase_adjustment``.
    5. Capital preservation (only when no raise fired): current rate >=
       initial x lower multiplier, cuts allowed and the preservation horizon
       not yet over, cut by ``decrease_adjustment``.
    6. Without either guardrail the amount follows current balance x initial
       rate, held inside a corridor of base x (1 - decrease) .. base x (1 + increase).
    7. Absolute floor and ceiling, then divide by twelve.

    A raise is recorded with ``adjustment="increase"``; the engine stores that
    month as the last ratchet. Later months of the same calendar year keep the
    raise (``adjustment="carried"``) without recording a new ratchet.
    """

    description = "Dynamic spending with guardrail-based adjustments"
    is_dynamic = True
    requires_prior_year_state = True

    def __init__(
        self,
        config: GuardrailsConfiguration | None = None,
        preset: str | None = None,
        cap_to_income_gap: bool = False,
        **overrides,
    ):
        super().__init__(cap_to_income_gap)
        if config is None:
            config = (
                GuardrailsConfiguration.preset(preset)
                if preset
                else GuardrailsConfiguration.guyton_klinger()
            )
        if overrides:
            config = config.with_overrides(**overrides)
        self.config = config

    @property
    def name(self) -> str:
        return f"Guardrails ({self.config.name})"

    def _inflation_rate(self, context: SpendingContext) -> Decimal:
        return to_decimal(
            context.get_strategy_param(PARAM_INFLATION_RATE, self.config.inflation_rate)
        )

    def monthly_target(self, context: SpendingContext):
        cfg = self.config
        view = context.simulation
        inflation = self._inflation_rate(context)
        prior = view.prior_year_spending

        if prior == 0:
            annual = context.initial_portfolio_balance * cfg.initial_withdrawal_rate
            return annual / TWELVE, {
                "firstYear": True,
                "initialRate": cfg.initial_withdrawal_rate,
                "inflationRate": inflation,
            }

        metadata: dict = {"firstYear": False, "priorYearSpending": money(prior)}
        prior = self._annualise(prior, context, metadata)
        base = self._apply_inflation(prior, context, inflation, metadata)
        metadata["baseAfterInflation"] = money(base)

        balance = context.current_portfolio_balance
        if balance <= 0:
            metadata["currentRate"] = rate(0, 4)
            return base / TWELVE, metadata
        current_rate = base / balance
        metadata["currentRate"] = rate(current_rate, 4)

        if cfg.uses_corridor:
            annual = self._corridor(base, balance, metadata)
        else:
            annual = self._apply_guardrails(base, current_rate, context, metadata)
        annual = self._apply_bounds(annual, metadata)
        return annual / TWELVE, metadata

    def _annualise(self, prior: Decimal, context: SpendingContext, metadata) -> Decimal:
        # retirement months that fell in the prior calendar year
        months = context.months_in_retirement - (context.date.month - 1)
        if 0 < months < 12:
            metadata["priorYearMonths"] = months
            return prior * TWELVE / Decimal(months)
        return prior

    def _apply_inflation(self, prior, context, inflation, metadata) -> Decimal:
        cfg = self.config
        if cfg.skip_inflation_on_down_years:
            if (
                context.simulation.prior_year_return < 0
                and context.current_withdrawal_rate > cfg.initial_withdrawal_rate
            ):
                metadata["inflationSkipped"] = True
                return prior
        return prior * (ONE + inflation)

    def _apply_guardrails(self, base, current_rate, context, metadata) -> Decimal:
        cfg = self.config
        initial = cfg.initial_withdrawal_rate

        if cfg.has_upper_guardrail:
            threshold = initial * cfg.upper_threshold_multiplier
            if current_rate <= threshold:
                if self.can_ratchet(context.simulation.last_ratchet_month, context.date):
                    metadata["adjustment"] = "increase"
                    metadata["reason"] = "prosperity rule triggered"
                    return base * (ONE + cfg.increase_adjustment)
                metadata["ratchetSuppressed"] = True

        if cfg.has_lower_guardrail:
            threshold = initial * cfg.lower_threshold_multiplier
            horizon = cfg.years_before_cap_preservation_ends
            preservation_active = horizon == 0 or context.years_in_retirement < horizon
            if current_rate >= threshold and preservation_active:
                metadata["adjustment"] = "decrease"
                metadata["reason"] = "capital preservation rule triggered"
                return base * (ONE - cfg.decrease_adjustment)

        last = context.simulation.last_ratchet_month
        if last is not None and last.year == context.date.year and last <= context.date:
            metadata["adjustment"] = "carried"
            return base * (ONE + cfg.increase_adjustment)
        return base

    def _corridor(self, base: Decimal, balance: Decimal, metadata) -> Decimal:
        cfg = self.config
        raw = balance * cfg.initial_withdrawal_rate
        ceiling = base * (ONE + cfg.increase_adjustment)
        floor = base * (ONE - cfg.decrease_adjustment) if cfg.allow_spending_cuts else base
        if raw > ceiling:
            metadata["adjustment"] = "ceiling"
            return ceiling
        if raw < floor:
            metadata["adjustment"] = "floor"
            return floor
        return raw

    def _apply_bounds(self, annual: Decimal, metadata) -> Decimal:
        cfg = self.config
        if cfg.absolute_floor is not None and annual < cfg.absolute_floor:
            metadata["constraint"] = "floor applied"
            annual = cfg.absolute_floor
        if cfg.absolute_ceiling is not None and annual > cfg.absolute_ceiling:
            metadata["constraint"] = "ceiling applied"
            annual = cfg.absolute_ceiling
        return max(annual, ZERO)

    def can_ratchet(self, last_ratchet: date | None, current: date) -> bool:
        years = self.config.minimum_years_between_ratchets
        if years <= 1 or last_ratchet is None:
            return True
        return months_between(last_ratchet, current) >= years * 12

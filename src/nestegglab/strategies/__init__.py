"""
Strategy implementations for NestEggLab.

Spending strategies decide how much to withdraw each month; sequencers decide
which accounts the money comes from. Both are selected by kind string (see
:class:`nestegglab.core.kinds.K`).

Registry System:
The module registers every built-in strategy and sequencer in the global
registries on import, so configuration files can name them by kind.
"""

from .registry import register_defaults
from .sequencing import (
    BracketAwareSequencer,
    CustomSequencer,
    ProRataSequencer,
    RmdFirstSequencer,
    TaxEfficientSequencer,
)
from .spending import (
    BucketSpendingStrategy,
    GuardrailsConfiguration,
    GuardrailsSpendingStrategy,
    IncomeGapStrategy,
    SpendingCurveStrategy,
    StaticSpendingStrategy,
)

# Register all default strategies when module is imported
register_defaults()

__all__ = [
    # Spending strategies
    "StaticSpendingStrategy",
    "IncomeGapStrategy",
    "GuardrailsConfiguration",
    "GuardrailsSpendingStrategy",
    "BucketSpendingStrategy",
    "SpendingCurveStrategy",
    # Sequencers
    "TaxEfficientSequencer",
    "RmdFirstSequencer",
    "ProRataSequencer",
    "CustomSequencer",
    "BracketAwareSequencer",
    # Registry
    "register_defaults",
]

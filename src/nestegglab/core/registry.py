"""
Kind-string registries for spending strategies and account sequencers.

Strategies are selected by kind (see :class:`nestegglab.core.kinds.K`) and
constructed with keyword parameters, so configuration files can name them.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .errors import ConfigError
from .interfaces import IAccountSequencer, ISpendingStrategy

# kind -> factory(**params)
SpendingRegistry: dict[str, Callable[..., ISpendingStrategy]] = {}
SequencerRegistry: dict[str, Callable[..., IAccountSequencer]] = {}


def create_spending_strategy(kind: str, **params: Any) -> ISpendingStrategy:
    """Instantiate a registered spending strategy."""
    if kind not in SpendingRegistry:
        raise ConfigError(
            f"Unknown spending strategy kind {kind!r}; "
            f"registered: {sorted(SpendingRegistry)}"
        )
    return SpendingRegistry[kind](**params)


def create_sequencer(kind: str, **params: Any) -> IAccountSequencer:
    """Instantiate a registered account sequencer."""
    if kind not in SequencerRegistry:
        raise ConfigError(
            f"Unknown sequencer kind {kind!r}; registered: {sorted(SequencerRegistry)}"
        )
    return SequencerRegistry[kind](**params)

"""
Immutable event flags carried through a simulation run.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping


@dataclass(frozen=True)
class SimulationFlags:
    """
    Bundle of event flags that change how later months are simulated.

    Flags are never mutated. Every ``with_*`` method returns a new instance, or
    the same instance when nothing changes, so an earlier flag set can be kept
    for branching or replay.

    Attributes:
        survivor_mode: A spouse has passed; survivor rules apply
        contingency_active: Names of contingencies currently in effect (e.g. "LTC")
        refill_mode: Bucket refills should be considered
        custom: Extension point for caller-defined flags
    """

    survivor_mode: bool = False
    contingency_active: frozenset[str] = frozenset()
    refill_mode: bool = False
    custom: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "contingency_active", frozenset(self.contingency_active))
        object.__setattr__(self, "custom", MappingProxyType(dict(self.custom)))

    @classmethod
    def initial(cls) -> SimulationFlags:
        return cls()

    def with_survivor_mode(self, enabled: bool) -> SimulationFlags:
        if self.survivor_mode == enabled:
            return self
        return replace(self, survivor_mode=enabled)

    def with_contingency_active(self, category: str, active: bool) -> SimulationFlags:
        if (category in self.contingency_active) == active:
            return self
        if active:
            updated = self.contingency_active | {category}
        else:
            updated = self.contingency_active - {category}
        return replace(self, contingency_active=updated)

    def with_refill_mode(self, enabled: bool) -> SimulationFlags:
        if self.refill_mode == enabled:
            return self
        return replace(self, refill_mode=enabled)

    def with_custom_flag(self, key: str, value: Any) -> SimulationFlags:
        """Set a custom flag; a value of None removes the key."""
        current = dict(self.custom)
        if value is None:
            if key not in current:
                return self
            del current[key]
        else:
            if current.get(key) == value and key in current:
                return self
            current[key] = value
        return replace(self, custom=current)

    def is_contingency_active(self, category: str) -> bool:
        return category in self.contingency_active

    @property
    def has_active_contingency(self) -> bool:
        return bool(self.contingency_active)

    def get_custom_flag(self, key: str, default: Any = None) -> Any:
        return self.custom.get(key, default)

    def __hash__(self) -> int:
        return hash(
            (
                self.survivor_mode,
                self.contingency_active,
                self.refill_mode,
                tuple(sorted(self.custom.items(), key=lambda kv: kv[0])),
            )
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SimulationFlags):
            return NotImplemented
        return (
            self.survivor_mode == other.survivor_mode
            and self.contingency_active == other.contingency_active
            and self.refill_mode == other.refill_mode
            and dict(self.custom) == dict(other.custom)
        )

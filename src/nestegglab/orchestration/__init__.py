"""
Orchestration: spending plans for distribution months and contribution
routing for accumulation months.
"""

from .contributions import DefaultContributionRouter, RoutingConfiguration, RoutingRule
from .spending import (
    DefaultSpendingOrchestrator,
    RmdAwareOrchestrator,
    build_orchestrator,
    select_default_sequencer,
)

__all__ = [
    "DefaultSpendingOrchestrator",
    "RmdAwareOrchestrator",
    "build_orchestrator",
    "select_default_sequencer",
    "RoutingRule",
    "RoutingConfiguration",
    "DefaultContributionRouter",
]

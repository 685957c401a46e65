"""
Error classes for NestEggLab.

This module defines the exceptions raised while building a simulation. Only
configuration and programmer errors are raised; business conditions such as an
exhausted account or an unmet withdrawal target are reported as data on the
results and never interrupt a run.
"""

from __future__ import annotations


class ConfigError(Exception):
    """
    Configuration error during simulation setup or validation.

    This exception is raised when a simulation is configured with invalid
    parameters, missing required fields, or structurally inconsistent inputs.
    It is raised at build time, before the monthly loop starts.

    **Common Causes:**
    - Missing portfolios, people or date range in a SimulationConfig
    - Negative amounts passed to account or state setters
    - An end month that precedes the start month
    - Routing percentages that do not sum to 100%
    - Unknown strategy or sequencer kinds in a configuration file

    **Example Usage:**
        ```python
        from nestegglab.core.errors import ConfigError
        from nestegglab.core.config_loader import load_config

        try:
            config = load_config("plan.yaml")
        except ConfigError as e:
            print(f"Configuration error: {e}")
        ```
    """

    pass


class ValidationError(ConfigError):
    """
    A value failed validation.

    Carries the name of the offending field so callers can point users at the
    exact input to fix.

    Attributes:
        field: Name of the field that failed validation (may be None)
    """

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(f"{field}: {message}" if field else message)


class MissingFieldError(ValidationError):
    """A required field was None or blank."""

    def __init__(self, field: str, message: str | None = None):
        super().__init__(message or "is required", field)


def require(value, field: str):
    """Return ``value`` or raise MissingFieldError when it is None or blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError(field)
    return value

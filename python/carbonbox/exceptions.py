"""
Exceptions raised by carbonbox.

The hierarchy mirrors the four classes of failure a run can hit:

- configuration errors: unknown variables, bad dates, duplicate registrations,
  biome bookkeeping mistakes and unit mismatches
- numerical errors: invalid pool values and integrator non-convergence
- mass-balance violations
- missing capabilities at dispatch time

Errors are raised where they are detected and gain context as they cross
component boundaries (via :meth:`BaseException.add_note`). Only the outermost
driver, :class:`carbonbox.core.Core`, converts them into a
:class:`RunAbortedError`.
"""

from __future__ import annotations

from enum import Enum

__all__ = [
    "BiomeError",
    "CarbonBoxError",
    "ConfigError",
    "DateNotAllowedError",
    "DateRequiredError",
    "DuplicateCapabilityError",
    "ErrorKind",
    "IntegrationError",
    "InvalidPoolError",
    "LifecycleError",
    "MassBalanceError",
    "RunAbortedError",
    "TimeseriesError",
    "UnitsError",
    "UnknownCapabilityError",
    "UnknownVariableError",
    "ValidationError",
]


class ErrorKind(Enum):
    """Broad class of a failure."""

    CONFIGURATION = "configuration"
    NUMERICAL = "numerical"
    MASS_BALANCE = "mass-balance"
    MISSING_CAPABILITY = "missing-capability"


class CarbonBoxError(Exception):
    """Base exception for all carbonbox errors.

    Parameters
    ----------
    message
        Human readable description
    name
        The offending variable, capability or biome name (if any)
    """

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, *, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name

    @property
    def context(self) -> list[str]:
        """Context added while the error crossed component boundaries."""
        return list(getattr(self, "__notes__", []))


class ConfigError(CarbonBoxError):
    """Base exception for configuration errors."""


class ValidationError(ConfigError):
    """Raised when configured parameter values are out of range."""


class UnknownVariableError(ConfigError):
    """Raised when a component is asked for a variable it does not handle."""

    def __init__(self, component: str, name: str) -> None:
        super().__init__(
            f"Unknown variable name while parsing {component}: {name}", name=name
        )
        self.component = component


class DateRequiredError(ConfigError):
    """Raised when a message omits a date the target requires."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Date required for '{name}'", name=name)


class DateNotAllowedError(ConfigError):
    """Raised when a message supplies a date the target forbids."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Date not allowed for '{name}'", name=name)


class DuplicateCapabilityError(ConfigError):
    """
    Raised when a capability is registered twice in one run.

    Parameters
    ----------
    name
        The capability name
    owner
        Component that already provides the capability
    claimant
        Component that attempted the second registration
    """

    def __init__(self, name: str, owner: str, claimant: str) -> None:
        super().__init__(
            f"Capability '{name}' is already provided by '{owner}' "
            f"(attempted registration by '{claimant}')",
            name=name,
        )
        self.owner = owner
        self.claimant = claimant


class BiomeError(ConfigError):
    """Raised for duplicate or missing biomes."""


class LifecycleError(ConfigError):
    """Raised when the component lifecycle is driven out of order."""


class UnitsError(ConfigError):
    """Raised when values of incompatible units are combined."""


class TimeseriesError(ConfigError):
    """Raised for lookups a time series cannot satisfy."""


class InvalidPoolError(CarbonBoxError):
    """Raised when a carbon pool would take an invalid (negative) value."""

    kind = ErrorKind.NUMERICAL


class IntegrationError(CarbonBoxError):
    """Raised when the carbon-cycle integrator fails to converge."""

    kind = ErrorKind.NUMERICAL


class MassBalanceError(CarbonBoxError):
    """Raised when carbon is created or destroyed during a step."""

    kind = ErrorKind.MASS_BALANCE


class UnknownCapabilityError(CarbonBoxError):
    """
    Raised when a message names a capability nobody provides.

    Parameters
    ----------
    name
        The requested capability name
    available
        Names that are currently registered
    """

    kind = ErrorKind.MISSING_CAPABILITY

    def __init__(self, name: str, available: list[str]) -> None:
        if not available:
            message = f"Unknown capability '{name}'. No capabilities are registered."
        else:
            message = (
                f"Unknown capability '{name}'. "
                f"{len(available)} capabilities are registered."
            )
        super().__init__(message, name=name)
        self.available = available


class RunAbortedError(CarbonBoxError):
    """
    Raised by the run driver when a component failure aborts the run.

    The original error is available as ``__cause__``. Its kind is copied when
    it is a carbonbox error; anything else escaping a component (a math
    domain error, a division by zero) is reported as numerical.
    """

    def __init__(self, message: str, cause: Exception) -> None:
        if isinstance(cause, CarbonBoxError):
            super().__init__(message, name=cause.name)
            self.kind = cause.kind
        else:
            super().__init__(message)
            self.kind = ErrorKind.NUMERICAL

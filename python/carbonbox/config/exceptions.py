"""
Exceptions raised while loading and applying configuration.

- ConfigError: Base exception for all config errors
- ValidationError: Out-of-range values and malformed entries
- ComponentNotFoundError: Component section not in the registry

``ConfigError`` and ``ValidationError`` are the run-wide classes from
:mod:`carbonbox.exceptions`, so a bad config value and a bad message are
caught the same way.
"""

from __future__ import annotations

from carbonbox.exceptions import ConfigError, ValidationError

__all__ = [
    "ComponentNotFoundError",
    "ConfigError",
    "ValidationError",
]


class ComponentNotFoundError(ConfigError):
    """
    Raised when a requested component is not found in the registry.

    Parameters
    ----------
    name
        The component name that was not found.
    available
        List of available component names in the registry.
    """

    def __init__(self, name: str, available: list[str]) -> None:
        if not available:
            message = f"Component '{name}' not found. No components are registered."
        else:
            available_str = ", ".join(f"'{c}'" for c in sorted(available))
            message = (
                f"Component '{name}' not found. Available components: {available_str}"
            )
        super().__init__(message, name=name)
        self.available = available

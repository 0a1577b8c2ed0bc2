"""
Config sections and the components they build.

Each ``[components.<section>]`` table of a config file is handled by a
:class:`ComponentSection`: a factory turning the table into components, the
parameter dataclass its scalar keys are checked against, and a function that
lists the values to send once the run is initialised. Sections are kept in
registration order, which is the order their components run in.

Example:
    >>> from carbonbox.config.models import component_registry
    >>> component_registry.names()[:3]
    ['ocean', 'simpleNbox', 'carbon-cycle-solver']
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from carbonbox.component import ModelComponent
from carbonbox.units import Units

from .exceptions import ComponentNotFoundError, ConfigError
from .parameters import resolve_parameter

__all__ = [
    "ComponentRegistry",
    "ComponentSection",
    "SectionValue",
    "component_registry",
    "register_component",
]


@dataclass(frozen=True)
class SectionValue:
    """One value of a section table, addressed to a capability."""

    target: str
    value: Any
    unit: Units = Units.UNDEFINED


@dataclass(frozen=True)
class ComponentSection:
    """
    How one config section becomes components and SET messages.

    Parameters
    ----------
    name
        Section name under ``[components]``
    build
        Creates the section's components from its table
    parameters
        Dataclass of the section's range-checked scalar parameters
    standard
        Whether the section is built even when the config has no table for it
    has_biomes
        Whether the table may carry a ``biomes`` list
    values
        Lists what to send from the table; defaults to every key, with
        parameters resolved through ``parameters``
    """

    name: str
    build: Callable[[dict[str, Any]], list[ModelComponent]]
    parameters: type | None = None
    standard: bool = False
    has_biomes: bool = False
    values: Callable[[dict[str, Any]], Iterator[SectionValue]] | None = None

    def section_values(self, table: dict[str, Any]) -> Iterator[SectionValue]:
        """
        Values to send for ``table``, parameters range-checked.

        Raises
        ------
        ValidationError
            If a parameter is out of range or wrongly biome-qualified
        """
        if self.values is not None:
            yield from self.values(table)
            return
        for key, value in table.items():
            resolved = None
            if self.parameters is not None:
                resolved = resolve_parameter(self.parameters, key)
            if resolved is None:
                yield SectionValue(key, value)
                continue
            target, meta = resolved
            if isinstance(value, int | float) and not isinstance(value, bool):
                meta.check(key, value)
            yield SectionValue(target, value, meta.unit)


class ComponentRegistry:
    """Config sections by name, in run order."""

    def __init__(self) -> None:
        self._sections: dict[str, ComponentSection] = {}

    def __iter__(self) -> Iterator[ComponentSection]:
        return iter(self._sections.values())

    def register(self, section: ComponentSection) -> None:
        """
        Add a section.

        Registering an identical section again is a no-op.

        Raises
        ------
        ConfigError
            If a different section already uses the name
        """
        existing = self._sections.get(section.name)
        if existing is not None and existing != section:
            msg = f"Section '{section.name}' is already registered"
            raise ConfigError(msg, name=section.name)
        self._sections[section.name] = section

    def get(self, name: str) -> ComponentSection:
        """
        Look up a section.

        Raises
        ------
        ComponentNotFoundError
            If no section has this name
        """
        try:
            return self._sections[name]
        except KeyError:
            raise ComponentNotFoundError(name, sorted(self._sections)) from None

    def names(self) -> list[str]:
        """Section names in run order."""
        return list(self._sections)

    def is_registered(self, name: str) -> bool:
        """Whether a section has this name."""
        return name in self._sections


component_registry = ComponentRegistry()


def register_component(
    name: str,
    *,
    parameters: type | None = None,
    standard: bool = False,
) -> Callable[[type[ModelComponent]], type[ModelComponent]]:
    """
    Register a component class as a single-component section.

    The class is instantiated with no arguments; its parameters, if any, are
    sent from the section table after initialisation.
    """

    def decorator(cls: type[ModelComponent]) -> type[ModelComponent]:
        component_registry.register(
            ComponentSection(
                name,
                build=lambda _table: [cls()],
                parameters=parameters,
                standard=standard,
            )
        )
        return cls

    return decorator

"""
Capability registry and message router.

Components never hold references to each other. Instead each component
registers the capabilities (quantities) it provides during ``init`` and asks
for other quantities by name through :meth:`CapabilityRegistry.dispatch`.

Example
-------
```python
from carbonbox.messages import CapabilityRegistry, Message

registry = CapabilityRegistry()
registry.register_component(forcing)
registry.register_capability("RF_tot", forcing.name)
total = registry.dispatch(Message.get("RF_tot", date=2000))
```
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from carbonbox.exceptions import (
    ConfigError,
    DuplicateCapabilityError,
    UnitsError,
    UnknownCapabilityError,
)
from carbonbox.names import split_biome
from carbonbox.units import UnitValue, Units

if TYPE_CHECKING:
    from carbonbox.component import ModelComponent

logger = logging.getLogger(__name__)

__all__ = ["CapabilityRegistry", "Message", "MessageData", "MessageVerb"]


class MessageVerb(Enum):
    """The two message verbs."""

    GET = "getData"
    SET = "setData"


@dataclass(frozen=True)
class MessageData:
    """
    Payload of a message.

    Parameters
    ----------
    date
        Simulated date the message refers to. ``None`` means the current date
        for GET and "not a time series value" for SET.
    value
        Value carried by a SET message
    """

    date: float | None = None
    value: UnitValue | None = None

    @property
    def has_date(self) -> bool:
        """Whether a date was supplied."""
        return self.date is not None

    def unitval(self, expected: Units) -> UnitValue:
        """
        Return the carried value in the units the receiver expects.

        Values with undefined units (e.g. straight from a config file) adopt
        ``expected``.

        Raises
        ------
        ConfigError
            If the message carries no value
        UnitsError
            If the value has units other than ``expected``
        """
        if self.value is None:
            msg = "Message carries no value"
            raise ConfigError(msg)
        if self.value.units is Units.UNDEFINED:
            return UnitValue(self.value.magnitude, expected)
        if self.value.units is not expected:
            msg = (
                f"Expected a value in {expected.value}, "
                f"received {self.value.units.value}"
            )
            raise UnitsError(msg)
        return UnitValue(self.value.magnitude, expected)


@dataclass(frozen=True)
class Message:
    """A GET or SET request addressed to a capability name."""

    verb: MessageVerb
    name: str
    data: MessageData = field(default_factory=MessageData)

    @classmethod
    def get(cls, name: str, date: float | None = None) -> Message:
        """Build a GET message."""
        return cls(MessageVerb.GET, name, MessageData(date=date))

    @classmethod
    def set(
        cls,
        name: str,
        value: float | UnitValue,
        units: Units = Units.UNDEFINED,
        date: float | None = None,
    ) -> Message:
        """Build a SET message; plain numbers are tagged with ``units``."""
        if not isinstance(value, UnitValue):
            value = UnitValue(float(value), units)
        return cls(MessageVerb.SET, name, MessageData(date=date, value=value))


class CapabilityRegistry:
    """
    Per-run table of capability owners.

    Three tables are kept:

    - capabilities: quantities a component can report (GET, and SET when no
      input of the same name exists)
    - inputs: quantities a component accepts from outside (SET)
    - dependencies: informational consumer edges, used only for validation
    """

    def __init__(self) -> None:
        self._components: dict[str, ModelComponent] = {}
        self._capabilities: dict[str, str] = {}
        self._inputs: dict[str, str] = {}
        self._dependencies: dict[str, set[str]] = defaultdict(set)

    def register_component(self, component: ModelComponent) -> None:
        """Make ``component`` addressable by its name."""
        existing = self._components.get(component.name)
        if existing is not None and existing is not component:
            msg = f"A component named '{component.name}' is already registered"
            raise ConfigError(msg, name=component.name)
        self._components[component.name] = component

    def component(self, name: str) -> ModelComponent:
        """Look up a registered component by name."""
        try:
            return self._components[name]
        except KeyError:
            msg = f"Component '{name}' is not registered"
            raise ConfigError(msg, name=name) from None

    def register_capability(self, name: str, owner: str) -> None:
        """
        Record that ``owner`` provides ``name``.

        Raises
        ------
        DuplicateCapabilityError
            If ``name`` already has an owner in this run
        """
        existing = self._capabilities.get(name)
        if existing is not None:
            raise DuplicateCapabilityError(name, existing, owner)
        logger.debug("Capability %s provided by %s", name, owner)
        self._capabilities[name] = owner

    def register_input(self, name: str, owner: str) -> None:
        """
        Record that ``owner`` accepts ``name`` via SET.

        Raises
        ------
        DuplicateCapabilityError
            If ``name`` is already accepted by another component
        """
        existing = self._inputs.get(name)
        if existing is not None:
            raise DuplicateCapabilityError(name, existing, owner)
        self._inputs[name] = owner

    def register_dependency(self, name: str, consumer: str) -> None:
        """Record that ``consumer`` may request ``name``."""
        self._dependencies[name].add(consumer)

    def check_capability(self, name: str) -> bool:
        """Whether any component provides ``name``."""
        return self._resolve(self._capabilities, name) is not None

    def capabilities(self) -> list[str]:
        """Sorted list of registered capability names."""
        return sorted(self._capabilities)

    def dependencies(self) -> dict[str, list[str]]:
        """Mapping of capability name to the sorted consumers depending on it."""
        return {k: sorted(v) for k, v in sorted(self._dependencies.items())}

    def unresolved_dependencies(self) -> list[tuple[str, str]]:
        """``(capability, consumer)`` pairs whose capability has no owner."""
        return [
            (name, consumer)
            for name, consumers in sorted(self._dependencies.items())
            if not self.check_capability(name)
            for consumer in sorted(consumers)
        ]

    def owner(self, name: str) -> ModelComponent:
        """
        Return the component providing ``name``.

        Raises
        ------
        UnknownCapabilityError
            If no component provides ``name``
        """
        owner = self._resolve(self._capabilities, name)
        if owner is None:
            raise UnknownCapabilityError(name, self.capabilities())
        return self._components[owner]

    def dispatch(self, message: Message) -> UnitValue:
        """
        Route ``message`` to the owning component.

        GET returns the owner's answer; SET forwards the mutation and returns
        an undefined value.

        Raises
        ------
        UnknownCapabilityError
            If nothing provides (GET) or accepts (SET) the name
        """
        if message.verb is MessageVerb.SET:
            owner = self._resolve(self._inputs, message.name) or self._resolve(
                self._capabilities, message.name
            )
        else:
            owner = self._resolve(self._capabilities, message.name)
        if owner is None:
            raise UnknownCapabilityError(message.name, self.capabilities())

        logger.debug(
            "%s %s[%s] -> %s",
            message.verb.name,
            message.name,
            message.data.date,
            owner,
        )
        component = self._components[owner]
        return component.send_message(message.verb, message.name, message.data)

    @staticmethod
    def _resolve(table: dict[str, str], name: str) -> str | None:
        if name in table:
            return table[name]
        biome, var = split_biome(name)
        if biome is not None:
            return table.get(var)
        return None

"""
Base class for model components.

Components declare the capabilities they provide, the capabilities they
consume and the inputs they accept as class attributes. The declarations are
collected by a metaclass and registered with the core during ``init``.

Example
-------
```python
from carbonbox.component import Capability, Dependency, Input, ModelComponent
from carbonbox.units import Units
from carbonbox.visitor import ComponentKind


class Albedo(ModelComponent):
    kind = ComponentKind.EXOGENOUS
    default_name = "albedo"

    # Declare what we provide
    forcing = Capability("RF_albedo", unit=Units.W_M2)

    # Declare what we read from other components
    temperature = Dependency("global_tas")

    # Declare what may be set from outside; dated=True requires a date
    albedo_series = Input("RF_albedo", unit=Units.W_M2, dated=True)

    def get_data(self, name, date):
        ...
```
"""

from __future__ import annotations

import logging
from abc import ABCMeta
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from carbonbox.exceptions import (
    CarbonBoxError,
    DateNotAllowedError,
    DateRequiredError,
    LifecycleError,
    UnknownVariableError,
)
from carbonbox.messages import Message, MessageData, MessageVerb
from carbonbox.names import split_biome
from carbonbox.units import UnitValue, Units

if TYPE_CHECKING:
    from carbonbox.core import Core
    from carbonbox.visitor import ComponentKind, Visitor

__all__ = [
    "Capability",
    "Dependency",
    "Input",
    "ModelComponent",
    "report_value",
]


@dataclass(frozen=True)
class Capability:
    """Declare a quantity a component provides.

    Parameters
    ----------
    name
        The capability name (e.g., "RF_tot")
    unit
        Units of the values returned
    """

    name: str
    unit: Units = Units.UNDEFINED


@dataclass(frozen=True)
class Dependency:
    """Declare a quantity a component may request from others.

    Parameters
    ----------
    name
        The capability name (e.g., "CO2_concentration")
    """

    name: str


@dataclass(frozen=True)
class Input:
    """Declare a quantity that may be set from outside the component.

    Parameters
    ----------
    name
        The variable name (e.g., "beta")
    unit
        The units the component expects
    dated
        ``True`` if a date is required, ``False`` if a date is forbidden and
        ``None`` if either is accepted
    """

    name: str
    unit: Units = Units.UNDEFINED
    dated: bool | None = False


class ComponentMeta(ABCMeta):
    """
    Metaclass for ModelComponent that collects I/O declarations.

    Capability, Dependency and Input class attributes (including inherited
    ones) are gathered into per-class tables keyed by variable name.
    """

    def __new__(  # noqa: D102
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ) -> ComponentMeta:
        capabilities: dict[str, Capability] = {}
        dependencies: dict[str, Dependency] = {}
        inputs: dict[str, Input] = {}

        for base in bases:
            capabilities.update(getattr(base, "_component_capabilities", {}))
            dependencies.update(getattr(base, "_component_dependencies", {}))
            inputs.update(getattr(base, "_component_inputs", {}))

        for attr_value in namespace.values():
            if isinstance(attr_value, Capability):
                capabilities[attr_value.name] = attr_value
            elif isinstance(attr_value, Dependency):
                dependencies[attr_value.name] = attr_value
            elif isinstance(attr_value, Input):
                inputs[attr_value.name] = attr_value

        namespace["_component_capabilities"] = capabilities
        namespace["_component_dependencies"] = dependencies
        namespace["_component_inputs"] = inputs

        return super().__new__(mcs, name, bases, namespace, **kwargs)


def report_value(
    logger: logging.Logger,
    component: str,
    name: str,
    value: UnitValue | float,
    level: int = logging.DEBUG,
) -> None:
    """Log one named value of a component."""
    if logger.isEnabledFor(level):
        logger.log(level, "%s %s = %s", component, name, value)


class ModelComponent(metaclass=ComponentMeta):
    """Base class for model components.

    Lifecycle, driven by :class:`carbonbox.core.Core` in this order::

        init(core) -> prepare_to_run() -> run(date)... -> reset(date)? -> shut_down()

    Subclasses set ``kind`` and ``default_name``, declare their capabilities,
    dependencies and inputs, and implement :meth:`get_data` and
    :meth:`set_data`.
    """

    # These are populated by the metaclass
    _component_capabilities: ClassVar[dict[str, Capability]] = {}
    _component_dependencies: ClassVar[dict[str, Dependency]] = {}
    _component_inputs: ClassVar[dict[str, Input]] = {}

    kind: ClassVar[ComponentKind]
    default_name: ClassVar[str] = ""

    def __init__(self, name: str | None = None) -> None:
        self.name = name or self.default_name
        self.core: Core | None = None
        self.logger = logging.getLogger(f"carbonbox.component.{self.name}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    # Lifecycle

    def init(self, core: Core) -> None:
        """Register declared capabilities, dependencies and inputs."""
        self.core = core
        self.logger.debug("hello %s", self.name)
        for capability in self._component_capabilities.values():
            core.register_capability(capability.name, self.name)
        for dependency in self._component_dependencies.values():
            core.register_dependency(dependency.name, self.name)
        for declared in self._component_inputs.values():
            core.register_input(declared.name, self.name)

    def prepare_to_run(self) -> None:
        """Finish setup once all inputs have been set."""

    def run(self, date: float) -> None:
        """Advance the component to ``date``."""

    def run_spinup(self, step: int) -> bool:
        """Take one spinup step; return whether this component has converged."""
        return True

    def reset(self, date: float) -> None:
        """Rewind to the state recorded at ``date``."""

    def shut_down(self) -> None:
        """Release resources at the end of a run."""
        self.logger.debug("goodbye %s", self.name)

    def accept(self, visitor: Visitor) -> None:
        """Let ``visitor`` inspect this component."""
        visitor.visit(self)

    # Messaging

    def send_message(
        self, verb: MessageVerb, name: str, data: MessageData | None = None
    ) -> UnitValue:
        """
        Handle a routed message.

        SET messages are checked against the declared date policy of the
        input. Errors gain context naming this component before propagating.
        """
        data = data or MessageData()
        try:
            if verb is MessageVerb.SET:
                self._check_date_policy(name, data)
                self.logger.debug("Setting %s[%s]=%s", name, data.date, data.value)
                self.set_data(name, data)
                return UnitValue(0.0, Units.UNDEFINED)
            return self.get_data(name, data.date)
        except CarbonBoxError as err:
            action = "parse var" if verb is MessageVerb.SET else "get var"
            err.add_note(f"{self.name}: could not {action} '{name}'")
            raise

    def get_data(self, name: str, date: float | None) -> UnitValue:
        """Return the value of ``name`` at ``date`` (``None`` = current)."""
        raise UnknownVariableError(self.name, name)

    def set_data(self, name: str, data: MessageData) -> None:
        """Store a value sent from outside."""
        raise UnknownVariableError(self.name, name)

    def fetch(self, name: str, date: float | None = None) -> UnitValue:
        """Request ``name`` from whichever component provides it."""
        return self._require_core().send_message(Message.get(name, date))

    def has_capability(self, name: str) -> bool:
        """Whether any component in the run provides ``name``."""
        return self._require_core().check_capability(name)

    def _check_date_policy(self, name: str, data: MessageData) -> None:
        declared = self._component_inputs.get(name)
        if declared is None:
            declared = self._component_inputs.get(split_biome(name)[1])
        if declared is None or declared.dated is None:
            return
        if declared.dated and not data.has_date:
            raise DateRequiredError(name)
        if not declared.dated and data.has_date:
            raise DateNotAllowedError(name)

    def _require_core(self) -> Core:
        if self.core is None:
            msg = f"Component '{self.name}' has not been initialised"
            raise LifecycleError(msg, name=self.name)
        return self.core

"""
Prescribed inputs served under arbitrary capability names.

Quantities the model does not compute itself (CH4 and N2O concentrations,
aerosol emissions, volcanic forcing, ...) are provided by an
:class:`ExogenousComponent`. Each provided name accepts undated SETs (a
constant) and dated SETs (an interpolated series, held constant beyond its
ends).

Example
-------
```python
from carbonbox.exogenous import ExogenousComponent
from carbonbox.units import Units

gases = ExogenousComponent(
    "gases",
    provides={"CH4_concentration": Units.PPBV_CH4, "preind_CH4": Units.PPBV_CH4},
)
```
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from carbonbox.component import ModelComponent
from carbonbox.exceptions import ConfigError, UnknownVariableError
from carbonbox.messages import MessageData
from carbonbox.timeseries import Extrapolation, TimeSeries
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import ComponentKind

if TYPE_CHECKING:
    from carbonbox.core import Core

__all__ = ["ExogenousComponent"]


class ExogenousComponent(ModelComponent):
    """
    Serves prescribed constants and time series.

    Parameters
    ----------
    name
        Component name
    provides
        Capability names this component owns and the units of each
    """

    kind = ComponentKind.EXOGENOUS
    default_name = "exogenous"

    def __init__(
        self, name: str | None = None, *, provides: Mapping[str, Units] | None = None
    ) -> None:
        super().__init__(name)
        self.units: dict[str, Units] = dict(provides or {})
        self.constants: dict[str, UnitValue] = {}
        self.series: dict[str, TimeSeries[UnitValue]] = {}
        self.tcurrent = 0.0

    def provide(self, name: str, units: Units) -> None:
        """
        Add a capability before the component is initialised.

        Raises
        ------
        ConfigError
            If the component has already registered its capabilities
        """
        if self.core is not None:
            msg = f"Cannot add '{name}' to {self.name} after init"
            raise ConfigError(msg, name=name)
        self.units[name] = units

    def init(self, core: Core) -> None:
        """Register every provided name as a capability and an input."""
        super().init(core)
        for name in self.units:
            core.register_capability(name, self.name)
            core.register_input(name, self.name)

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name not in self.units:
            raise UnknownVariableError(self.name, name)
        value = data.unitval(self.units[name])
        if data.date is None:
            self.constants[name] = value
            return
        if name not in self.series:
            self.series[name] = TimeSeries(
                name, interpolate=True, extrapolation=Extrapolation.CONSTANT
            )
        self.series[name].set(data.date, value)

    def get_data(self, name: str, date: float | None) -> UnitValue:
        """
        Report a prescribed value.

        A series takes precedence over a constant of the same name.

        Raises
        ------
        ConfigError
            If no value was ever set for ``name``
        """
        if name not in self.units:
            raise UnknownVariableError(self.name, name)
        if name in self.series:
            return self.series[name].get(self.tcurrent if date is None else date)
        if name in self.constants:
            return self.constants[name]
        msg = f"No value has been set for '{name}'"
        raise ConfigError(msg, name=name)

    def prepare_to_run(self) -> None:  # noqa: D102
        self.tcurrent = self._require_core().start_date
        for name in self.units:
            if name not in self.series and name not in self.constants:
                self.logger.warning("%s provides %s but no value was set", self.name, name)

    def run(self, date: float) -> None:  # noqa: D102
        self.tcurrent = date

    def reset(self, date: float) -> None:  # noqa: D102
        self.tcurrent = date

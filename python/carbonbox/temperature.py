"""
One-box energy balance temperature model.

Global mean surface temperature responds to the total forcing as::

    T[t] = T[t-1] + (F[t] - lambda * T[t-1]) / C

with climate feedback ``lambda = F2x / S`` for equilibrium climate sensitivity
``S`` and heat capacity ``C``. A prescribed temperature series, where it covers
the year, replaces the computed value.
"""

from __future__ import annotations

from carbonbox.component import Capability, Dependency, Input, ModelComponent
from carbonbox.exceptions import ConfigError, DateRequiredError
from carbonbox.messages import MessageData
from carbonbox.names import (
    D_ECS,
    D_GLOBAL_TAS,
    D_HEAT_CAPACITY,
    D_RF_TOTAL,
    D_TAS_CONSTRAIN,
)
from carbonbox.timeseries import TimeSeries
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import ComponentKind

__all__ = ["F2X", "TemperatureComponent"]

#: Forcing from a doubling of CO2 (W/m2)
F2X = 3.71


class TemperatureComponent(ModelComponent):
    """Global mean temperature driven by total forcing."""

    kind = ComponentKind.TEMPERATURE
    default_name = "temperature"

    tas_capability = Capability(D_GLOBAL_TAS, Units.DEG_C)
    ecs_capability = Capability(D_ECS, Units.DEG_C)
    heat_capacity_capability = Capability(D_HEAT_CAPACITY, Units.W_YR_M2_K)

    forcing = Dependency(D_RF_TOTAL)

    ecs_input = Input(D_ECS, Units.DEG_C)
    heat_capacity_input = Input(D_HEAT_CAPACITY, Units.W_YR_M2_K)
    tas_constrain_input = Input(D_TAS_CONSTRAIN, Units.DEG_C, dated=True)

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name)
        self.ecs = 3.0
        self.heat_capacity = 8.0
        self.tas = UnitValue(0.0, Units.DEG_C)
        self.tcurrent = 0.0
        self.tas_constrain: TimeSeries[UnitValue] = TimeSeries(
            D_TAS_CONSTRAIN, interpolate=True
        )
        self.tas_ts: TimeSeries[UnitValue] = TimeSeries(D_GLOBAL_TAS)

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name == D_ECS:
            self.ecs = data.unitval(Units.DEG_C).magnitude
        elif name == D_HEAT_CAPACITY:
            self.heat_capacity = data.unitval(Units.W_YR_M2_K).magnitude
        elif name == D_TAS_CONSTRAIN:
            if data.date is None:
                raise DateRequiredError(name)
            self.tas_constrain.set(data.date, data.unitval(Units.DEG_C))
        else:
            super().set_data(name, data)

    def get_data(self, name: str, date: float | None) -> UnitValue:  # noqa: D102
        if name == D_GLOBAL_TAS:
            if date is None or date == self.tcurrent:
                return self.tas
            return self.tas_ts.get(date)
        if name == D_ECS:
            return UnitValue(self.ecs, Units.DEG_C)
        if name == D_HEAT_CAPACITY:
            return UnitValue(self.heat_capacity, Units.W_YR_M2_K)
        return super().get_data(name, date)

    def prepare_to_run(self) -> None:  # noqa: D102
        core = self._require_core()
        if self.ecs <= 0 or self.heat_capacity <= 0:
            msg = "Climate sensitivity and heat capacity must be positive"
            raise ConfigError(msg, name=self.name)
        if self.tas_constrain:
            self.logger.warning(
                "Global temperature will be overwritten by user-supplied values!"
            )
        self.tcurrent = core.start_date
        self.tas_ts.set(self.tcurrent, self.tas)

    def run(self, date: float) -> None:
        """Step the temperature forward to ``date``."""
        forcing = 0.0
        if self.has_capability(D_RF_TOTAL):
            forcing = self.fetch(D_RF_TOTAL, date).value(Units.W_M2)

        feedback = F2X / self.ecs
        previous = self.tas.magnitude
        tas = previous + (forcing - feedback * previous) / self.heat_capacity
        if self.tas_constrain.in_range(date):
            tas = self.tas_constrain.get(date).value(Units.DEG_C)

        self.tas = UnitValue(tas, Units.DEG_C)
        self.tcurrent = date
        self.tas_ts.set(date, self.tas)

    def reset(self, date: float) -> None:  # noqa: D102
        self.tas = self.tas_ts.get(date)
        self.tas_ts.truncate(date)
        self.tcurrent = date
        self.logger.info("%s reset to time %s", self.name, date)

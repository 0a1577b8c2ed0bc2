"""
One-box ocean carbon model.

The ocean exchanges carbon with the atmosphere through a buffered flux::

    flux = k * (atmos - atmos0 * (ocean / ocean0) ** revelle)

where ``atmos0`` is the preindustrial atmospheric carbon and ``ocean0`` the
initial ocean carbon. The flux vanishes at the preindustrial equilibrium.

The ocean does not integrate itself: SimpleNbox carries the ocean total in its
state vector and hands each accepted value back through ``stash_c_values``.
"""

from __future__ import annotations

from carbonbox.component import Capability, Dependency, Input, ModelComponent
from carbonbox.exceptions import ConfigError
from carbonbox.messages import MessageData
from carbonbox.names import (
    D_ATMOSPHERIC_C,
    D_OCEAN_C,
    D_OCEAN_CFLUX,
    D_OCEAN_EXCHANGE_RATE,
    D_PREINDUSTRIAL_CO2,
    D_REVELLE_FACTOR,
)
from carbonbox.timeseries import TimeSeries
from carbonbox.units import PGC_TO_PPMVCO2, FluxPool, UnitValue, Units
from carbonbox.visitor import ComponentKind

__all__ = ["OceanComponent"]


class OceanComponent(ModelComponent):
    """Ocean carbon pool with a buffered air-sea exchange."""

    kind = ComponentKind.OCEAN
    default_name = "ocean"

    ocean_c_capability = Capability(D_OCEAN_C, Units.PGC)
    flux_capability = Capability(D_OCEAN_CFLUX, Units.PGC_YR)
    exchange_rate_capability = Capability(D_OCEAN_EXCHANGE_RATE, Units.UNITLESS)
    revelle_capability = Capability(D_REVELLE_FACTOR, Units.UNITLESS)

    preindustrial_co2 = Dependency(D_PREINDUSTRIAL_CO2)
    atmosphere = Dependency(D_ATMOSPHERIC_C)

    ocean_c_input = Input(D_OCEAN_C, Units.PGC)
    exchange_rate_input = Input(D_OCEAN_EXCHANGE_RATE, Units.UNITLESS)
    revelle_input = Input(D_REVELLE_FACTOR, Units.UNITLESS)

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name)
        self.ocean_c = FluxPool(38000.0)
        self.exchange_rate = 0.01
        self.revelle_factor = 10.0
        self.ocean_c0 = self.ocean_c.magnitude
        self.atmos_c0 = 0.0
        self.flux = UnitValue(0.0, Units.PGC_YR)
        self.tcurrent = 0.0
        self.ocean_c_ts: TimeSeries[FluxPool] = TimeSeries(D_OCEAN_C)
        self.flux_ts: TimeSeries[UnitValue] = TimeSeries(D_OCEAN_CFLUX)

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name == D_OCEAN_C:
            self.ocean_c = FluxPool(data.unitval(Units.PGC).magnitude)
        elif name == D_OCEAN_EXCHANGE_RATE:
            self.exchange_rate = data.unitval(Units.UNITLESS).magnitude
        elif name == D_REVELLE_FACTOR:
            self.revelle_factor = data.unitval(Units.UNITLESS).magnitude
        else:
            super().set_data(name, data)

    def get_data(self, name: str, date: float | None) -> UnitValue:  # noqa: D102
        if name == D_OCEAN_C:
            if date is None or date == self.tcurrent:
                return self.ocean_c
            return self.ocean_c_ts.get(date)
        if name == D_OCEAN_CFLUX:
            if date is None or date == self.tcurrent:
                return self.flux
            return self.flux_ts.get(date)
        if name == D_OCEAN_EXCHANGE_RATE:
            return UnitValue(self.exchange_rate, Units.UNITLESS)
        if name == D_REVELLE_FACTOR:
            return UnitValue(self.revelle_factor, Units.UNITLESS)
        return super().get_data(name, date)

    def prepare_to_run(self) -> None:
        """Fix the equilibrium reference state and record the start."""
        core = self._require_core()
        if self.ocean_c.magnitude <= 0:
            msg = "Initial ocean carbon must be positive"
            raise ConfigError(msg, name=D_OCEAN_C)
        c0 = self.fetch(D_PREINDUSTRIAL_CO2).value(Units.PPMV_CO2)
        self.atmos_c0 = c0 / PGC_TO_PPMVCO2
        self.ocean_c0 = self.ocean_c.magnitude
        self.flux = UnitValue(0.0, Units.PGC_YR)
        self.tcurrent = core.start_date
        self._record(self.tcurrent)

    def atmosphere_ocean_flux(self, atmos_c: float, ocean_c: float) -> float:
        """Carbon flux from the atmosphere into the ocean (Pg C/yr)."""
        equilibrium = self.atmos_c0 * (ocean_c / self.ocean_c0) ** self.revelle_factor
        return self.exchange_rate * (atmos_c - equilibrium)

    def stash_c_values(self, t: float, atmos_c: float, ocean_c: float) -> None:
        """Accept the ocean carbon computed by the carbon-cycle solver."""
        self.ocean_c = FluxPool(ocean_c)
        self.flux = UnitValue(self.atmosphere_ocean_flux(atmos_c, ocean_c), Units.PGC_YR)
        self.tcurrent = t
        self._record(t)

    def reset(self, date: float) -> None:  # noqa: D102
        self.ocean_c = self.ocean_c_ts.get(date)
        self.flux = self.flux_ts.get(date)
        self.ocean_c_ts.truncate(date)
        self.flux_ts.truncate(date)
        self.tcurrent = date
        self.logger.info("%s reset to time %s", self.name, date)

    def _record(self, t: float) -> None:
        self.ocean_c_ts.set(t, self.ocean_c)
        self.flux_ts.set(t, self.flux)

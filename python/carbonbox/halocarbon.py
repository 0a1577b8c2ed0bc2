"""
Halocarbon forcing components.

Each halocarbon species is its own component computing an absolute forcing
``rho * (conc - H0)`` from a prescribed concentration series. The forcing
component fetches these raw values and reports them relative to the base year
under the adjusted names.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from carbonbox.component import ModelComponent
from carbonbox.exceptions import ConfigError, UnknownVariableError
from carbonbox.messages import MessageData
from carbonbox.names import (
    HALOCARBONS,
    halocarbon_concentration,
    halocarbon_efficiency,
    halocarbon_preindustrial,
    raw_halocarbon_forcing,
)
from carbonbox.timeseries import Extrapolation, TimeSeries
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import ComponentKind

if TYPE_CHECKING:
    from carbonbox.core import Core

__all__ = ["HalocarbonComponent"]


class HalocarbonComponent(ModelComponent):
    """
    Forcing from one halocarbon species.

    Parameters
    ----------
    gas
        Species name, one of :data:`carbonbox.names.HALOCARBONS`
    rho
        Radiative efficiency (W/m2/pptv)
    h0
        Preindustrial concentration (pptv)
    name
        Component name; defaults to ``<gas>_halocarbon``
    """

    kind = ComponentKind.HALOCARBON

    def __init__(
        self,
        gas: str,
        *,
        rho: float = 0.0,
        h0: float = 0.0,
        name: str | None = None,
    ) -> None:
        if gas not in HALOCARBONS:
            msg = f"Unknown halocarbon '{gas}'"
            raise ConfigError(msg, name=gas)
        super().__init__(name or f"{gas}_halocarbon")
        self.gas = gas
        self.rho = rho
        self.h0 = h0
        self.forcing_name = raw_halocarbon_forcing(gas)
        self.concentration_name = halocarbon_concentration(gas)
        self.rho_name = halocarbon_efficiency(gas)
        self.h0_name = halocarbon_preindustrial(gas)
        self.concentration: TimeSeries[UnitValue] = TimeSeries(
            self.concentration_name,
            interpolate=True,
            extrapolation=Extrapolation.CONSTANT,
        )
        self.forcing_ts: TimeSeries[UnitValue] = TimeSeries(self.forcing_name)
        self.tcurrent = 0.0

    def init(self, core: Core) -> None:
        """Register the species-specific names."""
        super().init(core)
        core.register_capability(self.forcing_name, self.name)
        core.register_capability(self.concentration_name, self.name)
        core.register_capability(self.rho_name, self.name)
        core.register_capability(self.h0_name, self.name)
        core.register_input(self.concentration_name, self.name)
        core.register_input(self.rho_name, self.name)
        core.register_input(self.h0_name, self.name)

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name == self.concentration_name:
            if data.date is None:
                self.concentration.set(self._require_core().start_date, data.unitval(Units.PPTV))
            else:
                self.concentration.set(data.date, data.unitval(Units.PPTV))
        elif name == self.rho_name:
            self.rho = data.unitval(Units.W_M2_PPTV).magnitude
        elif name == self.h0_name:
            self.h0 = data.unitval(Units.PPTV).magnitude
        else:
            super().set_data(name, data)

    def get_data(self, name: str, date: float | None) -> UnitValue:  # noqa: D102
        getdate = self.tcurrent if date is None else date
        if name == self.forcing_name:
            if not self.forcing_ts:
                return UnitValue(0.0, Units.W_M2)
            return self.forcing_ts.get(getdate)
        if name == self.concentration_name:
            return self._concentration(getdate)
        if name == self.rho_name:
            return UnitValue(self.rho, Units.W_M2_PPTV)
        if name == self.h0_name:
            return UnitValue(self.h0, Units.PPTV)
        raise UnknownVariableError(self.name, name)

    def prepare_to_run(self) -> None:  # noqa: D102
        self.tcurrent = self._require_core().start_date
        if not self.concentration:
            self.logger.warning("No concentrations given for %s; using H0", self.gas)

    def run(self, date: float) -> None:
        """Compute the absolute forcing for ``date``."""
        conc = self._concentration(date).value(Units.PPTV)
        forcing = self.rho * (conc - self.h0)
        self.forcing_ts.set(date, UnitValue(forcing, Units.W_M2))
        self.tcurrent = date

    def reset(self, date: float) -> None:  # noqa: D102
        self.forcing_ts.truncate(date)
        self.tcurrent = date
        self.logger.info("%s reset to time %s", self.name, date)

    def _concentration(self, date: float) -> UnitValue:
        if not self.concentration:
            return UnitValue(self.h0, Units.PPTV)
        return self.concentration.get(date)

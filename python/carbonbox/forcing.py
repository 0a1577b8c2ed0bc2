"""
Radiative forcing aggregator.

Each year the forcing component computes (or fetches from their owners) the
instantaneous forcing of every agent present in the run and sums them into a
total. If a total-forcing constraint covers the year, the reported total is
replaced by the constraint while the individual agents remain visible.

All reported forcings are relative to the base year: at the base year the
absolute values are stored, and every later year reports the difference. Before
the base year only the forcing-efficiency parameters are answerable; dated
forcing queries return zero.

References
----------
Joos et al. (2001), Global Biogeochem. Cy., 15, 891-907 (CH4, N2O, stratospheric
H2O and SO2 forcings); Tanaka et al. (2007), ACC2 (tropospheric ozone);
Bond et al. (2013), J. Geophys. Res.-Atmos., 118, 5380-5552 (BC and OC).
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING

from carbonbox.component import Capability, Dependency, Input, ModelComponent
from carbonbox.exceptions import ConfigError, DateRequiredError, UnknownVariableError
from carbonbox.messages import MessageData
from carbonbox.names import (
    D_2000_SO2,
    D_ACH4,
    D_ACO2,
    D_AN2O,
    D_ASO2D,
    D_ATMOSPHERIC_CH4,
    D_ATMOSPHERIC_CO2,
    D_ATMOSPHERIC_N2O,
    D_ATMOSPHERIC_O3,
    D_ATROPO3,
    D_EMISSIONS_BC,
    D_EMISSIONS_OC,
    D_EMISSIONS_SO2,
    D_FTOT_CONSTRAIN,
    D_NATURAL_SO2,
    D_PREINDUSTRIAL_CH4,
    D_PREINDUSTRIAL_N2O,
    D_RF_BASEYEAR,
    D_RF_BC,
    D_RF_CH4,
    D_RF_CO2,
    D_RF_H2O_STRAT,
    D_RF_N2O,
    D_RF_O3_TROP,
    D_RF_OC,
    D_RF_SO2,
    D_RF_SO2D,
    D_RF_SO2I,
    D_RF_T_ALBEDO,
    D_RF_TOTAL,
    D_RF_VOL,
    D_VOLCANIC_SO2,
    halocarbon_forcing_map,
)
from carbonbox.timeseries import TimeSeries
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import ComponentKind

if TYPE_CHECKING:
    from carbonbox.core import Core

__all__ = ["ForcingComponent", "ch4_n2o_overlap"]

# Forcing per Tg of black and organic carbon emissions (W/m2/Tg)
BC_EFFICIENCY = 0.0743
OC_EFFICIENCY = -0.0128

# Stratospheric H2O forcing as a fraction of the CH4 forcing
H2O_STRAT_FRACTION = 0.05

# Indirect sulphate forcing in the year 2000 (W/m2)
SO2_INDIRECT_2000 = -0.6

_FORCING_AGENTS = (
    D_RF_TOTAL,
    D_RF_CO2,
    D_RF_CH4,
    D_RF_N2O,
    D_RF_H2O_STRAT,
    D_RF_O3_TROP,
    D_RF_BC,
    D_RF_OC,
    D_RF_SO2D,
    D_RF_SO2I,
    D_RF_SO2,
    D_RF_VOL,
)


def ch4_n2o_overlap(m: float, n: float) -> float:
    """
    Overlap of the CH4 and N2O absorption bands.

    Joos et al. (2001) equation A9, with ``m`` the CH4 (ppbv) and ``n`` the
    N2O (ppbv) concentration.
    """
    return 0.47 * math.log(
        1 + 2.01e-5 * (m * n) ** 0.75 + 5.31e-15 * m * (m * n) ** 1.52
    )


def _positive(name: str, value: float) -> float:
    # Concentrations and sulphur reference emissions enter logs and roots
    if value <= 0:
        msg = f"{name} must be positive, got {value}"
        raise ConfigError(msg, name=name)
    return value


class ForcingComponent(ModelComponent):
    """Sums the forcing of every agent and rebases it to the base year."""

    kind = ComponentKind.FORCING
    default_name = "forcing"

    total = Capability(D_RF_TOTAL, Units.W_M2)
    baseyear_capability = Capability(D_RF_BASEYEAR, Units.YEARS)
    rf_co2 = Capability(D_RF_CO2, Units.W_M2)
    rf_ch4 = Capability(D_RF_CH4, Units.W_M2)
    rf_n2o = Capability(D_RF_N2O, Units.W_M2)
    rf_h2o_strat = Capability(D_RF_H2O_STRAT, Units.W_M2)
    rf_o3_trop = Capability(D_RF_O3_TROP, Units.W_M2)
    rf_bc = Capability(D_RF_BC, Units.W_M2)
    rf_oc = Capability(D_RF_OC, Units.W_M2)
    rf_so2d = Capability(D_RF_SO2D, Units.W_M2)
    rf_so2i = Capability(D_RF_SO2I, Units.W_M2)
    rf_so2 = Capability(D_RF_SO2, Units.W_M2)
    rf_vol = Capability(D_RF_VOL, Units.W_M2)
    aco2_capability = Capability(D_ACO2, Units.W_M2)
    an2o_capability = Capability(D_AN2O, Units.W_M2)
    ach4_capability = Capability(D_ACH4, Units.W_M2)
    atropo3_capability = Capability(D_ATROPO3, Units.W_M2)
    aso2d_capability = Capability(D_ASO2D, Units.W_M2)

    co2 = Dependency(D_ATMOSPHERIC_CO2)
    ch4 = Dependency(D_ATMOSPHERIC_CH4)
    n2o = Dependency(D_ATMOSPHERIC_N2O)
    o3 = Dependency(D_ATMOSPHERIC_O3)
    bc = Dependency(D_EMISSIONS_BC)
    oc = Dependency(D_EMISSIONS_OC)
    so2_natural = Dependency(D_NATURAL_SO2)
    so2_emissions = Dependency(D_EMISSIONS_SO2)
    volcanic = Dependency(D_VOLCANIC_SO2)
    albedo = Dependency(D_RF_T_ALBEDO)

    baseyear_input = Input(D_RF_BASEYEAR, Units.YEARS)
    aco2_input = Input(D_ACO2, Units.W_M2)
    an2o_input = Input(D_AN2O, Units.W_M2)
    ach4_input = Input(D_ACH4, Units.W_M2)
    atropo3_input = Input(D_ATROPO3, Units.W_M2)
    aso2d_input = Input(D_ASO2D, Units.W_M2)
    ftot_constrain_input = Input(D_FTOT_CONSTRAIN, Units.W_M2, dated=True)

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name)
        self.baseyear = 0.0
        self.current_year = 0.0
        self.parameters: dict[str, float] = {
            D_ACO2: 5.35,
            D_AN2O: 0.12,
            D_ACH4: 0.036,
            D_ATROPO3: 0.042,
            D_ASO2D: -0.35,
        }
        self.halocarbon_map = halocarbon_forcing_map()
        self.ftot_constrain: TimeSeries[UnitValue] = TimeSeries(
            D_FTOT_CONSTRAIN, interpolate=True
        )
        self.forcings_ts: TimeSeries[Mapping[str, UnitValue]] = TimeSeries("forcings")
        self.baseyear_forcings: Mapping[str, UnitValue] | None = None
        self.co2_base: float | None = None

    def init(self, core: Core) -> None:
        """Register the fixed capabilities plus the adjusted halocarbon names."""
        super().init(core)
        for adjusted, raw in self.halocarbon_map.items():
            core.register_capability(adjusted, self.name)
            core.register_dependency(raw, self.name)

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name == D_RF_BASEYEAR:
            self.baseyear = data.unitval(Units.YEARS).magnitude
        elif name in self.parameters:
            self.parameters[name] = data.unitval(Units.W_M2).magnitude
        elif name == D_FTOT_CONSTRAIN:
            if data.date is None:
                raise DateRequiredError(name)
            self.ftot_constrain.set(data.date, data.unitval(Units.W_M2))
        else:
            super().set_data(name, data)

    def prepare_to_run(self) -> None:
        """Default the base year and check it follows the start date."""
        core = self._require_core()
        if self.baseyear == 0.0:
            self.baseyear = core.start_date + 1
        self.logger.debug("Base year for reporting is %s", self.baseyear)
        if self.baseyear <= core.start_date:
            msg = (
                f"Base year ({self.baseyear}) must be after the model start date "
                f"({core.start_date})"
            )
            raise ConfigError(msg, name=D_RF_BASEYEAR)
        if self.ftot_constrain:
            self.logger.warning(
                "Total forcing will be overwritten by user-supplied values!"
            )
        self.baseyear_forcings = None
        self.co2_base = None
        self.current_year = core.start_date

    def run(self, date: float) -> None:
        """Compute this year's forcings relative to the base year."""
        self.current_year = date
        if date < self.baseyear:
            self.logger.debug("not yet at baseyear")
            return

        at_baseyear = self.baseyear_forcings is None
        forcings = self._absolute_forcings(date, at_baseyear)

        total = UnitValue(0.0, Units.W_M2)
        for agent, value in forcings.items():
            total = total + value
            self.logger.debug("forcing %s in %s is %s", agent, date, value)

        if self.ftot_constrain.in_range(date):
            self.logger.debug("Overwriting total forcing with user-supplied value")
            forcings[D_RF_TOTAL] = self.ftot_constrain.get(date)
        else:
            forcings[D_RF_TOTAL] = total
        self.logger.debug("forcing total is %s", forcings[D_RF_TOTAL])

        if at_baseyear:
            self.logger.debug("At base year %s; storing current forcing values", date)
            self.baseyear_forcings = MappingProxyType(dict(forcings))

        base = self.baseyear_forcings or {}
        zero = UnitValue(0.0, Units.W_M2)
        relative = {agent: value - base.get(agent, zero) for agent, value in forcings.items()}
        self.forcings_ts.set(date, MappingProxyType(relative))

    def _absolute_forcings(self, date: float, at_baseyear: bool) -> dict[str, UnitValue]:  # noqa: C901
        core = self._require_core()
        a = self.parameters
        forcings: dict[str, UnitValue] = {}

        co2 = self.fetch(D_ATMOSPHERIC_CO2).value(Units.PPMV_CO2)
        ca = _positive(D_ATMOSPHERIC_CO2, co2)
        if at_baseyear or self.co2_base is None:
            self.co2_base = ca
        co2_base = self.co2_base
        forcings[D_RF_CO2] = UnitValue(a[D_ACO2] * math.log(ca / co2_base), Units.W_M2)

        if core.check_capability(D_RF_T_ALBEDO):
            forcings[D_RF_T_ALBEDO] = self.fetch(D_RF_T_ALBEDO, date)

        if core.check_capability(D_ATMOSPHERIC_CH4) and core.check_capability(
            D_ATMOSPHERIC_N2O
        ):
            ma, m0, na, n0 = (
                _positive(name, self.fetch(name, fetch_date).value(unit))
                for name, fetch_date, unit in (
                    (D_ATMOSPHERIC_CH4, date, Units.PPBV_CH4),
                    (D_PREINDUSTRIAL_CH4, None, Units.PPBV_CH4),
                    (D_ATMOSPHERIC_N2O, date, Units.PPBV_N2O),
                    (D_PREINDUSTRIAL_N2O, None, Units.PPBV_N2O),
                )
            )

            ch4_sqrt = a[D_ACH4] * (math.sqrt(ma) - math.sqrt(m0))
            fch4 = ch4_sqrt - (ch4_n2o_overlap(ma, n0) - ch4_n2o_overlap(m0, n0))
            fn2o = a[D_AN2O] * (math.sqrt(na) - math.sqrt(n0)) - (
                ch4_n2o_overlap(m0, na) - ch4_n2o_overlap(m0, n0)
            )
            forcings[D_RF_CH4] = UnitValue(fch4, Units.W_M2)
            forcings[D_RF_N2O] = UnitValue(fn2o, Units.W_M2)
            forcings[D_RF_H2O_STRAT] = UnitValue(H2O_STRAT_FRACTION * ch4_sqrt, Units.W_M2)

        if core.check_capability(D_ATMOSPHERIC_O3):
            ozone = self.fetch(D_ATMOSPHERIC_O3, date).value(Units.DU_O3)
            forcings[D_RF_O3_TROP] = UnitValue(a[D_ATROPO3] * ozone, Units.W_M2)

        # Halocarbons compute their own absolute forcing
        for raw in self.halocarbon_map.values():
            if core.check_capability(raw):
                forcings[raw] = self.fetch(raw, date)

        if core.check_capability(D_EMISSIONS_BC):
            bc = self.fetch(D_EMISSIONS_BC, date).value(Units.TG)
            forcings[D_RF_BC] = UnitValue(BC_EFFICIENCY * bc, Units.W_M2)

        if core.check_capability(D_EMISSIONS_OC):
            oc = self.fetch(D_EMISSIONS_OC, date).value(Units.TG)
            forcings[D_RF_OC] = UnitValue(OC_EFFICIENCY * oc, Units.W_M2)

        if core.check_capability(D_NATURAL_SO2) and core.check_capability(
            D_EMISSIONS_SO2
        ):
            s0 = _positive(D_2000_SO2, self.fetch(D_2000_SO2).value(Units.GG_S))
            sn = _positive(D_NATURAL_SO2, self.fetch(D_NATURAL_SO2).value(Units.GG_S))
            emission = self.fetch(D_EMISSIONS_SO2, date).value(Units.GG_S)
            forcings[D_RF_SO2D] = UnitValue(a[D_ASO2D] * emission / s0, Units.W_M2)
            indirect = SO2_INDIRECT_2000 * math.log((sn + emission) / sn)
            indirect /= math.log((sn + s0) / sn)
            forcings[D_RF_SO2I] = UnitValue(indirect, Units.W_M2)

        if core.check_capability(D_VOLCANIC_SO2):
            forcings[D_RF_VOL] = self.fetch(D_VOLCANIC_SO2, date)

        return forcings

    def get_data(self, name: str, date: float | None) -> UnitValue:
        """
        Report a forcing relative to the base year, or a parameter.

        Known agents that are absent from the run report zero.
        """
        if name in self.parameters:
            return UnitValue(self.parameters[name], Units.W_M2)
        if name == D_RF_BASEYEAR:
            return UnitValue(self.baseyear, Units.YEARS)
        if name not in _FORCING_AGENTS and name not in self.halocarbon_map:
            raise UnknownVariableError(self.name, name)

        getdate = self.current_year if date is None else date
        zero = UnitValue(0.0, Units.W_M2)
        if getdate < self.baseyear:
            return zero

        forcings = self.forcings_ts.get(getdate)
        if name == D_RF_SO2:
            return forcings.get(D_RF_SO2D, zero) + forcings.get(D_RF_SO2I, zero)
        key = self.halocarbon_map.get(name, name)
        return forcings.get(key, zero)

    def reset(self, date: float) -> None:
        """Drop forcings after ``date``; forget the base year if before it."""
        self.current_year = date
        self.forcings_ts.truncate(date)
        if date < self.baseyear:
            self.baseyear_forcings = None
            self.co2_base = None
        self.logger.info("%s reset to time %s", self.name, date)

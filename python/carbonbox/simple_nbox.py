"""
Simple N-box terrestrial carbon cycle.

SimpleNbox tracks one atmosphere pool, one earth (fossil) pool, the ocean total
(mirrored from the ocean component) and, for each biome, vegetation, detritus,
soil, permafrost and thawed-permafrost carbon. Static (non-labile) carbon is a
sub-fraction of the thawed permafrost pool and is not counted separately in
totals.

The state vector exchanged with the integrator is laid out as::

    [atmos, earth, ocean, <biome 1 pools>, <biome 2 pools>, ...]

with six entries per biome, in ``biome_list`` order: vegetation, detritus,
soil, permafrost, thawed permafrost, static.

Every committed year is checked for mass balance and recorded so that the
component can be rewound to any earlier date.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np

from carbonbox.component import (
    Capability,
    Dependency,
    Input,
    ModelComponent,
    report_value,
)
from carbonbox.exceptions import (
    BiomeError,
    ConfigError,
    DateRequiredError,
    MassBalanceError,
    UnknownVariableError,
)
from carbonbox.integration import (
    Arr,
    CarbonCycleModel,
    DerivativeStatus,
    OceanCarbonModel,
)
from carbonbox.messages import MessageData
from carbonbox.names import (
    BIOME_SEPARATOR,
    D_ATMOSPHERIC_C,
    D_ATMOSPHERIC_CO2,
    D_BETA,
    D_CO2_CONSTRAIN,
    D_CONSTRAINT_RESIDUAL,
    D_DACCS_UPTAKE,
    D_DETRITUSC,
    D_EARTHC,
    D_F_FROZEN,
    D_F_LITTERD,
    D_F_LUCD,
    D_F_LUCV,
    D_F_NPPD,
    D_F_NPPV,
    D_FFI_EMISSIONS,
    D_FPF_STATIC,
    D_GLOBAL_TAS,
    D_LUC_EMISSIONS,
    D_LUC_UPTAKE,
    D_NBP,
    D_NPP,
    D_NPP_FLUX0,
    D_OCEAN_C,
    D_PERMAFROSTC,
    D_PF_MU,
    D_PF_SIGMA,
    D_PREINDUSTRIAL_CO2,
    D_Q10_RH,
    D_RF_T_ALBEDO,
    D_RH,
    D_RH_CH4,
    D_RH_CH4_FRAC,
    D_SOILC,
    D_STATICC,
    D_THAWEDPC,
    D_VEGC,
    D_WARMINGFACTOR,
    DEFAULT_BIOME,
    split_biome,
)
from carbonbox.timeseries import BiomeSeries, Extrapolation, TimeSeries
from carbonbox.units import PGC_TO_PPMVCO2, FluxPool, UnitValue, Units
from carbonbox.visitor import ComponentKind

__all__ = ["MB_EPSILON", "SimpleNbox"]

#: Allowed tolerance for mass-balance checks (Pg C)
MB_EPSILON = 0.001

# Global entries of the state vector
ATMOS, EARTH, OCEAN = 0, 1, 2
N_GLOBAL = 3

# Per-biome entries, relative to the start of the biome's block
VEG, DET, SOIL, PF, THAWED, STATIC = range(6)
N_BIOME = 6

# Turnover rates (1/yr)
LITTER_RATE = 0.035
DET_SOIL_RATE = 0.6
RH_DET_RATE = 0.25
RH_SOIL_RATE = 0.02
RH_PERMAFROST_RATE = 0.02

# Years in the running mean driving soil respiration
SOIL_TEMPERATURE_WINDOW = 200

#: Carbon pools held per biome, in state-vector order
BIOME_POOLS = (D_VEGC, D_DETRITUSC, D_SOILC, D_PERMAFROSTC, D_THAWEDPC, D_STATICC)

# Per-biome fluxes recorded each year
_BIOME_FLUXES = ("npp", "rh_det", "rh_soil", "rh_thawed_permafrost", "rh_ch4")

# Per-biome scalar state recorded each year
_BIOME_SCALARS = ("tempfertd", "tempferts", D_F_FROZEN)

#: Per-biome parameters, their units and default values
BIOME_PARAMETERS: Mapping[str, tuple[Units, float]] = {
    D_NPP_FLUX0: (Units.PGC_YR, 56.2),
    D_F_NPPV: (Units.UNITLESS, 0.35),
    D_F_NPPD: (Units.UNITLESS, 0.60),
    D_F_LITTERD: (Units.UNITLESS, 0.98),
    D_BETA: (Units.UNITLESS, 0.55),
    D_Q10_RH: (Units.UNITLESS, 2.2),
    D_WARMINGFACTOR: (Units.UNITLESS, 1.0),
    D_RH_CH4_FRAC: (Units.UNITLESS, 0.023),
    D_PF_MU: (Units.UNITLESS, 1.67),
    D_PF_SIGMA: (Units.UNITLESS, 0.986),
    D_FPF_STATIC: (Units.UNITLESS, 0.74),
}

DEFAULT_POOLS: Mapping[str, float] = {
    D_VEGC: 550.0,
    D_DETRITUSC: 55.0,
    D_SOILC: 1782.0,
    D_PERMAFROSTC: 865.0,
    D_THAWEDPC: 0.0,
    D_STATICC: 0.0,
}

_INPUT_SERIES = {
    D_FFI_EMISSIONS: Units.PGC_YR,
    D_DACCS_UPTAKE: Units.PGC_YR,
    D_LUC_EMISSIONS: Units.PGC_YR,
    D_LUC_UPTAKE: Units.PGC_YR,
    D_CO2_CONSTRAIN: Units.PPMV_CO2,
    D_RF_T_ALBEDO: Units.W_M2,
}


@dataclass(frozen=True)
class BiomeFluxes:
    """Gross land fluxes of one biome at a given state (Pg C/yr)."""

    npp: float
    litter: float
    det_soil: float
    rh_det: float
    rh_soil: float
    rh_permafrost: float
    thaw: float
    luc_emission: float
    luc_uptake: float

    @property
    def rh(self) -> float:
        """Total heterotrophic respiration."""
        return self.rh_det + self.rh_soil + self.rh_permafrost


@dataclass(frozen=True)
class AnnualFluxes:
    """Prescribed fluxes for the year being solved (Pg C/yr)."""

    ffi: float = 0.0
    daccs: float = 0.0
    luc_emission: float = 0.0
    luc_uptake: float = 0.0


def frozen_fraction(temperature: float, mu: float, sigma: float) -> float:
    """
    Fraction of permafrost still frozen at a biome temperature.

    The thawed fraction follows a log-normal cumulative distribution of
    temperature above preindustrial; nothing thaws at or below zero warming.
    """
    if temperature <= 0:
        return 1.0
    z = (math.log(temperature) - mu) / sigma
    thawed = 0.5 * (1.0 + math.erf(z / math.sqrt(2.0)))
    return 1.0 - thawed


class SimpleNbox(ModelComponent, CarbonCycleModel):
    """
    Global atmosphere, earth and ocean carbon plus per-biome land pools.

    Biome-specific parameters and pools may be addressed as
    ``<biome>.<variable>``. An unqualified pool or flux name refers to the sum
    over all biomes, while an unqualified parameter refers to the default
    biome (``"global"``).
    """

    kind = ComponentKind.SIMPLE_NBOX
    default_name = "simpleNbox"

    # Provided quantities
    co2 = Capability(D_ATMOSPHERIC_CO2, Units.PPMV_CO2)
    atmos_c_capability = Capability(D_ATMOSPHERIC_C, Units.PGC)
    c0_capability = Capability(D_PREINDUSTRIAL_CO2, Units.PPMV_CO2)
    earth_c_capability = Capability(D_EARTHC, Units.PGC)
    veg_c_capability = Capability(D_VEGC, Units.PGC)
    detritus_c_capability = Capability(D_DETRITUSC, Units.PGC)
    soil_c_capability = Capability(D_SOILC, Units.PGC)
    permafrost_c_capability = Capability(D_PERMAFROSTC, Units.PGC)
    thawed_c_capability = Capability(D_THAWEDPC, Units.PGC)
    static_c_capability = Capability(D_STATICC, Units.PGC)
    npp_capability = Capability(D_NPP, Units.PGC_YR)
    rh_capability = Capability(D_RH, Units.PGC_YR)
    rh_ch4_capability = Capability(D_RH_CH4, Units.PGC_YR)
    nbp_capability = Capability(D_NBP, Units.PGC_YR)
    residual_capability = Capability(D_CONSTRAINT_RESIDUAL, Units.PGC)
    albedo_capability = Capability(D_RF_T_ALBEDO, Units.W_M2)
    ffi_capability = Capability(D_FFI_EMISSIONS, Units.PGC_YR)
    daccs_capability = Capability(D_DACCS_UPTAKE, Units.PGC_YR)
    luc_emissions_capability = Capability(D_LUC_EMISSIONS, Units.PGC_YR)
    luc_uptake_capability = Capability(D_LUC_UPTAKE, Units.PGC_YR)
    f_frozen_capability = Capability(D_F_FROZEN, Units.UNITLESS)
    f_lucv_capability = Capability(D_F_LUCV, Units.UNITLESS)
    f_lucd_capability = Capability(D_F_LUCD, Units.UNITLESS)
    npp_flux0_capability = Capability(D_NPP_FLUX0, Units.PGC_YR)
    f_nppv_capability = Capability(D_F_NPPV, Units.UNITLESS)
    f_nppd_capability = Capability(D_F_NPPD, Units.UNITLESS)
    f_litterd_capability = Capability(D_F_LITTERD, Units.UNITLESS)
    beta_capability = Capability(D_BETA, Units.UNITLESS)
    q10_capability = Capability(D_Q10_RH, Units.UNITLESS)
    warmingfactor_capability = Capability(D_WARMINGFACTOR, Units.UNITLESS)
    rh_ch4_frac_capability = Capability(D_RH_CH4_FRAC, Units.UNITLESS)
    pf_mu_capability = Capability(D_PF_MU, Units.UNITLESS)
    pf_sigma_capability = Capability(D_PF_SIGMA, Units.UNITLESS)
    fpf_static_capability = Capability(D_FPF_STATIC, Units.UNITLESS)

    # Quantities read from other components
    temperature = Dependency(D_GLOBAL_TAS)
    ocean_carbon = Dependency(D_OCEAN_C)

    # Initial pools and parameters
    atmos_c_input = Input(D_ATMOSPHERIC_C, Units.PGC)
    c0_input = Input(D_PREINDUSTRIAL_CO2, Units.PPMV_CO2)
    earth_c_input = Input(D_EARTHC, Units.PGC)
    veg_c_input = Input(D_VEGC, Units.PGC)
    detritus_c_input = Input(D_DETRITUSC, Units.PGC)
    soil_c_input = Input(D_SOILC, Units.PGC)
    permafrost_c_input = Input(D_PERMAFROSTC, Units.PGC)
    thawed_c_input = Input(D_THAWEDPC, Units.PGC)
    f_lucv_input = Input(D_F_LUCV, Units.UNITLESS)
    f_lucd_input = Input(D_F_LUCD, Units.UNITLESS)
    npp_flux0_input = Input(D_NPP_FLUX0, Units.PGC_YR)
    f_nppv_input = Input(D_F_NPPV, Units.UNITLESS)
    f_nppd_input = Input(D_F_NPPD, Units.UNITLESS)
    f_litterd_input = Input(D_F_LITTERD, Units.UNITLESS)
    beta_input = Input(D_BETA, Units.UNITLESS)
    q10_input = Input(D_Q10_RH, Units.UNITLESS)
    warmingfactor_input = Input(D_WARMINGFACTOR, Units.UNITLESS)
    rh_ch4_frac_input = Input(D_RH_CH4_FRAC, Units.UNITLESS)
    pf_mu_input = Input(D_PF_MU, Units.UNITLESS)
    pf_sigma_input = Input(D_PF_SIGMA, Units.UNITLESS)
    fpf_static_input = Input(D_FPF_STATIC, Units.UNITLESS)

    # Time series inputs
    ffi_input = Input(D_FFI_EMISSIONS, Units.PGC_YR, dated=True)
    daccs_input = Input(D_DACCS_UPTAKE, Units.PGC_YR, dated=True)
    luc_emissions_input = Input(D_LUC_EMISSIONS, Units.PGC_YR, dated=True)
    luc_uptake_input = Input(D_LUC_UPTAKE, Units.PGC_YR, dated=True)
    co2_constrain_input = Input(D_CO2_CONSTRAIN, Units.PPMV_CO2, dated=True)
    albedo_input = Input(D_RF_T_ALBEDO, Units.W_M2, dated=True)

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name)
        self.biome_list: list[str] = [DEFAULT_BIOME]

        # Global state
        self.c0 = FluxPool(277.15, Units.PPMV_CO2)
        self.atmos_c = FluxPool(self.c0.magnitude / PGC_TO_PPMVCO2)
        self.ca = self.c0
        self.earth_c = FluxPool(5500.0)
        self.ocean_c = FluxPool(0.0)
        self.residual = UnitValue(0.0, Units.PGC)
        self.atmosland_flux = UnitValue(0.0, Units.PGC_YR)
        self._atmos_c_set = False

        # Per-biome state, keyed by state name then biome
        self.pools: dict[str, dict[str, FluxPool]] = {
            pool: {DEFAULT_BIOME: FluxPool(DEFAULT_POOLS[pool])} for pool in BIOME_POOLS
        }
        self.fluxes: dict[str, dict[str, FluxPool]] = {
            flux: {DEFAULT_BIOME: FluxPool(0.0, Units.PGC_YR)} for flux in _BIOME_FLUXES
        }
        self.scalars: dict[str, dict[str, float]] = {
            scalar: {DEFAULT_BIOME: 1.0} for scalar in _BIOME_SCALARS
        }
        self._thaw_rate: dict[str, float] = {DEFAULT_BIOME: 0.0}

        # Parameters
        self.params: dict[str, dict[str, float]] = {
            param: {DEFAULT_BIOME: default}
            for param, (_, default) in BIOME_PARAMETERS.items()
        }
        self.f_lucv = 0.1
        self.f_lucd = 0.01

        # Inputs
        self.inputs: dict[str, TimeSeries[UnitValue]] = {
            name: TimeSeries(name, interpolate=True) for name in _INPUT_SERIES
        }
        self.inputs[D_RF_T_ALBEDO].extrapolation = Extrapolation.CONSTANT
        self._annual = AnnualFluxes()

        # History
        self.atmos_c_ts: TimeSeries[FluxPool] = TimeSeries(D_ATMOSPHERIC_C)
        self.ca_ts: TimeSeries[FluxPool] = TimeSeries(D_ATMOSPHERIC_CO2)
        self.earth_c_ts: TimeSeries[FluxPool] = TimeSeries(D_EARTHC)
        self.ocean_c_ts: TimeSeries[FluxPool] = TimeSeries(D_OCEAN_C)
        self.residual_ts: TimeSeries[UnitValue] = TimeSeries(D_CONSTRAINT_RESIDUAL)
        self.atmosland_flux_ts: TimeSeries[UnitValue] = TimeSeries(D_NBP)
        self.history: dict[str, BiomeSeries[Any]] = {
            key: BiomeSeries(key) for key in (*BIOME_POOLS, *_BIOME_FLUXES, *_BIOME_SCALARS)
        }
        self.tgav_record: TimeSeries[float] = TimeSeries("Tgav_record")

        self.omodel: OceanCarbonModel | None = None
        self.in_spinup = False
        self.tcurrent = 0.0
        self.masstot = 0.0

    # Biome bookkeeping

    def has_biome(self, biome: str) -> bool:
        """Whether ``biome`` is part of this run."""
        return biome in self.biome_list

    def create_biome(self, biome: str) -> None:
        """
        Add a new biome with empty pools.

        Parameters are copied from the first existing biome (or the defaults
        if there are none), except ``npp_flux0`` which starts at zero: an
        empty biome has no productivity until it is given one. Every recorded
        date gains the biome with zero carbon, leaving the other biomes
        untouched.

        Raises
        ------
        BiomeError
            If the biome already exists or the name is not valid
        """
        if not biome or BIOME_SEPARATOR in biome:
            msg = f"Invalid biome name '{biome}'"
            raise BiomeError(msg, name=biome)
        if self.has_biome(biome):
            msg = f"Biome '{biome}' already exists"
            raise BiomeError(msg, name=biome)
        self._warn_if_running("create", biome)
        self.logger.debug("Creating biome %s", biome)

        template = self.biome_list[0] if self.biome_list else None
        for param, (_, default) in BIOME_PARAMETERS.items():
            values = self.params[param]
            values[biome] = values[template] if template is not None else default
        self.params[D_NPP_FLUX0][biome] = 0.0

        zero_pool = FluxPool(0.0)
        zero_flux = FluxPool(0.0, Units.PGC_YR)
        for pool in BIOME_POOLS:
            self.pools[pool][biome] = zero_pool
            self.history[pool].add_biome(biome, zero_pool)
        for flux in _BIOME_FLUXES:
            self.fluxes[flux][biome] = zero_flux
            self.history[flux].add_biome(biome, zero_flux)
        for scalar in _BIOME_SCALARS:
            self.scalars[scalar][biome] = 1.0
            self.history[scalar].add_biome(biome, 1.0)
        self._thaw_rate[biome] = 0.0
        self.biome_list.append(biome)

    def delete_biome(self, biome: str) -> None:
        """
        Remove a biome and all of its recorded values.

        Deleting a biome that does not exist does nothing. Carbon held by the
        biome leaves the system, so the mass-balance total is recomputed.
        """
        if not self.has_biome(biome):
            self.logger.debug("Biome %s not present; nothing to delete", biome)
            return
        self._warn_if_running("delete", biome)
        self.logger.debug("Deleting biome %s", biome)

        self.biome_list.remove(biome)
        for values in self.params.values():
            values.pop(biome, None)
        for table in (self.pools, self.fluxes, self.scalars):
            for values in table.values():
                values.pop(biome, None)
        self._thaw_rate.pop(biome, None)
        for series in self.history.values():
            series.remove_biome(biome)
        self.masstot = self._total_carbon()

    def rename_biome(self, old: str, new: str) -> None:
        """
        Rename a biome, keeping its position and all recorded values.

        Raises
        ------
        BiomeError
            If ``old`` does not exist, ``new`` already exists or ``new`` is
            not a valid name
        """
        if not self.has_biome(old):
            msg = f"Biome '{old}' not found"
            raise BiomeError(msg, name=old)
        if self.has_biome(new):
            msg = f"Biome '{new}' already exists"
            raise BiomeError(msg, name=new)
        if not new or BIOME_SEPARATOR in new:
            msg = f"Invalid biome name '{new}'"
            raise BiomeError(msg, name=new)
        self.logger.debug("Renaming biome %s to %s", old, new)

        self.biome_list[self.biome_list.index(old)] = new
        for table in (self.params, self.pools, self.fluxes, self.scalars):
            for key in list(table):
                table[key] = _rename_key(table[key], old, new)
        self._thaw_rate = _rename_key(self._thaw_rate, old, new)
        for series in self.history.values():
            series.rename_biome(old, new)

    def _warn_if_running(self, action: str, biome: str) -> None:
        if len(self.atmos_c_ts) > 1:
            self.logger.warning(
                "Biome '%s': %s after the run has started rewrites %d recorded years",
                biome,
                action,
                len(self.atmos_c_ts),
            )

    # Lifecycle

    def prepare_to_run(self) -> None:
        """Validate parameters, locate the ocean and record the initial state."""
        core = self._require_core()
        self._validate()

        if not self._atmos_c_set:
            self.atmos_c = FluxPool(self.c0.magnitude / PGC_TO_PPMVCO2)
        self.ca = FluxPool(self.atmos_c.magnitude * PGC_TO_PPMVCO2, Units.PPMV_CO2)

        if core.check_capability(D_OCEAN_C):
            owner = core.get_component_by_capability(D_OCEAN_C)
            if not isinstance(owner, OceanCarbonModel):
                msg = f"Component '{owner.name}' provides {D_OCEAN_C} but is not an ocean model"
                raise ConfigError(msg, name=owner.name)
            self.omodel = owner
            self.ocean_c = FluxPool(self.fetch(D_OCEAN_C).value(Units.PGC))
        else:
            self.logger.warning("No ocean component; ocean carbon is held constant")

        if self.inputs[D_CO2_CONSTRAIN]:
            self.logger.warning(
                "Atmospheric CO2 will be constrained to user-supplied values!"
            )

        self.in_spinup = False
        self.tcurrent = core.start_date
        self._annual = AnnualFluxes()
        self._update_diagnostics(self._state_vector())
        self.masstot = self._total_carbon()
        self.logger.debug("Initial total carbon %.6g Pg C", self.masstot)
        self.record_state(self.tcurrent)

    def run(self, date: float) -> None:
        """Gather this year's prescribed fluxes and temperature."""
        self.in_spinup = False
        self._annual = AnnualFluxes(
            ffi=self._annual_input(D_FFI_EMISSIONS, date),
            daccs=self._annual_input(D_DACCS_UPTAKE, date),
            luc_emission=self._annual_input(D_LUC_EMISSIONS, date),
            luc_uptake=self._annual_input(D_LUC_UPTAKE, date),
        )
        tgav = 0.0
        if self.has_capability(D_GLOBAL_TAS):
            tgav = self.fetch(D_GLOBAL_TAS).value(Units.DEG_C)
        self.tgav_record.set(date, tgav)

    def run_spinup(self, step: int) -> bool:
        """Spinup evolves the pools without any prescribed fluxes."""
        self.in_spinup = True
        self._annual = AnnualFluxes()
        return True

    def reset(self, date: float) -> None:
        """Restore the state recorded at ``date`` and forget everything later."""
        self.atmos_c = self.atmos_c_ts.get(date)
        self.ca = self.ca_ts.get(date)
        self.earth_c = self.earth_c_ts.get(date)
        self.ocean_c = self.ocean_c_ts.get(date)
        self.residual = self.residual_ts.get(date)
        self.atmosland_flux = self.atmosland_flux_ts.get(date)
        for key, series in self.history.items():
            snapshot = dict(series.get(date))
            if key in self.pools:
                self.pools[key] = snapshot
            elif key in self.fluxes:
                self.fluxes[key] = snapshot
            else:
                self.scalars[key] = snapshot

        for ts in (
            self.atmos_c_ts,
            self.ca_ts,
            self.earth_c_ts,
            self.ocean_c_ts,
            self.residual_ts,
            self.atmosland_flux_ts,
            self.tgav_record,
            *self.history.values(),
        ):
            ts.truncate(date)

        self.tcurrent = date
        self.in_spinup = False
        self.masstot = self._total_carbon()
        self.logger.info("%s reset to time %s", self.name, date)

    def record_state(self, t: float) -> None:
        """Checkpoint the full state at ``t``."""
        self.atmos_c_ts.set(t, self.atmos_c)
        self.ca_ts.set(t, self.ca)
        self.earth_c_ts.set(t, self.earth_c)
        self.ocean_c_ts.set(t, self.ocean_c)
        self.residual_ts.set(t, self.residual)
        self.atmosland_flux_ts.set(t, self.atmosland_flux)
        for key in BIOME_POOLS:
            self.history[key].set(t, self.pools[key])
        for key in _BIOME_FLUXES:
            self.history[key].set(t, self.fluxes[key])
        for key in _BIOME_SCALARS:
            self.history[key].set(t, self.scalars[key])

    def _validate(self) -> None:
        if not self.biome_list:
            msg = "At least one biome is required"
            raise ConfigError(msg, name=self.name)
        for biome in self.biome_list:
            f_nppv = self.params[D_F_NPPV][biome]
            f_nppd = self.params[D_F_NPPD][biome]
            if f_nppv < 0 or f_nppd < 0 or f_nppv + f_nppd > 1:
                msg = f"NPP partitioning for biome '{biome}' must lie in [0, 1]"
                raise ConfigError(msg, name=biome)
            if not 0 <= self.params[D_F_LITTERD][biome] <= 1:
                msg = f"f_litterd for biome '{biome}' must lie in [0, 1]"
                raise ConfigError(msg, name=biome)
            if self.params[D_PF_SIGMA][biome] <= 0:
                msg = f"pf_sigma for biome '{biome}' must be positive"
                raise ConfigError(msg, name=biome)
        if self.f_lucv < 0 or self.f_lucd < 0 or self.f_lucv + self.f_lucd > 1:
            msg = "LUC partitioning fractions must lie in [0, 1]"
            raise ConfigError(msg, name=self.name)
        if self.c0.magnitude <= 0:
            msg = "Preindustrial CO2 must be positive"
            raise ConfigError(msg, name=D_PREINDUSTRIAL_CO2)

    def _annual_input(self, name: str, date: float) -> float:
        series = self.inputs[name]
        if not series:
            return 0.0
        return series.get(date).value(_INPUT_SERIES[name])

    # Carbon cycle model interface

    def ncpool(self) -> int:  # noqa: D102
        return N_GLOBAL + N_BIOME * len(self.biome_list)

    def get_c_values(self, t: float, c: Arr) -> None:  # noqa: D102
        c[:] = self._state_vector()

    def calc_derivs(self, t: float, c: Arr, dcdt: Arr) -> DerivativeStatus:
        """
        Rates of change of every pool at the proposed state ``c``.

        Returns FAILURE, leaving ``dcdt`` unspecified, if any pool is negative
        or not finite.
        """
        if not np.all(np.isfinite(c)) or np.any(c < 0) or c[ATMOS] <= 0:
            return DerivativeStatus.FAILURE

        biome_fluxes = self._biome_fluxes(c)
        ocean_flux = 0.0
        if self.omodel is not None:
            ocean_flux = self.omodel.atmosphere_ocean_flux(c[ATMOS], c[OCEAN])

        npp_total = 0.0
        rh_total = 0.0
        for i, (biome, fl) in enumerate(zip(self.biome_list, biome_fluxes, strict=True)):
            f_nppv = self.params[D_F_NPPV][biome]
            f_nppd = self.params[D_F_NPPD][biome]
            f_litterd = self.params[D_F_LITTERD][biome]
            luc_net = fl.luc_uptake - fl.luc_emission
            f_lucs = 1.0 - self.f_lucv - self.f_lucd

            base = N_GLOBAL + N_BIOME * i
            dcdt[base + VEG] = fl.npp * f_nppv - fl.litter + luc_net * self.f_lucv
            dcdt[base + DET] = (
                fl.npp * f_nppd
                + fl.litter * f_litterd
                - fl.det_soil
                - fl.rh_det
                + luc_net * self.f_lucd
            )
            dcdt[base + SOIL] = (
                fl.npp * (1.0 - f_nppv - f_nppd)
                + fl.litter * (1.0 - f_litterd)
                + fl.det_soil
                - fl.rh_soil
                + luc_net * f_lucs
            )
            dcdt[base + PF] = -fl.thaw
            dcdt[base + THAWED] = fl.thaw - fl.rh_permafrost
            dcdt[base + STATIC] = fl.thaw * self.params[D_FPF_STATIC][biome]

            npp_total += fl.npp
            rh_total += fl.rh

        annual = self._annual
        dcdt[ATMOS] = (
            annual.ffi
            - annual.daccs
            + annual.luc_emission
            - annual.luc_uptake
            - ocean_flux
            - npp_total
            + rh_total
        )
        dcdt[EARTH] = annual.daccs - annual.ffi
        dcdt[OCEAN] = ocean_flux
        return DerivativeStatus.SUCCESS

    def slow_param_eval(self, t: float, c: Arr) -> None:
        """Update temperature effects on respiration and permafrost thaw."""
        tgav = 0.0
        tgav_rm = 0.0
        if self.tgav_record and not self.in_spinup:
            recent = [v for _, v in self.tgav_record.items()[-SOIL_TEMPERATURE_WINDOW:]]
            tgav = recent[-1]
            tgav_rm = float(np.mean(recent))

        for biome in self.biome_list:
            wf = self.params[D_WARMINGFACTOR][biome]
            q10 = self.params[D_Q10_RH][biome]
            t_biome = tgav * wf
            self.scalars["tempfertd"][biome] = q10 ** (t_biome / 10.0)
            self.scalars["tempferts"][biome] = q10 ** (tgav_rm * wf / 10.0)

            previous = self.scalars[D_F_FROZEN][biome]
            new = frozen_fraction(
                t_biome, self.params[D_PF_MU][biome], self.params[D_PF_SIGMA][biome]
            )
            # Thawed permafrost does not refreeze
            if previous > 0 and new < previous:
                self._thaw_rate[biome] = (previous - new) / previous
                self.scalars[D_F_FROZEN][biome] = new
            else:
                self._thaw_rate[biome] = 0.0

        report_value(self.logger, self.name, "Tgav", tgav)
        report_value(self.logger, self.name, "Tgav_rm", tgav_rm)

    def stash_c_values(self, t: float, c: Arr) -> None:
        """
        Commit the accepted state ``c`` at ``t``.

        Applies the CO2 constraint (if any), updates the ocean, checks mass
        balance and records the state.

        Raises
        ------
        MassBalanceError
            If carbon was created or destroyed
        """
        self.atmos_c = FluxPool(c[ATMOS])
        self.earth_c = FluxPool(c[EARTH])
        self.ocean_c = FluxPool(c[OCEAN])
        for i, biome in enumerate(self.biome_list):
            base = N_GLOBAL + N_BIOME * i
            for offset, pool in enumerate(BIOME_POOLS):
                self.pools[pool][biome] = FluxPool(c[base + offset])

        self.residual = UnitValue(0.0, Units.PGC)
        constraint = self.inputs[D_CO2_CONSTRAIN]
        if constraint.in_range(t) and not self.in_spinup:
            target = constraint.get(t).value(Units.PPMV_CO2) / PGC_TO_PPMVCO2
            self.residual = UnitValue(self.atmos_c.magnitude - target, Units.PGC)
            self.logger.debug(
                "Constraining atmosphere to %.6g Pg C (residual %s)", target, self.residual
            )
            self.atmos_c = FluxPool(target)
        self.ca = FluxPool(self.atmos_c.magnitude * PGC_TO_PPMVCO2, Units.PPMV_CO2)

        if self.omodel is not None:
            self.omodel.stash_c_values(t, self.atmos_c.magnitude, self.ocean_c.magnitude)

        self._update_diagnostics(self._state_vector())
        self.sanitychecks(t)
        self.record_state(t)
        self.tcurrent = t
        self.log_pools(t)

    def sanitychecks(self, t: float) -> None:
        """Check that carbon was conserved, net of any constraint residual."""
        total = self._total_carbon()
        expected = self.masstot - self.residual.value(Units.PGC)
        if abs(total - expected) > MB_EPSILON:
            msg = (
                f"Mass balance failure at t={t}: total carbon {total:.6f} Pg C, "
                f"expected {expected:.6f} Pg C "
                f"(difference {total - expected:.6g} Pg C)"
            )
            raise MassBalanceError(msg, name=self.name)
        self.masstot = total

    def log_pools(self, t: float) -> None:
        """Write the global pools to the log."""
        if not self.logger.isEnabledFor(logging.DEBUG):
            return
        self.logger.debug("---- pool states at t=%s ----", t)
        report_value(self.logger, self.name, D_ATMOSPHERIC_C, self.atmos_c)
        report_value(self.logger, self.name, D_ATMOSPHERIC_CO2, self.ca)
        report_value(self.logger, self.name, D_EARTHC, self.earth_c)
        report_value(self.logger, self.name, D_OCEAN_C, self.ocean_c)
        for pool in BIOME_POOLS:
            report_value(self.logger, self.name, pool, self._sum(self.pools[pool]))

    # Internal helpers

    def _state_vector(self) -> Arr:
        c = np.empty(self.ncpool())
        c[ATMOS] = self.atmos_c.magnitude
        c[EARTH] = self.earth_c.magnitude
        c[OCEAN] = self.ocean_c.magnitude
        for i, biome in enumerate(self.biome_list):
            base = N_GLOBAL + N_BIOME * i
            for offset, pool in enumerate(BIOME_POOLS):
                c[base + offset] = self.pools[pool][biome].magnitude
        return c

    def _biome_fluxes(self, c: Arr) -> list[BiomeFluxes]:
        ca = c[ATMOS] * PGC_TO_PPMVCO2
        c0 = self.c0.magnitude
        annual = self._annual

        luc_weights = np.array(
            [
                c[N_GLOBAL + N_BIOME * i + VEG]
                + c[N_GLOBAL + N_BIOME * i + DET]
                + c[N_GLOBAL + N_BIOME * i + SOIL]
                for i in range(len(self.biome_list))
            ]
        )
        if luc_weights.sum() > 0:
            luc_weights = luc_weights / luc_weights.sum()
        else:
            luc_weights = np.full(len(self.biome_list), 1.0 / len(self.biome_list))

        result = []
        for i, biome in enumerate(self.biome_list):
            base = N_GLOBAL + N_BIOME * i
            co2fert = max(0.0, 1.0 + self.params[D_BETA][biome] * math.log(ca / c0))
            labile = max(c[base + THAWED] - c[base + STATIC], 0.0)
            tempferts = self.scalars["tempferts"][biome]
            result.append(
                BiomeFluxes(
                    npp=self.params[D_NPP_FLUX0][biome] * co2fert,
                    litter=LITTER_RATE * c[base + VEG],
                    det_soil=DET_SOIL_RATE * c[base + DET],
                    rh_det=RH_DET_RATE
                    * c[base + DET]
                    * self.scalars["tempfertd"][biome],
                    rh_soil=RH_SOIL_RATE * c[base + SOIL] * tempferts,
                    rh_permafrost=RH_PERMAFROST_RATE * labile * tempferts,
                    thaw=c[base + PF] * self._thaw_rate[biome],
                    luc_emission=annual.luc_emission * luc_weights[i],
                    luc_uptake=annual.luc_uptake * luc_weights[i],
                )
            )
        return result

    def _update_diagnostics(self, c: Arr) -> None:
        nbp = -self._annual.luc_emission + self._annual.luc_uptake
        for biome, fl in zip(self.biome_list, self._biome_fluxes(c), strict=True):
            ch4_frac = self.params[D_RH_CH4_FRAC][biome]
            self.fluxes["npp"][biome] = FluxPool(fl.npp, Units.PGC_YR)
            self.fluxes["rh_det"][biome] = FluxPool(fl.rh_det, Units.PGC_YR)
            self.fluxes["rh_soil"][biome] = FluxPool(fl.rh_soil, Units.PGC_YR)
            self.fluxes["rh_thawed_permafrost"][biome] = FluxPool(
                fl.rh_permafrost * (1.0 - ch4_frac), Units.PGC_YR
            )
            self.fluxes["rh_ch4"][biome] = FluxPool(
                fl.rh_permafrost * ch4_frac, Units.PGC_YR
            )
            nbp += fl.npp - fl.rh
        self.atmosland_flux = UnitValue(nbp, Units.PGC_YR)

    def _total_carbon(self) -> float:
        total = self.atmos_c.magnitude + self.earth_c.magnitude + self.ocean_c.magnitude
        for pool in BIOME_POOLS:
            if pool == D_STATICC:
                continue
            total += sum(p.magnitude for p in self.pools[pool].values())
        return total

    @staticmethod
    def _sum(values: Mapping[str, FluxPool]) -> FluxPool:
        return FluxPool(sum(v.magnitude for v in values.values()))

    def _check_biome(self, biome: str) -> None:
        if not self.has_biome(biome):
            msg = f"Biome '{biome}' not found (have {', '.join(self.biome_list)})"
            raise BiomeError(msg, name=biome)

    def _biome_values(
        self, current: Mapping[str, Any], key: str, date: float | None
    ) -> Mapping[str, Any]:
        if date is None or date == self.tcurrent:
            return current
        return self.history[key].get(date)

    # Messaging

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: PLR0912
        """Store an initial pool, parameter or input series value."""
        biome, var = split_biome(name)

        if var in BIOME_PARAMETERS:
            target = biome or DEFAULT_BIOME
            self._check_biome(target)
            self.params[var][target] = data.unitval(BIOME_PARAMETERS[var][0]).magnitude
            return

        if var in BIOME_POOLS:
            target = biome or DEFAULT_BIOME
            self._check_biome(target)
            self.pools[var][target] = FluxPool(data.unitval(Units.PGC).magnitude)
            return

        if biome is not None:
            raise UnknownVariableError(self.name, name)

        if var == D_ATMOSPHERIC_C:
            self.atmos_c = FluxPool(data.unitval(Units.PGC).magnitude)
            self._atmos_c_set = True
        elif var == D_PREINDUSTRIAL_CO2:
            self.c0 = FluxPool(data.unitval(Units.PPMV_CO2).magnitude, Units.PPMV_CO2)
        elif var == D_EARTHC:
            self.earth_c = FluxPool(data.unitval(Units.PGC).magnitude)
        elif var == D_F_LUCV:
            self.f_lucv = data.unitval(Units.UNITLESS).magnitude
        elif var == D_F_LUCD:
            self.f_lucd = data.unitval(Units.UNITLESS).magnitude
        elif var in _INPUT_SERIES:
            if data.date is None:
                raise DateRequiredError(name)
            self.inputs[var].set(data.date, data.unitval(_INPUT_SERIES[var]))
        else:
            raise UnknownVariableError(self.name, name)

    def get_data(self, name: str, date: float | None) -> UnitValue:  # noqa: C901, PLR0911, PLR0912
        """Report a pool, flux, parameter or input value."""
        biome, var = split_biome(name)

        if var in BIOME_PARAMETERS:
            target = biome or DEFAULT_BIOME
            self._check_biome(target)
            return UnitValue(self.params[var][target], BIOME_PARAMETERS[var][0])

        if var in BIOME_POOLS or var in (D_NPP, D_RH, D_RH_CH4, D_F_FROZEN):
            if biome is not None:
                self._check_biome(biome)
            return self._biome_quantity(var, biome, date)

        if biome is not None:
            raise UnknownVariableError(self.name, name)

        if var == D_ATMOSPHERIC_C:
            return self._global_value(self.atmos_c, self.atmos_c_ts, date)
        if var == D_ATMOSPHERIC_CO2:
            return self._global_value(self.ca, self.ca_ts, date)
        if var == D_EARTHC:
            return self._global_value(self.earth_c, self.earth_c_ts, date)
        if var == D_PREINDUSTRIAL_CO2:
            return self.c0
        if var == D_NBP:
            return self._global_value(self.atmosland_flux, self.atmosland_flux_ts, date)
        if var == D_CONSTRAINT_RESIDUAL:
            return self._global_value(self.residual, self.residual_ts, date)
        if var == D_F_LUCV:
            return UnitValue(self.f_lucv, Units.UNITLESS)
        if var == D_F_LUCD:
            return UnitValue(self.f_lucd, Units.UNITLESS)
        if var in _INPUT_SERIES:
            series = self.inputs[var]
            if not series:
                return UnitValue(0.0, _INPUT_SERIES[var])
            return series.get(self.tcurrent if date is None else date)
        raise UnknownVariableError(self.name, name)

    def _global_value(
        self, current: UnitValue, series: TimeSeries[Any], date: float | None
    ) -> UnitValue:
        if date is None or date == self.tcurrent:
            return current
        return series.get(date)

    def _biome_quantity(self, var: str, biome: str | None, date: float | None) -> UnitValue:
        if var == D_F_FROZEN:
            target = biome or DEFAULT_BIOME
            self._check_biome(target)
            values = self._biome_values(self.scalars[D_F_FROZEN], D_F_FROZEN, date)
            return UnitValue(values[target], Units.UNITLESS)

        if var in BIOME_POOLS:
            keys = (var,)
        elif var == D_NPP:
            keys = ("npp",)
        elif var == D_RH:
            keys = ("rh_det", "rh_soil", "rh_thawed_permafrost", "rh_ch4")
        else:
            keys = ("rh_ch4",)
        units = Units.PGC if var in BIOME_POOLS else Units.PGC_YR

        total = 0.0
        for key in keys:
            current = self.pools[key] if key in self.pools else self.fluxes[key]
            values = self._biome_values(current, key, date)
            if biome is None:
                total += sum(v.magnitude for v in values.values())
            else:
                total += values[biome].magnitude
        return FluxPool(total, units)


def _rename_key(values: dict[str, Any], old: str, new: str) -> dict[str, Any]:
    return {(new if k == old else k): v for k, v in values.items()}

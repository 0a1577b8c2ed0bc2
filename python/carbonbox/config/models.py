"""
Config sections of the standard components.

The parameter dataclasses list the scalars a ``[components.<section>]`` table
may set, with the units their component expects and their valid ranges. Keys
of a section that are not parameters (pools, biome-qualified pools, emission
series) are passed to the component unchecked.

Importing this module registers the sections, in run order, with
:data:`carbonbox.config.registry.component_registry`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from carbonbox.component import ModelComponent
from carbonbox.exogenous import ExogenousComponent
from carbonbox.forcing import ForcingComponent
from carbonbox.halocarbon import HalocarbonComponent
from carbonbox.integration import CarbonCycleSolver
from carbonbox.names import (
    D_ACH4,
    D_ACO2,
    D_AN2O,
    D_ASO2D,
    D_ATROPO3,
    D_CCS_DT,
    D_CCS_EPS_ABS,
    D_CCS_EPS_REL,
    D_CCS_MAX_ITERATIONS,
    D_ECS,
    D_EPS_SPINUP,
    D_OCEAN_EXCHANGE_RATE,
    D_PREINDUSTRIAL_CO2,
    D_RF_BASEYEAR,
    halocarbon_concentration,
)
from carbonbox.ocean import OceanComponent
from carbonbox.simple_nbox import SimpleNbox
from carbonbox.temperature import TemperatureComponent
from carbonbox.units import Units

from .exceptions import ValidationError
from .parameters import parameter, validate_parameters
from .registry import ComponentSection, SectionValue, component_registry

__all__ = [
    "ForcingParameters",
    "OceanParameters",
    "SimpleNboxParameters",
    "SolverParameters",
    "TemperatureParameters",
    "component_registry",
]


class _Validated:
    def __post_init__(self) -> None:
        """Validate parameters after initialisation."""
        errors = validate_parameters(self)
        if errors:
            msg = f"Invalid parameters: {errors}"
            raise ValidationError(msg)


@dataclass
class SimpleNboxParameters(_Validated):
    """Land and atmosphere carbon parameters.

    Parameters marked per biome may also be given as ``<biome>.<name>``; the
    same ranges apply.
    """

    C0: float = parameter(
        277.15,
        capability=D_PREINDUSTRIAL_CO2,
        unit=Units.PPMV_CO2,
        description="Preindustrial atmospheric CO2 concentration",
        range=(100.0, 1000.0),
    )
    npp_flux0: float = parameter(
        56.2,
        unit=Units.PGC_YR,
        description="Preindustrial net primary production",
        range=(0.0, 200.0),
        per_biome=True,
    )
    f_nppv: float = parameter(
        0.35,
        description="Fraction of NPP allocated to vegetation",
        range=(0.0, 1.0),
        per_biome=True,
    )
    f_nppd: float = parameter(
        0.60,
        description="Fraction of NPP allocated to detritus",
        range=(0.0, 1.0),
        per_biome=True,
    )
    f_litterd: float = parameter(
        0.98,
        description="Fraction of litter flux going to detritus",
        range=(0.0, 1.0),
        per_biome=True,
    )
    f_lucv: float = parameter(
        0.1,
        description="Fraction of land-use change flux from vegetation",
        range=(0.0, 1.0),
    )
    f_lucd: float = parameter(
        0.01,
        description="Fraction of land-use change flux from detritus",
        range=(0.0, 1.0),
    )
    beta: float = parameter(
        0.55,
        description="CO2 fertilisation factor",
        range=(0.0, 5.0),
        per_biome=True,
    )
    q10_rh: float = parameter(
        2.2,
        description="Temperature sensitivity of heterotrophic respiration",
        range=(1.0, 10.0),
        per_biome=True,
    )
    warmingfactor: float = parameter(
        1.0,
        description="Biome warming relative to the global mean",
        range=(0.0, 10.0),
        per_biome=True,
    )
    rh_ch4_frac: float = parameter(
        0.023,
        description="Fraction of thawed permafrost respiration released as CH4",
        range=(0.0, 1.0),
        per_biome=True,
    )
    pf_mu: float = parameter(
        1.67,
        description="Location of the log-normal permafrost thaw distribution",
        range=(-10.0, 10.0),
        per_biome=True,
    )
    pf_sigma: float = parameter(
        0.986,
        description="Scale of the log-normal permafrost thaw distribution",
        range=(0.01, 10.0),
        per_biome=True,
    )
    fpf_static: float = parameter(
        0.74,
        description="Fraction of thawed permafrost that is not decomposable",
        range=(0.0, 1.0),
        per_biome=True,
    )


@dataclass
class SolverParameters(_Validated):
    """Carbon-cycle integrator settings."""

    eps_abs: float = parameter(
        1e-6,
        capability=D_CCS_EPS_ABS,
        description="Absolute error tolerance",
        range=(0.0, 1.0),
    )
    eps_rel: float = parameter(
        1e-6,
        capability=D_CCS_EPS_REL,
        description="Relative error tolerance",
        range=(0.0, 1.0),
    )
    dt: float = parameter(
        0.3,
        capability=D_CCS_DT,
        unit=Units.YEARS,
        description="Initial integration step",
        range=(1e-6, 1.0),
    )
    max_iterations: int = parameter(
        1000,
        capability=D_CCS_MAX_ITERATIONS,
        description="Maximum number of solver steps per year",
        range=(1, 1_000_000),
    )
    eps_spinup: float = parameter(
        0.001,
        capability=D_EPS_SPINUP,
        unit=Units.PGC_YR,
        description="Largest pool change allowed at spinup equilibrium",
        range=(0.0, 10.0),
    )


@dataclass
class OceanParameters(_Validated):
    """Ocean carbon parameters."""

    ocean_c: float = parameter(
        38000.0,
        unit=Units.PGC,
        description="Initial ocean carbon",
        range=(0.0, 1e6),
    )
    exchange_rate: float = parameter(
        0.01,
        capability=D_OCEAN_EXCHANGE_RATE,
        description="Air-sea exchange rate (1/yr)",
        range=(0.0, 1.0),
    )
    revelle_factor: float = parameter(
        10.0,
        description="Buffer factor of ocean carbonate chemistry",
        range=(1.0, 20.0),
    )


@dataclass
class ForcingParameters(_Validated):
    """Forcing parameters.

    The scaling coefficients follow Joos et al. (2001) and Forster et al.
    (2007); the CO2 coefficient is from Myhre et al. (1998).
    """

    baseyear: float = parameter(
        0.0,
        capability=D_RF_BASEYEAR,
        unit=Units.YEARS,
        description="Year forcings are reported relative to; 0 means start + 1",
        range=(0.0, 1e5),
    )
    alpha_co2: float = parameter(
        5.35,
        capability=D_ACO2,
        unit=Units.W_M2,
        description="CO2 forcing scaling",
        range=(0.0, 10.0),
    )
    alpha_n2o: float = parameter(
        0.12,
        capability=D_AN2O,
        unit=Units.W_M2,
        description="N2O forcing scaling",
        range=(0.0, 1.0),
    )
    alpha_ch4: float = parameter(
        0.036,
        capability=D_ACH4,
        unit=Units.W_M2,
        description="CH4 forcing scaling",
        range=(0.0, 1.0),
    )
    alpha_trop_o3: float = parameter(
        0.042,
        capability=D_ATROPO3,
        unit=Units.W_M2,
        description="Tropospheric O3 forcing scaling",
        range=(0.0, 1.0),
    )
    alpha_so2d: float = parameter(
        -0.35,
        capability=D_ASO2D,
        unit=Units.W_M2,
        description="Direct SO2 forcing scaling",
        range=(-5.0, 0.0),
    )


@dataclass
class TemperatureParameters(_Validated):
    """Energy balance parameters."""

    ecs: float = parameter(
        3.0,
        capability=D_ECS,
        unit=Units.DEG_C,
        description="Equilibrium climate sensitivity",
        range=(0.1, 20.0),
    )
    heat_capacity: float = parameter(
        8.0,
        unit=Units.W_YR_M2_K,
        description="Effective heat capacity of the surface layer",
        range=(0.1, 500.0),
    )


# Sections holding one entry per species or variable


def _require_table(name: str, entry: Any) -> dict[str, Any]:
    if not isinstance(entry, dict):
        msg = f"'{name}' must be a table"
        raise ValidationError(msg, name=name)
    return entry


def _parse_units(name: str, units: Any) -> Units:
    try:
        return Units(units)
    except ValueError as err:
        msg = f"'{name}' has unknown units {units!r}"
        raise ValidationError(msg, name=name) from err


def _build_exogenous(table: dict[str, Any]) -> list[ModelComponent]:
    provides = {
        name: _parse_units(name, _require_table(name, entry).get("units"))
        for name, entry in table.items()
    }
    return [ExogenousComponent(provides=provides)]


def _exogenous_values(table: dict[str, Any]) -> Iterator[SectionValue]:
    for name, entry in table.items():
        if "value" in entry:
            yield SectionValue(name, entry["value"], _parse_units(name, entry["units"]))


def _build_halocarbons(table: dict[str, Any]) -> list[ModelComponent]:
    components: list[ModelComponent] = []
    for gas, entry in table.items():
        entry = _require_table(gas, entry)
        components.append(
            HalocarbonComponent(
                gas, rho=float(entry.get("rho", 0.0)), h0=float(entry.get("H0", 0.0))
            )
        )
    return components


def _halocarbon_values(table: dict[str, Any]) -> Iterator[SectionValue]:
    for gas, entry in table.items():
        if "concentration" in entry:
            yield SectionValue(
                halocarbon_concentration(gas), entry["concentration"], Units.PPTV
            )


def _single(
    cls: type[ModelComponent],
) -> Callable[[dict[str, Any]], list[ModelComponent]]:
    def build(_table: dict[str, Any]) -> list[ModelComponent]:
        return [cls()]

    return build


for _section in (
    ComponentSection(
        "ocean", _single(OceanComponent), OceanParameters, standard=True
    ),
    ComponentSection(
        "simpleNbox",
        _single(SimpleNbox),
        SimpleNboxParameters,
        standard=True,
        has_biomes=True,
    ),
    ComponentSection(
        "carbon-cycle-solver",
        _single(CarbonCycleSolver),
        SolverParameters,
        standard=True,
    ),
    ComponentSection("exogenous", _build_exogenous, values=_exogenous_values),
    ComponentSection("halocarbons", _build_halocarbons, values=_halocarbon_values),
    ComponentSection(
        "forcing", _single(ForcingComponent), ForcingParameters, standard=True
    ),
    ComponentSection(
        "temperature",
        _single(TemperatureComponent),
        TemperatureParameters,
        standard=True,
    ),
):
    component_registry.register(_section)

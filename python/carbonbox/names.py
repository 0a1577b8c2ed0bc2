"""
Capability name catalogue.

Every queryable or settable quantity in a run is identified by one of these
strings. A capability has at most one owning component per run.

Biome-specific quantities may be qualified as ``<biome>.<variable>``; the
unqualified form refers to the default (global) biome, or to the sum over all
biomes for carbon pools and fluxes.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

#: Version of this catalogue; bumped whenever a name changes meaning
CATALOGUE_VERSION = "1.0.0"

BIOME_SEPARATOR = "."
DEFAULT_BIOME = "global"

# Carbon cycle: pools
D_ATMOSPHERIC_CO2 = "CO2_concentration"
D_ATMOSPHERIC_C = "atmos_c"
D_PREINDUSTRIAL_CO2 = "C0"
D_EARTHC = "earth_c"
D_VEGC = "veg_c"
D_DETRITUSC = "detritus_c"
D_SOILC = "soil_c"
D_PERMAFROSTC = "permafrost_c"
D_THAWEDPC = "thawed_permafrost_c"
D_STATICC = "static_c"
D_OCEAN_C = "ocean_c"

# Carbon cycle: fluxes
D_NPP = "NPP"
D_RH = "RH"
D_RH_CH4 = "RH_CH4"
D_NBP = "NBP"
D_OCEAN_CFLUX = "ocean_uptake"
D_FFI_EMISSIONS = "ffi_emissions"
D_DACCS_UPTAKE = "daccs_uptake"
D_LUC_EMISSIONS = "luc_emissions"
D_LUC_UPTAKE = "luc_uptake"
D_CO2_CONSTRAIN = "CO2_constrain"
D_CONSTRAINT_RESIDUAL = "constraint_residual"

# Carbon cycle: parameters
D_NPP_FLUX0 = "npp_flux0"
D_F_NPPV = "f_nppv"
D_F_NPPD = "f_nppd"
D_F_LITTERD = "f_litterd"
D_F_LUCV = "f_lucv"
D_F_LUCD = "f_lucd"
D_BETA = "beta"
D_Q10_RH = "q10_rh"
D_WARMINGFACTOR = "warmingfactor"
D_RH_CH4_FRAC = "rh_ch4_frac"
D_PF_MU = "pf_mu"
D_PF_SIGMA = "pf_sigma"
D_FPF_STATIC = "fpf_static"
D_F_FROZEN = "f_frozen"

# Carbon cycle solver
D_CCS_EPS_ABS = "eps_abs"
D_CCS_EPS_REL = "eps_rel"
D_CCS_DT = "dt"
D_CCS_MAX_ITERATIONS = "max_iterations"
D_EPS_SPINUP = "eps_spinup"

# Ocean
D_OCEAN_EXCHANGE_RATE = "ocean_exchange_rate"
D_REVELLE_FACTOR = "revelle_factor"

# Temperature
D_GLOBAL_TAS = "global_tas"
D_ECS = "S"
D_HEAT_CAPACITY = "heat_capacity"
D_TAS_CONSTRAIN = "tas_constrain"

# Other gases, aerosols and their inputs
D_ATMOSPHERIC_CH4 = "CH4_concentration"
D_PREINDUSTRIAL_CH4 = "preind_CH4"
D_ATMOSPHERIC_N2O = "N2O_concentration"
D_PREINDUSTRIAL_N2O = "preind_N2O"
D_ATMOSPHERIC_O3 = "O3_concentration"
D_EMISSIONS_BC = "BC_emissions"
D_EMISSIONS_OC = "OC_emissions"
D_EMISSIONS_SO2 = "SO2_emissions"
D_NATURAL_SO2 = "SN"
D_2000_SO2 = "S0"
D_VOLCANIC_SO2 = "SV"

# Forcing
D_RF_TOTAL = "RF_tot"
D_RF_BASEYEAR = "baseyear"
D_RF_CO2 = "RF_CO2"
D_RF_CH4 = "RF_CH4"
D_RF_N2O = "RF_N2O"
D_RF_H2O_STRAT = "RF_H2O_strat"
D_RF_O3_TROP = "RF_O3_trop"
D_RF_BC = "RF_BC"
D_RF_OC = "RF_OC"
D_RF_SO2D = "RF_SO2d"
D_RF_SO2I = "RF_SO2i"
D_RF_SO2 = "RF_SO2"
D_RF_VOL = "RF_vol"
D_RF_T_ALBEDO = "RF_albedo"
D_FTOT_CONSTRAIN = "Ftot_constrain"
D_ACO2 = "alpha_CO2"
D_AN2O = "alpha_N2O"
D_ACH4 = "alpha_CH4"
D_ATROPO3 = "alpha_trop_O3"
D_ASO2D = "alpha_SO2d"

#: Halocarbon species whose forcings are computed by their own components
HALOCARBONS: tuple[str, ...] = (
    "CF4",
    "C2F6",
    "HFC23",
    "HFC32",
    "HFC4310",
    "HFC125",
    "HFC134a",
    "HFC143a",
    "HFC227ea",
    "HFC245fa",
    "SF6",
    "CFC11",
    "CFC12",
    "CFC113",
    "CFC114",
    "CFC115",
    "CCl4",
    "CH3CCl3",
    "HCFC22",
    "HCFC141b",
    "HCFC142b",
    "halon1211",
    "halon1301",
    "halon2402",
    "CH3Cl",
    "CH3Br",
)


def raw_halocarbon_forcing(gas: str) -> str:
    """Capability for a halocarbon's absolute forcing, owned by its component."""
    return f"F_{gas}"


def adjusted_halocarbon_forcing(gas: str) -> str:
    """Capability for a halocarbon's forcing relative to the base year."""
    return f"RF_{gas}"


def halocarbon_concentration(gas: str) -> str:
    """Capability for a halocarbon's atmospheric concentration."""
    return f"{gas}_concentration"


def halocarbon_efficiency(gas: str) -> str:
    """Input name for a halocarbon's radiative efficiency."""
    return f"{gas}_rho"


def halocarbon_preindustrial(gas: str) -> str:
    """Input name for a halocarbon's preindustrial concentration."""
    return f"{gas}_H0"


def halocarbon_forcing_map() -> Mapping[str, str]:
    """
    Build the adjusted-to-raw halocarbon forcing name table.

    Halocarbon components only know their absolute forcing, while callers
    usually want values relative to the base year. The forcing component owns
    the adjusted names and uses this table to find the raw values it stored.

    Returns
    -------
    Mapping[str, str]
        Read-only mapping from adjusted capability name to raw name
    """
    return MappingProxyType(
        {adjusted_halocarbon_forcing(g): raw_halocarbon_forcing(g) for g in HALOCARBONS}
    )


def split_biome(name: str) -> tuple[str | None, str]:
    """
    Split a possibly biome-qualified name.

    Examples
    --------
    >>> split_biome("tropical.veg_c")
    ('tropical', 'veg_c')
    >>> split_biome("veg_c")
    (None, 'veg_c')
    """
    biome, sep, var = name.rpartition(BIOME_SEPARATOR)
    if not sep:
        return None, name
    return biome, var


def biome_qualified(biome: str, var: str) -> str:
    """Compose ``<biome>.<var>``."""
    return f"{biome}{BIOME_SEPARATOR}{var}"

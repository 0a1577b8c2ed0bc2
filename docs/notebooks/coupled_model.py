# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.16.4
#   kernelspec:
#     display_name: Python 3 (ipykernel)
#     language: python
#     name: python3
# ---

# %% [markdown]
# # Coupled Carbon Cycle and Forcing
#
# This notebook builds a run of the coupled carbon cycle, forcing and
# temperature components, drives it with an idealised emissions pathway and
# inspects the results.
#
# ## Overview
#
# Each component models one part of the Earth system. Components never call
# each other directly: they publish capabilities (quantities they can report)
# and inputs (quantities that can be set), and the `Core` routes GET and SET
# messages between them. The components run in a fixed order every year.

# %%
import matplotlib.pyplot as plt
import numpy as np

from carbonbox.core import Core
from carbonbox.exogenous import ExogenousComponent
from carbonbox.forcing import ForcingComponent
from carbonbox.integration import CarbonCycleSolver
from carbonbox.ocean import OceanComponent
from carbonbox.outputs import OutputStreamVisitor
from carbonbox.simple_nbox import SimpleNbox
from carbonbox.temperature import TemperatureComponent
from carbonbox.units import Units

# %% [markdown]
# ## Building a run
#
# The run starts from its initial state in 1750; the first solved year is
# 1751. Forcings are reported relative to the base year, which defaults to the
# first solved year.

# %%
t_initial = 1750.0
t_final = 2100.0

core = Core(t_initial, t_final, run_name="idealised")
gases = ExogenousComponent(
    "gases",
    provides={
        "CH4_concentration": Units.PPBV_CH4,
        "preind_CH4": Units.PPBV_CH4,
        "N2O_concentration": Units.PPBV_N2O,
        "preind_N2O": Units.PPBV_N2O,
    },
)
for component in (
    OceanComponent(),
    SimpleNbox(),
    CarbonCycleSolver(),
    gases,
    ForcingComponent(),
    TemperatureComponent(),
):
    core.add_component(component)

outputs = OutputStreamVisitor()
core.add_visitor(outputs)
core.init()

# %% [markdown]
# ### Biomes
#
# The land carbon cycle starts with a single `global` biome. Splitting it lets
# each biome carry its own pools and parameters, addressed as `<biome>.<name>`.

# %%
nbox = core.component("simpleNbox")
nbox.rename_biome("global", "tropical")
nbox.create_biome("boreal")

core.set_data("tropical.veg_c", 400.0, Units.PGC)
core.set_data("boreal.veg_c", 150.0, Units.PGC)
core.set_data("boreal.npp_flux0", 15.0, Units.PGC_YR)
core.set_data("boreal.beta", 0.3)

# %% [markdown]
# ### Exogenous inputs
#
# Dated values form a series that is interpolated between dates. Fossil
# emissions rise linearly to 2050 and then decline.

# %%
years = np.array([1750, 1850, 1950, 2050, 2100])
emissions = np.array([0.0, 0.5, 2.0, 12.0, 4.0])
for year, value in zip(years, emissions):
    core.set_data("ffi_emissions", value, Units.PGC_YR, date=year)

core.set_data("preind_CH4", 700.0)
core.set_data("CH4_concentration", 700.0, date=1750)
core.set_data("CH4_concentration", 2500.0, date=2100)
core.set_data("preind_N2O", 272.0)
core.set_data("N2O_concentration", 272.0)

# %% [markdown]
# ## Running

# %%
core.prepare_to_run()
core.run()
core

# %%
df = outputs.to_dataframe()
df.head()

# %% [markdown]
# ## Results

# %%
fig, axes = plt.subplots(1, 3, figsize=(12, 4))
for ax, variable in zip(axes, ["CO2_concentration", "RF_tot", "global_tas"]):
    data = df[df["variable"] == variable]
    ax.plot(data["year"], data["value"])
    ax.set_title(variable)
    ax.set_xlabel("year")
    ax.set_ylabel(data["units"].iloc[0])
fig.tight_layout()

# %% [markdown]
# ### Pools by biome
#
# Unqualified pool names report the sum over all biomes.

# %%
dates = np.arange(t_initial, t_final + 1)
for biome in ["tropical", "boreal"]:
    plt.plot(
        dates,
        [core.get_data(f"{biome}.veg_c", d).magnitude for d in dates],
        label=biome,
    )
plt.ylabel("veg_c (Pg C)")
plt.legend()

# %% [markdown]
# ## Rewinding
#
# A run can be reset to any solved year and continued with different inputs.
# Years after the reset date are discarded.

# %%
core.reset(2020)
for year in (2030, 2050, 2100):
    core.set_data("ffi_emissions", 0.0, date=year)
core.run()

rewound = outputs.to_dataframe()
tas = rewound[rewound["variable"] == "global_tas"]
plt.plot(tas["year"], tas["value"])
plt.ylabel("global_tas (degC)")

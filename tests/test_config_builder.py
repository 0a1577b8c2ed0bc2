"""
Unit tests for carbonbox.config.builder module.

Tests building runs from configuration dictionaries and TOML files.
"""

from __future__ import annotations

import pytest

from carbonbox.config import (
    ComponentNotFoundError,
    ValidationError,
    build_core,
    load_core,
)
from carbonbox.core import RunStage
from carbonbox.outputs import OutputStreamVisitor
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import ComponentKind

RUN = {"start": 1750, "end": 1760, "name": "builder-test"}


def config(**components):
    return {"run": dict(RUN), "components": components}


class TestBuildCore:
    """Tests for build_core with in-memory configuration."""

    def test_minimal_config(self):
        """The standard components are built in run order."""
        core = build_core({"run": dict(RUN)})

        assert core.stage is RunStage.INITIALISED
        assert core.run_name == "builder-test"
        assert [c.name for c in core.components] == [
            "ocean",
            "simpleNbox",
            "carbon-cycle-solver",
            "forcing",
            "temperature",
        ]
        assert len(core.visitors) == 1

    def test_run_table_required(self):
        with pytest.raises(ValidationError, match="missing required keys"):
            build_core({"components": {}})

    def test_unknown_section(self):
        with pytest.raises(ComponentNotFoundError, match="Component 'land' not found"):
            build_core(config(land={}))

    def test_parameters_sent_to_capabilities(self):
        core = build_core(
            config(
                simpleNbox={"beta": 0.4, "C0": 280.0},
                temperature={"ecs": 4.0},
                forcing={"alpha_co2": 5.0},
            )
        )
        assert core.get_data("beta").magnitude == 0.4
        assert core.get_data("C0").magnitude == 280.0
        assert core.get_data("S").magnitude == 4.0
        assert core.get_data("alpha_CO2").magnitude == 5.0

    def test_out_of_range_parameter(self):
        with pytest.raises(ValidationError, match="q10_rh"):
            build_core(config(simpleNbox={"q10_rh": 50.0}))

    def test_biomes(self):
        core = build_core(
            config(
                simpleNbox={
                    "biomes": ["tropical", "boreal"],
                    "tropical.beta": 0.3,
                    "boreal.veg_c": 100.0,
                }
            )
        )
        nbox = core.component("simpleNbox")
        assert not nbox.has_biome("global")
        assert nbox.has_biome("tropical")
        assert nbox.has_biome("boreal")
        assert core.get_data("tropical.beta").magnitude == 0.3
        assert core.get_data("boreal.veg_c").magnitude == 100.0

    def test_biome_parameter_out_of_range(self):
        with pytest.raises(ValidationError):
            build_core(config(simpleNbox={"biomes": ["tropical"], "tropical.beta": -1.0}))

    def test_empty_biome_list(self):
        with pytest.raises(ValidationError, match="at least one biome"):
            build_core(config(simpleNbox={"biomes": []}))

    def test_unlisted_biome(self):
        with pytest.raises(ValidationError, match="'boreal.beta' names biome 'boreal'"):
            build_core(config(simpleNbox={"biomes": ["tropical"], "boreal.beta": 0.3}))

    def test_global_parameter_per_biome(self):
        with pytest.raises(ValidationError, match="'C0' cannot be set per biome"):
            build_core(config(simpleNbox={"biomes": ["tropical"], "tropical.C0": 280.0}))

    def test_parameters_carry_units(self):
        core = build_core(config(simpleNbox={"C0": 280.0}, temperature={"ecs": 2.5}))
        assert core.get_data("C0") == UnitValue(280.0, Units.PPMV_CO2)
        assert core.get_data("S").units is Units.DEG_C

    def test_dated_table(self):
        core = build_core(config(simpleNbox={"ffi_emissions": {"1750": 5.0, "1760": 15.0}}))
        assert core.get_data("ffi_emissions", 1755).magnitude == pytest.approx(10.0)

        core.prepare_to_run()
        core.run()
        assert core.current_date == 1760

    @pytest.mark.parametrize("value", [True, [1.0, 2.0], "1.0"])
    def test_malformed_value(self, value):
        with pytest.raises(ValidationError, match="must be a number"):
            build_core(config(simpleNbox={"ffi_emissions": value}))

    def test_exogenous(self):
        core = build_core(
            config(
                exogenous={
                    "CH4_concentration": {"units": "ppbv CH4", "value": {"1750": 700.0}},
                    "preind_CH4": {"units": "ppbv CH4", "value": 700.0},
                    "N2O_concentration": {"units": "ppbv N2O", "value": 270.0},
                    "preind_N2O": {"units": "ppbv N2O", "value": 270.0},
                }
            )
        )
        value = core.get_data("CH4_concentration", 1760)
        assert value.magnitude == 700.0
        assert value.units is Units.PPBV_CH4

        core.prepare_to_run()
        core.run()
        assert core.get_data("RF_CH4").magnitude == pytest.approx(0.0)

    def test_exogenous_unknown_units(self):
        with pytest.raises(ValidationError, match="unknown units"):
            build_core(config(exogenous={"CH4_concentration": {"units": "furlongs"}}))

    def test_exogenous_entry_must_be_table(self):
        with pytest.raises(ValidationError, match="must be a table"):
            build_core(config(exogenous={"CH4_concentration": 700.0}))

    def test_halocarbons(self):
        core = build_core(
            config(
                halocarbons={
                    "CFC11": {
                        "rho": 0.00025,
                        "H0": 0.0,
                        "concentration": {"1750": 0.0, "1760": 100.0},
                    }
                }
            )
        )
        assert [c.name for c in core.components][-3:] == [
            "CFC11_halocarbon",
            "forcing",
            "temperature",
        ]
        core.prepare_to_run()
        core.run()
        assert core.get_data("F_CFC11").magnitude == pytest.approx(0.025)

    def test_outputs(self):
        core = build_core(
            {
                "run": dict(RUN),
                "outputs": {
                    "variables": {"temperature": ["global_tas"]},
                    "include_spinup": True,
                },
            }
        )
        visitor = core.visitors[0]
        assert isinstance(visitor, OutputStreamVisitor)
        assert visitor.variables == {ComponentKind.TEMPERATURE: ["global_tas"]}
        assert visitor.include_spinup is True

    def test_unknown_output_kind(self):
        with pytest.raises(ValidationError, match="Unknown component kind"):
            build_core({"run": dict(RUN), "outputs": {"variables": {"land": ["x"]}}})


class TestFiles:
    """Tests for loading runs from files."""

    @pytest.fixture
    def emissions_csv(self, tmp_path):
        path = tmp_path / "emissions.csv"
        path.write_text(
            "# fossil emissions\n"
            "year,ffi_emissions,luc_emissions\n"
            "1750,1.0,0.5\n"
            "1755,2.0,\n"
            "1760,3.0,0.5\n"
        )
        return path

    def test_load_core_layers(self, tmp_path, emissions_csv):
        defaults = tmp_path / "defaults.toml"
        defaults.write_text(
            "[run]\n"
            'name = "defaults"\n'
            "start = 1750\n"
            "end = 1760\n"
            "\n"
            "[components.simpleNbox]\n"
            "beta = 0.36\n"
        )
        experiment = tmp_path / "experiment.toml"
        experiment.write_text(
            "[run]\n"
            'name = "experiment"\n'
            "\n"
            "[components.simpleNbox]\n"
            'ffi_emissions = "csv:emissions.csv"\n'
        )

        core = load_core(defaults, experiment)
        assert core.run_name == "experiment"
        assert core.get_data("beta").magnitude == 0.36
        assert core.get_data("ffi_emissions", 1755).magnitude == 2.0

        core.prepare_to_run()
        core.run()
        assert core.get_data("CO2_concentration").magnitude > 277.15

    def test_load_core_requires_paths(self):
        with pytest.raises(ValidationError, match="At least one configuration file"):
            load_core()

    def test_csv_paths_follow_their_layer(self, tmp_path, emissions_csv):
        scenario_dir = tmp_path / "scenarios"
        scenario_dir.mkdir()
        (scenario_dir / "emissions.csv").write_text("year,value\n1750,7.0\n1760,7.0\n")
        defaults = tmp_path / "defaults.toml"
        defaults.write_text(
            "[run]\n"
            "start = 1750\n"
            "end = 1760\n"
            "\n"
            "[components.simpleNbox]\n"
            'luc_emissions = "csv:emissions.csv"\n'
        )
        scenario = scenario_dir / "scenario.toml"
        scenario.write_text(
            '[components.simpleNbox]\nffi_emissions = "csv:emissions.csv"\n'
        )

        core = load_core(defaults, scenario)
        assert core.get_data("luc_emissions", 1750).magnitude == 0.5
        assert core.get_data("ffi_emissions", 1755).magnitude == 7.0

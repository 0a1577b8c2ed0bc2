"""
Unit tests for carbonbox.config.parameters and carbonbox.config.models.

Tests parameter fields, capability resolution and validation.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from carbonbox.config.exceptions import ValidationError
from carbonbox.config.models import (
    ForcingParameters,
    OceanParameters,
    SimpleNboxParameters,
    SolverParameters,
    TemperatureParameters,
)
from carbonbox.config.parameters import (
    ParameterMetadata,
    parameter,
    parameter_table,
    resolve_parameter,
    validate_parameters,
)
from carbonbox.units import Units


@dataclass
class LandParameters:
    beta: float = parameter(0.55, range=(0.0, 5.0), per_biome=True)
    C0: float = parameter(277.15, unit=Units.PPMV_CO2, range=(100.0, 1000.0))
    ecs: float = parameter(3.0, capability="S", unit=Units.DEG_C)


class TestParameterMetadata:
    """Tests for ParameterMetadata dataclass."""

    def test_defaults(self):
        meta = ParameterMetadata()
        assert meta.capability == ""
        assert meta.unit == Units.UNITLESS
        assert meta.range is None
        assert meta.per_biome is False

    def test_check_within_range(self):
        ParameterMetadata(range=(0.0, 1.0)).check("f_nppv", 1.0)

    def test_check_outside_range(self):
        meta = ParameterMetadata(unit=Units.PGC, range=(0.0, 10.0))
        with pytest.raises(
            ValidationError,
            match=r"Parameter 'veg_c' value 11.0 is outside valid range \[0.0, 10.0\] Pg C",
        ) as exc_info:
            meta.check("veg_c", 11.0)
        assert exc_info.value.name == "veg_c"

    def test_check_unbounded(self):
        ParameterMetadata().check("anything", -1e9)


class TestParameterFunction:
    """Tests for parameter() field factory function."""

    def test_parameter_with_default(self):
        """parameter() creates field with default value."""
        assert LandParameters().beta == 0.55

    def test_parameter_without_default_required(self):
        """parameter() without default creates required field."""

        @dataclass
        class TestConfig:
            value: float = parameter()

        with pytest.raises(TypeError):
            TestConfig()
        assert TestConfig(value=10.0).value == 10.0

    def test_table_only_lists_parameters(self):
        """Only fields created with parameter() carry metadata."""

        @dataclass
        class TestConfig:
            plain: int = 1
            value: float = parameter(default=2.0)

        assert list(parameter_table(TestConfig)) == ["value"]

    def test_capability_defaults_to_field_name(self):
        table = parameter_table(LandParameters)
        assert table["beta"].capability == "beta"
        assert table["C0"].unit == Units.PPMV_CO2
        assert table["ecs"].capability == "S"


class TestResolveParameter:
    """Tests for mapping config keys onto capabilities."""

    def test_global(self):
        target, meta = resolve_parameter(LandParameters, "ecs")
        assert target == "S"
        assert meta.unit == Units.DEG_C

    def test_biome_qualified(self):
        target, meta = resolve_parameter(LandParameters, "boreal.beta")
        assert target == "boreal.beta"
        assert meta.per_biome

    def test_not_a_parameter(self):
        assert resolve_parameter(LandParameters, "tropical.veg_c") is None
        assert resolve_parameter(LandParameters, "ffi_emissions") is None

    def test_global_only_rejects_biome(self):
        with pytest.raises(ValidationError, match="'C0' cannot be set per biome") as exc:
            resolve_parameter(LandParameters, "tropical.C0")
        assert exc.value.name == "tropical.C0"


class TestValidateParameters:
    """Tests for validate_parameters function."""

    @dataclass
    class Bounded:
        value: float = parameter(default=5.0, range=(0.0, 10.0))

    def test_validate_within_range(self):
        assert validate_parameters(self.Bounded(value=5.0)) == []

    def test_validate_at_range_boundaries(self):
        assert validate_parameters(self.Bounded(value=0.0)) == []
        assert validate_parameters(self.Bounded(value=10.0)) == []

    def test_validate_outside_range(self):
        errors = validate_parameters(self.Bounded(value=-1.0))
        assert len(errors) == 1
        assert "outside valid range" in errors[0]
        assert "value" in errors[0]

    def test_none_is_skipped(self):
        assert validate_parameters(self.Bounded(value=None)) == []


class TestModels:
    """Tests for the component parameter dataclasses."""

    @pytest.mark.parametrize(
        "cls",
        [
            SimpleNboxParameters,
            SolverParameters,
            OceanParameters,
            ForcingParameters,
            TemperatureParameters,
        ],
    )
    def test_defaults_are_valid(self, cls):
        assert validate_parameters(cls()) == []

    def test_out_of_range_raises(self):
        with pytest.raises(ValidationError, match="Parameter 'beta' value 7.0"):
            SimpleNboxParameters(beta=7.0)

    def test_negative_so2_scaling_only(self):
        ForcingParameters(alpha_so2d=-0.5)
        with pytest.raises(ValidationError):
            ForcingParameters(alpha_so2d=0.5)

    def test_capability_names(self):
        assert parameter_table(SimpleNboxParameters)["C0"].capability == "C0"
        assert parameter_table(TemperatureParameters)["ecs"].capability == "S"
        assert parameter_table(ForcingParameters)["alpha_co2"].capability == "alpha_CO2"
        assert parameter_table(SolverParameters)["dt"].unit == Units.YEARS

    def test_per_biome_land_parameters(self):
        table = parameter_table(SimpleNboxParameters)
        assert table["beta"].per_biome
        assert table["npp_flux0"].per_biome
        assert not table["C0"].per_biome
        assert not table["f_lucv"].per_biome

"""
Unit tests for carbonbox.units module.

Tests unit-checked arithmetic and carbon pool invariants.
"""

from __future__ import annotations

import pytest

from carbonbox.exceptions import InvalidPoolError, UnitsError
from carbonbox.units import PGC_TO_PPMVCO2, FluxPool, UnitValue, Units


class TestUnitValue:
    """Tests for UnitValue arithmetic."""

    def test_add_same_units(self):
        """Values with the same units add."""
        total = UnitValue(1.0, Units.W_M2) + UnitValue(2.5, Units.W_M2)
        assert total == UnitValue(3.5, Units.W_M2)

    def test_add_mismatched_units_raises(self):
        """Adding different units raises UnitsError."""
        with pytest.raises(UnitsError, match="Cannot add"):
            UnitValue(1.0, Units.W_M2) + UnitValue(1.0, Units.PGC)

    def test_scale_keeps_units(self):
        """Multiplying by a number keeps the units."""
        scaled = 2 * UnitValue(1.5, Units.PGC_YR)
        assert scaled.units is Units.PGC_YR
        assert scaled.magnitude == 3.0

    def test_ratio_of_same_units_is_float(self):
        """Dividing two values of the same units gives a plain number."""
        ratio = UnitValue(3.0, Units.PGC) / UnitValue(1.5, Units.PGC)
        assert ratio == 2.0
        assert isinstance(ratio, float)

    def test_value_checks_units(self):
        """value() refuses to hand out a magnitude in the wrong units."""
        tas = UnitValue(1.2, Units.DEG_C)
        assert tas.value(Units.DEG_C) == 1.2
        with pytest.raises(UnitsError, match="Units mismatch"):
            tas.value(Units.W_M2)

    def test_comparison_checks_units(self):
        """Comparisons require matching units."""
        assert UnitValue(1.0, Units.PGC) < UnitValue(2.0, Units.PGC)
        with pytest.raises(UnitsError):
            _ = UnitValue(1.0, Units.PGC) < UnitValue(2.0, Units.PGC_YR)

    def test_str(self):
        """str() shows the magnitude and the unit tag."""
        assert str(UnitValue(280.0, Units.PPMV_CO2)) == "280 ppmv CO2"


class TestFluxPool:
    """Tests for FluxPool."""

    def test_defaults_to_pgc(self):
        """Pools default to Pg C."""
        assert FluxPool(10.0).units is Units.PGC

    def test_negative_pool_raises(self):
        """A negative pool cannot be created."""
        with pytest.raises(InvalidPoolError, match="cannot be negative"):
            FluxPool(-1.0)

    def test_subtraction_below_zero_raises(self):
        """Arithmetic producing negative carbon raises."""
        with pytest.raises(InvalidPoolError):
            FluxPool(1.0) - FluxPool(2.0)

    def test_arithmetic_preserves_type(self):
        """Adding pools yields a pool."""
        total = FluxPool(1.0) + FluxPool(2.0)
        assert isinstance(total, FluxPool)
        assert total.magnitude == 3.0

    def test_conversion_constant(self):
        """One ppmv of CO2 is 2.13 Pg C."""
        assert 2.13 * PGC_TO_PPMVCO2 == pytest.approx(1.0)

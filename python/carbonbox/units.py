"""
Unit-tagged scalar values.

Nearly every message exchanged between components carries a
:class:`UnitValue`. Unit tags are compared exactly; there is no automatic
conversion, so mixing units is a programming error and fails fast.

Example
-------
```python
from carbonbox.units import UnitValue, Units

a = UnitValue(1.5, Units.W_M2)
b = UnitValue(0.5, Units.W_M2)
total = a + b  # UnitValue(2.0, Units.W_M2)
a + UnitValue(1.0, Units.PGC)  # raises UnitsError
```
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Self

from carbonbox.exceptions import InvalidPoolError, UnitsError

__all__ = ["PGC_TO_PPMVCO2", "FluxPool", "UnitValue", "Units"]

#: Conversion from atmospheric carbon (Pg C) to CO2 concentration (ppmv)
PGC_TO_PPMVCO2 = 1.0 / 2.13


class Units(Enum):
    """Unit tags understood by the model."""

    UNDEFINED = "(undefined)"
    UNITLESS = "(unitless)"
    PGC = "Pg C"
    PGC_YR = "Pg C/yr"
    PPMV_CO2 = "ppmv CO2"
    PPBV_CH4 = "ppbv CH4"
    PPBV_N2O = "ppbv N2O"
    PPTV = "pptv"
    W_M2 = "W/m2"
    W_M2_PPTV = "W/m2/pptv"
    W_M2_K = "W/m2/K"
    W_YR_M2_K = "W yr/m2/K"
    DU_O3 = "DU O3"
    TG = "Tg"
    GG_S = "Gg S"
    DEG_C = "degC"
    YEARS = "yr"


@dataclass(frozen=True)
class UnitValue:
    """
    A scalar paired with a unit tag.

    Parameters
    ----------
    magnitude
        The numeric value
    units
        The unit tag
    """

    magnitude: float
    units: Units = Units.UNDEFINED

    def value(self, units: Units) -> float:
        """
        Return the magnitude, checking the caller's expected units.

        Raises
        ------
        UnitsError
            If ``units`` differs from the value's units
        """
        if units is not self.units:
            msg = f"Units mismatch: expected {units.value}, have {self.units.value}"
            raise UnitsError(msg)
        return self.magnitude

    def _check(self, other: UnitValue, op: str) -> None:
        if not isinstance(other, UnitValue):
            msg = f"Cannot {op} UnitValue and {type(other).__name__}"
            raise UnitsError(msg)
        if other.units is not self.units:
            msg = f"Cannot {op} {self.units.value} and {other.units.value}"
            raise UnitsError(msg)

    def _with(self, magnitude: float) -> Self:
        return replace(self, magnitude=magnitude)

    def __add__(self, other: UnitValue) -> Self:
        self._check(other, "add")
        return self._with(self.magnitude + other.magnitude)

    def __sub__(self, other: UnitValue) -> Self:
        self._check(other, "subtract")
        return self._with(self.magnitude - other.magnitude)

    def __neg__(self) -> UnitValue:
        return UnitValue(-self.magnitude, self.units)

    def __mul__(self, factor: float) -> Self:
        if isinstance(factor, UnitValue):
            msg = "Multiplying two UnitValues is not supported"
            raise UnitsError(msg)
        return self._with(self.magnitude * factor)

    __rmul__ = __mul__

    def __truediv__(self, other: float | UnitValue):  # noqa: ANN204
        if isinstance(other, UnitValue):
            self._check(other, "divide")
            return self.magnitude / other.magnitude
        return self._with(self.magnitude / other)

    def __lt__(self, other: UnitValue) -> bool:
        self._check(other, "compare")
        return self.magnitude < other.magnitude

    def __le__(self, other: UnitValue) -> bool:
        self._check(other, "compare")
        return self.magnitude <= other.magnitude

    def __gt__(self, other: UnitValue) -> bool:
        self._check(other, "compare")
        return self.magnitude > other.magnitude

    def __ge__(self, other: UnitValue) -> bool:
        self._check(other, "compare")
        return self.magnitude >= other.magnitude

    def isclose(self, other: UnitValue, abs_tol: float = 1e-9) -> bool:
        """Compare two values of the same units within ``abs_tol``."""
        self._check(other, "compare")
        return math.isclose(self.magnitude, other.magnitude, abs_tol=abs_tol)

    def __str__(self) -> str:
        return f"{self.magnitude:g} {self.units.value}"


@dataclass(frozen=True)
class FluxPool(UnitValue):
    """
    A carbon stock or flow.

    Pools can never hold negative carbon; arithmetic producing a negative
    result raises :class:`InvalidPoolError`.

    Parameters
    ----------
    tracking
        Whether fine-grained source tracking is enabled for this pool
    """

    units: Units = Units.PGC
    tracking: bool = False

    def __post_init__(self) -> None:
        """Reject negative carbon."""
        if self.magnitude < 0:
            msg = f"Pool cannot be negative: {self.magnitude} {self.units.value}"
            raise InvalidPoolError(msg)

"""
Configurable parameters and the capabilities they are sent to.

A component's tunable scalars are listed as fields of a dataclass created with
:func:`parameter`. Each field knows the capability it sets, the units the
receiving component expects, its valid range and whether it may be given per
biome (``"<biome>.<name>"``). The builder uses this to turn a config key into
a checked SET message.

Example:
    >>> from dataclasses import dataclass
    >>> from carbonbox.units import Units
    >>>
    >>> @dataclass
    ... class LandParameters:
    ...     beta: float = parameter(0.55, range=(0, 5), per_biome=True)
    ...     C0: float = parameter(277.15, unit=Units.PPMV_CO2, range=(100, 1000))
    >>>
    >>> resolve_parameter(LandParameters, "boreal.beta")[0]
    'boreal.beta'
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields, replace
from typing import Any

from carbonbox.names import biome_qualified, split_biome
from carbonbox.units import Units

from .exceptions import ValidationError

__all__ = [
    "ParameterMetadata",
    "parameter",
    "parameter_table",
    "resolve_parameter",
    "validate_parameters",
]

_METADATA_KEY = "carbonbox"


@dataclass(frozen=True)
class ParameterMetadata:
    """
    What a configurable parameter means to the run.

    Attributes
    ----------
    capability
        Name the value is sent under (the field name unless overridden)
    unit
        Units the receiving component expects
    description
        Human readable description
    range
        Inclusive (min, max) outside of which a value is rejected
    per_biome
        Whether the parameter may be qualified with a biome name
    """

    capability: str = ""
    unit: Units = Units.UNITLESS
    description: str = ""
    range: tuple[float, float] | None = None
    per_biome: bool = False

    def check(self, key: str, value: float) -> None:
        """
        Reject ``value`` if it falls outside :attr:`range`.

        Raises
        ------
        ValidationError
            If the value is out of range
        """
        if self.range is None:
            return
        low, high = self.range
        if not low <= value <= high:
            msg = (
                f"Parameter '{key}' value {value} is outside valid range "
                f"[{low}, {high}] {self.unit.value}"
            )
            raise ValidationError(msg, name=key)


def parameter(  # noqa: PLR0913
    default: Any = MISSING,
    *,
    capability: str = "",
    unit: Units = Units.UNITLESS,
    description: str = "",
    range: tuple[float, float] | None = None,  # noqa: A002
    per_biome: bool = False,
) -> Any:
    """Create a dataclass field carrying :class:`ParameterMetadata`."""
    metadata = {
        _METADATA_KEY: ParameterMetadata(
            capability=capability,
            unit=unit,
            description=description,
            range=range,
            per_biome=per_biome,
        )
    }
    if default is MISSING:
        return field(metadata=metadata)
    return field(default=default, metadata=metadata)


def parameter_table(cls: type) -> dict[str, ParameterMetadata]:
    """
    Metadata of every :func:`parameter` field of ``cls``, by field name.

    Examples
    --------
    >>> from carbonbox.config.models import TemperatureParameters
    >>> parameter_table(TemperatureParameters)["ecs"].capability
    'S'
    """
    table = {}
    for f in fields(cls):
        meta = f.metadata.get(_METADATA_KEY)
        if meta is None:
            continue
        table[f.name] = meta if meta.capability else replace(meta, capability=f.name)
    return table


def resolve_parameter(cls: type, key: str) -> tuple[str, ParameterMetadata] | None:
    """
    Map a config key onto the name it is sent under.

    ``key`` may be biome-qualified. Keys that are not parameters of ``cls``
    (pools, input series) give ``None``.

    Raises
    ------
    ValidationError
        If a biome is given for a parameter that is not per biome
    """
    biome, var = split_biome(key)
    meta = parameter_table(cls).get(var)
    if meta is None:
        return None
    if biome is None:
        return meta.capability, meta
    if not meta.per_biome:
        msg = f"'{var}' cannot be set per biome (got '{key}')"
        raise ValidationError(msg, name=key)
    return biome_qualified(biome, meta.capability), meta


def validate_parameters(instance: Any) -> list[str]:
    """Range errors of every parameter of a dataclass instance."""
    errors = []
    for name, meta in parameter_table(type(instance)).items():
        value = getattr(instance, name)
        if value is None:
            continue
        try:
            meta.check(name, value)
        except ValidationError as err:
            errors.append(str(err))
    return errors

"""
Reading config files and the value forms they contain.

A config is one or more TOML layers (defaults, tuning, experiment) merged
table by table. Every value addressed to a capability takes one of three
forms:

- a number, sent without a date
- a ``{year = value}`` table, sent as one dated value per year
- ``"csv:<path>"``, a column of a CSV file with one dated value per row

``csv:`` paths are resolved against the directory of the file they appear
in, so each layer may keep its data next to it.
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

import pandas as pd

from carbonbox.names import BIOME_SEPARATOR, split_biome

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "CSV_PREFIX",
    "KNOWN_TOP_LEVEL",
    "deep_merge",
    "load_config",
    "load_config_layers",
    "parse_value",
    "read_series",
    "split_biomes",
]

#: Top-level tables understood by :func:`carbonbox.config.builder.build_core`
KNOWN_TOP_LEVEL = frozenset({"run", "components", "outputs"})

#: Marks a string value as a reference to a CSV series
CSV_PREFIX = "csv:"

_FORMS = "a number, a {year = value} table or a csv reference"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Merge ``override`` into a copy of ``base``.

    Tables present in both are merged recursively; anything else (numbers,
    lists, dated tables replacing numbers) is replaced.

    Examples
    --------
    >>> deep_merge({"simpleNbox": {"beta": 0.36, "C0": 277}}, {"simpleNbox": {"beta": 0.5}})
    {'simpleNbox': {'beta': 0.5, 'C0': 277}}
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def load_config(path: str | Path) -> dict[str, Any]:
    """
    Load one TOML layer.

    Unknown top-level tables are logged and kept. Relative ``csv:`` paths are
    made absolute against the file's directory.
    """
    path = Path(path)
    with path.open("rb") as f:
        config = tomllib.load(f)

    unknown = sorted(set(config) - KNOWN_TOP_LEVEL)
    if unknown:
        logger.warning(
            "Unknown configuration keys in %s: %s. These will be ignored.",
            path,
            ", ".join(unknown),
        )
    return _anchor_csv(config, path.parent.resolve())


def load_config_layers(*paths: str | Path) -> dict[str, Any]:
    """
    Load and merge TOML layers; later files win.

    Examples
    --------
    >>> config = load_config_layers("defaults.toml", "rcp45.toml")
    """
    config: dict[str, Any] = {}
    for path in paths:
        config = deep_merge(config, load_config(path))
    return config


def read_series(path: Path, name: str) -> dict[float, float]:
    """
    Read a dated series from a CSV file.

    The file needs a ``year`` column and either a column called ``name`` or
    a ``value`` column. Rows with a missing value are skipped.

    Raises
    ------
    ValidationError
        If the required columns are missing
    """
    frame = pd.read_csv(path, comment="#")
    if "year" not in frame.columns:
        msg = f"{path} has no 'year' column"
        raise ValidationError(msg, name=name)
    column = name if name in frame.columns else "value"
    if column not in frame.columns:
        msg = f"{path} has neither a '{name}' nor a 'value' column"
        raise ValidationError(msg, name=name)
    frame = frame.dropna(subset=[column])
    return dict(
        zip(frame["year"].astype(float), frame[column].astype(float), strict=True)
    )


def parse_value(
    name: str, value: Any, base: Path
) -> list[tuple[float | None, float]]:
    """
    Expand a configured value into ``(date, value)`` pairs.

    Constants have a date of ``None``. ``name`` selects the CSV column.

    Raises
    ------
    ValidationError
        If the value is not one of the accepted forms
    """
    if isinstance(value, int | float) and not isinstance(value, bool):
        return [(None, float(value))]
    if isinstance(value, dict):
        try:
            return [(float(year), float(item)) for year, item in value.items()]
        except (TypeError, ValueError) as err:
            msg = f"'{name}' has a malformed {{year = value}} table: {err}"
            raise ValidationError(msg, name=name) from err
    if isinstance(value, str) and value.startswith(CSV_PREFIX):
        _, column = split_biome(name)
        path = base / value.removeprefix(CSV_PREFIX)
        return list(read_series(path, column).items())
    msg = f"'{name}' must be {_FORMS}"
    raise ValidationError(msg, name=name)


def split_biomes(table: dict[str, Any]) -> tuple[list[str] | None, dict[str, Any]]:
    """
    Separate a section's ``biomes`` list from its values.

    When a list is given, every biome-qualified key must name one of its
    biomes.

    Raises
    ------
    ValidationError
        If the list is empty, has duplicates or malformed names, or a key
        names a biome that is not listed
    """
    rest = dict(table)
    if "biomes" not in rest:
        return None, rest
    biomes = rest.pop("biomes")
    if not isinstance(biomes, list) or not biomes:
        msg = "biomes must list at least one biome"
        raise ValidationError(msg, name="biomes")
    for biome in biomes:
        if not isinstance(biome, str) or not biome or BIOME_SEPARATOR in biome:
            msg = f"Invalid biome name {biome!r}"
            raise ValidationError(msg, name="biomes")
    if len(set(biomes)) != len(biomes):
        msg = f"biomes contains duplicates: {biomes}"
        raise ValidationError(msg, name="biomes")
    for key in rest:
        biome, _ = split_biome(key)
        if biome is not None and biome not in biomes:
            msg = f"'{key}' names biome '{biome}', which is not in biomes {biomes}"
            raise ValidationError(msg, name=key)
    return biomes, rest


def _anchor_csv(value: Any, directory: Path) -> Any:
    if isinstance(value, dict):
        return {key: _anchor_csv(item, directory) for key, item in value.items()}
    if isinstance(value, str) and value.startswith(CSV_PREFIX):
        return f"{CSV_PREFIX}{directory / value.removeprefix(CSV_PREFIX)}"
    return value

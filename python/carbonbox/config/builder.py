"""
Core builder that constructs a carbonbox run from configuration.

A config file describes the run and one table per component::

    [run]
    name = "rcp45"
    start = 1745
    end = 2100

    [components.simpleNbox]
    biomes = ["tropical", "boreal"]
    C0 = 276.09
    "tropical.beta" = 0.4
    ffi_emissions = "csv:emissions/rcp45.csv"
    luc_emissions = { 1750 = 0.1, 2000 = 1.1 }

    [components.exogenous.CH4_concentration]
    units = "ppbv CH4"
    value = "csv:concentrations/rcp45.csv"

    [components.halocarbons.CFC11]
    rho = 0.00025
    concentration = "csv:concentrations/rcp45.csv"

Components are created section by section in run order (see
:mod:`carbonbox.config.models`). Once they are initialised every configured
value is delivered as SET messages, in the forms described in
:mod:`carbonbox.config.loader`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from carbonbox.component import ModelComponent
from carbonbox.core import Core
from carbonbox.names import DEFAULT_BIOME
from carbonbox.outputs import OutputStreamVisitor
from carbonbox.simple_nbox import SimpleNbox
from carbonbox.visitor import ComponentKind

from .base import RunConfig
from .exceptions import ValidationError
from .loader import load_config_layers, parse_value, split_biomes
from .models import component_registry
from .registry import SectionValue

logger = logging.getLogger(__name__)

__all__ = ["build_core", "load_core"]


def build_core(config: dict[str, Any], base_dir: str | Path | None = None) -> Core:
    """Build an initialised run from configuration.

    Parameters
    ----------
    config
        Configuration dictionary, usually from :func:`load_config_layers`
    base_dir
        Directory relative ``csv:`` paths are resolved against (default:
        working directory); paths loaded from files are already absolute

    Returns
    -------
    Core
        Initialised run with every configured value applied; call
        ``prepare_to_run`` next

    Raises
    ------
    ComponentNotFoundError
        If a component table names an unknown section
    ValidationError
        If a value is out of range or malformed
    """
    base = Path.cwd() if base_dir is None else Path(base_dir)
    run = RunConfig.from_dict(dict(config.get("run", {})))
    tables: dict[str, Any] = config.get("components", {})
    for name in tables:
        component_registry.get(name)

    core = Core(
        run.start,
        run.end,
        run_name=run.name,
        do_spinup=run.do_spinup,
        max_spinup=run.max_spinup,
    )
    built: dict[str, list[ModelComponent]] = {}
    for section in component_registry:
        if section.standard or section.name in tables:
            built[section.name] = section.build(tables.get(section.name, {}))
            for component in built[section.name]:
                core.add_component(component)
    core.add_visitor(_output_visitor(config.get("outputs", {})))
    core.init()

    for section in component_registry:
        table = tables.get(section.name)
        if not table:
            continue
        if section.has_biomes:
            biomes, table = split_biomes(table)
            if biomes is not None:
                _apply_biomes(built[section.name], biomes)
        for value in section.section_values(table):
            _send(core, value, base)

    logger.info("Built run '%s' with %d components", run.name, len(core.components))
    return core


def load_core(*paths: str | Path) -> Core:
    """Load layered config files and build a run from them."""
    if not paths:
        msg = "At least one configuration file is required"
        raise ValidationError(msg)
    return build_core(load_config_layers(*paths))


def _apply_biomes(components: list[ModelComponent], biomes: list[str]) -> None:
    nbox = components[0] if components else None
    if not isinstance(nbox, SimpleNbox):
        msg = "The simpleNbox section does not hold a SimpleNbox"
        raise ValidationError(msg, name="biomes")
    if DEFAULT_BIOME not in biomes and nbox.has_biome(DEFAULT_BIOME):
        nbox.rename_biome(DEFAULT_BIOME, biomes[0])
    for biome in biomes:
        if not nbox.has_biome(biome):
            nbox.create_biome(biome)


def _send(core: Core, item: SectionValue, base: Path) -> None:
    for date, value in parse_value(item.target, item.value, base):
        core.set_data(item.target, value, item.unit, date=date)


def _output_visitor(table: dict[str, Any]) -> OutputStreamVisitor:
    variables = None
    if "variables" in table:
        try:
            variables = {
                ComponentKind(kind): list(names)
                for kind, names in table["variables"].items()
            }
        except ValueError as err:
            msg = f"Unknown component kind in [outputs.variables]: {err}"
            raise ValidationError(msg) from err
    return OutputStreamVisitor(
        variables, include_spinup=bool(table.get("include_spinup", False))
    )

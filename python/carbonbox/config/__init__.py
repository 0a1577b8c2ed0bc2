"""
carbonbox configuration layer.

This module provides file-based configuration for carbonbox runs, supporting:
- TOML-based config files for run setup
- Layered configuration (defaults -> tuning -> experiment overrides)
- Per-section parameter metadata: target capability, units and valid range

Example:
    >>> from carbonbox.config import load_core
    >>> core = load_core("configs/defaults.toml", "configs/rcp45.toml")
    >>> core.prepare_to_run()
    >>> core.run()
"""

from __future__ import annotations

from .base import RunConfig
from .builder import build_core, load_core
from .exceptions import ComponentNotFoundError, ConfigError, ValidationError
from .loader import (
    deep_merge,
    load_config,
    load_config_layers,
    parse_value,
    read_series,
    split_biomes,
)
from .models import (
    ForcingParameters,
    OceanParameters,
    SimpleNboxParameters,
    SolverParameters,
    TemperatureParameters,
)
from .parameters import (
    ParameterMetadata,
    parameter,
    parameter_table,
    resolve_parameter,
    validate_parameters,
)
from .registry import (
    ComponentRegistry,
    ComponentSection,
    SectionValue,
    component_registry,
    register_component,
)

__all__ = [
    "ComponentNotFoundError",
    "ComponentRegistry",
    "ComponentSection",
    "ConfigError",
    "ForcingParameters",
    "OceanParameters",
    "ParameterMetadata",
    "RunConfig",
    "SectionValue",
    "SimpleNboxParameters",
    "SolverParameters",
    "TemperatureParameters",
    "ValidationError",
    "build_core",
    "component_registry",
    "deep_merge",
    "load_config",
    "load_config_layers",
    "load_core",
    "parameter",
    "parameter_table",
    "parse_value",
    "read_series",
    "register_component",
    "resolve_parameter",
    "split_biomes",
    "validate_parameters",
]

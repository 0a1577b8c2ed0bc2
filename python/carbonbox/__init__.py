"""
carbonbox: a simple carbon cycle and radiative forcing model.

Components exchange values through a capability registry and are advanced one
year at a time by :class:`carbonbox.core.Core`.
"""

from __future__ import annotations

from carbonbox.core import Core, RunStage
from carbonbox.exceptions import CarbonBoxError, ErrorKind, RunAbortedError
from carbonbox.units import FluxPool, UnitValue, Units

__version__ = "0.1.0"

__all__ = [
    "CarbonBoxError",
    "Core",
    "ErrorKind",
    "FluxPool",
    "RunAbortedError",
    "RunStage",
    "UnitValue",
    "Units",
    "__version__",
]

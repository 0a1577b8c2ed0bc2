"""
Run-level configuration.

The ``[run]`` table of a config file names the run and fixes its time span::

    [run]
    name = "historical"
    start = 1745
    end = 2020
    do_spinup = true
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .exceptions import ValidationError

__all__ = ["RunConfig"]


@dataclass
class RunConfig:
    """
    Run configuration.

    Parameters
    ----------
    start
        Date of the initial state
    end
        Last date the run may be advanced to (inclusive)
    name
        Run name, used in log messages
    do_spinup
        Whether to spin the carbon cycle up before running
    max_spinup
        Upper bound on spinup steps

    Raises
    ------
    ValidationError
        If end <= start or max_spinup is not positive
    """

    start: float
    end: float
    name: str = "default"
    do_spinup: bool = False
    max_spinup: int = 2000

    def __post_init__(self) -> None:
        """Validate the time span."""
        if self.end <= self.start:
            msg = f"end ({self.end}) must be greater than start ({self.start})"
            raise ValidationError(msg, name="end")
        if self.max_spinup < 1:
            msg = f"max_spinup must be positive, got {self.max_spinup}"
            raise ValidationError(msg, name="max_spinup")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunConfig:
        """
        Build from a ``[run]`` table.

        Raises
        ------
        ValidationError
            If ``start`` or ``end`` is missing or a key is not recognised
        """
        missing = [key for key in ("start", "end") if key not in data]
        if missing:
            msg = f"[run] is missing required keys: {', '.join(missing)}"
            raise ValidationError(msg)
        try:
            return cls(**data)
        except TypeError as err:
            msg = f"Invalid [run] table: {err}"
            raise ValidationError(msg) from err

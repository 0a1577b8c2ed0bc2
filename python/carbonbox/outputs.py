"""
Output collection.

:class:`OutputStreamVisitor` asks every visited component for a configured set
of variables after each solved year and keeps them as flat records, which can
be exported as a :class:`pandas.DataFrame`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass

import pandas as pd

from carbonbox.component import ModelComponent
from carbonbox.messages import MessageVerb
from carbonbox.names import (
    D_ATMOSPHERIC_C,
    D_ATMOSPHERIC_CO2,
    D_CONSTRAINT_RESIDUAL,
    D_DETRITUSC,
    D_EARTHC,
    D_GLOBAL_TAS,
    D_NBP,
    D_NPP,
    D_OCEAN_C,
    D_OCEAN_CFLUX,
    D_RF_CO2,
    D_RF_TOTAL,
    D_RH,
    D_SOILC,
    D_VEGC,
)
from carbonbox.visitor import ComponentKind, Visitor

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_OUTPUTS", "OutputRecord", "OutputStreamVisitor"]

#: Variables recorded for each component kind unless configured otherwise
DEFAULT_OUTPUTS: Mapping[ComponentKind, tuple[str, ...]] = {
    ComponentKind.SIMPLE_NBOX: (
        D_ATMOSPHERIC_C,
        D_ATMOSPHERIC_CO2,
        D_EARTHC,
        D_VEGC,
        D_DETRITUSC,
        D_SOILC,
        D_NPP,
        D_RH,
        D_NBP,
        D_CONSTRAINT_RESIDUAL,
    ),
    ComponentKind.FORCING: (D_RF_TOTAL, D_RF_CO2),
    ComponentKind.OCEAN: (D_OCEAN_C, D_OCEAN_CFLUX),
    ComponentKind.TEMPERATURE: (D_GLOBAL_TAS,),
}


@dataclass(frozen=True)
class OutputRecord:
    """One value of one variable of one component in one year."""

    year: float
    component: str
    variable: str
    value: float
    units: str
    spinup: bool = False


class OutputStreamVisitor(Visitor):
    """
    Collects variables from visited components.

    Parameters
    ----------
    variables
        Variables to record per component kind; kinds not listed are skipped
    include_spinup
        Whether to record during spinup
    """

    def __init__(
        self,
        variables: Mapping[ComponentKind, Sequence[str]] | None = None,
        *,
        include_spinup: bool = False,
    ) -> None:
        self.variables = dict(DEFAULT_OUTPUTS if variables is None else variables)
        self.include_spinup = include_spinup
        self.records: list[OutputRecord] = []
        self._date = 0.0
        self._in_spinup = False

    def should_visit(self, in_spinup: bool, date: float) -> bool:  # noqa: D102
        self._date = date
        self._in_spinup = in_spinup
        return self.include_spinup or not in_spinup

    def reset(self, date: float) -> None:
        """Drop records after ``date``."""
        self.records = [r for r in self.records if r.year <= date]
        logger.debug("Output records truncated to %s", date)

    def visit_simple_nbox(self, component: ModelComponent) -> None:  # noqa: D102
        self._collect(component)

    def visit_forcing(self, component: ModelComponent) -> None:  # noqa: D102
        self._collect(component)

    def visit_ocean(self, component: ModelComponent) -> None:  # noqa: D102
        self._collect(component)

    def visit_temperature(self, component: ModelComponent) -> None:  # noqa: D102
        self._collect(component)

    def visit_halocarbon(self, component: ModelComponent) -> None:  # noqa: D102
        self._collect(component)

    def visit_exogenous(self, component: ModelComponent) -> None:  # noqa: D102
        self._collect(component)

    def _collect(self, component: ModelComponent) -> None:
        if self._in_spinup:
            # Spinup revisits the start date; keep only the latest values
            self.records = [
                r
                for r in self.records
                if not (r.spinup and r.component == component.name)
            ]
        for variable in self.variables.get(component.kind, ()):
            value = component.send_message(MessageVerb.GET, variable)
            self.records.append(
                OutputRecord(
                    year=self._date,
                    component=component.name,
                    variable=variable,
                    value=value.magnitude,
                    units=value.units.value,
                    spinup=self._in_spinup,
                )
            )

    def to_dataframe(self) -> pd.DataFrame:
        """
        Export the records.

        Returns
        -------
        One row per record with columns ``year``, ``component``, ``variable``,
        ``value``, ``units`` and ``spinup``
        """
        columns = ["year", "component", "variable", "value", "units", "spinup"]
        return pd.DataFrame([asdict(r) for r in self.records], columns=columns)

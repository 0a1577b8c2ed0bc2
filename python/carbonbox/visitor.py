"""
Visitor interface for output collectors.

Every component carries a :class:`ComponentKind` tag. A visitor implements a
``visit_<kind>`` handler for the kinds it cares about; the others default to
doing nothing. Components call :meth:`Visitor.visit` from their ``accept``
method, so neither side needs to know the other's concrete type.

Example
-------
```python
class ForcingPrinter(Visitor):
    def should_visit(self, in_spinup, date):
        return not in_spinup

    def visit_forcing(self, component):
        print(component.fetch("RF_tot"))
```
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from carbonbox.component import ModelComponent

__all__ = ["ComponentKind", "Visitor"]


class ComponentKind(Enum):
    """The closed set of component kinds."""

    SIMPLE_NBOX = "simple_nbox"
    CARBON_CYCLE_SOLVER = "carbon_cycle_solver"
    FORCING = "forcing"
    OCEAN = "ocean"
    TEMPERATURE = "temperature"
    HALOCARBON = "halocarbon"
    EXOGENOUS = "exogenous"


class Visitor:
    """Base class for output collectors."""

    def should_visit(self, in_spinup: bool, date: float) -> bool:
        """
        Decide whether to collect data for the step that just finished.

        Parameters
        ----------
        in_spinup
            Whether the model is spinning up
        date
            The model date that just finished solving
        """
        raise NotImplementedError("Subclasses must implement should_visit()")

    def reset(self, date: float) -> None:  # noqa: B027
        """Discard anything collected after ``date``."""

    def visit(self, component: ModelComponent) -> None:
        """Dispatch to the handler for ``component``'s kind."""
        handler = getattr(self, f"visit_{component.kind.value}")
        handler(component)

    def visit_simple_nbox(self, component: ModelComponent) -> None:  # noqa: B027
        pass

    def visit_carbon_cycle_solver(self, component: ModelComponent) -> None:  # noqa: B027
        pass

    def visit_forcing(self, component: ModelComponent) -> None:  # noqa: B027
        pass

    def visit_ocean(self, component: ModelComponent) -> None:  # noqa: B027
        pass

    def visit_temperature(self, component: ModelComponent) -> None:  # noqa: B027
        pass

    def visit_halocarbon(self, component: ModelComponent) -> None:  # noqa: B027
        pass

    def visit_exogenous(self, component: ModelComponent) -> None:  # noqa: B027
        pass

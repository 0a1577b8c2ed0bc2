"""
Run driver.

The :class:`Core` owns one run: its capability registry, its components (in a
fixed run order) and its output visitors. It drives every component through
the lifecycle::

    init -> prepare_to_run -> run(date)... -> reset(date)? -> shut_down

Components never call each other directly; they send messages through the
core, which routes them with the registry. Multiple cores may coexist as long
as each owns its own components.

Example
-------
```python
from carbonbox.core import Core
from carbonbox.forcing import ForcingComponent
from carbonbox.integration import CarbonCycleSolver
from carbonbox.simple_nbox import SimpleNbox

core = Core(1750, 1800, run_name="example")
for component in (SimpleNbox(), CarbonCycleSolver(), ForcingComponent()):
    core.add_component(component)
core.init()
core.prepare_to_run()
core.run()
core.get_data("RF_tot")
```
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum, auto

from carbonbox.component import ModelComponent
from carbonbox.exceptions import (
    IntegrationError,
    LifecycleError,
    RunAbortedError,
)
from carbonbox.messages import CapabilityRegistry, Message
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import Visitor

logger = logging.getLogger(__name__)

__all__ = ["Core", "RunStage"]

# Tolerance when comparing simulated dates
_DATE_EPS = 1e-9


class RunStage(Enum):
    """Where a core is in its lifecycle."""

    CREATED = auto()
    INITIALISED = auto()
    READY = auto()
    ABORTED = auto()
    FAILED = auto()
    SHUT_DOWN = auto()


class Core:
    """
    Drives one model run.

    Parameters
    ----------
    start_date
        Date of the initial state; the first solved year is ``start_date + 1``
    end_date
        Last date the run may be advanced to
    run_name
        Label used in log messages
    do_spinup
        Whether to spin the carbon cycle up to equilibrium before running
    max_spinup
        Upper bound on spinup steps
    """

    def __init__(
        self,
        start_date: float,
        end_date: float,
        *,
        run_name: str = "default",
        do_spinup: bool = False,
        max_spinup: int = 2000,
    ) -> None:
        if end_date < start_date:
            msg = f"End date ({end_date}) is before start date ({start_date})"
            raise LifecycleError(msg)
        self.start_date = float(start_date)
        self.end_date = float(end_date)
        self.run_name = run_name
        self.do_spinup = do_spinup
        self.max_spinup = max_spinup

        self.registry = CapabilityRegistry()
        self.components: list[ModelComponent] = []
        self.visitors: list[Visitor] = []
        self.current_date = self.start_date
        self.in_spinup = False
        self.stage = RunStage.CREATED

    def __repr__(self) -> str:
        return (
            f"Core(run_name={self.run_name!r}, stage={self.stage.name}, "
            f"current_date={self.current_date})"
        )

    # Setup

    def add_component(self, component: ModelComponent) -> None:
        """Append ``component`` to the run order."""
        self._require_stage(RunStage.CREATED, action="add components")
        self.registry.register_component(component)
        self.components.append(component)
        logger.debug("Added component %s", component.name)

    def add_visitor(self, visitor: Visitor) -> None:
        """Add an output collector, visited after every solved year."""
        self.visitors.append(visitor)

    def component(self, name: str) -> ModelComponent:
        """Look up a component by name."""
        return self.registry.component(name)

    def init(self) -> None:
        """Initialise every component, registering its capabilities."""
        self._require_stage(RunStage.CREATED, action="initialise")
        logger.info("Initialising run '%s'", self.run_name)
        for component in self.components:
            self._call(component.init, self, action=f"initialising {component.name}")
        self.stage = RunStage.INITIALISED

    def prepare_to_run(self) -> None:
        """
        Prepare every component and optionally spin up the carbon cycle.

        Dependencies nobody provides are logged; components check whether
        optional capabilities are present before fetching them.
        """
        self._require_stage(RunStage.INITIALISED, action="prepare")
        for capability, consumer in self.registry.unresolved_dependencies():
            logger.debug("%s: no component provides %s", consumer, capability)
        for component in self.components:
            self._call(component.prepare_to_run, action=f"preparing {component.name}")

        self.current_date = self.start_date
        if self.do_spinup:
            self._call(self._spinup, action="spinning up")
        self._visit(self.start_date)
        self.stage = RunStage.READY

    def _spinup(self) -> None:
        logger.info("Spinning up (at most %d steps)", self.max_spinup)
        self.in_spinup = True
        try:
            for step in range(1, self.max_spinup + 1):
                converged = [c.run_spinup(step) for c in self.components]
                self._visit(self.start_date)
                if all(converged):
                    logger.info("Spinup converged after %d steps", step)
                    return
        finally:
            self.in_spinup = False
        msg = f"Spinup did not converge within {self.max_spinup} steps"
        raise IntegrationError(msg)

    # Running

    def run(self, run_to_date: float | None = None) -> None:
        """
        Advance every component one year at a time up to ``run_to_date``.

        Raises
        ------
        LifecycleError
            If the core is not ready or ``run_to_date`` is past the end date
        RunAbortedError
            If a component fails; the core must be reset before running again
        """
        self._require_stage(RunStage.READY, action="run")
        target = self.end_date if run_to_date is None else float(run_to_date)
        if target > self.end_date + _DATE_EPS:
            msg = f"Cannot run to {target}: run ends at {self.end_date}"
            raise LifecycleError(msg)

        logger.info("Running '%s' from %s to %s", self.run_name, self.current_date, target)
        date = self.current_date + 1.0
        while date <= target + _DATE_EPS:
            for component in self.components:
                try:
                    component.run(date)
                except Exception as err:
                    self.stage = RunStage.ABORTED
                    raise self._abort(err, f"running {component.name} at {date}") from err
            self.current_date = date
            self._visit(date)
            date += 1.0

    def reset(self, date: float) -> None:
        """
        Rewind every component and visitor to ``date``.

        A reset must succeed for every component; otherwise the run is left
        in a failed state and cannot be used further.

        Raises
        ------
        LifecycleError
            If ``date`` is not one of the solved dates
        RunAbortedError
            If a component fails to reset
        """
        if self.stage not in (RunStage.READY, RunStage.ABORTED):
            msg = f"Cannot reset a run in stage {self.stage.name}"
            raise LifecycleError(msg)
        if date < self.start_date or date > self.current_date + _DATE_EPS:
            msg = (
                f"Reset date {date} outside the solved range "
                f"[{self.start_date}, {self.current_date}]"
            )
            raise LifecycleError(msg)
        offset = date - self.start_date
        if abs(offset - round(offset)) > _DATE_EPS:
            msg = (
                f"Reset date {date} is not a solved date "
                f"(start {self.start_date} + whole years)"
            )
            raise LifecycleError(msg)

        logger.info("Resetting '%s' to %s", self.run_name, date)
        for component in self.components:
            try:
                component.reset(date)
            except Exception as err:
                self.stage = RunStage.FAILED
                raise self._abort(err, f"resetting {component.name}") from err
        for visitor in self.visitors:
            visitor.reset(date)
        self.current_date = float(date)
        self.stage = RunStage.READY

    def shut_down(self) -> None:
        """Shut every component down; the core cannot be used afterwards."""
        for component in self.components:
            component.shut_down()
        self.stage = RunStage.SHUT_DOWN
        logger.info("Run '%s' shut down", self.run_name)

    def _visit(self, date: float) -> None:
        for visitor in self.visitors:
            if visitor.should_visit(self.in_spinup, date):
                for component in self.components:
                    component.accept(visitor)

    # Registry and messaging

    def register_capability(self, name: str, owner: str) -> None:  # noqa: D102
        self.registry.register_capability(name, owner)

    def register_dependency(self, name: str, consumer: str) -> None:  # noqa: D102
        self.registry.register_dependency(name, consumer)

    def register_input(self, name: str, owner: str) -> None:  # noqa: D102
        self.registry.register_input(name, owner)

    def check_capability(self, name: str) -> bool:
        """Whether any component provides ``name``."""
        return self.registry.check_capability(name)

    def get_component_by_capability(self, name: str) -> ModelComponent:
        """Return the component providing ``name``."""
        return self.registry.owner(name)

    def send_message(self, message: Message) -> UnitValue:
        """Route ``message`` to its owner."""
        return self.registry.dispatch(message)

    def get_data(self, name: str, date: float | None = None) -> UnitValue:
        """Fetch ``name`` (at ``date``, or the current date)."""
        return self.send_message(Message.get(name, date))

    def set_data(
        self,
        name: str,
        value: float | UnitValue,
        units: Units = Units.UNDEFINED,
        date: float | None = None,
    ) -> None:
        """Send a value to whichever component accepts ``name``."""
        self.send_message(Message.set(name, value, units, date))

    # Helpers

    def _require_stage(self, stage: RunStage, *, action: str) -> None:
        if self.stage is not stage:
            msg = f"Cannot {action}: run '{self.run_name}' is {self.stage.name}"
            raise LifecycleError(msg)

    def _call(self, func: Callable[..., object], *args: object, action: str) -> None:
        try:
            func(*args)
        except Exception as err:
            self.stage = RunStage.FAILED
            raise self._abort(err, action) from err

    def _abort(self, err: Exception, action: str) -> RunAbortedError:
        logger.error("Run '%s' aborted while %s: %s", self.run_name, action, err)
        return RunAbortedError(
            f"Run '{self.run_name}' aborted while {action}: {err}", err
        )

"""
Carbon-cycle integration contract and solver.

A stock-flow component implements :class:`CarbonCycleModel` so that
:class:`CarbonCycleSolver` can evolve its state once per simulated year:

1. ``get_c_values`` exports the current stocks as a flat vector
2. ``slow_param_eval`` refreshes slowly varying coefficients (once per year)
3. ``calc_derivs`` is evaluated many times by the adaptive integrator
4. ``stash_c_values`` commits the accepted state and checkpoints it

``calc_derivs`` never raises for a physically invalid proposal; it returns
:attr:`DerivativeStatus.FAILURE` and the integrator retries with a smaller
step. Only exhausting ``max_iterations`` is fatal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum, auto
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray
from scipy.integrate import RK45

from carbonbox.component import Capability, Dependency, Input, ModelComponent
from carbonbox.exceptions import ConfigError, IntegrationError, LifecycleError
from carbonbox.messages import MessageData
from carbonbox.names import (
    D_ATMOSPHERIC_CO2,
    D_CCS_DT,
    D_CCS_EPS_ABS,
    D_CCS_EPS_REL,
    D_CCS_MAX_ITERATIONS,
    D_EPS_SPINUP,
)
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import ComponentKind

__all__ = [
    "CarbonCycleModel",
    "CarbonCycleSolver",
    "DerivativeStatus",
    "OceanCarbonModel",
    "integrate",
]

# carbonbox uses 64bit floats throughout
Arr = NDArray[np.float64]


class DerivativeStatus(Enum):
    """Outcome of a derivative evaluation."""

    SUCCESS = auto()
    FAILURE = auto()


class CarbonCycleModel(ABC):
    """Interface a stock-flow component exposes to the integrator."""

    @abstractmethod
    def ncpool(self) -> int:
        """Length of the state vector."""

    @abstractmethod
    def get_c_values(self, t: float, c: Arr) -> None:
        """Write the current stocks into ``c``."""

    @abstractmethod
    def calc_derivs(self, t: float, c: Arr, dcdt: Arr) -> DerivativeStatus:
        """
        Fill ``dcdt`` with the rates of change at the proposed state ``c``.

        Must not mutate the component.
        """

    @abstractmethod
    def slow_param_eval(self, t: float, c: Arr) -> None:
        """Update state-dependent coefficients once per accepted step."""

    @abstractmethod
    def stash_c_values(self, t: float, c: Arr) -> None:
        """Commit the accepted state ``c`` at ``t`` and checkpoint it."""


@runtime_checkable
class OceanCarbonModel(Protocol):
    """Interface of an ocean component coupled into the carbon cycle."""

    def atmosphere_ocean_flux(self, atmos_c: float, ocean_c: float) -> float:
        """Carbon flux from atmosphere to ocean (Pg C/yr)."""

    def stash_c_values(self, t: float, atmos_c: float, ocean_c: float) -> None:
        """Commit the accepted ocean carbon at ``t``."""


DerivFunc = Callable[[float, Arr, Arr], DerivativeStatus]

_TIME_EPS = 1e-10


class _InvalidProposal(Exception):
    """Raised inside the stepper when the model rejects a proposed state."""


def integrate(  # noqa: PLR0913
    func: DerivFunc,
    t0: float,
    t1: float,
    y0: Arr,
    *,
    dt: float = 0.3,
    eps_abs: float = 1e-6,
    eps_rel: float = 1e-6,
    max_iterations: int = 1000,
) -> Arr:
    """
    Integrate ``dy/dt = func(t, y)`` from ``t0`` to ``t1``.

    Steps are taken with scipy's adaptive :class:`~scipy.integrate.RK45`. When
    ``func`` reports :attr:`DerivativeStatus.FAILURE` for a proposed state the
    stepper restarts from the last accepted state with half the step size.

    Parameters
    ----------
    func
        Derivative function writing into its third argument
    t0, t1
        Integration bounds (``t1 >= t0``)
    y0
        Initial state; not modified
    dt
        Initial step size
    eps_abs, eps_rel
        Absolute and relative error tolerances
    max_iterations
        Upper bound on solver steps, counting restarts

    Returns
    -------
    State at ``t1``

    Raises
    ------
    IntegrationError
        If the initial state is invalid or ``t1`` cannot be reached
    """
    y = np.array(y0, dtype=np.float64)
    if func(t0, y, np.empty_like(y)) is DerivativeStatus.FAILURE:
        msg = f"Invalid carbon-cycle state at t={t0}"
        raise IntegrationError(msg)

    def rhs(t: float, state: Arr) -> Arr:
        dydt = np.empty_like(state)
        if func(t, state, dydt) is DerivativeStatus.FAILURE:
            raise _InvalidProposal
        return dydt

    t = t0
    h = dt
    iterations = 0
    while t1 - t > _TIME_EPS:
        if h <= 10 * np.spacing(t):
            msg = (
                f"Carbon-cycle integration did not reach t={t1}: "
                f"step size vanished at t={t}"
            )
            raise IntegrationError(msg)
        solver = RK45(
            rhs, t, y, t1, first_step=min(h, t1 - t), rtol=eps_rel, atol=eps_abs
        )
        try:
            while solver.status == "running":
                iterations += 1
                if iterations > max_iterations:
                    msg = (
                        f"Carbon-cycle integration did not reach t={t1} within "
                        f"{max_iterations} iterations (stuck at t={t}, h={h:g})"
                    )
                    raise IntegrationError(msg)
                message = solver.step()
                if solver.status == "failed":
                    msg = f"Carbon-cycle integration did not reach t={t1}: {message}"
                    raise IntegrationError(msg)
                t = solver.t
                y = np.array(solver.y)
                h = solver.h_abs
        except _InvalidProposal:
            h = solver.h_abs * 0.5

    return y


class CarbonCycleSolver(ModelComponent):
    """
    Drives a :class:`CarbonCycleModel` forward one year at a time.

    The model is the component providing atmospheric CO2. It must run before
    the solver in the core's run order so that its own ``run`` (which gathers
    the year's inputs) happens first.
    """

    kind = ComponentKind.CARBON_CYCLE_SOLVER
    default_name = "carbon-cycle-solver"

    eps_abs_capability = Capability(D_CCS_EPS_ABS, Units.UNITLESS)
    eps_rel_capability = Capability(D_CCS_EPS_REL, Units.UNITLESS)
    dt_capability = Capability(D_CCS_DT, Units.YEARS)
    max_iterations_capability = Capability(D_CCS_MAX_ITERATIONS, Units.UNITLESS)
    eps_spinup_capability = Capability(D_EPS_SPINUP, Units.PGC_YR)

    carbon_model = Dependency(D_ATMOSPHERIC_CO2)

    eps_abs_input = Input(D_CCS_EPS_ABS, Units.UNITLESS)
    eps_rel_input = Input(D_CCS_EPS_REL, Units.UNITLESS)
    dt_input = Input(D_CCS_DT, Units.YEARS)
    max_iterations_input = Input(D_CCS_MAX_ITERATIONS, Units.UNITLESS)
    eps_spinup_input = Input(D_EPS_SPINUP, Units.PGC_YR)

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name)
        self.eps_abs = 1e-6
        self.eps_rel = 1e-6
        self.dt = 0.3
        self.max_iterations = 1000
        self.eps_spinup = 0.001
        self.cmodel: CarbonCycleModel | None = None
        self.last_date = 0.0

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name == D_CCS_EPS_ABS:
            self.eps_abs = data.unitval(Units.UNITLESS).magnitude
        elif name == D_CCS_EPS_REL:
            self.eps_rel = data.unitval(Units.UNITLESS).magnitude
        elif name == D_CCS_DT:
            self.dt = data.unitval(Units.YEARS).magnitude
        elif name == D_CCS_MAX_ITERATIONS:
            self.max_iterations = int(data.unitval(Units.UNITLESS).magnitude)
        elif name == D_EPS_SPINUP:
            self.eps_spinup = data.unitval(Units.PGC_YR).magnitude
        else:
            super().set_data(name, data)

    def get_data(self, name: str, date: float | None) -> UnitValue:  # noqa: D102
        if name == D_CCS_EPS_ABS:
            return UnitValue(self.eps_abs, Units.UNITLESS)
        if name == D_CCS_EPS_REL:
            return UnitValue(self.eps_rel, Units.UNITLESS)
        if name == D_CCS_DT:
            return UnitValue(self.dt, Units.YEARS)
        if name == D_CCS_MAX_ITERATIONS:
            return UnitValue(float(self.max_iterations), Units.UNITLESS)
        if name == D_EPS_SPINUP:
            return UnitValue(self.eps_spinup, Units.PGC_YR)
        return super().get_data(name, date)

    def prepare_to_run(self) -> None:
        """Find the carbon-cycle model and validate the tolerances."""
        core = self._require_core()
        owner = core.get_component_by_capability(D_ATMOSPHERIC_CO2)
        if not isinstance(owner, CarbonCycleModel):
            msg = (
                f"Component '{owner.name}' provides {D_ATMOSPHERIC_CO2} but is "
                "not a carbon-cycle model"
            )
            raise ConfigError(msg, name=owner.name)
        if self.dt <= 0 or self.eps_abs <= 0 or self.eps_rel < 0:
            msg = "Solver step size and tolerances must be positive"
            raise ConfigError(msg, name=self.name)
        if self.max_iterations < 1:
            msg = f"max_iterations must be at least 1, got {self.max_iterations}"
            raise ConfigError(msg, name=D_CCS_MAX_ITERATIONS)
        self.cmodel = owner
        self.last_date = core.start_date

    def run(self, date: float) -> None:
        """Integrate the carbon cycle from the last solved date to ``date``."""
        cmodel = self._require_model()
        t0 = self.last_date
        c = np.empty(cmodel.ncpool())
        cmodel.get_c_values(t0, c)
        cmodel.slow_param_eval(t0, c)
        c = self._integrate(cmodel, t0, date, c)
        cmodel.stash_c_values(date, c)
        self.last_date = date

    def run_spinup(self, step: int) -> bool:
        """
        Integrate one year without advancing the date.

        Returns
        -------
        Whether every rate of change has fallen below ``eps_spinup``
        """
        cmodel = self._require_model()
        t0 = self.last_date
        c = np.empty(cmodel.ncpool())
        cmodel.get_c_values(t0, c)
        cmodel.slow_param_eval(t0, c)
        c = self._integrate(cmodel, t0 - 1.0, t0, c)
        cmodel.stash_c_values(t0, c)

        dcdt = np.empty_like(c)
        if cmodel.calc_derivs(t0, c, dcdt) is DerivativeStatus.FAILURE:
            msg = f"Invalid carbon-cycle state after spinup step {step}"
            raise IntegrationError(msg)
        largest = float(np.max(np.abs(dcdt)))
        self.logger.debug("spinup step %d: max |dc/dt| = %g", step, largest)
        return largest < self.eps_spinup

    def reset(self, date: float) -> None:  # noqa: D102
        self.last_date = date

    def _integrate(
        self, cmodel: CarbonCycleModel, t0: float, t1: float, c: Arr
    ) -> Arr:
        return integrate(
            cmodel.calc_derivs,
            t0,
            t1,
            c,
            dt=self.dt,
            eps_abs=self.eps_abs,
            eps_rel=self.eps_rel,
            max_iterations=self.max_iterations,
        )

    def _require_model(self) -> CarbonCycleModel:
        if self.cmodel is None:
            msg = f"{self.name} has not been prepared"
            raise LifecycleError(msg, name=self.name)
        return self.cmodel

"""Shared fixtures for the carbonbox test suite."""

from __future__ import annotations

import pytest

from carbonbox.core import Core
from carbonbox.forcing import ForcingComponent
from carbonbox.integration import CarbonCycleSolver
from carbonbox.ocean import OceanComponent
from carbonbox.outputs import OutputStreamVisitor
from carbonbox.simple_nbox import SimpleNbox
from carbonbox.temperature import TemperatureComponent

START = 1750
END = 1770


@pytest.fixture
def make_core():
    """Return a factory building an initialised core with the standard components."""

    def _make(
        *extra,
        start=START,
        end=END,
        ffi=None,
        ocean=True,
        temperature=True,
        visitor=None,
        do_spinup=False,
    ):
        core = Core(start, end, run_name="test", do_spinup=do_spinup)
        if ocean:
            core.add_component(OceanComponent())
        core.add_component(SimpleNbox())
        core.add_component(CarbonCycleSolver())
        for component in extra:
            core.add_component(component)
        core.add_component(ForcingComponent())
        if temperature:
            core.add_component(TemperatureComponent())
        if visitor is not None:
            core.add_visitor(visitor)
        core.init()
        if ffi is not None:
            core.set_data("ffi_emissions", ffi, date=start)
            core.set_data("ffi_emissions", ffi, date=end)
        return core

    return _make


@pytest.fixture
def running_core(make_core):
    """A prepared core with constant fossil emissions of 10 Pg C/yr."""
    core = make_core(ffi=10.0)
    core.prepare_to_run()
    return core


@pytest.fixture
def output_visitor():
    """An output collector with the default variables."""
    return OutputStreamVisitor()

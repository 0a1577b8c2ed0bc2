"""
Unit tests for carbonbox.core module.

Tests the run lifecycle, rewinding and failure handling.
"""

from __future__ import annotations

import pytest

from carbonbox.core import Core, RunStage
from carbonbox.exceptions import (
    ConfigError,
    DuplicateCapabilityError,
    ErrorKind,
    LifecycleError,
    RunAbortedError,
    TimeseriesError,
    UnknownCapabilityError,
)
from carbonbox.simple_nbox import SimpleNbox

TRACKED = ("CO2_concentration", "atmos_c", "veg_c", "soil_c", "RF_tot", "global_tas")


def snapshot(core, dates):
    return {(name, d): core.get_data(name, d).magnitude for name in TRACKED for d in dates}


class TestLifecycle:
    """Tests for the order of lifecycle calls."""

    def test_stages(self, make_core):
        """A run moves through the expected stages."""
        core = make_core()
        assert core.stage is RunStage.INITIALISED
        core.prepare_to_run()
        assert core.stage is RunStage.READY
        core.run()
        assert core.current_date == 1770
        core.shut_down()
        assert core.stage is RunStage.SHUT_DOWN

    def test_end_before_start(self):
        """A run cannot end before it starts."""
        with pytest.raises(LifecycleError, match="before start date"):
            Core(2000, 1990)

    def test_add_component_after_init(self, make_core):
        """Components can only be added before init."""
        core = make_core()
        with pytest.raises(LifecycleError, match="add components"):
            core.add_component(SimpleNbox("late"))

    def test_run_before_prepare(self, make_core):
        """Running requires a prepared core."""
        core = make_core()
        with pytest.raises(LifecycleError, match="Cannot run"):
            core.run()

    def test_run_past_end(self, running_core):
        """Running beyond the end date is refused."""
        with pytest.raises(LifecycleError, match="run ends at 1770"):
            running_core.run(1800)

    def test_run_in_stages(self, running_core):
        """Running in two calls reaches the same date as one call."""
        running_core.run(1755)
        assert running_core.current_date == 1755
        running_core.run(1760)
        assert running_core.current_date == 1760

    def test_duplicate_component_name(self):
        """Two components with one name cannot join a run."""
        core = Core(1750, 1760)
        core.add_component(SimpleNbox())
        with pytest.raises(ConfigError, match="already registered"):
            core.add_component(SimpleNbox())

    def test_duplicate_capability_fails_init(self):
        """Two providers of one capability fail initialisation."""
        core = Core(1750, 1760)
        core.add_component(SimpleNbox())
        core.add_component(SimpleNbox("second"))
        with pytest.raises(RunAbortedError) as excinfo:
            core.init()
        assert isinstance(excinfo.value.__cause__, DuplicateCapabilityError)
        assert excinfo.value.kind is ErrorKind.CONFIGURATION
        assert core.stage is RunStage.FAILED


class TestMessaging:
    """Tests for messages sent through the core."""

    def test_unknown_capability_leaves_state_alone(self, running_core):
        """Asking for an unknown capability raises and changes nothing."""
        running_core.run(1755)
        before = snapshot(running_core, (1750, 1755))
        with pytest.raises(UnknownCapabilityError) as excinfo:
            running_core.get_data("no_such_thing")
        assert excinfo.value.kind is ErrorKind.MISSING_CAPABILITY
        assert running_core.stage is RunStage.READY
        assert running_core.current_date == 1755
        assert snapshot(running_core, (1750, 1755)) == before

    def test_get_component_by_capability(self, running_core):
        """Capabilities map back to their owning component."""
        owner = running_core.get_component_by_capability("RF_tot")
        assert owner.name == "forcing"
        assert running_core.check_capability("tropical.veg_c")


class TestReset:
    """Tests for rewinding a run."""

    def test_rewind_is_idempotent(self, running_core):
        """Rerunning after a reset reproduces the original trajectory."""
        dates = range(1750, 1766)
        running_core.run(1765)
        first = snapshot(running_core, dates)
        running_core.reset(1755)
        assert running_core.current_date == 1755
        running_core.run(1765)
        second = snapshot(running_core, dates)
        assert second == pytest.approx(first)

    def test_reset_forgets_later_years(self, running_core):
        """Years after the reset date are no longer available."""
        running_core.run(1765)
        running_core.reset(1755)
        with pytest.raises(TimeseriesError):
            running_core.get_data("global_tas", 1760)

    def test_reset_to_start(self, running_core):
        """A run can be rewound to its start."""
        running_core.run(1760)
        running_core.reset(1750)
        assert running_core.get_data("CO2_concentration").magnitude == pytest.approx(
            277.15
        )

    def test_reset_outside_solved_range(self, running_core):
        """Reset dates must lie within the solved range."""
        running_core.run(1755)
        with pytest.raises(LifecycleError, match="outside the solved range"):
            running_core.reset(1760)
        with pytest.raises(LifecycleError, match="outside the solved range"):
            running_core.reset(1700)

    def test_reset_between_solved_dates(self, running_core):
        """A date between two solved years is refused without harming the run."""
        running_core.run(1760)
        with pytest.raises(LifecycleError, match="not a solved date"):
            running_core.reset(1755.5)
        assert running_core.stage is RunStage.READY
        assert running_core.current_date == 1760
        assert running_core.get_data("global_tas", 1760) is not None
        running_core.reset(1755)
        assert running_core.current_date == 1755


class TestFailures:
    """Tests for component failures during a run."""

    @pytest.fixture
    def short_emissions(self, make_core):
        """A core whose emissions end in 1755."""
        core = make_core()
        core.set_data("ffi_emissions", 10.0, date=1750)
        core.set_data("ffi_emissions", 10.0, date=1755)
        core.prepare_to_run()
        return core

    def test_failure_aborts_run(self, short_emissions):
        """A failing component aborts the run with context."""
        with pytest.raises(RunAbortedError, match="running simpleNbox at 1756") as excinfo:
            short_emissions.run(1760)
        assert isinstance(excinfo.value.__cause__, TimeseriesError)
        assert short_emissions.stage is RunStage.ABORTED
        assert short_emissions.current_date == 1755

    def test_aborted_run_cannot_continue(self, short_emissions):
        """An aborted run refuses to run until it is reset."""
        with pytest.raises(RunAbortedError):
            short_emissions.run(1760)
        with pytest.raises(LifecycleError):
            short_emissions.run(1760)

    def test_reset_recovers_aborted_run(self, short_emissions):
        """Resetting an aborted run makes it usable again."""
        with pytest.raises(RunAbortedError):
            short_emissions.run(1760)
        short_emissions.reset(1755)
        assert short_emissions.stage is RunStage.READY
        short_emissions.set_data("ffi_emissions", 10.0, date=1770)
        short_emissions.run(1760)
        assert short_emissions.current_date == 1760

    def test_unexpected_error_aborts_run(self, running_core, monkeypatch):
        """Errors outside the carbonbox hierarchy still abort the run."""
        forcing = running_core.component("forcing")
        original = forcing.run

        def run(date):
            if date >= 1753:
                raise ZeroDivisionError("float division by zero")
            original(date)

        monkeypatch.setattr(forcing, "run", run)
        with pytest.raises(RunAbortedError, match="running forcing at 1753") as excinfo:
            running_core.run(1755)
        assert isinstance(excinfo.value.__cause__, ZeroDivisionError)
        assert excinfo.value.kind is ErrorKind.NUMERICAL
        assert running_core.stage is RunStage.ABORTED
        assert running_core.current_date == 1752

        monkeypatch.setattr(forcing, "run", original)
        running_core.reset(1752)
        running_core.run(1755)
        assert running_core.current_date == 1755

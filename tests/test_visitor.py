"""
Unit tests for carbonbox.visitor module.
"""

import pytest

from carbonbox.visitor import ComponentKind, Visitor


class YearCounter(Visitor):
    """Counts forcing components seen in each year after spinup."""

    def __init__(self):
        self.years = []
        self.seen = []

    def should_visit(self, in_spinup, date):
        if in_spinup:
            return False
        self.years.append(date)
        return True

    def visit_forcing(self, component):
        self.seen.append(component.name)

    def reset(self, date):
        self.years = [y for y in self.years if y <= date]


def test_should_visit_required():
    with pytest.raises(NotImplementedError):
        Visitor().should_visit(False, 1750)


def test_every_kind_has_a_handler():
    for kind in ComponentKind:
        assert callable(getattr(Visitor, f"visit_{kind.value}"))


def test_dispatch_by_kind(make_core):
    counter = YearCounter()
    core = make_core(visitor=counter)
    core.prepare_to_run()
    core.run(1753)

    assert counter.years == [1750.0, 1751.0, 1752.0, 1753.0]
    assert counter.seen == ["forcing"] * 4


def test_visitors_reset_with_core(make_core):
    counter = YearCounter()
    core = make_core(visitor=counter)
    core.prepare_to_run()
    core.run(1755)
    core.reset(1752)

    assert counter.years[-1] == 1752.0

"""
Unit tests for carbonbox.outputs module.
"""

import pytest

from carbonbox.outputs import DEFAULT_OUTPUTS, OutputStreamVisitor
from carbonbox.visitor import ComponentKind


@pytest.fixture
def collected(make_core, output_visitor):
    core = make_core(ffi=10.0, visitor=output_visitor)
    core.prepare_to_run()
    core.run(1755)
    return core, output_visitor


def test_records_every_year(collected):
    _, visitor = collected
    df = visitor.to_dataframe()

    assert list(df.columns) == ["year", "component", "variable", "value", "units", "spinup"]
    assert sorted(df["year"].unique()) == [1750.0 + i for i in range(6)]
    n_vars = sum(len(v) for v in DEFAULT_OUTPUTS.values())
    assert len(df) == 6 * n_vars
    assert not df["spinup"].any()


def test_values_match_core(collected):
    core, visitor = collected
    df = visitor.to_dataframe()
    row = df[(df["year"] == 1753.0) & (df["variable"] == "CO2_concentration")]

    assert len(row) == 1
    assert row["component"].iloc[0] == "simpleNbox"
    assert row["units"].iloc[0] == "ppmv CO2"
    assert row["value"].iloc[0] == pytest.approx(
        core.get_data("CO2_concentration", 1753).magnitude
    )


def test_reset_drops_later_records(collected):
    core, visitor = collected
    core.reset(1752)
    assert max(r.year for r in visitor.records) == 1752.0

    core.run(1755)
    df = visitor.to_dataframe()
    assert (df["year"] == 1755.0).sum() == sum(len(v) for v in DEFAULT_OUTPUTS.values())


def test_custom_variables(make_core):
    visitor = OutputStreamVisitor({ComponentKind.TEMPERATURE: ["global_tas", "S"]})
    core = make_core(ffi=10.0, visitor=visitor)
    core.prepare_to_run()
    core.run(1752)

    df = visitor.to_dataframe()
    assert set(df["component"]) == {"temperature"}
    assert set(df["variable"]) == {"global_tas", "S"}
    assert len(df) == 3 * 2


def test_empty():
    df = OutputStreamVisitor().to_dataframe()
    assert df.empty
    assert "value" in df.columns


def test_spinup_records_kept_once(make_core):
    visitor = OutputStreamVisitor(
        {ComponentKind.SIMPLE_NBOX: ["atmos_c"]}, include_spinup=True
    )
    core = make_core(visitor=visitor, do_spinup=True)
    core.set_data("eps_spinup", 100.0)
    core.prepare_to_run()

    spinup = [r for r in visitor.records if r.spinup]
    assert len(spinup) == 1
    assert spinup[0].year == 1750.0

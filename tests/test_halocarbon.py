"""
Unit tests for carbonbox.halocarbon module.
"""

import pytest

from carbonbox.core import Core
from carbonbox.exceptions import ConfigError
from carbonbox.halocarbon import HalocarbonComponent
from carbonbox.units import UnitValue, Units


@pytest.fixture
def cfc11_core():
    core = Core(1750, 1760)
    core.add_component(HalocarbonComponent("CFC11", rho=0.00025, h0=10.0))
    core.init()
    return core


def test_unknown_gas():
    with pytest.raises(ConfigError, match="Unknown halocarbon 'CFC99'"):
        HalocarbonComponent("CFC99")


def test_default_name():
    assert HalocarbonComponent("SF6").name == "SF6_halocarbon"
    assert HalocarbonComponent("SF6", name="sf6").name == "sf6"


def test_forcing_zero_before_run(cfc11_core):
    cfc11_core.prepare_to_run()
    assert cfc11_core.get_data("F_CFC11").magnitude == 0.0


def test_forcing_from_concentration(cfc11_core):
    cfc11_core.set_data("CFC11_concentration", 100.0, Units.PPTV, date=1750)
    cfc11_core.set_data("CFC11_concentration", 200.0, Units.PPTV, date=1760)
    cfc11_core.prepare_to_run()
    cfc11_core.run(1755)

    forcing = cfc11_core.get_data("F_CFC11")
    assert forcing.units is Units.W_M2
    assert forcing.magnitude == pytest.approx(0.00025 * (150.0 - 10.0))
    assert cfc11_core.get_data("CFC11_concentration", 1755).magnitude == pytest.approx(150.0)


def test_no_concentration_means_no_forcing(cfc11_core):
    cfc11_core.prepare_to_run()
    cfc11_core.run(1752)
    assert cfc11_core.get_data("F_CFC11").magnitude == pytest.approx(0.0)
    assert cfc11_core.get_data("CFC11_concentration").magnitude == 10.0


def test_efficiency_input(cfc11_core):
    cfc11_core.set_data("CFC11_rho", 0.001, Units.W_M2_PPTV)
    cfc11_core.set_data("CFC11_H0", 0.0)
    cfc11_core.set_data("CFC11_concentration", 50.0, date=1750)
    cfc11_core.prepare_to_run()
    cfc11_core.run(1751)

    assert cfc11_core.get_data("CFC11_rho").magnitude == 0.001
    assert cfc11_core.get_data("F_CFC11").magnitude == pytest.approx(0.05)


def test_preindustrial_is_readable(cfc11_core):
    assert cfc11_core.get_data("CFC11_H0") == UnitValue(10.0, Units.PPTV)
    cfc11_core.set_data("CFC11_H0", 4.0, Units.PPTV)
    assert cfc11_core.get_data("CFC11_H0").magnitude == 4.0
    assert cfc11_core.get_component_by_capability("CFC11_H0").name == "CFC11_halocarbon"


def test_reset_truncates(cfc11_core):
    cfc11_core.set_data("CFC11_concentration", 100.0, date=1750)
    cfc11_core.set_data("CFC11_concentration", 200.0, date=1760)
    cfc11_core.prepare_to_run()
    cfc11_core.run(1758)
    at_1755 = cfc11_core.get_data("F_CFC11", 1755)

    cfc11_core.reset(1755)
    assert cfc11_core.get_data("F_CFC11") == at_1755
    cfc11_core.run(1758)
    assert cfc11_core.get_data("F_CFC11", 1756).magnitude == pytest.approx(
        0.00025 * (160.0 - 10.0)
    )

"""
Unit tests for carbonbox.component module.

Tests declaration collection, message date policies and error context.
"""

from __future__ import annotations

import pytest

from carbonbox.component import Capability, Dependency, Input, ModelComponent
from carbonbox.core import Core
from carbonbox.exceptions import (
    DateNotAllowedError,
    DateRequiredError,
    LifecycleError,
    UnknownVariableError,
)
from carbonbox.messages import MessageVerb
from carbonbox.simple_nbox import SimpleNbox
from carbonbox.units import Units
from carbonbox.visitor import ComponentKind


class Albedo(ModelComponent):
    kind = ComponentKind.EXOGENOUS
    default_name = "albedo"

    forcing = Capability("RF_albedo", Units.W_M2)
    temperature = Dependency("global_tas")
    series = Input("RF_albedo", Units.W_M2, dated=True)


class DarkAlbedo(Albedo):
    default_name = "dark-albedo"

    scale = Input("albedo_scale", Units.UNITLESS)


class TestDeclarations:
    """Tests for the declaration-collecting metaclass."""

    def test_declarations_collected(self):
        """Capabilities, dependencies and inputs are gathered by name."""
        assert set(Albedo._component_capabilities) == {"RF_albedo"}
        assert set(Albedo._component_dependencies) == {"global_tas"}
        assert Albedo._component_inputs["RF_albedo"].dated is True

    def test_declarations_inherited(self):
        """Subclasses inherit and extend their parent's declarations."""
        assert set(DarkAlbedo._component_inputs) == {"RF_albedo", "albedo_scale"}
        assert "albedo_scale" not in Albedo._component_inputs

    def test_init_registers_declarations(self):
        """init() registers everything with the core."""
        core = Core(2000, 2010)
        core.add_component(Albedo())
        core.init()
        assert core.check_capability("RF_albedo")
        assert core.registry.dependencies() == {"global_tas": ["albedo"]}

    def test_default_name(self):
        """Components fall back to their default name."""
        assert Albedo().name == "albedo"
        assert Albedo("mine").name == "mine"


class TestMessaging:
    """Tests for ModelComponent.send_message."""

    @pytest.fixture
    def core(self):
        """An initialised core holding only SimpleNbox."""
        core = Core(1750, 1760)
        core.add_component(SimpleNbox())
        core.init()
        return core

    def test_dated_input_requires_date(self, core):
        """A dated input rejects a SET without a date."""
        with pytest.raises(DateRequiredError, match="ffi_emissions"):
            core.set_data("ffi_emissions", 1.0)

    def test_undated_input_rejects_date(self, core):
        """An undated input rejects a SET with a date."""
        with pytest.raises(DateNotAllowedError, match="beta"):
            core.set_data("beta", 0.5, date=1800)

    def test_policy_applies_to_biome_qualified_names(self, core):
        """The date policy of '<var>' applies to '<biome>.<var>'."""
        with pytest.raises(DateNotAllowedError):
            core.set_data("global.beta", 0.5, date=1800)

    def test_errors_gain_component_context(self, core):
        """Errors name the component and variable they passed through."""
        with pytest.raises(DateRequiredError) as excinfo:
            core.set_data("ffi_emissions", 1.0)
        assert excinfo.value.context == [
            "simpleNbox: could not parse var 'ffi_emissions'"
        ]

    def test_unknown_variable(self):
        """The base handlers reject every name."""
        component = Albedo()
        with pytest.raises(UnknownVariableError, match="while parsing albedo"):
            component.send_message(MessageVerb.GET, "RF_albedo")

    def test_fetch_before_init(self):
        """Components must be initialised before talking to the core."""
        with pytest.raises(LifecycleError, match="has not been initialised"):
            Albedo().fetch("global_tas")

"""
Unit tests for carbonbox.messages module.

Tests message payloads and capability routing.
"""

from __future__ import annotations

import pytest

from carbonbox.component import Capability, ModelComponent
from carbonbox.exceptions import (
    ConfigError,
    DuplicateCapabilityError,
    UnitsError,
    UnknownCapabilityError,
)
from carbonbox.messages import CapabilityRegistry, Message, MessageData, MessageVerb
from carbonbox.units import UnitValue, Units
from carbonbox.visitor import ComponentKind


class Thermometer(ModelComponent):
    kind = ComponentKind.TEMPERATURE
    default_name = "thermometer"

    tas = Capability("global_tas", Units.DEG_C)

    def __init__(self, name=None):
        super().__init__(name)
        self.received = []

    def get_data(self, name, date):
        return UnitValue(1.5 if date is None else date / 1000, Units.DEG_C)

    def set_data(self, name, data):
        self.received.append((name, data))


@pytest.fixture
def registry():
    """A registry with one thermometer providing global_tas and veg_c."""
    reg = CapabilityRegistry()
    thermometer = Thermometer()
    reg.register_component(thermometer)
    reg.register_capability("global_tas", thermometer.name)
    reg.register_capability("veg_c", thermometer.name)
    return reg


class TestMessageData:
    """Tests for MessageData."""

    def test_undefined_units_adopt_expected(self):
        """Values without units take the receiver's units."""
        data = MessageData(value=UnitValue(0.5))
        assert data.unitval(Units.UNITLESS) == UnitValue(0.5, Units.UNITLESS)

    def test_mismatched_units_raise(self):
        """Values with other units are rejected."""
        data = MessageData(value=UnitValue(0.5, Units.PGC))
        with pytest.raises(UnitsError, match="Expected a value in"):
            data.unitval(Units.W_M2)

    def test_missing_value_raises(self):
        """A payload without a value cannot be read."""
        with pytest.raises(ConfigError, match="no value"):
            MessageData().unitval(Units.W_M2)

    def test_set_message_tags_plain_numbers(self):
        """Message.set wraps numbers with the given units."""
        message = Message.set("beta", 0.36, Units.UNITLESS, date=None)
        assert message.verb is MessageVerb.SET
        assert message.data.value == UnitValue(0.36, Units.UNITLESS)
        assert not message.data.has_date


class TestCapabilityRegistry:
    """Tests for CapabilityRegistry."""

    def test_dispatch_get(self, registry):
        """GET messages are answered by the owner."""
        value = registry.dispatch(Message.get("global_tas"))
        assert value == UnitValue(1.5, Units.DEG_C)

    def test_dispatch_get_with_date(self, registry):
        """The date is passed through to the owner."""
        value = registry.dispatch(Message.get("global_tas", date=2000))
        assert value.magnitude == 2.0

    def test_dispatch_set(self, registry):
        """SET messages are forwarded to the owner."""
        registry.dispatch(Message.set("global_tas", 1.0))
        thermometer = registry.component("thermometer")
        assert [name for name, _ in thermometer.received] == ["global_tas"]

    def test_set_prefers_input_owner(self, registry):
        """An input registration takes precedence over a capability for SET."""
        other = Thermometer("other")
        registry.register_component(other)
        registry.register_input("global_tas", other.name)
        registry.dispatch(Message.set("global_tas", 1.0))
        assert len(other.received) == 1
        assert registry.component("thermometer").received == []

    def test_unknown_capability(self, registry):
        """Unknown names raise and list how many are registered."""
        with pytest.raises(UnknownCapabilityError, match="2 capabilities") as excinfo:
            registry.dispatch(Message.get("RF_tot"))
        assert excinfo.value.available == ["global_tas", "veg_c"]
        assert excinfo.value.name == "RF_tot"

    def test_duplicate_capability(self, registry):
        """Registering a capability twice raises."""
        with pytest.raises(DuplicateCapabilityError) as excinfo:
            registry.register_capability("global_tas", "other")
        assert excinfo.value.owner == "thermometer"
        assert excinfo.value.claimant == "other"

    def test_duplicate_component_name(self, registry):
        """Two different components cannot share a name."""
        with pytest.raises(ConfigError, match="already registered"):
            registry.register_component(Thermometer())

    def test_biome_qualified_names_resolve(self, registry):
        """'<biome>.<var>' resolves to the owner of '<var>'."""
        assert registry.check_capability("tropical.veg_c")
        assert registry.owner("tropical.veg_c").name == "thermometer"
        assert not registry.check_capability("tropical.soil_c")

    def test_unresolved_dependencies(self, registry):
        """Dependencies without an owner are reported."""
        registry.register_dependency("global_tas", "forcing")
        registry.register_dependency("RF_tot", "thermometer")
        assert registry.unresolved_dependencies() == [("RF_tot", "thermometer")]
        assert registry.dependencies() == {
            "RF_tot": ["thermometer"],
            "global_tas": ["forcing"],
        }

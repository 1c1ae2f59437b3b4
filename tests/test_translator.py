from lifx_gateway.models import DevicePatch
from lifx_gateway.translator import brightness_from_wire, brightness_to_wire, build_action


def test_brightness_round_trip_is_exact_for_every_percent():
    for value in range(0, 101):
        assert brightness_from_wire(brightness_to_wire(value)) == value


def test_brightness_edges_map_to_wire_bounds():
    assert brightness_to_wire(0) == 0.0
    assert brightness_to_wire(50) == 0.5
    assert brightness_to_wire(100) == 1.0


def test_build_action_only_includes_requested_fields():
    assert build_action(DevicePatch(brightness=90)) == {"brightness": 0.9}
    assert build_action(DevicePatch(status="on", color="blue")) == {"power": "on", "color": "blue"}
    assert build_action(DevicePatch()) == {}


def test_build_action_keeps_zero_brightness():
    assert build_action(DevicePatch(brightness=0)) == {"brightness": 0.0}


def test_build_action_normalizes_boolean_status():
    assert build_action(DevicePatch(status=True)) == {"power": "on"}  # type: ignore[arg-type]
    assert build_action(DevicePatch(status=False)) == {"power": "off"}  # type: ignore[arg-type]

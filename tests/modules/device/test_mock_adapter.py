"""Tests for the mock device adapter."""

import pytest

from lumina_schedule.core.payload import DeviceState
from lumina_schedule.modules.device import MockDeviceAdapter


@pytest.fixture
def device():
    return MockDeviceAdapter()


def test_default_state(device):
    """Test the mock starts off at mid brightness."""
    assert device.get_state() == DeviceState(on=False, bri=128)


def test_apply_json_merges(device):
    """Test applied payloads merge into the live state."""
    assert device.apply_json(DeviceState(on=True)) is True

    state = device.get_state()
    assert state.on is True
    assert state.bri == 128


def test_presets(device):
    """Test saving and loading presets."""
    warm = DeviceState(on=True, bri=90)

    assert device.save_preset(10, warm, "Warm") is True
    assert device.presets[10] == ("Warm", warm)
    assert device.load_preset(10) is True
    assert device.state.bri == 90


def test_load_unknown_preset(device):
    """Test loading a preset that was never saved fails."""
    assert device.load_preset(99) is False


def test_failures(device):
    """Test simulated failures."""
    device.fail("apply_config")
    device.fail_preset(11)

    assert device.apply_config({"timers": {"ins": []}}) is False
    assert device.save_preset(11, DeviceState(on=True), "x") is False
    assert device.save_preset(12, DeviceState(on=True), "y") is True

    device.reset_failures()
    assert device.apply_config({"timers": {"ins": []}}) is True


def test_raise_on(device):
    """Test simulated exceptions."""
    device.raise_on("get_state", ConnectionError("unplugged"))
    with pytest.raises(ConnectionError):
        device.get_state()


def test_unreadable_state(device):
    """Test a None state reads as unreadable."""
    device.set_state(None)
    assert device.get_state() is None


def test_call_recording(device):
    """Test every call is recorded in order."""
    device.get_state()
    device.load_preset(3)

    assert [c[0] for c in device.get_calls()] == ["get_state", "load_preset"]
    assert device.get_calls("load_preset") == [("load_preset", 3)]

    device.clear_calls()
    assert device.get_calls() == []

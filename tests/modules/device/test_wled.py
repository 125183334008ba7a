"""Tests for the HTTP device adapter."""

import json

import httpx
import pytest

from lumina_schedule.core.payload import DeviceState
from lumina_schedule.modules.device import WledDeviceAdapter


class FakeController:
    """Handler for httpx.MockTransport that records requests."""

    def __init__(self, state=None, reply=None, status=200):
        self.state = state or {"on": True, "bri": 128, "seg": [{"id": 0, "fx": 0}]}
        self.reply = reply if reply is not None else {"success": True}
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        if request.method == "GET":
            return httpx.Response(self.status, json=self.state)
        return httpx.Response(self.status, json=self.reply)


@pytest.fixture
def controller():
    return FakeController()


@pytest.fixture
def adapter(controller):
    with WledDeviceAdapter("192.168.1.50", transport=httpx.MockTransport(controller)) as device:
        yield device


class TestReads:
    """Tests for get_state."""

    def test_get_state(self, adapter, controller):
        """Test live state is parsed."""
        state = adapter.get_state()

        assert state.on is True
        assert state.bri == 128
        assert state.primary_effect == 0
        assert controller.requests == [("GET", "/json/state", None)]

    def test_get_state_unreadable(self, controller):
        """Test out-of-range state is reported as unreadable."""
        controller.state = {"on": True, "bri": 999}
        adapter = WledDeviceAdapter("wled.local", transport=httpx.MockTransport(controller))
        assert adapter.get_state() is None

    def test_server_error(self):
        """Test HTTP errors are reported as None."""
        controller = FakeController(status=500)
        adapter = WledDeviceAdapter("wled.local", transport=httpx.MockTransport(controller))
        assert adapter.get_state() is None


class TestWrites:
    """Tests for state, preset and config writes."""

    def test_apply_json(self, adapter, controller):
        """Test a state payload is posted as-is."""
        assert adapter.apply_json(DeviceState(on=True, bri=200)) is True
        assert controller.requests == [("POST", "/json/state", {"on": True, "bri": 200})]

    def test_save_preset(self, adapter, controller):
        """Test preset saves carry the ID, name and include flags."""
        state = DeviceState.from_wire({"on": True, "seg": [{"fx": 12}]})

        assert adapter.save_preset(12, state, "Sunset Candy Cane") is True

        method, path, body = controller.requests[0]
        assert (method, path) == ("POST", "/json/state")
        assert body["psave"] == 12
        assert body["n"] == "Sunset Candy Cane"
        assert body["ib"] is True
        assert body["sb"] is True
        assert body["seg"] == [{"fx": 12}]

    def test_load_preset(self, adapter, controller):
        """Test preset loads post the preset ID."""
        assert adapter.load_preset(12) is True
        assert controller.requests == [("POST", "/json/state", {"ps": 12})]

    def test_apply_config(self, adapter, controller):
        """Test configuration goes to the config endpoint."""
        config = {"timers": {"ins": [{"en": True, "hour": 25, "min": 0, "macro": 10, "dow": 127}]}}

        assert adapter.apply_config(config) is True
        assert controller.requests == [("POST", "/json/cfg", config)]

    def test_rejected_payload(self):
        """Test {"success": false} is a failure."""
        controller = FakeController(reply={"success": False})
        adapter = WledDeviceAdapter("wled.local", transport=httpx.MockTransport(controller))
        assert adapter.apply_json(DeviceState(on=False)) is False


class TestTransportErrors:
    """Tests for unreachable controllers."""

    def test_connect_error(self):
        """Test connection failures are reported, not raised."""

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        adapter = WledDeviceAdapter("wled.local", transport=httpx.MockTransport(refuse))

        assert adapter.get_state() is None
        assert adapter.apply_json(DeviceState(on=True)) is False
        assert adapter.save_preset(10, DeviceState(on=True), "x") is False

    def test_invalid_json(self):
        """Test a non-JSON reply is a failure."""

        def garbage(request):
            return httpx.Response(200, content=b"<html>")

        adapter = WledDeviceAdapter("wled.local", transport=httpx.MockTransport(garbage))
        assert adapter.get_state() is None
        assert adapter.load_preset(1) is False

    def test_empty_reply(self):
        """Test an empty 200 reply counts as accepted."""
        adapter = WledDeviceAdapter(
            "http://wled.local",
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
        )
        assert adapter.load_preset(1) is True

"""
Lighting controller access.

DeviceAdapter is the boundary between the engine and the hardware;
WledDeviceAdapter implements it over HTTP and MockDeviceAdapter records
calls for tests.
"""

from ...core.payload import DeviceState, Segment, brightness_to_wire
from .adapter import DeviceAdapter, MockDeviceAdapter
from .wled import WledDeviceAdapter

__all__ = [
    "DeviceState",
    "Segment",
    "brightness_to_wire",
    "DeviceAdapter",
    "MockDeviceAdapter",
    "WledDeviceAdapter",
]

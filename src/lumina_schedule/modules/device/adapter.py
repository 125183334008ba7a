"""
Device adapter interface for the lighting controller.

The adapter is the only path from the engine to the hardware. Sync and
enforcement both talk to it; neither knows about transports. The host
application (or WledDeviceAdapter) provides a concrete implementation.

Every call is a single attempt. A failed call returns False (or None for
reads) rather than raising, so one unreachable controller never takes the
caller down with it.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set, Tuple

from ...core.payload import DeviceState


class DeviceAdapter(ABC):
    """
    Abstract interface for controller operations.

    Intentionally minimal:
    - get_state: Read live state
    - apply_json: Push a state payload
    - apply_config: Push a configuration payload (timer table)
    - save_preset / load_preset: Manage stored presets
    """

    @abstractmethod
    def get_state(self) -> Optional[DeviceState]:
        """
        Read the controller's current state.

        Returns:
            DeviceState, or None if the controller could not be read
        """
        pass

    @abstractmethod
    def apply_json(self, payload: DeviceState) -> bool:
        """
        Apply a state payload.

        Returns:
            True if the controller accepted it
        """
        pass

    @abstractmethod
    def apply_config(self, config: Dict[str, Any]) -> bool:
        """
        Apply a configuration payload (e.g. {"timers": {"ins": [...]}}).

        Returns:
            True if the controller accepted it
        """
        pass

    @abstractmethod
    def save_preset(self, preset_id: int, state: DeviceState, name: str) -> bool:
        """Store `state` as preset `preset_id` named `name`."""
        pass

    @abstractmethod
    def load_preset(self, preset_id: int) -> bool:
        """Activate a stored preset."""
        pass


class MockDeviceAdapter(DeviceAdapter):
    """
    Mock adapter for testing.

    Keeps an in-memory controller state, records every call, and can be
    told to fail (return False/None) or raise for specific operations.
    """

    def __init__(self, state: Optional[DeviceState] = None) -> None:
        self._state: Optional[DeviceState] = state or DeviceState(on=False, bri=128)
        self._presets: Dict[int, Tuple[str, DeviceState]] = {}
        self._config: Dict[str, Any] = {}
        self._calls: List[Tuple[str, Any]] = []
        self._failing: Set[str] = set()
        self._failing_presets: Set[int] = set()
        self._raising: Dict[str, Exception] = {}

    # Test controls

    def set_state(self, state: Optional[DeviceState]) -> None:
        """Set live state (None simulates an unreadable controller)."""
        self._state = state

    def fail(self, *operations: str) -> None:
        """Make the named operations report failure."""
        self._failing.update(operations)

    def fail_preset(self, *preset_ids: int) -> None:
        """Make save_preset fail for specific preset IDs."""
        self._failing_presets.update(preset_ids)

    def raise_on(self, operation: str, error: Exception) -> None:
        """Make an operation raise instead of returning."""
        self._raising[operation] = error

    def reset_failures(self) -> None:
        self._failing.clear()
        self._failing_presets.clear()
        self._raising.clear()

    def get_calls(self, operation: Optional[str] = None) -> List[Tuple[str, Any]]:
        """Get recorded calls, optionally filtered by operation name."""
        if operation is None:
            return self._calls.copy()
        return [c for c in self._calls if c[0] == operation]

    def clear_calls(self) -> None:
        self._calls.clear()

    @property
    def presets(self) -> Dict[int, Tuple[str, DeviceState]]:
        return dict(self._presets)

    @property
    def config(self) -> Dict[str, Any]:
        return dict(self._config)

    @property
    def state(self) -> Optional[DeviceState]:
        return self._state

    def _check(self, operation: str) -> bool:
        if operation in self._raising:
            raise self._raising[operation]
        return operation not in self._failing

    # DeviceAdapter implementation

    def get_state(self) -> Optional[DeviceState]:
        self._calls.append(("get_state", None))
        if not self._check("get_state"):
            return None
        return self._state

    def apply_json(self, payload: DeviceState) -> bool:
        self._calls.append(("apply_json", payload))
        if not self._check("apply_json"):
            return False
        self._merge(payload)
        return True

    def apply_config(self, config: Dict[str, Any]) -> bool:
        self._calls.append(("apply_config", config))
        if not self._check("apply_config"):
            return False
        self._config.update(config)
        return True

    def save_preset(self, preset_id: int, state: DeviceState, name: str) -> bool:
        self._calls.append(("save_preset", (preset_id, state, name)))
        if not self._check("save_preset") or preset_id in self._failing_presets:
            return False
        self._presets[preset_id] = (name, state)
        return True

    def load_preset(self, preset_id: int) -> bool:
        self._calls.append(("load_preset", preset_id))
        if not self._check("load_preset") or preset_id not in self._presets:
            return False
        self._merge(self._presets[preset_id][1])
        return True

    def _merge(self, payload: DeviceState) -> None:
        current = self._state.to_wire() if self._state else {}
        current.update(payload.to_wire())
        self._state = DeviceState.from_wire(current)

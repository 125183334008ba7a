"""
HTTP device adapter for WLED-compatible controllers.

Talks to the controller's JSON API:

    GET  /json/state   read live state
    POST /json/state   apply a state, {"ps": id} loads a preset,
                       {"psave": id, "n": name, ...} saves one
    POST /json/cfg     apply configuration (timer table)

One attempt per call. Transport, status and decode failures are logged
and reported as False/None.
"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ...core.payload import DeviceState
from .adapter import DeviceAdapter

logger = logging.getLogger(__name__)


class WledDeviceAdapter(DeviceAdapter):
    """DeviceAdapter over the controller's HTTP JSON API."""

    def __init__(
        self,
        host: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        base_url = host if host.startswith(("http://", "https://")) else f"http://{host}"
        self.host = host
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        """Close the underlying HTTP client when owned."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "WledDeviceAdapter":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    # =========================================================================
    # DeviceAdapter implementation
    # =========================================================================

    def get_state(self) -> Optional[DeviceState]:
        data = self._request("GET", "/json/state")
        if data is None:
            return None
        try:
            return DeviceState.from_wire(data)
        except ValidationError as e:
            logger.warning(f"Unreadable state from {self.host}: {e}")
            return None

    def apply_json(self, payload: DeviceState) -> bool:
        return self._post("/json/state", payload.to_wire())

    def apply_config(self, config: Dict[str, Any]) -> bool:
        return self._post("/json/cfg", config)

    def save_preset(self, preset_id: int, state: DeviceState, name: str) -> bool:
        body = state.to_wire()
        body.update(
            {
                "psave": preset_id,
                "n": name,
                "ib": True,  # Include brightness
                "sb": True,  # Include segment bounds
            }
        )
        return self._post("/json/state", body)

    def load_preset(self, preset_id: int) -> bool:
        return self._post("/json/state", {"ps": preset_id})

    # =========================================================================
    # Transport
    # =========================================================================

    def _post(self, path: str, body: Dict[str, Any]) -> bool:
        data = self._request("POST", path, json=body)
        if data is None:
            return False
        # The controller answers {"success": false} when it rejects a payload
        if isinstance(data, dict) and data.get("success") is False:
            logger.warning(f"{self.host} rejected POST {path}")
            return False
        return True

    def _request(self, method: str, path: str, **kwargs: Any) -> Optional[Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} to {self.host} failed: {e}", exc_info=True)
            return None

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Invalid JSON from {self.host} for {method} {path}: {e}")
            return None

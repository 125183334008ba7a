"""
Typed device-state payloads for the lighting controller.

The controller's JSON state is loosely typed and its fields vary by firmware
version. These models name the fields the engine reads and writes, validate
their ranges, and keep every unrecognized key in the model's extra bag so it
round-trips to the device untouched.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Segment(BaseModel):
    """One LED segment of the controller state."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    start: Optional[int] = None
    stop: Optional[int] = None
    on: Optional[bool] = None
    bri: Optional[int] = Field(default=None, ge=0, le=255)
    fx: Optional[int] = None  # Effect ID
    sx: Optional[int] = None  # Effect speed
    ix: Optional[int] = None  # Effect intensity
    pal: Optional[int] = None  # Palette ID
    col: Optional[List[Any]] = None  # [[r,g,b(,w)], ...] or hex strings on newer firmware
    n: Optional[str] = None  # Segment name


class DeviceState(BaseModel):
    """
    Controller state payload (`/json/state`).

    Only `on`, `bri` and the first segment's `fx` take part in drift
    comparison; everything else is carried through verbatim.
    """

    model_config = ConfigDict(extra="allow")

    on: Optional[bool] = None
    bri: Optional[int] = Field(default=None, ge=0, le=255)
    transition: Optional[int] = None
    ps: Optional[int] = None  # Active preset
    seg: Optional[List[Segment]] = None

    @field_validator("seg", mode="before")
    @classmethod
    def _wrap_single_segment(cls, value: Any) -> Any:
        # Some firmware replies with a bare object when only one segment exists
        if isinstance(value, dict):
            return [value]
        return value

    @property
    def extensions(self) -> Dict[str, Any]:
        """Keys the engine does not model (firmware-specific)."""
        return dict(self.model_extra or {})

    @property
    def primary_effect(self) -> Optional[int]:
        """Effect ID of the first segment, if segments are present."""
        if not self.seg:
            return None
        return self.seg[0].fx

    @property
    def is_empty(self) -> bool:
        return not self.to_wire()

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the controller, omitting unset fields."""
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "DeviceState":
        """Validate a raw controller payload."""
        return cls.model_validate(data)


def brightness_to_wire(percent: int) -> int:
    """Convert a 1-100 brightness percentage to the controller's 0-255 scale."""
    return max(0, min(255, round(percent * 255 / 100)))

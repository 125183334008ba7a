"""
Data models for device sync.

Timer entries mirror the controller's timer wire format:

    {"en": true, "hour": 19, "min": 0, "macro": 12, "dow": 127}

hour 24 means sunrise and 25 sunset, with `min` holding a signed offset.
`dow` is a 7-bit mask, bit0 = Sunday ... bit6 = Saturday.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, FrozenSet, List, Optional

from ...core.models import ScheduleRule


@dataclass(frozen=True)
class SyncConfig:
    """
    Controller limits and reserved identifiers.

    Attributes:
        timer_slots: Hardware timer slots on the controller
        preset_band_start: First preset ID handed out to rules
        preset_band_end: Last preset ID handed out to rules (inclusive)
        system_preset_ids: IDs reserved for built-in presets (on, brightness tiers)
        off_macro: Macro fired by end-of-window timers
        sunrise_hour: Sentinel hour for sunrise timers
        sunset_hour: Sentinel hour for sunset timers
        max_solar_offset: Largest offset (minutes) a solar timer can carry
    """

    timer_slots: int = 8
    preset_band_start: int = 10
    preset_band_end: int = 25
    system_preset_ids: FrozenSet[int] = frozenset({1, 3, 4, 5})
    off_macro: int = 0
    sunrise_hour: int = 24
    sunset_hour: int = 25
    max_solar_offset: int = 59

    def __post_init__(self) -> None:
        if self.preset_band_end < self.preset_band_start:
            raise ValueError("preset band end must not precede its start")
        overlap = self.system_preset_ids & set(self.preset_band)
        if overlap:
            raise ValueError(f"preset band overlaps system presets: {sorted(overlap)}")
        if self.off_macro in self.preset_band:
            raise ValueError("off macro must not be inside the preset band")

    @property
    def preset_band(self) -> range:
        return range(self.preset_band_start, self.preset_band_end + 1)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict."""
        result = asdict(self)
        result["system_preset_ids"] = sorted(self.system_preset_ids)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncConfig":
        """Deserialize from dict (unknown keys are ignored)."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "system_preset_ids" in values:
            values["system_preset_ids"] = frozenset(values["system_preset_ids"])
        return cls(**values)


@dataclass(frozen=True)
class TimerEntry:
    """One controller timer."""

    hour: int
    minute: int
    macro: int
    dow: int
    enabled: bool = True
    rule_id: Optional[str] = None  # Not sent to the device
    is_end: bool = False

    def to_wire(self) -> Dict[str, Any]:
        return {
            "en": self.enabled,
            "hour": self.hour,
            "min": self.minute,
            "macro": self.macro,
            "dow": self.dow,
        }


@dataclass
class WireTimerTable:
    """Compiled timer table plus the rules that did not fit."""

    entries: List[TimerEntry] = field(default_factory=list)
    dropped_rules: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def to_wire(self) -> Dict[str, Any]:
        """Body for the controller's config endpoint."""
        return {"timers": {"ins": [e.to_wire() for e in self.entries]}}


@dataclass(frozen=True)
class PresetError:
    """A preset that could not be saved on the controller."""

    rule_id: str
    preset_id: int
    message: str


@dataclass
class SyncResult:
    """
    Outcome of pushing rules to a controller.

    `success` reflects the timer push. Preset failures for individual
    rules are listed in `preset_errors` without failing the whole sync.
    """

    success: bool
    error: Optional[str] = None
    preset_errors: List[PresetError] = field(default_factory=list)
    rules_with_assigned_presets: List[ScheduleRule] = field(default_factory=list)
    dropped_rules: List[str] = field(default_factory=list)
    timer_count: int = 0

    @property
    def is_partial(self) -> bool:
        """True when the timer push succeeded but some rules were left behind."""
        return self.success and bool(self.preset_errors or self.dropped_rules)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "preset_errors": [
                {"rule_id": e.rule_id, "preset_id": e.preset_id, "message": e.message}
                for e in self.preset_errors
            ],
            "rules_with_assigned_presets": [r.id for r in self.rules_with_assigned_presets],
            "dropped_rules": list(self.dropped_rules),
            "timer_count": self.timer_count,
        }

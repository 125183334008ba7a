"""
Data models for lighting schedules.

Defines weekdays, triggers, actions, and the persisted ScheduleRule.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, time
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from .payload import DeviceState, brightness_to_wire


# =============================================================================
# Enums
# =============================================================================


class Weekday(Enum):
    """Days of the week, in controller bit order (Sunday first)."""

    SUN = "sun"
    MON = "mon"
    TUE = "tue"
    WED = "wed"
    THU = "thu"
    FRI = "fri"
    SAT = "sat"

    @property
    def bit(self) -> int:
        """Bit in the day-of-week mask (bit0 = Sunday ... bit6 = Saturday)."""
        return 1 << WEEK_ORDER.index(self)

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Weekday":
        return _PY_WEEKDAYS[dt.weekday()]

    @classmethod
    def parse(cls, value: str) -> "Weekday":
        """Parse an abbreviation or full day name (case-insensitive)."""
        key = value.strip().lower()
        if key in _DAY_ALIASES:
            return _DAY_ALIASES[key]
        raise ValueError(f"Unknown weekday: {value}")


# Sunday-first, matching the controller day mask
WEEK_ORDER = (
    Weekday.SUN,
    Weekday.MON,
    Weekday.TUE,
    Weekday.WED,
    Weekday.THU,
    Weekday.FRI,
    Weekday.SAT,
)

# datetime.weekday(): Monday == 0
_PY_WEEKDAYS = [
    Weekday.MON,
    Weekday.TUE,
    Weekday.WED,
    Weekday.THU,
    Weekday.FRI,
    Weekday.SAT,
    Weekday.SUN,
]

_DAY_ALIASES: Dict[str, Weekday] = {
    "sun": Weekday.SUN,
    "sunday": Weekday.SUN,
    "mon": Weekday.MON,
    "monday": Weekday.MON,
    "tue": Weekday.TUE,
    "tues": Weekday.TUE,
    "tuesday": Weekday.TUE,
    "wed": Weekday.WED,
    "wednesday": Weekday.WED,
    "thu": Weekday.THU,
    "thur": Weekday.THU,
    "thurs": Weekday.THU,
    "thursday": Weekday.THU,
    "fri": Weekday.FRI,
    "friday": Weekday.FRI,
    "sat": Weekday.SAT,
    "saturday": Weekday.SAT,
}


class SolarKind(Enum):
    """Solar events a trigger can be anchored to."""

    SUNRISE = "sunrise"
    SUNSET = "sunset"


class ActionType(Enum):
    """Types of actions a schedule rule can perform."""

    POWER_OFF = "power_off"
    POWER_ON = "power_on"
    SET_BRIGHTNESS = "set_brightness"
    RUN_PATTERN = "run_pattern"


# =============================================================================
# Repeat Days
# =============================================================================


@dataclass(frozen=True)
class RepeatDays:
    """Which weekdays a rule repeats on, or every day."""

    days: FrozenSet[Weekday] = field(default_factory=frozenset)
    daily: bool = False

    def __post_init__(self) -> None:
        if not self.daily and not self.days:
            raise ValueError("repeat_days must name at least one weekday unless daily")

    @classmethod
    def every_day(cls) -> "RepeatDays":
        return cls(daily=True)

    @classmethod
    def of(cls, *days: Weekday) -> "RepeatDays":
        return cls(days=frozenset(days))

    @classmethod
    def parse(cls, values: Iterable[str]) -> "RepeatDays":
        """Parse day labels such as ["Mon", "Wed"] or ["Daily"]."""
        values = list(values)
        if any(v.strip().lower() in ("daily", "every day", "everyday") for v in values):
            return cls.every_day()
        return cls(days=frozenset(Weekday.parse(v) for v in values))

    def includes(self, day: Weekday) -> bool:
        return self.daily or day in self.days

    def to_list(self) -> List[str]:
        """Serialize in week order ("daily" for every day)."""
        if self.daily:
            return ["daily"]
        return [d.value for d in WEEK_ORDER if d in self.days]


# =============================================================================
# Triggers
# =============================================================================


@dataclass(frozen=True)
class ClockTime:
    """Fire at a fixed local clock time."""

    hour: int
    minute: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour out of range: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute out of range: {self.minute}")

    @property
    def label(self) -> str:
        """12-hour display label, e.g. "7:00 PM"."""
        hour = self.hour % 12 or 12
        suffix = "AM" if self.hour < 12 else "PM"
        return f"{hour}:{self.minute:02d} {suffix}"

    def to_time(self) -> time:
        return time(self.hour, self.minute)


@dataclass(frozen=True)
class SolarEvent:
    """Fire relative to sunrise or sunset at the configured coordinates."""

    kind: SolarKind
    offset_minutes: int = 0

    @property
    def label(self) -> str:
        """Display label, e.g. "Sunset" or "Sunset+30"."""
        name = self.kind.value.capitalize()
        if self.offset_minutes == 0:
            return name
        return f"{name}{self.offset_minutes:+d}"


Trigger = ClockTime | SolarEvent


_SOLAR_LABEL = re.compile(
    r"^(sunrise|sunset|dawn|dusk|sunup|sundown)"
    r"(?:\s*([+-])\s*(\d{1,3})\s*(?:m|min|mins|minutes)?)?$"
)
_CLOCK_12H_LABEL = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*([ap])\.?\s*m\.?$")
_CLOCK_24H_LABEL = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")

_SOLAR_ALIASES = {
    "sunrise": SolarKind.SUNRISE,
    "dawn": SolarKind.SUNRISE,
    "sunup": SolarKind.SUNRISE,
    "sunset": SolarKind.SUNSET,
    "dusk": SolarKind.SUNSET,
    "sundown": SolarKind.SUNSET,
}


def parse_trigger_label(label: str) -> Trigger:
    """
    Parse a display label into a trigger.

    Accepts "7:00 PM", "7pm", "19:30", "noon", "midnight",
    "Sunset", "Sunrise-15", "dusk + 30 min".

    Raises:
        ValueError: If the label is not recognized
    """
    text = label.strip().lower()

    if text == "noon":
        return ClockTime(12, 0)
    if text == "midnight":
        return ClockTime(0, 0)

    match = _SOLAR_LABEL.match(text)
    if match:
        offset = 0
        if match.group(2):
            offset = int(match.group(3))
            if match.group(2) == "-":
                offset = -offset
        return SolarEvent(_SOLAR_ALIASES[match.group(1)], offset)

    match = _CLOCK_12H_LABEL.match(text)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2) or 0)
        if not 1 <= hour <= 12:
            raise ValueError(f"Invalid 12-hour time: {label}")
        if match.group(3) == "p" and hour != 12:
            hour += 12
        if match.group(3) == "a" and hour == 12:
            hour = 0
        return ClockTime(hour, minute)

    match = _CLOCK_24H_LABEL.match(text)
    if match:
        return ClockTime(int(match.group(1)), int(match.group(2)))

    raise ValueError(f"Unrecognized trigger label: {label}")


# =============================================================================
# Actions
# =============================================================================


@dataclass(frozen=True)
class PowerOff:
    """Turn the lights off."""

    @property
    def action_type(self) -> ActionType:
        return ActionType.POWER_OFF

    @property
    def label(self) -> str:
        return "Turn Off"

    @property
    def payload(self) -> Optional[DeviceState]:
        return None

    @property
    def device_payload(self) -> DeviceState:
        return DeviceState(on=False)


@dataclass(frozen=True)
class PowerOn:
    """Turn the lights on, optionally into a named pattern."""

    pattern: Optional[str] = None
    payload: Optional[DeviceState] = None

    @property
    def action_type(self) -> ActionType:
        return ActionType.POWER_ON

    @property
    def label(self) -> str:
        if self.pattern:
            return f"Pattern: {self.pattern}"
        return "Turn On"

    @property
    def device_payload(self) -> DeviceState:
        if self.payload is not None:
            return self.payload
        return DeviceState(on=True)


@dataclass(frozen=True)
class SetBrightness:
    """Set brightness as a percentage (1-100)."""

    percent: int

    def __post_init__(self) -> None:
        if not 1 <= self.percent <= 100:
            raise ValueError(f"brightness percent out of range: {self.percent}")

    @property
    def action_type(self) -> ActionType:
        return ActionType.SET_BRIGHTNESS

    @property
    def label(self) -> str:
        return f"Brightness: {self.percent}%"

    @property
    def payload(self) -> Optional[DeviceState]:
        return None

    @property
    def device_payload(self) -> DeviceState:
        return DeviceState(on=True, bri=brightness_to_wire(self.percent))


@dataclass(frozen=True)
class RunPattern:
    """Run a saved pattern described by a full device payload."""

    name: str
    payload: DeviceState

    @property
    def action_type(self) -> ActionType:
        return ActionType.RUN_PATTERN

    @property
    def label(self) -> str:
        return f"Pattern: {self.name}"

    @property
    def device_payload(self) -> DeviceState:
        return self.payload


ActionConfig = PowerOff | PowerOn | SetBrightness | RunPattern


# =============================================================================
# Schedule Rule
# =============================================================================


@dataclass(frozen=True)
class ScheduleRule:
    """A recurring lighting rule.

    Consists of:
    - id: Opaque stable identifier
    - trigger: When the rule starts (clock time or solar event)
    - repeat_days: Which weekdays it applies to
    - action: What state to put the lights in
    - off_trigger: Optional end of the on/off window (None = active until superseded)
    - device_preset_id: Controller preset backing this rule (assigned during sync)
    - created_by / derived_from: Provenance for rules generated from text requests
    - priority: Higher priority rules win timer slots when the controller is full
    """

    id: str
    trigger: Trigger
    repeat_days: RepeatDays
    action: ActionConfig
    enabled: bool = True
    off_trigger: Optional[Trigger] = None
    device_preset_id: Optional[int] = None
    created_by: Optional[str] = None
    derived_from: Optional[str] = None
    priority: int = 50

    @property
    def has_window(self) -> bool:
        """True if the rule has an explicit end (on/off window)."""
        return self.off_trigger is not None

    @property
    def uses_solar(self) -> bool:
        return isinstance(self.trigger, SolarEvent) or isinstance(self.off_trigger, SolarEvent)

    @property
    def label(self) -> str:
        """Short description, e.g. "Sunset-11:00 PM Pattern: Candy Cane"."""
        window = self.trigger.label
        if self.off_trigger is not None:
            window = f"{window}-{self.off_trigger.label}"
        return f"{window} {self.action.label}"

    def with_preset(self, preset_id: Optional[int]) -> "ScheduleRule":
        return replace(self, device_preset_id=preset_id)

    def with_enabled(self, enabled: bool) -> "ScheduleRule":
        return replace(self, enabled=enabled)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for storage/transport."""
        result: Dict[str, Any] = {
            "id": self.id,
            "trigger": _serialize_trigger(self.trigger),
            "repeat_days": self.repeat_days.to_list(),
            "action": _serialize_action(self.action),
            "enabled": self.enabled,
            "priority": self.priority,
        }
        if self.off_trigger is not None:
            result["off_trigger"] = _serialize_trigger(self.off_trigger)
        if self.device_preset_id is not None:
            result["device_preset_id"] = self.device_preset_id
        if self.created_by:
            result["created_by"] = self.created_by
        if self.derived_from:
            result["derived_from"] = self.derived_from
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleRule":
        """Deserialize from dict."""
        off_trigger = data.get("off_trigger")
        return cls(
            id=data["id"],
            trigger=_parse_trigger(data["trigger"]),
            repeat_days=RepeatDays.parse(data.get("repeat_days", ["daily"])),
            action=_parse_action(data["action"]),
            enabled=data.get("enabled", True),
            off_trigger=_parse_trigger(off_trigger) if off_trigger else None,
            device_preset_id=data.get("device_preset_id"),
            created_by=data.get("created_by"),
            derived_from=data.get("derived_from"),
            priority=data.get("priority", 50),
        )


# =============================================================================
# Serialization helpers
# =============================================================================


def _serialize_trigger(trigger: Trigger) -> Dict[str, Any]:
    if isinstance(trigger, ClockTime):
        return {"type": "clock", "hour": trigger.hour, "minute": trigger.minute}
    elif isinstance(trigger, SolarEvent):
        return {
            "type": "solar",
            "kind": trigger.kind.value,
            "offset_minutes": trigger.offset_minutes,
        }
    return {}


def _parse_trigger(data: Any) -> Trigger:
    # Older documents persisted display labels ("7:00 PM", "Sunset")
    if isinstance(data, str):
        return parse_trigger_label(data)

    trigger_type = data.get("type", "clock")

    if trigger_type == "clock":
        return ClockTime(hour=data["hour"], minute=data.get("minute", 0))
    elif trigger_type == "solar":
        return SolarEvent(
            kind=SolarKind(data["kind"]),
            offset_minutes=data.get("offset_minutes", 0),
        )
    else:
        raise ValueError(f"Unknown trigger type: {trigger_type}")


def _serialize_action(action: ActionConfig) -> Dict[str, Any]:
    result: Dict[str, Any] = {"type": action.action_type.value}
    if isinstance(action, PowerOn):
        if action.pattern:
            result["pattern"] = action.pattern
        if action.payload is not None:
            result["payload"] = action.payload.to_wire()
    elif isinstance(action, SetBrightness):
        result["percent"] = action.percent
    elif isinstance(action, RunPattern):
        result["name"] = action.name
        result["payload"] = action.payload.to_wire()
    return result


def _parse_action(data: Dict[str, Any]) -> ActionConfig:
    action_type = data.get("type")

    if action_type == "power_off":
        return PowerOff()
    elif action_type == "power_on":
        payload = data.get("payload")
        return PowerOn(
            pattern=data.get("pattern"),
            payload=DeviceState.from_wire(payload) if payload else None,
        )
    elif action_type == "set_brightness":
        return SetBrightness(percent=data["percent"])
    elif action_type == "run_pattern":
        return RunPattern(
            name=data["name"],
            payload=DeviceState.from_wire(data.get("payload", {})),
        )
    else:
        raise ValueError(f"Unknown action type: {action_type}")

"""Data models for schedule enforcement.

Enforcement watches live controller state and re-applies the active
schedule after a manual change has been left in place long enough.

Licensed under MIT License
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class EnforcementMode(Enum):
    """How aggressively the schedule is re-applied."""

    DISABLED = "disabled"  # Manual changes persist until the next timer fires
    SOFT = "soft"  # Re-apply after a long grace period
    STRICT = "strict"  # Re-apply within minutes


class EnforcementState(Enum):
    """States of the enforcement state machine."""

    DISABLED = "disabled"
    WATCHING = "watching"
    GRACE_PERIOD = "grace_period"
    ENFORCING = "enforcing"


class TickAction(Enum):
    """What a single poll decided."""

    SKIPPED = "skipped"  # Previous tick still running
    DISABLED = "disabled"
    GRACE_PERIOD = "grace_period"
    COOLDOWN = "cooldown"
    NO_ACTIVE_RULE = "no_active_rule"
    NO_PAYLOAD = "no_payload"
    IN_SYNC = "in_sync"
    ENFORCED = "enforced"
    FAILED = "failed"  # Controller rejected the correction
    ERROR = "error"  # Controller unreadable or raised


@dataclass(frozen=True)
class EnforcementConfig:
    """Configuration for the enforcement loop.

    Attributes:
        mode: Enforcement mode.
        poll_interval: Time between polls.
        grace_period: How long a manual override is left alone.
        cooldown: Minimum time between two corrections.
        brightness_tolerance: Allowed brightness drift (0-255 scale).
    """

    mode: EnforcementMode = EnforcementMode.SOFT
    poll_interval: timedelta = timedelta(minutes=10)
    grace_period: timedelta = timedelta(hours=2)
    cooldown: timedelta = timedelta(minutes=10)
    brightness_tolerance: int = 12  # ~5% of 255

    @classmethod
    def for_mode(cls, mode: EnforcementMode) -> "EnforcementConfig":
        """Default timings for a mode."""
        if mode == EnforcementMode.STRICT:
            return cls(
                mode=mode,
                poll_interval=timedelta(minutes=2),
                grace_period=timedelta(minutes=5),
            )
        return cls(mode=mode)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict (durations in seconds)."""
        return {
            "mode": self.mode.value,
            "poll_interval": int(self.poll_interval.total_seconds()),
            "grace_period": int(self.grace_period.total_seconds()),
            "cooldown": int(self.cooldown.total_seconds()),
            "brightness_tolerance": self.brightness_tolerance,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EnforcementConfig":
        """Deserialize from dict; missing timings fall back to the mode defaults."""
        base = cls.for_mode(EnforcementMode(data.get("mode", EnforcementMode.SOFT.value)))

        def seconds(key: str, default: timedelta) -> timedelta:
            value = data.get(key)
            return timedelta(seconds=value) if value is not None else default

        return cls(
            mode=base.mode,
            poll_interval=seconds("poll_interval", base.poll_interval),
            grace_period=seconds("grace_period", base.grace_period),
            cooldown=seconds("cooldown", base.cooldown),
            brightness_tolerance=data.get("brightness_tolerance", base.brightness_tolerance),
        )


@dataclass(frozen=True)
class EnforcementRuntimeState:
    """Runtime state for the enforcement service (Immutable).

    Attributes:
        mode: Mode in effect.
        last_manual_override_at: When the user last changed the lights by hand.
        last_enforcement_at: When the schedule was last re-applied.
    """

    mode: EnforcementMode = EnforcementMode.SOFT
    last_manual_override_at: datetime | None = None
    last_enforcement_at: datetime | None = None


@dataclass(frozen=True)
class TickResult:
    """Outcome of one poll."""

    action: TickAction
    state: EnforcementState
    reason: str = ""
    rule_id: str | None = None

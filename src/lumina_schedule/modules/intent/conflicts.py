"""
Conflict detection between proposed and standing schedule rules.

Two rules conflict when they share at least one weekday and their clock
windows overlap. Windows that wrap past midnight are split into two ranges
before comparison. Solar triggers and open-ended rules cannot be compared
minute-for-minute; those pairs are still reported so the user sees them.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...core.models import WEEK_ORDER, ClockTime, ScheduleRule, Weekday

logger = logging.getLogger(__name__)

_MINUTES_PER_DAY = 24 * 60


class ConflictResolution(Enum):
    """Suggested way to settle a conflict."""

    REPLACE = "replace"
    ADJUST_TIME = "adjust_time"
    KEEP_BOTH = "keep_both"


@dataclass(frozen=True)
class ScheduleConflict:
    """A standing rule that collides with a proposed one."""

    proposed_id: str
    existing_id: str
    shared_days: Tuple[Weekday, ...]
    resolution: ConflictResolution
    proposed_window: Optional[Tuple[int, int]] = None  # Minutes since midnight
    existing_window: Optional[Tuple[int, int]] = None

    @property
    def comparable(self) -> bool:
        """False when the windows could not be compared minute-for-minute."""
        return self.proposed_window is not None and self.existing_window is not None

    def describe(self) -> str:
        """One-line human-readable description."""
        days = ", ".join(d.value for d in self.shared_days)
        if len(self.shared_days) > 3:
            days = f"{len(self.shared_days)} days"

        if not self.comparable:
            noun = "day" if len(self.shared_days) == 1 else "days"
            return (
                f'"{self.proposed_id}" and "{self.existing_id}" are on the same {noun} '
                f"({days}) but times could not be fully compared. "
                f"Suggested: {self.resolution.value}"
            )

        return (
            f'"{self.proposed_id}" ({_format_window(self.proposed_window)}) overlaps with '
            f'"{self.existing_id}" ({_format_window(self.existing_window)}) on {days}. '
            f"Suggested: {self.resolution.value}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proposed_id": self.proposed_id,
            "existing_id": self.existing_id,
            "shared_days": [d.value for d in self.shared_days],
            "resolution": self.resolution.value,
            "description": self.describe(),
        }


def detect_conflicts(
    proposed: Sequence[ScheduleRule],
    existing: Sequence[ScheduleRule],
) -> List[ScheduleConflict]:
    """
    Find standing rules that collide with proposed rules.

    Args:
        proposed: Rules about to be added
        existing: Rules already in the store (disabled rules are ignored)

    Returns:
        Conflicts in proposed order, without duplicates
    """
    conflicts: List[ScheduleConflict] = []
    seen = set()

    for new_rule in proposed:
        new_window = _window(new_rule)

        for old_rule in existing:
            if not old_rule.enabled or old_rule.id == new_rule.id:
                continue

            shared = tuple(
                day
                for day in WEEK_ORDER
                if new_rule.repeat_days.includes(day) and old_rule.repeat_days.includes(day)
            )
            if not shared:
                continue

            key = (new_rule.id, old_rule.id)
            if key in seen:
                continue

            old_window = _window(old_rule)

            if new_window is None or old_window is None:
                seen.add(key)
                conflicts.append(
                    ScheduleConflict(
                        proposed_id=new_rule.id,
                        existing_id=old_rule.id,
                        shared_days=shared,
                        resolution=ConflictResolution.KEEP_BOTH,
                    )
                )
                continue

            if _windows_overlap(new_window, old_window):
                seen.add(key)
                conflicts.append(
                    ScheduleConflict(
                        proposed_id=new_rule.id,
                        existing_id=old_rule.id,
                        shared_days=shared,
                        resolution=suggest_resolution(new_rule, old_rule),
                        proposed_window=new_window,
                        existing_window=old_window,
                    )
                )

    if conflicts:
        logger.debug(f"Detected {len(conflicts)} schedule conflict(s)")
    return conflicts


def suggest_resolution(proposed: ScheduleRule, existing: ScheduleRule) -> ConflictResolution:
    """Pick a resolution from rule priorities."""
    if proposed.priority > existing.priority:
        return ConflictResolution.REPLACE
    if existing.priority > proposed.priority:
        return ConflictResolution.ADJUST_TIME
    return ConflictResolution.REPLACE


def _window(rule: ScheduleRule) -> Optional[Tuple[int, int]]:
    if not isinstance(rule.trigger, ClockTime) or not isinstance(rule.off_trigger, ClockTime):
        return None
    start = rule.trigger.hour * 60 + rule.trigger.minute
    end = rule.off_trigger.hour * 60 + rule.off_trigger.minute
    return start, end


def _split(window: Tuple[int, int]) -> List[Tuple[int, int]]:
    start, end = window
    if end > start:
        return [(start, end)]
    return [(start, _MINUTES_PER_DAY), (0, end)]


def _windows_overlap(a: Tuple[int, int], b: Tuple[int, int]) -> bool:
    for a_start, a_end in _split(a):
        for b_start, b_end in _split(b):
            if a_start < b_end and b_start < a_end:
                return True
    return False


def _format_window(window: Optional[Tuple[int, int]]) -> str:
    if window is None:
        return "?"
    start, end = window
    return f"{start // 60:02d}:{start % 60:02d}-{end // 60:02d}:{end % 60:02d}"

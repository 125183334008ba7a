"""
Active-rule resolution.

Answers "which schedule rule should be in effect right now?" from the
current instant, the rule set and optional coordinates. Handles windows
that cross midnight by also considering rules that started yesterday.

Windows are start-inclusive and end-exclusive. When several rules are
active at once, the one that started most recently wins.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Iterable, Optional

from ...core.models import ScheduleRule, SolarEvent, Weekday
from .solar import resolve_trigger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveRule:
    """A rule found active, with the instants bounding its current window."""

    rule: ScheduleRule
    started_at: datetime
    ends_at: Optional[datetime] = None


class ScheduleFinder:
    """
    Finds the rule currently in effect.

    Pure and read-only; safe to call from several threads.
    """

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude

    def find_active(
        self,
        now: datetime,
        rules: Iterable[ScheduleRule],
    ) -> Optional[ScheduleRule]:
        """Return the active rule, or None."""
        match = self.find_active_window(now, rules)
        return match.rule if match else None

    def find_active_window(
        self,
        now: datetime,
        rules: Iterable[ScheduleRule],
    ) -> Optional[ActiveRule]:
        """
        Return the active rule together with its window.

        Args:
            now: Current instant (naive values are taken as UTC)
            rules: Rules to consider (disabled rules are skipped)
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        tz = now.tzinfo

        today = now.date()
        yesterday = today - timedelta(days=1)
        today_wd = Weekday.from_datetime(now)
        yesterday_wd = Weekday.from_datetime(now - timedelta(days=1))

        best: Optional[ActiveRule] = None

        for rule in rules:
            if not rule.enabled:
                continue

            applies_today = rule.repeat_days.includes(today_wd)
            applies_yesterday = rule.repeat_days.includes(yesterday_wd)
            if not applies_today and not applies_yesterday:
                continue

            if rule.uses_solar and (self.latitude is None or self.longitude is None):
                logger.warning(f"Rule {rule.id} uses a solar trigger but no coordinates are set")
                continue

            if applies_today:
                candidate = self._check_today(rule, now, today, tz)
                if candidate and (best is None or candidate.started_at > best.started_at):
                    best = candidate

            if applies_yesterday and rule.off_trigger is not None:
                candidate = self._check_yesterday(rule, now, yesterday, today, tz)
                if candidate and (best is None or candidate.started_at > best.started_at):
                    best = candidate

        if best:
            logger.debug(f"Active rule at {now.isoformat()}: {best.rule.id}")
        return best

    def _check_today(self, rule, now, today, tz) -> Optional[ActiveRule]:
        start = self._resolve(rule.trigger, today, tz)
        if start is None or start > now:
            return None

        if rule.off_trigger is None:
            return ActiveRule(rule, start)

        end = self._resolve(rule.off_trigger, today, tz)
        if end is None:
            return None

        if _is_overnight(start, end):
            # Started today, ends tomorrow
            return ActiveRule(rule, start, end + timedelta(days=1))

        if end <= now:
            logger.debug(f"Rule {rule.id} window already elapsed")
            return None
        return ActiveRule(rule, start, end)

    def _check_yesterday(self, rule, now, yesterday, today, tz) -> Optional[ActiveRule]:
        start = self._resolve(rule.trigger, yesterday, tz)
        end = self._resolve(rule.off_trigger, today, tz)
        if start is None or end is None:
            return None

        if _is_overnight(start, end) and now < end:
            return ActiveRule(rule, start, end)
        return None

    def _resolve(self, trigger, day, tz) -> Optional[datetime]:
        resolved = resolve_trigger(trigger, day, tz, self.latitude, self.longitude)
        if resolved is None and isinstance(trigger, SolarEvent):
            logger.debug(f"{trigger.label} does not occur on {day}")
        return resolved


def find_active(
    now: datetime,
    rules: Iterable[ScheduleRule],
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> Optional[ScheduleRule]:
    """Convenience wrapper around ScheduleFinder.find_active()."""
    return ScheduleFinder(latitude, longitude).find_active(now, rules)


def _is_overnight(start: datetime, end: datetime) -> bool:
    """True when the end clock value is at or before the start clock value."""
    return (end.hour, end.minute) <= (start.hour, start.minute)

"""Tests for active-rule resolution."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from lumina_schedule.core.models import (
    ClockTime,
    PowerOff,
    PowerOn,
    RepeatDays,
    ScheduleRule,
    SolarEvent,
    SolarKind,
    Weekday,
)
from lumina_schedule.modules.resolver import ScheduleFinder, find_active

# 2026-10-19 is a Monday
MONDAY = datetime(2026, 10, 19, tzinfo=UTC)


def at(hour, minute=0, day=MONDAY):
    return day.replace(hour=hour, minute=minute)


def rule(rule_id, start, end=None, days=None, enabled=True):
    return ScheduleRule(
        id=rule_id,
        trigger=start if not isinstance(start, tuple) else ClockTime(*start),
        off_trigger=ClockTime(*end) if end else None,
        repeat_days=days or RepeatDays.every_day(),
        action=PowerOn(),
        enabled=enabled,
    )


@pytest.fixture
def finder():
    return ScheduleFinder()


class TestSingleEvent:
    """Tests for rules without an end trigger."""

    def test_active_after_start(self, finder):
        """Test a 7 PM rule is active at 7:01 PM."""
        evening = rule("evening", (19, 0))
        assert finder.find_active(at(19, 1), [evening]) == evening

    def test_inactive_before_start(self, finder):
        """Test a 7 PM rule is not active at 6:59 PM."""
        assert finder.find_active(at(18, 59), [rule("evening", (19, 0))]) is None

    def test_start_inclusive(self, finder):
        """Test a rule is active at its exact start."""
        match = finder.find_active_window(at(19, 0), [rule("evening", (19, 0))])

        assert match.started_at == at(19, 0)
        assert match.ends_at is None


class TestWindows:
    """Tests for rules with an end trigger."""

    def test_end_exclusive(self, finder):
        """Test a window is over at its end instant."""
        window = rule("window", (19, 0), (21, 0))

        assert finder.find_active(at(20, 59), [window]) == window
        assert finder.find_active(at(21, 0), [window]) is None

    def test_overnight_after_midnight(self, finder):
        """Test an overnight window is active after midnight."""
        overnight = rule("overnight", (22, 0), (6, 0))
        match = finder.find_active_window(at(2, 0), [overnight])

        assert match.rule == overnight
        assert match.started_at == at(22, 0) - timedelta(days=1)
        assert match.ends_at == at(6, 0)

    def test_overnight_ended(self, finder):
        """Test an overnight window is over after its end."""
        assert finder.find_active(at(7, 0), [rule("overnight", (22, 0), (6, 0))]) is None

    def test_overnight_before_midnight(self, finder):
        """Test an overnight window started today ends tomorrow."""
        match = finder.find_active_window(at(23, 0), [rule("overnight", (22, 0), (6, 0))])
        assert match.ends_at == at(6, 0) + timedelta(days=1)

    def test_overnight_from_previous_weekday(self, finder):
        """Test a Sunday-night window is still active early Monday."""
        sunday_only = rule("sunday", (22, 0), (6, 0), days=RepeatDays.of(Weekday.SUN))

        assert finder.find_active(at(2, 0), [sunday_only]) == sunday_only
        assert finder.find_active(at(23, 0), [sunday_only]) is None


class TestSelection:
    """Tests for choosing between several active rules."""

    def test_latest_start_wins(self, finder):
        """Test the most recently started rule wins."""
        early = rule("early", (18, 0))
        late = rule("late", (19, 0))

        assert finder.find_active(at(20, 0), [late, early]) == late

    def test_tie_keeps_first(self, finder):
        """Test equal starts keep the first rule seen."""
        first = rule("first", (19, 0))
        second = ScheduleRule(
            id="second",
            trigger=ClockTime(19, 0),
            repeat_days=RepeatDays.every_day(),
            action=PowerOff(),
        )
        assert finder.find_active(at(20, 0), [first, second]) == first

    def test_disabled_skipped(self, finder):
        """Test disabled rules are never active."""
        assert finder.find_active(at(20, 0), [rule("off", (19, 0), enabled=False)]) is None

    def test_other_weekday_skipped(self, finder):
        """Test rules for other weekdays are never active."""
        tuesday = rule("tue", (19, 0), days=RepeatDays.of(Weekday.TUE))
        assert finder.find_active(at(20, 0), [tuesday]) is None

    def test_empty(self, finder):
        """Test an empty rule set."""
        assert finder.find_active(at(20, 0), []) is None


class TestTimezones:
    """Tests for timezone handling."""

    def test_local_clock_times(self, finder):
        """Test clock triggers are read in the caller's timezone."""
        central = timezone(timedelta(hours=-5))
        now = datetime(2026, 10, 19, 19, 30, tzinfo=central)

        match = finder.find_active_window(now, [rule("evening", (19, 0))])

        assert match.started_at == datetime(2026, 10, 19, 19, 0, tzinfo=central)

    def test_naive_now_is_utc(self, finder):
        """Test a naive instant is treated as UTC."""
        match = finder.find_active_window(datetime(2026, 10, 19, 19, 30), [rule("evening", (19, 0))])
        assert match.started_at.tzinfo == UTC


class TestSolarRules:
    """Tests for solar-anchored rules."""

    def test_solar_without_coordinates_skipped(self, finder):
        """Test solar rules are excluded when no coordinates are set."""
        dusk = rule("dusk", SolarEvent(SolarKind.SUNSET))
        evening = rule("evening", (17, 0))

        assert finder.find_active(at(23, 0), [dusk, evening]) == evening

    def test_sunset_rule(self):
        """Test a sunset rule becomes active after sunset (London, midsummer)."""
        finder = ScheduleFinder(latitude=51.5, longitude=-0.12)
        dusk = rule("dusk", SolarEvent(SolarKind.SUNSET, 15))
        midsummer = datetime(2026, 6, 21, tzinfo=UTC)

        assert finder.find_active(midsummer.replace(hour=19), [dusk]) is None
        assert finder.find_active(midsummer.replace(hour=21, minute=30), [dusk]) == dusk

    def test_module_level_helper(self):
        """Test find_active() with coordinates."""
        dusk = rule("dusk", SolarEvent(SolarKind.SUNSET))
        now = datetime(2026, 6, 21, 22, 0, tzinfo=UTC)

        assert find_active(now, [dusk], latitude=51.5, longitude=-0.12) == dusk
        assert find_active(now, [dusk]) is None

"""Tests for the device sync compiler."""

import pytest

from lumina_schedule.core.bus import EventBus, EventFilter
from lumina_schedule.core.models import (
    ClockTime,
    PowerOff,
    PowerOn,
    RepeatDays,
    ScheduleRule,
    SetBrightness,
    SolarEvent,
    SolarKind,
    Weekday,
)
from lumina_schedule.core.store import ScheduleStore
from lumina_schedule.modules.device import MockDeviceAdapter
from lumina_schedule.modules.sync import (
    DAILY_MASK,
    ScheduleSyncCompiler,
    ScheduleSyncService,
    SyncConfig,
    TimerEntry,
    encode_dow_mask,
    encode_trigger,
    shift_dow_mask,
)


def make_rule(rule_id, hour=19, off=None, preset=None, priority=50, days=None, trigger=None):
    return ScheduleRule(
        id=rule_id,
        trigger=trigger or ClockTime(hour, 0),
        off_trigger=ClockTime(*off) if off else None,
        repeat_days=days or RepeatDays.every_day(),
        action=PowerOn(),
        device_preset_id=preset,
        priority=priority,
    )


@pytest.fixture
def compiler():
    return ScheduleSyncCompiler()


@pytest.fixture
def device():
    return MockDeviceAdapter()


class TestEncoding:
    """Tests for day masks and trigger encoding."""

    def test_dow_mask(self):
        """Test Monday/Wednesday/Friday encodes to 42."""
        days = RepeatDays.of(Weekday.MON, Weekday.WED, Weekday.FRI)
        assert encode_dow_mask(days) == 42

    def test_daily_mask(self):
        """Test daily encodes to 127."""
        assert encode_dow_mask(RepeatDays.every_day()) == DAILY_MASK == 127

    def test_weekend_mask(self):
        """Test Saturday and Sunday are the outer bits."""
        assert encode_dow_mask(RepeatDays.of(Weekday.SAT, Weekday.SUN)) == 65

    def test_shift_dow_mask(self):
        """Test shifting a mask moves each day forward and wraps Saturday."""
        assert shift_dow_mask(42) == 84
        assert shift_dow_mask(Weekday.SAT.bit) == Weekday.SUN.bit
        assert shift_dow_mask(DAILY_MASK) == DAILY_MASK

    def test_clock_trigger(self):
        """Test clock triggers encode directly."""
        assert encode_trigger(ClockTime(22, 15)) == (22, 15)

    def test_solar_triggers(self):
        """Test sunrise and sunset use the sentinel hours."""
        assert encode_trigger(SolarEvent(SolarKind.SUNSET)) == (25, 0)
        assert encode_trigger(SolarEvent(SolarKind.SUNRISE, -20)) == (24, -20)

    def test_solar_offset_clamped(self):
        """Test offsets beyond the controller range are clamped."""
        assert encode_trigger(SolarEvent(SolarKind.SUNSET, 90)) == (25, 59)
        assert encode_trigger(SolarEvent(SolarKind.SUNSET, -120)) == (25, -59)


class TestPresetAssignment:
    """Tests for preset ID assignment."""

    def test_assigns_from_band(self, compiler):
        """Test new rules get IDs from the user band."""
        result = compiler.assign_presets([make_rule("a"), make_rule("b")])

        assert [r.device_preset_id for r in result.rules] == [10, 11]
        assert len(result.newly_assigned) == 2

    def test_keeps_valid_ids(self, compiler):
        """Test valid existing IDs are kept and not reused."""
        result = compiler.assign_presets([make_rule("a"), make_rule("b", preset=10)])

        ids = {r.id: r.device_preset_id for r in result.rules}
        assert ids == {"a": 11, "b": 10}
        assert [r.id for r in result.newly_assigned] == ["a"]

    def test_reassigns_system_and_duplicate_ids(self, compiler):
        """Test reserved or duplicated IDs are replaced."""
        result = compiler.assign_presets(
            [make_rule("sys", preset=4), make_rule("one", preset=12), make_rule("two", preset=12)]
        )

        ids = {r.id: r.device_preset_id for r in result.rules}
        assert ids["one"] == 12
        assert ids["sys"] not in {1, 3, 4, 5, 12}
        assert ids["two"] not in {1, 3, 4, 5, 12}
        assert ids["sys"] != ids["two"]

    def test_band_exhausted(self):
        """Test rules beyond the band are unassigned."""
        compiler = ScheduleSyncCompiler(SyncConfig(preset_band_start=10, preset_band_end=11))
        result = compiler.assign_presets([make_rule("a"), make_rule("b"), make_rule("c")])

        assert result.unassigned == ["c"]

    def test_disabled_rules_ignored(self, compiler):
        """Test disabled rules take no preset."""
        disabled = make_rule("off").with_enabled(False)
        assert compiler.assign_presets([disabled]).rules == []


class TestCompile:
    """Tests for timer table compilation."""

    def test_single_rule(self, compiler):
        """Test one on-only rule becomes one timer."""
        table = compiler.compile([make_rule("a", preset=10)])
        assert table.to_wire() == {
            "timers": {"ins": [{"en": True, "hour": 19, "min": 0, "macro": 10, "dow": 127}]}
        }

    def test_window_rule_uses_off_macro(self, compiler):
        """Test an on/off window takes two slots with the off macro at the end."""
        table = compiler.compile([make_rule("a", hour=19, off=(23, 0), preset=10)])

        assert table.entries == [
            TimerEntry(19, 0, 10, 127, rule_id="a"),
            TimerEntry(23, 0, 0, 127, rule_id="a", is_end=True),
        ]

    def test_slot_limit(self, compiler):
        """Test ten single-timer rules fill eight slots and drop two."""
        rules = [make_rule(f"r{i}", hour=i + 10, preset=10 + i) for i in range(10)]

        table = compiler.compile(rules)

        assert len(table) == 8
        assert table.dropped_rules == ["r8", "r9"]

    def test_priority_order(self, compiler):
        """Test higher-priority rules claim slots first."""
        rules = [make_rule(f"low{i}", preset=10 + i, priority=10) for i in range(8)]
        rules.append(make_rule("urgent", preset=20, priority=90))

        table = compiler.compile(rules)

        assert table.entries[0].rule_id == "urgent"
        assert table.dropped_rules == ["low7"]

    def test_window_rule_skipped_whole(self, compiler):
        """Test a two-slot rule is skipped when one slot is left."""
        rules = [make_rule(f"r{i}", preset=10 + i, priority=90) for i in range(7)]
        rules.append(make_rule("window", off=(23, 0), preset=20, priority=50))
        rules.append(make_rule("single", preset=21, priority=10))

        table = compiler.compile(rules)

        assert len(table) == 8
        assert table.dropped_rules == ["window"]
        assert table.entries[-1].rule_id == "single"

    def test_rule_without_preset_gets_provisional_id(self, compiler):
        """Test a rule with no preset is compiled against the first free band ID."""
        table = compiler.compile([make_rule("bare")])
        assert [e.macro for e in table.entries] == [10]
        assert table.dropped_rules == []

    def test_slot_limit_for_fresh_rules(self, compiler):
        """Test ten rules with no presets compile to eight timers and two drops."""
        rules = [make_rule(f"r{i}", hour=i + 10) for i in range(10)]

        table = compiler.compile(rules)

        assert len(table) == 8
        assert table.dropped_rules == ["r8", "r9"]
        assert [e.macro for e in table.entries] == list(range(10, 18))

    def test_compile_reports_band_exhaustion(self):
        """Test rules beyond the preset band are reported as dropped."""
        compiler = ScheduleSyncCompiler(SyncConfig(preset_band_start=10, preset_band_end=11))
        rules = [make_rule(f"r{i}") for i in range(3)]

        table = compiler.compile(rules)

        assert len(table) == 2
        assert table.dropped_rules == ["r2"]

    def test_overnight_end_timer_fires_next_day(self, compiler):
        """Test a Monday 22:00-06:00 window turns off on Tuesday."""
        rule = make_rule("night", hour=22, off=(6, 0), days=RepeatDays.of(Weekday.MON))

        start, end = compiler.compile([rule]).entries

        assert start.dow == Weekday.MON.bit
        assert end.dow == Weekday.TUE.bit

    def test_overnight_saturday_wraps_to_sunday(self, compiler):
        """Test the shifted end mask wraps from Saturday to Sunday."""
        rule = make_rule("night", hour=23, off=(1, 0), days=RepeatDays.of(Weekday.SAT))
        assert compiler.compile([rule]).entries[1].dow == Weekday.SUN.bit

    def test_overnight_daily_window_stays_daily(self, compiler):
        """Test a daily overnight window keeps the daily mask on both timers."""
        rule = make_rule("night", hour=22, off=(6, 0))
        assert [e.dow for e in compiler.compile([rule]).entries] == [DAILY_MASK, DAILY_MASK]

    def test_sunset_to_sunrise_window_wraps(self, compiler):
        """Test a sunset-to-sunrise window ends the next day."""
        rule = ScheduleRule(
            id="dusk-to-dawn",
            trigger=SolarEvent(SolarKind.SUNSET),
            off_trigger=SolarEvent(SolarKind.SUNRISE),
            repeat_days=RepeatDays.of(Weekday.FRI),
            action=PowerOn(),
        )
        start, end = compiler.compile([rule]).entries
        assert (start.hour, start.dow) == (25, Weekday.FRI.bit)
        assert (end.hour, end.dow) == (24, Weekday.SAT.bit)

    def test_same_day_window_keeps_mask(self, compiler):
        """Test a window ending the same evening keeps its day mask."""
        rule = make_rule("evening", hour=19, off=(23, 0), days=RepeatDays.of(Weekday.MON))
        assert [e.dow for e in compiler.compile([rule]).entries] == [2, 2]

    def test_sunset_every_day(self, compiler):
        """Test a daily sunset rule."""
        rule = make_rule("dusk", trigger=SolarEvent(SolarKind.SUNSET), preset=10)
        entry = compiler.compile([rule]).to_wire()["timers"]["ins"][0]
        assert entry == {"en": True, "hour": 25, "min": 0, "macro": 10, "dow": 127}


class TestPush:
    """Tests for pushing to a controller."""

    def test_no_device(self, compiler):
        """Test sync without a device fails cleanly."""
        result = compiler.push([make_rule("a")], None)

        assert result.success is False
        assert result.error == "No device selected"

    def test_full_sync(self, compiler, device):
        """Test presets are saved and timers pushed."""
        rules = [
            make_rule("a"),
            ScheduleRule(
                id="dim",
                trigger=ClockTime(22, 0),
                repeat_days=RepeatDays.every_day(),
                action=SetBrightness(20),
                priority=40,
            ),
        ]

        result = compiler.push(rules, device)

        assert result.success is True
        assert result.timer_count == 2
        assert [r.id for r in result.rules_with_assigned_presets] == ["a", "dim"]
        assert device.presets[10][0] == "7:00 PM Turn On"
        assert device.presets[11][1].bri == 51
        assert len(device.config["timers"]["ins"]) == 2

    def test_overnight_window_pushes_next_day_off_timer(self, compiler, device):
        """Test the pushed off timer of a Monday overnight window fires on Tuesday."""
        rule = make_rule("night", hour=22, off=(6, 0), days=RepeatDays.of(Weekday.MON))

        assert compiler.push([rule], device).success is True

        ins = device.config["timers"]["ins"]
        assert ins[0] == {"en": True, "hour": 22, "min": 0, "macro": 10, "dow": 2}
        assert ins[1] == {"en": True, "hour": 6, "min": 0, "macro": 0, "dow": 4}

    def test_preset_failure_is_partial(self, compiler, device):
        """Test one failed preset skips that rule only."""
        device.fail_preset(11)
        rules = [make_rule("a"), make_rule("b"), make_rule("c")]

        result = compiler.push(rules, device)

        assert result.success is True
        assert result.is_partial is True
        assert [(e.rule_id, e.preset_id) for e in result.preset_errors] == [("b", 11)]
        assert result.dropped_rules == ["b"]
        macros = [t["macro"] for t in device.config["timers"]["ins"]]
        assert macros == [10, 12]

    def test_preset_exception_is_partial(self, compiler, device):
        """Test an exception from a preset save is recorded, not raised."""
        device.raise_on("save_preset", ConnectionError("reset"))

        result = compiler.push([make_rule("a")], device)

        assert result.success is True
        assert result.preset_errors[0].message == "reset"
        assert result.timer_count == 0

    def test_timer_push_rejected(self, compiler, device):
        """Test a rejected timer table fails the sync but keeps presets."""
        device.fail("apply_config")

        result = compiler.push([make_rule("a")], device)

        assert result.success is False
        assert result.error == "Timer push failed"
        assert 10 in device.presets

    def test_timer_push_raises(self, compiler, device):
        """Test an exception from the timer push is reported."""
        device.raise_on("apply_config", TimeoutError("slow"))

        result = compiler.push([make_rule("a")], device)

        assert result.success is False
        assert result.error == "Timer push failed: slow"

    def test_existing_presets_not_reported(self, compiler, device):
        """Test rules that already hold valid IDs are not reported as new."""
        result = compiler.push([make_rule("a", preset=10)], device)
        assert result.rules_with_assigned_presets == []


class TestSyncService:
    """Tests for ScheduleSyncService."""

    def test_assigned_presets_written_back(self, device):
        """Test new preset IDs are recorded in the store."""
        store = ScheduleStore(initial_rules=[make_rule("a"), make_rule("b", preset=10)])
        service = ScheduleSyncService()

        result = service.sync(store, device)

        assert result.success is True
        assert store.get("a").device_preset_id == 11
        assert store.get("b").device_preset_id == 10

    def test_publishes_events(self, device):
        """Test completed and failed syncs are published."""
        bus = EventBus()
        received = []
        bus.subscribe(lambda e: received.append(e.type), EventFilter(source="sync"))
        store = ScheduleStore(
            initial_rules=[
                ScheduleRule(
                    id="off",
                    trigger=ClockTime(23, 0),
                    repeat_days=RepeatDays.every_day(),
                    action=PowerOff(),
                )
            ]
        )
        service = ScheduleSyncService(bus=bus)

        service.sync(store, device)
        service.sync(store, None)

        assert received == ["sync.completed", "sync.failed"]

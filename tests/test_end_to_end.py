"""
End-to-end flow: request -> rule -> store -> sync -> resolve -> enforce.
"""

from datetime import UTC, datetime

from lumina_schedule import EventBus, ScheduleStore
from lumina_schedule.core.models import (
    ClockTime,
    PowerOff,
    PowerOn,
    RepeatDays,
    RunPattern,
    ScheduleRule,
    SolarEvent,
    SolarKind,
)
from lumina_schedule.core.payload import DeviceState
from lumina_schedule.core.store import InMemoryDocumentStore
from lumina_schedule.modules.device import MockDeviceAdapter
from lumina_schedule.modules.enforcement import EnforcementService, ManualTicker, TickAction
from lumina_schedule.modules.intent import (
    ComplexityClassifier,
    RoutingInstruction,
    detect_conflicts,
)
from lumina_schedule.modules.resolver import ScheduleFinder
from lumina_schedule.modules.sync import ScheduleSyncService

LONDON = {"latitude": 51.5, "longitude": -0.12}
# Sunset in London on 2026-06-21 is a little after 20:20 UTC
JUST_AFTER_SUNSET = datetime(2026, 6, 21, 20, 45, tzinfo=UTC)


def sunset_pattern_rule():
    return ScheduleRule(
        id="sunset-glow",
        trigger=SolarEvent(SolarKind.SUNSET),
        repeat_days=RepeatDays.every_day(),
        action=RunPattern(
            name="Glow",
            payload=DeviceState.from_wire({"on": True, "bri": 180, "seg": [{"fx": 2}]}),
        ),
        created_by="classifier",
    )


def test_sunset_rule_synced_and_resolved():
    """Test a daily sunset rule compiles to a sunset timer and is active after sunset."""
    bus = EventBus()
    store = ScheduleStore(remote=InMemoryDocumentStore(), bus=bus, user_id="user-1")
    device = MockDeviceAdapter()

    store.add_rule(
        ScheduleRule(
            id="warm-sunset",
            trigger=SolarEvent(SolarKind.SUNSET),
            repeat_days=RepeatDays.every_day(),
            action=PowerOn(pattern="Warm White"),
        )
    )
    result = ScheduleSyncService(bus=bus).sync(store, device)

    assert result.success is True
    preset_id = store.get("warm-sunset").device_preset_id
    assert preset_id == 10
    assert device.presets[preset_id][0] == "Sunset Pattern: Warm White"
    assert device.config["timers"]["ins"] == [
        {"en": True, "hour": 25, "min": 0, "macro": preset_id, "dow": 127}
    ]

    finder = ScheduleFinder(**LONDON)
    assert finder.find_active(JUST_AFTER_SUNSET, store.rules).id == "warm-sunset"
    assert finder.find_active(JUST_AFTER_SUNSET.replace(hour=19), store.rules) is None


def test_enforcement_restores_sunset_pattern():
    """Test enforcement re-applies the synced pattern after drift."""
    store = ScheduleStore(initial_rules=[sunset_pattern_rule()])
    device = MockDeviceAdapter(DeviceState.from_wire({"on": True, "bri": 180, "seg": [{"fx": 0}]}))
    ScheduleSyncService().sync(store, device)

    service = EnforcementService(
        store,
        device,
        finder=ScheduleFinder(**LONDON),
        ticker=ManualTicker(),
    )
    result = service.tick(JUST_AFTER_SUNSET)

    assert result.action == TickAction.ENFORCED
    assert "effect mismatch" in result.reason
    assert device.state.primary_effect == 2


def test_request_classification_with_conflicts():
    """Test a simple request is ready to execute and its conflicts reach the hint."""
    store = ScheduleStore(
        initial_rules=[
            ScheduleRule(
                id="late-off",
                trigger=ClockTime(22, 0),
                off_trigger=ClockTime(23, 30),
                repeat_days=RepeatDays.every_day(),
                action=PowerOff(),
            )
        ]
    )
    classifier = ComplexityClassifier(store=store)

    result = classifier.classify("Turn off the lights at 11pm")
    assert result.routing == RoutingInstruction.READY_TO_EXECUTE
    assert result.existing_rule_count == 1

    proposed = ScheduleRule(
        id="eleven-off",
        trigger=ClockTime(23, 0),
        off_trigger=ClockTime(23, 45),
        repeat_days=RepeatDays.every_day(),
        action=PowerOff(),
    )
    conflicts = detect_conflicts([proposed], store.rules)
    hint = classifier.build_ai_context_hint(conflicts=conflicts)

    assert len(conflicts) == 1
    assert "CONFLICT WARNINGS:" in hint
    assert '"eleven-off" (23:00-23:45) overlaps with "late-off" (22:00-23:30)' in hint

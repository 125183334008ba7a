#!/usr/bin/env python3
"""
Quick example demonstrating lumina-schedule basic usage.

Run with: PYTHONPATH=src python3 example.py
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from lumina_schedule.core.bus import EventBus
from lumina_schedule.core.models import (
    ClockTime,
    RepeatDays,
    RunPattern,
    ScheduleRule,
    SolarEvent,
    SolarKind,
    Weekday,
)
from lumina_schedule.core.payload import DeviceState
from lumina_schedule.core.store import InMemoryDocumentStore, ScheduleStore
from lumina_schedule.modules.device import MockDeviceAdapter
from lumina_schedule.modules.enforcement import EnforcementService, ManualTicker
from lumina_schedule.modules.intent import ComplexityClassifier
from lumina_schedule.modules.resolver import ScheduleFinder
from lumina_schedule.modules.sync import ScheduleSyncService

print("=" * 60)
print("lumina-schedule Example")
print("=" * 60)

# 1. Kernel components
print("\n1. Creating store and event bus...")
bus = EventBus()
bus.subscribe(lambda e: print(f"   · event {e.type} {e.payload}"))
store = ScheduleStore(remote=InMemoryDocumentStore(), bus=bus, user_id="demo-user")
print(f"   ✓ Store created (persistent={store.is_persistent})")

# 2. Classify a request
print("\n2. Classifying a request...")
classifier = ComplexityClassifier(store=store)
result = classifier.classify("Chiefs colors at sunset every game day")
print(f"   ✓ {result.complexity.value} -> {result.routing.value}")
print(f"   ✓ Entities: {result.entities.to_dict()}")

# 3. Add rules
print("\n3. Adding rules...")
store.add_rule(
    ScheduleRule(
        id="game-day",
        trigger=SolarEvent(SolarKind.SUNSET, 15),
        off_trigger=ClockTime(23, 0),
        repeat_days=RepeatDays.of(Weekday.SUN),
        action=RunPattern(
            name="Chiefs Red",
            payload=DeviceState.from_wire(
                {"on": True, "bri": 200, "seg": [{"fx": 0, "col": [[227, 24, 55], [255, 184, 28]]}]}
            ),
        ),
        created_by="classifier",
        priority=70,
    )
)
print(f"   ✓ Rules: {[r.label for r in store.rules]}")

# 4. Sync to a controller
print("\n4. Syncing to controller...")
device = MockDeviceAdapter()
sync = ScheduleSyncService(bus=bus).sync(store, device)
print(f"   ✓ success={sync.success}, timers={sync.timer_count}")
print(f"   ✓ Timer table: {device.config['timers']['ins']}")

# 5. Resolve the active rule
print("\n5. Resolving active rule...")
finder = ScheduleFinder(latitude=39.1, longitude=-94.58)
now = datetime(2026, 10, 18, 20, 0, tzinfo=ZoneInfo("America/Chicago"))
active = finder.find_active(now, store.rules)
print(f"   ✓ Active at {now.isoformat()}: {active.label if active else None}")

# 6. One enforcement tick
print("\n6. Running one enforcement tick...")
enforcement = EnforcementService(store, device, finder=finder, ticker=ManualTicker(), bus=bus)
tick = enforcement.tick(now)
print(f"   ✓ {tick.action.value}: {tick.reason}")

print("\n" + "=" * 60)
print("Example complete!")
print("=" * 60)

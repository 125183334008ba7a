"""
Core components of the schedule engine.

This package contains:
- bus: Event Bus implementation
- payload: Typed controller state payloads
- models: Schedule rules, triggers and actions
- store: ScheduleStore and the remote document store contract
"""

from lumina_schedule.core.bus import Event, EventBus, EventFilter
from lumina_schedule.core.payload import DeviceState, Segment
from lumina_schedule.core.models import (
    WEEK_ORDER,
    ActionType,
    ClockTime,
    PowerOff,
    PowerOn,
    RepeatDays,
    RunPattern,
    ScheduleRule,
    SetBrightness,
    SolarEvent,
    SolarKind,
    Weekday,
)
from lumina_schedule.core.store import DocumentStore, InMemoryDocumentStore, ScheduleStore

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "DeviceState",
    "Segment",
    "ActionType",
    "ClockTime",
    "PowerOff",
    "PowerOn",
    "RepeatDays",
    "RunPattern",
    "ScheduleRule",
    "SetBrightness",
    "SolarEvent",
    "SolarKind",
    "Weekday",
    "WEEK_ORDER",
    "DocumentStore",
    "InMemoryDocumentStore",
    "ScheduleStore",
]

"""
lumina-schedule: an automated lighting schedule engine.

Turns schedule rules into controller presets and timers, works out which
rule is in effect at any instant, and keeps the lights on schedule:
- Schedule request classification (intent)
- Active-rule resolution with solar triggers and overnight windows
- Preset/timer sync for fixed-slot controllers
- Drift enforcement with manual-override grace periods
"""

from lumina_schedule.core.bus import Event, EventBus, EventFilter
from lumina_schedule.core.models import ScheduleRule
from lumina_schedule.core.store import ScheduleStore

__version__ = "0.1.0"

__all__ = [
    "Event",
    "EventBus",
    "EventFilter",
    "ScheduleRule",
    "ScheduleStore",
]

"""
Device sync: rules to controller presets and timers.

Each enabled rule becomes a stored preset plus one timer (two for an
on/off window). The controller has a fixed number of timer slots, so
rules are ordered by priority and the overflow is reported, not pushed.
"""

from .models import PresetError, SyncConfig, SyncResult, TimerEntry, WireTimerTable
from .compiler import (
    DAILY_MASK,
    PresetAssignment,
    ScheduleSyncCompiler,
    ScheduleSyncService,
    encode_dow_mask,
    encode_trigger,
    order_for_sync,
    shift_dow_mask,
    wraps_midnight,
)

__all__ = [
    "PresetError",
    "SyncConfig",
    "SyncResult",
    "TimerEntry",
    "WireTimerTable",
    "DAILY_MASK",
    "PresetAssignment",
    "ScheduleSyncCompiler",
    "ScheduleSyncService",
    "encode_dow_mask",
    "encode_trigger",
    "order_for_sync",
    "shift_dow_mask",
    "wraps_midnight",
]

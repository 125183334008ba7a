"""
Device sync compiler.

Turns the enabled rules into controller presets and a timer table and
pushes both in one logical operation:

    1. Order enabled rules (priority, then store order)
    2. Give every rule a preset ID from the user band
    3. Save each rule's device payload as its preset
    4. Compile a timer table that fits the hardware slots
    5. Push the timer table

The end timer of a window that crosses midnight fires on the following
day, so its day mask is shifted by one.

A failed preset save skips that rule but never aborts the batch. Presets
already saved stay on the device if the timer push fails.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from ...core.bus import Event, EventBus
from ...core.models import ClockTime, RepeatDays, ScheduleRule, SolarEvent, SolarKind, Trigger
from ..device.adapter import DeviceAdapter
from .models import PresetError, SyncConfig, SyncResult, TimerEntry, WireTimerTable

if TYPE_CHECKING:
    from ...core.store import ScheduleStore

logger = logging.getLogger(__name__)

DAILY_MASK = 0x7F


# =============================================================================
# Encoding
# =============================================================================


def encode_dow_mask(repeat_days: RepeatDays) -> int:
    """Encode repeat days as the controller's 7-bit day mask (127 = daily)."""
    if repeat_days.daily:
        return DAILY_MASK
    mask = 0
    for day in repeat_days.days:
        mask |= day.bit
    return mask


def shift_dow_mask(mask: int) -> int:
    """Move every day in a mask to the following day (Saturday wraps to Sunday)."""
    return ((mask << 1) | (mask >> 6)) & DAILY_MASK


# Nominal clock positions for solar events; only used to decide whether a
# window crosses midnight, which the controller cannot resolve for us.
_NOMINAL_SUNRISE = 6 * 60
_NOMINAL_SUNSET = 18 * 60


def _nominal_minutes(trigger: Trigger) -> int:
    if isinstance(trigger, ClockTime):
        return trigger.hour * 60 + trigger.minute
    base = _NOMINAL_SUNRISE if trigger.kind == SolarKind.SUNRISE else _NOMINAL_SUNSET
    return base + trigger.offset_minutes


def wraps_midnight(rule: ScheduleRule) -> bool:
    """True when the rule's window ends on the day after it starts."""
    if rule.off_trigger is None:
        return False
    return _nominal_minutes(rule.off_trigger) <= _nominal_minutes(rule.trigger)


def encode_trigger(trigger: Trigger, config: Optional[SyncConfig] = None) -> Tuple[int, int]:
    """
    Encode a trigger as a (hour, minute) timer pair.

    Solar triggers use the sentinel hours with the offset in `minute`,
    clamped to the controller's offset range.
    """
    config = config or SyncConfig()

    if isinstance(trigger, ClockTime):
        return trigger.hour, trigger.minute

    if isinstance(trigger, SolarEvent):
        hour = config.sunrise_hour if trigger.kind == SolarKind.SUNRISE else config.sunset_hour
        limit = config.max_solar_offset
        offset = max(-limit, min(limit, trigger.offset_minutes))
        if offset != trigger.offset_minutes:
            logger.warning(
                f"{trigger.label} offset clamped to {offset:+d} minutes for the controller"
            )
        return hour, offset

    raise ValueError(f"Unknown trigger type: {type(trigger).__name__}")


def order_for_sync(rules: Sequence[ScheduleRule]) -> List[ScheduleRule]:
    """Enabled rules by priority (highest first), then store order."""
    enabled = [r for r in rules if r.enabled]
    return sorted(enabled, key=lambda r: -r.priority)


@dataclass
class PresetAssignment:
    """Rules with preset IDs, plus what changed."""

    rules: List[ScheduleRule] = field(default_factory=list)
    newly_assigned: List[ScheduleRule] = field(default_factory=list)
    unassigned: List[str] = field(default_factory=list)


# =============================================================================
# Compiler
# =============================================================================


class ScheduleSyncCompiler:
    """
    Compiles rules to the controller's preset/timer model and pushes them.

    Stateless apart from its config; safe to reuse.
    """

    def __init__(self, config: Optional[SyncConfig] = None) -> None:
        self.config = config or SyncConfig()

    def assign_presets(self, rules: Sequence[ScheduleRule]) -> PresetAssignment:
        """
        Give every enabled rule a unique preset ID from the user band.

        Rules keep a valid existing ID; the first holder of a duplicated
        ID keeps it. Rules left over once the band is exhausted are
        reported in `unassigned`.
        """
        ordered = order_for_sync(rules)
        band = self.config.preset_band
        result = PresetAssignment()

        held = set()
        keeps = set()
        for rule in ordered:
            preset_id = rule.device_preset_id
            if preset_id is not None and preset_id in band and preset_id not in held:
                held.add(preset_id)
                keeps.add(rule.id)

        free = [pid for pid in band if pid not in held]

        for rule in ordered:
            if rule.id in keeps:
                result.rules.append(rule)
                continue
            if not free:
                logger.warning(f"Preset band exhausted; rule {rule.id} not synced")
                result.unassigned.append(rule.id)
                continue
            preset_id = free.pop(0)
            if rule.device_preset_id is not None:
                logger.debug(
                    f"Rule {rule.id} preset {rule.device_preset_id} invalid or taken, "
                    f"reassigning to {preset_id}"
                )
            updated = rule.with_preset(preset_id)
            result.rules.append(updated)
            result.newly_assigned.append(updated)

        return result

    def compile(
        self,
        rules: Sequence[ScheduleRule],
        assignment: Optional[PresetAssignment] = None,
    ) -> WireTimerTable:
        """
        Build the timer table for the enabled rules.

        Rules without a preset get a provisional one from the user band
        (see `assign_presets`); pass `assignment` to reuse an existing one.
        A rule with an end trigger needs two slots; if only one is left the
        rule is skipped whole and later single-slot rules may still fit.
        """
        if assignment is None:
            assignment = self.assign_presets(rules)

        table = self._build_table(assignment.rules)
        table.dropped_rules = assignment.unassigned + table.dropped_rules
        return table

    def _build_table(self, rules: Sequence[ScheduleRule]) -> WireTimerTable:
        table = WireTimerTable()
        slots = self.config.timer_slots

        for rule in order_for_sync(rules):
            needed = 2 if rule.has_window else 1
            if len(table.entries) + needed > slots:
                logger.warning(f"Timer slots exhausted; rule {rule.id} not synced")
                table.dropped_rules.append(rule.id)
                continue

            dow = encode_dow_mask(rule.repeat_days)
            hour, minute = encode_trigger(rule.trigger, self.config)
            table.entries.append(
                TimerEntry(hour, minute, rule.device_preset_id, dow, rule_id=rule.id)
            )

            if rule.off_trigger is not None:
                end_dow = shift_dow_mask(dow) if wraps_midnight(rule) else dow
                hour, minute = encode_trigger(rule.off_trigger, self.config)
                table.entries.append(
                    TimerEntry(
                        hour, minute, self.config.off_macro, end_dow, rule_id=rule.id, is_end=True
                    )
                )

        for i, entry in enumerate(table.entries):
            logger.debug(f"Timer {i}: {entry.to_wire()} ({entry.rule_id})")
        return table

    def push(
        self,
        rules: Sequence[ScheduleRule],
        device: Optional[DeviceAdapter],
    ) -> SyncResult:
        """
        Save presets and push the timer table to a controller.

        Returns:
            SyncResult; never raises for device failures
        """
        if device is None:
            logger.warning("Sync requested with no device selected")
            return SyncResult(success=False, error="No device selected")

        assignment = self.assign_presets(rules)
        preset_errors: List[PresetError] = []
        saved: List[ScheduleRule] = []

        for rule in assignment.rules:
            preset_id = rule.device_preset_id
            try:
                ok = device.save_preset(preset_id, rule.action.device_payload, rule.label)
            except Exception as e:
                logger.error(f"Saving preset {preset_id} for {rule.id} raised: {e}", exc_info=True)
                preset_errors.append(PresetError(rule.id, preset_id, str(e)))
                continue
            if not ok:
                logger.warning(f"Controller rejected preset {preset_id} for rule {rule.id}")
                preset_errors.append(PresetError(rule.id, preset_id, "preset save failed"))
                continue
            saved.append(rule)

        table = self._build_table(saved)
        dropped = (
            assignment.unassigned
            + [e.rule_id for e in preset_errors]
            + table.dropped_rules
        )

        result = SyncResult(
            success=False,
            preset_errors=preset_errors,
            rules_with_assigned_presets=assignment.newly_assigned,
            dropped_rules=dropped,
            timer_count=len(table),
        )

        try:
            pushed = device.apply_config(table.to_wire())
        except Exception as e:
            logger.error(f"Timer push raised: {e}", exc_info=True)
            result.error = f"Timer push failed: {e}"
            return result

        if not pushed:
            logger.warning("Controller rejected the timer table")
            result.error = "Timer push failed"
            return result

        result.success = True
        logger.info(
            f"Synced {len(table)} timers for {len(saved)} rules "
            f"({len(preset_errors)} preset errors, {len(dropped)} rules not synced)"
        )
        return result


class ScheduleSyncService:
    """
    Pushes a store's rules to a controller and records assigned presets.

    The store stays the only writer of `device_preset_id`: newly assigned
    IDs are handed back through `ScheduleStore.update_rule`.
    """

    def __init__(
        self,
        compiler: Optional[ScheduleSyncCompiler] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.compiler = compiler or ScheduleSyncCompiler()
        self._bus = bus

    def sync(self, store: "ScheduleStore", device: Optional[DeviceAdapter]) -> SyncResult:
        result = self.compiler.push(store.rules, device)

        for rule in result.rules_with_assigned_presets:
            if not store.update_rule(rule):
                logger.warning(f"Could not record preset {rule.device_preset_id} for {rule.id}")

        if self._bus:
            event_type = "sync.completed" if result.success else "sync.failed"
            self._bus.publish(Event(type=event_type, source="sync", payload=result.to_dict()))
        return result

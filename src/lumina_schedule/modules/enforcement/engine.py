"""The enforcement state machine.

Polls the controller, compares its live state to the payload of the rule
the resolver says is active, and re-applies that payload when they
drift apart. A recorded manual override suspends correction for the
mode's grace period.

States:
    DISABLED      mode is disabled; the poll loop never starts
    WATCHING      idle, no override pending
    GRACE_PERIOD  override recorded, still inside the grace window
    ENFORCING     a correction is being written to the controller

Ticks are serialized: a tick that arrives while another is running is
skipped, never run concurrently.

Licensed under MIT License
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

from ...core.bus import Event, EventBus
from ...core.models import ScheduleRule
from ...core.payload import DeviceState
from ...core.store import ScheduleStore
from ..device.adapter import DeviceAdapter
from ..resolver.finder import ScheduleFinder
from .models import (
    EnforcementConfig,
    EnforcementMode,
    EnforcementRuntimeState,
    EnforcementState,
    TickAction,
    TickResult,
)
from .ticker import ThreadTicker, Ticker

_LOGGER = logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _aware(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC, as the resolver does."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class EnforcementService:
    """Keeps the controller on schedule."""

    def __init__(
        self,
        store: ScheduleStore,
        device: DeviceAdapter | None,
        finder: ScheduleFinder | None = None,
        config: EnforcementConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        ticker: Ticker | None = None,
        bus: EventBus | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Source of schedule rules.
            device: Controller to watch (None = no device selected).
            finder: Resolver used to pick the active rule (carries coordinates).
            config: Enforcement timings; defaults to soft mode.
            clock: Returns the current aware datetime.
            ticker: Periodic tick source; defaults to a daemon thread.
            bus: Optional bus for enforcement.* events.
        """
        self.store = store
        self.device = device
        self.finder = finder or ScheduleFinder()
        self.config = config or EnforcementConfig()
        self._clock = clock or _local_now
        self._ticker = ticker or ThreadTicker()
        self._bus = bus

        self._runtime = EnforcementRuntimeState(mode=self.config.mode)
        self._state = self._idle_state()
        self._tick_lock = threading.Lock()
        self._runtime_lock = threading.Lock()
        self._start_requested = False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> EnforcementState:
        return self._state

    @property
    def runtime(self) -> EnforcementRuntimeState:
        with self._runtime_lock:
            return self._runtime

    @property
    def mode(self) -> EnforcementMode:
        return self.config.mode

    @property
    def is_running(self) -> bool:
        return self._ticker.is_running

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> bool:
        """Start polling.

        Returns:
            False if the mode is disabled (the loop is not started).
        """
        self._start_requested = True
        with self._runtime_lock:
            self._runtime = EnforcementRuntimeState(mode=self.config.mode)
        self._state = self._idle_state()

        if self.config.mode == EnforcementMode.DISABLED:
            _LOGGER.info("Schedule enforcement disabled, not starting")
            return False

        self._ticker.start(self.config.poll_interval, self._on_tick)
        _LOGGER.info(
            f"Schedule enforcement started: mode={self.config.mode.value}, "
            f"interval={self.config.poll_interval}"
        )
        return True

    def stop(self) -> None:
        """Stop polling and discard runtime state."""
        self._start_requested = False
        self._ticker.stop()
        with self._runtime_lock:
            self._runtime = EnforcementRuntimeState(mode=self.config.mode)
        self._state = self._idle_state()
        _LOGGER.info("Schedule enforcement stopped")

    def set_mode(self, mode: EnforcementMode) -> None:
        """Switch mode, applying its default timings.

        The loop is restarted when it was running, or started when `start()`
        had been requested while the mode was disabled.
        """
        was_running = self.is_running
        if was_running:
            self._ticker.stop()
        self.config = replace(
            EnforcementConfig.for_mode(mode),
            cooldown=self.config.cooldown,
            brightness_tolerance=self.config.brightness_tolerance,
        )
        _LOGGER.info(f"Schedule enforcement mode set to {mode.value}")
        if was_running or self._start_requested:
            self.start()
        else:
            self._state = self._idle_state()

    def record_manual_override(self, now: datetime | None = None) -> None:
        """Note that the user changed the lights by hand."""
        now = _aware(now or self._clock())
        with self._runtime_lock:
            self._runtime = replace(self._runtime, last_manual_override_at=now)
        if self.config.mode != EnforcementMode.DISABLED:
            self._state = EnforcementState.GRACE_PERIOD
        _LOGGER.info(f"Manual override recorded at {now.isoformat()}")
        self._publish("enforcement.override_recorded", {"at": now.isoformat()})

    # =========================================================================
    # Tick
    # =========================================================================

    def _on_tick(self) -> None:
        self.tick()

    def tick(self, now: datetime | None = None) -> TickResult:
        """Run one poll."""
        if not self._tick_lock.acquire(blocking=False):
            _LOGGER.debug("Previous enforcement tick still running, skipping")
            return self._result(TickAction.SKIPPED, "previous tick still running")
        try:
            return self._tick(_aware(now or self._clock()))
        finally:
            self._tick_lock.release()

    def _tick(self, now: datetime) -> TickResult:
        if self.config.mode == EnforcementMode.DISABLED:
            self._state = EnforcementState.DISABLED
            return self._result(TickAction.DISABLED, "enforcement disabled")

        runtime = self.runtime

        if runtime.last_manual_override_at is not None:
            elapsed = now - runtime.last_manual_override_at
            if elapsed < self.config.grace_period:
                self._state = EnforcementState.GRACE_PERIOD
                _LOGGER.debug(f"In grace period ({elapsed} of {self.config.grace_period})")
                return self._result(TickAction.GRACE_PERIOD, f"override {elapsed} ago")
            self._state = EnforcementState.WATCHING

        if runtime.last_enforcement_at is not None:
            since = now - runtime.last_enforcement_at
            if since < self.config.cooldown:
                _LOGGER.debug(f"Too soon since last enforcement ({since})")
                return self._result(TickAction.COOLDOWN, f"last enforcement {since} ago")

        if self.device is None:
            return self._result(TickAction.ERROR, "no device selected")

        rule = self.finder.find_active(now, self.store.rules)
        if rule is None:
            _LOGGER.debug("No active schedule")
            return self._result(TickAction.NO_ACTIVE_RULE, "no active rule")

        intended = rule.action.device_payload
        if not _is_comparable(intended):
            _LOGGER.debug(f"Rule {rule.id} has no payload to compare")
            return self._result(TickAction.NO_PAYLOAD, "no comparable payload", rule.id)

        try:
            current = self.device.get_state()
        except Exception as e:
            _LOGGER.error(f"Error reading device state: {e}", exc_info=True)
            return self._result(TickAction.ERROR, f"read failed: {e}", rule.id)

        if current is None:
            _LOGGER.warning("Device state unavailable")
            return self._result(TickAction.ERROR, "device state unavailable", rule.id)

        mismatch = find_mismatch(current, intended, self.config.brightness_tolerance)
        if mismatch is None:
            _LOGGER.debug(f"State matches rule {rule.id}")
            return self._result(TickAction.IN_SYNC, "state matches schedule", rule.id)

        _LOGGER.info(f"Schedule drift on rule {rule.id}: {mismatch}")
        return self._enforce(rule, intended, mismatch, now)

    def _enforce(
        self,
        rule: ScheduleRule,
        intended: DeviceState,
        mismatch: str,
        now: datetime,
    ) -> TickResult:
        self._state = EnforcementState.ENFORCING
        try:
            success = self.device.apply_json(intended)
            if not success and rule.device_preset_id is not None:
                _LOGGER.debug(f"Payload rejected, loading preset {rule.device_preset_id}")
                success = self.device.load_preset(rule.device_preset_id)
        except Exception as e:
            _LOGGER.error(f"Exception during enforcement: {e}", exc_info=True)
            self._state = EnforcementState.WATCHING
            return self._result(TickAction.ERROR, f"apply failed: {e}", rule.id)

        if not success:
            _LOGGER.warning(f"Failed to enforce rule {rule.id}")
            self._state = EnforcementState.WATCHING
            return self._result(TickAction.FAILED, mismatch, rule.id)

        with self._runtime_lock:
            self._runtime = replace(
                self._runtime,
                last_enforcement_at=now,
                last_manual_override_at=None,
            )
        self._state = EnforcementState.WATCHING
        _LOGGER.info(f"Enforced schedule rule {rule.id} ({rule.label})")
        self._publish("enforcement.applied", {"mismatch": mismatch}, rule.id)
        return self._result(TickAction.ENFORCED, mismatch, rule.id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _idle_state(self) -> EnforcementState:
        if self.config.mode == EnforcementMode.DISABLED:
            return EnforcementState.DISABLED
        if self._runtime.last_manual_override_at is not None:
            return EnforcementState.GRACE_PERIOD
        return EnforcementState.WATCHING

    def _publish(self, event_type: str, payload: dict, rule_id: str | None = None) -> None:
        if self._bus:
            self._bus.publish(
                Event(type=event_type, source="enforcement", rule_id=rule_id, payload=payload)
            )

    def _result(self, action: TickAction, reason: str, rule_id: str | None = None) -> TickResult:
        return TickResult(action=action, state=self._state, reason=reason, rule_id=rule_id)


def _is_comparable(payload: DeviceState) -> bool:
    return payload.on is not None or payload.bri is not None or payload.primary_effect is not None


def find_mismatch(current: DeviceState, intended: DeviceState, brightness_tolerance: int) -> str | None:
    """Describe the first field where live state drifts from the intended payload.

    Compares power, then brightness (within tolerance), then the first
    segment's effect when both sides carry segments.

    Returns:
        Description of the mismatch, or None if the state matches.
    """
    if intended.on is not None and current.on != intended.on:
        return f"power mismatch (current={current.on}, scheduled={intended.on})"

    if intended.bri is not None and current.bri is not None:
        if abs(current.bri - intended.bri) > brightness_tolerance:
            return f"brightness mismatch (current={current.bri}, scheduled={intended.bri})"

    if current.seg and intended.seg:
        scheduled_fx = intended.primary_effect
        if scheduled_fx is not None and current.primary_effect != scheduled_fx:
            return f"effect mismatch (current={current.primary_effect}, scheduled={scheduled_fx})"

    return None

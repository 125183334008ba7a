"""Periodic tick sources for the enforcement loop.

The service never sleeps on its own; a Ticker calls it back. Production
code uses ThreadTicker, tests use ManualTicker and fire ticks by hand.

Licensed under MIT License
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import timedelta

_LOGGER = logging.getLogger(__name__)

TickCallback = Callable[[], None]


class Ticker(ABC):
    """Calls a callback at a fixed interval until stopped."""

    @abstractmethod
    def start(self, interval: timedelta, callback: TickCallback) -> None:
        """Start ticking (restarts if already running)."""

    @abstractmethod
    def stop(self) -> None:
        """Stop ticking. Safe to call when not running."""

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """True while ticks are being delivered."""


class ThreadTicker(Ticker):
    """Ticker backed by a daemon thread."""

    def __init__(self, name: str = "schedule-enforcement") -> None:
        self._name = name
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval: timedelta, callback: TickCallback) -> None:
        self.stop()
        self._stop_event = threading.Event()
        stop_event = self._stop_event
        seconds = interval.total_seconds()

        def run() -> None:
            while not stop_event.wait(seconds):
                try:
                    callback()
                except Exception as e:
                    _LOGGER.error(f"Tick callback failed: {e}", exc_info=True)

        self._thread = threading.Thread(target=run, name=self._name, daemon=True)
        self._thread.start()
        _LOGGER.debug(f"Ticker {self._name} started every {seconds:.0f}s")

    def stop(self) -> None:
        if self._thread is None:
            return
        self._stop_event.set()
        if self._thread is not threading.current_thread():
            self._thread.join(timeout=5)
        self._thread = None
        _LOGGER.debug(f"Ticker {self._name} stopped")


class ManualTicker(Ticker):
    """Ticker driven by explicit fire() calls (for tests)."""

    def __init__(self) -> None:
        self.interval: timedelta | None = None
        self._callback: TickCallback | None = None

    @property
    def is_running(self) -> bool:
        return self._callback is not None

    def start(self, interval: timedelta, callback: TickCallback) -> None:
        self.interval = interval
        self._callback = callback

    def stop(self) -> None:
        self._callback = None

    def fire(self) -> None:
        """Deliver one tick if running."""
        if self._callback is not None:
            self._callback()

"""
Purpose: The polling "heartbeat" for an active request.
What it does:
Calls a tick callback every `interval_s` seconds between start() and stop().

Two implementations with the same surface:
- IntervalScheduler: real time, background thread.
- ManualScheduler: virtual clock, ticks only when advance() is called.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[], object]


class IntervalScheduler:
    """
    Real-time scheduler.

    The timer thread only waits; each tick runs on its own short-lived thread
    so a slow callback does not push back the following ticks. A tick that
    comes due while the previous one is still running is skipped.
    """

    def __init__(self, interval_s: float):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.interval_s = interval_s
        self._callback: Optional[TickCallback] = None
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._tick_thread: Optional[threading.Thread] = None
        self.skipped_ticks = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stopped.is_set()

    def start(self, callback: TickCallback) -> None:
        if self._thread is not None:
            raise RuntimeError("scheduler already started")
        self._callback = callback
        self._thread = threading.Thread(target=self._run, name="offer-poll-timer", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        # never joins: stop() may be called from inside a tick
        self._stopped.set()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval_s):
            if self._tick_thread is not None and self._tick_thread.is_alive():
                self.skipped_ticks += 1
                logger.debug("Previous tick still running, skipping this one")
                continue
            self._tick_thread = threading.Thread(target=self._fire, name="offer-poll-tick", daemon=True)
            self._tick_thread.start()

    def _fire(self) -> None:
        if self._stopped.is_set() or self._callback is None:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Scheduled tick failed")


class ManualScheduler:
    """
    Virtual-clock scheduler for tests and simulations.

    advance(seconds) fires one tick, synchronously, for every interval
    boundary crossed while the scheduler is started.
    """

    def __init__(self, interval_s: float):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.interval_s = interval_s
        self.now = 0.0
        self.tick_count = 0
        self._callback: Optional[TickCallback] = None
        self._next_tick_at: Optional[float] = None

    @property
    def running(self) -> bool:
        return self._next_tick_at is not None

    def start(self, callback: TickCallback) -> None:
        if self.running:
            raise RuntimeError("scheduler already started")
        self._callback = callback
        self._next_tick_at = self.now + self.interval_s

    def stop(self) -> None:
        self._next_tick_at = None
        self._callback = None

    def advance(self, seconds: float) -> int:
        """Move the clock forward; returns how many ticks fired."""
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")

        target = self.now + seconds
        fired = 0
        while self._next_tick_at is not None and self._next_tick_at <= target:
            self.now = self._next_tick_at
            self._next_tick_at += self.interval_s
            callback = self._callback
            self.tick_count += 1
            fired += 1
            callback()
        self.now = target
        return fired

"""
Countdown clocks for timed sessions

A clock only emits events. It never submits anything itself; the session
that owns it decides what expiry means.
"""
import threading
from typing import Callable, List, Optional

from examportal.core.exceptions import InvalidConfiguration


TickListener = Callable[[int], None]
ExpireListener = Callable[[], None]


class CountdownClock:
    """Countdown driven explicitly through advance().

    Each advanced unit emits one tick carrying the remaining count. The
    unit that brings the count to zero also emits expiry, exactly once,
    after which the clock is stopped for good.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._tick_listeners: List[TickListener] = []
        self._expire_listeners: List[ExpireListener] = []
        self._remaining: Optional[int] = None
        self._started = False
        self._expired = False
        self._cancelled = False

    def on_tick(self, listener: TickListener):
        self._tick_listeners.append(listener)

    def on_expire(self, listener: ExpireListener):
        self._expire_listeners.append(listener)

    @property
    def remaining(self) -> Optional[int]:
        return self._remaining

    @property
    def running(self) -> bool:
        return self._started and not (self._expired or self._cancelled)

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self, duration_units: int):
        if isinstance(duration_units, bool) or not isinstance(duration_units, int) or duration_units < 1:
            raise InvalidConfiguration(f"Clock duration must be a positive integer, got {duration_units!r}")
        with self._lock:
            if self._started:
                raise InvalidConfiguration("Clock has already been started")
            self._started = True
            self._remaining = duration_units

    def advance(self, units: int = 1) -> bool:
        """Let `units` time units elapse. Returns whether the clock is still running."""
        for _ in range(units):
            with self._lock:
                if not self.running:
                    return False
                self._remaining -= 1
                remaining = self._remaining

            for listener in list(self._tick_listeners):
                listener(remaining)

            if remaining == 0:
                with self._lock:
                    # cancelled from inside a tick listener
                    if self._cancelled:
                        return False
                    self._expired = True
                for listener in list(self._expire_listeners):
                    listener()
                return False
        return self.running

    def cancel(self):
        with self._lock:
            if self._expired or self._cancelled:
                return
            self._cancelled = True


class ThreadedCountdownClock(CountdownClock):
    """Countdown that advances itself once every `unit_seconds` on a daemon thread"""

    def __init__(self, unit_seconds: float):
        super().__init__()
        if unit_seconds <= 0:
            raise InvalidConfiguration(f"Clock unit must be positive, got {unit_seconds!r}")
        self.unit_seconds = unit_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, duration_units: int):
        super().start(duration_units)
        self._thread = threading.Thread(target=self._run, name="countdown-clock", daemon=True)
        self._thread.start()

    def _run(self):
        while not self._stop_event.wait(self.unit_seconds):
            if not self.advance():
                break

    def cancel(self):
        super().cancel()
        self._stop_event.set()

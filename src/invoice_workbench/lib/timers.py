"""
Schedule/cancel primitive used by the autosave debouncer.

``ThreadingScheduler`` is the default; tests pass a ``ManualScheduler`` and
advance time explicitly.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs callbacks on ``threading.Timer`` daemon threads."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


@dataclass
class ManualTimer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class ManualScheduler:
    """Scheduler driven by ``advance(seconds)``; nothing fires on its own."""

    now: float = 0.0
    timers: list[ManualTimer] = field(default_factory=list)

    def schedule(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(due=self.now + delay, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire due timers. Returns the count fired."""
        self.now += seconds
        fired = 0
        for timer in sorted(self.pending, key=lambda t: t.due):
            if timer.due <= self.now:
                timer.fired = True
                timer.callback()
                fired += 1
        return fired

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

LOGGER = logging.getLogger("testdash.scheduler")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything able to call ``callback`` every ``interval`` seconds until cancelled."""

    def every(self, interval: float, callback: Callable[[], None], *, name: Optional[str] = None) -> TimerHandle: ...


class _RepeatingTimer:
    """Fires ``callback`` on a fresh daemon thread at every tick.

    Ticks are not mutually exclusive: a callback that outlives the interval
    does not delay the next tick.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: str) -> None:
        self._interval = interval
        self._callback = callback
        self._name = name
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)

    def start(self) -> "_RepeatingTimer":
        self._thread.start()
        return self

    def _loop(self) -> None:
        while not self._stop.wait(self._interval):
            worker = threading.Thread(target=self._fire, name=f"{self._name}-tick", daemon=True)
            worker.start()

    def _fire(self) -> None:
        try:
            self._callback()
        except Exception:
            LOGGER.exception("Unhandled error in timer %s", self._name)

    def cancel(self) -> None:
        self._stop.set()


class ThreadingScheduler:
    """Default scheduler backed by daemon threads."""

    def every(self, interval: float, callback: Callable[[], None], *, name: Optional[str] = None) -> TimerHandle:
        if interval <= 0:
            raise ValueError("Timer interval must be a positive number of seconds.")
        return _RepeatingTimer(interval, callback, name or "testdash-timer").start()


_default_scheduler: Optional[ThreadingScheduler] = None


def get_scheduler() -> ThreadingScheduler:
    global _default_scheduler
    if _default_scheduler is None:
        _default_scheduler = ThreadingScheduler()
    return _default_scheduler

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class ContextChange(str, Enum):
    WAKE = "wake"
    CLOCK_CHANGED = "clock_changed"
    TIMEZONE_CHANGED = "timezone_changed"
    DAY_CHANGED = "day_changed"


ContextListener = Callable[[ContextChange], None]
WallClock = Callable[[], datetime]
MonotonicClock = Callable[[], float]


@dataclass(frozen=True)
class _Sample:
    wall: datetime
    monotonic: float
    utc_offset: timedelta | None
    zone_name: str | None
    day: date


def local_now() -> datetime:
    # Pick up TZ changes made after the process started.
    if hasattr(time, "tzset"):
        time.tzset()
    return datetime.now().astimezone()


class ContextWatcher:
    """Polls the wall clock and reports discontinuities that invalidate a pending check-in.

    Sleep/wake and manual clock changes show up as a divergence between
    wall-clock and monotonic elapsed time. A forward divergence larger than a
    whole poll interval is reported as WAKE, any other divergence as
    CLOCK_CHANGED. Zone and date changes are compared between samples.
    """

    def __init__(
        self,
        poll_seconds: float = 30.0,
        tolerance_seconds: float = 5.0,
        wall_clock: WallClock | None = None,
        monotonic: MonotonicClock | None = None,
    ):
        self._poll_seconds = max(1.0, float(poll_seconds))
        self._tolerance_seconds = max(0.0, float(tolerance_seconds))
        self._wall_clock = wall_clock or local_now
        self._monotonic = monotonic or time.monotonic
        self._listeners: list[ContextListener] = []
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._last: _Sample | None = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, listener: ContextListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def start(self) -> bool:
        with self._lock:
            if self.is_running:
                return False
            self._last = self._sample()
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run_watch_loop,
                name="focus-support-context",
                daemon=True,
            )
            self._thread.start()
            return True

    def stop(self, timeout_seconds: float = 5.0) -> None:
        with self._lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()

        thread.join(timeout=timeout_seconds)

        with self._lock:
            if self._thread is thread:
                self._thread = None

    def check_once(self) -> list[ContextChange]:
        current = self._sample()
        previous = self._last
        self._last = current
        if previous is None:
            return []

        changes = self._compare(previous, current)
        for change in changes:
            logger.info("Scheduling context changed: %s", change.value)
            self._emit(change)
        return changes

    def _compare(self, previous: _Sample, current: _Sample) -> list[ContextChange]:
        changes: list[ContextChange] = []

        wall_elapsed = (current.wall - previous.wall).total_seconds()
        monotonic_elapsed = current.monotonic - previous.monotonic
        drift = wall_elapsed - monotonic_elapsed
        overslept = monotonic_elapsed > self._poll_seconds * 2 + self._tolerance_seconds

        if drift > self._poll_seconds or overslept:
            changes.append(ContextChange.WAKE)
        elif abs(drift) > self._tolerance_seconds:
            changes.append(ContextChange.CLOCK_CHANGED)

        if (current.utc_offset, current.zone_name) != (previous.utc_offset, previous.zone_name):
            changes.append(ContextChange.TIMEZONE_CHANGED)

        if current.day != previous.day:
            changes.append(ContextChange.DAY_CHANGED)

        return changes

    def _emit(self, change: ContextChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:  # noqa: BLE001
                logger.exception("Context listener failed for %s", change.value)

    def _sample(self) -> _Sample:
        wall = self._wall_clock()
        return _Sample(
            wall=wall,
            monotonic=self._monotonic(),
            utc_offset=wall.utcoffset(),
            zone_name=wall.tzname(),
            day=wall.date(),
        )

    def _run_watch_loop(self) -> None:
        while not self._stop_event.wait(self._poll_seconds):
            try:
                self.check_once()
            except Exception:  # noqa: BLE001
                logger.exception("Context watcher poll failed")

from __future__ import annotations

import logging
import random
import threading
from datetime import datetime, timedelta
from functools import partial
from typing import Callable

from .context import ContextChange, ContextWatcher, local_now
from .settings import SettingsRepository
from .window import next_allowed_instant

logger = logging.getLogger(__name__)

MIN_WAIT_SECONDS = 1.0
RETRY_DELAY = timedelta(minutes=1)

Task = Callable[[], None]
Dispatch = Callable[[Task], None]
Clock = Callable[[], datetime]
TimerFactory = Callable[..., threading.Timer]


def run_inline(task: Task) -> None:
    task()


class CheckinScheduler:
    """Keeps exactly one one-shot timer armed for the next automatic check-in.

    Timer callbacks and context-change signals arrive on foreign threads and
    are handed to ``dispatch`` so that all recomputation happens on the
    owner's serial context. Each arm bumps a generation counter; a callback
    from a replaced timer sees a stale generation and does nothing.
    """

    def __init__(
        self,
        settings: SettingsRepository,
        on_fire: Task,
        dispatch: Dispatch | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self._settings = settings
        self._on_fire = on_fire
        self._dispatch = dispatch or run_inline
        self._clock = clock or local_now
        self._rng = rng
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._target: datetime | None = None
        self._generation = 0
        self._closed = False
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def is_armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    @property
    def target(self) -> datetime | None:
        with self._lock:
            return self._target

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    def schedule_next(self) -> datetime | None:
        if self.is_closed:
            logger.debug("Scheduler is shut down; not re-arming")
            return None

        now = self._clock()
        try:
            window = self._settings.get_notification_window()
            target = next_allowed_instant(now, window, self._rng)
        except Exception:  # noqa: BLE001
            logger.exception("Could not compute next check-in; retrying in %s", RETRY_DELAY)
            target = now + RETRY_DELAY

        wait_seconds = max(MIN_WAIT_SECONDS, (target - now).total_seconds())

        with self._lock:
            if self._closed:
                return None
            self._cancel_locked()
            self._generation += 1
            timer = self._timer_factory(wait_seconds, self._on_timer, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            self._target = target
            timer.start()

        logger.info("Next check-in at %s (in %.0fs)", target.isoformat(timespec="seconds"), wait_seconds)
        return target

    def attach(self, watcher: ContextWatcher) -> None:
        unsubscribe = watcher.subscribe(self._on_context_change)
        with self._lock:
            self._unsubscribers.append(unsubscribe)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            self._cancel_locked()
            self._generation += 1
            unsubscribers = self._unsubscribers
            self._unsubscribers = []

        for unsubscribe in unsubscribers:
            unsubscribe()
        logger.info("Check-in scheduler stopped")

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._target = None

    def _on_timer(self, generation: int) -> None:
        self._dispatch(partial(self._fire, generation))

    def _fire(self, generation: int) -> None:
        with self._lock:
            if self._closed or generation != self._generation:
                return
            self._timer = None
            self._target = None

        logger.info("Check-in due")
        # Armed again before the emitter runs; the emitter may block.
        self.schedule_next()
        try:
            self._on_fire()
        except Exception:  # noqa: BLE001
            logger.exception("Check-in signal failed")

    def _on_context_change(self, change: ContextChange) -> None:
        self._dispatch(partial(self._recompute_after, change))

    def _recompute_after(self, change: ContextChange) -> None:
        if self.is_closed:
            return
        logger.info("Recomputing next check-in after %s", change.value)
        self.schedule_next()

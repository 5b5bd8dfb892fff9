from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .context import ContextWatcher, local_now
from .errors import LogWriteError
from .logstore import LogStore
from .models import CheckinState, DailyLogBreakdown, LogEntry, NotificationWindow, StatsSnapshot
from .questions import classify_response, pick_question
from .scheduler import CheckinScheduler, Clock, Dispatch, TimerFactory
from .settings import SettingsStore
from .stats import StatsAggregator

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class SubmitResult:
    entry: LogEntry
    stats: StatsSnapshot
    error: LogWriteError | None = None

    @property
    def saved(self) -> bool:
        return self.error is None


class CheckinService:
    """Owns the scheduler, counters and log store for one running app.

    Construct once at startup and hand the instance to the UI layer.
    ``emitter`` is called on the dispatch context whenever an automatic
    check-in is due.
    """

    def __init__(
        self,
        settings: SettingsStore,
        log_store: LogStore,
        emitter: Callable[[], None],
        dispatch: Dispatch | None = None,
        clock: Clock | None = None,
        watcher: ContextWatcher | None = None,
        rng: random.Random | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self.settings = settings
        self.log_store = log_store
        self.stats = StatsAggregator(log_store)
        self._clock = clock or local_now
        self._rng = rng
        self._watcher = watcher
        self.scheduler = CheckinScheduler(
            settings,
            on_fire=emitter,
            dispatch=dispatch,
            clock=self._clock,
            rng=rng,
            timer_factory=timer_factory,
        )

    def start(self) -> datetime | None:
        if self._watcher is not None:
            self.scheduler.attach(self._watcher)
            self._watcher.start()
        return self.scheduler.schedule_next()

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        if self._watcher is not None:
            self._watcher.stop()

    def next_question(self) -> str:
        return pick_question(self.settings.get_questions(), self._rng)

    def submit_answer(
        self,
        response: str,
        state: CheckinState | None = None,
        question: str = "",
    ) -> SubmitResult:
        text = (response or "").strip()
        if not text:
            raise ValueError("response must not be empty")

        resolved = state if state is not None else classify_response(text)
        now = self._clock()
        entry = LogEntry(
            time=now.strftime(TIME_FORMAT),
            response=text,
            state=resolved,
            question=question.strip(),
        )
        snapshot = self.stats.record_checkin(resolved)

        try:
            self.log_store.append(entry, now.date())
        except LogWriteError as exc:
            logger.error("Check-in was counted but not saved: %s", exc)
            return SubmitResult(entry=entry, stats=snapshot, error=exc)

        logger.info("Recorded %s check-in at %s", resolved.value, entry.time)
        return SubmitResult(entry=entry, stats=snapshot)

    def get_notification_window(self) -> NotificationWindow:
        return self.settings.get_notification_window()

    def set_notification_window(self, window: NotificationWindow) -> datetime | None:
        self.settings.set_notification_window(window)
        logger.info("Notification hours set to %02d:00-%02d:00", window.start_hour, window.end_hour)
        return self.scheduler.schedule_next()

    def recent_breakdown(self, days: int) -> list[DailyLogBreakdown]:
        return self.stats.recent_breakdown(days, today=self._clock().date())

    def today_entries(self) -> list[LogEntry]:
        return self.log_store.read_day(self._clock().date())

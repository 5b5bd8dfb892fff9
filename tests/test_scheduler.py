from __future__ import annotations

import random
import unittest
from datetime import datetime, timedelta

from focus_support.context import ContextChange, ContextWatcher
from focus_support.models import NotificationWindow
from focus_support.scheduler import RETRY_DELAY, CheckinScheduler
from focus_support.window import is_hour_allowed
from tests.fakes import InMemorySettings, TimerRecorder

NOW = datetime(2026, 3, 2, 10, 15, 0)


class SchedulerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = InMemorySettings(NotificationWindow(9, 20))
        self.timers = TimerRecorder()
        self.fired: list[datetime] = []
        self.now = NOW
        self.scheduler = CheckinScheduler(
            self.settings,
            on_fire=lambda: self.fired.append(self.now),
            clock=lambda: self.now,
            rng=random.Random(9),
            timer_factory=self.timers,
        )

    def test_starts_idle(self) -> None:
        self.assertFalse(self.scheduler.is_armed)
        self.assertIsNone(self.scheduler.target)

    def test_schedule_next_arms_single_timer(self) -> None:
        target = self.scheduler.schedule_next()

        self.assertTrue(self.scheduler.is_armed)
        self.assertEqual(self.scheduler.target, target)
        self.assertGreater(target, NOW)
        self.assertTrue(is_hour_allowed(target.hour, self.settings.window))
        timer = self.timers.last
        self.assertTrue(timer.started)
        self.assertTrue(timer.daemon)
        self.assertAlmostEqual(timer.interval, max(1.0, (target - NOW).total_seconds()))

    def test_rearm_cancels_previous_timer_and_ignores_its_callback(self) -> None:
        self.scheduler.schedule_next()
        first = self.timers.last
        self.scheduler.schedule_next()
        second = self.timers.last

        self.assertTrue(first.cancelled)
        self.assertFalse(second.cancelled)
        first.fire()
        self.assertEqual(self.fired, [])
        self.assertEqual(len(self.timers.timers), 2)

    def test_fire_emits_once_and_rearms(self) -> None:
        self.scheduler.schedule_next()
        self.timers.last.fire()

        self.assertEqual(len(self.fired), 1)
        self.assertEqual(len(self.timers.timers), 2)
        self.assertTrue(self.scheduler.is_armed)

    def test_scheduler_is_armed_while_emitter_runs(self) -> None:
        armed_during_emit: list[bool] = []
        scheduler = CheckinScheduler(
            InMemorySettings(NotificationWindow(9, 9)),
            on_fire=lambda: armed_during_emit.append(scheduler.is_armed),
            clock=lambda: NOW,
            timer_factory=self.timers,
        )
        scheduler.schedule_next()
        self.timers.last.fire()

        self.assertEqual(armed_during_emit, [True])
        self.assertFalse(self.timers.last.cancelled)

    def test_emitter_failure_still_rearms(self) -> None:
        def _boom() -> None:
            raise RuntimeError("notification center unavailable")

        scheduler = CheckinScheduler(
            self.settings,
            on_fire=_boom,
            clock=lambda: NOW,
            timer_factory=self.timers,
        )
        scheduler.schedule_next()
        with self.assertLogs("focus_support.scheduler", level="ERROR"):
            self.timers.last.fire()
        self.assertTrue(scheduler.is_armed)
        self.assertEqual(len(self.timers.timers), 2)

    def test_settings_failure_falls_back_to_short_retry(self) -> None:
        self.settings.fail = True
        with self.assertLogs("focus_support.scheduler", level="ERROR"):
            target = self.scheduler.schedule_next()
        self.assertEqual(target, NOW + RETRY_DELAY)
        self.assertTrue(self.scheduler.is_armed)

    def test_wait_is_at_least_one_second(self) -> None:
        self.now = datetime(2026, 3, 2, 10, 59, 59, 500000)
        self.scheduler.schedule_next()
        self.assertGreaterEqual(self.timers.last.interval, 1.0)

    def test_window_change_applies_on_next_cycle(self) -> None:
        self.scheduler.schedule_next()
        self.settings.window = NotificationWindow(22, 23)
        self.timers.last.fire()
        self.assertEqual(self.scheduler.target.hour, 22)

    def test_dispatch_defers_work_to_owner_context(self) -> None:
        pending = []
        scheduler = CheckinScheduler(
            self.settings,
            on_fire=lambda: self.fired.append(NOW),
            dispatch=pending.append,
            clock=lambda: NOW,
            timer_factory=self.timers,
        )
        scheduler.schedule_next()
        self.timers.last.fire()
        self.assertEqual(self.fired, [])
        self.assertEqual(len(pending), 1)

        pending.pop()()
        self.assertEqual(len(self.fired), 1)
        self.assertEqual(len(self.timers.timers), 2)

    def test_context_change_recomputes(self) -> None:
        watcher = ContextWatcher(wall_clock=lambda: self.now, monotonic=lambda: 0.0)
        self.scheduler.attach(watcher)
        self.scheduler.schedule_next()
        first = self.timers.last

        self.now = NOW + timedelta(hours=12)
        watcher._emit(ContextChange.WAKE)

        self.assertTrue(first.cancelled)
        self.assertEqual(len(self.timers.timers), 2)
        self.assertGreater(self.scheduler.target, self.now)

    def test_shutdown_cancels_and_detaches(self) -> None:
        watcher = ContextWatcher(wall_clock=lambda: self.now, monotonic=lambda: 0.0)
        self.scheduler.attach(watcher)
        self.scheduler.schedule_next()
        timer = self.timers.last

        self.scheduler.shutdown()

        self.assertTrue(timer.cancelled)
        self.assertFalse(self.scheduler.is_armed)
        self.assertEqual(watcher.listener_count, 0)
        timer.fire()
        self.assertEqual(self.fired, [])
        self.assertIsNone(self.scheduler.schedule_next())
        self.assertEqual(len(self.timers.timers), 1)


if __name__ == "__main__":
    unittest.main()

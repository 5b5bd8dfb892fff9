from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from focus_support.context import ContextChange, ContextWatcher
from tests.fakes import FakeClock

TOKYO = timezone(timedelta(hours=9), "JST")
BERLIN = timezone(timedelta(hours=1), "CET")


class ContextWatcherTests(unittest.TestCase):
    def _watcher(self, clock: FakeClock) -> ContextWatcher:
        return ContextWatcher(
            poll_seconds=30,
            tolerance_seconds=5,
            wall_clock=clock.now,
            monotonic=clock.mono,
        )

    def test_first_check_only_records_baseline(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        self.assertEqual(watcher.check_once(), [])

    def test_steady_clock_reports_nothing(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        watcher.check_once()
        for _ in range(5):
            clock.advance(30)
            self.assertEqual(watcher.check_once(), [])

    def test_sleep_is_reported_as_wake(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        watcher.check_once()
        clock.advance(3600, monotonic_seconds=30)
        self.assertEqual(watcher.check_once(), [ContextChange.WAKE])

    def test_late_poll_is_reported_as_wake(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        watcher.check_once()
        clock.advance(600)
        self.assertEqual(watcher.check_once(), [ContextChange.WAKE])

    def test_clock_set_backwards(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        watcher.check_once()
        clock.advance(-600, monotonic_seconds=30)
        self.assertEqual(watcher.check_once(), [ContextChange.CLOCK_CHANGED])

    def test_small_forward_adjustment_is_clock_change(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        watcher.check_once()
        clock.advance(50, monotonic_seconds=30)
        self.assertEqual(watcher.check_once(), [ContextChange.CLOCK_CHANGED])

    def test_timezone_change(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 20, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        watcher.check_once()
        clock.wall = (clock.wall + timedelta(seconds=30)).astimezone(BERLIN)
        clock.monotonic += 30
        self.assertEqual(watcher.check_once(), [ContextChange.TIMEZONE_CHANGED])

    def test_day_rollover(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 23, 59, 50, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        watcher.check_once()
        clock.advance(30)
        self.assertEqual(watcher.check_once(), [ContextChange.DAY_CHANGED])

    def test_listeners_receive_changes_until_unsubscribed(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        received: list[ContextChange] = []
        unsubscribe = watcher.subscribe(received.append)
        watcher.check_once()

        clock.advance(3600, monotonic_seconds=30)
        watcher.check_once()
        self.assertEqual(received, [ContextChange.WAKE])

        unsubscribe()
        unsubscribe()
        clock.advance(3600, monotonic_seconds=30)
        watcher.check_once()
        self.assertEqual(received, [ContextChange.WAKE])
        self.assertEqual(watcher.listener_count, 0)

    def test_failing_listener_does_not_block_others(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = self._watcher(clock)
        received: list[ContextChange] = []

        def _broken(change: ContextChange) -> None:
            raise RuntimeError(change.value)

        watcher.subscribe(_broken)
        watcher.subscribe(received.append)
        watcher.check_once()
        clock.advance(3600, monotonic_seconds=30)
        with self.assertLogs("focus_support.context", level="ERROR"):
            watcher.check_once()
        self.assertEqual(received, [ContextChange.WAKE])

    def test_start_and_stop_background_thread(self) -> None:
        clock = FakeClock(datetime(2026, 4, 1, 12, 0, tzinfo=TOKYO))
        watcher = ContextWatcher(poll_seconds=60, wall_clock=clock.now, monotonic=clock.mono)
        self.assertTrue(watcher.start())
        self.assertFalse(watcher.start())
        self.assertTrue(watcher.is_running)
        watcher.stop()
        self.assertFalse(watcher.is_running)


if __name__ == "__main__":
    unittest.main()

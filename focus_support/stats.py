from __future__ import annotations

import threading
from datetime import date

from .logstore import LogStore
from .models import CheckinState, DailyLogBreakdown, StatsSnapshot


class StatsAggregator:
    """Per-session check-in counters plus day breakdowns read back from the log store.

    The counters start at zero with the process and are not reloaded from
    existing logs; ``recent_breakdown`` is the durable view.
    """

    def __init__(self, log_store: LogStore):
        self._log_store = log_store
        self._lock = threading.Lock()
        self._checkin_count = 0
        self._state_counts = {state: 0 for state in CheckinState}

    def record_checkin(self, state: CheckinState) -> StatsSnapshot:
        with self._lock:
            self._checkin_count += 1
            self._state_counts[state] += 1
            return self._snapshot_locked()

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def recent_breakdown(self, days: int, today: date | None = None) -> list[DailyLogBreakdown]:
        return self._log_store.recent_daily_breakdown(days, today=today)

    def _snapshot_locked(self) -> StatsSnapshot:
        return StatsSnapshot(
            checkin_count=self._checkin_count,
            focused_count=self._state_counts[CheckinState.FOCUSED],
            wandering_count=self._state_counts[CheckinState.WANDERING],
            resting_count=self._state_counts[CheckinState.RESTING],
        )

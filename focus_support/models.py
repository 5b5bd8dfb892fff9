from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum

LEGACY_RESTING_TOKEN = "break"


class CheckinState(str, Enum):
    FOCUSED = "focused"
    WANDERING = "wandering"
    RESTING = "resting"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def feedback_message(self) -> str:
        return _FEEDBACK[self]

    @classmethod
    def from_raw(cls, raw: object) -> "CheckinState":
        """Map a persisted token to a state. Unknown or missing tokens become FOCUSED."""
        if raw == LEGACY_RESTING_TOKEN:
            return cls.RESTING
        for state in cls:
            if raw == state.value:
                return state
        return cls.FOCUSED


_LABELS = {
    CheckinState.FOCUSED: "Focused",
    CheckinState.WANDERING: "Wandering",
    CheckinState.RESTING: "Resting",
}

_FEEDBACK = {
    CheckinState.FOCUSED: "Nice! Keep going at this pace.",
    CheckinState.WANDERING: "Looks like your mind drifted. Decide what you'll do for the next 5 minutes.",
    CheckinState.RESTING: "Rest matters. Decide when you'll come back.",
}


@dataclass(frozen=True)
class LogEntry:
    time: str
    response: str
    state: CheckinState = CheckinState.FOCUSED
    question: str = ""


@dataclass(frozen=True)
class NotificationWindow:
    start_hour: int = 9
    end_hour: int = 20

    @classmethod
    def clamped(cls, start_hour: int, end_hour: int) -> "NotificationWindow":
        return cls(
            start_hour=max(0, min(23, int(start_hour))),
            end_hour=max(0, min(23, int(end_hour))),
        )

    @property
    def unrestricted(self) -> bool:
        return self.start_hour == self.end_hour


@dataclass(frozen=True)
class DailyLogBreakdown:
    date: date
    focused: int = 0
    wandering: int = 0
    resting: int = 0

    @property
    def total(self) -> int:
        return self.focused + self.wandering + self.resting


@dataclass(frozen=True)
class AISettings:
    enabled: bool = False
    base_url: str = ""
    token: str = ""
    model: str = ""


@dataclass(frozen=True)
class StatsSnapshot:
    checkin_count: int
    focused_count: int
    wandering_count: int
    resting_count: int

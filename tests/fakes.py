from __future__ import annotations

from datetime import datetime, timedelta

from focus_support.models import NotificationWindow


class FakeTimer:
    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = tuple(args or ())
        self.kwargs = dict(kwargs or {})
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.function(*self.args, **self.kwargs)


class TimerRecorder:
    def __init__(self):
        self.timers: list[FakeTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None) -> FakeTimer:
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]


class InMemorySettings:
    def __init__(self, window: NotificationWindow | None = None):
        self.window = window or NotificationWindow(9, 20)
        self.fail = False

    def get_notification_window(self) -> NotificationWindow:
        if self.fail:
            raise RuntimeError("settings unavailable")
        return self.window

    def set_notification_window(self, window: NotificationWindow) -> None:
        self.window = window


class FakeClock:
    def __init__(self, wall: datetime, monotonic: float = 1000.0):
        self.wall = wall
        self.monotonic = monotonic

    def now(self) -> datetime:
        return self.wall

    def mono(self) -> float:
        return self.monotonic

    def advance(self, wall_seconds: float, monotonic_seconds: float | None = None) -> None:
        self.wall = self.wall + timedelta(seconds=wall_seconds)
        self.monotonic += wall_seconds if monotonic_seconds is None else monotonic_seconds

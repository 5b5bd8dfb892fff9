from __future__ import annotations


class FocusSupportError(Exception):
    """Base class for recoverable errors raised by focus_support."""


class LogWriteError(FocusSupportError):
    pass


class LogReadError(FocusSupportError):
    pass

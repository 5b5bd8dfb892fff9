from __future__ import annotations

import json
import logging
import os
import re
import threading
from collections import Counter
from contextlib import contextmanager
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, TextIO

from .errors import LogReadError, LogWriteError
from .models import CheckinState, DailyLogBreakdown, LogEntry
from .paths import log_file_name

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

LineDecoder = Callable[[str], Optional[LogEntry]]

LEGACY_HEADER = re.compile(r"^(?P<prefix>.*?)(?P<time>\d{1,2}:\d{2}) - (?P<question>.*)$")
LEGACY_RESPONSE_MARKER = "→"
LEGACY_WANDERING_MARKER = "😴"


def encode_entry(entry: LogEntry) -> str:
    payload = {
        "time": entry.time,
        "response": entry.response,
        "type": entry.state.value,
    }
    if entry.question:
        payload["question"] = entry.question
    return json.dumps(payload, ensure_ascii=False)


def decode_json_with_state(line: str) -> LogEntry | None:
    payload = _json_object(line)
    if payload is None or "type" not in payload:
        return None
    return _entry_from_payload(payload, CheckinState.from_raw(payload.get("type")))


def decode_json_without_state(line: str) -> LogEntry | None:
    payload = _json_object(line)
    if payload is None:
        return None
    return _entry_from_payload(payload, CheckinState.FOCUSED)


# Tried in order on every line; first non-None wins.
JSON_LINE_DECODERS: tuple[LineDecoder, ...] = (
    decode_json_with_state,
    decode_json_without_state,
)


def decode_legacy_text(lines: Iterable[str]) -> list[LogEntry]:
    """Parse the pre-JSON format: ``<emoji> HH:mm - question`` followed by ``→ response``."""
    entries: list[LogEntry] = []
    header: re.Match[str] | None = None

    for raw in lines:
        line = raw.strip()
        if not line:
            continue

        if header is not None and line.startswith(LEGACY_RESPONSE_MARKER):
            response = line[len(LEGACY_RESPONSE_MARKER):].strip()
            state = (
                CheckinState.WANDERING
                if LEGACY_WANDERING_MARKER in header.group("prefix")
                else CheckinState.FOCUSED
            )
            entries.append(
                LogEntry(
                    time=_normalize_time(header.group("time")),
                    response=response,
                    state=state,
                    question=header.group("question").strip(),
                )
            )
            header = None
            continue

        # A header without a response line is dropped when the next header starts.
        header = LEGACY_HEADER.match(line)

    return entries


def parse_log_text(text: str) -> list[LogEntry]:
    lines = text.splitlines()
    entries: list[LogEntry] = []
    saw_json = False

    for raw in lines:
        line = raw.strip()
        if not line:
            continue
        if _json_object(line) is not None:
            saw_json = True
        for decoder in JSON_LINE_DECODERS:
            entry = decoder(line)
            if entry is not None:
                entries.append(entry)
                break
        else:
            logger.debug("Skipping unparseable log line: %.80s", line)

    if saw_json:
        return entries
    return decode_legacy_text(lines)


def breakdown_for(day: date, entries: Iterable[LogEntry]) -> DailyLogBreakdown:
    counts = Counter(entry.state for entry in entries)
    return DailyLogBreakdown(
        date=day,
        focused=counts[CheckinState.FOCUSED],
        wandering=counts[CheckinState.WANDERING],
        resting=counts[CheckinState.RESTING],
    )


class LogStore:
    """Append-only check-in log, one JSON-lines file per local calendar day."""

    def __init__(self, directory: Path):
        self._directory = Path(directory)
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, day: date) -> Path:
        return self._directory / log_file_name(day)

    def append(self, entry: LogEntry, day: date) -> Path:
        path = self.path_for(day)
        line = encode_entry(entry) + "\n"
        try:
            line.encode("utf-8")
            with self._lock:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "a", encoding="utf-8") as handle, _exclusive_lock(handle):
                    handle.seek(0, os.SEEK_END)
                    handle.write(line)
                    handle.flush()
                    os.fsync(handle.fileno())
        except (OSError, UnicodeError) as exc:
            raise LogWriteError(f"Could not append check-in to {path}: {exc}") from exc
        return path

    def read_day_text(self, day: date) -> str | None:
        path = self.path_for(day)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise LogReadError(f"Could not read {path}: {exc}") from exc

    def read_day(self, day: date) -> list[LogEntry]:
        text = self.read_day_text(day)
        if not text:
            return []
        return parse_log_text(text)

    def recent_daily_breakdown(self, days: int, today: date | None = None) -> list[DailyLogBreakdown]:
        if days <= 0:
            return []
        end = today or date.today()
        breakdowns: list[DailyLogBreakdown] = []
        for offset in range(days - 1, -1, -1):
            day = end - timedelta(days=offset)
            try:
                entries = self.read_day(day)
            except LogReadError as exc:
                logger.warning("Counting %s as empty: %s", day.isoformat(), exc)
                entries = []
            breakdowns.append(breakdown_for(day, entries))
        return breakdowns


@contextmanager
def _exclusive_lock(handle: TextIO) -> Iterator[None]:
    fd = handle.fileno()
    if os.name == "nt":
        handle.seek(0)
        msvcrt.locking(fd, msvcrt.LK_LOCK, 1)
        try:
            yield
        finally:
            handle.flush()
            handle.seek(0)
            msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)


def _json_object(line: str) -> dict | None:
    if not line.startswith("{"):
        return None
    try:
        parsed = json.loads(line)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _entry_from_payload(payload: dict, state: CheckinState) -> LogEntry | None:
    time_text = payload.get("time")
    response = payload.get("response")
    if not isinstance(time_text, str) or not isinstance(response, str):
        return None
    question = payload.get("question")
    return LogEntry(
        time=time_text,
        response=response,
        state=state,
        question=question if isinstance(question, str) else "",
    )


def _normalize_time(value: str) -> str:
    hours, minutes = value.split(":", 1)
    return f"{int(hours):02d}:{minutes}"

from __future__ import annotations

from datetime import date
from typing import Sequence

from .models import CheckinState, DailyLogBreakdown, LogEntry, StatsSnapshot

STATE_MARKERS = {
    CheckinState.FOCUSED: "✨",
    CheckinState.WANDERING: "😴",
    CheckinState.RESTING: "☕",
}


def checkin_count_line(snapshot: StatsSnapshot) -> str:
    return f"Today's check-ins: {snapshot.checkin_count}"


def state_counts_line(snapshot: StatsSnapshot) -> str:
    return (
        f"Focused: {snapshot.focused_count} / "
        f"Wandering: {snapshot.wandering_count} / "
        f"Resting: {snapshot.resting_count}"
    )


def format_entries(day: date, entries: Sequence[LogEntry]) -> str:
    if not entries:
        return f"No check-ins for {day.isoformat()} yet."
    lines = [f"Check-in log for {day.isoformat()}", ""]
    for entry in entries:
        header = f"{STATE_MARKERS[entry.state]} {entry.time}"
        if entry.question:
            header += f" - {entry.question}"
        lines.append(header)
        lines.append(f"   → {entry.response}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def format_breakdown(breakdowns: Sequence[DailyLogBreakdown]) -> str:
    lines = []
    for row in breakdowns:
        lines.append(
            f"{row.date.isoformat()}  total {row.total:>3}  "
            f"focused {row.focused:>3}  wandering {row.wandering:>3}  resting {row.resting:>3}"
        )
    return "\n".join(lines)

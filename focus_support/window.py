from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone

from .models import NotificationWindow

logger = logging.getLogger(__name__)

MAX_SCAN_HOURS = 48
NO_ALLOWED_HOUR_DELAY = timedelta(hours=1)
BOUNDARY_FAILURE_DELAY = timedelta(minutes=1)


def is_hour_allowed(hour: int, window: NotificationWindow) -> bool:
    start = window.start_hour
    end = window.end_hour
    if start == end:
        return True
    if start < end:
        return start <= hour < end
    return hour >= start or hour < end


def random_instant_within_hour(hour_start: datetime, rng: random.Random | None = None) -> datetime:
    source = rng or random
    return hour_start + timedelta(minutes=source.randint(0, 59), seconds=source.randint(0, 59))


def next_allowed_instant(
    now: datetime,
    window: NotificationWindow,
    rng: random.Random | None = None,
) -> datetime:
    """Return a randomized instant in the first allowed hour that lies strictly after ``now``.

    Hours are scanned from the start of the current hour for at most
    ``MAX_SCAN_HOURS``. Aware datetimes are stepped in UTC and converted back
    to ``now``'s zone, so a DST shift never repeats or skips a wall-clock hour.
    """
    try:
        hour_start = now.replace(minute=0, second=0, microsecond=0)
        hours = [_add_hours(hour_start, offset) for offset in range(MAX_SCAN_HOURS + 1)]
    except (OverflowError, ValueError) as exc:
        logger.warning("Could not compute hour boundaries from %s: %s", now, exc)
        return now + BOUNDARY_FAILURE_DELAY

    for candidate_hour in hours:
        if not is_hour_allowed(candidate_hour.hour, window):
            continue
        target = random_instant_within_hour(candidate_hour, rng)
        if target > now:
            return target

    logger.warning(
        "No allowed hour within %d hours for window %02d-%02d",
        MAX_SCAN_HOURS,
        window.start_hour,
        window.end_hour,
    )
    return now + NO_ALLOWED_HOUR_DELAY


def _add_hours(hour_start: datetime, offset: int) -> datetime:
    if hour_start.tzinfo is None:
        return hour_start + timedelta(hours=offset)
    stepped = hour_start.astimezone(timezone.utc) + timedelta(hours=offset)
    return stepped.astimezone(hour_start.tzinfo)

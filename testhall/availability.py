"""
Availability window check for scheduled tests.

A test is open between its start and end. The window comes from the explicit
start/end timestamps when both are set, otherwise from the date string
("2025/01/20") and time range ("02:00 PM - 05:00 PM").
"""
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from testhall.models import TestSchedule

logger = logging.getLogger(__name__)

ACTIVE = "active"
FUTURE = "future"
PAST = "past"
UNSCHEDULED = "unscheduled"
INVALID = "invalid"

NOT_YET_MESSAGE = "This test is not yet available. It will start in {hours} hour{plural}."
ENDED_MESSAGE = "This test is no longer available. The scheduled time has passed."

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM)$", re.IGNORECASE)


@dataclass
class Availability:
    is_available: bool
    status: str
    message: str = ""
    time_remaining: str = ""


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        # Compare in local wall-clock time, like the date/time strings
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _parse_clock(value: str) -> Optional[Tuple[int, int]]:
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if meridiem == "PM" and hour != 12:
        hour += 12
    elif meridiem == "AM" and hour == 12:
        hour = 0
    return hour, minute


def parse_window(test: TestSchedule) -> Optional[Tuple[datetime, datetime]]:
    """Return (start, end) as naive local datetimes, or None if the schedule can't be read."""
    try:
        if test.start_datetime and test.end_datetime:
            return _parse_timestamp(test.start_datetime), _parse_timestamp(test.end_datetime)

        parts = (test.time or "").split(" - ")
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            return None
        start_clock, end_clock = _parse_clock(parts[0]), _parse_clock(parts[1])
        if not start_clock or not end_clock:
            return None

        day = datetime.strptime((test.date or "").strip().replace("/", "-"), "%Y-%m-%d")
        start = day.replace(hour=start_clock[0], minute=start_clock[1])
        end = day.replace(hour=end_clock[0], minute=end_clock[1])
        if end < start:
            end += timedelta(days=1)
        return start, end
    except ValueError as e:
        logger.error(f"Error parsing schedule for test {test.id}: {e}")
        return None


def format_countdown(delta: timedelta) -> str:
    """'2d 3h remaining', '4h 10m remaining' or '25m remaining'; empty once started."""
    total_seconds = int(delta.total_seconds())
    if total_seconds <= 0:
        return ""
    days, rest = divmod(total_seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60
    if days > 0:
        return f"{days}d {hours}h remaining"
    if hours > 0:
        return f"{hours}h {minutes}m remaining"
    return f"{minutes}m remaining"


def check_availability(test: TestSchedule, now: Optional[datetime] = None, strict: bool = False) -> Availability:
    """
    Decide whether a test can be taken at `now`.

    strict=False is the exam gate: a test whose schedule can't be read stays open.
    strict=True is the listing card: such a test is reported as unavailable.
    """
    now = now or datetime.now()
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    window = parse_window(test)
    if window is None:
        if strict:
            return Availability(False, INVALID, "Unavailable")
        return Availability(True, UNSCHEDULED)

    start, end = window
    if now < start:
        delta = start - now
        hours = math.ceil(delta.total_seconds() / 3600)
        return Availability(
            False,
            FUTURE,
            NOT_YET_MESSAGE.format(hours=hours, plural="" if hours == 1 else "s"),
            format_countdown(delta),
        )
    if now > end:
        return Availability(False, PAST, ENDED_MESSAGE)
    return Availability(True, ACTIVE)

"""Duration parsing and minute/second conversions."""
import logging
import math
import re
from typing import Dict

from engine import DEFAULT_DURATION_MINUTES

logger = logging.getLogger(__name__)

_UNIT_SECONDS = {
    "h": 3600, "hr": 3600, "hrs": 3600, "hour": 3600, "hours": 3600,
    "m": 60, "min": 60, "mins": 60, "minute": 60, "minutes": 60,
    "s": 1, "sec": 1, "secs": 1, "second": 1, "seconds": 1,
}
_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]+)")
_CLOCK_RE = re.compile(r"^(\d+):(\d{1,2})(?::(\d{1,2}))?$")


def parse_duration_to_seconds(text: str) -> int:
    """
    Parse a free-text duration such as "3 hours", "1 hour 30 minutes", "90 mins",
    "2h 15m", "01:30" (HH:MM) or "01:30:00". A bare number means minutes.
    Falls back to DEFAULT_DURATION_MINUTES when nothing can be parsed.
    """
    value = (text or "").strip().lower()
    if not value:
        logger.warning(f"Empty duration, using default of {DEFAULT_DURATION_MINUTES} minutes")
        return DEFAULT_DURATION_MINUTES * 60

    clock = _CLOCK_RE.match(value)
    if clock:
        hours, minutes, seconds = clock.group(1), clock.group(2), clock.group(3) or "0"
        return int(hours) * 3600 + int(minutes) * 60 + int(seconds)

    try:
        return int(round(float(value) * 60))
    except ValueError:
        pass

    total = 0.0
    matched = False
    for amount, unit in _PART_RE.findall(value):
        factor = _UNIT_SECONDS.get(unit)
        if factor is None:
            continue
        total += float(amount) * factor
        matched = True

    if not matched:
        logger.warning(f"Could not parse duration {text!r}, using default of {DEFAULT_DURATION_MINUTES} minutes")
        return DEFAULT_DURATION_MINUTES * 60
    return int(round(total))


def seconds_to_time(seconds: float) -> Dict[str, int]:
    seconds = max(0, int(seconds))
    return {"minutes": seconds // 60, "seconds": seconds % 60}


def time_to_seconds(time_obj: Dict[str, int]) -> int:
    return int(time_obj.get("minutes", 0)) * 60 + int(time_obj.get("seconds", 0))


def format_time(time_obj: Dict[str, int]) -> str:
    return f"{time_obj.get('minutes', 0)}m {time_obj.get('seconds', 0)}s"


def format_clock(seconds: float) -> str:
    """Countdown display: MM:SS, or H:MM:SS from one hour up."""
    seconds = max(0, int(math.ceil(seconds)))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"

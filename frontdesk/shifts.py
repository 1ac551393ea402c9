"""Shift arithmetic for the front desk.

Two vocabularies live here: the three 8-hour report shifts ("1st", "2nd",
"3rd") and the human-readable roster labels used when assigning agents
("7:00 am to 3:00 pm" and friends, including two 12-hour rosters).
"""
import re
from datetime import datetime
from typing import Iterable, Optional, TypeVar
from zoneinfo import ZoneInfo

from .config import settings

SHIFTS = ("1st", "2nd", "3rd")

SHIFT_TIME_RANGES = {
    "1st": "7:00 am to 3:00 pm",
    "2nd": "3:00 pm to 11:00 pm",
    "3rd": "11:00 pm to 7:00 am",
}

AGENT_SHIFT_LABELS = (
    "7:00 am to 3:00 pm",
    "3:00 pm to 11:00 pm",
    "11:00 pm to 7:00 am",
    "7:00 am to 7:00 pm",
    "7:00 pm to 7:00 am",
)

# Hour at which each shift ends; the dispatcher fires on these.
SHIFT_END_HOURS = {
    "3rd": 7,
    "1st": 15,
    "2nd": 23,
}

_LABEL_RE = re.compile(
    r"^\s*(\d{1,2}):(\d{2})\s*(am|pm)\s+to\s+(\d{1,2}):(\d{2})\s*(am|pm)\s*$",
    re.IGNORECASE,
)

T = TypeVar("T")


def local_now() -> datetime:
    tz_name = (settings.TIMEZONE or "").strip()
    if not tz_name:
        return datetime.now()
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def classify_shift(hour: int) -> str:
    if not 0 <= int(hour) <= 23:
        raise ValueError(f"hour must be within 0-23, got {hour}")
    if 7 <= hour < 15:
        return "1st"
    if 15 <= hour < 23:
        return "2nd"
    return "3rd"


def current_shift(now: Optional[datetime] = None) -> str:
    moment = now or local_now()
    return classify_shift(moment.hour)


def shift_time_range(shift: str) -> str:
    try:
        return SHIFT_TIME_RANGES[shift]
    except KeyError:
        raise ValueError(f"unknown shift: {shift}") from None


def _to_24h(hour: int, meridiem: str) -> int:
    hour = hour % 12
    if meridiem.lower() == "pm":
        hour += 12
    return hour


def parse_shift_range(label: str) -> tuple[int, int]:
    """Return ``(start_hour, end_hour)`` for a roster label such as ``"7:00 pm to 7:00 am"``."""
    match = _LABEL_RE.match(label or "")
    if not match:
        raise ValueError(f"unrecognized shift range: {label!r}")
    start = _to_24h(int(match.group(1)), match.group(3))
    end = _to_24h(int(match.group(4)), match.group(6))
    return start, end


def range_contains(start: int, end: int, hour: int) -> bool:
    if start < end:
        return start <= hour < end
    # wraps past midnight
    return hour >= start or hour < end


def range_duration(start: int, end: int) -> int:
    return (end - start) % 24 or 24


def match_agent_assignment(assignments: Iterable[T], hour: int, *, label=lambda a: a.shift) -> Optional[T]:
    """Pick the assignment whose roster range covers ``hour``.

    When the 8-hour and 12-hour rosters overlap, the longer range wins.
    Ranges of equal length keep their input order, so the first one given wins.
    Assignments with labels that do not parse are ignored.
    """
    candidates: list[tuple[int, T]] = []
    for assignment in assignments:
        try:
            start, end = parse_shift_range(label(assignment))
        except ValueError:
            continue
        if range_contains(start, end, hour):
            candidates.append((range_duration(start, end), assignment))

    if not candidates:
        return None
    # max() keeps the first maximal element, which gives the stable tie-break.
    return max(candidates, key=lambda item: item[0])[1]

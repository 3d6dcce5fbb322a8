"""Peak hours parsing and checks in the destination's local timezone"""
import re
from datetime import datetime
from typing import List, NamedTuple, Optional
from zoneinfo import ZoneInfo

_RANGE_PATTERN = re.compile(
    r"(\d{1,2}):?(\d{0,2})\s*(am|pm)\s*-\s*(\d{1,2}):?(\d{0,2})\s*(am|pm)",
    re.IGNORECASE
)
_DAY_QUALIFIERS = ("saturday", "sunday", "weekday", "weekend")


class PeakPeriod(NamedTuple):
    """Peak window in minutes since midnight; end < start means it crosses midnight"""
    start: int
    end: int


def _to_minutes(hour: str, minute: str, meridiem: str) -> Optional[int]:
    h = int(hour)
    m = int(minute) if minute else 0
    if not 1 <= h <= 12 or m > 59:
        return None
    if meridiem.lower() == "pm" and h != 12:
        h += 12
    elif meridiem.lower() == "am" and h == 12:
        h = 0
    return h * 60 + m


def parse_peak_hours(peak_hours: Optional[str]) -> List[PeakPeriod]:
    """
    Parse a peak hours string into periods.

    Examples:
        "10 am - 11 am / 4 pm - 6 pm" -> two periods
        "Saturday & Sunday 6 am - 5 pm" -> [] (day-specific ranges are skipped)
    """
    if not peak_hours:
        return []

    periods = []
    for part in peak_hours.split("/"):
        part = part.strip()
        if any(day in part.lower() for day in _DAY_QUALIFIERS):
            continue
        match = _RANGE_PATTERN.search(part)
        if not match:
            continue
        start = _to_minutes(match.group(1), match.group(2), match.group(3))
        end = _to_minutes(match.group(4), match.group(5), match.group(6))
        if start is not None and end is not None:
            periods.append(PeakPeriod(start, end))
    return periods


def local_now(timezone: str) -> datetime:
    return datetime.now(ZoneInfo(timezone))


def to_local(moment: datetime, timezone: str) -> datetime:
    """Convert an aware datetime to the local zone; naive datetimes are taken as local already"""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(ZoneInfo(timezone))


def is_peak(peak_hours: Optional[str], moment: datetime) -> bool:
    """True if the local time of ``moment`` falls inside any parsed peak period (inclusive)"""
    current = moment.hour * 60 + moment.minute
    for period in parse_peak_hours(peak_hours):
        if period.start <= period.end:
            if period.start <= current <= period.end:
                return True
        elif current >= period.start or current <= period.end:
            return True
    return False

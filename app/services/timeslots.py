import re
from datetime import date, timedelta

HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def parse_hhmm(value: str) -> int:
    """Minutes since midnight for an HH:MM string."""
    if not HHMM_PATTERN.match(value or ""):
        raise ValueError(f"Invalid time format: {value!r}. Use HH:MM")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def normalize_hhmm(value: str) -> str:
    minutes = parse_hhmm(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start1: str, end1: str, start2: str, end2: str) -> bool:
    """Half-open [start, end) overlap; back-to-back ranges do not overlap."""
    return parse_hhmm(start1) < parse_hhmm(end2) and parse_hhmm(start2) < parse_hhmm(end1)


def overlap_window(start1: str, end1: str, start2: str, end2: str) -> tuple[str, str] | None:
    if not overlaps(start1, end1, start2, end2):
        return None
    start = max(start1, start2, key=parse_hhmm)
    end = min(end1, end2, key=parse_hhmm)
    return start, end


def week_start(day: date) -> date:
    """Sunday that opens the week containing `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def day_name(day_of_week: int) -> str:
    return DAY_NAMES[day_of_week]

"""Validity date and time-of-day parsing."""

import math
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional, Union

from .config import DECIMAL_EPOCH, SPREADSHEET_EPOCH, TIME_RANGES

# "08:48", "23:59 (+1)", "00:24 (-1)"
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?:\s*\(([+-]\d+)\))?$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_SERIAL_RE = re.compile(r"^\d+(?:\.\d+)?$")

DateLike = Union[datetime, date, str]


def _from_serial(serial: float) -> Optional[str]:
    try:
        return (SPREADSHEET_EPOCH + timedelta(days=serial)).strftime("%Y-%m-%d")
    except (OverflowError, ValueError):
        # Serial outside the datetime range, e.g. a compact "20251216"
        return None


def parse_validity_date(value: Any) -> Optional[str]:
    """
    Parse an operating date from a Validity cell.

    Accepts "YYYY-MM-DD..." strings, native dates and spreadsheet serial
    numbers (also when they arrive as numeric text).

    Returns:
        "YYYY-MM-DD" or None.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, (int, float)):
        return _from_serial(value)
    if isinstance(value, str):
        text = value.strip()
        match = _ISO_DATE_RE.match(text)
        if match:
            return match.group(0)
        if _SERIAL_RE.match(text):
            return _from_serial(float(text))
    return None


def _as_datetime(base_date: Optional[DateLike]) -> Optional[datetime]:
    if base_date is None or base_date == "":
        return None
    if isinstance(base_date, datetime):
        return base_date
    if isinstance(base_date, date):
        return datetime.combine(base_date, time())
    try:
        return datetime.strptime(str(base_date)[:10], "%Y-%m-%d")
    except ValueError:
        return None


def base_date_for(validity_date: Optional[str]) -> datetime:
    """Midnight of the validity date, or the current moment if there is none."""
    return _as_datetime(validity_date) or datetime.now()


def parse_time_with_offset(value: Any, base_date: Optional[DateLike]) -> Optional[datetime]:
    """
    Anchor a time-of-day to a base date, applying an optional day offset.

    Args:
        value: "HH:MM" or "HH:MM (+N)"/"HH:MM (-N)", or a native datetime/time.
        base_date: Operating date the time belongs to.

    Returns:
        Absolute datetime, or None for bad formats or a missing base date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())

    base = _as_datetime(base_date)
    if isinstance(value, time):
        if base is None:
            return None
        return datetime.combine(base.date(), value.replace(tzinfo=None))

    match = _TIME_RE.match(str(value).strip())
    if not match or base is None:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    day_offset = int(match.group(3)) if match.group(3) else 0
    try:
        anchored = base.replace(hour=hours, minute=minutes, second=0, microsecond=0)
        return anchored + timedelta(days=day_offset)
    except (ValueError, OverflowError):
        return None


def time_to_decimal(instant: Any) -> Optional[int]:
    """Whole minutes between DECIMAL_EPOCH and an instant; used for all ordering."""
    if instant is None:
        return None
    if isinstance(instant, str):
        if "T" not in instant:
            return None
        try:
            instant = datetime.fromisoformat(instant.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(instant, datetime):
        return None
    if instant.tzinfo is not None:
        instant = instant.astimezone(timezone.utc).replace(tzinfo=None)
    return math.floor((instant - DECIMAL_EPOCH).total_seconds() / 60)


def format_planned(instant: Optional[datetime]) -> Optional[str]:
    return instant.strftime("%H:%M") if instant else None


def is_time_in_range(
    decimal_time: Optional[int], range_name: str, selected_date: Optional[DateLike]
) -> bool:
    """
    Check a decimal time against a named window of the selected date.

    Windows: "day" 06:00-20:00, "night" 18:00-08:00 next day, "all" the whole day.
    """
    if decimal_time is None or range_name not in TIME_RANGES:
        return False
    day = _as_datetime(selected_date)
    if day is None:
        return False
    day_start = time_to_decimal(day.replace(hour=0, minute=0, second=0, microsecond=0))
    start, end = TIME_RANGES[range_name]
    return day_start + start <= decimal_time < day_start + end

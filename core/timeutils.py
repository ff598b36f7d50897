# =========================
# file: core/timeutils.py
# =========================
"""
Wall-clock time helpers.

Block times are stored as "local time as entered" with a trailing ``Z``
(``2024-06-01T09:00:00.000Z``). The ``Z`` is a storage convention only: the
digits are the venue's clock time, not a UTC instant. Everything that reads a
stored value goes through this module so the digits are used positionally and
never shifted by a timezone conversion.

A naive ``datetime`` is the wall-clock type throughout the codebase.
"""
from __future__ import annotations
import logging
import re
from datetime import date, datetime, timedelta, tzinfo
from functools import lru_cache
from typing import List, Optional, Tuple, Union

from core.config import load_settings

logger = logging.getLogger(__name__)

WallClockLike = Union[str, datetime, date]

FORM_INPUT_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2})$")
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
STORED_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[T ](\d{2}):(\d{2})(?::(\d{2})(?:\.(\d{1,6}))?)?"
)

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


@lru_cache(maxsize=1)
def display_timezone() -> Optional[tzinfo]:
    return load_settings().tz


def is_utc_marked(value: object) -> bool:
    return isinstance(value, str) and (value.endswith("Z") or "+00:00" in value)


def _positional(value: str) -> datetime:
    m = STORED_RE.match(value)
    if not m:
        raise ValueError(f"Unrecognized timestamp: {value!r}")
    year, month, day, hour, minute, second, frac = m.groups()
    micro = int(frac.ljust(6, "0")) if frac else 0
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second or 0), micro
    )


def parse_wall_clock(value: WallClockLike, tz: Optional[tzinfo] = None) -> datetime:
    """
    Returns the naive wall-clock datetime for a stored value, form input,
    datetime or date.

    UTC-marked strings are read digit by digit. Anything carrying a real
    offset is converted into the display timezone (``tz`` or the configured
    one) and made naive, so the result is what a viewer's clock reads.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    else:
        raw = (value or "").strip()
        if not raw:
            raise ValueError("Empty timestamp")
        if is_utc_marked(raw):
            return _positional(raw)
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError as e:
            raise ValueError(f"Unrecognized timestamp: {raw!r}") from e

    if dt.tzinfo is not None:
        target = tz if tz is not None else display_timezone()
        dt = dt.astimezone(target).replace(tzinfo=None)
    return dt


def to_form_input(stored: WallClockLike, tz: Optional[tzinfo] = None) -> str:
    """
    Stored value -> ``YYYY-MM-DDThh:mm`` for the block form.
    """
    if is_utc_marked(stored):
        return f"{stored[0:10]}T{stored[11:16]}"
    return parse_wall_clock(stored, tz).strftime("%Y-%m-%dT%H:%M")


def to_stored(form_input: WallClockLike, tz: Optional[tzinfo] = None) -> str:
    """
    Form input -> stored string. The digits typed are kept verbatim and the
    ``Z`` suffix is appended without any conversion.
    """
    if isinstance(form_input, str):
        raw = form_input.strip()
        if not raw:
            return ""
        m = FORM_INPUT_RE.match(raw)
        if m:
            return f"{m.group(1)}T{m.group(2)}:00.000Z"

    logger.debug("Non-form timestamp %r, converting via wall clock", form_input)
    dt = parse_wall_clock(form_input, tz)
    return dt.strftime("%Y-%m-%dT%H:%M") + ":00.000Z"


def extract_hour_minute(value: WallClockLike) -> Tuple[int, int]:
    if is_utc_marked(value):
        return int(value[11:13]), int(value[14:16])
    dt = parse_wall_clock(value)
    return dt.hour, dt.minute


def decimal_hour(value: WallClockLike) -> float:
    hour, minute = extract_hour_minute(value)
    return hour + minute / 60


def minutes_since_midnight(value: WallClockLike) -> int:
    hour, minute = extract_hour_minute(value)
    return hour * 60 + minute


def calendar_date(value: WallClockLike) -> date:
    """
    Calendar-field normalization (year/month/day as read on the wall clock).
    """
    if isinstance(value, datetime):
        return parse_wall_clock(value).date()
    if isinstance(value, date):
        return value
    raw = (value or "").strip() if isinstance(value, str) else ""
    if DATE_ONLY_RE.match(raw):
        return date.fromisoformat(raw)
    return parse_wall_clock(raw).date()


def date_range(start: WallClockLike, end: WallClockLike) -> List[date]:
    first, last = calendar_date(start), calendar_date(end)
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


# ---------- Display ----------
def format_time_12h(value: WallClockLike, upper: bool = False) -> str:
    hour, minute = extract_hour_minute(value)
    suffix = "pm" if hour >= 12 else "am"
    if upper:
        suffix = suffix.upper()
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def format_time_compact(value: WallClockLike) -> str:
    # "10:30 am" -> "10:30a"
    return format_time_12h(value).replace(" am", "a").replace(" pm", "p")


def format_hour_marker(hour: int) -> str:
    hour = hour % 24
    return f"{hour % 12 or 12}{'am' if hour < 12 else 'pm'}"


def format_date_display(value: WallClockLike) -> str:
    d = calendar_date(value)
    return f"{MONTHS[d.month - 1]} {d.day}, {d.year}"


def format_day_heading(value: WallClockLike) -> str:
    d = calendar_date(value)
    return f"{d.strftime('%A')}, {format_date_display(d)}"


def format_date_range(start: WallClockLike, end: WallClockLike) -> str:
    first, last = calendar_date(start), calendar_date(end)
    if first == last:
        return format_date_display(first)
    if first.year == last.year and first.month == last.month:
        return f"{MONTHS[first.month - 1]} {first.day} - {last.day}, {first.year}"
    if first.year == last.year:
        return f"{MONTHS[first.month - 1]} {first.day} - {MONTHS[last.month - 1]} {last.day}, {last.year}"
    return f"{format_date_display(first)} - {format_date_display(last)}"


# ---------- Form helpers ----------
def parse_hhmm(on_date: str, raw: str) -> datetime:
    """
    Parses '4:00 PM', '4 PM' or '16:00' on a 'YYYY-MM-DD' date.
    """
    day = date.fromisoformat(on_date.strip())
    text = (raw or "").strip().upper()
    for fmt in ("%I:%M %p", "%I:%M%p", "%I %p", "%I%p", "%H:%M"):
        try:
            t = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return datetime(day.year, day.month, day.day, t.hour, t.minute)
    raise ValueError(f"Couldn't read time {raw!r}")


def add_minutes(dt: datetime, minutes: int) -> datetime:
    return dt + timedelta(minutes=int(minutes))


# =========================
# file: core/intervals.py
# =========================
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Tuple, Union

from core.models import Precision
from core.timeutils import add_minutes


def as_precision(value: Union[Precision, str, None], default: Precision = Precision.THIRTY) -> Precision:
    if isinstance(value, Precision):
        return value
    try:
        return Precision(str(value))
    except ValueError:
        return default


def alignment_message(precision: Precision) -> str:
    if precision is Precision.FIFTEEN:
        return "Time must be aligned to 15-minute intervals (XX:00, XX:15, XX:30, or XX:45)"
    return "Time must be aligned to 30-minute intervals (XX:00 or XX:30)"


def is_aligned(ts: datetime, precision: Precision) -> bool:
    return ts.minute in precision.allowed_minutes


def round_to_interval(ts: datetime, precision: Precision = Precision.THIRTY) -> datetime:
    """
    30 min: <15 -> :00, 15-44 -> :30, >=45 -> next hour :00.
    15 min: nearest quarter hour; :60 rolls into the next hour.
    Seconds and microseconds are always dropped.
    """
    base = ts.replace(minute=0, second=0, microsecond=0)
    minutes = ts.minute

    if precision is Precision.FIFTEEN:
        rounded = (minutes + 7) // 15 * 15
    elif minutes < 15:
        rounded = 0
    elif minutes < 45:
        rounded = 30
    else:
        rounded = 60

    return base + timedelta(minutes=rounded)


def apply_precision(start: datetime, end: datetime, precision: Precision) -> Tuple[datetime, datetime]:
    """
    Re-rounds a form's start/end after a precision switch.

    If rounding squeezes the block below one precision unit, the end is moved
    to start + one unit even when that changes the duration the user typed.
    """
    new_start = round_to_interval(start, precision)
    new_end = round_to_interval(end, precision)
    if new_end - new_start < timedelta(minutes=precision.minutes):
        new_end = add_minutes(new_start, precision.minutes)
    return new_start, new_end


def default_block_times(now: datetime, precision: Precision = Precision.THIRTY) -> Tuple[datetime, datetime]:
    start = round_to_interval(now, precision)
    return start, add_minutes(start, precision.minutes)

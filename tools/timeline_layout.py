# =========================
# file: tools/timeline_layout.py
# =========================
from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from core.models import TimelineBlock
from core.timeutils import (
    decimal_hour,
    format_hour_marker,
    format_time_12h,
    format_time_compact,
    minutes_since_midnight,
)

logger = logging.getLogger(__name__)

HOUR_HEIGHT = 128  # px per hour in the vertical view


@dataclass(frozen=True)
class HourWindow:
    start_hour: int
    end_hour: int

    @property
    def hours(self) -> int:
        return self.end_hour - self.start_hour

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60

    @property
    def total_minutes(self) -> int:
        return self.hours * 60

    def contains(self, other: "HourWindow") -> bool:
        return self.start_hour <= other.start_hour and self.end_hour >= other.end_hour

    def markers(self) -> List[Tuple[int, str]]:
        return [(h, format_hour_marker(h)) for h in range(self.start_hour, self.end_hour)]


VERTICAL_DEFAULT_WINDOW = HourWindow(8, 20)
HORIZONTAL_DEFAULT_WINDOW = HourWindow(6, 22)


def compute_visible_hour_window(
    blocks: Iterable[TimelineBlock],
    default_window: HourWindow,
) -> HourWindow:
    """
    Grows the default window to fit every block, with an hour of padding on
    whichever side had to grow. Never shrinks below the default.

    Blocks ending between 10pm and 11pm always push the end to at least 11pm.
    """
    blocks = list(blocks)
    if not blocks:
        return default_window

    starts = [decimal_hour(b.start_time) for b in blocks]
    ends = [decimal_hour(b.end_time) for b in blocks]

    earliest = math.floor(min(starts))
    latest = math.ceil(max(ends))

    start_hour, end_hour = default_window.start_hour, default_window.end_hour
    if earliest < start_hour:
        start_hour = max(0, earliest - 1)
    if latest > end_hour:
        end_hour = min(24, latest + 1)
    if any(22 < e <= 23 for e in ends):
        end_hour = max(end_hour, 23)

    window = HourWindow(start_hour, end_hour)
    if window != default_window:
        logger.debug("Expanded hour window %s -> %s", default_window, window)
    return window


def is_expanded(window: HourWindow, default_window: HourWindow) -> bool:
    return window != default_window


# -------------------------
# Vertical
# -------------------------
class VerticalDensity(str, Enum):
    ULTRA_COMPACT = "ultra-compact"
    COMPACT = "compact"
    MEDIUM = "medium"
    FULL = "full"


@dataclass(frozen=True)
class VerticalGeometry:
    top: float
    height: float


@dataclass(frozen=True)
class VerticalBlock:
    block: TimelineBlock
    geometry: VerticalGeometry
    density: VerticalDensity
    time_label: str


@dataclass
class VerticalDayLayout:
    day: Optional[date]
    window: HourWindow
    expanded: bool
    hour_height: int
    blocks: List[VerticalBlock] = field(default_factory=list)
    now_offset: Optional[float] = None

    @property
    def total_height(self) -> int:
        return self.window.hours * self.hour_height

    @property
    def markers(self) -> List[Tuple[float, str]]:
        return [
            ((h - self.window.start_hour) * self.hour_height, label)
            for h, label in self.window.markers()
        ]


def compute_range(
    blocks: Iterable[TimelineBlock],
    default_window: HourWindow = VERTICAL_DEFAULT_WINDOW,
) -> HourWindow:
    return compute_visible_hour_window(blocks, default_window)


def compute_geometry(block: TimelineBlock, start_hour: int, hour_height: int = HOUR_HEIGHT) -> VerticalGeometry:
    start_dec = decimal_hour(block.start_time)
    end_dec = decimal_hour(block.end_time)
    return VerticalGeometry(
        top=max(0.0, (start_dec - start_hour) * hour_height),
        height=(end_dec - start_dec) * hour_height,
    )


def vertical_density(duration_minutes: float) -> VerticalDensity:
    if duration_minutes <= 15:
        return VerticalDensity.ULTRA_COMPACT
    if duration_minutes <= 30:
        return VerticalDensity.COMPACT
    if duration_minutes < 60:
        return VerticalDensity.MEDIUM
    return VerticalDensity.FULL


def _duration_minutes(block: TimelineBlock) -> int:
    return minutes_since_midnight(block.end_time) - minutes_since_midnight(block.start_time)


def vertical_time_label(block: TimelineBlock) -> str:
    """
    "10:00a (15m)", "10:00-10:30a" / "11:45a-12:15p", or "10:00 am — 11:00 am".
    """
    minutes = _duration_minutes(block)
    density = vertical_density(minutes)

    if density is VerticalDensity.ULTRA_COMPACT:
        return f"{format_time_compact(block.start_time)} ({minutes}m)"

    start = format_time_12h(block.start_time)
    end = format_time_12h(block.end_time)
    if density is VerticalDensity.COMPACT:
        start_clock, start_mer = start.split(" ")
        end_clock, end_mer = end.split(" ")
        if start_mer == end_mer:
            return f"{start_clock}-{end_clock}{end_mer[0]}"
        return f"{start_clock}{start_mer[0]}-{end_clock}{end_mer[0]}"

    return f"{start} — {end}"


def now_marker_offset(now: datetime, window: HourWindow, hour_height: int = HOUR_HEIGHT) -> Optional[float]:
    """Pixel offset of the current-time line, or None outside the window."""
    current = now.hour + now.minute / 60
    if current < window.start_hour or current > window.end_hour:
        return None
    return (current - window.start_hour) * hour_height


def layout_vertical_day(
    blocks: Sequence[TimelineBlock],
    day: Optional[date] = None,
    hour_height: int = HOUR_HEIGHT,
    default_window: HourWindow = VERTICAL_DEFAULT_WINDOW,
    now: Optional[datetime] = None,
) -> VerticalDayLayout:
    window = compute_range(blocks, default_window)
    layout = VerticalDayLayout(
        day=day,
        window=window,
        expanded=is_expanded(window, default_window),
        hour_height=hour_height,
    )
    for b in blocks:
        layout.blocks.append(
            VerticalBlock(
                block=b,
                geometry=compute_geometry(b, window.start_hour, hour_height),
                density=vertical_density(_duration_minutes(b)),
                time_label=vertical_time_label(b),
            )
        )
    if now is not None and day is not None and now.date() == day:
        layout.now_offset = now_marker_offset(now, window, hour_height)
    return layout


# -------------------------
# Horizontal
# -------------------------
class HorizontalDensity(str, Enum):
    ULTRA_COMPACT = "ultra-compact"
    COMPACT = "compact"
    STANDARD = "standard"


DETAIL_MIN_WIDTH = 22  # percent; status badge + description only above this


@dataclass(frozen=True)
class HorizontalBlock:
    block: TimelineBlock
    left: float
    width: float
    density: HorizontalDensity
    time_label: str
    tooltip: str
    show_status: bool
    show_description: bool


@dataclass
class HorizontalDayLayout:
    day: Optional[date]
    window: HourWindow
    expanded: bool
    blocks: List[HorizontalBlock] = field(default_factory=list)
    now_percent: Optional[float] = None

    @property
    def markers(self) -> List[Tuple[float, str]]:
        return [
            ((h - self.window.start_hour) / self.window.hours * 100, label)
            for h, label in self.window.markers()
        ]


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def compute_time_position(block: TimelineBlock, window: HourWindow = HORIZONTAL_DEFAULT_WINDOW) -> Tuple[float, float]:
    """
    (left, width) as percentages of the window. Width is at least 1 and the
    block never runs past the right edge.
    """
    total = window.total_minutes
    start_pct = (minutes_since_midnight(block.start_time) - window.start_minutes) / total * 100
    end_pct = (minutes_since_midnight(block.end_time) - window.start_minutes) / total * 100

    # leave room for the 1% minimum width
    left = _clamp(start_pct, 0.0, 99.0)
    width = max(1.0, min(100.0 - left, end_pct - left))
    return left, width


def horizontal_density(width: float) -> HorizontalDensity:
    if width < 8:
        return HorizontalDensity.ULTRA_COMPACT
    if width < 15:
        return HorizontalDensity.COMPACT
    return HorizontalDensity.STANDARD


def now_marker_percent(now: datetime, window: HourWindow = HORIZONTAL_DEFAULT_WINDOW) -> float:
    current = now.hour * 60 + now.minute
    return _clamp((current - window.start_minutes) / window.total_minutes * 100, 0.0, 100.0)


def _horizontal_block(block: TimelineBlock, window: HourWindow) -> HorizontalBlock:
    left, width = compute_time_position(block, window)
    density = horizontal_density(width)
    compact_range = f"{format_time_compact(block.start_time)}-{format_time_compact(block.end_time)}"

    if density is HorizontalDensity.ULTRA_COMPACT:
        label = ""
    elif density is HorizontalDensity.COMPACT:
        label = format_time_compact(block.start_time)
    else:
        label = f"{format_time_12h(block.start_time)} - {format_time_12h(block.end_time)}"

    standard = density is HorizontalDensity.STANDARD
    return HorizontalBlock(
        block=block,
        left=left,
        width=width,
        density=density,
        time_label=label,
        tooltip=f"{block.title} ({compact_range})",
        show_status=standard and width > DETAIL_MIN_WIDTH,
        show_description=standard and width > DETAIL_MIN_WIDTH and bool(block.description),
    )


def layout_horizontal_day(
    blocks: Sequence[TimelineBlock],
    day: Optional[date] = None,
    default_window: HourWindow = HORIZONTAL_DEFAULT_WINDOW,
    now: Optional[datetime] = None,
) -> HorizontalDayLayout:
    window = compute_visible_hour_window(blocks, default_window)
    layout = HorizontalDayLayout(
        day=day,
        window=window,
        expanded=is_expanded(window, default_window),
        blocks=[_horizontal_block(b, window) for b in blocks],
    )
    if now is not None and day is not None and now.date() == day:
        layout.now_percent = now_marker_percent(now, window)
    return layout

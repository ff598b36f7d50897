# =========================
# file: tools/timeline_days.py
# =========================
from __future__ import annotations
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from core.models import TimelineBlock
from core.timeutils import WallClockLike, calendar_date, date_range, parse_wall_clock

logger = logging.getLogger(__name__)


class GhostReason(str, Enum):
    INVERTED = "inverted"
    CROSSES_MIDNIGHT = "crosses_midnight"
    MISSING_TITLE = "missing_title"
    UNPARSEABLE = "unparseable"
    OUT_OF_RANGE = "out_of_range"

    @property
    def label(self) -> str:
        return {
            GhostReason.INVERTED: "Starts after it ends",
            GhostReason.CROSSES_MIDNIGHT: "Spans more than one day",
            GhostReason.MISSING_TITLE: "No title",
            GhostReason.UNPARSEABLE: "Unreadable start or end time",
            GhostReason.OUT_OF_RANGE: "Outside the event dates",
        }[self]


@dataclass(frozen=True)
class GhostBlock:
    block: TimelineBlock
    reason: GhostReason


@dataclass
class DayBuckets:
    days: "OrderedDict[date, List[TimelineBlock]]" = field(default_factory=OrderedDict)
    ghosts: List[GhostBlock] = field(default_factory=list)

    def non_empty_days(self) -> List[Tuple[date, List[TimelineBlock]]]:
        return [(d, blocks) for d, blocks in self.days.items() if blocks]

    @property
    def block_count(self) -> int:
        return sum(len(blocks) for blocks in self.days.values())


def _times(block: TimelineBlock) -> Optional[Tuple[datetime, datetime]]:
    try:
        return parse_wall_clock(block.start_time), parse_wall_clock(block.end_time)
    except ValueError:
        return None


def detect_ghost(block: TimelineBlock) -> Optional[GhostReason]:
    """
    Intrinsic corruption only; range membership is the bucketizer's job.
    A same-day block with start < end and a title is never flagged.
    """
    times = _times(block)
    if times is None:
        return GhostReason.UNPARSEABLE
    start, end = times
    if start > end:
        return GhostReason.INVERTED
    if start.date() != end.date():
        return GhostReason.CROSSES_MIDNIGHT
    if not (block.title or "").strip():
        return GhostReason.MISSING_TITLE
    return None


def sort_key(block: TimelineBlock) -> Tuple[datetime, datetime, str]:
    return block.start, block.end, block.title


def bucketize(
    event_start: WallClockLike,
    event_end: WallClockLike,
    blocks: Iterable[TimelineBlock],
) -> DayBuckets:
    """
    One entry per calendar day in [event_start, event_end], empty days
    included, each sorted by start time. Ghosts and blocks starting outside
    the range never land in a day.
    """
    first, last = calendar_date(event_start), calendar_date(event_end)
    if last < first:
        logger.warning("Event ends (%s) before it starts (%s); no days to show", last, first)

    buckets = DayBuckets(days=OrderedDict((d, []) for d in date_range(first, last)))

    for block in blocks:
        reason = detect_ghost(block)
        if reason is not None:
            buckets.ghosts.append(GhostBlock(block, reason))
            continue

        day = block.start.date()
        if day not in buckets.days:
            buckets.ghosts.append(GhostBlock(block, GhostReason.OUT_OF_RANGE))
            continue
        buckets.days[day].append(block)

    for day_blocks in buckets.days.values():
        day_blocks.sort(key=sort_key)

    if buckets.ghosts:
        logger.info("Found %d ghost block(s)", len(buckets.ghosts))
    return buckets


def ghosts_by_reason(ghosts: Iterable[GhostBlock]) -> Dict[GhostReason, List[GhostBlock]]:
    grouped: Dict[GhostReason, List[GhostBlock]] = {}
    for g in ghosts:
        grouped.setdefault(g.reason, []).append(g)
    return grouped

# =========================
# file: tools/timeline_builder.py
# =========================
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font

from core.config import TimelineSettings, load_settings
from core.models import BlockStatus, EventInfo, Precision, TimelineBlock
from core.schemas import BlockValidationError, validate_block, validate_update
from core.store import StoreError, TimelineStore
from core.timeutils import format_time_12h, parse_wall_clock
from tools.run_of_show import StatusTally
from tools.timeline_days import DayBuckets, GhostBlock, bucketize
from tools.timeline_layout import (
    HourWindow,
    HorizontalDayLayout,
    VerticalDayLayout,
    layout_horizontal_day,
    layout_vertical_day,
)

logger = logging.getLogger(__name__)


# ---------- Page assembly ----------
@dataclass
class TimelineDay:
    day: date
    blocks: List[TimelineBlock]
    vertical: VerticalDayLayout
    horizontal: HorizontalDayLayout


@dataclass
class TimelinePage:
    event: EventInfo
    days: List[TimelineDay] = field(default_factory=list)
    ghosts: List[GhostBlock] = field(default_factory=list)
    tally: StatusTally = field(default_factory=StatusTally)

    @property
    def valid_blocks(self) -> List[TimelineBlock]:
        return [b for d in self.days for b in d.blocks]


def build_timeline_page(
    event: EventInfo,
    blocks: Iterable[TimelineBlock],
    settings: Optional[TimelineSettings] = None,
    now: Optional[datetime] = None,
) -> TimelinePage:
    """
    Buckets the event's blocks by day and lays every day out both ways.
    Ghosts are collected for the cleanup panel and never laid out.
    """
    settings = settings or load_settings()
    buckets: DayBuckets = bucketize(event.start_date, event.end_date, blocks)

    vertical_default = HourWindow(*settings.vertical_window)
    horizontal_default = HourWindow(*settings.horizontal_window)

    page = TimelinePage(event=event, ghosts=list(buckets.ghosts))
    for day, day_blocks in buckets.days.items():
        page.days.append(
            TimelineDay(
                day=day,
                blocks=day_blocks,
                vertical=layout_vertical_day(
                    day_blocks,
                    day=day,
                    hour_height=settings.hour_height,
                    default_window=vertical_default,
                    now=now,
                ),
                horizontal=layout_horizontal_day(
                    day_blocks,
                    day=day,
                    default_window=horizontal_default,
                    now=now,
                ),
            )
        )
    page.tally = status_tally(page.valid_blocks)
    return page


def status_tally(blocks: Iterable[TimelineBlock]) -> StatusTally:
    return StatusTally.of(blocks)


def minutes_by_status(blocks: Iterable[TimelineBlock]) -> pd.DataFrame:
    """
    Scheduled minutes per status.
    Displays: '90 min (1.5 hr)'.
    """
    rows = [{"Status": b.status.label, "Minutes": b.duration_minutes} for b in blocks]
    if not rows:
        return pd.DataFrame(columns=["Status", "Time Used"])

    df = pd.DataFrame(rows)
    grouped = (
        df.groupby("Status", as_index=False)["Minutes"]
        .sum()
        .sort_values("Minutes", ascending=False)
    )
    grouped["Time Used"] = grouped["Minutes"].apply(lambda m: f"{m} min ({round(m / 60, 2)} hr)")
    return grouped[["Status", "Time Used"]]


# ---------- Exports ----------
EXPORT_COLUMNS = [
    "Date", "Start", "End", "Block", "Minutes", "Status",
    "Location", "Personnel", "Equipment", "Description", "Notes",
]


def blocks_to_dataframe(blocks: List[TimelineBlock]) -> pd.DataFrame:
    rows = []
    for b in blocks:
        try:
            start, end = b.start, b.end
        except ValueError:
            logger.warning("Skipping block %s with unreadable times in export", b.id)
            continue
        rows.append(
            {
                "StartDT": start,
                "EndDT": end,
                "Date": start.date().isoformat(),
                "Start": format_time_12h(b.start_time, upper=True),
                "End": format_time_12h(b.end_time, upper=True),
                "Block": b.title,
                "Minutes": b.duration_minutes,
                "Status": b.status.label,
                "Location": b.location,
                "Personnel": b.personnel,
                "Equipment": b.equipment,
                "Description": b.description,
                "Notes": b.notes,
            }
        )
    if not rows:
        return pd.DataFrame(columns=EXPORT_COLUMNS)

    df = pd.DataFrame(rows)
    df = df.sort_values(["StartDT", "EndDT", "Block"]).drop(columns=["StartDT", "EndDT"]).reset_index(drop=True)
    return df


def blocks_to_csv_bytes(blocks: List[TimelineBlock]) -> bytes:
    return blocks_to_dataframe(blocks).to_csv(index=False).encode("utf-8")


def blocks_to_xlsx_bytes(blocks: List[TimelineBlock], sheet_name: str = "Timeline") -> bytes:
    df = blocks_to_dataframe(blocks)

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws.append(list(df.columns))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in df.astype(object).itertuples(index=False):
        ws.append([None if v == "" else v for v in row])

    for col_cells in ws.columns:
        longest = max(len(str(c.value)) if c.value is not None else 0 for c in col_cells)
        ws.column_dimensions[col_cells[0].column_letter].width = min(60, max(10, longest + 2))

    out = BytesIO()
    wb.save(out)
    return out.getvalue()


def blocks_to_text(blocks: List[TimelineBlock], status_filter: Optional[BlockStatus] = None) -> str:
    sorted_blocks = sorted(blocks, key=lambda b: (b.start, b.end, b.title))

    lines: List[str] = []
    current_day: Optional[date] = None
    for b in sorted_blocks:
        if status_filter and b.status is not status_filter:
            continue

        if b.start.date() != current_day:
            if lines:
                lines.append("")
            current_day = b.start.date()
            lines.append(current_day.strftime("%A, %B %d").replace(" 0", " "))

        line = f"{format_time_12h(b.start_time)}–{format_time_12h(b.end_time)} • {b.title}"
        if b.location:
            line += f" ({b.location})"
        lines.append(line)
        if b.notes:
            lines.append(f"  - {b.notes}")

    return "\n".join(lines)


# ---------- Writes ----------
def save_block(
    store: TimelineStore,
    event_id: str,
    payload: Mapping[str, Any],
    precision: Precision,
    block_id: Optional[str] = None,
) -> TimelineBlock:
    """
    Validates and writes a block. Edits are a single partial update keyed by
    id, so the id and created_at never change and a failed write leaves the
    stored block as it was.
    """
    if block_id is None:
        data = dict(payload)
        data["eventId"] = event_id
        model = validate_block(data, precision)
        block = store.create_block(model.to_record())
        logger.info("Created block %s (%s)", block.id, block.title)
        return block

    update = validate_update(payload, precision)
    changes = update.to_changes()

    # a single changed time still has to stay on the right side of the stored one
    if ("start_time" in changes) != ("end_time" in changes):
        current = store.get_block(block_id)
        start = parse_wall_clock(changes["start_time"] if "start_time" in changes else current.start_time)
        end = parse_wall_clock(changes["end_time"] if "end_time" in changes else current.end_time)
        if start >= end:
            raise BlockValidationError({"endTime": "End time must be after start time"})

    block = store.update_block(block_id, changes)
    logger.info("Updated block %s (%s)", block.id, ", ".join(sorted(changes)) or "no changes")
    return block


@dataclass
class CleanupResult:
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def cleanup_ghost_blocks(store: TimelineStore, event_id: str, ghosts: Iterable[GhostBlock]) -> CleanupResult:
    """
    Deletes ghost blocks one at a time. Failures are collected so one bad
    row doesn't stop the rest.
    """
    result = CleanupResult()
    for g in ghosts:
        block_id = g.block.id
        if g.block.event_id and g.block.event_id != event_id:
            result.failed[block_id] = "Block belongs to a different event"
            continue
        try:
            store.delete_block(block_id)
        except StoreError as e:
            logger.warning("Couldn't delete ghost block %s: %s", block_id, e)
            result.failed[block_id] = str(e)
            continue
        result.deleted.append(block_id)

    logger.info("Ghost cleanup for %s: %d deleted, %d failed", event_id, len(result.deleted), len(result.failed))
    return result

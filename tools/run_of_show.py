# =========================
# file: tools/run_of_show.py
# =========================
"""
Run-of-show document: a printable, chronological, per-day schedule.

``build_run_of_show`` produces a plain data structure; the PDF and text
renderers below only format it. Day membership goes through the same
bucketizer as the timeline views, so ghosts and blocks outside the event
dates never print.
"""
from __future__ import annotations
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from html import escape
from typing import Dict, Iterable, List, Optional, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    KeepTogether,
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from core.models import BlockStatus, EventInfo, TimelineBlock, require_every_status
from core.timeutils import extract_hour_minute, format_date_display, format_time_12h
from tools.timeline_days import bucketize

logger = logging.getLogger(__name__)

NO_BLOCKS_MESSAGE = "No timeline blocks scheduled for this event."
APP_NAME = "Event Ops Suite"

# (text, background)
STATUS_COLORS: Dict[BlockStatus, tuple] = {
    BlockStatus.PENDING: ("#575757", "#F8F8F8"),
    BlockStatus.IN_PROGRESS: ("#2D6CCA", "#F5F8FD"),
    BlockStatus.COMPLETE: ("#5A458E", "#F7F6FB"),
    BlockStatus.CANCELLED: ("#C63A2F", "#FDF5F5"),
}
require_every_status(STATUS_COLORS, "STATUS_COLORS")


@dataclass(frozen=True)
class StatusTally:
    complete: int = 0
    in_progress: int = 0
    pending: int = 0
    cancelled: int = 0

    @property
    def total(self) -> int:
        return self.complete + self.in_progress + self.pending + self.cancelled

    @classmethod
    def of(cls, blocks: Iterable[TimelineBlock]) -> "StatusTally":
        counts = {s: 0 for s in BlockStatus}
        for b in blocks:
            counts[b.status] += 1
        return cls(
            complete=counts[BlockStatus.COMPLETE],
            in_progress=counts[BlockStatus.IN_PROGRESS],
            pending=counts[BlockStatus.PENDING],
            cancelled=counts[BlockStatus.CANCELLED],
        )

    def summary(self) -> str:
        parts = [
            f"{self.complete} complete",
            f"{self.in_progress} in progress",
            f"{self.pending} pending",
        ]
        if self.cancelled:
            parts.append(f"{self.cancelled} cancelled")
        return " · ".join(parts)


@dataclass(frozen=True)
class HourDivider:
    hour: int

    @property
    def label(self) -> str:
        return f"{self.hour % 12 or 12}{'AM' if self.hour < 12 else 'PM'}"


@dataclass(frozen=True)
class BlockEntry:
    title: str
    start_label: str
    end_label: str
    status: BlockStatus
    location: Optional[str] = None
    personnel: Optional[str] = None
    equipment: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @property
    def status_label(self) -> str:
        return self.status.label

    @property
    def time_range(self) -> str:
        return f"{self.start_label} - {self.end_label}"

    @classmethod
    def from_block(cls, block: TimelineBlock) -> "BlockEntry":
        return cls(
            title=block.title,
            start_label=format_time_12h(block.start_time, upper=True),
            end_label=format_time_12h(block.end_time, upper=True),
            status=block.status,
            location=block.location or None,
            personnel=block.personnel or None,
            equipment=block.equipment or None,
            description=block.description or None,
            notes=block.notes or None,
        )


RunItem = Union[HourDivider, BlockEntry]


@dataclass
class DaySection:
    day: Optional[date]
    heading: str
    tally: StatusTally = field(default_factory=StatusTally)
    items: List[RunItem] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def entries(self) -> List[BlockEntry]:
        return [i for i in self.items if isinstance(i, BlockEntry)]


@dataclass
class RunOfShow:
    event_name: str
    location: Optional[str]
    date_range: str
    sections: List[DaySection]

    @property
    def is_empty(self) -> bool:
        return all(not s.entries for s in self.sections)


def header_date_range(start: date, end: date) -> str:
    if start == end:
        return format_date_display(start)
    return f"{format_date_display(start)} - {format_date_display(end)}"


def build_run_of_show(event: EventInfo, blocks: Iterable[TimelineBlock]) -> RunOfShow:
    buckets = bucketize(event.start_date, event.end_date, blocks)

    sections: List[DaySection] = []
    for day, day_blocks in buckets.non_empty_days():
        section = DaySection(day=day, heading=format_date_display(day), tally=StatusTally.of(day_blocks))
        prev_hour: Optional[int] = None
        for b in day_blocks:
            hour, _ = extract_hour_minute(b.start_time)
            if hour != prev_hour:
                section.items.append(HourDivider(hour))
                prev_hour = hour
            section.items.append(BlockEntry.from_block(b))
        sections.append(section)

    if not sections:
        sections.append(DaySection(day=None, heading="", message=NO_BLOCKS_MESSAGE))

    if buckets.ghosts:
        logger.info("Run of show for %s skips %d ghost block(s)", event.name, len(buckets.ghosts))

    return RunOfShow(
        event_name=event.name,
        location=event.location or None,
        date_range=header_date_range(event.start_date, event.end_date),
        sections=sections,
    )


def run_of_show_filename(event: EventInfo, on: Optional[date] = None, ext: str = "pdf") -> str:
    slug = re.sub(r"\s+", "-", (event.name or "event").strip()).lower()
    slug = re.sub(r"[^a-z0-9\-_]", "", slug) or "event"
    on = on or date.today()
    return f"{slug}-run-of-show-{on.isoformat()}.{ext}"


# -------------------------
# Text (copy/paste)
# -------------------------
def _entry_lines(entry: BlockEntry) -> List[str]:
    lines = [f"  {entry.time_range}  {entry.title} [{entry.status_label}]"]
    for label, value in (
        ("Location", entry.location),
        ("Personnel", entry.personnel),
        ("Equipment", entry.equipment),
        ("Description", entry.description),
        ("Notes", entry.notes),
    ):
        if value:
            lines.append(f"      {label}: {value}")
    return lines


def render_text(ros: RunOfShow) -> str:
    lines = [ros.event_name.upper(), "Run of Show"]
    if ros.location:
        lines.append(f"Location: {ros.location}")
    lines.append(f"Date: {ros.date_range}")
    lines.append("")

    for section in ros.sections:
        if section.message:
            lines.append(section.message)
            continue
        lines.append(section.heading.upper())
        lines.append(f"Status: {section.tally.summary()}")
        for item in section.items:
            if isinstance(item, HourDivider):
                lines.append(f"-- {item.label} --")
            else:
                lines.extend(_entry_lines(item))
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


# -------------------------
# PDF
# -------------------------
MARGIN = 0.75 * inch
DARK = colors.HexColor("#1e293b")
MUTED = colors.HexColor("#64748b")
RULE = colors.HexColor("#e2e8f0")


def _styles() -> Dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("RosTitle", parent=base["Heading1"], fontSize=22, textColor=DARK, spaceAfter=4),
        "subtitle": ParagraphStyle("RosSubtitle", parent=base["Normal"], fontSize=10, textColor=MUTED, spaceAfter=2),
        "day": ParagraphStyle("RosDay", parent=base["Heading2"], fontSize=15, textColor=DARK, spaceBefore=6, spaceAfter=4),
        "summary": ParagraphStyle("RosSummary", parent=base["Normal"], fontSize=9, textColor=MUTED, spaceAfter=8),
        "hour": ParagraphStyle("RosHour", parent=base["Normal"], fontSize=9, textColor=MUTED, spaceBefore=8, spaceAfter=4),
        "block_title": ParagraphStyle("RosBlockTitle", parent=base["Normal"], fontSize=11, textColor=DARK, leading=14),
        "meta": ParagraphStyle("RosMeta", parent=base["Normal"], fontSize=9, textColor=DARK, leading=12),
        "time": ParagraphStyle("RosTime", parent=base["Normal"], fontSize=9, textColor=MUTED, leading=12),
        "empty": ParagraphStyle("RosEmpty", parent=base["Normal"], fontSize=11, textColor=MUTED, spaceBefore=24),
    }


def _entry_flowable(entry: BlockEntry, styles: Dict[str, ParagraphStyle], width: float) -> Table:
    fg, bg = STATUS_COLORS[entry.status]

    details = [
        Paragraph(f"<b>{escape(entry.title)}</b>", styles["block_title"]),
        Paragraph(
            f'<font color="{fg}">{escape(entry.status_label)}</font>'
            + (f" · {escape(entry.location)}" if entry.location else ""),
            styles["meta"],
        ),
    ]
    for label, value in (
        ("Personnel", entry.personnel),
        ("Equipment", entry.equipment),
        ("Description", entry.description),
        ("Notes", entry.notes),
    ):
        if value:
            details.append(Paragraph(f"<b>{label}:</b> {escape(value)}", styles["meta"]))

    time_cell = Paragraph(f"{entry.start_label}<br/>{entry.end_label}", styles["time"])
    table = Table([[time_cell, details]], colWidths=[1.1 * inch, width - 1.1 * inch])
    table.setStyle(
        TableStyle(
            [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("BACKGROUND", (1, 0), (1, 0), colors.HexColor(bg)),
                ("LINEBEFORE", (1, 0), (1, 0), 2, colors.HexColor(fg)),
                ("LEFTPADDING", (1, 0), (1, 0), 8),
                ("TOPPADDING", (0, 0), (-1, -1), 6),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ]
        )
    )
    return table


def _add_page_number(canvas_obj, doc):
    canvas_obj.saveState()
    text = f"Page {canvas_obj.getPageNumber()} • Generated on {date.today().strftime('%B %d, %Y')} • {APP_NAME}"
    canvas_obj.setFont("Helvetica", 8)
    canvas_obj.setFillColor(colors.grey)
    canvas_obj.drawRightString(letter[0] - MARGIN, MARGIN / 2, text)
    canvas_obj.restoreState()


def render_pdf(ros: RunOfShow) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=MARGIN,
        leftMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=f"{ros.event_name} - Run of Show",
    )
    styles = _styles()
    width = letter[0] - 2 * MARGIN

    story: list = [
        Paragraph(escape(ros.event_name), styles["title"]),
        Paragraph("Run of Show", styles["subtitle"]),
    ]
    if ros.location:
        story.append(Paragraph(f"Location: {escape(ros.location)}", styles["subtitle"]))
    story.append(Paragraph(f"Date: {escape(ros.date_range)}", styles["subtitle"]))
    story.append(Spacer(1, 0.25 * inch))

    for i, section in enumerate(ros.sections):
        if section.message:
            story.append(Paragraph(escape(section.message), styles["empty"]))
            continue
        if i > 0:
            story.append(PageBreak())

        story.append(Paragraph(escape(section.heading), styles["day"]))
        story.append(Paragraph(f"Status: {section.tally.summary()}", styles["summary"]))

        pending_divider: Optional[Paragraph] = None
        for item in section.items:
            if isinstance(item, HourDivider):
                pending_divider = Paragraph(item.label, styles["hour"])
                continue
            flow = _entry_flowable(item, styles, width)
            if pending_divider is not None:
                # keep the hour label on the same page as its first block
                story.append(KeepTogether([pending_divider, flow]))
                pending_divider = None
            else:
                story.append(flow)

    doc.build(story, onFirstPage=_add_page_number, onLaterPages=_add_page_number)
    pdf = buffer.getvalue()
    buffer.close()
    logger.info("Rendered run of show for %s (%d bytes)", ros.event_name, len(pdf))
    return pdf

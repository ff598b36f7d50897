from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional

from core.timeutils import calendar_date, parse_wall_clock

logger = logging.getLogger(__name__)


class BlockStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        # "in-progress" -> "In Progress"
        return " ".join(word.capitalize() for word in self.value.split("-"))

    @classmethod
    def parse(cls, raw: Any) -> "BlockStatus":
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw or "").strip().lower())
        except ValueError:
            logger.warning("Unknown block status %r, treating as pending", raw)
            return cls.PENDING


class Precision(str, Enum):
    FIFTEEN = "15min"
    THIRTY = "30min"

    @property
    def minutes(self) -> int:
        return 15 if self is Precision.FIFTEEN else 30

    @property
    def allowed_minutes(self) -> FrozenSet[int]:
        return frozenset(range(0, 60, self.minutes))


def require_every_status(table: Mapping[BlockStatus, Any], name: str) -> None:
    """
    Status-keyed lookup tables must cover the whole enum, so adding a status
    fails at import time instead of silently falling through to a default.
    """
    missing = [s.value for s in BlockStatus if s not in table]
    if missing:
        raise RuntimeError(f"{name} is missing statuses: {', '.join(missing)}")


def _clean_text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _pick(row: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    return None


@dataclass(frozen=True)
class EventInfo:
    id: str
    name: str
    start_date: date
    end_date: date
    location: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "EventInfo":
        return cls(
            id=str(row.get("id") or ""),
            name=_clean_text(row.get("name")),
            start_date=calendar_date(_pick(row, "start_date", "startDate")),
            end_date=calendar_date(_pick(row, "end_date", "endDate")),
            location=_clean_text(row.get("location")),
        )

    @property
    def day_count(self) -> int:
        return max(0, (self.end_date - self.start_date).days + 1)


@dataclass
class TimelineBlock:
    id: str
    event_id: str
    title: str
    start_time: str  # stored wall-clock string, e.g. "2024-06-01T09:00:00.000Z"
    end_time: str
    location: str = ""
    description: str = ""
    personnel: str = ""
    equipment: str = ""
    notes: str = ""
    status: BlockStatus = BlockStatus.PENDING
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "TimelineBlock":
        return cls(
            id=str(row.get("id") or ""),
            event_id=str(_pick(row, "event_id", "eventId") or ""),
            title=_clean_text(row.get("title")),
            start_time=str(_pick(row, "start_time", "startTime") or ""),
            end_time=str(_pick(row, "end_time", "endTime") or ""),
            location=_clean_text(row.get("location")),
            description=_clean_text(row.get("description")),
            personnel=_clean_text(row.get("personnel")),
            equipment=_clean_text(row.get("equipment")),
            notes=_clean_text(row.get("notes")),
            status=BlockStatus.parse(row.get("status")),
            created_at=_pick(row, "created_at", "createdAt"),
            updated_at=_pick(row, "updated_at", "updatedAt"),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "title": self.title,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "location": self.location or None,
            "description": self.description or None,
            "personnel": self.personnel or None,
            "equipment": self.equipment or None,
            "notes": self.notes or None,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @property
    def start(self) -> datetime:
        return parse_wall_clock(self.start_time)

    @property
    def end(self) -> datetime:
        return parse_wall_clock(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

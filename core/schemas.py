# =========================
# file: core/schemas.py
# =========================
"""Timeline block input schemas"""

from __future__ import annotations
import uuid
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from core.intervals import alignment_message, as_precision, is_aligned
from core.models import BlockStatus, Precision
from core.timeutils import parse_wall_clock, to_stored

OPTIONAL_TEXT_FIELDS = ("location", "description", "personnel", "equipment", "notes")

_NULL_MESSAGES = {
    "title": "Title is required",
    "start_time": "Time must be a valid date and time",
    "end_time": "Time must be a valid date and time",
    "status": "Status is required",
}


class BlockValidationError(ValueError):
    """Raised before any write when block input is rejected."""

    def __init__(self, field_errors: Dict[str, str]):
        self.field_errors = field_errors
        summary = "; ".join(f"{k}: {v}" for k, v in field_errors.items())
        super().__init__(summary or "Validation error")


def _check_time(value: Optional[str], info: ValidationInfo) -> Optional[str]:
    if value is None:
        return value
    try:
        parsed = parse_wall_clock(value)
    except ValueError as e:
        raise ValueError("Time must be a valid date and time") from e
    precision = info.data.get("precision", Precision.THIRTY)
    if not is_aligned(parsed, precision):
        raise ValueError(alignment_message(precision))
    return value


def _check_order(end_time: Optional[str], info: ValidationInfo) -> None:
    start_time = info.data.get("start_time")
    if end_time is None or start_time is None:
        return
    if parse_wall_clock(start_time) >= parse_wall_clock(end_time):
        raise ValueError("End time must be after start time")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class _BlockFields(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    # declared first so the time validators can see it
    precision: Precision = Precision.THIRTY

    @field_validator("precision", mode="before")
    @classmethod
    def _precision(cls, v: Any) -> Precision:
        return as_precision(v)

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before", check_fields=False)
    @classmethod
    def _optional_text(cls, v: Any) -> Any:
        return _blank_to_none(v)


class TimelineBlockInput(_BlockFields):
    event_id: str = Field(alias="eventId")
    title: str = Field(min_length=1)
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    location: Optional[str] = None
    description: Optional[str] = None
    personnel: Optional[str] = None
    equipment: Optional[str] = None
    notes: Optional[str] = None
    status: BlockStatus = BlockStatus.PENDING

    @field_validator("event_id")
    @classmethod
    def _event_id(cls, v: str) -> str:
        try:
            uuid.UUID(v)
        except (ValueError, AttributeError) as e:
            raise ValueError("Event ID must be a valid UUID") from e
        return v

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v: Any) -> str:
        if v is None or not str(v).strip():
            raise ValueError("Title is required")
        return str(v)

    @field_validator("start_time")
    @classmethod
    def _start_time(cls, v: str, info: ValidationInfo) -> str:
        return _check_time(v, info)

    @field_validator("end_time")
    @classmethod
    def _end_time(cls, v: str, info: ValidationInfo) -> str:
        _check_time(v, info)
        _check_order(v, info)
        return v

    def to_record(self) -> Dict[str, Any]:
        """Store row (snake_case, stored time format). Precision is not persisted."""
        row = {
            "event_id": self.event_id,
            "title": self.title,
            "start_time": to_stored(self.start_time),
            "end_time": to_stored(self.end_time),
            "status": self.status.value,
        }
        for name in OPTIONAL_TEXT_FIELDS:
            row[name] = getattr(self, name)
        return row


class TimelineBlockUpdate(_BlockFields):
    """
    Partial update. Omitted fields stay as they are in the store.
    """

    title: Optional[str] = None
    start_time: Optional[str] = Field(default=None, alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    location: Optional[str] = None
    description: Optional[str] = None
    personnel: Optional[str] = None
    equipment: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[BlockStatus] = None

    # omitted is fine, explicitly null is not
    @field_validator("title", "start_time", "end_time", "status", mode="before")
    @classmethod
    def _not_null(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            raise ValueError(_NULL_MESSAGES[info.field_name])
        return v

    @field_validator("title")
    @classmethod
    def _title(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Title is required")
        return v

    @field_validator("start_time")
    @classmethod
    def _start_time(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_time(v, info)

    @field_validator("end_time")
    @classmethod
    def _end_time(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        _check_time(v, info)
        _check_order(v, info)
        return v

    def to_changes(self) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for name in ("title", "start_time", "end_time", *OPTIONAL_TEXT_FIELDS, "status"):
            if name not in self.model_fields_set:
                continue
            value = getattr(self, name)
            if name in ("start_time", "end_time") and value is not None:
                value = to_stored(value)
            elif isinstance(value, BlockStatus):
                value = value.value
            changes[name] = value
        return changes


# camelCase names the form shows errors against
_FIELD_NAMES = {
    "event_id": "eventId",
    "start_time": "startTime",
    "end_time": "endTime",
}


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """
    Flattens a pydantic ValidationError to {field: message}, first message wins.
    """
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ("__root__",)
        name = str(loc[0])
        name = _FIELD_NAMES.get(name, name)
        msg = str(err.get("msg", "Invalid value"))
        # pydantic prefixes custom ValueError messages
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors.setdefault(name, msg)
    return errors


def validate_block(
    payload: Mapping[str, Any],
    precision: Union[Precision, str, None] = None,
) -> TimelineBlockInput:
    data = dict(payload)
    if precision is not None:
        data["precision"] = as_precision(precision)
    try:
        return TimelineBlockInput.model_validate(data)
    except ValidationError as e:
        raise BlockValidationError(field_errors(e)) from e


def validate_update(
    payload: Mapping[str, Any],
    precision: Union[Precision, str, None] = None,
) -> TimelineBlockUpdate:
    data = dict(payload)
    if precision is not None:
        data["precision"] = as_precision(precision)
    try:
        return TimelineBlockUpdate.model_validate(data)
    except ValidationError as e:
        raise BlockValidationError(field_errors(e)) from e


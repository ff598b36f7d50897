from datetime import date

import pytest

from core.models import BlockStatus, EventInfo, TimelineBlock

EVENT_ID = "0b6a1c52-3f0e-4d8e-9a1b-2c3d4e5f6a7b"


def stamp(day: str, hhmm: str) -> str:
    """'2024-06-01', '09:30' -> stored wall-clock string."""
    return f"{day}T{hhmm}:00.000Z"


@pytest.fixture
def make_block():
    counter = {"n": 0}

    def _make(day, start, end, title="Setup", status=BlockStatus.PENDING, end_day=None, **extra):
        counter["n"] += 1
        return TimelineBlock(
            id=extra.pop("id", f"block-{counter['n']}"),
            event_id=extra.pop("event_id", EVENT_ID),
            title=title,
            start_time=stamp(day, start),
            end_time=stamp(end_day or day, end),
            status=status,
            **extra,
        )

    return _make


@pytest.fixture
def event():
    return EventInfo(
        id=EVENT_ID,
        name="Summer Gala",
        start_date=date(2024, 6, 1),
        end_date=date(2024, 6, 2),
        location="Harbor Pavilion",
    )

"""
Block input validation: field messages are what the form shows inline.
"""
import pytest
from pydantic import ValidationError

from core.models import BlockStatus, Precision
from core.schemas import (
    BlockValidationError,
    TimelineBlockInput,
    field_errors,
    validate_block,
    validate_update,
)
from tests.conftest import EVENT_ID


def payload(**overrides):
    data = {
        "eventId": EVENT_ID,
        "title": "Setup",
        "startTime": "2024-06-01T09:00",
        "endTime": "2024-06-01T09:30",
    }
    data.update(overrides)
    return data


def errors_for(data, precision=None):
    with pytest.raises(BlockValidationError) as exc:
        validate_block(data, precision)
    return exc.value.field_errors


class TestValidBlock:
    def test_valid_payload(self):
        model = validate_block(payload(), Precision.THIRTY)
        assert model.title == "Setup"
        assert model.status is BlockStatus.PENDING
        assert model.precision is Precision.THIRTY

    def test_to_record_uses_stored_format(self):
        row = validate_block(payload(location="  ", notes="Bring tape")).to_record()
        assert row["event_id"] == EVENT_ID
        assert row["start_time"] == "2024-06-01T09:00:00.000Z"
        assert row["end_time"] == "2024-06-01T09:30:00.000Z"
        assert row["location"] is None
        assert row["notes"] == "Bring tape"
        assert row["status"] == "pending"
        assert "precision" not in row

    def test_title_is_stripped(self):
        assert validate_block(payload(title="  Setup  ")).title == "Setup"

    def test_populate_by_field_name(self):
        model = TimelineBlockInput(
            event_id=EVENT_ID,
            title="Setup",
            start_time="2024-06-01T09:00",
            end_time="2024-06-01T10:00",
        )
        assert model.end_time == "2024-06-01T10:00"

    def test_quarter_hour_allowed_at_fifteen(self):
        model = validate_block(payload(startTime="2024-06-01T09:15", endTime="2024-06-01T09:45"), "15min")
        assert model.precision is Precision.FIFTEEN

    def test_status_value(self):
        assert validate_block(payload(status="in-progress")).status is BlockStatus.IN_PROGRESS


class TestFieldMessages:
    """Each rule reports against the field the form shows it on."""

    def test_blank_title(self):
        assert errors_for(payload(title="   "))["title"] == "Title is required"

    def test_missing_title(self):
        data = payload()
        del data["title"]
        assert "title" in errors_for(data)

    def test_bad_event_id(self):
        assert errors_for(payload(eventId="not-a-uuid"))["eventId"] == "Event ID must be a valid UUID"

    def test_misaligned_at_thirty(self):
        errors = errors_for(payload(startTime="2024-06-01T09:15"), Precision.THIRTY)
        assert errors["startTime"] == "Time must be aligned to 30-minute intervals (XX:00 or XX:30)"

    def test_misaligned_at_fifteen(self):
        errors = errors_for(payload(endTime="2024-06-01T09:40"), Precision.FIFTEEN)
        assert errors["endTime"] == (
            "Time must be aligned to 15-minute intervals (XX:00, XX:15, XX:30, or XX:45)"
        )

    def test_end_before_start(self):
        errors = errors_for(payload(startTime="2024-06-01T10:00", endTime="2024-06-01T09:00"))
        assert errors == {"endTime": "End time must be after start time"}

    def test_zero_length(self):
        errors = errors_for(payload(endTime="2024-06-01T09:00"))
        assert errors["endTime"] == "End time must be after start time"

    def test_unknown_status(self):
        assert "status" in errors_for(payload(status="bogus"))

    def test_unparseable_time(self):
        assert "startTime" in errors_for(payload(startTime="soon"))

    def test_error_summary_in_message(self):
        with pytest.raises(BlockValidationError) as exc:
            validate_block(payload(title=""))
        assert "title: Title is required" in str(exc.value)

    def test_field_errors_from_raw_validation_error(self):
        with pytest.raises(ValidationError) as exc:
            TimelineBlockInput.model_validate(payload(eventId="nope"))
        assert field_errors(exc.value) == {"eventId": "Event ID must be a valid UUID"}


class TestUpdate:
    """Partial updates only carry what was sent."""

    def test_only_sent_fields(self):
        update = validate_update({"title": "Load-in"})
        assert update.to_changes() == {"title": "Load-in"}

    def test_clearing_optional_text(self):
        assert validate_update({"location": ""}).to_changes() == {"location": None}

    def test_times_converted(self):
        changes = validate_update({"startTime": "2024-06-01T09:00", "endTime": "2024-06-01T11:00"}).to_changes()
        assert changes == {
            "start_time": "2024-06-01T09:00:00.000Z",
            "end_time": "2024-06-01T11:00:00.000Z",
        }

    def test_status_change(self):
        assert validate_update({"status": "complete"}).to_changes() == {"status": "complete"}

    def test_single_time_checked_for_alignment(self):
        with pytest.raises(BlockValidationError) as exc:
            validate_update({"endTime": "2024-06-01T09:10"}, Precision.FIFTEEN)
        assert "endTime" in exc.value.field_errors

    def test_blank_title_rejected(self):
        with pytest.raises(BlockValidationError) as exc:
            validate_update({"title": "  "})
        assert exc.value.field_errors["title"] == "Title is required"

    def test_order_checked_when_both_sent(self):
        with pytest.raises(BlockValidationError) as exc:
            validate_update({"startTime": "2024-06-01T11:00", "endTime": "2024-06-01T10:00"})
        assert exc.value.field_errors == {"endTime": "End time must be after start time"}

    @pytest.mark.parametrize(
        "sent,field,message",
        [
            ({"title": None}, "title", "Title is required"),
            ({"startTime": None}, "startTime", "Time must be a valid date and time"),
            ({"endTime": None}, "endTime", "Time must be a valid date and time"),
            ({"status": None}, "status", "Status is required"),
        ],
    )
    def test_null_required_field_rejected(self, sent, field, message):
        with pytest.raises(BlockValidationError) as exc:
            validate_update(sent)
        assert exc.value.field_errors == {field: message}

    def test_null_optional_text_clears(self):
        assert validate_update({"notes": None}).to_changes() == {"notes": None}

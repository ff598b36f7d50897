"""
Timeline stores: in-memory behaviour and the REST client's requests.
"""
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from core.store import (
    DEMO_EVENT_ID,
    BlockNotFoundError,
    InMemoryTimelineStore,
    RestTimelineStore,
    StoreError,
)
from tests.conftest import EVENT_ID, stamp


def _row(title="Setup", start="09:00", end="09:30", day="2024-06-01"):
    return {
        "event_id": EVENT_ID,
        "title": title,
        "start_time": stamp(day, start),
        "end_time": stamp(day, end),
        "status": "pending",
    }


class TestInMemoryStore:
    def test_create_and_list_sorted(self):
        store = InMemoryTimelineStore()
        store.create_block(_row("Later", "14:00", "15:00"))
        store.create_block(_row("Earlier", "09:00", "10:00"))

        assert [b.title for b in store.list_blocks(EVENT_ID)] == ["Earlier", "Later"]
        assert store.list_blocks("other-event") == []

    def test_update_is_partial_and_keeps_identity(self):
        store = InMemoryTimelineStore()
        created = store.create_block(dict(_row(), location="Main hall"))

        updated = store.update_block(created.id, {"title": "Setup & test", "id": "hijack", "created_at": "x"})

        assert updated.id == created.id
        assert updated.created_at == created.created_at
        assert updated.title == "Setup & test"
        assert updated.location == "Main hall"

    def test_missing_block(self):
        store = InMemoryTimelineStore()
        with pytest.raises(BlockNotFoundError):
            store.get_block("nope")
        with pytest.raises(BlockNotFoundError):
            store.update_block("nope", {"title": "x"})
        with pytest.raises(BlockNotFoundError):
            store.delete_block("nope")

    def test_delete(self):
        store = InMemoryTimelineStore()
        created = store.create_block(_row())
        store.delete_block(created.id)
        assert store.list_blocks(EVENT_ID) == []

    def test_unknown_event(self):
        with pytest.raises(StoreError):
            InMemoryTimelineStore().get_event("missing")

    def test_demo_event(self):
        store = InMemoryTimelineStore.with_demo_event()
        event = store.get_event(DEMO_EVENT_ID)
        blocks = store.list_blocks(DEMO_EVENT_ID)

        assert event.name
        assert len(blocks) == 7
        assert all(event.start_date <= b.start.date() <= event.end_date for b in blocks)


def _response(payload, status=200):
    resp = MagicMock()
    resp.status_code = status
    resp.content = json.dumps(payload).encode() if payload is not None else b""
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return resp


class TestRestStore:
    """Requests are patched; only the wire contract is checked."""

    def setup_method(self):
        self.store = RestTimelineStore("https://db.example.com/", "secret", timeout=5)

    @patch("core.store.requests.request")
    def test_list_blocks_query(self, mock_request):
        mock_request.return_value = _response([dict(_row(), id="b1")])

        blocks = self.store.list_blocks(EVENT_ID)

        assert [b.id for b in blocks] == ["b1"]
        method, url = mock_request.call_args.args
        kwargs = mock_request.call_args.kwargs
        assert method == "GET"
        assert url == "https://db.example.com/rest/v1/timeline_blocks"
        assert kwargs["params"]["event_id"] == f"eq.{EVENT_ID}"
        assert kwargs["params"]["order"] == "start_time.asc"
        assert kwargs["headers"]["apikey"] == "secret"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 5

    @patch("core.store.requests.request")
    def test_update_is_single_patch(self, mock_request):
        mock_request.return_value = _response([dict(_row("Renamed"), id="b1")])

        block = self.store.update_block("b1", {"title": "Renamed"})

        assert block.title == "Renamed"
        assert mock_request.call_count == 1
        method, _ = mock_request.call_args.args
        kwargs = mock_request.call_args.kwargs
        assert method == "PATCH"
        assert kwargs["params"] == {"id": "eq.b1"}
        assert kwargs["json"]["title"] == "Renamed"
        assert "updated_at" in kwargs["json"]
        assert kwargs["headers"]["Prefer"] == "return=representation"

    @patch("core.store.requests.request")
    def test_update_missing_row(self, mock_request):
        mock_request.return_value = _response([])
        with pytest.raises(BlockNotFoundError):
            self.store.update_block("gone", {"title": "x"})

    @patch("core.store.requests.request")
    def test_create(self, mock_request):
        mock_request.return_value = _response([dict(_row(), id="new-id", created_at="2024-05-01T00:00:00Z")])
        block = self.store.create_block(_row())
        assert block.id == "new-id"
        assert mock_request.call_args.args[0] == "POST"

    @patch("core.store.requests.request")
    def test_get_event(self, mock_request):
        mock_request.return_value = _response(
            [{"id": EVENT_ID, "name": "Gala", "start_date": "2024-06-01", "end_date": "2024-06-02"}]
        )
        event = self.store.get_event(EVENT_ID)
        assert event.name == "Gala"
        assert event.day_count == 2

    @patch("core.store.requests.request")
    def test_http_error_becomes_store_error(self, mock_request):
        mock_request.return_value = _response({"message": "boom"}, status=500)
        with pytest.raises(StoreError):
            self.store.list_blocks(EVENT_ID)

    @patch("core.store.requests.request")
    def test_connection_error_becomes_store_error(self, mock_request):
        mock_request.side_effect = requests.ConnectionError("down")
        with pytest.raises(StoreError):
            self.store.delete_block("b1")

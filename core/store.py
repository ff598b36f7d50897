# =========================
# file: core/store.py
# =========================
"""
Where events and timeline blocks live.

The app talks to a hosted Postgres REST interface when SUPABASE_URL is set and
falls back to an in-memory store (seeded with a demo event) otherwise.
"""
from __future__ import annotations
import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import requests

from core.config import (
    STORE_TIMEOUT_SECONDS,
    SUPABASE_SERVICE_KEY,
    SUPABASE_URL,
    load_defaults,
)
from core.models import EventInfo, TimelineBlock

logger = logging.getLogger(__name__)

DEMO_EVENT_ID = "4f8c2d1e-6b7a-4c3d-9e2f-1a5b8c7d6e01"


class StoreError(RuntimeError):
    """A read or write against the store failed. Nothing is retried."""


class BlockNotFoundError(StoreError):
    pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TimelineStore:
    """Interface the timeline pages use. Rows are snake_case dicts."""

    def get_event(self, event_id: str) -> EventInfo:
        raise NotImplementedError

    def list_blocks(self, event_id: str) -> List[TimelineBlock]:
        raise NotImplementedError

    def get_block(self, block_id: str) -> TimelineBlock:
        raise NotImplementedError

    def create_block(self, row: Mapping[str, Any]) -> TimelineBlock:
        raise NotImplementedError

    def update_block(self, block_id: str, changes: Mapping[str, Any]) -> TimelineBlock:
        raise NotImplementedError

    def delete_block(self, block_id: str) -> None:
        raise NotImplementedError


# -------------------------
# In-memory
# -------------------------
class InMemoryTimelineStore(TimelineStore):
    def __init__(self):
        self._events: Dict[str, Dict[str, Any]] = {}
        self._blocks: Dict[str, Dict[str, Any]] = {}

    def add_event(self, row: Mapping[str, Any]) -> EventInfo:
        data = dict(row)
        data.setdefault("id", str(uuid.uuid4()))
        self._events[data["id"]] = data
        return EventInfo.from_row(data)

    def get_event(self, event_id: str) -> EventInfo:
        row = self._events.get(event_id)
        if row is None:
            raise StoreError(f"Event {event_id} not found")
        return EventInfo.from_row(row)

    def list_blocks(self, event_id: str) -> List[TimelineBlock]:
        rows = [r for r in self._blocks.values() if r.get("event_id") == event_id]
        rows.sort(key=lambda r: str(r.get("start_time") or ""))
        return [TimelineBlock.from_row(r) for r in rows]

    def get_block(self, block_id: str) -> TimelineBlock:
        row = self._blocks.get(block_id)
        if row is None:
            raise BlockNotFoundError(f"Block {block_id} not found")
        return TimelineBlock.from_row(row)

    def create_block(self, row: Mapping[str, Any]) -> TimelineBlock:
        data = dict(row)
        data["id"] = data.get("id") or str(uuid.uuid4())
        stamp = _now_iso()
        data.setdefault("created_at", stamp)
        data["updated_at"] = stamp
        self._blocks[data["id"]] = data
        return TimelineBlock.from_row(data)

    def update_block(self, block_id: str, changes: Mapping[str, Any]) -> TimelineBlock:
        row = self._blocks.get(block_id)
        if row is None:
            raise BlockNotFoundError(f"Block {block_id} not found")
        updated = copy.deepcopy(row)
        updated.update({k: v for k, v in changes.items() if k not in ("id", "created_at")})
        updated["updated_at"] = _now_iso()
        self._blocks[block_id] = updated
        return TimelineBlock.from_row(updated)

    def delete_block(self, block_id: str) -> None:
        if self._blocks.pop(block_id, None) is None:
            raise BlockNotFoundError(f"Block {block_id} not found")

    @classmethod
    def with_demo_event(cls) -> "InMemoryTimelineStore":
        store = cls()
        demo = load_defaults().get("demo_event", {})
        start = demo.get("start_date", "2024-06-01")
        end = demo.get("end_date", "2024-06-02")
        store.add_event({
            "id": DEMO_EVENT_ID,
            "name": demo.get("name", "Demo Event"),
            "location": demo.get("location", ""),
            "start_date": start,
            "end_date": end,
        })

        seed = [
            (start, "08:00", "09:00", "Vendor load-in", "complete", "Loading dock"),
            (start, "09:00", "09:30", "Setup", "complete", "Main hall"),
            (start, "10:00", "10:15", "Sound check", "in-progress", "Stage"),
            (start, "17:30", "19:00", "Welcome reception", "pending", "Terrace"),
            (start, "19:00", "22:30", "Dinner & speeches", "pending", "Main hall"),
            (end, "10:00", "11:00", "Farewell brunch", "pending", "Garden"),
            (end, "12:00", "13:30", "Teardown", "pending", "Main hall"),
        ]
        for day, t0, t1, title, status, location in seed:
            store.create_block({
                "event_id": DEMO_EVENT_ID,
                "title": title,
                "start_time": f"{day}T{t0}:00.000Z",
                "end_time": f"{day}T{t1}:00.000Z",
                "status": status,
                "location": location,
            })
        return store


# -------------------------
# Hosted REST backend
# -------------------------
class RestTimelineStore(TimelineStore):
    """
    PostgREST-style endpoints:
      GET    /rest/v1/events?id=eq.<id>
      GET    /rest/v1/timeline_blocks?event_id=eq.<id>&order=start_time.asc
      POST   /rest/v1/timeline_blocks
      PATCH  /rest/v1/timeline_blocks?id=eq.<id>
      DELETE /rest/v1/timeline_blocks?id=eq.<id>
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = STORE_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }

    def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/rest/v1/{table}"
        try:
            r = requests.request(
                method,
                url,
                params=params,
                json=dict(payload) if payload is not None else None,
                headers=self._headers(),
                timeout=self.timeout,
            )
            r.raise_for_status()
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, table, e)
            raise StoreError(f"Couldn't reach the timeline store: {e}") from e

        if not r.content:
            return []
        data = r.json()
        return data if isinstance(data, list) else [data]

    def get_event(self, event_id: str) -> EventInfo:
        rows = self._request("GET", "events", params={"id": f"eq.{event_id}", "select": "*"})
        if not rows:
            raise StoreError(f"Event {event_id} not found")
        return EventInfo.from_row(rows[0])

    def list_blocks(self, event_id: str) -> List[TimelineBlock]:
        rows = self._request(
            "GET",
            "timeline_blocks",
            params={"event_id": f"eq.{event_id}", "select": "*", "order": "start_time.asc"},
        )
        return [TimelineBlock.from_row(r) for r in rows]

    def get_block(self, block_id: str) -> TimelineBlock:
        rows = self._request("GET", "timeline_blocks", params={"id": f"eq.{block_id}", "select": "*"})
        if not rows:
            raise BlockNotFoundError(f"Block {block_id} not found")
        return TimelineBlock.from_row(rows[0])

    def create_block(self, row: Mapping[str, Any]) -> TimelineBlock:
        rows = self._request("POST", "timeline_blocks", payload=row)
        if not rows:
            raise StoreError("Store returned no row for the new block")
        return TimelineBlock.from_row(rows[0])

    def update_block(self, block_id: str, changes: Mapping[str, Any]) -> TimelineBlock:
        payload = dict(changes)
        payload["updated_at"] = _now_iso()
        rows = self._request("PATCH", "timeline_blocks", params={"id": f"eq.{block_id}"}, payload=payload)
        if not rows:
            raise BlockNotFoundError(f"Block {block_id} not found")
        return TimelineBlock.from_row(rows[0])

    def delete_block(self, block_id: str) -> None:
        rows = self._request("DELETE", "timeline_blocks", params={"id": f"eq.{block_id}"})
        if not rows:
            raise BlockNotFoundError(f"Block {block_id} not found")


def get_store() -> TimelineStore:
    if SUPABASE_URL and SUPABASE_SERVICE_KEY:
        logger.info("Using REST timeline store at %s", SUPABASE_URL)
        return RestTimelineStore(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    logger.info("SUPABASE_URL not set, using in-memory demo store")
    return InMemoryTimelineStore.with_demo_event()

from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from core.config import TimelineSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACTIVITY_KINDS = ("mouse", "key", "scroll", "click", "focus")


@dataclass
class ActivityTracker:
    """
    Decides when the timeline may silently reload.

    A refresh is allowed once the interval has passed since the last one, the
    user has been idle longer than the inactivity threshold, no scroll
    happened within the settle delay, and no edit is in progress.
    All times are monotonic seconds; pass ``now`` explicitly in tests.
    """

    refresh_interval: float = 300.0
    inactivity_threshold: float = 60.0
    scroll_settle: float = 0.1
    editing_grace: float = 30.0

    last_activity: float = field(default_factory=time.monotonic)
    last_scroll: Optional[float] = None
    last_refresh: float = field(default_factory=time.monotonic)
    editing_until: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: TimelineSettings, now: Optional[float] = None) -> "ActivityTracker":
        now = time.monotonic() if now is None else now
        return cls(
            refresh_interval=settings.refresh_interval_seconds,
            inactivity_threshold=settings.inactivity_threshold_seconds,
            scroll_settle=settings.scroll_settle_seconds,
            editing_grace=settings.editing_grace_seconds,
            last_activity=now,
            last_refresh=now,
        )

    def record_activity(self, kind: str = "mouse", now: Optional[float] = None) -> None:
        now = time.monotonic() if now is None else now
        if kind not in ACTIVITY_KINDS:
            logger.debug("Unknown activity kind %r", kind)
        self.last_activity = now
        if kind == "scroll":
            self.last_scroll = now

    def start_editing(self, now: Optional[float] = None) -> None:
        now = time.monotonic() if now is None else now
        self.editing_until = now + self.editing_grace
        self.last_activity = now

    def stop_editing(self) -> None:
        self.editing_until = None

    def is_scrolling(self, now: float) -> bool:
        return self.last_scroll is not None and now - self.last_scroll < self.scroll_settle

    def is_editing(self, now: float) -> bool:
        return self.editing_until is not None and now < self.editing_until

    def should_refresh(self, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        if now - self.last_refresh < self.refresh_interval:
            return False
        if now - self.last_activity <= self.inactivity_threshold:
            return False
        if self.is_scrolling(now) or self.is_editing(now):
            return False
        return True

    def mark_refreshed(self, now: Optional[float] = None) -> None:
        self.last_refresh = time.monotonic() if now is None else now

    def maybe_refresh(self, refresh_fn: Callable[[], T], now: Optional[float] = None) -> Optional[T]:
        """
        Runs ``refresh_fn`` when allowed. Errors propagate; the refresh clock
        only advances after a successful call.
        """
        now = time.monotonic() if now is None else now
        if not self.should_refresh(now):
            return None
        logger.debug("Auto-refreshing timeline")
        result = refresh_fn()
        self.last_refresh = now
        return result

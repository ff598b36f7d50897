from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parent.parent
DEFAULTS_PATH = ROOT_DIR / "defaults.json"

load_dotenv(dotenv_path=ROOT_DIR / ".env")

# Hosted backend (REST interface). Leave unset to run against the in-memory store.
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")
STORE_TIMEOUT_SECONDS = float(os.getenv("TIMELINE_STORE_TIMEOUT", "12"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def load_defaults() -> dict:
    if DEFAULTS_PATH.exists():
        return json.loads(DEFAULTS_PATH.read_text())
    return {}


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    None means "system local time", which is what datetime.astimezone() uses.
    """
    name = (name or "").strip()
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %r, falling back to system local time", name)
        return None


@dataclass(frozen=True)
class TimelineSettings:
    hour_height: int = 128
    vertical_window: Tuple[int, int] = (8, 20)
    horizontal_window: Tuple[int, int] = (6, 22)

    # auto-refresh
    refresh_interval_seconds: float = 300.0
    inactivity_threshold_seconds: float = 60.0
    scroll_settle_seconds: float = 0.1
    editing_grace_seconds: float = 30.0

    default_precision: str = "30min"
    display_timezone: Optional[str] = None

    @property
    def tz(self) -> Optional[tzinfo]:
        return resolve_timezone(self.display_timezone)


def _window(raw, fallback: Tuple[int, int]) -> Tuple[int, int]:
    if not raw:
        return fallback
    start, end = int(raw[0]), int(raw[1])
    if not 0 <= start < end <= 24:
        logger.warning("Ignoring invalid hour window %r", raw)
        return fallback
    return start, end


def load_settings() -> TimelineSettings:
    defaults = load_defaults()
    timeline = defaults.get("timeline", {})
    refresh = defaults.get("auto_refresh", {})
    base = TimelineSettings()

    return TimelineSettings(
        hour_height=int(timeline.get("hour_height", base.hour_height)),
        vertical_window=_window(timeline.get("vertical_window"), base.vertical_window),
        horizontal_window=_window(timeline.get("horizontal_window"), base.horizontal_window),
        refresh_interval_seconds=float(refresh.get("interval_seconds", base.refresh_interval_seconds)),
        inactivity_threshold_seconds=float(refresh.get("inactivity_seconds", base.inactivity_threshold_seconds)),
        scroll_settle_seconds=float(refresh.get("scroll_settle_seconds", base.scroll_settle_seconds)),
        editing_grace_seconds=float(refresh.get("editing_grace_seconds", base.editing_grace_seconds)),
        default_precision=str(timeline.get("default_precision", base.default_precision)),
        display_timezone=os.getenv("TIMELINE_DISPLAY_TZ") or timeline.get("display_timezone"),
    )

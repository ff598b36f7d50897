"""
Auto-refresh gating.
"""
from unittest.mock import Mock

import pytest

from core.activity import ActivityTracker
from core.config import TimelineSettings


def tracker(**kwargs):
    defaults = dict(
        refresh_interval=10.0,
        inactivity_threshold=5.0,
        scroll_settle=0.1,
        editing_grace=30.0,
        last_activity=0.0,
        last_refresh=0.0,
    )
    defaults.update(kwargs)
    return ActivityTracker(**defaults)


class TestShouldRefresh:
    def test_from_settings(self):
        t = ActivityTracker.from_settings(TimelineSettings(), now=0.0)
        assert t.refresh_interval == 300
        assert t.inactivity_threshold == 60
        assert not t.should_refresh(100.0)
        assert t.should_refresh(301.0)

    def test_waits_for_interval(self):
        assert not tracker().should_refresh(9.0)
        assert tracker().should_refresh(11.0)

    def test_recent_activity_blocks_refresh(self):
        t = tracker()
        t.record_activity("key", now=8.0)
        assert not t.should_refresh(11.0)
        assert t.should_refresh(13.5)

    def test_scrolling(self):
        t = tracker(inactivity_threshold=0.0)
        t.record_activity("scroll", now=20.0)
        assert t.is_scrolling(20.05)
        assert not t.should_refresh(20.05)
        assert not t.is_scrolling(20.2)
        assert t.should_refresh(20.2)

    def test_editing_flag_expires(self):
        t = tracker(inactivity_threshold=1.0)
        t.start_editing(now=0.0)
        assert t.is_editing(10.0)
        assert not t.should_refresh(20.0)
        assert t.should_refresh(31.0)

    def test_stop_editing(self):
        t = tracker(inactivity_threshold=1.0)
        t.start_editing(now=0.0)
        t.stop_editing()
        assert t.should_refresh(20.0)


class TestMaybeRefresh:
    def test_calls_and_advances_clock(self):
        t = tracker()
        fn = Mock(return_value="fresh")

        assert t.maybe_refresh(fn, now=11.0) == "fresh"
        fn.assert_called_once()
        assert t.last_refresh == 11.0
        assert t.maybe_refresh(fn, now=12.0) is None
        assert fn.call_count == 1

    def test_skipped_when_not_allowed(self):
        fn = Mock()
        tracker().maybe_refresh(fn, now=1.0)
        fn.assert_not_called()

    def test_error_propagates_without_advancing(self):
        t = tracker()
        fn = Mock(side_effect=RuntimeError("store down"))
        with pytest.raises(RuntimeError):
            t.maybe_refresh(fn, now=11.0)
        assert t.last_refresh == 0.0

    def test_mark_refreshed(self):
        t = tracker()
        t.mark_refreshed(now=50.0)
        assert not t.should_refresh(55.0)

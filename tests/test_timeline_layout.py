"""
Vertical and horizontal timeline geometry.
"""
from datetime import date, datetime

import pytest

from tools.timeline_layout import (
    HORIZONTAL_DEFAULT_WINDOW,
    HOUR_HEIGHT,
    VERTICAL_DEFAULT_WINDOW,
    HorizontalDensity,
    HourWindow,
    VerticalDensity,
    compute_geometry,
    compute_range,
    compute_time_position,
    compute_visible_hour_window,
    horizontal_density,
    is_expanded,
    layout_horizontal_day,
    layout_vertical_day,
    now_marker_percent,
    vertical_density,
    vertical_time_label,
)

DAY = "2024-06-01"


class TestVisibleWindow:
    """Both views share one window calculation."""

    def test_empty_returns_default(self):
        assert compute_visible_hour_window([], VERTICAL_DEFAULT_WINDOW) == VERTICAL_DEFAULT_WINDOW

    def test_inside_default_does_not_shrink(self, make_block):
        window = compute_range([make_block(DAY, "10:00", "11:00")])
        assert window == VERTICAL_DEFAULT_WINDOW
        assert not is_expanded(window, VERTICAL_DEFAULT_WINDOW)

    def test_early_block_pads_one_hour(self, make_block):
        window = compute_range([make_block(DAY, "06:30", "07:00")])
        assert window == HourWindow(5, 20)
        assert is_expanded(window, VERTICAL_DEFAULT_WINDOW)

    def test_late_block_pads_one_hour(self, make_block):
        window = compute_range([make_block(DAY, "20:00", "21:30")])
        assert window == HourWindow(8, 23)

    def test_clamped_to_day(self, make_block):
        window = compute_range([make_block(DAY, "00:00", "01:00"), make_block(DAY, "22:00", "23:30")])
        assert window == HourWindow(0, 24)

    def test_ending_between_ten_and_eleven(self, make_block):
        window = compute_visible_hour_window([make_block(DAY, "21:00", "22:30")], HORIZONTAL_DEFAULT_WINDOW)
        assert window.end_hour >= 23
        assert window.contains(HORIZONTAL_DEFAULT_WINDOW)

    def test_always_contains_default(self, make_block):
        for start, end in [("07:00", "08:00"), ("12:00", "13:00"), ("19:30", "23:45")]:
            window = compute_range([make_block(DAY, start, end)])
            assert window.contains(VERTICAL_DEFAULT_WINDOW)

    def test_markers(self):
        assert HourWindow(8, 11).markers() == [(8, "8am"), (9, "9am"), (10, "10am")]


class TestVerticalGeometry:
    def test_setup_scenario_height(self, make_block):
        geo = compute_geometry(make_block(DAY, "09:00", "09:30"), start_hour=8)
        assert geo.top == HOUR_HEIGHT
        assert geo.height == 0.5 * HOUR_HEIGHT

    def test_top_never_negative(self, make_block):
        geo = compute_geometry(make_block(DAY, "09:00", "10:00"), start_hour=10)
        assert geo.top == 0
        assert geo.height == HOUR_HEIGHT

    def test_custom_hour_height(self, make_block):
        geo = compute_geometry(make_block(DAY, "10:15", "11:00"), start_hour=8, hour_height=100)
        assert geo.top == pytest.approx(225)
        assert geo.height == pytest.approx(75)

    def test_stored_late_evening_not_shifted(self, make_block):
        geo = compute_geometry(make_block(DAY, "23:00", "23:30"), start_hour=0)
        assert geo.top == 23 * HOUR_HEIGHT


class TestVerticalDensity:
    @pytest.mark.parametrize(
        "minutes,expected",
        [
            (15, VerticalDensity.ULTRA_COMPACT),
            (30, VerticalDensity.COMPACT),
            (45, VerticalDensity.MEDIUM),
            (59, VerticalDensity.MEDIUM),
            (60, VerticalDensity.FULL),
            (180, VerticalDensity.FULL),
        ],
    )
    def test_thresholds(self, minutes, expected):
        assert vertical_density(minutes) is expected

    def test_labels(self, make_block):
        assert vertical_time_label(make_block(DAY, "10:00", "10:15")) == "10:00a (15m)"
        assert vertical_time_label(make_block(DAY, "10:00", "10:30")) == "10:00-10:30a"
        assert vertical_time_label(make_block(DAY, "11:45", "12:15")) == "11:45a-12:15p"
        assert vertical_time_label(make_block(DAY, "10:00", "11:00")) == "10:00 am — 11:00 am"


class TestVerticalDay:
    def test_layout(self, make_block):
        blocks = [make_block(DAY, "09:00", "09:30"), make_block(DAY, "13:00", "15:00")]
        layout = layout_vertical_day(blocks, day=date(2024, 6, 1))

        assert layout.window == VERTICAL_DEFAULT_WINDOW
        assert not layout.expanded
        assert layout.total_height == 12 * HOUR_HEIGHT
        assert [vb.geometry.top for vb in layout.blocks] == [HOUR_HEIGHT, 5 * HOUR_HEIGHT]
        assert layout.markers[0] == (0, "8am")
        assert all(vb.geometry.top >= 0 for vb in layout.blocks)

    def test_now_line_only_on_today(self, make_block):
        blocks = [make_block(DAY, "09:00", "10:00")]
        today = layout_vertical_day(blocks, day=date(2024, 6, 1), now=datetime(2024, 6, 1, 10, 30))
        other = layout_vertical_day(blocks, day=date(2024, 6, 1), now=datetime(2024, 6, 2, 10, 30))
        assert today.now_offset == 2.5 * HOUR_HEIGHT
        assert other.now_offset is None


class TestHorizontalPosition:
    def test_half_window(self, make_block):
        left, width = compute_time_position(make_block(DAY, "06:00", "14:00"))
        assert left == 0
        assert width == pytest.approx(50)

    def test_percentages(self, make_block):
        left, width = compute_time_position(make_block(DAY, "21:30", "22:00"))
        assert left == pytest.approx(96.875)
        assert width == pytest.approx(3.125)

    def test_minimum_width(self, make_block):
        _, width = compute_time_position(make_block(DAY, "10:00", "10:05"))
        assert width == 1

    def test_never_past_right_edge(self, make_block):
        left, width = compute_time_position(make_block(DAY, "22:00", "22:30"), HORIZONTAL_DEFAULT_WINDOW)
        assert 0 <= left <= 100
        assert left + width <= 100

    @pytest.mark.parametrize(
        "width,expected",
        [
            (7.9, HorizontalDensity.ULTRA_COMPACT),
            (8, HorizontalDensity.COMPACT),
            (14.9, HorizontalDensity.COMPACT),
            (15, HorizontalDensity.STANDARD),
        ],
    )
    def test_density(self, width, expected):
        assert horizontal_density(width) is expected

    def test_now_marker_clamped(self):
        assert now_marker_percent(datetime(2024, 6, 1, 14, 0)) == 50
        assert now_marker_percent(datetime(2024, 6, 1, 3, 0)) == 0
        assert now_marker_percent(datetime(2024, 6, 1, 23, 30)) == 100


class TestHorizontalDay:
    def test_detail_only_on_wide_blocks(self, make_block):
        wide = make_block(DAY, "08:00", "12:00", title="Wide", description="Long setup")
        medium = make_block(DAY, "13:00", "16:00", title="Medium", description="Shorter")
        narrow = make_block(DAY, "17:00", "17:30", title="Narrow")

        layout = layout_horizontal_day([wide, medium, narrow], day=date(2024, 6, 1))
        by_title = {hb.block.title: hb for hb in layout.blocks}

        assert by_title["Wide"].show_status and by_title["Wide"].show_description
        assert by_title["Medium"].density is HorizontalDensity.STANDARD
        assert not by_title["Medium"].show_status
        assert by_title["Narrow"].density is HorizontalDensity.ULTRA_COMPACT
        assert by_title["Narrow"].time_label == ""
        assert "5:00p-5:30p" in by_title["Narrow"].tooltip

    def test_expanded_window(self, make_block):
        layout = layout_horizontal_day([make_block(DAY, "04:00", "05:00")], day=date(2024, 6, 1))
        assert layout.expanded
        assert layout.window.start_hour == 3

    def test_now_percent_on_today(self, make_block):
        layout = layout_horizontal_day(
            [make_block(DAY, "09:00", "10:00")],
            day=date(2024, 6, 1),
            now=datetime(2024, 6, 1, 14, 0),
        )
        assert layout.now_percent == 50

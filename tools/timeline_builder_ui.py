# =========================
# file: tools/timeline_builder_ui.py
# =========================
from __future__ import annotations
from datetime import date, datetime, time, timedelta
from html import escape
from typing import Dict, List, Optional, Tuple

import streamlit as st

from core.activity import ActivityTracker
from core.config import TimelineSettings, load_settings
from core.intervals import apply_precision, as_precision, default_block_times
from core.models import BlockStatus, EventInfo, Precision, TimelineBlock, require_every_status
from core.schemas import BlockValidationError
from core.store import DEMO_EVENT_ID, StoreError, TimelineStore, get_store
from core.timeutils import (
    format_date_range,
    format_day_heading,
    format_time_12h,
    parse_wall_clock,
    to_form_input,
)
from tools.run_of_show import build_run_of_show, render_pdf, render_text, run_of_show_filename
from tools.timeline_builder import (
    TimelineDay,
    TimelinePage,
    blocks_to_csv_bytes,
    blocks_to_dataframe,
    blocks_to_text,
    blocks_to_xlsx_bytes,
    build_timeline_page,
    cleanup_ghost_blocks,
    minutes_by_status,
    save_block,
)
from tools.timeline_layout import HorizontalDensity, HorizontalDayLayout, VerticalDayLayout, VerticalDensity

# (border, background, text)
STATUS_CARD_COLORS: Dict[BlockStatus, Tuple[str, str, str]] = {
    BlockStatus.PENDING: ("#CBD5E1", "#F8F9FA", "#475569"),
    BlockStatus.IN_PROGRESS: ("#93C5FD", "#EFF6FF", "#1D4ED8"),
    BlockStatus.COMPLETE: ("#C4B5FD", "#F5F3FF", "#5B21B6"),
    BlockStatus.CANCELLED: ("#FCA5A5", "#FEF2F2", "#B91C1C"),
}
require_every_status(STATUS_CARD_COLORS, "STATUS_CARD_COLORS")


@st.cache_resource(show_spinner=False)
def _store() -> TimelineStore:
    return get_store()


def _settings() -> TimelineSettings:
    return load_settings()


def _tracker() -> ActivityTracker:
    if "activity_tracker" not in st.session_state:
        st.session_state["activity_tracker"] = ActivityTracker.from_settings(_settings())
    return st.session_state["activity_tracker"]


def _event_picker() -> str:
    st.session_state.setdefault("event_id", DEMO_EVENT_ID)
    return st.sidebar.text_input("Event ID", key="event_id").strip()


def _load(event_id: str) -> Tuple[EventInfo, List[TimelineBlock]]:
    store = _store()
    return store.get_event(event_id), store.list_blocks(event_id)


def _status_badge(status: BlockStatus) -> str:
    border, bg, fg = STATUS_CARD_COLORS[status]
    return (
        f'<span style="font-size: 10px; padding: 1px 6px; border-radius: 6px; '
        f'border: 1px solid {border}; background: {bg}; color: {fg};">{escape(status.label)}</span>'
    )


# -------------------------
# Views
# -------------------------
def _vertical_html(layout: VerticalDayLayout) -> str:
    parts = [f'<div style="position: relative; height: {layout.total_height}px; margin-left: 56px;">']
    for offset, label in layout.markers:
        parts.append(
            f'<div style="position: absolute; top: {offset}px; left: -56px; right: 0; '
            f'border-top: 1px solid #E6E9ED; font-size: 11px; opacity: 0.6;">{label}</div>'
        )

    for vb in layout.blocks:
        border, bg, fg = STATUS_CARD_COLORS[vb.block.status]
        g = vb.geometry
        title = f'<div style="font-size: 13px; font-weight: 600;">{escape(vb.block.title)}</div>'
        time_html = f'<div style="font-size: 11px; opacity: 0.7;">{escape(vb.time_label)}</div>'
        if vb.density in (VerticalDensity.ULTRA_COMPACT, VerticalDensity.COMPACT):
            body = f'<div style="display: flex; justify-content: space-between; gap: 6px;">{title}{time_html}</div>'
        else:
            body = title + time_html + f'<div style="margin-top: 4px;">{_status_badge(vb.block.status)}</div>'
            if vb.density is VerticalDensity.FULL and vb.block.location:
                body += f'<div style="font-size: 11px; opacity: 0.65;">{escape(vb.block.location)}</div>'
        parts.append(
            f'<div style="position: absolute; top: {g.top:.1f}px; height: {max(g.height - 2, 14):.1f}px; '
            f'left: 8px; right: 8px; overflow: hidden; padding: 2px 8px; border-radius: 10px; '
            f'border: 1px solid {border}; background: {bg}; color: {fg};">{body}</div>'
        )

    if layout.now_offset is not None:
        parts.append(
            f'<div style="position: absolute; top: {layout.now_offset:.1f}px; left: 0; right: 0; '
            f'border-top: 2px solid #EF4444;"></div>'
        )
    parts.append("</div>")
    return "".join(parts)


def _horizontal_html(layout: HorizontalDayLayout) -> str:
    parts = ['<div style="position: relative; height: 110px; border-top: 1px solid #E6E9ED;">']
    for left, label in layout.markers:
        parts.append(
            f'<div style="position: absolute; left: {left:.2f}%; top: 0; bottom: 0; '
            f'border-left: 1px solid #F1F3F5; font-size: 10px; opacity: 0.6; padding-left: 2px;">{label}</div>'
        )

    for hb in layout.blocks:
        border, bg, fg = STATUS_CARD_COLORS[hb.block.status]
        title = escape(hb.block.title)
        if hb.density is HorizontalDensity.ULTRA_COMPACT:
            body = f'<div style="font-size: 10px; white-space: nowrap;">{title}</div>'
        elif hb.density is HorizontalDensity.COMPACT:
            body = (
                f'<div style="font-size: 11px; font-weight: 600; white-space: nowrap;">{title}</div>'
                f'<div style="font-size: 10px; opacity: 0.7;">{escape(hb.time_label)}</div>'
            )
        else:
            body = f'<div style="font-size: 12px; font-weight: 600; white-space: nowrap;">{title}</div>'
            if hb.show_status:
                body += _status_badge(hb.block.status)
            if hb.show_description:
                body += f'<div style="font-size: 10px; opacity: 0.7;">{escape(hb.block.description)}</div>'
            body += f'<div style="font-size: 10px; opacity: 0.7;">{escape(hb.time_label)}</div>'
        parts.append(
            f'<div title="{escape(hb.tooltip)}" style="position: absolute; top: 18px; bottom: 6px; '
            f'left: {hb.left:.2f}%; width: {hb.width:.2f}%; overflow: hidden; padding: 2px 6px; '
            f'border-radius: 8px; border: 1px solid {border}; background: {bg}; color: {fg};">{body}</div>'
        )

    if layout.now_percent is not None:
        parts.append(
            f'<div style="position: absolute; left: {layout.now_percent:.2f}%; top: 0; bottom: 0; '
            f'border-left: 2px solid #EF4444;"></div>'
        )
    parts.append("</div>")
    return "".join(parts)


def _render_day(day: TimelineDay, view: str):
    st.markdown(f"#### {format_day_heading(day.day)}")
    if not day.blocks:
        st.caption("Nothing scheduled.")
        return

    layout = day.vertical if view == "Vertical" else day.horizontal
    if layout.expanded:
        w = layout.window
        st.caption(
            f"Showing {w.start_hour:02d}:00–{w.end_hour:02d}:00 so every block fits "
            "(wider than the usual range)."
        )

    if view == "Vertical":
        st.markdown(_vertical_html(day.vertical), unsafe_allow_html=True)
    elif view == "Horizontal":
        st.markdown(_horizontal_html(day.horizontal), unsafe_allow_html=True)
    else:
        st.dataframe(blocks_to_dataframe(day.blocks), use_container_width=True, hide_index=True)


def _render_ghost_panel(page: TimelinePage):
    if not page.ghosts:
        return

    with st.expander(f"⚠️ {len(page.ghosts)} block(s) can't be shown on the timeline", expanded=True):
        st.caption(
            "These blocks fall outside the event dates or have broken times/titles. "
            "Delete them, or open them in the block editor to fix them."
        )
        for g in page.ghosts:
            c1, c2 = st.columns([4, 1])
            with c1:
                title = g.block.title or "(untitled)"
                st.write(f"**{title}** · {g.reason.label} · `{g.block.start_time}` → `{g.block.end_time}`")
            with c2:
                if st.button("Delete", key=f"ghost_del_{g.block.id}", use_container_width=True):
                    _run_cleanup(page.event.id, [g])

        if len(page.ghosts) > 1 and st.button("Delete all", key="ghost_del_all"):
            _run_cleanup(page.event.id, page.ghosts)


def _run_cleanup(event_id: str, ghosts):
    result = cleanup_ghost_blocks(_store(), event_id, ghosts)
    if result.deleted:
        st.success(f"Deleted {len(result.deleted)} block(s).")
    for block_id, reason in result.failed.items():
        st.error(f"Couldn't delete {block_id}: {reason}")
    if result.ok:
        st.rerun()


def _reload(event_id: str):
    event, blocks = _load(event_id)
    st.session_state["timeline_data"] = (event_id, event, blocks)


def render_timeline():
    settings = _settings()
    tracker = _tracker()
    tracker.record_activity("click")

    event_id = _event_picker()
    view = st.radio("View", ["Vertical", "Horizontal", "List"], horizontal=True, key="timeline_view")

    try:
        _reload(event_id)
    except StoreError as e:
        st.error(f"Couldn't load the timeline: {e}")
        return
    tracker.mark_refreshed()

    @st.fragment(run_every=timedelta(seconds=15))
    def _timeline_body():
        # timer reruns only reach the store when the tracker allows it
        try:
            tracker.maybe_refresh(lambda: _reload(event_id))
        except StoreError as e:
            st.error(f"Couldn't refresh the timeline: {e}")

        _, event, blocks = st.session_state["timeline_data"]
        page = build_timeline_page(event, blocks, settings, now=datetime.now())

        st.subheader(f"🗓️ {event.name}")
        st.caption(
            f"{format_date_range(event.start_date, event.end_date)}"
            + (f" · {event.location}" if event.location else "")
        )

        m0, m1, m2, m3 = st.columns(4)
        m0.metric("Blocks", page.tally.total)
        m1.metric("Complete", page.tally.complete)
        m2.metric("In progress", page.tally.in_progress)
        m3.metric("Pending", page.tally.pending)

        _render_ghost_panel(page)

        for day in page.days:
            _render_day(day, view)

        with st.expander("⏱️ Time by status", expanded=False):
            st.dataframe(minutes_by_status(page.valid_blocks), use_container_width=True, hide_index=True)

        st.markdown("### Exports")
        slug = event.name.replace(" ", "_").replace("&", "and") or "event"
        c1, c2 = st.columns(2)
        with c1:
            st.download_button(
                "Download timeline CSV",
                data=blocks_to_csv_bytes(page.valid_blocks),
                file_name=f"{slug}_timeline.csv",
                mime="text/csv",
            )
        with c2:
            st.download_button(
                "Download timeline XLSX",
                data=blocks_to_xlsx_bytes(page.valid_blocks),
                file_name=f"{slug}_timeline.xlsx",
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )

        st.markdown("#### Copy/paste version")
        st.text_area("Timeline text", value=blocks_to_text(page.valid_blocks), height=240)

    try:
        _timeline_body()
    except Exception as e:
        st.error(f"Couldn't build the timeline: {e}")


# -------------------------
# Block form
# -------------------------
def _set_form_times(start: datetime, end: datetime):
    st.session_state["block_start_date"] = start.date()
    st.session_state["block_start_time"] = start.time()
    st.session_state["block_end_date"] = end.date()
    st.session_state["block_end_time"] = end.time()


def _form_times() -> Tuple[datetime, datetime]:
    start = datetime.combine(st.session_state["block_start_date"], st.session_state["block_start_time"])
    end = datetime.combine(st.session_state["block_end_date"], st.session_state["block_end_time"])
    return start, end


def _on_precision_change():
    precision = as_precision(st.session_state["block_precision"])
    start, end = apply_precision(*_form_times(), precision)
    _set_form_times(start, end)
    _tracker().start_editing()


def _load_block_into_form(block: Optional[TimelineBlock], event: EventInfo, precision: Precision):
    if block is None:
        now = datetime.now()
        if not event.start_date <= now.date() <= event.end_date:
            now = datetime.combine(event.start_date, time(9, 0))
        start, end = default_block_times(now, precision)
        values = {"title": "", "location": "", "description": "", "personnel": "", "equipment": "", "notes": ""}
        status = BlockStatus.PENDING
    else:
        start = parse_wall_clock(to_form_input(block.start_time))
        end = parse_wall_clock(to_form_input(block.end_time))
        start, end = apply_precision(start, end, precision)
        values = {
            "title": block.title,
            "location": block.location,
            "description": block.description,
            "personnel": block.personnel,
            "equipment": block.equipment,
            "notes": block.notes,
        }
        status = block.status

    _set_form_times(start, end)
    for k, v in values.items():
        st.session_state[f"block_{k}"] = v
    st.session_state["block_status"] = status.value
    st.session_state["block_errors"] = {}


def _field_error(errors: Dict[str, str], name: str):
    if name in errors:
        st.error(errors[name])


def render_block_form():
    settings = _settings()
    event_id = _event_picker()
    store = _store()

    try:
        event, blocks = _load(event_id)
    except StoreError as e:
        st.error(f"Couldn't load the event: {e}")
        return

    st.subheader("✏️ Add / edit block")
    st.caption(f"{event.name} · {format_date_range(event.start_date, event.end_date)}")

    st.session_state.setdefault("block_precision", as_precision(settings.default_precision).value)
    precision = as_precision(st.session_state["block_precision"])

    # the selectbox can only be reset before it is created in this run
    if st.session_state.pop("block_deleted", False):
        st.session_state["block_choice"] = "New block"

    options = ["New block"] + [b.id for b in blocks]
    labels = {b.id: f"{b.title or '(untitled)'} · {b.start_time[:10]} {format_time_12h(b.start_time)}" for b in blocks}
    choice = st.selectbox("Block", options, format_func=lambda o: labels.get(o, o), key="block_choice")
    block_id = None if choice == "New block" else choice

    if st.session_state.get("block_loaded") != choice:
        current = next((b for b in blocks if b.id == block_id), None)
        _load_block_into_form(current, event, precision)
        st.session_state["block_loaded"] = choice

    st.radio(
        "Time precision",
        [p.value for p in Precision],
        format_func=lambda v: "15 minutes" if v == Precision.FIFTEEN.value else "30 minutes",
        horizontal=True,
        key="block_precision",
        on_change=_on_precision_change,
    )

    errors: Dict[str, str] = st.session_state.get("block_errors", {})
    step = timedelta(minutes=precision.minutes)

    colA, colB = st.columns(2)
    with colA:
        st.text_input("Title", key="block_title")
        _field_error(errors, "title")
        d1, t1 = st.columns(2)
        d1.date_input("Start date", key="block_start_date")
        t1.time_input("Start time", key="block_start_time", step=step)
        _field_error(errors, "startTime")
        d2, t2 = st.columns(2)
        d2.date_input("End date", key="block_end_date")
        t2.time_input("End time", key="block_end_time", step=step)
        _field_error(errors, "endTime")
        st.selectbox(
            "Status",
            [s.value for s in BlockStatus],
            format_func=lambda v: BlockStatus(v).label,
            key="block_status",
        )
    with colB:
        st.text_input("Location", key="block_location")
        st.text_input("Personnel", key="block_personnel")
        st.text_input("Equipment", key="block_equipment")
        st.text_area("Description", key="block_description", height=80)
        st.text_area("Notes", key="block_notes", height=80)

    _tracker().start_editing()
    _field_error(errors, "eventId")

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Save block", type="primary", use_container_width=True):
            start, end = _form_times()
            payload = {
                "title": st.session_state["block_title"],
                "startTime": start.strftime("%Y-%m-%dT%H:%M"),
                "endTime": end.strftime("%Y-%m-%dT%H:%M"),
                "status": st.session_state["block_status"],
            }
            for k in ("location", "description", "personnel", "equipment", "notes"):
                payload[k] = st.session_state[f"block_{k}"]
            try:
                saved = save_block(store, event.id, payload, precision, block_id=block_id)
            except BlockValidationError as e:
                st.session_state["block_errors"] = e.field_errors
                st.rerun()
            except StoreError as e:
                st.error(f"Couldn't save the block: {e}")
            else:
                st.session_state["block_errors"] = {}
                _tracker().stop_editing()
                st.success(f"Saved “{saved.title}”.")
    with c2:
        if block_id and st.button("Delete block", use_container_width=True):
            try:
                store.delete_block(block_id)
            except StoreError as e:
                st.error(f"Couldn't delete the block: {e}")
            else:
                st.session_state.pop("block_loaded", None)
                st.session_state["block_deleted"] = True
                _tracker().stop_editing()
                st.rerun()


# -------------------------
# Run of show
# -------------------------
def render_run_of_show():
    event_id = _event_picker()
    try:
        event, blocks = _load(event_id)
    except StoreError as e:
        st.error(f"Couldn't load the event: {e}")
        return

    st.subheader("📋 Run of show")
    ros = build_run_of_show(event, blocks)

    try:
        pdf_bytes = render_pdf(ros)
        st.download_button(
            "Download run of show (PDF)",
            data=pdf_bytes,
            file_name=run_of_show_filename(event, on=date.today()),
            mime="application/pdf",
        )
    except Exception as e:
        st.error(f"Couldn't build the PDF: {e}")

    st.markdown("#### Copy/paste version")
    st.text_area("Run of show text", value=render_text(ros), height=420)

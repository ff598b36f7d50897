# =========================
# file: app.py
# =========================
from __future__ import annotations
import logging

import streamlit as st

from core.config import LOG_LEVEL
from tools.timeline_builder_ui import render_block_form, render_run_of_show, render_timeline

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

TOOLS = {
    "Timeline": render_timeline,
    "Add / edit block": render_block_form,
    "Run of show": render_run_of_show,
}


def main():
    st.set_page_config(page_title="Event Ops Suite", layout="wide")
    st.title("🗓️ Event Ops Suite")

    st.sidebar.header("Tools")
    tool = st.sidebar.radio("Choose a tool", list(TOOLS), index=0)

    TOOLS[tool]()


if __name__ == "__main__":
    main()

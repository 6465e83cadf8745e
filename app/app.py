"""
Routing only.

All view logic lives in app/views/.
All env reads happen ONLY in config.py.
"""

from __future__ import annotations

import os
import sys

# Make `app/` importable as a flat module path when running:
#   streamlit run app/app.py
APP_DIR = os.path.dirname(__file__)
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

import streamlit as st  # noqa: E402

from components.header import render_header  # noqa: E402
from components.sidebar import render_sidebar  # noqa: E402
from components.styles import apply_theme  # noqa: E402
from config import AppConfig, configure_logging, get_config  # noqa: E402
from data.credentials import MappingSlot  # noqa: E402
from data.service import DashboardSession  # noqa: E402
from views import dashboard, landing  # noqa: E402


def _session(cfg: AppConfig) -> DashboardSession:
    # One DashboardSession per browser session; demo mode stays sticky inside it.
    if "dashboard_session" not in st.session_state:
        storage = None if cfg.credential_file else MappingSlot(st.session_state)
        st.session_state["dashboard_session"] = DashboardSession.start(cfg, storage=storage)
    return st.session_state["dashboard_session"]


def main() -> None:
    apply_theme()
    cfg = get_config()
    configure_logging(cfg)
    session = _session(cfg)
    state = render_sidebar(cfg, session)

    render_header(
        app_name="Campus Dashboard",
        subtitle="Admin · Faculty · Parent · Student",
        right_pill="Data: Demo" if session.demo_state.active else "Data: Live (fallback on error)",
        demo=session.demo_state.active,
    )

    # Routing only
    if state.view == "landing":
        dashboard.release(st.session_state)
        landing.render(cfg, session)
    elif state.view == "dashboard":
        dashboard.render(cfg, session, state.role)
    else:
        st.error("Unknown view")


if __name__ == "__main__":
    main()

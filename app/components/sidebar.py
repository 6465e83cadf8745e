from __future__ import annotations

from dataclasses import dataclass

import streamlit as st

from config import ROLES, AppConfig
from data.service import DashboardSession


@dataclass(frozen=True)
class SidebarState:
    view: str
    role: str


NAV_ITEMS = [
    ("🏠 Overview", "landing"),
    ("📊 Dashboard", "dashboard"),
]

ROLE_LABELS = {
    "admin": "Administrator",
    "faculty": "Faculty",
    "parent": "Parent",
    "student": "Student",
}


def render_sidebar(cfg: AppConfig, session: DashboardSession) -> SidebarState:
    with st.sidebar:
        st.markdown("### 🎓 Campus Dashboard")
        st.caption("Admin, faculty, parent and student views")

        labels = [l for l, _ in NAV_ITEMS]
        default_label = st.session_state.get("nav_label", labels[0])
        idx = labels.index(default_label) if default_label in labels else 0
        label = st.radio("Nav", labels, index=idx, label_visibility="collapsed")
        st.session_state["nav_label"] = label
        view = dict(NAV_ITEMS)[label]

        role = st.selectbox(
            "Role",
            ROLES,
            index=ROLES.index(st.session_state.get("role", cfg.role)),
            format_func=lambda r: ROLE_LABELS[r],
        )
        st.session_state["role"] = role

        # A click reruns the script, which re-issues the full fan-out.
        st.button("🔄 Refresh now", use_container_width=True)

        with st.expander("⚙️ Session", expanded=False):
            if session.demo_state.active:
                st.warning(f"Demo mode ({session.demo_state.reason}). All data is simulated.")
            else:
                st.caption(f"Backend: `{cfg.api_url}`")
            signed_in = session.credentials.get() is not None
            st.caption("Signed in" if signed_in else "Not signed in")
            if signed_in and st.button("Log out", use_container_width=True):
                session.credentials.clear()
                st.rerun()
            if cfg.auto_refresh_s:
                st.caption(f"Auto refresh every {cfg.auto_refresh_s}s")

    return SidebarState(view=view, role=role)

from __future__ import annotations

import streamlit as st

from config import AppConfig
from data.service import DashboardSession


def render(cfg: AppConfig, session: DashboardSession) -> None:
    st.title("Overview")
    st.markdown(
        "One dashboard per role. Each dashboard is assembled from several backend "
        "endpoints fetched together; a section that cannot be fetched shows its "
        "fallback content instead of an error."
    )

    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric("Backend", cfg.api_url or "not configured")
    with c2:
        st.metric("Data mode", "Demo" if session.demo_state.active else "Live")
    with c3:
        st.metric("Auto refresh", f"{cfg.auto_refresh_s}s" if cfg.auto_refresh_s else "off")

    if session.demo_state.active:
        st.info("🎭 Demo Mode - All data is simulated for demonstration purposes.")

from __future__ import annotations

import asyncio
from typing import Any, MutableMapping, Optional

import pandas as pd
import streamlit as st

from components.metrics import bar_chart, kpis_for, render_kpi_row
from components.sidebar import ROLE_LABELS
from config import AppConfig
from data.orchestrator import DashboardController, DashboardModel, LoadState
from data.service import DashboardSession

CONTROLLER_KEY = "dashboard_controller"

BREAKDOWN_TITLES = {
    "admin": ("Users by role", "role", "users"),
    "faculty": ("Quizzes by status", "status", "quizzes"),
    "parent": ("Average grade by child", "child", "percent"),
    "student": ("Average grade by course", "course", "percent"),
}


def controller_for(state: MutableMapping[str, Any], session: DashboardSession, role: str) -> DashboardController:
    """
    The controller backing the dashboard on screen.
    - One per browser session, kept in `state` (st.session_state)
    - Switching role disposes the previous one
    """
    current: Optional[DashboardController] = state.get(CONTROLLER_KEY)
    if current is not None and current.facade.role == role and not current.disposed:
        return current
    if current is not None:
        current.dispose()
    controller = session.service(role=role).controller()
    state[CONTROLLER_KEY] = controller
    return controller


def release(state: MutableMapping[str, Any]) -> None:
    """Dispose the dashboard controller when another view takes the page."""
    controller = state.pop(CONTROLLER_KEY, None)
    if controller is not None:
        controller.dispose()


def load_model(controller: DashboardController) -> Optional[DashboardModel]:
    # Streamlit reruns are synchronous; each render drives one fan-out to completion.
    asyncio.run(controller.refresh())
    return controller.model


def _render_model(model: DashboardModel) -> None:
    if model.state == LoadState.FULLY_DEMO:
        st.info("🎭 Demo Mode - All data is simulated for demonstration purposes.")
    elif model.fallbacks:
        st.caption("Fallback content shown for: " + ", ".join(sorted(model.fallbacks)))

    profile = model.get("profile") or {}
    if profile.get("name"):
        st.caption(f"Signed in as **{profile['name']}**")

    render_kpi_row(kpis_for(model.role, model.aggregates))

    st.divider()

    title, x_title, y_title = BREAKDOWN_TITLES[model.role]
    bar_chart(model.aggregates.get("breakdown", {}), title=title, x_title=x_title, y_title=y_title)

    for name, payload in model.items():
        if not isinstance(payload, list):
            continue
        st.subheader(name.replace("_", " ").title())
        if payload:
            st.dataframe(pd.DataFrame(payload), use_container_width=True, hide_index=True)
        else:
            st.info(f"No {name} to show.")

    st.caption(f"Loaded {model.loaded_at:%H:%M:%S} · generation {model.generation} · {model.state.value}")


def render(cfg: AppConfig, session: DashboardSession, role: str) -> None:
    st.title(f"{ROLE_LABELS[role]} dashboard")
    controller = controller_for(st.session_state, session, role)

    # The fragment timer stands in for the controller's asyncio auto refresh:
    # a Streamlit script has no long-lived event loop to host that task. When
    # another view is shown the fragment is not rendered and its timer stops.
    @st.fragment(run_every=controller.facade.refresh_interval_s or None)
    def _live() -> None:
        model = load_model(controller)
        if model is None:
            st.info("Dashboard closed.")
            return
        _render_model(model)

    _live()

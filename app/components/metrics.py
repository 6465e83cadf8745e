from __future__ import annotations

import html
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
import streamlit as st

from config import THEME


@dataclass(frozen=True)
class Kpi:
    label: str
    value: str
    help: Optional[str] = None


# aggregate key -> (label, format)
KPI_LAYOUT = {
    "admin": [
        ("user_count", "Users", "int"),
        ("faculty_share_pct", "Faculty share", "pct"),
        ("active_user_pct", "Active users", "pct"),
        ("course_count", "Courses", "int"),
        ("healthy_services", "Healthy services", "int"),
    ],
    "faculty": [
        ("student_count", "Students", "int"),
        ("course_count", "Courses", "int"),
        ("pending_submissions", "Pending grading", "int"),
        ("active_quizzes", "Active quizzes", "int"),
        ("unread_messages", "Unread messages", "int"),
    ],
    "parent": [
        ("child_count", "Children", "int"),
        ("average_grade_pct", "Avg grade", "pct"),
        ("average_attendance_pct", "Avg attendance", "pct"),
        ("recent_grade_count", "New grades (7d)", "int"),
        ("upcoming_event_count", "Upcoming events", "int"),
    ],
    "student": [
        ("course_count", "Courses", "int"),
        ("average_grade_pct", "Avg grade", "pct"),
        ("pending_assignments", "Pending assignments", "int"),
        ("attendance_rate_pct", "Attendance", "pct"),
        ("upcoming_quiz_count", "Upcoming quizzes", "int"),
    ],
}


def format_value(value: Any, fmt: str) -> str:
    if value is None:
        return "—"
    if fmt == "pct":
        return f"{float(value):.1f}%"
    return f"{int(value):,}"


def kpis_for(role: str, aggregates: Mapping[str, Any]) -> list[Kpi]:
    total_services = aggregates.get("total_services")
    out = []
    for key, label, fmt in KPI_LAYOUT.get(role, []):
        help_text = f"of {total_services}" if key == "healthy_services" and total_services else None
        out.append(Kpi(label, format_value(aggregates.get(key), fmt), help=help_text))
    return out


def render_kpi_row(kpis: list[Kpi]) -> None:
    if not kpis:
        return
    cols = st.columns(len(kpis))
    for c, k in zip(cols, kpis):
        with c:
            help_html = f'<div class="metric-help">{html.escape(k.help)}</div>' if k.help else ""
            st.markdown(
                f"""
<div class="metric-card">
  <div class="metric-label">{html.escape(k.label)}</div>
  <div class="metric-value">{html.escape(k.value)}</div>
  {help_html}
</div>
                """,
                unsafe_allow_html=True,
            )


def apply_plotly_theme(fig: go.Figure, x_title: str, y_title: str) -> go.Figure:
    fig.update_layout(
        margin=dict(l=10, r=10, t=44, b=10),
        font=dict(color=THEME["text_primary"]),
        paper_bgcolor=THEME["bg_card"],
        plot_bgcolor=THEME["bg_card"],
        colorway=[THEME["accent_primary"], THEME["navy_900"], THEME["accent_secondary"], "#6B7280"],
        title_font=dict(color=THEME["navy_900"], size=16),
    )
    fig.update_xaxes(title_text=x_title, gridcolor=THEME["grid"], zeroline=False)
    fig.update_yaxes(title_text=y_title, gridcolor=THEME["grid"], zeroline=False)
    return fig


def bar_chart(values: Mapping[str, float], title: str, x_title: str, y_title: str) -> None:
    if not values:
        st.info("Nothing to chart yet.")
        return
    df = pd.DataFrame({"label": list(values.keys()), "value": list(values.values())})
    fig = px.bar(df, x="label", y="value", title=title)
    st.plotly_chart(apply_plotly_theme(fig, x_title=x_title, y_title=y_title), use_container_width=True)

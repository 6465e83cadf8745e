from __future__ import annotations

import streamlit as st

from config import THEME


APP_TITLE = "Campus Dashboard"


def apply_theme() -> None:
    st.set_page_config(
        page_title=APP_TITLE,
        page_icon="🎓",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    # Theme tokens (config.py) -> CSS variables
    css = """
<style>
:root{
  --accent: __ACCENT__;
  --navy-900: __NAVY_900__;
  --bg-primary: __BG_PRIMARY__;
  --card-bg: __CARD_BG__;
  --card-border: __CARD_BORDER__;
  --text-primary: __TEXT_PRIMARY__;
  --text-secondary: __TEXT_SECONDARY__;
  --warning: __WARNING__;
  --radius: __RADIUS_PX__px;
}

#MainMenu { visibility: hidden; }
footer { visibility: hidden; }

[data-testid="stAppViewContainer"]{ background: var(--bg-primary) !important; }

.app-header{ display:flex; justify-content:space-between; align-items:center; margin-bottom: 12px; }
.app-title{ font-size: 1.4rem; font-weight: 700; color: var(--navy-900); }
.app-subtitle{ color: var(--text-secondary); font-size: 0.9rem; }

.pill{ border: 1px solid var(--card-border); border-radius: 999px; padding: 4px 12px;
       background: var(--card-bg); font-size: 0.85rem; }
.pill .dot{ display:inline-block; width:8px; height:8px; border-radius:50%;
            background: var(--accent); margin-right: 6px; }
.pill.demo .dot{ background: var(--warning); }

.metric-card{ background: var(--card-bg); border: 1px solid var(--card-border);
              border-radius: var(--radius); padding: 14px 16px; }
.metric-label{ color: var(--text-secondary); font-size: 0.8rem; text-transform: uppercase; }
.metric-value{ color: var(--text-primary); font-size: 1.6rem; font-weight: 700; }
.metric-help{ color: var(--text-secondary); font-size: 0.75rem; }
</style>
"""
    replacements = {
        "__ACCENT__": THEME["accent_primary"],
        "__NAVY_900__": THEME["navy_900"],
        "__BG_PRIMARY__": THEME["bg_primary"],
        "__CARD_BG__": THEME["bg_card"],
        "__CARD_BORDER__": THEME["border_color"],
        "__TEXT_PRIMARY__": THEME["text_primary"],
        "__TEXT_SECONDARY__": THEME["text_secondary"],
        "__WARNING__": THEME["warning"],
        "__RADIUS_PX__": str(int(THEME["radius_px"])),
    }
    for token, value in replacements.items():
        css = css.replace(token, value)
    st.markdown(css, unsafe_allow_html=True)

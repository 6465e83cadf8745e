from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


#
# Shared theme tokens for the campus dashboard.
# - Centralized here so views and components never hardcode colors.
#
THEME = {
    "bg_primary": "#F4F3EE",
    "bg_card": "#FFFFFF",
    "accent_primary": "#1D4ED8",
    "accent_secondary": "#3B82F6",
    "navy_900": "#0B1220",
    "text_primary": "#111827",
    "text_secondary": "rgba(17, 24, 39, 0.72)",
    "border_color": "#E6E4E0",
    "grid": "rgba(17, 24, 39, 0.10)",
    "radius_px": 10,
    # Status colors
    "warning": "#F59E0B",
}

ROLES = ("admin", "faculty", "parent", "student")

DEMO_USER_IDS = {
    "admin": "admin-demo-001",
    "faculty": "faculty-demo-001",
    "parent": "parent-demo-001",
    "student": "student-demo-001",
}


@dataclass(frozen=True)
class AppConfig:
    # Backend base URL. Empty means no backend: the session starts in demo mode.
    api_url: str

    # Transport timeout per call, seconds
    request_timeout_s: float

    # Persisted client state (holds the credential slot)
    credential_file: str

    # Defaults
    force_demo_mode: bool
    auto_refresh_s: int
    demo_seed: int
    role: str
    user_id: str
    log_level: str

    @property
    def starts_in_demo_mode(self) -> bool:
        return self.force_demo_mode or not self.api_url


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name, default)
    if v is None:
        return None
    v = v.strip()
    return v if v else None


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        return default


def _getfloat(name: str, default: float) -> float:
    raw = _getenv(name)
    try:
        return float(raw) if raw is not None else default
    except ValueError:
        return default


def get_config() -> AppConfig:
    """
    Centralized config: this is the ONLY place env vars are read.
    - Loads `.env` if present (local dev)
    - An explicitly empty CAMPUS_API_URL disables the backend
    """
    load_dotenv(override=False)

    role = (_getenv("CAMPUS_ROLE", "admin") or "admin").lower()
    if role not in ROLES:
        role = "admin"

    api_url = os.getenv("CAMPUS_API_URL", "http://localhost:5000").strip()

    return AppConfig(
        api_url=api_url.rstrip("/"),
        request_timeout_s=max(0.1, _getfloat("CAMPUS_REQUEST_TIMEOUT_S", 10.0)),
        credential_file=os.path.expanduser(
            _getenv("CAMPUS_CREDENTIAL_FILE", "~/.campus_dashboard/session.json") or ""
        ),
        force_demo_mode=(_getenv("CAMPUS_FORCE_DEMO_MODE", "false") or "false").lower() == "true",
        auto_refresh_s=max(0, _getint("CAMPUS_AUTO_REFRESH_S", 30)),
        demo_seed=_getint("CAMPUS_DEMO_SEED", 7),
        role=role,
        user_id=_getenv("CAMPUS_USER_ID") or DEMO_USER_IDS[role],
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
    )


def configure_logging(cfg: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

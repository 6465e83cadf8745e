from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Mapping, Optional

import pandas as pd

from config import DEMO_USER_IDS, AppConfig
from data.connection import Endpoint, RequestClient, Transport, get_request_client
from data.credentials import CredentialStore, FileSlot, SlotStorage
from data.demo_state import DemoModeState
from data.mock_data import SERVICES, DemoDataProvider, PayloadShape
from data.orchestrator import (
    DEMO_FALLBACK,
    AggregationOrchestrator,
    DashboardController,
    DashboardModel,
    Section,
)

LIST = PayloadShape.LIST
RECORD = PayloadShape.RECORD
SUMMARY = PayloadShape.SUMMARY

Derive = Callable[[Mapping[str, Any]], dict[str, Any]]


@dataclass(frozen=True)
class ServiceFacade:
    """
    Declaration of one role's dashboard: which endpoints make it up, what each
    falls back to, which section backs each entry point, and the writes the
    role may issue.
    """

    role: str
    sections: tuple[Section, ...]
    entry_points: Mapping[str, str]
    actions: Mapping[str, Endpoint] = field(default_factory=dict)
    derive: Optional[Derive] = None
    refresh_interval_s: float = 0

    def section(self, name: str) -> Section:
        for s in self.sections:
            if s.name == name:
                return s
        raise KeyError(f"{self.role} dashboard has no section {name!r}")

    @property
    def section_names(self) -> list[str]:
        return [s.name for s in self.sections]


def _declare(
    role: str,
    table: list[tuple[str, Endpoint, Any]],
    user_id: str,
    only: Optional[Iterable[str]],
) -> tuple[Section, ...]:
    wanted = set(only) if only is not None else None
    sections = tuple(
        Section(name=name, endpoint=ep.bind(user_id=user_id), fallback=fallback)
        for name, ep, fallback in table
        if wanted is None or name in wanted
    )
    if wanted is not None and len(sections) != len(wanted):
        unknown = wanted - {s.name for s in sections}
        raise KeyError(f"{role} dashboard has no section(s): {', '.join(sorted(unknown))}")
    return sections


def _bind_actions(actions: dict[str, Endpoint], user_id: str) -> dict[str, Endpoint]:
    return {name: ep.bind(user_id=user_id) for name, ep in actions.items()}


# --- derivation helpers (merged model only) ---------------------------------

def _frame(rows: Any) -> pd.DataFrame:
    if not isinstance(rows, list):
        return pd.DataFrame()
    return pd.DataFrame([r for r in rows if isinstance(r, dict)])


def _mean(df: pd.DataFrame, col: str) -> float:
    if df.empty or col not in df.columns:
        return 0.0
    v = pd.to_numeric(df[col], errors="coerce").mean()
    return round(float(v), 1) if pd.notna(v) else 0.0


def _sum(df: pd.DataFrame, col: str) -> int:
    if df.empty or col not in df.columns:
        return 0
    return int(pd.to_numeric(df[col], errors="coerce").fillna(0).sum())


def _count(df: pd.DataFrame, col: str, value: Any) -> int:
    if df.empty or col not in df.columns:
        return 0
    return int((df[col] == value).sum())


def _number(record: Any, key: str) -> float:
    if not isinstance(record, Mapping):
        return 0.0
    v = pd.to_numeric(pd.Series([record.get(key)]), errors="coerce").iloc[0]
    return float(v) if pd.notna(v) else 0.0


def _pct(part: float, whole: float) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _breakdown(df: pd.DataFrame, by: str, col: Optional[str] = None) -> dict[str, float]:
    """value_counts of `by`, or mean of `col` grouped by `by`."""
    if df.empty or by not in df.columns:
        return {}
    # Keys as strings: a nested object in the grouping field must not break hashing.
    keys = df[by].dropna().astype(str)
    if col is None:
        return {k: int(v) for k, v in keys.value_counts().items()}
    if col not in df.columns:
        return {}
    values = pd.to_numeric(df[col], errors="coerce")
    grouped = values.groupby(keys).mean().dropna()
    return {str(k): round(float(v), 1) for k, v in grouped.items()}


def _dates(df: pd.DataFrame, col: str) -> pd.Series:
    if df.empty or col not in df.columns:
        return pd.Series([], dtype="datetime64[ns, UTC]")
    # Each value parsed on its own: date-only and full timestamps mix in one feed.
    return pd.to_datetime(df[col], errors="coerce", utc=True, format="ISO8601")


def _utc(d: date) -> pd.Timestamp:
    return pd.Timestamp(datetime.combine(d, datetime.min.time()), tz="UTC")


# --- admin --------------------------------------------------------------------

ADMIN_SECTIONS = [
    ("profile", Endpoint("/api/admin/{user_id}/profile", "admin.profile", RECORD), DEMO_FALLBACK),
    (
        "summary",
        Endpoint("/api/admin/dashboard/summary", "admin.summary", SUMMARY),
        {"users": 0, "faculty": 0, "students": 0, "parents": 0, "courses": 0,
         "quizzes": 0, "activeUsers": 0, "systemLoad": 0},
    ),
    ("users", Endpoint("/api/admin/auth/users", "admin.users", LIST, envelope="users"), []),
    ("courses", Endpoint("/api/admin/courses", "admin.courses", LIST, envelope="courses"), []),
    (
        "metrics",
        Endpoint("/api/admin/metrics/realtime", "admin.metrics", SUMMARY),
        lambda: {"activeUsers": 0, "onlineStudents": 0, "onlineFaculty": 0, "systemLoad": 0,
                 "lastUpdated": datetime.now().strftime("%H:%M:%S")},
    ),
    (
        "health",
        Endpoint("/api/admin/system/health", "admin.health", RECORD),
        {name: {"status": "Unknown", "responseTime": "N/A"} for name in SERVICES},
    ),
]

ADMIN_ACTIONS = {
    "create_user": Endpoint("/api/admin/auth/create-user", "admin.users", RECORD, method="POST"),
    "update_user": Endpoint("/api/admin/auth/users/{target_id}", "admin.users", RECORD, method="PUT"),
    "delete_user": Endpoint("/api/admin/auth/users/{target_id}", "admin.users", RECORD, method="DELETE"),
    "create_course": Endpoint("/api/admin/courses", "admin.courses", RECORD, method="POST"),
}


def derive_admin(s: Mapping[str, Any]) -> dict[str, Any]:
    users = _frame(s.get("users"))
    summary = s.get("summary")
    health = s.get("health") if isinstance(s.get("health"), Mapping) else {}
    by_role = _breakdown(users, "role")
    return {
        "user_count": len(users),
        "users_by_role": by_role,
        "faculty_share_pct": _pct(_number(summary, "faculty"), _number(summary, "users")),
        "active_user_pct": _pct(_number(summary, "activeUsers"), _number(summary, "users")),
        "course_count": len(_frame(s.get("courses"))),
        "healthy_services": sum(
            1 for v in health.values() if isinstance(v, Mapping) and v.get("status") == "Healthy"
        ),
        "total_services": len(health),
        "breakdown": by_role,
    }


def admin_facade(user_id: str, refresh_interval_s: float = 0, only: Optional[Iterable[str]] = None) -> ServiceFacade:
    return ServiceFacade(
        role="admin",
        sections=_declare("admin", ADMIN_SECTIONS, user_id, only),
        entry_points={"profile": "profile", "entities": "users", "summary": "summary", "events": "metrics"},
        actions=_bind_actions(ADMIN_ACTIONS, user_id),
        derive=derive_admin,
        refresh_interval_s=refresh_interval_s,
    )


# --- faculty ------------------------------------------------------------------

FACULTY_SECTIONS = [
    ("profile", Endpoint("/api/faculty/{user_id}", "faculty.profile", RECORD), DEMO_FALLBACK),
    ("courses", Endpoint("/api/faculty/{user_id}/courses", "faculty.courses", LIST, envelope="courses"), []),
    ("students", Endpoint("/api/faculty/{user_id}/students", "faculty.students", LIST, envelope="students"), []),
    ("assignments", Endpoint("/api/faculty/{user_id}/assignments", "faculty.assignments", LIST, envelope="assignments"), []),
    ("quizzes", Endpoint("/api/faculty/{user_id}/quizzes", "faculty.quizzes", LIST, envelope="quizzes"), []),
    ("messages", Endpoint("/api/faculty/{user_id}/messages", "faculty.messages", LIST, envelope="messages"), []),
    (
        "summary",
        Endpoint("/api/faculty/{user_id}/dashboard", "faculty.summary", SUMMARY),
        {"studentCount": 0, "submissionsPending": 0, "activeQuizzes": 0, "recentMessages": []},
    ),
]

FACULTY_ACTIONS = {
    "create_assignment": Endpoint(
        "/api/faculty/{user_id}/courses/{course_id}/assignments", "faculty.assignments", RECORD, method="POST"
    ),
    "send_message": Endpoint("/api/faculty/{user_id}/messages", "faculty.messages", RECORD, method="POST"),
}


def derive_faculty(s: Mapping[str, Any]) -> dict[str, Any]:
    quizzes = _frame(s.get("quizzes"))
    messages = _frame(s.get("messages"))
    return {
        "student_count": len(_frame(s.get("students"))),
        "course_count": len(_frame(s.get("courses"))),
        "pending_submissions": _sum(_frame(s.get("assignments")), "pendingGrading"),
        "active_quizzes": _count(quizzes, "status", "active"),
        "unread_messages": _count(messages, "read", False),
        "breakdown": _breakdown(quizzes, "status"),
    }


def faculty_facade(user_id: str, refresh_interval_s: float = 0, only: Optional[Iterable[str]] = None) -> ServiceFacade:
    return ServiceFacade(
        role="faculty",
        sections=_declare("faculty", FACULTY_SECTIONS, user_id, only),
        entry_points={"profile": "profile", "entities": "students", "summary": "summary", "events": "messages"},
        actions=_bind_actions(FACULTY_ACTIONS, user_id),
        derive=derive_faculty,
        refresh_interval_s=refresh_interval_s,
    )


# --- parent -------------------------------------------------------------------

PARENT_SECTIONS = [
    ("profile", Endpoint("/api/parents/profile", "parent.profile", RECORD), DEMO_FALLBACK),
    ("children", Endpoint("/api/parents/children", "parent.children", LIST), []),
    ("grades", Endpoint("/api/parents/grades", "parent.grades", LIST), []),
    ("attendance", Endpoint("/api/parents/attendance", "parent.attendance", LIST), []),
    ("assignments", Endpoint("/api/parents/assignments", "parent.assignments", LIST), []),
    ("feedback", Endpoint("/api/parents/feedback", "parent.feedback", LIST), []),
    ("events", Endpoint("/api/parents/events", "parent.events", LIST), []),
    ("summary", Endpoint("/api/parents/dashboard-summary", "parent.summary", SUMMARY), DEMO_FALLBACK),
]

PARENT_ACTIONS = {
    "schedule_meeting": Endpoint("/api/parents/meetings", "parent.events", RECORD, method="POST"),
    "send_message": Endpoint("/api/parents/messages", "parent.feedback", RECORD, method="POST"),
}


def derive_parent(s: Mapping[str, Any], today: Optional[date] = None) -> dict[str, Any]:
    today = today or date.today()
    grades = _frame(s.get("grades"))
    events = _frame(s.get("events"))
    assignments = _frame(s.get("assignments"))
    return {
        "child_count": len(_frame(s.get("children"))),
        "average_grade_pct": _mean(grades, "percentage"),
        "average_attendance_pct": _mean(_frame(s.get("attendance")), "percentage"),
        "recent_grade_count": int((_dates(grades, "date") >= _utc(today - timedelta(days=7))).sum()),
        "upcoming_event_count": int((_dates(events, "date") >= _utc(today)).sum()),
        "pending_assignment_count": _count(assignments, "status", "pending"),
        "breakdown": _breakdown(grades, "studentName", "percentage"),
    }


def parent_facade(user_id: str, refresh_interval_s: float = 0, only: Optional[Iterable[str]] = None) -> ServiceFacade:
    return ServiceFacade(
        role="parent",
        sections=_declare("parent", PARENT_SECTIONS, user_id, only),
        entry_points={"profile": "profile", "entities": "children", "summary": "summary", "events": "events"},
        actions=_bind_actions(PARENT_ACTIONS, user_id),
        derive=derive_parent,
        refresh_interval_s=refresh_interval_s,
    )


# --- student ------------------------------------------------------------------

STUDENT_SECTIONS = [
    ("profile", Endpoint("/api/students/{user_id}", "student.profile", RECORD), DEMO_FALLBACK),
    ("courses", Endpoint("/api/students/{user_id}/courses", "student.courses", LIST, envelope="courses"), []),
    ("assignments", Endpoint("/api/students/{user_id}/assignments", "student.assignments", LIST, envelope="assignments"), []),
    ("grades", Endpoint("/api/students/{user_id}/grades", "student.grades", LIST, envelope="grades"), []),
    ("feedback", Endpoint("/api/students/{user_id}/feedback", "student.feedback", LIST, envelope="feedback"), []),
    ("quizzes", Endpoint("/api/students/{user_id}/quizzes", "student.quizzes", LIST, envelope="quizzes"), []),
    ("attendance", Endpoint("/api/students/{user_id}/attendance", "student.attendance", LIST, envelope="attendance"), []),
    (
        "summary",
        Endpoint("/api/students/{user_id}/dashboard", "student.summary", SUMMARY),
        {"overallGrade": "N/A", "pendingAssignments": 0, "courses": [], "recentFeedback": [], "upcomingQuizzes": []},
    ),
]

STUDENT_ACTIONS = {
    "submit_assignment": Endpoint(
        "/api/students/{user_id}/assignments/{assignment_id}/submit", "student.assignments", RECORD, method="POST"
    ),
    "submit_quiz": Endpoint(
        "/api/students/{user_id}/quizzes/{quiz_id}/submit", "student.quizzes", RECORD, method="POST"
    ),
}


def derive_student(s: Mapping[str, Any]) -> dict[str, Any]:
    grades = _frame(s.get("grades"))
    attendance = _frame(s.get("attendance"))
    return {
        "course_count": len(_frame(s.get("courses"))),
        "average_grade_pct": _mean(grades, "percentage"),
        "pending_assignments": _count(_frame(s.get("assignments")), "status", "pending"),
        "attendance_rate_pct": _pct(_sum(attendance, "attended"), _sum(attendance, "total")),
        "upcoming_quiz_count": len(_frame(s.get("quizzes"))),
        "breakdown": _breakdown(grades, "course", "percentage"),
    }


def student_facade(user_id: str, refresh_interval_s: float = 0, only: Optional[Iterable[str]] = None) -> ServiceFacade:
    return ServiceFacade(
        role="student",
        sections=_declare("student", STUDENT_SECTIONS, user_id, only),
        entry_points={"profile": "profile", "entities": "courses", "summary": "summary", "events": "feedback"},
        actions=_bind_actions(STUDENT_ACTIONS, user_id),
        derive=derive_student,
        refresh_interval_s=refresh_interval_s,
    )


FACADES = {
    "admin": admin_facade,
    "faculty": faculty_facade,
    "parent": parent_facade,
    "student": student_facade,
}


def get_facade(role: str, user_id: str, refresh_interval_s: float = 0) -> ServiceFacade:
    try:
        build = FACADES[role]
    except KeyError:
        raise ValueError(f"Unknown role: {role!r}") from None
    return build(user_id, refresh_interval_s=refresh_interval_s)


# --- entry points ---------------------------------------------------------------

class DashboardService:
    """What views call. Views never touch the RequestClient directly."""

    def __init__(self, orchestrator: AggregationOrchestrator, facade: ServiceFacade):
        self.orchestrator = orchestrator
        self.facade = facade

    @property
    def client(self) -> RequestClient:
        return self.orchestrator.client

    @property
    def demo_mode(self) -> bool:
        return self.client.demo_state.active

    async def dashboard(self) -> DashboardModel:
        return await self.orchestrator.load(self.facade)

    async def section(self, name: str) -> Any:
        return await self.orchestrator.load_section(self.facade, name)

    async def profile(self) -> Any:
        return await self.section(self.facade.entry_points["profile"])

    async def entities(self) -> Any:
        return await self.section(self.facade.entry_points["entities"])

    async def summary(self) -> Any:
        return await self.section(self.facade.entry_points["summary"])

    async def events(self) -> Any:
        return await self.section(self.facade.entry_points["events"])

    async def submit(self, action: str, body: Optional[dict[str, Any]] = None, **path_params: Any) -> Any:
        """Issue one of the role's writes. Failures raise RequestError."""
        try:
            endpoint = self.facade.actions[action]
        except KeyError:
            raise ValueError(f"{self.facade.role} has no action {action!r}") from None
        endpoint = endpoint.bind(**path_params)
        if not endpoint.is_bound:
            raise ValueError(f"Missing path parameters for {action}: {endpoint.path}")
        return await self.client.submit(endpoint, body)

    def controller(self, on_update: Optional[Callable[[DashboardModel], None]] = None) -> DashboardController:
        return DashboardController(self.orchestrator, self.facade, on_update=on_update)


def get_dashboard_service(
    cfg: AppConfig,
    credentials: CredentialStore,
    demo_state: DemoModeState,
    role: Optional[str] = None,
    user_id: Optional[str] = None,
    demo_data: Optional[DemoDataProvider] = None,
    transport: Optional[Transport] = None,
) -> DashboardService:
    role = role or cfg.role
    if user_id is None:
        user_id = cfg.user_id if role == cfg.role else DEMO_USER_IDS.get(role, cfg.user_id)
    client = get_request_client(cfg, credentials, demo_state, demo_data=demo_data, transport=transport)
    facade = get_facade(role, user_id, refresh_interval_s=cfg.auto_refresh_s)
    return DashboardService(AggregationOrchestrator(client), facade)


@dataclass
class DashboardSession:
    """Collaborators that live for one client session and are shared by every dashboard it opens."""

    cfg: AppConfig
    credentials: CredentialStore
    demo_state: DemoModeState
    demo_data: DemoDataProvider
    transport: Optional[Transport] = None

    @classmethod
    def start(
        cls,
        cfg: AppConfig,
        storage: Optional[SlotStorage] = None,
        transport: Optional[Transport] = None,
    ) -> "DashboardSession":
        return cls(
            cfg=cfg,
            credentials=CredentialStore(storage or FileSlot(cfg.credential_file)),
            demo_state=DemoModeState(active=cfg.starts_in_demo_mode),
            demo_data=DemoDataProvider(seed=cfg.demo_seed),
            transport=transport,
        )

    def service(self, role: Optional[str] = None, user_id: Optional[str] = None) -> DashboardService:
        return get_dashboard_service(
            self.cfg,
            self.credentials,
            self.demo_state,
            role=role,
            user_id=user_id,
            demo_data=self.demo_data,
            transport=self.transport,
        )

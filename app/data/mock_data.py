from __future__ import annotations

import copy
import itertools
import logging
import random
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Any, Callable, Optional

from faker import Faker

logger = logging.getLogger(__name__)


class PayloadShape(str, Enum):
    RECORD = "record"    # singleton entity (profile, health)
    LIST = "list"        # entity list / event feed
    SUMMARY = "summary"  # counters


def empty_payload(shape: PayloadShape) -> Any:
    return [] if shape == PayloadShape.LIST else {}


def matches_shape(payload: Any, shape: PayloadShape) -> bool:
    if shape == PayloadShape.LIST:
        return isinstance(payload, list)
    return isinstance(payload, dict)


DEPARTMENTS = ["Computer Science", "Mathematics", "Physics", "Chemistry"]
SUBJECTS = ["Mathematics", "Science", "English Literature", "History", "Geography", "Computer Science", "Art"]
SERVICES = ["database", "apiServices", "authServer", "storage", "mailService"]

# Headline campus counters; the synthetic lists below are sized to match.
ADMIN_SUMMARY = {
    "users": 156,
    "faculty": 23,
    "students": 125,
    "parents": 89,
    "courses": 15,
    "quizzes": 45,
    "activeUsers": 67,
    "systemLoad": 42,
}

DEMO_PROFILES = {
    "admin": {"id": "admin-demo-001", "name": "Krishna Admin", "email": "admin@gdg.school", "role": "admin"},
    "faculty": {"id": "faculty-demo-001", "name": "Dronacharya", "email": "faculty@gdg.school", "role": "faculty"},
    "parent": {"id": "parent-demo-001", "name": "Gandhari", "email": "parent@gdg.school", "role": "parent"},
    "student": {"id": "student-demo-001", "name": "Arjun", "email": "student@gdg.school", "role": "student"},
}


def letter_grade(pct: float) -> str:
    if pct >= 90:
        return "A"
    if pct >= 80:
        return "B"
    if pct >= 70:
        return "C"
    if pct >= 60:
        return "D"
    return "F"


class DemoDataProvider:
    """
    Synthetic stand-in for every dashboard endpoint.

    One provider builds one campus (seeded Faker + a private Random), lazily and
    once, so every payload handed out during a session is drawn from the same
    roster: a summary counter always agrees with the list it counts.
    Payloads are deep copies; callers may mutate them freely.
    """

    def __init__(self, seed: int = 7, today: Optional[date] = None):
        self.seed = seed
        self.today = today or date.today()
        self._campus: Optional[dict[str, Any]] = None
        self._ack_ids = itertools.count(1)

    # ---- public API --------------------------------------------------------

    def provide(self, category: str, shape: PayloadShape = PayloadShape.RECORD) -> Any:
        builder = self._builders().get(category)
        if builder is None:
            logger.debug("No demo data for %s; using empty %s", category, shape.value)
            return empty_payload(shape)
        payload = builder()
        if not matches_shape(payload, shape):
            logger.warning("Demo data for %s is not a %s; using empty value", category, shape.value)
            return empty_payload(shape)
        return copy.deepcopy(payload)

    def covers(self, category: str) -> bool:
        return category in self._builders()

    def acknowledge(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Synthetic acknowledgement for a write issued while in demo mode."""
        data = dict(body or {})
        data.setdefault("id", f"demo-{next(self._ack_ids)}")
        return {
            "success": True,
            "demo": True,
            "message": f"{method.upper()} {path} accepted (demo mode)",
            "data": data,
        }

    @property
    def campus(self) -> dict[str, Any]:
        if self._campus is None:
            self._campus = self._build_campus()
        return self._campus

    # ---- category table ----------------------------------------------------

    def _from_campus(self, key: str) -> Callable[[], Any]:
        return lambda: self.campus[key]

    def _builders(self) -> dict[str, Callable[[], Any]]:
        c = self._from_campus
        return {
            "admin.profile": lambda: self._profile("admin"),
            "admin.summary": lambda: dict(ADMIN_SUMMARY),
            "admin.users": c("users"),
            "admin.courses": c("courses"),
            "admin.metrics": self._realtime_metrics,
            "admin.health": c("health"),
            "faculty.profile": lambda: self._profile("faculty"),
            "faculty.courses": c("faculty_courses"),
            "faculty.students": c("faculty_students"),
            "faculty.assignments": c("faculty_assignments"),
            "faculty.quizzes": c("faculty_quizzes"),
            "faculty.messages": c("faculty_messages"),
            "faculty.summary": c("faculty_summary"),
            "parent.profile": lambda: self._profile("parent"),
            "parent.children": c("children"),
            "parent.grades": c("child_grades"),
            "parent.attendance": c("child_attendance"),
            "parent.assignments": c("child_assignments"),
            "parent.feedback": c("child_feedback"),
            "parent.events": c("events"),
            "parent.summary": c("parent_summary"),
            "student.profile": lambda: self._profile("student"),
            "student.courses": c("student_courses"),
            "student.assignments": c("student_assignments"),
            "student.grades": c("student_grades"),
            "student.feedback": c("student_feedback"),
            "student.quizzes": c("student_quizzes"),
            "student.attendance": c("student_attendance"),
            "student.summary": c("student_summary"),
        }

    # ---- builders ----------------------------------------------------------

    def _ts(self, days_ago: int = 0, hour: int = 9) -> str:
        return datetime.combine(self.today - timedelta(days=days_ago), time(hour)).isoformat()

    def _profile(self, role: str) -> dict[str, Any]:
        base = dict(DEMO_PROFILES[role])
        first, _, last = base["name"].partition(" ")
        base.update(
            {
                "firstName": first,
                "lastName": last,
                "joinedDate": "2023-09-01",
                "lastLogin": self._ts(0, 8),
            }
        )
        if role == "faculty":
            base["department"] = DEPARTMENTS[0]
        if role == "student":
            base["grade"] = "Grade 10"
        return base

    def _realtime_metrics(self) -> dict[str, Any]:
        # Varies per call like a live feed, but stays inside the headline counters.
        rng = random.Random(f"{self.seed}-metrics-{datetime.now().minute}")
        return {
            "activeUsers": ADMIN_SUMMARY["activeUsers"],
            "onlineStudents": rng.randint(15, 54),
            "onlineFaculty": rng.randint(5, 14),
            "systemLoad": ADMIN_SUMMARY["systemLoad"],
            "lastUpdated": datetime.now().strftime("%H:%M:%S"),
        }

    def _build_campus(self) -> dict[str, Any]:
        fake = Faker()
        fake.seed_instance(self.seed)
        rng = random.Random(self.seed)

        # --- directory ---
        faculty = [DEMO_PROFILES["faculty"] | {"department": DEPARTMENTS[0]}]
        for i in range(1, ADMIN_SUMMARY["faculty"]):
            faculty.append(
                {
                    "id": f"faculty_{i + 1}",
                    "name": fake.name(),
                    "email": f"faculty{i + 1}@gdg.school",
                    "role": "faculty",
                    "department": DEPARTMENTS[i % len(DEPARTMENTS)],
                }
            )
        students = [DEMO_PROFILES["student"] | {"grade": "Grade 10"}]
        for i in range(1, ADMIN_SUMMARY["students"]):
            students.append(
                {
                    "id": f"student_{i + 1}",
                    "name": fake.name(),
                    "email": f"student{i + 1}@gdg.school",
                    "role": "student",
                    "grade": f"Grade {rng.randint(6, 12)}",
                }
            )
        admins = [DEMO_PROFILES["admin"]]
        n_admins = ADMIN_SUMMARY["users"] - ADMIN_SUMMARY["faculty"] - ADMIN_SUMMARY["students"]
        for i in range(1, n_admins):
            admins.append({"id": f"admin_{i + 1}", "name": fake.name(), "email": f"admin{i + 1}@gdg.school", "role": "admin"})

        users = []
        for person in admins + faculty + students:
            first, _, last = person["name"].partition(" ")
            users.append(
                {
                    "id": person["id"],
                    "firstName": first,
                    "lastName": last,
                    "email": person["email"],
                    "role": person["role"],
                    "active": rng.random() > 0.1,
                    "createdAt": self._ts(rng.randint(30, 400)),
                }
            )

        # --- catalog ---
        courses = []
        for i in range(ADMIN_SUMMARY["courses"]):
            instructor = faculty[0] if i < 3 else faculty[i % len(faculty)]
            subject = SUBJECTS[i % len(SUBJECTS)]
            courses.append(
                {
                    "id": f"course_{i + 1}",
                    "name": f"{subject} {101 + i}",
                    "subject": subject,
                    "description": fake.sentence(nb_words=8),
                    "facultyId": instructor["id"],
                    "faculty": instructor["name"],
                    "department": instructor["department"],
                    "students": rng.randint(5, 34),
                }
            )
        quizzes = []
        for i in range(ADMIN_SUMMARY["quizzes"]):
            course = courses[i % len(courses)]
            quizzes.append(
                {
                    "id": f"quiz_{i + 1}",
                    "title": f"{course['subject']} Quiz {i // len(courses) + 1}",
                    "courseId": course["id"],
                    "course": course["name"],
                    "questions": rng.randint(5, 24),
                    "status": ["active", "pending", "completed"][i % 3],
                    "dueDate": (self.today + timedelta(days=(i % 10) - 3)).isoformat(),
                }
            )

        health = {
            "database": {"status": "Healthy", "responseTime": "45ms"},
            "apiServices": {"status": "Healthy", "responseTime": "12ms"},
            "authServer": {"status": "Healthy", "responseTime": "8ms"},
            "storage": {"status": "Healthy", "responseTime": "23ms"},
            "mailService": {"status": "Degraded", "responseTime": "156ms"},
        }

        campus = {
            "users": users,
            "courses": courses,
            "quizzes": quizzes,
            "health": health,
        }
        campus.update(self._faculty_view(fake, rng, courses, students, quizzes))
        campus.update(self._parent_view(fake, rng))
        campus.update(self._student_view(fake, rng, courses, quizzes))
        return campus

    def _faculty_view(self, fake, rng, courses, students, quizzes) -> dict[str, Any]:
        me = DEMO_PROFILES["faculty"]["id"]
        mine = [c for c in courses if c["facultyId"] == me]
        roster = []
        for i, s in enumerate(students[1:31]):
            course = mine[i % len(mine)]
            roster.append(
                {
                    "id": s["id"],
                    "name": s["name"],
                    "email": s["email"],
                    "courseId": course["id"],
                    "course": course["name"],
                    "averageScore": rng.randint(55, 99),
                }
            )
        assignments = []
        for i in range(6):
            course = mine[i % len(mine)]
            submitted = rng.randint(4, 10)
            assignments.append(
                {
                    "id": f"fa_{i + 1}",
                    "title": f"{course['subject']} Assignment {i + 1}",
                    "courseId": course["id"],
                    "course": course["name"],
                    "dueDate": (self.today + timedelta(days=i * 2 - 4)).isoformat(),
                    "submissions": submitted,
                    "pendingGrading": rng.randint(0, submitted),
                }
            )
        my_quizzes = [q for q in quizzes if q["courseId"] in {c["id"] for c in mine}]
        messages = []
        for i in range(7):
            messages.append(
                {
                    "id": f"message_{i + 1}",
                    "from": fake.name() if i % 2 == 0 else "You",
                    "message": fake.sentence(nb_words=10),
                    "timestamp": self._ts(i, 10 + i),
                    "read": i >= 3,
                }
            )
        summary = {
            "studentCount": len(roster),
            "submissionsPending": sum(a["pendingGrading"] for a in assignments),
            "activeQuizzes": sum(1 for q in my_quizzes if q["status"] == "active"),
            "recentMessages": messages[:3],
        }
        return {
            "faculty_courses": mine,
            "faculty_students": roster,
            "faculty_assignments": assignments,
            "faculty_quizzes": my_quizzes,
            "faculty_messages": messages,
            "faculty_summary": summary,
        }

    def _parent_view(self, fake, rng) -> dict[str, Any]:
        family = fake.last_name()
        children, grades, attendance, assignments, feedback = [], [], [], [], []
        for idx, (klass, n_subjects) in enumerate([("10", 5), ("8", 5)]):
            name = f"{fake.first_name()} {family}"
            subjects = SUBJECTS[idx:idx + n_subjects]
            child_grades = []
            for j, subject in enumerate(subjects):
                pct = rng.randint(72, 98)
                child_grades.append(
                    {
                        "id": len(grades) + len(child_grades) + 1,
                        "studentName": name,
                        "subject": subject,
                        "grade": letter_grade(pct),
                        "percentage": pct,
                        "date": self._ts(j * 3 + idx),
                        "teacher": fake.name(),
                        "assignment": f"{subject} Test",
                    }
                )
            total_days = 60
            present = rng.randint(54, 59)
            att = {
                "studentName": name,
                "totalDays": total_days,
                "present": present,
                "absent": total_days - present,
                "percentage": round(present / total_days * 100, 1),
            }
            avg = round(sum(g["percentage"] for g in child_grades) / len(child_grades), 1)
            children.append(
                {
                    "id": idx + 1,
                    "name": name,
                    "studentId": f"STU{idx + 1:03d}",
                    "class": klass,
                    "section": "AB"[idx],
                    "subjects": subjects,
                    "avgGrade": avg,
                    "attendance": att["percentage"],
                }
            )
            grades.extend(child_grades)
            attendance.append(att)
            for j in range(3):
                assignments.append(
                    {
                        "id": len(assignments) + 1,
                        "studentName": name,
                        "subject": subjects[j],
                        "title": f"{subjects[j]} Homework {j + 1}",
                        "dueDate": (self.today + timedelta(days=j * 3 - 2)).isoformat(),
                        "status": ["pending", "submitted", "graded"][(j + idx) % 3],
                    }
                )
            for j in range(2):
                feedback.append(
                    {
                        "id": len(feedback) + 1,
                        "studentName": name,
                        "subject": subjects[j],
                        "teacher": fake.name(),
                        "feedback": fake.sentence(nb_words=12),
                        "date": self._ts(j * 5 + 1),
                    }
                )
        events = []
        for i, (kind, title) in enumerate(
            [("meeting", "Parent-Teacher Conference"), ("event", "Science Fair"),
             ("meeting", "Progress Review"), ("event", "Sports Day")]
        ):
            events.append(
                {
                    "id": i + 1,
                    "type": kind,
                    "title": title,
                    "date": (self.today + timedelta(days=3 + i * 4)).isoformat(),
                    "location": fake.city(),
                }
            )
        recent_cutoff = datetime.combine(self.today - timedelta(days=7), time(0))
        summary = {
            "totalChildren": len(children),
            "totalCourses": sum(len(ch["subjects"]) for ch in children),
            "recentGrades": sum(1 for g in grades if datetime.fromisoformat(g["date"]) >= recent_cutoff),
            "pendingMeetings": sum(1 for e in events if e["type"] == "meeting"),
            "avgAttendance": round(sum(ch["attendance"] for ch in children) / len(children), 1),
            "avgGrade": round(sum(ch["avgGrade"] for ch in children) / len(children), 1),
        }
        return {
            "children": children,
            "child_grades": grades,
            "child_attendance": attendance,
            "child_assignments": assignments,
            "child_feedback": feedback,
            "events": events,
            "parent_summary": summary,
        }

    def _student_view(self, fake, rng, courses, quizzes) -> dict[str, Any]:
        mine = courses[:5]
        grades, attendance = [], []
        for i, course in enumerate(mine):
            for j in range(2):
                pct = rng.randint(65, 99)
                grades.append(
                    {
                        "id": f"sg_{len(grades) + 1}",
                        "courseId": course["id"],
                        "course": course["name"],
                        "assignment": f"{course['subject']} Task {j + 1}",
                        "percentage": pct,
                        "grade": letter_grade(pct),
                        "date": self._ts(i * 2 + j * 6),
                    }
                )
            total = 30
            attended = rng.randint(24, 30)
            attendance.append(
                {
                    "courseId": course["id"],
                    "course": course["name"],
                    "attended": attended,
                    "total": total,
                    "percentage": round(attended / total * 100, 1),
                }
            )
        assignments = []
        for i in range(6):
            course = mine[i % len(mine)]
            assignments.append(
                {
                    "id": f"sa_{i + 1}",
                    "courseId": course["id"],
                    "course": course["name"],
                    "title": f"{course['subject']} Project {i + 1}",
                    "dueDate": (self.today + timedelta(days=i * 2 - 3)).isoformat(),
                    "status": ["pending", "submitted", "graded"][i % 3],
                }
            )
        feedback = []
        for i in range(4):
            course = mine[i]
            feedback.append(
                {
                    "id": f"sf_{i + 1}",
                    "course": course["name"],
                    "teacherName": course["faculty"],
                    "feedback": fake.sentence(nb_words=12),
                    "date": self._ts(i * 2 + 1),
                }
            )
        course_ids = {c["id"] for c in mine}
        upcoming = [
            q for q in quizzes
            if q["courseId"] in course_ids and q["status"] != "completed" and q["dueDate"] >= self.today.isoformat()
        ]
        overall = sum(g["percentage"] for g in grades) / len(grades)
        summary = {
            "overallGrade": letter_grade(overall),
            "pendingAssignments": sum(1 for a in assignments if a["status"] == "pending"),
            "courses": [c["name"] for c in mine],
            "recentFeedback": feedback[:3],
            "upcomingQuizzes": upcoming,
        }
        return {
            "student_courses": mine,
            "student_assignments": assignments,
            "student_grades": grades,
            "student_feedback": feedback,
            "student_quizzes": upcoming,
            "student_attendance": attendance,
            "student_summary": summary,
        }

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.archope.audit import record_event
from app.archope.constants import (
    INCOME_OPTIONS,
    STATUS_APPROVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    VALID_STATUSES,
)
from app.archope.modules.notifications.service import notify_student
from app.archope.utils import clean, is_valid_email, is_valid_phone

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.archope.models import User
    from app.archope.modules.progress.models import StudentProgress
    from app.archope.modules.students.models import Student

logger = logging.getLogger(__name__)

# Status changes that send an email of the same name
NOTIFYING_STATUSES = (STATUS_APPROVED, STATUS_REJECTED)

EXPORT_HEADER = ["Full name", "Email", "Phone", "Goal", "Income", "Status", "Registered"]


def validate_registration_payload(payload: dict) -> list[str]:
    """Validate the public registration form. Errors come back in field order."""
    errors = []
    name = clean(payload.get("full_name"))
    if len(name) < 2:
        errors.append("Full name must be at least 2 characters.")
    elif len(name) > 100:
        errors.append("Full name must be at most 100 characters.")

    if not is_valid_phone(payload.get("phone")):
        errors.append("Phone number must have 10-11 digits.")

    email = clean(payload.get("email"))
    if len(email) > 255:
        errors.append("Email is too long.")
    elif not is_valid_email(email):
        errors.append("Email is invalid.")

    goal = clean(payload.get("goal"))
    if len(goal) < 10:
        errors.append("Goal must be at least 10 characters.")
    elif len(goal) > 500:
        errors.append("Goal must be at most 500 characters.")

    if clean(payload.get("income")) not in INCOME_OPTIONS:
        errors.append("Please choose an income level.")
    return errors


def register_student(s: "Session", payload: dict, *, auto_approve: bool = False) -> "Student":
    from app.archope.modules.students.models import Student

    now = datetime.utcnow()
    student = Student(
        full_name=clean(payload.get("full_name")),
        phone=clean(payload.get("phone")),
        email=clean(payload.get("email")).lower(),
        goal=clean(payload.get("goal")),
        income=clean(payload.get("income")),
        status=STATUS_APPROVED if auto_approve else STATUS_PENDING,
        created_at=now,
        updated_at=now,
    )
    s.add(student)
    s.flush()

    record_event(
        s,
        actor=None,
        action="student.register",
        entity_type="Student",
        entity_id=str(student.id),
        metadata={"income": student.income, "status": student.status},
    )
    return student


def change_student_status(
    s: "Session",
    student: "Student",
    status: str,
    user: "User",
    *,
    app_config: dict,
    notify: bool = True,
) -> bool:
    """
    Set a student's status. Returns False when nothing changed.
    The approved/rejected email is sent after the update; its outcome never undoes the change.
    """
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    if student.status == status:
        return False

    old_status = student.status
    student.status = status
    student.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="student.status_change",
        entity_type="Student",
        entity_id=str(student.id),
        metadata={"old": old_status, "new": status},
    )

    if notify and status in NOTIFYING_STATUSES:
        notify_student(s, student, status, app_config)
    return True


def bulk_change_status(
    s: "Session",
    student_ids: list[int],
    status: str,
    user: "User",
    *,
    app_config: dict,
    notify: bool = True,
) -> int:
    """Apply one status to many students; a failed email for one student does not stop the others."""
    from app.archope.modules.students.models import Student

    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    if not student_ids:
        return 0

    students = s.query(Student).filter(Student.id.in_(student_ids)).all()
    changed = 0
    for student in students:
        if change_student_status(s, student, status, user, app_config=app_config, notify=notify):
            changed += 1
    return changed


def query_students(s: "Session", *, search: str = "", status: str = "") -> "Query":
    from app.archope.modules.students.models import Student

    q = s.query(Student)
    if search:
        like = f"%{search}%"
        q = q.filter(
            (Student.full_name.ilike(like))
            | (Student.email.ilike(like))
            | (Student.phone.ilike(like))
        )
    if status:
        q = q.filter(Student.status == status)
    return q.order_by(Student.created_at.desc(), Student.id.desc())


def find_student_by_email(s: "Session", email: str) -> "Student | None":
    """Portal lookup. Emails are not unique, so the latest registration wins."""
    from app.archope.modules.students.models import Student

    email = clean(email).lower()
    if not email:
        return None
    return (
        s.query(Student)
        .filter(Student.email == email)
        .order_by(Student.created_at.desc(), Student.id.desc())
        .first()
    )


def average_progress(progress: list["StudentProgress"]) -> int:
    if not progress:
        return 0
    total = sum(p.progress_percent or 0 for p in progress)
    return round(total / len(progress))


def export_rows(students: list["Student"]) -> list[list[Any]]:
    return [
        [
            st.full_name,
            st.email,
            st.phone,
            st.goal,
            INCOME_OPTIONS.get(st.income, st.income),
            st.status,
            st.created_at.date().isoformat() if st.created_at else "",
        ]
        for st in students
    ]

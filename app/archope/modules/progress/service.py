from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.archope.audit import record_event
from app.archope.constants import PROGRAM_MODULES, STATUS_APPROVED
from app.archope.utils import clean, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.archope.models import User
    from app.archope.modules.progress.models import StudentProgress


def validate_progress_payload(s: "Session", payload: dict) -> list[str]:
    from app.archope.modules.students.models import Student

    errors = []
    student_id = parse_int(payload.get("student_id"))
    student = s.get(Student, student_id) if student_id is not None else None
    if student is None:
        errors.append("Student is required.")
    elif student.status != STATUS_APPROVED:
        errors.append("Progress can only be tracked for approved students.")

    if clean(payload.get("module_name")) not in PROGRAM_MODULES:
        errors.append("Please choose a program module.")

    percent = parse_int(payload.get("progress_percent"))
    if percent is None or not 0 <= percent <= 100:
        errors.append("Progress must be a whole number between 0 and 100.")
    return errors


def _apply(item: "StudentProgress", payload: dict, now: datetime) -> None:
    item.student_id = parse_int(payload.get("student_id"))  # type: ignore[assignment]
    item.module_name = clean(payload.get("module_name"))
    item.progress_percent = parse_int(payload.get("progress_percent"), 0) or 0
    item.notes = clean(payload.get("notes")) or None
    # Completion tracks the percentage: reaching 100 stamps it, dropping below clears it.
    if item.progress_percent == 100:
        item.completed_at = item.completed_at or now
    else:
        item.completed_at = None
    item.updated_at = now


def create_progress(s: "Session", payload: dict, user: "User") -> "StudentProgress":
    from app.archope.modules.progress.models import StudentProgress

    now = datetime.utcnow()
    item = StudentProgress(created_at=now)
    _apply(item, payload, now)
    s.add(item)
    s.flush()
    record_event(
        s,
        actor=user,
        action="progress.create",
        entity_type="StudentProgress",
        entity_id=str(item.id),
        metadata={"student_id": item.student_id, "module": item.module_name, "percent": item.progress_percent},
    )
    return item


def update_progress(s: "Session", item: "StudentProgress", payload: dict, user: "User") -> "StudentProgress":
    old = {"module": item.module_name, "percent": item.progress_percent}
    _apply(item, payload, datetime.utcnow())
    record_event(
        s,
        actor=user,
        action="progress.edit",
        entity_type="StudentProgress",
        entity_id=str(item.id),
        metadata={"old": old, "new": {"module": item.module_name, "percent": item.progress_percent}},
    )
    return item


def delete_progress(s: "Session", item: "StudentProgress", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="progress.delete",
        entity_type="StudentProgress",
        entity_id=str(item.id),
        metadata={"student_id": item.student_id, "module": item.module_name},
    )
    s.delete(item)

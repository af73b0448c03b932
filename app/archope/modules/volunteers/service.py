from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.archope.audit import record_event
from app.archope.constants import STATUS_PENDING, VALID_STATUSES, VOLUNTEER_AVAILABILITY, VOLUNTEER_SKILLS
from app.archope.utils import clean, is_valid_email, is_valid_phone

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.archope.models import User
    from app.archope.modules.volunteers.models import Volunteer

EXPORT_HEADER = ["Full name", "Email", "Phone", "Skills", "Availability", "Motivation", "Status", "Registered"]


def _skills(payload: dict) -> list[str]:
    raw = payload.get("skills") or []
    if isinstance(raw, str):
        raw = [raw]
    out: list[str] = []
    for v in raw:
        v = clean(v)
        if v and v not in out:
            out.append(v)
    return out


def validate_volunteer_payload(payload: dict) -> list[str]:
    errors = []
    name = clean(payload.get("full_name"))
    if len(name) < 2:
        errors.append("Full name must be at least 2 characters.")
    elif len(name) > 100:
        errors.append("Full name must be at most 100 characters.")

    if not is_valid_email(payload.get("email")):
        errors.append("Email is invalid.")

    if not is_valid_phone(payload.get("phone")):
        errors.append("Phone number must have 10-11 digits.")

    skills = _skills(payload)
    if not skills:
        errors.append("Please choose at least one skill.")
    elif any(sk not in VOLUNTEER_SKILLS for sk in skills):
        errors.append("Unknown skill selected.")

    if clean(payload.get("availability")) not in VOLUNTEER_AVAILABILITY:
        errors.append("Please choose your availability.")

    motivation = clean(payload.get("motivation"))
    if len(motivation) < 20:
        errors.append("Motivation must be at least 20 characters.")
    elif len(motivation) > 1000:
        errors.append("Motivation must be at most 1000 characters.")
    return errors


def register_volunteer(s: "Session", payload: dict) -> "Volunteer":
    from app.archope.modules.volunteers.models import Volunteer

    now = datetime.utcnow()
    volunteer = Volunteer(
        full_name=clean(payload.get("full_name")),
        email=clean(payload.get("email")).lower(),
        phone=clean(payload.get("phone")),
        skills=_skills(payload),
        availability=clean(payload.get("availability")),
        motivation=clean(payload.get("motivation")),
        status=STATUS_PENDING,
        created_at=now,
        updated_at=now,
    )
    s.add(volunteer)
    s.flush()
    record_event(
        s,
        actor=None,
        action="volunteer.register",
        entity_type="Volunteer",
        entity_id=str(volunteer.id),
        metadata={"skills": volunteer.skills, "availability": volunteer.availability},
    )
    return volunteer


def change_volunteer_status(s: "Session", volunteer: "Volunteer", status: str, user: "User") -> bool:
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid status: {status}")
    if volunteer.status == status:
        return False
    old_status = volunteer.status
    volunteer.status = status
    volunteer.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="volunteer.status_change",
        entity_type="Volunteer",
        entity_id=str(volunteer.id),
        metadata={"old": old_status, "new": status},
    )
    return True


def query_volunteers(s: "Session", *, status: str = "") -> "Query":
    from app.archope.modules.volunteers.models import Volunteer

    q = s.query(Volunteer)
    if status:
        q = q.filter(Volunteer.status == status)
    return q.order_by(Volunteer.created_at.desc(), Volunteer.id.desc())


def skill_labels(skills: list[str] | None) -> str:
    return ", ".join(VOLUNTEER_SKILLS.get(sk, sk) for sk in (skills or []))


def export_rows(volunteers: list["Volunteer"]) -> list[list[Any]]:
    return [
        [
            v.full_name,
            v.email,
            v.phone,
            skill_labels(v.skills),
            VOLUNTEER_AVAILABILITY.get(v.availability or "", v.availability),
            v.motivation,
            v.status,
            v.created_at.date().isoformat() if v.created_at else "",
        ]
        for v in volunteers
    ]

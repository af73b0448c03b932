from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.archope.audit import record_event
from app.archope.utils import clean, parse_bool, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.archope.models import User
    from app.archope.modules.testimonials.models import Testimonial


def validate_testimonial_payload(payload: dict) -> list[str]:
    errors = []
    if not clean(payload.get("student_name")):
        errors.append("Student name is required.")
    if not clean(payload.get("student_story")):
        errors.append("Story is required.")
    year_raw = clean(payload.get("year_graduated"))
    if year_raw:
        year = parse_int(year_raw)
        if year is None or not 1900 <= year <= 2100:
            errors.append("Graduation year must be a valid year.")
    if clean(payload.get("display_order")) and parse_int(payload.get("display_order")) is None:
        errors.append("Display order must be a whole number.")
    return errors


def _apply(t: "Testimonial", payload: dict) -> None:
    t.student_name = clean(payload.get("student_name"))
    t.student_story = clean(payload.get("student_story"))
    t.old_job = clean(payload.get("old_job")) or None
    t.new_job = clean(payload.get("new_job")) or None
    t.old_salary = clean(payload.get("old_salary")) or None
    t.new_salary = clean(payload.get("new_salary")) or None
    t.avatar_url = clean(payload.get("avatar_url")) or None
    t.year_graduated = parse_int(payload.get("year_graduated"))
    t.is_featured = parse_bool(payload.get("is_featured"))
    t.display_order = parse_int(payload.get("display_order"), 0) or 0


def create_testimonial(s: "Session", payload: dict, user: "User") -> "Testimonial":
    from app.archope.modules.testimonials.models import Testimonial

    now = datetime.utcnow()
    t = Testimonial(created_at=now, updated_at=now)
    _apply(t, payload)
    s.add(t)
    s.flush()
    record_event(
        s,
        actor=user,
        action="testimonial.create",
        entity_type="Testimonial",
        entity_id=str(t.id),
        metadata={"student_name": t.student_name, "is_featured": t.is_featured},
    )
    return t


def update_testimonial(s: "Session", t: "Testimonial", payload: dict, user: "User") -> "Testimonial":
    _apply(t, payload)
    t.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="testimonial.edit",
        entity_type="Testimonial",
        entity_id=str(t.id),
        metadata={"student_name": t.student_name, "is_featured": t.is_featured},
    )
    return t


def delete_testimonial(s: "Session", t: "Testimonial", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="testimonial.delete",
        entity_type="Testimonial",
        entity_id=str(t.id),
        metadata={"student_name": t.student_name},
    )
    s.delete(t)


def featured_testimonials(s: "Session") -> list["Testimonial"]:
    from app.archope.modules.testimonials.models import Testimonial

    return (
        s.query(Testimonial)
        .filter(Testimonial.is_featured.is_(True))
        .order_by(Testimonial.display_order.asc(), Testimonial.id.asc())
        .all()
    )

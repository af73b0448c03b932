from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, url_for

from app.archope.constants import VOLUNTEER_AVAILABILITY, VOLUNTEER_SKILLS
from app.archope.db import db_session
from app.archope.modules.volunteers.service import register_volunteer, validate_volunteer_payload

bp = Blueprint("volunteers_public", __name__)


@bp.get("/volunteer")
def volunteer_get():
    return render_template(
        "public/volunteer.html",
        skills=VOLUNTEER_SKILLS,
        availability_options=VOLUNTEER_AVAILABILITY,
    )


@bp.post("/volunteer")
def volunteer_post():
    payload = {
        "full_name": request.form.get("full_name"),
        "email": request.form.get("email"),
        "phone": request.form.get("phone"),
        "skills": request.form.getlist("skills"),
        "availability": request.form.get("availability"),
        "motivation": request.form.get("motivation"),
    }
    errors = validate_volunteer_payload(payload)
    if errors:
        flash(errors[0], "danger")
        return render_template(
            "public/volunteer.html",
            skills=VOLUNTEER_SKILLS,
            availability_options=VOLUNTEER_AVAILABILITY,
            form=payload,
        ), 400

    s = db_session()
    register_volunteer(s, payload)
    s.commit()
    flash("Thank you for signing up! We will contact you soon.", "success")
    return redirect(url_for("volunteers_public.volunteer_get"))

from __future__ import annotations

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from app.archope.constants import STATUS_LABELS
from app.archope.db import db_session
from app.archope.modules.notifications.service import notify_student
from app.archope.modules.site_settings.service import load_site_settings
from app.archope.modules.students.service import (
    average_progress,
    find_student_by_email,
    register_student,
    validate_registration_payload,
)
from app.archope.utils import is_valid_email

bp = Blueprint("students_public", __name__)


@bp.post("/register")
def register_post():
    s = db_session()
    payload = {
        "full_name": request.form.get("full_name"),
        "phone": request.form.get("phone"),
        "email": request.form.get("email"),
        "goal": request.form.get("goal"),
        "income": request.form.get("income"),
    }

    errors = validate_registration_payload(payload)
    if errors:
        # Show the first problem only, like the rest of the public forms.
        flash(errors[0], "danger")
        return redirect(url_for("routes.index", _anchor="register"))

    settings = load_site_settings(s)
    student = register_student(s, payload, auto_approve=settings.enable_auto_approve)
    if settings.enable_notifications:
        notify_student(s, student, "welcome", current_app.config)
    s.commit()

    flash("Thank you! We will contact you as soon as possible.", "success")
    return redirect(url_for("routes.index", _anchor="register"))


@bp.route("/portal", methods=["GET", "POST"])
def portal():
    email = (request.values.get("email") or "").strip()
    student = None
    progress = []
    searched = bool(email)

    if searched:
        if not is_valid_email(email):
            flash("Email is invalid.", "danger")
        else:
            s = db_session()
            student = find_student_by_email(s, email)
            if student is None:
                flash("No student found with this email.", "danger")
            else:
                progress = list(student.progress)

    return render_template(
        "public/portal.html",
        email=email,
        searched=searched,
        student=student,
        progress=progress,
        total_progress=average_progress(progress),
        status_labels=STATUS_LABELS,
    )

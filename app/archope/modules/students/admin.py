from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.archope.constants import INCOME_OPTIONS, STATUS_LABELS, VALID_STATUSES
from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.site_settings.service import load_site_settings
from app.archope.modules.students.models import Student
from app.archope.modules.students.service import (
    EXPORT_HEADER,
    bulk_change_status,
    change_student_status,
    export_rows,
    query_students,
)
from app.archope.rbac import require_permission
from app.archope.utils import csv_response, paginate, parse_id_list, parse_int, safe_next

bp = Blueprint("students", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _filters() -> tuple[str, str]:
    return (request.args.get("q") or "").strip(), (request.args.get("status") or "").strip()


# ---------- List ----------
@bp.get("/students")
@require_permission("students.view")
def students_list():
    s = db_session()
    search, status_filter = _filters()
    q = query_students(s, search=search, status=status_filter)
    page = paginate(q, parse_int(request.args.get("page"), 1) or 1)
    filters_for_urls = {k: v for k, v in {"q": search, "status": status_filter}.items() if v}
    return render_template(
        "admin/students/list.html",
        page=page,
        search=search,
        status_filter=status_filter,
        statuses=VALID_STATUSES,
        status_labels=STATUS_LABELS,
        income_labels=INCOME_OPTIONS,
        export_url=url_for("students.students_export", **filters_for_urls),
        prev_url=url_for("students.students_list", page=page["page"] - 1, **filters_for_urls) if page["has_prev"] else None,
        next_url=url_for("students.students_list", page=page["page"] + 1, **filters_for_urls) if page["has_next"] else None,
    )


# ---------- Detail ----------
@bp.get("/students/<int:student_id>")
@require_permission("students.view")
def student_detail(student_id: int):
    s = db_session()
    student = s.get(Student, student_id)
    if not student:
        abort(404)
    return render_template(
        "admin/students/detail.html",
        student=student,
        status_labels=STATUS_LABELS,
        income_labels=INCOME_OPTIONS,
    )


# ---------- Status ----------
@bp.post("/students/<int:student_id>/status")
@require_permission("students.edit")
def student_status_post(student_id: int):
    s = db_session()
    u = _current_user()
    student = s.get(Student, student_id)
    if not student:
        abort(404)

    status = (request.form.get("status") or "").strip()
    if status not in VALID_STATUSES:
        flash("Invalid status.", "danger")
        return redirect(url_for("students.students_list"))

    notify = load_site_settings(s).enable_notifications
    changed = change_student_status(s, student, status, u, app_config=current_app.config, notify=notify)
    s.commit()

    if changed:
        flash(f"{student.full_name} marked {STATUS_LABELS[status].lower()}.", "success")
    else:
        flash("Status unchanged.", "info")
    return redirect(safe_next(request.form.get("next"), url_for("students.students_list")))


@bp.post("/students/bulk-status")
@require_permission("students.edit")
def students_bulk_status_post():
    s = db_session()
    u = _current_user()

    ids = parse_id_list(request.form.getlist("student_ids"))
    if not ids:
        flash("Select at least one student.", "danger")
        return redirect(url_for("students.students_list"))

    status = (request.form.get("status") or "").strip()
    if status not in VALID_STATUSES:
        flash("Invalid status.", "danger")
        return redirect(url_for("students.students_list"))

    notify = load_site_settings(s).enable_notifications
    changed = bulk_change_status(s, ids, status, u, app_config=current_app.config, notify=notify)
    s.commit()

    flash(f"{changed} student(s) marked {STATUS_LABELS[status].lower()}.", "success")
    return redirect(url_for("students.students_list"))


# ---------- Export ----------
@bp.get("/students/export")
@require_permission("students.export")
def students_export():
    s = db_session()
    search, status_filter = _filters()
    students = query_students(s, search=search, status=status_filter).all()
    return csv_response("students", EXPORT_HEADER, export_rows(students))

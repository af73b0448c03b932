from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.archope.constants import PROGRAM_MODULES, STATUS_APPROVED
from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.progress.models import StudentProgress
from app.archope.modules.progress.service import (
    create_progress,
    delete_progress,
    update_progress,
    validate_progress_payload,
)
from app.archope.modules.students.models import Student
from app.archope.rbac import require_permission

bp = Blueprint("progress", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _payload() -> dict:
    return {
        "student_id": request.form.get("student_id"),
        "module_name": request.form.get("module_name"),
        "progress_percent": request.form.get("progress_percent"),
        "notes": request.form.get("notes"),
    }


def _approved_students(s):
    return s.query(Student).filter(Student.status == STATUS_APPROVED).order_by(Student.full_name.asc()).all()


@bp.get("/progress")
@require_permission("progress.view")
def progress_list():
    s = db_session()
    student_filter = request.args.get("student_id", type=int)
    q = s.query(StudentProgress)
    if student_filter:
        q = q.filter(StudentProgress.student_id == student_filter)
    items = q.order_by(StudentProgress.created_at.desc(), StudentProgress.id.desc()).all()
    return render_template(
        "admin/progress/list.html",
        items=items,
        students=_approved_students(s),
        student_filter=student_filter,
    )


@bp.get("/progress/new")
@require_permission("progress.edit")
def progress_new_get():
    s = db_session()
    return render_template("admin/progress/edit.html", item=None, students=_approved_students(s), modules=PROGRAM_MODULES)


@bp.post("/progress/new")
@require_permission("progress.edit")
def progress_new_post():
    s = db_session()
    u = _current_user()
    payload = _payload()
    errors = validate_progress_payload(s, payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("progress.progress_new_get"))

    create_progress(s, payload, u)
    s.commit()
    flash("Progress added.", "success")
    return redirect(url_for("progress.progress_list"))


@bp.get("/progress/<int:item_id>/edit")
@require_permission("progress.edit")
def progress_edit_get(item_id: int):
    s = db_session()
    item = s.get(StudentProgress, item_id)
    if not item:
        abort(404)
    return render_template("admin/progress/edit.html", item=item, students=_approved_students(s), modules=PROGRAM_MODULES)


@bp.post("/progress/<int:item_id>/edit")
@require_permission("progress.edit")
def progress_edit_post(item_id: int):
    s = db_session()
    u = _current_user()
    item = s.get(StudentProgress, item_id)
    if not item:
        abort(404)

    payload = _payload()
    errors = validate_progress_payload(s, payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("progress.progress_edit_get", item_id=item_id))

    update_progress(s, item, payload, u)
    s.commit()
    flash("Progress updated.", "success")
    return redirect(url_for("progress.progress_list"))


@bp.post("/progress/<int:item_id>/delete")
@require_permission("progress.edit")
def progress_delete(item_id: int):
    s = db_session()
    u = _current_user()
    item = s.get(StudentProgress, item_id)
    if not item:
        abort(404)
    delete_progress(s, item, u)
    s.commit()
    flash("Progress deleted.", "success")
    return redirect(url_for("progress.progress_list"))

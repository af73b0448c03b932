from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.archope.constants import STATUS_LABELS, VALID_STATUSES, VOLUNTEER_AVAILABILITY
from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.volunteers.models import Volunteer
from app.archope.modules.volunteers.service import (
    EXPORT_HEADER,
    change_volunteer_status,
    export_rows,
    query_volunteers,
    skill_labels,
)
from app.archope.rbac import require_permission
from app.archope.utils import csv_response, paginate, parse_int

bp = Blueprint("volunteers", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/volunteers")
@require_permission("volunteers.view")
def volunteers_list():
    s = db_session()
    status_filter = (request.args.get("status") or "").strip()
    page = paginate(query_volunteers(s, status=status_filter), parse_int(request.args.get("page"), 1) or 1)
    return render_template(
        "admin/volunteers/list.html",
        page=page,
        status_filter=status_filter,
        statuses=VALID_STATUSES,
        status_labels=STATUS_LABELS,
        availability_labels=VOLUNTEER_AVAILABILITY,
        skill_labels=skill_labels,
    )


@bp.post("/volunteers/<int:volunteer_id>/status")
@require_permission("volunteers.edit")
def volunteer_status_post(volunteer_id: int):
    s = db_session()
    u = _current_user()
    volunteer = s.get(Volunteer, volunteer_id)
    if not volunteer:
        abort(404)

    status = (request.form.get("status") or "").strip()
    if status not in VALID_STATUSES:
        flash("Invalid status.", "danger")
        return redirect(url_for("volunteers.volunteers_list"))

    if change_volunteer_status(s, volunteer, status, u):
        s.commit()
        flash(f"{volunteer.full_name} marked {STATUS_LABELS[status].lower()}.", "success")
    else:
        flash("Status unchanged.", "info")
    return redirect(url_for("volunteers.volunteers_list", status=request.form.get("status_filter") or None))


@bp.get("/volunteers/export")
@require_permission("volunteers.export")
def volunteers_export():
    s = db_session()
    status_filter = (request.args.get("status") or "").strip()
    return csv_response("volunteers", EXPORT_HEADER, export_rows(query_volunteers(s, status=status_filter).all()))

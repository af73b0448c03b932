from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.media.service import MediaError, image_url_from_form
from app.archope.modules.testimonials.models import Testimonial
from app.archope.modules.testimonials.service import (
    create_testimonial,
    delete_testimonial,
    update_testimonial,
    validate_testimonial_payload,
)
from app.archope.rbac import require_permission
from app.archope.storage import get_storage

bp = Blueprint("testimonials", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _payload() -> dict:
    avatar_url = image_url_from_form(
        get_storage(),
        request.files.get("avatar_file"),
        request.form.get("avatar_url"),
        folder="testimonials",
    )
    return {
        "student_name": request.form.get("student_name"),
        "student_story": request.form.get("student_story"),
        "old_job": request.form.get("old_job"),
        "new_job": request.form.get("new_job"),
        "old_salary": request.form.get("old_salary"),
        "new_salary": request.form.get("new_salary"),
        "avatar_url": avatar_url,
        "year_graduated": request.form.get("year_graduated"),
        "is_featured": request.form.get("is_featured"),
        "display_order": request.form.get("display_order"),
    }


@bp.get("/testimonials")
@require_permission("testimonials.view")
def testimonials_list():
    s = db_session()
    items = s.query(Testimonial).order_by(Testimonial.display_order.asc(), Testimonial.id.asc()).all()
    return render_template("admin/testimonials/list.html", items=items)


@bp.get("/testimonials/new")
@require_permission("testimonials.edit")
def testimonial_new_get():
    return render_template("admin/testimonials/edit.html", item=None)


@bp.post("/testimonials/new")
@require_permission("testimonials.edit")
def testimonial_new_post():
    s = db_session()
    u = _current_user()
    try:
        payload = _payload()
    except MediaError as e:
        flash(str(e), "danger")
        return redirect(url_for("testimonials.testimonial_new_get"))

    errors = validate_testimonial_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("testimonials.testimonial_new_get"))

    create_testimonial(s, payload, u)
    s.commit()
    flash("Testimonial added.", "success")
    return redirect(url_for("testimonials.testimonials_list"))


@bp.get("/testimonials/<int:item_id>/edit")
@require_permission("testimonials.edit")
def testimonial_edit_get(item_id: int):
    s = db_session()
    item = s.get(Testimonial, item_id)
    if not item:
        abort(404)
    return render_template("admin/testimonials/edit.html", item=item)


@bp.post("/testimonials/<int:item_id>/edit")
@require_permission("testimonials.edit")
def testimonial_edit_post(item_id: int):
    s = db_session()
    u = _current_user()
    item = s.get(Testimonial, item_id)
    if not item:
        abort(404)
    try:
        payload = _payload()
    except MediaError as e:
        flash(str(e), "danger")
        return redirect(url_for("testimonials.testimonial_edit_get", item_id=item_id))

    errors = validate_testimonial_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("testimonials.testimonial_edit_get", item_id=item_id))

    update_testimonial(s, item, payload, u)
    s.commit()
    flash("Testimonial updated.", "success")
    return redirect(url_for("testimonials.testimonials_list"))


@bp.post("/testimonials/<int:item_id>/delete")
@require_permission("testimonials.edit")
def testimonial_delete(item_id: int):
    s = db_session()
    u = _current_user()
    item = s.get(Testimonial, item_id)
    if not item:
        abort(404)
    delete_testimonial(s, item, u)
    s.commit()
    flash("Testimonial deleted.", "success")
    return redirect(url_for("testimonials.testimonials_list"))

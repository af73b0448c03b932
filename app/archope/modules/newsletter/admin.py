from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.newsletter.models import NewsletterSubscriber
from app.archope.modules.newsletter.service import EXPORT_HEADER, deactivate, export_rows
from app.archope.rbac import require_permission
from app.archope.utils import csv_response, paginate, parse_int

bp = Blueprint("newsletter", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _query(s, active_filter: str):
    q = s.query(NewsletterSubscriber)
    if active_filter == "active":
        q = q.filter(NewsletterSubscriber.is_active.is_(True))
    elif active_filter == "inactive":
        q = q.filter(NewsletterSubscriber.is_active.is_(False))
    return q.order_by(NewsletterSubscriber.subscribed_at.desc(), NewsletterSubscriber.id.desc())


@bp.get("/newsletter")
@require_permission("newsletter.view")
def subscribers_list():
    s = db_session()
    active_filter = (request.args.get("active") or "").strip()
    page = paginate(_query(s, active_filter), parse_int(request.args.get("page"), 1) or 1)
    active_count = s.query(NewsletterSubscriber).filter(NewsletterSubscriber.is_active.is_(True)).count()
    return render_template(
        "admin/newsletter/list.html",
        page=page,
        active_filter=active_filter,
        active_count=active_count,
    )


@bp.post("/newsletter/<int:sub_id>/deactivate")
@require_permission("newsletter.edit")
def subscriber_deactivate(sub_id: int):
    s = db_session()
    u = _current_user()
    sub = s.get(NewsletterSubscriber, sub_id)
    if not sub:
        abort(404)
    if deactivate(s, sub, u):
        s.commit()
        flash(f"{sub.email} unsubscribed.", "success")
    else:
        flash("Subscriber is already inactive.", "info")
    return redirect(url_for("newsletter.subscribers_list"))


@bp.get("/newsletter/export")
@require_permission("newsletter.export")
def subscribers_export():
    s = db_session()
    active_filter = (request.args.get("active") or "").strip()
    return csv_response("newsletter", EXPORT_HEADER, export_rows(_query(s, active_filter).all()))

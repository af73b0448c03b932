from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.archope.constants import SPONSOR_TIERS
from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.media.service import MediaError, image_url_from_form
from app.archope.modules.sponsors.models import Sponsor
from app.archope.modules.sponsors.service import (
    TIER_LABELS,
    create_sponsor,
    delete_sponsor,
    update_sponsor,
    validate_sponsor_payload,
)
from app.archope.rbac import require_permission
from app.archope.storage import get_storage

bp = Blueprint("sponsors", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _payload() -> dict:
    logo_url = image_url_from_form(
        get_storage(),
        request.files.get("logo_file"),
        request.form.get("logo_url"),
        folder="sponsors",
    )
    return {
        "name": request.form.get("name"),
        "logo_url": logo_url,
        "website_url": request.form.get("website_url"),
        "description": request.form.get("description"),
        "tier": request.form.get("tier"),
        "is_active": request.form.get("is_active"),
        "display_order": request.form.get("display_order"),
    }


def _render_form(sponsor: Sponsor | None):
    return render_template("admin/sponsors/edit.html", sponsor=sponsor, tiers=SPONSOR_TIERS, tier_labels=TIER_LABELS)


@bp.get("/sponsors")
@require_permission("sponsors.view")
def sponsors_list():
    s = db_session()
    sponsors = s.query(Sponsor).order_by(Sponsor.display_order.asc(), Sponsor.id.asc()).all()
    return render_template("admin/sponsors/list.html", sponsors=sponsors, tier_labels=TIER_LABELS)


@bp.get("/sponsors/new")
@require_permission("sponsors.edit")
def sponsor_new_get():
    return _render_form(None)


@bp.post("/sponsors/new")
@require_permission("sponsors.edit")
def sponsor_new_post():
    s = db_session()
    u = _current_user()
    try:
        payload = _payload()
    except MediaError as e:
        flash(str(e), "danger")
        return redirect(url_for("sponsors.sponsor_new_get"))

    errors = validate_sponsor_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("sponsors.sponsor_new_get"))

    create_sponsor(s, payload, u)
    s.commit()
    flash("Sponsor added.", "success")
    return redirect(url_for("sponsors.sponsors_list"))


@bp.get("/sponsors/<int:sponsor_id>/edit")
@require_permission("sponsors.edit")
def sponsor_edit_get(sponsor_id: int):
    s = db_session()
    sponsor = s.get(Sponsor, sponsor_id)
    if not sponsor:
        abort(404)
    return _render_form(sponsor)


@bp.post("/sponsors/<int:sponsor_id>/edit")
@require_permission("sponsors.edit")
def sponsor_edit_post(sponsor_id: int):
    s = db_session()
    u = _current_user()
    sponsor = s.get(Sponsor, sponsor_id)
    if not sponsor:
        abort(404)
    try:
        payload = _payload()
    except MediaError as e:
        flash(str(e), "danger")
        return redirect(url_for("sponsors.sponsor_edit_get", sponsor_id=sponsor_id))

    errors = validate_sponsor_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("sponsors.sponsor_edit_get", sponsor_id=sponsor_id))

    update_sponsor(s, sponsor, payload, u)
    s.commit()
    flash("Sponsor updated.", "success")
    return redirect(url_for("sponsors.sponsors_list"))


@bp.post("/sponsors/<int:sponsor_id>/delete")
@require_permission("sponsors.edit")
def sponsor_delete(sponsor_id: int):
    s = db_session()
    u = _current_user()
    sponsor = s.get(Sponsor, sponsor_id)
    if not sponsor:
        abort(404)
    delete_sponsor(s, sponsor, u)
    s.commit()
    flash("Sponsor deleted.", "success")
    return redirect(url_for("sponsors.sponsors_list"))

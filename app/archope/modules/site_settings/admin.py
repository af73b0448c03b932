from __future__ import annotations

from flask import Blueprint, flash, g, redirect, render_template, request, url_for

from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.site_settings.service import load_site_settings, save_site_settings, validate_settings_payload
from app.archope.rbac import require_permission

bp = Blueprint("site_settings", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/settings")
@require_permission("settings.edit")
def settings_get():
    s = db_session()
    return render_template("admin/settings/edit.html", settings=load_site_settings(s))


@bp.post("/settings")
@require_permission("settings.edit")
def settings_post():
    s = db_session()
    u = _current_user()
    payload = {
        "site_name": request.form.get("site_name"),
        "contact_email": request.form.get("contact_email"),
        "phone_number": request.form.get("phone_number"),
        "enable_notifications": request.form.get("enable_notifications"),
        "enable_auto_approve": request.form.get("enable_auto_approve"),
        "maintenance_mode": request.form.get("maintenance_mode"),
    }
    errors = validate_settings_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("site_settings.settings_get"))

    save_site_settings(s, payload, u)
    s.commit()
    flash("Settings saved.", "success")
    return redirect(url_for("site_settings.settings_get"))

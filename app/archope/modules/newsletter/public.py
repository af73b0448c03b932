from __future__ import annotations

from flask import Blueprint, flash, redirect, request, url_for

from app.archope.db import db_session
from app.archope.modules.newsletter.service import ALREADY_SUBSCRIBED, NewsletterError, subscribe

bp = Blueprint("newsletter_public", __name__)


@bp.post("/newsletter")
def newsletter_subscribe():
    s = db_session()
    try:
        outcome, _sub = subscribe(s, request.form.get("email") or "")
    except NewsletterError as e:
        flash(str(e), "danger")
        return redirect(url_for("routes.index", _anchor="newsletter"))

    if outcome == ALREADY_SUBSCRIBED:
        flash("This email is already subscribed.", "info")
    else:
        s.commit()
        flash("Thanks for subscribing! You'll receive our latest news.", "success")
    return redirect(url_for("routes.index", _anchor="newsletter"))

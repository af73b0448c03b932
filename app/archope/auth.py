from __future__ import annotations

import uuid
from datetime import datetime

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash

from app.archope.audit import record_event
from app.archope.db import db_session
from app.archope.models import User
from app.archope.security import SlidingWindowLimiter, app_limiter
from app.archope.utils import safe_next

bp = Blueprint("auth", __name__)

# Public pages never need the staff account; skip the lookup there.
ANONYMOUS_PREFIXES = ("/static/", "/health", "/healthz", "/api/", "/media/")


def _login_limiter() -> SlidingWindowLimiter:
    return app_limiter(
        "login",
        limit_key="LOGIN_RATE_LIMIT",
        window_key="LOGIN_RATE_WINDOW",
        default_limit=5,
        default_window=300,
    )


def load_current_user() -> None:
    """
    Resolve g.current_user from the signed session cookie and tag the
    request with an id used by audit rows and error logs.
    """
    g.request_id = getattr(g, "request_id", None) or uuid.uuid4().hex
    g.current_user = None
    if request.path.startswith(ANONYMOUS_PREFIXES):
        return

    user_id = session.get("user_id")
    if not user_id:
        return
    try:
        user = db_session().get(User, int(user_id))
    except (SQLAlchemyError, ValueError, TypeError):
        current_app.logger.exception("Could not load staff user %r; signing out", user_id)
        db_session().rollback()
        user = None
    if user is None or not user.is_active:
        session.pop("user_id", None)
        return
    g.current_user = user


def authenticate(s: Session, email: str, password: str) -> User | None:
    user = s.query(User).filter(User.email == email).one_or_none()
    if user is None or not user.is_active:
        return None
    if not check_password_hash(user.password_hash, password):
        return None
    return user


@bp.get("/login")
def login_get():
    if getattr(g, "current_user", None):
        return redirect(safe_next(request.args.get("next"), url_for("admin.index")))
    return render_template("auth/login.html", next=(request.args.get("next") or "").strip())


@bp.post("/login")
def login_post():
    email = (request.form.get("email") or "").strip().lower()
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    limiter = _login_limiter()
    if limiter.is_limited(ip):
        current_app.logger.warning("Login rate limit hit (ip=%s)", ip)
        flash("Too many sign-in attempts. Please wait a few minutes.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))
    limiter.hit(ip)

    s = db_session()
    user = authenticate(s, email, password)
    if user is None:
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
        )
        s.commit()
        flash("Invalid credentials.", "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    session["user_id"] = user.id
    user.last_login_at = datetime.utcnow()
    limiter.reset(ip)
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=user.id)
    s.commit()
    current_app.logger.info("Staff sign-in: %s", user.email)
    return redirect(safe_next(nxt, url_for("admin.index")))


@bp.get("/logout")
def logout():
    user = getattr(g, "current_user", None)
    if user:
        s = db_session()
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=user.id)
        s.commit()
    session.pop("user_id", None)
    flash("Signed out.", "success")
    return redirect(url_for("routes.index"))

import logging
import os
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, flash, g, redirect, render_template, request, session, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.archope.config import load_config
from app.archope.db import db_session, init_db, teardown_db_session
from app.archope.auth import load_current_user

logger = logging.getLogger(__name__)

# Blueprints that make up the public site; maintenance mode closes these.
PUBLIC_BLUEPRINTS = ("routes", "students_public", "volunteers_public", "blog_public", "newsletter_public", "api")
# Always reachable, even in maintenance mode.
ALWAYS_OPEN_ENDPOINTS = ("routes.health", "routes.healthz", "routes.media")
# No session, CSRF token or user lookup for these.
BARE_PATHS = ("/static/", "/health", "/healthz")
REQUIRED_S3_KEYS = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")


def _wants_json() -> bool:
    return request.path.startswith("/api/") or request.path.endswith(".json")


def _check_production_config(app: Flask) -> None:
    if (app.config.get("ENV") or "").strip().lower() not in ("prod", "production"):
        return
    db_url = str(app.config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at Postgres in production.")
    if str(app.config.get("SECRET_KEY") or "") in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a strong random value in production.")
    if not app.config.get("LLM_API_KEY"):
        app.logger.warning("LLM_API_KEY is not set; the chat widget will answer 500.")
    if not app.config.get("RESEND_API_KEY"):
        app.logger.warning("RESEND_API_KEY is not set; notification emails are only logged.")


def _check_storage_config(app: Flask) -> None:
    if app.config.get("STORAGE_BACKEND") != "s3":
        return
    missing = [key for key in REQUIRED_S3_KEYS if not app.config.get(key)]
    if missing:
        app.logger.error("S3 storage selected but %s not set; uploads will fail.", ", ".join(missing))


def _dispose_engine_after_fork(app: Flask) -> None:
    # gunicorn --preload forks after create_app(); pooled connections must not be shared.
    if not hasattr(os, "register_at_fork"):
        return

    def _child() -> None:
        engine = app.extensions.get("sqlalchemy_engine")
        if engine is not None:
            engine.dispose()

    os.register_at_fork(after_in_child=_child)


def _register_blueprints(app: Flask) -> None:
    from app.archope.admin import bp as admin_bp
    from app.archope.auth import bp as auth_bp
    from app.archope.routes import bp as routes_bp
    from app.archope.modules.blog.admin import bp as blog_bp
    from app.archope.modules.blog.public import bp as blog_public_bp
    from app.archope.modules.chat.admin import bp as chat_bp
    from app.archope.modules.chat.api import bp as chat_api_bp
    from app.archope.modules.media.admin import bp as media_bp
    from app.archope.modules.newsletter.admin import bp as newsletter_bp
    from app.archope.modules.newsletter.public import bp as newsletter_public_bp
    from app.archope.modules.notifications.admin import bp as notifications_bp
    from app.archope.modules.progress.admin import bp as progress_bp
    from app.archope.modules.site_settings.admin import bp as site_settings_bp
    from app.archope.modules.sponsors.admin import bp as sponsors_bp
    from app.archope.modules.statistics.admin import bp as statistics_bp
    from app.archope.modules.students.admin import bp as students_bp
    from app.archope.modules.students.public import bp as students_public_bp
    from app.archope.modules.testimonials.admin import bp as testimonials_bp
    from app.archope.modules.volunteers.admin import bp as volunteers_bp
    from app.archope.modules.volunteers.public import bp as volunteers_public_bp

    for public_bp in (routes_bp, students_public_bp, volunteers_public_bp, blog_public_bp, newsletter_public_bp):
        app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(chat_api_bp, url_prefix="/api")
    for staff_bp in (
        admin_bp,
        students_bp,
        volunteers_bp,
        progress_bp,
        blog_bp,
        sponsors_bp,
        testimonials_bp,
        media_bp,
        newsletter_bp,
        chat_bp,
        notifications_bp,
        site_settings_bp,
        statistics_bp,
    ):
        app.register_blueprint(staff_bp, url_prefix="/admin")


def _site_settings():
    from app.archope.modules.site_settings.service import SiteSettings, load_site_settings

    site = getattr(g, "site_settings", None)
    if site is None:
        try:
            site = load_site_settings(db_session())
        except SQLAlchemyError:
            # Error pages still render when the database is down.
            logger.exception("Could not load site settings; using defaults")
            db_session().rollback()
            site = SiteSettings()
        g.site_settings = site
    return site


def _register_template_helpers(app: Flask) -> None:
    from app.archope.rbac import user_has_permission
    from app.archope.security import ensure_csrf_token

    @app.context_processor
    def _globals() -> dict:
        user = getattr(g, "current_user", None)
        return {
            "csrf_token": ensure_csrf_token(),
            "has_perm": lambda key: user_has_permission(user, key),
            "site": _site_settings(),
        }

    @app.template_filter("dateformat")
    def _dateformat(value, fmt: str = "%Y-%m-%d") -> str:
        if value is None:
            return "-"
        return value.strftime(fmt) if hasattr(value, "strftime") else str(value)


def _register_request_hooks(app: Flask) -> None:
    from app.archope.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(BARE_PATHS):
            return None
        endpoint = request.endpoint or ""
        # The chat API is called cross-origin without cookies.
        if endpoint.startswith("api."):
            return None
        ensure_csrf_token()
        session.permanent = True
        # Login and logout are exempt so an expired session can still sign in.
        if request.method in ("POST", "PUT", "PATCH", "DELETE") and not endpoint.startswith("auth."):
            if not validate_csrf(request):
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    app.before_request(load_current_user)

    @app.before_request
    def _maintenance_guard():
        if (request.endpoint or "") in ALWAYS_OPEN_ENDPOINTS or request.blueprint not in PUBLIC_BLUEPRINTS:
            return None
        # Signed-in staff can still preview the public site.
        if getattr(g, "current_user", None):
            return None
        if not _site_settings().maintenance_mode:
            return None
        if _wants_json():
            return {"error": "The site is under maintenance. Please come back later."}, 503
        return render_template("errors/503.html"), 503

    app.teardown_appcontext(teardown_db_session)


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(400)
    def _bad_request(e):
        if _wants_json():
            return {"error": "Bad request."}, 400
        return render_template("errors/400.html", message=getattr(e, "description", None)), 400

    @app.errorhandler(403)
    def _forbidden(e):
        missing = getattr(g, "missing_permission", None)
        user = getattr(g, "current_user", None)
        app.logger.warning("403 for %s (missing=%s)", user.email if user else "anonymous", missing)
        if _wants_json():
            return {"error": "Forbidden."}, 403
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(404)
    def _not_found(e):
        if _wants_json():
            return {"error": "Not found."}, 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _too_large(e):
        if _wants_json() or request.path.startswith("/admin/media/"):
            return {"error": "File too large."}, 413
        flash("File too large. Images must be 5MB or smaller.", "danger")
        back = request.referrer
        if back and back.startswith(request.host_url):
            return redirect(back)
        return redirect(url_for("admin.index"))

    @app.errorhandler(500)
    def _server_error(e):
        app.logger.error("500 on %s %s (request_id=%s)", request.method, request.path, getattr(g, "request_id", None))
        if _wants_json():
            return {"error": "Internal server error."}, 500
        return render_template("errors/500.html"), 500


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    _check_production_config(app)
    _check_storage_config(app)
    init_db(app)
    _dispose_engine_after_fork(app)

    _register_blueprints(app)
    _register_template_helpers(app)
    _register_request_hooks(app)
    _register_error_handlers(app)

    logger.info("ARC HOPE app ready (env=%s)", app.config.get("ENV"))
    return app

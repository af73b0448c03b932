from flask import Blueprint, abort, current_app, render_template, send_file

from app.archope.constants import FAQ_ITEMS
from app.archope.db import db_session
from app.archope.modules.media.service import served_content_type
from app.archope.modules.sponsors.service import TIER_LABELS, sponsors_by_tier
from app.archope.modules.statistics.service import impact_counters
from app.archope.modules.testimonials.service import featured_testimonials
from app.archope.storage import StorageError, StorageNotFound, get_storage

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    s = db_session()
    return render_template(
        "public/index.html",
        counters=impact_counters(s),
        testimonials=featured_testimonials(s),
        sponsor_groups=sponsors_by_tier(s),
        tier_labels=TIER_LABELS,
        faq_items=FAQ_ITEMS,
    )


@bp.get("/media/<path:key>")
def media(key: str):
    """Serve an uploaded image from storage. Anything that is not an allowed image type is a 404."""
    content_type = served_content_type(key)
    if content_type is None:
        abort(404)
    try:
        fobj, _ = get_storage().open(key)
    except StorageNotFound:
        abort(404)
    except StorageError as e:
        # Malformed keys land here too.
        current_app.logger.warning("Media lookup failed for %r: %s", key, e)
        abort(404)
    resp = send_file(fobj, mimetype=content_type, max_age=3600)
    resp.headers["X-Content-Type-Options"] = "nosniff"
    return resp


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for load balancers. No DB access.
    """
    return "ok", 200

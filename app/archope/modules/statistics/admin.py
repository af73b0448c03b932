from __future__ import annotations

from flask import Blueprint, render_template

from app.archope.constants import STATUS_LABELS
from app.archope.db import db_session
from app.archope.modules.chat.classifier import CLASSIFICATION_LABELS
from app.archope.modules.statistics.service import compute_statistics
from app.archope.rbac import require_permission

bp = Blueprint("statistics", __name__)


@bp.get("/statistics")
@require_permission("statistics.view")
def statistics_page():
    s = db_session()
    stats = compute_statistics(s)
    peak = max((m["count"] for m in stats["monthly_registrations"]), default=0)
    return render_template(
        "admin/statistics/index.html",
        stats=stats,
        peak=peak,
        status_labels=STATUS_LABELS,
        classification_labels=CLASSIFICATION_LABELS,
    )


@bp.get("/statistics.json")
@require_permission("statistics.view")
def statistics_json():
    s = db_session()
    return compute_statistics(s)

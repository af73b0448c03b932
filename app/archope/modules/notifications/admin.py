from __future__ import annotations

from flask import Blueprint, current_app, jsonify, render_template, request

from app.archope.db import db_session
from app.archope.modules.notifications.models import EmailNotification
from app.archope.modules.notifications.service import NotificationError, dispatch_notification
from app.archope.modules.students.models import Student
from app.archope.rbac import require_permission
from app.archope.utils import paginate, parse_int

bp = Blueprint("notifications", __name__)


@bp.get("/notifications")
@require_permission("notifications.view")
def notifications_list():
    s = db_session()
    status_filter = (request.args.get("status") or "").strip()
    q = s.query(EmailNotification)
    if status_filter:
        q = q.filter(EmailNotification.status == status_filter)
    q = q.order_by(EmailNotification.created_at.desc(), EmailNotification.id.desc())
    page = paginate(q, parse_int(request.args.get("page"), 1) or 1)
    return render_template("admin/notifications/list.html", page=page, status_filter=status_filter)


@bp.post("/notifications/send")
@require_permission("notifications.send")
def notifications_send():
    """Manual dispatch; accepts JSON or form data and answers JSON."""
    data = request.get_json(silent=True) if request.is_json else None
    if not isinstance(data, dict):
        data = request.form.to_dict()

    s = db_session()
    student_id = parse_int(data.get("student_id"))
    if student_id is not None and s.get(Student, student_id) is None:
        return jsonify({"success": False, "error": "Student not found"}), 404
    try:
        notification = dispatch_notification(
            s,
            email_type=data.get("email_type") or "",
            recipient_email=data.get("recipient_email") or "",
            student_id=student_id,
            student_name=data.get("student_name"),
            app_config=current_app.config,
        )
    except NotificationError as e:
        return jsonify({"success": False, "error": str(e)}), 400
    s.commit()

    sent = notification.status == "sent"
    return jsonify(
        {
            "success": sent,
            "status": notification.status,
            "message": "Email sent successfully" if sent else notification.error_message,
        }
    )

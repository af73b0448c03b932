from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from flask import render_template

from app.archope.modules.notifications.email_client import EmailProviderError, email_client_from_config

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.archope.modules.notifications.models import EmailNotification
    from app.archope.modules.students.models import Student

logger = logging.getLogger(__name__)

EMAIL_SUBJECTS = {
    "welcome": "Welcome to ARC HOPE!",
    "approved": "Congratulations! You have been accepted into ARC HOPE",
    "rejected": "About your ARC HOPE application",
}
DEFAULT_GREETING_NAME = "friend"


class NotificationError(ValueError):
    pass


def render_email(email_type: str, student_name: str | None) -> tuple[str, str]:
    """Return (subject, html) for a notification type."""
    if email_type not in EMAIL_SUBJECTS:
        raise NotificationError(f"Unknown email type: {email_type}")
    name = (student_name or "").strip() or DEFAULT_GREETING_NAME
    html = render_template(f"emails/{email_type}.html", name=name)
    return EMAIL_SUBJECTS[email_type], html


def dispatch_notification(
    s: "Session",
    *,
    email_type: str,
    recipient_email: str,
    app_config: dict,
    student_id: int | None = None,
    student_name: str | None = None,
) -> "EmailNotification":
    """
    Send one notification and record the attempt.

    Without a provider key the message is only logged and recorded as sent, so
    development and staging never need real credentials.
    """
    from app.archope.modules.notifications.models import EmailNotification

    email_type = (email_type or "").strip()
    recipient_email = (recipient_email or "").strip()
    if not email_type or not recipient_email:
        raise NotificationError("Missing required fields: email_type, recipient_email")

    subject, html = render_email(email_type, student_name)

    status = "pending"
    error_message = None
    provider_id = None
    client = email_client_from_config(app_config)
    if client is not None:
        try:
            resp = client.send(to=recipient_email, subject=subject, html=html)
            provider_id = str(resp.get("id")) if resp.get("id") else None
            status = "sent"
        except EmailProviderError as e:
            status = "failed"
            error_message = str(e)
            logger.warning("Email %s to %s failed: %s", email_type, recipient_email, e)
    else:
        logger.info("Email would be sent (no provider key): to=%s subject=%r type=%s", recipient_email, subject, email_type)
        status = "sent"

    notification = EmailNotification(
        student_id=student_id,
        email_type=email_type,
        recipient_email=recipient_email,
        subject=subject,
        status=status,
        error_message=error_message,
        provider_message_id=provider_id,
        sent_at=datetime.utcnow() if status == "sent" else None,
    )
    s.add(notification)
    s.flush()
    return notification


def notify_student(s: "Session", student: "Student", email_type: str, app_config: dict) -> "EmailNotification | None":
    """
    Fire-and-record helper for workflow hooks: a failed dispatch is logged and
    never propagates into the caller's status change.
    """
    try:
        return dispatch_notification(
            s,
            email_type=email_type,
            recipient_email=student.email,
            student_id=student.id,
            student_name=student.full_name,
            app_config=app_config,
        )
    except NotificationError:
        logger.exception("Could not build %s notification for student %s", email_type, student.id)
        return None

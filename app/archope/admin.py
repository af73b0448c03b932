from flask import Blueprint, render_template, request

from app.archope.audit import recent_events
from app.archope.constants import STATUS_PENDING
from app.archope.db import db_session
from app.archope.rbac import require_permission

bp = Blueprint("admin", __name__)

RECENT_EVENTS = 20
ACTIVITY_FILTERS = ("student", "volunteer", "progress", "blog", "sponsor", "testimonial", "newsletter", "media", "settings", "auth")


@bp.get("/")
@require_permission("admin.view")
def index():
    from app.archope.modules.blog.models import BlogPost
    from app.archope.modules.chat.models import ChatConversation
    from app.archope.modules.newsletter.models import NewsletterSubscriber
    from app.archope.modules.notifications.models import EmailNotification
    from app.archope.modules.sponsors.models import Sponsor
    from app.archope.modules.students.models import Student
    from app.archope.modules.testimonials.models import Testimonial
    from app.archope.modules.volunteers.models import Volunteer

    s = db_session()
    counts = {
        "students": s.query(Student).count(),
        "pending_students": s.query(Student).filter(Student.status == STATUS_PENDING).count(),
        "volunteers": s.query(Volunteer).count(),
        "pending_volunteers": s.query(Volunteer).filter(Volunteer.status == STATUS_PENDING).count(),
        "blog_posts": s.query(BlogPost).count(),
        "sponsors": s.query(Sponsor).count(),
        "testimonials": s.query(Testimonial).count(),
        "subscribers": s.query(NewsletterSubscriber).filter(NewsletterSubscriber.is_active.is_(True)).count(),
        "conversations": s.query(ChatConversation).count(),
        "failed_emails": s.query(EmailNotification).filter(EmailNotification.status == "failed").count(),
    }
    activity = (request.args.get("activity") or "").strip()
    if activity not in ACTIVITY_FILTERS:
        activity = ""
    events = recent_events(s, limit=RECENT_EVENTS, action_prefix=f"{activity}." if activity else None)
    return render_template(
        "admin/index.html", counts=counts, events=events, activity=activity, activity_filters=ACTIVITY_FILTERS
    )

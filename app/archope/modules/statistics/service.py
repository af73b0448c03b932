from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from app.archope.constants import INCOME_OPTIONS, VALID_STATUSES

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def compute_statistics(s: "Session") -> dict[str, Any]:
    """
    Dashboard numbers. Monthly registrations are keyed `YYYY-MM` in
    chronological order; income buckets follow the registration form's order.
    """
    from app.archope.modules.blog.models import BlogPost
    from app.archope.modules.chat.service import classification_counts
    from app.archope.modules.sponsors.models import Sponsor
    from app.archope.modules.students.models import Student
    from app.archope.modules.testimonials.models import Testimonial

    rows = s.query(Student.status, Student.income, Student.created_at).all()

    by_status = {st: 0 for st in VALID_STATUSES}
    monthly: Counter[str] = Counter()
    income: Counter[str] = Counter()
    for status, inc, created_at in rows:
        if status in by_status:
            by_status[status] += 1
        if created_at is not None:
            monthly[created_at.strftime("%Y-%m")] += 1
        income[inc] += 1

    income_keys = list(INCOME_OPTIONS) + sorted(k for k in income if k not in INCOME_OPTIONS)
    return {
        "students": {"total": len(rows), **by_status},
        "blog_posts": s.query(BlogPost).count(),
        "published_posts": s.query(BlogPost).filter(BlogPost.published_at.isnot(None)).count(),
        "testimonials": s.query(Testimonial).count(),
        "sponsors": s.query(Sponsor).count(),
        "conversations": classification_counts(s),
        "monthly_registrations": [{"month": m, "count": monthly[m]} for m in sorted(monthly)],
        "income_distribution": [
            {"income": k, "label": INCOME_OPTIONS.get(k, k), "count": income.get(k, 0)} for k in income_keys
        ],
    }


def impact_counters(s: "Session") -> dict[str, int]:
    """Public landing-page counters."""
    from app.archope.constants import STATUS_APPROVED
    from app.archope.modules.blog.models import BlogPost
    from app.archope.modules.sponsors.models import Sponsor
    from app.archope.modules.students.models import Student
    from app.archope.modules.volunteers.models import Volunteer

    return {
        "students": s.query(Student).filter(Student.status == STATUS_APPROVED).count(),
        "volunteers": s.query(Volunteer).filter(Volunteer.status == STATUS_APPROVED).count(),
        "sponsors": s.query(Sponsor).filter(Sponsor.is_active.is_(True)).count(),
        "posts": s.query(BlogPost).filter(BlogPost.published_at.isnot(None)).count(),
    }

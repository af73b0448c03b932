from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.archope.audit import record_event
from app.archope.utils import clean, is_valid_email

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.archope.models import User
    from app.archope.modules.newsletter.models import NewsletterSubscriber

# subscribe() outcomes
SUBSCRIBED = "subscribed"
ALREADY_SUBSCRIBED = "already_subscribed"
REACTIVATED = "reactivated"

EXPORT_HEADER = ["Email", "Active", "Subscribed", "Unsubscribed"]


class NewsletterError(ValueError):
    pass


def subscribe(s: "Session", email: str) -> tuple[str, "NewsletterSubscriber"]:
    from app.archope.modules.newsletter.models import NewsletterSubscriber

    email = clean(email).lower()
    if not is_valid_email(email):
        raise NewsletterError("Email is invalid.")

    existing = s.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == email).one_or_none()
    if existing is not None:
        if existing.is_active:
            return ALREADY_SUBSCRIBED, existing
        existing.is_active = True
        existing.subscribed_at = datetime.utcnow()
        existing.unsubscribed_at = None
        record_event(s, actor=None, action="newsletter.resubscribe", entity_type="NewsletterSubscriber", entity_id=str(existing.id))
        return REACTIVATED, existing

    sub = NewsletterSubscriber(email=email, is_active=True, subscribed_at=datetime.utcnow())
    s.add(sub)
    s.flush()
    record_event(s, actor=None, action="newsletter.subscribe", entity_type="NewsletterSubscriber", entity_id=str(sub.id))
    return SUBSCRIBED, sub


def deactivate(s: "Session", sub: "NewsletterSubscriber", user: "User") -> bool:
    if not sub.is_active:
        return False
    sub.is_active = False
    sub.unsubscribed_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="newsletter.deactivate",
        entity_type="NewsletterSubscriber",
        entity_id=str(sub.id),
        metadata={"email": sub.email},
    )
    return True


def export_rows(subs: list["NewsletterSubscriber"]) -> list[list[Any]]:
    return [
        [
            sub.email,
            "yes" if sub.is_active else "no",
            sub.subscribed_at.date().isoformat() if sub.subscribed_at else "",
            sub.unsubscribed_at.date().isoformat() if sub.unsubscribed_at else "",
        ]
        for sub in subs
    ]

import pytest

from app.archope.db import session_scope
from app.archope.modules.newsletter.models import NewsletterSubscriber
from app.archope.modules.newsletter.service import (
    ALREADY_SUBSCRIBED,
    REACTIVATED,
    SUBSCRIBED,
    NewsletterError,
    subscribe,
)


def test_subscribe_outcomes(app):
    with session_scope(app) as s:
        outcome, sub = subscribe(s, " Reader@Example.com ")
        assert outcome == SUBSCRIBED
        assert sub.email == "reader@example.com"
    with session_scope(app) as s:
        outcome, _ = subscribe(s, "reader@example.com")
        assert outcome == ALREADY_SUBSCRIBED
        assert s.query(NewsletterSubscriber).count() == 1


def test_subscribe_rejects_bad_email(app):
    with session_scope(app) as s:
        with pytest.raises(NewsletterError):
            subscribe(s, "not-an-email")


def test_public_subscribe_flow(app, client, csrf_token):
    r = client.post("/newsletter", data={"email": "fan@example.com", "csrf_token": csrf_token})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/#newsletter")

    r = client.post("/newsletter", data={"email": "fan@example.com", "csrf_token": csrf_token}, follow_redirects=True)
    assert b"This email is already subscribed." in r.data

    r = client.post("/newsletter", data={"email": "bad", "csrf_token": csrf_token}, follow_redirects=True)
    assert b"Email is invalid." in r.data


def test_deactivate_then_resubscribe(app, admin_client, csrf_token):
    with session_scope(app) as s:
        _, sub = subscribe(s, "fan@example.com")
        s.flush()
        sub_id = sub.id

    r = admin_client.post(f"/admin/newsletter/{sub_id}/deactivate", data={"csrf_token": csrf_token}, follow_redirects=True)
    assert b"fan@example.com unsubscribed." in r.data
    with session_scope(app) as s:
        sub = s.get(NewsletterSubscriber, sub_id)
        assert sub.is_active is False
        assert sub.unsubscribed_at is not None

    with session_scope(app) as s:
        outcome, sub = subscribe(s, "fan@example.com")
        assert outcome == REACTIVATED
        assert sub.is_active is True
        assert sub.unsubscribed_at is None


def test_newsletter_admin_filter_and_export(app, admin_client):
    with session_scope(app) as s:
        s.add(NewsletterSubscriber(email="on@example.com", is_active=True))
        s.add(NewsletterSubscriber(email="off@example.com", is_active=False))

    r = admin_client.get("/admin/newsletter?active=inactive")
    assert b"off@example.com" in r.data
    assert b"on@example.com" not in r.data

    r = admin_client.get("/admin/newsletter/export")
    text = r.data.decode("utf-8-sig")
    assert text.splitlines()[0] == "Email,Active,Subscribed,Unsubscribed"
    assert "on@example.com" in text and "off@example.com" in text

from urllib.parse import parse_qs, urlsplit

from app.archope.audit import record_event
from app.archope.db import session_scope
from app.archope.models import AuditEvent, User


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_healthz_plain(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_landing_page_renders(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"Register to study" in r.data
    assert b"Frequently asked questions" in r.data
    assert b'id="chat-widget"' in r.data


def test_login_and_admin_access(client):
    # Anonymous should be redirected to login
    r = client.get("/admin/")
    assert r.status_code in (302, 403)

    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"}, follow_redirects=False)
    assert r.status_code == 302

    r = client.get("/admin/")
    assert r.status_code == 200
    assert b"Dashboard" in r.data


def test_bad_login_is_audited(app, client):
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "nope"}, follow_redirects=True)
    assert b"Invalid credentials." in r.data
    with session_scope(app) as s:
        assert s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").count() == 1


def test_missing_permission_is_403(client):
    client.post("/auth/login", data={"email": "viewer@example.com", "password": "pw"})
    assert client.get("/admin/").status_code == 200
    assert client.get("/admin/students").status_code == 403
    assert client.get("/admin/settings").status_code == 403


def test_admin_post_without_csrf_rejected(admin_client):
    r = admin_client.post("/admin/settings", data={"site_name": "X"})
    assert r.status_code == 400


def test_unknown_api_path_answers_json(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert r.json == {"error": "Not found."}


def test_login_records_last_login_and_follows_local_next(app, client):
    r = client.post(
        "/auth/login",
        data={"email": "ADMIN@example.com ", "password": "pw", "next": "/admin/students?status=pending"},
    )
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/students?status=pending")
    with session_scope(app) as s:
        user = s.query(User).filter(User.email == "admin@example.com").one()
        assert user.last_login_at is not None


def test_login_ignores_offsite_next(client):
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw", "next": "//evil.example/x"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/")


def test_login_ignores_backslash_next(client):
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw", "next": "/\\evil.example"})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/")


def test_anonymous_redirect_keeps_query(client):
    r = client.get("/admin/students?status=approved")
    assert r.status_code == 302
    query = parse_qs(urlsplit(r.headers["Location"]).query)
    assert query["next"] == ["/admin/students?status=approved"]


def test_anonymous_json_endpoint_gets_401(client):
    r = client.get("/admin/statistics.json")
    assert r.status_code == 401
    assert r.json == {"error": "Authentication required."}


def test_login_rate_limited(app, client):
    app.config["LOGIN_RATE_LIMIT"] = 2
    for _ in range(2):
        client.post("/auth/login", data={"email": "admin@example.com", "password": "nope"})
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"}, follow_redirects=True)
    assert b"Too many sign-in attempts" in r.data
    # Still anonymous.
    assert client.get("/admin/").status_code == 302


def test_dashboard_activity_filter(app, admin_client):
    with session_scope(app) as s:
        record_event(s, actor=None, action="student.register", entity_type="Student", entity_id=1)
        record_event(s, actor=None, action="newsletter.subscribe", entity_type="NewsletterSubscriber", entity_id=1)

    r = admin_client.get("/admin/?activity=student")
    assert b"student.register" in r.data
    assert b"newsletter.subscribe" not in r.data

    # Unknown areas fall back to everything.
    r = admin_client.get("/admin/?activity=bogus")
    assert b"newsletter.subscribe" in r.data


def test_audit_details_are_json_safe(app):
    from datetime import datetime

    with session_scope(app) as s:
        ev = record_event(
            s,
            actor=None,
            action="settings.update",
            reason="x" * 600,
            metadata={"when": datetime(2024, 1, 2, 3, 4, 5), "tags": ("a", "b")},
        )
        s.flush()
        assert ev.details == {"when": "2024-01-02 03:04:05", "tags": ["a", "b"]}
        assert len(ev.reason) == 512

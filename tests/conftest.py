import pytest
from werkzeug.security import generate_password_hash

from app.archope import create_app
from app.archope.db import session_scope
from app.archope.models import Base, Permission, Role, User
from scripts.init_db import PERMISSIONS


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    for k in (
        "S3_ENDPOINT",
        "S3_REGION",
        "S3_BUCKET",
        "S3_ACCESS_KEY_ID",
        "S3_SECRET_ACCESS_KEY",
        "LLM_API_KEY",
        "RESEND_API_KEY",
        "STORAGE_DIR",
        "LOGIN_RATE_LIMIT",
    ):
        monkeypatch.delenv(k, raising=False)
    # Local storage writes under ./storage
    monkeypatch.chdir(tmp_path)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        perms = [Permission(key=key, name=name) for key, name in PERMISSIONS]
        admin = Role(key="admin", name="Administrator")
        admin.permissions.extend(perms)
        viewer = Role(key="viewer", name="Viewer")
        viewer.permissions.append(next(p for p in perms if p.key == "admin.view"))

        u = User(email="admin@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        u.roles.append(admin)
        v = User(email="viewer@example.com", password_hash=generate_password_hash("pw"), is_active=True)
        v.roles.append(viewer)
        s.add_all(perms + [admin, viewer, u, v])

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email="admin@example.com", password="pw"):
    return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)


@pytest.fixture()
def admin_client(client):
    r = login(client)
    assert r.status_code == 302
    return client


@pytest.fixture()
def csrf_token(client):
    """Session CSRF token for form posts made with `client`."""
    with client.session_transaction() as sess:
        token = sess.get("csrf_token")
        if not token:
            token = sess["csrf_token"] = "test-csrf-token"
    return token

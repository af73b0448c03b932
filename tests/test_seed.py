from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from app.archope.models import Base, Permission, Role, User
from scripts.grant_role import grant_role
from scripts.init_db import MODERATOR_PERMISSIONS, PERMISSIONS, seed_only


def test_seed_is_idempotent(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = create_engine(db_url, future=True)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setenv("ADMIN_EMAIL", "Boss@Example.com")
    monkeypatch.setenv("ADMIN_PASSWORD", "first")

    seed_only(database_url=db_url)
    with Session(engine) as s:
        first_hash = s.query(User).one().password_hash

    monkeypatch.setenv("ADMIN_PASSWORD", "second")
    seed_only(database_url=db_url)

    with Session(engine) as s:
        assert s.query(Permission).count() == len(PERMISSIONS)
        user = s.query(User).one()
        assert user.email == "boss@example.com"
        # Existing passwords are never overwritten.
        assert user.password_hash == first_hash
        admin = s.query(Role).filter(Role.key == "admin").one()
        assert len(admin.permissions) == len(PERMISSIONS)
        moderator = s.query(Role).filter(Role.key == "moderator").one()
        assert {p.key for p in moderator.permissions} == MODERATOR_PERMISSIONS
    engine.dispose()


def test_moderator_permissions_exist():
    keys = {key for key, _ in PERMISSIONS}
    assert MODERATOR_PERMISSIONS <= keys


def test_grant_role_creates_and_names_staff(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path/'grant.db'}"
    engine = create_engine(db_url, future=True)
    Base.metadata.create_all(bind=engine)
    monkeypatch.setenv("ADMIN_PASSWORD", "pw")
    seed_only(database_url=db_url)

    assert grant_role("new@example.com", "moderator", database_url=db_url).startswith("User not found")
    assert grant_role("nobody@example.com", "owner", database_url=db_url).startswith("Role not found")

    msg = grant_role(" New@Example.com ", "moderator", password="pw", full_name="Linh Tran", database_url=db_url)
    assert msg == "Role moderator granted to new@example.com"
    assert grant_role("new@example.com", "moderator", database_url=db_url).startswith("User already has role")

    with Session(engine) as s:
        user = s.query(User).filter(User.email == "new@example.com").one()
        assert user.display_name == "Linh Tran"
        assert [r.key for r in user.roles] == ["moderator"]
    engine.dispose()

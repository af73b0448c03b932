import sys
from pathlib import Path
import os

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.archope.models import Permission, Role, User
from scripts._db_utils import script_database_url, script_session

PERMISSIONS: list[tuple[str, str]] = [
    ("admin.view", "Admin: view dashboard"),
    # Students
    ("students.view", "Students: view"),
    ("students.edit", "Students: approve/reject/delete"),
    ("students.export", "Students: export CSV"),
    ("progress.view", "Progress: view"),
    ("progress.edit", "Progress: edit"),
    # Volunteers
    ("volunteers.view", "Volunteers: view"),
    ("volunteers.edit", "Volunteers: change status"),
    ("volunteers.export", "Volunteers: export CSV"),
    # Site content
    ("blog.view", "Blog: view"),
    ("blog.edit", "Blog: edit/publish"),
    ("sponsors.view", "Sponsors: view"),
    ("sponsors.edit", "Sponsors: edit"),
    ("testimonials.view", "Testimonials: view"),
    ("testimonials.edit", "Testimonials: edit"),
    ("media.upload", "Media: upload images"),
    # Newsletter
    ("newsletter.view", "Newsletter: view"),
    ("newsletter.edit", "Newsletter: deactivate subscribers"),
    ("newsletter.export", "Newsletter: export CSV"),
    # Chat leads
    ("chat.view", "Chat: view conversations"),
    ("chat.export", "Chat: export CSV"),
    # Notifications, settings, statistics
    ("notifications.view", "Notifications: view log"),
    ("notifications.send", "Notifications: send manually"),
    ("settings.edit", "Settings: edit site settings"),
    ("statistics.view", "Statistics: view"),
]

# Moderators run day-to-day content and applicant review; settings stay with admins.
MODERATOR_PERMISSIONS = {
    "admin.view",
    "students.view",
    "students.edit",
    "progress.view",
    "progress.edit",
    "volunteers.view",
    "volunteers.edit",
    "blog.view",
    "blog.edit",
    "sponsors.view",
    "testimonials.view",
    "testimonials.edit",
    "media.upload",
    "chat.view",
    "notifications.view",
    "statistics.view",
}


def _ensure_role(s, key: str, name: str) -> Role:
    role = s.query(Role).filter(Role.key == key).one_or_none()
    if not role:
        role = Role(key=key, name=name)
        s.add(role)
    return role


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed permissions/roles/admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@archope.org").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(script_database_url(database_url)) as s:
        perms: dict[str, Permission] = {}
        for key, name in PERMISSIONS:
            p = s.query(Permission).filter(Permission.key == key).one_or_none()
            if not p:
                p = Permission(key=key, name=name)
                s.add(p)
            perms[key] = p

        role_admin = _ensure_role(s, "admin", "Administrator")
        for p in perms.values():
            if p not in role_admin.permissions:
                role_admin.permissions.append(p)

        role_moderator = _ensure_role(s, "moderator", "Moderator")
        for key in sorted(MODERATOR_PERMISSIONS):
            if perms[key] not in role_moderator.permissions:
                role_moderator.permissions.append(perms[key])

        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
        if role_admin not in user.roles:
            user.roles.append(role_admin)

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()

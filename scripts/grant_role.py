#!/usr/bin/env python3
"""Grant a role to a staff user, creating the user when a password is given (idempotent).

Usage:
  python scripts/grant_role.py --email staff@archope.org --role moderator
  python scripts/grant_role.py --email new@archope.org --role moderator --password '...' --name 'Linh Tran'
"""

import argparse
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.archope.models import Role, User
from scripts._db_utils import script_database_url, script_session


def grant_role(
    email: str,
    role_key: str,
    *,
    password: str | None = None,
    full_name: str | None = None,
    database_url: str | None = None,
) -> str:
    email = email.strip().lower()
    with script_session(script_database_url(database_url)) as s:
        role = s.query(Role).filter(Role.key == role_key).one_or_none()
        if not role:
            return f"Role not found: {role_key}. Run python scripts/init_db.py first."
        user = s.query(User).filter(User.email == email).one_or_none()
        if not user:
            if not password:
                return f"User not found: {email}. Pass --password to create it."
            user = User(email=email, password_hash=generate_password_hash(password), is_active=True)
            s.add(user)
        if full_name:
            user.full_name = full_name.strip()
        if role in (user.roles or []):
            return f"User already has role {role_key}: {email}"
        user.roles.append(role)
    return f"Role {role_key} granted to {email}"


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="Staff user email")
    parser.add_argument("--role", default="admin", help="Role key (admin, moderator)")
    parser.add_argument("--password", default=None, help="Create the user with this password if missing")
    parser.add_argument("--name", default=None, help="Display name shown in the admin area")
    args = parser.parse_args()
    print(grant_role(args.email, args.role, password=args.password, full_name=args.name))


if __name__ == "__main__":
    main()

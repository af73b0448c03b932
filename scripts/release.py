"""
Release step for a deploy: bring the schema to head, then make sure the
permission catalogue, the admin/moderator roles and the first admin account
exist. Safe to run on every boot.

Usage:
  python scripts/release.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

PRODUCTION_ENVS = ("prod", "production")


def check_database_url(db_url: str | None, env: str | None) -> str:
    """Return the URL to migrate, refusing setups that would lose data on redeploy."""
    db_url = (db_url or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is not set; refusing to guess a database for the release.")
    if (env or "").strip().lower() in PRODUCTION_ENVS and db_url.startswith("sqlite"):
        raise RuntimeError("SQLite is not allowed in production. Point DATABASE_URL at Postgres.")
    return db_url


def migrate(db_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(cfg, "head")


def run_release() -> None:
    env = os.environ.get("ENV")
    db_url = check_database_url(os.environ.get("DATABASE_URL"), env)

    print(f"ARC HOPE release (ENV={env or 'unset'})", flush=True)
    migrate(db_url)
    print("Schema is at head.", flush=True)

    from scripts import init_db

    init_db.seed_only(database_url=db_url)
    print("Roles, permissions and admin account are in place.", flush=True)


if __name__ == "__main__":
    run_release()

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime
from typing import TYPE_CHECKING

from app.archope.audit import record_event
from app.archope.utils import clean, is_valid_email, parse_bool

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.archope.models import User


@dataclass
class SiteSettings:
    site_name: str = "ARC HOPE"
    contact_email: str = "info@archope.org"
    phone_number: str = "0123 456 789"
    enable_notifications: bool = True
    enable_auto_approve: bool = False
    maintenance_mode: bool = False


_BOOL_KEYS = {f.name for f in fields(SiteSettings) if f.type in (bool, "bool")}


def load_site_settings(s: "Session") -> SiteSettings:
    """Stored values override the defaults; unknown keys are ignored."""
    from app.archope.modules.site_settings.models import SiteSetting

    settings = SiteSettings()
    for row in s.query(SiteSetting).all():
        if not hasattr(settings, row.key):
            continue
        if row.key in _BOOL_KEYS:
            setattr(settings, row.key, parse_bool(row.value))
        else:
            setattr(settings, row.key, row.value or "")
    return settings


def validate_settings_payload(payload: dict) -> list[str]:
    errors = []
    if not clean(payload.get("site_name")):
        errors.append("Site name is required.")
    email = clean(payload.get("contact_email"))
    if email and not is_valid_email(email):
        errors.append("Contact email is invalid.")
    return errors


def save_site_settings(s: "Session", payload: dict, user: "User") -> SiteSettings:
    from app.archope.modules.site_settings.models import SiteSetting

    current = load_site_settings(s)
    changes = {}
    now = datetime.utcnow()
    for f in fields(SiteSettings):
        if f.name in _BOOL_KEYS:
            new_value: object = parse_bool(payload.get(f.name))
        else:
            new_value = clean(payload.get(f.name))
        if new_value == getattr(current, f.name):
            continue
        changes[f.name] = {"old": getattr(current, f.name), "new": new_value}
        row = s.get(SiteSetting, f.name)
        if row is None:
            row = SiteSetting(key=f.name)
            s.add(row)
        row.value = ("1" if new_value else "0") if f.name in _BOOL_KEYS else str(new_value)
        row.updated_at = now
        row.updated_by_user_id = user.id
        setattr(current, f.name, new_value)

    if changes:
        record_event(
            s,
            actor=user,
            action="settings.edit",
            entity_type="SiteSetting",
            entity_id="site",
            metadata={"changes": changes},
        )
    return current


def settings_as_dict(settings: SiteSettings) -> dict:
    return asdict(settings)

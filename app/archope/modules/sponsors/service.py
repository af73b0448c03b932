from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.archope.audit import record_event
from app.archope.constants import DEFAULT_SPONSOR_TIER, SPONSOR_TIERS
from app.archope.utils import clean, parse_bool, parse_int

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.archope.models import User
    from app.archope.modules.sponsors.models import Sponsor

TIER_LABELS = {
    "platinum": "Platinum",
    "gold": "Gold",
    "silver": "Silver",
    "bronze": "Bronze",
}


def validate_sponsor_payload(payload: dict) -> list[str]:
    errors = []
    if not clean(payload.get("name")):
        errors.append("Name is required.")
    tier = clean(payload.get("tier"))
    if tier and tier not in SPONSOR_TIERS:
        errors.append(f"Invalid tier. Must be one of: {', '.join(SPONSOR_TIERS)}")
    if clean(payload.get("display_order")) and parse_int(payload.get("display_order")) is None:
        errors.append("Display order must be a whole number.")
    return errors


def _apply(sponsor: "Sponsor", payload: dict) -> None:
    sponsor.name = clean(payload.get("name"))
    sponsor.logo_url = clean(payload.get("logo_url")) or None
    sponsor.website_url = clean(payload.get("website_url")) or None
    sponsor.description = clean(payload.get("description")) or None
    sponsor.tier = clean(payload.get("tier")) or DEFAULT_SPONSOR_TIER
    sponsor.is_active = parse_bool(payload.get("is_active"))
    sponsor.display_order = parse_int(payload.get("display_order"), 0) or 0


def create_sponsor(s: "Session", payload: dict, user: "User") -> "Sponsor":
    from app.archope.modules.sponsors.models import Sponsor

    now = datetime.utcnow()
    sponsor = Sponsor(created_at=now, updated_at=now)
    _apply(sponsor, payload)
    s.add(sponsor)
    s.flush()
    record_event(
        s,
        actor=user,
        action="sponsor.create",
        entity_type="Sponsor",
        entity_id=str(sponsor.id),
        metadata={"name": sponsor.name, "tier": sponsor.tier},
    )
    return sponsor


def update_sponsor(s: "Session", sponsor: "Sponsor", payload: dict, user: "User") -> "Sponsor":
    before = {"name": sponsor.name, "tier": sponsor.tier, "is_active": sponsor.is_active}
    _apply(sponsor, payload)
    sponsor.updated_at = datetime.utcnow()
    after = {"name": sponsor.name, "tier": sponsor.tier, "is_active": sponsor.is_active}
    record_event(
        s,
        actor=user,
        action="sponsor.edit",
        entity_type="Sponsor",
        entity_id=str(sponsor.id),
        metadata={"old": before, "new": after},
    )
    return sponsor


def delete_sponsor(s: "Session", sponsor: "Sponsor", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="sponsor.delete",
        entity_type="Sponsor",
        entity_id=str(sponsor.id),
        metadata={"name": sponsor.name},
    )
    s.delete(sponsor)


def sponsors_by_tier(s: "Session") -> list[tuple[str, list["Sponsor"]]]:
    """
    Active sponsors grouped for the showcase: tiers in platinum, gold, silver,
    bronze order, each ordered by display_order. Empty tiers are left out.
    """
    from app.archope.modules.sponsors.models import Sponsor

    sponsors = (
        s.query(Sponsor)
        .filter(Sponsor.is_active.is_(True))
        .order_by(Sponsor.display_order.asc(), Sponsor.id.asc())
        .all()
    )
    grouped: dict[str, list[Sponsor]] = {t: [] for t in SPONSOR_TIERS}
    for sp in sponsors:
        tier = sp.tier if sp.tier in grouped else DEFAULT_SPONSOR_TIER
        grouped[tier].append(sp)
    return [(t, grouped[t]) for t in SPONSOR_TIERS if grouped[t]]

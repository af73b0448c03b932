from __future__ import annotations

from typing import Any

from flask import g, has_request_context, request
from sqlalchemy.orm import Session

from app.archope.models import AuditEvent, User

REASON_MAX_LEN = 512


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    # datetimes, decimals and the like
    return str(value)


def record_event(
    s: Session,
    *,
    actor: User | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | int | None = None,
    reason: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditEvent:
    """
    Add an audit row to the session. The caller commits it together with the
    change it describes, so a rolled back change leaves no trail.
    """
    in_request = has_request_context()
    ev = AuditEvent(
        request_id=getattr(g, "request_id", None) if in_request else None,
        actor_user_id=actor.id if actor else None,
        actor_email=actor.email if actor else None,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        reason=reason[:REASON_MAX_LEN] if reason else None,
        details=_jsonable(metadata) if metadata else None,
        ip_address=request.remote_addr if in_request else None,
    )
    s.add(ev)
    return ev


def recent_events(s: Session, *, limit: int = 20, action_prefix: str | None = None) -> list[AuditEvent]:
    q = s.query(AuditEvent)
    if action_prefix:
        q = q.filter(AuditEvent.action.startswith(action_prefix))
    return q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(limit).all()

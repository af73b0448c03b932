from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.archope.modules.chat.classifier import CLASSIFICATIONS, classify_messages

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.archope.modules.chat.models import ChatConversation

logger = logging.getLogger(__name__)

VALID_ROLES = ("user", "assistant")
_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{8,64}$")

EXPORT_HEADER = [
    "Session",
    "Name",
    "Email",
    "Classification",
    "Recommended courses",
    "Messages",
    "Started",
    "Last activity",
]


def validate_chat_payload(payload: Any, *, max_messages: int, max_chars: int) -> list[str]:
    if not isinstance(payload, dict):
        return ["Request body must be a JSON object."]
    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        return ["messages must be a non-empty list."]
    if len(messages) > max_messages:
        return [f"Too many messages (max {max_messages})."]

    errors = []
    for i, m in enumerate(messages):
        if not isinstance(m, dict):
            errors.append(f"messages[{i}] must be an object.")
            continue
        if m.get("role") not in VALID_ROLES:
            errors.append(f"messages[{i}].role must be one of: {', '.join(VALID_ROLES)}")
        content = m.get("content")
        if not isinstance(content, str) or not content.strip():
            errors.append(f"messages[{i}].content must be a non-empty string.")
        elif len(content) > max_chars:
            errors.append(f"messages[{i}].content is too long (max {max_chars} characters).")
    if not errors and messages[-1].get("role") != "user":
        errors.append("The last message must come from the user.")
    return errors


def normalize_messages(messages: list[dict]) -> list[dict[str, str]]:
    """Keep only role/content so nothing else reaches the gateway."""
    return [{"role": m["role"], "content": m["content"]} for m in messages]


def resolve_session_id(raw: Any) -> str:
    """Reuse a well-formed client session id, otherwise start a new one."""
    if isinstance(raw, str) and _SESSION_ID_RE.match(raw):
        return raw
    return uuid.uuid4().hex


def persist_exchange(
    s: "Session",
    *,
    session_id: str,
    messages: list[dict[str, str]],
    assistant_text: str,
    model: str,
    completed: bool,
) -> "ChatConversation":
    """
    Store one chat turn and reclassify the conversation.

    A new conversation stores the whole incoming history; an existing one only
    gets the latest user message, since earlier turns were stored already.
    """
    from app.archope.modules.chat.models import ChatConversation, ChatMessage

    now = datetime.utcnow()
    conv = s.query(ChatConversation).filter(ChatConversation.session_id == session_id).one_or_none()
    if conv is None:
        conv = ChatConversation(session_id=session_id, created_at=now, updated_at=now, metadata_json={})
        s.add(conv)
        incoming = messages
    else:
        incoming = messages[-1:]

    for m in incoming:
        conv.messages.append(ChatMessage(role=m["role"], content=m["content"], created_at=now))
    if assistant_text:
        conv.messages.append(ChatMessage(role="assistant", content=assistant_text, created_at=now))

    result = classify_messages([m.content for m in conv.messages if m.role == "user"])
    conv.classification = result.classification
    conv.recommended_courses = result.recommended_courses
    if result.student_name:
        conv.student_name = result.student_name
    if result.student_email:
        conv.student_email = result.student_email

    # Reassign rather than mutate: plain JSON columns do not track in-place changes.
    meta = dict(conv.metadata_json or {})
    meta.update(
        {
            "model": model,
            "completed": completed,
            "turns": int(meta.get("turns") or 0) + 1,
        }
    )
    if result.student_phone:
        meta["student_phone"] = result.student_phone
    conv.metadata_json = meta
    conv.updated_at = now
    s.flush()
    return conv


def classification_counts(s: "Session") -> dict[str, int]:
    from sqlalchemy import func

    from app.archope.modules.chat.models import ChatConversation

    counts = {c: 0 for c in CLASSIFICATIONS}
    rows = (
        s.query(ChatConversation.classification, func.count(ChatConversation.id))
        .group_by(ChatConversation.classification)
        .all()
    )
    total = 0
    for classification, n in rows:
        total += n
        if classification in counts:
            counts[classification] = n
    counts["total"] = total
    return counts


def message_counts(s: "Session", conversation_ids: list[int]) -> dict[int, int]:
    from sqlalchemy import func

    from app.archope.modules.chat.models import ChatMessage

    if not conversation_ids:
        return {}
    rows = (
        s.query(ChatMessage.conversation_id, func.count(ChatMessage.id))
        .filter(ChatMessage.conversation_id.in_(conversation_ids))
        .group_by(ChatMessage.conversation_id)
        .all()
    )
    return {cid: n for cid, n in rows}


def query_conversations(s: "Session", *, classification: str = "", search: str = "") -> "Query":
    from app.archope.modules.chat.models import ChatConversation

    q = s.query(ChatConversation)
    if classification == "none":
        q = q.filter(ChatConversation.classification.is_(None))
    elif classification:
        q = q.filter(ChatConversation.classification == classification)
    if search:
        like = f"%{search}%"
        q = q.filter((ChatConversation.student_name.ilike(like)) | (ChatConversation.student_email.ilike(like)))
    return q.order_by(ChatConversation.updated_at.desc(), ChatConversation.id.desc())


def export_rows(conversations: list["ChatConversation"], counts: dict[int, int]) -> list[list[Any]]:
    return [
        [
            c.session_id,
            c.student_name,
            c.student_email,
            c.classification,
            "; ".join(c.recommended_courses or []),
            counts.get(c.id, 0),
            c.created_at.isoformat(timespec="seconds") if c.created_at else "",
            c.updated_at.isoformat(timespec="seconds") if c.updated_at else "",
        ]
        for c in conversations
    ]

from __future__ import annotations

from flask import Blueprint, abort, render_template, request

from app.archope.db import db_session
from app.archope.modules.chat.classifier import CLASSIFICATION_LABELS, CLASSIFICATIONS
from app.archope.modules.chat.models import ChatConversation
from app.archope.modules.chat.service import (
    EXPORT_HEADER,
    classification_counts,
    export_rows,
    message_counts,
    query_conversations,
)
from app.archope.rbac import require_permission
from app.archope.utils import csv_response, paginate, parse_int

bp = Blueprint("chat", __name__)


def _filters() -> tuple[str, str]:
    return (request.args.get("classification") or "").strip(), (request.args.get("q") or "").strip()


@bp.get("/conversations")
@require_permission("chat.view")
def conversations_list():
    s = db_session()
    classification, search = _filters()
    page = paginate(
        query_conversations(s, classification=classification, search=search),
        parse_int(request.args.get("page"), 1) or 1,
    )
    return render_template(
        "admin/chat/list.html",
        page=page,
        counts=classification_counts(s),
        msg_counts=message_counts(s, [c.id for c in page["items"]]),
        classification=classification,
        search=search,
        classifications=CLASSIFICATIONS,
        labels=CLASSIFICATION_LABELS,
    )


@bp.get("/conversations/<int:conversation_id>")
@require_permission("chat.view")
def conversation_detail(conversation_id: int):
    s = db_session()
    conv = s.get(ChatConversation, conversation_id)
    if not conv:
        abort(404)
    return render_template("admin/chat/detail.html", conv=conv, labels=CLASSIFICATION_LABELS)


@bp.get("/conversations/export")
@require_permission("chat.export")
def conversations_export():
    s = db_session()
    classification, search = _filters()
    conversations = query_conversations(s, classification=classification, search=search).all()
    counts = message_counts(s, [c.id for c in conversations])
    return csv_response("conversations", EXPORT_HEADER, export_rows(conversations, counts))

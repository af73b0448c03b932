from __future__ import annotations

import logging

from flask import Blueprint, g, request

from app.archope.audit import record_event
from app.archope.db import db_session
from app.archope.modules.media.service import DEFAULT_FOLDER, MediaError, public_url, store_image
from app.archope.rbac import require_permission
from app.archope.storage import StorageError, get_storage

bp = Blueprint("media", __name__)
logger = logging.getLogger(__name__)


@bp.post("/media/upload")
@require_permission("media.upload")
def media_upload():
    f = request.files.get("file")
    if f is None or not f.filename:
        return {"error": "No file selected."}, 400

    folder = (request.form.get("folder") or DEFAULT_FOLDER).strip()
    storage = get_storage()
    try:
        key = store_image(storage, f, folder=folder)
    except MediaError as e:
        return {"error": str(e)}, 400
    except StorageError:
        logger.exception("Image upload failed (folder=%s)", folder)
        return {"error": "Upload failed. Please try again."}, 500

    s = db_session()
    record_event(
        s,
        actor=getattr(g, "current_user", None),
        action="media.upload",
        entity_type="Media",
        entity_id=key,
        metadata={"filename": f.filename, "content_type": f.mimetype},
    )
    s.commit()
    return {"key": key, "url": public_url(key)}, 201

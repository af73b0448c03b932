from __future__ import annotations

import logging
import secrets
import string
import time
from typing import TYPE_CHECKING

from flask import url_for

from app.archope.storage import StorageError

if TYPE_CHECKING:
    from werkzeug.datastructures import FileStorage
    from app.archope.storage import Storage

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
DEFAULT_FOLDER = "uploads"
ALLOWED_FOLDERS = ("uploads", "sponsors", "testimonials", "blog")

_KEY_ALPHABET = string.ascii_lowercase + string.digits

# The only types accepted and served. SVG is excluded: it can carry script.
IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}
EXTENSION_TYPES = {ext: mimetype for mimetype, ext in IMAGE_EXTENSIONS.items()} | {"jpeg": "image/jpeg"}


class MediaError(ValueError):
    pass


def served_content_type(key: str) -> str | None:
    """Content type for a stored key, or None when it is not a servable image."""
    _, _, ext = key.rpartition(".")
    return EXTENSION_TYPES.get(ext.lower()) if ext != key else None


def build_media_key(folder: str, content_type: str) -> str:
    """`<folder>/<millis>-<random>.<ext>`; the extension follows the mimetype, never the client filename."""
    ext = IMAGE_EXTENSIONS.get(content_type)
    if ext is None:
        raise MediaError("Only PNG, JPEG, GIF or WebP images are allowed.")
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(6))
    return f"{folder}/{millis}-{suffix}.{ext}"


def store_image(storage: "Storage", file: "FileStorage", *, folder: str = DEFAULT_FOLDER) -> str:
    """Validate and store an uploaded image. Returns the storage key."""
    if folder not in ALLOWED_FOLDERS:
        raise MediaError("Invalid upload folder.")

    content_type = (file.mimetype or "").lower()
    if not content_type.startswith("image/"):
        raise MediaError("Please choose an image file.")
    if content_type not in IMAGE_EXTENSIONS:
        raise MediaError("Only PNG, JPEG, GIF or WebP images are allowed.")

    data = file.read()
    if not data:
        raise MediaError("The file is empty.")
    if len(data) > MAX_IMAGE_BYTES:
        raise MediaError("Image must be 5MB or smaller.")

    key = build_media_key(folder, content_type)
    storage.put_bytes(key, data, content_type=content_type)
    return key


def public_url(key: str) -> str:
    return url_for("routes.media", key=key)


def image_url_from_form(storage: "Storage", file: "FileStorage | None", url_value: str | None, *, folder: str) -> str | None:
    """
    Image fields accept either an uploaded file or a pasted URL; an upload wins.
    """
    if file is not None and file.filename:
        try:
            return public_url(store_image(storage, file, folder=folder))
        except StorageError as e:
            logger.exception("Image upload failed (folder=%s)", folder)
            raise MediaError("Upload failed. Please try again.") from e
    return (url_value or "").strip() or None

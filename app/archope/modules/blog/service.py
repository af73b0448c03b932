from __future__ import annotations

import re
import unicodedata
from datetime import datetime
from typing import TYPE_CHECKING

from app.archope.audit import record_event
from app.archope.constants import DEFAULT_BLOG_AUTHOR
from app.archope.utils import clean

if TYPE_CHECKING:
    from sqlalchemy.orm import Query, Session
    from app.archope.models import User
    from app.archope.modules.blog.models import BlogPost

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def generate_slug(title: str) -> str:
    """
    URL slug from a title: lowercase, accents stripped, runs of anything else
    collapsed to "-", no leading/trailing "-".
    """
    # đ has no decomposition, so NFD alone would drop it
    text = (title or "").strip().lower().replace("đ", "d")
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _NON_ALNUM_RE.sub("-", text).strip("-")


def unique_slug(s: "Session", base: str, *, exclude_id: int | None = None) -> str:
    from app.archope.modules.blog.models import BlogPost

    base = base or "post"
    candidate = base
    n = 2
    while True:
        q = s.query(BlogPost.id).filter(BlogPost.slug == candidate)
        if exclude_id is not None:
            q = q.filter(BlogPost.id != exclude_id)
        if q.first() is None:
            return candidate
        candidate = f"{base}-{n}"
        n += 1


def validate_post_payload(payload: dict) -> list[str]:
    errors = []
    if not clean(payload.get("title")):
        errors.append("Title is required.")
    elif len(clean(payload.get("title"))) > 255:
        errors.append("Title must be at most 255 characters.")
    if not clean(payload.get("content")):
        errors.append("Content is required.")
    slug = clean(payload.get("slug"))
    if slug and generate_slug(slug) != slug:
        errors.append("Slug may only contain lowercase letters, digits and dashes.")
    return errors


def _apply(s: "Session", post: "BlogPost", payload: dict) -> None:
    post.title = clean(payload.get("title"))
    post.slug = unique_slug(s, clean(payload.get("slug")) or generate_slug(post.title), exclude_id=post.id)
    post.excerpt = clean(payload.get("excerpt")) or None
    post.content = clean(payload.get("content"))
    post.featured_image = clean(payload.get("featured_image")) or None
    post.author_name = clean(payload.get("author_name")) or DEFAULT_BLOG_AUTHOR


def create_post(s: "Session", payload: dict, user: "User", *, publish: bool = True) -> "BlogPost":
    from app.archope.modules.blog.models import BlogPost

    now = datetime.utcnow()
    post = BlogPost(created_at=now, updated_at=now)
    _apply(s, post, payload)
    post.published_at = now if publish else None
    s.add(post)
    s.flush()
    record_event(
        s,
        actor=user,
        action="blog.create",
        entity_type="BlogPost",
        entity_id=str(post.id),
        metadata={"slug": post.slug, "published": publish},
    )
    return post


def update_post(s: "Session", post: "BlogPost", payload: dict, user: "User") -> "BlogPost":
    old_slug = post.slug
    _apply(s, post, payload)
    post.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="blog.edit",
        entity_type="BlogPost",
        entity_id=str(post.id),
        metadata={"old_slug": old_slug, "slug": post.slug},
    )
    return post


def set_published(s: "Session", post: "BlogPost", published: bool, user: "User") -> None:
    if published == post.is_published:
        return
    post.published_at = datetime.utcnow() if published else None
    post.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="blog.publish" if published else "blog.unpublish",
        entity_type="BlogPost",
        entity_id=str(post.id),
    )


def delete_post(s: "Session", post: "BlogPost", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="blog.delete",
        entity_type="BlogPost",
        entity_id=str(post.id),
        metadata={"slug": post.slug, "title": post.title},
    )
    s.delete(post)


def published_posts(s: "Session") -> "Query":
    from app.archope.modules.blog.models import BlogPost

    return (
        s.query(BlogPost)
        .filter(BlogPost.published_at.isnot(None))
        .order_by(BlogPost.published_at.desc(), BlogPost.id.desc())
    )


def get_published_post(s: "Session", slug: str) -> "BlogPost | None":
    from app.archope.modules.blog.models import BlogPost

    return published_posts(s).filter(BlogPost.slug == slug).first()

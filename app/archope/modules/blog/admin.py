from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.archope.db import db_session
from app.archope.models import User
from app.archope.modules.blog.models import BlogPost
from app.archope.modules.blog.service import (
    create_post,
    delete_post,
    set_published,
    update_post,
    validate_post_payload,
)
from app.archope.modules.media.service import MediaError, image_url_from_form
from app.archope.rbac import require_permission
from app.archope.storage import get_storage
from app.archope.utils import parse_bool

bp = Blueprint("blog", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _payload() -> dict:
    storage = get_storage()
    featured_image = image_url_from_form(
        storage,
        request.files.get("featured_image_file"),
        request.form.get("featured_image"),
        folder="blog",
    )
    return {
        "title": request.form.get("title"),
        "slug": request.form.get("slug"),
        "excerpt": request.form.get("excerpt"),
        "content": request.form.get("content"),
        "featured_image": featured_image,
        "author_name": request.form.get("author_name"),
    }


@bp.get("/blog")
@require_permission("blog.view")
def posts_list():
    s = db_session()
    posts = s.query(BlogPost).order_by(BlogPost.created_at.desc(), BlogPost.id.desc()).all()
    return render_template("admin/blog/list.html", posts=posts)


@bp.get("/blog/new")
@require_permission("blog.edit")
def post_new_get():
    return render_template("admin/blog/edit.html", post=None)


@bp.post("/blog/new")
@require_permission("blog.edit")
def post_new_post():
    s = db_session()
    u = _current_user()
    try:
        payload = _payload()
    except MediaError as e:
        flash(str(e), "danger")
        return redirect(url_for("blog.post_new_get"))

    errors = validate_post_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("blog.post_new_get"))

    post = create_post(s, payload, u, publish=not parse_bool(request.form.get("draft")))
    s.commit()
    flash("Post created.", "success")
    return redirect(url_for("blog.post_edit_get", post_id=post.id))


@bp.get("/blog/<int:post_id>/edit")
@require_permission("blog.edit")
def post_edit_get(post_id: int):
    s = db_session()
    post = s.get(BlogPost, post_id)
    if not post:
        abort(404)
    return render_template("admin/blog/edit.html", post=post)


@bp.post("/blog/<int:post_id>/edit")
@require_permission("blog.edit")
def post_edit_post(post_id: int):
    s = db_session()
    u = _current_user()
    post = s.get(BlogPost, post_id)
    if not post:
        abort(404)

    try:
        payload = _payload()
    except MediaError as e:
        flash(str(e), "danger")
        return redirect(url_for("blog.post_edit_get", post_id=post_id))

    errors = validate_post_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("blog.post_edit_get", post_id=post_id))

    update_post(s, post, payload, u)
    s.commit()
    flash("Post updated.", "success")
    return redirect(url_for("blog.post_edit_get", post_id=post_id))


@bp.post("/blog/<int:post_id>/publish")
@require_permission("blog.edit")
def post_publish(post_id: int):
    s = db_session()
    u = _current_user()
    post = s.get(BlogPost, post_id)
    if not post:
        abort(404)
    published = parse_bool(request.form.get("published"))
    set_published(s, post, published, u)
    s.commit()
    flash("Post published." if published else "Post moved to drafts.", "success")
    return redirect(url_for("blog.posts_list"))


@bp.post("/blog/<int:post_id>/delete")
@require_permission("blog.edit")
def post_delete(post_id: int):
    s = db_session()
    u = _current_user()
    post = s.get(BlogPost, post_id)
    if not post:
        abort(404)
    delete_post(s, post, u)
    s.commit()
    flash("Post deleted.", "success")
    return redirect(url_for("blog.posts_list"))

from __future__ import annotations

from flask import Blueprint, abort, render_template, request

from app.archope.db import db_session
from app.archope.modules.blog.service import get_published_post, published_posts
from app.archope.utils import paginate, parse_int

bp = Blueprint("blog_public", __name__)


@bp.get("/blog")
def blog_list():
    s = db_session()
    page = paginate(published_posts(s), parse_int(request.args.get("page"), 1) or 1, per_page=12)
    return render_template("public/blog_list.html", page=page)


@bp.get("/blog/<slug>")
def blog_post(slug: str):
    s = db_session()
    post = get_published_post(s, slug)
    if post is None:
        abort(404)
    return render_template("public/blog_post.html", post=post)

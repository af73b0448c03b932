from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, redirect, request, url_for

from app.archope.models import User


def user_permissions(user: User | None) -> frozenset[str]:
    """Permission keys of the signed-in user, resolved once per request."""
    if not user or not user.is_active:
        return frozenset()
    cached = getattr(g, "permission_keys", None)
    if cached is not None and getattr(g, "permission_user_id", None) == user.id:
        return cached
    keys = frozenset(user.permission_keys())
    g.permission_keys = keys
    g.permission_user_id = user.id
    return keys


def user_has_permission(user: User | None, permission_key: str) -> bool:
    return permission_key in user_permissions(user)


def _wants_json() -> bool:
    return request.path.endswith(".json") or request.is_json or request.accept_mimetypes.best == "application/json"


def _login_redirect():
    nxt = request.full_path if request.query_string else request.path
    return redirect(url_for("auth.login_get", next=nxt))


def require_permission(permission_key: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Guard an admin view. Anonymous visitors go to the login page (or get a
    401 for JSON endpoints); signed-in staff without the key get a 403.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            user: User | None = getattr(g, "current_user", None)
            if not user or not user.is_active:
                if _wants_json():
                    return {"error": "Authentication required."}, 401
                return _login_redirect()
            if not user_has_permission(user, permission_key):
                g.missing_permission = permission_key
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator

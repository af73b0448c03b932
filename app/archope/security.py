import hmac
import secrets
from collections import deque
from datetime import datetime, timedelta

from flask import Request, current_app, session

CSRF_SESSION_KEY = "csrf_token"


def ensure_csrf_token() -> str:
    """Return the session's CSRF token, minting one on first use."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[CSRF_SESSION_KEY] = token
    return token


def _submitted_token(req: Request) -> str | None:
    token = req.headers.get("X-CSRF-Token") or req.form.get("csrf_token")
    if not token and req.is_json:
        body = req.get_json(silent=True)
        if isinstance(body, dict):
            token = body.get("csrf_token")
    return token if isinstance(token, str) else None


def validate_csrf(req: Request) -> bool:
    """Admin forms send the token as a field; fetch() callers use the header or the JSON body."""
    expected = session.get(CSRF_SESSION_KEY)
    submitted = _submitted_token(req)
    if not expected or not submitted:
        return False
    return hmac.compare_digest(submitted, expected)


class SlidingWindowLimiter:
    """In-process attempt counter keyed by client (usually the remote IP)."""

    def __init__(self, limit: int, window_seconds: int) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._hits: dict[str, deque[datetime]] = {}
        self._last_sweep = datetime.utcnow()

    def __len__(self) -> int:
        """Number of clients currently tracked."""
        return len(self._hits)

    def _prune(self, key: str, now: datetime) -> deque[datetime]:
        cutoff = now - timedelta(seconds=self.window_seconds)
        hits = self._hits.get(key)
        if hits is None:
            return deque()
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[key]
        return hits

    def _sweep(self, now: datetime) -> None:
        # Clients that never come back would otherwise stay tracked forever.
        if now - self._last_sweep < timedelta(seconds=self.window_seconds):
            return
        self._last_sweep = now
        for key in list(self._hits):
            self._prune(key, now)

    def is_limited(self, key: str) -> bool:
        return len(self._prune(key, datetime.utcnow())) >= self.limit

    def hit(self, key: str) -> None:
        now = datetime.utcnow()
        self._sweep(now)
        hits = self._prune(key, now)
        hits.append(now)
        self._hits[key] = hits

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._hits.clear()
        else:
            self._hits.pop(key, None)


def app_limiter(name: str, *, limit_key: str, window_key: str, default_limit: int, default_window: int) -> SlidingWindowLimiter:
    """
    One limiter per app and purpose, sized from config on first use.
    Limits are per process; each gunicorn worker counts on its own.
    """
    limiters = current_app.extensions.setdefault("rate_limiters", {})
    limiter = limiters.get(name)
    if limiter is None:
        limiter = SlidingWindowLimiter(
            limit=int(current_app.config.get(limit_key) or default_limit),
            window_seconds=int(current_app.config.get(window_key) or default_window),
        )
        limiters[name] = limiter
    return limiter

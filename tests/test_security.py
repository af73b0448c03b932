import pytest

from app.archope.security import SlidingWindowLimiter
from app.archope.utils import safe_next


def test_limiter_blocks_after_limit_per_client():
    limiter = SlidingWindowLimiter(limit=2, window_seconds=60)
    limiter.hit("203.0.113.1")
    assert not limiter.is_limited("203.0.113.1")
    limiter.hit("203.0.113.1")
    assert limiter.is_limited("203.0.113.1")
    # Checking an unseen client neither limits nor tracks it.
    assert not limiter.is_limited("203.0.113.2")
    assert len(limiter) == 1

    limiter.reset("203.0.113.1")
    assert not limiter.is_limited("203.0.113.1")


def test_limiter_forgets_clients_once_their_window_expires():
    limiter = SlidingWindowLimiter(limit=5, window_seconds=0)
    for i in range(2000):
        limiter.hit(f"10.0.{i // 256}.{i % 256}")
    # Only the newest client can still be inside its (empty) window.
    assert len(limiter) <= 1
    limiter.is_limited("10.0.7.207")
    assert len(limiter) == 0


@pytest.mark.parametrize(
    "nxt",
    [None, "", "https://evil.example/", "//evil.example", "/\\evil.example", "/\t/evil.example", "javascript:alert(1)"],
)
def test_safe_next_rejects_offsite_targets(nxt):
    assert safe_next(nxt, "/admin/") == "/admin/"


def test_safe_next_keeps_local_paths():
    assert safe_next(" /admin/students?status=pending ", "/admin/") == "/admin/students?status=pending"

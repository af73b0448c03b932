from datetime import datetime

from app.archope.db import session_scope
from app.archope.modules.blog.models import BlogPost
from app.archope.modules.chat.models import ChatConversation
from app.archope.modules.statistics.service import compute_statistics, impact_counters
from app.archope.modules.students.models import Student


def _student(name, status, income, created_at):
    return Student(
        full_name=name,
        phone="0901234567",
        email=f"{name.lower()}@example.com",
        goal="x" * 20,
        income=income,
        status=status,
        created_at=created_at,
        updated_at=created_at,
    )


def _seed(app):
    with session_scope(app) as s:
        s.add_all(
            [
                _student("Anh", "approved", "under_10m", datetime(2025, 1, 5)),
                _student("Binh", "pending", "under_10m", datetime(2025, 1, 20)),
                _student("Cuong", "rejected", "over_20m", datetime(2024, 12, 1)),
                BlogPost(title="Live", slug="live", content="x", published_at=datetime(2025, 1, 1)),
                BlogPost(title="Draft", slug="draft", content="x"),
                ChatConversation(session_id="session-aaaa", classification="SPONSOR"),
                ChatConversation(session_id="session-bbbb", classification=None),
            ]
        )


def test_compute_statistics(app):
    _seed(app)
    with session_scope(app) as s:
        stats = compute_statistics(s)
    assert stats["students"] == {"total": 3, "pending": 1, "approved": 1, "rejected": 1}
    assert stats["blog_posts"] == 2
    assert stats["published_posts"] == 1
    assert stats["conversations"]["SPONSOR"] == 1
    assert stats["conversations"]["total"] == 2
    assert stats["monthly_registrations"] == [{"month": "2024-12", "count": 1}, {"month": "2025-01", "count": 2}]
    assert [(row["income"], row["count"]) for row in stats["income_distribution"]] == [
        ("under_10m", 2),
        ("10_20m", 0),
        ("over_20m", 1),
    ]


def test_impact_counters(app):
    _seed(app)
    with session_scope(app) as s:
        assert impact_counters(s) == {"students": 1, "volunteers": 0, "sponsors": 0, "posts": 1}


def test_statistics_pages(app, admin_client):
    _seed(app)
    r = admin_client.get("/admin/statistics")
    assert r.status_code == 200
    r = admin_client.get("/admin/statistics.json")
    assert r.status_code == 200
    assert r.json["students"]["total"] == 3

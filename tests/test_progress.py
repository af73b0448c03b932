import pytest

from app.archope.db import session_scope
from app.archope.models import AuditEvent
from app.archope.modules.progress.models import StudentProgress
from app.archope.modules.progress.service import validate_progress_payload
from app.archope.modules.students.models import Student


@pytest.fixture()
def student_ids(app):
    with session_scope(app) as s:
        approved = Student(full_name="Vo Thi Mai", phone="0901111111", email="mai@example.com", goal="x" * 20, income="10_20m", status="approved")
        pending = Student(full_name="Do Van Nam", phone="0902222222", email="nam@example.com", goal="x" * 20, income="10_20m", status="pending")
        s.add_all([approved, pending])
        s.flush()
        return approved.id, pending.id


def test_validate_progress_payload(app, student_ids):
    approved_id, pending_id = student_ids
    with session_scope(app) as s:
        ok = {"student_id": approved_id, "module_name": "Tax Accounting", "progress_percent": "40"}
        assert validate_progress_payload(s, ok) == []
        assert validate_progress_payload(s, {**ok, "student_id": pending_id})
        assert validate_progress_payload(s, {**ok, "module_name": "Basket weaving"})
        assert validate_progress_payload(s, {**ok, "progress_percent": "101"})
        assert validate_progress_payload(s, {**ok, "progress_percent": "-1"})


def test_progress_crud_sets_completion(app, admin_client, csrf_token, student_ids):
    approved_id, _ = student_ids
    r = admin_client.post(
        "/admin/progress/new",
        data={"student_id": approved_id, "module_name": "Tax Accounting", "progress_percent": "100", "csrf_token": csrf_token},
        follow_redirects=True,
    )
    assert b"Progress added." in r.data
    with session_scope(app) as s:
        item = s.query(StudentProgress).one()
        assert item.completed_at is not None
        item_id = item.id

    r = admin_client.post(
        f"/admin/progress/{item_id}/edit",
        data={"student_id": approved_id, "module_name": "Tax Accounting", "progress_percent": "60", "csrf_token": csrf_token},
        follow_redirects=True,
    )
    assert b"Progress updated." in r.data
    with session_scope(app) as s:
        item = s.get(StudentProgress, item_id)
        assert item.progress_percent == 60
        assert item.completed_at is None

    r = admin_client.get(f"/admin/progress?student_id={approved_id}")
    assert b"Tax Accounting" in r.data

    r = admin_client.post(f"/admin/progress/{item_id}/delete", data={"csrf_token": csrf_token}, follow_redirects=True)
    assert b"Progress deleted." in r.data
    with session_scope(app) as s:
        assert s.query(StudentProgress).count() == 0
        actions = {e.action for e in s.query(AuditEvent).all()}
        assert {"progress.create", "progress.edit", "progress.delete"} <= actions


def test_progress_for_pending_student_rejected(app, admin_client, csrf_token, student_ids):
    _, pending_id = student_ids
    admin_client.post(
        "/admin/progress/new",
        data={"student_id": pending_id, "module_name": "Tax Accounting", "progress_percent": "10", "csrf_token": csrf_token},
    )
    with session_scope(app) as s:
        assert s.query(StudentProgress).count() == 0

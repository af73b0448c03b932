from app.archope.db import session_scope
from app.archope.modules.notifications.models import EmailNotification
from app.archope.modules.progress.models import StudentProgress
from app.archope.modules.site_settings.models import SiteSetting
from app.archope.modules.students.models import Student
from app.archope.modules.students.service import validate_registration_payload
from app.archope.utils import paginate

VALID = {
    "full_name": "Nguyen Thi Lan",
    "phone": "0901234567",
    "email": "Lan@Example.com",
    "goal": "Find a better job in an international company",
    "income": "under_10m",
}


def _add_student(app, **kw):
    data = {**VALID, "email": "lan@example.com", "status": "pending"}
    data.update(kw)
    with session_scope(app) as s:
        st = Student(**data)
        s.add(st)
        s.flush()
        return st.id


def test_validate_registration_payload_field_order():
    errors = validate_registration_payload({"full_name": "A", "phone": "123", "email": "x", "goal": "short", "income": "?"})
    assert errors == [
        "Full name must be at least 2 characters.",
        "Phone number must have 10-11 digits.",
        "Email is invalid.",
        "Goal must be at least 10 characters.",
        "Please choose an income level.",
    ]
    assert validate_registration_payload(VALID) == []


def test_register_shows_first_error_only(client, csrf_token):
    r = client.post("/register", data={**VALID, "phone": "12", "email": "bad", "csrf_token": csrf_token}, follow_redirects=True)
    assert r.status_code == 200
    assert b"Phone number must have 10-11 digits." in r.data
    assert b"Email is invalid." not in r.data


def test_register_creates_pending_student_and_welcome_email(app, client, csrf_token):
    r = client.post("/register", data={**VALID, "csrf_token": csrf_token}, follow_redirects=True)
    assert r.status_code == 200
    assert b"Thank you! We will contact you as soon as possible." in r.data

    with session_scope(app) as s:
        st = s.query(Student).one()
        assert st.status == "pending"
        assert st.email == "lan@example.com"
        n = s.query(EmailNotification).one()
        assert n.email_type == "welcome"
        assert n.student_id == st.id
        # No provider key: the email is logged and recorded as sent.
        assert n.status == "sent"


def test_register_auto_approve_setting(app, client, csrf_token):
    with session_scope(app) as s:
        s.add(SiteSetting(key="enable_auto_approve", value="1"))
    client.post("/register", data={**VALID, "csrf_token": csrf_token})
    with session_scope(app) as s:
        assert s.query(Student).one().status == "approved"


def test_register_without_notifications(app, client, csrf_token):
    with session_scope(app) as s:
        s.add(SiteSetting(key="enable_notifications", value="0"))
    client.post("/register", data={**VALID, "csrf_token": csrf_token})
    with session_scope(app) as s:
        assert s.query(Student).count() == 1
        assert s.query(EmailNotification).count() == 0


def test_admin_status_change_sends_email(app, admin_client, csrf_token):
    sid = _add_student(app)
    r = admin_client.post(
        f"/admin/students/{sid}/status",
        data={"status": "approved", "csrf_token": csrf_token},
        follow_redirects=True,
    )
    assert r.status_code == 200
    assert b"marked approved" in r.data

    with session_scope(app) as s:
        assert s.get(Student, sid).status == "approved"
        n = s.query(EmailNotification).one()
        assert n.email_type == "approved"
        assert n.subject.startswith("Congratulations")

    # Same status again is a no-op and sends nothing.
    r = admin_client.post(
        f"/admin/students/{sid}/status",
        data={"status": "approved", "csrf_token": csrf_token},
        follow_redirects=True,
    )
    assert b"Status unchanged." in r.data
    with session_scope(app) as s:
        assert s.query(EmailNotification).count() == 1


def test_admin_status_change_rejects_unknown_status(app, admin_client, csrf_token):
    sid = _add_student(app)
    r = admin_client.post(f"/admin/students/{sid}/status", data={"status": "maybe", "csrf_token": csrf_token}, follow_redirects=True)
    assert b"Invalid status." in r.data
    with session_scope(app) as s:
        assert s.get(Student, sid).status == "pending"


def test_bulk_status(app, admin_client, csrf_token):
    a = _add_student(app, full_name="Student A", email="a@example.com")
    b = _add_student(app, full_name="Student B", email="b@example.com")
    c = _add_student(app, full_name="Student C", email="c@example.com", status="rejected")
    r = admin_client.post(
        "/admin/students/bulk-status",
        data={"student_ids": [str(a), str(b), str(c)], "status": "rejected", "csrf_token": csrf_token},
        follow_redirects=True,
    )
    assert b"2 student(s) marked rejected." in r.data
    with session_scope(app) as s:
        assert {st.status for st in s.query(Student).all()} == {"rejected"}
        assert s.query(EmailNotification).filter(EmailNotification.email_type == "rejected").count() == 2


def test_bulk_status_requires_selection(admin_client, csrf_token):
    r = admin_client.post("/admin/students/bulk-status", data={"status": "approved", "csrf_token": csrf_token}, follow_redirects=True)
    assert b"Select at least one student." in r.data


def test_students_list_search_and_filter(app, admin_client):
    _add_student(app, full_name="Tran Van Minh", email="minh@example.com")
    _add_student(app, full_name="Le Thi Hoa", email="hoa@example.com", status="approved")
    r = admin_client.get("/admin/students?q=minh")
    assert b"Tran Van Minh" in r.data
    assert b"Le Thi Hoa" not in r.data
    r = admin_client.get("/admin/students?status=approved")
    assert b"Le Thi Hoa" in r.data
    assert b"Tran Van Minh" not in r.data


def test_students_list_clamps_page_past_the_end(app, admin_client):
    for i in range(30):
        _add_student(app, full_name=f"Student {i:02d}", email=f"s{i}@example.com")
    r = admin_client.get("/admin/students?page=2")
    assert b"Showing 26-30 of 30" in r.data

    r = admin_client.get("/admin/students?page=7")
    assert r.status_code == 200
    assert b"Showing 26-30 of 30" in r.data

    r = admin_client.get("/admin/students?page=999999999999999999999")
    assert r.status_code == 200
    assert b"Showing 26-30 of 30" in r.data


def test_paginate_empty_query_stays_on_first_page(app):
    with session_scope(app) as s:
        page = paginate(s.query(Student), 5)
    assert page["page"] == 1
    assert (page["first"], page["last"], page["total"]) == (0, 0, 0)
    assert not page["has_prev"] and not page["has_next"]


def test_students_export_csv_has_bom(app, admin_client):
    _add_student(app, full_name="Nguyễn Văn An")
    r = admin_client.get("/admin/students/export")
    assert r.status_code == 200
    assert r.mimetype == "text/csv"
    assert r.data.startswith(b"\xef\xbb\xbf")
    text = r.data.decode("utf-8-sig")
    assert text.splitlines()[0] == "Full name,Email,Phone,Goal,Income,Status,Registered"
    assert "Nguyễn Văn An" in text
    assert "attachment;" in r.headers["Content-Disposition"]


def test_portal_lookup_shows_progress(app, client):
    sid = _add_student(app, status="approved")
    with session_scope(app) as s:
        s.add_all(
            [
                StudentProgress(student_id=sid, module_name="Tax Accounting", progress_percent=100),
                StudentProgress(student_id=sid, module_name="Accounting Software", progress_percent=50),
            ]
        )
    r = client.get("/portal?email=LAN@example.com")
    assert r.status_code == 200
    assert b"Hello, Nguyen Thi Lan" in r.data
    assert b"Overall progress: 75%" in r.data
    assert b"Tax Accounting" in r.data


def test_portal_unknown_email(client):
    r = client.get("/portal?email=nobody@example.com")
    assert r.status_code == 200
    assert b"No student found with this email." in r.data


def test_deleting_student_cascades_progress(app):
    sid = _add_student(app, status="approved")
    with session_scope(app) as s:
        s.add(StudentProgress(student_id=sid, module_name="Tax Accounting", progress_percent=10))
    with session_scope(app) as s:
        s.delete(s.get(Student, sid))
    with session_scope(app) as s:
        assert s.query(StudentProgress).count() == 0

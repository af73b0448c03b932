from app.archope.db import session_scope
from app.archope.modules.volunteers.models import Volunteer
from app.archope.modules.volunteers.service import skill_labels, validate_volunteer_payload

VALID = {
    "full_name": "Pham Minh Chau",
    "email": "chau@example.com",
    "phone": "0912345678",
    "skills": ["teaching", "mentoring"],
    "availability": "weekend",
    "motivation": "I want to give back to the community that helped me.",
}


def test_validate_volunteer_payload():
    assert validate_volunteer_payload(VALID) == []
    errors = validate_volunteer_payload({**VALID, "skills": [], "motivation": "too short"})
    assert errors == ["Please choose at least one skill.", "Motivation must be at least 20 characters."]
    assert "Unknown skill selected." in validate_volunteer_payload({**VALID, "skills": ["juggling"]})


def test_skill_labels():
    assert skill_labels(["teaching", "tech"]) == "English teaching, Technical support"


def test_volunteer_form_renders(client):
    r = client.get("/volunteer")
    assert r.status_code == 200
    assert b"Become a volunteer" in r.data


def test_volunteer_signup(app, client, csrf_token):
    r = client.post("/volunteer", data={**VALID, "csrf_token": csrf_token}, follow_redirects=True)
    assert r.status_code == 200
    assert b"Thank you for signing up!" in r.data
    with session_scope(app) as s:
        v = s.query(Volunteer).one()
        assert v.status == "pending"
        assert v.skills == ["teaching", "mentoring"]


def test_volunteer_signup_error_rerenders_form(app, client, csrf_token):
    r = client.post("/volunteer", data={**VALID, "email": "nope", "csrf_token": csrf_token})
    assert r.status_code == 400
    assert b"Email is invalid." in r.data
    # The typed name is kept in the form.
    assert b"Pham Minh Chau" in r.data
    with session_scope(app) as s:
        assert s.query(Volunteer).count() == 0


def test_admin_volunteer_status_and_export(app, admin_client, csrf_token):
    with session_scope(app) as s:
        v = Volunteer(
            full_name="Pham Minh Chau",
            email="chau@example.com",
            phone="0912345678",
            skills=["tech"],
            availability="weekend",
            motivation="x" * 30,
        )
        s.add(v)
        s.flush()
        vid = v.id

    r = admin_client.get("/admin/volunteers")
    assert r.status_code == 200
    assert b"Pham Minh Chau" in r.data

    r = admin_client.post(f"/admin/volunteers/{vid}/status", data={"status": "approved", "csrf_token": csrf_token}, follow_redirects=True)
    assert b"Pham Minh Chau marked approved." in r.data
    with session_scope(app) as s:
        assert s.get(Volunteer, vid).status == "approved"

    r = admin_client.get("/admin/volunteers/export")
    text = r.data.decode("utf-8-sig")
    assert text.splitlines()[0] == "Full name,Email,Phone,Skills,Availability,Motivation,Status,Registered"
    assert "Technical support" in text

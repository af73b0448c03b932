import io
import json
import urllib.error

import pytest

from app.archope.db import session_scope
from app.archope.modules.chat.models import ChatConversation


def _event(content):
    return ("data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n\n").encode("utf-8")


UPSTREAM = _event("Chào bạn! ") + _event("Bạn muốn học khóa nào?") + b"data: [DONE]\n\n"
FIRST_USER = "Tôi muốn đăng ký học, email của tôi là lan@example.com"


@pytest.fixture()
def gateway(app, monkeypatch):
    """Stub the LLM gateway; `calls` collects the JSON bodies sent upstream."""
    app.config["LLM_API_KEY"] = "test-key"
    state = {"calls": [], "body": UPSTREAM, "error": None}

    def fake_urlopen(req, timeout=None):
        state["calls"].append({"url": req.full_url, "auth": req.get_header("Authorization"), "json": json.loads(req.data)})
        if state["error"] is not None:
            code = state["error"]
            raise urllib.error.HTTPError(req.full_url, code, "error", {}, io.BytesIO(b"upstream says no"))
        return io.BytesIO(state["body"])

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
    return state


def _chat(client, messages, session_id=None):
    payload = {"messages": messages}
    if session_id:
        payload["session_id"] = session_id
    return client.post("/api/chat", json=payload)


def test_streams_upstream_bytes_and_persists_transcript(app, client, gateway):
    r = _chat(client, [{"role": "user", "content": FIRST_USER}])
    assert r.status_code == 200
    assert r.mimetype == "text/event-stream"
    assert r.headers["Access-Control-Allow-Origin"] == "*"
    assert r.get_data() == UPSTREAM
    session_id = r.headers["X-Chat-Session"]

    sent = gateway["calls"][0]
    assert sent["auth"] == "Bearer test-key"
    assert sent["json"]["stream"] is True
    assert sent["json"]["messages"][0]["role"] == "system"
    assert sent["json"]["messages"][1] == {"role": "user", "content": FIRST_USER}

    with session_scope(app) as s:
        conv = s.query(ChatConversation).filter(ChatConversation.session_id == session_id).one()
        assert [(m.role, m.content) for m in conv.messages] == [
            ("user", FIRST_USER),
            ("assistant", "Chào bạn! Bạn muốn học khóa nào?"),
        ]
        assert conv.classification == "HIGH_POTENTIAL"
        assert conv.student_email == "lan@example.com"
        assert conv.metadata_json["completed"] is True
        assert conv.metadata_json["turns"] == 1


def test_follow_up_turn_appends_to_same_conversation(app, client, gateway):
    r = _chat(client, [{"role": "user", "content": "Xin chào"}])
    r.get_data()
    session_id = r.headers["X-Chat-Session"]

    history = [
        {"role": "user", "content": "Xin chào"},
        {"role": "assistant", "content": "Chào bạn! Bạn muốn học khóa nào?"},
        {"role": "user", "content": "Công ty mình muốn tài trợ"},
    ]
    r = _chat(client, history, session_id=session_id)
    r.get_data()
    assert r.headers["X-Chat-Session"] == session_id

    with session_scope(app) as s:
        conv = s.query(ChatConversation).one()
        assert [m.role for m in conv.messages] == ["user", "assistant", "user", "assistant"]
        assert conv.classification == "SPONSOR"
        assert conv.metadata_json["turns"] == 2


def test_malformed_session_id_gets_a_new_one(client, gateway):
    r = _chat(client, [{"role": "user", "content": "hi"}], session_id="../../etc")
    r.get_data()
    assert r.headers["X-Chat-Session"] != "../../etc"
    assert len(r.headers["X-Chat-Session"]) == 32


@pytest.mark.parametrize(
    "payload, error",
    [
        ({"messages": []}, "messages must be a non-empty list."),
        ({"messages": "hi"}, "messages must be a non-empty list."),
        ({"messages": [{"role": "system", "content": "x"}]}, "messages[0].role must be one of: user, assistant"),
        ({"messages": [{"role": "user", "content": "  "}]}, "messages[0].content must be a non-empty string."),
        ({"messages": [{"role": "assistant", "content": "x"}]}, "The last message must come from the user."),
    ],
)
def test_validation_errors(client, gateway, payload, error):
    r = client.post("/api/chat", json=payload)
    assert r.status_code == 400
    assert r.json["error"] == error
    assert gateway["calls"] == []


def test_non_json_body(client, gateway):
    r = client.post("/api/chat", data="not json", content_type="text/plain")
    assert r.status_code == 400
    assert r.json["error"] == "Request body must be a JSON object."


def test_missing_api_key_is_500(app, client):
    r = _chat(client, [{"role": "user", "content": "hi"}])
    assert r.status_code == 500
    assert r.json == {"error": "The chat assistant is not configured."}


@pytest.mark.parametrize("code, expected", [(429, 429), (402, 402), (500, 500), (503, 500)])
def test_upstream_errors_are_mapped(app, client, gateway, code, expected):
    gateway["error"] = code
    r = _chat(client, [{"role": "user", "content": "hi"}])
    assert r.status_code == expected
    assert "error" in r.json
    with session_scope(app) as s:
        assert s.query(ChatConversation).count() == 0


def test_rate_limit_per_client(app, client, gateway):
    app.config["CHAT_RATE_LIMIT"] = 2
    for n in ("1", "2"):
        r = _chat(client, [{"role": "user", "content": n}])
        assert r.status_code == 200
        r.get_data()
    r = _chat(client, [{"role": "user", "content": "3"}])
    assert r.status_code == 429
    assert r.json["error"] == "Too many requests, please try again later."


def test_preflight(client):
    r = client.open("/api/chat", method="OPTIONS")
    assert r.status_code == 204
    assert r.headers["Access-Control-Allow-Origin"] == "*"
    assert "content-type" in r.headers["Access-Control-Allow-Headers"]


def test_stream_without_done_marker_is_saved(app, client, gateway):
    gateway["body"] = _event("Half an ans")
    r = _chat(client, [{"role": "user", "content": "hi"}])
    r.get_data()
    with session_scope(app) as s:
        conv = s.query(ChatConversation).one()
        assert conv.messages[-1].content == "Half an ans"


def test_admin_conversations_views(app, admin_client, client, gateway):
    r = _chat(client, [{"role": "user", "content": FIRST_USER}])
    r.get_data()

    r = admin_client.get("/admin/conversations?classification=HIGH_POTENTIAL")
    assert r.status_code == 200
    assert b"lan@example.com" in r.data

    r = admin_client.get("/admin/conversations?classification=SPONSOR")
    assert b"lan@example.com" not in r.data

    with session_scope(app) as s:
        conv_id = s.query(ChatConversation).one().id
    r = admin_client.get(f"/admin/conversations/{conv_id}")
    assert r.status_code == 200
    assert "Bạn muốn học khóa nào?".encode() in r.data

    r = admin_client.get("/admin/conversations/export")
    text = r.data.decode("utf-8-sig")
    assert text.splitlines()[0] == "Session,Name,Email,Classification,Recommended courses,Messages,Started,Last activity"
    assert "lan@example.com" in text


def test_client_disconnect_still_saves_user_turn(app, client, gateway):
    r = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Xin chào"}]}, buffered=False)
    assert r.status_code == 200
    first = next(iter(r.response))
    assert first
    r.close()

    with session_scope(app) as s:
        conv = s.query(ChatConversation).one()
        assert conv.messages[0].role == "user"
        assert conv.messages[0].content == "Xin chào"
        assert conv.metadata_json["completed"] is False


class _BrokenUpstream:
    """Delivers one event, then the connection drops."""

    def __init__(self):
        self.reads = 0
        self.closed = False

    def read1(self, size):
        self.reads += 1
        if self.reads == 1:
            return _event("Chào")
        raise OSError("connection reset by peer")

    def close(self):
        self.closed = True


def test_upstream_read_error_marks_conversation_incomplete(app, client, gateway, monkeypatch):
    upstream = _BrokenUpstream()
    monkeypatch.setattr("urllib.request.urlopen", lambda req, timeout=None: upstream)

    r = _chat(client, [{"role": "user", "content": "hi"}])
    assert r.status_code == 200
    assert r.get_data() == _event("Chào")
    assert upstream.closed

    with session_scope(app) as s:
        conv = s.query(ChatConversation).one()
        assert conv.messages[-1].content == "Chào"
        assert conv.metadata_json["completed"] is False


def test_persistence_failure_does_not_break_stream(app, client, gateway, monkeypatch):
    def broken_persist(*args, **kwargs):
        raise RuntimeError("database went away")

    monkeypatch.setattr("app.archope.modules.chat.api.persist_exchange", broken_persist)

    r = _chat(client, [{"role": "user", "content": "hi"}])
    assert r.status_code == 200
    assert r.get_data() == UPSTREAM

    with session_scope(app) as s:
        assert s.query(ChatConversation).count() == 0

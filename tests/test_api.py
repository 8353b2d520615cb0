from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from conftest import make_reply
from gembreak.api.utils import ADMIN_COOKIE, USER_COOKIE, create_access_token
from gembreak.database.config.config import settings
from gembreak.database.core.stats import display_role
from gembreak.database.entities import MessageRole


@pytest.fixture
def admin_client(client, admin_credentials):
    response = client.post("/api/auth/login", json=admin_credentials)
    assert response.status_code == 200
    return client


def _new_invite_code(admin_client) -> str:
    response = admin_client.post("/api/admin/invite-codes")
    assert response.status_code == 200
    return response.json()["inviteCode"]["code"]


def _register(client, code, username="alice", password="pw123456"):
    return client.post(
        "/api/auth/register",
        json={"username": username, "password": password, "inviteCodeToUse": code},
    )


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# --- admin auth ---------------------------------------------------------------

def test_admin_login_without_configured_credentials_is_server_error(client, monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_USERNAME", None)

    response = client.post("/api/auth/login", json={"username": "admin", "password": "x"})

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_admin_login_rejects_wrong_password(client, admin_credentials):
    response = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})

    assert response.status_code == 401
    assert ADMIN_COOKIE not in response.cookies


def test_admin_login_sets_session_cookie(client, admin_credentials):
    response = client.post("/api/auth/login", json=admin_credentials)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert ADMIN_COOKIE in response.cookies


def test_admin_routes_require_session(client):
    for path in ("/api/admin/metrics", "/api/admin/users", "/api/admin/system_prompts", "/api/admin/invite-codes"):
        response = client.get(path)
        assert response.status_code == 401, path


def test_admin_routes_reject_user_token(client):
    token = create_access_token({"userId": uuid.uuid4().hex, "username": "bob"})

    response = client.get("/api/admin/metrics", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_expired_admin_token_is_rejected(client):
    token = create_access_token({"username": "admin", "isAdmin": True}, expires_minutes=-1)

    response = client.get("/api/admin/metrics", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["error"] == "Admin session expired or invalid"


def test_admin_logout_clears_session(admin_client):
    assert admin_client.post("/api/auth/logout").status_code == 200
    assert admin_client.get("/api/admin/metrics").status_code == 401


# --- registration and user auth ---------------------------------------------------

def test_register_with_admin_invite_code(admin_client):
    code = _new_invite_code(admin_client)

    response = _register(admin_client, code)

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "alice"
    assert uuid.UUID(body["userId"]).hex == body["userId"]
    assert USER_COOKIE in response.cookies

    codes = admin_client.get("/api/admin/invite-codes").json()["inviteCodes"]
    assert [(c["code"], c["isUsed"], c["usedBy"]) for c in codes] == [(code, True, body["userId"])]


def test_registered_user_receives_own_invite_code(admin_client):
    _register(admin_client, _new_invite_code(admin_client))

    response = admin_client.get("/api/user/me/invite-code")

    assert response.status_code == 200
    body = response.json()
    assert len(body["inviteCode"]) == 16
    assert body["isInviteCodeUsed"] is False

    # The granted code admits another user.
    second = _register(admin_client, body["inviteCode"], username="bob")
    assert second.status_code == 200


def test_invite_code_is_single_use(admin_client):
    code = _new_invite_code(admin_client)
    assert _register(admin_client, code).status_code == 200

    response = _register(admin_client, code, username="bob")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid or already used invite code."


def test_duplicate_username_conflicts(admin_client):
    _register(admin_client, _new_invite_code(admin_client), username="alice")
    code = _new_invite_code(admin_client)

    response = _register(admin_client, code, username="Alice")

    assert response.status_code == 409
    # The code is not consumed by a failed registration.
    codes = {c["code"]: c["isUsed"] for c in admin_client.get("/api/admin/invite-codes").json()["inviteCodes"]}
    assert codes[code] is False


def test_register_requires_all_fields(client):
    response = client.post("/api/auth/register", json={"username": "alice", "password": "pw"})

    assert response.status_code == 400


def test_user_login_and_logout(admin_client):
    registered = _register(admin_client, _new_invite_code(admin_client)).json()
    admin_client.post("/api/auth/user-logout")
    assert admin_client.get("/api/user/me/invite-code").status_code == 401

    bad = admin_client.post("/api/auth/user-login", json={"username": "alice", "password": "nope"})
    assert bad.status_code == 401

    response = admin_client.post("/api/auth/user-login", json={"username": "ALICE", "password": "pw123456"})
    assert response.status_code == 200
    assert response.json()["userId"] == registered["userId"]
    assert USER_COOKIE in response.cookies
    assert admin_client.get("/api/user/me/invite-code").status_code == 200


# --- chat turns and sessions ------------------------------------------------------

def test_generate_returns_text_and_history(client, fake_model, owner_id):
    fake_model.replies.append(make_reply("Hi! How can I help?"))

    response = client.post(
        "/api/generate",
        json={"prompt": "Hello", "sessionId": "s1", "userId": owner_id, "systemPrompt": "You are helpful"},
    )

    assert response.status_code == 200
    assert response.json() == {"text": "Hi! How can I help?"}

    history = client.get("/api/chat_history", params={"sessionId": "s1", "userId": owner_id}).json()
    assert [(m["role"], m["content"]) for m in history] == [
        ("user", "Hello"),
        ("assistant", "Hi! How can I help?"),
    ]
    assert all(m["timestamp"].endswith("+00:00") for m in history)

    sessions = client.get("/api/sessions", params={"userId": owner_id}).json()
    assert [(s["id"], s["title"]) for s in sessions] == [("s1", "Hi! How can I help?")]


def test_generate_blocked_response(client, fake_model, owner_id):
    fake_model.replies.append(make_reply(block_reason="SAFETY"))

    response = client.post("/api/generate", json={"prompt": "Hello", "sessionId": "s1", "userId": owner_id})

    assert response.status_code == 400
    assert response.json() == {"error": "Response blocked due to: SAFETY", "isBlocked": True}


def test_generate_model_failure_is_500(client, fake_model, owner_id):
    fake_model.replies.append(RuntimeError("quota exceeded"))

    response = client.post("/api/generate", json={"prompt": "Hello", "sessionId": "s1", "userId": owner_id})

    assert response.status_code == 500
    assert response.json() == {"error": "quota exceeded"}


@pytest.mark.parametrize(
    "body, message",
    [
        ({"prompt": "Hello", "sessionId": "s1"}, "userId is required"),
        ({"prompt": "Hello", "userId": "VALID"}, "sessionId is required"),
        ({"sessionId": "s1", "userId": "VALID"}, "prompt is required"),
        ({"prompt": "Hello", "sessionId": "s1", "userId": "bogus"}, "Invalid userId format"),
    ],
)
def test_generate_validation(client, fake_model, owner_id, body, message):
    if body.get("userId") == "VALID":
        body = dict(body, userId=owner_id)

    response = client.post("/api/generate", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == message
    assert fake_model.calls == []


def test_generate_without_model_validates_body_first(monkeypatch, owner_id):
    from gembreak.main import create_app

    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    with TestClient(create_app()) as unconfigured:
        missing_prompt = unconfigured.post("/api/generate", json={"sessionId": "s1", "userId": owner_id})
        complete = unconfigured.post(
            "/api/generate", json={"prompt": "Hello", "sessionId": "s1", "userId": owner_id}
        )

    assert missing_prompt.status_code == 400
    assert missing_prompt.json()["error"] == "prompt is required"
    assert complete.status_code == 500
    assert complete.json()["error"] == "Chat model is not configured"


def test_generate_on_foreign_session_is_not_found(client, fake_model, owner_id):
    fake_model.replies.append(make_reply("mine"))
    client.post("/api/generate", json={"prompt": "Hello", "sessionId": "s1", "userId": owner_id})

    response = client.post(
        "/api/generate", json={"prompt": "Hello", "sessionId": "s1", "userId": uuid.uuid4().hex}
    )

    assert response.status_code == 404


def test_history_and_sessions_validation(client, owner_id):
    assert client.get("/api/chat_history", params={"userId": owner_id}).status_code == 400
    assert client.get("/api/chat_history", params={"sessionId": "s1"}).status_code == 400
    assert client.get("/api/sessions").status_code == 400
    assert client.get("/api/chat_history", params={"sessionId": "nope", "userId": owner_id}).json() == []
    assert client.get("/api/sessions", params={"userId": owner_id}).json() == []


def test_hide_chat_flow(admin_client, fake_model):
    user_id = _register(admin_client, _new_invite_code(admin_client)).json()["userId"]
    fake_model.replies.extend([make_reply("one"), make_reply("two")])
    for key in ("keep", "hide-me"):
        admin_client.post("/api/generate", json={"prompt": "Hello", "sessionId": key, "userId": user_id})

    first = admin_client.post("/api/user/chats/hide", json={"sessionId": "hide-me", "userId": user_id})
    again = admin_client.post("/api/user/chats/hide", json={"sessionId": "hide-me", "userId": user_id})

    assert first.json() == {"message": "Chat hidden successfully"}
    assert again.json() == {"message": "Chat already hidden"}
    sessions = admin_client.get("/api/sessions", params={"userId": user_id}).json()
    assert [s["id"] for s in sessions] == ["keep"]


def test_hide_chat_rejects_other_users(admin_client, fake_model, owner_id):
    user_id = _register(admin_client, _new_invite_code(admin_client)).json()["userId"]
    fake_model.replies.append(make_reply("theirs"))
    admin_client.post("/api/generate", json={"prompt": "Hello", "sessionId": "other", "userId": owner_id})

    impersonation = admin_client.post("/api/user/chats/hide", json={"sessionId": "other", "userId": owner_id})
    not_owner = admin_client.post("/api/user/chats/hide", json={"sessionId": "other", "userId": user_id})

    assert impersonation.status_code == 403
    assert not_owner.status_code == 403


def test_hide_chat_requires_user_session(client, owner_id):
    response = client.post("/api/user/chats/hide", json={"sessionId": "s1", "userId": owner_id})

    assert response.status_code == 401


# --- personas -----------------------------------------------------------------------

def test_system_prompt_crud(admin_client):
    created = admin_client.post("/api/admin/system_prompts", json={"name": "Helper", "promptText": "Be helpful"})
    assert created.status_code == 201
    helper = created.json()["systemPrompt"]
    assert helper["isPrimary"] is True

    other = admin_client.post(
        "/api/admin/system_prompts", json={"name": "Analyst", "promptText": "Be precise"}
    ).json()["systemPrompt"]
    assert other["isPrimary"] is False

    conflict = admin_client.put("/api/admin/system_prompts", json={"id": helper["id"], "isPrimary": False})
    assert conflict.status_code == 409

    promoted = admin_client.put("/api/admin/system_prompts", json={"id": other["id"], "isPrimary": True})
    assert promoted.status_code == 200
    assert promoted.json()["systemPrompt"]["isPrimary"] is True

    public = admin_client.get("/api/system_prompts").json()["systemPrompts"]
    assert [(p["name"], p["isPrimary"]) for p in public] == [("Analyst", True), ("Helper", False)]

    deleted = admin_client.delete("/api/admin/system_prompts", params={"id": helper["id"]})
    assert deleted.status_code == 200
    missing = admin_client.delete("/api/admin/system_prompts", params={"id": helper["id"]})
    assert missing.status_code == 404


def test_system_prompt_validation(admin_client):
    assert admin_client.post("/api/admin/system_prompts", json={"name": "x"}).status_code == 400
    assert admin_client.put("/api/admin/system_prompts", json={"name": "x"}).status_code == 400
    assert admin_client.put(
        "/api/admin/system_prompts", json={"id": uuid.uuid4().hex, "name": "x"}
    ).status_code == 404
    assert admin_client.delete("/api/admin/system_prompts", params={"id": "bad-id"}).status_code == 400


def test_public_system_prompts_need_no_auth(client):
    assert client.get("/api/system_prompts").json() == {"success": True, "systemPrompts": []}


# --- admin data -----------------------------------------------------------------------

def test_metrics_users_and_histories(admin_client, fake_model):
    user_id = _register(admin_client, _new_invite_code(admin_client)).json()["userId"]
    _new_invite_code(admin_client)
    admin_client.post("/api/admin/system_prompts", json={"name": "Helper", "promptText": "Be helpful"})
    fake_model.replies.extend([make_reply("one"), make_reply("two"), make_reply("three")])
    admin_client.post("/api/generate", json={"prompt": "a", "sessionId": "s1", "userId": user_id})
    admin_client.post("/api/generate", json={"prompt": "b", "sessionId": "s1", "userId": user_id})
    admin_client.post("/api/generate", json={"prompt": "c", "sessionId": "s2", "userId": user_id})

    metrics = admin_client.get("/api/admin/metrics").json()["metrics"]
    assert metrics["totalSessions"] == 2
    assert metrics["totalMessages"] == 6
    assert metrics["averageMessagesPerSession"] == 3
    assert metrics["activeSessions24h"] == 2
    assert metrics["activeSessions7d"] == 2
    assert metrics["totalSystemPrompts"] == 1
    assert metrics["totalAdminInviteCodes"] == 2
    assert metrics["usedAdminInviteCodes"] == 1
    assert metrics["unusedAdminInviteCodes"] == 1

    [user] = admin_client.get("/api/admin/users").json()["users"]
    assert user["id"] == user_id
    assert user["username"] == "alice"
    assert user["sessionCount"] == 2
    assert user["messageCount"] == 6

    histories = admin_client.get("/api/admin/chat_histories").json()["histories"]
    by_key = {h["sessionId"]: h for h in histories}
    assert set(by_key) == {"s1", "s2"}
    assert [m["role"] for m in by_key["s1"]["messages"]] == ["user", "assistant", "user", "assistant"]
    assert by_key["s1"]["title"] == "one"


def test_empty_metrics(admin_client):
    metrics = admin_client.get("/api/admin/metrics").json()["metrics"]

    assert metrics["totalSessions"] == 0
    assert metrics["averageMessagesPerSession"] == 0


def test_every_stored_role_has_a_display_role():
    assert {role: display_role(role) for role in MessageRole} == {
        MessageRole.USER: "user",
        MessageRole.ASSISTANT: "assistant",
        MessageRole.SYSTEM: "system",
    }

import uuid

import pytest
from fastapi.testclient import TestClient

from src.api.deps import get_current_user
from src.api.main import create_app


def _create(client, headers, **body):
    resp = client.post("/conversations", headers=headers, json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["conversation"]


def test_create_returns_camel_case_summary(client, alice_headers):
    resp = client.post("/conversations", headers=alice_headers, json={"initialMessage": "a" * 60})

    assert resp.status_code == 201
    body = resp.json()
    assert body["message"] == "Conversation created successfully"
    conv = body["conversation"]
    assert conv["title"] == "a" * 50 + "..."
    assert conv["messageCount"] == 1
    assert conv["lastMessage"]["role"] == "user"
    assert conv["isArchived"] is False
    assert conv["isPinned"] is False
    assert conv["tags"] == []
    assert {"id", "createdAt", "updatedAt"} <= conv.keys()
    assert "messages" not in conv


def test_create_without_body(client, alice_headers):
    conv = _create(client, alice_headers)
    assert conv["title"] == "New Chat"
    assert conv["lastMessage"] is None


def test_create_rejects_long_title(client, alice_headers):
    resp = client.post("/conversations", headers=alice_headers, json={"title": "t" * 101})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Title cannot exceed 100 characters"}


def test_get_returns_full_conversation(client, alice_headers):
    conv = _create(client, alice_headers, title="Notes", initialMessage="remember the milk")

    resp = client.get(f"/conversations/{conv['id']}", headers=alice_headers)

    assert resp.status_code == 200
    full = resp.json()["conversation"]
    assert full["title"] == "Notes"
    assert [m["content"] for m in full["messages"]] == ["remember the milk"]
    assert full["settings"] == {"temperature": 0.7, "maxTokens": 1000}
    assert full["model"] == "gpt-4o-mini"
    assert full["totalTokens"] == 0


def test_get_status_codes(client, alice_headers, bob_headers):
    conv = _create(client, alice_headers)

    assert client.get("/conversations/not-an-id", headers=alice_headers).status_code == 400
    assert client.get(f"/conversations/{uuid.uuid4()}", headers=alice_headers).status_code == 404
    other = client.get(f"/conversations/{conv['id']}", headers=bob_headers)
    assert other.status_code == 404
    assert other.json() == {"error": "Conversation not found"}


def test_update_and_list(client, alice_headers):
    conv = _create(client, alice_headers, title="Draft")

    resp = client.put(
        f"/conversations/{conv['id']}",
        headers=alice_headers,
        json={"title": "Final", "tags": ["work"], "isArchived": True, "settings": {"maxTokens": 500}},
    )
    assert resp.status_code == 200
    assert resp.json()["conversation"]["title"] == "Final"

    active = client.get("/conversations", headers=alice_headers).json()
    archived = client.get("/conversations", headers=alice_headers, params={"archived": "true"}).json()
    assert active["total"] == 0
    assert archived["total"] == 1
    assert archived["totalPages"] == 1
    assert archived["currentPage"] == 1
    assert archived["conversations"][0]["tags"] == ["work"]

    full = client.get(f"/conversations/{conv['id']}", headers=alice_headers).json()["conversation"]
    assert full["settings"] == {"temperature": 0.7, "maxTokens": 500}


def test_update_reports_every_invalid_field(client, alice_headers):
    conv = _create(client, alice_headers)
    resp = client.put(
        f"/conversations/{conv['id']}",
        headers=alice_headers,
        json={"isPinned": "yes", "settings": {"temperature": -1}},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "isPinned must be a boolean, Temperature must be between 0 and 2"


def test_update_rejects_null_setting_and_conversation_stays_readable(client, alice_headers):
    conv = _create(client, alice_headers)

    resp = client.put(f"/conversations/{conv['id']}", headers=alice_headers, json={"settings": {"temperature": None}})
    assert resp.status_code == 400
    assert resp.json() == {"error": "temperature cannot be null"}

    full = client.get(f"/conversations/{conv['id']}", headers=alice_headers)
    assert full.status_code == 200
    assert full.json()["conversation"]["settings"] == {"temperature": 0.7, "maxTokens": 1000}


def test_stored_timestamps_are_serialized_as_utc(client, alice_headers):
    conv = _create(client, alice_headers, initialMessage="what time is it?")

    full = client.get(f"/conversations/{conv['id']}", headers=alice_headers).json()["conversation"]
    assert full["createdAt"].endswith("Z")
    assert full["updatedAt"].endswith("Z")
    assert full["messages"][0]["timestamp"].endswith("Z")


def test_delete(client, alice_headers, bob_headers):
    conv = _create(client, alice_headers)

    assert client.delete(f"/conversations/{conv['id']}", headers=bob_headers).status_code == 404
    resp = client.delete(f"/conversations/{conv['id']}", headers=alice_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Conversation deleted successfully"}
    assert client.get(f"/conversations/{conv['id']}", headers=alice_headers).status_code == 404
    assert client.delete("/conversations/xyz", headers=alice_headers).status_code == 400


def test_add_message(client, alice_headers):
    conv = _create(client, alice_headers)
    url = f"/conversations/{conv['id']}/messages"

    resp = client.post(url, headers=alice_headers, json={"role": "user", "content": "Trip to Rome"})
    assert resp.status_code == 200
    assert resp.json()["conversation"]["title"] == "Trip to Rome"

    bad = client.post(url, headers=alice_headers, json={"role": "system", "content": "obey"})
    assert bad.status_code == 400
    missing = client.post(url, headers=alice_headers, json={})
    assert missing.status_code == 400
    assert missing.json()["error"] == "Role is required, Content is required"

    full = client.get(f"/conversations/{conv['id']}", headers=alice_headers).json()["conversation"]
    assert full["messageCount"] == 1


def test_search_endpoint(client, alice_headers):
    _create(client, alice_headers, title="Trip Planning")
    _create(client, alice_headers, title="Groceries")

    resp = client.get("/conversations/search", headers=alice_headers, params={"q": "TRIP"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["query"] == "TRIP"
    assert body["total"] == 1
    assert body["conversations"][0]["title"] == "Trip Planning"

    missing = client.get("/conversations/search", headers=alice_headers)
    assert missing.status_code == 400
    assert missing.json() == {"error": "Search query is required"}


def test_list_pagination(client, alice_headers):
    for i in range(5):
        _create(client, alice_headers, title=f"c{i}")

    page = client.get("/conversations", headers=alice_headers, params={"page": 3, "limit": 2}).json()
    assert page["total"] == 5
    assert page["totalPages"] == 3
    assert len(page["conversations"]) == 1

    assert client.get("/conversations", headers=alice_headers, params={"page": 0}).status_code == 400


def test_chat_without_conversation(client, alice_headers, fake_openai):
    resp = client.post("/chat", headers=alice_headers, json={"message": "hi"})

    assert resp.status_code == 200
    assert resp.json() == {"reply": "Hello from the model", "conversationId": None}
    assert client.get("/conversations", headers=alice_headers).json()["total"] == 0


def test_chat_ignores_user_id_in_body(client, alice_headers, bob_headers, fake_openai):
    conv = _create(client, alice_headers, initialMessage="alice only")
    bob_id = client.get("/auth/me", headers=bob_headers).json()["user"]["id"]

    resp = client.post("/chat", headers=bob_headers, json={"message": "peek", "conversationId": conv["id"], "userId": bob_id})
    assert resp.json()["conversationId"] is None
    assert fake_openai.last_request["messages"] == [{"role": "user", "content": "peek"}]


def test_chat_with_conversation_persists_turn(client, alice_headers, fake_openai):
    conv = _create(client, alice_headers, initialMessage="hello")

    resp = client.post("/chat", headers=alice_headers, json={"message": "how are you?", "conversationId": conv["id"]})

    assert resp.status_code == 200
    assert resp.json()["conversationId"] == conv["id"]
    full = client.get(f"/conversations/{conv['id']}", headers=alice_headers).json()["conversation"]
    assert [m["role"] for m in full["messages"]] == ["user", "user", "assistant"]


@pytest.mark.parametrize(
    "upstream, expected, message",
    [
        (401, 401, "Invalid OpenAI API key"),
        (429, 429, "Rate limit exceeded. Please try again later."),
        (500, 500, "Something went wrong with the AI service"),
    ],
)
def test_chat_provider_errors(client, alice_headers, fake_openai, upstream, expected, message):
    fake_openai.status_code = upstream
    resp = client.post("/chat", headers=alice_headers, json={"message": "hi"})
    assert resp.status_code == expected
    assert resp.json() == {"error": message}


def test_chat_requires_message(client, alice_headers):
    resp = client.post("/chat", headers=alice_headers, json={})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Message is required"}


def test_health_and_root(client):
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["database"] == "connected"
    assert health["uptime"] >= 0

    info = client.get("/").json()
    assert info["endpoints"]["conversations"] == "/conversations"


def test_unknown_route(client):
    resp = client.get("/nope")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Route not found"}


def test_openapi_documents_error_body(client):
    schema = client.get("/openapi.json").json()

    assert schema["components"]["schemas"]["ErrorResponse"]["properties"].keys() == {"error"}
    documented = schema["paths"]["/conversations/{conversation_id}"]["get"]["responses"]
    for code in ("400", "401", "404", "500"):
        assert documented[code]["content"]["application/json"]["schema"]["$ref"] == "#/components/schemas/ErrorResponse"


def _broken():
    raise RuntimeError("boom")


@pytest.mark.parametrize(
    "environment, message",
    [("development", "Internal server error: boom"), ("production", "Something went wrong")],
)
def test_unexpected_errors_become_500(settings, provider, environment, message):
    app = create_app(settings.model_copy(update={"ENVIRONMENT": environment}), provider=provider)
    app.dependency_overrides[get_current_user] = _broken

    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get("/conversations")

    assert resp.status_code == 500
    assert resp.json() == {"error": message}

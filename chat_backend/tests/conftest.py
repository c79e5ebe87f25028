import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.db import repositories as repo
from src.db.database import create_db_engine, create_session_factory, init_db
from src.services.conversation_service import ConversationService
from src.services.openai_client import OpenAIChatClient
from src.settings import Settings

SECRET = "test-secret-key-0123456789abcdef"


class FakeOpenAI:
    """Stands in for the chat completions endpoint behind an httpx.MockTransport."""

    def __init__(self):
        self.requests: List[Dict[str, Any]] = []
        self.status_code = 200
        self.reply = "Hello from the model"
        self.timeout = False
        # Runs while the request is in flight, before the response is produced
        self.during_request: Optional[Callable[[], None]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if self.during_request is not None:
            self.during_request()
        if self.timeout:
            raise httpx.ReadTimeout("timed out", request=request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "upstream said no"}})
        return httpx.Response(
            200,
            json={
                "model": "gpt-4o-mini-2024-07-18",
                "choices": [{"message": {"role": "assistant", "content": self.reply}}],
                "usage": {"prompt_tokens": 12, "completion_tokens": 5},
            },
        )

    @property
    def last_request(self) -> Dict[str, Any]:
        return self.requests[-1]


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def provider(fake_openai):
    client = OpenAIChatClient(
        api_key="sk-test",
        http_client=httpx.Client(transport=httpx.MockTransport(fake_openai)),
    )
    yield client
    client.close()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        SECRET_KEY=SECRET,
        OPENAI_API_KEY="sk-test",
        ALLOWED_HOSTS=["*"],
    )


@pytest.fixture
def db():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    session = create_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def alice(db):
    return repo.create_user(db, username="alice", email="alice@example.com", password_hash="x", initials="AL")


@pytest.fixture
def bob(db):
    return repo.create_user(db, username="bob", email="bob@example.com", password_hash="x", initials="BO")


@pytest.fixture
def service(db):
    return ConversationService(db, default_page_size=20, max_page_size=100)


@pytest.fixture
def client(settings, provider):
    app = create_app(settings, provider=provider)
    with TestClient(app) as c:
        yield c


def register(client: TestClient, username: str, email: str, password: str = "secret123") -> Dict[str, str]:
    resp = client.post("/auth/register", json={"username": username, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['token']}"}


@pytest.fixture
def alice_headers(client):
    return register(client, "alice", "alice@example.com")


@pytest.fixture
def bob_headers(client):
    return register(client, "bob", "bob@example.com")

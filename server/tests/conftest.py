# server/tests/conftest.py
import mongomock
import pytest
from fastapi.testclient import TestClient

from fitgenix.main import app
from fitgenix.database.connection import get_db, ensure_indexes
from fitgenix.services.ai_proxy import get_ai_proxy
from fitgenix.services.video_search import get_video_search, PLACEHOLDER_VIDEO_ID


class FakeProxy:
    """Stands in for GroqProxy; replies are consumed in order, exceptions are raised"""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []
        self.available = True

    async def ask(self, system, user, **params):
        self.calls.append({"system": system, "user": user, **params})
        if not self.replies:
            raise AssertionError("FakeProxy ran out of scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeVideoSearch:
    def __init__(self, ids=None):
        self.ids = ids or {}
        self.queries = []

    async def find_video_id(self, exercise_name):
        self.queries.append(exercise_name)
        return self.ids.get(exercise_name, PLACEHOLDER_VIDEO_ID)


@pytest.fixture
def db():
    database = mongomock.MongoClient().fitgenix_test
    ensure_indexes(database)
    return database


@pytest.fixture
def proxy():
    return FakeProxy()


@pytest.fixture
def videos():
    return FakeVideoSearch()


@pytest.fixture
def client(db, proxy, videos):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_ai_proxy] = lambda: proxy
    app.dependency_overrides[get_video_search] = lambda: videos
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, name="Alice", email="alice@example.com", password="secret123"):
    response = client.post("/api/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth(client):
    """Register a user and return (user_id, headers)"""
    body = register(client)
    return body["user"]["id"], {"Authorization": f"Bearer {body['token']}"}

# server/tests/test_ai_routes.py
import json

import httpx
import pytest
from fastapi.testclient import TestClient

from fitgenix.main import app
from fitgenix.errors import ServiceUnavailable
from fitgenix.services.ai_proxy import CredentialPool, GroqProxy, get_ai_proxy
from fitgenix.services.video_search import PLACEHOLDER_VIDEO_ID


def _unreachable_groq(api_key):
    raise httpx.ConnectError("connection refused")


@pytest.fixture
def offline_client():
    """Real proxy with two keys, neither of which can reach the API"""
    app.dependency_overrides[get_ai_proxy] = lambda: GroqProxy(
        CredentialPool(["k1", "k2"]), client_factory=_unreachable_groq
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestChatbot:
    def test_reply(self, client, proxy):
        proxy.replies.append("1 cup cooked rice has about 200 calories.")

        response = client.post("/api/chatbot", json={"message": "calories in rice?"})

        assert response.status_code == 200
        assert response.json() == {"reply": "1 cup cooked rice has about 200 calories."}
        assert proxy.calls[0]["user"] == "calories in rice?"
        assert "FitGenix" in proxy.calls[0]["system"]

    def test_failure_has_no_fallback(self, client, proxy):
        proxy.replies.append(ServiceUnavailable())

        response = client.post("/api/chatbot", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "AI Service Unavailable. Please check API Key."}

    def test_offline_proxy_is_hard_failure(self, offline_client):
        response = offline_client.post("/api/chatbot", json={"message": "hi"})

        assert response.status_code == 500
        assert "error" in response.json()


class TestExercises:
    def test_enriched_with_video_ids(self, client, proxy, videos):
        videos.ids = {"Bench Press": "bench01"}
        proxy.replies.append(
            "Here are your exercises:\n"
            + json.dumps([
                {"name": "Bench Press", "steps": ["Lie on bench", "Press up"]},
                {"name": "Push Up", "steps": ["Plank", "Lower", "Push"]},
            ])
        )

        response = client.post("/api/exercises", json={"query": "chest"})

        assert response.status_code == 200
        data = response.json()
        assert data[0] == {"name": "Bench Press", "steps": ["Lie on bench", "Press up"], "videoId": "bench01"}
        # a lookup with no result only affects its own item
        assert data[1]["videoId"] == PLACEHOLDER_VIDEO_ID
        assert videos.queries == ["Bench Press", "Push Up"]

    def test_fallback_on_bad_json(self, client, proxy):
        proxy.replies.append("Sorry, I can't do that right now.")

        response = client.post("/api/exercises", json={"query": "legs"})

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 6
        assert data[0]["name"] == "legs Exercise 1"
        assert data[5]["name"] == "legs Exercise 6"
        assert all(item["videoId"] == PLACEHOLDER_VIDEO_ID for item in data)
        assert len(data[0]["steps"]) == 3

    def test_fallback_when_offline(self, offline_client):
        response = offline_client.post("/api/exercises", json={"query": "back"})

        assert response.status_code == 200
        assert response.json()[0]["name"] == "back Exercise 1"


class TestDiet:
    def test_lookup(self, client, proxy):
        proxy.replies.append('{"name": "Banana", "calories": 105, "protein": "1g", "carbs": "27g", "fats": "0g"}')

        response = client.post("/api/diet", json={"query": "banana", "servingSize": "1"})

        assert response.status_code == 200
        assert response.json() == {"name": "Banana", "calories": 105, "protein": "1g", "carbs": "27g", "fats": "0g"}
        assert proxy.calls[0]["user"] == "Nutritional info for banana serving 1"

    def test_numeric_macros_are_normalized(self, client, proxy):
        proxy.replies.append('{"name": "Egg", "calories": 78.4, "protein": 6, "carbs": 0.6, "fats": 5}')

        data = client.post("/api/diet", json={"query": "egg", "servingSize": "1"}).json()

        assert data == {"name": "Egg", "calories": 78, "protein": "6g", "carbs": "0.6g", "fats": "5g"}

    def test_calorie_range_keeps_lower_bound(self, client, proxy):
        proxy.replies.append('{"name": "Rice", "calories": "200-210", "protein": "4g", "carbs": "45g", "fats": "0g"}')

        data = client.post("/api/diet", json={"query": "rice", "servingSize": "1 cup"}).json()

        assert data["calories"] == 200

    def test_calorie_text_with_thousands_separator(self, client, proxy):
        proxy.replies.append('{"name": "Pizza", "calories": "~1,200 - 1,300 kcal", "protein": "50g"}')

        data = client.post("/api/diet", json={"query": "pizza", "servingSize": "1"}).json()

        assert data["calories"] == 1200

    def test_fallback_when_offline(self, offline_client):
        response = offline_client.post("/api/diet", json={"query": "banana", "servingSize": "1"})

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "banana"
        assert data["calories"] == 250
        assert data["protein"] == "15g"
        assert data["carbs"] == "30g"
        assert data["fats"] == "10g"
        assert data["note"]


class TestWorkoutPlans:
    def test_plan(self, client, proxy):
        proxy.replies.append('[{"name": "Deadlift", "sets": 4, "reps": "8"}, {"name": "Row", "sets": 3, "reps": 10}]')

        response = client.post("/api/workout-plans", json={"query": "back strength"})

        assert response.json() == [
            {"name": "Deadlift", "sets": 4, "reps": 8},
            {"name": "Row", "sets": 3, "reps": 10},
        ]

    def test_fallback(self, client, proxy):
        proxy.replies.append(ServiceUnavailable())

        response = client.post("/api/workout-plans", json={"query": "anything"})

        assert response.status_code == 200
        names = [item["name"] for item in response.json()]
        assert names == ["Push Ups", "Bodyweight Squats", "Plank", "Lunges", "Mountain Climbers"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_unknown_route_uses_error_body(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert "error" in response.json()

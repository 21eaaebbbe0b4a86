import pytest
from fastapi.testclient import TestClient

from context.interaction_tracker import InteractionTracker
from context.preference_store import PreferenceStore
from context.storage import InMemoryKeyValueStore
from systems.learning_coordinator import LearningCoordinator
from services.comment_orchestrator import CommentOrchestrator
from main import create_app


@pytest.fixture
def client():
    orchestrator = CommentOrchestrator(
        learning=LearningCoordinator(
            preferences=PreferenceStore(InMemoryKeyValueStore()),
            tracker=InteractionTracker(),
        ),
        user_id="local",
        session_id="api-session",
    )
    with TestClient(create_app(orchestrator)) as test_client:
        yield test_client


def first_comment(client):
    response = client.post("/tick", json={})
    assert response.status_code == 200
    return response.json()["comment"]


class TestSessionEndpoints:
    def test_lifespan_starts_session(self, client):
        status = client.get("/status").json()
        assert status["started"] is True
        assert status["session_id"] == "api-session"
        assert status["pending_openers"] == 2

    def test_first_tick_is_a_greeting(self, client):
        comment = first_comment(client)
        assert comment["role"] == "greeting"
        assert comment["origin"] == "starter"
        assert comment["id"].startswith("comment_")

    def test_start_queues_more_openers(self, client):
        response = client.post("/start", json={"topic": "music", "openers": 1})
        assert response.json() == {"session_id": "api-session"}
        assert client.get("/status").json()["pending_openers"] == 3

    def test_audio(self, client):
        response = client.post("/audio", json={"volume": 0.9, "speech_rate": 1.5, "is_speaking": True})
        assert response.json()["accepted"] is True
        assert response.json()["rate"] > 8.0
        ignored = client.post("/audio", json={"duration_ms": 0})
        assert ignored.json()["accepted"] is False

    def test_audio_validation(self, client):
        assert client.post("/audio", json={"volume": 3.0}).status_code == 422


class TestFeedbackEndpoints:
    def test_feedback_updates_weights(self, client):
        comment = first_comment(client)
        response = client.post("/feedback", json={"comment_id": comment["id"], "kind": "thumbs_up"})
        assert response.status_code == 200
        assert response.json()["role"] == "greeting"
        weights = client.get("/weights/local").json()
        assert weights["greeting"] == pytest.approx(1.15)
        assert weights["reaction"] == pytest.approx(0.99)

    def test_unknown_comment_is_400(self, client):
        response = client.post("/feedback", json={"comment_id": "comment_nope", "kind": "click"})
        assert response.status_code == 400

    def test_unknown_kind_is_400(self, client):
        comment = first_comment(client)
        response = client.post("/feedback", json={"comment_id": comment["id"], "kind": "super_like"})
        assert response.status_code == 400
        assert client.get("/weights/local").json()["greeting"] == 1.0

    def test_context_is_validated(self, client):
        comment = first_comment(client)
        response = client.post("/feedback", json={
            "comment_id": comment["id"], "kind": "click", "context": {"engagement_level": 5},
        })
        assert response.status_code == 422

    def test_speech(self, client):
        comment = first_comment(client)
        response = client.post("/speech", json={"text": comment["content"]})
        results = response.json()["results"]
        assert results[0]["comment_id"] == comment["id"]
        assert results[0]["detected"] is True

    def test_reset(self, client):
        comment = first_comment(client)
        client.post("/feedback", json={"comment_id": comment["id"], "kind": "thumbs_down"})
        weights = client.post("/reset/local").json()
        assert set(weights.values()) == {1.0}

    def test_unknown_user_gets_defaults(self, client):
        weights = client.get("/weights/someone-else").json()
        assert len(weights) == 8
        assert set(weights.values()) == {1.0}

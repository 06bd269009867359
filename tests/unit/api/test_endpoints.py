"""
Tests for the FastAPI endpoints
"""
import pytest
from fastapi.testclient import TestClient

from intent_engine.api import endpoints
from intent_engine.engine import IntentScoringEngine
from intent_engine.stages.stage2_embedding import EmbeddingGenerator
from tests.factories import days_ago, signal, source, structured


@pytest.fixture
def client(monkeypatch):
    engine = IntentScoringEngine(apply_rules_to_fallback=False)
    engine.llm_stage.model = None
    monkeypatch.setattr(endpoints, "default_engine", engine)
    monkeypatch.setattr(endpoints, "default_generator", EmbeddingGenerator(api_key=""))
    return TestClient(endpoints.app)


class TestInfoEndpoints:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "Intent Engine"

    def test_health(self, client):
        data = client.get("/api/health").json()

        assert data["status"] == "healthy"
        assert data["llm_configured"] is False
        assert data["embedding_api_configured"] is False


class TestScoringEndpoints:

    def test_score_structured_input(self, client):
        payload = structured(
            [signal("new_product", 70, [source(days=1), source(days=2)])], final_score=60
        ).model_dump()

        response = client.post("/api/intent/score", json=payload)

        assert response.status_code == 200
        data = response.json()
        assert data["path"] == "fallback"
        assert 0 <= data["score"] <= 100
        assert data["factors"][0]["signal"] == "new_product"

    def test_unusable_body_scores_zero(self, client):
        response = client.post("/api/intent/score", json={"kind": "unknown"})

        assert response.status_code == 200
        assert response.json()["score"] == 0

    def test_batch(self, client):
        payload = structured([signal("new_product", 30)]).model_dump()

        response = client.post("/api/intent/score/batch", json=[payload, payload])

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_batch_limit(self, client):
        response = client.post("/api/intent/score/batch", json=[{}] * 101)

        assert response.status_code == 400

    def test_event_scoring(self, client):
        response = client.post("/api/intent/events", json={
            "events": [{"event_name": "new_funding_round", "event_time": days_ago(0)}],
            "triggers": ["new_funding_round", "expansion"],
        })

        assert response.status_code == 200
        data = response.json()
        assert len(data["signal_breakdown"]) == 2
        assert data["events_considered"] == 1

    def test_event_scoring_requires_triggers(self, client):
        response = client.post("/api/intent/events", json={"events": [], "triggers": []})

        assert response.status_code == 422

    def test_stats(self, client):
        client.post("/api/intent/score", json={"kind": "unknown"})

        data = client.get("/api/stats").json()

        assert data["scoring"]["total_processed"] == 1
        assert set(data["embeddings"]) == {"primary", "fallback", "primary_errors"}


class TestEmbeddingEndpoints:

    def test_embed_text(self, client):
        response = client.post("/api/embeddings", json={"text": "Acme payments platform"})

        assert response.status_code == 200
        data = response.json()
        assert data["dimensions"] == 1536
        assert data["provider"] == "fallback"
        assert len(data["embedding"]) == 1536

    def test_keywords_from_entity(self, client):
        response = client.post("/api/keywords", json={
            "entity": {"name": "Acme", "description": "Cloud payments"},
            "kind": "company",
        })

        data = response.json()
        assert data["text"].startswith("Company: Acme")
        assert "payments" in data["keywords"]

    def test_keywords_from_text(self, client):
        response = client.post("/api/keywords", json={"text": "The cloud payments platform", "limit": 2})

        assert response.json()["keywords"] == ["cloud", "payments"]

    def test_keywords_requires_input(self, client):
        assert client.post("/api/keywords", json={}).status_code == 400

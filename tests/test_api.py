import pytest
from fastapi.testclient import TestClient

from vaultsearch.main import create_app
from vaultsearch.middleware.rate_limit import limiter as maintenance_limiter
from vaultsearch.services.database import MemoryAdapter
from vaultsearch.services.model_store import ModelArtifactStore
from vaultsearch.services.providers import MockGenerativeProvider
from vaultsearch.services.rate_limiter import QueryRateLimiter
from vaultsearch.services.search_engine import build_search_engine

KROGER_QUERY = "How much did I spend at Kroger in 2024?"


@pytest.fixture
def client(tmp_path):
    maintenance_limiter.reset()
    engine = build_search_engine(
        db=MemoryAdapter(),
        generative_provider=MockGenerativeProvider(),
        model_store=ModelArtifactStore(tmp_path / "models"),
        limiter=QueryRateLimiter(per_minute=5, per_hour=100),
        vectorize_pause_every=0,
        reprocess_pause_every=0,
    )
    with TestClient(create_app(engine)) as test_client:
        yield test_client


def _create(client, doc_id, title, text):
    response = client.post("/documents", json={"id": doc_id, "title": title, "extracted_text": text})
    assert response.status_code == 201
    return response.json()


def _seed_kroger(client):
    _create(client, "k1", "Kroger receipt", "KROGER\nTOTAL $10.00\n01/05/2024")
    _create(client, "k2", "Kroger receipt", "KROGER\nTOTAL $15.00\n03/09/2024")
    _create(client, "k3", "Kroger receipt", "KROGER\nTOTAL $20.00\n07/21/2024")
    response = client.post("/reprocessing/run", json={})
    assert response.status_code == 200
    assert response.json()["processed"] == 3


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["index_ready"] is True
    assert body["analysis_ready"] is True


def test_document_lifecycle(client):
    created = _create(client, "d1", "Plumber invoice", "Kitchen sink repairs $180.00")
    assert created["id"] == "d1"
    assert created["entities_extracted_at"] is None

    assert client.get("/documents/d1").json()["title"] == "Plumber invoice"

    updated = client.put("/documents/d1/text", json={"extracted_text": "Faucet replacement $95.00"})
    assert updated.status_code == 200

    assert client.delete("/documents/d1").status_code == 204
    assert client.get("/documents/d1").status_code == 404


def test_not_found_carries_request_id(client):
    response = client.get("/documents/missing", headers={"X-Request-ID": "req-123"})
    assert response.status_code == 404
    assert response.headers["X-Request-ID"] == "req-123"
    body = response.json()
    assert body["request_id"] == "req-123"
    assert "missing" in body["error"]


def test_malformed_request_id_is_replaced(client):
    response = client.get("/documents/missing", headers={"X-Request-ID": "bad id with spaces"})
    assert response.status_code == 404
    replaced = response.headers["X-Request-ID"]
    assert replaced != "bad id with spaces"
    assert len(replaced) == 32
    assert response.json()["request_id"] == replaced


def test_structured_search(client):
    _seed_kroger(client)
    response = client.post("/search", json={"actor_id": "alice", "query": KROGER_QUERY})
    assert response.status_code == 200
    body = response.json()
    assert body["query_type"] == "structured"
    assert body["aggregation"]["document_count"] == 3
    assert body["aggregation"]["total_amount"] == 45.0
    assert body["aggregation"]["average_amount"] == 15.0
    assert [doc["id"] for doc in body["documents"]] == ["k3", "k2", "k1"]


def test_semantic_search_returns_similarities(client):
    _create(client, "a", "Home repairs", "Home repairs estimate")
    _create(client, "b", "Plumber invoice", "Kitchen sink repairs at home")
    _create(client, "c", "Grocery receipt", "Milk eggs bread")
    assert client.post("/index/vectorize").json()["vectorized"] == 3

    body = client.post("/search", json={"actor_id": "alice", "query": "documents about home repairs"}).json()
    assert body["query_type"] == "semantic"
    assert [doc["id"] for doc in body["documents"]] == ["a", "b"]
    assert body["documents"][0]["similarity"] > body["documents"][1]["similarity"]


def test_rejected_query(client):
    response = client.post("/search", json={"actor_id": "alice", "query": "x'; DROP TABLE documents; --"})
    assert response.status_code == 400
    assert "security" in response.json()["error"]


def test_quota_exceeded(client):
    for _ in range(5):
        assert client.post("/search", json={"actor_id": "alice", "query": "tax forms"}).status_code == 200

    response = client.post("/search", json={"actor_id": "alice", "query": "tax forms"})
    assert response.status_code == 429
    assert int(response.headers["Retry-After"]) >= 1
    assert response.json()["error"]["remaining_minute"] == 0

    stats = client.get("/search/rate-limit/alice").json()
    assert stats["remaining_minute"] == 0
    assert stats["remaining_hour"] == 95
    assert client.get("/search/rate-limit/bob").json()["remaining_minute"] == 5


def test_audit_entries_and_verification(client):
    _create(client, "d1", "Receipt", "TARGET $5.00")
    client.post("/search", json={"actor_id": "alice", "query": "Target receipts"})

    entries = client.get("/audit/entries", params={"limit": 10}).json()
    assert [e["action"] for e in entries] == ["search", "create"]
    assert entries[0]["previous_entry_id"] == entries[1]["id"]

    report = client.get("/audit/verify").json()
    assert report["valid"] is True
    assert report["checked"] == 2


def test_index_maintenance(client):
    _create(client, "a", "Home repairs", "Home repairs estimate")
    assert client.get("/index/stats").json() == {"total": 1, "vectorized": 0, "pending": 1}

    response = client.post("/index/vectorize", params={"background": "true"})
    assert response.status_code == 202
    assert client.get("/index/stats").json()["vectorized"] == 1
    assert client.post("/index/cancel").json() == {"cancelled": False}


def test_reprocessing_endpoints(client):
    _create(client, "p1", "Receipt", "SHELL gas $30.00")
    assert client.get("/reprocessing/stats").json() == {"total": 1, "extracted": 0, "pending": 1}

    response = client.post("/reprocessing/p1")
    assert response.json() == {"document_id": "p1", "processed": True}
    assert client.get("/documents/p1").json()["vendor"] == "Shell"
    assert client.get("/reprocessing/stats").json()["pending"] == 0

    assert client.post("/reprocessing/missing").status_code == 404
    assert client.post("/reprocessing/cancel").json() == {"cancelled": False}


def test_model_status_and_install(client, tmp_path):
    status = client.get("/model/status").json()
    assert status["provider"] == "mock"
    assert status["ready"] is True
    assert status["installed"] is False

    missing = client.post("/model/install", json={"source_path": str(tmp_path / "nope.gguf")})
    assert missing.status_code == 400

    source = tmp_path / "model.gguf"
    source.write_bytes(b"weights")
    installed = client.post("/model/install", json={"source_path": str(source)})
    assert installed.status_code == 200
    assert installed.json()["installed"] is True

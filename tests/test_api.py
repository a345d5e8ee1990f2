"""API tests: ingest and retrieve routes wired to in-memory fakes, plus health checks."""
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from src.api.routes.documents import ERROR_STATUS
from src.core.errors import EmbeddingServiceError

TEXT_2500 = ("abcdefghij" * 250).encode()


def ingest(client: TestClient, content: bytes, file_name: str, **fields):
    data = {"fileName": file_name, "userId": "user-1", **fields}
    return client.post(
        "/api/v1/documents/ingest",
        files={"file": (file_name, content, "application/octet-stream")},
        data=data,
    )


def test_ingest_returns_created(client, store):
    r = ingest(client, TEXT_2500, "judgment.txt", documentType="statute", isPublic="false", year="2020")

    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["chunks_processed"] == 3
    assert "judgment.txt" in body["message"]

    document = store.documents[body["document_id"]]
    assert document.type.value == "statute"
    assert document.is_public is False
    assert document.year == 2020


def test_ingest_requires_form_fields(client):
    r = client.post(
        "/api/v1/documents/ingest",
        files={"file": ("a.txt", b"text", "text/plain")},
        data={"fileName": "a.txt"},
    )
    assert r.status_code == 422


def test_ingest_unsupported_type(client, store):
    r = ingest(client, b"cells", "sheet.xlsx")

    assert r.status_code == 415
    assert r.json()["detail"]["code"] == "unsupported_file_type"
    assert store.documents == {}


def test_ingest_blank_file(client):
    r = ingest(client, b"   ", "empty.txt")

    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "no_extractable_text"


def test_unreadable_documents_map_to_422():
    assert ERROR_STATUS["no_extractable_text"] == 422
    assert ERROR_STATUS["extraction_failed"] == 422


def test_ingest_embedding_failure(client, embedder, store):
    embedder.error = EmbeddingServiceError("quota exceeded")

    r = ingest(client, TEXT_2500, "judgment.txt")

    assert r.status_code == 502
    detail = r.json()["detail"]
    assert detail["code"] == "embedding_service_error"
    assert detail["error"] == "quota exceeded"
    assert store.documents == {}


def test_ingest_rejects_oversized_upload(client, settings, store):
    r = ingest(client, b"x" * (settings.max_upload_bytes + 1), "big.txt")

    assert r.status_code == 413
    assert store.documents == {}


def test_retrieve_returns_results_and_context(client):
    ingest(client, b"Notice must be given before termination.", "labour.txt", citation="Cap L1 LFN 2004")

    # FakeEmbedder derives vectors from text, so the stored text scores 1.0 against itself
    r = client.post(
        "/api/v1/retrieve",
        json={"query": "Notice must be given before termination."},
    )

    assert r.status_code == 200
    body = r.json()
    assert body["total_results"] == 1
    assert body["results"][0]["title"] == "labour.txt"
    assert body["results"][0]["citation"] == "Cap L1 LFN 2004"
    assert body["results"][0]["relevance_score"] > 0.99
    assert body["context"].startswith("Document: labour.txt\nCitation: Cap L1 LFN 2004\nContent: ")


def test_retrieve_degrades_to_empty(client, embedder):
    embedder.error = EmbeddingServiceError("down")

    r = client.post("/api/v1/retrieve", json={"query": "fair hearing"})

    assert r.status_code == 200
    assert r.json() == {"query": "fair hearing", "results": [], "context": "", "total_results": 0}


def test_retrieve_validates_body(client):
    assert client.post("/api/v1/retrieve", json={"query": ""}).status_code == 422
    assert client.post("/api/v1/retrieve", json={"query": "x", "top_k": 0}).status_code == 422


def test_health_live(client):
    r = client.get("/health/live")
    assert r.status_code == 200
    assert r.json()["status"] == "alive"


def test_health_ready(client):
    with patch("src.api.routes.health.check_database", AsyncMock(return_value=(True, "healthy"))):
        r = client.get("/health/ready")
    assert r.status_code == 200
    assert r.json()["checks"] == {"database": "healthy"}

    with patch("src.api.routes.health.check_database", AsyncMock(return_value=(False, "unhealthy: down"))):
        r = client.get("/health/ready")
    assert r.status_code == 503


def test_health_startup(client, test_app):
    assert client.get("/health/startup").status_code == 503

    test_app.state.startup_complete = True
    assert client.get("/health/startup").status_code == 200


def test_create_app_routes(settings):
    from src.api.main import create_app

    app = create_app(settings)
    paths = {route.path for route in app.routes}

    assert "/api/v1/documents/ingest" in paths
    assert "/api/v1/retrieve" in paths
    assert "/health/ready" in paths
    assert "/metrics" in paths
    assert app.state.startup_complete is False

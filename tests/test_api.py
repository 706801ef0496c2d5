"""
Tests for the HTTP surface.
"""

import pytest
from fastapi.testclient import TestClient

from docstore import Document, __version__
from docstore.api.main import create_app
from docstore.core.repository import SQLiteDocumentRepository
from docstore.vector.embeddings import DeterministicHashEmbedding
from docstore.vector.index import InMemoryDocumentStore


@pytest.fixture
def api_store():
    return InMemoryDocumentStore()


@pytest.fixture
def client(api_store):
    app = create_app(store=api_store, embedding_provider=DeterministicHashEmbedding(8))
    with TestClient(app) as test_client:
        yield test_client


def _put(client, doc_id, embedding=None, content=None, **metadata):
    body = {"id": doc_id, "content": content or f"text of {doc_id}", "metadata": metadata}
    if embedding is not None:
        body["embedding"] = embedding
    return client.put("/documents", json=body)


def test_health_without_persistence(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == __version__
    assert data["document_count"] == 0
    assert data["dimension"] is None
    assert data["db_health"] is None


def test_health_with_repository(tmp_path):
    store = InMemoryDocumentStore(repository=SQLiteDocumentRepository(str(tmp_path / "api.db")))
    app = create_app(store=store, embedding_provider=DeterministicHashEmbedding(8))

    with TestClient(app) as client:
        data = client.get("/health").json()

    assert data["status"] == "healthy"
    assert data["db_health"] is True


def test_put_and_get_document(client):
    response = _put(client, "a", [1.0, 0.0, 0.0], subject="MATHEMATICS")

    assert response.status_code == 200
    assert response.json() == {
        "id": "a", "content": "text of a", "metadata": {"subject": "MATHEMATICS"}, "dimension": 3,
    }

    fetched = client.get("/documents/a")
    assert fetched.status_code == 200
    assert fetched.json()["metadata"] == {"subject": "MATHEMATICS"}


def test_put_without_embedding_uses_provider(client, api_store):
    response = _put(client, "a", content="photosynthesis in plants")

    assert response.status_code == 200
    assert response.json()["dimension"] == 8
    assert api_store.dimension == 8


def test_put_dimension_mismatch_is_400(client):
    _put(client, "a", [1.0, 0.0, 0.0])

    response = _put(client, "b", [1.0, 0.0])

    assert response.status_code == 400
    assert "dimension" in response.json()["detail"]


def test_put_zero_vector_is_400(client):
    assert _put(client, "z", [0.0, 0.0, 0.0]).status_code == 400


@pytest.mark.parametrize("body", [
    {"id": "", "content": "x", "embedding": [1.0]},
    {"id": "a", "content": "x", "embedding": []},
    {"id": "a", "content": "x", "embedding": [1.0], "metadata": {"grade": [7]}},
    {"content": "x"},
])
def test_put_schema_violations_are_422(client, body):
    assert client.put("/documents", json=body).status_code == 422


def test_get_missing_document_is_404(client):
    response = client.get("/documents/nope")

    assert response.status_code == 404
    assert response.json()["detail"] == "Document not found: nope"


def test_delete_document(client):
    _put(client, "a", [1.0, 0.0])

    first = client.delete("/documents/a")
    second = client.delete("/documents/a")

    assert first.json() == {"id": "a", "removed": True}
    assert second.status_code == 200
    assert second.json() == {"id": "a", "removed": False}
    assert client.get("/documents/a").status_code == 404


def test_search_by_embedding_with_filter(client):
    _put(client, "a", [1.0, 0.0], subject="MATHEMATICS")
    _put(client, "b", [0.9, 0.1], subject="MATHEMATICS")
    _put(client, "c", [1.0, 0.0], subject="SCIENCE")

    response = client.post("/search", json={
        "embedding": [1.0, 0.0], "k": 5, "filter": {"subject": "MATHEMATICS"},
    })

    assert response.status_code == 200
    hits = response.json()["hits"]
    assert [h["id"] for h in hits] == ["a", "b"]
    assert hits[0]["score"] == pytest.approx(1.0)
    assert hits[0]["metadata"] == {"subject": "MATHEMATICS"}


def test_search_by_embedding_with_threshold(client):
    _put(client, "a", [1.0, 0.0])
    _put(client, "b", [0.0, 1.0])

    response = client.post("/search", json={"embedding": [1.0, 0.0], "k": 5, "threshold": 0.5})

    assert [h["id"] for h in response.json()["hits"]] == ["a"]


def test_search_by_query_text(client):
    _put(client, "cells", content="cells are the unit of life")
    _put(client, "fractions", content="adding fractions")

    response = client.post("/search", json={"query": "cells are the unit of life", "k": 1})

    assert response.status_code == 200
    assert [h["id"] for h in response.json()["hits"]] == ["cells"]


def test_search_k_zero_returns_no_hits(client):
    _put(client, "a", [1.0, 0.0])

    response = client.post("/search", json={"embedding": [1.0, 0.0], "k": 0})

    assert response.json() == {"hits": []}


def test_search_wrong_dimension_is_400(client):
    _put(client, "a", [1.0, 0.0])

    response = client.post("/search", json={"embedding": [1.0, 0.0, 0.0]})

    assert response.status_code == 400


@pytest.mark.parametrize("body", [
    {},
    {"query": "x", "embedding": [1.0]},
    {"query": "   "},
    {"embedding": [1.0], "k": -1},
    {"embedding": [1.0], "threshold": 1.5},
])
def test_search_schema_violations_are_422(client, body):
    assert client.post("/search", json=body).status_code == 422


def test_app_builds_store_at_startup(monkeypatch, tmp_path):
    """Without an injected store the lifespan builds one from configuration."""
    monkeypatch.setenv("DB_PATH", str(tmp_path / "startup.db"))
    seed = InMemoryDocumentStore(repository=SQLiteDocumentRepository(str(tmp_path / "startup.db")))
    seed.upsert(Document("seed", "persisted text", [0.0, 1.0]))

    app = create_app(embedding_provider=DeterministicHashEmbedding(8))
    with TestClient(app) as client:
        data = client.get("/health").json()
        fetched = client.get("/documents/seed")

    assert data["document_count"] == 1
    assert data["dimension"] == 2
    assert fetched.json()["content"] == "persisted text"


class _DeletedAfterUpsertStore(InMemoryDocumentStore):
    """Simulates a DELETE landing between the upsert and any follow-up read."""

    def upsert(self, document):
        super().upsert(document)
        self.remove(document.id)


def test_put_response_built_from_upserted_document():
    app = create_app(store=_DeletedAfterUpsertStore(), embedding_provider=DeterministicHashEmbedding(8))

    with TestClient(app) as client:
        response = _put(client, "a", [1.0, 0.0], subject="MATHEMATICS")

    assert response.status_code == 200
    assert response.json() == {
        "id": "a", "content": "text of a", "metadata": {"subject": "MATHEMATICS"}, "dimension": 2,
    }


def test_error_responses_documented(client):
    schema = client.get("/openapi.json").json()

    assert "ErrorResponse" in schema["components"]["schemas"]
    assert "404" in schema["paths"]["/documents/{doc_id}"]["get"]["responses"]
    assert "400" in schema["paths"]["/documents"]["put"]["responses"]
    assert "400" in schema["paths"]["/search"]["post"]["responses"]

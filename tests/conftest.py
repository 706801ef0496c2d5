"""
Shared pytest fixtures for document store tests.
"""

import numpy as np
import pytest

from docstore.vector.embeddings import DeterministicHashEmbedding
from docstore.vector.index import InMemoryDocumentStore
from docstore.vector.types import Document


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point every test at its own SQLite file and default settings."""
    monkeypatch.setenv("DB_PATH", str(tmp_path / "docstore.db"))
    for name in ("EMBED_DIM", "EMBED_PROVIDER", "EMBED_MODEL_NAME", "PERSIST_ENABLED",
                 "DEFAULT_TOP_K", "CHUNK_SIZE", "CHUNK_OVERLAP", "EMBEDDING_BATCH_SIZE",
                 "EMBED_CACHE_SIZE"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def store():
    """Fresh in-memory store with no persistence."""
    return InMemoryDocumentStore()


@pytest.fixture
def embedder():
    """Small deterministic embedding provider."""
    return DeterministicHashEmbedding(dimension=16)


@pytest.fixture
def make_doc():
    """Build a Document from an id, a vector and keyword metadata."""
    def _make(doc_id, embedding, content=None, **metadata):
        return Document(
            id=doc_id,
            content=content if content is not None else f"content of {doc_id}",
            embedding=embedding,
            metadata=metadata,
        )
    return _make


@pytest.fixture
def rng():
    return np.random.default_rng(1234)

"""
Tests for SQLite persistence and store write-through / reload.
"""

import sqlite3
from unittest.mock import MagicMock

import pytest

from docstore.core.db import get_db, health_check, init_db
from docstore.core.errors import DimensionMismatchError
from docstore.core.repository import IDocumentRepository, SQLiteDocumentRepository
from docstore.vector.index import InMemoryDocumentStore
from docstore.vector.types import Document


@pytest.fixture
def repo(tmp_path):
    return SQLiteDocumentRepository(str(tmp_path / "docs.db"))


def test_database_health(tmp_path):
    db_path = str(tmp_path / "health.db")
    assert health_check(db_path) is False
    init_db(db_path)
    assert health_check(db_path) is True


def test_save_and_load_round_trip(repo, make_doc):
    original = make_doc("math_algebra_basics_0", [0.1, -0.25, 1e-7], content="Variables and expressions",
                        subject="MATHEMATICS", grade="7")
    repo.save(original)

    loaded = repo.load_all()
    assert len(loaded) == 1
    assert loaded[0] == original
    assert repo.count() == 1


def test_load_preserves_insertion_order_across_updates(repo, make_doc):
    for doc_id in ("first", "second", "third"):
        repo.save(make_doc(doc_id, [1.0, 0.0]))
    repo.save(make_doc("first", [0.0, 1.0], content="updated"))

    loaded = repo.load_all()
    assert [d.id for d in loaded] == ["first", "second", "third"]
    assert loaded[0].content == "updated"


def test_delete_and_delete_all(repo, make_doc):
    repo.save_batch([make_doc("a", [1.0]), make_doc("b", [2.0])])
    repo.delete("a")
    repo.delete("missing")
    assert [d.id for d in repo.load_all()] == ["b"]

    repo.delete_all()
    assert repo.load_all() == []


def test_store_writes_through_and_reloads(repo, make_doc):
    store = InMemoryDocumentStore(repository=repo)
    store.insert(make_doc("x", [1.0, 1.0, 0.0], subject="MATH"))
    store.insert(make_doc("y", [1.0, 1.0, 0.0], subject="MATH"))
    store.insert(make_doc("z", [0.0, 0.0, 1.0], subject="SCI"))
    store.remove("z")
    store.update_content("y", "edited")

    restarted = InMemoryDocumentStore(repository=repo)
    assert restarted.load() == 2
    assert restarted.dimension == 3

    results = restarted.search([1.0, 1.0, 0.0], 5, {"subject": "MATH"})
    assert [r.id for r in results] == ["x", "y"]
    assert results[1].document.content == "edited"


def test_load_does_not_write_back():
    repository = MagicMock(spec=IDocumentRepository)
    repository.load_all.return_value = [Document(id="a", content="", embedding=[1.0, 0.0])]

    store = InMemoryDocumentStore(repository=repository)
    assert store.load() == 1
    repository.save.assert_not_called()
    repository.save_batch.assert_not_called()


def test_load_without_repository_is_noop():
    assert InMemoryDocumentStore().load() == 0


def test_load_rejects_inconsistent_dimensions():
    repository = MagicMock(spec=IDocumentRepository)
    repository.load_all.return_value = [
        Document(id="a", content="", embedding=[1.0, 0.0]),
        Document(id="b", content="", embedding=[1.0, 0.0, 0.0]),
    ]
    store = InMemoryDocumentStore(repository=repository)

    with pytest.raises(DimensionMismatchError):
        store.load()
    assert len(store) == 0


def test_failed_save_leaves_store_unchanged(make_doc):
    """A persistence failure propagates and the document never becomes visible."""
    repository = MagicMock(spec=IDocumentRepository)
    repository.save.side_effect = sqlite3.OperationalError("disk I/O error")
    store = InMemoryDocumentStore(repository=repository)

    with pytest.raises(sqlite3.OperationalError):
        store.insert(make_doc("a", [1.0, 0.0]))

    assert len(store) == 0
    assert store.dimension is None


def test_failed_delete_keeps_document(make_doc):
    repository = MagicMock(spec=IDocumentRepository)
    repository.delete.side_effect = sqlite3.OperationalError("locked")
    store = InMemoryDocumentStore(repository=repository)
    store.insert(make_doc("a", [1.0, 0.0]))

    with pytest.raises(sqlite3.OperationalError):
        store.remove("a")
    assert "a" in store


def test_rejected_document_is_not_persisted(repo, make_doc):
    store = InMemoryDocumentStore(dimension=2, repository=repo)
    with pytest.raises(DimensionMismatchError):
        store.insert(make_doc("a", [1.0, 0.0, 0.0]))
    assert repo.count() == 0


def test_clear_deletes_persisted_documents(repo, make_doc):
    store = InMemoryDocumentStore(repository=repo)
    store.insert_batch([make_doc("a", [1.0, 0.0]), make_doc("b", [0.0, 1.0])])
    assert repo.count() == 2

    store.clear()
    assert repo.count() == 0


def test_metadata_stored_as_json(repo, make_doc):
    repo.save(make_doc("a", [1.0], subject="Matemáticas"))
    with get_db(repo.db_path) as conn:
        row = conn.execute("SELECT metadata, dimension FROM documents WHERE id = 'a'").fetchone()
    assert row == ('{"subject": "Matemáticas"}', 1)


def test_batch_replace_is_persisted(repo, make_doc):
    store = InMemoryDocumentStore(repository=repo)
    store.insert_batch([make_doc("s_0", [1.0, 0.0]), make_doc("s_1", [0.0, 1.0])])

    store.insert_batch([make_doc("s_0", [1.0, 1.0], content="short")], remove_ids=["s_1"])

    persisted = repo.load_all()
    assert [d.id for d in persisted] == ["s_0"]
    assert persisted[0].content == "short"


def test_failed_batch_replace_leaves_store_unchanged(make_doc):
    repository = MagicMock(spec=IDocumentRepository)
    store = InMemoryDocumentStore(repository=repository)
    store.insert_batch([make_doc("s_0", [1.0, 0.0]), make_doc("s_1", [0.0, 1.0])])
    repository.save_batch.side_effect = sqlite3.OperationalError("database is locked")

    with pytest.raises(sqlite3.OperationalError):
        store.insert_batch([make_doc("s_0", [1.0, 1.0])], remove_ids=["s_1"])

    assert store.list_ids() == ["s_0", "s_1"]
    assert list(store.get("s_0").embedding) == [1.0, 0.0]

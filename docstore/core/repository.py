"""
Persistence collaborator for the document store.

The store only needs load_all(), save() and delete(); SQLiteDocumentRepository
is the implementation used by the application.
"""

import json
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .db import get_db, init_db
from ..util.logging import logger
from ..vector.types import Document


class IDocumentRepository(ABC):
    """Abstract interface for durable document storage."""

    @abstractmethod
    def load_all(self) -> List[Document]:
        """Return every persisted document in insertion order."""
        pass

    @abstractmethod
    def save(self, document: Document) -> None:
        """Insert or replace a document."""
        pass

    @abstractmethod
    def delete(self, doc_id: str) -> None:
        """Delete a document if present."""
        pass

    def save_batch(self, documents: Sequence[Document], remove_ids: Sequence[str] = ()) -> None:
        """Save several documents and delete remove_ids."""
        for document in documents:
            self.save(document)
        for doc_id in remove_ids:
            self.delete(doc_id)

    def delete_all(self) -> None:
        """Delete every document."""
        for document in self.load_all():
            self.delete(document.id)


def _embedding_to_json(embedding) -> str:
    return json.dumps([float(x) for x in embedding])


class SQLiteDocumentRepository(IDocumentRepository):
    """Stores documents in the `documents` table, embeddings and metadata as JSON."""

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        init_db(db_path)

    @staticmethod
    def _row_params(document: Document):
        embedding_json = _embedding_to_json(document.embedding)
        return (
            document.id,
            document.content,
            embedding_json,
            len(document.embedding),
            json.dumps(dict(document.metadata), ensure_ascii=False, sort_keys=True),
        )

    # Keeps the original rowid on update, so load order stays insertion order
    _UPSERT_SQL = '''
        INSERT INTO documents (id, content, embedding, dimension, metadata)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            content = excluded.content,
            embedding = excluded.embedding,
            dimension = excluded.dimension,
            metadata = excluded.metadata,
            updated_at = CURRENT_TIMESTAMP
    '''

    def load_all(self) -> List[Document]:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT id, content, embedding, metadata FROM documents ORDER BY rowid")
            rows = cursor.fetchall()

        return [
            Document(
                id=doc_id,
                content=content,
                embedding=json.loads(embedding),
                metadata=json.loads(metadata),
            )
            for doc_id, content, embedding, metadata in rows
        ]

    def save(self, document: Document) -> None:
        with get_db(self.db_path) as conn:
            conn.execute(self._UPSERT_SQL, self._row_params(document))
            conn.commit()

    def save_batch(self, documents: Sequence[Document], remove_ids: Sequence[str] = ()) -> None:
        """Save several documents and delete remove_ids in one transaction."""
        with get_db(self.db_path) as conn:
            try:
                conn.executemany(self._UPSERT_SQL, [self._row_params(d) for d in documents])
                conn.executemany("DELETE FROM documents WHERE id = ?", [(doc_id,) for doc_id in remove_ids])
                conn.commit()
            except Exception:
                conn.rollback()
                logger.error(f"Batch save of {len(documents)} documents rolled back")
                raise

    def delete(self, doc_id: str) -> None:
        with get_db(self.db_path) as conn:
            conn.execute("DELETE FROM documents WHERE id = ?", (doc_id,))
            conn.commit()

    def delete_all(self) -> None:
        with get_db(self.db_path) as conn:
            conn.execute("DELETE FROM documents")
            conn.commit()

    def count(self) -> int:
        with get_db(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM documents")
            return cursor.fetchone()[0]

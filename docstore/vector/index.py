"""
In-memory semantic document store.

Documents are held in an id-keyed map guarded by a single re-entrant lock.
Each entry is immutable (read-only embedding plus its precomputed norm and
insertion sequence number), so a search copies the entry list under the lock
and scores that coherent snapshot without holding it.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..core.errors import DimensionMismatchError, NotFoundError, ValidationError
from ..util.logging import logger
from .ranker import Candidate, matches_filter, prepare_vector, top_k
from .types import Document, Embedding, SearchResult


class IDocumentStore(ABC):
    """Abstract interface for document storage and similarity search."""

    @abstractmethod
    def upsert(self, document: Document) -> None:
        """Insert a document or replace the one with the same id."""
        pass

    def insert(self, document: Document) -> None:
        """Alias of upsert."""
        self.upsert(document)

    @abstractmethod
    def insert_batch(self, documents: Sequence[Document], remove_ids: Iterable[str] = ()) -> None:
        """Insert several documents and drop remove_ids; all changes become visible together or none do."""
        pass

    @abstractmethod
    def remove(self, doc_id: str) -> bool:
        """Remove a document by id. Absent ids are a no-op."""
        pass

    @abstractmethod
    def search(self, query_embedding: Embedding, k: int = 5,
               filter: Optional[Mapping[str, str]] = None) -> List[SearchResult]:
        """Return the k most similar documents passing the metadata filter."""
        pass

    @abstractmethod
    def get(self, doc_id: str) -> Optional[Document]:
        """Fetch a document by id."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every document."""
        pass


@dataclass(frozen=True)
class _Entry:
    document: Document
    norm: float
    seq: int


def _entry_seq(entry: _Entry) -> int:
    return entry.seq


class InMemoryDocumentStore(IDocumentStore):
    """
    Brute-force cosine similarity store for up to a few thousand documents.

    The embedding dimension is fixed by the constructor or by the first
    document inserted. When a repository is injected, mutations are written
    through it before they become visible, and load() repopulates the store
    from it.
    """

    def __init__(self, dimension: Optional[int] = None, repository=None):
        """
        Args:
            dimension: Fixed embedding length, or None to learn it from the first insert
            repository: Optional IDocumentRepository used for persistence
        """
        if dimension is not None and (isinstance(dimension, bool) or not isinstance(dimension, int) or dimension <= 0):
            raise ValidationError(f"dimension must be a positive integer, got {dimension!r}")

        self._fixed_dimension = dimension
        self._dimension = dimension
        self._repository = repository
        self._entries: Dict[str, _Entry] = {}
        self._next_seq = 0
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def dimension(self) -> Optional[int]:
        """Established embedding length, None until known."""
        with self._lock:
            return self._dimension

    @property
    def repository(self):
        return self._repository

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, doc_id: object) -> bool:
        with self._lock:
            return doc_id in self._entries

    def count(self) -> int:
        return len(self)

    def list_ids(self) -> List[str]:
        """Ids in insertion order."""
        with self._lock:
            entries = list(self._entries.values())
        return [e.document.id for e in sorted(entries, key=_entry_seq)]

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_metadata(metadata) -> Mapping[str, str]:
        if metadata is None:
            return MappingProxyType({})
        if not isinstance(metadata, Mapping):
            raise ValidationError(f"metadata must be a mapping, got {type(metadata).__name__}")
        for key, value in metadata.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValidationError(f"metadata keys and values must be strings: {key!r}={value!r}")
        return MappingProxyType(dict(metadata))

    @staticmethod
    def _validate_filter(filter) -> Optional[Mapping[str, str]]:
        if filter is None:
            return None
        if not isinstance(filter, Mapping):
            raise ValidationError(f"filter must be a mapping, got {type(filter).__name__}")
        for key, value in filter.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise ValidationError(f"filter keys and values must be strings: {key!r}={value!r}")
        return dict(filter)

    def _prepare(self, document: Document) -> Tuple[Document, float]:
        """Validate a document and build the immutable copy that gets stored."""
        if not isinstance(document, Document):
            raise ValidationError(f"expected Document, got {type(document).__name__}")
        if not isinstance(document.id, str) or not document.id.strip():
            raise ValidationError("document id must be a non-empty string")
        if not isinstance(document.content, str):
            raise ValidationError(f"content of {document.id} must be a string")

        vector, norm = prepare_vector(document.embedding, f"embedding of {document.id}")
        stored = Document(
            id=document.id,
            content=document.content,
            embedding=vector,
            metadata=self._validate_metadata(document.metadata),
        )
        return stored, norm

    def _check_dimension(self, vector: np.ndarray, context: str = "embedding",
                         expected: Optional[int] = None) -> None:
        # Caller holds the lock
        expected = self._dimension if expected is None else expected
        if expected is not None and vector.shape[0] != expected:
            raise DimensionMismatchError(expected, vector.shape[0], context)

    def _install(self, document: Document, norm: float) -> None:
        # Caller holds the lock. Replacing keeps the original sequence number,
        # so re-inserting a document does not change tie order.
        existing = self._entries.get(document.id)
        if existing is not None:
            seq = existing.seq
        else:
            seq = self._next_seq
            self._next_seq += 1
        if self._dimension is None:
            self._dimension = document.embedding.shape[0]
        self._entries[document.id] = _Entry(document, norm, seq)

    def _install_batch(self, prepared: List[Tuple[Document, float]], persist: bool,
                       remove_ids: Sequence[str] = ()) -> None:
        with self._lock:
            expected = self._dimension
            if expected is None and prepared:
                expected = prepared[0][0].embedding.shape[0]
            for document, _ in prepared:
                self._check_dimension(document.embedding, f"embedding of {document.id}", expected)

            incoming = {document.id for document, _ in prepared}
            stale = [doc_id for doc_id in dict.fromkeys(remove_ids)
                     if doc_id in self._entries and doc_id not in incoming]

            if persist and self._repository is not None:
                self._repository.save_batch([document for document, _ in prepared], stale)

            for document, norm in prepared:
                self._install(document, norm)
            for doc_id in stale:
                del self._entries[doc_id]

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def upsert(self, document: Document) -> None:
        """
        Validate and install a document, replacing any with the same id.

        Raises:
            DimensionMismatchError: embedding length differs from the store dimension
            ValidationError: empty, all-zero or non-finite embedding, or bad fields
        """
        doc_id = getattr(document, "id", None)
        try:
            stored, norm = self._prepare(document)
            with self._lock:
                self._check_dimension(stored.embedding, f"embedding of {stored.id}")
                if self._repository is not None:
                    self._repository.save(stored)
                self._install(stored, norm)
                dimension = self._dimension
        except ValidationError as e:
            logger.log_document_operation("upsert", str(doc_id), {"error": str(e)}, status="rejected")
            raise

        logger.log_document_operation("upsert", stored.id, {"dimension": dimension})

    def insert_batch(self, documents: Sequence[Document], remove_ids: Iterable[str] = ()) -> None:
        """
        Validate every document, then install all of them under one lock hold.

        If any document is invalid nothing is installed. Duplicate ids within
        the batch resolve to the last occurrence. Ids in remove_ids that are
        present and not part of the batch are removed in the same step, so a
        search sees either the old set or the new one.
        """
        prepared = [self._prepare(document) for document in documents]
        remove_ids = list(remove_ids)
        if not prepared and not remove_ids:
            return
        self._install_batch(prepared, persist=True, remove_ids=remove_ids)
        logger.log_operation("document.insert_batch", "success",
                             {"count": len(prepared), "removed": len(remove_ids)})

    def remove(self, doc_id: str) -> bool:
        """Remove a document. Returns True if it existed."""
        with self._lock:
            if doc_id not in self._entries:
                return False
            if self._repository is not None:
                self._repository.delete(doc_id)
            del self._entries[doc_id]

        logger.log_document_operation("remove", doc_id)
        return True

    def update_content(self, doc_id: str, content: str, metadata: Optional[Mapping[str, str]] = None) -> Document:
        """
        Replace a document's content and optionally its metadata, keeping its embedding.

        Raises:
            NotFoundError: no document with this id
        """
        if not isinstance(content, str):
            raise ValidationError("content must be a string")
        new_metadata = self._validate_metadata(metadata) if metadata is not None else None

        with self._lock:
            entry = self._entries.get(doc_id)
            if entry is None:
                raise NotFoundError(doc_id)
            updated = Document(
                id=doc_id,
                content=content,
                embedding=entry.document.embedding,
                metadata=new_metadata if new_metadata is not None else entry.document.metadata,
            )
            if self._repository is not None:
                self._repository.save(updated)
            self._entries[doc_id] = _Entry(updated, entry.norm, entry.seq)

        logger.log_document_operation("update_content", doc_id)
        return updated

    def clear(self) -> None:
        """Remove every document. A learned dimension is forgotten; a fixed one is kept."""
        with self._lock:
            if self._repository is not None:
                self._repository.delete_all()
            self._entries.clear()
            self._next_seq = 0
            self._dimension = self._fixed_dimension

        logger.log_operation("document.clear", "success")

    def load(self) -> int:
        """
        Populate the store from the injected repository.

        Loaded documents are validated like inserts and are not written back.
        Returns the number of documents loaded.
        """
        if self._repository is None:
            return 0

        documents = self._repository.load_all()
        prepared = [self._prepare(document) for document in documents]
        if prepared:
            self._install_batch(prepared, persist=False)

        logger.log_operation("document.load", "success", {"count": len(prepared), "dimension": self.dimension})
        return len(prepared)

    # -------------------------------------------------------------------------
    # Retrieval
    # -------------------------------------------------------------------------

    def get(self, doc_id: str) -> Optional[Document]:
        with self._lock:
            entry = self._entries.get(doc_id)
        return entry.document if entry is not None else None

    def _candidates(self, snapshot: Iterable[_Entry], filter: Optional[Mapping[str, str]]) -> Iterable[Candidate]:
        # Linear filter-then-score. An approximate or inverted index would
        # narrow the candidate set here.
        for entry in snapshot:
            if matches_filter(entry.document.metadata, filter):
                yield Candidate(entry, entry.document.embedding, entry.norm)

    def search(self, query_embedding: Embedding, k: int = 5,
               filter: Optional[Mapping[str, str]] = None) -> List[SearchResult]:
        """
        Return up to k documents ranked by cosine similarity to the query.

        Only documents carrying every filter key with an equal value are
        scored. Equal scores rank earlier-inserted documents first.

        Raises:
            DimensionMismatchError: query length differs from the store dimension
            ValidationError: negative k, or an empty, zero or non-finite query
        """
        if isinstance(k, bool) or not isinstance(k, int):
            raise ValidationError(f"k must be an integer, got {k!r}")
        if k < 0:
            raise ValidationError(f"k must be >= 0, got {k}")
        filter = self._validate_filter(filter)
        query, query_norm = prepare_vector(query_embedding, "query embedding")

        with self._lock:
            dimension = self._dimension
            snapshot = list(self._entries.values())

        if dimension is not None and query.shape[0] != dimension:
            raise DimensionMismatchError(dimension, query.shape[0], "query embedding")
        if k == 0 or not snapshot:
            return []

        ranked = top_k(query, self._candidates(snapshot, filter), k, tiebreaker=_entry_seq, query_norm=query_norm)
        results = [SearchResult(entry.document, score) for entry, score in ranked]

        logger.log_search(k, len(snapshot), len(results), filter)
        return results

    def search_with_threshold(self, query_embedding: Embedding, threshold: float = 0.7,
                              max_results: int = 10,
                              filter: Optional[Mapping[str, str]] = None) -> List[SearchResult]:
        """Search, then drop results scoring below threshold."""
        return [r for r in self.search(query_embedding, max_results, filter) if r.score >= threshold]

    def batch_search(self, query_embeddings: Iterable[Embedding], k: int = 5,
                     filter: Optional[Mapping[str, str]] = None) -> List[List[SearchResult]]:
        """Run one search per query embedding."""
        return [self.search(query, k, filter) for query in query_embeddings]

"""
Query path: embed question text and retrieve matching documents.

RAG features (tutoring, quiz generation) call this with a subject/grade
filter and hand the returned contents to prompt construction.
"""

from typing import List, Mapping, Optional, Sequence

from .config import get_default_top_k
from .errors import ValidationError
from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider
from ..vector.index import IDocumentStore
from ..vector.types import SearchResult


class SearchService:
    """Text-in, ranked-documents-out retrieval over an injected store."""

    def __init__(self, store: IDocumentStore, embedding_provider: IEmbeddingProvider):
        self.store = store
        self.embedding_provider = embedding_provider

    def retrieve(
        self,
        query: str,
        k: Optional[int] = None,
        filter: Optional[Mapping[str, str]] = None,
        threshold: Optional[float] = None,
    ) -> List[SearchResult]:
        """
        Embed the query and search the store.

        Args:
            query: Question or topic text
            k: Maximum number of results, defaults to DEFAULT_TOP_K
            filter: Exact-match metadata filter, e.g. {"subject": "MATHEMATICS"}
            threshold: Optional minimum score; lower-scoring results are dropped

        Returns:
            Ranked results; an empty list means nothing relevant was found
        """
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query text must not be empty")
        if k is None:
            k = get_default_top_k()

        query_embedding = self.embedding_provider.embed_text(query)
        results = self.store.search(query_embedding, k, filter)
        if threshold is not None:
            results = [r for r in results if r.score >= threshold]

        if not results:
            logger.info(f"No documents matched query (k={k}, filter={dict(filter or {})})")
        return results

    def retrieve_many(
        self,
        queries: Sequence[str],
        k: Optional[int] = None,
        filter: Optional[Mapping[str, str]] = None,
    ) -> List[List[SearchResult]]:
        """Retrieve for several queries against the same filter."""
        return [self.retrieve(query, k, filter) for query in queries]

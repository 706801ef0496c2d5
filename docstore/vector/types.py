"""
Document and search result types shared by the store, ranker and ingestion.
"""

from dataclasses import dataclass, field
from typing import Dict, Sequence, Union

import numpy as np

Embedding = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True, eq=False)
class Document:
    """A stored piece of text with its embedding and filter metadata."""

    id: str
    """Unique key within a store"""

    content: str
    """Text payload handed back to callers; opaque to the store"""

    embedding: Embedding
    """Fixed-length vector; held as a read-only float64 array once stored"""

    metadata: Dict[str, str] = field(default_factory=dict)
    """Exact-match filter tags such as subject, grade or topic"""

    def __eq__(self, other):
        if not isinstance(other, Document):
            return NotImplemented
        return (
            self.id == other.id
            and self.content == other.content
            and self.metadata == other.metadata
            and np.array_equal(np.asarray(self.embedding), np.asarray(other.embedding))
        )

    __hash__ = None


@dataclass(frozen=True)
class SearchResult:
    """A ranked search hit."""

    document: Document
    """The matching document"""

    score: float
    """Cosine similarity to the query, in [-1, 1]"""

    @property
    def id(self) -> str:
        return self.document.id

    def __iter__(self):
        # Allows ``doc, score = result``
        yield self.document
        yield self.score

"""On-device semantic document store for retrieval-augmented features."""

from .core.config import VERSION as __version__
from .core.errors import DimensionMismatchError, DocStoreError, NotFoundError, ValidationError
from .vector import Document, InMemoryDocumentStore, SearchResult

__all__ = [
    'Document',
    'SearchResult',
    'InMemoryDocumentStore',
    'DocStoreError',
    'ValidationError',
    'DimensionMismatchError',
    'NotFoundError',
]

"""
Semantic document store: in-memory embedding index with metadata filtering.
"""

# Package initialization for vector module
from .index import IDocumentStore, InMemoryDocumentStore
from .types import Document, SearchResult
from .ranker import cosine_similarity, matches_filter, top_k
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding, CachedEmbeddingProvider

__all__ = [
    'IDocumentStore',
    'InMemoryDocumentStore',
    'Document',
    'SearchResult',
    'cosine_similarity',
    'matches_filter',
    'top_k',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'CachedEmbeddingProvider',
]

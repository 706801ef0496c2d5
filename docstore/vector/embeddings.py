"""
Embedding providers: the text -> vector oracle used by ingestion and queries.

The store never calls these itself; callers embed text and pass vectors in.
"""

import hashlib
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import List, Sequence


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Generate embeddings for several texts."""
        return [self.embed_text(text) for text in texts]


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Generates reproducible embeddings from text without any model
    dependency. Vectors carry no semantic meaning: identical texts get
    identical vectors, different texts get unrelated ones.
    """

    def __init__(self, dimension: int = 384):
        if dimension < 1:
            raise ValueError(f"dimension must be >= 1, got {dimension}")
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = []
        block = 0
        while len(vector) < self.dimension:
            # Each md5 digest yields four 32-bit values
            hex_dig = hashlib.md5(f"{block}:{text}".encode()).hexdigest()
            for i in range(0, len(hex_dig), 8):
                value = int(hex_dig[i:i + 8], 16)
                # Map to [-1, 1]
                vector.append((value / (2**32)) * 2 - 1)
            block += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    The model is loaded on first use.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None
        self._load_lock = threading.Lock()

    @property
    def model(self):
        if self._model is None:
            with self._load_lock:
                if self._model is None:
                    from sentence_transformers import SentenceTransformer
                    self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Encode several texts in one model call."""
        if not texts:
            return []
        embeddings = self.model.encode(list(texts), convert_to_tensor=False)
        return [embedding.tolist() for embedding in embeddings]

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            # Get dimension by encoding a dummy string
            dummy_embedding = self.model.encode("test", convert_to_tensor=False)
            self._dimension = len(dummy_embedding)
        return self._dimension


class CachedEmbeddingProvider(IEmbeddingProvider):
    """Wraps a provider with a bounded LRU cache keyed by text.

    Repeated queries (the same question asked twice in a session) skip the
    model call.
    """

    def __init__(self, provider: IEmbeddingProvider, max_size: int = 256):
        self.provider = provider
        self.max_size = max_size
        self._cache: "OrderedDict[str, List[float]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def embed_text(self, text: str) -> List[float]:
        with self._lock:
            cached = self._cache.get(text)
            if cached is not None:
                self._cache.move_to_end(text)
                self.hits += 1
                return list(cached)
            self.misses += 1

        embedding = list(self.provider.embed_text(text))

        with self._lock:
            self._cache[text] = embedding
            self._cache.move_to_end(text)
            while len(self._cache) > self.max_size:
                self._cache.popitem(last=False)
        return list(embedding)

    def get_dimension(self) -> int:
        return self.provider.get_dimension()

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

"""
Configuration for the document store, read from environment variables.

A .env file in the working directory is loaded on import. Values that tests
or scripts may change at runtime are exposed as functions that re-read the
environment.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

# Version string
VERSION = "0.3.0"

# Defaults
DEFAULT_DB_PATH = "./data/docstore.db"
DEFAULT_EMBED_MODEL = "all-MiniLM-L6-v2"
DEFAULT_HASH_DIM = 384

VALID_EMBED_PROVIDERS = ["hash", "sentence-transformers"]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def get_db_path() -> str:
    """SQLite file backing the persistent document list."""
    return os.getenv("DB_PATH", DEFAULT_DB_PATH)


def debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return _env_bool("DEBUG", "false")


def persistence_enabled() -> bool:
    """Whether the store writes through to SQLite."""
    return _env_bool("PERSIST_ENABLED", "true")


def get_embed_provider_name() -> str:
    return os.getenv("EMBED_PROVIDER", "hash").lower()


def get_embed_model_name() -> str:
    return os.getenv("EMBED_MODEL_NAME", DEFAULT_EMBED_MODEL)


def get_embed_dim() -> Optional[int]:
    """Fixed embedding dimension, or None to learn it from the first document."""
    raw = os.getenv("EMBED_DIM")
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


def get_default_top_k() -> int:
    return _env_int("DEFAULT_TOP_K", 5)


def get_chunk_size() -> int:
    return _env_int("CHUNK_SIZE", 512)


def get_chunk_overlap() -> int:
    return _env_int("CHUNK_OVERLAP", 128)


def get_embedding_batch_size() -> int:
    return _env_int("EMBEDDING_BATCH_SIZE", 32)


def get_embed_cache_size() -> int:
    """Entries in the query embedding LRU cache; 0 disables it."""
    return _env_int("EMBED_CACHE_SIZE", 0)


def ensure_db_directory(db_path: Optional[str] = None):
    """Ensure the database directory exists."""
    Path(db_path or get_db_path()).parent.mkdir(parents=True, exist_ok=True)


def get_embedding_provider():
    """Get configured embedding provider implementation."""
    from ..vector.embeddings import CachedEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding

    if get_embed_provider_name() == "sentence-transformers":
        provider = SentenceTransformerEmbedding(get_embed_model_name())
    else:
        provider = DeterministicHashEmbedding(get_embed_dim() or DEFAULT_HASH_DIM)

    cache_size = get_embed_cache_size()
    if cache_size > 0:
        return CachedEmbeddingProvider(provider, max_size=cache_size)
    return provider


def get_repository():
    """Get the SQLite document repository, or None when persistence is disabled."""
    if not persistence_enabled():
        return None

    from .repository import SQLiteDocumentRepository
    return SQLiteDocumentRepository(get_db_path())


def build_document_store(load: bool = True):
    """
    Construct the process-wide document store from configuration.

    Called once at application startup; the result is injected into
    consumers rather than stored globally.
    """
    from ..vector.index import InMemoryDocumentStore

    store = InMemoryDocumentStore(dimension=get_embed_dim(), repository=get_repository())
    if load:
        store.load()
    return store


def validate_config() -> List[str]:
    """Validate configuration and return any issues."""
    issues = []

    if get_embed_provider_name() not in VALID_EMBED_PROVIDERS:
        issues.append(f"Invalid EMBED_PROVIDER: {get_embed_provider_name()}")

    int_settings = [
        ("EMBED_DIM", get_embed_dim),
        ("DEFAULT_TOP_K", get_default_top_k),
        ("CHUNK_SIZE", get_chunk_size),
        ("CHUNK_OVERLAP", get_chunk_overlap),
        ("EMBEDDING_BATCH_SIZE", get_embedding_batch_size),
        ("EMBED_CACHE_SIZE", get_embed_cache_size),
    ]
    values = {}
    for name, getter in int_settings:
        try:
            values[name] = getter()
        except ValueError:
            issues.append(f"{name} must be an integer")

    if values.get("EMBED_DIM") is not None and values["EMBED_DIM"] < 1:
        issues.append("EMBED_DIM must be >= 1")
    if values.get("DEFAULT_TOP_K", 0) < 0:
        issues.append("DEFAULT_TOP_K must be >= 0")
    if "CHUNK_SIZE" in values and values["CHUNK_SIZE"] < 1:
        issues.append("CHUNK_SIZE must be >= 1")
    if "CHUNK_SIZE" in values and "CHUNK_OVERLAP" in values:
        if not 0 <= values["CHUNK_OVERLAP"] < values["CHUNK_SIZE"]:
            issues.append("CHUNK_OVERLAP must be >= 0 and smaller than CHUNK_SIZE")
    if "EMBEDDING_BATCH_SIZE" in values and values["EMBEDDING_BATCH_SIZE"] < 1:
        issues.append("EMBEDDING_BATCH_SIZE must be >= 1")
    if values.get("EMBED_CACHE_SIZE", 0) < 0:
        issues.append("EMBED_CACHE_SIZE must be >= 0")

    return issues

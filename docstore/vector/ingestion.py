"""
Content ingestion: chunk source texts, embed the chunks and upsert them.

This is a caller of the store, not part of it. Failures embedding or
validating one source are logged and that source is skipped; the rest of the
batch continues. Nothing is retried.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..core import config
from ..core.errors import ValidationError
from ..util.logging import logger, sanitize_content
from .embeddings import IEmbeddingProvider
from .index import IDocumentStore
from .types import Document

_WHITESPACE = re.compile(r"\s+")


@dataclass
class SourceDocument:
    """A piece of educational content before chunking."""
    id: str
    content: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class IngestionReport:
    """Outcome of one ingest() call."""
    indexed_ids: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    total_processed: int = 0
    """Number of sources seen, not chunks"""


def chunk_text(text: str, size: int = 512, overlap: int = 128) -> List[str]:
    """
    Split text into windows of `size` words, each starting `size - overlap`
    words after the previous one.

    The last window may be shorter. Blank text gives no chunks.
    """
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    if not 0 <= overlap < size:
        raise ValueError(f"overlap must be >= 0 and smaller than size, got {overlap}")

    words = [w for w in _WHITESPACE.split(text.strip()) if w]
    chunks = []
    step = size - overlap
    i = 0
    while i < len(words):
        chunks.append(" ".join(words[i:i + size]))
        if i + size >= len(words):
            break
        i += step
    return chunks


class ContentIngestor:
    """Turns source documents into embedded, chunked store documents."""

    def __init__(
        self,
        store: IDocumentStore,
        embedding_provider: IEmbeddingProvider,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.embedding_provider = embedding_provider
        self.chunk_size = chunk_size if chunk_size is not None else config.get_chunk_size()
        self.chunk_overlap = chunk_overlap if chunk_overlap is not None else config.get_chunk_overlap()
        self.batch_size = batch_size if batch_size is not None else config.get_embedding_batch_size()

        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")

    def _embed(self, texts: List[str]) -> List[List[float]]:
        embeddings = []
        for start in range(0, len(texts), self.batch_size):
            batch = texts[start:start + self.batch_size]
            result = self.embedding_provider.embed_batch(batch)
            if len(result) != len(batch):
                raise ValidationError(
                    f"embedding provider returned {len(result)} vectors for {len(batch)} texts"
                )
            embeddings.extend(result)
        return embeddings

    def build_documents(self, source: SourceDocument) -> List[Document]:
        """Chunk and embed one source into store documents."""
        chunks = chunk_text(source.content, self.chunk_size, self.chunk_overlap)
        embeddings = self._embed(chunks)

        documents = []
        for index, (chunk, embedding) in enumerate(zip(chunks, embeddings)):
            metadata = dict(source.metadata)
            metadata["chunk_index"] = str(index)
            metadata["source_id"] = source.id
            documents.append(Document(
                id=f"{source.id}_{index}",
                content=chunk,
                embedding=embedding,
                metadata=metadata,
            ))
        return documents

    def _stale_chunk_ids(self, source_id: str, first_stale: int) -> List[str]:
        # A re-ingested source with fewer chunks leaves old tail chunks behind
        stale = []
        index = first_stale
        while f"{source_id}_{index}" in self.store:
            stale.append(f"{source_id}_{index}")
            index += 1
        return stale

    def ingest(self, sources: Iterable[SourceDocument]) -> IngestionReport:
        """
        Ingest sources one at a time. Each source's new chunks replace its old
        ones in a single step; a failing source is logged and reported, not raised.
        """
        report = IngestionReport()

        for source in sources:
            report.total_processed += 1
            if not source.content or not source.content.strip():
                report.skipped.append(source.id)
                logger.log_ingestion(source.id, 0, status="skipped")
                continue

            try:
                documents = self.build_documents(source)
                stale = self._stale_chunk_ids(source.id, len(documents))
                self.store.insert_batch(documents, remove_ids=stale)
            except Exception as e:
                report.failed.append(source.id)
                logger.log_ingestion(source.id, 0, status="failed", error=str(e))
                continue

            report.indexed_ids.extend(d.id for d in documents)
            logger.log_ingestion(source.id, len(documents))
            logger.debug(f"Ingested {source.id}: {sanitize_content(source.content)}")

        logger.log_operation("ingestion.complete", "success", {
            "indexed_chunks": len(report.indexed_ids),
            "failed": len(report.failed),
            "skipped": len(report.skipped),
        })
        return report


def load_content_pack(path) -> List[SourceDocument]:
    """
    Read a JSON content pack: a list of {"id", "content", "metadata"} objects.

    Metadata values are converted to strings, so {"grade": 7} is stored as "7".
    """
    with open(Path(path), encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, list):
        raise ValidationError("content pack must be a JSON list")

    sources = []
    for position, item in enumerate(data):
        if not isinstance(item, dict) or "id" not in item or "content" not in item:
            raise ValidationError(f"content pack entry {position} needs 'id' and 'content'")
        metadata = item.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValidationError(f"metadata of entry {item['id']} must be an object")
        sources.append(SourceDocument(
            id=str(item["id"]),
            content=str(item["content"]),
            metadata={str(k): str(v) for k, v in metadata.items()},
        ))
    return sources

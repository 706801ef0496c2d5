#!/usr/bin/env python3
"""
Index Rebuild Utility
Re-embeds every persisted document with the configured embedding provider.
Run after changing EMBED_PROVIDER or EMBED_MODEL_NAME; old vectors are not
comparable with new query embeddings.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from docstore.core.config import get_embedding_provider, get_repository
from docstore.vector.index import InMemoryDocumentStore
from docstore.vector.types import Document


def main() -> int:
    """Rebuild persisted embeddings from document content."""
    repository = get_repository()
    if repository is None:
        print("ERROR: Persistence disabled. Set PERSIST_ENABLED=true")
        return 1

    embedding_provider = get_embedding_provider()

    print("Starting index rebuild...")

    documents = repository.load_all()
    print(f"Found {len(documents)} documents in persistent store")

    if not documents:
        print("No entries to rebuild. Exiting.")
        return 0

    rebuilt = []
    for position, document in enumerate(documents, start=1):
        embedding = embedding_provider.embed_text(document.content)
        rebuilt.append(Document(
            id=document.id,
            content=document.content,
            embedding=embedding,
            metadata=dict(document.metadata),
        ))

        if position % 10 == 0:
            print(f"  ... embedded {position}/{len(documents)} documents")

    # Validates every vector and the shared dimension before anything is written
    store = InMemoryDocumentStore(repository=repository)
    store.insert_batch(rebuilt)
    print(f"✓ Successfully rebuilt {len(rebuilt)} documents at dimension {store.dimension}")

    # Quick smoke test
    probe = store.search(rebuilt[0].embedding, k=min(3, len(rebuilt)))
    print(f"✓ Verification search returned {len(probe)} results")

    print("Index rebuild complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())

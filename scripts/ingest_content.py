#!/usr/bin/env python3
"""
Content Pack Ingestion
Chunks, embeds and stores a JSON content pack into the persistent document store.

Usage:
    python scripts/ingest_content.py content/grade7_math.json
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from docstore.core.config import build_document_store, get_embedding_provider, persistence_enabled, validate_config
from docstore.core.errors import ValidationError
from docstore.vector.ingestion import ContentIngestor, load_content_pack


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Ingest a JSON content pack into the document store")
    parser.add_argument("pack", help="Path to a JSON list of {id, content, metadata} objects")
    parser.add_argument("--chunk-size", type=int, default=None, help="Words per chunk (default: CHUNK_SIZE)")
    parser.add_argument("--chunk-overlap", type=int, default=None, help="Overlapping words (default: CHUNK_OVERLAP)")
    args = parser.parse_args(argv)

    issues = validate_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        return 1

    if not persistence_enabled():
        print("WARNING: PERSIST_ENABLED=false, ingested documents will not outlive this process")

    try:
        sources = load_content_pack(args.pack)
    except (OSError, ValueError) as e:
        print(f"ERROR: Could not read content pack {args.pack}: {e}")
        return 1

    print(f"Loaded {len(sources)} source documents from {args.pack}")

    store = build_document_store()
    print(f"Store holds {len(store)} documents before ingestion")

    try:
        ingestor = ContentIngestor(
            store,
            get_embedding_provider(),
            chunk_size=args.chunk_size,
            chunk_overlap=args.chunk_overlap,
        )
    except (ValueError, ValidationError) as e:
        print(f"ERROR: {e}")
        return 1

    report = ingestor.ingest(sources)

    print(f"✓ Indexed {len(report.indexed_ids)} chunks from {report.total_processed} sources")
    if report.skipped:
        print(f"  Skipped (empty): {', '.join(report.skipped)}")
    if report.failed:
        print(f"  Failed: {', '.join(report.failed)}")
    print(f"Store now holds {len(store)} documents")

    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())

"""
Error types raised by the document store.

Validation errors are caller-correctable and raised synchronously; the store
never retries or swallows them.
"""

from typing import Optional


class DocStoreError(Exception):
    """Base class for document store errors."""


class ValidationError(DocStoreError, ValueError):
    """Invalid document, query vector or search argument."""


class DimensionMismatchError(ValidationError):
    """Embedding length does not match the store's dimension."""

    def __init__(self, expected: int, actual: int, context: str = "embedding"):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{context} dimension {actual} does not match store dimension {expected}"
        )


class NotFoundError(DocStoreError, KeyError):
    """Document id expected to exist was not found."""

    def __init__(self, doc_id: str, message: Optional[str] = None):
        self.doc_id = doc_id
        super().__init__(message or f"Document not found: {doc_id}")

    def __str__(self) -> str:
        return self.args[0]

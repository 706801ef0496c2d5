"""
Structured operation logging for the document store.
"""

import logging
import os
from typing import Any, Dict, Optional


def _truncate(value: str, limit: int = 50) -> str:
    return value[:limit] + "..." if len(value) > limit else value


class StructuredLogger:
    """Structured logger for store, search and ingestion operations."""

    def __init__(self, name: str = "docstore"):
        self.logger = logging.getLogger(name)
        level_name = os.getenv("LOG_LEVEL", "INFO").upper()
        self.logger.setLevel(getattr(logging, level_name, logging.INFO))

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_document_operation(self, operation: str, doc_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a document mutation (insert, upsert, remove, load)."""
        log_details = {"doc_id": doc_id}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.WARNING
        # Per-document inserts are chatty during bulk loads
        if operation in ("upsert", "load") and status == "success":
            level = logging.DEBUG
        self.log_operation(f"document.{operation}", status, log_details, level)

    def log_search(self, k: int, candidates: int, returned: int, filter: Optional[Dict[str, str]] = None):
        """Log a completed search."""
        details = {"k": k, "candidates": candidates, "returned": returned}
        if filter:
            details["filter"] = dict(filter)
        self.log_operation("search", "success", details, logging.DEBUG)

    def log_ingestion(self, source_id: str, chunks: int, status: str = "success", error: str = None):
        """Log ingestion of a single source document."""
        details = {"source_id": source_id, "chunks": chunks}
        if error is not None:
            details["error"] = _truncate(error, 100)

        level = logging.INFO if status == "success" else logging.ERROR
        self.log_operation("ingestion", status, details, level)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_content(content: str, reveal: bool = False) -> str:
    """Shorten document content for inclusion in log details."""
    if reveal:
        return content
    return _truncate(content, 50)

"""Vector store module."""

from embedstore.store.service import IngestBatch, VectorStore

__all__ = [
    "IngestBatch",
    "VectorStore",
]

"""Observability module for metrics."""

from embedstore.observability.metrics import (
    get_metrics,
    track_embedding_request,
    track_ingest,
    track_query,
    track_store_operation,
)

__all__ = [
    "get_metrics",
    "track_embedding_request",
    "track_ingest",
    "track_query",
    "track_store_operation",
]

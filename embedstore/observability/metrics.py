"""Prometheus metrics for the embedding store.

Provides metrics instrumentation for:
- Store operation latency (provision, ingest, delete, queries)
- Ingestion volume (records and embeddings)
- Query result sizes and rows dropped during decoding
- Embedding request latency
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)

# Store Metrics
STORE_OPERATION_DURATION = Histogram(
    "embedstore_operation_duration_seconds",
    "Store operation duration in seconds",
    ["operation", "status"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)

INGESTED_RECORDS_TOTAL = Counter(
    "embedstore_ingested_records_total",
    "Total records written by ingestion batches",
    ["table"],
)

INGESTED_EMBEDDINGS_TOTAL = Counter(
    "embedstore_ingested_embeddings_total",
    "Total embedding rows written by ingestion batches",
    ["table"],
)

# Query Metrics
QUERY_RESULTS_RETURNED = Histogram(
    "embedstore_query_results_returned",
    "Number of results returned per similarity query",
    ["table", "mode"],
    buckets=[0, 1, 2, 3, 5, 10, 20, 50, 100],
)

QUERY_ROWS_SKIPPED_TOTAL = Counter(
    "embedstore_query_rows_skipped_total",
    "Result rows dropped because they failed to decode",
    ["table"],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedstore_embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedstore_embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedstore_embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics output."""
    return CONTENT_TYPE_LATEST


def track_store_operation(
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track a store operation.

    Args:
        operation: Operation name (provision, ingest, delete, top_n, top_n_ids).
        duration: Operation duration in seconds.
        success: Whether the operation succeeded.
    """
    status = "success" if success else "error"
    STORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(
        duration
    )


def track_ingest(table: str, records: int, embeddings: int) -> None:
    """Track a committed ingestion batch.

    Args:
        table: Document table name.
        records: Number of records written.
        embeddings: Number of embedding rows written.
    """
    INGESTED_RECORDS_TOTAL.labels(table=table).inc(records)
    INGESTED_EMBEDDINGS_TOTAL.labels(table=table).inc(embeddings)


def track_query(
    table: str,
    mode: str,
    returned: int,
    skipped: int = 0,
) -> None:
    """Track a similarity query.

    Args:
        table: Document table name.
        mode: "records" for top_n, "ids" for top_n_ids.
        returned: Number of results returned to the caller.
        skipped: Number of rows dropped during decoding.
    """
    QUERY_RESULTS_RETURNED.labels(table=table, mode=mode).observe(returned)
    if skipped:
        QUERY_ROWS_SKIPPED_TOTAL.labels(table=table).inc(skipped)


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)

"""Similarity search over a provisioned vector store."""

import dataclasses
import json
import time
from collections.abc import Sequence
from types import NoneType, UnionType
from typing import (
    Any,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
    is_typeddict,
)

from pydantic import BaseModel, TypeAdapter, ValidationError

from embedstore.embeddings.service import EmbeddingModel
from embedstore.exceptions import (
    DatastoreError,
    EmbeddingError,
    InvalidRequestError,
)
from embedstore.filters.compiler import compile_filter
from embedstore.filters.models import Gt, SearchFilter
from embedstore.index.models import SearchRequest
from embedstore.logging_config import get_logger
from embedstore.observability.metrics import track_query, track_store_operation
from embedstore.schema.models import ID_COLUMN
from embedstore.session.base import Row
from embedstore.store import sql
from embedstore.store.service import VectorStore

logger = get_logger(__name__)

T = TypeVar("T")


def build_where_clause(
    request: SearchRequest,
    query_vector: Sequence[float],
) -> tuple[str, list[Any]]:
    """Combine the distance threshold with the request filter.

    Returns:
        The WHERE condition and the full parameter list for the KNN query:
        query vector blob, neighbour count, then filter parameters.

    Raises:
        FilterError: If the request filter does not compile.
    """
    threshold = request.threshold if request.threshold is not None else 0.0
    combined: SearchFilter = Gt(key=sql.DISTANCE_KEY, value=threshold)
    if request.filter is not None:
        combined = combined & request.filter

    compiled = compile_filter(combined)
    params: list[Any] = [
        sql.serialize_vector(query_vector),
        request.sample_count,
        *compiled.params,
    ]
    return compiled.condition, params


STRUCTURED_TYPES = (list, dict, set, frozenset, tuple)


def _is_structured(annotation: Any) -> bool:
    """Whether a field annotation expects a value stored as JSON text."""
    if annotation in STRUCTURED_TYPES or get_origin(annotation) in STRUCTURED_TYPES:
        return True
    if get_origin(annotation) in (Union, UnionType):
        return any(
            _is_structured(arg) for arg in get_args(annotation) if arg is not NoneType
        )
    return (
        get_origin(annotation) is None
        and isinstance(annotation, type)
        and issubclass(annotation, BaseModel)
    )


def structured_fields(record_type: Any) -> frozenset[str]:
    """Names of the fields of ``record_type`` that hold JSON-encoded values.

    Covers pydantic models, dataclasses and TypedDicts; other targets
    (plain mappings) get no JSON decoding.
    """
    if get_origin(record_type) is not None:
        return frozenset()
    if isinstance(record_type, type) and issubclass(record_type, BaseModel):
        annotations = {
            name: field.annotation for name, field in record_type.model_fields.items()
        }
    elif dataclasses.is_dataclass(record_type) or is_typeddict(record_type):
        annotations = get_type_hints(record_type)
    else:
        return frozenset()
    return frozenset(
        name for name, annotation in annotations.items() if _is_structured(annotation)
    )


def decode_value(value: Any, structured: bool = False) -> Any:
    """Decode a column value for record validation.

    Numbers come back as strings and the target type coerces them; text,
    blobs and NULL pass through. Text for a structured field is parsed as
    JSON; text that is not JSON is left for validation to reject.
    """
    if isinstance(value, (int, float)):
        return str(value)
    if structured and isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


class VectorIndex:
    """Answers nearest-neighbour queries against a VectorStore.

    Distances are the raw metric reported by vec0 (L2 by default);
    smaller means more similar.
    """

    def __init__(self, store: VectorStore, embedding_model: EmbeddingModel) -> None:
        """Initialize the index.

        Args:
            store: Provisioned store to query.
            embedding_model: Model used to embed query text.
        """
        self._store = store
        self._embedding_model = embedding_model

    @property
    def store(self) -> VectorStore:
        return self._store

    async def top_n(
        self,
        request: SearchRequest,
        record_type: type[T],
    ) -> list[tuple[float, str, T]]:
        """Find the nearest documents and decode them.

        Rows that fail to validate as ``record_type`` are logged and skipped.

        Args:
            request: Search request.
            record_type: Any type pydantic can validate a column mapping into
                (a BaseModel subclass, dataclass, TypedDict or dict).

        Returns:
            (distance, id, record) triples in ascending distance order.

        Raises:
            InvalidRequestError: If sample_count is below 1.
            EmbeddingError: If the query cannot be embedded.
            FilterError: If the filter does not compile.
            DatastoreError: If the query fails.
        """
        logger.debug(f"Finding top {request.sample_count} matches for query")
        schema = self._store.schema
        column_names = schema.column_names
        id_position = column_names.index(ID_COLUMN)

        rows = await self._run_query(request, column_names, "top_n")

        adapter: TypeAdapter[T] = TypeAdapter(record_type)
        structured = structured_fields(record_type)
        results: list[tuple[float, str, T]] = []
        skipped = 0
        for row in rows:
            record_id = str(row[id_position])
            distance = float(row[len(column_names)])
            values = {
                name: decode_value(row[i], name in structured)
                for i, name in enumerate(column_names)
            }
            try:
                document = adapter.validate_python(values)
            except ValidationError as e:
                skipped += 1
                logger.warning(
                    f"Failed to deserialize document {record_id}: {e}",
                    extra={"table": schema.name, "id": record_id},
                )
                continue
            results.append((distance, record_id, document))

        track_query(schema.name, "records", len(results), skipped)
        logger.debug(
            f"Returning {len(results)} matches",
            extra={"table": schema.name, "skipped": skipped},
        )
        return results

    async def top_n_ids(self, request: SearchRequest) -> list[tuple[float, str]]:
        """Find the nearest document ids without decoding documents.

        Returns:
            (distance, id) pairs in ascending distance order.

        Raises:
            InvalidRequestError: If sample_count is below 1.
            EmbeddingError: If the query cannot be embedded.
            FilterError: If the filter does not compile.
            DatastoreError: If the query fails.
        """
        logger.debug(f"Finding top {request.sample_count} document IDs for query")
        rows = await self._run_query(request, [ID_COLUMN], "top_n_ids")

        results = [(float(row[1]), str(row[0])) for row in rows]

        track_query(self._store.schema.name, "ids", len(results))
        logger.debug(f"Found {len(results)} matching document IDs")
        return results

    async def _run_query(
        self,
        request: SearchRequest,
        projection: list[str],
        operation: str,
    ) -> list[Row]:
        """Validate, embed, compile and execute; returns raw rows."""
        if request.sample_count < 1:
            raise InvalidRequestError(
                f"sample_count must be at least 1, got {request.sample_count}",
                details={"sample_count": request.sample_count},
            )

        query_vector = await self._embed_query(request.query)
        condition, params = build_where_clause(request, query_vector)
        statement = sql.knn_query_sql(self._store.schema, projection, condition)

        start_time = time.perf_counter()
        try:
            rows = [row async for row in self._store.session.query(statement, params)]
        except Exception as e:
            track_store_operation(
                operation, time.perf_counter() - start_time, success=False
            )
            raise DatastoreError(
                f"Similarity query failed: {e}",
                details={"table": self._store.schema.name, "error": str(e)},
            ) from e

        track_store_operation(operation, time.perf_counter() - start_time)
        return rows

    async def _embed_query(self, query: str) -> list[float]:
        try:
            embedding = await self._embedding_model.embed_text(query)
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(
                f"Failed to embed query: {e}",
                details={"query": query[:100], "error": str(e)},
            ) from e
        return embedding.vector

"""Vector store: provisioning and transactional ingestion."""

import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from embedstore.embeddings.models import Embedding
from embedstore.exceptions import (
    DatastoreError,
    EmbedStoreError,
    ErrorCode,
    IngestError,
    SchemaError,
)
from embedstore.logging_config import get_logger
from embedstore.observability.metrics import track_ingest, track_store_operation
from embedstore.schema.models import Record, TableSchema
from embedstore.session.base import Session
from embedstore.store import sql

if TYPE_CHECKING:
    from embedstore.embeddings.service import EmbeddingModel
    from embedstore.index.service import VectorIndex

logger = get_logger(__name__)

IngestBatch = Sequence[tuple[Record, Sequence[Embedding]]]


class VectorStore:
    """A document table paired with a vec0 embedding table.

    Build one with ``await VectorStore.provision(...)``; the tables are
    created if missing and never dropped by the store.
    """

    def __init__(
        self,
        session: Session,
        schema: TableSchema,
        dimensions: int,
    ) -> None:
        """Wrap already provisioned tables.

        Args:
            session: Storage engine session.
            schema: Document table schema.
            dimensions: Embedding dimensions of the vec0 table.
        """
        self._session = session
        self._schema = schema
        self._dimensions = dimensions

    @property
    def session(self) -> Session:
        return self._session

    @property
    def schema(self) -> TableSchema:
        return self._schema

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @classmethod
    async def provision(
        cls,
        session: Session,
        schema: TableSchema,
        dimensions: int,
    ) -> "VectorStore":
        """Create the document table, its indexes and the embedding table.

        All statements are "IF NOT EXISTS" and run in one transaction, so
        provisioning is idempotent and never leaves half a schema behind.

        Args:
            session: Storage engine session.
            schema: Document table schema.
            dimensions: Embedding dimensions, from the embedding model.

        Returns:
            The provisioned store.

        Raises:
            SchemaError: If dimensions is not positive or the schema is invalid.
            DatastoreError: If the engine rejects a statement.
        """
        if dimensions <= 0:
            raise SchemaError(
                f"Embedding dimensions must be positive, got {dimensions}",
                code=ErrorCode.INVALID_DIMENSIONS,
                details={"table": schema.name, "dimensions": dimensions},
            )
        schema.validate_schema()

        statements = [
            sql.create_table_sql(schema),
            *sql.create_index_sql(schema),
            sql.create_embeddings_table_sql(schema, dimensions),
        ]

        start_time = time.perf_counter()
        try:
            async with session.transaction():
                for statement in statements:
                    await session.execute(statement)
        except Exception as e:
            track_store_operation(
                "provision", time.perf_counter() - start_time, success=False
            )
            raise DatastoreError(
                f"Failed to provision table {schema.name}: {e}",
                details={"table": schema.name, "error": str(e)},
            ) from e

        track_store_operation("provision", time.perf_counter() - start_time)
        logger.info(
            f"Provisioned table: {schema.name}",
            extra={"table": schema.name, "dimensions": dimensions},
        )
        return cls(session, schema, dimensions)

    def into_index(self, embedding_model: "EmbeddingModel") -> "VectorIndex":
        """Pair the store with the model used to embed queries.

        Raises:
            SchemaError: If the model's dimensions differ from the table's.
        """
        from embedstore.index.service import VectorIndex

        if embedding_model.ndims != self._dimensions:
            raise SchemaError(
                f"Embedding model produces {embedding_model.ndims} dimensions, "
                f"table {self._schema.name} stores {self._dimensions}",
                code=ErrorCode.INVALID_DIMENSIONS,
                details={
                    "table": self._schema.name,
                    "expected": self._dimensions,
                    "received": embedding_model.ndims,
                },
            )
        return VectorIndex(self, embedding_model)

    async def ingest(self, batch: IngestBatch) -> int:
        """Upsert records with their embeddings in one transaction.

        For each record, embedding rows of any previous version are deleted,
        the row is written with INSERT OR REPLACE binding exactly
        ``column_values()`` in order, and each embedding is inserted against
        the new physical row id. Before commit, embedding rows left without
        a document (records replaced through another unique column) are
        deleted.

        Args:
            batch: (record, embeddings) pairs; each needs at least one embedding.

        Returns:
            Physical row id of the last record written (0 for an empty batch).

        Raises:
            IngestError: If anything fails; the whole batch is rolled back.
        """
        if not batch:
            return 0

        table = self._schema.name
        logger.info(f"Adding {len(batch)} documents to {table}")

        last_rowid = 0
        embedding_count = 0
        start_time = time.perf_counter()
        try:
            async with self._session.transaction():
                for position, (record, embeddings) in enumerate(batch):
                    last_rowid = await self._write_record(position, record, embeddings)
                    embedding_count += len(embeddings)
                # REPLACE on another unique column can delete other records.
                swept = await self._session.execute(
                    sql.delete_orphan_embeddings_sql(self._schema)
                )
                if swept.rows_affected > 0:
                    logger.debug(
                        f"Removed {swept.rows_affected} orphaned embeddings",
                        extra={"table": table},
                    )
        except Exception as e:
            track_store_operation(
                "ingest", time.perf_counter() - start_time, success=False
            )
            logger.error(
                f"Ingestion into {table} rolled back: {e}",
                extra={"table": table, "batch_size": len(batch)},
            )
            if isinstance(e, IngestError):
                raise
            code = ErrorCode.INGEST_ERROR
            if isinstance(e, EmbedStoreError):
                code = e.code
            elif isinstance(e, TypeError):
                code = ErrorCode.UNSUPPORTED_COLUMN_VALUE
            raise IngestError(
                f"Failed to ingest batch into {table}: {e}",
                code=code,
                details={"table": table, "error": str(e)},
            ) from e

        track_store_operation("ingest", time.perf_counter() - start_time)
        track_ingest(table, len(batch), embedding_count)
        return last_rowid

    async def _write_record(
        self,
        position: int,
        record: Record,
        embeddings: Sequence[Embedding],
    ) -> int:
        record_id = record.record_id
        logger.debug(f"Storing document with id {record_id}")

        if not embeddings:
            raise IngestError(
                f"Document {record_id} has no embeddings",
                code=ErrorCode.EMPTY_EMBEDDINGS,
                details={"id": record_id, "position": position},
            )
        for embedding in embeddings:
            if len(embedding.vector) != self._dimensions:
                raise IngestError(
                    f"Embedding for {record_id} has {len(embedding.vector)} "
                    f"dimensions, expected {self._dimensions}",
                    code=ErrorCode.VECTOR_DIMENSION_MISMATCH,
                    details={
                        "id": record_id,
                        "position": position,
                        "expected": self._dimensions,
                        "received": len(embedding.vector),
                    },
                )

        values = record.column_values()
        columns = [name for name, _ in values]
        params = [value.to_param() for _, value in values]

        # Drop vectors of the row this upsert replaces.
        existing = await self._session.fetch_one(
            sql.select_rowid_sql(self._schema), (record_id,)
        )
        if existing is not None:
            await self._session.execute(
                sql.delete_embeddings_sql(self._schema), (existing[0],)
            )

        result = await self._session.execute(
            sql.upsert_sql(self._schema, columns), params
        )
        rowid = result.last_insert_rowid
        if rowid is None:
            raise IngestError(
                f"Engine returned no row id for document {record_id}",
                details={"id": record_id, "position": position},
            )

        insert_embedding = sql.insert_embedding_sql(self._schema)
        for i, embedding in enumerate(embeddings):
            blob = sql.serialize_vector(embedding.vector)
            logger.debug(
                f"Storing embedding {i + 1} of {len(embeddings)} "
                f"(size: {len(blob)} bytes)"
            )
            await self._session.execute(insert_embedding, (blob, rowid))

        return rowid

    async def delete(self, ids: Sequence[str]) -> int:
        """Delete records and their embeddings by id, in one transaction.

        Args:
            ids: Record identifiers. Unknown ids are ignored.

        Returns:
            Number of records deleted.

        Raises:
            DatastoreError: If deletion fails; nothing is deleted.
        """
        if not ids:
            return 0

        deleted = 0
        start_time = time.perf_counter()
        try:
            async with self._session.transaction():
                for record_id in ids:
                    row = await self._session.fetch_one(
                        sql.select_rowid_sql(self._schema), (record_id,)
                    )
                    if row is None:
                        continue
                    await self._session.execute(
                        sql.delete_embeddings_sql(self._schema), (row[0],)
                    )
                    await self._session.execute(
                        sql.delete_document_sql(self._schema), (row[0],)
                    )
                    deleted += 1
        except Exception as e:
            track_store_operation(
                "delete", time.perf_counter() - start_time, success=False
            )
            raise DatastoreError(
                f"Failed to delete records: {e}",
                details={"table": self._schema.name, "error": str(e)},
            ) from e

        track_store_operation("delete", time.perf_counter() - start_time)
        logger.debug(
            f"Deleted {deleted} records",
            extra={"table": self._schema.name},
        )
        return deleted

    async def count(self) -> int:
        """Number of document rows."""
        return await self._count(self._schema.name)

    async def count_embeddings(self) -> int:
        """Number of embedding rows."""
        return await self._count(self._schema.embeddings_table)

    async def _count(self, table: str) -> int:
        try:
            row = await self._session.fetch_one(sql.count_sql(table))
        except Exception as e:
            raise DatastoreError(
                f"Failed to count rows in {table}: {e}",
                details={"table": table, "error": str(e)},
            ) from e
        return int(row[0]) if row is not None else 0

"""Tests for vector store provisioning and ingestion."""

from datetime import UTC, datetime

import pytest
from conftest import NOTE_SCHEMA, FakeEmbeddingModel, Note

from embedstore.embeddings.models import Embedding
from embedstore.exceptions import DatastoreError, ErrorCode, IngestError, SchemaError
from embedstore.index.service import VectorIndex
from embedstore.schema.models import Column, DocumentRecord, TableSchema
from embedstore.session.sqlite import SQLiteVecSession
from embedstore.store import sql
from embedstore.store.service import VectorStore


class Tagged(DocumentRecord):
    """Record with a field that has no column form."""

    tags: set[str]


class Person(DocumentRecord):
    """Record with a second unique column."""

    email: str


class Stamped(DocumentRecord):
    """Record with a list of values that have no JSON form."""

    stamps: list[datetime]


def _embedding(text: str, *vector: float) -> Embedding:
    return Embedding(document=text, vector=list(vector))


async def _schema_objects(session: SQLiteVecSession) -> list[tuple]:
    return [
        tuple(row)
        async for row in session.query(
            "SELECT type, name, sql FROM sqlite_master ORDER BY type, name"
        )
    ]


@pytest.fixture
async def store(session: SQLiteVecSession) -> VectorStore:
    return await VectorStore.provision(session, NOTE_SCHEMA, 4)


class TestStatements:
    """Tests for generated SQL."""

    def test_create_table(self) -> None:
        """Columns are declared in schema order."""
        statement = sql.create_table_sql(NOTE_SCHEMA)
        assert statement.startswith("CREATE TABLE IF NOT EXISTS notes")
        assert statement.index("id TEXT PRIMARY KEY") < statement.index("content TEXT")

    def test_indexes(self) -> None:
        """The id column gets a unique index, flagged columns a plain one."""
        schema = TableSchema(
            name="docs",
            columns=[
                Column(name="id", storage_type="TEXT"),
                Column(name="lang", storage_type="TEXT", indexed=True),
            ],
        )
        assert sql.create_index_sql(schema) == [
            "CREATE UNIQUE INDEX IF NOT EXISTS idx_docs_id ON docs(id)",
            "CREATE INDEX IF NOT EXISTS idx_docs_lang ON docs(lang)",
        ]

    def test_embeddings_table(self) -> None:
        """The vec0 table is sized by the dimensions."""
        assert sql.create_embeddings_table_sql(NOTE_SCHEMA, 384) == (
            "CREATE VIRTUAL TABLE IF NOT EXISTS notes_embeddings "
            "USING vec0(embedding float[384], document_rowid integer)"
        )

    def test_upsert(self) -> None:
        """Upsert binds one placeholder per column."""
        assert sql.upsert_sql(NOTE_SCHEMA, ["id", "content"]) == (
            "INSERT OR REPLACE INTO notes (id, content) VALUES (?, ?)"
        )

    def test_knn_query(self) -> None:
        """KNN runs before the join and results are distance ordered."""
        statement = sql.knn_query_sql(NOTE_SCHEMA, ["id"], "knn.distance > ?")
        assert "WITH knn AS MATERIALIZED" in statement
        assert "WHERE embedding MATCH ? AND k = ?" in statement
        assert "SELECT d.id, knn.distance" in statement
        assert statement.endswith("WHERE knn.distance > ?\nORDER BY knn.distance")


class TestProvision:
    """Tests for VectorStore.provision."""

    @pytest.mark.asyncio
    async def test_creates_tables(self, session: SQLiteVecSession) -> None:
        """Both tables exist and start empty."""
        store = await VectorStore.provision(session, NOTE_SCHEMA, 4)

        assert store.dimensions == 4
        assert await store.count() == 0
        assert await store.count_embeddings() == 0

    @pytest.mark.asyncio
    async def test_idempotent(self, session: SQLiteVecSession) -> None:
        """Provisioning twice leaves the schema unchanged."""
        await VectorStore.provision(session, NOTE_SCHEMA, 4)
        before = await _schema_objects(session)

        await VectorStore.provision(session, NOTE_SCHEMA, 4)

        assert await _schema_objects(session) == before

    @pytest.mark.asyncio
    async def test_keeps_existing_rows(self, store: VectorStore) -> None:
        """Re-provisioning never drops data."""
        await store.ingest([(Note(id="n1", content="a"), [_embedding("a", 1, 0, 0, 0)])])

        again = await VectorStore.provision(store.session, NOTE_SCHEMA, 4)

        assert await again.count() == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("dimensions", [0, -3])
    async def test_rejects_non_positive_dimensions(
        self, session: SQLiteVecSession, dimensions: int
    ) -> None:
        """Dimensions must be positive."""
        with pytest.raises(SchemaError) as exc_info:
            await VectorStore.provision(session, NOTE_SCHEMA, dimensions)
        assert exc_info.value.code == ErrorCode.INVALID_DIMENSIONS

    @pytest.mark.asyncio
    async def test_rejects_reserved_column(self, session: SQLiteVecSession) -> None:
        """Invalid schemas fail before anything is created."""
        schema = TableSchema(
            name="bad",
            columns=[
                Column(name="id", storage_type="TEXT"),
                Column(name="distance", storage_type="REAL"),
            ],
        )

        with pytest.raises(SchemaError):
            await VectorStore.provision(session, schema, 4)
        assert await _schema_objects(session) == []

    @pytest.mark.asyncio
    async def test_engine_failure(self, session: SQLiteVecSession) -> None:
        """Statements the engine rejects become DatastoreError."""
        schema = TableSchema(
            name="broken",
            columns=[Column(name="id", storage_type="TEXT CHECK (")],
        )

        with pytest.raises(DatastoreError):
            await VectorStore.provision(session, schema, 4)

    @pytest.mark.asyncio
    async def test_into_index(self, store: VectorStore) -> None:
        """A model with matching dimensions yields an index."""
        index = store.into_index(FakeEmbeddingModel({}, ndims=4))
        assert isinstance(index, VectorIndex)
        assert index.store is store

    @pytest.mark.asyncio
    async def test_into_index_dimension_mismatch(self, store: VectorStore) -> None:
        """A model with different dimensions is rejected."""
        with pytest.raises(SchemaError) as exc_info:
            store.into_index(FakeEmbeddingModel({}, ndims=8))
        assert exc_info.value.code == ErrorCode.INVALID_DIMENSIONS


class TestIngest:
    """Tests for VectorStore.ingest."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, store: VectorStore) -> None:
        """An empty batch writes nothing and returns 0."""
        assert await store.ingest([]) == 0
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_writes_rows_and_embeddings(self, store: VectorStore) -> None:
        """Each embedding becomes its own row pointing at the document."""
        last_rowid = await store.ingest(
            [
                (Note(id="n1", content="one"), [_embedding("one", 1, 0, 0, 0)]),
                (
                    Note(id="n2", content="two"),
                    [_embedding("two-a", 0, 1, 0, 0), _embedding("two-b", 0, 0, 1, 0)],
                ),
            ]
        )

        assert await store.count() == 2
        assert await store.count_embeddings() == 3
        row = await store.session.fetch_one(
            "SELECT rowid FROM notes WHERE id = ?", ("n2",)
        )
        assert row is not None and row[0] == last_rowid

    @pytest.mark.asyncio
    async def test_upsert_replaces_record(self, store: VectorStore) -> None:
        """Re-ingesting an id keeps one row with the new content and vectors."""
        await store.ingest([(Note(id="n1", content="old"), [_embedding("old", 1, 0, 0, 0)])])
        await store.ingest([(Note(id="n1", content="new"), [_embedding("new", 0, 1, 0, 0)])])

        assert await store.count() == 1
        assert await store.count_embeddings() == 1
        row = await store.session.fetch_one("SELECT content FROM notes WHERE id = 'n1'")
        assert row is not None and row[0] == "new"

    @pytest.mark.asyncio
    async def test_no_orphan_embeddings(self, store: VectorStore) -> None:
        """Every embedding row points at an existing document row."""
        for content in ("a", "b", "c"):
            await store.ingest(
                [(Note(id="n1", content=content), [_embedding(content, 1, 0, 0, 0)])]
            )

        row = await store.session.fetch_one(
            "SELECT COUNT(*) FROM notes_embeddings e "
            "LEFT JOIN notes d ON d.rowid = e.document_rowid WHERE d.rowid IS NULL"
        )
        assert row is not None and row[0] == 0

    @pytest.mark.asyncio
    async def test_rejects_empty_embeddings(self, store: VectorStore) -> None:
        """A record without embeddings fails the batch."""
        with pytest.raises(IngestError) as exc_info:
            await store.ingest([(Note(id="n1", content="x"), [])])
        assert exc_info.value.code == ErrorCode.EMPTY_EMBEDDINGS

    @pytest.mark.asyncio
    async def test_dimension_mismatch_rolls_back_batch(self, store: VectorStore) -> None:
        """A bad vector late in the batch discards the earlier records."""
        batch = [
            (Note(id="n1", content="a"), [_embedding("a", 1, 0, 0, 0)]),
            (Note(id="n2", content="b"), [_embedding("b", 0, 1, 0, 0)]),
            (Note(id="n3", content="c"), [_embedding("c", 0, 1)]),
        ]

        with pytest.raises(IngestError) as exc_info:
            await store.ingest(batch)

        assert exc_info.value.code == ErrorCode.VECTOR_DIMENSION_MISMATCH
        assert exc_info.value.details["position"] == 2
        assert await store.count() == 0
        assert await store.count_embeddings() == 0

    @pytest.mark.asyncio
    async def test_unsupported_value_rolls_back_batch(self, store: VectorStore) -> None:
        """A column value with no column form discards the whole batch."""
        batch = [
            (Note(id="n1", content="a"), [_embedding("a", 1, 0, 0, 0)]),
            (Tagged(id="n2", tags={"x"}), [_embedding("b", 0, 1, 0, 0)]),
        ]

        with pytest.raises(IngestError) as exc_info:
            await store.ingest(batch)

        assert exc_info.value.code == ErrorCode.UNSUPPORTED_COLUMN_VALUE
        assert await store.count() == 0
        assert await store.count_embeddings() == 0

    @pytest.mark.asyncio
    async def test_failed_batch_keeps_earlier_data(self, store: VectorStore) -> None:
        """Rollback restores the state before the failed batch."""
        await store.ingest([(Note(id="n1", content="kept"), [_embedding("k", 1, 0, 0, 0)])])

        with pytest.raises(IngestError):
            await store.ingest(
                [
                    (Note(id="n1", content="lost"), [_embedding("l", 0, 1, 0, 0)]),
                    (Note(id="n2", content="x"), []),
                ]
            )

        row = await store.session.fetch_one("SELECT content FROM notes WHERE id = 'n1'")
        assert row is not None and row[0] == "kept"
        assert await store.count_embeddings() == 1

    @pytest.mark.asyncio
    async def test_upsert_without_primary_key(self, session: SQLiteVecSession) -> None:
        """An id column declared without PRIMARY KEY still holds one row per id."""
        schema = TableSchema(
            name="items",
            columns=[
                Column(name="id", storage_type="TEXT"),
                Column(name="content", storage_type="TEXT"),
            ],
        )
        store = await VectorStore.provision(session, schema, 4)

        await store.ingest([(Note(id="X", content="one"), [_embedding("one", 1, 0, 0, 0)])])
        await store.ingest([(Note(id="X", content="two"), [_embedding("two", 0, 1, 0, 0)])])

        assert await store.count() == 1
        assert await store.count_embeddings() == 1
        row = await session.fetch_one("SELECT content FROM items WHERE id = 'X'")
        assert row is not None and row[0] == "two"

    @pytest.mark.asyncio
    async def test_replace_through_unique_column(self, session: SQLiteVecSession) -> None:
        """A record displaced by another unique column takes its embeddings along."""
        schema = TableSchema(
            name="people",
            columns=[
                Column(name="id", storage_type="TEXT PRIMARY KEY"),
                Column(name="email", storage_type="TEXT UNIQUE"),
            ],
        )
        store = await VectorStore.provision(session, schema, 4)

        await store.ingest(
            [(Person(id="p1", email="a@example.com"), [_embedding("p1", 1, 0, 0, 0)])]
        )
        await store.ingest(
            [(Person(id="p2", email="a@example.com"), [_embedding("p2", 0, 1, 0, 0)])]
        )

        assert await store.count() == 1
        assert await store.count_embeddings() == 1
        row = await session.fetch_one(
            "SELECT COUNT(*) FROM people_embeddings e "
            "LEFT JOIN people d ON d.rowid = e.document_rowid WHERE d.rowid IS NULL"
        )
        assert row is not None and row[0] == 0

    @pytest.mark.asyncio
    async def test_unserializable_structured_value(self, store: VectorStore) -> None:
        """List elements with no JSON form fail the batch instead of being stringified."""
        record = Stamped(id="s1", stamps=[datetime(2024, 1, 1, tzinfo=UTC)])

        with pytest.raises(IngestError) as exc_info:
            await store.ingest([(record, [_embedding("s1", 1, 0, 0, 0)])])

        assert exc_info.value.code == ErrorCode.UNSUPPORTED_COLUMN_VALUE
        assert await store.count() == 0


class TestDelete:
    """Tests for VectorStore.delete."""

    @pytest.mark.asyncio
    async def test_removes_rows_and_embeddings(self, store: VectorStore) -> None:
        """Deleted records take their embeddings with them."""
        await store.ingest(
            [
                (Note(id="n1", content="a"), [_embedding("a", 1, 0, 0, 0)]),
                (
                    Note(id="n2", content="b"),
                    [_embedding("b1", 0, 1, 0, 0), _embedding("b2", 0, 0, 1, 0)],
                ),
            ]
        )

        deleted = await store.delete(["n2", "missing"])

        assert deleted == 1
        assert await store.count() == 1
        assert await store.count_embeddings() == 1

    @pytest.mark.asyncio
    async def test_empty_ids(self, store: VectorStore) -> None:
        """Deleting nothing is a no-op."""
        assert await store.delete([]) == 0
